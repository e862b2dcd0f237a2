"""
Network-model records, assembly and persistence.
"""

from .schema import (
    InteractionKind,
    InteractionRecord,
    TargetCategory,
    DownstreamTarget,
    TreatmentTarget,
    ModelIdentifier,
    NetworkModel,
)
from .store import (
    ModelStore,
    InMemoryModelStore,
    DirectoryModelStore,
)
from .assembly import (
    assemble_network_model,
    check_model_integrity,
)
