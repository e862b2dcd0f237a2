"""Pipeline configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping


@dataclass(frozen=True)
class PipelineConfig:
    """Filtering thresholds shared by every model build."""

    excluded_interaction_term: str = "Correlation"
    p_value_threshold: float = 0.01
    fold_change_threshold: float = 0.5
    restrict_perturbed_to_backbone: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PipelineConfig":
        if not isinstance(data, Mapping):
            raise ValueError("Pipeline config must be a mapping.")

        keys = set(cls.__dataclass_fields__.keys())
        clean: Dict[str, Any] = {}
        for key in keys:
            if key in data:
                clean[key] = data[key]

        if "excluded_interaction_term" in clean:
            clean["excluded_interaction_term"] = str(clean["excluded_interaction_term"])
        for key in ("p_value_threshold", "fold_change_threshold"):
            if key in clean:
                clean[key] = float(clean[key])
        if "restrict_perturbed_to_backbone" in clean:
            clean["restrict_perturbed_to_backbone"] = bool(clean["restrict_perturbed_to_backbone"])

        config = cls(**clean)
        config.validate()
        return config

    def validate(self) -> None:
        if not self.excluded_interaction_term:
            raise ValueError("pipeline.excluded_interaction_term must be non-empty")
        p = float(self.p_value_threshold)
        if p <= 0.0 or p > 1.0:
            raise ValueError(f"pipeline.p_value_threshold must be in (0,1], got {self.p_value_threshold}")
        if float(self.fold_change_threshold) < 0.0:
            raise ValueError(
                f"pipeline.fold_change_threshold must be >= 0, got {self.fold_change_threshold}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "excluded_interaction_term": self.excluded_interaction_term,
            "p_value_threshold": float(self.p_value_threshold),
            "fold_change_threshold": float(self.fold_change_threshold),
            "restrict_perturbed_to_backbone": bool(self.restrict_perturbed_to_backbone),
        }


def load_yaml(path: Path) -> Dict[str, Any]:
    try:
        import yaml
    except ImportError as exc:
        raise RuntimeError(
            "PyYAML is required for YAML config support. Install with: pip install pyyaml"
        ) from exc

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML config must be a mapping at root: {path}")
    return data


def load_pipeline_config(config_path: str | Path) -> PipelineConfig:
    """Load pipeline thresholds from a YAML path."""
    path = Path(config_path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Pipeline config not found: {path}")
    raw = load_yaml(path)
    # Allow either flat root fields or nested under `pipeline`.
    pipeline_data = raw.get("pipeline", raw)
    return PipelineConfig.from_mapping(pipeline_data)
