"""Tunable parameters of the preview engine.

Usage:
    from locomotion_preview.config import PreviewConfig

    config = PreviewConfig.from_yaml("assets/preview_config.yaml")
    engine.configure(config)

YAML layout:
    preview:
      sample_time: 0.001
      step_height: 0.1
      force_threshold: 0.0
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict

import yaml


@dataclass(frozen=True)
class PreviewConfig:
    """Preview engine tunables.

    Attributes:
        sample_time: Sampling interval of full previews in seconds (default: 0.001)
        step_height: Swing apex height above the higher endpoint in metres (default: 0.1)
        force_threshold: Contact force magnitude above which a foot is in stance (default: 0.0)
    """

    sample_time: float = 0.001
    step_height: float = 0.1
    force_threshold: float = 0.0

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not self.sample_time > 0.0:
            raise ValueError(f"sample_time must be > 0, got {self.sample_time}")
        if self.step_height < 0.0:
            raise ValueError(f"step_height must be >= 0, got {self.step_height}")
        if self.force_threshold < 0.0:
            raise ValueError(f"force_threshold must be >= 0, got {self.force_threshold}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PreviewConfig":
        section = data.get("preview", data) or {}
        defaults = cls()
        return cls(
            sample_time=float(section.get("sample_time", defaults.sample_time)),
            step_height=float(section.get("step_height", defaults.step_height)),
            force_threshold=float(section.get("force_threshold", defaults.force_threshold)),
        )

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> "PreviewConfig":
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return {"preview": asdict(self)}
