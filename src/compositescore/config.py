"""
Configuration
=============

Central configuration for the Composite Score pipeline.
Loads from YAML config files with sensible defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


@dataclass
class InputConfig:
    """Input table location."""
    path: Optional[str] = None
    label_column: Optional[str] = None  # None: the leading column
    sep: str = ","


@dataclass
class TransformConfig:
    """Power transform configuration."""
    exponent: float = 0.25


@dataclass
class ScalingConfig:
    """Component scaling configuration."""
    on_degenerate: str = "raise"  # "raise" or "drop"
    tolerance: float = 1e-10


@dataclass
class ParallelAnalysisConfig:
    """Monte-Carlo parallel analysis configuration."""
    rep: int = 100
    cent: float = 0.95
    seed: Optional[int] = None


@dataclass
class RetentionConfig:
    """How the number of retained components is decided."""
    policy: str = "median"  # "median", "min", "max" or a heuristic name
    k: Optional[int] = None  # explicit choice, overrides the policy
    jolliffe_factor: float = 0.7


@dataclass
class OutputConfig:
    """Output and presentation configuration."""
    output_dir: str = "output"
    decimals: int = 3
    write_files: bool = True
    generate_plots: bool = False


@dataclass
class PipelineConfig:
    """Master configuration for the full pipeline."""
    input: InputConfig = field(default_factory=InputConfig)
    transform: TransformConfig = field(default_factory=TransformConfig)
    scaling: ScalingConfig = field(default_factory=ScalingConfig)
    parallel: ParallelAnalysisConfig = field(default_factory=ParallelAnalysisConfig)
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> PipelineConfig:
        """Load configuration from a YAML file."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        config = cls()

        if "input" in data:
            config.input = InputConfig(**data["input"])
        if "transform" in data:
            config.transform = TransformConfig(**data["transform"])
        if "scaling" in data:
            config.scaling = ScalingConfig(**data["scaling"])
        if "parallel" in data:
            config.parallel = ParallelAnalysisConfig(**data["parallel"])
        if "retention" in data:
            config.retention = RetentionConfig(**data["retention"])
        if "output" in data:
            config.output = OutputConfig(**data["output"])

        return config

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        import dataclasses
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = dataclasses.asdict(self)
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
