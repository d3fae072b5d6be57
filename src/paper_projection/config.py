"""
Configuration management for paper_projection.

Every pipeline run receives an explicit ``ProjectionConfig``; there is no
module-level instance. Defaults can be overridden from environment variables
(typically from a .env file), which python-dotenv loads on demand.

Usage:
    from paper_projection.config import ProjectionConfig

    cfg = ProjectionConfig(num_clusters=8, num_neighbors=5)
    cfg = ProjectionConfig.from_env()
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .exceptions import InvalidParameterError

ENV_PREFIX = "PAPER_PROJECTION_"

DISTANCE_MEASURES = ("euclidean", "cosine")
INIT_POLICIES = ("striped", "random")


@dataclass
class ProjectionConfig:
    """Parameters for one clustering + projection run."""

    num_clusters: int = 2
    max_iterations: int = 15  # medoid passes
    force_iterations: int = 50  # force scheme sweeps over the control points
    force_tolerance: float = 0.0  # stop sweeping once the error drops below this
    label_count: int = 3
    num_neighbors: int = 10
    fraction_delta: float = 0.8  # force scheme damping
    distance_measure: str = "euclidean"  # "euclidean" or "cosine"
    init_policy: str = "striped"  # "striped" or "random"
    seed: int = 0  # only used by the random init policy
    tie_tolerance: float = 0.0  # 0.0 = bit-exact ties during assignment
    max_items: int = 500
    solve_retries: int = 1  # extra solves with a doubled neighbor count
    allow_missing_layout: bool = False

    def __post_init__(self):
        """Validate ranges and enumerated values."""
        if self.num_clusters < 1:
            raise InvalidParameterError(f"num_clusters must be >= 1, got {self.num_clusters}")
        if self.max_iterations < 1:
            raise InvalidParameterError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.force_iterations < 0:
            raise InvalidParameterError(
                f"force_iterations must be >= 0, got {self.force_iterations}"
            )
        if self.label_count < 0:
            raise InvalidParameterError(f"label_count must be >= 0, got {self.label_count}")
        if self.num_neighbors < 1:
            raise InvalidParameterError(f"num_neighbors must be >= 1, got {self.num_neighbors}")
        if self.fraction_delta <= 0:
            raise InvalidParameterError(f"fraction_delta must be > 0, got {self.fraction_delta}")
        if self.tie_tolerance < 0:
            raise InvalidParameterError(f"tie_tolerance must be >= 0, got {self.tie_tolerance}")
        if self.max_items < 1:
            raise InvalidParameterError(f"max_items must be >= 1, got {self.max_items}")
        if self.solve_retries < 0:
            raise InvalidParameterError(f"solve_retries must be >= 0, got {self.solve_retries}")
        if self.distance_measure not in DISTANCE_MEASURES:
            raise InvalidParameterError(
                f"distance_measure must be one of {DISTANCE_MEASURES}, got {self.distance_measure!r}"
            )
        if self.init_policy not in INIT_POLICIES:
            raise InvalidParameterError(
                f"init_policy must be one of {INIT_POLICIES}, got {self.init_policy!r}"
            )

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None, **overrides: Any) -> "ProjectionConfig":
        """
        Build a config from ``PAPER_PROJECTION_*`` environment variables.

        Environment variables can be set:
        1. In a .env file (``env_file``, or the project root by default)
        2. In the system environment

        Args:
            env_file: Optional path of a .env file to load first
            **overrides: Explicit values that win over the environment

        Returns:
            ProjectionConfig

        Raises:
            InvalidParameterError: If a variable cannot be parsed or is out of range
        """
        if env_file is None:
            # Project root (parent of src/)
            env_file = Path(__file__).parent.parent.parent / ".env"
        if Path(env_file).exists():
            load_dotenv(env_file)

        values: Dict[str, Any] = {}
        for f in fields(cls):
            raw = os.getenv(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            values[f.name] = _parse_value(f.name, raw, type(getattr(_DEFAULTS, f.name)))
        values.update(overrides)
        return cls(**values)

    def with_overrides(self, **changes: Any) -> "ProjectionConfig":
        """Return a validated copy with *changes* applied."""
        return replace(self, **changes)


def _parse_value(name: str, raw: str, target: type) -> Any:
    """Convert an environment string to the type of the field default."""
    try:
        if target is bool:
            lowered = raw.strip().lower()
            if lowered in ("1", "true", "yes", "on"):
                return True
            if lowered in ("0", "false", "no", "off"):
                return False
            raise ValueError(raw)
        return target(raw.strip())
    except ValueError as e:
        raise InvalidParameterError(
            f"Environment variable {ENV_PREFIX}{name.upper()}={raw!r} is not a valid {target.__name__}"
        ) from e


_DEFAULTS = ProjectionConfig()
