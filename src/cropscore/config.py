"""Analyzer configuration: tunable weights, thresholds and search bounds.

Every stage reads its parameters from one immutable :class:`Config`. The two
presets below are plain values; there is no preset-specific code path.
"""

import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FACE_CLASSIFIER_ENV_VAR = "CROPSCORE_FACE_CLASSIFIER"
DEBUG_ENV_VAR = "CROPSCORE_DEBUG"
DEFAULT_FACE_CASCADE = "haarcascade_frontalface_default.xml"


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Config:
    detail_weight: float = 0.2

    skin_bias: float = 0.01
    skin_brightness_min: float = 0.2
    skin_brightness_max: float = 1.0
    skin_threshold: float = 0.8
    skin_weight: float = 1.8

    saturation_brightness_min: float = 0.05
    saturation_brightness_max: float = 0.9
    saturation_threshold: float = 0.4
    saturation_bias: float = 0.2
    saturation_weight: float = 0.3

    # step * min_scale rounded down to the next power of two works well
    score_down_sample: int = 8
    step: int = 8
    scale_step: float = 0.1
    min_scale: float = 0.9
    max_scale: float = 1.0
    edge_radius: float = 0.4
    edge_weight: float = -20.0
    outside_importance: float = -0.5
    rule_of_thirds: bool = True

    prescale: bool = True
    prescale_min: float = 400.0

    face_detect_enabled: bool = False
    face_detect_classifier_file: str = ""

    def __post_init__(self) -> None:
        if self.step <= 0:
            raise ValueError(f"step must be positive, got {self.step}")
        if self.score_down_sample <= 0:
            raise ValueError(f"score_down_sample must be positive, got {self.score_down_sample}")
        if self.scale_step <= 0:
            raise ValueError(f"scale_step must be positive, got {self.scale_step}")
        if self.min_scale <= 0 or self.min_scale > self.max_scale:
            raise ValueError(
                f"expected 0 < min_scale <= max_scale, got {self.min_scale} / {self.max_scale}"
            )
        if self.prescale and self.prescale_min <= 0:
            raise ValueError(f"prescale_min must be positive, got {self.prescale_min}")
        for name in ("skin", "saturation"):
            lo = getattr(self, f"{name}_brightness_min")
            hi = getattr(self, f"{name}_brightness_max")
            if lo > hi:
                raise ValueError(f"{name} brightness band is inverted: {lo} > {hi}")
            threshold = getattr(self, f"{name}_threshold")
            if not 0.0 <= threshold < 1.0:
                raise ValueError(f"{name}_threshold must be in [0, 1), got {threshold}")

    def replace(self, **changes) -> "Config":
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **changes)


DEFAULT_CONFIG = Config()

# Tuned for cropping with face detection enabled: heavier feature weights and
# a finer scoring grid, no prescale so face boxes keep their native size.
FACE_DETECT_CONFIG = Config(
    detail_weight=5.2,
    skin_weight=5.8,
    saturation_weight=5.5,
    score_down_sample=2,
    min_scale=1.0,
    max_scale=1.0,
    prescale=False,
    face_detect_enabled=True,
)


# ---------------------------------------------------------------------------
# Environment helpers
# ---------------------------------------------------------------------------


def _read_env_file(env_path: Path) -> dict[str, str]:
    """Parse a simple .env file into key/value pairs."""
    values: dict[str, str] = {}
    try:
        content = env_path.read_text(encoding="utf-8")
    except OSError:
        return values

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue

        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        values[key] = value

    return values


def resolve_env_string(var_name: str) -> Optional[str]:
    """Resolve a setting from the environment first, then ./.env."""
    env_value = (os.environ.get(var_name) or "").strip()
    if env_value:
        return env_value

    env_file = Path.cwd() / ".env"
    if not env_file.exists():
        return None
    value = _read_env_file(env_file).get(var_name, "").strip()
    return value or None


def resolve_env_bool(var_name: str, default: bool) -> bool:
    raw = (os.environ.get(var_name) or "").strip().lower()
    if not raw:
        return default
    if raw in {"1", "true", "yes", "on"}:
        return True
    if raw in {"0", "false", "no", "off"}:
        return False
    return default
