"""
Exporter Configuration Settings

All configuration constants for the animation exporter.
Modify these values to change export behavior, or drop an
``export_settings.json`` next to the other asset configs to override them.
"""

import json
from pathlib import Path

# ============================================================================
# Project Paths
# ============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent.parent
ASSETS_DIR = PROJECT_ROOT / "assets"
CONFIG_DIR = ASSETS_DIR / "config"
EXPORT_SETTINGS_PATH = CONFIG_DIR / "export_settings.json"

# ============================================================================
# Logging
# ============================================================================

LOG_LEVEL = "INFO"
LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"

# ============================================================================
# Property Classification
# ============================================================================

# Source property prefix -> target name (see PropertyTarget)
PROPERTY_PREFIXES = {
    "m_LocalPosition.": "translation",
    "m_LocalRotation.": "rotation",
    "localEulerAngles.": "euler_rotation",
    "localEulerAnglesRaw.": "euler_rotation",
    "localEulerAnglesBaked.": "euler_rotation",
    "m_LocalScale.": "scale",
    "blendShape.": "weights",
}

# Per-axis suffix -> slot in the target's vector
AXIS_SUFFIX_OFFSETS = {
    ".x": 0,
    ".y": 1,
    ".z": 2,
    ".w": 3,
}

BLEND_SHAPE_PREFIX = "blendShape."

# ============================================================================
# Value Transforms
# ============================================================================

# Source blend shapes are percentages, glTF weights are fractions
BLEND_SHAPE_WEIGHT_SCALE = 0.01

# Per-component sign applied to finalized rows (handedness correction).
# Targets not listed pass through unchanged.
HANDEDNESS_SIGNS = {
    "rotation": (1.0, 1.0, -1.0, 1.0),
}

# Rest values used for slots that no curve ever keyed
DEFAULT_TRANSLATION = (0.0, 0.0, 0.0)
DEFAULT_ROTATION = (0.0, 0.0, 0.0, 1.0)  # x, y, z, w
DEFAULT_SCALE = (1.0, 1.0, 1.0)
DEFAULT_MORPH_WEIGHT = 0.0

# ============================================================================
# Interpolation
# ============================================================================

# Tangent mode of the first key in a bucket -> glTF sampler interpolation.
# CUBICSPLINE is not produced: tangents are not exported.
TANGENT_INTERPOLATION = {
    "free": "LINEAR",
    "auto": "LINEAR",
    "linear": "LINEAR",
    "constant": "STEP",
    "clamped_auto": "LINEAR",
}
DEFAULT_INTERPOLATION = "LINEAR"

# ============================================================================
# Buffer Encoding
# ============================================================================

FLOAT_COMPONENT_TYPE = 5126  # GL_FLOAT
BUFFER_ALIGNMENT = 4  # Accessor offsets must be multiples of the component size
WRITE_OUTPUT_BOUNDS = True  # Also annotate Output accessors with min/max
DEFAULT_BUFFER_INDEX = 0
DEFAULT_ANIMATION_NAME = "Animation"


def _load_export_overrides() -> dict:
    """
    Load setting overrides from JSON configuration file.

    Returns:
        Dictionary of overridden setting names to values
    """
    if not EXPORT_SETTINGS_PATH.exists():
        return {}

    with open(EXPORT_SETTINGS_PATH, 'r', encoding='utf-8') as f:
        config = json.load(f)

    if not isinstance(config, dict):
        raise ValueError(f"Export settings must be a JSON object: {EXPORT_SETTINGS_PATH}")

    return config


_overrides = _load_export_overrides()
LOG_LEVEL = _overrides.get("log_level", LOG_LEVEL)
BLEND_SHAPE_WEIGHT_SCALE = float(_overrides.get("blend_shape_weight_scale", BLEND_SHAPE_WEIGHT_SCALE))
WRITE_OUTPUT_BOUNDS = bool(_overrides.get("write_output_bounds", WRITE_OUTPUT_BOUNDS))
if "handedness_signs" in _overrides:
    HANDEDNESS_SIGNS = {
        name: tuple(float(s) for s in signs)
        for name, signs in _overrides["handedness_signs"].items()
    }
