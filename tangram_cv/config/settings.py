"""Configuration dataclass and loading utilities.

Provides a strongly-typed configuration object that can be injected into
services instead of relying on a global module-level dictionary. Values are
resolved in this order (last wins):

1. ``DEFAULT_CONFIG``
2. the JSON config file
3. ``TANGRAM_<KEY>`` environment variables
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict, fields, replace
from typing import Any, Dict, Optional, Tuple
import json, os, logging

from .defaults import DEFAULT_CONFIG, DIFFICULTY_TOLERANCES
from ..core.exceptions import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "TANGRAM_"


@dataclass(slots=True, frozen=True)
class ValidationTolerances:
    """Tolerances used by one validation call or session."""
    position: float = DEFAULT_CONFIG["position_tolerance"]
    rotation_deg: float = DEFAULT_CONFIG["rotation_tolerance_deg"]
    orientation_deg: float = DEFAULT_CONFIG["orientation_tolerance_deg"]
    nudge_upper_deg: float = DEFAULT_CONFIG["rotation_nudge_upper_deg"]

    def __post_init__(self):
        for name in ("position", "rotation_deg", "orientation_deg", "nudge_upper_deg"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
                raise ConfigError(f"Tolerance '{name}' must be a non-negative number, got {value!r}")
        if self.nudge_upper_deg < self.orientation_deg:
            raise ConfigError(
                f"Rotation nudge upper bound ({self.nudge_upper_deg}) is below the "
                f"orientation tolerance ({self.orientation_deg})"
            )

    def with_overrides(self, **overrides: Any) -> "ValidationTolerances":
        """Copy with the given non-None values replaced."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self

    @classmethod
    def for_difficulty(cls, difficulty: str, base: Optional["ValidationTolerances"] = None) -> "ValidationTolerances":
        try:
            position, rotation = DIFFICULTY_TOLERANCES[difficulty]
        except KeyError:
            raise ConfigError(
                f"Unknown difficulty '{difficulty}', expected one of {sorted(DIFFICULTY_TOLERANCES)}"
            ) from None
        return (base or cls()).with_overrides(position=position, rotation_deg=rotation)


@dataclass(slots=True)
class Config:
    # Validation tolerances
    position_tolerance: float = DEFAULT_CONFIG["position_tolerance"]
    rotation_tolerance_deg: float = DEFAULT_CONFIG["rotation_tolerance_deg"]
    orientation_tolerance_deg: float = DEFAULT_CONFIG["orientation_tolerance_deg"]
    rotation_nudge_upper_deg: float = DEFAULT_CONFIG["rotation_nudge_upper_deg"]
    difficulty: str = DEFAULT_CONFIG["difficulty"]
    apply_difficulty: bool = DEFAULT_CONFIG["apply_difficulty"]

    # Nudges
    success_pulse_intensity: float = DEFAULT_CONFIG["success_pulse_intensity"]
    success_pulse_duration: float = DEFAULT_CONFIG["success_pulse_duration"]
    corrective_nudge_duration: float = DEFAULT_CONFIG["corrective_nudge_duration"]

    # CV frame mapping
    reference_canvas_width: int = DEFAULT_CONFIG["reference_canvas_width"]
    reference_canvas_height: int = DEFAULT_CONFIG["reference_canvas_height"]
    observation_scale: float = DEFAULT_CONFIG["observation_scale"]
    assignment_threshold_px: float = DEFAULT_CONFIG["assignment_threshold_px"]
    max_tracks_per_class: int = DEFAULT_CONFIG["max_tracks_per_class"]
    needs_camera_inversion: bool = DEFAULT_CONFIG["needs_camera_inversion"]
    target_fps: int = DEFAULT_CONFIG["target_fps"]

    # Debug and Logging Settings
    debug: bool = DEFAULT_CONFIG["debug"]
    log_level: str = DEFAULT_CONFIG["log_level"]
    log_dir: str = DEFAULT_CONFIG["log_dir"]
    enable_file_logging: bool = DEFAULT_CONFIG["enable_file_logging"]
    structured_logging: bool = DEFAULT_CONFIG["structured_logging"]

    # Arbitrary extra values retained for forward compatibility
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        # merge extra keys at top-level for saving
        extra = d.pop("extra", {})
        d.update(extra)
        return d

    def get(self, key: str, default: Any = None) -> Any:
        if key in _field_names():
            return getattr(self, key)
        return self.extra.get(key, default)

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return (int(self.reference_canvas_width), int(self.reference_canvas_height))

    def tolerances(self) -> ValidationTolerances:
        """Session tolerances; difficulty presets replace position/rotation when enabled."""
        base = ValidationTolerances(
            position=self.position_tolerance,
            rotation_deg=self.rotation_tolerance_deg,
            orientation_deg=self.orientation_tolerance_deg,
            nudge_upper_deg=self.rotation_nudge_upper_deg,
        )
        if self.apply_difficulty:
            return ValidationTolerances.for_difficulty(self.difficulty, base)
        return base

    def logging_kwargs(self) -> Dict[str, Any]:
        """Arguments for ``configure_logging``."""
        return {
            "log_level": "DEBUG" if self.debug else self.log_level,
            "log_dir": self.log_dir,
            "enable_file_logging": self.enable_file_logging,
            "structured_logging": self.structured_logging,
        }


def _field_names() -> Tuple[str, ...]:
    return tuple(f.name for f in fields(Config) if f.name != "extra")


def _coerce(raw: str, default: Any) -> Any:
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"not a boolean: {raw!r}")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw


def _typed(key: str, value: Any) -> Any:
    """Coerce ``value`` to the type of ``DEFAULT_CONFIG[key]`` or raise ``ValueError``."""
    default = DEFAULT_CONFIG[key]
    if isinstance(value, str) and not isinstance(default, str):
        return _coerce(value, default)
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
    elif isinstance(default, int):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
    elif isinstance(default, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif isinstance(value, type(default)):
        return value
    raise ValueError(f"'{key}' expects {type(default).__name__}, got {value!r}")


def _check_ranges(cfg: Config) -> None:
    width, height = cfg.canvas_size
    if width <= 0 or height <= 0:
        raise ConfigError(f"Reference canvas must be positive, got {width}x{height}")
    if cfg.max_tracks_per_class < 1:
        raise ConfigError(f"max_tracks_per_class must be at least 1, got {cfg.max_tracks_per_class}")
    cfg.tolerances()


def _apply_environment_overrides(merged: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Apply ``TANGRAM_<KEY>`` environment variables on top of file values."""
    environ = os.environ if environ is None else environ
    result = dict(merged)
    for key, default in DEFAULT_CONFIG.items():
        env_key = f"{ENV_PREFIX}{key.upper()}"
        if env_key not in environ:
            continue
        try:
            result[key] = _coerce(environ[env_key], default)
            logger.debug(f"Configuration key '{key}' overridden from {env_key}")
        except ValueError as e:
            logger.warning(f"Ignoring invalid environment override {env_key}: {e}")
    return result


def _read_config_file(path: str) -> Dict[str, Any]:
    if not os.path.isfile(path):
        logger.info(f"Configuration file '{path}' does not exist. Using defaults.")
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded_data = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse JSON configuration file '{path}': {e}. Using defaults.")
        return {}
    except OSError as e:
        logger.error(f"Could not read configuration file '{path}': {e}. Using defaults.")
        return {}

    if loaded_data is None:
        logger.warning(f"Configuration file '{path}' is empty, using defaults")
        return {}
    if not isinstance(loaded_data, dict):
        logger.error(f"Configuration file '{path}' does not contain a valid JSON object, using defaults")
        return {}
    logger.info(f"Successfully loaded configuration from '{path}'")
    return loaded_data


def load_config(path: str = "config.json", environ: Optional[Dict[str, str]] = None) -> Config:
    """Load configuration from a JSON file, falling back to defaults on any problem.

    Args:
        path: Path to config.json file
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Config: Loaded and validated configuration
    """
    data = _read_config_file(path)
    merged = _apply_environment_overrides({**DEFAULT_CONFIG, **data}, environ)

    names = _field_names()
    extra = {k: v for k, v in merged.items() if k not in names}
    if extra:
        logger.info(f"Found extra configuration keys: {list(extra.keys())}")

    try:
        cfg = Config(**{k: _typed(k, merged[k]) for k in names if k in merged}, extra=extra)
        _check_ranges(cfg)
        return cfg
    except (ConfigError, TypeError, ValueError) as e:
        logger.error(f"Invalid configuration in '{path}': {e}. Falling back to pure defaults.")
        return Config()


def save_config(cfg: Config, path: str = "config.json") -> None:
    """Save configuration to JSON file, logging (not raising) on failure."""
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(cfg.to_dict(), f, indent=2, ensure_ascii=False)
        logger.info(f"Configuration saved successfully to '{path}'")
    except OSError as e:
        logger.error(f"OS error saving configuration file '{path}': {e}")


__all__ = ["Config", "ValidationTolerances", "load_config", "save_config"]
