"""
VESTLOCK Configuration System

Configuration management with YAML files, environment variables,
schema validation and runtime updates.

Configuration Sources (in order of precedence):
    1. Environment variables (VESTLOCK_*)
    2. Runtime overrides
    3. User config file (~/.vestlock/config.yaml)
    4. Project config file (./vestlock.yaml)
    5. Default values

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml
from jsonschema import Draft202012Validator

T = TypeVar("T")

OVERFLOW_FULL_VEST = "full_vest"
OVERFLOW_REJECT = "reject"
OVERFLOW_POLICIES = (OVERFLOW_FULL_VEST, OVERFLOW_REJECT)

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")

_TRUE_STRINGS = ("true", "1", "yes", "on")
_FALSE_STRINGS = ("false", "0", "no", "off")


def _lower(value: Any) -> Any:
    """Case-fold enum-like string settings."""
    return value.strip().lower() if isinstance(value, str) else value


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigValidationError(ConfigError):
    """Configuration validation error."""
    pass


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding,
    validation, and change callbacks.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    normalize: Optional[Callable[[Any], T]] = None
    _value: Optional[T] = field(default=None, repr=False)
    _callbacks: List[Callable[[T, T], None]] = field(default_factory=list, repr=False)

    def get(self) -> T:
        """
        Get the current value.

        An environment override is coerced, normalized and validated on
        every read; a bad one raises ``ConfigValidationError`` naming the
        variable.
        """
        if self.env_var and self.env_var in os.environ:
            raw = os.environ[self.env_var]
            value = self._normalized(self._coerce(raw))
            if self.validator and not self.validator(value):
                raise ConfigValidationError(f"Invalid value for {self.env_var}: {raw!r}")
            return value

        return self._value if self._value is not None else self.default

    def set(self, value: T) -> None:
        """Set the value with validation."""
        value = self._normalized(value)
        if self.validator and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for config: {value!r}")

        old_value = self.get()
        self._value = value

        for callback in self._callbacks:
            callback(old_value, value)

    def reset(self) -> None:
        """Drop any runtime override."""
        self._value = None

    def _normalized(self, value: Any) -> T:
        return self.normalize(value) if self.normalize else value

    def _coerce(self, raw: str) -> T:
        """Coerce an environment string to the type of the default."""
        target_type = type(self.default)

        if target_type == bool:
            text = raw.strip().lower()
            if text in _TRUE_STRINGS:
                return True  # type: ignore
            if text in _FALSE_STRINGS:
                return False  # type: ignore
            raise ConfigValidationError(f"Invalid boolean for {self.env_var}: {raw!r}")
        elif target_type == int:
            try:
                return int(raw)  # type: ignore
            except ValueError:
                raise ConfigValidationError(f"Invalid integer for {self.env_var}: {raw!r}") from None
        else:
            return raw  # type: ignore

    def on_change(self, callback: Callable[[T, T], None]) -> None:
        """Register a change callback."""
        self._callbacks.append(callback)


@dataclass
class ValidatorConfig:
    """Configuration for the transition validator."""
    overflow_policy: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default=OVERFLOW_FULL_VEST,
        env_var="VESTLOCK_OVERFLOW_POLICY",
        description="Vesting product overflow handling: full_vest or reject",
        validator=lambda x: x in OVERFLOW_POLICIES,
        normalize=_lower,
    ))
    strict_header_freshness: ConfigValue[bool] = field(default_factory=lambda: ConfigValue(
        default=False,
        env_var="VESTLOCK_STRICT_HEADER_FRESHNESS",
        description="Require trusted time strictly newer than the recorded high-water mark",
        validator=lambda x: isinstance(x, bool),
    ))


@dataclass
class ObservabilityConfig:
    """Configuration for logging."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var="VESTLOCK_LOG_LEVEL",
        description="Log level",
        validator=lambda x: x in LOG_LEVELS,
        normalize=_lower,
    ))
    structured_logs: ConfigValue[bool] = field(default_factory=lambda: ConfigValue(
        default=True,
        env_var="VESTLOCK_STRUCTURED_LOGS",
        description="Emit one JSON object per log line",
        validator=lambda x: isinstance(x, bool),
    ))


@dataclass
class VestlockConfig:
    """Complete VESTLOCK configuration."""
    validator: ValidatorConfig = field(default_factory=ValidatorConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                return obj.get()
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False)


# Shape of a configuration file; values are re-checked by each ConfigValue.
CONFIG_FILE_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "validator": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "overflow_policy": {"enum": list(OVERFLOW_POLICIES)},
                "strict_header_freshness": {"type": "boolean"},
            },
        },
        "observability": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "log_level": {"enum": list(LOG_LEVELS)},
                "structured_logs": {"type": "boolean"},
            },
        },
    },
}


def schema_errors(data: Any) -> List[str]:
    """Validate a configuration mapping against ``CONFIG_FILE_SCHEMA``."""
    validator = Draft202012Validator(CONFIG_FILE_SCHEMA)
    errors = []
    for err in sorted(validator.iter_errors(data), key=lambda e: list(e.path)):
        location = ".".join(str(p) for p in err.path) or "<root>"
        errors.append(f"{location}: {err.message}")
    return errors


class ConfigManager:
    """
    Configuration manager with file loading and environment binding.

    Thread-safe singleton that manages configuration lifecycle.

    Instance watchers see changes made through one manager. Listeners
    registered with ``subscribe`` are process-wide and also survive
    ``reset_instance``.
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()
    _listeners: List[Callable[[], None]] = []

    def __new__(cls) -> "ConfigManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config = VestlockConfig()
        self._config_paths: List[Path] = []
        self._watchers: List[Callable[[VestlockConfig], None]] = []
        self._initialized = True

    @classmethod
    def reset_instance(cls) -> None:
        """Discard the singleton so the next access starts from defaults."""
        with cls._lock:
            cls._instance = None
        # outside the lock: listeners read the fresh defaults
        for listener in list(cls._listeners):
            listener()

    @classmethod
    def subscribe(cls, listener: Callable[[], None]) -> None:
        """Register a process-wide listener called after every change."""
        if listener not in cls._listeners:
            cls._listeners.append(listener)

    @property
    def config(self) -> VestlockConfig:
        """Get the current configuration."""
        return self._config

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Load configuration from a YAML file."""
        path = Path(path)
        self._load_file(path)
        if path not in self._config_paths:
            self._config_paths.append(path)
        self._notify()
        _config_logger().info("Configuration file loaded", path=str(path))

    def _load_file(self, path: Path) -> None:
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data:
            self._apply_checked(data)

    def load_from_dict(self, data: Dict[str, Any]) -> None:
        """Validate and apply a configuration mapping."""
        self._apply_checked(data)
        self._notify()

    def _apply_checked(self, data: Dict[str, Any]) -> None:
        errors = schema_errors(data)
        if errors:
            _config_logger().warning(
                "Configuration rejected by schema",
                error_code="CONFIG_SCHEMA",
                errors=errors,
            )
            raise ConfigValidationError("; ".join(errors))
        self._apply_dict(data)

    def load_defaults(self) -> None:
        """Load default configuration files if they exist."""
        default_paths = [
            Path("vestlock.yaml"),
            Path("config/vestlock.yaml"),
            Path.home() / ".vestlock" / "config.yaml",
        ]

        for path in default_paths:
            if path.exists():
                self.load_from_file(path)

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        """Apply dictionary values to configuration."""
        def apply_to_config(config_obj: Any, values: Dict[str, Any]) -> None:
            for key, value in values.items():
                if hasattr(config_obj, key):
                    attr = getattr(config_obj, key)
                    if isinstance(attr, ConfigValue):
                        attr.set(value)
                    elif hasattr(attr, "__dataclass_fields__") and isinstance(value, dict):
                        apply_to_config(attr, value)

        apply_to_config(self._config, data)

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by path.

        Example: config.set("validator.overflow_policy", "reject")
        """
        attr = self._resolve(path)
        if not isinstance(attr, ConfigValue):
            raise ConfigError(f"Invalid config path: {path}")
        attr.set(value)
        self._notify()

    def get(self, path: str) -> Any:
        """
        Get a configuration value by path.

        Example: config.get("validator.strict_header_freshness")
        """
        obj = self._resolve(path)
        if isinstance(obj, ConfigValue):
            return obj.get()
        return obj

    def _resolve(self, path: str) -> Any:
        obj: Any = self._config
        for part in path.split("."):
            if not hasattr(obj, part):
                raise ConfigError(f"Invalid config path: {path}")
            obj = getattr(obj, part)
        return obj

    def watch(self, callback: Callable[[VestlockConfig], None]) -> None:
        """Register a callback for configuration changes."""
        self._watchers.append(callback)

    def reload(self) -> None:
        """Reload configuration from all loaded files."""
        for path in self._config_paths:
            if path.exists():
                self._load_file(path)

        self._notify()

    def _notify(self) -> None:
        for watcher in self._watchers:
            watcher(self._config)
        for listener in list(type(self)._listeners):
            listener()

    def validate(self) -> List[str]:
        """
        Validate all configuration values, including environment overrides.

        Returns list of validation errors.
        """
        errors: List[str] = []

        def validate_config(obj: Any, path: str = "") -> None:
            if isinstance(obj, ConfigValue):
                try:
                    value = obj.get()
                except ConfigError as e:
                    errors.append(f"{path}: {e}")
                    return
                if obj.validator and not obj.validator(value):
                    errors.append(f"{path}: validation failed for value {value!r}")
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    field_path = f"{path}.{field_name}" if path else field_name
                    validate_config(getattr(obj, field_name), field_path)

        validate_config(self._config)
        return errors


def get_config() -> VestlockConfig:
    """Get the current VESTLOCK configuration."""
    return ConfigManager().config


def get_config_manager() -> ConfigManager:
    """Get the configuration manager instance."""
    return ConfigManager()


_logger: Any = None


def _config_logger() -> Any:
    """Logger for the manager; created on first use since observability reads this module."""
    global _logger
    if _logger is None:
        from vestlock.observability import LogComponent, get_logger
        _logger = get_logger("manager", LogComponent.CONFIG)
    return _logger
