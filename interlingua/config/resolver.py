"""Layered configuration resolution.

Layers, by increasing priority:

    defaults < project file < interactive answers < explicit overrides

Mappings merge key-wise, scalars and lists replace, and a mapping meeting a
scalar is an InvalidConfigurationError. Interactive answers are only asked
for required settings that no other layer supplies, and only when a
prompter is available; otherwise a missing required setting raises
MissingConfigurationError before any extraction starts.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from interlingua.constants import (
    CONFIG_DIR_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_CONFIG,
    REQUIRED_SETTINGS,
)
from interlingua.types.errors import (
    ConfigurationError,
    InvalidConfigurationError,
    MissingConfigurationError,
)
from interlingua.utils.logger import logger
from interlingua.utils.security import is_safe_backend_id
from interlingua.utils.serialization import is_scalar, serialize_to_primitives

# Asked for a required setting; returns the answer or an empty string.
Prompter = Callable[[str], str]


class ConfigLayer(StrEnum):
    DEFAULTS = "defaults"
    PROJECT = "project"
    INTERACTIVE = "interactive"
    OVERRIDES = "overrides"


# ============================================================================
# Merging
# ============================================================================


def _record_leaves(
    value: Any, key: str, layer: ConfigLayer, provenance: dict[str, ConfigLayer]
) -> None:
    if isinstance(value, dict) and value:
        for sub_key, sub_value in value.items():
            _record_leaves(sub_value, f"{key}.{sub_key}", layer, provenance)
    else:
        provenance[key] = layer


def merge_layer(
    base: dict[str, Any],
    layer: Mapping[str, Any],
    layer_name: ConfigLayer,
    provenance: dict[str, ConfigLayer] | None = None,
    prefix: str = "",
) -> dict[str, Any]:
    """Merge ``layer`` into ``base`` in place and return ``base``.

    Raises:
        InvalidConfigurationError: If a mapping and a scalar meet at one key
    """
    provenance = provenance if provenance is not None else {}
    for key, value in layer.items():
        dotted = f"{prefix}{key}"
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merge_layer(current, value, layer_name, provenance, prefix=f"{dotted}.")
            continue
        if (isinstance(current, dict) and value is not None) or (
            isinstance(value, dict) and current is not None
        ):
            raise InvalidConfigurationError(
                f"setting '{dotted}' is a mapping in one layer and a scalar in "
                f"another ({layer_name} layer)",
                setting=dotted,
            )
        base[key] = copy.deepcopy(value)
        for stale in [k for k in provenance if k.startswith(f"{dotted}.")]:
            del provenance[stale]
        _record_leaves(value, dotted, layer_name, provenance)
    return base


def parse_override(text: str) -> tuple[str, Any]:
    """Parse ``key=value``; the value is read as JSON, falling back to a string."""
    key, sep, raw = text.partition("=")
    key = key.strip()
    if not sep or not key or any(not part for part in key.split(".")):
        raise InvalidConfigurationError(
            f"override '{text}' must have the form key=value", setting=key or None
        )
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    return key, value


def overrides_to_layer(overrides: Mapping[str, Any] | Iterable[str]) -> dict[str, Any]:
    """Turn dotted overrides into a nested mapping."""
    if isinstance(overrides, Mapping):
        pairs = list(overrides.items())
    else:
        pairs = [parse_override(text) for text in overrides]

    layer: dict[str, Any] = {}
    for key, value in pairs:
        *parents, leaf = key.split(".")
        node = layer
        for depth, part in enumerate(parents):
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                raise InvalidConfigurationError(
                    f"override '{key}' conflicts with scalar override "
                    f"'{'.'.join(parents[: depth + 1])}'",
                    setting=key,
                )
            node = child
        if isinstance(node.get(leaf), dict):
            raise InvalidConfigurationError(
                f"override '{key}' conflicts with nested overrides below it", setting=key
            )
        node[leaf] = value
    return layer


def _lookup(values: Mapping[str, Any], dotted: str) -> Any:
    node: Any = values
    for part in dotted.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node


def _is_missing(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


# ============================================================================
# Effective configuration
# ============================================================================


@dataclass(frozen=True)
class BackendSettings:
    """Resolved settings of one requested backend."""

    backend_id: str
    destination: Path
    min_schema_version: int = 1
    timeout_seconds: float | None = None
    options: dict[str, Any] = field(default_factory=dict)


@dataclass
class EffectiveConfiguration:
    """The merged configuration with the layer each leaf came from."""

    values: dict[str, Any]
    provenance: dict[str, ConfigLayer]
    project_root: Path

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key."""
        value = _lookup(self.values, key)
        return default if value is None else value

    def source_of(self, key: str) -> ConfigLayer | None:
        return self.provenance.get(key)

    @property
    def module_path(self) -> str:
        return self.values["module_path"]

    @property
    def ignore(self) -> list[str]:
        return list(self.values.get("ignore") or [])

    @property
    def backend_command(self) -> str | None:
        return self.values.get("backend_command")

    @property
    def backend_dirs(self) -> list[Path]:
        return [self.project_root / d for d in self.values.get("backend_dirs") or []]

    @property
    def allow_install(self) -> bool:
        return bool(self.values.get("allow_install"))

    @property
    def max_workers(self) -> int:
        return int(self.values["max_workers"])

    @property
    def timeout_seconds(self) -> float:
        return float(self.values["timeout_seconds"])

    @property
    def backend_ids(self) -> list[str]:
        return list(self.values.get("backends") or {})

    def backend(self, backend_id: str) -> BackendSettings:
        """Settings for one backend; unconfigured backends get defaults."""
        raw = (self.values.get("backends") or {}).get(backend_id) or {}
        destination = Path(raw.get("destination") or f"generated/{backend_id}")
        if not destination.is_absolute():
            destination = self.project_root / destination
        timeout = raw.get("timeout_seconds")
        return BackendSettings(
            backend_id=backend_id,
            destination=destination,
            min_schema_version=int(raw.get("min_schema_version", 1)),
            timeout_seconds=float(timeout) if timeout is not None else self.timeout_seconds,
            options=dict(raw.get("options") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_root": str(self.project_root),
            "values": serialize_to_primitives(self.values),
            "provenance": {k: str(v) for k, v in sorted(self.provenance.items())},
        }


# ============================================================================
# Resolver
# ============================================================================


def _require_type(values: Mapping[str, Any], key: str, expected: type | tuple[type, ...], label: str) -> None:
    value = _lookup(values, key)
    if value is None:
        return
    allowed = expected if isinstance(expected, tuple) else (expected,)
    # bool is an int subclass; only accept it where a flag is expected
    if not isinstance(value, allowed) or (isinstance(value, bool) and bool not in allowed):
        raise InvalidConfigurationError(f"setting '{key}' must be {label}", setting=key)


def validate_configuration(values: Mapping[str, Any]) -> None:
    """Check the shape of every known setting.

    Raises:
        InvalidConfigurationError: On the first setting with a wrong shape
    """
    _require_type(values, "module_path", str, "a string")
    _require_type(values, "ignore", list, "a list of names")
    if any(not isinstance(n, str) for n in values.get("ignore") or []):
        raise InvalidConfigurationError("setting 'ignore' must be a list of names", setting="ignore")
    _require_type(values, "backend_command", str, "a command template string")
    _require_type(values, "backend_dirs", list, "a list of directories")
    _require_type(values, "allow_install", bool, "true or false")
    _require_type(values, "max_workers", int, "an integer")
    _require_type(values, "timeout_seconds", (int, float), "a number of seconds")
    _require_type(values, "backends", dict, "a mapping of backend identifiers")

    if values.get("max_workers") is not None and values["max_workers"] < 1:
        raise InvalidConfigurationError("setting 'max_workers' must be at least 1", setting="max_workers")
    if values.get("timeout_seconds") is not None and values["timeout_seconds"] <= 0:
        raise InvalidConfigurationError("setting 'timeout_seconds' must be positive", setting="timeout_seconds")

    for backend_id, settings in (values.get("backends") or {}).items():
        prefix = f"backends.{backend_id}"
        if not is_safe_backend_id(backend_id):
            raise InvalidConfigurationError(f"backend identifier '{backend_id}' is not valid", setting=prefix)
        if settings is None:
            continue
        if not isinstance(settings, dict):
            raise InvalidConfigurationError(f"setting '{prefix}' must be a mapping", setting=prefix)
        _require_type(values, f"{prefix}.destination", str, "a path")
        _require_type(values, f"{prefix}.min_schema_version", int, "an integer")
        _require_type(values, f"{prefix}.timeout_seconds", (int, float), "a number of seconds")
        _require_type(values, f"{prefix}.options", dict, "a mapping")
        timeout = settings.get("timeout_seconds")
        if timeout is not None and timeout <= 0:
            raise InvalidConfigurationError(
                f"setting '{prefix}.timeout_seconds' must be positive", setting=f"{prefix}.timeout_seconds"
            )
        min_version = settings.get("min_schema_version")
        if min_version is not None and min_version < 1:
            raise InvalidConfigurationError(
                f"setting '{prefix}.min_schema_version' must be at least 1",
                setting=f"{prefix}.min_schema_version",
            )
        for option, value in (settings.get("options") or {}).items():
            if not is_scalar(value):
                raise InvalidConfigurationError(
                    f"backend option '{prefix}.options.{option}' must be a scalar",
                    setting=f"{prefix}.options.{option}",
                )


class ConfigurationResolver:
    """Merges configuration layers into an EffectiveConfiguration.

    Args:
        project_root: Directory the project file and relative paths are resolved from
        config_file: Explicit project file (instead of .interlingua/config.json)
        overrides: ``key=value`` strings or a mapping of dotted keys
        prompter: Asked for missing required settings; None means non-interactive
        defaults: Replacement for the built-in defaults layer
    """

    def __init__(
        self,
        project_root: str | Path = ".",
        config_file: str | Path | None = None,
        overrides: Mapping[str, Any] | Iterable[str] = (),
        prompter: Prompter | None = None,
        defaults: Mapping[str, Any] | None = None,
    ) -> None:
        self.project_root = Path(project_root).resolve()
        self.config_file = Path(config_file) if config_file else None
        self.overrides = overrides
        self.prompter = prompter
        self.defaults = dict(defaults) if defaults is not None else copy.deepcopy(DEFAULT_CONFIG)

    @property
    def interactive(self) -> bool:
        return self.prompter is not None

    @property
    def project_file(self) -> Path:
        if self.config_file is not None:
            return self.config_file
        return self.project_root / CONFIG_DIR_NAME / CONFIG_FILE_NAME

    def load_project_layer(self) -> dict[str, Any]:
        """Read the project file; a missing default file is an empty layer."""
        path = self.project_file
        if not path.exists():
            if self.config_file is not None:
                raise ConfigurationError(
                    f"configuration file '{path}' does not exist",
                    user_message="Configuration file not found.",
                )
            logger.debug(f"No project configuration at {path}")
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidConfigurationError(
                f"cannot read configuration file '{path}': {e}", original_error=e
            ) from e
        if not isinstance(data, dict):
            raise InvalidConfigurationError(f"configuration file '{path}' must contain a JSON object")
        logger.debug(f"Loaded project configuration from {path}")
        return data

    def _ask(self, missing: list[str]) -> dict[str, Any]:
        answers: dict[str, Any] = {}
        for key in missing:
            answer = self.prompter(key).strip() if self.prompter else ""
            if answer:
                answers[key] = answer
        return overrides_to_layer(answers)

    def resolve(self) -> EffectiveConfiguration:
        """Merge all layers.

        Raises:
            MissingConfigurationError: If a required setting is absent in a non-interactive context
            InvalidConfigurationError: If layers conflict or a setting has the wrong shape
        """
        project = self.load_project_layer()
        overrides = overrides_to_layer(self.overrides)

        # Required settings not supplied by any non-interactive layer
        preview = merge_layer(copy.deepcopy(self.defaults), project, ConfigLayer.PROJECT)
        preview = merge_layer(preview, overrides, ConfigLayer.OVERRIDES)
        missing = [key for key in REQUIRED_SETTINGS if _is_missing(_lookup(preview, key))]

        interactive: dict[str, Any] = {}
        if missing and self.interactive:
            interactive = self._ask(missing)

        provenance: dict[str, ConfigLayer] = {}
        values = merge_layer({}, self.defaults, ConfigLayer.DEFAULTS, provenance)
        merge_layer(values, project, ConfigLayer.PROJECT, provenance)
        merge_layer(values, interactive, ConfigLayer.INTERACTIVE, provenance)
        merge_layer(values, overrides, ConfigLayer.OVERRIDES, provenance)

        for key in REQUIRED_SETTINGS:
            if _is_missing(_lookup(values, key)):
                raise MissingConfigurationError(key)

        validate_configuration(values)
        return EffectiveConfiguration(values, provenance, self.project_root)


def resolve_configuration(
    project_root: str | Path = ".",
    overrides: Mapping[str, Any] | Iterable[str] = (),
    prompter: Prompter | None = None,
    config_file: str | Path | None = None,
) -> EffectiveConfiguration:
    """Convenience wrapper around ConfigurationResolver.resolve."""
    return ConfigurationResolver(
        project_root, config_file=config_file, overrides=overrides, prompter=prompter
    ).resolve()
