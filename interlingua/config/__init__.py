"""Configuration resolution (defaults < project < interactive < overrides)."""

from interlingua.config.resolver import (
    BackendSettings,
    ConfigLayer,
    ConfigurationResolver,
    EffectiveConfiguration,
    Prompter,
    merge_layer,
    overrides_to_layer,
    parse_override,
    resolve_configuration,
    validate_configuration,
)

__all__ = [
    "BackendSettings",
    "ConfigLayer",
    "ConfigurationResolver",
    "EffectiveConfiguration",
    "Prompter",
    "merge_layer",
    "overrides_to_layer",
    "parse_override",
    "resolve_configuration",
    "validate_configuration",
]
