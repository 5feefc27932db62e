"""
Phase 4 Tests: Configuration Resolution

Tests for layered configuration including:
- Layer precedence and provenance
- Override parsing
- Interactive and non-interactive handling of required settings
- Validation of setting shapes
- Per-backend settings
"""

import json
from pathlib import Path

import pytest

from interlingua.config import (
    ConfigLayer,
    ConfigurationResolver,
    merge_layer,
    overrides_to_layer,
    parse_override,
    resolve_configuration,
    validate_configuration,
)
from interlingua.types import (
    ConfigurationError,
    ErrorCode,
    InvalidConfigurationError,
    MissingConfigurationError,
)


@pytest.fixture
def project(tmp_path):
    """A project directory with a configuration file."""
    config_dir = tmp_path / ".interlingua"
    config_dir.mkdir()
    (config_dir / "config.json").write_text(
        json.dumps(
            {
                "module_path": "geometry",
                "max_workers": 2,
                "backends": {
                    "pystub": {"destination": "stubs", "options": {"module_name": "geo"}},
                    "java": {"min_schema_version": 1, "timeout_seconds": 30},
                },
            }
        ),
        encoding="utf-8",
    )
    return tmp_path


class TestMerging:
    """Tests for merge_layer."""

    def test_mappings_merge_and_scalars_replace(self):
        base = {"a": {"x": 1, "y": 2}, "b": [1, 2]}
        merge_layer(base, {"a": {"y": 3}, "b": [9]}, ConfigLayer.PROJECT)
        assert base == {"a": {"x": 1, "y": 3}, "b": [9]}

    def test_provenance_tracks_leaves(self):
        provenance = {}
        base = merge_layer({}, {"a": {"x": 1, "y": 2}}, ConfigLayer.DEFAULTS, provenance)
        merge_layer(base, {"a": {"y": 3}}, ConfigLayer.OVERRIDES, provenance)
        assert provenance == {"a.x": ConfigLayer.DEFAULTS, "a.y": ConfigLayer.OVERRIDES}

    @pytest.mark.parametrize(
        "base, layer",
        [({"a": {"x": 1}}, {"a": 5}), ({"a": 5}, {"a": {"x": 1}})],
    )
    def test_mapping_scalar_conflict(self, base, layer):
        with pytest.raises(InvalidConfigurationError) as exc_info:
            merge_layer(base, layer, ConfigLayer.PROJECT)
        assert exc_info.value.context.setting == "a"

    def test_layer_not_mutated(self):
        layer = {"a": {"x": [1]}}
        base = merge_layer({}, layer, ConfigLayer.PROJECT)
        base["a"]["x"].append(2)
        assert layer == {"a": {"x": [1]}}


class TestOverrides:
    """Tests for key=value overrides."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("module_path=geometry", ("module_path", "geometry")),
            ("max_workers=8", ("max_workers", 8)),
            ("allow_install=true", ("allow_install", True)),
            ("ignore=[\"a\", \"b\"]", ("ignore", ["a", "b"])),
            ("backend_command=run {backend} --fast", ("backend_command", "run {backend} --fast")),
            ("backends.java.destination=out/java", ("backends.java.destination", "out/java")),
            ("module_path=", ("module_path", "")),
        ],
    )
    def test_parse(self, text, expected):
        assert parse_override(text) == expected

    @pytest.mark.parametrize("text", ["no_equals", "=value", "a..b=1", "a.=1"])
    def test_parse_rejects_malformed(self, text):
        with pytest.raises(InvalidConfigurationError):
            parse_override(text)

    def test_dotted_keys_nest(self):
        layer = overrides_to_layer(["backends.java.destination=out", "backends.java.timeout_seconds=5"])
        assert layer == {"backends": {"java": {"destination": "out", "timeout_seconds": 5}}}

    def test_conflicting_overrides(self):
        with pytest.raises(InvalidConfigurationError):
            overrides_to_layer(["backends=1", "backends.java.destination=out"])
        with pytest.raises(InvalidConfigurationError):
            overrides_to_layer(["backends.java.destination=out", "backends.java=1"])

    def test_mapping_form(self):
        assert overrides_to_layer({"a.b": 1}) == {"a": {"b": 1}}


class TestResolution:
    """Tests for ConfigurationResolver.resolve."""

    def test_defaults_and_project(self, project):
        config = ConfigurationResolver(project).resolve()
        assert config.module_path == "geometry"
        assert config.max_workers == 2
        assert config.timeout_seconds == 120.0
        assert config.allow_install is False
        assert config.source_of("module_path") is ConfigLayer.PROJECT
        assert config.source_of("timeout_seconds") is ConfigLayer.DEFAULTS

    def test_overrides_win(self, project):
        config = ConfigurationResolver(project, overrides=["max_workers=6", "module_path=other"]).resolve()
        assert config.max_workers == 6
        assert config.module_path == "other"
        assert config.source_of("max_workers") is ConfigLayer.OVERRIDES

    def test_missing_required_setting_non_interactive(self, tmp_path):
        with pytest.raises(MissingConfigurationError) as exc_info:
            ConfigurationResolver(tmp_path).resolve()
        assert exc_info.value.code == ErrorCode.MISSING_CONFIGURATION
        assert exc_info.value.context.setting == "module_path"

    def test_empty_value_counts_as_missing(self, tmp_path):
        with pytest.raises(MissingConfigurationError):
            ConfigurationResolver(tmp_path, overrides=["module_path="]).resolve()

    def test_prompter_supplies_missing_setting(self, tmp_path):
        asked = []

        def prompter(key):
            asked.append(key)
            return "  geometry  "

        config = ConfigurationResolver(tmp_path, prompter=prompter).resolve()
        assert asked == ["module_path"]
        assert config.module_path == "geometry"
        assert config.source_of("module_path") is ConfigLayer.INTERACTIVE

    def test_prompter_not_asked_when_supplied(self, project):
        def prompter(key):
            raise AssertionError(f"unexpected prompt for {key}")

        assert ConfigurationResolver(project, prompter=prompter).resolve().module_path == "geometry"

    def test_blank_answer_still_missing(self, tmp_path):
        with pytest.raises(MissingConfigurationError):
            ConfigurationResolver(tmp_path, prompter=lambda key: "").resolve()

    def test_explicit_config_file(self, tmp_path):
        path = tmp_path / "custom.json"
        path.write_text(json.dumps({"module_path": "custom"}), encoding="utf-8")
        config = resolve_configuration(tmp_path, config_file=path)
        assert config.module_path == "custom"

    def test_missing_explicit_config_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="does not exist"):
            resolve_configuration(tmp_path, config_file=tmp_path / "absent.json")

    @pytest.mark.parametrize("content", ["{broken", "[1, 2]"])
    def test_unreadable_project_file(self, tmp_path, content):
        config_dir = tmp_path / ".interlingua"
        config_dir.mkdir()
        (config_dir / "config.json").write_text(content, encoding="utf-8")
        with pytest.raises(InvalidConfigurationError):
            ConfigurationResolver(tmp_path).resolve()

    def test_to_dict_is_json(self, project):
        data = ConfigurationResolver(project).resolve().to_dict()
        json.dumps(data)
        assert data["provenance"]["module_path"] == "project"


class TestValidation:
    """Tests for setting shape validation."""

    @pytest.mark.parametrize(
        "values, setting",
        [
            ({"module_path": 3}, "module_path"),
            ({"ignore": "greet"}, "ignore"),
            ({"ignore": [1]}, "ignore"),
            ({"max_workers": "4"}, "max_workers"),
            ({"max_workers": True}, "max_workers"),
            ({"max_workers": 0}, "max_workers"),
            ({"timeout_seconds": -1}, "timeout_seconds"),
            ({"allow_install": "yes"}, "allow_install"),
            ({"backends": []}, "backends"),
            ({"backends": {"../evil": {}}}, "backends.../evil"),
            ({"backends": {"java": 3}}, "backends.java"),
            ({"backends": {"java": {"min_schema_version": "2"}}}, "backends.java.min_schema_version"),
            ({"backends": {"java": {"min_schema_version": 0}}}, "backends.java.min_schema_version"),
            ({"backends": {"pystub": {"timeout_seconds": 0}}}, "backends.pystub.timeout_seconds"),
            ({"backends": {"pystub": {"timeout_seconds": -1}}}, "backends.pystub.timeout_seconds"),
            ({"backends": {"java": {"options": {"nested": {"a": 1}}}}}, "backends.java.options.nested"),
        ],
    )
    def test_invalid_values(self, values, setting):
        with pytest.raises(InvalidConfigurationError) as exc_info:
            validate_configuration(values)
        assert exc_info.value.context.setting == setting

    def test_valid_values(self):
        validate_configuration(
            {
                "module_path": "geometry",
                "max_workers": 3,
                "timeout_seconds": 2,
                "allow_install": True,
                "backends": {"java": {"destination": "out", "options": {"package": "com.example"}}, "py": None},
            }
        )


class TestBackendSettings:
    """Tests for per-backend settings."""

    def test_configured_backend(self, project):
        config = ConfigurationResolver(project).resolve()
        pystub = config.backend("pystub")
        assert pystub.destination == project.resolve() / "stubs"
        assert pystub.options == {"module_name": "geo"}
        assert pystub.timeout_seconds == 120.0
        assert config.backend("java").timeout_seconds == 30.0
        assert sorted(config.backend_ids) == ["java", "pystub"]

    def test_unconfigured_backend_defaults(self, project):
        settings = ConfigurationResolver(project).resolve().backend("swift")
        assert settings.destination == project.resolve() / "generated" / "swift"
        assert settings.min_schema_version == 1

    def test_absolute_destination_kept(self, project, tmp_path):
        target = (tmp_path / "elsewhere").resolve()
        config = ConfigurationResolver(
            project, overrides={"backends.java.destination": str(target)}
        ).resolve()
        assert config.backend("java").destination == target

    def test_backend_dirs_relative_to_root(self, project):
        config = ConfigurationResolver(project).resolve()
        assert config.backend_dirs == [project.resolve() / ".interlingua" / "bin"]

    def test_get_dotted(self, project):
        config = ConfigurationResolver(project).resolve()
        assert config.get("backends.pystub.options.module_name") == "geo"
        assert config.get("backends.missing.destination", "fallback") == "fallback"
        assert isinstance(config.project_root, Path)
