"""Tests for run options and the YAML tester configuration."""

from pathlib import Path

import pytest
import yaml

from ..config import (
    DEFAULT_CONFIG_PATH,
    TesterConfig,
    TesterOptions,
    get_config,
    get_repo_root,
    load_tester_config,
    parse_version,
    set_config,
)
from ..errors import ConfigError


def write_config(tmp_path: Path, data) -> Path:
    path = tmp_path / "tester_config.yaml"
    path.write_text(yaml.dump(data))
    return path


class TestLoadTesterConfig:
    """Tests for load_tester_config."""

    def test_bundled_config_loads(self):
        """The configuration shipped with the package is valid."""
        config = load_tester_config(DEFAULT_CONFIG_PATH)

        assert config.latest_version == "2.3"
        assert config.allowed_package_json_fields == ("dependencies", "peerDependencies", "description")
        assert config.lint_script.is_absolute()

    def test_full_config(self, tmp_path):
        """Every key is read from the file."""
        path = write_config(
            tmp_path,
            {
                "supported_versions": ["2.1", "2.0", "2.10"],
                "allowed_package_json_fields": ["dependencies", "license"],
                "benign_npm_warnings": ["npm WARN deprecated .*\\n?"],
                "install_root": str(tmp_path / "ts"),
                "lint_script": "/usr/lib/tslint-cli.js",
            },
        )

        config = load_tester_config(path)

        assert config.supported_versions == ("2.0", "2.1", "2.10")
        assert config.latest_version == "2.10"
        assert config.allowed_package_json_fields == ("dependencies", "license")
        assert config.benign_npm_warnings[0].pattern == "npm WARN deprecated .*\\n?"
        assert config.install_root == tmp_path / "ts"
        assert config.lint_script == Path("/usr/lib/tslint-cli.js")

    def test_empty_file_uses_defaults(self, tmp_path):
        """An empty YAML file yields the default configuration."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        config = load_tester_config(path)

        assert config.supported_versions == TesterConfig().supported_versions

    def test_missing_file(self, tmp_path):
        """A missing configuration file is a configuration error."""
        with pytest.raises(ConfigError, match="not found"):
            load_tester_config(tmp_path / "nope.yaml")

    @pytest.mark.parametrize(
        "data,message",
        [
            (["not", "a", "mapping"], "YAML mapping"),
            ({"supported_versions": "2.0"}, "supported_versions"),
            ({"supported_versions": ["two"]}, "Invalid compiler version"),
            ({"supported_versions": []}, "at least one"),
            ({"allowed_package_json_fields": [1, 2]}, "allowed_package_json_fields"),
            ({"benign_npm_warnings": ["("]}, "Invalid regex"),
        ],
    )
    def test_malformed_config(self, tmp_path, data, message):
        """Badly typed or invalid values are rejected with a helpful message."""
        with pytest.raises(ConfigError, match=message):
            load_tester_config(write_config(tmp_path, data))

    def test_invalid_yaml(self, tmp_path):
        """Unparseable YAML is a configuration error."""
        path = tmp_path / "bad.yaml"
        path.write_text("supported_versions: [2.0\n")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_tester_config(path)


class TestTesterConfig:
    """Tests for version resolution."""

    def test_versions_sorted_semantically(self):
        """2.10 sorts after 2.9."""
        config = TesterConfig(supported_versions=("2.10", "2.9", "2.0"))
        assert config.supported_versions == ("2.0", "2.9", "2.10")

    def test_resolve_latest(self, config):
        """The sentinel resolves to the newest supported version."""
        assert config.resolve_version("latest") == "2.3"
        assert config.resolve_version("2.1") == "2.1"

    def test_resolve_unsupported(self, config):
        """Unknown versions are rejected."""
        with pytest.raises(ConfigError, match="Unsupported compiler version"):
            config.resolve_version("1.8")

    @pytest.mark.parametrize("token,expected", [("latest", True), ("2.3", True), ("2.2", False), ("2.0", False)])
    def test_is_latest(self, config, token, expected):
        """Both the sentinel and the newest version count as latest."""
        assert config.is_latest(token) is expected

    def test_parse_version_accepts_major_minor(self):
        """Two-part versions are valid."""
        assert parse_version("2.1").minor == 1

    def test_default_warning_pattern_strips_npm_advisories(self):
        """The default advisory pattern matches npm's missing-field warnings."""
        pattern = TesterConfig().benign_npm_warnings[0]
        text = "npm WARN foo No description\nnpm WARN foo No license field.\nadded 1 package"
        assert pattern.sub("", text) == "added 1 package"


class TestConfigAccessors:
    """Tests for get_config and set_config."""

    def test_get_config_loads_bundled_defaults(self):
        """The first access loads the bundled YAML."""
        assert get_config().latest_version == load_tester_config(DEFAULT_CONFIG_PATH).latest_version

    def test_set_config_overrides(self):
        """An explicitly set configuration is returned as is."""
        custom = TesterConfig(supported_versions=("3.0",))
        set_config(custom)
        assert get_config() is custom


class TestTesterOptions:
    """Tests for TesterOptions."""

    def test_defaults_point_at_snapshot(self):
        """The default checkout sits next to the repository."""
        options = TesterOptions.defaults()
        assert options.definitely_typed_path == (get_repo_root().parent / "DefinitelyTyped").resolve()
        assert options.types_path == options.definitely_typed_path / "types"
        assert options.progress

    def test_from_cwd(self, tmp_path):
        """Live runs use the given directory as the checkout."""
        options = TesterOptions.from_cwd(tmp_path)
        assert options.definitely_typed_path == tmp_path
        assert not options.progress

    def test_repo_root_contains_package(self):
        """The repository root holds the package directory."""
        assert (get_repo_root() / "package_tester" / "config.py").is_file()
