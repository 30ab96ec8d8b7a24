"""Run options and YAML-backed tester configuration."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

import yaml
from semver import Version

from .constants import (
    DEFAULT_ALLOWED_PACKAGE_JSON_FIELDS,
    DEFAULT_BENIGN_NPM_WARNINGS,
    LATEST_VERSION,
)
from .errors import ConfigError

DEFAULT_CONFIG_PATH = Path(__file__).parent / "tester_config.yaml"
DEFAULT_SUPPORTED_VERSIONS = ("2.0", "2.1", "2.2", "2.3")
DEFAULT_INSTALL_ROOT = Path.home() / ".package-tester" / "typescript-installs"


def get_repo_root() -> Path:
    """Get the repository root directory."""
    return Path(__file__).resolve().parents[1]


DEFAULT_LINT_SCRIPT = get_repo_root() / "node_modules" / "tslint" / "lib" / "tslint-cli.js"


def parse_version(token: str) -> Version:
    """Parse a ``major.minor`` compiler version token.

    Raises:
        ConfigError: If the token is not a valid version.
    """
    try:
        return Version.parse(token, optional_minor_and_patch=True)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid compiler version {token!r}: {e}") from e


@dataclass(frozen=True)
class TesterOptions:
    """Where the definitions live and how chatty the run is.

    Attributes:
        definitely_typed_path: Root of the definitions checkout.
        data_dir: Directory holding the parsed definitions data file.
        progress: Whether to log progress lines.
    """

    definitely_typed_path: Path
    data_dir: Path
    progress: bool = True

    @property
    def types_path(self) -> Path:
        return self.definitely_typed_path / "types"

    @classmethod
    def defaults(cls) -> "TesterOptions":
        """Options for the snapshot checkout next to this repository."""
        repo_root = get_repo_root()
        return cls(
            definitely_typed_path=(repo_root.parent / "DefinitelyTyped").resolve(),
            data_dir=repo_root / "data",
        )

    @classmethod
    def from_cwd(cls, cwd: Path) -> "TesterOptions":
        """Options for a live run inside a definitions checkout."""
        return cls(definitely_typed_path=cwd, data_dir=get_repo_root() / "data", progress=False)


@dataclass
class TesterConfig:
    """Settings that drive the install and validation phases."""

    supported_versions: tuple[str, ...] = DEFAULT_SUPPORTED_VERSIONS
    allowed_package_json_fields: tuple[str, ...] = tuple(DEFAULT_ALLOWED_PACKAGE_JSON_FIELDS)
    benign_npm_warnings: tuple[re.Pattern[str], ...] = field(
        default_factory=lambda: tuple(re.compile(p) for p in DEFAULT_BENIGN_NPM_WARNINGS)
    )
    install_root: Path = DEFAULT_INSTALL_ROOT
    lint_script: Path = DEFAULT_LINT_SCRIPT

    def __post_init__(self) -> None:
        if not self.supported_versions:
            raise ConfigError("'supported_versions' must list at least one compiler version")
        self.supported_versions = tuple(sorted(self.supported_versions, key=parse_version))

    @property
    def latest_version(self) -> str:
        return self.supported_versions[-1]

    def resolve_version(self, token: str) -> str:
        """Map a declared version token to a concrete supported version.

        Raises:
            ConfigError: If the token is neither ``latest`` nor a supported version.
        """
        if token == LATEST_VERSION:
            return self.latest_version
        if token not in self.supported_versions:
            raise ConfigError(
                f"Unsupported compiler version {token!r}. Expected one of: {list(self.supported_versions)}."
            )
        return token

    def is_latest(self, token: str) -> bool:
        """Return True when the token already names the newest supported version."""
        return token == LATEST_VERSION or token == self.latest_version


def _string_list(data: dict, key: str, path: Path, default: Sequence[str]) -> list[str]:
    value = data.get(key, list(default))
    if not isinstance(value, list) or not all(isinstance(x, str) for x in value):
        raise ConfigError(f"'{key}' must be a list of strings: {path}")
    return value


def load_tester_config(path: Path) -> TesterConfig:
    """Load and parse the tester configuration from a YAML file.

    Args:
        path: Path to the configuration YAML file.

    Returns:
        Parsed tester configuration. Keys missing from the file keep their defaults.

    Raises:
        ConfigError: If the file is missing, malformed, or contains invalid values.
    """
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration must be a YAML mapping: {path}")

    versions = _string_list(data, "supported_versions", path, DEFAULT_SUPPORTED_VERSIONS)
    for version in versions:
        parse_version(version)
    allowed_fields = _string_list(data, "allowed_package_json_fields", path, DEFAULT_ALLOWED_PACKAGE_JSON_FIELDS)
    warning_patterns = _string_list(data, "benign_npm_warnings", path, DEFAULT_BENIGN_NPM_WARNINGS)
    try:
        warnings = tuple(re.compile(p) for p in warning_patterns)
    except re.error as e:
        raise ConfigError(f"Invalid regex in {path}: {e}") from e

    install_root = data.get("install_root")
    lint_script = data.get("lint_script")
    return TesterConfig(
        supported_versions=tuple(versions),
        allowed_package_json_fields=tuple(allowed_fields),
        benign_npm_warnings=warnings,
        install_root=Path(install_root).expanduser() if install_root else DEFAULT_INSTALL_ROOT,
        lint_script=(get_repo_root() / Path(lint_script).expanduser()) if lint_script else DEFAULT_LINT_SCRIPT,
    )


_config: Optional[TesterConfig] = None


def get_config() -> TesterConfig:
    """Get the current tester configuration, loading the bundled defaults on first use."""
    global _config
    if _config is None:
        _config = load_tester_config(DEFAULT_CONFIG_PATH)
    return _config


def set_config(config: Optional[TesterConfig]) -> None:
    """Set the tester configuration (``None`` reloads the defaults on next access)."""
    global _config
    _config = config
