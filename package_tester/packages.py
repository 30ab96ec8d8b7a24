"""Package data model and the catalog of parsed definitions."""

from __future__ import annotations

import json
import logging
import re
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from collections.abc import Mapping
from typing import Dict, Iterable, List, Optional, Pattern

from .config import TesterConfig, TesterOptions
from .constants import DEFINITIONS_DATA_FILENAME, LATEST_VERSION
from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Package:
    """One independently-versioned definitions package.

    Attributes:
        name: Package identifier (the directory name under ``types/``).
        major: Major version of the library the definitions describe.
        compiler_version: Declared compiler version token, or ``"latest"``.
        files: Source files, relative to the package directory.
        test_files: Test files, relative to the package directory.
        has_package_json: Whether the package ships its own ``package.json``.
        has_lint_config: Whether the package ships its own ``tslint.json``.
        dependencies: Other packages this one references, mapped to the major
            version required (``None`` for the latest major).
        is_latest: Whether this is the newest major version of the package.
    """

    name: str
    major: int
    compiler_version: str = LATEST_VERSION
    files: tuple[str, ...] = ()
    test_files: tuple[str, ...] = ()
    has_package_json: bool = False
    has_lint_config: bool = False
    dependencies: Mapping[str, Optional[int]] = field(default_factory=dict, compare=False, hash=False)
    is_latest: bool = True

    @property
    def desc(self) -> str:
        return self.name if self.is_latest else f"{self.name} v{self.major}"

    @property
    def sort_key(self) -> tuple[str, str]:
        """Total order over packages: by name, ties broken by description."""
        return (self.name, self.desc)

    def directory_path(self, options: TesterOptions) -> Path:
        base = options.types_path / self.name
        return base if self.is_latest else base / f"v{self.major}"

    def file_path(self, filename: str, options: TesterOptions) -> Path:
        return self.directory_path(options) / filename

    @classmethod
    def from_record(cls, name: str, major: int, record: Mapping, is_latest: bool) -> "Package":
        """Build a package from one entry of the definitions data file.

        Raises:
            ConfigError: If the record is not a mapping or has badly typed fields.
        """
        if not isinstance(record, Mapping):
            raise ConfigError(f"Definition for '{name}' v{major} must be an object")

        raw_dependencies = record.get("dependencies", {})
        if not isinstance(raw_dependencies, Mapping):
            raise ConfigError(f"'dependencies' for '{name}' v{major} must be an object")
        dependencies: Dict[str, Optional[int]] = {}
        for dep_name, dep_major in raw_dependencies.items():
            if dep_major in (None, "*"):
                dependencies[dep_name] = None
                continue
            try:
                dependencies[dep_name] = int(dep_major)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid major version for dependency '{dep_name}' of '{name}' v{major}") from e

        files = record.get("files", [])
        test_files = record.get("testFiles", [])
        for key, value in (("files", files), ("testFiles", test_files)):
            if not isinstance(value, list) or not all(isinstance(x, str) for x in value):
                raise ConfigError(f"'{key}' for '{name}' v{major} must be a list of strings")

        return cls(
            name=name,
            major=major,
            compiler_version=str(record.get("typeScriptVersion", LATEST_VERSION)),
            files=tuple(files),
            test_files=tuple(test_files),
            has_package_json=bool(record.get("hasPackageJson", False)),
            has_lint_config=bool(record.get("hasLintConfig", False)),
            dependencies=dependencies,
            is_latest=is_latest,
        )


def sort_packages(packages: Iterable[Package]) -> List[Package]:
    return sorted(packages, key=lambda p: p.sort_key)


class PackageCatalog:
    """All known packages, indexed by name and major version."""

    def __init__(self, packages: Iterable[Package]) -> None:
        self._by_name: Dict[str, Dict[int, Package]] = {}
        for package in packages:
            self._by_name.setdefault(package.name, {})[package.major] = package

    @classmethod
    def read(cls, options: TesterOptions, config: Optional[TesterConfig] = None) -> "PackageCatalog":
        """Load the catalog from the parsed definitions data file.

        The file maps each package name to an object keyed by major version.
        The highest major of each package is treated as its latest version.

        Args:
            options: Run options locating the data directory.
            config: When given, every declared compiler version is checked
                against the supported versions.

        Returns:
            The loaded catalog.

        Raises:
            ConfigError: If the data file is missing or malformed.
        """
        data_path = options.data_dir / DEFINITIONS_DATA_FILENAME
        try:
            with open(data_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ConfigError(f"Definitions data file not found: {data_path}. Run the parser first.") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {data_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Definitions data must be a JSON object: {data_path}")

        packages: List[Package] = []
        for name, versions in data.items():
            if not isinstance(versions, dict) or not versions:
                raise ConfigError(f"Definitions for '{name}' must be a non-empty object keyed by major version")
            try:
                majors = {int(major): record for major, record in versions.items()}
            except ValueError as e:
                raise ConfigError(f"Invalid major version for '{name}': {e}") from e
            latest_major = max(majors)
            for major, record in majors.items():
                package = Package.from_record(name, major, record, is_latest=major == latest_major)
                if config is not None:
                    config.resolve_version(package.compiler_version)
                packages.append(package)

        logger.debug(f"Loaded {len(packages)} packages from {data_path}")
        return cls(packages)

    def all_typings(self) -> List[Package]:
        return sort_packages(p for versions in self._by_name.values() for p in versions.values())

    def get(self, name: str, major: Optional[int] = None) -> Optional[Package]:
        """Look up a package; ``major=None`` returns its latest version."""
        versions = self._by_name.get(name)
        if not versions:
            return None
        if major is None:
            return versions[max(versions)]
        return versions.get(major)

    def filter_by_pattern(self, pattern: Pattern[str]) -> List[Package]:
        return [p for p in self.all_typings() if pattern.search(p.name)]

    def dependencies_of(self, package: Package) -> List[Package]:
        """Resolve a package's direct dependencies that are themselves in the catalog.

        Names that do not resolve are external npm packages and are skipped.
        """
        resolved = []
        for name, major in package.dependencies.items():
            dependency = self.get(name, major)
            if dependency is not None:
                resolved.append(dependency)
        return resolved

    def all_dependencies(self, packages: Iterable[Package]) -> List[Package]:
        """Return the packages plus their transitive dependency closure, sorted."""
        seen: Dict[tuple[str, int], Package] = {}
        queue = deque(packages)
        while queue:
            package = queue.popleft()
            key = (package.name, package.major)
            if key in seen:
                continue
            seen[key] = package
            queue.extend(self.dependencies_of(package))
        return sort_packages(seen.values())

    def dependents_closure(self, packages: Iterable[Package]) -> List[Package]:
        """Return the packages plus every package that transitively depends on one of them."""
        dependents: Dict[tuple[str, int], List[Package]] = {}
        for candidate in self.all_typings():
            for dependency in self.dependencies_of(candidate):
                dependents.setdefault((dependency.name, dependency.major), []).append(candidate)

        seen: Dict[tuple[str, int], Package] = {}
        queue = deque(packages)
        while queue:
            package = queue.popleft()
            key = (package.name, package.major)
            if key in seen:
                continue
            seen[key] = package
            queue.extend(dependents.get(key, []))
        return sort_packages(seen.values())
