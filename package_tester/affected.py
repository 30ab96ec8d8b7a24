"""Find the packages affected by changes on the current branch."""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple

from .config import TesterOptions
from .errors import ConfigError
from .packages import Package, PackageCatalog

DEFAULT_BASE_REF = "origin/master"
OLD_VERSION_DIR = re.compile(r"v(\d+)")


class GitClient:
    """Client for git operations."""

    def __init__(self, cwd: Path) -> None:
        self.cwd = cwd

    def run(self, args: List[str], check: bool = True) -> str:
        """Run a git command and return stdout.

        Args:
            args: Git command arguments (without 'git' prefix).
            check: Whether to raise on non-zero exit code.

        Returns:
            Command stdout, stripped.

        Raises:
            subprocess.CalledProcessError: If ``check`` is set and git fails.
        """
        result = subprocess.run(
            ["git"] + args,
            cwd=self.cwd,
            capture_output=True,
            text=True,
            check=check,
        )
        return result.stdout.strip()

    def get_changed_files(self, base_ref: str, head_ref: str = "HEAD") -> List[str]:
        """Get the list of files changed on ``head_ref`` since it forked from ``base_ref``."""
        merge_base = self.run(["merge-base", base_ref, head_ref], check=False)
        if merge_base:
            diff_output = self.run(["diff", "--name-only", merge_base, head_ref])
        else:
            diff_output = self.run(["diff", "--name-only", f"{base_ref}...{head_ref}"])
        return [f for f in diff_output.split("\n") if f]


def changed_package_names(changed_files: List[str]) -> List[Tuple[str, Optional[int]]]:
    """Map changed paths under ``types/`` to (name, major) pairs.

    ``major`` is set for files under an older-version directory such as
    ``types/node/v6/``; it is ``None`` for the latest version.
    """
    changed = set()
    for file_path in changed_files:
        parts = Path(file_path).parts
        if len(parts) < 3 or parts[0] != "types":
            continue
        match = OLD_VERSION_DIR.fullmatch(parts[2]) if len(parts) >= 4 else None
        changed.add((parts[1], int(match.group(1)) if match else None))
    return sorted(changed, key=lambda c: (c[0], c[1] or 0))


def get_affected_packages(
    catalog: PackageCatalog,
    log: logging.Logger,
    options: TesterOptions,
    git_client: Optional[GitClient] = None,
    base_ref: str = DEFAULT_BASE_REF,
) -> List[Package]:
    """Return changed packages plus every package that depends on one of them.

    Args:
        catalog: All known packages.
        log: Logger for progress output.
        options: Run options locating the definitions checkout.
        git_client: Git client (defaults to one rooted at the checkout).
        base_ref: Branch the changes are compared against.

    Returns:
        Affected packages, sorted by name and description.

    Raises:
        ConfigError: If git is missing or the checkout cannot be diffed against ``base_ref``.
    """
    git = git_client or GitClient(options.definitely_typed_path)
    try:
        changed_files = git.get_changed_files(base_ref)
    except (subprocess.CalledProcessError, OSError) as e:
        raise ConfigError(
            f"Cannot list changed files in {options.definitely_typed_path} against {base_ref}: {e}"
        ) from e
    changed = []
    for name, major in changed_package_names(changed_files):
        package = catalog.get(name, major)
        if package is None:
            # Deleted packages have nothing left to test.
            log.info(f"Skipping {name}: not in the catalog")
            continue
        changed.append(package)
    log.info(f"Changed packages: {', '.join(p.desc for p in changed) or '(none)'}")
    return catalog.dependents_closure(changed)
