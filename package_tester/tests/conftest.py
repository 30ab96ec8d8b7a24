"""Shared pytest fixtures for package_tester tests."""

import json
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import pytest

from ..config import TesterConfig, TesterOptions, set_config
from ..errors import CommandError
from ..installer import CompilerInstaller
from ..io_utils import ExecResult
from ..packages import Package

VALID_TSCONFIG = {
    "compilerOptions": {
        "module": "commonjs",
        "lib": ["es6"],
        "noImplicitAny": True,
        "noImplicitThis": True,
        "strictNullChecks": True,
        "types": [],
        "noEmit": True,
        "forceConsistentCasingInFileNames": True,
    },
    "files": ["index.d.ts", "foo-tests.ts"],
}


def ok(stdout: str = "", stderr: str = "") -> ExecResult:
    return ExecResult(error=None, stdout=stdout, stderr=stderr)


def failed(command: str, stdout: str = "", stderr: str = "", returncode: int = 2) -> ExecResult:
    return ExecResult(error=CommandError(command, returncode, stdout, stderr), stdout=stdout, stderr=stderr)


class FakeExec:
    """Stands in for io_utils.exec_command and records every call."""

    def __init__(self, responder: Optional[Callable[[str, Optional[Path]], ExecResult]] = None):
        self.calls: List[Tuple[str, Optional[Path]]] = []
        self.responder = responder or (lambda command, cwd: ok())

    async def __call__(self, command, cwd=None):
        cwd = Path(cwd) if cwd is not None else None
        self.calls.append((command, cwd))
        return self.responder(command, cwd)

    @property
    def commands(self) -> List[str]:
        return [command for command, _ in self.calls]


def compiler_responder(failing: dict) -> Callable[[str, Optional[Path]], ExecResult]:
    """Build a responder failing tsc runs for some (package dir name, version) pairs.

    Args:
        failing: Maps a package directory name to the set of versions that fail
            to compile there. The error text names the version.
    """

    def respond(command: str, cwd: Optional[Path]) -> ExecResult:
        if "tsc.js" not in command or cwd is None:
            return ok()
        for version in failing.get(cwd.name, ()):
            if f"/{version}/" in command:
                return failed(command, stdout=f"index.d.ts(1,1): error under {version}")
        return ok()

    return respond


def write_package(
    options: TesterOptions,
    name: str,
    tsconfig: Optional[dict] = None,
    package_json: Optional[dict] = None,
    tslint: bool = False,
) -> Path:
    """Create a package directory under the definitions root."""
    pkg_dir = options.types_path / name
    pkg_dir.mkdir(parents=True, exist_ok=True)
    (pkg_dir / "tsconfig.json").write_text(json.dumps(VALID_TSCONFIG if tsconfig is None else tsconfig))
    (pkg_dir / "index.d.ts").write_text("export declare function foo(): void;\n")
    (pkg_dir / f"{name}-tests.ts").write_text("import { foo } from 'foo';\nfoo();\n")
    if package_json is not None:
        (pkg_dir / "package.json").write_text(json.dumps(package_json))
    if tslint:
        (pkg_dir / "tslint.json").write_text('{ "extends": "dtslint/dt.json" }')
    return pkg_dir


def make_package(name: str, compiler_version: str = "latest", **kwargs) -> Package:
    kwargs.setdefault("major", 1)
    return Package(
        name=name,
        compiler_version=compiler_version,
        files=("index.d.ts",),
        test_files=(f"{name}-tests.ts",),
        **kwargs,
    )


@pytest.fixture(autouse=True)
def reset_config():
    """Reset global config before and after each test."""
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def options(tmp_path):
    opts = TesterOptions(definitely_typed_path=tmp_path / "DefinitelyTyped", data_dir=tmp_path / "data")
    opts.types_path.mkdir(parents=True)
    opts.data_dir.mkdir()
    return opts


@pytest.fixture
def config(tmp_path):
    return TesterConfig(
        supported_versions=("2.0", "2.1", "2.2", "2.3"),
        install_root=tmp_path / "installs",
        lint_script=Path("/opt/tslint/tslint-cli.js"),
    )


@pytest.fixture
def installer(config):
    return CompilerInstaller(config)
