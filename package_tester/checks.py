"""Configuration and manifest checks run by the validation pipeline."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, Iterable

from .config import TesterOptions
from .constants import EXPLICIT_COMPILER_OPTIONS, PACKAGE_JSON_FILENAME, REQUIRED_COMPILER_OPTIONS
from .errors import ValidationError
from .io_utils import ReadJson
from .packages import Package


def check_tsconfig(tsconfig: Any) -> None:
    """Validate the compiler options of a package's tsconfig.json.

    Args:
        tsconfig: Parsed tsconfig.json content.

    Raises:
        ValidationError: Naming the first missing or mismatched option.
    """
    if not isinstance(tsconfig, Mapping) or not isinstance(tsconfig.get("compilerOptions"), Mapping):
        raise ValidationError('Expected tsconfig.json to contain a "compilerOptions" object.')
    options = tsconfig["compilerOptions"]

    for key, value in REQUIRED_COMPILER_OPTIONS.items():
        # 1 == True, so the type has to match as well
        actual = options.get(key)
        if actual != value or type(actual) is not type(value):
            raise ValidationError(f"Expected compilerOptions[{json.dumps(key)}] === {json.dumps(value)}")

    if "lib" not in options:
        raise ValidationError('Must specify "lib", usually to `"lib": ["es6"]` or `"lib": ["es6", "dom"]`.')

    for key in EXPLICIT_COMPILER_OPTIONS:
        if key not in options:
            raise ValidationError(f'Expected `"{key}": true` or `"{key}": false`.')

    if "typeRoots" in options and "types" not in options:
        raise ValidationError(
            'If the "typeRoots" option is specified in your tsconfig, '
            'you must include `"types": []` to prevent very long compile times.'
        )

    # typeRoots / types may be missing.
    types = options.get("types")
    if types is not None and (not isinstance(types, list) or types):
        raise ValidationError(
            'Use `/// <reference types="..." />` directives in source files and ensure '
            'that the "types" field in your tsconfig is an empty array.'
        )


async def check_package_json(
    package: Package,
    options: TesterOptions,
    read_json: ReadJson,
    allowed_fields: Iterable[str],
) -> None:
    """Validate the top-level keys of a package's own package.json.

    Packages without a package.json pass trivially.

    Raises:
        ValidationError: Naming the first key outside ``allowed_fields``.
    """
    if not package.has_package_json:
        return

    path = package.file_path(PACKAGE_JSON_FILENAME, options)
    manifest = await read_json(path)
    if not isinstance(manifest, Mapping):
        raise ValidationError(f"Expected {path} to contain a JSON object.")

    allowed = set(allowed_fields)
    ignored_field = next((key for key in manifest if key not in allowed), None)
    if ignored_field is not None:
        raise ValidationError(f"Ignored field in {path}: {ignored_field}")
