"""Constants and shared configuration for the package tester."""

# File names inspected inside a package directory
TSCONFIG_FILENAME = "tsconfig.json"
PACKAGE_JSON_FILENAME = "package.json"

# Parsed definitions written by the parser step
DEFINITIONS_DATA_FILENAME = "definitions.json"

# Sentinel for "the newest supported compiler"
LATEST_VERSION = "latest"

# Compiler options whose value must match exactly
REQUIRED_COMPILER_OPTIONS = {
    "module": "commonjs",
    "noEmit": True,
    "forceConsistentCasingInFileNames": True,
}
# Compiler options that must be present with an explicit true or false
EXPLICIT_COMPILER_OPTIONS = ["noImplicitAny", "noImplicitThis", "strictNullChecks"]

# Default top-level keys allowed in a package's own package.json
DEFAULT_ALLOWED_PACKAGE_JSON_FIELDS = ["dependencies", "peerDependencies", "description"]

# Advisories printed by `npm install` for packages that are not meant to be published
DEFAULT_BENIGN_NPM_WARNINGS = [r"npm WARN \S+ No (description|repository field\.|license field\.)\n?"]

REPORT_TEMPLATE = "ERROR_REPORT.txt.j2"

# Exit codes
EXIT_SUCCESS = 0  # Every tested package passed
EXIT_TEST_FAILURE = 1  # At least one package failed validation
EXIT_ERROR = 2  # Configuration error or aborted run
