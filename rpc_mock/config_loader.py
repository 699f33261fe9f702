"""Config Loader - Loads runtime configuration and lints mock definitions.

Handles loading YAML config files with environment variable substitution,
wiring a configured RequestMatcher, and cross-checking loaded mocks for
patterns that can never match or that will be ignored.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from rpc_mock.logging_utils import configure_logging
from rpc_mock.matcher import PathQueryError, RequestMatcher, compile_expression
from rpc_mock.models import Mock, RuntimeConfig


class ConfigError(Exception):
    """Raised when configuration loading fails."""


def load_runtime_config(config_path: Path) -> RuntimeConfig:
    """Load runtime configuration from YAML with ${ENV_VAR} substitution.

    A relative mocks_path is resolved against the config file's directory.
    """
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}") from e

    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ConfigError("Config file must be a YAML mapping")

    raw_config = _substitute_env_vars(raw_config)

    try:
        config = RuntimeConfig.model_validate(raw_config)
    except Exception as e:
        raise ConfigError(f"Invalid config structure: {e}") from e

    if config.mocks_path:
        config = config.model_copy(
            update={"mocks_path": str(resolve_mocks_path(config_path, config.mocks_path))}
        )
    return config


def resolve_mocks_path(config_path: Path, mocks_ref: str) -> Path:
    """Resolve mocks_ref relative to config_path's directory. Absolute paths pass through."""
    mocks_path = Path(mocks_ref)
    if mocks_path.is_absolute():
        return mocks_path
    return (config_path.parent / mocks_path).resolve()


def build_matcher(config: RuntimeConfig) -> RequestMatcher:
    """Configure logging and build a RequestMatcher from runtime config."""
    logger = configure_logging(config.log_level, config.log_format)
    return RequestMatcher(mocks_path=config.mocks_path, logger=logger)


def _substitute_env_vars(data: Any) -> Any:
    """Recursively substitute ${ENV_VAR} patterns in strings within data."""
    if isinstance(data, str):
        return _substitute_string(data)
    elif isinstance(data, dict):
        return {k: _substitute_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_substitute_env_vars(item) for item in data]
    return data


def _substitute_string(s: str) -> str:
    """Substitute ${ENV_VAR} patterns. Raises ConfigError if env var is not set."""
    pattern = re.compile(r"\$\{([^}]+)\}")

    def replacer(match: re.Match) -> str:
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(f"Environment variable '{var_name}' is not set")
        return value

    return pattern.sub(replacer, s)


# =============================================================================
# Mock Definition Linting
# =============================================================================


class ValidationWarning:
    """A non-fatal validation warning."""

    def __init__(self, category: str, message: str) -> None:
        self.category = category
        self.message = message

    def __str__(self) -> str:
        return f"[{self.category}] {self.message}"


class ValidationError:
    """A fatal validation error."""

    def __init__(self, category: str, message: str) -> None:
        self.category = category
        self.message = message

    def __str__(self) -> str:
        return f"[{self.category}] {self.message}"


class ValidationResult:
    """Result of mock definition checks."""

    def __init__(self) -> None:
        self.warnings: list[ValidationWarning] = []
        self.errors: list[ValidationError] = []

    def add_warning(self, category: str, message: str) -> None:
        self.warnings.append(ValidationWarning(category, message))

    def add_error(self, category: str, message: str) -> None:
        self.errors.append(ValidationError(category, message))

    @property
    def is_valid(self) -> bool:
        """True if no errors (warnings are OK)."""
        return len(self.errors) == 0


def validate_mocks(rules: Mapping[str, Iterable[Mock]]) -> ValidationResult:
    """Check every bucket of a method index for unusable or shadowed mocks.

    Errors: JSONPath expressions that do not compile (the mock will always
    be skipped at match time). Warnings: mocks that can never match, body
    patterns that are ignored, and mocks shadowed by an earlier identical
    request pattern for the same method.
    """
    result = ValidationResult()
    for method, mocks in rules.items():
        seen: list[dict[str, Any]] = []
        for position, mock in enumerate(mocks):
            context = f"{method}[{position}]"
            _validate_mock(mock, context, result)
            request = mock.request.model_dump(by_alias=True, exclude_unset=True)
            if request in seen:
                result.add_warning(
                    "shadowed",
                    f"{context}: identical request pattern defined earlier. "
                    f"This mock will never be returned.",
                )
            seen.append(request)
    return result


def _validate_mock(mock: Mock, context: str, result: ValidationResult) -> None:
    """Validate one mock. Adds issues to result."""
    if not mock.method:
        result.add_warning(
            "method",
            f"{context}: no request method. This mock is indexed under \"\".",
        )

    if not mock.request.body_patterns:
        result.add_warning(
            "body_patterns",
            f"{context}: no bodyPatterns. This mock can never match.",
        )
        return

    for index, pattern in enumerate(mock.request.body_patterns):
        pattern_context = f"{context}.bodyPatterns[{index}]"
        if not pattern.has_equal_to_json and not pattern.has_json_path:
            result.add_warning(
                "body_patterns",
                f"{pattern_context}: neither equalToJson nor matchesJsonPath is set. "
                f"Pattern is ignored.",
            )
            continue

        json_path = pattern.matches_json_path
        if json_path is None:
            continue

        try:
            compile_expression(json_path.expression)
        except PathQueryError as e:
            result.add_error("matchesJsonPath", f"{pattern_context}: {e}")

        modes = json_path.modes
        if not modes:
            result.add_warning(
                "matchesJsonPath",
                f"{pattern_context}: none of partial, equals, contains is set. "
                f"Pattern never matches.",
            )
        elif len(modes) > 1:
            result.add_warning(
                "matchesJsonPath",
                f"{pattern_context}: multiple modes set ({', '.join(modes)}). "
                f"Only '{modes[0]}' is used.",
            )
