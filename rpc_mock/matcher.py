"""Request Matcher - Finds the mock response for an incoming RPC request.

Mocks are grouped by method into ordered buckets at construction time. For
each call, the bucket for the method is scanned in order and the first mock
whose request pattern matches the payload wins.

Request pattern evaluation walks the body patterns in order. Any failing or
erroring pattern aborts the whole request pattern; the verdict is positive
only if at least one pattern produced a positive result. A pattern that sets
no known predicate contributes nothing.

Usage:
    matcher = RequestMatcher(mocks_path=Path("mocks"))
    try:
        response = matcher.match("/greet.Greeter/SayHello", b'{"name": "Bob"}')
    except NotMatchedError:
        ...
"""

from __future__ import annotations

import json
from functools import cached_property
from pathlib import Path
from threading import Lock
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError
from jsonpath_ng.ext import parse as jsonpath_parse

from rpc_mock.canonical import CanonicalizationError, canonicalize, parse_json
from rpc_mock.logging_utils import WarningLogger, get_logger
from rpc_mock.mock_loader import iter_mock_documents
from rpc_mock.models import BodyPattern, JSONPathPattern, Mock, MockRequest


# =============================================================================
# Exceptions
# =============================================================================


class MatcherError(Exception):
    """Base class for matcher errors."""


class NotMatchedError(MatcherError):
    """No mock applies to the request."""

    def __init__(self, method: str) -> None:
        super().__init__(f"request not matched: {method}")
        self.method = method


class PatternEvaluationError(MatcherError):
    """A body pattern could not be evaluated against the payload."""


class PathQueryError(PatternEvaluationError):
    """A JSONPath expression is invalid or failed against the payload."""

    def __init__(self, expression: str, message: str) -> None:
        super().__init__(f"jsonpath matching: {message}, expr: {expression}")
        self.expression = expression


# =============================================================================
# Index
# =============================================================================


def merge_mocks(mocks: Iterable[Mock], index: dict[str, list[Mock]]) -> None:
    """Append each mock to the bucket for its method, preserving order."""
    for mock in mocks:
        index.setdefault(mock.method, []).append(mock)


class _EmptyResult:
    """Sentinel for a query that selected nothing (distinct from JSON null)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "<EMPTY>"


EMPTY = _EmptyResult()


class _Payload:
    """Incoming payload, decoded at most once per match call."""

    def __init__(self, raw: bytes | str) -> None:
        self.raw = raw

    @cached_property
    def value(self) -> Any:
        return parse_json(self.raw)

    @cached_property
    def canonical(self) -> bytes:
        return canonicalize(self.value)


# =============================================================================
# Matcher
# =============================================================================


class RequestMatcher:
    """Matches (method, payload) pairs against loaded mocks.

    The index is built once in the constructor and is read-only afterwards,
    so match() may be called from several threads.
    """

    def __init__(
        self,
        *,
        mocks_path: Path | str | None = None,
        logger: WarningLogger | None = None,
        mocks: Iterable[Mock] | None = None,
    ) -> None:
        """Build the method index.

        Args:
            mocks_path: Directory (or single file) to discover .json definitions in.
            logger: Receives a warning for every mock that errors during matching.
                Defaults to the package structlog logger.
            mocks: Mocks to seed the index with, merged before any discovered files.

        Raises:
            LoadError: If discovery fails or any definition file cannot be loaded.
        """
        self._logger = logger if logger is not None else get_logger()
        self._jsonpath_cache: dict[str, Any] = {}
        self._jsonpath_lock = Lock()

        index: dict[str, list[Mock]] = {}
        if mocks is not None:
            merge_mocks(mocks, index)

        if mocks_path:
            for path, document in iter_mock_documents(Path(mocks_path)):
                merge_mocks(document.mocks, index)
                debug = getattr(self._logger, "debug", None)
                if debug is not None:
                    debug("mocks loaded", path=str(path), count=len(document.mocks))

        self._rules: Mapping[str, tuple[Mock, ...]] = MappingProxyType(
            {method: tuple(bucket) for method, bucket in index.items()}
        )

    @property
    def rules(self) -> Mapping[str, tuple[Mock, ...]]:
        """Read-only view of the method index."""
        return self._rules

    @property
    def methods(self) -> list[str]:
        return sorted(self._rules)

    def match(self, method: str, payload: bytes | str) -> Any:
        """Return the response of the first mock matching the payload.

        Per-mock evaluation errors are logged and the mock is skipped.

        Raises:
            NotMatchedError: If the method has no mocks or none of them match.
        """
        mocks = self._rules.get(method)
        if mocks is None:
            raise NotMatchedError(method)

        request = _Payload(payload)
        for position, mock in enumerate(mocks):
            try:
                matched = self._matches(request, mock.request)
            except PatternEvaluationError as e:
                self._logger.warning(
                    "matching error", method=method, mock_index=position, err=str(e)
                )
                continue

            if matched:
                return mock.response

        raise NotMatchedError(method)

    def matches(self, payload: bytes | str, request: MockRequest) -> bool:
        """Evaluate a request pattern against a payload.

        Returns:
            True if at least one body pattern matched and none failed.

        Raises:
            PatternEvaluationError: If a pattern could not be evaluated.
        """
        return self._matches(_Payload(payload), request)

    def _matches(self, payload: _Payload, request: MockRequest) -> bool:
        result = False
        for pattern in request.body_patterns:
            if pattern.has_equal_to_json:
                if not self._equal_to_json(payload, pattern):
                    return False
                result = True
            if pattern.has_json_path:
                if not self._matches_json_path(payload, pattern.matches_json_path):
                    return False
                result = True

        return result

    def _equal_to_json(self, payload: _Payload, pattern: BodyPattern) -> bool:
        try:
            source = payload.canonical
            expected = canonicalize(pattern.equal_to_json)
        except CanonicalizationError as e:
            raise PatternEvaluationError(f"equalToJson: {e}") from e
        return source == expected

    def _matches_json_path(self, payload: _Payload, pattern: JSONPathPattern) -> bool:
        value = self._query(payload, pattern.expression)
        if value is EMPTY:
            return False

        if pattern.partial:
            return True

        if pattern.equals:
            if not isinstance(value, str):
                raise PathQueryError(
                    pattern.expression,
                    f"result is not a string: {type(value).__name__}",
                )
            return value.lower() == pattern.equals.lower()

        if pattern.contains:
            return pattern.contains in json.dumps(value, separators=(",", ":"), ensure_ascii=False)

        return False

    def _query(self, payload: _Payload, expression: str) -> Any:
        """Run a JSONPath expression against the payload.

        A single selected node is always unwrapped to its value, including
        for filter and wildcard expressions that happen to select one node.

        Returns:
            EMPTY if nothing matched, the value for a single match,
            otherwise the list of matched values in document order.

        Raises:
            PathQueryError: If the expression is invalid, the payload is not
                JSON, or evaluation fails.
        """
        compiled = self._compile(expression)
        try:
            document = payload.value
        except CanonicalizationError as e:
            raise PathQueryError(expression, str(e)) from e

        try:
            found = compiled.find(document)
        except Exception as e:
            raise PathQueryError(expression, f"evaluation failed: {e}") from e

        if not found:
            return EMPTY
        if len(found) == 1:
            return found[0].value
        return [match.value for match in found]

    def _compile(self, expression: str) -> Any:
        # The ply-based parser is not documented as thread-safe
        with self._jsonpath_lock:
            if expression not in self._jsonpath_cache:
                self._jsonpath_cache[expression] = compile_expression(expression)
            return self._jsonpath_cache[expression]


def compile_expression(expression: str) -> Any:
    """Compile a JSONPath expression.

    Raises:
        PathQueryError: If the expression is syntactically invalid.
    """
    if not expression:
        raise PathQueryError(expression, "empty expression")
    try:
        return jsonpath_parse(expression)
    except (JsonPathLexerError, JsonPathParserError) as e:
        raise PathQueryError(expression, f"invalid expression: {e}") from e
