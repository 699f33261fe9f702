"""Pytest configuration and fixtures for rpc-mock tests.

This file provides:
- Builders for Mock models with sensible defaults
- write_mock_file: writes definition documents into a temporary mocks tree
- Fixtures: recording logger, on-disk fixture paths
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from rpc_mock.models import BodyPattern, JSONPathPattern, Mock, MockRequest

# Project root for fixture paths
PROJECT_ROOT = Path(__file__).parent.parent
FIXTURES_DIR = PROJECT_ROOT / "tests" / "fixtures"
MOCKS_DIR = FIXTURES_DIR / "mocks"


def make_mock(
    method: str = "/test.Service/Call",
    patterns: list[BodyPattern] | None = None,
    response: Any = None,
) -> Mock:
    """Create a Mock for matcher tests.

    Prefer this over constructing Mock directly - it keeps tests focused on
    the patterns being exercised.
    """
    return Mock(
        request=MockRequest(method=method, body_patterns=patterns or []),
        response=response if response is not None else {"ok": True},
    )


def equal_to(document: Any) -> BodyPattern:
    """Equality body pattern for a literal document."""
    return BodyPattern(equal_to_json=document)


def json_path(expression: str, **modes: Any) -> BodyPattern:
    """Path-query body pattern, e.g. json_path("$.name", partial=True)."""
    return BodyPattern(matches_json_path=JSONPathPattern(expression=expression, **modes))


def write_mock_file(directory: Path, name: str, content: Any) -> Path:
    """Write a definition document. Strings are written verbatim, other values as JSON."""
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    text = content if isinstance(content, str) else json.dumps(content)
    path.write_text(text, encoding="utf-8")
    return path


def mock_definition(method: str, patterns: list[dict[str, Any]], response: Any) -> dict[str, Any]:
    """A single mock object in on-disk wire format."""
    return {
        "request": {"method": method, "bodyPatterns": patterns},
        "response": response,
    }


@pytest.fixture
def logger() -> MagicMock:
    """A stand-in logger that records warning/debug calls."""
    return MagicMock()


@pytest.fixture
def mocks_dir(tmp_path: Path) -> Path:
    """An empty directory for definition files."""
    directory = tmp_path / "mocks"
    directory.mkdir()
    return directory
