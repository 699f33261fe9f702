"""Mock Loader - Reads mock definition documents from bytes or disk.

A definition document is either a single mock object or an array of mock
objects. The outermost JSON token decides which branch is decoded; both
branches produce a MockDocument whose .mocks is a tuple of Mock.

Discovery walks a root directory depth-first in lexical order and yields
every file with a .json extension.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError

from rpc_mock.models import (
    DocumentShape,
    MockDocument,
    MockListDocument,
    SingleMockDocument,
)

MOCK_FILE_EXTENSION = ".json"

# Insignificant whitespace per RFC 8259
_JSON_WHITESPACE = " \t\n\r"


class LoadError(Exception):
    """Error loading a mock definition document."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message


def sniff_shape(text: str) -> DocumentShape:
    """Return LIST if the first structural token opens an array, else SINGLE."""
    stripped = text.lstrip(_JSON_WHITESPACE)
    if stripped.startswith("["):
        return DocumentShape.LIST
    return DocumentShape.SINGLE


def load_mock_document(raw: bytes | str, source: str = "<memory>") -> MockDocument:
    """Decode one definition document.

    Args:
        raw: Document bytes (UTF-8) or text.
        source: Label used in error messages, usually the file path.

    Returns:
        SingleMockDocument or MockListDocument.

    Raises:
        LoadError: If the bytes are not valid UTF-8 JSON or do not describe mocks.
    """
    if isinstance(raw, bytes):
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise LoadError(source, f"Document is not valid UTF-8: {e}") from e
    else:
        text = raw

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise LoadError(source, f"Invalid JSON: {e}") from e

    shape = sniff_shape(text)
    try:
        if shape == DocumentShape.LIST:
            return MockListDocument(items=data)
        return SingleMockDocument(mock=data)
    except ValidationError as e:
        raise LoadError(source, f"Invalid mock definition: {e}") from e


def load_mock_file(path: Path) -> MockDocument:
    """Read and decode one definition file.

    Raises:
        LoadError: If the file cannot be read or decoded.
    """
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise LoadError(str(path), f"Cannot read file: {e}") from e
    return load_mock_document(raw, source=str(path))


def discover_mock_files(root: Path) -> list[Path]:
    """Find all definition files beneath root.

    A root that is itself a .json file yields just that file.

    Raises:
        LoadError: If root does not exist or a directory cannot be listed.
    """
    if not root.exists():
        raise LoadError(str(root), "Mocks path does not exist")
    if not root.is_dir():
        return [root] if root.suffix == MOCK_FILE_EXTENSION else []
    return list(_walk(root))


def iter_mock_documents(root: Path) -> Iterator[tuple[Path, MockDocument]]:
    """Discover and load every definition file beneath root, in walk order."""
    for path in discover_mock_files(root):
        yield path, load_mock_file(path)


def _walk(directory: Path) -> Iterator[Path]:
    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as e:
        raise LoadError(str(directory), f"Cannot list directory: {e}") from e

    for entry in entries:
        if entry.is_dir() and not entry.is_symlink():
            yield from _walk(entry)
        elif entry.suffix == MOCK_FILE_EXTENSION and entry.is_file():
            yield entry
