"""Data models for rpc-mock.

All models use Pydantic v2. Definition file models mirror the on-disk JSON
format (camelCase wire names via aliases) and are frozen once loaded.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Definition File Models
# =============================================================================


class JSONPathPattern(BaseModel):
    """A path-query predicate evaluated against the request payload.

    Mode precedence is partial, then equals, then contains. Empty strings
    mean the mode is unset. With no mode set the pattern never matches.
    A missing expression loads as "" and fails when evaluated.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    expression: str = Field(default="", description="JSONPath expression, e.g. $.user.name")
    partial: bool = Field(default=False, description="Match if the expression selects anything")
    equals: str = Field(default="", description="Case-insensitive string equality target")
    contains: str = Field(default="", description="Substring of the serialized result")

    @property
    def modes(self) -> list[str]:
        """Names of the modes that are set, in precedence order."""
        modes = []
        if self.partial:
            modes.append("partial")
        if self.equals:
            modes.append("equals")
        if self.contains:
            modes.append("contains")
        return modes


class BodyPattern(BaseModel):
    """One predicate within a request pattern.

    equal_to_json counts as set when the key is present in the document,
    including an explicit null.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    equal_to_json: Any = Field(
        default=None, alias="equalToJson", description="Literal document for canonical equality"
    )
    matches_json_path: JSONPathPattern | None = Field(
        default=None, alias="matchesJsonPath", description="Path-query predicate"
    )

    @property
    def has_equal_to_json(self) -> bool:
        return "equal_to_json" in self.model_fields_set

    @property
    def has_json_path(self) -> bool:
        return self.matches_json_path is not None


class MockRequest(BaseModel):
    """Request pattern: target method plus the body predicates to apply."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    method: str = Field(default="", description="Fully qualified RPC method name")
    body_patterns: tuple[BodyPattern, ...] = Field(
        default=(), alias="bodyPatterns", description="Predicates evaluated in order"
    )


class Mock(BaseModel):
    """A single request-pattern/response rule."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    request: MockRequest = Field(default_factory=MockRequest, description="Matching criteria")
    response: Any = Field(default=None, description="Returned verbatim on match")

    @property
    def method(self) -> str:
        return self.request.method


# =============================================================================
# Loaded Document Shapes
# =============================================================================


class DocumentShape(str, Enum):
    """Outermost JSON construct of a definition document."""

    SINGLE = "single"
    LIST = "list"


class SingleMockDocument(BaseModel):
    """Definition document holding one mock object."""

    model_config = ConfigDict(frozen=True)

    shape: Literal[DocumentShape.SINGLE] = DocumentShape.SINGLE
    mock: Mock

    @property
    def mocks(self) -> tuple[Mock, ...]:
        return (self.mock,)


class MockListDocument(BaseModel):
    """Definition document holding an array of mock objects."""

    model_config = ConfigDict(frozen=True)

    shape: Literal[DocumentShape.LIST] = DocumentShape.LIST
    items: tuple[Mock, ...] = ()

    @property
    def mocks(self) -> tuple[Mock, ...]:
        return self.items


MockDocument = Union[SingleMockDocument, MockListDocument]


# =============================================================================
# Runtime Configuration Models
# =============================================================================


LogFormat = Literal["console", "plain", "json"]


class RuntimeConfig(BaseModel):
    """Top-level runtime configuration file structure."""

    model_config = ConfigDict(extra="forbid")

    mocks_path: str | None = Field(default=None, description="Directory of mock definition files")
    log_level: str = Field(default="INFO", description="Minimum level for emitted log events")
    log_format: LogFormat = Field(default="console", description="Log renderer")
