"""Validation adapters that turn decoded JSON into typed values.

The cast loop only talks to the :class:`Validator` protocol, so any schema
library can be plugged in. :class:`PydanticValidator` is the default and
accepts anything :class:`pydantic.TypeAdapter` does: ``BaseModel`` subclasses,
dataclasses, ``TypedDict`` types and plain annotations such as ``list[int]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from pydantic import TypeAdapter, ValidationError
from pydantic.errors import PydanticInvalidForJsonSchema

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


@dataclass(frozen=True)
class ValidationOutcome(Generic[T]):
    """Either a validated value or the ordered list of issues."""

    value: T | None = None
    issues: tuple[dict[str, Any], ...] = ()
    error: ValidationError | None = None

    @property
    def ok(self) -> bool:
        return not self.issues

    @classmethod
    def success(cls, value: T) -> "ValidationOutcome[T]":
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        issues: list[dict[str, Any]] | tuple[dict[str, Any], ...],
        error: ValidationError | None = None,
    ) -> "ValidationOutcome[T]":
        if not issues:
            raise ValueError("A failed validation outcome needs at least one issue")
        return cls(issues=tuple(issues), error=error)


@runtime_checkable
class Validator(Protocol[T_co]):
    """Shared contract for validation adapters."""

    def parse(self, data: Any) -> ValidationOutcome[T_co]:
        """Validate ``data``; never raises for non-conforming input."""
        ...

    def json_schema(self) -> dict[str, Any] | None:
        """Return a JSON-Schema hint for backends, or None."""
        ...


class PydanticValidator(Generic[T]):
    """Validator backed by :class:`pydantic.TypeAdapter`.

    Models with the default ``extra="ignore"`` config silently drop keys that
    are not part of the schema.
    """

    def __init__(self, schema: Any) -> None:
        self._schema = schema
        self._adapter: TypeAdapter[T] = TypeAdapter(schema)

    @property
    def schema(self) -> Any:
        return self._schema

    @property
    def name(self) -> str:
        return getattr(self._schema, "__name__", None) or repr(self._schema)

    def parse(self, data: Any) -> ValidationOutcome[T]:
        try:
            value = self._adapter.validate_python(data)
        except ValidationError as exc:
            return ValidationOutcome.failure(
                exc.errors(include_url=False), error=exc
            )
        return ValidationOutcome.success(value)

    def json_schema(self) -> dict[str, Any] | None:
        # Some types validate fine but have no JSON Schema form (e.g. Callable)
        try:
            return self._adapter.json_schema()
        except PydanticInvalidForJsonSchema:
            return None

    def dump_json(self, value: T, *, indent: int | None = 2) -> str:
        """Serialise a validated value back to JSON text."""
        return self._adapter.dump_json(value, indent=indent).decode("utf-8")


def as_validator(schema: Any) -> Validator[Any]:
    """Wrap ``schema`` in a :class:`PydanticValidator` unless it already is a validator."""

    if not isinstance(schema, type) and isinstance(schema, Validator):
        return schema
    return PydanticValidator(schema)
