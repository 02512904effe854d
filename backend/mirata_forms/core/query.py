"""Parameterized OData query builder.

Queries are immutable values. The same query renders to OData system query
options for the remote service and evaluates in memory for the offline store,
so filter literals are never concatenated by hand.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# =============================================================================
# Section 1: Imports
# =============================================================================
# Standard library (alphabetical)
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Protocol

# Local imports (core first, then alphabetical)
from .constants import ENTITY_KEYS
from .exceptions import QueryError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .types import JsonDict

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = (
    "Expression",
    "Eq",
    "SubstringOfLower",
    "And",
    "Or",
    "ODataQuery",
    "eq",
    "and_",
    "or_",
    "substringof_lower",
    "literal",
    "entity_link",
)


# =============================================================================
# Section 3: Literals
# =============================================================================
def literal(value: Any) -> str:
    """Render a Python value as an OData literal.

    Single quotes inside strings are doubled, which is the OData escape.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return "'" + value.replace("'", "''") + "'"
    raise QueryError(f"Unsupported literal type: {type(value).__name__}")


def entity_link(entity_set: str, entity: JsonDict) -> str:
    """Build the canonical read link of ``entity`` from its key properties.

    Example:
        >>> entity_link('SubmissionImagesClient', {'submissionId': 's1', 'imageId': 'i1'})
        "SubmissionImagesClient(submissionId='s1',imageId='i1')"
    """
    keys = ENTITY_KEYS.get(entity_set, ("id",))
    missing = [key for key in keys if entity.get(key) is None]
    if missing:
        raise QueryError(f"{entity_set} entity is missing key properties {missing}")
    if len(keys) == 1:
        return f"{entity_set}({literal(entity[keys[0]])})"
    parts = ",".join(f"{key}={literal(entity[key])}" for key in keys)
    return f"{entity_set}({parts})"


# =============================================================================
# Section 4: Expressions
# =============================================================================
class Expression(Protocol):
    """A filter expression node."""

    def render(self) -> str: ...

    def matches(self, row: JsonDict) -> bool: ...


@dataclass(frozen=True, slots=True)
class Eq:
    """``field eq value``."""

    field: str
    value: Any

    def render(self) -> str:
        return f"{self.field} eq {literal(self.value)}"

    def matches(self, row: JsonDict) -> bool:
        return row.get(self.field) == self.value


@dataclass(frozen=True, slots=True)
class SubstringOfLower:
    """``substringof(needle, tolower(field))``."""

    needle: str
    field: str

    def render(self) -> str:
        return f"substringof({literal(self.needle)},tolower({self.field}))"

    def matches(self, row: JsonDict) -> bool:
        value = row.get(self.field)
        if value is None:
            return False
        return self.needle in str(value).lower()


@dataclass(frozen=True, slots=True)
class And:
    operands: tuple[Expression, ...]

    def render(self) -> str:
        return " and ".join(_render_operand(op) for op in self.operands)

    def matches(self, row: JsonDict) -> bool:
        return all(op.matches(row) for op in self.operands)


@dataclass(frozen=True, slots=True)
class Or:
    operands: tuple[Expression, ...]

    def render(self) -> str:
        return "(" + " or ".join(_render_operand(op) for op in self.operands) + ")"

    def matches(self, row: JsonDict) -> bool:
        return any(op.matches(row) for op in self.operands)


def _render_operand(expr: Expression) -> str:
    if isinstance(expr, And):
        return f"({expr.render()})"
    return expr.render()


def eq(field_name: str, value: Any) -> Eq:
    """Build an equality expression."""
    return Eq(field_name, value)


def substringof_lower(needle: str, field_name: str) -> SubstringOfLower:
    """Build a case-insensitive containment expression on ``field_name``."""
    return SubstringOfLower(needle.lower(), field_name)


def and_(*operands: Expression) -> Expression:
    """Combine expressions with ``and``."""
    if not operands:
        raise QueryError("and_() needs at least one operand")
    if len(operands) == 1:
        return operands[0]
    return And(tuple(operands))


def or_(*operands: Expression) -> Expression:
    """Combine expressions with ``or``."""
    if not operands:
        raise QueryError("or_() needs at least one operand")
    if len(operands) == 1:
        return operands[0]
    return Or(tuple(operands))


# =============================================================================
# Section 5: Query
# =============================================================================
@dataclass(frozen=True, slots=True)
class ODataQuery:
    """Immutable set of OData system query options.

    Example:
        >>> query = ODataQuery().filter(eq('id', "o'brien")).order_by('version', descending=True).top(1)
        >>> query.render()
        "$filter=id eq 'o''brien'&$orderby=version desc&$top=1"
    """

    where: Expression | None = None
    ordering: tuple[tuple[str, bool], ...] = ()
    limit: int | None = None
    fields: tuple[str, ...] = field(default=())

    def filter(self, expr: Expression) -> ODataQuery:
        """Return a copy filtered by ``expr`` (and-ed with any existing filter)."""
        where = expr if self.where is None else and_(self.where, expr)
        return replace(self, where=where)

    def order_by(self, field_name: str, *, descending: bool = False) -> ODataQuery:
        return replace(self, ordering=(*self.ordering, (field_name, descending)))

    def top(self, count: int) -> ODataQuery:
        if count < 0:
            raise QueryError(f"$top must be non-negative, got {count}")
        return replace(self, limit=count)

    def select(self, *field_names: str) -> ODataQuery:
        return replace(self, fields=tuple(field_names))

    def to_params(self) -> dict[str, str]:
        """System query options as a mapping suitable for httpx params."""
        params: dict[str, str] = {}
        if self.where is not None:
            params["$filter"] = self.where.render()
        if self.ordering:
            params["$orderby"] = ",".join(
                f"{name} desc" if descending else name for name, descending in self.ordering
            )
        if self.limit is not None:
            params["$top"] = str(self.limit)
        if self.fields:
            params["$select"] = ",".join(self.fields)
        return params

    def render(self) -> str:
        """Render the query as an OData query-options string."""
        return "&".join(f"{key}={value}" for key, value in self.to_params().items())

    def evaluate(self, rows: Iterable[JsonDict]) -> list[JsonDict]:
        """Apply the query to in-memory entity rows."""
        result = [row for row in rows if self.where is None or self.where.matches(row)]
        # Stable sort applied from the least significant key up
        for name, descending in reversed(self.ordering):
            result.sort(key=lambda row, n=name: _sort_key(row.get(n)), reverse=descending)
        if self.limit is not None:
            result = result[: self.limit]
        if self.fields:
            result = [
                {k: v for k, v in row.items() if k in self.fields or k.startswith("@odata.")}
                for row in result
            ]
        return result


def _sort_key(value: Any) -> tuple[int, Any]:
    if value is None:
        return (0, 0)
    if isinstance(value, str):
        return (2, value)
    return (1, value)
