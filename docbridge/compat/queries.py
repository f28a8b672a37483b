"""
Declarative queries and their translation into PostgREST calls.

A Query is an immutable descriptor: a collection reference plus ordered
filters, ordered sort keys and an optional limit. translate_query() turns
it into a Supabase select builder:

    table(route.table).select("*")
        .eq("collection_path", ...)      # generic table only
        .<op>(column, value) ...         # filters, in order
        .order(column, desc=...) ...     # orderings, primary first
        .limit(n)

Fields that are not declared columns are read from the payload with the
->> operator, so PostgREST compares them AS TEXT: 10 sorts before 9 and
numeric filters on payload fields are lexicographic. Declared columns
keep their native column type. No default ordering is ever added.
"""

import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional, Tuple, Union

from docbridge.compat.errors import InvalidReferenceError
from docbridge.compat.references import CollectionReference
from docbridge.compat.routing import (
    COLLECTION_PATH_COLUMN,
    PAYLOAD_COLUMN,
    TableRoute,
    is_declared,
    resolve_route,
)
from docbridge.compat.timestamps import Timestamp, encode_value

logger = logging.getLogger(__name__)

# Accepted spellings -> PostgREST filter method
OPERATORS = {
    "==": "eq",
    "!=": "neq",
    ">": "gt",
    ">=": "gte",
    "<": "lt",
    "<=": "lte",
    "eq": "eq",
    "neq": "neq",
    "gt": "gt",
    "gte": "gte",
    "lt": "lt",
    "lte": "lte",
}

DIRECTIONS = ("asc", "desc")


def _check_field(field: str) -> None:
    if not isinstance(field, str) or not field:
        raise InvalidReferenceError(f"Field path must be a non-empty string, got {field!r}")
    if any(part == "" for part in field.split(".")):
        raise InvalidReferenceError(f"Empty segment in field path {field!r}")


@dataclass(frozen=True)
class FieldFilter:
    """One (field, operator, value) constraint; operator is normalized."""

    field: str
    operator: str
    value: Any


@dataclass(frozen=True)
class Ordering:
    field: str
    direction: str = "asc"


@dataclass(frozen=True)
class Limit:
    count: int


Constraint = Union[FieldFilter, Ordering, Limit]


def where(field: str, op: str, value: Any) -> FieldFilter:
    """Build a filter constraint, e.g. where("status", "==", "new")."""
    _check_field(field)
    operator = OPERATORS.get(op)
    if operator is None:
        raise InvalidReferenceError(
            f"Unsupported operator {op!r}; expected one of {sorted(set(OPERATORS))}"
        )
    return FieldFilter(field=field, operator=operator, value=value)


def order_by(field: str, direction: str = "asc") -> Ordering:
    """Build an ordering constraint; direction is 'asc' or 'desc'."""
    _check_field(field)
    if not isinstance(direction, str) or direction.lower() not in DIRECTIONS:
        raise InvalidReferenceError(f"Order direction must be 'asc' or 'desc', got {direction!r}")
    return Ordering(field=field, direction=direction.lower())


def limit(count: int) -> Limit:
    """Build a limit constraint; count must be a positive integer."""
    if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
        raise InvalidReferenceError(f"Limit must be a positive integer, got {count!r}")
    return Limit(count=count)


@dataclass(frozen=True)
class Query:
    """
    Immutable query over one collection.

    Every builder method returns a new Query; the original is untouched.
    """

    ref: CollectionReference
    filters: Tuple[FieldFilter, ...] = ()
    orderings: Tuple[Ordering, ...] = ()
    limit_count: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.ref, CollectionReference):
            raise InvalidReferenceError("Queries can only target a collection reference")

    @property
    def path(self) -> str:
        return self.ref.path

    def where(self, field: str, op: str, value: Any) -> "Query":
        return self.with_constraints(where(field, op, value))

    def order_by(self, field: str, direction: str = "asc") -> "Query":
        return self.with_constraints(order_by(field, direction))

    def limit(self, count: int) -> "Query":
        return self.with_constraints(limit(count))

    def with_constraints(self, *constraints: Constraint) -> "Query":
        """Append constraints in the given order."""
        filters = list(self.filters)
        orderings = list(self.orderings)
        limit_count = self.limit_count

        for constraint in constraints:
            if isinstance(constraint, FieldFilter):
                filters.append(constraint)
            elif isinstance(constraint, Ordering):
                orderings.append(constraint)
            elif isinstance(constraint, Limit):
                limit_count = constraint.count
            else:
                raise InvalidReferenceError(
                    f"Unknown query constraint: {type(constraint).__name__}"
                )

        return replace(
            self,
            filters=tuple(filters),
            orderings=tuple(orderings),
            limit_count=limit_count,
        )


def query(base: Union[CollectionReference, Query], *constraints: Constraint) -> Query:
    """
    Compose a query from a collection (or an existing query) and constraints.

    Example:
        >>> cities = collection_ref(None, "tenants", "acme", "cities")
        >>> q = query(cities, where("enabled", "==", True), order_by("name"), limit(10))
    """
    if isinstance(base, Query):
        return base.with_constraints(*constraints)
    return Query(ref=base).with_constraints(*constraints)


def resolve_column(route: TableRoute, field: str) -> str:
    """
    Column expression for a field.

    Declared columns are used directly; anything else is extracted from
    the payload as text. Dotted paths walk nested payload objects.
    """
    if is_declared(route, field):
        return field
    parts = field.split(".")
    if len(parts) == 1:
        return f"{PAYLOAD_COLUMN}->>{field}"
    nested = "->".join(parts[:-1])
    return f"{PAYLOAD_COLUMN}->{nested}->>{parts[-1]}"


def encode_filter_value(value: Any) -> Any:
    """
    Render a filter value the way PostgREST expects it in the query string.

    Booleans become 'true'/'false' (Python's str() would give 'True'),
    timestamps become ISO strings, containers become JSON text.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Timestamp, datetime)):
        return encode_value(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(encode_value(value), separators=(",", ":"))
    return value


def _apply_filter(builder: Any, column: str, field_filter: FieldFilter) -> Any:
    if field_filter.value is None:
        if field_filter.operator == "eq":
            return builder.is_(column, "null")
        if field_filter.operator == "neq":
            return builder.not_.is_(column, "null")
        raise InvalidReferenceError(
            f"Operator {field_filter.operator!r} cannot compare {field_filter.field!r} with None"
        )
    method = getattr(builder, field_filter.operator)
    return method(column, encode_filter_value(field_filter.value))


def translate_query(client: Any, target: Union[CollectionReference, Query]) -> Any:
    """
    Build (but do not execute) the Supabase select for a query.

    Args:
        client: Supabase client
        target: Query or bare collection reference

    Returns:
        The request builder; call .execute() on it.
    """
    if isinstance(target, CollectionReference):
        target = Query(ref=target)

    route = resolve_route(target.ref)
    builder = client.table(route.table).select("*")

    if route.is_generic:
        builder = builder.eq(COLLECTION_PATH_COLUMN, route.collection_path)

    for field_filter in target.filters:
        builder = _apply_filter(builder, resolve_column(route, field_filter.field), field_filter)

    for ordering in target.orderings:
        builder = builder.order(
            resolve_column(route, ordering.field),
            desc=ordering.direction == "desc",
        )

    if target.limit_count is not None:
        builder = builder.limit(target.limit_count)

    logger.debug(
        f"Translated query on {target.path}: table={route.table} "
        f"filters={[(f.field, f.operator) for f in target.filters]} "
        f"orderings={[(o.field, o.direction) for o in target.orderings]} "
        f"limit={target.limit_count}"
    )

    return builder
