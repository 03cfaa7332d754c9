"""
Shared query pipeline: filter -> enrich -> sort -> paginate, with the
aggregate taken over the filtered set before pagination.

Endpoints describe a query as a list of predicates plus a ``SortSpec`` and a
page size; everything here is entity-agnostic.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from pydantic import TypeAdapter, ValidationError

from errors import InvalidArgument

T = TypeVar("T")
Predicate = Callable[[Any], bool]

_DATETIME = TypeAdapter(datetime)
_DATE = TypeAdapter(date)


@dataclass(frozen=True)
class SortSpec:
    key: str
    descending: bool

    @property
    def order(self) -> str:
        return "desc" if self.descending else "asc"


@dataclass(frozen=True)
class Page:
    items: List[Any]
    limit: int
    total: int

    @property
    def has_more(self) -> bool:
        return self.total > self.limit


# Parsing query parameters

def parse_timestamp(value: str, name: str) -> datetime:
    """Parse an ISO-8601 timestamp or date; naive values are taken as UTC."""
    try:
        parsed = _DATETIME.validate_python(value)
    except ValidationError:
        try:
            parsed = datetime.combine(_DATE.validate_python(value), time.min)
        except ValidationError:
            raise InvalidArgument(
                f"{name} must be a valid ISO date string",
                error="Invalid date format",
                provided=value,
            ) from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_choice(value: str, choices: Sequence[str], name: str) -> str:
    normalized = value.strip().lower()
    if normalized not in choices:
        raise InvalidArgument(
            f"{name.capitalize()} must be one of: {', '.join(choices)}",
            error=f"Invalid {name} value",
            provided=value,
            valid_values=list(choices),
        )
    return normalized


def parse_limit(raw: Optional[str], default: int, maximum: int) -> int:
    try:
        limit = int(raw) if raw is not None else default
    except ValueError:
        limit = default
    if limit < 1:
        limit = default
    return min(limit, maximum)


def parse_sort(sort_by: Optional[str], order: Optional[str], keys: Sequence[str], default_order: str) -> SortSpec:
    key = sort_by if sort_by in keys else keys[0]
    if order not in ("asc", "desc"):
        order = default_order
    return SortSpec(key=key, descending=order == "desc")


def split_csv(value: str) -> List[str]:
    return [part.strip().lower() for part in value.split(",") if part.strip()]


def leading_int(value: Any) -> int:
    """Integer at the start of ``value`` (``"20min"`` -> 20); 0 when there is none."""
    match = re.match(r"\s*(-?\d+)", str(value)) if value is not None else None
    return int(match.group(1)) if match else 0


# Pipeline stages

def apply_filters(records: Iterable[T], predicates: Iterable[Predicate]) -> List[T]:
    predicates = list(predicates)
    return [record for record in records if all(p(record) for p in predicates)]


def sort_records(records: Iterable[T], sort_keys: Dict[str, Callable[[T], Any]], sorting: SortSpec) -> List[T]:
    # sorted() is stable in both directions, so ties keep source order
    return sorted(records, key=sort_keys[sorting.key], reverse=sorting.descending)


def paginate(records: Sequence[T], limit: int) -> Page:
    return Page(items=list(records[:limit]), limit=limit, total=len(records))


# Aggregates

def first_max(records: Iterable[T], key: Callable[[T], Any]) -> Optional[T]:
    best = None
    for record in records:
        if best is None or key(record) > key(best):
            best = record
    return best


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0
    return sum(values) / len(values)
