"""Paginated list value objects: filter sets, cache entries and keyed records."""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Protocol, Type, TypeVar

from pulsadash.domain.models.common import FilterSignature, filter_signature

R = TypeVar("R", bound="KeyedRecord")


class KeyedRecord(Protocol):
    """A listed record with a stable unique key that survives serialization."""

    @property
    def record_key(self) -> str:
        ...

    def to_dict(self) -> Dict[str, Any]:
        ...

    @classmethod
    def from_dict(cls: Type[R], data: Dict[str, Any]) -> R:
        ...


class ListFilters(Protocol):
    """Anything that can be reduced to a filter signature."""

    @property
    def signature(self) -> FilterSignature:
        ...


@dataclass(frozen=True)
class MemberFilters:
    """Filter combination of the member list screen."""
    search_term: str = ""
    status_filter: str = "all"
    level_filter: str = ""
    verification_filter: str = "all"

    @property
    def signature(self) -> FilterSignature:
        return filter_signature(
            (self.search_term, self.status_filter, self.level_filter, self.verification_filter)
        )


@dataclass
class CacheEntry(Generic[R]):
    """One cached list state for a single filter signature."""
    records: List[R] = field(default_factory=list)
    total: int = 0
    has_more: bool = False
    next_cursor: Optional[str] = None
    captured_at: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "records": [record.to_dict() for record in self.records],
            "total": self.total,
            "has_more": self.has_more,
            "next_cursor": self.next_cursor,
            "captured_at": self.captured_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], record_type: Type[R]) -> "CacheEntry[R]":
        """Rebuilds an entry from its stored form.

        Raises:
            KeyError, TypeError, ValueError: If the stored form is malformed.
        """
        next_cursor = data.get("next_cursor")
        return cls(
            records=[record_type.from_dict(item) for item in data["records"]],
            total=int(data["total"]),
            has_more=bool(data["has_more"]),
            next_cursor=str(next_cursor) if next_cursor is not None else None,
            captured_at=float(data["captured_at"]),
        )
