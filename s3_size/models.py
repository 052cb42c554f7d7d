from __future__ import annotations
"""Data models representing S3 listings and size summaries."""
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from .formatting import readable_bytes

if TYPE_CHECKING:  # pragma: no cover
    from .summary import BucketSummaryError


@dataclass(frozen=True)
class ObjectDescriptor:
    """A single listed object: its key and size in bytes."""

    key: str
    size: int = 0


@dataclass
class PageResult:
    """Represents a single page returned by a ``ListObjects`` call.

    ``continuation_marker`` is the provider's ``NextMarker``, if any; the
    cursor for the next request is chosen by ``pagination.next_marker``.
    """

    objects: list[ObjectDescriptor] = field(default_factory=list)
    is_truncated: bool = False
    continuation_marker: Optional[str] = None


@dataclass
class BucketSummary:
    """Size and object count of one bucket."""

    name: str
    region: str
    total_size: int = 0
    object_count: int = 0

    def __str__(self) -> str:
        return (
            f"Bucket(name={self.name}, region={self.region}, "
            f"size={readable_bytes(self.total_size)}, objects={self.object_count})"
        )


@dataclass
class FleetSummary:
    """Summaries for every bucket of a region, in listing order."""

    region: str
    summaries: list[BucketSummary] = field(default_factory=list)
    failures: list["BucketSummaryError"] = field(default_factory=list)
    total_size: int = 0

    @property
    def bucket_count(self) -> int:
        return len(self.summaries)

    @property
    def complete(self) -> bool:
        return not self.failures
