from __future__ import annotations
"""Formatting helpers for size reports."""
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, metadata, version
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .models import BucketSummary

DIST_NAME = "pys3size"
UNIT = 1024
# Binary prefixes from KiB up to EiB; sizes of 1024 EiB and above stay in EiB.
UNIT_PREFIXES = "KMGTPE"


@dataclass(frozen=True)
class PackageInfo:
    name: str
    version: str
    summary: str
    homepage: str | None


def load_package_info(dist_name: str = DIST_NAME) -> PackageInfo:
    try:
        distribution_metadata = metadata(dist_name)
        package_version = version(dist_name)
    except PackageNotFoundError:
        return PackageInfo(
            name=dist_name,
            version="",
            summary="Report object counts and sizes of S3 buckets.",
            homepage=None,
        )
    homepage = distribution_metadata.get("Home-page")
    for entry in distribution_metadata.get_all("Project-URL") or []:
        label, _, link = entry.partition(",")
        if label.strip().lower() == "homepage" and not homepage:
            homepage = link.strip()
    return PackageInfo(
        name=distribution_metadata.get("Name") or dist_name,
        version=package_version,
        summary=distribution_metadata.get("Summary") or "",
        homepage=homepage or None,
    )


def readable_bytes(size: int) -> str:
    """Convert a byte count to a human-readable string such as ``1.5 KiB``."""
    if size < 0:
        raise ValueError("size cannot be negative")
    if size < UNIT:
        return f"{size} B"
    divisor, exponent = UNIT, 0
    quotient = size // UNIT
    while quotient >= UNIT and exponent < len(UNIT_PREFIXES) - 1:
        divisor *= UNIT
        exponent += 1
        quotient //= UNIT
    return f"{size / divisor:.1f} {UNIT_PREFIXES[exponent]}iB"


def format_summary_line(index: int, summary: "BucketSummary") -> str:
    return f"{index}) {summary}"


def format_total_line(bucket_count: int, total_size: int) -> str:
    return f"Total Size of all {bucket_count} buckets is: {readable_bytes(total_size)}"
