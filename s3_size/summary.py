from __future__ import annotations
"""Size aggregation for single buckets and whole regions."""
from concurrent.futures import ThreadPoolExecutor, as_completed
import logging
from typing import Callable, Iterable, Protocol, Union

from .models import BucketSummary, FleetSummary, ObjectDescriptor
from .pagination import PageFetcher, collect_objects
from .services import ListingError

LOGGER = logging.getLogger(__name__)

SummaryFn = Callable[[int, BucketSummary], None]


class BucketLister(Protocol):
    def list_buckets(self, region: str | None = None) -> list[str]: ...


class BucketSummaryError(ListingError):
    """Raised when a bucket cannot be fully summarized.

    ``partial`` summarizes the objects listed before the failure. When a
    fleet run stops on this error, ``fleet`` holds the buckets completed so far.
    """

    def __init__(self, message: str, *, partial: BucketSummary, **kwargs):
        super().__init__(message, **kwargs)
        self.partial = partial
        self.fleet: FleetSummary | None = None


def aggregate(objects: Iterable[ObjectDescriptor]) -> tuple[int, int]:
    """Return ``(total_size, object_count)`` for ``objects``."""
    total_size = 0
    object_count = 0
    for obj in objects:
        if obj.size < 0:
            raise ValueError(f"Object '{obj.key}' has a negative size")
        total_size += obj.size
        object_count += 1
    return total_size, object_count


class BucketSummarizer:
    """Collects every object of a bucket and totals their sizes."""

    def __init__(self, fetcher: PageFetcher, *, max_pages: int | None = None):
        self._fetcher = fetcher
        self._max_pages = max_pages

    def summarize(self, bucket_name: str, region: str) -> BucketSummary:
        try:
            objects = collect_objects(
                self._fetcher,
                bucket_name,
                region,
                max_pages=self._max_pages,
            )
        except ListingError as exc:
            total_size, object_count = aggregate(exc.objects)
            partial = BucketSummary(
                name=bucket_name,
                region=region,
                total_size=total_size,
                object_count=object_count,
            )
            raise BucketSummaryError(
                f"Unable to summarize bucket '{bucket_name}': {exc.args[0]}",
                partial=partial,
                operation=exc.operation,
                bucket=bucket_name,
                region=region,
                objects=exc.objects,
                pages_fetched=exc.pages_fetched,
            ) from exc

        total_size, object_count = aggregate(objects)
        return BucketSummary(
            name=bucket_name,
            region=region,
            total_size=total_size,
            object_count=object_count,
        )


BucketResult = Union[BucketSummary, BucketSummaryError]


class FleetSummarizer:
    """Summarizes every bucket returned by the bucket lister."""

    def __init__(
        self,
        lister: BucketLister,
        bucket_summarizer: BucketSummarizer,
        *,
        max_workers: int = 1,
        fail_fast: bool = True,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._lister = lister
        self._bucket_summarizer = bucket_summarizer
        self._max_workers = max_workers
        self._fail_fast = fail_fast

    def summarize_all(self, region: str, *, on_summary: SummaryFn | None = None) -> FleetSummary:
        """Summarize all buckets of ``region`` in listing order.

        With ``fail_fast`` the first :class:`BucketSummaryError` propagates and
        no further bucket is started; otherwise failures are recorded on the
        returned :class:`FleetSummary` and do not count towards its total.

        When fail-fast stops the run, the raised error's ``fleet`` holds the
        buckets that did complete. With several workers, buckets already
        running when the failure happens still finish and are kept, and the
        error raised is the failing bucket that comes first in listing order,
        which is not necessarily the first failure to occur.
        """
        bucket_names = self._lister.list_buckets(region)
        LOGGER.info("Processing %d buckets", len(bucket_names))

        fleet = FleetSummary(region=region)
        try:
            if self._max_workers == 1 or len(bucket_names) < 2:
                for name in bucket_names:
                    self._record(fleet, self._summarize_one(name, region), on_summary)
            else:
                self._summarize_parallel(bucket_names, region, fleet, on_summary)
        except BucketSummaryError as exc:
            exc.fleet = fleet
            raise
        return fleet

    def _summarize_one(self, name: str, region: str) -> BucketResult:
        try:
            return self._bucket_summarizer.summarize(name, region)
        except BucketSummaryError as exc:
            if self._fail_fast:
                raise
            LOGGER.error("Skipping bucket '%s': %s", name, exc)
            return exc

    def _summarize_parallel(
        self,
        bucket_names: list[str],
        region: str,
        fleet: FleetSummary,
        on_summary: SummaryFn | None,
    ) -> None:
        results: list[BucketResult | None] = [None] * len(bucket_names)
        failures: dict[int, BucketSummaryError] = {}
        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            futures = {
                executor.submit(self._summarize_one, name, region): index
                for index, name in enumerate(bucket_names)
            }
            for future in as_completed(futures):
                if future.cancelled():
                    continue
                index = futures[future]
                try:
                    results[index] = future.result()
                except BucketSummaryError as exc:
                    failures[index] = exc
                    for pending in futures:
                        pending.cancel()

        for result in results:
            if result is not None:
                self._record(fleet, result, on_summary)
        if failures:
            raise failures[min(failures)]

    @staticmethod
    def _record(fleet: FleetSummary, result: BucketResult, on_summary: SummaryFn | None) -> None:
        if isinstance(result, BucketSummaryError):
            fleet.failures.append(result)
            return
        fleet.summaries.append(result)
        fleet.total_size += result.total_size
        if on_summary:
            on_summary(fleet.bucket_count, result)
