from __future__ import annotations
"""Controller wiring configuration, the storage service and the summarizers."""

import logging
from typing import Callable

from .models import BucketSummary, FleetSummary
from .profiles import ConnectionProfile, ProfileStorage, StorageConfig
from .services import S3StorageService
from .settings import AppSettings
from .summary import BucketSummarizer, FleetSummarizer, SummaryFn

ServiceFactory = Callable[[StorageConfig, AppSettings], S3StorageService]

LOGGER = logging.getLogger(__name__)


class NotConnectedError(RuntimeError):
    """Raised when a listing is attempted before connecting."""


def _default_service_factory(config: StorageConfig, settings: AppSettings) -> S3StorageService:
    return S3StorageService(config, page_size=settings.page_size)


class SizeReportController:
    """Coordinates report requests with the :class:`S3StorageService`."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        storage: ProfileStorage | None = None,
        service_factory: ServiceFactory | None = None,
    ):
        self._settings = settings or AppSettings()
        self._storage = storage or ProfileStorage()
        self._service_factory = service_factory or _default_service_factory
        self._service: S3StorageService | None = None
        self._config: StorageConfig | None = None

    @property
    def is_connected(self) -> bool:
        return self._service is not None

    @property
    def config(self) -> StorageConfig | None:
        return self._config

    def connect(
        self,
        *,
        region: str | None = None,
        profile_name: str | None = None,
        endpoint_url: str | None = None,
    ) -> StorageConfig:
        """Build the storage configuration; no request is sent yet.

        The region is taken from the argument, then the profile, then settings.
        """
        profile = self._storage.get(profile_name) if profile_name else None
        config = StorageConfig(
            region=region or (profile.region if profile else "") or self._settings.region,
            profile=profile,
            endpoint_url=endpoint_url or None,
        )
        LOGGER.debug(
            "Using region '%s' with %s credentials",
            config.region,
            f"profile '{profile.name}'" if profile else "default",
        )
        self._service = self._service_factory(config, self._settings)
        self._config = config
        return config

    def list_buckets(self) -> list[str]:
        service = self._require_connection()
        return service.list_buckets(self._config.region)

    def summarize_bucket(self, bucket_name: str) -> BucketSummary:
        service = self._require_connection()
        return self._bucket_summarizer(service).summarize(bucket_name, self._config.region)

    def summarize_all(
        self,
        *,
        max_workers: int | None = None,
        fail_fast: bool | None = None,
        on_summary: SummaryFn | None = None,
    ) -> FleetSummary:
        service = self._require_connection()
        fleet_summarizer = FleetSummarizer(
            service,
            self._bucket_summarizer(service),
            max_workers=max_workers or self._settings.max_workers,
            fail_fast=self._settings.fail_fast if fail_fast is None else fail_fast,
        )
        return fleet_summarizer.summarize_all(self._config.region, on_summary=on_summary)

    def list_profiles(self) -> list[ConnectionProfile]:
        return self._storage.load()

    def save_profile(self, profile: ConnectionProfile) -> None:
        self._storage.upsert(profile)

    def delete_profile(self, name: str) -> None:
        self._storage.remove(name)

    def _bucket_summarizer(self, service: S3StorageService) -> BucketSummarizer:
        return BucketSummarizer(service, max_pages=self._settings.max_pages or None)

    def _require_connection(self) -> S3StorageService:
        if self._service is None:
            raise NotConnectedError("Not connected to S3")
        return self._service
