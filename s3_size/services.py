from __future__ import annotations
"""Business logic for talking to the S3 listing API."""
import logging
import threading
from typing import Callable, Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from .models import ObjectDescriptor, PageResult
from .profiles import StorageConfig

LOGGER = logging.getLogger(__name__)

MAX_PAGE_SIZE = 1000


class ListingError(RuntimeError):
    """Raised when a bucket or object listing cannot be completed.

    ``objects`` holds whatever was collected before the failure and
    ``pages_fetched`` how many pages succeeded.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        bucket: str | None = None,
        region: str | None = None,
        objects: list[ObjectDescriptor] | None = None,
        pages_fetched: int = 0,
    ):
        super().__init__(message)
        self.operation = operation
        self.bucket = bucket
        self.region = region
        self.objects: list[ObjectDescriptor] = list(objects or [])
        self.pages_fetched = pages_fetched

    def __str__(self) -> str:
        context = [f"operation={self.operation}"]
        if self.bucket:
            context.append(f"bucket={self.bucket}")
        if self.region:
            context.append(f"region={self.region}")
        return f"{super().__str__()} ({', '.join(context)})"


class TransportError(ListingError):
    """Raised when the SDK fails with a network, auth or service error."""


class S3StorageService:
    """Lists buckets and object pages independent of any report logic."""

    def __init__(
        self,
        config: StorageConfig,
        *,
        client_factory: Callable[..., object] | None = None,
        page_size: int | None = None,
    ):
        self._config = config
        self._client_factory = client_factory or boto3.client
        self._page_size = min(page_size, MAX_PAGE_SIZE) if page_size else None
        self._clients: dict[str, object] = {}
        self._clients_lock = threading.Lock()

    @property
    def config(self) -> StorageConfig:
        return self._config

    def list_buckets(self, region: str | None = None) -> list[str]:
        """Return the available bucket names.

        Raises:
            TransportError: when unable to connect or list buckets.
        """
        region = region or self._config.region
        try:
            response = self._client_for(region).list_buckets()
        except (ClientError, BotoCoreError) as exc:
            raise TransportError(str(exc), operation="ListBuckets", region=region) from exc
        return [bucket["Name"] for bucket in response.get("Buckets", [])]

    def list_objects_page(
        self,
        bucket: str,
        region: str | None = None,
        marker: Optional[str] = None,
    ) -> PageResult:
        """Fetch one page of objects, starting after ``marker`` when given."""

        region = region or self._config.region
        list_params: dict[str, object] = {"Bucket": bucket}
        if marker:
            list_params["Marker"] = marker
        if self._page_size:
            list_params["MaxKeys"] = self._page_size

        try:
            response = self._client_for(region).list_objects(**list_params)
        except (ClientError, BotoCoreError) as exc:
            raise TransportError(
                str(exc),
                operation="ListObjects",
                bucket=bucket,
                region=region,
            ) from exc

        objects = [
            ObjectDescriptor(key=obj["Key"], size=int(obj.get("Size", 0)))
            for obj in response.get("Contents", [])
        ]
        return PageResult(
            objects=objects,
            is_truncated=bool(response.get("IsTruncated", False)),
            continuation_marker=response.get("NextMarker"),
        )

    def _client_for(self, region: str):
        with self._clients_lock:
            client = self._clients.get(region)
            if client is None:
                client = self._create_client(region)
                self._clients[region] = client
            return client

    def _create_client(self, region: str):
        LOGGER.debug("Creating S3 client for region '%s'", region)
        params: dict[str, object] = {
            "region_name": region,
            "config": Config(signature_version="s3v4"),
        }
        endpoint_url = self._config.endpoint_url
        profile = self._config.profile
        if profile is not None:
            endpoint_url = endpoint_url or profile.endpoint_url or None
            params["aws_access_key_id"] = profile.access_key
            params["aws_secret_access_key"] = profile.secret_key
        if endpoint_url:
            params["endpoint_url"] = endpoint_url
        return self._client_factory("s3", **params)
