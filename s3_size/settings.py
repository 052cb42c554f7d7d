from __future__ import annotations
"""Application settings persistence helpers."""

from dataclasses import asdict, dataclass
import json
from pathlib import Path

from .profiles import DEFAULT_REGION
from .services import MAX_PAGE_SIZE


@dataclass
class AppSettings:
    """Simple container for persistent report settings."""

    region: str = DEFAULT_REGION
    max_pages: int = 100_000
    page_size: int = MAX_PAGE_SIZE
    max_workers: int = 1
    fail_fast: bool = True
    last_profile: str = ""


def _int_setting(value: object, default: int, *, minimum: int, maximum: int | None = None) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if number < minimum:
        return default
    if maximum is not None and number > maximum:
        return maximum
    return number


class SettingsStorage:
    """JSON-backed persistence for :class:`AppSettings`."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".pys3size_settings.json"
        self._path = Path(storage_path)

    def load(self) -> AppSettings:
        if not self._path.exists():
            return AppSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return AppSettings()
        if not isinstance(data, dict):
            return AppSettings()

        defaults = AppSettings()
        region = data.get("region")
        if not isinstance(region, str) or not region.strip():
            region = defaults.region
        fail_fast = data.get("fail_fast", defaults.fail_fast)
        if not isinstance(fail_fast, bool):
            fail_fast = defaults.fail_fast
        last_profile = data.get("last_profile", "")
        if not isinstance(last_profile, str):
            last_profile = ""
        return AppSettings(
            region=region.strip(),
            # 0 disables the page ceiling.
            max_pages=_int_setting(data.get("max_pages"), defaults.max_pages, minimum=0),
            page_size=_int_setting(
                data.get("page_size"), defaults.page_size, minimum=1, maximum=MAX_PAGE_SIZE
            ),
            max_workers=_int_setting(data.get("max_workers"), defaults.max_workers, minimum=1),
            fail_fast=fail_fast,
            last_profile=last_profile,
        )

    def save(self, settings: AppSettings) -> None:
        payload = asdict(settings)
        payload["max_pages"] = max(int(settings.max_pages), 0)
        payload["page_size"] = min(max(int(settings.page_size), 1), MAX_PAGE_SIZE)
        payload["max_workers"] = max(int(settings.max_workers), 1)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError:
            # Persist best-effort; ignore filesystem issues.
            return
