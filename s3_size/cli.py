from __future__ import annotations
"""Command-line interface for bucket size reports."""
import argparse
from dataclasses import replace
from getpass import getpass
import logging
import sys
from typing import Callable, Sequence

from keyring.errors import KeyringError

from .controller import SizeReportController
from .formatting import format_summary_line, format_total_line, load_package_info
from .profiles import ConnectionProfile, ProfileNotFoundError
from .services import ListingError
from .settings import AppSettings, SettingsStorage
from .summary import BucketSummaryError

ControllerFactory = Callable[[AppSettings], SizeReportController]

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    info = load_package_info()
    parser = argparse.ArgumentParser(prog="pys3size", description=info.summary)
    parser.add_argument("--version", action="version", version=f"%(prog)s {info.version or 'unknown'}")
    parser.add_argument("--region", help="S3 region (defaults to the saved setting)")
    parser.add_argument("--profile", help="saved connection profile to authenticate with")
    parser.add_argument("--endpoint-url", help="custom S3-compatible endpoint")
    parser.add_argument("--settings", help="path of the JSON settings file")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="log more detail (repeat for SDK logs)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("buckets", help="list bucket names")

    bucket_parser = subparsers.add_parser("bucket", help="summarize a single bucket")
    bucket_parser.add_argument("name", help="bucket name")
    bucket_parser.add_argument("--max-pages", type=int, help="page ceiling, 0 for none")

    all_parser = subparsers.add_parser("all", help="summarize every bucket and print the total")
    all_parser.add_argument("--workers", type=int, help="buckets summarized in parallel")
    all_parser.add_argument("--max-pages", type=int, help="page ceiling per bucket, 0 for none")
    all_parser.add_argument(
        "--keep-going",
        action="store_true",
        help="skip buckets that fail instead of stopping at the first failure",
    )

    profile_parser = subparsers.add_parser("profile", help="manage connection profiles")
    profile_commands = profile_parser.add_subparsers(dest="profile_command", required=True)
    profile_commands.add_parser("list", help="show saved profiles")
    add_parser = profile_commands.add_parser("add", help="create or replace a profile")
    add_parser.add_argument("name")
    add_parser.add_argument("--access-key", required=True)
    add_parser.add_argument("--secret-key", help="prompted for when omitted")
    add_parser.add_argument("--endpoint-url", dest="profile_endpoint_url", default="")
    add_parser.add_argument("--region", dest="profile_region", default="")
    remove_parser = profile_commands.add_parser("remove", help="delete a profile")
    remove_parser.add_argument("name")
    return parser


def configure_logging(verbosity: int) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbosity else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    if verbosity < 2:
        for name in ("botocore", "boto3", "urllib3"):
            logging.getLogger(name).setLevel(logging.WARNING)


def _apply_overrides(settings: AppSettings, args: argparse.Namespace) -> AppSettings:
    overrides = {}
    if getattr(args, "max_pages", None) is not None:
        overrides["max_pages"] = max(args.max_pages, 0)
    if getattr(args, "workers", None) is not None:
        overrides["max_workers"] = max(args.workers, 1)
    if getattr(args, "keep_going", False):
        overrides["fail_fast"] = False
    return replace(settings, **overrides)


def main(
    argv: Sequence[str] | None = None,
    *,
    controller_factory: ControllerFactory | None = None,
) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    settings_storage = SettingsStorage(args.settings)
    saved_settings = settings_storage.load()
    settings = _apply_overrides(saved_settings, args)
    factory = controller_factory or (lambda current: SizeReportController(settings=current))
    controller = factory(settings)

    if args.command == "profile":
        try:
            return _run_profile_command(controller, args)
        except KeyringError as exc:
            LOGGER.error("Keychain unavailable: %s", exc)
            return 1

    profile_name = args.profile or saved_settings.last_profile or None
    try:
        controller.connect(
            region=args.region,
            profile_name=profile_name,
            endpoint_url=args.endpoint_url,
        )
    except ProfileNotFoundError as exc:
        LOGGER.error("%s", exc)
        return 1
    except KeyringError as exc:
        LOGGER.error("Keychain unavailable: %s", exc)
        return 1
    if args.profile and args.profile != saved_settings.last_profile:
        settings_storage.save(replace(saved_settings, last_profile=args.profile))

    try:
        if args.command == "buckets":
            for name in controller.list_buckets():
                print(name)
        elif args.command == "bucket":
            print(controller.summarize_bucket(args.name))
        else:
            return _report_all(controller)
    except BucketSummaryError as exc:
        LOGGER.error("%s", exc)
        LOGGER.error("Partial result before the failure: %s", exc.partial)
        if exc.fleet is not None and exc.fleet.summaries:
            LOGGER.error(
                "Stopped early; completed buckets: %s",
                format_total_line(exc.fleet.bucket_count, exc.fleet.total_size),
            )
        return 1
    except ListingError as exc:
        LOGGER.error("%s", exc)
        return 1
    return 0


def _report_all(controller: SizeReportController) -> int:
    fleet = controller.summarize_all(
        on_summary=lambda index, summary: print(format_summary_line(index, summary)),
    )
    print(format_total_line(fleet.bucket_count, fleet.total_size))
    for failure in fleet.failures:
        LOGGER.error("%s", failure)
        LOGGER.error("Partial result before the failure: %s", failure.partial)
    return 0 if fleet.complete else 1


def _run_profile_command(controller: SizeReportController, args: argparse.Namespace) -> int:
    if args.profile_command == "list":
        for profile in controller.list_profiles():
            print(f"{profile.name}\t{profile.region or '-'}\t{profile.endpoint_url or '-'}")
        return 0
    if args.profile_command == "add":
        secret_key = args.secret_key or getpass(f"Secret key for '{args.name}': ")
        controller.save_profile(
            ConnectionProfile(
                name=args.name,
                access_key=args.access_key,
                secret_key=secret_key,
                endpoint_url=args.profile_endpoint_url,
                region=args.profile_region,
            )
        )
        LOGGER.info("Saved profile '%s'", args.name)
        return 0
    try:
        controller.delete_profile(args.name)
    except ProfileNotFoundError as exc:
        LOGGER.error("%s", exc)
        return 1
    LOGGER.info("Removed profile '%s'", args.name)
    return 0
