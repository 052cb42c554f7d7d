import tempfile
import unittest
from pathlib import Path

from s3_size.controller import NotConnectedError, SizeReportController
from s3_size.models import ObjectDescriptor, PageResult
from s3_size.profiles import ConnectionProfile, ProfileNotFoundError, ProfileStorage
from s3_size.settings import AppSettings
from s3_size.summary import BucketSummaryError


class FakeKeychain:
    def __init__(self):
        self.secrets = {}

    def get_secret(self, profile_name):
        return self.secrets.get(profile_name, "")

    def set_secret(self, profile_name, secret_key):
        self.secrets[profile_name] = secret_key

    def delete_secret(self, profile_name):
        self.secrets.pop(profile_name, None)


class FakeService:
    def __init__(self, config, buckets=None, truncate_forever=False):
        self.config = config
        self.buckets = buckets if buckets is not None else {"bucket-one": [10, 20], "bucket-two": [30]}
        self.truncate_forever = truncate_forever
        self.list_buckets_calls = []
        self.page_calls = []

    def list_buckets(self, region=None):
        self.list_buckets_calls.append(region)
        return list(self.buckets)

    def list_objects_page(self, bucket, region=None, marker=None):
        self.page_calls.append((bucket, region, marker))
        if self.truncate_forever:
            index = len(self.page_calls)
            return PageResult(objects=[ObjectDescriptor(f"k{index}", 1)], is_truncated=True)
        objects = [ObjectDescriptor(f"{bucket}-{i}", size) for i, size in enumerate(self.buckets[bucket])]
        return PageResult(objects=objects, is_truncated=False)


class SizeReportControllerTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.storage = ProfileStorage(Path(self._tmp.name) / "connections.json", keychain=FakeKeychain())
        self.services = []
        self.settings = AppSettings(region="us-west-1", max_pages=5)
        self.service_kwargs = {}

    def _service_factory(self, config, settings):
        service = FakeService(config, **self.service_kwargs)
        self.services.append(service)
        return service

    def _controller(self, settings=None):
        return SizeReportController(
            settings=settings or self.settings,
            storage=self.storage,
            service_factory=self._service_factory,
        )

    def test_operations_require_connection(self):
        controller = self._controller()

        with self.assertRaises(NotConnectedError):
            controller.list_buckets()
        with self.assertRaises(NotConnectedError):
            controller.summarize_bucket("bucket-one")
        with self.assertRaises(NotConnectedError):
            controller.summarize_all()

    def test_connect_uses_settings_region_by_default(self):
        controller = self._controller()

        config = controller.connect()

        self.assertTrue(controller.is_connected)
        self.assertEqual("us-west-1", config.region)
        self.assertIsNone(config.profile)
        self.assertIs(config, self.services[0].config)

    def test_connect_prefers_explicit_region_then_profile_region(self):
        self.storage.upsert(ConnectionProfile(name="work", access_key="a", secret_key="s", region="eu-west-1"))
        controller = self._controller()

        self.assertEqual("eu-west-1", controller.connect(profile_name="work").region)
        self.assertEqual("ap-south-1", controller.connect(region="ap-south-1", profile_name="work").region)
        self.assertEqual("s", controller.config.profile.secret_key)

    def test_connect_with_unknown_profile(self):
        controller = self._controller()

        with self.assertRaises(ProfileNotFoundError):
            controller.connect(profile_name="missing")
        self.assertFalse(controller.is_connected)

    def test_list_buckets_passes_region(self):
        controller = self._controller()
        controller.connect(region="eu-central-1")

        self.assertEqual(["bucket-one", "bucket-two"], controller.list_buckets())
        self.assertEqual(["eu-central-1"], self.services[0].list_buckets_calls)

    def test_summarize_bucket(self):
        controller = self._controller()
        controller.connect()

        summary = controller.summarize_bucket("bucket-one")

        self.assertEqual(30, summary.total_size)
        self.assertEqual(2, summary.object_count)
        self.assertEqual("us-west-1", summary.region)

    def test_summarize_all_totals_every_bucket(self):
        controller = self._controller()
        controller.connect()
        seen = []

        fleet = controller.summarize_all(on_summary=lambda index, summary: seen.append(index))

        self.assertEqual(60, fleet.total_size)
        self.assertEqual([1, 2], seen)

    def test_page_ceiling_comes_from_settings(self):
        self.service_kwargs = {"truncate_forever": True}
        controller = self._controller()
        controller.connect()

        with self.assertRaises(BucketSummaryError) as ctx:
            controller.summarize_bucket("bucket-one")

        self.assertEqual(5, len(self.services[0].page_calls))
        self.assertEqual(5, ctx.exception.partial.object_count)

    def test_profiles_round_trip(self):
        controller = self._controller()
        controller.save_profile(ConnectionProfile(name="work", access_key="a", secret_key="s"))

        self.assertEqual(["work"], [profile.name for profile in controller.list_profiles()])

        controller.delete_profile("work")
        self.assertEqual([], controller.list_profiles())


if __name__ == "__main__":
    unittest.main()
