import pytest

from ingestion.pipeline import IngestPipeline
from ingestion.trigger import extract_bearer_token, handle_ingest_trigger, is_authorized
from ingestion.warehouse import WarehouseReader

from conftest import NOW


class TestAuthorization:
    @pytest.mark.parametrize(
        "header,token",
        [
            ("Bearer abc123", "abc123"),
            ("bearer   abc123  ", "abc123"),
            ("abc123", "abc123"),
            ("Bearer ", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract_bearer_token(self, header, token):
        assert extract_bearer_token(header) == token

    def test_matching_secret(self):
        assert is_authorized("Bearer s3cret", "s3cret")

    def test_wrong_or_missing_secret(self):
        assert not is_authorized("Bearer nope", "s3cret")
        assert not is_authorized(None, "s3cret")
        assert not is_authorized("Bearer s3cret", None)
        assert not is_authorized("Bearer s3cret", "")


class TestHandleIngestTrigger:
    @pytest.fixture
    def build(self, nashville, store, settings):
        def build_pipeline():
            return IngestPipeline(WarehouseReader(nashville), store, settings, clock=lambda: NOW)

        return build_pipeline

    def test_unauthorized(self, build, store):
        status, body = handle_ingest_trigger("Bearer wrong", "s3cret", build)

        assert status == 401
        assert body == {"error": "Unauthorized"}
        assert store.regions == {}

    def test_success_then_skip(self, build):
        status, body = handle_ingest_trigger("Bearer s3cret", "s3cret", build)
        assert status == 200
        assert body["status"] == "success"
        assert body["stats"]["workoutsSeeded"] == 1

        status, body = handle_ingest_trigger("Bearer s3cret", "s3cret", build)
        assert status == 200
        assert body["status"] == "skipped"
        assert body["lastIngestedAt"] == "2025-06-02T12:00:00.000Z"

    def test_force_bypasses_guard(self, build):
        handle_ingest_trigger("Bearer s3cret", "s3cret", build)

        status, body = handle_ingest_trigger("Bearer s3cret", "s3cret", build, force=True)

        assert status == 200
        assert body["status"] == "success"

    def test_pipeline_error_is_a_500(self, build, nashville):
        nashville.fail_on.add("region_scan")

        status, body = handle_ingest_trigger("Bearer s3cret", "s3cret", build)

        assert status == 500
        assert body["status"] == "error"
        assert "region_scan" in body["message"]

    def test_build_failure_is_a_500(self):
        def broken():
            raise RuntimeError("no warehouse")

        status, body = handle_ingest_trigger("Bearer s3cret", "s3cret", broken)

        assert status == 500
        assert body == {"status": "error", "message": "no warehouse"}
