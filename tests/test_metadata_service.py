"""
Unit tests for MetadataService create/update rules.
"""

from datetime import timedelta

import pytest

from metastore.exceptions import NotFoundError, ValidationError
from metastore.types import MetadataChangeRequest, MetadataStatus, Ownership


@pytest.fixture
def service(services):
    return services.metadata_service


class TestCreate:
    def test_first_write_creates_version_one(self, service, make_request):
        change = service.apply(make_request())

        assert change.status == MetadataStatus.CREATED
        assert change.content_changed is True
        assert change.previous is None
        assert change.metadata.current_version_number == 1
        assert change.metadata.creation_timestamp == change.metadata.last_modified_timestamp

    def test_explicit_version_one_accepted(self, service, make_request):
        change = service.apply(make_request(version_number=1))
        assert change.metadata.current_version_number == 1

    def test_new_file_with_higher_version_rejected(self, service, make_request):
        with pytest.raises(ValidationError):
            service.apply(make_request(version_number=2))

        assert not service.exists("f1")


class TestUpdate:
    def test_update_increments_version_and_keeps_creation(self, service, make_request):
        created = service.apply(make_request(checksum="c1")).metadata
        change = service.apply(make_request(checksum="c2"))

        assert change.status == MetadataStatus.UPDATED
        assert change.content_changed is True
        assert change.previous == created
        assert change.metadata.current_version_number == 2
        assert change.metadata.creation_timestamp == created.creation_timestamp
        assert change.metadata.last_modified_timestamp > created.last_modified_timestamp

    def test_mismatched_version_number_is_corrected(self, service, make_request):
        service.apply(make_request(checksum="c1"))
        change = service.apply(make_request(checksum="c2", version_number=7))

        assert change.metadata.current_version_number == 2

    def test_same_checksum_is_a_no_op_content_change(self, service, make_request):
        service.apply(make_request(checksum="c1"))
        change = service.apply(make_request(checksum="c1"))

        assert change.status == MetadataStatus.UPDATED
        assert change.content_changed is False
        assert change.metadata.current_version_number == 2

    def test_path_and_ownership_are_replaced(self, service, make_request):
        service.apply(make_request())
        change = service.apply(make_request(path="/data/renamed.txt", owner="bob_1", group="admins"))

        assert change.metadata.path == "/data/renamed.txt"
        assert change.metadata.ownership == Ownership("bob_1", "admins")

    def test_last_modified_never_decreases(self, service, clock, make_request):
        first = service.apply(make_request(checksum="c1")).metadata
        clock.rewind(timedelta(hours=1))

        second = service.apply(make_request(checksum="c2")).metadata

        assert second.last_modified_timestamp == first.last_modified_timestamp
        assert second.creation_timestamp == first.creation_timestamp


class TestValidation:
    def test_null_request_rejected(self, service):
        with pytest.raises(ValidationError):
            service.apply(None)

    @pytest.mark.parametrize("overrides", [
        {"file_id": ""},
        {"file_id": "   "},
        {"checksum": ""},
        {"path": "relative/path"},
        {"path": "/data/../secret"},
        {"path": "/data/"},
        {"version_number": 0},
        {"version_number": -3},
    ])
    def test_invalid_requests_rejected(self, service, overrides, make_request):
        with pytest.raises(ValidationError):
            service.apply(make_request(**overrides))

    def test_missing_ownership_rejected(self, service):
        request = MetadataChangeRequest(file_id="f1", path="/a", checksum="c1", ownership=None)

        with pytest.raises(ValidationError):
            service.apply(request)

    def test_invalid_update_leaves_record_untouched(self, service, make_request):
        service.apply(make_request(checksum="c1"))

        with pytest.raises(ValidationError):
            service.apply(make_request(checksum="c2", path="bad"))

        assert service.get("f1").current_version_number == 1
        assert service.get("f1").checksum == "c1"


class TestRetrieval:
    def test_get_unknown_raises_not_found(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            service.get("missing")

        assert "missing" in str(exc_info.value)

    def test_exists(self, service, make_request):
        assert service.exists("f1") is False
        service.apply(make_request())
        assert service.exists("f1") is True

    def test_create_or_update_returns_metadata(self, service, make_request):
        metadata = service.create_or_update(make_request())
        assert service.get("f1") == metadata

    def test_create_or_update_alone_appends_no_version(self, services, make_request):
        services.metadata_service.create_or_update(make_request())

        assert services.metadata_service.get("f1").current_version_number == 1
        assert services.version_service.get_history("f1") == []
