"""
Tests for ConflictResolver strategies and the resolution lifecycle.
"""

from datetime import datetime, timezone

import pytest

from metastore.conflict_resolver import ConflictResolver
from metastore.exceptions import ConflictError, NotFoundError, StrategyPreconditionError, ValidationError
from metastore.types import ConflictState, ResolutionStrategy, VersionRecord

T0 = datetime(2024, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def resolver(services):
    return services.conflict_resolver


@pytest.fixture
def versions(services, make_request):
    """
    File f1 with three versions written one clock tick apart.
    """
    return [
        services.tracking_service.record_change(make_request(checksum=f"c{i}")).version
        for i in range(1, 4)
    ]


def _ids(records):
    return [v.version_id for v in records]


class TestSelectionStrategies:
    def test_last_modified_picks_latest_timestamp(self, resolver, versions):
        resolution = resolver.resolve_conflict("f1", _ids(versions[:2]), "LAST_MODIFIED")

        assert resolution.resolved is True
        assert resolution.state == ConflictState.RESOLVED
        assert resolution.resulting_version_id == versions[1].version_id

    def test_first_modified_picks_earliest_timestamp(self, resolver, versions):
        resolution = resolver.resolve_conflict("f1", _ids(versions), ResolutionStrategy.FIRST_MODIFIED)
        assert resolution.resulting_version_id == versions[0].version_id

    def test_force_latest_version_picks_highest_number(self, resolver, versions):
        resolution = resolver.resolve_conflict(
            "f1", [versions[2].version_id, versions[0].version_id], "FORCE_LATEST_VERSION"
        )
        assert resolution.resulting_version_id == versions[2].version_id

    def test_selection_does_not_touch_history(self, resolver, services, versions):
        resolver.resolve_conflict("f1", _ids(versions), "LAST_MODIFIED")

        assert services.metadata_service.get("f1").current_version_number == 3
        assert len(services.version_service.get_history("f1")) == 3

    def test_same_input_same_winner(self, resolver, versions):
        first = resolver.resolve_conflict("f1", _ids(versions), "LAST_MODIFIED")
        second = resolver.resolve_conflict("f1", list(reversed(_ids(versions))), "LAST_MODIFIED")

        assert first.resulting_version_id == second.resulting_version_id
        assert first.id != second.id

    def test_resolution_is_persisted(self, resolver, versions):
        resolution = resolver.resolve_conflict("f1", _ids(versions[:2]), "LAST_MODIFIED")

        stored = resolver.get_resolution(resolution.id)
        assert stored.file_id == "f1"
        assert stored.conflicting_version_ids == _ids(versions[:2])
        assert stored.resolution_strategy == ResolutionStrategy.LAST_MODIFIED
        assert stored.resolved is True
        assert stored.resulting_version_id == resolution.resulting_version_id
        assert [r.id for r in resolver.list_resolutions("f1")] == [resolution.id]


class TestTieBreak:
    @pytest.fixture
    def tied(self, services):
        repo = services.conflict_resolver.version_repo
        repo.save(VersionRecord("b-version", "f1", 2, T0, "cb"))
        repo.save(VersionRecord("a-version", "f1", 1, T0, "ca"))

    @pytest.mark.parametrize("strategy", ["LAST_MODIFIED", "FIRST_MODIFIED"])
    def test_equal_timestamps_pick_smallest_id(self, resolver, tied, strategy):
        resolution = resolver.resolve_conflict("f1", ["b-version", "a-version"], strategy)
        assert resolution.resulting_version_id == "a-version"

    def test_force_latest_ignores_timestamps(self, resolver, tied):
        resolution = resolver.resolve_conflict("f1", ["a-version", "b-version"], "FORCE_LATEST_VERSION")
        assert resolution.resulting_version_id == "b-version"


class TestInputValidation:
    @pytest.mark.parametrize("strategy", list(ResolutionStrategy))
    def test_single_version_rejected_for_every_strategy(self, resolver, versions, strategy):
        with pytest.raises(ValidationError):
            resolver.resolve_conflict("f1", [versions[0].version_id], strategy)

        assert resolver.list_resolutions("f1") == []

    def test_duplicate_ids_count_once(self, resolver, versions):
        with pytest.raises(ValidationError):
            resolver.resolve_conflict("f1", [versions[0].version_id] * 2, "KEEP_BOTH")

    @pytest.mark.parametrize("ids", [None, [], "v1,v2", ["v1", ""]])
    def test_malformed_id_lists_rejected(self, resolver, ids):
        with pytest.raises(ValidationError):
            resolver.resolve_conflict("f1", ids, "LAST_MODIFIED")

    def test_unknown_strategy_rejected(self, resolver, versions):
        with pytest.raises(ValidationError):
            resolver.resolve_conflict("f1", _ids(versions), "KEEP_LONGEST")

    def test_blank_file_id_rejected(self, resolver, versions):
        with pytest.raises(ValidationError):
            resolver.resolve_conflict(" ", _ids(versions), "LAST_MODIFIED")

    def test_unknown_version_not_found(self, resolver, versions):
        with pytest.raises(NotFoundError):
            resolver.resolve_conflict("f1", [versions[0].version_id, "missing"], "LAST_MODIFIED")

        assert resolver.list_resolutions("f1") == []

    def test_version_of_another_file_rejected(self, resolver, services, versions, make_request):
        other = services.tracking_service.record_change(make_request(file_id="f2")).version

        with pytest.raises(ValidationError):
            resolver.resolve_conflict("f1", [versions[0].version_id, other.version_id], "LAST_MODIFIED")

    def test_get_unknown_resolution(self, resolver):
        with pytest.raises(NotFoundError):
            resolver.get_resolution("missing")


class TestKeepBothAndManualMerge:
    def test_keep_both_resolves_without_winner(self, resolver, services, versions):
        resolution = resolver.resolve_conflict("f1", _ids(versions[:2]), "KEEP_BOTH")

        assert resolution.resolved is True
        assert resolution.resulting_version_id is None
        assert len(services.version_service.get_history("f1")) == 3

    def test_manual_merge_awaits_decision(self, resolver, versions):
        resolution = resolver.resolve_conflict("f1", _ids(versions[:2]), "MANUAL_MERGE")

        assert resolution.resolved is False
        assert resolution.awaiting_manual is True
        assert resolution.state == ConflictState.AWAITING_MANUAL
        assert resolver.get_resolution(resolution.id).state == ConflictState.AWAITING_MANUAL

    def test_manual_merge_requires_exactly_two(self, resolver, versions):
        with pytest.raises(StrategyPreconditionError) as exc_info:
            resolver.resolve_conflict("f1", _ids(versions), "MANUAL_MERGE")

        assert isinstance(exc_info.value, ValidationError)
        assert isinstance(exc_info.value, ConflictError)


class TestMerge:
    def test_merge_appends_version_with_latest_checksum(self, resolver, services, make_request):
        first = services.tracking_service.record_change(make_request(checksum="c1")).version
        second = services.tracking_service.record_change(make_request(checksum="c2")).version

        resolution = resolver.resolve_conflict("f1", [second.version_id, first.version_id], "MERGE")

        history = services.version_service.get_history("f1")
        assert [v.version_number for v in history] == [1, 2, 3]
        merged = history[-1]
        assert merged.checksum == "c2"
        assert merged.additional_details.startswith("Merged from versions 1, 2")
        assert resolution.resolved is True
        assert resolution.resulting_version_id == merged.version_id

        metadata = services.metadata_service.get("f1")
        assert metadata.current_version_number == 3
        assert metadata.checksum == "c2"

    def test_merge_requires_latest_version(self, resolver, services, versions):
        with pytest.raises(StrategyPreconditionError):
            resolver.resolve_conflict("f1", _ids(versions[:2]), "MERGE")

        assert len(services.version_service.get_history("f1")) == 3
        assert services.metadata_service.get("f1").current_version_number == 3
        assert resolver.list_resolutions("f1") == []

    def test_history_stays_gapless_after_merge(self, resolver, services, versions, make_request):
        resolver.resolve_conflict("f1", _ids(versions[1:]), "MERGE")
        services.tracking_service.record_change(make_request(checksum="c9"))

        history = services.version_service.get_history("f1")
        assert [v.version_number for v in history] == [1, 2, 3, 4, 5]
        assert services.metadata_service.get("f1").current_version_number == 5


class TestDecide:
    def _version(self, version_id, number, second):
        return VersionRecord(version_id, "f1", number, T0.replace(second=second), f"c{number}")

    def test_decide_is_pure(self):
        records = [self._version("v1", 1, 5), self._version("v2", 2, 1)]

        decision = ConflictResolver.decide(ResolutionStrategy.LAST_MODIFIED, records)
        assert decision.outcome == ConflictState.RESOLVED
        assert decision.winner.version_id == "v1"

        decision = ConflictResolver.decide(ResolutionStrategy.FORCE_LATEST_VERSION, records)
        assert decision.winner.version_id == "v2"

    def test_merge_source_is_most_recent(self):
        records = [self._version("v1", 1, 30), self._version("v2", 2, 10)]
        assert ConflictResolver.decide(ResolutionStrategy.MERGE, records).winner.version_id == "v1"

    def test_keep_both_needs_two(self):
        with pytest.raises(StrategyPreconditionError):
            ConflictResolver.decide(ResolutionStrategy.KEEP_BOTH, [self._version("v1", 1, 0)])


class TestResolutionEvents:
    def test_resolved_event(self, resolver, sink, versions):
        sink.events.clear()
        resolution = resolver.resolve_conflict("f1", _ids(versions[:2]), "KEEP_BOTH")

        assert sink.kinds() == ["conflict.resolved"]
        assert sink.events[0][1]["id"] == resolution.id

    def test_awaiting_manual_event(self, resolver, sink, versions):
        sink.events.clear()
        resolver.resolve_conflict("f1", _ids(versions[:2]), "MANUAL_MERGE")

        assert sink.kinds() == ["conflict.awaiting_manual"]
