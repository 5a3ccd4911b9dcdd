"""
tests/sizing/test_models.py - 데이터 모델 테스트
"""

import json
from datetime import datetime, timezone

from sizing.models import (
    AccountInfo,
    AccountRollup,
    QueryPage,
    QueryRow,
    ResourceCount,
    SizingResult,
    dedupe_scopes,
)


class TestDedupeScopes:
    def test_preserves_first_occurrence_order(self):
        assert dedupe_scopes(["r2", "r1", "r2", "r3", "r1"]) == ("r2", "r1", "r3")

    def test_drops_empty(self):
        assert dedupe_scopes(["", "r1", ""]) == ("r1",)


class TestQueryPage:
    def test_has_more(self):
        assert QueryPage(next_token="abc").has_more is True
        assert QueryPage(next_token="").has_more is False
        assert QueryPage().has_more is False


class TestResourceCount:
    def test_consistent_with_both_axes(self):
        rc = ResourceCount("t", "T", total_count=5, by_location={"r1": 5}, by_account={"a": 2, "b": 3})
        assert rc.is_consistent()

    def test_inconsistent_location_axis(self):
        rc = ResourceCount("t", "T", total_count=5, by_location={"r1": 4})
        assert not rc.is_consistent()

    def test_inconsistent_when_count_without_axes(self):
        rc = ResourceCount("t", "T", total_count=3)
        assert not rc.is_consistent()

    def test_empty_is_consistent(self):
        assert ResourceCount("t", "T").is_consistent()

    def test_top_locations_sorted_by_count_then_name(self):
        rc = ResourceCount("t", "T", total_count=10, by_location={"b": 3, "a": 3, "c": 1, "d": 3})
        assert rc.top_locations() == [("a", 3), ("b", 3), ("d", 3)]
        assert rc.top_locations(1) == [("a", 3)]

    def test_is_partial(self):
        rc = ResourceCount("t", "T")
        assert rc.is_partial is False
        rc.failed_scopes.append("r1")
        assert rc.is_partial is True

    def test_to_dict_keys(self):
        rc = ResourceCount("ec2:instance", "EC2 Instances", "Compute", 2, {"r1": 2}, {"a": 2})
        data = rc.to_dict()

        assert data["type"] == "ec2:instance"
        assert data["total_resources"] == 2
        assert data["by_location"] == {"r1": 2}
        assert data["truncated"] is False


class TestSizingResult:
    def _result(self) -> SizingResult:
        rc = ResourceCount("t", "T", "Compute", 2, {"r1": 2}, {"a": 2})
        return SizingResult(
            provider="AWS",
            timestamp=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            resource_counts=[rc],
            account_counts=[AccountInfo("a", "Account A")],
            total_resources=2,
            total_accounts=1,
            account_rollups=[AccountRollup("a", "Account A", resource_count=2, resources_by_type={"t": 2})],
        )

    def test_get(self):
        result = self._result()
        assert result.get("t").total_count == 2
        assert result.get("missing") is None

    def test_is_consistent(self):
        result = self._result()
        assert result.is_consistent()
        result.total_resources = 3
        assert not result.is_consistent()

    def test_to_dict_is_json_serializable(self):
        data = json.loads(json.dumps(self._result().to_dict()))

        assert data["provider"] == "AWS"
        assert data["timestamp"] == "2024-05-01T12:00:00+00:00"
        assert data["accounts"][0]["resources_by_type"] == {"t": 2}
        assert data["account_counts"] == [{"id": "a", "name": "Account A", "status": ""}]
        assert data["counting_policy"] == "best-effort"
        assert data["complete"] is True


class TestQueryRow:
    def test_optional_fields(self):
        row = QueryRow(None, None, 1)
        assert row.scope is None
        assert row.account_id is None
