"""
tests/sizing/test_aggregator.py - ResultAggregator 테스트
"""

import threading
from datetime import datetime, timezone

import pytest
from conftest import batched_type, direct_type

from sizing.aggregator import ResultAggregator
from sizing.models import AccountInfo, ResourceCount


def _count(type_key: str, category: str = "Compute", **by_location) -> ResourceCount:
    return ResourceCount(
        type_key=type_key,
        display_name=type_key,
        category=category,
        total_count=sum(by_location.values()),
        by_location=dict(sorted(by_location.items())),
    )


@pytest.fixture
def catalog():
    return [direct_type("A", "Compute"), direct_type("B", "Storage"), batched_type("C", "Compute")]


class TestMerge:
    def test_unknown_type_rejected(self, catalog):
        aggregator = ResultAggregator(catalog)

        with pytest.raises(ValueError):
            aggregator.merge(_count("Z", r1=1))

    def test_duplicate_type_rejected(self, catalog):
        aggregator = ResultAggregator(catalog)
        aggregator.merge(_count("A", r1=1))

        with pytest.raises(ValueError):
            aggregator.merge(_count("A", r1=2))

    def test_merge_after_build_is_ignored(self, catalog, accounts):
        aggregator = ResultAggregator(catalog)
        aggregator.merge(_count("A", r1=1))
        result = aggregator.build("Test", accounts)

        assert aggregator.merge(_count("B", r1=5)) is False
        assert [rc.type_key for rc in result.resource_counts] == ["A"]
        assert result.total_resources == 1

    def test_concurrent_merges(self, accounts):
        catalog = [direct_type(f"T{i}") for i in range(50)]
        aggregator = ResultAggregator(catalog)

        threads = [threading.Thread(target=aggregator.merge, args=(_count(f"T{i}", r1=i),)) for i in range(50)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        result = aggregator.build("Test", accounts)
        assert result.total_resources == sum(range(50))
        assert [rc.type_key for rc in result.resource_counts] == [f"T{i}" for i in range(50)]


class TestBuild:
    def test_catalog_order_and_totals(self, catalog, accounts):
        aggregator = ResultAggregator(catalog)
        aggregator.merge(_count("C", r2=4))
        aggregator.merge(_count("A", r1=1, r2=2))

        result = aggregator.build("Test", accounts)

        assert [rc.type_key for rc in result.resource_counts] == ["A", "C"]
        assert result.total_resources == 7
        assert result.total_accounts == 2
        assert result.is_consistent()

    def test_region_and_category_views(self, catalog, accounts):
        aggregator = ResultAggregator(catalog)
        aggregator.merge(_count("A", "Compute", r1=1, r2=2))
        aggregator.merge(_count("B", "Storage", r2=3))
        aggregator.merge(_count("C", "Compute", r3=1))

        result = aggregator.build("Test", accounts)

        assert result.resources_by_region == {"r1": 1, "r2": 5, "r3": 1}
        assert result.resources_by_category == {"Compute": 4, "Storage": 3}

    def test_zero_category_omitted(self, catalog, accounts):
        aggregator = ResultAggregator(catalog)
        aggregator.merge(_count("A", r1=1))

        result = aggregator.build("Test", accounts)

        assert "Storage" not in result.resources_by_category

    def test_account_rollups_in_account_order(self, catalog):
        accounts = [AccountInfo("acc-2", "Second"), AccountInfo("acc-1", "First")]
        count = _count("A", r1=5)
        count.by_account = {"acc-1": 2, "acc-2": 3}
        aggregator = ResultAggregator(catalog)
        aggregator.merge(count)

        result = aggregator.build("Test", accounts)

        assert [r.id for r in result.account_rollups] == ["acc-2", "acc-1"]
        assert result.account_rollups[0].resource_count == 3
        assert result.account_rollups[1].resources_by_type == {"A": 2}

    def test_unlisted_account_appended(self, catalog):
        count = _count("A", r1=2)
        count.by_account = {"zzz": 1, "acc-1": 1}
        aggregator = ResultAggregator(catalog)
        aggregator.merge(count)

        result = aggregator.build("Test", [AccountInfo("acc-1", "First")])

        assert [r.id for r in result.account_rollups] == ["acc-1", "zzz"]
        assert result.total_accounts == 1

    def test_failed_partial_truncated_lists(self, catalog, accounts):
        aggregator = ResultAggregator(catalog)
        partial = _count("A", r1=1)
        partial.failed_scopes = ["r2"]
        truncated = _count("C", r1=1)
        truncated.truncated = True
        aggregator.merge(partial)
        aggregator.merge(truncated)
        aggregator.record_failure("B")

        result = aggregator.build("Test", accounts, complete=False)

        assert result.failed_types == ["B"]
        assert result.partial_types == ["A"]
        assert result.truncated_types == ["C"]
        assert result.complete is False

    def test_timestamp_and_duration(self, catalog, accounts):
        ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
        aggregator = ResultAggregator(catalog)
        aggregator.merge(_count("A", r1=1))

        result = aggregator.build("Test", accounts, timestamp=ts, duration_ms=12.5)

        assert result.timestamp == ts
        assert result.duration_ms == 12.5
        assert result.counting_policy == "best-effort"
