"""
tests/sizing/test_counter.py - ResourceCounter 테스트
"""

import logging

import pytest
from botocore.exceptions import ClientError
from conftest import FakeBackend, batched_type, direct_type, endless_pages, make_pages, messages

from sizing.config import SizingConfig
from sizing.counter import BATCH_SCOPE, ResourceCounter
from sizing.exceptions import CountCancelledError, ScopeQueryError, TypeCountError
from sizing.models import UNKNOWN_LOCATION, QueryPage, QueryRow
from sizing.parallel import CancelToken, ErrorCategory, ErrorCollector


def _client_error(code: str = "AccessDeniedException") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "denied"}}, "GetResources")


class TestDirectStrategy:
    """DIRECT: 스코프별 조회"""

    def test_counts_per_scope(self):
        backend = FakeBackend(
            {
                ("typeA", "r1"): make_pages([QueryRow("r1", "acc-1", 3)]),
                ("typeA", "r2"): make_pages([QueryRow("r2", "acc-1", 5)]),
            }
        )
        result = ResourceCounter().count(direct_type("typeA"), ("r1", "r2"), backend.query)

        assert result.total_count == 8
        assert result.by_location == {"r1": 3, "r2": 5}
        assert result.by_account == {"acc-1": 8}
        assert result.is_consistent()

    def test_queries_one_scope_at_a_time(self):
        backend = FakeBackend()
        ResourceCounter().count(direct_type("typeA"), ("r1", "r2", "r3"), backend.query)

        scopes = [c[1] for c in backend.calls_for("typeA")]
        assert scopes == [("r1",), ("r2",), ("r3",)]

    def test_zero_scope_is_absent(self):
        backend = FakeBackend(
            {
                ("typeA", "r1"): make_pages([QueryRow("r1", "acc-1", 4)]),
                ("typeA", "r2"): make_pages([QueryRow("r2", "acc-1", 0)]),
            }
        )
        result = ResourceCounter().count(direct_type("typeA"), ("r1", "r2"), backend.query)

        assert result.by_location == {"r1": 4}
        assert "r2" not in result.by_location

    def test_location_is_queried_scope(self):
        """DIRECT 행의 위치는 조회한 스코프로 귀속"""
        backend = FakeBackend({("typeA", "r1"): make_pages([QueryRow(None, "acc-1", 2)])})
        result = ResourceCounter().count(direct_type("typeA"), ("r1",), backend.query)

        assert result.by_location == {"r1": 2}

    def test_paginates_until_token_empty(self):
        backend = FakeBackend(
            {
                ("typeA", "r1"): make_pages(
                    [QueryRow("r1", "acc-1", 100)],
                    [QueryRow("r1", "acc-1", 100)],
                    [QueryRow("r1", "acc-1", 7)],
                )
            }
        )
        result = ResourceCounter().count(direct_type("typeA"), ("r1",), backend.query)

        assert result.total_count == 207
        assert result.pages == 3
        assert [c[2] for c in backend.calls_for("typeA")] == [None, "1", "2"]
        assert result.truncated is False

    def test_failed_scope_is_skipped(self, capture_logger):
        """실패한 스코프는 제외하고 나머지로 집계 (best-effort)"""
        backend = FakeBackend(
            {
                ("typeA", "r1"): make_pages([QueryRow("r1", "acc-1", 3)]),
                ("typeA", "r2"): [_client_error()],
            }
        )
        errors = ErrorCollector(capture_logger)
        counter = ResourceCounter(errors=errors, logger=capture_logger)

        result = counter.count(direct_type("typeA"), ("r1", "r2"), backend.query)

        assert result.total_count == 3
        assert result.by_location == {"r1": 3}
        assert result.failed_scopes == ["r2"]
        assert result.is_partial
        assert len(errors.errors) == 1
        assert errors.errors[0].scope == "r2"
        assert errors.errors[0].category == ErrorCategory.ACCESS_DENIED
        assert any("best-effort" in m for m in messages(capture_logger))

    def test_scope_failing_mid_pagination_contributes_nothing(self):
        backend = FakeBackend(
            {
                ("typeA", "r1"): [
                    QueryPage(rows=(QueryRow("r1", "acc-1", 50),), next_token="1"),
                    RuntimeError("connection reset"),
                ],
                ("typeA", "r2"): make_pages([QueryRow("r2", "acc-1", 2)]),
            }
        )
        result = ResourceCounter().count(direct_type("typeA"), ("r1", "r2"), backend.query)

        assert result.total_count == 2
        assert result.by_location == {"r2": 2}
        assert result.failed_scopes == ["r1"]

    def test_all_scopes_failed_raises(self):
        backend = FakeBackend(
            {
                ("typeA", "r1"): [RuntimeError("boom-1")],
                ("typeA", "r2"): [RuntimeError("boom-2")],
            }
        )

        with pytest.raises(TypeCountError) as exc_info:
            ResourceCounter().count(direct_type("typeA"), ("r1", "r2"), backend.query)

        assert exc_info.value.type_key == "typeA"
        assert isinstance(exc_info.value.cause, ScopeQueryError)
        assert exc_info.value.cause.scope == "r2"

    def test_direct_page_cap(self, capture_logger):
        backend = FakeBackend({("typeA", "r1"): endless_pages([QueryRow("r1", "acc-1", 1)])})
        counter = ResourceCounter(SizingConfig(max_direct_pages=4), logger=capture_logger)

        result = counter.count(direct_type("typeA"), ("r1",), backend.query)

        assert len(backend.calls_for("typeA")) == 4
        assert result.total_count == 4
        assert result.truncated is True


class TestBatchedStrategy:
    """BATCHED: 전체 스코프 일괄 조회"""

    def test_single_query_spans_all_scopes(self):
        backend = FakeBackend()
        ResourceCounter().count(batched_type("typeB"), ("s1", "s2", "s3"), backend.query)

        assert backend.calls_for("typeB") == [("typeB", ("s1", "s2", "s3"), None)]

    def test_aggregates_rows_by_location_and_account(self):
        backend = FakeBackend(
            {
                ("typeB", "*"): make_pages(
                    [QueryRow("r1", "sub-1", 2), QueryRow("r2", "sub-1", 0)],
                    [QueryRow("r1", "sub-2", 4), QueryRow("r3", "sub-2", 1)],
                )
            }
        )
        result = ResourceCounter().count(batched_type("typeB"), ("sub-1", "sub-2"), backend.query)

        assert result.total_count == 7
        assert result.by_location == {"r1": 6, "r3": 1}
        assert result.by_account == {"sub-1": 2, "sub-2": 5}
        assert result.is_consistent()

    def test_zero_rows_are_not_stored(self):
        backend = FakeBackend({("typeB", "*"): make_pages([QueryRow("r1", "s", 2), QueryRow("r2", "s", 0)])})
        result = ResourceCounter().count(batched_type("typeB"), ("s",), backend.query)

        assert result.by_location == {"r1": 2}

    def test_stops_at_exactly_max_pages(self, capture_logger):
        """페이지 상한에서 정확히 멈추고 경고"""
        backend = FakeBackend({("typeB", "*"): endless_pages([QueryRow("r1", "s", 1)])})
        counter = ResourceCounter(logger=capture_logger)

        result = counter.count(batched_type("typeB"), ("s",), backend.query)

        assert len(backend.calls_for("typeB")) == 10
        assert result.pages == 10
        assert result.total_count == 10
        assert result.truncated is True
        assert any("최대 페이지(10)" in m for m in messages(capture_logger))

    def test_custom_max_pages(self):
        backend = FakeBackend({("typeB", "*"): endless_pages()})
        counter = ResourceCounter(SizingConfig(max_pagination_pages=3))

        result = counter.count(batched_type("typeB"), ("s",), backend.query)

        assert len(backend.calls_for("typeB")) == 3
        assert result.truncated is True

    def test_not_truncated_when_pages_end_at_cap(self):
        pages = make_pages(*[[QueryRow("r1", "s", 1)] for _ in range(10)])
        backend = FakeBackend({("typeB", "*"): pages})

        result = ResourceCounter().count(batched_type("typeB"), ("s",), backend.query)

        assert result.pages == 10
        assert result.truncated is False

    def test_stale_token_warns_once_and_stops_at_cap(self, capture_logger):
        backend = FakeBackend(
            {("typeB", "*"): lambda token: QueryPage(rows=(QueryRow("r1", "s", 1),), next_token="same")}
        )
        counter = ResourceCounter(logger=capture_logger)

        result = counter.count(batched_type("typeB"), ("s",), backend.query)

        stale = [m for m in messages(capture_logger) if "진행하지 않음" in m]
        assert len(stale) == 1
        assert result.pages == 10
        assert result.truncated is True

    def test_page_failure_drops_type(self):
        backend = FakeBackend(
            {
                ("typeB", "*"): [
                    QueryPage(rows=(QueryRow("r1", "s", 5),), next_token="1"),
                    _client_error("ThrottlingException"),
                ]
            }
        )
        errors = ErrorCollector()

        with pytest.raises(TypeCountError) as exc_info:
            ResourceCounter(errors=errors).count(batched_type("typeB"), ("s",), backend.query)

        assert "page 2" in str(exc_info.value)
        assert errors.errors[0].scope == BATCH_SCOPE
        assert errors.errors[0].category == ErrorCategory.THROTTLING

    def test_missing_location_goes_to_unknown(self):
        backend = FakeBackend({("typeB", "*"): make_pages([QueryRow(None, "s", 3), QueryRow("r1", "s", 1)])})
        result = ResourceCounter().count(batched_type("typeB"), ("s",), backend.query)

        assert result.by_location == {UNKNOWN_LOCATION: 3, "r1": 1}
        assert result.is_consistent()

    def test_missing_account_drops_account_axis(self, capture_logger):
        backend = FakeBackend({("typeB", "*"): make_pages([QueryRow("r1", "s", 3), QueryRow("r2", None, 2)])})
        result = ResourceCounter(logger=capture_logger).count(batched_type("typeB"), ("s",), backend.query)

        assert result.total_count == 5
        assert result.by_location == {"r1": 3, "r2": 2}
        assert result.by_account == {}
        assert result.is_consistent()

    def test_negative_count_fails_type(self):
        backend = FakeBackend({("typeB", "*"): make_pages([QueryRow("r1", "s", -1)])})

        with pytest.raises(TypeCountError):
            ResourceCounter().count(batched_type("typeB"), ("s",), backend.query)

    def test_maps_are_key_sorted(self):
        backend = FakeBackend(
            {("typeB", "*"): make_pages([QueryRow("zeta", "s2", 1), QueryRow("alpha", "s1", 1)])}
        )
        result = ResourceCounter().count(batched_type("typeB"), ("s1", "s2"), backend.query)

        assert list(result.by_location) == ["alpha", "zeta"]
        assert list(result.by_account) == ["s1", "s2"]


class TestCounterGuards:
    """입력 검증 / 취소"""

    def test_empty_scopes_raise_value_error(self, fake_backend):
        with pytest.raises(ValueError):
            ResourceCounter().count(direct_type("typeA"), (), fake_backend.query)

    def test_cancelled_before_first_page(self, fake_backend):
        cancel = CancelToken()
        cancel.cancel()

        with pytest.raises(CountCancelledError):
            ResourceCounter(cancel=cancel).count(batched_type("typeB"), ("s",), fake_backend.query)

        assert fake_backend.calls == []

    def test_cancel_is_not_recorded_as_scope_failure(self):
        cancel = CancelToken()

        def cancel_then_page(token):
            cancel.cancel()
            return QueryPage(rows=(QueryRow("r1", "a", 1),), next_token="1")

        backend = FakeBackend({("typeA", "r1"): cancel_then_page})
        errors = ErrorCollector()

        with pytest.raises(CountCancelledError):
            ResourceCounter(errors=errors, cancel=cancel).count(direct_type("typeA"), ("r1", "r2"), backend.query)

        assert not errors.has_errors

    def test_debug_log_on_completion(self, capture_logger, fake_backend):
        ResourceCounter(logger=capture_logger).count(direct_type("typeA"), ("r1",), fake_backend.query)

        assert any("카운팅 완료: typeA" in m for m in messages(capture_logger, logging.DEBUG))
