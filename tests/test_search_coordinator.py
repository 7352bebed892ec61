"""Tests for SearchCoordinator: length gate, local filtering and stale results."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from core.config import AppSettings
from core.domain.errors import HttpStatusError, NetworkError
from core.domain.models import SearchResultSet, SearchState
from core.services.search_coordinator import SearchCoordinator, SearchHooks, filter_records


class FakeSearchApi:
    def __init__(self, results: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.results = results or {}
        self.calls: list[str] = []
        self.errors: dict[str, Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}

    async def search_users(self, term: str) -> list[dict[str, Any]]:
        self.calls.append(term)
        gate = self.gates.get(term)
        if gate is not None:
            await gate.wait()
        if term in self.errors:
            raise self.errors[term]
        return self.results.get(term, [])

    async def fetch_user(self, url: str) -> dict[str, Any]:
        raise NotImplementedError

    async def fetch_repos(self, url: str) -> list[dict[str, Any]]:
        raise NotImplementedError


USERS = [{"id": 1, "login": "octocat"}, {"id": 2, "login": "torvalds"}, {"id": 3, "login": "OctoDog"}]


def _coordinator(api: FakeSearchApi, settings: AppSettings, **kwargs: Any) -> SearchCoordinator:
    return SearchCoordinator(api, settings, **kwargs)


class TestFilterRecords:
    def test_substring_match(self):
        records = [{"login": "octocat"}, {"login": "torvalds"}]
        assert filter_records(records, "oct") == [{"login": "octocat"}]

    def test_case_insensitive(self):
        assert [r["id"] for r in filter_records(USERS, "OCTO")] == [1, 3]

    def test_missing_or_non_string_field_never_matches(self):
        records = [{"id": 1}, {"login": None}, {"login": 42}, {"login": "abc"}]
        assert filter_records(records, "abc") == [{"login": "abc"}]

    def test_is_pure(self):
        records = [{"login": "octocat"}]
        filter_records(records, "zzz")
        assert records == [{"login": "octocat"}]


class TestLengthGate:
    @pytest.mark.asyncio
    async def test_short_queries_never_hit_network(self, settings):
        api = FakeSearchApi()
        coordinator = _coordinator(api, settings)
        for text in ("o", "oc"):
            outcome = await coordinator.on_query_changed(text)
            assert outcome.remote_issued is False
            assert outcome.displayed is None
        assert api.calls == []

    @pytest.mark.asyncio
    async def test_exactly_three_chars_triggers_one_remote_call(self, settings):
        api = FakeSearchApi({"oct": USERS})
        coordinator = _coordinator(api, settings)
        outcome = await coordinator.on_query_changed("oct")
        assert api.calls == ["oct"]
        assert outcome.remote_issued is True
        assert outcome.state is SearchState.IDLE
        assert outcome.displayed is not None
        assert outcome.displayed.logins() == ["octocat", "torvalds", "OctoDog"]
        assert coordinator.authoritative is not None and coordinator.authoritative.remote

    @pytest.mark.asyncio
    async def test_longer_text_filters_locally(self, settings):
        api = FakeSearchApi({"oct": USERS})
        coordinator = _coordinator(api, settings)
        await coordinator.on_query_changed("oct")
        outcome = await coordinator.on_query_changed("octo")
        assert api.calls == ["oct"]
        assert outcome.remote_issued is False
        assert outcome.displayed.logins() == ["octocat", "OctoDog"]
        outcome = await coordinator.on_query_changed("octoc")
        assert outcome.displayed.logins() == ["octocat"]

    @pytest.mark.asyncio
    async def test_filter_uses_authoritative_set_not_previous_filter(self, settings):
        api = FakeSearchApi({"oct": USERS})
        coordinator = _coordinator(api, settings)
        await coordinator.on_query_changed("oct")
        await coordinator.on_query_changed("octoc")
        outcome = await coordinator.on_query_changed("octo")
        assert outcome.displayed.logins() == ["octocat", "OctoDog"]

    @pytest.mark.asyncio
    async def test_filter_without_authoritative_set_leaves_display_empty(self, settings):
        api = FakeSearchApi()
        outcome = await _coordinator(api, settings).on_query_changed("octocat")
        assert api.calls == []
        assert outcome.displayed is None

    @pytest.mark.asyncio
    async def test_backspacing_to_three_queries_again(self, settings):
        api = FakeSearchApi({"oct": USERS})
        coordinator = _coordinator(api, settings)
        for text in ("o", "oc", "oct", "octo", "oct"):
            await coordinator.on_query_changed(text)
        assert api.calls == ["oct", "oct"]

    @pytest.mark.asyncio
    async def test_threshold_is_configurable(self, settings):
        api = FakeSearchApi({"oc": USERS})
        coordinator = _coordinator(api, settings.model_copy(update={"search_min_length": 2}))
        await coordinator.on_query_changed("oc")
        assert api.calls == ["oc"]


class TestScenarios:
    @pytest.mark.asyncio
    async def test_abc_then_abcz_filters_to_empty(self, settings):
        api = FakeSearchApi({"abc": [{"id": 1, "login": "abcd"}]})
        coordinator = _coordinator(api, settings)
        outcome = await coordinator.on_query_changed("abc")
        assert len(coordinator.authoritative) == 1
        assert outcome.displayed.records == ({"id": 1, "login": "abcd"},)

        outcome = await coordinator.on_query_changed("abcz")
        assert api.calls == ["abc"]
        assert outcome.displayed.records == ()

    @pytest.mark.asyncio
    async def test_abc_then_abcd_keeps_the_record(self, settings):
        api = FakeSearchApi({"abc": [{"id": 1, "login": "abcd"}]})
        coordinator = _coordinator(api, settings)
        await coordinator.on_query_changed("abc")
        outcome = await coordinator.on_query_changed("ABCD")
        assert outcome.displayed.logins() == ["abcd"]

    @pytest.mark.asyncio
    async def test_clearing_text_restores_full_set(self, settings):
        api = FakeSearchApi({"oct": USERS})
        coordinator = _coordinator(api, settings)
        await coordinator.on_query_changed("oct")
        await coordinator.on_query_changed("octoc")
        outcome = await coordinator.on_query_changed("")
        assert outcome.state is SearchState.IDLE
        assert len(outcome.displayed) == 3
        assert api.calls == ["oct"]

    @pytest.mark.asyncio
    async def test_remote_results_are_unique_by_id(self, settings):
        api = FakeSearchApi({"oct": [{"id": 1, "login": "octocat"}, {"id": 1, "login": "octocat"}, {"id": 2, "login": "octo"}]})
        outcome = await _coordinator(api, settings).on_query_changed("oct")
        assert outcome.displayed.logins() == ["octocat", "octo"]


class TestErrors:
    @pytest.mark.asyncio
    async def test_failure_keeps_last_good_display(self, settings):
        api = FakeSearchApi({"oct": USERS})
        api.errors["tor"] = HttpStatusError(403, url="https://api.github.com/search/users?q=tor")
        errors: list[str] = []
        coordinator = _coordinator(api, settings, hooks=SearchHooks(on_error=errors.append))

        good = await coordinator.on_query_changed("oct")
        outcome = await coordinator.on_query_changed("tor")

        assert outcome.state is SearchState.ERROR
        assert "HTTP 403" in (outcome.error or "")
        assert outcome.displayed == good.displayed
        assert coordinator.authoritative == good.displayed
        assert errors == [outcome.error]

    @pytest.mark.asyncio
    async def test_success_after_failure_clears_error(self, settings):
        api = FakeSearchApi({"oct": USERS})
        api.errors["tor"] = NetworkError("offline")
        coordinator = _coordinator(api, settings)
        await coordinator.on_query_changed("tor")
        outcome = await coordinator.on_query_changed("oct")
        assert outcome.error is None
        assert coordinator.last_error is None


class TestStaleResults:
    @pytest.mark.asyncio
    async def test_stale_remote_result_is_discarded(self, settings):
        api = FakeSearchApi({"abc": [{"id": 1, "login": "abcd"}], "xyz": [{"id": 9, "login": "xyzzy"}]})
        api.gates["abc"] = asyncio.Event()
        coordinator = _coordinator(api, settings)

        slow = asyncio.create_task(coordinator.on_query_changed("abc"))
        while "abc" not in api.calls:
            await asyncio.sleep(0)
        fresh = await coordinator.on_query_changed("xyz")
        api.gates["abc"].set()
        stale = await slow

        assert stale.stale is True
        assert fresh.displayed.logins() == ["xyzzy"]
        assert coordinator.displayed.logins() == ["xyzzy"]
        assert coordinator.authoritative.query == "xyz"

    @pytest.mark.asyncio
    async def test_stale_failure_does_not_set_error(self, settings):
        api = FakeSearchApi({"xyz": [{"id": 9, "login": "xyzzy"}]})
        api.gates["abc"] = asyncio.Event()
        api.errors["abc"] = NetworkError("offline")
        coordinator = _coordinator(api, settings)

        slow = asyncio.create_task(coordinator.on_query_changed("abc"))
        while "abc" not in api.calls:
            await asyncio.sleep(0)
        await coordinator.on_query_changed("xyz")
        api.gates["abc"].set()
        outcome = await slow

        assert outcome.stale is True
        assert coordinator.state is SearchState.IDLE
        assert coordinator.last_error is None

    @pytest.mark.asyncio
    async def test_text_typed_during_query_is_applied_on_arrival(self, settings):
        api = FakeSearchApi({"oct": USERS})
        api.gates["oct"] = asyncio.Event()
        coordinator = _coordinator(api, settings)

        pending = asyncio.create_task(coordinator.on_query_changed("oct"))
        while "oct" not in api.calls:
            await asyncio.sleep(0)
        typed = await coordinator.on_query_changed("octoc")
        assert typed.displayed is None
        api.gates["oct"].set()
        await pending

        assert api.calls == ["oct"]
        assert coordinator.displayed.logins() == ["octocat"]
        assert len(coordinator.authoritative) == 3

    @pytest.mark.asyncio
    async def test_debounce_superseded_query_is_never_sent(self, settings):
        api = FakeSearchApi({"xyz": [{"id": 9, "login": "xyzzy"}]})
        coordinator = _coordinator(api, settings.model_copy(update={"search_debounce_seconds": 0.05}))

        first = asyncio.create_task(coordinator.on_query_changed("abc"))
        await asyncio.sleep(0)
        second = await coordinator.on_query_changed("xyz")
        outcome = await first

        assert outcome.stale is True
        assert api.calls == ["xyz"]
        assert second.displayed.logins() == ["xyzzy"]


    @pytest.mark.asyncio
    async def test_result_arriving_below_threshold_leaves_display_unchanged(self, settings):
        api = FakeSearchApi({"abc": [{"id": 1, "login": "abcd"}], "xyz": [{"id": 9, "login": "xyzzy"}]})
        api.gates["abc"] = asyncio.Event()
        coordinator = _coordinator(api, settings)
        await coordinator.on_query_changed("xyz")

        pending = asyncio.create_task(coordinator.on_query_changed("abc"))
        while "abc" not in api.calls:
            await asyncio.sleep(0)
        await coordinator.on_query_changed("ab")
        api.gates["abc"].set()
        outcome = await pending

        assert outcome.stale is False
        assert coordinator.displayed.logins() == ["xyzzy"]
        assert coordinator.authoritative.query == "abc"

    @pytest.mark.asyncio
    async def test_result_arriving_after_clear_shows_full_set(self, settings):
        api = FakeSearchApi({"oct": USERS})
        api.gates["oct"] = asyncio.Event()
        coordinator = _coordinator(api, settings)

        pending = asyncio.create_task(coordinator.on_query_changed("oct"))
        while "oct" not in api.calls:
            await asyncio.sleep(0)
        await coordinator.on_query_changed("")
        api.gates["oct"].set()
        await pending

        assert len(coordinator.displayed) == 3


class TestSubmit:
    @pytest.mark.asyncio
    async def test_submit_searches_short_text(self, settings):
        api = FakeSearchApi({"ab": [{"id": 1, "login": "abby"}]})
        coordinator = _coordinator(api, settings)
        await coordinator.on_query_changed("ab")
        outcome = await coordinator.on_query_submitted("ab")
        assert api.calls == ["ab"]
        assert outcome.remote_issued is True
        assert outcome.displayed.logins() == ["abby"]
        assert coordinator.generation == 1

    @pytest.mark.asyncio
    async def test_submit_searches_full_long_text(self, settings):
        api = FakeSearchApi({"oct": USERS, "octocat": [{"id": 1, "login": "octocat"}]})
        coordinator = _coordinator(api, settings)
        for text in ("o", "oc", "oct", "octo", "octoc", "octoca", "octocat"):
            await coordinator.on_query_changed(text)
        outcome = await coordinator.on_query_submitted("octocat")
        assert api.calls == ["oct", "octocat"]
        assert outcome.displayed.query == "octocat"
        assert coordinator.authoritative.remote is True

    @pytest.mark.asyncio
    async def test_submit_empty_text_is_a_no_op(self, settings):
        api = FakeSearchApi()
        outcome = await _coordinator(api, settings).on_query_submitted("")
        assert api.calls == []
        assert outcome.remote_issued is False

    @pytest.mark.asyncio
    async def test_submit_supersedes_in_flight_typed_query(self, settings):
        api = FakeSearchApi({"abc": [{"id": 1, "login": "abcd"}], "abcde": [{"id": 5, "login": "abcde"}]})
        api.gates["abc"] = asyncio.Event()
        coordinator = _coordinator(api, settings)

        slow = asyncio.create_task(coordinator.on_query_changed("abc"))
        while "abc" not in api.calls:
            await asyncio.sleep(0)
        await coordinator.on_query_changed("abcde")
        submitted = await coordinator.on_query_submitted("abcde")
        api.gates["abc"].set()
        stale = await slow

        assert stale.stale is True
        assert submitted.displayed.logins() == ["abcde"]
        assert coordinator.authoritative.query == "abcde"


class TestHooks:
    @pytest.mark.asyncio
    async def test_query_hooks_and_display(self, settings):
        api = FakeSearchApi({"oct": USERS})
        events: list[str] = []
        shown: list[SearchResultSet] = []
        hooks = SearchHooks(
            on_query_start=lambda q: events.append(f"start:{q}"),
            on_query_end=lambda q: events.append(f"end:{q}"),
            on_display=shown.append,
        )
        coordinator = _coordinator(api, settings, hooks=hooks)
        await coordinator.on_query_changed("oct")
        await coordinator.on_query_changed("octoc")
        assert events == ["start:oct", "end:oct"]
        assert [len(s) for s in shown] == [3, 1]
