"""Tests for display status derivation."""

import pytest

from poll_results_api.models import ContractStatus, DisplayStatus, Poll, PollMetadata
from poll_results_api.status import (
    derive_status,
    effective_contract_status,
    progress_percent,
    time_display,
)


def _make_poll(now: int, **overrides) -> Poll:
    defaults = dict(
        id=1,
        title="Board Election",
        start_time=100,
        end_time=200,
        contract_status=ContractStatus.ACTIVE,
        total_votes=10,
        candidate_count=2,
    )
    defaults.update(overrides)
    return Poll.resolve(PollMetadata(**defaults), now)


class TestDeriveStatus:
    def test_active_inside_window(self):
        assert derive_status(100, 200, ContractStatus.ACTIVE, 150) == DisplayStatus.ACTIVE

    def test_active_past_end_reads_ended(self):
        assert derive_status(100, 200, ContractStatus.ACTIVE, 250) == DisplayStatus.ENDED

    def test_active_at_end_is_ended(self):
        assert derive_status(100, 200, ContractStatus.ACTIVE, 200) == DisplayStatus.ENDED

    def test_active_at_start_is_active(self):
        assert derive_status(100, 200, ContractStatus.ACTIVE, 100) == DisplayStatus.ACTIVE

    def test_active_before_start_is_upcoming(self):
        assert derive_status(100, 200, ContractStatus.ACTIVE, 50) == DisplayStatus.UPCOMING

    def test_created_ignores_clock(self):
        assert derive_status(100, 200, ContractStatus.CREATED, 150) == DisplayStatus.UPCOMING
        assert derive_status(100, 200, ContractStatus.CREATED, 999) == DisplayStatus.UPCOMING

    @pytest.mark.parametrize(
        "status",
        [ContractStatus.ENDED, ContractStatus.FINALIZED, ContractStatus.DISPUTED],
    )
    @pytest.mark.parametrize("now", [0, 150, 10_000])
    def test_closed_statuses_always_ended(self, status, now):
        assert derive_status(100, 200, status, now) == DisplayStatus.ENDED

    def test_accepts_raw_uint(self):
        assert derive_status(100, 200, 1, 150) == DisplayStatus.ACTIVE


class TestEffectiveContractStatus:
    def test_active_past_end_reads_ended(self):
        assert (
            effective_contract_status(100, 200, ContractStatus.ACTIVE, 300)
            == ContractStatus.ENDED
        )

    def test_active_in_window_unchanged(self):
        assert (
            effective_contract_status(100, 200, ContractStatus.ACTIVE, 150)
            == ContractStatus.ACTIVE
        )

    def test_created_stays_created(self):
        assert (
            effective_contract_status(100, 200, ContractStatus.CREATED, 300)
            == ContractStatus.CREATED
        )

    def test_finalized_passes_through(self):
        assert (
            effective_contract_status(100, 200, ContractStatus.FINALIZED, 150)
            == ContractStatus.FINALIZED
        )


class TestPollResolve:
    def test_status_derived_at_resolve_time(self):
        assert _make_poll(150).status == DisplayStatus.ACTIVE
        assert _make_poll(250).status == DisplayStatus.ENDED

    def test_with_status_returns_same_object_when_unchanged(self):
        poll = _make_poll(150)
        assert poll.with_status(160) is poll

    def test_with_status_replaces_on_change(self):
        poll = _make_poll(150)
        later = poll.with_status(250)
        assert later is not poll
        assert later.status == DisplayStatus.ENDED
        assert poll.status == DisplayStatus.ACTIVE

    def test_duration_never_negative(self):
        assert _make_poll(0, start_time=500, end_time=100).duration_seconds == 0


class TestProgressAndTimeDisplay:
    def test_progress_while_active(self):
        assert progress_percent(_make_poll(150), 150) == 50

    def test_no_progress_when_not_active(self):
        assert progress_percent(_make_poll(250), 250) is None

    def test_time_display_remaining(self):
        poll = _make_poll(0, start_time=0, end_time=2 * 86_400 + 3 * 3_600 + 60)
        assert time_display(poll, 0) == "2d 3h remaining"

    def test_time_display_minutes_remaining(self):
        poll = _make_poll(0, start_time=0, end_time=1_800)
        assert time_display(poll, 0) == "30m remaining"

    def test_time_display_until_start(self):
        poll = _make_poll(0, start_time=3_600 + 300, end_time=90_000)
        assert time_display(poll, 0) == "1h 5m until start"

    def test_time_display_ended(self):
        assert time_display(_make_poll(250), 250) == "Ended"

    def test_created_poll_past_start(self):
        poll = _make_poll(150, contract_status=ContractStatus.CREATED)
        assert time_display(poll, 150) == "Awaiting start"
