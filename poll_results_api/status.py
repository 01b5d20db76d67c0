"""Display status derivation for polls.

Ending a poll on-chain takes a separate transaction, so the contract status
can lag behind the clock. These helpers reconcile the two for display
without touching on-chain state.
"""

import time
from typing import Optional

from .formatting import round_half_up
from .models import ContractStatus, DisplayStatus, Poll

_CLOSED_STATUSES = frozenset(
    {ContractStatus.ENDED, ContractStatus.FINALIZED, ContractStatus.DISPUTED}
)


def current_timestamp() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


def derive_status(
    start_time: int,
    end_time: int,
    contract_status: ContractStatus,
    now: int,
) -> DisplayStatus:
    """Map contract status and wall-clock time to a display status."""
    if contract_status in _CLOSED_STATUSES:
        return DisplayStatus.ENDED
    if contract_status == ContractStatus.CREATED:
        # Not votable until started on-chain, whatever the clock says.
        return DisplayStatus.UPCOMING
    if now < start_time:
        return DisplayStatus.UPCOMING
    if now < end_time:
        return DisplayStatus.ACTIVE
    return DisplayStatus.ENDED


def effective_contract_status(
    start_time: int,
    end_time: int,
    contract_status: ContractStatus,
    now: int,
) -> ContractStatus:
    """Contract status as it would read once a pending ``endPoll`` lands."""
    if contract_status == ContractStatus.ACTIVE and now >= end_time:
        return ContractStatus.ENDED
    return contract_status


def progress_percent(poll: Poll, now: int) -> Optional[int]:
    """Elapsed share of the voting window, or None unless the poll is active."""
    if poll.status != DisplayStatus.ACTIVE or poll.duration_seconds <= 0:
        return None
    elapsed = (now - poll.start_time) / poll.duration_seconds * 100
    return round_half_up(max(0.0, min(100.0, elapsed)))


def _split_seconds(seconds: float) -> tuple[int, int, int]:
    days = int(seconds // 86_400)
    hours = int((seconds % 86_400) // 3_600)
    minutes = int((seconds % 3_600) // 60)
    return days, hours, minutes


def _format_span(seconds: float, suffix: str) -> str:
    days, hours, minutes = _split_seconds(seconds)
    if days > 0:
        return f"{days}d {hours}h {suffix}"
    if hours > 0:
        return f"{hours}h {minutes}m {suffix}"
    return f"{minutes}m {suffix}"


def time_display(poll: Poll, now: int) -> str:
    """Human readable time left in the poll, or until it starts.

    Examples: ``"2d 4h remaining"``, ``"35m until start"``, ``"Ended"``.
    """
    remaining = poll.end_time - now
    if poll.status == DisplayStatus.ENDED or remaining <= 0:
        return "Ended"

    until_start = poll.start_time - now
    if poll.status == DisplayStatus.UPCOMING and until_start > 0:
        return _format_span(until_start, "until start")
    if poll.status == DisplayStatus.UPCOMING:
        # Start time has passed but the poll was never opened on-chain.
        return "Awaiting start"
    return _format_span(remaining, "remaining")
