"""Voting trend estimation.

The contract only exposes an aggregate vote counter, never per-vote
timestamps, so the trend here is synthesized deterministically from the
total and the poll duration. It is a display estimate: the bucket votes
always add up to the real total, but their spread over time is modelled.
"""

from typing import Optional, Sequence

from .formatting import format_number, round1, round_half_up
from .models import AnalyticsBucket, Poll, PollAnalytics, RankedResult

EASING_EXPONENT = 1.2
MIN_BUCKETS = 4
MAX_BUCKETS = 12
SHORT_POLL_BUCKETS = 6


def bucket_count(duration_hours: float) -> int:
    """One bucket per hour, clamped; sub-hour polls get a fixed count."""
    if duration_hours >= 1:
        return max(MIN_BUCKETS, min(MAX_BUCKETS, round_half_up(duration_hours)))
    return SHORT_POLL_BUCKETS


def distribute_votes(total_votes: int, buckets: int) -> list[int]:
    """Split ``total_votes`` over ``buckets`` along an eased cumulative curve.

    The last bucket absorbs rounding drift so the sum is exact.
    """
    votes = []
    previous = 0
    for i in range(buckets):
        eased = ((i + 1) / buckets) ** EASING_EXPONENT
        cumulative = round_half_up(total_votes * eased)
        votes.append(max(0, cumulative - previous))
        previous = cumulative

    if votes:
        votes[-1] = total_votes - sum(votes[:-1])
    return votes


def _bucket_label(offset_seconds: float, in_hours: bool) -> str:
    if in_hours:
        return f"{format_number(offset_seconds / 3600)}h"
    return f"{round_half_up(offset_seconds / 60)}m"


def estimate(
    poll: Poll, results: Optional[Sequence[RankedResult]] = None
) -> Optional[PollAnalytics]:
    """Estimate the voting trend of ``poll``.

    Returns None when the poll has no candidates: either ``results`` is
    given and empty, or it is omitted and the poll reports no candidates.
    """
    if results is not None:
        if not results:
            return None
    elif poll.candidate_count == 0:
        return None

    total_votes = poll.total_votes
    duration_seconds = poll.duration_seconds
    duration_hours = duration_seconds / 3600
    in_hours = duration_hours >= 1

    count = bucket_count(duration_hours)
    step = duration_seconds / count
    buckets = [
        AnalyticsBucket(label=_bucket_label((i + 1) * step, in_hours), votes=votes)
        for i, votes in enumerate(distribute_votes(total_votes, count))
    ]

    avg_votes_per_hour = round_half_up(
        total_votes / duration_hours if duration_hours > 0 else total_votes
    )

    participation_rate = None
    if poll.min_voters_required:
        participation_rate = min(
            100.0, round1(total_votes / poll.min_voters_required * 100)
        )

    # max() returns the first bucket on ties
    peak = max(buckets, key=lambda b: b.votes)

    return PollAnalytics(
        total_votes=total_votes,
        participation_rate=participation_rate,
        avg_votes_per_hour=avg_votes_per_hour,
        peak_voting_label=peak.label,
        buckets=buckets,
    )
