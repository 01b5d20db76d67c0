"""Ranked, tie-aware results and CSV export."""

import csv
import io
import re
from collections import Counter
from typing import Iterable, Optional, Sequence

from .formatting import format_percentage, round1
from .models import CandidateMeta, RankedResult

CSV_HEADER = ("Candidate", "Party", "Votes", "Percentage")


def aggregate(
    candidates: Sequence[CandidateMeta],
    vote_pairs: Iterable[tuple[int, int]],
    total_votes: int,
    poll_id: Optional[int] = None,
    active_only: bool = False,
) -> list[RankedResult]:
    """Join a candidate roster with vote counts and rank the result.

    Percentages are computed against ``total_votes`` rather than the sum
    of the listed candidates, since the contract may omit removed ones.
    Candidates missing from ``vote_pairs`` get 0 votes. Equal vote counts
    keep roster order, and ranks follow sort position even on ties.
    """
    votes_by_id: dict[int, int] = {}
    for candidate_id, count in vote_pairs:
        votes_by_id.setdefault(candidate_id, count)
    roster = [c for c in candidates if c.is_active or not active_only]

    scored = []
    for candidate in roster:
        votes = max(0, int(votes_by_id.get(candidate.id, 0)))
        percentage = round1(votes / total_votes * 100) if total_votes > 0 else 0.0
        scored.append((candidate, votes, min(100.0, percentage)))

    # sorted() is stable, so roster order breaks ties
    scored = sorted(scored, key=lambda item: item[1], reverse=True)

    counts = Counter(votes for _, votes, _ in scored)
    tied = {votes for votes, n in counts.items() if n >= 2 and votes > 0}

    return [
        RankedResult(
            **candidate.model_dump(include=set(CandidateMeta.model_fields)),
            votes=votes,
            percentage=percentage,
            poll_id=poll_id,
            rank=index + 1,
            is_tie=votes in tied,
        )
        for index, (candidate, votes, percentage) in enumerate(scored)
    ]


def results_to_csv(results: Iterable[RankedResult]) -> str:
    """Render ranked results as CSV, one row per candidate."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for result in results:
        writer.writerow(
            [
                result.name,
                result.party,
                str(result.votes),
                format_percentage(result.percentage),
            ]
        )
    return buffer.getvalue()


def export_filename(title: str) -> str:
    """File name for a poll's CSV export, e.g. ``Board_Election_results.csv``."""
    return re.sub(r"\s+", "_", title) + "_results.csv"
