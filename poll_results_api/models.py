"""Data models for on-chain polls and their computed results."""

from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


class ContractStatus(IntEnum):
    """Poll status as stored by the election contract (uint8)."""

    CREATED = 0
    ACTIVE = 1
    ENDED = 2
    FINALIZED = 3
    DISPUTED = 4


class DisplayStatus(str, Enum):
    """Status shown to users, reconciled with wall-clock time."""

    UPCOMING = "upcoming"
    ACTIVE = "active"
    ENDED = "ended"


class Source(str, Enum):
    """The three independently fetched data sources of a poll."""

    POLL = "poll"
    RESULTS = "results"
    CANDIDATES = "candidates"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class PollMetadata(_Frozen):
    """Poll fields as decoded from ``getPoll``."""

    id: int = Field(ge=0, description="On-chain poll id")
    title: str
    description: str = ""
    start_time: int = Field(description="Voting window start (unix seconds)")
    end_time: int = Field(description="Voting window end (unix seconds)")
    contract_status: ContractStatus
    total_votes: int = Field(default=0, ge=0)
    candidate_count: int = Field(default=0, ge=0)
    min_voters_required: Optional[int] = Field(
        default=None,
        ge=0,
        description="Minimum voters; None when the contract reports 0",
    )

    @computed_field
    @property
    def duration_seconds(self) -> int:
        return max(0, self.end_time - self.start_time)


class Poll(PollMetadata):
    """A poll together with its display status at a point in time."""

    status: DisplayStatus

    @classmethod
    def resolve(cls, metadata: PollMetadata, now: int) -> "Poll":
        """Build a poll whose status is derived from ``metadata`` at ``now``."""
        from .status import derive_status

        data = metadata.model_dump(exclude={"duration_seconds"})
        data["status"] = derive_status(
            metadata.start_time, metadata.end_time, metadata.contract_status, now
        )
        return cls(**data)

    def with_status(self, now: int) -> "Poll":
        """Return this poll re-resolved at ``now`` (``self`` if unchanged)."""
        refreshed = Poll.resolve(self, now)
        if refreshed.status == self.status:
            return self
        return refreshed


class CandidateMeta(_Frozen):
    """Candidate roster entry from ``getCandidateDetailsForPoll``."""

    id: int
    name: str = ""
    party: str = ""
    image_url: str = ""
    description: str = ""
    is_active: bool = False


class Candidate(CandidateMeta):
    votes: int = Field(default=0, ge=0)
    percentage: float = Field(default=0.0, ge=0, le=100)
    poll_id: Optional[int] = None


class RankedResult(Candidate):
    """A candidate placed in the sorted result list."""

    rank: int = Field(ge=1, description="1-based position after sorting by votes")
    is_tie: bool = Field(
        default=False, description="Shares a nonzero vote count with another candidate"
    )


class AnalyticsBucket(_Frozen):
    label: str
    votes: int = Field(ge=0)


class PollAnalytics(_Frozen):
    """Synthetic voting trend estimated from the aggregate vote count."""

    total_votes: int
    participation_rate: Optional[float] = Field(
        default=None, description="Votes as % of minimum voters, capped at 100"
    )
    avg_votes_per_hour: int
    peak_voting_label: str
    buckets: list[AnalyticsBucket]
    is_estimate: bool = True


class PollResultEntry(_Frozen):
    """A published snapshot: one poll and its ranked results."""

    poll: Poll
    results: tuple[RankedResult, ...]
    published_at: datetime


class PollResultView(_Frozen):
    """Read-side projection of a cached entry."""

    poll: Poll
    status: DisplayStatus
    effective_contract_status: ContractStatus
    results: list[RankedResult]
    analytics: Optional[PollAnalytics]
    progress_percent: Optional[int] = Field(
        default=None, description="Elapsed share of the voting window while active"
    )
    time_display: str
    duration_display: str


class PollError(_Frozen):
    """One reported failure episode of a poll."""

    poll_id: int
    source: Source
    message: str
    reported_at: datetime


class CacheStatus(_Frozen):
    """Status of the poll result cache."""

    tracked_polls: int
    published_polls: int
    errored_polls: int
    last_published: Optional[datetime]
    last_status_refresh: Optional[datetime]
    closed: bool
