"""Per-poll result cache merging three independently fetched sources.

Each poll has three sources (metadata, raw results, candidate roster) that
arrive and fail independently. A poll's entry is published only while all
three are successful, and is evicted outright when any of them fails, so a
reader never sees fresh data from one source merged with stale data from
another. Entries are frozen models and are only ever replaced or removed.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from .analytics import estimate
from .formatting import format_duration
from .models import (
    CacheStatus,
    Poll,
    PollError,
    PollResultEntry,
    PollResultView,
    Source,
)
from .results import aggregate
from .status import (
    current_timestamp,
    effective_contract_status,
    progress_percent,
    time_display,
)

logger = logging.getLogger(__name__)

MAX_ERROR_HISTORY = 200

Listener = Callable[[int, Optional[PollResultEntry]], None]
ErrorHandler = Callable[[PollError], None]


@dataclass(frozen=True)
class Outcome:
    """Result of one source fetch: decoded data or the error raised."""

    data: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any) -> "Outcome":
        return cls(data=data)

    @classmethod
    def failure(cls, error: BaseException) -> "Outcome":
        return cls(error=error)


class Action(str, Enum):
    PUBLISH = "publish"
    EVICT = "evict"
    KEEP = "keep"


@dataclass(frozen=True)
class PollState:
    """Latest outcome per source (missing means pending) plus error sidecar."""

    sources: Mapping[Source, Outcome] = field(default_factory=dict)
    error_reported: bool = False

    def pending(self) -> list[Source]:
        return [s for s in Source if s not in self.sources]


@dataclass(frozen=True)
class Transition:
    state: PollState
    action: Action
    report: bool = False


def apply_outcome(state: PollState, source: Source, outcome: Outcome) -> Transition:
    """Compute the cache transition for one source completion.

    Any error evicts the poll; only the first error of an episode is
    reported. The episode ends when all three sources succeed again.
    """
    sources = {**state.sources, source: outcome}

    if not outcome.ok:
        return Transition(
            PollState(sources, error_reported=True),
            Action.EVICT,
            report=not state.error_reported,
        )

    if all(s in sources and sources[s].ok for s in Source):
        return Transition(PollState(sources, error_reported=False), Action.PUBLISH)

    return Transition(PollState(sources, state.error_reported), Action.KEEP)


def build_entry(poll_id: int, state: PollState, now: int) -> PollResultEntry:
    """Merge three successful sources into a published entry."""
    poll = Poll.resolve(state.sources[Source.POLL].data, now)
    results = aggregate(
        state.sources[Source.CANDIDATES].data,
        state.sources[Source.RESULTS].data,
        poll.total_votes,
        poll_id=poll_id,
    )
    return PollResultEntry(
        poll=poll,
        results=tuple(results),
        published_at=datetime.now(timezone.utc),
    )


def _log_error(error: PollError) -> None:
    logger.warning(
        "Error loading %s for poll %d: %s",
        error.source.value,
        error.poll_id,
        error.message,
    )


class PollResultCache:
    """Thread-safe in-memory cache of published poll results.

    Mutation happens only through :meth:`record` and
    :meth:`refresh_statuses`, each of which atomically replaces or evicts
    whole entries. After :meth:`close` both become no-ops.
    """

    def __init__(
        self,
        on_error: Optional[ErrorHandler] = None,
        clock: Callable[[], int] = current_timestamp,
    ) -> None:
        self._entries: dict[int, PollResultEntry] = {}
        self._states: dict[int, PollState] = {}
        self._errors: deque[PollError] = deque(maxlen=MAX_ERROR_HISTORY)
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()
        self._closed = False
        self._on_error = on_error or _log_error
        self._clock = clock
        self._last_published: Optional[datetime] = None
        self._last_status_refresh: Optional[datetime] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: Listener) -> None:
        """Call ``listener(poll_id, entry)`` on every publish (entry) or evict (None).

        Hook for push consumers embedding the cache; the HTTP app reads by pull.
        """
        with self._lock:
            self._listeners.append(listener)

    # ── Writes ────────────────────────────────────────────────────────

    def track(self, poll_ids: list[int]) -> list[int]:
        """Register polls as pending. Returns the ids not seen before."""
        with self._lock:
            if self._closed:
                return []
            added = [pid for pid in poll_ids if pid not in self._states]
            for pid in added:
                self._states[pid] = PollState()
        if added:
            logger.info("Tracking %d new polls", len(added))
        return added

    def forget(self, poll_id: int) -> None:
        """Stop tracking a poll and evict its entry."""
        with self._lock:
            self._states.pop(poll_id, None)
            removed = self._entries.pop(poll_id, None)
            listeners = list(self._listeners)
        if removed is not None:
            self._notify(listeners, poll_id, None)

    def record(
        self, poll_id: int, source: Source, outcome: Outcome
    ) -> Optional[PollResultEntry]:
        """Apply a source completion and return the poll's current entry.

        Only polls registered with :meth:`track` are accepted.
        """
        report: Optional[PollError] = None
        with self._lock:
            if self._closed or poll_id not in self._states:
                # Untracked or forgotten poll: a late completion is dropped.
                return None
            state = self._states[poll_id]
            transition = apply_outcome(state, source, outcome)
            self._states[poll_id] = transition.state

            changed = False
            if transition.action == Action.PUBLISH:
                self._entries[poll_id] = build_entry(
                    poll_id, transition.state, self._clock()
                )
                self._last_published = self._entries[poll_id].published_at
                changed = True
            elif transition.action == Action.EVICT:
                changed = self._entries.pop(poll_id, None) is not None

            if transition.report:
                report = PollError(
                    poll_id=poll_id,
                    source=source,
                    message=str(outcome.error) or type(outcome.error).__name__,
                    reported_at=datetime.now(timezone.utc),
                )
                self._errors.append(report)

            entry = self._entries.get(poll_id)
            listeners = list(self._listeners)

        if transition.action == Action.PUBLISH:
            logger.debug("Published poll %d", poll_id)
        elif changed:
            logger.info("Evicted poll %d after %s error", poll_id, source.value)
        if report is not None:
            self._on_error(report)
        if changed:
            self._notify(listeners, poll_id, entry)
        return entry

    def refresh_statuses(self, now: Optional[int] = None) -> list[int]:
        """Re-derive the display status of every cached entry.

        No fetches happen here. Returns the ids whose status changed.
        """
        with self._lock:
            if self._closed:
                return []
            now = self._clock() if now is None else now
            changed: dict[int, PollResultEntry] = {}
            for poll_id, entry in self._entries.items():
                poll = entry.poll.with_status(now)
                if poll is not entry.poll:
                    changed[poll_id] = entry.model_copy(update={"poll": poll})
            self._entries.update(changed)
            self._last_status_refresh = datetime.now(timezone.utc)
            listeners = list(self._listeners)

        for poll_id, entry in changed.items():
            logger.info("Poll %d is now %s", poll_id, entry.poll.status.value)
            self._notify(listeners, poll_id, entry)
        return list(changed)

    def close(self) -> None:
        """Stop accepting updates and drop everything cached."""
        with self._lock:
            self._closed = True
            self._entries.clear()
            self._states.clear()
            self._listeners.clear()
        logger.info("Poll result cache closed")

    # ── Reads ─────────────────────────────────────────────────────────

    def get(self, poll_id: int) -> Optional[PollResultEntry]:
        with self._lock:
            return self._entries.get(poll_id)

    def entries(self) -> list[PollResultEntry]:
        """All published entries, ordered by poll id."""
        with self._lock:
            return [self._entries[pid] for pid in sorted(self._entries)]

    def tracked(self) -> list[int]:
        with self._lock:
            return sorted(self._states)

    def errors(self) -> list[PollError]:
        with self._lock:
            return list(self._errors)

    def view(
        self, poll_id: int, now: Optional[int] = None, active_only: bool = False
    ) -> Optional[PollResultView]:
        """Presentation data for one poll, derived from its snapshot."""
        entry = self.get(poll_id)
        if entry is None:
            return None
        now = self._clock() if now is None else now
        # Status follows the same clock as the rest of the view.
        poll = entry.poll.with_status(now)

        results = list(entry.results)
        if active_only:
            results = aggregate(
                results,
                [(r.id, r.votes) for r in results],
                poll.total_votes,
                poll_id=poll_id,
                active_only=True,
            )

        return PollResultView(
            poll=poll,
            status=poll.status,
            effective_contract_status=effective_contract_status(
                poll.start_time, poll.end_time, poll.contract_status, now
            ),
            results=results,
            analytics=estimate(poll, results),
            progress_percent=progress_percent(poll, now),
            time_display=time_display(poll, now),
            duration_display=format_duration(poll.duration_seconds),
        )

    def status(self) -> CacheStatus:
        with self._lock:
            return CacheStatus(
                tracked_polls=len(self._states),
                published_polls=len(self._entries),
                errored_polls=sum(
                    1 for s in self._states.values() if s.error_reported
                ),
                last_published=self._last_published,
                last_status_refresh=self._last_status_refresh,
                closed=self._closed,
            )

    @staticmethod
    def _notify(
        listeners: list[Listener], poll_id: int, entry: Optional[PollResultEntry]
    ) -> None:
        for listener in listeners:
            try:
                listener(poll_id, entry)
            except Exception:
                logger.exception("Cache listener failed for poll %d", poll_id)
