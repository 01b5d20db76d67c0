"""Fetch orchestration between the contract reader and the result cache."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from .cache import Outcome, PollResultCache
from .contract import ContractReader
from .decoding import (
    decode_candidates,
    decode_poll,
    decode_poll_ids,
    decode_results,
)
from .models import Source

logger = logging.getLogger(__name__)

REFETCH_JOB_ID = "refetch_polls"
STATUS_JOB_ID = "refresh_statuses"


class PollResultSync:
    """Fans out per-poll fetches and feeds their completions to the cache.

    Every poll gets three concurrent fetches. Completions are independent
    merge events handled by :meth:`PollResultCache.record`. Failures are
    recorded, not retried; the next scheduled refetch tries again.
    """

    def __init__(
        self,
        reader: ContractReader,
        cache: PollResultCache,
        max_workers: int = 8,
    ) -> None:
        self._reader = reader
        self._cache = cache
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="poll-fetch"
        )
        self._cancelled = threading.Event()
        self._fetchers: dict[Source, tuple[Callable[[int], Any], Callable[[Any], Any]]] = {
            Source.POLL: (reader.get_poll, decode_poll),
            Source.RESULTS: (reader.get_poll_results, decode_results),
            Source.CANDIDATES: (reader.get_candidate_details, decode_candidates),
        }

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def sync_all(self) -> list[Future]:
        """Fetch the poll list, then every poll's three sources.

        Polls that dropped out of the list are forgotten, so completions
        still in flight for them are discarded by the cache.
        """
        if self.cancelled:
            return []
        try:
            poll_ids = decode_poll_ids(self._reader.get_all_polls())
        except Exception:
            logger.exception("Failed to fetch poll ids from contract")
            return []

        for stale in sorted(set(self._cache.tracked()) - set(poll_ids)):
            logger.info("Poll %d no longer listed by contract, forgetting it", stale)
            self._cache.forget(stale)
        self._cache.track(poll_ids)
        futures: list[Future] = []
        for poll_id in poll_ids:
            futures.extend(self.sync_poll(poll_id))
        return futures

    def sync_poll(self, poll_id: int) -> list[Future]:
        """Submit the three source fetches of one poll."""
        if self.cancelled:
            return []
        try:
            return [
                self._executor.submit(self._fetch, poll_id, source)
                for source in Source
            ]
        except RuntimeError:
            # Executor already shut down.
            logger.debug("Skipping fetch of poll %d after shutdown", poll_id)
            return []

    def _fetch(self, poll_id: int, source: Source) -> Optional[Outcome]:
        call, decode = self._fetchers[source]
        try:
            outcome = Outcome.success(decode(call(poll_id)))
        except Exception as exc:
            logger.debug(
                "Fetching %s for poll %d failed", source.value, poll_id, exc_info=True
            )
            outcome = Outcome.failure(exc)

        if self.cancelled:
            return None
        self._cache.record(poll_id, source, outcome)
        return outcome

    def cancel(self) -> None:
        """Make pending completions no-ops and stop accepting fetches."""
        self._cancelled.set()
        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.info("Poll sync cancelled")


def schedule_jobs(
    scheduler: BackgroundScheduler,
    sync: PollResultSync,
    cache: PollResultCache,
    refetch_seconds: int = 15,
    status_seconds: int = 15,
) -> None:
    """Register the refetch job and the fetch-free status refresh job."""
    scheduler.add_job(
        sync.sync_all,
        "interval",
        seconds=refetch_seconds,
        id=REFETCH_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        cache.refresh_statuses,
        "interval",
        seconds=status_seconds,
        id=STATUS_JOB_ID,
        replace_existing=True,
        coalesce=True,
    )
    logger.info(
        "Scheduled refetch every %ds and status refresh every %ds",
        refetch_seconds,
        status_seconds,
    )
