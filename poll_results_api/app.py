"""Poll Results API.

A read-only REST API serving display status, ranked results, and voting
trend estimates for polls held by an on-chain election contract.
"""

import logging
from concurrent.futures import wait
from contextlib import asynccontextmanager
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from .cache import PollResultCache
from .config import Settings, get_settings
from .contract import ContractReader, Web3ContractReader
from .decoding import parse_poll_id
from .errors import InvalidPollId
from .models import (
    CacheStatus,
    DisplayStatus,
    Poll,
    PollAnalytics,
    PollError,
    PollResultView,
    RankedResult,
)
from .results import export_filename, results_to_csv
from .sync import PollResultSync, schedule_jobs

logger = logging.getLogger(__name__)

API_TITLE = "Poll Results API"
API_VERSION = "1.0.0"


def _initial_sync(sync: PollResultSync, timeout: float) -> int:
    futures = sync.sync_all()
    done, not_done = wait(futures, timeout=timeout)
    if not_done:
        logger.warning("%d fetches still pending after %.0fs", len(not_done), timeout)
    return len(done)


def create_app(
    reader: Optional[ContractReader] = None,
    settings: Optional[Settings] = None,
    start_scheduler: bool = True,
) -> FastAPI:
    """Build the API. The cache lives for the lifespan of the app."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Load polls on startup, schedule refetches and status ticks."""
        contract_reader = reader or Web3ContractReader.from_settings(settings)
        cache = PollResultCache()
        sync = PollResultSync(contract_reader, cache, max_workers=settings.max_workers)
        scheduler = BackgroundScheduler()

        app.state.settings = settings
        app.state.cache = cache
        app.state.sync = sync

        _initial_sync(sync, settings.request_timeout)
        if start_scheduler:
            schedule_jobs(
                scheduler,
                sync,
                cache,
                refetch_seconds=settings.refetch_interval_seconds,
                status_seconds=settings.status_refresh_seconds,
            )
            scheduler.start()
        yield
        if scheduler.running:
            scheduler.shutdown(wait=False)
        sync.cancel()
        cache.close()

    app = FastAPI(
        title=API_TITLE,
        description=(
            "Read-only API over an on-chain election contract. Serves each "
            "poll's display status, ranked tie-aware results, CSV export, and "
            "an estimated voting trend.\n\n"
            "Results are refetched from the contract every "
            f"{settings.refetch_interval_seconds}s; display statuses are "
            f"re-derived from the clock every {settings.status_refresh_seconds}s."
        ),
        version=API_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    _register_routes(app)
    return app


def get_cache(request: Request) -> PollResultCache:
    return request.app.state.cache


def get_sync(request: Request) -> PollResultSync:
    return request.app.state.sync


def _poll_id(poll_id: str) -> int:
    try:
        return parse_poll_id(poll_id)
    except InvalidPollId as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _view(cache: PollResultCache, poll_id: int, active_only: bool = False) -> PollResultView:
    view = cache.view(poll_id, active_only=active_only)
    if view is None:
        raise HTTPException(
            status_code=404,
            detail=f"No results available for poll {poll_id}",
        )
    return view


# ── Endpoints ──────────────────────────────────────────────────────────


def _register_routes(app: FastAPI) -> None:
    @app.get("/", tags=["info"])
    def root():
        """API welcome and link to documentation."""
        return {
            "name": API_TITLE,
            "version": API_VERSION,
            "docs": "/docs",
            "endpoints": {
                "polls": "/polls?status=upcoming|active|ended",
                "poll": "/polls/{id}",
                "results": "/polls/{id}/results",
                "analytics": "/polls/{id}/analytics",
                "csv": "/polls/{id}/results.csv",
                "errors": "/errors",
                "status": "/status",
            },
        }

    @app.get(
        "/polls",
        response_model=list[Poll],
        tags=["polls"],
        summary="List polls with published results",
    )
    def list_polls(
        status: Optional[DisplayStatus] = Query(
            default=None, description="Filter by display status"
        ),
        cache: PollResultCache = Depends(get_cache),
    ):
        """Return every published poll ordered by id, optionally filtered."""
        polls = [entry.poll for entry in cache.entries()]
        if status is not None:
            polls = [p for p in polls if p.status == status]
        return polls

    @app.get(
        "/polls/{poll_id}",
        response_model=PollResultView,
        tags=["polls"],
        summary="Full results view of one poll",
    )
    def get_poll(
        poll_id: int = Depends(_poll_id),
        active_only: bool = Query(default=False),
        cache: PollResultCache = Depends(get_cache),
    ):
        """Status, ranked results, and analytics for a poll."""
        return _view(cache, poll_id, active_only)

    @app.get(
        "/polls/{poll_id}/results",
        response_model=list[RankedResult],
        tags=["results"],
        summary="Ranked candidate results",
    )
    def get_results(
        poll_id: int = Depends(_poll_id),
        active_only: bool = Query(
            default=False, description="Leave out inactive candidates"
        ),
        cache: PollResultCache = Depends(get_cache),
    ):
        """Candidates sorted by votes with rank and tie flags."""
        return _view(cache, poll_id, active_only).results

    @app.get(
        "/polls/{poll_id}/analytics",
        response_model=PollAnalytics,
        tags=["results"],
        summary="Estimated voting trend",
    )
    def get_analytics(
        poll_id: int = Depends(_poll_id),
        cache: PollResultCache = Depends(get_cache),
    ):
        """Synthetic trend from the aggregate vote count.

        The contract does not record vote timestamps, so the buckets are an
        estimate whose votes always sum to the real total.
        """
        analytics = _view(cache, poll_id).analytics
        if analytics is None:
            raise HTTPException(
                status_code=404, detail=f"Poll {poll_id} has no candidates"
            )
        return analytics

    @app.get(
        "/polls/{poll_id}/results.csv",
        tags=["results"],
        summary="Download results as CSV",
    )
    def export_results(
        poll_id: int = Depends(_poll_id),
        active_only: bool = Query(default=False),
        cache: PollResultCache = Depends(get_cache),
    ):
        view = _view(cache, poll_id, active_only)
        if not view.results:
            raise HTTPException(status_code=404, detail="No data available to export")
        filename = export_filename(view.poll.title)
        return Response(
            content=results_to_csv(view.results),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.post(
        "/polls/refresh",
        tags=["admin"],
        summary="Trigger a refetch from the contract",
    )
    def trigger_refresh(
        request: Request,
        sync: PollResultSync = Depends(get_sync),
        cache: PollResultCache = Depends(get_cache),
    ):
        """Refetch every poll now and wait for the fetches to settle."""
        completed = _initial_sync(sync, request.app.state.settings.request_timeout)
        status = cache.status()
        return {
            "message": f"Completed {completed} fetches",
            "published_polls": status.published_polls,
            "last_published": status.last_published,
        }

    @app.post(
        "/polls/statuses/refresh",
        tags=["admin"],
        summary="Re-derive display statuses",
    )
    def trigger_status_refresh(cache: PollResultCache = Depends(get_cache)):
        """Run the status tick now. Does not contact the contract."""
        changed = cache.refresh_statuses()
        return {"changed": changed}

    @app.get(
        "/errors",
        response_model=list[PollError],
        tags=["info"],
        summary="Reported fetch errors",
    )
    def get_errors(cache: PollResultCache = Depends(get_cache)):
        """One entry per poll per failure episode, oldest first."""
        return cache.errors()

    @app.get(
        "/status",
        response_model=CacheStatus,
        tags=["info"],
        summary="Cache status",
    )
    def get_status(cache: PollResultCache = Depends(get_cache)):
        """Return metadata about the result cache."""
        return cache.status()


app = create_app()
