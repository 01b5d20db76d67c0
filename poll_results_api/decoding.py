"""Decoders for raw election contract responses.

Each decoder takes the tuple returned by a contract view call and produces
typed models, raising :class:`DecodeError` instead of coercing anything
that does not fit.
"""

from typing import Any, Optional, Sequence

from pydantic import ValidationError

from .errors import DecodeError, InvalidPollId
from .formatting import resolve_image_url
from .models import CandidateMeta, ContractStatus, PollMetadata

POLL_FIELDS = (
    "id",
    "title",
    "description",
    "start_time",
    "end_time",
    "contract_status",
    "total_votes",
    "candidate_count",
    "min_voters_required",
)


def parse_poll_id(raw: Any) -> int:
    """Validate a caller supplied poll id (e.g. from a URL path)."""
    if isinstance(raw, bool):
        raise InvalidPollId(raw)
    if isinstance(raw, int):
        if raw < 0:
            raise InvalidPollId(raw)
        return raw
    if isinstance(raw, str) and raw.strip().isdecimal():
        return int(raw.strip())
    raise InvalidPollId(raw)


def _uint(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"{field}: expected uint, got {type(value).__name__}")
    if value < 0:
        raise DecodeError(f"{field}: negative value {value}")
    return value


def _sequence(value: Any, field: str) -> Sequence:
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        raise DecodeError(f"{field}: expected an array")
    return value


def _at(values: Sequence, index: int, default: Any) -> Any:
    return values[index] if index < len(values) else default


def _text(values: Sequence, index: int, field: str) -> str:
    value = _at(values, index, "")
    if not isinstance(value, str):
        raise DecodeError(f"{field}: expected string")
    return value


def decode_poll_ids(raw: Any) -> list[int]:
    """Decode ``getAllPolls() returns (uint256[])``."""
    return [_uint(v, "pollIds") for v in _sequence(raw, "pollIds")]


def decode_poll(raw: Any) -> PollMetadata:
    """Decode the 9-field ``getPoll`` tuple."""
    values = _sequence(raw, "getPoll")
    if len(values) != len(POLL_FIELDS):
        raise DecodeError(
            f"getPoll: expected {len(POLL_FIELDS)} fields, got {len(values)}"
        )
    data = dict(zip(POLL_FIELDS, values))

    for field in ("id", "start_time", "end_time", "total_votes", "candidate_count"):
        data[field] = _uint(data[field], field)
    for field in ("title", "description"):
        if not isinstance(data[field], str):
            raise DecodeError(f"{field}: expected string")

    status = _uint(data["contract_status"], "contract_status")
    try:
        data["contract_status"] = ContractStatus(status)
    except ValueError:
        raise DecodeError(f"contract_status: unknown value {status}") from None

    min_voters: Optional[int] = _uint(
        data["min_voters_required"], "min_voters_required"
    )
    data["min_voters_required"] = min_voters or None

    try:
        return PollMetadata(**data)
    except ValidationError as exc:
        raise DecodeError(f"getPoll: {exc}") from exc


def decode_results(raw: Any) -> list[tuple[int, int]]:
    """Decode ``getPollResults`` into ``(candidate_id, votes)`` pairs.

    Arrays of different length are paired up to the shorter one.
    """
    values = _sequence(raw, "getPollResults")
    if len(values) != 2:
        raise DecodeError(f"getPollResults: expected 2 arrays, got {len(values)}")
    ids = _sequence(values[0], "candidateIds")
    votes = _sequence(values[1], "votes")
    return [
        (_uint(cid, "candidateIds"), _uint(count, "votes"))
        for cid, count in zip(ids, votes)
    ]


def decode_candidates(raw: Any) -> list[CandidateMeta]:
    """Decode the parallel arrays of ``getCandidateDetailsForPoll``.

    The id array drives the roster; a missing parallel entry falls back to
    an empty string (or inactive).
    """
    values = _sequence(raw, "getCandidateDetailsForPoll")
    if len(values) != 6:
        raise DecodeError(
            f"getCandidateDetailsForPoll: expected 6 arrays, got {len(values)}"
        )
    ids, names, parties, images, descriptions, active = (
        _sequence(v, name)
        for v, name in zip(
            values,
            ("ids", "names", "parties", "imageUrls", "descriptions", "isActiveList"),
        )
    )

    roster = []
    for i, cid in enumerate(ids):
        try:
            roster.append(
                CandidateMeta(
                    id=_uint(cid, "ids"),
                    name=_text(names, i, "names"),
                    party=_text(parties, i, "parties"),
                    image_url=resolve_image_url(_text(images, i, "imageUrls")),
                    description=_text(descriptions, i, "descriptions"),
                    is_active=bool(_at(active, i, False)),
                )
            )
        except ValidationError as exc:
            raise DecodeError(f"candidate {cid}: {exc}") from exc
    return roster
