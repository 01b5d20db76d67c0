"""Exceptions raised by the poll results engine."""


class PollResultsError(Exception):
    """Base class for poll results errors."""


class DecodeError(PollResultsError):
    """A contract response did not have the expected shape."""


class InvalidPollId(PollResultsError):
    """A caller supplied a poll identifier that is not a valid uint."""

    def __init__(self, raw: object) -> None:
        super().__init__(f"Invalid poll id: {raw!r}")
        self.raw = raw
