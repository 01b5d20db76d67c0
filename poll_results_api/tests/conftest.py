"""Shared fixtures: an in-memory stand-in for the election contract."""

import pytest

BOARD_POLL = [1, "Board Election", "Annual board vote", 1_000, 5_000, 1, 25, 3, 50]
BOARD_RESULTS = [[1, 2, 3], [10, 10, 5]]
BOARD_CANDIDATES = [
    [1, 2, 3],
    ["Alice Mensah", "Bob Kamara", "Carol Diallo"],
    ["Blue", "Green", "Red"],
    ["ipfs://alice", "", "https://img.example/carol.png"],
    ["", "", ""],
    [True, True, False],
]

COUNCIL_POLL = [2, "Council Seat", "", 4_000_000_000, 4_000_086_400, 0, 0, 0, 0]
EMPTY_RESULTS = [[], []]
EMPTY_CANDIDATES = [[], [], [], [], [], []]

BROKEN_POLL = [3, "Referendum", "", 1_000, 2_000, 2, 4, 2, 0]


class FakeReader:
    """Serves canned contract responses; ``failures`` maps (method, id) to an error."""

    def __init__(self):
        self.polls = {1: BOARD_POLL, 2: COUNCIL_POLL, 3: BROKEN_POLL}
        self.results = {1: BOARD_RESULTS, 2: EMPTY_RESULTS, 3: [[1, 2], [3, 1]]}
        self.candidates = {
            1: BOARD_CANDIDATES,
            2: EMPTY_CANDIDATES,
            3: [[1, 2], ["Yes", "No"], ["", ""], ["", ""], ["", ""], [True, True]],
        }
        self.failures = {("get_poll_results", 3): ConnectionError("RPC timeout")}
        self.calls = []

    def _serve(self, method, poll_id, table):
        self.calls.append((method, poll_id))
        error = self.failures.get((method, poll_id))
        if error is not None:
            raise error
        return table[poll_id]

    def get_all_polls(self):
        self.calls.append(("get_all_polls", None))
        return sorted(self.polls)

    def get_poll(self, poll_id):
        return self._serve("get_poll", poll_id, self.polls)

    def get_poll_results(self, poll_id):
        return self._serve("get_poll_results", poll_id, self.results)

    def get_candidate_details(self, poll_id):
        return self._serve("get_candidate_details", poll_id, self.candidates)


@pytest.fixture
def reader():
    return FakeReader()
