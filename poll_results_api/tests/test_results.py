"""Tests for result aggregation and CSV export."""

from poll_results_api.models import CandidateMeta
from poll_results_api.results import aggregate, export_filename, results_to_csv


def _roster(*names, inactive=()):
    return [
        CandidateMeta(
            id=i + 1,
            name=name,
            party=f"Party {name}",
            is_active=name not in inactive,
        )
        for i, name in enumerate(names)
    ]


class TestAggregate:
    def setup_method(self):
        self.roster = _roster("Alice", "Bob", "Carol")

    def test_percentages_and_ties(self):
        results = aggregate(self.roster, [(1, 10), (2, 10), (3, 5)], 25)
        assert [r.percentage for r in results] == [40.0, 40.0, 20.0]
        assert [r.is_tie for r in results] == [True, True, False]

    def test_ranks_follow_sort_position_on_ties(self):
        results = aggregate(self.roster, [(1, 10), (2, 10), (3, 5)], 25)
        assert [r.rank for r in results] == [1, 2, 3]

    def test_sorted_descending_by_votes(self):
        results = aggregate(self.roster, [(1, 2), (2, 9), (3, 4)], 15)
        assert [r.name for r in results] == ["Bob", "Carol", "Alice"]

    def test_equal_votes_keep_roster_order(self):
        results = aggregate(self.roster, [(1, 5), (2, 7), (3, 5)], 17)
        assert [r.name for r in results] == ["Bob", "Alice", "Carol"]

    def test_zero_vote_candidates_are_not_ties(self):
        results = aggregate(self.roster, [(1, 3)], 3)
        assert [r.votes for r in results] == [3, 0, 0]
        assert not any(r.is_tie for r in results)

    def test_unmatched_candidates_default_to_zero(self):
        results = aggregate(self.roster, [(2, 4), (99, 7)], 11)
        by_name = {r.name: r.votes for r in results}
        assert by_name == {"Alice": 0, "Bob": 4, "Carol": 0}

    def test_percentage_against_total_votes(self):
        # Removed candidates are absent from the result set but still counted.
        results = aggregate(self.roster, [(1, 30), (2, 20)], 100)
        assert [r.percentage for r in results] == [30.0, 20.0, 0.0]

    def test_zero_total_votes(self):
        results = aggregate(self.roster, [], 0)
        assert all(r.percentage == 0 for r in results)
        assert [r.rank for r in results] == [1, 2, 3]

    def test_percentage_rounds_half_up(self):
        roster = _roster(*[f"C{i}" for i in range(16)])
        results = aggregate(roster, [(1, 1)], 16)
        assert results[0].percentage == 6.3

    def test_percentage_one_decimal(self):
        results = aggregate(self.roster, [(1, 1), (2, 2)], 3)
        assert [r.percentage for r in results] == [66.7, 33.3, 0.0]

    def test_empty_roster(self):
        assert aggregate([], [(1, 10)], 10) == []

    def test_poll_id_attached(self):
        results = aggregate(self.roster, [(1, 1)], 1, poll_id=7)
        assert {r.poll_id for r in results} == {7}

    def test_active_only_drops_inactive(self):
        roster = _roster("Alice", "Bob", "Carol", inactive=("Bob",))
        results = aggregate(roster, [(1, 1), (2, 5), (3, 2)], 8, active_only=True)
        assert [r.name for r in results] == ["Carol", "Alice"]
        assert [r.rank for r in results] == [1, 2]

    def test_inactive_kept_by_default(self):
        roster = _roster("Alice", "Bob", inactive=("Bob",))
        assert len(aggregate(roster, [], 0)) == 2

    def test_idempotent(self):
        pairs = [(1, 10), (2, 10), (3, 5)]
        first = aggregate(self.roster, pairs, 25)
        second = aggregate(self.roster, pairs, 25)
        assert first == second
        assert [r.model_dump_json() for r in first] == [
            r.model_dump_json() for r in second
        ]

    def test_reaggregating_ranked_results(self):
        ranked = aggregate(self.roster, [(1, 10), (2, 10), (3, 5)], 25)
        again = aggregate(ranked, [(r.id, r.votes) for r in ranked], 25)
        assert again == ranked


class TestCsvExport:
    def test_header_and_rows(self):
        results = aggregate(_roster("Alice", "Bob"), [(1, 2), (2, 1)], 3)
        lines = results_to_csv(results).splitlines()
        assert lines[0] == "Candidate,Party,Votes,Percentage"
        assert lines[1] == "Alice,Party Alice,2,66.7%"
        assert lines[2] == "Bob,Party Bob,1,33.3%"

    def test_whole_percentages_have_no_decimal(self):
        results = aggregate(_roster("Alice", "Bob"), [(1, 10), (2, 15)], 25)
        lines = results_to_csv(results).splitlines()
        assert lines[1] == "Bob,Party Bob,15,60%"
        assert lines[2] == "Alice,Party Alice,10,40%"

    def test_commas_are_quoted(self):
        roster = [CandidateMeta(id=1, name="Smith, Jo", party="Green")]
        lines = results_to_csv(aggregate(roster, [(1, 1)], 1)).splitlines()
        assert lines[1] == '"Smith, Jo",Green,1,100%'

    def test_empty_results(self):
        assert results_to_csv([]) == "Candidate,Party,Votes,Percentage\n"

    def test_export_filename(self):
        assert export_filename("Board  Election 2025") == "Board_Election_2025_results.csv"
