"""
Tests for the team formation pipeline and each of its stages.

Run with: pytest test_team_solver.py
"""

import random

import pandas as pd
import pytest

from clusters import CATEGORIES, ClusterCatalog, ClusterRecord, category_of
from partition import Partition, leader_cluster_count, missing_languages
from team_solver import TeamFormationSolver, main


def make_solver(records, num_teams, **kwargs):
    return TeamFormationSolver(ClusterCatalog(records), num_teams=num_teams, verbose=False, **kwargs)


def synthetic_catalog(num_clusters=60, seed=7):
    """Deterministic mixed catalog with languages and leaders."""
    rnd = random.Random(seed)
    origins = ["US", "FR", "DE", "BR", "UA", "CN"]
    languages = ["spanish", "ukrainian", "chinese", "arabic", "french"]
    records = []
    for n in range(num_clusters):
        category = CATEGORIES[n % 4]
        cid = f"{category}{rnd.choice(origins)}{n + 1}"
        spoken = {rnd.choice(languages)} if rnd.random() < 0.3 else set()
        translatable = {rnd.choice(languages)} if rnd.random() < 0.5 else set()
        leaders = {f"Leader {n}"} if rnd.random() < 0.4 else set()
        records.append(ClusterRecord(cid, rnd.randint(1, 8), spoken, translatable, leaders))
    return ClusterCatalog(records)


def category_spreads(partition):
    spreads = {}
    for category in CATEGORIES:
        counts = partition.category_counts(category)
        spreads[category] = max(counts) - min(counts)
    return spreads


def improving_size_swap_exists(partition, catalog):
    """Exhaustive re-check between the first largest and first smallest team."""
    sizes = partition.sizes(catalog)
    largest, smallest = sizes.index(max(sizes)), sizes.index(min(sizes))
    spread = sizes[largest] - sizes[smallest]
    for a in partition[largest]:
        for b in partition[smallest]:
            if category_of(a) is None or category_of(a) != category_of(b):
                continue
            delta = catalog.headcount(a) - catalog.headcount(b)
            if abs((sizes[largest] - delta) - (sizes[smallest] + delta)) < spread:
                return True
    return False


class TestInitialPlacement:
    """Greedy placement, largest clusters first."""

    def test_four_categories_two_teams(self):
        solver = make_solver([
            ClusterRecord("byUS1", 3),
            ClusterRecord("syUS2", 3),
            ClusterRecord("boUS3", 3),
            ClusterRecord("soUS4", 3),
        ], num_teams=2)
        partition = solver.place_initial()

        assert partition.teams == [["byUS1", "boUS3"], ["syUS2", "soUS4"]]
        for team in partition:
            assert len({category_of(cid) for cid in team}) == len(team)
        sizes = partition.sizes(solver.catalog)
        assert sizes[0] == sizes[1]

    def test_largest_cluster_first(self):
        solver = make_solver([
            ClusterRecord("syUS1", 1),
            ClusterRecord("byUS2", 9),
        ], num_teams=2)
        partition = solver.place_initial()
        assert partition.teams == [["byUS2"], ["syUS1"]]

    def test_one_per_category_when_possible(self):
        solver = make_solver([ClusterRecord(f"byUS{i}", 2) for i in range(3)], num_teams=3)
        partition = solver.place_initial()
        assert [len(team) for team in partition] == [1, 1, 1]

    def test_fallback_to_fewest_clusters(self):
        solver = make_solver([
            ClusterRecord("byUS1", 5),
            ClusterRecord("byUS2", 4),
            ClusterRecord("byUS3", 3),
        ], num_teams=2)
        partition = solver.place_initial()
        assert partition.teams == [["byUS1", "byUS3"], ["byUS2"]]

    def test_origin_diversity_breaks_ties(self):
        solver = make_solver([
            ClusterRecord("byFR1", 5),
            ClusterRecord("syUS2", 4),
            ClusterRecord("boFR3", 3),
        ], num_teams=2)
        partition = solver.place_initial()
        assert partition.teams == [["byFR1"], ["syUS2", "boFR3"]]

    def test_categoryless_cluster_still_placed(self):
        solver = make_solver([
            ClusterRecord("byUS1", 2),
            ClusterRecord("guest", 7),
        ], num_teams=2)
        partition = solver.place_initial()
        assert partition.is_complete(solver.catalog)
        assert sorted(partition.sizes(solver.catalog)) == [2, 7]

    def test_complete_on_synthetic_catalog(self):
        solver = TeamFormationSolver(synthetic_catalog(), num_teams=6, verbose=False)
        assert solver.place_initial().is_complete(solver.catalog)

    def test_invalid_team_count(self):
        with pytest.raises(ValueError):
            TeamFormationSolver(ClusterCatalog(), num_teams=0)


class TestCategoryBalancing:
    """Per-category floor/floor+1 redistribution and cleanup."""

    def test_spreads_a_crowded_team(self):
        solver = make_solver([ClusterRecord(f"byUS{i}", 1) for i in range(1, 5)], num_teams=3)
        start = Partition(3, [["byUS1", "byUS2", "byUS3", "byUS4"], [], []])
        result = solver.balance_categories(start)

        assert result.teams == [["byUS1", "byUS4"], ["byUS2"], ["byUS3"]]
        assert category_spreads(result)["by"] <= 1
        assert start.teams == [["byUS1", "byUS2", "byUS3", "byUS4"], [], []]

    def test_cleanup_relocates_excess(self):
        solver = make_solver([ClusterRecord(f"byUS{i}", 1) for i in range(1, 5)], num_teams=3)
        start = Partition(3, [["byUS1", "byUS2", "byUS3", "byUS4"], [], []])
        result = solver.balance_categories(start, max_passes=0)
        assert result.teams == [["byUS1", "byUS2"], ["byUS3"], ["byUS4"]]

    def test_cleanup_breaks_double_pairs(self):
        solver = make_solver([
            ClusterRecord("byUS1", 1),
            ClusterRecord("byUS2", 1),
            ClusterRecord("soUS3", 1),
            ClusterRecord("soUS4", 1),
        ], num_teams=2)
        start = Partition(2, [["byUS1", "byUS2", "soUS3", "soUS4"], []])
        result = solver.balance_categories(start, max_passes=0)
        assert result.teams == [["byUS1", "soUS3", "soUS4"], ["byUS2"]]

    def test_double_pairs_move_next_to_single_pairs(self):
        solver = make_solver([
            ClusterRecord(cid, 1)
            for cid in ("byUS1", "byUS2", "soUS3", "soUS4", "byFR5", "soFR6", "byDE7", "soDE8")
        ], num_teams=3)
        start = Partition(3, [["byUS1", "byUS2", "soUS3", "soUS4"], ["byFR5", "soFR6"], ["byDE7", "soDE8"]])
        result = solver.balance_categories(start)

        assert result != start
        assert result.teams == [
            ["byUS1", "soUS3", "soUS4"], ["byFR5", "soFR6", "byUS2"], ["byDE7", "soDE8"],
        ]

    def test_double_pairs_stay_when_no_team_has_room(self):
        solver = make_solver([
            ClusterRecord(cid, 1)
            for cid in ("byUS1", "byUS2", "soUS3", "soUS4", "byFR5", "byFR6", "soFR7", "soFR8")
        ], num_teams=2)
        start = Partition(2, [["byUS1", "byUS2", "soUS3", "soUS4"], ["byFR5", "byFR6", "soFR7", "soFR8"]])
        assert solver.balance_categories(start) == start

    def test_seeded_cleanup_is_reproducible(self):
        records = [ClusterRecord(f"byUS{i}", 1) for i in range(1, 7)]
        start = Partition(4, [[f"byUS{i}" for i in range(1, 7)], [], [], []])
        first = make_solver(records, 4, rng=random.Random(3)).balance_categories(start, max_passes=0)
        second = make_solver(records, 4, rng=random.Random(3)).balance_categories(start, max_passes=0)
        assert first == second
        assert first.is_complete(ClusterCatalog(records))
        assert max(first.category_counts("by")) <= 2

    def test_category_cap_on_synthetic_catalog(self):
        solver = TeamFormationSolver(synthetic_catalog(), num_teams=6, verbose=False)
        result = solver.balance_categories(solver.place_initial())
        assert result.is_complete(solver.catalog)
        assert all(spread <= 1 for spread in category_spreads(result).values())


class TestSizeBalancing:
    """Same-category swaps between the largest and smallest team."""

    def test_best_swap_is_applied(self):
        solver = make_solver([
            ClusterRecord("byUS1", 5),
            ClusterRecord("syUS2", 3),
            ClusterRecord("byUS3", 3),
            ClusterRecord("syUS4", 1),
        ], num_teams=2)
        start = Partition(2, [["byUS1", "syUS2"], ["byUS3", "syUS4"]])
        result = solver.balance_sizes(start)
        assert result.teams == [["byUS3", "syUS2"], ["byUS1", "syUS4"]]
        assert result.sizes(solver.catalog) == [6, 6]

    def test_never_swaps_across_categories(self):
        solver = make_solver([ClusterRecord("byUS1", 5), ClusterRecord("syUS2", 1)], num_teams=2)
        start = Partition(2, [["byUS1"], ["syUS2"]])
        result = solver.balance_sizes(start)
        assert result == start
        assert not improving_size_swap_exists(result, solver.catalog)

    def test_iteration_ceiling(self):
        solver = make_solver([
            ClusterRecord("byUS1", 5),
            ClusterRecord("byUS3", 3),
        ], num_teams=2)
        start = Partition(2, [["byUS1"], ["byUS3"]])
        assert solver.balance_sizes(start, max_iterations=0) == start

    def test_convergence_on_synthetic_catalog(self):
        solver = TeamFormationSolver(synthetic_catalog(), num_teams=6, verbose=False)
        before = solver.balance_categories(solver.place_initial())
        result = solver.balance_sizes(before)
        sizes = result.sizes(solver.catalog)
        assert result.is_complete(solver.catalog)
        assert max(sizes) - min(sizes) <= 1 or not improving_size_swap_exists(result, solver.catalog)
        # same-category swaps keep the category counts
        for category in CATEGORIES:
            assert sorted(result.category_counts(category)) == sorted(before.category_counts(category))


class TestLanguageCoverage:
    """Swapping translators into teams with untranslated languages."""

    def test_swap_closes_gap(self):
        solver = make_solver([
            ClusterRecord("byUS1", 2, spoken_languages={"spanish"}),
            ClusterRecord("syUS2", 2),
            ClusterRecord("byUS3", 2, translatable_languages={"spanish"}),
            ClusterRecord("syUS4", 2, translatable_languages={"spanish"}),
        ], num_teams=2)
        start = Partition(2, [["byUS1", "syUS2"], ["byUS3", "syUS4"]])
        result = solver.balance_languages(start)
        assert result.teams == [["byUS3", "syUS2"], ["byUS1", "syUS4"]]
        assert all(not missing_languages(team, solver.catalog) for team in result)

    def test_rejects_swap_that_breaks_other_team(self):
        solver = make_solver([
            ClusterRecord("byUS1", 2, spoken_languages={"spanish"}),
            ClusterRecord("syUS2", 2),
            ClusterRecord("byUS3", 2, translatable_languages={"spanish"}),
            ClusterRecord("syUS4", 2),
        ], num_teams=2)
        start = Partition(2, [["byUS1", "syUS2"], ["byUS3", "syUS4"]])
        assert solver.balance_languages(start) == start

    def test_only_same_category_translators(self):
        solver = make_solver([
            ClusterRecord("byUS1", 2, spoken_languages={"arabic"}),
            ClusterRecord("syUS2", 2, translatable_languages={"arabic"}),
            ClusterRecord("soUS3", 2, translatable_languages={"arabic"}),
        ], num_teams=2)
        start = Partition(2, [["byUS1"], ["syUS2", "soUS3"]])
        assert solver.balance_languages(start) == start

    def test_categoryless_speaker_does_not_block_language(self):
        solver = make_solver([
            ClusterRecord("guest", 2, spoken_languages={"spanish"}),
            ClusterRecord("byUS1", 2, spoken_languages={"spanish"}),
            ClusterRecord("syUS2", 2),
            ClusterRecord("byUS3", 2, translatable_languages={"spanish"}),
            ClusterRecord("syUS4", 2, translatable_languages={"spanish"}),
        ], num_teams=2)
        start = Partition(2, [["guest", "byUS1", "syUS2"], ["byUS3", "syUS4"]])
        result = solver.balance_languages(start)
        assert result.teams == [["guest", "byUS3", "syUS2"], ["byUS1", "syUS4"]]
        assert all(not missing_languages(team, solver.catalog) for team in result)

    def test_normalized_languages_count_as_covered(self):
        solver = make_solver([
            ClusterRecord("byUA1", 2, spoken_languages={"Ukrainian", "English"}),
            ClusterRecord("syUS2", 2, translatable_languages={"Russian"}),
        ], num_teams=1)
        partition = Partition(1, [["byUA1", "syUS2"]])
        assert missing_languages(partition[0], solver.catalog) == set()

    def test_monotonic_on_synthetic_catalog(self):
        solver = TeamFormationSolver(synthetic_catalog(), num_teams=6, verbose=False)
        before = solver.balance_sizes(solver.balance_categories(solver.place_initial()))
        result = solver.balance_languages(before, max_iterations=25)
        assert result.is_complete(solver.catalog)
        for old, new in zip(before, result):
            assert len(missing_languages(new, solver.catalog)) <= len(missing_languages(old, solver.catalog))


class TestLeadership:
    """Spreading leader-bearing clusters."""

    def test_leaderless_team_receives_leader(self):
        solver = make_solver([
            ClusterRecord("byUS1", 2, leader_names={"Ali"}),
            ClusterRecord("syUS2", 2, leader_names={"Sara"}),
            ClusterRecord("byUS3", 2),
            ClusterRecord("syUS4", 2),
            ClusterRecord("byUS5", 2, leader_names={"Omar"}),
            ClusterRecord("soUS6", 2),
        ], num_teams=3)
        start = Partition(3, [["byUS1", "syUS2"], ["byUS3", "syUS4"], ["byUS5", "soUS6"]])
        result = solver.balance_leaders(start)

        assert result.teams == [["byUS3", "syUS2"], ["byUS1", "syUS4"], ["byUS5", "soUS6"]]
        assert all(leader_cluster_count(team, solver.catalog) >= 1 for team in result)

    def test_no_matching_category_leaves_team_alone(self):
        solver = make_solver([
            ClusterRecord("byUS1", 2, leader_names={"Ali"}),
            ClusterRecord("byUS2", 2, leader_names={"Omar"}),
            ClusterRecord("syUS3", 2),
        ], num_teams=2)
        start = Partition(2, [["byUS1", "byUS2"], ["syUS3"]])
        assert solver.balance_leaders(start) == start

    def test_non_regression_on_synthetic_catalog(self):
        solver = TeamFormationSolver(synthetic_catalog(), num_teams=6, verbose=False)
        before = solver.place_initial()
        result = solver.balance_leaders(before)

        def leaderless(p):
            return sum(1 for team in p if leader_cluster_count(team, solver.catalog) == 0)

        assert result.is_complete(solver.catalog)
        assert leaderless(result) <= leaderless(before)


class TestPinning:
    """Keeping two clusters in one team."""

    @pytest.fixture
    def solver(self):
        return make_solver([
            ClusterRecord("byUS1", 2),
            ClusterRecord("syUS2", 2),
            ClusterRecord("byUS3", 2),
            ClusterRecord("soUS4", 2),
        ], num_teams=2)

    def test_already_together_is_noop(self, solver):
        start = Partition(2, [["byUS1", "syUS2"], ["byUS3", "soUS4"]])
        result = solver.pin_together(start, "byUS1", "syUS2")
        assert result == start

    def test_prefers_same_category_swap(self, solver):
        start = Partition(2, [["byUS1", "syUS2"], ["byUS3", "soUS4"]])
        result = solver.pin_together(start, "soUS4", "byUS1")
        assert result.teams == [["byUS3", "syUS2"], ["byUS1", "soUS4"]]

    def test_falls_back_to_move(self, solver):
        start = Partition(2, [["byUS1", "byUS3"], ["syUS2", "soUS4"]])
        result = solver.pin_together(start, "syUS2", "byUS1")
        assert result.teams == [["byUS3"], ["syUS2", "soUS4", "byUS1"]]

    def test_unknown_cluster_is_ignored(self, solver):
        start = Partition(2, [["byUS1", "syUS2"], ["byUS3", "soUS4"]])
        assert solver.pin_together(start, "byUS1", "boXX9") == start


class TestPipeline:
    """End-to-end solve() behaviour."""

    @pytest.fixture
    def solver(self):
        return TeamFormationSolver(synthetic_catalog(), num_teams=6, verbose=False)

    def test_solution_shape(self, solver):
        solution = solver.solve()
        assert solution['status'] == 'Complete'
        assert solution['partition'].is_complete(solver.catalog)
        assert len(solution['teams']) == 6
        assert [s['stage'] for s in solution['stages']] == [
            'Initial placement', 'Category balancing', 'Size balancing', 'Language coverage', 'Leadership',
        ]
        stats = solution['statistics']
        assert stats['total_clusters'] == 60
        assert stats['assigned_clusters'] == 60
        assert stats['total_registrants'] == solver.catalog.total_headcount()
        assert sum(t['size'] for t in solution['teams']) == stats['total_registrants']
        assert solution['constraint_violations']['hard'] == []

    def test_pinning_stage(self, solver):
        ids = solver.catalog.ids()
        solution = solver.solve(pin_pairs=[(ids[0], ids[1])])
        assert solution['stages'][-1]['stage'] == 'Pinning'
        partition = solution['partition']
        assert partition.team_of(ids[0]) == partition.team_of(ids[1])
        assert partition.is_complete(solver.catalog)

    def test_deterministic(self, solver):
        first = solver.solve()['partition']
        second = TeamFormationSolver(synthetic_catalog(), num_teams=6, verbose=False).solve()['partition']
        assert first == second

    def test_more_teams_than_clusters(self):
        solver = make_solver([ClusterRecord("byUS1", 3), ClusterRecord("syUS2", 2)], num_teams=4)
        solution = solver.solve()
        assert solution['status'] == 'Complete'
        assert solution['statistics']['min_size'] == 0
        assert any('No potential leader' in v for v in solution['constraint_violations']['soft'])

    def test_empty_catalog(self):
        solution = make_solver([], num_teams=3).solve()
        assert solution['status'] == 'Complete'
        assert solution['statistics']['size_spread'] == 0

    def test_print_report(self, solver, capsys):
        solver.print_report(solver.solve())
        out = capsys.readouterr().out
        assert "TEAM FORMATION SOLUTION REPORT" in out
        assert "Team 6" in out


class TestExport:
    """CSV and Excel export."""

    @pytest.fixture
    def solved(self):
        solver = TeamFormationSolver(synthetic_catalog(20), num_teams=4, verbose=False)
        return solver, solver.solve()

    def test_csv_export(self, solved, tmp_path):
        solver, solution = solved
        written = solver.export_solution(solution, str(tmp_path / "teams.csv"))
        assert written == [str(tmp_path / "teams.csv"), str(tmp_path / "teams_summary.csv")]

        assignments = pd.read_csv(written[0])
        summary = pd.read_csv(written[1])
        assert len(assignments) == 20
        assert set(assignments['Cluster']) == set(solver.catalog)
        assert list(summary['Team']) == ['Team 1', 'Team 2', 'Team 3', 'Team 4']
        assert summary['Size'].sum() == solver.catalog.total_headcount()

    def test_excel_export(self, solved, tmp_path):
        solver, solution = solved
        path = str(tmp_path / "teams.xlsx")
        assert solver.export_solution(solution, path) == [path]
        sheets = pd.ExcelFile(path).sheet_names
        assert sheets == ['Team Summary', 'Team Assignments', 'Statistics']


class TestCommandLine:
    """make-teams entry point."""

    def test_runs_and_exports(self, tmp_path, capsys):
        source = tmp_path / "registrants.csv"
        pd.DataFrame({
            'Name': ['A', 'B', 'C', 'D', 'E'],
            'Cluster': ['byUS1', 'byUS1', 'syFR2', 'boDE3', 'soBR4'],
        }).to_csv(source, index=False)
        output = tmp_path / "out.csv"

        code = main([str(source), '--teams', '2', '--output', str(output), '--quiet',
                     '--pin', 'byUS1', 'soBR4'])

        assert code == 0
        assert output.exists()
        assert (tmp_path / "out_summary.csv").exists()
        assignments = pd.read_csv(output)
        teams = dict(zip(assignments['Cluster'], assignments['Team']))
        assert teams['byUS1'] == teams['soBR4']

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope.csv"), '--quiet']) == 1
        assert "Error:" in capsys.readouterr().out

    def test_corrupt_excel_file(self, tmp_path, capsys):
        source = tmp_path / "registrants.xlsx"
        source.write_bytes(b"PK\x03\x04garbage")
        assert main([str(source), '--quiet']) == 1
        assert "Error:" in capsys.readouterr().out

    def test_invalid_team_count(self, tmp_path, capsys):
        source = tmp_path / "registrants.csv"
        pd.DataFrame({'Cluster': ['byUS1']}).to_csv(source, index=False)
        assert main([str(source), '--teams', '0', '--quiet']) == 1
