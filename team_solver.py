"""
Team Formation Solver for Cluster-Based Event Rosters
=====================================================

Partitions pre-formed registrant clusters into a fixed number of teams
(42 by default). Clusters are never split across teams.

Pipeline (each stage is best-effort and iteration-bounded):
1. Initial placement: biggest clusters first; never two clusters of the same
   category in one team; prefer teams with fewer clusters, then teams that do
   not yet hold the cluster's origin
2. Category balancing: per-category counts differ by at most 1 across teams,
   then a cleanup of teams holding too many clusters of one category
3. Size balancing: same-category swaps between the largest and smallest team
4. Language coverage: same-category swaps so every spoken language has a
   translator in the team
5. Leadership: same-category swaps so every team has a potential leader
6. Pinning (optional): keep configured cluster pairs in one team

Categories (gender x age, encoded in the cluster id):
    by / bo - brothers, young / older
    sy / so - sisters, young / older

No stage raises when a goal cannot be met; unmet goals are reported as soft
constraint notes on the solution.
"""

import argparse
import os
import random
import sys
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from clusters import CATEGORIES, CATEGORY_LABELS, ClusterCatalog, category_of, classify_cluster
from partition import (
    Partition,
    leader_cluster_count,
    missing_languages,
    team_profile,
)
from registrant_loader import ClusterAggregator


class TeamFormationSolver:
    """
    Heuristic team formation over a catalog of clusters.

    Every balancing stage takes a Partition and returns a new one; the
    catalog is never modified.
    """

    DEFAULT_NUM_TEAMS = 42

    # Iteration ceilings (the only guard against non-termination)
    CATEGORY_PASSES = 40
    CLEANUP_PASSES = 20
    SIZE_ITERATIONS = 20
    LANGUAGE_ITERATIONS = 10

    # Placement score: fewer clusters dominates origin diversity
    SIZE_WEIGHT = 100

    # Most clusters of one category tolerated in a team after cleanup
    MAX_PER_CATEGORY = 2

    def __init__(self, catalog: ClusterCatalog, num_teams: int = DEFAULT_NUM_TEAMS,
                 verbose: bool = True, rng: Optional[random.Random] = None):
        """
        Initialize the solver.

        Args:
            catalog: Aggregated clusters to distribute
            num_teams: Number of teams to form
            verbose: Whether to print progress messages
            rng: Optional seeded random source for the category cleanup
                 relocation; when None the lowest-index candidate is used
        """
        if num_teams < 1:
            raise ValueError(f"Number of teams must be at least 1 (got {num_teams})")
        self.catalog = catalog
        self.num_teams = num_teams
        self.verbose = verbose
        self.rng = rng

    def log(self, message: str):
        """Print a log message if verbose mode is enabled."""
        if self.verbose:
            timestamp = datetime.now().strftime("%H:%M:%S")
            print(f"[{timestamp}] {message}")

    @staticmethod
    def team_name(index: int) -> str:
        return f"Team {index + 1}"

    # ================================================================
    # STAGE 1: INITIAL PLACEMENT
    # ================================================================

    def place_initial(self) -> Partition:
        """Greedy placement, largest clusters first."""
        partition = Partition(self.num_teams)
        team_categories = [set() for _ in range(self.num_teams)]
        team_origins = [set() for _ in range(self.num_teams)]

        # sorted() is stable: equal headcounts keep catalog order
        ordered = sorted(self.catalog.ids(), key=self.catalog.headcount, reverse=True)

        fallbacks = 0
        for cid in ordered:
            parsed = classify_cluster(cid)
            category, origin = parsed if parsed else (None, None)

            best_team = None
            best_score = None
            for i, team in enumerate(partition):
                # Hard rule: one cluster per category per team
                if category is not None and category in team_categories[i]:
                    continue
                size_score = -len(team)
                origin_score = 1 if origin is not None and origin not in team_origins[i] else 0
                score = size_score * self.SIZE_WEIGHT + origin_score
                if best_score is None or score > best_score:
                    best_score = score
                    best_team = i

            # Category present everywhere: fall back to the team with fewest clusters
            if best_team is None:
                fallbacks += 1
                fewest = min(len(team) for team in partition)
                best_team = next(i for i, team in enumerate(partition) if len(team) == fewest)

            partition.assign(cid, best_team)
            if category is not None:
                team_categories[best_team].add(category)
                team_origins[best_team].add(origin)

        self.log(f"Initial placement: {len(ordered)} clusters into {self.num_teams} teams"
                 f" ({fallbacks} placed despite a category clash)")
        return partition

    # ================================================================
    # STAGE 2: CATEGORY BALANCING
    # ================================================================

    def balance_categories(self, partition: Partition, max_passes: Optional[int] = None,
                           cleanup_passes: Optional[int] = None) -> Partition:
        """Even out per-category counts, then clean up crowded teams."""
        max_passes = self.CATEGORY_PASSES if max_passes is None else max_passes
        cleanup_passes = self.CLEANUP_PASSES if cleanup_passes is None else cleanup_passes
        partition = partition.copy()

        moves = 0
        for _ in range(max_passes):
            moved = False
            for category in CATEGORIES:
                counts = partition.category_counts(category)
                high, low = max(counts), min(counts)
                if high - low <= 1:
                    continue
                source = counts.index(high)
                target = counts.index(low)
                members = [cid for cid in partition[source] if category_of(cid) == category]
                # Take the second one so at least low + 1 stay behind
                partition.move(members[1], target)
                moves += 1
                moved = True
            if not moved:
                break

        relocations = self._cleanup_categories(partition, cleanup_passes)
        self.log(f"Category balancing: {moves} moves, {relocations} cleanup relocations")
        return partition

    def _cleanup_categories(self, partition: Partition, max_passes: int) -> int:
        relocations = 0
        for _ in range(max_passes):
            changed = False
            for source in range(len(partition)):
                crowded, excess = self._crowded_clusters(partition[source])
                for cid, category in crowded:
                    target = self._relocation_target(partition, source, category, excess)
                    if target is None:
                        continue
                    partition.move(cid, target)
                    relocations += 1
                    changed = True
            if not changed:
                break
        return relocations

    def _crowded_clusters(self, team: List[str]) -> Tuple[List[Tuple[str, str]], bool]:
        """
        Clusters that should leave a team, and whether they are excess.

        Anything beyond MAX_PER_CATEGORY of one category; otherwise, when the
        team holds exactly MAX_PER_CATEGORY of two or more categories, the
        second cluster of the first such category.
        """
        by_category: Dict[str, List[str]] = {}
        for cid in team:
            category = category_of(cid)
            if category is not None:
                by_category.setdefault(category, []).append(cid)

        excess = [
            (cid, category)
            for category, cids in by_category.items()
            if len(cids) > self.MAX_PER_CATEGORY
            for cid in cids[self.MAX_PER_CATEGORY:]
        ]
        if excess:
            return excess, True

        doubled = [c for c, cids in by_category.items() if len(cids) == self.MAX_PER_CATEGORY]
        if len(doubled) >= 2:
            return [(by_category[doubled[0]][1], doubled[0])], False
        return [], False

    def _relocation_target(self, partition: Partition, source: int, category: str,
                           excess: bool = True) -> Optional[int]:
        counts = partition.category_counts(category)
        others = [i for i in range(len(partition)) if i != source]
        if not others:
            return None
        fewest = min(counts[i] for i in others)
        if excess:
            # Excess only moves if it strictly evens out the two teams
            if fewest + 1 >= counts[source]:
                return None
        elif fewest + 1 > self.MAX_PER_CATEGORY:
            return None
        candidates = [i for i in others if counts[i] == fewest]
        if self.rng is not None:
            return self.rng.choice(candidates)
        return candidates[0]

    # ================================================================
    # STAGE 3: SIZE BALANCING
    # ================================================================

    def balance_sizes(self, partition: Partition, max_iterations: Optional[int] = None) -> Partition:
        """Steepest-descent swaps between the largest and smallest team."""
        max_iterations = self.SIZE_ITERATIONS if max_iterations is None else max_iterations
        partition = partition.copy()

        swaps = 0
        for _ in range(max_iterations):
            sizes = partition.sizes(self.catalog)
            largest = sizes.index(max(sizes))
            smallest = sizes.index(min(sizes))
            if sizes[largest] - sizes[smallest] <= 1:
                break
            pair = self._best_size_swap(partition, largest, smallest, sizes)
            if pair is None:
                break
            partition.swap(*pair)
            swaps += 1

        sizes = partition.sizes(self.catalog)
        self.log(f"Size balancing: {swaps} swaps, sizes {min(sizes)}-{max(sizes)}")
        return partition

    def _best_size_swap(self, partition: Partition, largest: int, smallest: int,
                        sizes: List[int]) -> Optional[Tuple[str, str]]:
        best_pair = None
        best_spread = sizes[largest] - sizes[smallest]
        for a in partition[largest]:
            category = category_of(a)
            if category is None:
                continue
            for b in partition[smallest]:
                if category_of(b) != category:
                    continue
                delta = self.catalog.headcount(a) - self.catalog.headcount(b)
                spread = abs((sizes[largest] - delta) - (sizes[smallest] + delta))
                if spread < best_spread:
                    best_spread = spread
                    best_pair = (a, b)
        return best_pair

    # ================================================================
    # STAGE 4: LANGUAGE COVERAGE
    # ================================================================

    def balance_languages(self, partition: Partition, max_iterations: Optional[int] = None) -> Partition:
        """Swap translators into teams with untranslated languages."""
        max_iterations = self.LANGUAGE_ITERATIONS if max_iterations is None else max_iterations
        partition = partition.copy()

        swaps = 0
        for _ in range(max_iterations):
            candidate = self._find_language_swap(partition)
            if candidate is None:
                break
            speaker, translator, language = candidate
            partition.swap(speaker, translator)
            swaps += 1
            self.log(f"  {speaker} <-> {translator} (covers {language})")

        remaining = sum(1 for team in partition if missing_languages(team, self.catalog))
        self.log(f"Language coverage: {swaps} swaps, {remaining} teams still missing a translator")
        return partition

    def _find_language_swap(self, partition: Partition) -> Optional[Tuple[str, str, str]]:
        """First acceptable (speaker, translator, language) swap, scanning teams in order."""
        for i, team in enumerate(partition):
            missing = missing_languages(team, self.catalog)
            for language in sorted(missing):
                speaker = self._untranslated_speaker(team, language)
                if speaker is None:
                    continue
                category = category_of(speaker)
                for j, other in enumerate(partition):
                    if j == i:
                        continue
                    for cid in other:
                        if category_of(cid) != category:
                            continue
                        if language not in self.catalog[cid].translates():
                            continue
                        if self._language_swap_accepted(partition, i, j, speaker, cid, len(missing)):
                            return speaker, cid, language
        return None

    def _untranslated_speaker(self, team: List[str], language: str) -> Optional[str]:
        """First swappable (categorized) cluster needing `language` translated."""
        for cid in team:
            if category_of(cid) is None:
                continue
            record = self.catalog[cid]
            if language in record.speaks() and language not in record.translates():
                return cid
        return None

    def _language_swap_accepted(self, partition: Partition, speaker_team: int, other_team: int,
                                speaker: str, translator: str, missing_before: int) -> bool:
        after_speaker_team = [translator if c == speaker else c for c in partition[speaker_team]]
        after_other_team = [speaker if c == translator else c for c in partition[other_team]]
        if len(missing_languages(after_speaker_team, self.catalog)) > missing_before:
            return False
        return not missing_languages(after_other_team, self.catalog)

    # ================================================================
    # STAGE 5: LEADERSHIP
    # ================================================================

    def balance_leaders(self, partition: Partition) -> Partition:
        """Give leaderless teams a leader-bearing cluster from a team with several."""
        partition = partition.copy()
        leaderless, surplus = self._classify_leadership(partition)

        swaps = 0
        for needy in leaderless:
            for donor in surplus:
                pair = self._find_leader_swap(partition, donor, needy)
                if pair is None:
                    continue
                partition.swap(*pair)
                swaps += 1
                _, surplus = self._classify_leadership(partition)
                break

        leaderless_after, _ = self._classify_leadership(partition)
        self.log(f"Leadership: {swaps} swaps, {len(leaderless_after)} teams without a leader")
        return partition

    def _classify_leadership(self, partition: Partition) -> Tuple[List[int], List[int]]:
        counts = [leader_cluster_count(team, self.catalog) for team in partition]
        leaderless = [i for i, n in enumerate(counts) if n == 0]
        surplus = [i for i, n in enumerate(counts) if n > 1]
        return leaderless, surplus

    def _find_leader_swap(self, partition: Partition, donor: int, needy: int) -> Optional[Tuple[str, str]]:
        for leader in partition[donor]:
            if not self.catalog[leader].has_leader:
                continue
            category = category_of(leader)
            if category is None:
                continue
            for cid in partition[needy]:
                if category_of(cid) == category and not self.catalog[cid].has_leader:
                    return leader, cid
        return None

    # ================================================================
    # STAGE 6: PINNING
    # ================================================================

    def pin_together(self, partition: Partition, anchor: str, follower: str) -> Partition:
        """
        Put ``follower`` in the same team as ``anchor``.

        Prefers swapping the follower with a same-category cluster of the
        anchor's team; otherwise moves it outright, even if that gives the
        team a second cluster of the follower's category.
        """
        partition = partition.copy()
        target = partition.team_of(anchor)
        source = partition.team_of(follower)
        if target is None or source is None:
            missing = anchor if target is None else follower
            self.log(f"  WARNING: cannot pin {follower} to {anchor}: {missing} is not assigned")
            return partition
        if target == source:
            return partition

        category = category_of(follower)
        if category is not None:
            for cid in partition[target]:
                if cid != anchor and category_of(cid) == category:
                    partition.swap(follower, cid)
                    self.log(f"Pinned {follower} to {anchor} in {self.team_name(target)} (swapped with {cid})")
                    return partition

        partition.move(follower, target)
        self.log(f"Pinned {follower} to {anchor} in {self.team_name(target)} (moved)")
        return partition

    # ================================================================
    # PIPELINE
    # ================================================================

    def solve(self,
              category_passes: Optional[int] = None,
              cleanup_passes: Optional[int] = None,
              size_iterations: Optional[int] = None,
              language_iterations: Optional[int] = None,
              pin_pairs: Iterable[Tuple[str, str]] = ()) -> dict:
        """
        Run every stage in order and return the solution.

        Args:
            category_passes: Ceiling for per-category balancing passes
            cleanup_passes: Ceiling for the crowded-team cleanup
            size_iterations: Ceiling for size-balancing swaps
            language_iterations: Ceiling for language-coverage swaps
            pin_pairs: (anchor, follower) cluster pairs to keep together

        Returns:
            Solution dictionary with teams, statistics and constraint notes
        """
        self.log("")
        self.log("=" * 70)
        self.log("STARTING TEAM FORMATION")
        self.log("=" * 70)
        self.log(f"{len(self.catalog)} clusters, {self.catalog.total_headcount()} registrants,"
                 f" {self.num_teams} teams")

        stages = []

        partition = self.place_initial()
        stages.append(self._stage_summary('Initial placement', partition))

        partition = self.balance_categories(partition, category_passes, cleanup_passes)
        stages.append(self._stage_summary('Category balancing', partition))

        partition = self.balance_sizes(partition, size_iterations)
        stages.append(self._stage_summary('Size balancing', partition))

        partition = self.balance_languages(partition, language_iterations)
        stages.append(self._stage_summary('Language coverage', partition))

        partition = self.balance_leaders(partition)
        stages.append(self._stage_summary('Leadership', partition))

        pin_pairs = list(pin_pairs)
        if pin_pairs:
            for anchor, follower in pin_pairs:
                partition = self.pin_together(partition, anchor, follower)
            stages.append(self._stage_summary('Pinning', partition))

        solution = self._extract_solution(partition, stages)
        self.log(f"Status: {solution['status']}")
        return solution

    def _stage_summary(self, name: str, partition: Partition) -> dict:
        sizes = partition.sizes(self.catalog)
        return {
            'stage': name,
            'size_spread': max(sizes) - min(sizes),
            'teams_missing_translation': sum(1 for t in partition if missing_languages(t, self.catalog)),
            'leaderless_teams': sum(1 for t in partition if leader_cluster_count(t, self.catalog) == 0),
            'category_duplicates': sum(
                1 for t in partition if team_profile(t, self.catalog).duplicate_categories
            ),
        }

    def _extract_solution(self, partition: Partition, stages: List[dict]) -> dict:
        """Derive per-team diagnostics and statistics from the final partition."""
        solution = {
            'status': 'Complete' if partition.is_complete(self.catalog) else 'Incomplete',
            'partition': partition,
            'teams': [],
            'stages': stages,
            'statistics': {},
            'constraint_violations': {'hard': [], 'soft': []},
        }

        for i, team in enumerate(partition):
            profile = team_profile(team, self.catalog)
            solution['teams'].append({
                'index': i,
                'name': self.team_name(i),
                'clusters': list(team),
                'size': profile.size,
                'categories': {c: profile.category_counts[c] for c in CATEGORIES if profile.category_counts[c]},
                'duplicate_categories': profile.duplicate_categories,
                'origins': sorted(profile.origins),
                'missing_languages': sorted(profile.missing),
                'translation_assets': sorted(profile.translatable),
                'leaders': profile.leader_names,
                'leader_clusters': profile.leader_clusters,
                'confirmed': profile.confirmed,
                'waitlisted': profile.waitlisted,
            })

        sizes = np.array([t['size'] for t in solution['teams']])
        solution['statistics'] = {
            'total_clusters': len(self.catalog),
            'total_registrants': self.catalog.total_headcount(),
            'assigned_clusters': len(partition.cluster_ids()),
            'teams_formed': len(partition),
            'min_size': int(sizes.min()),
            'max_size': int(sizes.max()),
            'mean_size': float(sizes.mean()),
            'std_size': float(sizes.std()),
            'size_spread': int(sizes.max() - sizes.min()),
            'teams_missing_translation': sum(1 for t in solution['teams'] if t['missing_languages']),
            'leaderless_teams': sum(1 for t in solution['teams'] if t['leader_clusters'] == 0),
            'teams_with_category_duplicates': sum(1 for t in solution['teams'] if t['duplicate_categories']),
        }

        solution['constraint_violations'] = self._check_violations(solution)
        return solution

    def _check_violations(self, solution: dict) -> dict:
        """List unmet goals. Only an incomplete partition counts as hard."""
        violations = {'hard': [], 'soft': []}
        stats = solution['statistics']

        if solution['status'] != 'Complete':
            violations['hard'].append(
                f"Partition holds {stats['assigned_clusters']} cluster slots for"
                f" {stats['total_clusters']} clusters"
            )

        if stats['size_spread'] > 1:
            violations['soft'].append(
                f"Team sizes range {stats['min_size']}-{stats['max_size']} (spread {stats['size_spread']})"
            )

        for team in solution['teams']:
            name = team['name']
            for category, count in team['duplicate_categories'].items():
                violations['soft'].append(f"{name}: {count} clusters of category {category}")
            if team['missing_languages']:
                violations['soft'].append(f"{name}: no translator for {', '.join(team['missing_languages'])}")
            if team['leader_clusters'] == 0:
                violations['soft'].append(f"{name}: No potential leader")

        return violations

    # ================================================================
    # REPORTING
    # ================================================================

    def print_report(self, solution: dict):
        """Print a comprehensive solution report."""
        print("\n" + "=" * 80)
        print("TEAM FORMATION SOLUTION REPORT")
        print("=" * 80)

        stats = solution['statistics']
        print(f"\n{'SUMMARY':^80}")
        print("-" * 80)
        print(f"  Status: {solution['status']}")
        print(f"  Clusters: {stats['assigned_clusters']}/{stats['total_clusters']} assigned")
        print(f"  Registrants: {stats['total_registrants']}")
        print(f"  Teams: {stats['teams_formed']}")
        print(f"  Team size: {stats['min_size']}-{stats['max_size']}"
              f" (mean {stats['mean_size']:.1f}, std {stats['std_size']:.2f})")
        print(f"  Teams missing a translator: {stats['teams_missing_translation']}")
        print(f"  Teams without a leader: {stats['leaderless_teams']}")
        print(f"  Teams with a repeated category: {stats['teams_with_category_duplicates']}")

        print(f"\n{'STAGES':^80}")
        print("-" * 80)
        for s in solution['stages']:
            print(f"  {s['stage']:<20} spread={s['size_spread']:<4} untranslated={s['teams_missing_translation']:<4}"
                  f" leaderless={s['leaderless_teams']:<4} repeated categories={s['category_duplicates']}")

        print(f"\n{'TEAMS':^80}")
        print("-" * 80)
        for team in solution['teams']:
            ok = not (team['missing_languages'] or team['leader_clusters'] == 0 or team['duplicate_categories'])
            status = "[OK]" if ok else "[SOFT]"
            categories = ', '.join(f"{CATEGORY_LABELS[c]} x{n}" for c, n in team['categories'].items())

            print(f"\n  {status} {team['name']}")
            print(f"     Clusters: {', '.join(team['clusters']) or '-'}")
            print(f"     Size: {team['size']} (confirmed {team['confirmed']}, waitlisted {team['waitlisted']})")
            print(f"     Categories: {categories or '-'}")
            print(f"     Origins: {', '.join(team['origins']) or '-'}")
            print(f"     Leaders: {', '.join(team['leaders']) or 'NONE'}")
            if team['missing_languages']:
                print(f"     Missing translation: {', '.join(team['missing_languages'])}")

        viol = solution['constraint_violations']
        if viol['hard']:
            print(f"\n{'HARD CONSTRAINT VIOLATIONS':^80}")
            print("-" * 80)
            for v in viol['hard']:
                print(f"  ⚠ {v}")

        if viol['soft']:
            print(f"\n{'SOFT CONSTRAINT NOTES':^80}")
            print("-" * 80)
            for v in viol['soft']:
                print(f"  ℹ {v}")

        print("\n" + "=" * 80)

    def export_solution(self, solution: dict, output_path: str = "team_assignments.csv") -> List[str]:
        """
        Export the solution.

        A ``.csv`` path receives the assignment rows and a sibling
        ``<name>_summary.csv`` the per-team summary; any other path is
        written as an Excel workbook with one sheet each plus statistics.

        Returns:
            Paths of the files written
        """
        self.log(f"Exporting solution to {output_path}...")

        # ---- Team Assignments ----
        assignment_rows = []
        for team in solution['teams']:
            for cid in team['clusters']:
                record = self.catalog[cid]
                parsed = classify_cluster(cid)
                assignment_rows.append({
                    'Team': team['name'],
                    'Cluster': cid,
                    'Category': parsed[0] if parsed else '',
                    'Origin': parsed[1] if parsed else '',
                    'Headcount': record.headcount,
                    'Leaders': ', '.join(sorted(record.leader_names)),
                    'Confirmed': record.confirmed_count,
                    'Waitlisted': record.waitlisted_count,
                })
        df_assignments = pd.DataFrame(assignment_rows, columns=[
            'Team', 'Cluster', 'Category', 'Origin', 'Headcount', 'Leaders', 'Confirmed', 'Waitlisted',
        ])

        # ---- Team Summary ----
        summary_rows = []
        for team in solution['teams']:
            summary_rows.append({
                'Team': team['name'],
                'Clusters': len(team['clusters']),
                'Size': team['size'],
                'Categories': ', '.join(f"{c}x{n}" for c, n in team['categories'].items()),
                'Origins': ', '.join(team['origins']),
                'Leaders': ', '.join(team['leaders']),
                'Missing Translation': ', '.join(team['missing_languages']),
                'Translation Assets': ', '.join(team['translation_assets']),
                'Confirmed': team['confirmed'],
                'Waitlisted': team['waitlisted'],
            })
        df_summary = pd.DataFrame(summary_rows)

        if output_path.lower().endswith('.csv'):
            root, _ = os.path.splitext(output_path)
            summary_path = f"{root}_summary.csv"
            df_assignments.to_csv(output_path, index=False)
            df_summary.to_csv(summary_path, index=False)
            written = [output_path, summary_path]
        else:
            stats = solution['statistics']
            df_stats = pd.DataFrame({
                'Metric': [
                    'Total Clusters',
                    'Total Registrants',
                    'Teams',
                    'Smallest Team',
                    'Largest Team',
                    'Mean Team Size',
                    'Teams Missing Translation',
                    'Teams Without Leader',
                    'Soft Constraint Notes',
                ],
                'Value': [
                    stats['total_clusters'],
                    stats['total_registrants'],
                    stats['teams_formed'],
                    stats['min_size'],
                    stats['max_size'],
                    f"{stats['mean_size']:.1f}",
                    stats['teams_missing_translation'],
                    stats['leaderless_teams'],
                    len(solution['constraint_violations']['soft']),
                ],
            })
            with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
                df_summary.to_excel(writer, sheet_name='Team Summary', index=False)
                df_assignments.to_excel(writer, sheet_name='Team Assignments', index=False)
                df_stats.to_excel(writer, sheet_name='Statistics', index=False)
            written = [output_path]

        self.log(f"Solution exported to {', '.join(written)}")
        return written


def main(argv=None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="Form event teams from registrant clusters")
    parser.add_argument("registrants", help="Registrant list (.csv or Excel)")
    parser.add_argument("--teams", type=int, default=TeamFormationSolver.DEFAULT_NUM_TEAMS,
                        help=f"Number of teams (default: {TeamFormationSolver.DEFAULT_NUM_TEAMS})")
    parser.add_argument("--output", default="team_assignments.csv",
                        help="Output path; .csv writes assignments + summary, otherwise Excel")
    parser.add_argument("--pin", nargs=2, action="append", default=[], metavar=("ANCHOR", "FOLLOWER"),
                        help="Keep FOLLOWER in the same team as ANCHOR (repeatable)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for the category cleanup relocation (default: deterministic)")
    parser.add_argument("--category-passes", type=int, default=TeamFormationSolver.CATEGORY_PASSES)
    parser.add_argument("--size-iterations", type=int, default=TeamFormationSolver.SIZE_ITERATIONS)
    parser.add_argument("--language-iterations", type=int, default=TeamFormationSolver.LANGUAGE_ITERATIONS)
    parser.add_argument("--no-export", action="store_true", help="Only print the report")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress messages")
    args = parser.parse_args(argv)

    verbose = not args.quiet
    try:
        catalog = ClusterAggregator(args.registrants, verbose=verbose).catalog()
        rng = random.Random(args.seed) if args.seed is not None else None
        solver = TeamFormationSolver(catalog, num_teams=args.teams, verbose=verbose, rng=rng)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    solution = solver.solve(
        category_passes=args.category_passes,
        size_iterations=args.size_iterations,
        language_iterations=args.language_iterations,
        pin_pairs=[tuple(pair) for pair in args.pin],
    )

    solver.print_report(solution)
    if not args.no_export:
        written = solver.export_solution(solution, args.output)
        print(f"\nComplete! Check {', '.join(written)} for the full solution.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
