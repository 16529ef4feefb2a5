"""
Partition of clusters into teams, plus derived team profiles.

A Partition only stores which cluster sits in which team. Everything else
about a team (size, categories, languages, leaders) is recomputed from the
catalog by ``team_profile`` so it can never drift from the assignment.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from clusters import ClusterCatalog, category_of, classify_cluster


class Partition:
    """Ordered list of N teams, each an ordered list of cluster ids."""

    def __init__(self, num_teams: int, teams: Optional[Iterable[Iterable[str]]] = None):
        if num_teams < 1:
            raise ValueError(f"Number of teams must be at least 1 (got {num_teams})")
        if teams is None:
            self.teams: List[List[str]] = [[] for _ in range(num_teams)]
        else:
            self.teams = [list(team) for team in teams]
            if len(self.teams) != num_teams:
                raise ValueError(f"Expected {num_teams} teams, got {len(self.teams)}")

    def __len__(self) -> int:
        return len(self.teams)

    def __iter__(self):
        return iter(self.teams)

    def __getitem__(self, index: int) -> List[str]:
        return self.teams[index]

    def __eq__(self, other) -> bool:
        return isinstance(other, Partition) and self.teams == other.teams

    def __repr__(self) -> str:
        return f"Partition({self.teams!r})"

    def copy(self) -> 'Partition':
        return Partition(len(self.teams), self.teams)

    def cluster_ids(self) -> List[str]:
        return [cid for team in self.teams for cid in team]

    def team_of(self, cluster_id: str) -> Optional[int]:
        for i, team in enumerate(self.teams):
            if cluster_id in team:
                return i
        return None

    def assign(self, cluster_id: str, team_index: int):
        self.teams[team_index].append(cluster_id)

    def move(self, cluster_id: str, team_index: int):
        """Move a cluster to the end of another team."""
        source = self.team_of(cluster_id)
        if source is None:
            raise KeyError(cluster_id)
        if source == team_index:
            return
        self.teams[source].remove(cluster_id)
        self.teams[team_index].append(cluster_id)

    def swap(self, first: str, second: str):
        """Exchange two clusters; each takes the other's slot."""
        i, j = self.team_of(first), self.team_of(second)
        if i is None or j is None:
            raise KeyError(first if i is None else second)
        a, b = self.teams[i].index(first), self.teams[j].index(second)
        self.teams[i][a], self.teams[j][b] = second, first

    def is_complete(self, catalog: ClusterCatalog) -> bool:
        """True if every catalog cluster appears exactly once."""
        assigned = self.cluster_ids()
        return len(assigned) == len(catalog) and set(assigned) == set(catalog)

    def sizes(self, catalog: ClusterCatalog) -> List[int]:
        return [team_size(team, catalog) for team in self.teams]

    def category_counts(self, category: str) -> List[int]:
        return [sum(1 for cid in team if category_of(cid) == category) for team in self.teams]


def team_size(team: Iterable[str], catalog: ClusterCatalog) -> int:
    return sum(catalog.headcount(cid) for cid in team)


def missing_languages(team: Iterable[str], catalog: ClusterCatalog) -> set:
    """Normalized languages spoken in the team that nobody in it translates."""
    spoken, translatable = set(), set()
    for cid in team:
        record = catalog[cid]
        spoken |= record.speaks()
        translatable |= record.translates()
    return spoken - translatable


def leader_cluster_count(team: Iterable[str], catalog: ClusterCatalog) -> int:
    return sum(1 for cid in team if catalog[cid].has_leader)


@dataclass
class TeamProfile:
    """Derived summary of one team (never stored, always recomputed)."""
    size: int = 0
    category_counts: Counter = field(default_factory=Counter)
    origins: set = field(default_factory=set)
    spoken: set = field(default_factory=set)
    translatable: set = field(default_factory=set)
    leader_clusters: int = 0
    leader_names: List[str] = field(default_factory=list)
    confirmed: int = 0
    waitlisted: int = 0

    @property
    def missing(self) -> set:
        return self.spoken - self.translatable

    @property
    def duplicate_categories(self) -> Dict[str, int]:
        return {cat: n for cat, n in self.category_counts.items() if n > 1}


def team_profile(team: Iterable[str], catalog: ClusterCatalog) -> TeamProfile:
    profile = TeamProfile()
    for cid in team:
        record = catalog[cid]
        profile.size += record.headcount
        parsed = classify_cluster(cid)
        if parsed:
            profile.category_counts[parsed[0]] += 1
            profile.origins.add(parsed[1])
        profile.spoken |= record.speaks()
        profile.translatable |= record.translates()
        if record.has_leader:
            profile.leader_clusters += 1
            profile.leader_names.extend(sorted(record.leader_names))
        profile.confirmed += record.confirmed_count
        profile.waitlisted += record.waitlisted_count
    return profile
