"""
Cluster records and classification helpers for team formation.

A cluster is a pre-formed group of registrants sharing one identifier of the
form ``{b|s}{y|o}{origin}{id}{a|b}``, e.g. ``byUS12`` or ``soFR3a``. The
identifier encodes the cluster's category (gender + age) and its origin tag.
Everything in the engine that needs to know "is this the same category" goes
through ``classify_cluster``.
"""

import re
from collections import Counter, OrderedDict
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple


# Category codes in a fixed order (used for reports and tie-breaks)
CATEGORIES = ('by', 'bo', 'sy', 'so')

CATEGORY_LABELS = {
    'by': 'Brothers (young)',
    'bo': 'Brothers (older)',
    'sy': 'Sisters (young)',
    'so': 'Sisters (older)',
}

CLUSTER_ID_PATTERN = re.compile(r'^([bs])([yo])([A-Za-z]{2})(\d+)([ab]?)$')

_UKRAINIAN_SPELLINGS = re.compile(r'ukra(?:yi|i|y)n')


def classify_cluster(cluster_id: str) -> Optional[Tuple[str, str]]:
    """
    Map a cluster identifier to its (category, origin tag).

    Returns None when the identifier does not follow the cluster pattern;
    such clusters are treated as categoryless.
    """
    if not isinstance(cluster_id, str):
        return None
    match = CLUSTER_ID_PATTERN.match(cluster_id.strip())
    if not match:
        return None
    gender, age, origin = match.group(1), match.group(2), match.group(3)
    return gender + age, origin.upper()


def category_of(cluster_id: str) -> Optional[str]:
    """Category code of a cluster, or None if categoryless."""
    parsed = classify_cluster(cluster_id)
    return parsed[0] if parsed else None


def normalize_language(name) -> Optional[str]:
    """
    Normalize a language name for translation coverage.

    Returns None for English (and blanks): English is never counted as a
    missing language nor as a translation asset.
    """
    if name is None:
        return None
    lang = str(name).strip().lower()
    if not lang or lang == 'english':
        return None
    if _UKRAINIAN_SPELLINGS.search(lang):
        return 'russian'
    if 'hinese' in lang:
        return 'chinese'
    return lang


def normalize_languages(names: Iterable[str]) -> set:
    """Normalize a collection of language names, dropping English."""
    result = set()
    for name in names:
        lang = normalize_language(name)
        if lang is not None:
            result.add(lang)
    return result


@dataclass(frozen=True)
class ClusterRecord:
    """
    Aggregated view of one cluster.

    Attributes:
        cluster_id: Identifier as it appears in the registrant list
        headcount: Number of registrants mapped to this cluster
        spoken_languages: Languages of members who need translation into English
        translatable_languages: Languages some member can translate
        leader_names: Members flagged as potential team leaders
        confirmed_count: Confirmed registrants (reporting only)
        waitlisted_count: Waitlisted registrants (reporting only)
    """
    cluster_id: str
    headcount: int = 1
    spoken_languages: FrozenSet[str] = field(default_factory=frozenset)
    translatable_languages: FrozenSet[str] = field(default_factory=frozenset)
    leader_names: FrozenSet[str] = field(default_factory=frozenset)
    confirmed_count: int = 0
    waitlisted_count: int = 0

    def __post_init__(self):
        if self.headcount < 1:
            raise ValueError(f"Cluster {self.cluster_id} must have a headcount of at least 1")
        # Accept any iterable for the set fields
        for attr in ('spoken_languages', 'translatable_languages', 'leader_names'):
            value = getattr(self, attr)
            if not isinstance(value, frozenset):
                object.__setattr__(self, attr, frozenset(value))

    @property
    def category(self) -> Optional[str]:
        return category_of(self.cluster_id)

    @property
    def origin(self) -> Optional[str]:
        parsed = classify_cluster(self.cluster_id)
        return parsed[1] if parsed else None

    @property
    def has_leader(self) -> bool:
        return bool(self.leader_names)

    def speaks(self) -> set:
        """Normalized languages this cluster needs translated."""
        return normalize_languages(self.spoken_languages)

    def translates(self) -> set:
        """Normalized languages this cluster can translate."""
        return normalize_languages(self.translatable_languages)


class ClusterCatalog:
    """
    Read-only mapping of cluster id -> ClusterRecord.

    Iteration follows insertion order, which is the order every "first found"
    tie-break in the engine relies on.
    """

    def __init__(self, records: Iterable[ClusterRecord] = ()):
        self._records: Dict[str, ClusterRecord] = OrderedDict()
        for record in records:
            if record.cluster_id in self._records:
                raise ValueError(f"Duplicate cluster id: {record.cluster_id}")
            self._records[record.cluster_id] = record

    @classmethod
    def from_headcounts(cls, headcounts: Dict[str, int]) -> 'ClusterCatalog':
        """Build a catalog carrying only headcounts."""
        return cls(ClusterRecord(cid, count) for cid, count in headcounts.items())

    def __getitem__(self, cluster_id: str) -> ClusterRecord:
        return self._records[cluster_id]

    def __contains__(self, cluster_id) -> bool:
        return cluster_id in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def ids(self) -> List[str]:
        return list(self._records)

    def records(self) -> List[ClusterRecord]:
        return list(self._records.values())

    def headcount(self, cluster_id: str) -> int:
        return self._records[cluster_id].headcount

    def total_headcount(self) -> int:
        return sum(r.headcount for r in self.records())

    def category_counts(self) -> Counter:
        """Number of clusters per category (categoryless under None)."""
        return Counter(r.category for r in self.records())
