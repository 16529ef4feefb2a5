"""
Registrant list ingestion: rows -> aggregated cluster catalog.

Each registrant row carries a cluster code somewhere in its cluster column.
Rows are grouped by that code into ClusterRecords (headcount, languages that
need translation, languages members can translate, potential leaders, status
counters). Rows without a recognizable code are dropped.
"""

import os
import re
import zipfile
from collections import OrderedDict
from datetime import datetime
from typing import Dict, List, Optional

import pandas as pd

from clusters import CATEGORIES, ClusterCatalog, ClusterRecord


class ClusterAggregator:
    """Load a registrant CSV/Excel file and aggregate it into clusters."""

    # Default column names in the registrant export
    CLUSTER_COL = 'Cluster'
    NAME_COL = 'Name'
    ENGLISH_COL = 'English'
    LANGUAGES_COL = 'Languages'
    TRANSLATOR_COL = 'Translator For'
    LEADER_COL = 'Potential Leader'
    STATUS_COL = 'Status'

    CLUSTER_CODE = re.compile(r'\b[bs][yo][A-Za-z]{2}\d+[ab]?\b')

    # English levels good enough to translate from the member's other languages
    ENGLISH_CAPABLE = {'fluent', 'fair'}

    LEADER_FLAGS = {'yes', 'y', 'true', '1', 'x'}

    STATUS_CONFIRMED = {'confirmed'}
    STATUS_WAITLISTED = {'waitlisted', 'waitlist', 'pending'}

    LANGUAGE_SEPARATORS = re.compile(r'[,;/]')

    def __init__(self, registrant_data_path: str, columns: Optional[Dict[str, str]] = None,
                 verbose: bool = True):
        """
        Load and aggregate registrant data.

        Args:
            registrant_data_path: Path to the CSV or Excel registrant list
            columns: Optional overrides, e.g. {'CLUSTER_COL': 'Group'}
            verbose: Whether to print progress messages

        Raises:
            FileNotFoundError: if the file does not exist
            ValueError: if the file is empty or has no cluster column
        """
        self.verbose = verbose
        self.columns = {
            'CLUSTER_COL': self.CLUSTER_COL,
            'NAME_COL': self.NAME_COL,
            'ENGLISH_COL': self.ENGLISH_COL,
            'LANGUAGES_COL': self.LANGUAGES_COL,
            'TRANSLATOR_COL': self.TRANSLATOR_COL,
            'LEADER_COL': self.LEADER_COL,
            'STATUS_COL': self.STATUS_COL,
        }
        if columns:
            unknown = set(columns) - set(self.columns)
            if unknown:
                raise ValueError(f"Unknown column keys: {', '.join(sorted(unknown))}")
            self.columns.update(columns)

        self.log("Loading registrant data...")
        self.df = self._read(registrant_data_path)
        if self.columns['CLUSTER_COL'] not in self.df.columns:
            raise ValueError(f"Registrant data has no '{self.columns['CLUSTER_COL']}' column")

        self.dropped_rows = 0
        self._clusters: Dict[str, dict] = OrderedDict()
        self._aggregate()

        self.log(f"Loaded {len(self.df)} registrant rows")
        self.log(f"  - Dropped {self.dropped_rows} rows without a cluster code")
        self.log(f"  - Found {len(self._clusters)} clusters")
        counts = self.catalog().category_counts()
        for category in CATEGORIES:
            self.log(f"  - {category}: {counts.get(category, 0)} clusters")

    def log(self, message: str):
        """Print a log message if verbose mode is enabled."""
        if self.verbose:
            timestamp = datetime.now().strftime("%H:%M:%S")
            print(f"[{timestamp}] {message}")

    def _read(self, path: str) -> pd.DataFrame:
        if not os.path.isfile(path):
            raise FileNotFoundError(f"File not found or not readable: {path}")
        try:
            if path.lower().endswith('.csv'):
                return pd.read_csv(path, dtype=str)
            return pd.read_excel(path, dtype=str)
        except (pd.errors.EmptyDataError, zipfile.BadZipFile) as e:
            raise ValueError(f"Registrant file is empty or invalid: {path}") from e

    def _column(self, row, key: str):
        value = row.get(self.columns[key])
        if pd.isna(value):
            return None
        value = str(value).strip()
        return value or None

    def _split_languages(self, value: Optional[str]) -> List[str]:
        if not value:
            return []
        langs = []
        for part in self.LANGUAGE_SEPARATORS.split(value):
            part = part.strip().lower()
            if part and part not in langs:
                langs.append(part)
        return langs

    def _aggregate(self):
        """Group rows by cluster code."""
        for idx, row in self.df.iterrows():
            raw = self._column(row, 'CLUSTER_COL')
            match = self.CLUSTER_CODE.search(raw) if raw else None
            if not match:
                self.dropped_rows += 1
                continue
            cluster_id = match.group(0)

            cluster = self._clusters.setdefault(cluster_id, {
                'headcount': 0,
                'spoken': set(),
                'translatable': set(),
                'leaders': set(),
                'confirmed': 0,
                'waitlisted': 0,
            })
            cluster['headcount'] += 1

            # ---- Languages ----
            languages = [lang for lang in self._split_languages(self._column(row, 'LANGUAGES_COL'))
                         if lang != 'english']
            english = (self._column(row, 'ENGLISH_COL') or '').lower()
            if english in self.ENGLISH_CAPABLE:
                cluster['translatable'].update(languages)
            else:
                cluster['spoken'].update(languages)
            cluster['translatable'].update(self._split_languages(self._column(row, 'TRANSLATOR_COL')))

            # ---- Leadership ----
            leader_flag = (self._column(row, 'LEADER_COL') or '').lower()
            if leader_flag in self.LEADER_FLAGS:
                name = self._column(row, 'NAME_COL') or f"Row {idx + 2}"
                cluster['leaders'].add(name)

            # ---- Status ----
            status = (self._column(row, 'STATUS_COL') or '').lower()
            if status in self.STATUS_CONFIRMED:
                cluster['confirmed'] += 1
            elif status in self.STATUS_WAITLISTED:
                cluster['waitlisted'] += 1

    def catalog(self) -> ClusterCatalog:
        """Aggregated clusters in first-seen order."""
        return ClusterCatalog(
            ClusterRecord(
                cluster_id=cid,
                headcount=c['headcount'],
                spoken_languages=frozenset(c['spoken']),
                translatable_languages=frozenset(c['translatable']),
                leader_names=frozenset(c['leaders']),
                confirmed_count=c['confirmed'],
                waitlisted_count=c['waitlisted'],
            )
            for cid, c in self._clusters.items()
        )
