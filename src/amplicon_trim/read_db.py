"""
Read counts per amplicon.

Tallies how many reads start at the start or the end boundary of each
amplicon, as identified by the seed index. Used for QC metrics on the
trimmed output.
"""

from typing import Iterable, List, Literal, Optional

import pandas as pd

from .amplicon_index import SeedIndex
from .sequencing_read import FastqRecord, ReadPair

BOUNDARIES = ('start', 'end')


class AmpliconReadCounter:
    """
    In-memory tally of reads per amplicon boundary.

    Each worker may hold its own instance; instances are combined with
    :meth:`merge`.

    Parameters
    ----------
    amplicon_names : list of str, optional
        Amplicons to report even when no reads are assigned to them.

    Examples
    --------
    >>> counter = AmpliconReadCounter(amplicon_names=['chr1:101-250'])
    >>> counter.increment_count('chr1:101-250', 'start')
    >>> counter.counts().loc['chr1:101-250', 'start']
    1
    """

    def __init__(self, amplicon_names: Optional[List[str]] = None):
        # Structure: {amplicon: {boundary: count}}
        self._counts: dict[str, dict[str, int]] = {}
        for name in amplicon_names or []:
            self._counts[name] = {b: 0 for b in BOUNDARIES}

        self.unassigned = 0
        self.ambiguous = 0

    def increment_count(
        self,
        amplicon: str,
        boundary: Literal['start', 'end'],
        count: int = 1,
    ) -> None:
        """Increment the count for an amplicon boundary."""
        if boundary not in BOUNDARIES:
            raise ValueError(f"Unknown amplicon boundary: {boundary}")
        if amplicon not in self._counts:
            self._counts[amplicon] = {b: 0 for b in BOUNDARIES}
        self._counts[amplicon][boundary] += count

    def get_count(self, amplicon: str, boundary: Literal['start', 'end']) -> int:
        return self._counts.get(amplicon, {}).get(boundary, 0)

    def count_read(self, read: FastqRecord, index: SeedIndex) -> None:
        """Assign a read to an amplicon boundary by its leading seed."""
        match = index.lookup(read.bases)
        if match is None:
            self.unassigned += 1
        elif match.ambiguous:
            self.ambiguous += 1
        else:
            self.increment_count(match.amplicon.name, match.hit.boundary)

    def count_pairs(self, pairs: Iterable[ReadPair], index: SeedIndex) -> None:
        for pair in pairs:
            self.count_read(pair.r1, index)
            self.count_read(pair.r2, index)

    def merge(self, other: "AmpliconReadCounter") -> None:
        """Add the tallies of another counter into this one."""
        for amplicon, boundary_counts in other._counts.items():
            for boundary, count in boundary_counts.items():
                self.increment_count(amplicon, boundary, count)
        self.unassigned += other.unassigned
        self.ambiguous += other.ambiguous

    def counts(self) -> pd.DataFrame:
        """
        Export counts as a DataFrame.

        Returns
        -------
        pd.DataFrame
            Amplicons as rows, ``start`` / ``end`` / ``total`` columns.
        """
        if not self._counts:
            return pd.DataFrame(columns=[*BOUNDARIES, 'total'])

        df = pd.DataFrame.from_dict(self._counts, orient='index')
        df = df.reindex(columns=list(BOUNDARIES)).fillna(0).astype(int)
        df['total'] = df['start'] + df['end']
        df.index.name = 'amplicon'
        return df.sort_index()

    @property
    def n_amplicons(self) -> int:
        return len(self._counts)

    @property
    def total_counts(self) -> int:
        return sum(sum(c.values()) for c in self._counts.values())
