"""
Amplicon loading and seed index.

Amplicons are loaded either from a multi-FASTA of amplicon sequences or
from a BED file of amplicon coordinates plus a reference genome FASTA.
The seed index maps short fixed-length sequences found at amplicon
boundaries back to the amplicon they came from, so a read can be assigned
to its amplicon from its first few bases.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Dict, Iterable, List, Literal, Optional, Tuple, Union

import pandas as pd
from Bio import SeqIO

from .constants import DEFAULT_MAX_OFFSET, DEFAULT_SEED_LENGTH
from .sequencing_read import reverse_complement

logger = logging.getLogger(__name__)

VALID_BASES = set("ACGTN")
REGION_NAME = re.compile(r'^(?P<chrom>[^:\s]+):(?P<start>\d+)-(?P<end>\d+)$')


class AmpliconIndexError(ValueError):
    """Raised when amplicons cannot be loaded or indexed."""
    pass


@dataclass(frozen=True)
class Amplicon:
    """
    A targeted genomic region and its sequence.

    Parameters
    ----------
    name : str
        Identifier, e.g. ``chr1:1001-1150``.
    sequence : str
        Amplicon sequence (forward strand, upper case).
    chrom, start, end : optional
        Genomic coordinates (1-based, inclusive) when known.

    Read tallies per boundary are kept by
    :class:`~amplicon_trim.read_db.AmpliconReadCounter`.
    """

    name: str
    sequence: str
    chrom: Optional[str] = None
    start: Optional[int] = None
    end: Optional[int] = None

    def __len__(self) -> int:
        return len(self.sequence)


@dataclass(frozen=True)
class SeedHit:
    """An indexed seed: which amplicon, which boundary, how far inside it."""

    amplicon: Amplicon
    offset: int
    boundary: Literal['start', 'end']


@dataclass(frozen=True)
class SeedMatch:
    """
    Result of a seed lookup.

    A seed shared by several amplicons is ambiguous: ``amplicon`` is then
    None and ``amplicons`` lists every candidate.
    """

    seed: str
    hits: Tuple[SeedHit, ...]

    @property
    def amplicons(self) -> Tuple[Amplicon, ...]:
        unique = {}
        for hit in self.hits:
            unique.setdefault(hit.amplicon.name, hit.amplicon)
        return tuple(unique.values())

    @property
    def ambiguous(self) -> bool:
        return len(self.amplicons) > 1

    @property
    def amplicon(self) -> Optional[Amplicon]:
        return None if self.ambiguous else self.hits[0].amplicon

    @property
    def hit(self) -> Optional[SeedHit]:
        return None if self.ambiguous else self.hits[0]


class SeedIndex:
    """
    Seed lookup table over a set of amplicons.

    For every amplicon, seeds are taken at each offset in ``offsets`` from
    the amplicon start (forward strand) and from the amplicon end (reverse
    complement strand), so reads starting up to ``max(offsets)`` bases
    inside either boundary can be assigned. Amplicons with identical
    sequences are indexed once.

    Parameters
    ----------
    amplicons : iterable of Amplicon
        Amplicons to index. Must not be empty.
    seed_length : int, default 30
        Length of every seed; fixed for the lifetime of the index.
    offsets : iterable of int, default 0..5
        Positions inside each boundary at which seeds are taken.

    Examples
    --------
    >>> index = SeedIndex(amplicons, seed_length=20)
    >>> match = index.lookup(read.bases)
    >>> if match is not None and not match.ambiguous:
    ...     print(match.amplicon.name)
    """

    def __init__(
        self,
        amplicons: Iterable[Amplicon],
        seed_length: int = DEFAULT_SEED_LENGTH,
        offsets: Iterable[int] = range(0, DEFAULT_MAX_OFFSET + 1),
    ):
        if seed_length <= 0:
            raise ValueError(f"Seed length must be positive, got {seed_length}")

        self._seed_length = seed_length
        self._offsets = tuple(sorted(set(offsets)))
        if not self._offsets or self._offsets[0] < 0:
            raise ValueError(f"Seed offsets must be non-negative, got {self._offsets}")

        self._amplicons: Dict[str, Amplicon] = {}
        self._seeds: Dict[str, List[SeedHit]] = {}

        seen_sequences: Dict[str, str] = {}
        for amplicon in amplicons:
            if amplicon.sequence in seen_sequences:
                logger.debug(
                    f"Amplicon {amplicon.name} has the same sequence as "
                    f"{seen_sequences[amplicon.sequence]}; indexing once"
                )
                continue
            if amplicon.name in self._amplicons:
                raise AmpliconIndexError(f"Duplicate amplicon name with different sequence: {amplicon.name}")
            seen_sequences[amplicon.sequence] = amplicon.name
            self._amplicons[amplicon.name] = amplicon
            self._add_seeds(amplicon)

        if not self._amplicons:
            raise AmpliconIndexError("No amplicons to index")

        ambiguous = self.ambiguous_seeds
        for seed in ambiguous[:10]:
            names = [a.name for a in SeedMatch(seed, tuple(self._seeds[seed])).amplicons]
            logger.warning(f"Ambiguous seed '{seed}' is shared by amplicons {names}")
        if len(ambiguous) > 10:
            logger.warning(f"... {len(ambiguous) - 10} more ambiguous seeds not shown")

        logger.info(
            f"Indexed {len(self._seeds):,} seeds of length {seed_length} "
            f"from {len(self._amplicons):,} amplicons ({len(ambiguous):,} ambiguous)"
        )

    @classmethod
    def build(
        cls,
        amplicons: Iterable[Amplicon],
        seed_length: int = DEFAULT_SEED_LENGTH,
        max_offset: int = DEFAULT_MAX_OFFSET,
    ) -> "SeedIndex":
        """Build an index with seeds at offsets ``0..max_offset``."""
        return cls(amplicons, seed_length=seed_length, offsets=range(0, max_offset + 1))

    def _add_seeds(self, amplicon: Amplicon) -> None:
        k = self._seed_length
        seq = amplicon.sequence
        seq_rc = reverse_complement(seq)
        for offset in self._offsets:
            if offset + k > len(seq):
                break
            for boundary, source in (('start', seq), ('end', seq_rc)):
                seed = source[offset:offset + k]
                hits = self._seeds.setdefault(seed, [])
                # A palindromic or repetitive amplicon can produce the same seed twice
                if not any(h.amplicon is amplicon for h in hits):
                    hits.append(SeedHit(amplicon, offset, boundary))

    @property
    def seed_length(self) -> int:
        return self._seed_length

    @property
    def offsets(self) -> Tuple[int, ...]:
        return self._offsets

    @property
    def amplicons(self) -> List[Amplicon]:
        return list(self._amplicons.values())

    @property
    def ambiguous_seeds(self) -> List[str]:
        """Seeds shared by more than one amplicon."""
        return sorted(
            seed for seed, hits in self._seeds.items()
            if len({h.amplicon.name for h in hits}) > 1
        )

    def lookup(self, sequence: str) -> Optional[SeedMatch]:
        """
        Look up the amplicon owning the seed at the start of ``sequence``.

        Returns None when ``sequence`` is shorter than the seed length or
        its seed is not indexed.
        """
        if len(sequence) < self._seed_length:
            return None
        seed = sequence[:self._seed_length]
        hits = self._seeds.get(seed)
        if not hits:
            return None
        return SeedMatch(seed, tuple(hits))

    def sequence_for(self, amplicon: Union[Amplicon, str]) -> str:
        """Return the sequence of an indexed amplicon (by object or name)."""
        name = amplicon.name if isinstance(amplicon, Amplicon) else amplicon
        try:
            return self._amplicons[name].sequence
        except KeyError:
            raise AmpliconIndexError(f"Amplicon not in index: {name}") from None

    def __len__(self) -> int:
        return len(self._amplicons)

    def __contains__(self, name: str) -> bool:
        return name in self._amplicons


class ReferenceSequenceProvider(ABC):
    """Source of reference sequence for genomic regions."""

    @abstractmethod
    def extract(self, chrom: str, start: int, end: int) -> str:
        """Return the upper-case sequence of ``chrom`` over [start, end) (0-based)."""
        pass


class FastaReference(ReferenceSequenceProvider):
    """
    Reference genome backed by an on-disk FASTA file.

    Records are indexed lazily with :func:`Bio.SeqIO.index`, so only the
    contigs that are queried are loaded.
    """

    def __init__(self, fasta_path: Union[PathLike, str]):
        self._fasta_path = Path(fasta_path)
        if not self._fasta_path.exists():
            raise AmpliconIndexError(f"Reference FASTA not found: {self._fasta_path}")
        self._records = SeqIO.index(str(self._fasta_path), 'fasta')
        if len(self._records) == 0:
            self._records.close()
            raise AmpliconIndexError(f"Reference FASTA contains no sequences: {self._fasta_path}")

    def extract(self, chrom: str, start: int, end: int) -> str:
        if chrom not in self._records:
            raise AmpliconIndexError(f"Contig {chrom} not found in reference {self._fasta_path}")
        record = self._records[chrom]
        if end > len(record.seq):
            raise AmpliconIndexError(
                f"Region {chrom}:{start}-{end} extends past the end of {chrom} ({len(record.seq)} bp)"
            )
        return str(record.seq[start:end]).upper()

    def close(self) -> None:
        self._records.close()

    def __enter__(self) -> "FastaReference":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _validate_sequence(name: str, sequence: str, source: Union[PathLike, str]) -> None:
    if not sequence:
        raise AmpliconIndexError(f"Amplicon {name} in {source} has an empty sequence")
    invalid = set(sequence) - VALID_BASES
    if invalid:
        raise AmpliconIndexError(f"Amplicon {name} in {source} contains invalid bases: {sorted(invalid)}")


def load_amplicons_from_fasta(fasta_path: Union[PathLike, str]) -> List[Amplicon]:
    """
    Load amplicons from a multi-FASTA of amplicon sequences.

    Record names of the form ``chrom:start-end`` are parsed into coordinates.

    Raises
    ------
    AmpliconIndexError
        If the file is missing, empty, or holds invalid sequences.
    """
    fasta_path = Path(fasta_path)
    if not fasta_path.exists():
        raise AmpliconIndexError(f"Amplicon FASTA not found: {fasta_path}")

    amplicons = []
    for record in SeqIO.parse(str(fasta_path), 'fasta'):
        sequence = str(record.seq).upper()
        _validate_sequence(record.id, sequence, fasta_path)

        coords = REGION_NAME.match(record.id)
        if coords:
            amplicons.append(Amplicon(
                name=record.id,
                sequence=sequence,
                chrom=coords.group('chrom'),
                start=int(coords.group('start')),
                end=int(coords.group('end')),
            ))
        else:
            amplicons.append(Amplicon(name=record.id, sequence=sequence))

    if not amplicons:
        raise AmpliconIndexError(f"No amplicon sequences found in {fasta_path}")

    logger.info(f"Loaded {len(amplicons):,} amplicons from {fasta_path}")
    return amplicons


def read_bed_regions(bed_path: Union[PathLike, str]) -> pd.DataFrame:
    """
    Read amplicon regions from a BED file.

    Header (``track``, ``browser``, ``#``) lines are skipped. Regions listed
    more than once are collapsed and the result is sorted by coordinate.

    Returns
    -------
    pd.DataFrame
        Columns ``chrom``, ``start`` (0-based), ``end`` (exclusive).
    """
    bed_path = Path(bed_path)
    if not bed_path.exists():
        raise AmpliconIndexError(f"BED file not found: {bed_path}")

    rows = []
    with open(bed_path) as f:
        for line_num, line in enumerate(f, start=1):
            if not line.strip() or line.startswith(('#', 'track', 'browser')):
                continue
            fields = line.split()
            if len(fields) < 3:
                raise AmpliconIndexError(f"{bed_path}:{line_num}: expected at least 3 columns")
            rows.append(fields[:3])
    if not rows:
        raise AmpliconIndexError(f"No regions found in {bed_path}")

    df = pd.DataFrame(rows, columns=['chrom', 'start', 'end'])
    try:
        df[['start', 'end']] = df[['start', 'end']].apply(pd.to_numeric).astype(int)
    except ValueError as e:
        raise AmpliconIndexError(f"Malformed BED coordinates in {bed_path}: {e}") from e

    bad = df[(df['start'] < 0) | (df['end'] <= df['start'])]
    if len(bad) > 0:
        row = bad.iloc[0]
        raise AmpliconIndexError(
            f"Invalid region in {bed_path}: {row['chrom']}:{row['start']}-{row['end']}"
        )

    n_regions = len(df)
    df = (
        df.drop_duplicates(['chrom', 'start', 'end'])
        .sort_values(['chrom', 'start', 'end'])
        .reset_index(drop=True)
    )
    if len(df) < n_regions:
        logger.info(f"Collapsed {n_regions - len(df)} duplicate regions in {bed_path}")

    return df


def load_amplicons_from_bed(
    bed_path: Union[PathLike, str],
    reference: ReferenceSequenceProvider,
) -> List[Amplicon]:
    """
    Extract amplicon sequences for the regions of a BED file.

    Amplicons are named ``chrom:start-end`` with 1-based inclusive
    coordinates.
    """
    regions = read_bed_regions(bed_path)

    amplicons = []
    for chrom, start, end in regions[['chrom', 'start', 'end']].itertuples(index=False):
        name = f"{chrom}:{start + 1}-{end}"
        sequence = reference.extract(chrom, int(start), int(end))
        _validate_sequence(name, sequence, bed_path)
        amplicons.append(Amplicon(name=name, sequence=sequence, chrom=chrom, start=int(start) + 1, end=int(end)))

    logger.info(f"Extracted {len(amplicons):,} amplicon sequences for regions in {bed_path}")
    return amplicons
