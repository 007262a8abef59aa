"""
Amplicon-aware adapter trimming.

When a fragment is shorter than the read length, each read runs through
the fragment into the adapter ligated to the far end. For an amplicon
library the two reads of such a pair are then reverse complements of one
another once the adapter is removed, and the partner read starts at (or a
few bases from) the point where the adapter begins. Requiring that
signature, plus a full alignment of the two reads, avoids trimming
adapter-like sequence from inside genuine amplicons.
"""

import logging
from dataclasses import asdict, dataclass, fields
from multiprocessing import Pool
from os import PathLike
from typing import Iterable, Iterator, Optional, Tuple, Union

import pandas as pd

from .adapter import AdapterPrefixTable
from .alignment import GlobalAligner, SequenceAligner
from .amplicon_index import SeedIndex
from .constants import (
    ADJOINING_WINDOW,
    ALIGNMENT_SCORE_THRESHOLD,
    MID_READ_MIN_INDEX,
    MID_READ_MIN_PREFIX,
    SHORT_FRAGMENT_LENGTH,
    SHORT_FRAGMENT_MAX_DISTANCE,
)
from .offset import OffsetRange
from .sequencing_read import FastqRecord, ReadPair, reverse_complement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrimCounters:
    """
    Per-pair (or aggregated) trimming tallies.

    Counters from independent pairs are combined with ``+``.

    Attributes
    ----------
    total : int
        Read pairs processed.
    adapter_detected : int
        Read pairs with at least one accepted trim.
    amplicon_confirmed : int
        Trimmed pairs whose partner read matched a single known amplicon.
    amplicon_ambiguous : int
        Trimmed pairs whose partner read seed is shared by several amplicons
        and that were not confirmed by the other orientation.
    failed : int
        Pairs that raised an error and were passed through unmodified.
    """

    total: int = 0
    adapter_detected: int = 0
    amplicon_confirmed: int = 0
    amplicon_ambiguous: int = 0
    failed: int = 0

    def __add__(self, other: "TrimCounters") -> "TrimCounters":
        if not isinstance(other, TrimCounters):
            return NotImplemented
        return TrimCounters(**{
            f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)
        })

    @classmethod
    def for_pair(cls, checks: "TrimCounters") -> "TrimCounters":
        """Collapse the tallies of both orientation checks into one pair."""
        confirmed = min(checks.amplicon_confirmed, 1)
        return cls(
            total=1,
            adapter_detected=min(checks.adapter_detected, 1),
            amplicon_confirmed=confirmed,
            amplicon_ambiguous=min(checks.amplicon_ambiguous, 1 - confirmed),
        )

    @classmethod
    def merge(cls, counters: Iterable["TrimCounters"]) -> "TrimCounters":
        total = cls()
        for c in counters:
            total = total + c
        return total


@dataclass(frozen=True)
class TrimSummary:
    """Run summary: final counters plus the parameters that produced them."""

    counters: TrimCounters
    offset_range: OffsetRange
    adapter: str

    def to_frame(self) -> pd.DataFrame:
        """Summary as a single-column DataFrame indexed by metric name."""
        values = asdict(self.counters)
        values['offset_from'] = self.offset_range.start
        values['offset_to'] = self.offset_range.end
        values['adapter'] = self.adapter
        df = pd.DataFrame.from_dict(values, orient='index', columns=['value'])
        df.index.name = 'metric'
        return df

    def write_csv(self, path: Union[PathLike, str]) -> None:
        self.to_frame().to_csv(path)
        logger.info(f"Run summary saved to {path}")

    def print_summary(self) -> None:
        """Print a summary of the trimming run."""
        c = self.counters
        print(" Summary ".center(80, "="))
        print(f"{c.adapter_detected:,} / {c.total:,} read pairs contained adapter sequence at end")
        print(
            f"{c.amplicon_confirmed:,} / {c.adapter_detected:,} of read pairs containing "
            f"adapters matched expected amplicon"
        )
        if c.amplicon_ambiguous:
            print(f"{c.amplicon_ambiguous:,} trimmed read pairs matched more than one amplicon")
        if c.failed:
            print(f"{c.failed:,} read pairs could not be processed and were left untrimmed")
        print(f"Read / amplicon offset range: {self.offset_range}")
        print("=" * 80)


class AmpliconTrimmer:
    """
    Detect and remove adapter read-through from read pairs.

    Each pair is checked twice: first with read 2 as the adapter-bearing
    read, then, on the result of that check, with read 1 as the
    adapter-bearing read.

    Parameters
    ----------
    index : SeedIndex
        Seed index over the expected amplicons.
    adapters : AdapterPrefixTable
        Candidate adapter prefixes, longest first.
    offset_range : OffsetRange
        Expected offset of read starts from amplicon boundaries.
    aligner : SequenceAligner, optional
        Aligner used to validate trims. Defaults to :class:`GlobalAligner`.
    very_verbose : bool, default False
        Log the full-read alignment of every accepted trim.

    Examples
    --------
    >>> trimmer = AmpliconTrimmer(index, AdapterPrefixTable("AGATCGGAAGAG"), OffsetRange(0, 5))
    >>> trimmed, counters = trimmer.process_pair(pair)
    """

    def __init__(
        self,
        index: SeedIndex,
        adapters: AdapterPrefixTable,
        offset_range: OffsetRange,
        aligner: Optional[SequenceAligner] = None,
        very_verbose: bool = False,
    ):
        self.index = index
        self.adapters = adapters
        self.offset_range = offset_range
        self.aligner = aligner if aligner is not None else GlobalAligner()
        self.very_verbose = very_verbose
        self._trace_aligner = GlobalAligner(with_trace=True) if very_verbose else None

    def process_pair(self, pair: ReadPair) -> Tuple[ReadPair, TrimCounters]:
        """
        Trim one read pair.

        Errors are logged and the pair is returned unmodified.

        Returns
        -------
        pair : ReadPair
            Trimmed pair, or the input pair if no trim was accepted.
        counters : TrimCounters
            Tallies for this pair alone.
        """
        try:
            # Reverse orientation: read 2 carries the adapter
            r1, r2, reverse_counts = self.check_read_pair(pair.r1, pair.r2)
            # Forward orientation: read 1 carries the adapter
            r2, r1, forward_counts = self.check_read_pair(r2, r1)
        except Exception as e:
            logger.warning(f"Failed to process read pair {pair.name}: {e}")
            return pair, TrimCounters(total=1, failed=1)

        counters = TrimCounters.for_pair(reverse_counts + forward_counts)
        if counters.adapter_detected == 0:
            return pair, counters
        return ReadPair(r1, r2), counters

    def check_read_pair(
        self,
        partner: FastqRecord,
        bearing: FastqRecord,
    ) -> Tuple[FastqRecord, FastqRecord, TrimCounters]:
        """
        Check whether ``bearing`` ends in adapter read-through.

        Prefixes are tried longest first; the first one that passes every
        check determines the trim.

        Returns
        -------
        partner, bearing : FastqRecord
            The reads, trimmed if adapter read-through was confirmed.
        counters : TrimCounters
            Tallies for this check (no ``total``).
        """
        bases = bearing.bases
        for prefix in self.adapters:
            position = bases.rfind(prefix)
            if position < 0:
                continue
            at_end = position == len(bases) - len(prefix)
            mid_read = len(prefix) > MID_READ_MIN_PREFIX and position > MID_READ_MIN_INDEX
            if not (at_end or mid_read):
                continue

            result = self._check_adapter(prefix, position, partner, bearing)
            if result is not None:
                return result

        return partner, bearing, TrimCounters()

    def _check_adapter(
        self,
        prefix: str,
        position: int,
        partner: FastqRecord,
        bearing: FastqRecord,
    ) -> Optional[Tuple[FastqRecord, FastqRecord, TrimCounters]]:
        adapter_length = len(bearing.bases) - position

        # The partner read should start right where the adapter begins on the
        # other strand, give or take the read / amplicon offset
        bearing_rc = reverse_complement(bearing.bases)
        windows = []
        for offset in (self.offset_range.end, self.offset_range.start):
            begin = adapter_length + offset
            windows.append(bearing_rc[begin:begin + ADJOINING_WINDOW])
        match_to, match_from = (
            len(w) == ADJOINING_WINDOW and partner.bases.startswith(w) for w in windows
        )

        logger.debug(
            f"Adapter match: {prefix} (index={position}, length={adapter_length}) with adjoining "
            f"bases: {windows[0]}, {windows[1]} (match = {match_to},{match_from})"
        )

        if not (match_to or match_from):
            return None

        seed_match = self.index.lookup(partner.bases)
        if seed_match is None:
            logger.debug(f"No amplicon found for {partner.name}")
        elif seed_match.ambiguous:
            logger.debug(
                f"Ambiguous amplicon for {partner.name}: "
                f"{[a.name for a in seed_match.amplicons]}"
            )
        else:
            logger.debug(f"Amplicon matching {partner.name} identified: {seed_match.amplicon.name}")

        # Align only the read bodies
        partner_body = partner.bases[:max(0, len(partner.bases) - adapter_length)]
        alignment = self.aligner.align(partner_body, bearing_rc[adapter_length:])

        accepted = alignment.score > ALIGNMENT_SCORE_THRESHOLD or (
            len(partner_body) < SHORT_FRAGMENT_LENGTH
            and alignment.distance < SHORT_FRAGMENT_MAX_DISTANCE
        )
        if not accepted:
            logger.debug(
                f"Read {partner.name} failed to trim due to insufficient alignment of "
                f"adapter / read hybrid (score={alignment.score:g}, distance={alignment.distance:.3f})"
            )
            return None

        amplicon_name = 'N/A'
        if seed_match is not None and not seed_match.ambiguous:
            amplicon_name = seed_match.amplicon.name
        logger.debug(
            f"Adapter sequence match at end of {bearing.name}: {prefix} ({adapter_length} bases) "
            f"pair alignment score = {alignment.score:g} amplicon {amplicon_name}"
        )
        if self._trace_aligner is not None:
            full = self._trace_aligner.align(partner.bases, bearing_rc)
            logger.debug(f"Full read alignment:\n{'-' * adapter_length}\n{full.trace}\n{'^' * adapter_length}")

        counters = TrimCounters(
            adapter_detected=1,
            amplicon_confirmed=int(seed_match is not None and not seed_match.ambiguous),
            amplicon_ambiguous=int(seed_match is not None and seed_match.ambiguous),
        )

        # The partner read also runs past the boundary offset when it adjoins at the far bound
        partner_trim = adapter_length + self.offset_range.end if match_to else adapter_length
        return partner.trim_end(partner_trim), bearing.trim_end(adapter_length), counters


_worker_trimmer: Optional[AmpliconTrimmer] = None


def _init_worker(trimmer: AmpliconTrimmer) -> None:
    global _worker_trimmer
    _worker_trimmer = trimmer


def _process_in_worker(pair: ReadPair) -> Tuple[ReadPair, TrimCounters]:
    return _worker_trimmer.process_pair(pair)


def trim_read_pairs(
    pairs: Iterable[ReadPair],
    trimmer: AmpliconTrimmer,
    num_cores: int = 1,
    chunksize: int = 1000,
) -> Iterator[Tuple[ReadPair, TrimCounters]]:
    """
    Trim a stream of read pairs, preserving input order.

    Parameters
    ----------
    pairs : iterable of ReadPair
    trimmer : AmpliconTrimmer
        Shared read-only state; copied once into each worker process.
    num_cores : int, default 1
        Worker processes. With 1, pairs are processed in this process.
    chunksize : int, default 1000
        Pairs sent to a worker at a time.

    Yields
    ------
    (ReadPair, TrimCounters)
        Output pair and its counters; sum the counters for run totals.
    """
    if num_cores <= 1:
        for pair in pairs:
            yield trimmer.process_pair(pair)
        return

    logger.info(f"Trimming with {num_cores} worker processes")
    with Pool(processes=num_cores, initializer=_init_worker, initargs=(trimmer,)) as pool:
        yield from pool.imap(_process_in_worker, pairs, chunksize=chunksize)
