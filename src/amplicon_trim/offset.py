"""
Read / amplicon offset estimation.

Library preparation rarely cuts exactly at amplicon boundaries, so reads
start a few bases inside their amplicon. The two most frequent offsets
observed in a sample of reads bound the range the trimmer tests when
checking that two reads of a pair adjoin each other.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from .amplicon_index import SeedIndex
from .constants import (
    ESTIMATION_MIN_IDENTIFIED,
    ESTIMATION_READ_BUDGET,
    ESTIMATION_SAMPLE_SIZE,
    OFFSET_HISTOGRAM_SIZE,
)
from .sequencing_read import ReadPair, reverse_complement

logger = logging.getLogger(__name__)


class OffsetEstimationError(RuntimeError):
    """Raised when too few reads can be assigned to amplicons to estimate offsets."""
    pass


@dataclass(frozen=True)
class OffsetRange:
    """
    Expected displacement of read starts from amplicon boundaries.

    Parameters
    ----------
    start : int
        Smaller bound (``from``).
    end : int
        Larger bound (``to``).
    """

    start: int
    end: int

    def __post_init__(self):
        if self.start < 0 or self.end < 0:
            raise ValueError(f"Offsets must be non-negative, got {self.start}..{self.end}")
        if self.start > self.end:
            raise ValueError(f"Offset range is inverted: {self.start}..{self.end}")

    @classmethod
    def from_bounds(cls, a: int, b: int) -> "OffsetRange":
        """Build a range from two offsets given in any order."""
        return cls(min(a, b), max(a, b))

    def __str__(self) -> str:
        return f"{self.start}..{self.end}"


def find_amplicon_offset(bases: str, amplicon_sequence: str, seed_length: int) -> Optional[int]:
    """
    Locate the seed at the start of a read within its amplicon.

    The seed is searched for on the forward strand first; a read from the
    opposite strand is found by searching for the reverse complement of
    the seed and measuring from the amplicon end.

    Returns
    -------
    int or None
        Offset of the read start from the amplicon boundary, or None if the
        seed is not within ``seed_length`` bases of either boundary.
    """
    seed = bases[:seed_length]
    offset = amplicon_sequence.find(seed)
    if 0 <= offset <= seed_length:
        return offset

    position = amplicon_sequence.rfind(reverse_complement(seed))
    if position < 0:
        return None
    offset = len(amplicon_sequence) - position - seed_length
    if offset > seed_length:
        return None
    return offset


def offset_histogram(offsets: Iterable[int], size: int = OFFSET_HISTOGRAM_SIZE) -> np.ndarray:
    """Count offsets over the domain ``0..size-1``; values outside are dropped."""
    values = np.asarray([o for o in offsets if 0 <= o < size], dtype=int)
    return np.bincount(values, minlength=size)


def offset_range_from_histogram(histogram: np.ndarray) -> OffsetRange:
    """
    Pick the two most frequent offsets as the range bounds.

    Ties are broken towards the smaller offset. The bounds are ordered
    numerically, not by frequency. If only one offset was observed the
    range collapses to that single value.
    """
    observed = np.flatnonzero(histogram)
    if len(observed) == 0:
        raise OffsetEstimationError("No offsets observed")

    by_frequency = observed[np.argsort(-histogram[observed], kind='stable')]
    top = [int(o) for o in by_frequency[:2]]
    if len(top) == 1:
        return OffsetRange(top[0], top[0])
    return OffsetRange.from_bounds(top[0], top[1])


def estimate_offset_range(
    pairs: Iterable[ReadPair],
    index: SeedIndex,
    sample_size: int = ESTIMATION_SAMPLE_SIZE,
    min_identified: int = ESTIMATION_MIN_IDENTIFIED,
    read_budget: int = ESTIMATION_READ_BUDGET,
    histogram_size: int = OFFSET_HISTOGRAM_SIZE,
) -> OffsetRange:
    """
    Estimate the offset range from a sample of read pairs.

    Both reads of each pair are looked up in the seed index; every read
    assigned to a single amplicon contributes its offset. Sampling stops
    once ``sample_size`` reads are identified, ``read_budget`` pairs have
    been inspected, or the input is exhausted.

    Parameters
    ----------
    pairs : iterable of ReadPair
        Read pairs, consumed lazily.
    index : SeedIndex
        Seed index over the amplicons.
    sample_size : int, default 1000
    min_identified : int, default 50
    read_budget : int, default 100000
    histogram_size : int, default 50

    Returns
    -------
    OffsetRange

    Raises
    ------
    OffsetEstimationError
        If fewer than ``min_identified`` reads could be assigned.
    """
    offsets = []
    identified = 0
    n_pairs = 0

    for pair in pairs:
        n_pairs += 1
        for read in (pair.r1, pair.r2):
            match = index.lookup(read.bases)
            if match is None or match.ambiguous:
                continue
            offset = find_amplicon_offset(read.bases, match.amplicon.sequence, index.seed_length)
            if offset is None:
                logger.debug(f"Seed of {read.name} not found near a boundary of {match.amplicon.name}")
                continue
            offsets.append(offset)
            identified += 1

        if identified >= sample_size or n_pairs >= read_budget:
            break

    logger.info(f"Identified amplicons for {identified:,} reads in {n_pairs:,} read pairs")

    if identified < min_identified:
        raise OffsetEstimationError(
            f"Less than {min_identified} reads could be mapped to amplicons "
            f"({identified} of {n_pairs:,} read pairs). As a result, it was not possible "
            f"to estimate read / amplicon offsets. Please provide them explicitly "
            f"with the --amplicon-offset (-ao) option."
        )

    histogram = offset_histogram(offsets, size=histogram_size)
    logger.info(f"Median offset from amplicon start is {np.median(offsets):g}")
    for offset in np.flatnonzero(histogram):
        logger.debug(f"Offset {offset}: {histogram[offset]} reads")

    offset_range = offset_range_from_histogram(histogram)
    logger.info(f"Estimated offsets of read start from amplicon start are {offset_range}")
    return offset_range
