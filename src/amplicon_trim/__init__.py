"""
Amplicon Trim - amplicon-aware adapter trimming for paired reads.

Detects adapter read-through at the 3' end of paired amplicon reads and
removes it, using the known amplicon boundaries to tell true read-through
apart from adapter-like sequence inside an amplicon.

Main Classes
------------
AmpliconTrimmer
    Per-pair trim decision engine.

SeedIndex
    Seed lookup from read starts to amplicons.

AdapterPrefixTable
    Candidate adapter prefixes, longest first.

GlobalAligner
    Needleman-Wunsch aligner used to validate trims.

AmpliconReadCounter
    Read counts per amplicon boundary.

Functions
---------
estimate_offset_range
    Estimate read / amplicon boundary offsets from a read sample.

Examples
--------
>>> from amplicon_trim import (
...     AdapterPrefixTable, AmpliconTrimmer, SeedIndex, OffsetRange,
...     iter_read_pairs, load_amplicons_from_fasta,
... )
>>> index = SeedIndex.build(load_amplicons_from_fasta('amplicons.fa'))
>>> trimmer = AmpliconTrimmer(index, AdapterPrefixTable('AGATCGGAAGAG'), OffsetRange(0, 5))
>>> for pair in iter_read_pairs('sample_R1.fastq.gz', 'sample_R2.fastq.gz'):
...     trimmed, counters = trimmer.process_pair(pair)
"""

from .adapter import AdapterPrefixTable
from .alignment import AlignmentResult, GlobalAligner, SequenceAligner
from .amplicon_index import (
    Amplicon,
    AmpliconIndexError,
    FastaReference,
    ReferenceSequenceProvider,
    SeedHit,
    SeedIndex,
    SeedMatch,
    load_amplicons_from_bed,
    load_amplicons_from_fasta,
    read_bed_regions,
)
from .config import ConfigurationError, TrimConfig
from .constants import DEFAULT_ADAPTER
from .fastq import FASTQParseError, FastqWriter, PairedFastqWriter, iter_read_pairs, read_fastq
from .offset import OffsetEstimationError, OffsetRange, estimate_offset_range, find_amplicon_offset
from .read_db import AmpliconReadCounter
from .sequencing_read import FastqRecord, ReadPair, reverse_complement
from .trimmer import AmpliconTrimmer, TrimCounters, TrimSummary, trim_read_pairs

__all__ = [
    # Main classes
    "AmpliconTrimmer",
    "SeedIndex",
    "AdapterPrefixTable",
    "GlobalAligner",
    "AmpliconReadCounter",
    "TrimConfig",
    # Data types
    "Amplicon",
    "SeedHit",
    "SeedMatch",
    "AlignmentResult",
    "OffsetRange",
    "FastqRecord",
    "ReadPair",
    "TrimCounters",
    "TrimSummary",
    # Interfaces
    "SequenceAligner",
    "ReferenceSequenceProvider",
    "FastaReference",
    # Functions
    "estimate_offset_range",
    "find_amplicon_offset",
    "trim_read_pairs",
    "iter_read_pairs",
    "read_fastq",
    "FastqWriter",
    "PairedFastqWriter",
    "load_amplicons_from_fasta",
    "load_amplicons_from_bed",
    "read_bed_regions",
    "reverse_complement",
    # Errors
    "AmpliconIndexError",
    "ConfigurationError",
    "FASTQParseError",
    "OffsetEstimationError",
    # Constants
    "DEFAULT_ADAPTER",
]

__version__ = "0.1.0"
