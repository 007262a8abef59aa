"""
Run configuration.

Every option recognized by the trimmer, with its default, validated
eagerly before any reads are processed.
"""

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .adapter import VALID_BASES
from .constants import (
    DEFAULT_ADAPTER,
    DEFAULT_MAX_OFFSET,
    DEFAULT_SEED_LENGTH,
    ESTIMATION_READ_BUDGET,
    ESTIMATION_SAMPLE_SIZE,
    OFFSET_HISTOGRAM_SIZE,
)


class ConfigurationError(ValueError):
    """Raised when the run configuration is missing or contradictory."""
    pass


@dataclass(frozen=True)
class TrimConfig:
    """
    Options for a trimming run.

    Amplicons come either from ``amplicon_fasta`` or from ``reference``
    plus ``bed``. When ``amplicon_offset`` is given the offset range is
    ``0..amplicon_offset`` and estimation from the reads is skipped.
    """

    read1: Path
    read2: Path
    trimmed1: Path
    trimmed2: Path
    amplicon_fasta: Optional[Path] = None
    reference: Optional[Path] = None
    bed: Optional[Path] = None
    adapter: str = DEFAULT_ADAPTER
    amplicon_offset: Optional[int] = None
    max_offset: int = DEFAULT_MAX_OFFSET
    seed_length: int = DEFAULT_SEED_LENGTH
    num_cores: int = 1
    estimation_sample_size: int = ESTIMATION_SAMPLE_SIZE
    estimation_read_budget: int = ESTIMATION_READ_BUDGET
    summary_path: Optional[Path] = None
    amplicon_counts_path: Optional[Path] = None
    verbose: bool = False
    very_verbose: bool = False

    def validate(self) -> "TrimConfig":
        """
        Check the configuration, returning it unchanged if valid.

        Raises
        ------
        ConfigurationError
        """
        for name in ('read1', 'read2'):
            path = getattr(self, name)
            if not Path(path).exists():
                raise ConfigurationError(f"Input FASTQ not found: {path}")

        if self.amplicon_fasta is None:
            if self.reference is None or self.bed is None:
                raise ConfigurationError(
                    "Please specify either an amplicon FASTA (-f) or both a reference (-r) and a BED file (-b)"
                )
        elif self.reference is not None or self.bed is not None:
            raise ConfigurationError("Specify either -f or -r/-b, not both")

        for name in ('amplicon_fasta', 'reference', 'bed'):
            path = getattr(self, name)
            if path is not None and not Path(path).exists():
                raise ConfigurationError(f"Amplicon source not found: {path}")

        adapter = self.adapter.upper()
        if not adapter or set(adapter) - VALID_BASES:
            raise ConfigurationError(f"Invalid adapter sequence: {self.adapter!r}")

        if self.amplicon_offset is not None and self.amplicon_offset < 0:
            raise ConfigurationError(f"Amplicon offset must be >= 0, got {self.amplicon_offset}")
        if self.max_offset < 0:
            raise ConfigurationError(f"Maximum offset must be >= 0, got {self.max_offset}")
        if self.seed_length <= 0:
            raise ConfigurationError(f"Seed length must be > 0, got {self.seed_length}")
        # Offsets at or past the seed length or the histogram cannot be estimated
        offset_limit = min(self.seed_length, OFFSET_HISTOGRAM_SIZE)
        if self.max_offset >= offset_limit:
            raise ConfigurationError(f"Maximum offset must be < {offset_limit}, got {self.max_offset}")
        if self.num_cores < 1:
            raise ConfigurationError(f"Number of cores must be >= 1, got {self.num_cores}")
        if self.estimation_sample_size < 1 or self.estimation_read_budget < 1:
            raise ConfigurationError("Offset estimation sample size and read budget must be >= 1")

        return self

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "TrimConfig":
        """Build a configuration from parsed command-line arguments."""

        def optional_path(value):
            return Path(value) if value is not None else None

        return cls(
            read1=Path(args.read1),
            read2=Path(args.read2),
            trimmed1=Path(args.trimmed1),
            trimmed2=Path(args.trimmed2),
            amplicon_fasta=optional_path(args.amplicon_fasta),
            reference=optional_path(args.reference),
            bed=optional_path(args.bed),
            adapter=args.adapter.upper(),
            amplicon_offset=args.amplicon_offset,
            max_offset=args.max_offset,
            seed_length=args.seed_length,
            num_cores=args.num_cores,
            summary_path=optional_path(args.summary),
            amplicon_counts_path=optional_path(args.amplicon_counts),
            verbose=args.verbose or args.very_verbose,
            very_verbose=args.very_verbose,
        )
