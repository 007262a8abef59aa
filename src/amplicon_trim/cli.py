"""
Command-line interface for amplicon-aware adapter trimming.
"""

import argparse
import logging
import sys
from contextlib import closing
from typing import List, Optional

from .adapter import AdapterPrefixTable
from .amplicon_index import (
    Amplicon,
    AmpliconIndexError,
    FastaReference,
    SeedIndex,
    load_amplicons_from_bed,
    load_amplicons_from_fasta,
)
from .config import ConfigurationError, TrimConfig
from .constants import DEFAULT_ADAPTER, DEFAULT_MAX_OFFSET, DEFAULT_SEED_LENGTH, PROGRESS_INTERVAL
from .fastq import FASTQParseError, PairedFastqWriter, iter_read_pairs
from .offset import OffsetEstimationError, OffsetRange, estimate_offset_range
from .read_db import AmpliconReadCounter
from .trimmer import AmpliconTrimmer, TrimCounters, TrimSummary, trim_read_pairs

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='amplicon-trim',
        description='Trim adapter read-through from paired amplicon reads using known amplicon boundaries',
    )

    parser.add_argument('-1', '--read1', help='FASTQ for read 1 (forward)')
    parser.add_argument('-2', '--read2', help='FASTQ for read 2 (reverse)')
    parser.add_argument('-t1', '--trimmed1', help='Output file for trimmed reads (forward)')
    parser.add_argument('-t2', '--trimmed2', help='Output file for trimmed reads (reverse)')
    parser.add_argument(
        '-a', '--adapter',
        default=DEFAULT_ADAPTER,
        help=f'Adapter sequence to probe for at end of reads (default: {DEFAULT_ADAPTER})',
    )
    parser.add_argument('-f', '--amplicon_fasta', default=None, help='FASTA of amplicon sequences')
    parser.add_argument('-r', '--reference', default=None, help='Reference FASTA (if not using -f)')
    parser.add_argument('-b', '--bed', default=None, help='BED file of amplicons (if not using -f)')
    parser.add_argument(
        '-o', '--max_offset',
        type=int,
        default=DEFAULT_MAX_OFFSET,
        help=f'Maximum offset of read end from amplicon ends (default: {DEFAULT_MAX_OFFSET})',
    )
    parser.add_argument(
        '-ao', '--amplicon_offset',
        type=int,
        default=None,
        help='Offset of read ends from amplicon end (bp). If not provided, it is estimated from the reads',
    )
    parser.add_argument(
        '--seed_length',
        type=int,
        default=DEFAULT_SEED_LENGTH,
        help=f'Seed size used for indexing amplicons (default: {DEFAULT_SEED_LENGTH})',
    )
    parser.add_argument('--num_cores', type=int, default=1, help='Number of worker processes')
    parser.add_argument('--summary', default=None, help='Write the run summary to this CSV file')
    parser.add_argument(
        '--amplicon_counts',
        default=None,
        help='Write per-amplicon read counts of the trimmed reads to this CSV file',
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Turn on verbose mode')
    parser.add_argument(
        '-vv', '--very_verbose',
        action='store_true',
        help='Turn on very verbose mode (seeds, offset distribution, alignments)',
    )

    return parser


def load_amplicons(config: TrimConfig) -> List[Amplicon]:
    """Load amplicons from the FASTA, or from BED regions of the reference."""
    if config.amplicon_fasta is not None:
        return load_amplicons_from_fasta(config.amplicon_fasta)
    with FastaReference(config.reference) as reference:
        return load_amplicons_from_bed(config.bed, reference)


def run(config: TrimConfig) -> TrimSummary:
    """
    Trim the read pairs named in ``config``.

    Returns
    -------
    TrimSummary

    Raises
    ------
    AmpliconIndexError, OffsetEstimationError, FASTQParseError
        On unusable inputs; nothing is written for the first two.
    """
    adapters = AdapterPrefixTable(config.adapter)
    if config.very_verbose:
        logger.debug(f"All indexed adapter sequences are: {list(adapters)}")

    logger.info("Reading amplicons ...")
    amplicons = load_amplicons(config)
    index = SeedIndex.build(amplicons, seed_length=config.seed_length, max_offset=config.max_offset)
    if config.very_verbose:
        logger.debug(f"Indexed amplicon names are: {[a.name for a in index.amplicons]}")

    logger.info("Inspecting amplicon / read offsets")
    if config.amplicon_offset is not None:
        offset_range = OffsetRange(0, config.amplicon_offset)
        logger.info(f"Using offset range {offset_range} from the command line")
    else:
        with closing(iter_read_pairs(config.read1, config.read2)) as sample:
            offset_range = estimate_offset_range(
                sample,
                index,
                sample_size=config.estimation_sample_size,
                read_budget=config.estimation_read_budget,
            )

    trimmer = AmpliconTrimmer(index, adapters, offset_range, very_verbose=config.very_verbose)
    read_counter = AmpliconReadCounter([a.name for a in index.amplicons]) if config.amplicon_counts_path else None

    logger.info("Inspecting reads ...")
    counters = TrimCounters()
    with PairedFastqWriter(config.trimmed1, config.trimmed2) as out, \
            closing(iter_read_pairs(config.read1, config.read2)) as pairs:
        for pair, pair_counters in trim_read_pairs(pairs, trimmer, num_cores=config.num_cores):
            out.write(pair)
            counters = counters + pair_counters
            if read_counter is not None:
                read_counter.count_read(pair.r1, index)
                read_counter.count_read(pair.r2, index)
            if counters.total % PROGRESS_INTERVAL == 0:
                logger.info(f"{counters.total:,} read pairs processed ({counters.adapter_detected:,} trimmed)...")

    logger.info(f"Wrote {counters.total:,} read pairs to {config.trimmed1} and {config.trimmed2}")

    summary = TrimSummary(counters=counters, offset_range=offset_range, adapter=adapters.adapter)
    if config.summary_path is not None:
        summary.write_csv(config.summary_path)
    if read_counter is not None:
        read_counter.counts().to_csv(config.amplicon_counts_path)
        logger.info(
            f"Amplicon counts saved to {config.amplicon_counts_path} "
            f"({read_counter.unassigned:,} unassigned, {read_counter.ambiguous:,} ambiguous reads)"
        )

    return summary


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if (args.verbose or args.very_verbose) else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    missing = [opt for opt, value in (
        ('-1', args.read1), ('-2', args.read2), ('-t1', args.trimmed1), ('-t2', args.trimmed2),
    ) if not value]
    if missing:
        print(f"\nPlease provide option {', '.join(missing)}\n", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    try:
        config = TrimConfig.from_args(args).validate()
    except ConfigurationError as e:
        print(f"\n{e}\n", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    try:
        summary = run(config)
    except (AmpliconIndexError, OffsetEstimationError, FASTQParseError) as e:
        logger.error(str(e))
        return 1

    summary.print_summary()
    return 0


if __name__ == '__main__':
    sys.exit(main())
