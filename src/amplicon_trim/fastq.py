"""
FASTQ reading and writing.

Reads are streamed from plain or gzip-compressed files and consumed
pairwise: read i of the R1 file is paired with read i of the R2 file.
"""

import gzip
import logging
from itertools import zip_longest
from os import PathLike
from pathlib import Path
from typing import IO, Iterator, Union

from .sequencing_read import FastqRecord, ReadPair

logger = logging.getLogger(__name__)


class FASTQParseError(Exception):
    """Raised when FASTQ parsing encounters an error."""
    pass


def open_fastq(path: Union[PathLike, str], mode: str = 'rt') -> IO[str]:
    """Open a FASTQ file, transparently handling gzip compression by extension."""
    path = Path(path)
    if path.suffix == '.gz':
        return gzip.open(path, mode)
    return open(path, mode)


def read_fastq(path: Union[PathLike, str]) -> Iterator[FastqRecord]:
    """
    Iterate over the records of a FASTQ file.

    Parameters
    ----------
    path : PathLike or str
        FASTQ file, optionally gzip-compressed (``.gz``).

    Yields
    ------
    FastqRecord
        Records in file order, with bases upper-cased.

    Raises
    ------
    FASTQParseError
        If a record is truncated or its header/separator lines are malformed.
    """
    with open_fastq(path) as f:
        lines = []
        for line_num, line in enumerate(f, start=1):
            line = line.rstrip('\r\n')
            if not lines and not line:
                # Blank lines between records
                continue
            lines.append(line)
            if len(lines) < 4:
                continue

            header, bases, separator, qualities = lines
            lines = []
            if not header.startswith('@'):
                raise FASTQParseError(f"{path}:{line_num - 3}: expected '@' header, found {header[:20]!r}")
            if not separator.startswith('+'):
                raise FASTQParseError(f"{path}:{line_num - 1}: expected '+' separator, found {separator[:20]!r}")
            if len(bases) != len(qualities):
                raise FASTQParseError(
                    f"{path}:{line_num}: sequence and quality lengths differ "
                    f"({len(bases)} vs {len(qualities)})"
                )
            yield FastqRecord(header[1:], bases.upper(), qualities)

        if lines:
            raise FASTQParseError(f"{path}: truncated record at end of file")


def iter_read_pairs(
    r1_path: Union[PathLike, str],
    r2_path: Union[PathLike, str],
) -> Iterator[ReadPair]:
    """
    Iterate over synchronized read pairs from two FASTQ files.

    The iterator is once-only; call again to re-read the files from the start.

    Raises
    ------
    FASTQParseError
        If one file contains more records than the other.
    """
    sentinel = object()
    count = 0
    for r1, r2 in zip_longest(read_fastq(r1_path), read_fastq(r2_path), fillvalue=sentinel):
        if r1 is sentinel or r2 is sentinel:
            shorter = r1_path if r1 is sentinel else r2_path
            raise FASTQParseError(
                f"Paired FASTQ files have different numbers of reads: "
                f"{shorter} ended after {count:,} reads"
            )
        count += 1
        yield ReadPair(r1, r2)


class FastqWriter:
    """
    Write FASTQ records to a plain or gzip-compressed file.

    Use as a context manager so the handle is closed even on error.

    Examples
    --------
    >>> with FastqWriter('trimmed_R1.fastq.gz') as out:
    ...     out.write(record)
    """

    def __init__(self, path: Union[PathLike, str]):
        self.path = Path(path)
        self._handle = open_fastq(self.path, 'wt')
        self.n_written = 0

    def write(self, record: FastqRecord) -> None:
        self._handle.write(record.to_fastq())
        self.n_written += 1

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()

    def __enter__(self) -> "FastqWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class PairedFastqWriter:
    """Write read pairs to two FASTQ files, one per read."""

    def __init__(self, r1_path: Union[PathLike, str], r2_path: Union[PathLike, str]):
        self._out1 = FastqWriter(r1_path)
        try:
            self._out2 = FastqWriter(r2_path)
        except OSError:
            self._out1.close()
            raise

    def write(self, pair: ReadPair) -> None:
        self._out1.write(pair.r1)
        self._out2.write(pair.r2)

    @property
    def n_written(self) -> int:
        return self._out1.n_written

    def close(self) -> None:
        try:
            self._out1.close()
        finally:
            self._out2.close()

    def __enter__(self) -> "PairedFastqWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
