"""
Sequencing read records.

Provides the FASTQ record and read pair types consumed by the trimmer,
along with reverse complementation of nucleotide sequences.
"""

from dataclasses import dataclass

_COMPLEMENT = str.maketrans("ACGTNacgtn", "TGCANtgcan")


def reverse_complement(seq: str) -> str:
    """
    Reverse complement a nucleotide sequence.

    Bases other than A, C, G, T and N are kept as-is.

    Examples
    --------
    >>> reverse_complement("AGATCGG")
    'CCGATCT'
    """
    return seq.translate(_COMPLEMENT)[::-1]


@dataclass(frozen=True)
class FastqRecord:
    """
    A single FASTQ record.

    Parameters
    ----------
    name : str
        Read identifier (header line without the leading '@').
    bases : str
        Nucleotide sequence.
    qualities : str
        Phred quality string, same length as ``bases``.
    """

    name: str
    bases: str
    qualities: str

    def __post_init__(self):
        if len(self.bases) != len(self.qualities):
            raise ValueError(
                f"Read {self.name} has {len(self.bases)} bases but "
                f"{len(self.qualities)} quality values"
            )

    def __len__(self) -> int:
        return len(self.bases)

    def trim_end(self, n: int) -> "FastqRecord":
        """Return a copy with ``n`` bases removed from the 3' end."""
        if n < 0:
            raise ValueError(f"Cannot trim a negative number of bases ({n}) from {self.name}")
        keep = max(0, len(self.bases) - n)
        return FastqRecord(self.name, self.bases[:keep], self.qualities[:keep])

    def to_fastq(self) -> str:
        return f"@{self.name}\n{self.bases}\n+\n{self.qualities}\n"


@dataclass(frozen=True)
class ReadPair:
    """Read 1 and read 2 of a sequenced fragment."""

    r1: FastqRecord
    r2: FastqRecord

    @property
    def name(self) -> str:
        return self.r1.name
