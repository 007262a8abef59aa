"""Shared fixtures for amplicon trimming tests."""

import numpy as np
import pytest

from amplicon_trim import Amplicon, FastqRecord, ReadPair, SeedIndex

ADAPTER = "AGATCGGAAGAG"


def random_sequence(length: int, seed: int) -> str:
    rng = np.random.default_rng(seed)
    return ''.join(rng.choice(list("ACGT"), size=length))


def make_read(name: str, bases: str) -> FastqRecord:
    return FastqRecord(name, bases, "I" * len(bases))


def make_pair(name: str, r1_bases: str, r2_bases: str) -> ReadPair:
    return ReadPair(make_read(f"{name}/1", r1_bases), make_read(f"{name}/2", r2_bases))


def write_fastq(path, records) -> None:
    with open(path, "w") as f:
        for record in records:
            f.write(record.to_fastq())


@pytest.fixture
def amplicons():
    """Three unrelated 150 bp amplicons."""
    return [
        Amplicon(name=f"chr1:{1000 * (i + 1) + 1}-{1000 * (i + 1) + 150}", sequence=random_sequence(150, seed=i))
        for i in range(3)
    ]


@pytest.fixture
def seed_index(amplicons):
    return SeedIndex.build(amplicons, seed_length=20, max_offset=5)
