"""Tests for amplicon loading and the seed index."""

import pytest

from amplicon_trim import (
    Amplicon,
    AmpliconIndexError,
    FastaReference,
    SeedIndex,
    load_amplicons_from_bed,
    load_amplicons_from_fasta,
    read_bed_regions,
    reverse_complement,
)

from conftest import random_sequence


def test_lookup_by_amplicon_start(seed_index, amplicons):
    amplicon = amplicons[1]
    match = seed_index.lookup(amplicon.sequence[3:120])
    assert match is not None
    assert not match.ambiguous
    assert match.amplicon is amplicon
    assert match.hit.offset == 3
    assert match.hit.boundary == 'start'


def test_lookup_by_amplicon_end(seed_index, amplicons):
    amplicon = amplicons[2]
    read = reverse_complement(amplicon.sequence)[2:100]
    match = seed_index.lookup(read)
    assert match.amplicon is amplicon
    assert match.hit.offset == 2
    assert match.hit.boundary == 'end'


def test_lookup_misses(seed_index, amplicons):
    assert seed_index.lookup(random_sequence(100, seed=99)) is None
    # Beyond the search radius
    assert seed_index.lookup(amplicons[0].sequence[6:]) is None
    # Shorter than a seed
    assert seed_index.lookup(amplicons[0].sequence[:19]) is None


def test_shared_seed_is_ambiguous():
    shared = random_sequence(22, seed=11)
    tail = random_sequence(100, seed=12)
    shifted = tail.translate(str.maketrans("ACGT", "CGTA"))
    first = Amplicon("amp1", shared + tail)
    second = Amplicon("amp2", shared + shifted)
    index = SeedIndex.build([first, second], seed_length=20, max_offset=5)

    match = index.lookup(first.sequence)
    assert match.ambiguous
    assert match.amplicon is None
    assert match.hit is None
    assert {a.name for a in match.amplicons} == {"amp1", "amp2"}
    assert shared[:20] in index.ambiguous_seeds

    # Seeds reaching past the shared region still resolve
    assert index.lookup(first.sequence[5:]).amplicon is first
    assert index.lookup(second.sequence[5:]).amplicon is second


def test_identical_sequences_indexed_once():
    seq = random_sequence(120, seed=5)
    index = SeedIndex.build([Amplicon("chr2:101-220", seq), Amplicon("2:101-220", seq)], seed_length=20)
    assert len(index) == 1
    assert not index.lookup(seq).ambiguous


def test_sequence_for(seed_index, amplicons):
    assert seed_index.sequence_for(amplicons[0]) == amplicons[0].sequence
    assert seed_index.sequence_for(amplicons[0].name) == amplicons[0].sequence
    with pytest.raises(AmpliconIndexError):
        seed_index.sequence_for("chrX:1-100")


def test_empty_index_rejected():
    with pytest.raises(AmpliconIndexError):
        SeedIndex.build([], seed_length=20)


def test_seed_length_is_fixed(seed_index):
    assert seed_index.seed_length == 20
    assert seed_index.offsets == (0, 1, 2, 3, 4, 5)


def test_load_amplicons_from_fasta(tmp_path):
    fasta = tmp_path / "amplicons.fa"
    fasta.write_text(">chr1:101-160\n" + random_sequence(60, 1).lower() + "\n>probe_2\n" + random_sequence(40, 2) + "\n")

    amplicons = load_amplicons_from_fasta(fasta)
    assert [a.name for a in amplicons] == ["chr1:101-160", "probe_2"]
    assert amplicons[0].sequence == random_sequence(60, 1)
    assert (amplicons[0].chrom, amplicons[0].start, amplicons[0].end) == ("chr1", 101, 160)
    assert amplicons[1].chrom is None


def test_load_amplicons_from_empty_fasta(tmp_path):
    fasta = tmp_path / "empty.fa"
    fasta.write_text("")
    with pytest.raises(AmpliconIndexError):
        load_amplicons_from_fasta(fasta)


def test_load_amplicons_with_invalid_bases(tmp_path):
    fasta = tmp_path / "bad.fa"
    fasta.write_text(">amp\nACGTXXACGT\n")
    with pytest.raises(AmpliconIndexError):
        load_amplicons_from_fasta(fasta)


@pytest.fixture
def reference_fasta(tmp_path):
    path = tmp_path / "ref.fa"
    path.write_text(">chr1\n" + random_sequence(1000, 21) + "\n>chr2\n" + random_sequence(500, 22) + "\n")
    return path


def test_read_bed_regions_deduplicates_and_sorts(tmp_path):
    bed = tmp_path / "amplicons.bed"
    bed.write_text(
        "track name=amplicons\n"
        "chr2\t10\t80\tampC\n"
        "chr1\t300\t420\tampB\n"
        "chr1\t100\t220\tampA\n"
        "chr1\t300\t420\tampB_alias\n"
    )
    regions = read_bed_regions(bed)
    assert list(regions.itertuples(index=False, name=None)) == [
        ("chr1", 100, 220),
        ("chr1", 300, 420),
        ("chr2", 10, 80),
    ]


def test_read_bed_regions_rejects_inverted_region(tmp_path):
    bed = tmp_path / "bad.bed"
    bed.write_text("chr1\t200\t100\n")
    with pytest.raises(AmpliconIndexError):
        read_bed_regions(bed)


def test_load_amplicons_from_bed(tmp_path, reference_fasta):
    bed = tmp_path / "amplicons.bed"
    bed.write_text("chr1\t100\t220\nchr2\t10\t80\n")

    with FastaReference(reference_fasta) as reference:
        amplicons = load_amplicons_from_bed(bed, reference)

    assert [a.name for a in amplicons] == ["chr1:101-220", "chr2:11-80"]
    assert amplicons[0].sequence == random_sequence(1000, 21)[100:220]
    assert amplicons[1].sequence == random_sequence(500, 22)[10:80]


def test_missing_contig(tmp_path, reference_fasta):
    bed = tmp_path / "amplicons.bed"
    bed.write_text("chr7\t100\t220\n")
    with FastaReference(reference_fasta) as reference:
        with pytest.raises(AmpliconIndexError):
            load_amplicons_from_bed(bed, reference)
