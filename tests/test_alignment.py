"""Tests for the global aligner."""

import pickle

import pytest

from amplicon_trim import GlobalAligner

from conftest import random_sequence


@pytest.fixture
def aligner():
    return GlobalAligner(with_trace=True)


def test_identical_sequences(aligner):
    seq = random_sequence(50, seed=7)
    result = aligner.align(seq, seq)
    assert result.score == 250
    assert result.distance == 0
    assert result.identities == 50
    assert result.length == 50


def test_single_mismatch(aligner):
    result = aligner.align("ACGTACGTAC", "ACGTTCGTAC")
    assert result.score == 9 * 5 - 4
    assert result.distance == pytest.approx(0.1)
    assert result.identities == 9


def test_single_gap_trace(aligner):
    result = aligner.align("ACGT", "AGT")
    assert result.score == 3 * 5 - 10
    top, markers, bottom = result.trace.split("\n")
    assert top == "ACGT"
    assert bottom == "A-GT"
    assert markers == "| ||"


def test_affine_gap_is_cheaper_than_separate_gaps(aligner):
    # One gap of four bases costs 10 + 3
    result = aligner.align("AAAATTTT", "AAAA")
    assert result.score == 4 * 5 - 13
    assert result.length == 8


def test_truncated_read_body_alignment_score(aligner):
    body = random_sequence(100, seed=3)
    result = aligner.align(body[:88], body)
    assert result.score == 88 * 5 - (10 + 11)
    assert result.distance == pytest.approx(0.12)


def test_empty_sequence():
    result = GlobalAligner().align("", "ACGT")
    assert result.score == -(10 + 3)
    assert result.distance == 1.0
    assert GlobalAligner().align("", "").score == 0


def test_alignment_is_pure():
    aligner = GlobalAligner()
    a, b = random_sequence(80, seed=1), random_sequence(80, seed=2)
    assert aligner.align(a, b) == aligner.align(a, b)


def test_invalid_gap_penalties():
    with pytest.raises(ValueError):
        GlobalAligner(gap_open=1, gap_extend=2)


def test_scores_follow_affine_gap_scheme():
    aligner = GlobalAligner(match=2, mismatch=-1, gap_open=3, gap_extend=2)
    assert aligner.align("ACGTTT", "ACG").score == 3 * 2 - (3 + 2 * 2)


def test_aligner_survives_pickling():
    aligner = GlobalAligner(with_trace=True)
    restored = pickle.loads(pickle.dumps(aligner))
    a, b = random_sequence(60, seed=4), random_sequence(55, seed=5)
    assert restored.align(a, b) == aligner.align(a, b)
