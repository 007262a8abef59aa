"""End-to-end tests for configuration and the command-line interface."""

from pathlib import Path

import pandas as pd
import pytest

from amplicon_trim import ConfigurationError, TrimConfig, read_fastq, reverse_complement
from amplicon_trim.cli import build_parser, main

from conftest import ADAPTER, make_pair, random_sequence, write_fastq


@pytest.fixture
def run_files(tmp_path, amplicons):
    body = random_sequence(120, seed=42)
    fasta = tmp_path / "amplicons.fa"
    fasta.write_text(''.join(f">{a.name}\n{a.sequence}\n" for a in amplicons) + f">chr3:5001-5120\n{body}\n")

    pairs = []
    for i, offset in enumerate([0] * 30 + [3] * 30):
        amplicon = amplicons[i % len(amplicons)].sequence
        pairs.append(make_pair(f"clean{i}", amplicon[offset:offset + 100], reverse_complement(amplicon)[offset:offset + 100]))
    for i in range(5):
        pairs.append(make_pair(f"through{i}", body, reverse_complement(body) + ADAPTER))

    r1, r2 = tmp_path / "sample_R1.fastq", tmp_path / "sample_R2.fastq"
    write_fastq(r1, [p.r1 for p in pairs])
    write_fastq(r2, [p.r2 for p in pairs])

    return {
        "fasta": fasta,
        "r1": r1,
        "r2": r2,
        "t1": tmp_path / "trimmed_R1.fastq.gz",
        "t2": tmp_path / "trimmed_R2.fastq.gz",
        "pairs": pairs,
        "body": body,
    }


def base_args(files):
    return [
        "-1", str(files["r1"]), "-2", str(files["r2"]),
        "-t1", str(files["t1"]), "-t2", str(files["t2"]),
        "-f", str(files["fasta"]),
        "--seed_length", "20",
    ]


def test_parser_accepts_short_options():
    args = build_parser().parse_args(["-1", "a", "-2", "b", "-t1", "c", "-t2", "d", "-ao", "3", "-vv"])
    assert (args.read1, args.read2, args.trimmed1, args.trimmed2) == ("a", "b", "c", "d")
    assert args.amplicon_offset == 3
    assert args.very_verbose and not args.verbose
    assert args.adapter == ADAPTER
    assert args.max_offset == 5


def test_trim_with_estimated_offsets(run_files, tmp_path):
    summary_path = tmp_path / "summary.csv"
    counts_path = tmp_path / "amplicon_counts.csv"
    status = main(base_args(run_files) + ["--summary", str(summary_path), "--amplicon_counts", str(counts_path)])
    assert status == 0

    trimmed_r1 = list(read_fastq(run_files["t1"]))
    trimmed_r2 = list(read_fastq(run_files["t2"]))
    assert len(trimmed_r1) == len(trimmed_r2) == len(run_files["pairs"])

    # Clean pairs are untouched, read-through pairs lose the adapter
    assert trimmed_r1[0] == run_files["pairs"][0].r1
    assert trimmed_r2[-1].bases == reverse_complement(run_files["body"])

    summary = pd.read_csv(summary_path, index_col="metric")["value"]
    assert summary["total"] == "65"
    assert summary["adapter_detected"] == "5"
    assert summary["amplicon_confirmed"] == "5"
    assert summary["offset_from"] == "0"
    assert summary["offset_to"] == "3"

    counts = pd.read_csv(counts_path, index_col="amplicon")
    assert counts["total"].sum() == 130


def test_trim_with_explicit_offset_in_parallel(run_files):
    assert main(base_args(run_files) + ["-ao", "5", "--num_cores", "2"]) == 0
    trimmed_r2 = list(read_fastq(run_files["t2"]))
    assert [r.name for r in trimmed_r2] == [p.r2.name for p in run_files["pairs"]]
    assert trimmed_r2[-1].bases == reverse_complement(run_files["body"])


def test_estimation_failure_exits_nonzero(tmp_path, run_files):
    r1, r2 = tmp_path / "noise_R1.fastq", tmp_path / "noise_R2.fastq"
    noise = [make_pair(f"n{i}", random_sequence(100, 300 + i), random_sequence(100, 600 + i)) for i in range(100)]
    write_fastq(r1, [p.r1 for p in noise])
    write_fastq(r2, [p.r2 for p in noise])

    args = base_args(run_files)
    args[1], args[3] = str(r1), str(r2)
    assert main(args) == 1


def test_missing_required_option(capsys):
    assert main(["-1", "reads_R1.fastq"]) == 1
    assert "Please provide option -2, -t1, -t2" in capsys.readouterr().err


def test_missing_amplicon_source(run_files, capsys):
    args = base_args(run_files)
    args = args[:8] + args[10:]
    assert main(args) == 1
    assert "either an amplicon FASTA" in capsys.readouterr().err


def test_config_validation(run_files):
    config = TrimConfig(
        read1=run_files["r1"],
        read2=run_files["r2"],
        trimmed1=run_files["t1"],
        trimmed2=run_files["t2"],
        amplicon_fasta=run_files["fasta"],
    )
    assert config.validate() is config

    bad_configs = [
        dict(read1=Path("missing_R1.fastq")),
        dict(reference=run_files["fasta"]),
        dict(adapter="AGXT"),
        dict(amplicon_offset=-1),
        dict(seed_length=0),
        dict(max_offset=-1),
        dict(max_offset=30),
        dict(seed_length=60, max_offset=50),
        dict(num_cores=0),
    ]
    for overrides in bad_configs:
        values = {**config.__dict__, **overrides}
        with pytest.raises(ConfigurationError):
            TrimConfig(**values).validate()


def test_max_offset_bounded_by_seed_length(run_files, capsys):
    assert main(base_args(run_files) + ["--max_offset", "20"]) == 1
    assert "Maximum offset must be < 20" in capsys.readouterr().err
    assert main(base_args(run_files) + ["--max_offset", "19", "-ao", "2"]) == 0
