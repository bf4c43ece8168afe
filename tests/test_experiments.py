import json
import os

os.environ.setdefault("MPLBACKEND", "Agg")

import pytest

import experiments
from output_codec import StringEncoding


def test_generators_are_seeded():
    for name in experiments.GENERATOR_REGISTRY:
        first = experiments.generate_dataset(name, 20, seed=7)
        second = experiments.generate_dataset(name, 20, seed=7)
        assert first == second
        assert len(first[1]) == 20
        assert all(isinstance(s, str) and s for s in first[1])


def test_unknown_generator_falls_back():
    name, sequences = experiments.generate_dataset("nope", 5, seed=1)
    assert name == "nope_fallback_english_words"
    assert len(sequences) == 5


def test_run_one_round_trips_corpus():
    _, sequences = experiments.generate_dataset("set_codes", 200, seed=3)
    row, table = experiments.run_one(sequences, 3, 10.0, StringEncoding.BASE64)
    assert row.correctness_ok == 1
    assert row.table_symbols == len(table)
    assert "\0" in table
    assert row.n_sequences == 200
    assert row.mean_bits > 0
    assert row.max_bits >= row.mean_bits


def test_load_corpus_trims_and_lowercases(tmp_path):
    path = tmp_path / "codes.json"
    path.write_text(json.dumps(["  ABC ", "Def"]), encoding="utf-8")
    assert experiments.load_corpus(path) == ["abc", "def"]

    path.write_text(json.dumps({"a": 1}), encoding="utf-8")
    with pytest.raises(ValueError):
        experiments.load_corpus(path)


def test_main_writes_outputs(tmp_path, capsys):
    outdir = tmp_path / "results"
    code = experiments.main([
        "--outdir", str(outdir), "--runs", "1", "--sequences", "40",
        "--generators", "collector_numbers,english_words",
        "--exp1_max_ngram", "2", "--exp2_weights", "0,1",
    ])
    assert code == 0
    for name in ("metrics.csv", "summary.csv", "frequency_table.json",
                 "exp1_bits_per_char.png", "exp2_mean_bits.png", "exp3_text_length.png"):
        assert (outdir / name).exists()

    table = json.loads((outdir / "frequency_table.json").read_text(encoding="utf-8"))
    assert isinstance(table, dict) and table
    assert "Correctness rate across all runs: 1.000" in capsys.readouterr().out


def test_logged_modules_are_the_ones_using_loguru():
    import importlib
    for name in experiments.LOGGED_MODULES:
        assert hasattr(importlib.import_module(name), "logger")
