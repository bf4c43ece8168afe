"""
Huffman n-gram codec experiments

Builds frequency tables from string corpora, encodes every sequence and
checks the round trip, to see how the n-gram settings change code length.

Outputs (in --outdir):
  - metrics.csv           (raw row per run per configuration)
  - summary.csv           (grouped mean/stdev)
  - frequency_table.json  (table built with --max_ngram / --length_weight)
  - *.png                 (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 3 --sequences 5000 --generators set_codes,english_words
  python experiments.py --outdir results --corpus collector_numbers.json --max_ngram 3 --length_weight 10

Notes:
  --corpus takes a JSON array of strings; entries are trimmed and lowercased.
"""

from __future__ import annotations

import argparse
import csv
import json
import random
import statistics
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import matplotlib.pyplot as plt
from loguru import logger

from codec import EncoderConfiguration, HuffmanCodec
from frequency_table import FrequencyTable
from frequency_table_builder import NULL_CHARACTER, FrequencyTableBuilder
from output_codec import StringEncoding

# library modules that log through loguru (disabled until --verbose)
LOGGED_MODULES = ("huffman", "codec", "frequency_table_builder")


# Utilities

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)

def print_mismatch(original: str, encoded: str, decoded: str) -> None:
    print(f"Input   : {original!r}")
    print(f"Encoded : {encoded}")
    print(f"Decoded : {decoded!r}")
    for i, (a, b) in enumerate(zip(original, decoded)):
        if a != b:
            print(f"Difference at position {i}: {a!r} vs {b!r}")
    if len(original) != len(decoded):
        print(f"Strings have different lengths: {len(original)} vs {len(decoded)}")


# Synthetic corpus generators

def _weighted_picker(rng: random.Random, chars: str, weights: List[float]) -> Callable[[], str]:
    total = sum(weights)
    cdf = []
    acc = 0.0
    for w in weights:
        acc += w / total
        cdf.append(acc)

    def pick() -> str:
        r = rng.random()
        lo, hi = 0, len(cdf) - 1
        while lo < hi:
            mid = (lo + hi) // 2
            if r <= cdf[mid]:
                hi = mid
            else:
                lo = mid + 1
        return chars[lo]
    return pick

def gen_collector_numbers(count: int, seed: int = 0) -> List[str]:
    # "123", "45a", "p12", "ltr-7" style card numbers
    rng = random.Random(seed)
    out = []
    for _ in range(count):
        number = str(rng.randint(1, 400))
        roll = rng.random()
        if roll < 0.15:
            number = rng.choice("pst") + number
        elif roll < 0.25:
            number += rng.choice("abc")
        elif roll < 0.30:
            number = rng.choice(["ltr", "ktk", "dom"]) + "-" + number
        out.append(number)
    return out

def gen_set_codes(count: int, seed: int = 0) -> List[str]:
    # three-to-five character lowercase set codes drawn from a small pool
    rng = random.Random(seed)
    letters = "abcdefghijklmnopqrstuvwxyz"
    pool = []
    for _ in range(60):
        code = "".join(rng.choice(letters) for _ in range(3))
        if rng.random() < 0.3:
            code = rng.choice("pt") + code
        if rng.random() < 0.2:
            code += str(rng.randint(1, 9))
        pool.append(code)
    return [rng.choice(pool) for _ in range(count)]

def gen_english_words(count: int, seed: int = 0) -> List[str]:
    rng = random.Random(seed)
    chars = "etaoinshrdlcumwfgypbvkjxq"
    weights = []
    for ch in chars:
        if ch in "etaoinshrdlu":
            weights.append(6.0)
        elif ch in "cmfwgypbvk":
            weights.append(2.5)
        else:
            weights.append(1.2)
    pick = _weighted_picker(rng, chars, weights)
    return ["".join(pick() for _ in range(rng.randint(2, 10))) for _ in range(count)]

def gen_uniform_printable(count: int, seed: int = 0) -> List[str]:
    rng = random.Random(seed)
    chars = [chr(c) for c in range(33, 127)]
    return ["".join(rng.choice(chars) for _ in range(rng.randint(1, 12))) for _ in range(count)]

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], List[str]]] = {
    "collector_numbers": gen_collector_numbers,
    "set_codes": gen_set_codes,
    "english_words": gen_english_words,
    "uniform_printable": gen_uniform_printable,
}

def generate_dataset(name: str, count: int, seed: int) -> Tuple[str, List[str]]:
    """
    Helper: if a dataset name is not recognized, we fall back to english_words
    so the run does not fail completely
    """
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        return f"{name}_fallback_english_words", gen_english_words(count, seed=seed)
    return name, fn(count, seed)

def load_corpus(path: Path) -> List[str]:
    sequences = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(sequences, list) or not all(isinstance(s, str) for s in sequences):
        raise ValueError(f"{path}: expected a JSON array of strings")
    return [s.strip().lower() for s in sequences]


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    n_sequences: int
    run_id: int
    max_ngram_length: int
    length_weight: float
    output_encoding: str

    table_symbols: int
    build_table_ms: float
    build_codec_ms: float
    encode_ms: float
    decode_ms: float
    total_ms: float

    mean_bits: float
    max_bits: int
    bits_per_char: float
    mean_text_chars: float

    unencodable_sequences: int
    correctness_ok: int  # 1 or 0


def run_one(sequences: List[str], max_ngram_length: int, length_weight: float,
            output_encoding: StringEncoding, show_failures: bool = False) -> Tuple[MetricRow, FrequencyTable]:
    builder = FrequencyTableBuilder(max_ngram_length, length_weight).with_null_character()

    t0 = now_ns()
    table = builder.build(sequences)
    t1 = now_ns()
    build_table_ms = ns_to_ms(t1 - t0)

    t2 = now_ns()
    codec = HuffmanCodec(EncoderConfiguration(
        frequency_table=table,
        end_of_sequence=NULL_CHARACTER,
        output_encoding=output_encoding,
        input_encoding=output_encoding,
    ))
    t3 = now_ns()
    build_codec_ms = ns_to_ms(t3 - t2)

    # a sequence can still miss a symbol when greedy matching splits it
    # differently from the table builder
    encodable = [s for s in sequences if codec.can_encode(s)]
    unencodable = len(sequences) - len(encodable)

    t4 = now_ns()
    encoded = [codec.encode(s) for s in encodable]
    t5 = now_ns()
    encode_ms = ns_to_ms(t5 - t4)

    t6 = now_ns()
    decoded = [codec.decode(e) for e in encoded]
    t7 = now_ns()
    decode_ms = ns_to_ms(t7 - t6)

    correctness_ok = 1
    for original, enc, dec in zip(encodable, encoded, decoded):
        if original != dec:
            correctness_ok = 0
            if show_failures:
                print_mismatch(original, enc, dec)
            break

    bits = [codec.measure(s) for s in encodable]
    total_chars = sum(len(s) for s in encodable)

    row = MetricRow(
        exp_name="",
        dataset_name="",
        n_sequences=len(sequences),
        run_id=0,
        max_ngram_length=max_ngram_length,
        length_weight=length_weight,
        output_encoding=output_encoding.value,
        table_symbols=len(table),
        build_table_ms=build_table_ms,
        build_codec_ms=build_codec_ms,
        encode_ms=encode_ms,
        decode_ms=decode_ms,
        total_ms=build_table_ms + build_codec_ms + encode_ms + decode_ms,
        mean_bits=statistics.mean(bits) if bits else 0.0,
        max_bits=max(bits, default=0),
        bits_per_char=sum(bits) / max(1, total_chars),
        mean_text_chars=statistics.mean(len(e) for e in encoded) if encoded else 0.0,
        unencodable_sequences=unencodable,
        correctness_ok=correctness_ok,
    )
    return row, table


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    fields = list(MetricRow.__dataclass_fields__.keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fields)
        w.writeheader()
        for r in rows:
            w.writerow({k: getattr(r, k) for k in fields})


def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, max_ngram_length, length_weight, output_encoding
    and compute mean/stdev
    """
    key_to: Dict[Tuple[str, str, int, float, str], List[MetricRow]] = {}
    for r in rows:
        key = (r.exp_name, r.dataset_name, r.max_ngram_length, r.length_weight, r.output_encoding)
        key_to.setdefault(key, []).append(r)

    summary_fields = [
        "exp_name", "dataset_name", "max_ngram_length", "length_weight", "output_encoding", "n_runs",
        "table_symbols_mean",
        "mean_bits_mean", "mean_bits_stdev",
        "bits_per_char_mean", "bits_per_char_stdev",
        "mean_text_chars_mean",
        "build_table_ms_mean", "build_table_ms_stdev",
        "encode_ms_mean", "encode_ms_stdev",
        "decode_ms_mean", "decode_ms_stdev",
        "total_ms_mean", "total_ms_stdev",
        "correctness_ok_rate",
    ]

    def mean_stdev(vals: List[float]) -> Tuple[float, float]:
        if len(vals) == 1:
            return vals[0], 0.0
        return statistics.mean(vals), statistics.stdev(vals)

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=summary_fields)
        w.writeheader()
        for key, items in sorted(key_to.items()):
            exp_name, dataset_name, max_ngram, length_weight, encoding = key

            mb_m, mb_s = mean_stdev([x.mean_bits for x in items])
            bc_m, bc_s = mean_stdev([x.bits_per_char for x in items])
            bt_m, bt_s = mean_stdev([x.build_table_ms for x in items])
            en_m, en_s = mean_stdev([x.encode_ms for x in items])
            de_m, de_s = mean_stdev([x.decode_ms for x in items])
            tt_m, tt_s = mean_stdev([x.total_ms for x in items])

            w.writerow({
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "max_ngram_length": max_ngram,
                "length_weight": length_weight,
                "output_encoding": encoding,
                "n_runs": len(items),
                "table_symbols_mean": statistics.mean(x.table_symbols for x in items),
                "mean_bits_mean": mb_m,
                "mean_bits_stdev": mb_s,
                "bits_per_char_mean": bc_m,
                "bits_per_char_stdev": bc_s,
                "mean_text_chars_mean": statistics.mean(x.mean_text_chars for x in items),
                "build_table_ms_mean": bt_m,
                "build_table_ms_stdev": bt_s,
                "encode_ms_mean": en_m,
                "encode_ms_stdev": en_s,
                "decode_ms_mean": de_m,
                "decode_ms_stdev": de_s,
                "total_ms_mean": tt_m,
                "total_ms_stdev": tt_s,
                "correctness_ok_rate": sum(x.correctness_ok for x in items) / len(items),
            })


# Plotting

def _mean_field(rows: List[MetricRow], field: str) -> float:
    vals = [getattr(r, field) for r in rows]
    return statistics.mean(vals) if vals else float("nan")


def _series_chart(series: Dict[str, Tuple[list, List[float]]], xlabel: str, ylabel: str, title: str,
                  path: Path, integer_x: bool = False) -> None:
    plt.figure()
    for label, (xs, ys) in series.items():
        plt.plot(xs, ys, marker="o", label=label)
        if integer_x:
            plt.xticks(xs)
    plt.xlabel(xlabel)
    plt.ylabel(ylabel)
    plt.title(title)
    plt.legend()
    plt.tight_layout()
    plt.savefig(path, dpi=200)
    plt.close()


def plot_experiment_1(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp1_ngram_length"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    lengths = sorted(set(r.max_ngram_length for r in exp_rows))

    def by_length(field: str) -> Dict[str, Tuple[list, List[float]]]:
        return {
            d: (lengths, [_mean_field([r for r in exp_rows if r.dataset_name == d and r.max_ngram_length == n], field)
                          for n in lengths])
            for d in datasets
        }

    charts = [
        ("bits_per_char", "Encoded Bits per Character", "Code Length", "exp1_bits_per_char.png"),
        ("table_symbols", "Symbols in Frequency Table", "Alphabet Size", "exp1_table_symbols.png"),
        ("build_table_ms", "Table Build Time (ms)", "Table Build Time", "exp1_build_time.png"),
    ]
    for field, ylabel, what, filename in charts:
        _series_chart(by_length(field), "Max N-gram Length", ylabel,
                      f"Experiment 1: {what} vs Max N-gram Length", outdir / filename, integer_x=True)


def plot_experiment_2(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp2_length_weight"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    weights = sorted(set(r.length_weight for r in exp_rows))
    series = {
        d: (weights, [_mean_field([r for r in exp_rows if r.dataset_name == d and r.length_weight == w], "mean_bits")
                      for w in weights])
        for d in datasets
    }
    _series_chart(series, "Length Weight", "Mean Encoded Bits per Sequence",
                  "Experiment 2: Code Length vs Length Weight", outdir / "exp2_mean_bits.png")


def plot_experiment_3(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp3_output_encoding"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    encodings = [e.value for e in (StringEncoding.BIN, StringEncoding.HEX, StringEncoding.BASE64)]
    x = list(range(len(datasets)))

    plt.figure()
    for e in encodings:
        y = [_mean_field([r for r in exp_rows if r.dataset_name == d and r.output_encoding == e], "mean_text_chars")
             for d in datasets]
        plt.bar([i + (encodings.index(e) - 1) * 0.25 for i in x], y, width=0.25, label=e)
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("Mean Encoded Text Length (chars)")
    plt.title("Experiment 3: Output Size by Textual Encoding")
    plt.legend()
    plt.tight_layout()
    plt.savefig(outdir / "exp3_text_length.png", dpi=200)
    plt.close()


# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV, table and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per configuration (>=3 recommended for timing)")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")
    ap.add_argument("--sequences", type=int, default=2000, help="Sequences per generated dataset")
    ap.add_argument("--generators", type=str, default="collector_numbers,set_codes,english_words",
                    help="Comma-separated dataset generator names")
    ap.add_argument("--corpus", type=str, default=None, help="JSON array of strings to use instead of generators")
    ap.add_argument("--verbose", action="store_true", help="Show debug logging from the codec")

    # Experiment toggles
    ap.add_argument("--no_exp1", action="store_true", help="Disable experiment 1 (max n-gram length)")
    ap.add_argument("--no_exp2", action="store_true", help="Disable experiment 2 (length weight)")
    ap.add_argument("--no_exp3", action="store_true", help="Disable experiment 3 (output encoding)")

    # Experiment controls
    ap.add_argument("--exp1_max_ngram", type=int, default=4, help="Experiment 1 sweeps max n-gram length 1..N")
    ap.add_argument("--exp2_weights", type=str, default="0,0.5,1,2,5,10",
                    help="Comma-separated length weights for experiment 2")
    ap.add_argument("--max_ngram", type=int, default=3, help="Max n-gram length for experiments 2/3 and the saved table")
    ap.add_argument("--length_weight", type=float, default=10.0, help="Length weight for experiments 1/3 and the saved table")

    args = ap.parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else "WARNING")
    if args.verbose:
        for name in LOGGED_MODULES:
            logger.enable(name)

    outdir = Path(args.outdir)
    safe_mkdir(outdir)

    def datasets(run_id: int) -> List[Tuple[str, List[str]]]:
        if args.corpus:
            path = Path(args.corpus)
            return [(f"corpus_{path.stem}", load_corpus(path))]
        return [generate_dataset(name, args.sequences, args.seed + run_id)
                for name in parse_csv_list(args.generators)]

    rows: List[MetricRow] = []

    def record(exp_name: str, dataset_name: str, run_id: int, row: MetricRow) -> None:
        row.exp_name = exp_name
        row.dataset_name = dataset_name
        row.run_id = run_id
        rows.append(row)

    for run_id in range(1, args.runs + 1):
        for dataset_name, sequences in datasets(run_id):
            # Experiment 1: max n-gram length
            if not args.no_exp1:
                for n in range(1, max(1, args.exp1_max_ngram) + 1):
                    row, _ = run_one(sequences, n, args.length_weight, StringEncoding.BIN, args.verbose)
                    record("exp1_ngram_length", dataset_name, run_id, row)

            # Experiment 2: length weight
            if not args.no_exp2:
                for weight in (float(w) for w in parse_csv_list(args.exp2_weights)):
                    row, _ = run_one(sequences, args.max_ngram, weight, StringEncoding.BIN, args.verbose)
                    record("exp2_length_weight", dataset_name, run_id, row)

            # Experiment 3: textual output size
            if not args.no_exp3:
                for encoding in (StringEncoding.BIN, StringEncoding.HEX, StringEncoding.BASE64):
                    row, _ = run_one(sequences, args.max_ngram, args.length_weight, encoding, args.verbose)
                    record("exp3_output_encoding", dataset_name, run_id, row)

    # Save the table for the chosen settings on the first dataset
    first_name, first_sequences = datasets(1)[0]
    _, table = run_one(first_sequences, args.max_ngram, args.length_weight, StringEncoding.HEX)
    table_path = outdir / "frequency_table.json"
    table_path.write_bytes(table.serialize())

    # Write raw and summary
    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    # Plots
    plot_experiment_1(rows, outdir)
    plot_experiment_2(rows, outdir)
    plot_experiment_3(rows, outdir)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Frequency table for {first_name}: {len(table)} symbols -> {table_path}")
    print(f"Correctness rate across all runs: {ok_rate:.3f}")
    print("Charts saved in:", outdir.resolve())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
