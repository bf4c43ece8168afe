"""
Builds a FrequencyTable from raw corpus sequences.

Two passes:
  1. count every contiguous n-gram of length max_ngram_length down to 1
     (overlapping windows), plus one EOS per sequence if configured
  2. re-tokenize each sequence greedily with the raw grams ranked by
     score = len(gram) * length_weight + raw_count, and count only the
     grams that were actually picked

The second pass is a heuristic; it does not find the minimal cover.
A character that never survives as a gram is dropped from the count.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from loguru import logger

from errors import ConfigurationError, MissingInputError
from frequency_table import FrequencyTable

logger.disable(__name__)

NULL_CHARACTER = "\0"


def gram_score(gram: str, raw_count: float, length_weight: float) -> float:
    return len(gram) * length_weight + raw_count


def count_ngrams(sequences: Iterable[str], max_ngram_length: int,
                 end_of_sequence: Optional[str] = None) -> FrequencyTable:
    """Raw pass: sliding-window counts for every gram length max..1."""
    table = FrequencyTable()
    if end_of_sequence:
        table.increment(end_of_sequence, 0)  # keep EOS first in insertion order

    for sequence in sequences:
        for n in range(max_ngram_length, 0, -1):
            for i in range(len(sequence) - n + 1):
                table.increment(sequence[i:i + n])
        if end_of_sequence:
            table.increment(end_of_sequence)

    return table


def rank_grams(raw: FrequencyTable, length_weight: float,
               end_of_sequence: Optional[str] = None) -> List[str]:
    # sorted() is stable, so equal scores keep the raw table's insertion order
    candidates = [(gram, count) for gram, count in raw.items() if gram and gram != end_of_sequence]
    candidates.sort(key=lambda gc: gram_score(gc[0], gc[1], length_weight), reverse=True)
    return [gram for gram, _ in candidates]


def tokenize(sequence: str, ranked_grams: List[str]) -> Tuple[List[str], str]:
    """Greedily cover sequence with ranked_grams.

    Returns (picked grams in selection order, one entry per occurrence removed;
    the uncovered residual, "" when the cover is complete).
    """
    remaining = sequence
    picked: List[str] = []
    for gram in ranked_grams:
        if not remaining:
            break
        # removing a gram can splice two halves into a new occurrence, so recheck
        while gram in remaining:
            picked.extend([gram] * remaining.count(gram))
            remaining = remaining.replace(gram, "")
    return picked, remaining


@dataclass(frozen=True)
class FrequencyTableBuilder:
    """Settings for turning sequences into an optimised FrequencyTable.

    max_ngram_length : longest gram considered (>= 1)
    length_weight    : how strongly longer grams are favoured over frequent ones
    end_of_sequence  : symbol counted once per sequence, or None
    """
    max_ngram_length: int = 1
    length_weight: float = 1.0
    end_of_sequence: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.max_ngram_length, int) or self.max_ngram_length < 1:
            raise ConfigurationError(f"max_ngram_length must be an int >= 1 (got {self.max_ngram_length!r})")
        if self.end_of_sequence == "":
            object.__setattr__(self, "end_of_sequence", None)

    def with_max_ngram_length(self, max_ngram_length: int) -> "FrequencyTableBuilder":
        return dataclasses.replace(self, max_ngram_length=max_ngram_length)

    def with_length_weight(self, length_weight: float) -> "FrequencyTableBuilder":
        return dataclasses.replace(self, length_weight=length_weight)

    def with_end_of_sequence(self, end_of_sequence: Optional[str]) -> "FrequencyTableBuilder":
        return dataclasses.replace(self, end_of_sequence=end_of_sequence)

    def with_null_character(self) -> "FrequencyTableBuilder":
        return self.with_end_of_sequence(NULL_CHARACTER)

    def count(self, sequences: Iterable[str]) -> FrequencyTable:
        return count_ngrams(_require_sequences(sequences), self.max_ngram_length, self.end_of_sequence)

    def build(self, sequences: Iterable[str]) -> FrequencyTable:
        sequences = _require_sequences(sequences)
        raw = count_ngrams(sequences, self.max_ngram_length, self.end_of_sequence)
        ranked = rank_grams(raw, self.length_weight, self.end_of_sequence)

        result = FrequencyTable()
        if self.end_of_sequence:
            result.increment(self.end_of_sequence, raw.count(self.end_of_sequence))

        dropped = 0
        for sequence in sequences:
            picked, residual = tokenize(sequence, ranked)
            for gram in picked:
                result.increment(gram)
            dropped += len(residual)

        if dropped:
            logger.debug(f"[FrequencyTableBuilder] {dropped} characters left uncovered by any gram")
        logger.debug(f"[FrequencyTableBuilder] {len(sequences)} sequences: raw={len(raw)} grams, final={len(result)} symbols")
        return result


def _require_sequences(sequences) -> List[str]:
    if sequences is None:
        raise MissingInputError("sequences must not be None")
    sequences = list(sequences)
    for s in sequences:
        if not isinstance(s, str):
            raise TypeError(f"sequences must contain str, not {type(s).__name__}")
    return sequences
