"""
Frequency table for Huffman coding: symbol (unigram or n-gram string) -> weight.

Wraps a plain dict rather than extending it, so the only way to change a
table is increment(). Insertion order is kept because the tree builder
uses it to break ties between equal weights.

Persisted form is a UTF-8 JSON object {"symbol": weight, ...}.
"""

from __future__ import annotations

import json
import math
import string
from typing import Dict, Iterator, List, Optional, Tuple

from errors import MalformedTableError

_WHITESPACE = " \t\n\v\f\r"


class FrequencyTable:
    __slots__ = ("_weights",)
    __hash__ = None  # mutable while building; compared by content

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        self._weights: Dict[str, float] = {}
        if weights:
            for symbol, weight in weights.items():
                self.increment(symbol, weight)

    # Lookup

    def count(self, symbol: str) -> float:
        """Accumulated weight of symbol, 0 if it was never counted."""
        return self._weights.get(symbol, 0)

    def symbols(self) -> List[str]:
        return list(self._weights)

    def items(self) -> List[Tuple[str, float]]:
        return list(self._weights.items())

    def __len__(self) -> int:
        return len(self._weights)

    def __iter__(self) -> Iterator[str]:
        return iter(self._weights)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._weights

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FrequencyTable):
            return NotImplemented
        return self._weights == other._weights

    def __repr__(self) -> str:
        return f"FrequencyTable({self._weights!r})"

    # Mutation (only used while a table is being built)

    def increment(self, symbol: str, delta: float = 1) -> None:
        """Add delta to symbol's weight, inserting it with weight=delta if new."""
        if not isinstance(symbol, str):
            raise TypeError(f"symbol must be a str, not {type(symbol).__name__}")
        if not math.isfinite(delta) or delta < 0:
            raise ValueError(f"weight delta must be finite and non-negative (got {delta})")
        self._weights[symbol] = self._weights.get(symbol, 0) + delta

    # Persistence

    def serialize(self) -> bytes:
        return json.dumps(self._weights, ensure_ascii=False, separators=(",", ":")).encode("utf-8")

    @classmethod
    def deserialize(cls, payload) -> "FrequencyTable":
        """Parse the JSON object form. Accepts bytes or str.

        Raises MalformedTableError unless payload is a JSON object whose
        values are all finite non-negative numbers.
        """
        if payload is None:
            raise MalformedTableError("Frequency table payload is None")
        try:
            if isinstance(payload, (bytes, bytearray)):
                payload = payload.decode("utf-8")
            pairs = json.loads(payload, object_pairs_hook=_reject_duplicate_keys)
        except (UnicodeDecodeError, json.JSONDecodeError, TypeError) as e:
            raise MalformedTableError(f"Invalid frequency table JSON: {e}") from e

        if not isinstance(pairs, dict):
            raise MalformedTableError(f"Frequency table must be a JSON object, not {type(pairs).__name__}")

        table = cls()
        for symbol, weight in pairs.items():
            # bool is an int subclass; JSON true/false is not a weight
            if isinstance(weight, bool) or not isinstance(weight, (int, float)):
                raise MalformedTableError(f"Weight for {symbol!r} is not a number: {weight!r}")
            if not math.isfinite(weight) or weight < 0:
                raise MalformedTableError(f"Weight for {symbol!r} must be finite and non-negative: {weight!r}")
            table.increment(symbol, weight)
        return table

    # Aliases matching the persisted-file naming used by callers
    def to_json(self) -> bytes:
        return self.serialize()

    @classmethod
    def from_json(cls, payload) -> "FrequencyTable":
        return cls.deserialize(payload)

    # Built-in tables

    @classmethod
    def ascii(cls) -> "FrequencyTable":
        """Generic table over code points 0..127.

        alphanumeric > whitespace > punctuation/symbols > everything else
        (control characters, NUL and DEL included).
        """
        table = cls()
        for code_point in range(128):
            c = chr(code_point)
            if c.isalnum():
                table.increment(c, 1)
            elif c in _WHITESPACE:
                table.increment(c, 0.5)
            elif c in string.punctuation:
                table.increment(c, 0.25)
            else:
                table.increment(c, 0.1)
        return table


def _reject_duplicate_keys(pairs):
    result = {}
    for key, value in pairs:
        if key in result:
            raise MalformedTableError(f"Duplicate symbol in frequency table: {key!r}")
        result[key] = value
    return result
