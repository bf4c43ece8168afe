"""
Huffman text codec.

EncoderConfiguration holds the settings (frequency table, EOS symbol,
padding policy, textual encodings) and is validated once when created.
HuffmanCodec builds the tree and code table from it up front and is
read-only afterwards, so one instance can be shared between threads.

    codec = HuffmanCodec(EncoderConfiguration(output_encoding=StringEncoding.BASE64))
    code = codec.encode("hello")
    assert codec.decode(code) == "hello"

The module-level encode/decode/measure/can_encode build a codec per call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional

from loguru import logger

import output_codec
from errors import ConfigurationError, MissingInputError, UnencodableSymbolError
from frequency_table import FrequencyTable
from huffman import HuffmanTree, build_huffman_tree, generate_huffman_codes, huffman_decode, huffman_encode
from output_codec import StringEncoding

logger.disable(__name__)

DEFAULT_END_OF_SEQUENCE = "\0"


@dataclass(frozen=True)
class EncoderConfiguration:
    """Immutable codec settings.

    frequency_table    : weights the tree is built from (default: ASCII table)
    end_of_sequence    : symbol appended after the content; None/"" for none
    fixed_length_bits  : pad output with 0 bits up to this length (0 = off)
    fixed_length_bytes : same, in bytes; mutually exclusive with the above
    byte_alignment     : pad to a multiple of 8 bits; None means "yes unless
                         output_encoding is BIN"
    input_encoding     : how decode() reads its text
    output_encoding    : how encode() writes its text

    Padding never truncates: content longer than the fixed length is
    returned as is.

    Configurations compare by value but are unhashable, like the mutable
    FrequencyTable they hold.
    """
    __hash__ = None

    frequency_table: FrequencyTable = field(default_factory=FrequencyTable.ascii)
    end_of_sequence: Optional[str] = DEFAULT_END_OF_SEQUENCE
    fixed_length_bits: int = 0
    fixed_length_bytes: int = 0
    byte_alignment: Optional[bool] = None
    input_encoding: StringEncoding = StringEncoding.AUTO
    output_encoding: StringEncoding = StringEncoding.HEX

    def __post_init__(self):
        if self.frequency_table is None:
            raise ConfigurationError("frequency_table must not be None")
        if self.end_of_sequence == "":
            object.__setattr__(self, "end_of_sequence", None)
        object.__setattr__(self, "input_encoding", StringEncoding(self.input_encoding))
        object.__setattr__(self, "output_encoding", StringEncoding(self.output_encoding))

        if self.fixed_length_bits < 0 or self.fixed_length_bytes < 0:
            raise ConfigurationError("Fixed output length must not be negative")
        if self.fixed_length_bits and self.fixed_length_bytes:
            raise ConfigurationError("Set fixed_length_bits or fixed_length_bytes, not both")
        if (self.aligned or self.fixed_length) and self.end_of_sequence is None:
            raise ConfigurationError("An end_of_sequence symbol is required when byte alignment or a fixed length is set")
        if self.aligned and self.fixed_length % 8 != 0:
            raise ConfigurationError(f"Byte alignment cannot be combined with a fixed length of {self.fixed_length} bits")
        if self.end_of_sequence is not None and self.end_of_sequence not in self.frequency_table:
            raise ConfigurationError(f"end_of_sequence {self.end_of_sequence!r} is not in the frequency table")

    @property
    def aligned(self) -> bool:
        if self.byte_alignment is not None:
            return self.byte_alignment
        return self.output_encoding != StringEncoding.BIN or self.fixed_length_bytes > 0

    @property
    def fixed_length(self) -> int:
        # in bits
        return self.fixed_length_bits or self.fixed_length_bytes * 8


class HuffmanCodec:
    def __init__(self, configuration: Optional[EncoderConfiguration] = None):
        self.configuration = configuration or EncoderConfiguration()
        self.tree: HuffmanTree = build_huffman_tree(self.configuration.frequency_table)
        self._codes = generate_huffman_codes(self.tree)
        # longest first, for greedy matching of multi-character symbols
        self._symbol_lengths = sorted({len(s) for s in self._codes if s}, reverse=True)
        logger.debug(f"[Codec] code table ready: {len(self._codes)} symbols, "
                     f"max code length {max((len(c) for c in self._codes.values()), default=0)} bits")

    @property
    def code_table(self) -> Mapping[str, str]:
        return MappingProxyType(self._codes)

    @property
    def end_of_sequence(self) -> Optional[str]:
        return self.configuration.end_of_sequence

    # Symbol matching

    def _match(self, text: str, pos: int) -> Optional[str]:
        for n in self._symbol_lengths:
            candidate = text[pos:pos + n]
            if len(candidate) == n and candidate in self._codes:
                return candidate
        return None

    def tokenize(self, text: str) -> List[str]:
        """Split text into code-table symbols, longest match first."""
        if text is None:
            raise MissingInputError("text must not be None")
        symbols: List[str] = []
        pos = 0
        while pos < len(text):
            symbol = self._match(text, pos)
            if symbol is None:
                raise UnencodableSymbolError(text[pos])
            symbols.append(symbol)
            pos += len(symbol)
        return symbols

    def can_encode(self, text: Optional[str]) -> bool:
        if text is None:
            return False
        pos = 0
        while pos < len(text):
            symbol = self._match(text, pos)
            if symbol is None:
                return False
            pos += len(symbol)
        return True

    # Bit-level

    def measure(self, text: str) -> int:
        """Content length in bits (symbols + EOS), ignoring all padding."""
        bits = sum(len(self._codes[s]) for s in self.tokenize(text))
        if self.end_of_sequence is not None:
            bits += len(self._codes[self.end_of_sequence])
        return bits

    def max_bits(self, sequences: Iterable[str]) -> int:
        return max((self.measure(s) for s in sequences), default=0)

    def encode_bits(self, text: str) -> str:
        config = self.configuration
        bits = huffman_encode(self.tokenize(text), self._codes)
        if config.end_of_sequence is not None:
            bits += self._codes[config.end_of_sequence]
        if config.aligned and len(bits) % 8:
            bits += "0" * (8 - len(bits) % 8)
        if len(bits) < config.fixed_length:
            bits = bits.ljust(config.fixed_length, "0")
        return bits

    def decode_bits(self, bits: str) -> str:
        if bits is None:
            raise MissingInputError("bits must not be None")
        return huffman_decode(output_codec.BIN.decode(bits), self.tree, self.end_of_sequence)

    # Textual

    def encode(self, text: str) -> str:
        encoder = output_codec.get_encoder(self.configuration.output_encoding)
        return encoder.encode(self.encode_bits(text))

    def decode(self, code: str) -> str:
        if code is None:
            raise MissingInputError("code must not be None")
        if not code:
            return ""
        decoder = output_codec.get_encoder(self.configuration.input_encoding)
        return self.decode_bits(decoder.decode(code))

    def encode_bytes(self, text: str) -> bytes:
        if self.configuration.output_encoding == StringEncoding.BIN:
            raise ConfigurationError("Output encoding BIN does not match a bytes result")
        return output_codec.bits_to_bytes(self.encode_bits(text))

    def decode_bytes(self, data: bytes) -> str:
        if data is None:
            raise MissingInputError("data must not be None")
        return self.decode_bits(output_codec.bytes_to_bits(data))


def encode(text: str, configuration: Optional[EncoderConfiguration] = None) -> str:
    if text is None:
        raise MissingInputError("text must not be None")
    return HuffmanCodec(configuration).encode(text)


def decode(code: str, configuration: Optional[EncoderConfiguration] = None) -> str:
    if code is None:
        raise MissingInputError("code must not be None")
    return HuffmanCodec(configuration).decode(code)


def measure(text: str, configuration: Optional[EncoderConfiguration] = None) -> int:
    if text is None:
        raise MissingInputError("text must not be None")
    return HuffmanCodec(configuration).measure(text)


def can_encode(text: Optional[str], configuration: Optional[EncoderConfiguration] = None) -> bool:
    if text is None:
        return False
    return HuffmanCodec(configuration).can_encode(text)
