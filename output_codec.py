"""
Textual representations of a bit string ('0'/'1' characters).

  BIN     one '0'/'1' per bit
  HEX     bytes (first bit = MSB) as uppercase hex, no separators
  BASE64  same bytes, standard base64 with padding
  AUTO    encodes as HEX; decodes whatever detect_encoding() finds

HEX and BASE64 need a bit length that is a multiple of 8.
"""

from __future__ import annotations

import base64
import binascii
import string
from enum import Enum
from typing import Dict, Optional

from errors import LengthAlignmentError, MalformedEncodingError


class StringEncoding(Enum):
    AUTO = "auto"
    BIN = "bin"
    HEX = "hex"
    BASE64 = "base64"


_HEX_DIGITS = frozenset(string.hexdigits)


def bits_to_bytes(bits: str) -> bytes:
    """Pack a bit string into bytes, most significant bit first."""
    if len(bits) % 8 != 0:
        raise LengthAlignmentError(len(bits))

    out = bytearray()
    acc = 0
    acc_bits = 0
    for ch in bits:
        acc = (acc << 1) | (1 if ch == '1' else 0)
        acc_bits += 1
        if acc_bits == 8:
            out.append(acc & 0xFF)
            acc = 0
            acc_bits = 0
    return bytes(out)


def bytes_to_bits(data: bytes) -> str:
    return "".join(f"{byte:08b}" for byte in data)


def detect_encoding(text: str) -> Optional[StringEncoding]:
    """Guess the representation of text, first match in order BIN, HEX, BASE64.

    This is weak: "0101" is valid in all three. Returns None if nothing fits.
    """
    if all(c in "01" for c in text):
        return StringEncoding.BIN
    if all(c in _HEX_DIGITS for c in text):
        return StringEncoding.HEX
    try:
        base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        return None
    return StringEncoding.BASE64


class OutputEncoder:
    encoding: StringEncoding

    def encode(self, bits: str) -> str:
        raise NotImplementedError

    def decode(self, text: str) -> str:
        raise NotImplementedError


class BinEncoder(OutputEncoder):
    encoding = StringEncoding.BIN

    def encode(self, bits: str) -> str:
        return bits

    def decode(self, text: str) -> str:
        if not all(c in "01" for c in text):
            raise MalformedEncodingError("Binary input may only contain '0' and '1'")
        return text


class HexEncoder(OutputEncoder):
    encoding = StringEncoding.HEX

    def encode(self, bits: str) -> str:
        return bits_to_bytes(bits).hex().upper()

    def decode(self, text: str) -> str:
        if len(text) % 2 != 0 or not all(c in _HEX_DIGITS for c in text):
            raise MalformedEncodingError(f"Not a valid hex string: {text!r}")
        return bytes_to_bits(bytes.fromhex(text))


class Base64Encoder(OutputEncoder):
    encoding = StringEncoding.BASE64

    def encode(self, bits: str) -> str:
        return base64.b64encode(bits_to_bytes(bits)).decode("ascii")

    def decode(self, text: str) -> str:
        try:
            data = base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MalformedEncodingError(f"Not a valid base64 string: {e}") from e
        return bytes_to_bits(data)


class AutoEncoder(OutputEncoder):
    encoding = StringEncoding.AUTO

    def encode(self, bits: str) -> str:
        return HEX.encode(bits)

    def decode(self, text: str) -> str:
        detected = detect_encoding(text)
        if detected is None:
            raise MalformedEncodingError(f"Could not detect the encoding of {text!r}")
        return get_encoder(detected).decode(text)


BIN = BinEncoder()
HEX = HexEncoder()
BASE64 = Base64Encoder()
AUTO = AutoEncoder()

_ENCODERS: Dict[StringEncoding, OutputEncoder] = {
    StringEncoding.AUTO: AUTO,
    StringEncoding.BIN: BIN,
    StringEncoding.HEX: HEX,
    StringEncoding.BASE64: BASE64,
}


def get_encoder(encoding: StringEncoding) -> OutputEncoder:
    try:
        return _ENCODERS[StringEncoding(encoding)]
    except ValueError as e:
        raise ValueError(f"Unknown string encoding: {encoding!r}") from e
