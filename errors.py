"""Exceptions raised by the Huffman codec.

All of them derive from ValueError so callers that only care about
"bad input" can keep catching that.
"""


class HuffmanError(ValueError):
    pass


class MissingInputError(HuffmanError):
    # required text/bytes argument was None
    pass


class UnencodableSymbolError(HuffmanError):
    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"Symbol {symbol!r} is not in the code table")


class ConfigurationError(HuffmanError):
    pass


class LengthAlignmentError(HuffmanError):
    def __init__(self, bit_length: int):
        self.bit_length = bit_length
        super().__init__(f"Bit sequence length must be a multiple of 8 (got {bit_length})")


class MalformedTableError(HuffmanError):
    pass


class MalformedEncodingError(HuffmanError):
    # textual input is not valid for the requested representation
    pass
