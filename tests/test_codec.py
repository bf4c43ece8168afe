import os
import subprocess
import sys
from itertools import permutations

import pytest

import codec
from codec import EncoderConfiguration, HuffmanCodec
from errors import ConfigurationError, MalformedEncodingError, MissingInputError, UnencodableSymbolError
from frequency_table import FrequencyTable
from output_codec import StringEncoding, detect_encoding

SAMPLE = "Lorem ipsum dolor sit amet, consectetur adipiscing elit."


def scenario_table():
    return FrequencyTable({"a": 5, "b": 2, "c": 1, "\0": 1})


def scenario_codec(**overrides):
    settings = dict(frequency_table=scenario_table(), output_encoding=StringEncoding.BIN,
                    input_encoding=StringEncoding.BIN)
    settings.update(overrides)
    return HuffmanCodec(EncoderConfiguration(**settings))


@pytest.mark.parametrize("output_encoding, input_encoding", [
    (StringEncoding.BIN, StringEncoding.BIN),
    (StringEncoding.HEX, StringEncoding.HEX),
    (StringEncoding.BASE64, StringEncoding.BASE64),
    (StringEncoding.AUTO, StringEncoding.AUTO),
    (StringEncoding.BIN, StringEncoding.AUTO),
    (StringEncoding.BASE64, StringEncoding.AUTO),
])
def test_round_trip_every_encoding(output_encoding, input_encoding):
    huff = HuffmanCodec(EncoderConfiguration(output_encoding=output_encoding, input_encoding=input_encoding))
    assert huff.decode(huff.encode(SAMPLE)) == SAMPLE


def test_module_level_round_trip_with_defaults():
    code = codec.encode("Hello, World!")
    assert code
    assert codec.decode(code) == "Hello, World!"


def test_scenario_bits_and_measure():
    huff = scenario_codec()
    assert huff.encode_bits("abc") == "1" + "00" + "010" + "011"
    assert huff.measure("abc") == 9
    assert huff.decode("100010011") == "abc"


def test_scenario_hex_is_padded_to_whole_bytes():
    huff = scenario_codec(output_encoding=StringEncoding.HEX, input_encoding=StringEncoding.HEX)
    assert huff.encode("abc") == "8980"
    assert huff.decode("8980") == "abc"
    assert huff.encode_bytes("abc") == b"\x89\x80"
    assert huff.decode_bytes(b"\x89\x80") == "abc"


def test_encode_bytes_rejects_bin_output():
    with pytest.raises(ConfigurationError):
        scenario_codec().encode_bytes("abc")


def test_empty_text_encodes_to_eos_code_plus_padding():
    huff = HuffmanCodec()
    eos_code = huff.code_table["\0"]
    padded = -(-len(eos_code) // 8) * 8
    assert huff.encode_bits("") == eos_code.ljust(padded, "0")
    assert huff.decode("") == ""
    assert codec.decode("") == ""


@pytest.mark.parametrize("text", ["", "a", "ab", SAMPLE, "~" * 17])
def test_byte_alignment_invariant(text):
    assert len(HuffmanCodec().encode_bits(text)) % 8 == 0


def test_fixed_length_in_bytes():
    huff = HuffmanCodec(EncoderConfiguration(fixed_length_bytes=64, input_encoding=StringEncoding.HEX))
    code = huff.encode("short")
    assert len(huff.encode_bits("short")) == 512
    assert len(code) == 128
    assert huff.decode(code) == "short"


def test_fixed_length_in_bits_without_alignment():
    huff = scenario_codec(fixed_length_bits=20)
    bits = huff.encode_bits("ab")
    assert len(bits) == 20
    assert huff.decode_bits(bits) == "ab"


def test_fixed_length_does_not_truncate():
    huff = scenario_codec(fixed_length_bits=4)
    bits = huff.encode_bits("cccc")
    assert len(bits) == huff.measure("cccc") == 15
    assert huff.decode_bits(bits) == "cccc"


def test_measure_ignores_padding():
    huff = HuffmanCodec(EncoderConfiguration(fixed_length_bytes=32))
    assert huff.measure("abc") < 256
    assert huff.max_bits(["a", "abc"]) == huff.measure("abc")
    assert huff.max_bits([]) == 0


@pytest.mark.parametrize("settings", [
    dict(end_of_sequence=None),
    dict(end_of_sequence="", output_encoding=StringEncoding.BASE64),
    dict(end_of_sequence=None, output_encoding=StringEncoding.BIN, fixed_length_bits=16),
    dict(end_of_sequence=None, output_encoding=StringEncoding.BIN, byte_alignment=True),
    dict(fixed_length_bits=12),
    dict(fixed_length_bits=16, fixed_length_bytes=2),
    dict(fixed_length_bytes=-1),
    dict(frequency_table=FrequencyTable({"a": 1, "b": 1})),
    dict(frequency_table=None),
])
def test_invalid_configuration(settings):
    with pytest.raises(ConfigurationError):
        EncoderConfiguration(**settings)


def test_configuration_defaults():
    config = EncoderConfiguration()
    assert config.end_of_sequence == "\0"
    assert config.output_encoding is StringEncoding.HEX
    assert config.input_encoding is StringEncoding.AUTO
    assert config.aligned
    assert config.fixed_length == 0
    assert not EncoderConfiguration(output_encoding=StringEncoding.BIN).aligned
    assert EncoderConfiguration(output_encoding="base64").output_encoding is StringEncoding.BASE64


def test_no_eos_binary_output():
    huff = scenario_codec(end_of_sequence=None)
    assert huff.encode_bits("abc") == "100010"
    assert huff.decode("100010") == "abc"


def test_unencodable_symbol():
    text = "This string is not ASCII 😊"
    with pytest.raises(UnencodableSymbolError) as excinfo:
        codec.encode(text)
    assert excinfo.value.symbol == "😊"
    assert not codec.can_encode(text)
    with pytest.raises(UnencodableSymbolError):
        codec.measure(text)


@pytest.mark.parametrize("text", ["", "abc", "abd", "a b", "cab", "é"])
def test_can_encode_matches_encode(text):
    huff = scenario_codec()
    try:
        huff.encode_bits(text)
        encodable = True
    except UnencodableSymbolError:
        encodable = False
    assert huff.can_encode(text) is encodable


def test_missing_input():
    assert codec.can_encode(None) is False
    assert codec.can_encode("") is True
    for fn in (codec.encode, codec.decode, codec.measure):
        with pytest.raises(MissingInputError):
            fn(None)
    with pytest.raises(MissingInputError):
        HuffmanCodec().decode_bits(None)


def test_multi_character_symbols_match_longest_first():
    table = FrequencyTable({"ab": 3, "a": 1, "b": 1, "c": 2, "\0": 1})
    huff = HuffmanCodec(EncoderConfiguration(frequency_table=table, output_encoding=StringEncoding.BIN))
    assert huff.tokenize("abcab") == ["ab", "c", "ab"]
    assert huff.tokenize("aab") == ["a", "ab"]
    assert huff.decode(huff.encode("aabcb")) == "aabcb"
    with pytest.raises(UnencodableSymbolError) as excinfo:
        huff.tokenize("abd")
    assert excinfo.value.symbol == "d"


def test_single_symbol_alphabet_encodes_to_zero_bits():
    huff = HuffmanCodec(EncoderConfiguration(frequency_table=FrequencyTable({"x": 1}), end_of_sequence=None,
                                             output_encoding=StringEncoding.BIN))
    assert dict(huff.code_table) == {"x": ""}
    assert huff.encode_bits("xxx") == ""
    assert huff.measure("xxx") == 0


def test_empty_alphabet():
    huff = HuffmanCodec(EncoderConfiguration(frequency_table=FrequencyTable(), end_of_sequence=None,
                                             output_encoding=StringEncoding.BIN))
    assert huff.can_encode("")
    assert not huff.can_encode("a")
    assert huff.encode_bits("") == ""
    assert huff.decode_bits("0101") == ""


def test_decode_tolerates_truncated_stream():
    huff = scenario_codec()
    bits = huff.encode_bits("abca")
    assert huff.decode_bits(bits[:-4]) == "abc"


def test_code_table_is_read_only_and_prefix_free():
    huff = HuffmanCodec()
    with pytest.raises(TypeError):
        huff.code_table["a"] = "0"
    for x, y in permutations(huff.code_table.values(), 2):
        assert not y.startswith(x)


def test_codecs_from_same_table_agree():
    table = FrequencyTable.ascii()
    first = HuffmanCodec(EncoderConfiguration(frequency_table=table))
    second = HuffmanCodec(EncoderConfiguration(frequency_table=table))
    assert dict(first.code_table) == dict(second.code_table)
    assert first.encode(SAMPLE) == second.encode(SAMPLE)


def test_hex_output_of_only_zeros_and_ones_is_read_as_bin_by_auto():
    # a=0, EOS=1: "aaa" packs to 00010000, i.e. the hex text "10"
    table = FrequencyTable({"a": 1, "\0": 1})
    writer = HuffmanCodec(EncoderConfiguration(frequency_table=table, output_encoding=StringEncoding.HEX))
    code = writer.encode("aaa")
    assert code == "10"
    assert detect_encoding(code) is StringEncoding.BIN

    auto = HuffmanCodec(EncoderConfiguration(frequency_table=table, input_encoding=StringEncoding.AUTO))
    assert auto.decode(code) == ""  # '1' is the EOS code
    explicit = HuffmanCodec(EncoderConfiguration(frequency_table=table, input_encoding=StringEncoding.HEX))
    assert explicit.decode(code) == "aaa"


def test_auto_prefers_bin_over_hex_with_scenario_table():
    assert scenario_codec(input_encoding=StringEncoding.AUTO).decode("10") == "a"
    assert scenario_codec(input_encoding=StringEncoding.HEX).decode("10") == "bcb"


@pytest.mark.parametrize("bits", ["012", "1a", "0 1"])
def test_decode_bits_rejects_non_binary_characters(bits):
    with pytest.raises(MalformedEncodingError):
        scenario_codec().decode_bits(bits)


def test_configuration_compares_by_value_but_is_unhashable():
    table = scenario_table()
    assert EncoderConfiguration(frequency_table=table) == EncoderConfiguration(frequency_table=table)
    with pytest.raises(TypeError):
        hash(EncoderConfiguration())


def test_library_calls_write_nothing_to_stderr():
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    script = ("import codec, frequency_table_builder\n"
              "frequency_table_builder.FrequencyTableBuilder(end_of_sequence='\\0').build(['hi'])\n"
              "assert codec.decode(codec.encode('hi')) == 'hi'\n")
    result = subprocess.run([sys.executable, "-c", script], cwd=repo_root,
                            capture_output=True, text=True, timeout=60)
    assert result.returncode == 0, result.stderr
    assert result.stderr == ""
