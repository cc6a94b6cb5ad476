import math
import zlib

from plantuml_gateway.utils.plantuml_encode import (
    PLANTUML_ALPHABET,
    _encode_6bit,
    deflate_raw,
    encode_bytes,
    plantuml_encode,
)


SAMPLE = "@startuml\nAlice -> Bob: hello\n@enduml"


def _decode(token: str) -> bytes:
    out = bytearray()
    for i in range(0, len(token), 4):
        c1, c2, c3, c4 = (PLANTUML_ALPHABET.index(ch) for ch in token[i:i + 4])
        out.append((c1 << 2) | (c2 >> 4))
        out.append(((c2 & 0xF) << 4) | (c3 >> 2))
        out.append(((c3 & 0x3) << 6) | c4)
    return bytes(out)


def test_encode_is_deterministic():
    assert plantuml_encode(SAMPLE) == plantuml_encode(SAMPLE)


def test_encode_uses_only_plantuml_alphabet():
    token = plantuml_encode(SAMPLE * 20)
    assert token
    assert set(token) <= set(PLANTUML_ALPHABET)


def test_encode_length_matches_compressed_groups():
    for text in ["a", "ab", "abc", SAMPLE, "日本語のダイアグラム", "x" * 1000]:
        compressed = deflate_raw(text.encode("utf-8"))
        assert len(plantuml_encode(text)) == math.ceil(len(compressed) / 3) * 4


def test_empty_text_encodes_to_empty_token():
    assert plantuml_encode("") == ""


def test_deflate_is_raw_stream():
    compressed = deflate_raw(SAMPLE.encode("utf-8"))
    # Inflates only as a headerless stream.
    assert zlib.decompress(compressed, -15) == SAMPLE.encode("utf-8")


def test_token_decodes_back_to_source():
    token = plantuml_encode(SAMPLE)
    compressed = deflate_raw(SAMPLE.encode("utf-8"))
    decoded = _decode(token)
    assert decoded[: len(compressed)] == compressed
    assert set(decoded[len(compressed):]) <= {0}


def test_encode_bytes_known_groups():
    assert encode_bytes(b"\x00\x00\x00") == "0000"
    assert encode_bytes(b"\xff\xff\xff") == "____"
    # Trailing group is zero padded, not marked with '='.
    assert encode_bytes(b"\xff") == "_m00"
    assert encode_bytes(b"\xff\xff\xff\xff") == "_____m00"


def test_out_of_range_values_map_to_sentinel():
    assert _encode_6bit(64) == "?"
    assert _encode_6bit(-1) == "?"
    assert _encode_6bit(0) == "0"
    assert _encode_6bit(63) == "_"
