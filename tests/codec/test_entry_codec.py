import pytest

from bwenv.codec.entry_codec import (
    InvalidKeyError,
    InvalidValueError,
    MalformedFieldError,
    MalformedLineError,
    decode,
    decode_legacy,
    decode_native,
    encode,
)
from bwenv.models.entry import LegacyBody, NativeBody


def test_decode_native_keeps_order_and_skips_blank_lines() -> None:
    secrets = decode_native("B=2\n\n  \nA=1\n")
    assert list(secrets.items()) == [("B", "2"), ("A", "1")]


def test_decode_native_splits_on_first_equals_only() -> None:
    assert decode_native("DSN=postgres://u:p@h/db?sslmode=require") == {
        "DSN": "postgres://u:p@h/db?sslmode=require"
    }


def test_decode_native_keeps_value_verbatim() -> None:
    assert decode_native("TOKEN= spaced value ") == {"TOKEN": " spaced value "}
    assert decode_native("EMPTY=") == {"EMPTY": ""}


def test_decode_native_handles_crlf() -> None:
    assert decode_native("A=1\r\nB=2\r\n") == {"A": "1", "B": "2"}


def test_decode_native_rejects_line_without_equals() -> None:
    with pytest.raises(MalformedLineError) as excinfo:
        decode_native("FOO")
    assert excinfo.value.line_number == 1


def test_decode_native_reports_physical_line_number() -> None:
    with pytest.raises(MalformedLineError) as excinfo:
        decode_native("A=1\n\nnot a pair\n")
    assert excinfo.value.line_number == 3


def test_decode_native_rejects_invalid_key() -> None:
    with pytest.raises(MalformedLineError):
        decode_native("1BAD=x")


def test_decode_native_duplicate_key_keeps_first_position() -> None:
    secrets = decode_native("A=1\nB=2\nA=3")
    assert list(secrets.items()) == [("A", "3"), ("B", "2")]


def test_decode_legacy_maps_fields_in_order() -> None:
    assert decode_legacy([("X", "10"), ("Y", None)]) == {"X": "10", "Y": ""}


def test_decode_legacy_rejects_nameless_field() -> None:
    with pytest.raises(MalformedFieldError) as excinfo:
        decode_legacy([("X", "10"), (None, "20")])
    assert excinfo.value.position == 2


def test_decode_dispatches_on_body_variant() -> None:
    assert decode(NativeBody(text="A=1")) == {"A": "1"}
    assert decode(LegacyBody(fields=(("X", "10"), ("Y", "20")))) == {"X": "10", "Y": "20"}


def test_encode_emits_lines_in_map_order() -> None:
    assert encode({"B": "2", "A": "x=y"}) == "B=2\nA=x=y"
    assert encode({}) == ""


def test_encode_then_decode_returns_same_map() -> None:
    secrets = {"_PRIVATE": "a", "API_KEY": "k=v==", "EMPTY": "", "url": "https://x/?a=1"}
    assert decode_native(encode(secrets)) == secrets


def test_encode_rejects_newline_in_value() -> None:
    with pytest.raises(InvalidValueError):
        encode({"CERT": "line1\nline2"})


def test_encode_rejects_invalid_key() -> None:
    with pytest.raises(InvalidKeyError):
        encode({"BAD-KEY": "x"})


@pytest.mark.parametrize("value", ["a\x0bb", "a\x0cb", "a\x1cb", "a\x1eb", "a\x85b", "a\u2028b", "a\u2029b"])
def test_unicode_line_separators_stay_inside_values(value: str) -> None:
    assert decode_native(encode({"K": value, "NEXT": "1"})) == {"K": value, "NEXT": "1"}


def test_encode_rejects_nul_in_value() -> None:
    with pytest.raises(InvalidValueError):
        encode({"K": "a\x00b"})


@pytest.mark.parametrize("name", ["A=B", "A\x00B", "1ABC", "with space"])
def test_decode_legacy_rejects_names_outside_key_grammar(name: str) -> None:
    with pytest.raises(InvalidKeyError):
        decode_legacy([("OK", "1"), (name, "2")])
