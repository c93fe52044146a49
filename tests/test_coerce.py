# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for scalar and sequence coercion."""

from __future__ import annotations

import math
from datetime import date
from decimal import Decimal
from typing import Annotated
from uuid import UUID

import pytest
from hypothesis import given, strategies as st

from bindkit import (
    ConversionError,
    CustomDecodeError,
    DecodeError,
    Float32,
    Int8,
    Int16,
    Int64,
    IntKind,
    StructuralBindingError,
    Uint8,
    Uint64,
    coerce,
    coerce_sequence,
    parse_bool,
    parse_float,
    parse_int,
)
from tests._fixtures import CSV, Color, Inner, Ticket

pytestmark = pytest.mark.core


@pytest.mark.parametrize(
    ("field_type", "expected"),
    [
        (int, 0),
        (Int8, 0),
        (Uint64, 0),
        (bool, False),
        (float, 0.0),
        (Float32, 0.0),
        (str, ""),
    ],
)
def test_empty_string_yields_zero_value(field_type: object, expected: object) -> None:
    value = coerce(field_type, "")

    assert value == expected
    assert type(value) is type(expected)


def test_signed_integers_accept_sign_and_reject_garbage() -> None:
    assert parse_int("+42") == 42
    assert parse_int("-7") == -7

    for bad in ("1.5", " 1", "1_000", "0x10", "abc", "--1"):
        with pytest.raises(ConversionError, match="invalid syntax"):
            parse_int(bad)


def test_integer_width_is_enforced() -> None:
    assert coerce(Int8, "127") == 127
    assert coerce(Int8, "-128") == -128
    assert coerce(Int16, "-32768") == -32768
    assert coerce(Int64, str(2**63 - 1)) == 2**63 - 1

    with pytest.raises(ConversionError, match="out of range"):
        coerce(Int8, "128")
    with pytest.raises(ConversionError, match="out of range"):
        coerce(int, str(2**63))


def test_unsigned_integers_reject_signs() -> None:
    assert coerce(Uint8, "255") == 255
    assert coerce(Uint64, str(2**64 - 1)) == 2**64 - 1

    with pytest.raises(ConversionError, match="invalid syntax"):
        coerce(Uint8, "-1")
    with pytest.raises(ConversionError, match="invalid syntax"):
        coerce(Uint8, "+1")
    with pytest.raises(ConversionError, match="out of range"):
        coerce(Uint8, "256")


def test_custom_int_kind_marker() -> None:
    Int12 = Annotated[int, IntKind(12)]

    assert coerce(Int12, "2047") == 2047
    with pytest.raises(ConversionError):
        coerce(Int12, "2048")


@pytest.mark.parametrize("text", ["1", "t", "T", "TRUE", "true", "True"])
def test_bool_truthy_lexicon(text: str) -> None:
    assert parse_bool(text) is True


@pytest.mark.parametrize("text", ["0", "f", "F", "FALSE", "false", "False"])
def test_bool_falsy_lexicon(text: str) -> None:
    assert parse_bool(text) is False


def test_bool_rejects_other_spellings() -> None:
    for bad in ("yes", "on", "tRUE", "2"):
        with pytest.raises(ConversionError):
            parse_bool(bad)


def test_float_parsing_rules() -> None:
    assert parse_float("1.25") == 1.25
    assert parse_float("-2e3") == -2000.0
    assert parse_float("0x1p-2") == 0.25
    assert math.isinf(parse_float("+Inf"))
    assert math.isnan(parse_float("NaN"))

    for bad in (" 1.0", "1_0.0", "one"):
        with pytest.raises(ConversionError, match="invalid syntax"):
            parse_float(bad)
    with pytest.raises(ConversionError, match="out of range"):
        parse_float("1e400")


@pytest.mark.parametrize(
    "text", ["0x10", "0x1.8", "\u0661\u0662", "1e", ".", "+nan", "1.0 ", "0x_1p0"]
)
def test_parse_float_requires_ascii_grammar(text: str) -> None:
    with pytest.raises(ConversionError, match="invalid syntax"):
        parse_float(text)


def test_parse_float_accepts_hex_and_partial_forms() -> None:
    assert parse_float("0x10p0") == 16.0
    assert parse_float("0X1.8P1") == 3.0
    assert parse_float("5.") == 5.0
    assert parse_float("-.5") == -0.5
    assert math.isinf(parse_float("-Infinity"))
    with pytest.raises(ConversionError, match="out of range"):
        parse_float("0x1p2000")


def test_float32_rounds_and_range_checks() -> None:
    value = coerce(Float32, "0.1")

    assert value != 0.1
    assert value == pytest.approx(0.1, rel=1e-7)
    with pytest.raises(ConversionError, match="out of range"):
        coerce(Float32, "1e39")


def test_strings_are_assigned_verbatim() -> None:
    assert coerce(str, "  spaced  ") == "  spaced  "


def test_optional_types_coerce_into_inner_type() -> None:
    assert coerce(int | None, "5") == 5
    assert coerce(Int8 | None, "") == 0


def test_custom_decoder_runs_before_builtin_rules() -> None:
    assert coerce(Ticket, "T-12") == Ticket(12)
    assert coerce(Ticket | None, "T-3") == Ticket(3)
    assert coerce(CSV, "a,b") == ["a", "b"]


def test_custom_decoder_errors_are_wrapped_with_original_message() -> None:
    with pytest.raises(CustomDecodeError) as exc:
        coerce(Ticket, "X-1")

    assert str(exc.value) == "malformed ticket 'X-1'"
    assert isinstance(exc.value.__cause__, ValueError)
    assert exc.value.status_code == 400


def test_classified_errors_from_custom_decoders_pass_through() -> None:
    class Strict:
        @classmethod
        def from_param(cls, value: str) -> Strict:
            raise DecodeError(f"refused {value}")

    with pytest.raises(DecodeError, match="refused v"):
        coerce(Strict, "v")


def test_text_decodable_stdlib_types() -> None:
    assert coerce(Color, "GREEN") is Color.GREEN
    assert coerce(Color, "red") is Color.RED
    assert coerce(Decimal, "1.10") == Decimal("1.10")
    assert coerce(date, "2024-02-29") == date(2024, 2, 29)
    assert coerce(UUID, "a9f95576-7a80-4c79-9b90-6afee4c3f9d9") == UUID(
        "a9f95576-7a80-4c79-9b90-6afee4c3f9d9"
    )

    with pytest.raises(ConversionError):
        coerce(Color, "purple")
    with pytest.raises(ConversionError):
        coerce(Decimal, "ten")


def test_unsupported_types_raise_structural_error() -> None:
    with pytest.raises(StructuralBindingError, match="unsupported field type Inner"):
        coerce(Inner, "1", "inner")
    with pytest.raises(StructuralBindingError):
        coerce(dict[str, str], "x")


def test_conversion_errors_name_the_field_path() -> None:
    with pytest.raises(ConversionError) as exc:
        coerce(int, "abc", "page")

    assert str(exc.value) == "page: parsing 'abc' as int64: invalid syntax"


def test_coerce_sequence_preserves_order_and_factory() -> None:
    assert coerce_sequence(list[int], ["3", "1", "2"]) == [3, 1, 2]
    assert coerce_sequence(tuple[str, ...], ["a", "b"]) == ("a", "b")
    assert coerce_sequence(list[Ticket], ["T-1", "T-2"]) == [Ticket(1), Ticket(2)]

    with pytest.raises(ConversionError, match=r"ids\[1\]"):
        coerce_sequence(list[int], ["1", "x"], "ids")
    with pytest.raises(StructuralBindingError):
        coerce_sequence(int, ["1"])


@given(st.integers(min_value=-(2**63), max_value=2**63 - 1))
def test_int64_round_trip(number: int) -> None:
    assert coerce(int, str(number)) == number


@given(st.integers(min_value=0, max_value=2**64 - 1))
def test_uint64_round_trip(number: int) -> None:
    assert coerce(Uint64, str(number)) == number


@given(st.floats(allow_nan=False))
def test_float64_round_trip(number: float) -> None:
    assert coerce(float, repr(number)) == number
