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

"""String coercion for bound fields.

:func:`coerce` turns one parameter string into a value of a field's declared
type. Custom ``from_param`` hooks always run first; ``T | None`` fields are
coerced into ``T``; then the built-in scalar rules apply. Explicitly present
but empty strings become the zero value (``0``, ``False``, ``0.0``).
"""

from __future__ import annotations

import math
import re
import struct
from collections.abc import Callable, Sequence
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Final, cast, get_origin
from uuid import UUID

from ._typing import (
    optional_inner,
    param_decoder,
    sequence_item,
    type_name,
    unwrap_annotated,
)
from .errors import (
    ConversionError,
    CustomDecodeError,
    HTTPError,
    StructuralBindingError,
)
from .types import FloatKind, IntKind

__all__ = [
    "NOT_HANDLED",
    "coerce",
    "coerce_sequence",
    "decode_custom",
    "parse_bool",
    "parse_float",
    "parse_int",
]

NOT_HANDLED: Final[object] = object()

_SIGNED_SYNTAX: Final = re.compile(r"[+-]?[0-9]+")
_UNSIGNED_SYNTAX: Final = re.compile(r"[0-9]+")
_DECIMAL_FLOAT_SYNTAX: Final = re.compile(
    r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
)
_HEX_FLOAT_SYNTAX: Final = re.compile(
    r"[+-]?0[xX](?:[0-9a-fA-F]+(?:\.[0-9a-fA-F]*)?|\.[0-9a-fA-F]+)[pP][+-]?[0-9]+"
)
_SPECIAL_FLOAT_SYNTAX: Final = re.compile(r"[+-]?inf(?:inity)?|nan", re.IGNORECASE)
_BOOL_STRINGS: Final[dict[str, bool]] = {
    "1": True,
    "t": True,
    "T": True,
    "TRUE": True,
    "true": True,
    "True": True,
    "0": False,
    "f": False,
    "F": False,
    "FALSE": False,
    "false": False,
    "False": False,
}
_DEFAULT_INT: Final = IntKind()
_DEFAULT_FLOAT: Final = FloatKind()


def _syntax_error(value: str, kind: str) -> ConversionError:
    return ConversionError(f"parsing {value!r} as {kind}: invalid syntax")


def _range_error(value: str, kind: str) -> ConversionError:
    return ConversionError(f"parsing {value!r} as {kind}: value out of range")


def parse_int(value: str, kind: IntKind = _DEFAULT_INT) -> int:
    """Parse a base-10 integer honouring the kind's width and signedness."""

    label = f"{'int' if kind.signed else 'uint'}{kind.bits}"
    text = value or "0"
    pattern = _SIGNED_SYNTAX if kind.signed else _UNSIGNED_SYNTAX
    if pattern.fullmatch(text) is None:
        raise _syntax_error(value, label)
    number = int(text)
    if not kind.minimum <= number <= kind.maximum:
        raise _range_error(value, label)
    return number


def parse_bool(value: str) -> bool:
    text = value or "false"
    try:
        return _BOOL_STRINGS[text]
    except KeyError:
        raise _syntax_error(value, "bool") from None


def parse_float(value: str, kind: FloatKind = _DEFAULT_FLOAT) -> float:
    """Parse a float, rounding to single precision for 32-bit kinds."""

    label = f"float{kind.bits}"
    text = value or "0.0"
    special = _SPECIAL_FLOAT_SYNTAX.fullmatch(text) is not None
    if _HEX_FLOAT_SYNTAX.fullmatch(text):
        convert: Callable[[str], float] = float.fromhex
    elif special or _DECIMAL_FLOAT_SYNTAX.fullmatch(text):
        convert = float
    else:
        raise _syntax_error(value, label)
    try:
        number = convert(text)
    except OverflowError:
        raise _range_error(value, label) from None
    if math.isinf(number) and not special:
        raise _range_error(value, label)
    if kind.bits == 32 and math.isfinite(number):  # noqa: PLR2004
        try:
            number = cast(float, struct.unpack("f", struct.pack("f", number))[0])
        except OverflowError:
            raise _range_error(value, label) from None
    return number


def decode_custom(field_type: object, value: str) -> object:
    """Run a ``from_param`` hook for ``field_type`` (or its optional inner type).

    Returns :data:`NOT_HANDLED` when the type declares no hook.
    """

    inner = optional_inner(field_type)
    decoder = param_decoder(inner if inner is not None else field_type)
    if decoder is None:
        return NOT_HANDLED
    try:
        return decoder(value)
    except HTTPError:
        raise
    except Exception as error:
        raise CustomDecodeError.wrap(error) from error


def _first_marker[MarkerT](
    markers: tuple[object, ...], marker_type: type[MarkerT], default: MarkerT
) -> MarkerT:
    for marker in markers:
        if isinstance(marker, marker_type):
            return marker
    return default


def _coerce_bool(value: str, base: object) -> object:
    if base is not bool:
        return NOT_HANDLED
    return parse_bool(value)


def _coerce_int(value: str, base: object, markers: tuple[object, ...]) -> object:
    if base is not int:
        return NOT_HANDLED
    return parse_int(value, _first_marker(markers, IntKind, _DEFAULT_INT))


def _coerce_float(value: str, base: object, markers: tuple[object, ...]) -> object:
    if base is not float:
        return NOT_HANDLED
    return parse_float(value, _first_marker(markers, FloatKind, _DEFAULT_FLOAT))


def _coerce_str(value: str, base: object) -> object:
    return value if base is str else NOT_HANDLED


def _coerce_enum(value: str, base: object) -> object:
    if get_origin(base) is not None or not (
        isinstance(base, type) and issubclass(base, Enum)
    ):
        return NOT_HANDLED
    try:
        return base[value]
    except KeyError:
        pass
    try:
        return base(value)
    except ValueError:
        raise ConversionError(
            f"parsing {value!r} as {base.__name__}: invalid enum value"
        ) from None


_TEXT_DECODERS: Final[dict[type[object], Callable[[str], object]]] = {
    UUID: UUID,
    Decimal: Decimal,
    Path: Path,
    datetime: datetime.fromisoformat,
    date: date.fromisoformat,
    time: time.fromisoformat,
}


def _coerce_text(value: str, base: object) -> object:
    decoder = _TEXT_DECODERS.get(cast(type[object], base))
    if decoder is None:
        return NOT_HANDLED
    try:
        return decoder(value)
    except (ValueError, TypeError, ArithmeticError):
        raise _syntax_error(value, type_name(base)) from None


def coerce(field_type: object, value: str, path: str = "value") -> object:
    """Convert ``value`` into ``field_type``.

    Raises :class:`ConversionError` for malformed input, the hook's own error
    (or :class:`CustomDecodeError`) for custom types, and
    :class:`StructuralBindingError` for types with no string form.
    """

    custom = decode_custom(field_type, value)
    if custom is not NOT_HANDLED:
        return custom

    inner = optional_inner(field_type)
    if inner is not None:
        return coerce(inner, value, path)

    base, markers = unwrap_annotated(field_type)
    coercers = (
        lambda: _coerce_bool(value, base),
        lambda: _coerce_int(value, base, markers),
        lambda: _coerce_float(value, base, markers),
        lambda: _coerce_str(value, base),
        lambda: _coerce_enum(value, base),
        lambda: _coerce_text(value, base),
    )
    try:
        for coercer in coercers:
            result = coercer()
            if result is not NOT_HANDLED:
                return result
    except ConversionError as error:
        raise ConversionError(f"{path}: {error.message}") from error.__cause__
    raise StructuralBindingError(
        f"{path}: unsupported field type {type_name(field_type)}"
    )


def coerce_sequence(
    field_type: object, values: Sequence[str], path: str = "value"
) -> object:
    """Coerce every value elementwise into the sequence type ``field_type``."""

    described = sequence_item(field_type)
    if described is None:
        raise StructuralBindingError(
            f"{path}: {type_name(field_type)} is not a sequence type"
        )
    factory, item_type = described
    items = [
        coerce(item_type, item, f"{path}[{index}]")
        for index, item in enumerate(values)
    ]
    return factory(items)
