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

"""Bind request data onto dataclasses.

``bindkit`` populates a caller-owned dataclass instance from a request's
query string, form body, or JSON/XML body, coercing strings to each field's
declared type.

Basic Usage
-----------
::

    from dataclasses import dataclass

    from bindkit import Request, Uint16, param

    @dataclass
    class Order:
        status: str = param(query="status", form="status", default="")
        quantity: Uint16 = param(query="qty", form="qty", default=0)
        tags: list[str] = param(query="tag", default_factory=list)

    order = Order()
    Request("GET", "/orders?status=done&qty=3&tag=a&tag=b").bind(order)
    assert order == Order(status="done", quantity=3, tags=["a", "b"])

Tags
----
``form`` and ``query`` name the multi-map key a field reads from; a key that
is not found exactly is retried ignoring case. Untagged dataclass-typed
fields are searched for tagged fields of their own. ``param(embed=True)``
promotes a dataclass field's fields onto its parent and forbids a tag on the
field itself.

Coercion
--------
- ``int`` and the ``Int8``..``Int64`` / ``Uint``..``Uint64`` markers parse
  base-10 with range checks; ``float`` and ``Float32`` parse decimal floats.
- ``bool`` accepts ``1 t T TRUE true True 0 f F FALSE false False``.
- Present but empty values become ``0``, ``False`` or ``0.0``.
- ``T | None`` fields are coerced as ``T``.
- ``list[E]`` / ``tuple[E, ...]`` fields take every value under the key.
- Types with a ``from_param`` classmethod decode themselves, ahead of every
  other rule.
- ``Enum``, ``UUID``, ``Decimal``, ``Path`` and ISO ``datetime`` / ``date`` /
  ``time`` strings are decoded from their text form.

Errors
------
Failures raise :class:`HTTPError` subclasses: :class:`UnsupportedMediaTypeError`
(415), and :class:`DecodeError`, :class:`StructuralBindingError`,
:class:`ConversionError`, :class:`CustomDecodeError` (400).
"""

from __future__ import annotations

from ._logging import StructuredLogger, get_logger
from .binder import Binder, DefaultBinder, get_request_binder, set_request_binder
from .coerce import coerce, coerce_sequence, parse_bool, parse_float, parse_int
from .config import BinderConfig, load_config
from .decoders import XMLUnsupportedTypeError, decode_json, decode_xml
from .errors import (
    BindError,
    BindkitError,
    ConfigError,
    ConversionError,
    CustomDecodeError,
    DecodeError,
    HTTPError,
    StructuralBindingError,
    UnsupportedMediaTypeError,
)
from .request import Request
from .types import (
    Float32,
    Float64,
    FloatKind,
    Int,
    Int8,
    Int16,
    Int32,
    Int64,
    IntKind,
    ParamDecodable,
    SourceKind,
    Uint,
    Uint8,
    Uint16,
    Uint32,
    Uint64,
    ValueMap,
    param,
)
from .walker import bind_values, lookup_values

__all__ = [
    "BindError",
    "Binder",
    "BinderConfig",
    "BindkitError",
    "ConfigError",
    "ConversionError",
    "CustomDecodeError",
    "DecodeError",
    "DefaultBinder",
    "Float32",
    "Float64",
    "FloatKind",
    "HTTPError",
    "Int",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "IntKind",
    "ParamDecodable",
    "Request",
    "SourceKind",
    "StructuralBindingError",
    "StructuredLogger",
    "Uint",
    "Uint8",
    "Uint16",
    "Uint32",
    "Uint64",
    "UnsupportedMediaTypeError",
    "ValueMap",
    "XMLUnsupportedTypeError",
    "bind_values",
    "coerce",
    "coerce_sequence",
    "decode_json",
    "decode_xml",
    "get_logger",
    "get_request_binder",
    "load_config",
    "lookup_values",
    "param",
    "parse_bool",
    "parse_float",
    "parse_int",
    "set_request_binder",
]
