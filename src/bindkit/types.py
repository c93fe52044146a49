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

"""Field declaration helpers and numeric kind markers.

Binding tags live in dataclass field metadata. :func:`param` builds that
metadata::

    from dataclasses import dataclass, field

    from bindkit import Int32, param

    @dataclass
    class Search:
        term: str = param(query="q", form="q", default="")
        page: Int32 = param(query="page", default=1)
        ids: list[int] = param(query="id", default_factory=list)

Python integers and floats are unbounded, so fixed-width parsing is declared
with ``Annotated`` markers (:data:`Int8`, :data:`Uint16`, :data:`Float32`, ...).
A bare ``int`` is parsed as a signed 64-bit value and a bare ``float`` as a
64-bit float.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Annotated, Any, Final, Literal, Protocol, Self, runtime_checkable

__all__ = [
    "EMBED_KEY",
    "SOURCE_KINDS",
    "Float32",
    "Float64",
    "FloatKind",
    "Int",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "IntKind",
    "ParamDecodable",
    "SourceKind",
    "Uint",
    "Uint8",
    "Uint16",
    "Uint32",
    "Uint64",
    "ValueMap",
    "param",
]

type SourceKind = Literal["form", "query"]
type ValueMap = Mapping[str, Sequence[str]]

SOURCE_KINDS: Final[tuple[str, ...]] = ("form", "query")
EMBED_KEY: Final[str] = "embed"
_TAG_KEYS: Final[tuple[str, ...]] = ("form", "query", "json", "xml")


@dataclass(frozen=True, slots=True)
class IntKind:
    """Integer parsing rules attached to an ``int`` annotation."""

    bits: int = 64
    signed: bool = True

    @property
    def minimum(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def maximum(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1


@dataclass(frozen=True, slots=True)
class FloatKind:
    """Float parsing rules attached to a ``float`` annotation."""

    bits: int = 64


Int = Annotated[int, IntKind(64)]
Int8 = Annotated[int, IntKind(8)]
Int16 = Annotated[int, IntKind(16)]
Int32 = Annotated[int, IntKind(32)]
Int64 = Annotated[int, IntKind(64)]
Uint = Annotated[int, IntKind(64, signed=False)]
Uint8 = Annotated[int, IntKind(8, signed=False)]
Uint16 = Annotated[int, IntKind(16, signed=False)]
Uint32 = Annotated[int, IntKind(32, signed=False)]
Uint64 = Annotated[int, IntKind(64, signed=False)]
Float32 = Annotated[float, FloatKind(32)]
Float64 = Annotated[float, FloatKind(64)]


@runtime_checkable
class ParamDecodable(Protocol):
    """Types that decode themselves from a single parameter string.

    A field whose type implements ``from_param`` bypasses every built-in rule:
    structural recursion, collection expansion and scalar parsing. Raise
    ``ValueError`` (or a :class:`bindkit.errors.BindError`) for malformed input.
    """

    @classmethod
    def from_param(cls, value: str) -> Self:
        """Return an instance decoded from ``value``."""
        ...


def param(  # noqa: PLR0913
    *,
    form: str | None = None,
    query: str | None = None,
    json: str | None = None,
    xml: str | None = None,
    embed: bool = False,
    default: Any = dataclasses.MISSING,  # noqa: ANN401
    default_factory: Callable[[], Any] | Any = dataclasses.MISSING,  # noqa: ANN401
    metadata: Mapping[str, object] | None = None,
) -> Any:  # noqa: ANN401
    """Return a :func:`dataclasses.field` carrying binding tags.

    ``form`` and ``query`` name the multi-map keys the field accepts, ``json``
    and ``xml`` rename the field for structured bodies, and ``embed`` promotes
    a dataclass-typed field's own fields onto the parent.
    """

    tags = dict(zip(_TAG_KEYS, (form, query, json, xml), strict=True))
    merged: dict[str, object] = dict(metadata or {})
    merged.update({key: value for key, value in tags.items() if value is not None})
    if embed:
        merged[EMBED_KEY] = True
    return dataclasses.field(
        default=default, default_factory=default_factory, metadata=merged
    )
