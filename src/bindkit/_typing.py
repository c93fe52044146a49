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

"""Type introspection helpers shared by the walker, coercer and decoders."""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, MutableSequence, Sequence
from decimal import Decimal
from enum import Enum
from types import NoneType
from typing import (
    Final,
    Union as _TypingUnion,  # pyright: ignore[reportDeprecated]
    cast,
    get_args,
    get_origin,
    get_type_hints,
)

_UNION_TYPE: Final = type(int | str)
_SEQUENCE_ORIGINS: Final[frozenset[object]] = frozenset(
    {list, tuple, Sequence, MutableSequence}
)


def unwrap_annotated(typ: object) -> tuple[object, tuple[object, ...]]:
    """Strip ``Annotated`` layers, returning the base type and its markers."""

    markers: list[object] = []
    base = typ
    while getattr(base, "__metadata__", None) is not None:
        args = get_args(base)
        if not args:
            break
        base = args[0]
        markers.extend(args[1:])
    return base, tuple(markers)


def optional_inner(typ: object) -> object | None:
    """Return ``T`` for ``T | None`` (or ``Optional[T]``), else ``None``."""

    base, _ = unwrap_annotated(typ)
    origin = get_origin(base)
    if origin is not _UNION_TYPE and origin is not _TypingUnion:
        return None
    args = get_args(base)
    members = [arg for arg in args if arg is not NoneType]
    if len(members) == 1 and len(args) == 2:  # noqa: PLR2004
        return members[0]
    return None


def _class_of(typ: object) -> type[object] | None:
    base, _ = unwrap_annotated(typ)
    origin = get_origin(base)
    target = origin if origin is not None else base
    return target if isinstance(target, type) else None


def param_decoder(typ: object) -> Callable[[str], object] | None:
    """Return the ``from_param`` hook declared by ``typ``, if any."""

    cls = _class_of(typ)
    if cls is None:
        return None
    hook = getattr(cls, "from_param", None)
    return cast(Callable[[str], object], hook) if callable(hook) else None


def dataclass_type(typ: object) -> type[object] | None:
    """Return the dataclass behind ``typ`` when it is one."""

    cls = _class_of(typ)
    if cls is not None and dataclasses.is_dataclass(cls):
        return cls
    return None


def sequence_item(typ: object) -> tuple[type[object], object] | None:
    """Describe a homogeneous sequence type as ``(factory, item_type)``.

    ``list[E]``, ``Sequence[E]`` and ``tuple[E, ...]`` qualify. Fixed-length
    tuples and bare ``str`` do not.
    """

    base, _ = unwrap_annotated(typ)
    origin = get_origin(base)
    if origin not in _SEQUENCE_ORIGINS:
        return None
    args = get_args(base)
    if origin is tuple:
        if len(args) != 2 or args[1] is not Ellipsis:  # noqa: PLR2004
            return None
        return tuple, args[0]
    return list, (args[0] if args else str)


def type_name(typ: object) -> str:
    base, _ = unwrap_annotated(typ)
    name = getattr(base, "__name__", None)
    return name if isinstance(name, str) else repr(base)


def is_writable(owner: type[object], field: dataclasses.Field[object]) -> bool:
    """Fields are writable unless private or owned by a frozen dataclass."""

    if field.name.startswith("_"):
        return False
    params = getattr(owner, "__dataclass_params__", None)
    return not (params is not None and params.frozen)


_SCALAR_ZEROS: Final[dict[type[object], object]] = {
    bool: False,
    int: 0,
    float: 0.0,
    str: "",
    bytes: b"",
    Decimal: Decimal(0),
}


def zero_value(typ: object) -> object:  # noqa: PLR0911
    """Return the zero value used when a missing object must be allocated."""

    if optional_inner(typ) is not None:
        return None
    cls = dataclass_type(typ)
    if cls is not None:
        return zero_instance(cls)
    base, _ = unwrap_annotated(typ)
    origin = get_origin(base)
    target = origin if origin is not None else base
    if target in _SCALAR_ZEROS:
        return _SCALAR_ZEROS[cast(type[object], target)]
    if target in {list, Sequence, MutableSequence}:
        return []
    if target is tuple:
        return ()
    if target is dict or target is set:
        return cast(type[object], target)()
    if isinstance(target, type) and issubclass(target, Enum):
        return next(iter(target), None)
    return None


def zero_instance[T](cls: type[T]) -> T:
    """Instantiate ``cls`` supplying zero values for required fields."""

    hints = get_type_hints(cls, include_extras=True)
    kwargs: dict[str, object] = {}
    for field in dataclasses.fields(cast(type[object], cls)):
        if not field.init:
            continue
        if (
            field.default is dataclasses.MISSING
            and field.default_factory is dataclasses.MISSING
        ):
            kwargs[field.name] = zero_value(hints.get(field.name, field.type))
    return cls(**kwargs)


__all__ = [
    "dataclass_type",
    "is_writable",
    "optional_inner",
    "param_decoder",
    "sequence_item",
    "type_name",
    "unwrap_annotated",
    "zero_instance",
    "zero_value",
]
