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

"""Walk a dataclass target and bind multi-map values onto tagged fields.

Fields are visited in declaration order and assigned as they are coerced, so a
failure leaves earlier fields mutated and later fields untouched.
"""

from __future__ import annotations

import dataclasses
from collections.abc import MutableMapping, Sequence
from typing import cast, get_type_hints

from ._logging import StructuredLogger, get_logger
from ._typing import (
    dataclass_type,
    is_writable,
    optional_inner,
    param_decoder,
    sequence_item,
)
from .coerce import NOT_HANDLED, coerce, coerce_sequence, decode_custom
from .errors import StructuralBindingError
from .types import EMBED_KEY, ValueMap

__all__ = ["bind_values", "lookup_values"]

logger: StructuredLogger = get_logger(__name__)


def lookup_values(
    values: ValueMap, name: str, *, case_insensitive: bool = True
) -> Sequence[str] | None:
    """Return the non-empty values stored under ``name``.

    An exact key wins; otherwise the first key (in map order) equal to ``name``
    ignoring case is used. Keys holding an empty list count as absent.
    """

    exact = values.get(name)
    if exact:
        return exact
    if not case_insensitive:
        return None
    lowered = name.lower()
    for key, items in values.items():
        if items and key.lower() == lowered:
            return items
    return None


def bind_values(
    target: object,
    values: ValueMap,
    source: str,
    *,
    case_insensitive: bool = True,
) -> None:
    """Bind ``values`` onto ``target`` using the ``source`` tag namespace.

    ``target`` may be a mutable dataclass instance or a mutable mapping. A
    mapping receives every key with its first value, uncoerced. Other targets
    are ignored for the ``query`` source and rejected with
    :class:`StructuralBindingError` otherwise.
    """

    if target is None or not values:
        return

    if isinstance(target, MutableMapping):
        mapping = cast(MutableMapping[str, object], target)
        for key, items in values.items():
            if items:
                mapping[key] = items[0]
        return

    if isinstance(target, type) or not dataclasses.is_dataclass(target):
        if source == "query":
            logger.debug(
                "Query values ignored for non-dataclass target.",
                event="bind.walk.target_skipped",
                context={"target": type(target).__qualname__},
            )
            return
        raise StructuralBindingError("binding element must be a dataclass")

    _walk(target, values, source, case_insensitive=case_insensitive, prefix="")


def _walk(
    target: object,
    values: ValueMap,
    source: str,
    *,
    case_insensitive: bool,
    prefix: str,
) -> None:
    owner = type(target)
    hints = get_type_hints(owner, include_extras=True)
    for field in dataclasses.fields(cast(type[object], owner)):
        if not is_writable(owner, field):
            continue
        path = f"{prefix}{field.name}"
        field_type = hints.get(field.name, field.type)
        tag = field.metadata.get(source)
        current = getattr(target, field.name, None)

        if field.metadata.get(EMBED_KEY) and _is_composite(
            optional_inner(field_type) or field_type
        ):
            if not _is_instance(current):
                continue
            if tag:
                raise StructuralBindingError(
                    f"{path}: {source} tags are not allowed on embedded fields"
                )
            if param_decoder(field_type) is None:
                _walk(
                    current,
                    values,
                    source,
                    case_insensitive=case_insensitive,
                    prefix=f"{path}.",
                )
            continue

        if not tag:
            if (
                _is_composite(field_type)
                and param_decoder(field_type) is None
                and _is_instance(current)
            ):
                logger.debug(
                    "Descending into untagged dataclass field.",
                    event="bind.walk.descend",
                    context={"field": path, "source": source},
                )
                _walk(
                    current,
                    values,
                    source,
                    case_insensitive=case_insensitive,
                    prefix=f"{path}.",
                )
            continue

        items = lookup_values(values, str(tag), case_insensitive=case_insensitive)
        if not items:
            continue
        setattr(target, field.name, _field_value(field_type, items, path))


def _is_composite(field_type: object) -> bool:
    return optional_inner(field_type) is None and dataclass_type(field_type) is not None


def _is_instance(value: object) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def _field_value(field_type: object, items: Sequence[str], path: str) -> object:
    # Custom hooks see the first value even for sequence-shaped types.
    decoded = decode_custom(field_type, items[0])
    if decoded is not NOT_HANDLED:
        return decoded
    if sequence_item(field_type) is not None:
        return coerce_sequence(field_type, items, path)
    return coerce(field_type, items[0], path)
