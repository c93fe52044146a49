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

"""Structured body decoders that assign onto an existing target.

JSON and XML payloads are parsed with the standard library and then written
field by field onto the caller's dataclass instance, so values already bound
from another source survive unless the payload overrides them.
"""

# pyright: reportUnknownArgumentType=false, reportUnknownVariableType=false
# pyright: reportUnknownMemberType=false

from __future__ import annotations

import dataclasses
import json
from collections.abc import Mapping, MutableMapping
from typing import Any, Final, cast, get_args, get_origin, get_type_hints
from xml.etree import ElementTree

from ._typing import (
    dataclass_type,
    is_writable,
    optional_inner,
    sequence_item,
    type_name,
    unwrap_annotated,
    zero_instance,
    zero_value,
)
from .coerce import NOT_HANDLED, coerce, decode_custom, parse_float
from .errors import ConversionError, StructuralBindingError
from .types import FloatKind, IntKind

__all__ = ["XMLUnsupportedTypeError", "decode_json", "decode_xml"]

_UNCHANGED: Final[object] = object()
_SKIP_TAG: Final[str] = "-"


class XMLUnsupportedTypeError(TypeError):
    """Raised when an XML payload targets a type with no XML form."""

    def __init__(self, type_label: str, message: str | None = None) -> None:
        self.type_label = type_label
        super().__init__(message or f"xml: unsupported type: {type_label}")


def _json_kind(raw: object) -> str:
    if isinstance(raw, bool):
        return "bool"
    if isinstance(raw, (int, float)):
        return f"number {raw}"
    if isinstance(raw, str):
        return "string"
    if isinstance(raw, list):
        return "array"
    return "object"


def _mismatch(raw: object, field_type: object, path: str) -> TypeError:
    where = f" into field {path}" if path else ""
    return TypeError(
        f"json: cannot unmarshal {_json_kind(raw)}{where} "
        f"of type {type_name(field_type)}"
    )


def _field_key(field: dataclasses.Field[object], tag_key: str) -> str:
    tag = field.metadata.get(tag_key)
    return str(tag) if tag else field.name


def decode_json(payload: bytes | str, target: object) -> None:
    """Decode a JSON document and assign it onto ``target``.

    Object keys match a field's ``json`` tag (or its name), exact first and
    then ignoring case. Unknown keys are ignored.
    """

    document: object = json.loads(payload)
    if isinstance(target, MutableMapping):
        if not isinstance(document, dict):
            raise _mismatch(document, dict, "")
        cast(MutableMapping[str, object], target).update(document)
        return
    if isinstance(target, type) or not dataclasses.is_dataclass(target):
        raise StructuralBindingError(
            f"json: cannot decode into {type(target).__qualname__} target"
        )
    if not isinstance(document, dict):
        raise _mismatch(document, type(target), "")
    _assign_json(target, cast(dict[str, object], document), prefix="")


def _assign_json(target: object, document: Mapping[str, object], prefix: str) -> None:
    owner = type(target)
    hints = get_type_hints(owner, include_extras=True)
    for field in dataclasses.fields(cast(type[object], owner)):
        key = _field_key(field, "json")
        if key == _SKIP_TAG or not is_writable(owner, field):
            continue
        if key in document:
            raw = document[key]
        else:
            lowered = key.lower()
            matches = [name for name in document if name.lower() == lowered]
            if not matches:
                continue
            raw = document[matches[0]]
        path = f"{prefix}{field.name}"
        value = _json_value(
            hints.get(field.name, field.type), raw, getattr(target, field.name), path
        )
        if value is not _UNCHANGED:
            setattr(target, field.name, value)


def _json_value(  # noqa: C901, PLR0911, PLR0912
    field_type: object, raw: object, current: object, path: str
) -> object:
    inner = optional_inner(field_type)
    if raw is None:
        return None if inner is not None else _UNCHANGED
    if isinstance(raw, str):
        decoded = decode_custom(field_type, raw)
        if decoded is not NOT_HANDLED:
            return decoded
    if inner is not None:
        return _json_value(inner, raw, current, path)

    base, markers = unwrap_annotated(field_type)
    if base is Any or base is object:
        return raw

    cls = dataclass_type(base)
    if cls is not None:
        if not isinstance(raw, dict):
            raise _mismatch(raw, field_type, path)
        instance = current if isinstance(current, cls) else zero_instance(cls)
        _assign_json(instance, cast(dict[str, object], raw), prefix=f"{path}.")
        return instance

    described = sequence_item(field_type)
    if described is not None:
        if not isinstance(raw, list):
            raise _mismatch(raw, field_type, path)
        factory, item_type = described
        items: list[object] = []
        for index, item in enumerate(cast(list[object], raw)):
            value = _json_value(item_type, item, None, f"{path}[{index}]")
            items.append(zero_value(item_type) if value is _UNCHANGED else value)
        return factory(items)

    origin = get_origin(base)
    if origin is dict or origin is Mapping or base is dict:
        if not isinstance(raw, dict):
            raise _mismatch(raw, field_type, path)
        args = get_args(base)
        value_type = args[1] if len(args) == 2 else Any  # noqa: PLR2004
        return {
            key: _json_value(value_type, item, None, f"{path}[{key}]")
            for key, item in cast(dict[str, object], raw).items()
        }

    if base is bool:
        if not isinstance(raw, bool):
            raise _mismatch(raw, field_type, path)
        return raw
    if base is int:
        if not isinstance(raw, int) or isinstance(raw, bool):
            raise _mismatch(raw, field_type, path)
        kind = next((m for m in markers if isinstance(m, IntKind)), IntKind())
        if not kind.minimum <= raw <= kind.maximum:
            raise _mismatch(raw, field_type, path)
        return raw
    if base is float:
        if not isinstance(raw, (int, float)) or isinstance(raw, bool):
            raise _mismatch(raw, field_type, path)
        kind = next((m for m in markers if isinstance(m, FloatKind)), FloatKind())
        try:
            return parse_float(repr(float(raw)), kind)
        except ConversionError:
            raise _mismatch(raw, field_type, path) from None
    if base is str:
        if not isinstance(raw, str):
            raise _mismatch(raw, field_type, path)
        return raw
    if isinstance(raw, str):
        return coerce(field_type, raw, path)
    if isinstance(base, type) and hasattr(base, "__members__"):
        try:
            return cast(Any, base)(raw)
        except ValueError:
            raise _mismatch(raw, field_type, path) from None
    raise _mismatch(raw, field_type, path)


def decode_xml(payload: bytes | str, target: object) -> None:
    """Decode an XML document and assign it onto ``target``.

    The root element's name is ignored. Child elements match a field's ``xml``
    tag (or its name) exactly; ``xml="name,attr"`` reads an attribute of the
    current element and ``xml=",chardata"`` its text. Repeated elements fill
    sequence fields; for other fields the last element wins.

    Raises :class:`xml.etree.ElementTree.ParseError` for malformed documents
    and :class:`XMLUnsupportedTypeError` for targets with no XML form.
    """

    root = ElementTree.fromstring(payload)
    if isinstance(target, type) or not dataclasses.is_dataclass(target):
        raise XMLUnsupportedTypeError(type(target).__qualname__)
    _assign_xml(target, root, prefix="")


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _assign_xml(target: object, element: ElementTree.Element, prefix: str) -> None:
    owner = type(target)
    hints = get_type_hints(owner, include_extras=True)
    for field in dataclasses.fields(cast(type[object], owner)):
        name, _, flags = _field_key(field, "xml").partition(",")
        if name == _SKIP_TAG or not is_writable(owner, field):
            continue
        name = name or field.name
        field_type = hints.get(field.name, field.type)
        path = f"{prefix}{field.name}"
        options = set(flags.split(",")) if flags else set()

        if "attr" in options:
            raw = element.get(name)
            if raw is not None:
                setattr(target, field.name, _xml_text(field_type, raw, path))
            continue
        if "chardata" in options:
            setattr(target, field.name, _xml_text(field_type, element.text or "", path))
            continue

        children = [child for child in element if _local_name(child.tag) == name]
        if not children:
            continue
        described = sequence_item(field_type)
        if described is not None:
            factory, item_type = described
            values = [
                _xml_value(item_type, child, None, f"{path}[{index}]")
                for index, child in enumerate(children)
            ]
            setattr(target, field.name, factory(values))
            continue
        value: object = getattr(target, field.name)
        for child in children:
            value = _xml_value(field_type, child, value, path)
        setattr(target, field.name, value)


def _xml_value(
    field_type: object, element: ElementTree.Element, current: object, path: str
) -> object:
    inner = optional_inner(field_type)
    decoded = decode_custom(field_type, element.text or "")
    if decoded is not NOT_HANDLED:
        return decoded
    if inner is not None:
        return _xml_value(inner, element, current, path)
    cls = dataclass_type(field_type)
    if cls is not None:
        instance = current if isinstance(current, cls) else zero_instance(cls)
        _assign_xml(instance, element, prefix=f"{path}.")
        return instance
    return _xml_text(field_type, element.text or "", path)


def _xml_text(field_type: object, text: str, path: str) -> object:
    base, _ = unwrap_annotated(optional_inner(field_type) or field_type)
    if base is not str:
        text = text.strip()
    if get_origin(base) in {dict, Mapping} or base is dict:
        raise XMLUnsupportedTypeError(type_name(field_type))
    try:
        return coerce(field_type, text, path)
    except StructuralBindingError as error:
        raise XMLUnsupportedTypeError(type_name(field_type), str(error)) from error
