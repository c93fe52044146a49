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

"""Tests for the reflective field walker."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import pytest

from bindkit import (
    ConversionError,
    CustomDecodeError,
    StructuralBindingError,
    bind_values,
    lookup_values,
    param,
)
from tests._fixtures import (
    Base,
    Collections,
    Color,
    Custom,
    Embedding,
    Inner,
    Optionals,
    Order,
    Scalars,
    TaggedEmbedding,
    Ticket,
    Wrapper,
)

pytestmark = pytest.mark.core


@dataclass(frozen=True)
class FrozenPoint:
    x: int = param(query="x", default=0)


@dataclass
class Private:
    _secret: str = param(query="secret", default="kept")
    visible: str = param(query="visible", default="")


@dataclass
class Holder:
    point: FrozenPoint = field(default_factory=FrozenPoint)
    maybe: Inner | None = None


@dataclass
class OptionalEmbedding:
    base: Base | None = param(embed=True, default=None)
    title: str = param(query="title", default="")


@dataclass
class UnsupportedTagged:
    first: str = param(query="first", default="")
    inner: Inner = param(query="inner", default_factory=Inner)
    last: str = param(query="last", default="")


@dataclass
class UntaggedCustom:
    ticket: Ticket = field(default_factory=Ticket)


def test_noop_for_missing_target_or_empty_map() -> None:
    order = Order(status="kept")

    bind_values(None, {"status": ["x"]}, "query")
    bind_values(order, {}, "query")

    assert order.status == "kept"


def test_mapping_target_receives_first_values_verbatim() -> None:
    target: dict[str, object] = {"existing": "yes"}

    bind_values(target, {"a": ["1", "2"], "b": [""]}, "form")

    assert target == {"existing": "yes", "a": "1", "b": ""}


def test_non_dataclass_target_is_ignored_for_query() -> None:
    class Plain:
        pass

    bind_values(Plain(), {"x": ["1"]}, "query")
    bind_values(5, {"x": ["1"]}, "query")


def test_non_dataclass_target_is_rejected_for_form() -> None:
    with pytest.raises(StructuralBindingError, match="must be a dataclass"):
        bind_values(object(), {"x": ["1"]}, "form")


def test_class_objects_are_not_targets() -> None:
    with pytest.raises(StructuralBindingError):
        bind_values(Order, {"status": ["x"]}, "form")


def test_scalars_bind_from_query() -> None:
    target = Scalars()

    bind_values(
        target,
        {
            "i": ["-5"],
            "i8": ["12"],
            "u16": ["65535"],
            "flag": ["F"],
            "ratio": ["2.5"],
            "name": ["Ada"],
        },
        "query",
    )

    assert target.i == -5
    assert target.i8 == 12
    assert target.u16 == 65535
    assert target.flag is False
    assert target.ratio == 2.5
    assert target.name == "Ada"
    assert target.i16 == -1


def test_empty_values_bind_zero_values() -> None:
    target = Scalars()

    bind_values(
        target,
        {"i": [""], "u8": [""], "flag": [""], "ratio32": [""], "name": [""]},
        "query",
    )

    assert (target.i, target.u8, target.flag, target.ratio32, target.name) == (
        0,
        0,
        False,
        0.0,
        "",
    )


def test_source_kind_selects_tag_namespace() -> None:
    target = Order()

    bind_values(target, {"note": ["hello"], "status": ["open"]}, "query")
    assert target.note == ""
    assert target.status == "open"

    bind_values(target, {"note": ["hello"]}, "form")
    assert target.note == "hello"


def test_case_insensitive_fallback() -> None:
    target = Order()

    bind_values(target, {"STATUS": ["loud"]}, "query")

    assert target.status == "loud"


def test_exact_case_match_wins_over_fallback() -> None:
    target = Order()

    bind_values(target, {"Status": ["folded"], "status": ["exact"]}, "query")

    assert target.status == "exact"


def test_case_insensitive_fallback_can_be_disabled() -> None:
    target = Order()

    bind_values(target, {"STATUS": ["loud"]}, "query", case_insensitive=False)

    assert target.status == ""


def test_lookup_values_prefers_first_folded_key_in_map_order() -> None:
    values = {"NAME": ["upper"], "Name": ["title"]}

    assert lookup_values(values, "name") == ["upper"]
    assert lookup_values(values, "Name") == ["title"]
    assert lookup_values(values, "missing") is None


def test_lookup_values_falls_back_when_exact_key_is_empty() -> None:
    values = {"status": [], "STATUS": ["open"]}
    order = Order()

    bind_values(order, values, "query")

    assert lookup_values(values, "status") == ["open"]
    assert lookup_values(values, "status", case_insensitive=False) is None
    assert order.status == "open"


def test_lookup_values_uses_simple_case_mapping() -> None:
    values = {"STRASSE": ["upper"]}

    assert lookup_values(values, "straße") is None
    assert lookup_values(values, "Strasse") == ["upper"]


def test_absent_and_empty_value_lists_are_skipped() -> None:
    target = Order(status="kept", quantity=3)

    bind_values(target, {"qty": [], "other": ["x"]}, "query")

    assert target == Order(status="kept", quantity=3)


def test_untagged_composite_is_recursed() -> None:
    target = Wrapper()

    bind_values(target, {"x": ["5"], "label": ["outer"]}, "query")

    assert target.inner.x == 5
    assert target.label == "outer"


def test_embedded_composite_fields_are_promoted() -> None:
    target = Embedding()

    bind_values(target, {"id": ["9"], "title": ["t"]}, "form")

    assert target.base.id == 9
    assert target.title == "t"


def test_unset_embedded_optional_is_skipped() -> None:
    target = OptionalEmbedding()

    bind_values(target, {"id": ["9"], "title": ["t"]}, "query")

    assert target.base is None
    assert target.title == "t"

    target.base = Base()
    bind_values(target, {"id": ["4"]}, "query")
    assert target.base.id == 4


def test_embedded_composite_with_tag_is_rejected_regardless_of_values() -> None:
    with pytest.raises(StructuralBindingError, match="not allowed on embedded"):
        bind_values(TaggedEmbedding(), {"unrelated": ["1"]}, "query")


def test_tag_on_embedded_field_only_matters_for_its_source() -> None:
    target = TaggedEmbedding()

    bind_values(target, {"id": ["2"]}, "form")

    assert target.base.id == 2


def test_optional_composites_and_frozen_values_are_not_recursed() -> None:
    target = Holder(maybe=Inner())

    bind_values(target, {"x": ["7"]}, "query")

    assert target.point.x == 0
    assert target.maybe is not None
    assert target.maybe.x == 0


def test_private_fields_are_skipped() -> None:
    target = Private()

    bind_values(target, {"secret": ["leak"], "visible": ["yes"]}, "query")

    assert target._secret == "kept"
    assert target.visible == "yes"


def test_collections_take_every_value_in_order() -> None:
    target = Collections()

    bind_values(
        target,
        {
            "ids": ["1", "2", "3"],
            "names": ["b", "a"],
            "ticket": ["T-1", "T-2"],
            "csv": ["x,y", "ignored"],
        },
        "query",
    )

    assert target.ids == [1, 2, 3]
    assert target.names == ("b", "a")
    assert target.tickets == [Ticket(1), Ticket(2)]
    assert target.csv == ["x", "y"]


def test_optional_fields_allocate_on_demand() -> None:
    target = Optionals()

    bind_values(target, {"count": [""], "ticket": ["T-8"]}, "query")

    assert target.count == 0
    assert target.ticket == Ticket(8)


def test_custom_decoders_win_over_structural_rules() -> None:
    target = Custom()

    bind_values(target, {"ticket": ["T-42"], "color": ["GREEN"]}, "query")

    assert target.ticket == Ticket(42)
    assert target.color is Color.GREEN


def test_untagged_custom_decodable_composites_are_not_recursed() -> None:
    target = UntaggedCustom()

    bind_values(target, {"number": ["5"]}, "query")

    assert target.ticket == Ticket(0)


def test_custom_decode_failure_is_reported() -> None:
    with pytest.raises(CustomDecodeError, match="malformed ticket"):
        bind_values(Custom(), {"ticket": ["bogus"]}, "query")


def test_failure_leaves_earlier_fields_mutated() -> None:
    target = Scalars()

    with pytest.raises(ConversionError, match="i16"):
        bind_values(
            target,
            {"i8": ["1"], "i16": ["nope"], "name": ["late"]},
            "query",
        )

    assert target.i8 == 1
    assert target.name == "unset"


def test_tagged_composite_without_decoder_is_unsupported() -> None:
    target = UnsupportedTagged()

    with pytest.raises(StructuralBindingError, match="inner"):
        bind_values(
            target, {"first": ["a"], "inner": ["1"], "last": ["z"]}, "query"
        )

    assert target.first == "a"
    assert target.last == ""


def test_non_query_skip_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="bindkit.walker")

    bind_values([1, 2], {"x": ["1"]}, "query")

    events = [getattr(record, "event", None) for record in caplog.records]
    assert "bind.walk.target_skipped" in events


def test_nested_error_paths_include_parent_field() -> None:
    with pytest.raises(ConversionError, match=r"^inner\.x: "):
        bind_values(Wrapper(), {"x": ["bad"]}, "query")


def test_field_metadata_without_param_helper() -> None:
    @dataclass
    class Raw:
        value: int = field(default=0, metadata={"query": "v"})

    target = Raw()
    bind_values(target, {"v": ["3"]}, "query")

    assert target.value == 3
