"""Tests for the Lua value codec."""

from enum import Enum
from typing import Dict, List, Optional

import pytest
from pydantic import BaseModel, ConfigDict, Field

from sdkvm.errors import CodecError, UnsupportedTypeError
from sdkvm.luai.encoding import lua_type_of, marshal, sequence_items, to_python, unmarshal, unmarshal_list


class Inner(BaseModel):
    label: str = ""
    count: int = 0


class Record(BaseModel):
    text: str = ""
    number: int = 0
    flag: bool = False
    inner: Inner = Field(default_factory=Inner)
    items: List[str] = Field(default_factory=list)
    children: List[Inner] = Field(default_factory=list)
    mapping: Dict[str, int] = Field(default_factory=dict)
    optional: Optional[str] = None


class Tagged(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field_one: str = Field(default="", alias="field1")
    field_two: int = Field(default=0, alias="field2")
    field_three: bool = Field(default=False, alias="field3")


class Color(str, Enum):
    RED = "red"


class TestMarshal:
    """Host values to Lua values."""

    def test_primitives_keep_lua_types(self, lua):
        table = marshal(lua, Record(text="test", number=1, flag=True))
        assert lua_type_of(table) == "table"
        assert lua_type_of(table["text"]) == "string"
        assert lua_type_of(table["number"]) == "number"
        assert lua_type_of(table["flag"]) == "boolean"
        assert table["text"] == "test"
        assert table["number"] == 1
        assert table["flag"] is True

    def test_alias_is_the_lua_key(self, lua):
        table = marshal(lua, Tagged(field_one="test", field_two=1, field_three=True))
        assert table["field1"] == "test"
        assert table["field2"] == 1
        assert table["field3"] is True
        assert table["field_one"] is None

    def test_none_fields_are_omitted(self, lua):
        table = marshal(lua, Record())
        assert "optional" not in list(table.keys())
        assert marshal(lua, None) is None

    def test_sequences_are_one_indexed(self, lua):
        table = marshal(lua, ["a", "b", "c"])
        assert sorted(table.keys()) == [1, 2, 3]
        assert table[1] == "a"
        assert len(table) == 3

    def test_enum_marshals_to_its_value(self, lua):
        assert marshal(lua, Color.RED) == "red"

    def test_non_string_map_key_is_rejected(self, lua):
        with pytest.raises(UnsupportedTypeError):
            marshal(lua, {1: "one"})

    def test_unsupported_type_is_rejected(self, lua):
        with pytest.raises(UnsupportedTypeError):
            marshal(lua, object())

    def test_unsupported_type_is_a_codec_error(self, lua):
        with pytest.raises(CodecError):
            marshal(lua, {"nested": {2.5: "x"}})


class TestUnmarshal:
    """Lua tables back into models."""

    def test_round_trip(self, lua):
        original = Record(
            text="test",
            number=42,
            flag=True,
            inner=Inner(label="nested", count=3),
            items=["a", "b"],
            children=[Inner(label="first", count=1), Inner(label="second", count=2)],
            mapping={"x": 1, "y": 2},
        )
        assert unmarshal(marshal(lua, original), Record()) == original

    def test_round_trip_with_aliases(self, lua):
        original = Tagged(field_one="test", field_two=1, field_three=True)
        assert unmarshal(marshal(lua, original), Tagged()) == original

    def test_attribute_name_also_matches(self, lua):
        table = lua.eval('{ field_one = "by-name", field2 = 7 }')
        result = unmarshal(table, Tagged())
        assert result.field_one == "by-name"
        assert result.field_two == 7

    def test_unknown_keys_leave_fields_untouched(self, lua):
        table = lua.eval('{ text = "x", unknown = 1, another = { deep = true } }')
        target = Record(number=5, flag=True)
        result = unmarshal(table, target)
        assert result is target
        assert result.text == "x"
        assert result.number == 5
        assert result.flag is True

    def test_mismatched_lua_type_is_skipped(self, lua):
        table = lua.eval('{ text = 12, number = "twelve", flag = "yes" }')
        result = unmarshal(table, Record(text="keep"))
        assert result.text == "keep"
        assert result.number == 0
        assert result.flag is False

    def test_float_is_truncated(self, lua):
        table = lua.eval("{ number = 3.7 }")
        assert unmarshal(table, Record()).number == 3

    def test_non_table_is_rejected(self):
        with pytest.raises(UnsupportedTypeError):
            unmarshal("not a table", Record())

    def test_unmarshal_list_of_models(self, lua):
        table = lua.eval('{ { label = "a", count = 1 }, { label = "b" } }')
        items = unmarshal_list(table, Inner)
        assert items == [Inner(label="a", count=1), Inner(label="b")]

    def test_unmarshal_list_is_positional(self, lua):
        table = lua.eval('{ [3] = "c", [1] = "a", [2] = "b", name = "ignored" }')
        assert unmarshal_list(table, str) == ["a", "b", "c"]
        assert list(sequence_items(table)) == ["a", "b", "c"]


class TestToPython:
    """Lua values as plain Python data."""

    def test_sequence_becomes_list(self, lua):
        assert to_python(lua.eval("{ 1, 2, 3 }")) == [1, 2, 3]

    def test_mapping_becomes_dict(self, lua):
        assert to_python(lua.eval('{ a = { "x" }, b = true }')) == {"a": ["x"], "b": True}

    def test_function_is_rejected(self, lua):
        with pytest.raises(UnsupportedTypeError):
            to_python(lua.eval("function() end"))
