"""Lua interface: value codec, VM wrapper and hook models."""

from .encoding import lua_type_of, marshal, to_python, unmarshal, unmarshal_list

__all__ = [
    "lua_type_of",
    "marshal",
    "to_python",
    "unmarshal",
    "unmarshal_list",
]
