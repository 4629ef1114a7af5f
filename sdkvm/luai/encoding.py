"""Lua interface: marshal host values into Lua tables and back.

Pydantic models describe every shape that crosses the boundary. A field's
alias is its key on the Lua side; without an alias the attribute name is used.

Known limitation: Lua numbers are always unmarshaled as ``int``, so the
fractional part of a float is dropped.
"""

import logging
import types
import typing
from enum import Enum
from typing import Any, Iterator, List, Type, TypeVar, Union

import lupa
from pydantic import BaseModel

from sdkvm.errors import UnsupportedTypeError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# Marker for entries that cannot be written into the target field
_SKIP = object()


def lua_type_of(value: Any) -> str:
    """Return the Lua type name of a value that crossed the boundary."""
    kind = lupa.lua_type(value)
    if kind is not None:
        return kind
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, (str, bytes)):
        return "string"
    return "userdata"


def marshal(lua, value: Any) -> Any:
    """Convert a host value into a Lua value owned by ``lua``.

    Args:
        lua: The ``lupa.LuaRuntime`` that will own created tables
        value: Model, primitive, list/tuple, dict with ``str`` keys, or None

    Returns:
        A Lua table for containers, the primitive itself otherwise

    Raises:
        UnsupportedTypeError: For any other type, or a non-string map key
    """
    if value is None:
        return None
    if lupa.lua_type(value) is not None:
        return value
    if isinstance(value, BaseModel):
        table = lua.table()
        for name, field in type(value).model_fields.items():
            item = marshal(lua, getattr(value, name))
            if item is not None:
                table[field.alias or name] = item
        return table
    if isinstance(value, Enum):
        return marshal(lua, value.value)
    if isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (list, tuple)):
        table = lua.table()
        for index, item in enumerate(value, start=1):
            table[index] = marshal(lua, item)
        return table
    if isinstance(value, dict):
        table = lua.table()
        for key, item in value.items():
            if not isinstance(key, str):
                raise UnsupportedTypeError(
                    f"marshal: unsupported map key type {type(key).__name__}"
                )
            table[key] = marshal(lua, item)
        return table
    raise UnsupportedTypeError(f"marshal: unsupported type {type(value).__name__}")


def sequence_items(table) -> Iterator[Any]:
    """Yield the values stored under integer keys, in ascending key order."""
    keys = sorted(
        key for key in table.keys()
        if isinstance(key, int) and not isinstance(key, bool)
    )
    for key in keys:
        yield table[key]


def unmarshal(value: Any, target: M) -> M:
    """Fill ``target`` from a Lua table and return it.

    String keys are matched against attribute names first, then aliases.
    Unknown keys and entries whose Lua type does not fit the field are
    skipped; nothing is rolled back.

    Raises:
        UnsupportedTypeError: If ``value`` is not a table
    """
    kind = lua_type_of(value)
    if kind != "table":
        raise UnsupportedTypeError(f"unmarshal: unsupported type {kind}")

    fields = type(target).model_fields
    aliases = {field.alias: name for name, field in fields.items() if field.alias}

    for key, item in value.items():
        if not isinstance(key, str):
            logger.debug(f"unmarshal: non-string key {key!r} ignored for {type(target).__name__}")
            continue
        name = key if key in fields else aliases.get(key)
        if name is None:
            logger.debug(f"unmarshal: field {key} not found in {type(target).__name__}")
            continue
        converted = _convert(item, fields[name].annotation, getattr(target, name, None))
        if converted is _SKIP:
            continue
        setattr(target, name, converted)

    return target


def unmarshal_list(value: Any, item_type: Any) -> List[Any]:
    """Convert a Lua sequence into a list of ``item_type``.

    Integer keys are matched positionally; other keys are ignored.

    Raises:
        UnsupportedTypeError: If ``value`` is not a table
    """
    kind = lua_type_of(value)
    if kind != "table":
        raise UnsupportedTypeError(f"unmarshal: unsupported type {kind}")

    items = []
    for item in sequence_items(value):
        converted = _convert(item, item_type, None)
        if converted is _SKIP:
            logger.debug(f"unmarshal: {lua_type_of(item)} item skipped for {item_type}")
            continue
        items.append(converted)
    return items


def to_python(value: Any) -> Any:
    """Convert a Lua value into plain Python data (dict, list, primitives).

    Tables whose keys are exactly 1..n become lists.

    Raises:
        UnsupportedTypeError: For functions, coroutines and userdata
    """
    kind = lua_type_of(value)
    if kind in ("nil", "boolean", "number", "string"):
        return value
    if kind != "table":
        raise UnsupportedTypeError(f"cannot convert Lua {kind} to a host value")

    keys = list(value.keys())
    if keys and all(isinstance(k, int) and not isinstance(k, bool) for k in keys):
        if sorted(keys) == list(range(1, len(keys) + 1)):
            return [to_python(value[k]) for k in range(1, len(keys) + 1)]
    return {str(k): to_python(v) for k, v in value.items()}


def _unwrap(annotation: Any):
    """Split an annotation into (origin class, type arguments), dropping Optional."""
    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)
    if origin is Union or origin is types.UnionType:
        members = [a for a in args if a is not type(None)]
        if len(members) == 1:
            return _unwrap(members[0])
        return annotation, ()
    if origin is not None:
        return origin, args
    return annotation, ()


def _is_model(cls: Any) -> bool:
    return isinstance(cls, type) and issubclass(cls, BaseModel)


def _convert(item: Any, annotation: Any, current: Any) -> Any:
    """Coerce one Lua value by its own Lua type into a slot typed ``annotation``."""
    origin, args = _unwrap(annotation)
    if origin is Any:
        return to_python(item)

    kind = lua_type_of(item)
    if kind == "string":
        return item if origin is str else _SKIP
    if kind == "number":
        return int(item) if origin in (int, float) else _SKIP
    if kind == "boolean":
        return item if origin is bool else _SKIP
    if kind != "table":
        return _SKIP

    if _is_model(origin):
        target = current if isinstance(current, origin) else _new_model(origin)
        return unmarshal(item, target)
    if origin in (list, tuple):
        item_type = args[0] if args else Any
        items = unmarshal_list(item, item_type)
        return tuple(items) if origin is tuple else items
    if origin is dict:
        value_type = args[1] if len(args) > 1 else Any
        mapping = {}
        for key, entry in item.items():
            if not isinstance(key, str):
                continue
            converted = _convert(entry, value_type, None)
            if converted is not _SKIP:
                mapping[key] = converted
        return mapping
    return _SKIP


def _new_model(cls: Type[M]) -> M:
    # model_construct fills defaults without validating required fields
    return cls.model_construct()
