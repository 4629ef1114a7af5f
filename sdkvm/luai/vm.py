"""Lua VM wrapper - owns one lupa runtime per plugin."""

import logging
from pathlib import Path
from typing import Any, Optional

import lupa

from sdkvm.errors import HookInvocationError
from sdkvm.luai import modules
from sdkvm.luai.encoding import lua_type_of

logger = logging.getLogger(__name__)

OS_TYPE = "OS_TYPE"
ARCH_TYPE = "ARCH_TYPE"

PRELOAD_SCRIPT = Path(__file__).with_name("preload.lua")

# Returns a setter for globals that plugin code cannot reassign
_READONLY_GLOBALS = """
local protected = {}
setmetatable(_G, {
    __index = protected,
    __newindex = function(t, key, value)
        if protected[key] ~= nil then
            error("attempt to modify read-only global '" .. tostring(key) .. "'", 2)
        end
        rawset(t, key, value)
    end,
})
return function(key, value)
    protected[key] = value
end
"""

# Calls fn under a CPU-time deadline enforced by an instruction-count hook
_TIMED_CALL = """
return function(seconds, fn, ...)
    local clock = os.clock
    local deadline = clock() + seconds
    debug.sethook(function()
        if clock() > deadline then
            debug.sethook()
            error(string.format("execution exceeded %g seconds", seconds), 2)
        end
    end, "", 1000)
    local function finish(ok, ...)
        debug.sethook()
        if not ok then
            error((...), 0)
        end
        return ...
    end
    return finish(pcall(fn, ...))
end
"""


def _filter_attribute(obj, attr_name, is_setting):
    """Keep Lua code away from private attributes of host objects."""
    if is_setting or not isinstance(attr_name, str) or attr_name.startswith("_"):
        raise AttributeError(f"access to attribute {attr_name!r} is not allowed")
    return attr_name


class LuaVM:
    """A single Lua interpreter with the host bindings installed.

    Not thread-safe: every call into one VM must be serialized by the owner.
    """

    def __init__(self):
        self.instance = lupa.LuaRuntime(
            register_eval=False,
            register_builtins=False,
            unpack_returned_tuples=True,
            attribute_filter=_filter_attribute,
        )
        self._returned: Any = None
        self._timed_call = None
        self._closed = False

    def prepare(self, config, os_type: str, arch_type: str) -> None:
        """Install the preload helpers, host modules and platform globals.

        Args:
            config: AppConfig used to parameterize the host modules
            os_type: Value of the OS_TYPE global (e.g. "linux")
            arch_type: Value of the ARCH_TYPE global (e.g. "amd64")
        """
        self.do_string(PRELOAD_SCRIPT.read_text(encoding="utf-8"))
        modules.preload(self.instance, config)

        set_readonly = self.do_string(_READONLY_GLOBALS)
        set_readonly(OS_TYPE, os_type)
        set_readonly(ARCH_TYPE, arch_type)

    def do_string(self, source: str) -> Any:
        """Execute a chunk; Lua errors propagate as ``lupa.LuaError``."""
        self._ensure_open()
        return self.instance.execute(source)

    def call(self, function, *args, timeout: Optional[float] = None) -> None:
        """Call a Lua function in protected mode and keep its first return value.

        Raises:
            HookInvocationError: If plugin code raised a Lua error or ran past ``timeout``
        """
        self._ensure_open()
        logger.debug(f"CallFunction: {function}")
        try:
            if timeout:
                result = self._timed()(timeout, function, *args)
            else:
                result = function(*args)
        except lupa.LuaError as e:
            raise HookInvocationError(str(e)) from e

        if isinstance(result, tuple):
            result = result[0] if result else None
        self._returned = result

    def returned_value(self):
        """Pop the pending return value; None unless it is a table."""
        value, self._returned = self._returned, None
        if value is None:
            return None
        if lua_type_of(value) != "table":
            logger.debug(f"Ignoring non-table return value of type {lua_type_of(value)}")
            return None
        return value

    @staticmethod
    def get_table_string(table, key: str) -> str:
        """Best-effort string read; empty string when absent."""
        value = table[key]
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (str, int, float)):
            return str(value)
        return ""

    def new_table(self):
        self._ensure_open()
        return self.instance.table()

    def close(self) -> None:
        """Release the interpreter; the VM cannot be used afterwards."""
        if self._closed:
            logger.warning("Lua VM already closed")
            return
        self._closed = True
        self._returned = None
        self._timed_call = None
        self.instance = None

    @property
    def closed(self) -> bool:
        return self._closed

    def _timed(self):
        if self._timed_call is None:
            self._timed_call = self.instance.execute(_TIMED_CALL)
        return self._timed_call

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Lua VM is closed")
