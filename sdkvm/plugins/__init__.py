"""Plugin system for sdkvm.

Imports are lazy so that lightweight components like PluginDiscovery do not
pull in the Lua runtime.
"""

__all__ = [
    "LuaPlugin",
    "HookSet",
    "PluginDiscovery",
    "PluginSource",
    "resolve_checksum",
]


def __getattr__(name):
    if name in ("LuaPlugin", "HookSet"):
        from sdkvm.plugins import plugin
        return getattr(plugin, name)
    if name in ("PluginDiscovery", "PluginSource"):
        from sdkvm.plugins import discovery
        return getattr(discovery, name)
    if name == "resolve_checksum":
        from sdkvm.plugins.checksum import resolve_checksum
        return resolve_checksum
    raise AttributeError(f"module 'sdkvm.plugins' has no attribute {name!r}")
