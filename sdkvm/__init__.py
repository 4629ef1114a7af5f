"""sdkvm - an SDK version manager extended by Lua plugins."""

__version__ = "0.1.0"
