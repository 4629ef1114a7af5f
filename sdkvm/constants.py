"""Global constants for sdkvm."""

import os
from pathlib import Path

from sdkvm import __version__

# Reported to plugins as ctx.runtimeVersion
RUNTIME_VERSION = __version__

PACKAGE_ROOT = Path(__file__).resolve().parent

# Home directory (supports SDKVM_HOME env var, defaults to ~/.sdkvm)
_home_env = os.getenv("SDKVM_HOME", "")
SDKVM_HOME = Path(_home_env).expanduser() if _home_env else Path.home() / ".sdkvm"

CONFIG_FILENAME = "config.yaml"
PLUGINS_DIRNAME = "plugins"                 # <home>/plugins/<sdk>.lua
CACHE_DIRNAME = "cache"                     # default SDK storage, <home>/cache/<sdk>/v-<version>
LOG_DIRNAME = "log"
TOOL_VERSIONS_FILENAME = ".tool-versions"   # <home>/.tool-versions is the global scope

PLUGIN_SUFFIX = ".lua"
VERSION_DIR_PREFIX = "v-"
INSTALL_MANIFEST = ".sdkvm.yaml"            # <version_dir>/.sdkvm.yaml, names and versions of installed artifacts

BUNDLED_PLUGINS_DIR = PACKAGE_ROOT / "plugins" / "bundled"
