"""Environment variable helpers: platform names, merging and shell exports."""

import os
import platform
import re
from typing import Dict, Iterable, List

PATH_KEY = "PATH"

# Names a POSIX shell accepts in an export
_ENV_KEY_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv7l": "arm",
}


def current_os_type() -> str:
    """Operating system name as plugins see it: linux, darwin, windows."""
    return platform.system().lower()


def current_arch_type() -> str:
    """CPU architecture as plugins see it: amd64, arm64, 386, arm."""
    machine = platform.machine().lower()
    return _ARCH_ALIASES.get(machine, machine)


def is_valid_env_key(key: str) -> bool:
    return _ENV_KEY_PATTERN.fullmatch(key) is not None


def merge_envs(envs: Iterable[Dict[str, str]]) -> Dict[str, str]:
    """Merge EnvKeys results; PATH entries accumulate, other keys: last wins."""
    merged: Dict[str, str] = {}
    paths: List[str] = []
    for env in envs:
        for key, value in env.items():
            if key == PATH_KEY:
                paths.append(value)
            else:
                merged[key] = value
    if paths:
        merged[PATH_KEY] = os.pathsep.join(paths)
    return merged


def _quote(value: str) -> str:
    for char in ("\\", '"', "`", "$"):
        value = value.replace(char, "\\" + char)
    return f'"{value}"'


def render_exports(env: Dict[str, str]) -> List[str]:
    """Render POSIX shell ``export`` lines; PATH is prepended to the current PATH.

    Raises:
        ValueError: If a key is not a valid shell variable name
    """
    lines = []
    for key, value in sorted(env.items()):
        if not is_valid_env_key(key):
            raise ValueError(f"invalid environment variable name: {key!r}")
        if key == PATH_KEY:
            lines.append(f"export {key}={_quote(value)[:-1]}{os.pathsep}$PATH\"")
        else:
            lines.append(f"export {key}={_quote(value)}")
    return lines
