"""Builders for plugin scripts and SDK archives used across the tests."""

import hashlib
import tarfile
from pathlib import Path

DEFAULT_HOOKS = {
    "Available": "return {}",
    "PreInstall": "return nil",
    "EnvKeys": 'return { { key = "PATH", value = ctx.main.path .. "/bin" } }',
}


def make_plugin_source(name="demo", hooks=None, header=""):
    """Build a plugin script; a hook mapped to None is left out."""
    merged = dict(DEFAULT_HOOKS)
    merged.update(hooks or {})
    lines = [
        header,
        "PLUGIN = {",
        '    name = "' + name + '",',
        '    version = "0.2.0",',
        '    author = "tester",',
        '    description = "Demo SDK",',
        '    updateUrl = "https://example.com/demo.lua",',
        '    minRuntimeVersion = "0.1.0",',
        "}",
    ]
    for hook, body in merged.items():
        if body is None:
            continue
        lines.append("function PLUGIN:" + hook + "(ctx)\n    " + body + "\nend")
    return "\n".join(lines)


def sha256_of(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


def make_sdk_archive(directory: Path, name: str = "demo", version: str = "1.0.0") -> Path:
    """Create ``<name>-<version>.tar.gz`` holding one top-level dir with bin/<name>."""
    staging = directory / f"staging-{name}-{version}"
    (staging / "bin").mkdir(parents=True)
    (staging / "bin" / name).write_text("#!/bin/sh\necho demo\n")
    archive = directory / f"{name}-{version}.tar.gz"
    with tarfile.open(archive, "w:gz") as tar:
        tar.add(staging, arcname=f"{name}-{version}")
    return archive
