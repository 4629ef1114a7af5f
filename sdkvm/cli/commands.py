"""Subcommand implementations.

Each ``cmd_*`` function receives the parsed arguments and the SDK manager.
Human-readable output goes through rich; ``export`` lines go to stdout
unadorned so they can be evaluated by a shell.
"""

import os
from pathlib import Path
from typing import Optional, Tuple

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from sdkvm.models.sdk import UseScope
from sdkvm.services.manager import SdkManager
from sdkvm.utils.env import render_exports

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)

LATEST = "latest"


class UsageError(Exception):
    """Malformed command-line arguments."""


def parse_sdk_arg(arg: str, default_version: Optional[str] = None) -> Tuple[str, str]:
    """Split ``name[@version]`` into a lower-cased name and a version.

    Raises:
        UsageError: On more than one ``@``, an empty name, or a missing
            version when there is no default
    """
    parts = arg.split("@")
    if len(parts) > 2:
        raise UsageError(f"invalid SDK argument {arg!r}, expected name[@version]")
    name = parts[0].strip().lower()
    version = parts[1].strip() if len(parts) == 2 else ""
    if not name:
        raise UsageError(f"invalid SDK argument {arg!r}, missing name")
    if not version:
        if default_version is None:
            raise UsageError(f"invalid SDK argument {arg!r}, expected name@version")
        version = default_version
    return name, version


def _print_exports(env) -> None:
    for line in render_exports(env):
        print(line)


def cmd_add(args, manager: SdkManager) -> None:
    """Add a plugin from a local Lua file."""
    info = manager.add_plugin(args.path)
    err_console.print(f"[green]✓[/green] Added plugin [bold]{info['sdk']}[/bold] {escape(info['version'])}")


def cmd_remove(args, manager: SdkManager) -> None:
    """Remove an installed plugin; installed SDK versions are left in place."""
    manager.remove_plugin(args.name)
    err_console.print(f"[green]✓[/green] Removed plugin [bold]{args.name}[/bold]")


def cmd_plugins(args, manager: SdkManager) -> None:
    """List all discoverable plugins."""
    plugins = manager.list_plugins()
    if not plugins:
        console.print("[yellow]No plugins found.[/yellow]")
        return

    table = Table(title="Plugins")
    table.add_column("SDK", style="cyan")
    table.add_column("Version")
    table.add_column("Source")
    table.add_column("Description")
    for p in plugins:
        if p["error"]:
            description = f"[red]error: {escape(p['error'])}[/red]"
        else:
            description = escape(p.get("description", ""))
        table.add_row(p["sdk"], escape(p.get("version", "")), p["source"], description)
    console.print(table)


def cmd_info(args, manager: SdkManager) -> None:
    """Show plugin metadata."""
    info = manager.plugin_info(args.name)
    console.print(Panel(
        f"[cyan]Name:[/cyan]        {escape(info['name'])}\n"
        f"[cyan]Version:[/cyan]     {escape(info['version'])}\n"
        f"[cyan]Author:[/cyan]      {escape(info['author'])}\n"
        f"[cyan]Description:[/cyan] {escape(info['description'])}\n"
        f"[cyan]Update URL:[/cyan]  {escape(info['update_url'])}\n"
        f"[cyan]Min runtime:[/cyan] {escape(info['min_runtime_version'])}\n"
        f"[cyan]Hooks:[/cyan]       {', '.join(info['hooks'])}\n"
        f"[dim]Path:[/dim] {escape(info['path'])}",
        title=f"Plugin {info['filename']}",
        border_style="blue",
    ))


def cmd_search(args, manager: SdkManager) -> None:
    """List versions the plugin can install."""
    name, _ = parse_sdk_arg(args.sdk, default_version=LATEST)
    packages = manager.search(name)
    if not packages:
        console.print(f"[yellow]No versions available for {name}.[/yellow]")
        return

    table = Table(title=f"Available {name} versions")
    table.add_column("Version", style="cyan")
    table.add_column("Note")
    table.add_column("Additions")
    for package in packages:
        additions = ", ".join(f"{a.name} {a.version}".strip() for a in package.additions)
        table.add_row(escape(package.main.version), escape(package.main.note), escape(additions))
    console.print(table)


def cmd_install(args, manager: SdkManager) -> None:
    """Install one SDK version."""
    name, version = parse_sdk_arg(args.sdk, default_version=LATEST)
    package = manager.install(name, version)
    err_console.print(
        f"[green]✓[/green] Installed [bold]{name}@{escape(package.main.version)}[/bold] "
        f"to {escape(package.main.path)}"
    )
    for addition in package.additions:
        err_console.print(f"  [dim]+ {escape(addition.name)} {escape(addition.version)}[/dim]")


def cmd_uninstall(args, manager: SdkManager) -> None:
    """Remove one installed SDK version."""
    name, version = parse_sdk_arg(args.sdk)
    manager.uninstall(name, version)
    err_console.print(f"[green]✓[/green] Uninstalled [bold]{name}@{escape(version)}[/bold]")


def cmd_use(args, manager: SdkManager) -> None:
    """Activate a version and print the resulting environment."""
    name, version = parse_sdk_arg(args.sdk)
    env = manager.use(name, version, scope=args.scope, cwd=Path(os.getcwd()))
    _print_exports(env)
    if args.scope == UseScope.SESSION:
        err_console.print(f"[dim]Run: eval \"$(sdkvm use {escape(args.sdk)})\" to apply in this shell[/dim]")


def cmd_list(args, manager: SdkManager) -> None:
    """List installed versions, marking the current one."""
    names = [args.name.lower()] if args.name else manager.installed_sdks()
    cwd = Path(os.getcwd())

    table = Table(title="Installed SDKs")
    table.add_column("SDK", style="cyan")
    table.add_column("Version")
    table.add_column("Path", style="dim")
    rows = 0
    for name in names:
        current = manager.current(name, cwd)
        for package in manager.installed(name):
            marker = " [green]*[/green]" if package.main.version == current else ""
            table.add_row(name, f"{escape(package.main.version)}{marker}", escape(package.main.path))
            rows += 1

    if rows == 0:
        console.print("[yellow]No SDKs installed.[/yellow]")
        return
    console.print(table)


def cmd_current(args, manager: SdkManager) -> None:
    """Show the active version of one or every installed SDK."""
    names = [args.name.lower()] if args.name else manager.installed_sdks()
    cwd = Path(os.getcwd())
    for name in names:
        version = manager.current(name, cwd)
        if version:
            console.print(f"{name} {escape(version)}")
        else:
            console.print(f"{name} [dim](none)[/dim]")


def cmd_env(args, manager: SdkManager) -> None:
    """Print exports for every active SDK."""
    _print_exports(manager.env(Path(os.getcwd())))


COMMANDS = {
    "add": cmd_add,
    "remove": cmd_remove,
    "plugins": cmd_plugins,
    "info": cmd_info,
    "search": cmd_search,
    "install": cmd_install,
    "uninstall": cmd_uninstall,
    "use": cmd_use,
    "list": cmd_list,
    "current": cmd_current,
    "env": cmd_env,
}
