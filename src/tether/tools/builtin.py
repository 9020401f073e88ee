"""Registration of every built-in leaf tool."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from tether.tools.filesystem import register_filesystem_tools
from tether.tools.shell import register_shell_tools

if TYPE_CHECKING:
    from tether.protocols.registry import CapabilityRegistry


def register_builtin_tools(registry: CapabilityRegistry, root: Path | None = None) -> list[str]:
    """Register the filesystem and shell tools against *root* (cwd by default).

    Returns the registered names in registration order.
    """
    base = (root or Path.cwd()).resolve()
    return register_filesystem_tools(registry, base) + register_shell_tools(registry, base)
