"""Built-in tools registered alongside discovered server tools."""

from tether.tools.builtin import register_builtin_tools
from tether.tools.filesystem import edit_file, list_directory, read_file, write_file
from tether.tools.shell import run_shell_command

__all__ = [
    "edit_file",
    "list_directory",
    "read_file",
    "register_builtin_tools",
    "run_shell_command",
    "write_file",
]
