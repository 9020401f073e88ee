"""Built-in filesystem tools: ``read_file``, ``write_file``, ``edit_file``, ``list_directory``.

Each tool takes the decoded argument object and returns a JSON payload
with a ``success`` flag. OS errors are reported in the payload rather
than raised, so the model sees what went wrong.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Any

from tether.protocols.registry import object_schema

if TYPE_CHECKING:
    from tether.protocols.registry import CapabilityRegistry

logger = logging.getLogger(__name__)

IGNORED_DIRS = frozenset({".git", "node_modules", "__pycache__", ".venv", "dist", "build"})
DEFAULT_MAX_DEPTH = 2


def _resolve(root: Path, raw: Any) -> Path:
    if not isinstance(raw, str) or not raw:
        msg = "'path' must be a non-empty string"
        raise ValueError(msg)
    return (root / raw).resolve()


def _mtime(path: Path) -> str:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc).isoformat()


def _failure(exc: Exception) -> str:
    return json.dumps({"success": False, "error": str(exc)})


def read_file(arguments: dict[str, Any], *, root: Path) -> str:
    try:
        path = _resolve(root, arguments.get("path"))
        content = path.read_text(encoding=arguments.get("encoding") or "utf-8")
        return json.dumps(
            {
                "success": True,
                "path": str(path),
                "content": content,
                "size": path.stat().st_size,
                "modified": _mtime(path),
            }
        )
    except (OSError, ValueError) as exc:
        return _failure(exc)


def write_file(arguments: dict[str, Any], *, root: Path) -> str:
    try:
        path = _resolve(root, arguments.get("path"))
        content = arguments.get("content")
        if not isinstance(content, str):
            msg = "'content' must be a string"
            raise ValueError(msg)
        if arguments.get("create_dirs", True):
            path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding=arguments.get("encoding") or "utf-8")
        return json.dumps({"success": True, "path": str(path), "size": path.stat().st_size})
    except (OSError, ValueError) as exc:
        return _failure(exc)


def edit_file(arguments: dict[str, Any], *, root: Path) -> str:
    """Replace the single occurrence of ``old_str`` with ``new_str``."""
    try:
        path = _resolve(root, arguments.get("path"))
        old_str = arguments.get("old_str")
        new_str = arguments.get("new_str")
        if not isinstance(old_str, str) or not old_str:
            msg = "'old_str' must be a non-empty string"
            raise ValueError(msg)
        if not isinstance(new_str, str):
            msg = "'new_str' must be a string"
            raise ValueError(msg)

        content = path.read_text(encoding="utf-8")
        occurrences = content.count(old_str)
        if occurrences == 0:
            msg = "'old_str' not found in file"
            raise ValueError(msg)
        if occurrences > 1:
            msg = f"'old_str' matches {occurrences} times; add context to make it unique"
            raise ValueError(msg)

        path.write_text(content.replace(old_str, new_str, 1), encoding="utf-8")
        return json.dumps({"success": True, "path": str(path), "size": path.stat().st_size})
    except (OSError, ValueError) as exc:
        return _failure(exc)


def list_directory(arguments: dict[str, Any], *, root: Path) -> str:
    try:
        base = _resolve(root, arguments.get("path") or ".")
        if not base.is_dir():
            msg = f"Not a directory: {base}"
            raise NotADirectoryError(msg)
        recursive = bool(arguments.get("recursive", False))
        max_depth = int(arguments.get("max_depth", DEFAULT_MAX_DEPTH))
        include_hidden = bool(arguments.get("include_hidden", False))

        entries: list[dict[str, Any]] = []

        def walk(directory: Path, depth: int) -> None:
            try:
                children = sorted(directory.iterdir(), key=lambda p: p.name)
            except PermissionError:
                logger.debug("Skipping unreadable directory %s", directory)
                return
            for child in children:
                if not include_hidden and child.name.startswith("."):
                    continue
                rel = child.relative_to(base).as_posix()
                if child.is_dir():
                    if child.name in IGNORED_DIRS:
                        continue
                    entries.append({"name": f"{rel}/", "type": "directory"})
                    if recursive and depth < max_depth:
                        walk(child, depth + 1)
                else:
                    entries.append({"name": rel, "type": "file", "size": child.stat().st_size})

        walk(base, 0)
        return json.dumps(
            {"success": True, "path": str(base), "count": len(entries), "entries": entries}
        )
    except (OSError, ValueError) as exc:
        return _failure(exc)


def _threaded(func: Any, root: Path) -> Any:
    bound = partial(func, root=root)

    async def execute(arguments: dict[str, Any]) -> str:
        return await asyncio.to_thread(bound, arguments)

    execute.__name__ = func.__name__
    return execute


def register_filesystem_tools(registry: CapabilityRegistry, root: Path | None = None) -> list[str]:
    """Register the filesystem tools, resolving relative paths against *root* (cwd by default)."""
    base = (root or Path.cwd()).resolve()
    registry.register(
        "read_file",
        "Read a text file and return its content.",
        object_schema(
            {
                "path": {"type": "string", "description": "File to read"},
                "encoding": {"type": "string", "description": "Text encoding, utf-8 by default"},
            },
            required=["path"],
        ),
        _threaded(read_file, base),
    )
    registry.register(
        "write_file",
        "Write text to a file, replacing it and creating parent directories.",
        object_schema(
            {
                "path": {"type": "string", "description": "File to write"},
                "content": {"type": "string", "description": "Text to write"},
                "encoding": {"type": "string", "description": "Text encoding, utf-8 by default"},
                "create_dirs": {"type": "boolean", "description": "Create missing parents"},
            },
            required=["path", "content"],
        ),
        _threaded(write_file, base),
    )
    registry.register(
        "edit_file",
        "Replace one exact, unique snippet of a text file with new text.",
        object_schema(
            {
                "path": {"type": "string", "description": "File to edit"},
                "old_str": {"type": "string", "description": "Text to replace; must occur exactly once"},
                "new_str": {"type": "string", "description": "Replacement text"},
            },
            required=["path", "old_str", "new_str"],
        ),
        _threaded(edit_file, base),
    )
    registry.register(
        "list_directory",
        "List the entries of a directory.",
        object_schema(
            {
                "path": {"type": "string", "description": "Directory to list, cwd by default"},
                "recursive": {"type": "boolean", "description": "Descend into subdirectories"},
                "max_depth": {"type": "integer", "description": "Recursion limit, 2 by default"},
                "include_hidden": {"type": "boolean", "description": "Include dotfiles"},
            }
        ),
        _threaded(list_directory, base),
    )
    return ["read_file", "write_file", "edit_file", "list_directory"]
