"""Thin wrappers over OS primitives and the notification sink.

Notifications are loguru records with a bound ``title``; the host decides
where they go by adding a sink (e.g. one that filters on ``record["extra"]``).
This module never configures sinks itself.
"""

import os
import re
import subprocess
import sys
from pathlib import Path
from typing import Any

from beartype import beartype
from loguru import logger

from hostutil._config import get_settings

_HEAD_REF = re.compile(r"ref: (refs/heads/(.*))")


@beartype
def file_exists(path: str | Path) -> bool:
    return os.path.exists(path)


def _opener_command(uri: str) -> list[str]:
    if sys.platform == "win32":
        return ["cmd.exe", "/c", "start", '""', uri]
    if sys.platform == "darwin":
        return ["open", uri]
    return ["xdg-open", uri]


@beartype
def open_uri(uri: str) -> int:
    """Open a file or URI with the configured viewer or the platform opener.

    Existing files go to ``HOSTUTIL_VIEWER`` when it is set. Failures are
    reported through error() rather than raised.

    Returns:
        Exit status of the launched command.
    """
    viewer = get_settings().viewer
    if viewer and file_exists(uri):
        cmd = [viewer, uri]
    else:
        cmd = _opener_command(uri)

    logger.debug(f"Opening {uri!r} with {cmd[0]}")
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as exc:
        error("\n".join(["Failed to open uri", str(exc), repr(cmd)]))
        return 127

    if proc.returncode != 0:
        output = (proc.stdout + proc.stderr).strip()
        error("\n".join(["Failed to open uri", output, repr(cmd)]))
    return proc.returncode


@beartype
def scandir(path: str | Path) -> list[dict[str, str]]:
    """List directory entries as ``{name, path, type}`` dicts.

    ``type`` is one of "file", "directory" or "link". Unreadable or missing
    directories yield an empty list.
    """
    ret: list[dict[str, str]] = []
    try:
        with os.scandir(path) as it:
            for entry in it:
                if entry.is_symlink():
                    kind = "link"
                elif entry.is_dir(follow_symlinks=False):
                    kind = "directory"
                else:
                    kind = "file"
                ret.append({"name": entry.name, "path": f"{path}/{entry.name}", "type": kind})
    except OSError as exc:
        logger.debug(f"scandir({path}) failed: {exc}")
    return ret


@beartype
def head(file: str | Path) -> str | None:
    """Return the first line of ``file`` without its newline, or None."""
    try:
        with open(file) as f:
            line = f.readline()
    except OSError:
        return None
    if not line:
        return None
    return line.removesuffix("\n")


@beartype
def git_info(directory: str | Path) -> dict[str, str | None] | None:
    """Branch and commit hash of the checked-out branch in ``directory``.

    Returns None for a missing repo or a detached HEAD. ``hash`` is None when
    the ref file does not exist yet (e.g. a fresh repo with no commits).
    """
    line = head(f"{directory}/.git/HEAD")
    if line is None:
        return None
    match = _HEAD_REF.search(line)
    if match is None:
        return None
    ref, branch = match.groups()
    return {"branch": branch, "hash": head(f"{directory}/.git/{ref}")}


def _quote(value: str) -> str:
    # Lua %q rules: backslash-newline for line breaks.
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\\n")
        .replace("\r", "\\r")
        .replace("\0", "\\0")
    )
    return f'"{escaped}"'


def _dump(value: Any, result: list[str]) -> None:
    if isinstance(value, bool):
        result.append("true" if value else "false")
    elif isinstance(value, int):
        result.append(str(value))
    elif isinstance(value, float):
        result.append(f"{value:.14g}")
    elif isinstance(value, str):
        result.append(_quote(value))
    elif isinstance(value, (list, tuple)):
        result.append("{")
        for item in value:
            _dump(item, result)
            result.append(",")
        result.append("}")
    elif isinstance(value, dict):
        result.append("{")
        for i, (key, item) in enumerate(value.items(), start=1):
            if isinstance(key, str):
                result.append(f"[{_quote(key)}]=")
            elif not (isinstance(key, int) and not isinstance(key, bool) and key == i):
                _dump(key, result)
                result.append("=")
            _dump(item, result)
            result.append(",")
        result.append("}")
    else:
        raise TypeError(f"Unsupported type {type(value).__name__}")


def dump(value: Any) -> str:
    """Serialize nested lists, dicts and scalars as a Lua table literal.

    Integer dict keys that continue the 1-based sequence are written without
    a key, like Lua's array part.

    Raises:
        TypeError: on values other than bool, int, float, str, list, tuple, dict
    """
    result: list[str] = []
    _dump(value, result)
    return "".join(result)


@beartype
def markdown(msg: str | list[str], title: str | None = None) -> None:
    """Emit a markdown notification (INFO) with ``title`` bound."""
    if isinstance(msg, list):
        msg = "\n".join(msg)
    logger.bind(title=title or get_settings().title, markdown=True).info(msg)


@beartype
def info(msg: str) -> None:
    logger.bind(title=get_settings().title).info(msg)


@beartype
def error(msg: str) -> None:
    logger.bind(title=get_settings().title).error(msg)
