# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Utility functions for external commands, durations, files, and logging."""

from __future__ import annotations

import json
import logging
import os
import re
import subprocess
from datetime import datetime, timezone
from pathlib import Path

import sh
from rich.logging import RichHandler

from cctl import console
from cctl.errors import CommandError, ValidationError

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def parse_duration(value: str | float | int) -> float:
    """Parse a Go-style duration (``90s``, ``1h30m``, ``500ms``) into seconds.

    Bare numbers are taken as seconds.

    Args:
        value: Duration string or number of seconds.

    Returns:
        Duration in seconds.

    Raises:
        ValidationError: If the string is not a valid duration.
    """
    if isinstance(value, (int, float)):
        return float(value)
    text = value.strip()
    try:
        return float(text)
    except ValueError:
        pass
    parts = _DURATION_PART.findall(text)
    if not parts or "".join(num + unit for num, unit in parts) != text:
        raise ValidationError(f"invalid duration {value!r}")
    return sum(float(num) * _DURATION_UNITS[unit] for num, unit in parts)


def kubeconfig_env(kubeconfig: str | None) -> dict[str, str] | None:
    """Build a process environment pointing kubectl/helm at *kubeconfig*.

    Args:
        kubeconfig: Path to a kubeconfig file, or empty/None for the default.

    Returns:
        Full environment mapping, or None to inherit the current one.
    """
    if not kubeconfig:
        return None
    return {**os.environ, "KUBECONFIG": kubeconfig}


def existing_path(path: str | Path | None) -> str:
    """Return *path* as a string if it exists, otherwise an empty string."""
    if path and Path(path).exists():
        return str(path)
    return ""


def require_commands(*names: str) -> None:
    """Check that every named CLI command exists on the system PATH.

    Args:
        *names: Command names to check. Empty names are ignored.

    Raises:
        ValidationError: Listing every command that was not found.
    """
    missing = []
    for name in names:
        if not name:
            continue
        try:
            sh.Command(name)
        except sh.CommandNotFound:
            missing.append(name)
    if missing:
        raise ValidationError(f"required commands not found: {', '.join(missing)}")


def run_capture(
    command: str,
    args: list[str],
    env: dict[str, str] | None = None,
    timeout: int = 60,
) -> tuple[bool, str, str]:
    """Run a command via subprocess and return (success, stdout, stderr).

    Uses subprocess instead of sh because callers inspect stderr separately
    from stdout (e.g. telling a kubectl "not found" apart from other errors).

    Args:
        command: Executable name.
        args: Command arguments.
        env: Full process environment, or None to inherit.
        timeout: Maximum seconds to wait for the command to complete.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    try:
        result = subprocess.run(
            [command, *args],
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
        )
        return result.returncode == 0, result.stdout, result.stderr
    except (subprocess.SubprocessError, OSError) as exc:
        return False, "", str(exc)


def run_streaming(command: str, args: list[str], env: dict[str, str] | None = None) -> None:
    """Run a command with its output attached to the terminal.

    Args:
        command: Executable name.
        args: Command arguments.
        env: Full process environment, or None to inherit.

    Raises:
        CommandError: If the command is missing or exits non-zero.
    """
    cmdline = " ".join([command, *args])
    kwargs = {"_fg": True}
    if env is not None:
        kwargs["_env"] = env
    try:
        sh.Command(command)(*args, **kwargs)
    except sh.CommandNotFound as err:
        raise CommandError(f"command not found: {command}", command=cmdline) from err
    except sh.ErrorReturnCode as err:
        raise CommandError(
            f"{cmdline} exited with status {err.exit_code}", command=cmdline,
        ) from err


def write_private_file(path: str | Path, data: bytes, mode: int = 0o600) -> Path:
    """Write *data* to *path*, creating parent directories, with *mode* permissions.

    The mode is applied on creation and re-applied afterwards, so a
    pre-existing file with looser permissions is tightened too.

    Args:
        path: Destination file.
        data: Bytes to write.
        mode: File permission bits.

    Returns:
        The destination as a Path.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "wb") as fh:
        fh.write(data)
    target.chmod(mode)
    return target


def body_snippet(content: bytes, limit: int) -> str:
    """Truncate a response body to *limit* bytes for inclusion in an error message."""
    return content[:limit].decode("utf-8", errors="replace").strip()


class StructuredFormatter(logging.Formatter):
    """JSON formatter emitting one object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and not key.startswith("_"):
                log_data[key] = value
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def configure_logging(log_format: str = "console", debug: bool = False) -> None:
    """Install the root log handler.

    Args:
        log_format: ``console`` for rich output, ``json`` for structured lines.
        debug: Whether to log at DEBUG instead of INFO.

    Raises:
        ValidationError: If *log_format* is not recognised.
    """
    fmt = log_format.lower()
    if fmt == "json":
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(StructuredFormatter())
    elif fmt == "console":
        handler = RichHandler(console=console, rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="%H:%M:%S"))
    else:
        raise ValidationError(f"unknown log format {log_format!r} (expected console or json)")

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if debug else logging.INFO)
