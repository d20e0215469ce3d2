"""Streaming subprocess runner for external tools (ffmpeg, COLMAP, exiftool, ...)."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from pathlib import Path
from typing import Callable, Sequence

logger = logging.getLogger(__name__)
tool_logger = logging.getLogger("dronerecon.tools")

CHUNK_SIZE = 4096


def join_command(args: Sequence[str | os.PathLike]) -> str:
    """Quote ``args`` into one command line for the host shell."""
    parts = [os.fspath(a) for a in args]
    if os.name == "nt":
        return subprocess.list2cmdline(parts)
    return shlex.join(parts)


def _emit(line: str, on_line: Callable[[str], None], collected: list[str]) -> None:
    line = line.rstrip("\r")
    if not line:
        return
    collected.append(line)
    on_line(line)


def run_command(
    command: str,
    on_line: Callable[[str], None] | None = None,
    cwd: Path | None = None,
) -> subprocess.CompletedProcess:
    """Run a shell command, streaming its merged stdout/stderr line by line.

    The pipe is drained while the process runs, so chatty tools cannot fill
    the pipe buffer and stall. Each complete line goes to ``on_line`` as soon
    as it arrives. A spawn failure is logged and reported as return code -1.
    Nothing is retried here.
    """
    sink = on_line if on_line is not None else tool_logger.info
    logger.debug(f"Running: {command}")

    try:
        proc = subprocess.Popen(
            command,
            shell=True,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except OSError as e:
        logger.error(f"Failed to start process: {e}")
        return subprocess.CompletedProcess(command, -1, stdout="", stderr=str(e))

    collected: list[str] = []
    buffer = b""
    fd = proc.stdout.fileno()
    try:
        while True:
            chunk = os.read(fd, CHUNK_SIZE)
            if not chunk:
                break
            buffer += chunk
            *complete, buffer = buffer.split(b"\n")
            for raw in complete:
                _emit(raw.decode("utf-8", errors="replace"), sink, collected)
        if buffer:
            _emit(buffer.decode("utf-8", errors="replace"), sink, collected)
    finally:
        proc.stdout.close()
        returncode = proc.wait()

    return subprocess.CompletedProcess(command, returncode, stdout="\n".join(collected), stderr="")
