from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path


@dataclass
class CmdResult:
    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def message(self) -> str:
        """Best human-readable explanation of the result, stderr first."""
        raw = self.stderr or self.stdout
        return raw.decode("utf-8", errors="replace").strip()


async def _communicate(proc: asyncio.subprocess.Process, timeout_sec: float) -> CmdResult:
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout_sec)
    except asyncio.TimeoutError:
        proc.kill()
        try:
            await proc.wait()
        except ProcessLookupError:
            pass
        return CmdResult(
            returncode=124, stdout=b"", stderr=f"Timeout after {timeout_sec}s".encode()
        )

    return CmdResult(returncode=proc.returncode or 0, stdout=stdout or b"", stderr=stderr or b"")


async def run_command(argv: list[str], timeout_sec: float = 60) -> CmdResult:
    """Run a program directly (no shell) with timeout, capturing stdout/stderr.

    A missing executable is reported as returncode 127, like a shell would.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        return CmdResult(returncode=127, stdout=b"", stderr=f"{argv[0]}: not found".encode())
    return await _communicate(proc, timeout_sec)


async def run_shell(cmd: str, timeout_sec: float = 600, capture: bool = True) -> CmdResult:
    """Run a shell command line with timeout.

    Uses bash if available for `&&` chains and the like. Falls back to /bin/sh.
    With ``capture=False`` output goes straight to the terminal and the result
    carries empty stdout/stderr.
    """
    shell = "/bin/bash" if Path("/bin/bash").exists() else "/bin/sh"
    # Only used for the operator-confirmed install command from settings.
    proc = await asyncio.create_subprocess_exec(
        shell,
        "-c",
        cmd,
        stdout=asyncio.subprocess.PIPE if capture else None,
        stderr=asyncio.subprocess.PIPE if capture else None,
    )
    return await _communicate(proc, timeout_sec)


def relative_href(target: Path, start: Path) -> str:
    """URL-style path of ``target`` relative to directory ``start``."""
    rel = os.path.relpath(target, start)
    return Path(rel).as_posix()


def human_bytes(n: int) -> str:
    step = 1024.0
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    v = float(n)
    while v >= step and i < len(units) - 1:
        v /= step
        i += 1
    return f"{v:.2f} {units[i]}"
