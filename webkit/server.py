from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

import psutil

from .config import Settings

WaitForStop = Callable[[], Awaitable[object]]


class PreviewServer:
    """``python -m http.server`` as a managed child process."""

    def __init__(self, port: int, root: Path, bind: str = "127.0.0.1"):
        self.port = port
        self.root = root
        self.bind = bind
        self.proc: asyncio.subprocess.Process | None = None

    def argv(self) -> list[str]:
        return [
            sys.executable, "-m", "http.server", str(self.port),
            "--bind", self.bind,
            "--directory", str(self.root),
        ]

    async def start(self) -> int:
        self.proc = await asyncio.create_subprocess_exec(
            *self.argv(),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        return self.proc.pid

    @property
    def pid(self) -> int | None:
        return self.proc.pid if self.proc else None

    @property
    def running(self) -> bool:
        if self.proc is None or self.proc.returncode is not None:
            return False
        try:
            return psutil.Process(self.proc.pid).status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False

    def url(self, path: str = "") -> str:
        path = path.strip("/")
        if path in ("", "."):
            path = ""
        return f"http://localhost:{self.port}/{path}"

    async def stop(self, timeout_sec: float = 5.0) -> bool:
        """Terminate the server. True if it is gone afterwards."""
        if self.proc is None:
            return True
        if self.proc.returncode is None:
            try:
                self.proc.terminate()
            except ProcessLookupError:
                pass
        try:
            await asyncio.wait_for(self.proc.wait(), timeout=timeout_sec)
        except asyncio.TimeoutError:
            logging.warning("Server PID %s ignored SIGTERM; killing", self.proc.pid)
            self.proc.kill()
            try:
                await asyncio.wait_for(self.proc.wait(), timeout=timeout_sec)
            except asyncio.TimeoutError:
                return False
        return not self.running


async def wait_for_enter() -> None:
    print("Press Enter to stop the server...", flush=True)
    await asyncio.to_thread(sys.stdin.readline)


async def serve(
    settings: Settings,
    directory: str = ".",
    wait_for_stop: WaitForStop | None = None,
) -> int:
    """Run the preview server until ``wait_for_stop`` returns. Returns an exit code."""
    server = PreviewServer(settings.port, settings.base_dir, settings.bind)
    print("Starting Python web server")
    pid = await server.start()
    logging.info("Preview server started with PID %s on port %s", pid, settings.port)
    print(f"You can access the server at {server.url(directory)}")

    try:
        await (wait_for_stop or wait_for_enter)()
    finally:
        print("Stopping the server...")
        if not server.running:
            await server.proc.wait()
            print("Server is not running or already stopped.")
            code = 0
        elif await server.stop(settings.stop_timeout_sec):
            print("Server stopped successfully.")
            code = 0
        else:
            print("Failed to stop the server.")
            code = 1
    logging.info("Preview server PID %s exited with code %s", pid, server.proc.returncode)
    return code
