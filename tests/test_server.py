import asyncio
import socket
import sys
from pathlib import Path

import pytest

from webkit.config import Settings
from webkit.server import PreviewServer, serve


def free_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_argv_and_url(tmp_path: Path):
    srv = PreviewServer(8080, tmp_path)
    assert srv.argv() == [
        sys.executable, "-m", "http.server", "8080",
        "--bind", "127.0.0.1", "--directory", str(tmp_path),
    ]
    assert srv.url() == "http://localhost:8080/"
    assert srv.url(".") == "http://localhost:8080/"
    assert srv.url("/share/icons/") == "http://localhost:8080/share/icons"
    assert not srv.running
    assert srv.pid is None


@pytest.mark.asyncio
async def test_start_and_stop(tmp_path: Path):
    srv = PreviewServer(free_port(), tmp_path)
    pid = await srv.start()
    assert pid > 0
    assert srv.running
    assert await srv.stop(timeout_sec=5)
    assert not srv.running


@pytest.mark.asyncio
async def test_serve_stops_after_wait(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    s = Settings(base_dir=tmp_path, port=free_port())

    async def stop_soon():
        await asyncio.sleep(0.2)

    code = await serve(s, "gallery", wait_for_stop=stop_soon)
    out = capsys.readouterr().out
    assert code == 0
    assert f"http://localhost:{s.port}/gallery" in out
    assert "Server stopped successfully." in out


@pytest.mark.asyncio
async def test_serve_reports_already_stopped(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
):
    # point the child at a script that exits right away
    monkeypatch.setattr(PreviewServer, "argv", lambda self: [sys.executable, "-c", "pass"])
    s = Settings(base_dir=tmp_path, port=free_port())
    started: list[PreviewServer] = []
    real_start = PreviewServer.start

    async def tracking_start(self):
        started.append(self)
        return await real_start(self)

    monkeypatch.setattr(PreviewServer, "start", tracking_start)

    async def wait_for_exit():
        while started[0].running:
            await asyncio.sleep(0.05)

    code = await serve(s, wait_for_stop=wait_for_exit)
    assert code == 0
    # the exited child is reaped before serve returns
    assert started[0].proc.returncode == 0
    assert "Server is not running or already stopped." in capsys.readouterr().out
