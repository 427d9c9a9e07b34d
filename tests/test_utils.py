import sys
from pathlib import Path

import pytest

from webkit.utils import human_bytes, relative_href, run_command, run_shell


@pytest.mark.asyncio
async def test_run_command_echo():
    res = await run_command([sys.executable, "-c", "print('hello')"])
    assert res.ok
    assert res.stdout.decode("utf-8").strip() == "hello"


@pytest.mark.asyncio
async def test_run_command_failure_message():
    res = await run_command([sys.executable, "-c", "import sys; sys.exit('bad input')"])
    assert res.returncode == 1
    assert res.message() == "bad input"


@pytest.mark.asyncio
async def test_run_command_missing_executable():
    res = await run_command(["definitely-not-a-real-binary-xyz"])
    assert res.returncode == 127
    assert b"not found" in res.stderr


@pytest.mark.asyncio
async def test_run_command_timeout():
    res = await run_command([sys.executable, "-c", "import time; time.sleep(5)"], timeout_sec=0.3)
    assert res.returncode == 124
    assert b"Timeout after" in res.stderr


@pytest.mark.asyncio
async def test_run_shell_chain():
    res = await run_shell("echo one && echo two")
    assert res.returncode == 0
    assert res.stdout.decode("utf-8").split() == ["one", "two"]


@pytest.mark.asyncio
async def test_run_shell_without_capture_passes_output_through(capfd: pytest.CaptureFixture[str]):
    res = await run_shell("echo visible; echo oops >&2; exit 3", capture=False)
    assert res.returncode == 3
    assert res.stdout == b"" and res.stderr == b""
    out, err = capfd.readouterr()
    assert "visible" in out
    assert "oops" in err


def test_relative_href(tmp_path: Path):
    assert relative_href(tmp_path / "a" / "b", tmp_path) == "a/b"
    assert relative_href(tmp_path / "a", tmp_path / "site") == "../a"


def test_human_bytes():
    assert human_bytes(0) == "0.00 B"
    assert human_bytes(1023).endswith("B")
    assert human_bytes(1024).endswith("KB")
    assert human_bytes(1024 * 1024).endswith("MB")
