"""Incremental PNG regeneration from a flat directory of vector sources.

For every source file and every target size, make sure
``<out_root>/<size>x<size>/<name>.png`` exists and is not older than its
source. Fresh artifacts are left alone; stale or missing ones are handed to
a raster converter. One failed conversion never stops the batch.
"""
from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .errors import ConfigurationError, OutputDirectoryError
from .utils import CmdResult, human_bytes

RASTER_EXT = ".png"


class RasterConverter(Protocol):
    name: str

    def available(self) -> bool: ...

    async def convert(
        self, src: Path, dst: Path, size: int, transparent: bool = True
    ) -> CmdResult: ...


@dataclass(frozen=True)
class SourceAsset:
    path: Path
    name: str


@dataclass(frozen=True)
class RegenerationTask:
    asset: SourceAsset
    size: int
    output: Path


@dataclass(frozen=True)
class TaskFailure:
    task: RegenerationTask
    returncode: int
    message: str


@dataclass
class RegenerationReport:
    generated: list[RegenerationTask] = field(default_factory=list)
    skipped: list[RegenerationTask] = field(default_factory=list)
    failed: list[TaskFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def total(self) -> int:
        return len(self.generated) + len(self.skipped) + len(self.failed)

    def summary(self) -> str:
        return (
            f"{len(self.generated)} generated, {len(self.skipped)} up to date, "
            f"{len(self.failed)} failed"
        )


def size_dirname(size: int) -> str:
    return f"{size}x{size}"


def artifact_path(out_root: Path, size: int, name: str) -> Path:
    return out_root / size_dirname(size) / f"{name}{RASTER_EXT}"


def partial_path(artifact: Path) -> Path:
    # keep the raster suffix last; ImageMagick picks the output format from it
    return artifact.with_name(f".{artifact.stem}.partial{artifact.suffix}")


def discover_assets(src_dir: Path, extension: str = ".svg") -> list[SourceAsset]:
    """List source files directly inside ``src_dir`` (no recursion)."""
    if not src_dir.is_dir():
        raise ConfigurationError(f"Source directory '{src_dir}' does not exist.")
    ext = extension.lower()
    assets = [
        SourceAsset(path=p, name=p.stem)
        for p in sorted(src_dir.iterdir(), key=lambda p: p.name)
        if p.is_file() and p.suffix.lower() == ext
    ]
    if not assets:
        raise ConfigurationError(f"No {ext} files found in '{src_dir}'.")
    return assets


def normalize_sizes(sizes: Iterable[int]) -> list[int]:
    out: list[int] = []
    for s in sizes:
        if s <= 0:
            raise ConfigurationError(f"Invalid target size: {s}")
        if s not in out:
            out.append(s)
    if not out:
        raise ConfigurationError("No target sizes configured.")
    return out


def is_stale(src: Path, dst: Path) -> bool:
    """True if ``dst`` is missing or strictly older than ``src``."""
    try:
        dst_mtime = dst.stat().st_mtime_ns
    except FileNotFoundError:
        return True
    return dst_mtime < src.stat().st_mtime_ns


def plan_tasks(
    assets: Sequence[SourceAsset], sizes: Sequence[int], out_root: Path
) -> list[RegenerationTask]:
    return [
        RegenerationTask(asset=a, size=s, output=artifact_path(out_root, s, a.name))
        for s in sizes
        for a in assets
    ]


def ensure_output_dirs(out_root: Path, sizes: Sequence[int]) -> None:
    for s in sizes:
        d = out_root / size_dirname(s)
        try:
            d.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputDirectoryError(f"Cannot create output directory '{d}': {e}") from e


async def _run_task(task: RegenerationTask, converter: RasterConverter) -> CmdResult | None:
    """Convert one pair if stale. Returns None when the artifact was fresh."""
    if not is_stale(task.asset.path, task.output):
        logging.debug("Up to date: %s", task.output)
        return None
    # Render beside the artifact; only a successful conversion replaces it
    tmp = partial_path(task.output)
    try:
        res = await converter.convert(task.asset.path, tmp, task.size, transparent=True)
    except Exception as e:
        logging.exception("Converter %s crashed on %s", converter.name, task.asset.path)
        res = CmdResult(returncode=1, stdout=b"", stderr=repr(e).encode())

    if res.ok and tmp.is_file():
        os.replace(tmp, task.output)
        return res
    tmp.unlink(missing_ok=True)
    if res.ok:
        return CmdResult(returncode=1, stdout=b"", stderr=b"converter produced no output")
    return res


async def regenerate(
    src_dir: Path,
    out_root: Path,
    sizes: Iterable[int],
    converter: RasterConverter,
    *,
    extension: str = ".svg",
    jobs: int = 1,
) -> RegenerationReport:
    """Bring every (asset, size) artifact under ``out_root`` up to date.

    Raises ConfigurationError before any work if there is nothing to convert,
    and OutputDirectoryError if a size directory cannot be created. Per-task
    conversion failures are collected in the returned report instead.
    """
    assets = discover_assets(src_dir, extension)
    size_list = normalize_sizes(sizes)
    ensure_output_dirs(out_root, size_list)
    tasks = plan_tasks(assets, size_list, out_root)

    if jobs <= 1:
        results = [await _run_task(t, converter) for t in tasks]
    else:
        sem = asyncio.Semaphore(jobs)

        async def _bounded(t: RegenerationTask) -> CmdResult | None:
            async with sem:
                return await _run_task(t, converter)

        results = await asyncio.gather(*(_bounded(t) for t in tasks))

    report = RegenerationReport()
    for task, res in zip(tasks, results):
        if res is None:
            report.skipped.append(task)
        elif res.ok:
            size_info = human_bytes(task.output.stat().st_size) if task.output.exists() else "?"
            logging.info("Generated %s (%s)", task.output, size_info)
            report.generated.append(task)
        else:
            msg = res.message() or f"exit {res.returncode}"
            logging.error("Failed to convert %s to %s: %s", task.asset.path, task.output, msg)
            report.failed.append(TaskFailure(task=task, returncode=res.returncode, message=msg))
    return report
