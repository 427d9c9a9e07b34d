from __future__ import annotations

import asyncio
import logging
import shutil
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

from .errors import ConfigurationError
from .regenerator import RasterConverter
from .utils import CmdResult, run_command, run_shell

Prompt = Callable[[str], Awaitable[bool]]


class ImageMagickConverter:
    """Shells out to ImageMagick: ``convert`` (IM6) or ``magick`` (IM7)."""

    name = "imagemagick"

    def __init__(self, timeout_sec: float = 60, executable: str | None = None):
        self.timeout_sec = timeout_sec
        self._explicit = executable
        self.executable: str | None = None

    def available(self) -> bool:
        candidates = [self._explicit] if self._explicit else ["magick", "convert"]
        for exe in candidates:
            found = shutil.which(exe)
            if found:
                self.executable = found
                return True
        self.executable = None
        return False

    def build_argv(self, src: Path, dst: Path, size: int, transparent: bool = True) -> list[str]:
        exe = self.executable or self._explicit or "convert"
        background = "none" if transparent else "white"
        # -background must precede the input so the SVG is rasterized onto it
        return [exe, "-background", background, str(src), "-resize", f"{size}x{size}", str(dst)]

    async def convert(
        self, src: Path, dst: Path, size: int, transparent: bool = True
    ) -> CmdResult:
        return await run_command(self.build_argv(src, dst, size, transparent), self.timeout_sec)


class CairoSvgConverter:
    """Renders in-process with CairoSVG, off the event loop."""

    name = "cairosvg"

    def __init__(self, timeout_sec: float = 60):
        self.timeout_sec = timeout_sec

    def available(self) -> bool:
        # cairosvg raises OSError at import time when the cairo shared library is missing
        try:
            import cairosvg  # noqa: F401
        except (ImportError, OSError) as e:
            logging.debug("CairoSVG not available: %s", e)
            return False
        return True

    @staticmethod
    def _render(src: Path, dst: Path, size: int, transparent: bool) -> None:
        import cairosvg

        cairosvg.svg2png(
            url=str(src),
            write_to=str(dst),
            output_width=size,
            output_height=size,
            background_color=None if transparent else "white",
        )

    async def convert(
        self, src: Path, dst: Path, size: int, transparent: bool = True
    ) -> CmdResult:
        try:
            await asyncio.wait_for(
                asyncio.to_thread(self._render, src, dst, size, transparent),
                timeout=self.timeout_sec,
            )
        except asyncio.TimeoutError:
            return CmdResult(
                returncode=124, stdout=b"", stderr=f"Timeout after {self.timeout_sec}s".encode()
            )
        except Exception as e:
            return CmdResult(returncode=1, stdout=b"", stderr=str(e).encode())
        return CmdResult(returncode=0, stdout=b"", stderr=b"")


def make_converters(timeout_sec: float = 60) -> dict[str, RasterConverter]:
    return {
        ImageMagickConverter.name: ImageMagickConverter(timeout_sec),
        CairoSvgConverter.name: CairoSvgConverter(timeout_sec),
    }


def resolve_converter(
    preference: str, converters: dict[str, RasterConverter]
) -> RasterConverter:
    """Pick an available converter. ``auto`` prefers ImageMagick, then CairoSVG."""
    order = ["imagemagick", "cairosvg"] if preference == "auto" else [preference]
    for name in order:
        conv = converters.get(name)
        if conv is not None and conv.available():
            return conv
    raise ConfigurationError(
        f"No raster converter available (wanted: {preference}). "
        "Install ImageMagick or CairoSVG."
    )


async def ask_yes_no(question: str) -> bool:
    """Interactive ``[Y/n]`` prompt. Non-interactive stdin always answers no."""
    if not sys.stdin or not sys.stdin.isatty():
        return False
    answer = await asyncio.to_thread(input, f"{question} [Y/n] ")
    return answer.strip().lower() in {"", "y", "yes"}


async def ensure_converter(
    preference: str,
    converters: dict[str, RasterConverter],
    *,
    allow_install: bool,
    install_cmd: str,
    prompt: Prompt | None = None,
) -> RasterConverter:
    """Resolve a converter, offering a one-time ImageMagick install if none is found."""
    try:
        return resolve_converter(preference, converters)
    except ConfigurationError:
        if not allow_install or preference == "cairosvg":
            raise

    logging.warning("ImageMagick not found.")
    ask = prompt or ask_yes_no
    if not await ask(f"Would you like to install ImageMagick using '{install_cmd}'?"):
        raise ConfigurationError("Cannot proceed without ImageMagick.")

    logging.info("Installing ImageMagick: %s", install_cmd)
    res = await run_shell(install_cmd, capture=False)
    if not res.ok:
        logging.error("Install command failed [exit %s]: %s", res.returncode, res.message())
    try:
        return resolve_converter("imagemagick", converters)
    except ConfigurationError as e:
        raise ConfigurationError("Installation failed or ImageMagick still not found.") from e
