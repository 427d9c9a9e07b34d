from __future__ import annotations

import logging
import os
import re
from collections.abc import Sequence
from html import escape
from pathlib import Path
from urllib.parse import quote

from .config import Settings
from .errors import ConfigurationError
from .regenerator import SourceAsset, artifact_path, discover_assets, size_dirname
from .utils import relative_href


def _attr(v: object) -> str:
    return escape(str(v), quote=True)


def _href(*parts: str) -> str:
    """Percent-encoded, HTML-escaped relative URL built from path parts."""
    return _attr(quote("/".join(parts), safe="/"))


def _asset_entry(asset: SourceAsset, sizes: Sequence[int], src_href: str, icons_href: str) -> str:
    href = _href(src_href, asset.path.name)
    lines = [
        "<hr>",
        f'<a href="{href}">',
        f'  <img src="{href}" alt="{_attr(asset.path.name)}" width="64" height="64">',
        "</a>",
        "<p>Download PNG:</p><ul>",
    ]
    for sz in sizes:
        png = _href(icons_href, size_dirname(sz), f"{asset.name}.png")
        label = f"{size_dirname(sz)} {asset.name}.png"
        lines.append(f'  <li><a href="{png}">{escape(label)}</a></li>')
    lines.append("</ul>")
    return "\n".join(lines)


def render_index(
    assets: Sequence[SourceAsset],
    sizes: Sequence[int],
    *,
    src_href: str,
    icons_href: str,
    title: str = "Logos and Icons",
    intro: str = "",
    header_images: Sequence[tuple[str, int | None, int | None]] = (),
    license_name: str = "CC BY-SA 4.0",
    license_url: str = "https://creativecommons.org/licenses/by-sa/4.0/",
    guidelines_url: str | None = None,
) -> str:
    """Render the gallery page.

    ``header_images`` are (file name, width, height) triples shown above the
    heading; file names are relative to ``src_href`` and a None dimension is
    left to the browser. PNG links follow the regenerator's
    ``<size>x<size>/<name>.png`` layout under ``icons_href``.
    """
    parts = [
        "<!DOCTYPE html>",
        f"<html><head><meta charset='UTF-8'><title>{escape(title)}</title></head><body>",
    ]
    for name, w, h in header_images:
        dims = "".join(f' {k}="{v}"' for k, v in (("width", w), ("height", h)) if v)
        parts.append(f'<img src="{_href(src_href, name)}" alt="{_attr(name)}"{dims}>')
    parts.append(f"<h1>{escape(title)}</h1>")
    if intro:
        parts.append(f"<p>{escape(intro)}</p>")

    for asset in assets:
        parts.append(_asset_entry(asset, sizes, src_href, icons_href))

    parts.append(
        f'<p>All logos are licensed under the <a href="{_attr(license_url)}">'
        f"{escape(license_name)}</a> license.</p>"
    )
    if guidelines_url:
        parts.append(
            f'<p>For more information, please refer to the <a href="{_attr(guidelines_url)}">'
            "brand guidelines</a>.</p>"
        )
    parts.append("</body></html>")
    return "\n".join(parts) + "\n"


def parse_header_image(token: str) -> tuple[str, int | None, int | None]:
    """Split a ``name`` or ``name:WxH`` header image entry."""
    name, sep, dims = token.rpartition(":")
    m = re.fullmatch(r"(\d+)x(\d+)", dims.strip().lower()) if sep else None
    if not m:
        return token.strip(), None, None
    return name.strip(), int(m.group(1)), int(m.group(2))


def write_text_atomic(target: Path, text: str) -> None:
    tmp = target.with_suffix(target.suffix + ".tmp")
    try:
        with open(tmp, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        os.replace(tmp, target)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def write_index(settings: Settings) -> Path:
    """Write the gallery page for ``settings.src_path`` to ``settings.index_path``."""
    out = settings.index_path
    out_dir = out.parent
    src = settings.src_path

    try:
        assets = discover_assets(src, settings.extension)
    except ConfigurationError as e:
        logging.warning("%s Writing an empty gallery.", e)
        assets = []

    headers = [
        entry
        for entry in map(parse_header_image, settings.header_images)
        if (src / entry[0]).is_file()
    ]
    html = render_index(
        assets,
        settings.sizes,
        src_href=relative_href(src, out_dir),
        icons_href=relative_href(settings.icons_path, out_dir),
        title=settings.title,
        intro=settings.intro,
        header_images=headers,
        license_name=settings.license_name,
        license_url=settings.license_url,
        guidelines_url=settings.guidelines_url,
    )
    out_dir.mkdir(parents=True, exist_ok=True)
    write_text_atomic(out, html)

    missing = sum(
        1 for a in assets for s in settings.sizes
        if not artifact_path(settings.icons_path, s, a.name).exists()
    )
    if missing:
        logging.info("%d linked PNG(s) not rendered yet; run 'icon' to generate them", missing)
    logging.info("Wrote gallery %s (%d assets)", out, len(assets))
    return out
