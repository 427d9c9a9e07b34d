from pathlib import Path

import pytest

from webkit.config import Settings
from webkit.gallery import parse_header_image, render_index, write_index, write_text_atomic
from webkit.regenerator import SourceAsset


def test_render_index_links_every_size():
    assets = [SourceAsset(Path("images/scalable/tux.svg"), "tux")]
    html = render_index(
        assets, [16, 32], src_href="images/scalable", icons_href="share/icons/hicolor", title="T"
    )
    assert html.startswith("<!DOCTYPE html>")
    assert "<meta charset='UTF-8'>" in html
    assert "<title>T</title>" in html and "<h1>T</h1>" in html
    assert '<img src="images/scalable/tux.svg" alt="tux.svg" width="64" height="64">' in html
    assert '<a href="share/icons/hicolor/16x16/tux.png">16x16 tux.png</a>' in html
    assert '<a href="share/icons/hicolor/32x32/tux.png">32x32 tux.png</a>' in html
    assert html.count("<hr>") == 1
    assert "CC BY-SA 4.0" in html
    assert "brand guidelines" not in html


def test_render_index_escapes_names():
    assets = [SourceAsset(Path("x/a&b\".svg"), "a&b\"")]
    html = render_index(
        assets, [16], src_href="x", icons_href="i", title="<Logos>",
        guidelines_url="https://example.org/?a=1&b=2",
    )
    assert "<title>&lt;Logos&gt;</title>" in html
    assert 'href="i/16x16/a%26b%22.png"' in html
    assert "16x16 a&amp;b&quot;.png" in html
    assert 'href="https://example.org/?a=1&amp;b=2"' in html


def test_write_index(tmp_path: Path):
    src = tmp_path / "images" / "scalable"
    src.mkdir(parents=True)
    (src / "badge.svg").write_text("<svg/>")
    (src / "armbian_logo_v2.svg").write_text("<svg/>")
    s = Settings(
        base_dir=tmp_path,
        sizes=(16, 64),
        header_images=("armbian_logo_v2.svg:512x128", "badge.svg", "missing.svg:64x64"),
    )

    out = write_index(s)
    assert out == tmp_path.resolve() / "index.html"
    html = out.read_text(encoding="utf-8")
    # link prefix matches the regenerator's default output root
    assert '<a href="share/icons/hicolor/64x64/badge.png">' in html
    assert '<img src="images/scalable/armbian_logo_v2.svg" alt="armbian_logo_v2.svg" width="512" height="128">' in html
    assert '<img src="images/scalable/badge.svg" alt="badge.svg">' in html
    assert "missing.svg" not in html
    assert html.count("<hr>") == 2
    assert not (out.parent / "index.html.tmp").exists()


def test_write_index_relative_to_nested_output(tmp_path: Path):
    (tmp_path / "images" / "scalable").mkdir(parents=True)
    (tmp_path / "images" / "scalable" / "tux.svg").write_text("<svg/>")
    s = Settings(base_dir=tmp_path, index_file=Path("site/index.html"), sizes=(32,))

    html = write_index(s).read_text(encoding="utf-8")
    assert '<a href="../share/icons/hicolor/32x32/tux.png">' in html
    assert 'src="../images/scalable/tux.svg"' in html


def test_write_index_without_sources_is_empty_gallery(tmp_path: Path):
    s = Settings(base_dir=tmp_path)
    html = write_index(s).read_text(encoding="utf-8")
    assert "<hr>" not in html
    assert "</body></html>" in html


def test_render_index_percent_encodes_links():
    assets = [SourceAsset(Path("s/100%#1 v2.svg"), "100%#1 v2")]
    html = render_index(assets, [16], src_href="s", icons_href="i")
    assert '<a href="i/16x16/100%25%231%20v2.png">16x16 100%#1 v2.png</a>' in html
    assert '<img src="s/100%25%231%20v2.svg" alt="100%#1 v2.svg"' in html


def test_parse_header_image():
    assert parse_header_image("tux.svg") == ("tux.svg", None, None)
    assert parse_header_image("wordmark.svg:512x128") == ("wordmark.svg", 512, 128)
    assert parse_header_image(" tux.svg : 128X128 ") == ("tux.svg", 128, 128)
    # a colon that is not a size suffix stays part of the name
    assert parse_header_image("a:b.svg") == ("a:b.svg", None, None)


def test_write_text_atomic_cleans_up_on_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    target = tmp_path / "index.html"

    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("webkit.gallery.os.replace", failing_replace)
    with pytest.raises(OSError, match="disk full"):
        write_text_atomic(target, "<html></html>")
    assert list(tmp_path.iterdir()) == []
