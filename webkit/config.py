import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_SIZES: tuple[int, ...] = (16, 32, 64, 128, 256, 512)
CONVERTERS = frozenset({"auto", "imagemagick", "cairosvg"})
DEFAULT_INSTALL_CMD = "sudo apt update && sudo apt install -y imagemagick"


def _parse_sizes(raw: str | None) -> tuple[int, ...]:
    sizes: list[int] = []
    if not raw:
        return DEFAULT_SIZES
    for part in raw.replace(";", ",").split(","):
        p = part.strip().lower()
        if not p:
            continue
        # Accept "32x32" as well as "32"
        if "x" in p:
            w, _, h = p.partition("x")
            if w != h:
                continue
            p = w
        try:
            n = int(p)
        except ValueError:
            continue
        if n > 0 and n not in sizes:
            sizes.append(n)
    return tuple(sizes) or DEFAULT_SIZES


def _parse_names(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    parts = (p.strip() for p in raw.replace(";", ",").split(","))
    return tuple(p for p in parts if p)


def _parse_bool(raw: str | None, default: bool) -> bool:
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y"}


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_dir: Path
    src_dir: Path = Path("images/scalable")
    icons_dir: Path = Path("share/icons/hicolor")
    index_file: Path = Path("index.html")
    sizes: tuple[int, ...] = DEFAULT_SIZES
    extension: str = ".svg"
    # Gallery
    title: str = "Logos and Icons"
    intro: str = (
        "We've put together some logos and icons for you to use in your articles and projects."
    )
    header_images: tuple[str, ...] = Field(default_factory=tuple)
    license_name: str = "CC BY-SA 4.0"
    license_url: str = "https://creativecommons.org/licenses/by-sa/4.0/"
    guidelines_url: str | None = None
    # Conversion
    converter: str = "auto"
    convert_timeout_sec: int = 60
    jobs: int = 1
    allow_install: bool = True
    install_cmd: str = DEFAULT_INSTALL_CMD
    # Preview server
    port: int = Field(default=8080, ge=1, le=65535)
    bind: str = "127.0.0.1"
    stop_timeout_sec: float = 5.0
    # Logging
    log_file: Path | None = None
    log_level: str = "INFO"
    log_max_bytes: int = 5 * 1024 * 1024
    log_backups: int = 5

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return (v or "INFO").upper()

    @field_validator("base_dir", mode="before")
    @classmethod
    def _ensure_path(cls, v: Path | str) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("log_file", mode="before")
    @classmethod
    def _ensure_log_path(cls, v: str | Path | None) -> Path | None:
        if not v:
            return None
        return Path(v).expanduser().resolve()

    @field_validator("converter", mode="before")
    @classmethod
    def _known_converter(cls, v: str) -> str:
        name = (v or "auto").strip().lower()
        if name not in CONVERTERS:
            raise ValueError(f"unknown converter {v!r}, expected one of {sorted(CONVERTERS)}")
        return name

    @field_validator("sizes")
    @classmethod
    def _positive_sizes(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if not v or any(s <= 0 for s in v):
            raise ValueError("sizes must be a non-empty list of positive integers")
        return v

    @field_validator("extension", mode="before")
    @classmethod
    def _dotted_extension(cls, v: str) -> str:
        v = (v or ".svg").strip().lower()
        return v if v.startswith(".") else f".{v}"

    @field_validator("jobs", "convert_timeout_sec")
    @classmethod
    def _at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    def resolve(self, p: Path) -> Path:
        """Absolute form of a configured path, relative paths anchored at base_dir."""
        p = p.expanduser()
        return p if p.is_absolute() else (self.base_dir / p)

    @property
    def src_path(self) -> Path:
        return self.resolve(self.src_dir)

    @property
    def icons_path(self) -> Path:
        return self.resolve(self.icons_dir)

    @property
    def index_path(self) -> Path:
        return self.resolve(self.index_file)


def load_settings() -> Settings:
    base_dir_raw = os.getenv("WEBKIT_BASE_DIR", ".") or "."

    fields: dict[str, object] = {
        "base_dir": base_dir_raw,
        "sizes": _parse_sizes(os.getenv("WEBKIT_SIZES")),
        "header_images": _parse_names(os.getenv("WEBKIT_HEADER_IMAGES")),
        "allow_install": _parse_bool(os.getenv("WEBKIT_ALLOW_INSTALL"), True),
    }

    # Plain string/number settings: only override defaults when set and non-empty
    env_map = {
        "src_dir": "WEBKIT_SRC_DIR",
        "icons_dir": "WEBKIT_ICONS_DIR",
        "index_file": "WEBKIT_INDEX_FILE",
        "extension": "WEBKIT_EXTENSION",
        "title": "WEBKIT_TITLE",
        "guidelines_url": "WEBKIT_GUIDELINES_URL",
        "converter": "WEBKIT_CONVERTER",
        "convert_timeout_sec": "WEBKIT_CONVERT_TIMEOUT_SEC",
        "jobs": "WEBKIT_JOBS",
        "install_cmd": "WEBKIT_INSTALL_CMD",
        "port": "WEBKIT_PORT",
        "bind": "WEBKIT_BIND",
        # Logging
        "log_file": "LOG_FILE",
        "log_level": "LOG_LEVEL",
        "log_max_bytes": "LOG_MAX_BYTES",
        "log_backups": "LOG_BACKUPS",
    }
    for field, var in env_map.items():
        raw = (os.getenv(var) or "").strip()
        if raw:
            fields[field] = raw

    try:
        return Settings(**fields)
    except ValidationError as e:
        raise RuntimeError(f"Invalid configuration: {e}") from e
