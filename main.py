from __future__ import annotations

import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler

from dotenv import load_dotenv

from webkit.cli import run
from webkit.config import Settings, load_settings


def setup_logging(settings: Settings) -> None:
    # Configure logging: console always; optional rotating file
    log_format = "%(asctime)s %(levelname)s %(name)s %(message)s"
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=log_format)
    if settings.log_file:
        try:
            settings.log_file.parent.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(
                settings.log_file,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backups,
                encoding="utf-8",
            )
            fh.setLevel(level)
            fh.setFormatter(logging.Formatter(log_format))
            root = logging.getLogger()
            root.addHandler(fh)
        except OSError:
            logging.exception("Failed to set up file logging")


def main(argv: list[str] | None = None) -> int:
    # Load .env if present
    load_dotenv()

    try:
        settings = load_settings()
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    setup_logging(settings)
    logging.debug("Base dir: %s", settings.base_dir)
    return asyncio.run(run(sys.argv[1:] if argv is None else argv, settings))


def cli_entry() -> None:
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    cli_entry()
