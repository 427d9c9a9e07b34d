from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence

from .config import Settings
from .converters import Prompt, ensure_converter, make_converters
from .errors import WebKitError
from .gallery import write_index
from .regenerator import regenerate
from .server import WaitForStop, serve

HELP = (
    "Usage: web-kit <command> [options]\n"
    "\n"
    "Commands:\n"
    "\n"
    "    help          - Show this help message\n"
    "    icon          - Render PNG icon sizes from the SVG source directory\n"
    "    index [serve] - Write the HTML gallery; with 'serve', preview it afterwards\n"
    "    server [dir]  - Serve the base directory over HTTP, opening at [dir]\n"
    "\n"
    "Examples:\n"
    "    web-kit icon\n"
    "    web-kit index serve\n"
    "    web-kit server share/icons\n"
    "\n"
    "Configuration is read from the environment or a .env file (WEBKIT_*, LOG_*).\n"
)


class _Context:
    def __init__(
        self,
        settings: Settings,
        prompt: Prompt | None = None,
        wait_for_stop: WaitForStop | None = None,
    ):
        self.settings = settings
        self.prompt = prompt
        self.wait_for_stop = wait_for_stop


async def cmd_help(args: Sequence[str], ctx: _Context) -> int:
    print(HELP, end="")
    return 0


async def cmd_index(args: Sequence[str], ctx: _Context) -> int:
    path = write_index(ctx.settings)
    print(f"HTML file created: {path}")
    if args and args[0] == "serve":
        base = ctx.settings.base_dir
        index_href = path.relative_to(base).as_posix() if path.is_relative_to(base) else "."
        return await serve(ctx.settings, index_href, ctx.wait_for_stop)
    return 0


async def cmd_icon(args: Sequence[str], ctx: _Context) -> int:
    s = ctx.settings
    converter = await ensure_converter(
        s.converter,
        make_converters(s.convert_timeout_sec),
        allow_install=s.allow_install,
        install_cmd=s.install_cmd,
        prompt=ctx.prompt,
    )
    logging.info("Using converter: %s", converter.name)
    report = await regenerate(
        s.src_path, s.icons_path, s.sizes, converter, extension=s.extension, jobs=s.jobs
    )
    print(f"Icons in {s.icons_path}: {report.summary()}")
    for failure in report.failed:
        print(f"Failed to convert {failure.task.asset.path} to {failure.task.output}")
    return 0 if report.ok else 1


async def cmd_server(args: Sequence[str], ctx: _Context) -> int:
    directory = args[0] if args else "."
    return await serve(ctx.settings, directory, ctx.wait_for_stop)


Handler = Callable[[Sequence[str], _Context], Awaitable[int]]

COMMANDS: dict[str, Handler] = {
    "help": cmd_help,
    "-h": cmd_help,
    "--help": cmd_help,
    "index": cmd_index,
    "icon": cmd_icon,
    "server": cmd_server,
}


async def run(
    argv: Sequence[str],
    settings: Settings,
    *,
    prompt: Prompt | None = None,
    wait_for_stop: WaitForStop | None = None,
) -> int:
    """Dispatch ``argv`` (without the program name) and return the exit code."""
    name = argv[0] if argv else "help"
    handler = COMMANDS.get(name, cmd_help)
    ctx = _Context(settings, prompt=prompt, wait_for_stop=wait_for_stop)
    try:
        return await handler(list(argv[1:]), ctx)
    except WebKitError as e:
        logging.error("%s", e)
        print(f"Error: {e}")
        return e.exit_code
