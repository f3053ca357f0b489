# run.py
# CLI entry point. Config and wiring only: no engine logic lives here.
#
#   tool-program examples/hello.json
#   tool-program examples/hello.json --describe echo
#   tool-program --describe web_search --describe file_write

import asyncio
import json
import signal

import click

from tool_program import display
from tool_program.config import Settings
from tool_program.engine import ProgramEngine
from tool_program.errors import ProgramValidationError
from tool_program.log import configure_logging
from tool_program.models import Program, ResultEvent
from tool_program.runner import coerce_program
from tool_program.tools import build_tools

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELED = 130


async def _execute(engine: ProgramEngine, program: Program) -> int:
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
    except (NotImplementedError, RuntimeError):
        # No signal handlers on this platform/thread: Ctrl-C aborts instead.
        pass

    exit_code = EXIT_FAILED
    try:
        async for event in engine.run_program_with_updates(program, cancel=cancel):
            display.progress(event)
            if isinstance(event, ResultEvent):
                if event.canceled:
                    exit_code = EXIT_CANCELED
                elif not (isinstance(event.result, dict) and "error" in event.result):
                    exit_code = EXIT_OK
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass
    return exit_code


@click.command()
@click.argument("program_file", type=click.Path(exists=True, dir_okay=False), required=False)
@click.option("--describe", "-d", multiple=True, help="Describe a tool (repeatable). Runs after the program, if any.")
@click.option("--log-level", "-l", default=None, help="Logging level (default: TOOL_PROGRAM_LOG_LEVEL or WARNING).")
@click.pass_context
def main(ctx: click.Context, program_file: str | None, describe: tuple[str, ...], log_level: str | None) -> None:
    """Run a JSON tool program against the bundled demo tools."""
    settings = Settings.from_env()
    configure_logging(log_level or settings.log_level)
    engine = ProgramEngine(build_tools(settings), settings)

    if not program_file and not describe:
        raise click.UsageError("PROGRAM_FILE is required unless --describe is given.")

    exit_code = EXIT_OK
    if program_file:
        try:
            with open(program_file, encoding="utf-8") as fh:
                program = coerce_program(json.load(fh))
        except json.JSONDecodeError as exc:
            display.invalid_program(f"{program_file} is not valid JSON: {exc}")
            ctx.exit(EXIT_FAILED)
        except ProgramValidationError as exc:
            display.invalid_program(str(exc))
            ctx.exit(EXIT_FAILED)

        display.banner(program_file, len(engine.introspection.tool_names))
        display.program_parsed(program)
        exit_code = asyncio.run(_execute(engine, program))

    if describe:
        display.tools_info(engine.get_tools_info(list(describe)))

    ctx.exit(exit_code)


if __name__ == "__main__":
    main()
