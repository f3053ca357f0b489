# display.py
# All terminal output for the tool-program CLI.
#
# This module owns presentation entirely. The engine never formats for the
# terminal: the CLI feeds progress events and outcomes to the functions
# here.
#
# Colour language:
#   cyan    routing / program structure
#   magenta step progress
#   green   success
#   yellow  cancellation
#   red     failures

import json
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from tool_program.models import Program, ProgressEvent, ResultEvent, StatusEvent

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    if len(value) > max_len:
        return value[:max_len] + "…"
    return value


def _render(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


# ---------------------------------------------------------------------------
# Program
# ---------------------------------------------------------------------------


def banner(source: str, tool_count: int) -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Tool Program Runner[/bold cyan]\n"
            "[dim]Sequential tool programs with {{step.path}} data flow[/dim]\n\n"
            f"[dim]Program :[/dim] [white]{escape(source)}[/white]\n"
            f"[dim]Tools   :[/dim] [white]{tool_count}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def program_parsed(program: Program) -> None:
    console.print()
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="cyan",
        show_header=True,
        header_style="bold cyan",
        padding=(0, 1),
    )
    table.add_column("ID", style="bold white")
    table.add_column("Tool", style="bold white")
    table.add_column("Args", style="dim white")

    for step in program.steps:
        table.add_row(escape(step.id), escape(step.tool), escape(_mono(json.dumps(step.args, ensure_ascii=False), 60)))

    console.print(
        Panel(
            table,
            title=_label("PROGRAM", "cyan"),
            subtitle=f"[dim]{len(program.steps)} step(s)[/dim]",
            border_style="cyan",
            padding=(0, 1),
        )
    )
    console.print(Rule("[cyan]EXECUTION[/cyan]", style="cyan"))


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


def step_event(event: StatusEvent) -> None:
    if event.phase == "started":
        console.print(f"  [magenta]▶[/magenta] [white]{escape(event.status)}[/white]")
    elif event.phase == "completed":
        console.print(f"  [bold green]✓[/bold green] [dim]{escape(event.status)}[/dim]")
    else:
        console.print(f"  [bold red]✗[/bold red] [red]{escape(_mono(event.status, 200))}[/red]")


def progress(event: ProgressEvent) -> None:
    if isinstance(event, StatusEvent):
        step_event(event)
    elif event.canceled:
        canceled(event)
    elif isinstance(event.result, dict) and "error" in event.result:
        failure(event.result)
    else:
        final_result(event.result)


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


def final_result(result: Any) -> None:
    console.print()
    console.print(
        Panel(
            f"[white]{escape(_render(result))}[/white]",
            title=_label("RESULT", "green"),
            border_style="green",
            padding=(1, 2),
        )
    )
    console.print()


def failure(payload: dict) -> None:
    failed = payload.get("failedStep")
    where = f"[dim]Failed step:[/dim] [white]{escape(str(failed))}[/white]\n\n" if failed else ""
    console.print()
    console.print(
        Panel(
            f"{where}[bold white]{escape(str(payload.get('error')))}[/bold white]",
            title=_label("HALT", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
    console.print()


def canceled(event: ResultEvent) -> None:
    console.print()
    console.print(
        Panel(
            "[bold yellow]Program cancelled.[/bold yellow]\n"
            "[dim]Steps already finished kept their side effects; no further step was started.[/dim]",
            title=_label("CANCELLED", "yellow"),
            border_style="yellow",
            padding=(0, 2),
        )
    )
    console.print()


def invalid_program(message: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold white]{escape(message)}[/bold white]",
            title=_label("INVALID PROGRAM", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
    console.print()


# ---------------------------------------------------------------------------
# Introspection
# ---------------------------------------------------------------------------


def tools_info(info: dict) -> None:
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="dim",
        show_header=True,
        header_style="bold dim",
        padding=(0, 1),
    )
    table.add_column("Tool", style="bold white")
    table.add_column("Description", style="white")
    table.add_column("Result schema", style="dim white")

    for descriptor in info.get("tools_info", []):
        if "error" in descriptor:
            table.add_row(escape(descriptor["name"]), f"[red]{escape(descriptor['error'])}[/red]", "")
            continue
        schema = descriptor.get("result_schema")
        table.add_row(
            escape(descriptor["name"]),
            escape(descriptor.get("description", "")),
            escape(_mono(json.dumps(schema), 60)) if schema is not None else "[dim]not yet observed[/dim]",
        )

    console.print()
    console.print(Panel(table, title=_label("TOOLS", "cyan"), border_style="cyan", padding=(0, 1)))
