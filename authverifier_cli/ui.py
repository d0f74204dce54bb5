import logging
import os
import time

import plotille
import pyfiglet
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

console = Console()
err_console = Console(stderr=True)

_FLAG_STYLES = {
    "ai": ("bold red", "AI"),
    "human": ("green", "HUMAN"),
    "uncertain": ("yellow", "UNSURE"),
}


def configure_logging(level: str = "WARNING"):
    """Route library logs through rich on stderr so --json output stays clean."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


def clear_screen():
    os.system('cls' if os.name == 'nt' else 'clear')


def type_text(text: str, style: str = "bold white", delay: float = 0.01):
    """Prints text one character at a time."""
    for char in text:
        console.print(f"[{style}]{char}[/{style}]", end="")
        time.sleep(delay)
    console.print()


def print_welcome():
    clear_screen()
    ascii_banner = pyfiglet.figlet_format("AuthVerifier", font="slant")
    console.print(f"[bold magenta]{ascii_banner}[/bold magenta]")
    console.print("[dim]" + "─" * 80 + "[/dim]\n")
    type_text("Is it AI? Paste some text or point me at an image.", style="bold white", delay=0.02)
    console.print("[dim]Every score comes with the signals that produced it. "
                  "These are heuristic estimates, not proof.[/dim]")
    console.print("[dim]" + "─" * 80 + "[/dim]\n")


def score_color(ai_probability: int) -> str:
    if ai_probability > 68:
        return "bold red"
    if ai_probability > 42:
        return "yellow"
    return "green"


def format_score(ai_probability: int, verdict: str) -> str:
    color = score_color(ai_probability)
    return f"[{color}]{ai_probability}% ({verdict})[/{color}]"


def format_flag(flag: str) -> str:
    style, label = _FLAG_STYLES.get(flag, ("dim", flag.upper()))
    return f"[{style}]{label}[/{style}]"


def build_signals_table(signals) -> Table:
    table = Table(title="Signals", show_header=True, header_style="bold magenta", expand=False)
    table.add_column("Signal", width=28)
    table.add_column("Finding")
    table.add_column("Lean", justify="center", width=8)
    for s in signals:
        table.add_row(s.name, s.value, format_flag(s.flag))
    return table


def build_sources_table(sources: list) -> Table:
    table = Table(title="Related Sources", show_header=True, header_style="bold cyan", expand=False)
    table.add_column("#", style="dim", width=3)
    table.add_column("Title", width=40)
    table.add_column("Where")
    for i, src in enumerate(sources, start=1):
        table.add_row(str(i), src.get("title") or "[dim]untitled[/dim]", src.get("displayUrl") or src.get("url") or "")
    return table


def render_detection(report: dict, label: str = None):
    """Verdict panel, signals table and (when found) related sources."""
    detection = report["detection"]
    color = score_color(detection.ai_probability)
    lines = [
        f"[{color}]VERDICT: {detection.verdict.upper()}[/{color}]\n",
        f"  AI probability    : [{color}]{detection.ai_probability}%[/{color}]",
        f"  Human probability : {detection.human_probability}%",
        f"  Confidence        : {detection.confidence}",
    ]
    if detection.engine:
        lines.append(f"  Engine            : {detection.engine}")
    if detection.note:
        lines.append(f"\n  [dim]{detection.note}[/dim]")

    title = f"[bold]{label or report['type'].capitalize()} Analysis[/bold]"
    console.print()
    console.print(Panel("\n".join(lines), title=title, border_style=color.replace("bold ", ""),
                        expand=False, padding=(1, 4)))
    if detection.signals:
        console.print(build_signals_table(detection.signals))
    if report["sources"]:
        console.print(build_sources_table(report["sources"]))
    console.print()


def build_batch_table(count: int) -> Table:
    table = Table(title=f"AI Analysis of {count} Files", show_header=True, header_style="bold magenta")
    table.add_column("File", width=30)
    table.add_column("Type", width=6)
    table.add_column("AI Score", justify="center", width=28)
    table.add_column("Confidence", justify="center", width=10)
    table.add_column("Strongest Signal")
    return table


def strongest_signal(signals) -> str:
    for flag in ("ai", "human"):
        for s in signals:
            if s.flag == flag:
                return f"{format_flag(flag)} {s.name}: {s.value}"
    return "[dim]No decisive signals[/dim]"


def batch_progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        transient=True,
        console=err_console,
    )


def render_trend_chart(results: list):
    if len(results) < 3:
        console.print("[dim]Not enough files to draw a chart (need at least 3).[/dim]")
        return

    console.print("\n[bold cyan]AI Probability per File (High = AI, Low = Human)[/bold cyan]")
    scores = [r["detection"].ai_probability / 100 for r in results]
    x_data = list(range(1, len(scores) + 1))

    fig = plotille.Figure()
    fig.width = 60
    fig.height = 15
    fig.set_x_limits(min_=1, max_=len(scores))
    fig.set_y_limits(min_=0.0, max_=1.0)
    fig.y_label = "AI Prob."
    fig.x_label = "Files (in table order)"

    avg_score = sum(scores) / len(scores)
    plot_color = 'green' if avg_score <= 0.42 else 'yellow' if avg_score <= 0.68 else 'red'
    fig.plot(x_data, scores, lc=plot_color)
    console.print(fig.show(), markup=False, highlight=False)


def render_batch_verdict(results: list, failed: int = 0):
    if not results:
        return
    probs = [r["detection"].ai_probability for r in results]
    avg = sum(probs) / len(probs)
    ai_count = sum(1 for r in results if r["detection"].verdict == "AI-Generated")
    uncertain_count = sum(1 for r in results if r["detection"].verdict == "Uncertain")

    if avg > 68 or ai_count / len(results) >= 0.5:
        color, label = "bold red", "MOSTLY AI-GENERATED"
        msg = "Most of these files carry AI signals. Review them before trusting their provenance."
    elif ai_count or uncertain_count:
        color, label = "bold yellow", "MIXED"
        msg = "Some files carry AI signals or could not be decided."
    else:
        color, label = "bold green", "LIKELY HUMAN / REAL"
        msg = "No file crossed the AI threshold."

    summary = (
        f"[{color}]VERDICT: {label}[/{color}]\n\n"
        f"  Average AI probability : [{color}]{avg:.0f}%[/{color}]\n"
        f"  Files analyzed         : {len(results)}\n"
        f"  AI-Generated           : [bold red]{ai_count}[/bold red]\n"
        f"  Uncertain              : [yellow]{uncertain_count}[/yellow]\n"
    )
    if failed:
        summary += f"  Skipped (errors)       : [dim]{failed}[/dim]\n"
    summary += f"\n  [dim]{msg}[/dim]"

    console.print()
    console.print(Panel(summary, title="[bold]Batch Complete[/bold]",
                        border_style=color.replace("bold ", ""), expand=False, padding=(1, 4)))
    console.print()
