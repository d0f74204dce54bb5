import json
import sys
from pathlib import Path
from typing import Optional

import questionary
import typer
from rich.console import Console
from rich.panel import Panel

from authverifier_cli.config import load_settings
from authverifier_cli.errors import AuthVerifierError
from authverifier_cli.pipeline import (
    analyze_image, analyze_path, analyze_text, batch_candidates, report_to_dict,
)
from authverifier_cli.ui import (
    batch_progress, build_batch_table, clear_screen, configure_logging, format_score,
    print_welcome, render_batch_verdict, render_detection, render_trend_chart, strongest_signal,
)

console = Console()
app = typer.Typer(help="AuthVerifier AI Content Detection CLI", add_completion=False)


def _settings():
    settings = load_settings()
    configure_logging(settings.log_level)
    return settings


def _emit_error(message: str, export_json: bool):
    if export_json:
        print(json.dumps({"error": message}))
    else:
        console.print(f"[bold red]Error[/bold red]: {message}")


def _emit_report(report: dict, export_json: bool):
    if export_json:
        print(json.dumps(report_to_dict(report), indent=2))
    else:
        render_detection(report)


def _run_text(text: str, settings, offline: bool, export_json: bool) -> bool:
    try:
        report = analyze_text(text, settings, online=not offline)
    except AuthVerifierError as e:
        _emit_error(str(e), export_json)
        return False
    _emit_report(report, export_json)
    return True


def _run_image(source: str, settings, offline: bool, export_json: bool, mime: str = None) -> bool:
    try:
        report = analyze_image(source, settings, mime_type=mime, online=not offline)
    except AuthVerifierError as e:
        _emit_error(str(e), export_json)
        return False
    _emit_report(report, export_json)
    return True


def _run_batch(directory: Path, count: int, settings, offline: bool, export_json: bool) -> bool:
    if not directory.is_dir():
        _emit_error(f"'{directory}' is not a directory.", export_json)
        return False
    files = batch_candidates(directory, count)
    if not files:
        _emit_error(f"No text (.txt, .md) or image (.png, .jpg, .jpeg, .webp) files in '{directory}'.", export_json)
        return False

    results, failures = [], []

    def _analyze_all(advance=None):
        for path in files:
            try:
                report = analyze_path(path, settings, online=not offline)
                report["file"] = path.name
                results.append(report)
            except (AuthVerifierError, ValueError) as e:
                failures.append({"file": path.name, "error": str(e)})
            if advance:
                advance()

    if export_json:
        _analyze_all()
        print(json.dumps({
            "files": [{"file": r["file"], **report_to_dict(r)} for r in results],
            "errors": failures,
        }, indent=2))
        return True

    with batch_progress() as progress:
        task = progress.add_task("[cyan]Analyzing files...", total=len(files))
        _analyze_all(lambda: progress.advance(task))

    table = build_batch_table(len(results))
    for r in results:
        detection = r["detection"]
        table.add_row(
            r["file"], r["type"],
            format_score(detection.ai_probability, detection.verdict),
            detection.confidence,
            strongest_signal(detection.signals),
        )
    console.print(table)
    for f in failures:
        console.print(f"[yellow]Skipped[/yellow] {f['file']}: {f['error']}")

    render_trend_chart(results)
    render_batch_verdict(results, failed=len(failures))
    return True


@app.command(name="text")
def text_cmd(
    text: Optional[str] = typer.Argument(None, help="Text to analyze (read from stdin when omitted)"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Read the text from a file"),
    export_json: bool = typer.Option(False, "--json", help="Export results as JSON"),
    offline: bool = typer.Option(False, "--offline", help="Heuristics only: skip the secondary scorer and source search"),
):
    """Estimate whether a piece of text was written by an AI."""
    settings = _settings()
    if file is not None:
        try:
            text = file.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            _emit_error(f"Could not read {file}: {e}", export_json)
            raise typer.Exit(code=1)
    elif text is None:
        text = sys.stdin.read()

    if not _run_text(text, settings, offline, export_json):
        raise typer.Exit(code=1)


@app.command(name="image")
def image_cmd(
    source: str = typer.Argument(..., help="Path or http(s) URL of the image"),
    mime: Optional[str] = typer.Option(None, "--mime", help="Declared MIME type (guessed when omitted)"),
    export_json: bool = typer.Option(False, "--json", help="Export results as JSON"),
    offline: bool = typer.Option(False, "--offline", help="Skip the reverse image search"),
):
    """Estimate whether an image was produced by an AI generator."""
    settings = _settings()
    if not _run_image(source, settings, offline, export_json, mime=mime):
        raise typer.Exit(code=1)


@app.command(name="batch")
def batch_cmd(
    directory: Path = typer.Argument(..., help="Folder with .txt/.md and image files"),
    count: int = typer.Option(20, help="Maximum number of files to analyze"),
    export_json: bool = typer.Option(False, "--json", help="Export results as JSON"),
    offline: bool = typer.Option(False, "--offline", help="Heuristics only: no network calls"),
):
    """Analyze every text and image file in a folder and summarize the results."""
    settings = _settings()
    if not _run_batch(directory, count, settings, offline, export_json):
        raise typer.Exit(code=1)


_HELP = (
    "[bold cyan]Available Commands:[/bold cyan]\n"
    "  [bold]analyze[/bold]              - Pick what to check from a menu\n"
    "  [bold]text[/bold]                 - Paste text to analyze (Esc then Enter to submit)\n"
    "  [bold]image <path|url>[/bold]     - Analyze an image file or URL\n"
    "  [bold]batch <dir> [count][/bold]  - Analyze a folder of files\n"
    "  [bold]offline[/bold]              - Toggle network collaborators on/off\n"
    "  [bold]clear[/bold]                - Clear the terminal screen\n"
    "  [bold]exit[/bold]                 - Quit the session"
)


def _ask_text(settings, offline: bool):
    pasted = questionary.text("Paste the text:", multiline=True).ask()
    if pasted:
        _run_text(pasted, settings, offline, export_json=False)


@app.command(name="interactive")
def interactive_cmd():
    """Start an interactive session."""
    settings = _settings()
    print_welcome()
    offline = False
    console.print("[dim]Type 'analyze' to get started, or 'help' for commands.[/dim]\n")

    while True:
        try:
            try:
                raw_input = input(f"[{'offline' if offline else 'online'}] authverifier> ")
            except EOFError:
                raw_input = None

            if raw_input is None:
                console.print("\n[dim]Session terminated.[/dim]")
                break

            command = raw_input.strip()
            lowered = command.lower()
            if not command:
                continue

            if lowered in ["exit", "quit", "q"]:
                console.print("[dim]Goodbye![/dim]")
                break

            elif lowered == "clear":
                clear_screen()
                print_welcome()

            elif lowered in ["help", "?"]:
                console.print(Panel(_HELP, title="AuthVerifier Help", border_style="cyan", expand=False))

            elif lowered == "offline":
                offline = not offline
                console.print(f"[green]Network collaborators {'disabled' if offline else 'enabled'}.[/green]")

            elif lowered == "analyze":
                choice = questionary.select(
                    "What do you want to check?",
                    choices=["Text", "Image", "Folder"],
                ).ask()
                if choice == "Text":
                    _ask_text(settings, offline)
                elif choice == "Image":
                    source = questionary.path("Image path or URL:").ask()
                    if source:
                        _run_image(source.strip(), settings, offline, export_json=False)
                elif choice == "Folder":
                    folder = questionary.path("Folder:", only_directories=True).ask()
                    if folder:
                        _run_batch(Path(folder.strip()), 20, settings, offline, export_json=False)

            elif lowered == "text":
                _ask_text(settings, offline)

            elif lowered.startswith("image "):
                _run_image(command[6:].strip(), settings, offline, export_json=False)

            elif lowered.startswith("batch "):
                parts = command[6:].strip().rsplit(" ", 1)
                count = 20
                if len(parts) == 2 and parts[1].isdigit():
                    count = int(parts[1])
                    folder = parts[0]
                else:
                    folder = command[6:].strip()
                _run_batch(Path(folder), count, settings, offline, export_json=False)

            else:
                console.print(f"[yellow]Unknown command:[/yellow] '{command}'. Type 'help' to see available commands.")

        except KeyboardInterrupt:
            console.print("\n[dim]Session terminated.[/dim]")
            break
        except Exception as e:
            console.print(f"[bold red]An unexpected error occurred:[/bold red] {e}")


def main():
    if len(sys.argv) == 1:
        interactive_cmd()
    else:
        app()


if __name__ == "__main__":
    main()
