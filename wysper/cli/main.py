"""CLI commands for Wysper."""

import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from wysper import __version__

app = typer.Typer(
    name="wysper",
    help="Wysper - skill-aware assistant with bounded conversation memory",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"Wysper v{__version__}")
        raise typer.Exit()


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
):
    """Wysper - interview and meeting copilot."""
    setup_logging(verbose)


def _create_assistant():
    from wysper.assistant import Assistant
    from wysper.config import load_config

    return Assistant(load_config())


def _print_reply(result) -> None:
    from wysper.bus import AssistantFailure

    if isinstance(result, AssistantFailure):
        console.print(f"[red]{result.error}[/red] [dim]({result.kind})[/dim]")
        return
    console.print(f"\n{result.response}\n")
    note = f"{result.skill} · {result.processing_time_ms} ms"
    if result.used_fallback:
        note += " · offline fallback"
    console.print(f"[dim]{note}[/dim]")


# ============================================================================
# Chat
# ============================================================================


@app.command()
def chat(
    message: str = typer.Option(None, "--message", "-m", help="Message to send"),
    skill: str = typer.Option(None, "--skill", "-s", help="Skill to use (e.g. dsa, system-design)"),
):
    """Chat with the assistant."""
    from wysper.bus import TextInput

    assistant = _create_assistant()

    if not assistant.orchestrator.is_configured:
        console.print("[red]Error: No Gemini API key configured.[/red]")
        console.print("Run [cyan]wysper set-key[/cyan] or set GEMINI_API_KEY.")
        raise typer.Exit(1)

    assistant.restore()
    if skill:
        assistant.switch_skill(skill)

    if message:
        # Single message mode
        async def run_once():
            _print_reply(await assistant.handle(TextInput(content=message)))

        asyncio.run(run_once())
    else:
        # Interactive mode
        console.print(
            f"Interactive mode, skill [cyan]{assistant.active_skill}[/cyan] "
            "(/skill NAME to switch, /clear to reset, Ctrl+C to exit)\n"
        )

        async def run_interactive():
            while True:
                try:
                    user_input = console.input("[bold blue]You:[/bold blue] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\nGoodbye!")
                    break
                if not user_input.strip():
                    continue
                if user_input.startswith("/skill "):
                    new_skill = assistant.switch_skill(user_input[len("/skill "):])
                    console.print(f"[green]>[/green] Skill: {new_skill}")
                    continue
                if user_input.strip() == "/clear":
                    assistant.clear()
                    console.print("[green]>[/green] Session cleared")
                    continue
                _print_reply(await assistant.handle(TextInput(content=user_input)))

        asyncio.run(run_interactive())

    assistant.close()


# ============================================================================
# Settings
# ============================================================================


@app.command("set-key")
def set_key():
    """Store the Gemini API key."""
    from wysper.config import get_config_path, load_config, save_config

    config = load_config()
    console.print("Get one at: [link=https://aistudio.google.com/apikey]https://aistudio.google.com/apikey[/link]\n")
    api_key = typer.prompt("Gemini API key", hide_input=True)
    if not api_key.strip():
        console.print("[red]API key cannot be empty.[/red]")
        raise typer.Exit(1)

    config.gemini.api_key = api_key.strip()
    save_config(config)
    console.print(f"[green]>[/green] Config saved to {get_config_path()}")


@app.command()
def skills():
    """List available skills."""
    from wysper.config import load_config
    from wysper.skills import SkillRegistry

    config = load_config()
    registry = SkillRegistry(config.prompts_path)

    table = Table(title="Skills")
    table.add_column("Skill", style="cyan")
    table.add_column("Language context")
    table.add_column("Active")
    for name in registry.available_skills():
        table.add_row(
            name,
            "yes" if registry.requires_programming_language(name) else "",
            "*" if name == config.skills.active else "",
        )
    console.print(table)


# ============================================================================
# Diagnostics
# ============================================================================


@app.command()
def status():
    """Show session memory usage and activity."""
    assistant = _create_assistant()
    assistant.restore()
    info = assistant.status()

    memory = info["memory"]
    console.print(f"Active skill: [cyan]{info['active_skill']}[/cyan]")
    console.print(
        f"Events:       {memory['event_count']} ({memory['approximate_size']}, "
        f"{memory['utilization_percent']}% of ceiling)"
    )
    for category, count in sorted(info["summary"]["activities"].items()):
        console.print(f"  {category:<12} {count}")
    for focus in info["summary"]["focus"]:
        console.print(f"  focus: {focus['skill']} ({focus['count']})")
    console.print(f"API key:      {'configured' if info['backend']['is_configured'] else 'missing'}")


@app.command()
def ping():
    """Check connectivity to the Gemini API."""
    assistant = _create_assistant()
    result = asyncio.run(assistant.orchestrator.test_connectivity())
    for test in result["tests"]:
        mark = "[green]ok[/green]" if test["success"] else f"[red]failed[/red] {test['error']}"
        console.print(f"{test['name']:<22} {test['host']}:{test['port']}  {mark}")
