"""
Main CLI entry point for ollama-mcp.

Composition root: loads configuration once, builds the clients from
explicit config sections, and renders results with Rich.
"""
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .. import __version__
from ..adapters import ChatAdapter, format_file_size
from ..config import LogLevel, get_config, get_config_dir, reload_config, save_config
from ..envelope.client import EnvelopeClient
from ..exceptions import OllamaMCPError, format_error_for_user
from ..logging import configure_logging, get_main_logger
from ..ollama.client import OllamaClient
from ..ollama.models import ChatRole, GenerateRequest, GenerateResult, PullProgress

app = typer.Typer(
    name="ollama-mcp",
    help="Ollama client and request/response envelope tool server.",
    add_completion=False,
    rich_markup_mode="rich"
)

models_app = typer.Typer(name="models", help="Model management commands")
tools_app = typer.Typer(name="tools", help="Envelope tool commands")
context_app = typer.Typer(name="context", help="Envelope context commands")
config_app = typer.Typer(name="config", help="Configuration management commands")
app.add_typer(models_app, name="models")
app.add_typer(tools_app, name="tools")
app.add_typer(context_app, name="context")
app.add_typer(config_app, name="config")

console = Console()


@app.callback()
def main(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to configuration file"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", "-l", help="Log level (DEBUG, INFO, WARNING, ERROR)"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """ollama-mcp: talk to a local Ollama daemon directly or through the envelope server."""
    try:
        config = reload_config(config_file) if config_file else get_config()

        if log_level:
            config.logging.level = LogLevel(log_level.upper())
        if debug:
            config.logging.level = LogLevel.DEBUG

        configure_logging(config.logging)

    except Exception as e:
        console.print(f"[red]Error initializing ollama-mcp: {e}[/red]")
        sys.exit(1)


async def _with_ollama(func, *args, **kwargs):
    """Run ``func(client, ...)`` with an Ollama client that is closed afterwards."""
    async with OllamaClient(get_config().ollama) as client:
        return await func(client, *args, **kwargs)


async def _with_envelope(func, *args, **kwargs):
    async with EnvelopeClient(get_config().mcp) as client:
        return await func(client, *args, **kwargs)


def _fail(action: str, error: Exception) -> None:
    console.print(f"[red]Error {action}: {format_error_for_user(error)}[/red]")
    sys.exit(1)


def _parse_arguments(pairs: List[str]) -> Dict[str, Any]:
    """Turn ``key=value`` pairs into tool arguments; values are JSON when they parse."""
    arguments: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{pair}'")
        try:
            arguments[key] = json.loads(raw)
        except json.JSONDecodeError:
            arguments[key] = raw
    return arguments


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
):
    """Run the envelope server."""
    from ..server import run_server

    config = get_config()
    if host:
        config.server.host = host
    if port:
        config.server.port = port

    console.print(f"[bold green]Serving on http://{config.server.host}:{config.server.port}[/bold green]")
    try:
        run_server(config)
    except KeyboardInterrupt:
        get_main_logger().info("Server interrupted")


@app.command()
def health():
    """Check whether the Ollama daemon is reachable."""
    config = get_config()
    with console.status("[bold blue]Checking Ollama..."):
        healthy = asyncio.run(_with_ollama(lambda client: client.health_check()))

    if healthy:
        console.print(f"[green]✓[/green] Ollama is reachable at {config.ollama.base_url}")
    else:
        console.print(f"[red]✗[/red] Ollama is not reachable at {config.ollama.base_url}")
        raise typer.Exit(1)


@models_app.command("list")
def list_models():
    """List installed models."""
    try:
        with console.status("[bold blue]Fetching models..."):
            models = asyncio.run(_with_ollama(lambda client: client.list_models()))
    except OllamaMCPError as e:
        _fail("listing models", e)

    if not models:
        console.print("[yellow]No models installed[/yellow]")
        return

    table = Table(title="Installed Models")
    table.add_column("Name", style="green")
    table.add_column("Family", style="cyan")
    table.add_column("Parameters", style="dim")
    table.add_column("Size", justify="right")
    table.add_column("Modified", style="dim")

    for model in models:
        table.add_row(
            model.name,
            model.details.family or "-",
            model.details.parameter_size or "-",
            format_file_size(model.size),
            model.modified_at[:19],
        )

    console.print(table)


@models_app.command("show")
def show_model(name: str = typer.Argument(..., help="Model name")):
    """Show details of one installed model."""
    model = asyncio.run(_with_ollama(lambda client: client.get_model(name)))
    if model is None:
        console.print(f"[yellow]Model '{name}' not found[/yellow]")
        raise typer.Exit(1)

    console.print(Panel.fit(
        f"[bold]Name:[/bold] {model.name}\n" +
        f"[bold]Family:[/bold] {model.details.family or 'unknown'}\n" +
        f"[bold]Parameters:[/bold] {model.details.parameter_size or 'unknown'}\n" +
        f"[bold]Quantization:[/bold] {model.details.quantization_level or 'unknown'}\n" +
        f"[bold]Size:[/bold] {format_file_size(model.size)}\n" +
        f"[bold]Digest:[/bold] {model.digest or 'unknown'}\n" +
        f"[bold]Modified:[/bold] {model.modified_at}",
        title="Model Information"
    ))


@models_app.command("pull")
def pull_model(name: str = typer.Argument(..., help="Model name")):
    """Download a model."""
    with console.status(f"[bold blue]Pulling {name}...") as status:
        def on_progress(progress: PullProgress) -> None:
            line = progress.status
            if progress.total and progress.completed is not None:
                line = f"{line} {format_file_size(progress.completed)} / {format_file_size(progress.total)}"
            status.update(f"[bold blue]{line}")

        try:
            asyncio.run(_with_ollama(lambda client: client.pull_model(name, on_progress=on_progress)))
        except OllamaMCPError as e:
            _fail(f"pulling {name}", e)

    console.print(f"[green]✓[/green] Pulled {name}")


@app.command()
def generate(
    prompt: str = typer.Argument(..., help="Prompt to complete"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model to use"),
    stream: bool = typer.Option(False, "--stream", "-s", help="Print fragments as they arrive"),
):
    """Complete a single prompt."""
    request = GenerateRequest(prompt=prompt, model=model)

    def on_frame(frame: GenerateResult) -> None:
        console.print(frame.response, end="", markup=False, highlight=False)

    try:
        if stream:
            asyncio.run(_with_ollama(lambda client: client.generate_stream(request, on_frame=on_frame)))
            console.print()
        else:
            with console.status("[bold blue]Generating..."):
                result = asyncio.run(_with_ollama(lambda client: client.generate(request)))
            console.print(result.response, markup=False, highlight=False)
    except OllamaMCPError as e:
        _fail("generating", e)


@app.command()
def chat(
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model to use"),
    stream: bool = typer.Option(True, "--stream/--no-stream", help="Stream assistant replies"),
):
    """Interactive chat. An empty line or Ctrl-D ends the session."""

    async def _chat_loop(client: OllamaClient) -> None:
        adapter = ChatAdapter(client, model)
        while True:
            try:
                content = console.input("[bold cyan]you>[/bold cyan] ").strip()
            except EOFError:
                break
            if not content:
                break

            printed = 0
            console.print("[bold green]assistant>[/bold green] ", end="")

            def on_change(state) -> None:
                nonlocal printed
                if adapter.messages and adapter.messages[-1].role is ChatRole.ASSISTANT:
                    text = adapter.messages[-1].content
                    console.print(text[printed:], end="", markup=False, highlight=False)
                    printed = len(text)

            unsubscribe = adapter.subscribe(on_change)
            try:
                if stream:
                    await adapter.send_message_stream(content)
                else:
                    await adapter.send_message(content)
            finally:
                unsubscribe()
            console.print()

            if adapter.state.error:
                console.print(f"[red]{adapter.state.error}[/red]")

    try:
        asyncio.run(_with_ollama(_chat_loop))
    except KeyboardInterrupt:
        console.print("\n[yellow]Chat ended[/yellow]")


@tools_app.command("list")
def list_tools():
    """List the tools offered by the envelope server."""
    try:
        tools = asyncio.run(_with_envelope(lambda client: client.list_tools()))
    except OllamaMCPError as e:
        _fail("listing tools", e)

    table = Table(title="Available Tools")
    table.add_column("Name", style="green", no_wrap=True)
    table.add_column("Description")
    table.add_column("Arguments", style="dim")

    for tool in tools:
        required = set(tool.input_schema.required or [])
        arguments = ", ".join(
            f"{name}*" if name in required else name
            for name in tool.input_schema.properties
        )
        table.add_row(tool.name, tool.description, arguments or "-")

    console.print(table)


@tools_app.command("call")
def call_tool(
    name: str = typer.Argument(..., help="Tool name"),
    args: List[str] = typer.Option([], "--arg", "-a", help="Tool argument as key=value"),
):
    """Invoke a tool through the envelope server."""
    arguments = _parse_arguments(args)
    try:
        with console.status(f"[bold blue]Calling {name}..."):
            result = asyncio.run(_with_envelope(lambda client: client.call_tool(name, arguments)))
    except OllamaMCPError as e:
        _fail(f"calling {name}", e)

    console.print_json(data=result)


@context_app.command("get")
def get_context(
    context_type: str = typer.Argument(..., help="Context type, e.g. project or deployment"),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Optional query"),
):
    """Fetch a context blob from the envelope server."""
    try:
        result = asyncio.run(_with_envelope(lambda client: client.get_context(context_type, query)))
    except OllamaMCPError as e:
        _fail("fetching context", e)

    console.print_json(data=result)


@config_app.command("show")
def show_config():
    """Show current configuration."""
    config = get_config()

    console.print(Panel.fit(
        f"[bold]Base URL:[/bold] {config.ollama.base_url}\n" +
        f"[bold]Default Model:[/bold] {config.ollama.model}\n" +
        f"[bold]Timeout:[/bold] {config.ollama.timeout}s\n" +
        f"[bold]Pull Policy:[/bold] {config.ollama.pull_policy.value}",
        title="Ollama Configuration"
    ))

    console.print(Panel.fit(
        f"[bold]Base URL:[/bold] {config.mcp.base_url}\n" +
        f"[bold]API Key:[/bold] {'*' * 8 if config.mcp.api_key else 'not set'}\n" +
        f"[bold]Listen:[/bold] {config.server.host}:{config.server.port}\n" +
        f"[bold]Require Auth:[/bold] {config.server.require_auth}",
        title="Envelope Configuration"
    ))

    console.print(Panel.fit(
        f"[bold]Log Level:[/bold] {config.logging.level.value}\n" +
        f"[bold]Log Format:[/bold] {config.logging.format}\n" +
        f"[bold]Log File:[/bold] {config.logging.file or 'Console only'}",
        title="Logging Configuration"
    ))


@config_app.command("init")
def init_config(
    path: Optional[Path] = typer.Argument(None, help="Where to write the file"),
    force: bool = typer.Option(False, "--force", help="Overwrite existing configuration"),
):
    """Write the current configuration to a YAML file."""
    target = path or get_config_dir() / "config.yaml"
    if target.exists() and not force:
        console.print(f"[yellow]{target} already exists; use --force to overwrite[/yellow]")
        raise typer.Exit(1)

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        written = save_config(get_config(), target)
    except OSError as e:
        _fail("writing configuration", e)

    console.print(f"[green]✓[/green] Configuration written to {written}")


@app.command()
def version():
    """Show version information."""
    console.print(Panel.fit(
        f"[bold cyan]ollama-mcp[/bold cyan] v{__version__}\n\n" +
        "Ollama client and request/response\n" +
        "envelope tool server.",
        title="Version Information"
    ))


def main_entry():
    """Entry point for the CLI application."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main_entry()
