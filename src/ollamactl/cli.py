"""
Main CLI interface for ollamactl

Provides the command-line interface using Click; progress and errors go to
stderr through rich, command output goes to stdout untouched.
"""

import asyncio
import signal
import sys
import threading
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, TextIO

import click
import structlog
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, DownloadColumn, Progress, SpinnerColumn, TextColumn

from . import __version__
from .core.config import Config
from .core.logs import LogFileError, follow, tail
from .core.modelfile import ModelfileError, get_modelfile_name, parse_modelfile
from .core.ollama_client import OllamaClient, OllamaError, ProgressResponse
from .ui.formatting import RenderError, render, render_model_list
from .utils.logging import setup_logging

err_console = Console(stderr=True, soft_wrap=True)
logger = structlog.get_logger(__name__)

ERR_UNAUTHORIZED = (
    "you are not authorized to push to this namespace, "
    "create the model under a namespace you own"
)

DEFAULT_REGISTRY_HOSTS = ("registry.ollama.ai", "ollama.com")


def fail(message: str):
    """Print an error and exit with status 1"""
    err_console.print(f"[red]Error: {escape(message)}[/red]")
    sys.exit(1)


@click.group()
@click.option('--config', '-c', type=click.Path(), help='Configuration file path')
@click.option('--verbose', is_flag=True, help='Enable verbose logging')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.version_option(__version__, prog_name="ollamactl")
@click.pass_context
def main(ctx, config: Optional[str], verbose: bool, debug: bool):
    """ollamactl

    Inspect models on a local Ollama server and read its logs.
    """
    try:
        app_config = Config(Path(config) if config else None)
    except ValueError as e:
        fail(f"Configuration error: {e}")

    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    else:
        level = app_config.logging.level
    setup_logging(level, json_output=app_config.logging.format == "json")

    ctx.ensure_object(dict)
    ctx.obj['config'] = app_config
    ctx.obj.setdefault(
        'client_factory',
        lambda: OllamaClient(app_config.host, timeout=app_config.api.timeout),
    )


@main.command()
@click.argument('model')
@click.option('--verbose', '-v', is_flag=True, help='Show metadata and tensors')
@click.pass_context
def show(ctx, model: str, verbose: bool):
    """Show information for a model"""
    try:
        asyncio.run(show_command(ctx.obj['client_factory'], model, verbose, sys.stdout))
    except (OllamaError, RenderError) as e:
        fail(str(e))


@main.command(name="list")
@click.argument('prefixes', nargs=-1)
@click.pass_context
def list_(ctx, prefixes):
    """List models, optionally only those whose name starts with PREFIXES"""
    try:
        asyncio.run(list_command(ctx.obj['client_factory'], prefixes, sys.stdout))
    except (OllamaError, RenderError) as e:
        fail(str(e))


@main.command()
@click.argument('models', nargs=-1, required=True)
@click.pass_context
def rm(ctx, models):
    """Remove one or more models"""
    try:
        asyncio.run(delete_command(ctx.obj['client_factory'], models, sys.stdout))
    except OllamaError as e:
        fail(str(e))


@main.command()
@click.argument('model')
@click.option('--insecure', is_flag=True, help='Use an insecure registry')
@click.pass_context
def push(ctx, model: str, insecure: bool):
    """Push a model to a registry"""
    config = ctx.obj['config']
    try:
        asyncio.run(push_command(ctx.obj['client_factory'], model, insecure, config.api.registry_url, sys.stdout))
    except OllamaError as e:
        fail(str(e))


@main.command()
@click.argument('model')
@click.option('--file', '-f', 'modelfile', help='Name of the Modelfile (default "Modelfile")')
@click.pass_context
def create(ctx, model: str, modelfile: Optional[str]):
    """Create a model from a Modelfile"""
    try:
        path = get_modelfile_name(modelfile)
        request = parse_modelfile(model, path.read_text(encoding="utf-8"))
        asyncio.run(create_command(ctx.obj['client_factory'], request))
    except (FileNotFoundError, ModelfileError, OllamaError) as e:
        fail(str(e))


@main.command()
@click.option('--app', 'app_log', is_flag=True, help='Show the desktop app log instead of the server log')
@click.option('--path', 'log_path', type=click.Path(), help='Read this log file instead')
@click.option('--tail', '-n', 'tail_lines', type=click.IntRange(min=0), default=None,
              help='Number of lines to show from the end (0 for all)')
@click.option('--follow', '-f', is_flag=True, help='Keep printing lines as they are written')
@click.pass_context
def logs(ctx, app_log: bool, log_path: Optional[str], tail_lines: Optional[int], follow: bool):
    """Show the server logs"""
    config = ctx.obj['config']
    if log_path:
        path = Path(log_path)
    else:
        path = config.app_log_file if app_log else config.server_log_file
    lines = config.logs.tail if tail_lines is None else tail_lines

    try:
        if follow:
            follow_command(path, lines, config.logs.poll_interval, sys.stdout)
        else:
            tail(path, lines, sys.stdout)
    except LogFileError as e:
        fail(str(e))


async def show_command(client_factory: Callable[[], OllamaClient], model: str, verbose: bool, out: TextIO):
    """Fetch a model description and render it"""
    async with client_factory() as client:
        description = await client.show(model, verbose=verbose)
    render(description, verbose, out)


async def list_command(client_factory: Callable[[], OllamaClient], prefixes: Iterable[str], out: TextIO):
    """List models, keeping those matching any prefix"""
    prefixes = tuple(prefixes)
    async with client_factory() as client:
        models = await client.list_models()
    if prefixes:
        models = [m for m in models if m.name.startswith(prefixes)]
    render_model_list(models, out)


async def delete_command(client_factory: Callable[[], OllamaClient], models: Iterable[str], out: TextIO):
    """Stop each model if it is loaded, then delete it"""
    async with client_factory() as client:
        for name in models:
            try:
                await client.unload_model(name)
            except OllamaError as e:
                raise OllamaError(f'unable to stop existing running model "{name}": {e}', e.status_code) from e
            await client.delete_model(name)
            logger.info("Model deleted", model=name)
            out.write(f"deleted '{name}'\n")


def model_url(name: str, registry_url: str = "https://ollama.com") -> str:
    """Where a pushed model can be found

    Models on the default registry get a web URL; others are returned as is.
    """
    parts = name.split("/")
    if len(parts) >= 3:
        if parts[0] not in DEFAULT_REGISTRY_HOSTS:
            return name
        parts = parts[1:]
    if len(parts) == 2 and parts[0] == "library":
        parts = parts[1:]
    short = "/".join(parts)
    if short.endswith(":latest"):
        short = short[: -len(":latest")]
    return f"{registry_url.rstrip('/')}/{short}"


class ProgressReporter:
    """Shows streamed progress lines as rich progress bars on stderr"""

    def __init__(self, console: Console = err_console):
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            BarColumn(),
            DownloadColumn(),
            console=console,
            transient=True,
        )
        self.tasks: Dict[str, int] = {}

    def __enter__(self):
        self.progress.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.progress.stop()

    def update(self, event: ProgressResponse):
        key = event.digest or event.status
        if key not in self.tasks:
            label = f"pushing {event.digest[7:19]}" if event.digest else event.status
            self.tasks[key] = self.progress.add_task(escape(label), total=event.total or None)
        task_id = self.tasks[key]
        if event.total:
            self.progress.update(task_id, total=event.total, completed=event.completed)
        else:
            self.progress.update(task_id, completed=1, total=1)


async def push_command(
    client_factory: Callable[[], OllamaClient],
    model: str,
    insecure: bool,
    registry_url: str,
    out: TextIO,
):
    """Push a model and print where it can be found"""
    async with client_factory() as client:
        try:
            with ProgressReporter() as reporter:
                async for event in client.push_model(model, insecure=insecure):
                    reporter.update(event)
        except OllamaError as e:
            message = str(e).lower()
            if "access denied" in message or "unauthorized" in message or e.status_code == 401:
                raise OllamaError(ERR_UNAUTHORIZED, e.status_code) from e
            raise

    out.write("\nYou can find your model at:\n\n")
    out.write(f"\t{model_url(model, registry_url)}\n")


async def create_command(client_factory: Callable[[], OllamaClient], request):
    """Send a create request, showing its progress"""
    async with client_factory() as client:
        with ProgressReporter() as reporter:
            async for event in client.create_model(request):
                reporter.update(event)
    logger.info("Model created", model=request.model)


def follow_command(path: Path, lines: int, poll_interval: float, out: TextIO):
    """Follow a log file until interrupted with Ctrl+C"""
    stop = threading.Event()

    def _sigint_handler(signum, frame):
        """Ask the follower to stop on Ctrl+C"""
        stop.set()

    in_main_thread = threading.current_thread() is threading.main_thread()
    original_sigint = signal.getsignal(signal.SIGINT) if in_main_thread else None
    if in_main_thread:
        signal.signal(signal.SIGINT, _sigint_handler)
    try:
        follow(path, lines, out, stop=stop, poll_interval=poll_interval)
    finally:
        if in_main_thread:
            signal.signal(signal.SIGINT, original_sigint)


if __name__ == "__main__":
    main()
