"""
CLI front-end using Typer framework

Single core command:
- map: discover resources and their relationships, render a layered map
"""

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from typing_extensions import Annotated

from .. import __version__
from ..logging_config import configure_logging

app = typer.Typer(
    name="kubectl-mapper",
    help="Map Kubernetes resources and the relationships between them",
    add_completion=False,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool):
    """Show version and exit"""
    if value:
        typer.echo(f"kubectl-mapper v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[Optional[bool], typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit")] = None,
    debug: Annotated[bool, typer.Option("--debug", help="Enable debug logging")] = False,
):
    """
    kubectl-mapper: layered map of Kubernetes resource relationships

    [bold]Layers:[/bold] Ingress → Service → Workload → Storage

    [bold]Read-only:[/bold] only list/get calls are issued
    """
    ctx.obj = {"debug": debug}
    # stdout carries the map, so logs go to stderr from the start
    configure_logging(level="DEBUG" if debug else "WARNING")


@app.command("map")
def map_resources(
    ctx: typer.Context,
    namespace: Annotated[Optional[str], typer.Option("--namespace", "-n", help="Only map this namespace")] = None,
    exclude_ns: Annotated[Optional[List[str]], typer.Option("--exclude-ns", help="Namespace to skip (repeatable)")] = None,
    no_color: Annotated[bool, typer.Option("--no-color", help="Disable colored output")] = False,
    no_details: Annotated[bool, typer.Option("--no-details", help="Hide status, port and TLS detail lines")] = False,
    compact: Annotated[bool, typer.Option("--compact", help="No banner, blank lines or summary")] = False,
    output: Annotated[Optional[str], typer.Option("--output", "-o", help="Output format (text, json, yaml)")] = None,
    context: Annotated[Optional[str], typer.Option("--context", help="kubectl context")] = None,
    kubeconfig: Annotated[Optional[Path], typer.Option("--kubeconfig", help="Path to kubeconfig")] = None,
    config_file: Annotated[Optional[Path], typer.Option("--config", help="Config file (default ~/.kubectl-mapper/config.yaml)")] = None,
    strict: Annotated[bool, typer.Option("--strict", help="Fail a namespace on permission/transport errors of lookups")] = False,
    timeout: Annotated[Optional[float], typer.Option("--timeout", help="Per-call kubectl timeout in seconds")] = None,
    retries: Annotated[Optional[int], typer.Option("--retries", help="Retries for unavailable API calls")] = None,
):
    """
    🗺  Map resources and relationships

    [bold]Exit Codes:[/bold] 0=success (warnings included) | 2=configuration or connectivity error

    [bold]Examples:[/bold]
      kubectl-mapper map
      kubectl-mapper map -n production --no-details
      kubectl-mapper map --exclude-ns kube-system -o yaml
    """
    from ..collectors.base import ConnectivityError
    from ..config import Config
    from ..logging_config import log_command_execution, setup_logging_from_config
    from ..validation import ConfigurationError, InputValidator, validate_inputs
    from .commands import MapCommand

    debug = bool(ctx.obj and ctx.obj.get("debug"))

    try:
        config = Config(str(config_file) if config_file else None)
        namespace, excluded, context, _ = validate_inputs(
            namespace=namespace,
            exclude_namespaces=exclude_ns or [],
            context=context,
        )
        output_format = InputValidator.validate_output_format(output or config.get("output.default_format", "text"))
        if timeout is not None:
            InputValidator.validate_timeout(timeout)
        if retries is not None:
            InputValidator.validate_retries(retries)

        config.apply_overrides({
            "output.colors_enabled": False if no_color else None,
            "output.show_details": False if no_details else None,
            "output.compact": True if compact else None,
            "discovery.strict": True if strict else None,
            "discovery.call_timeout_seconds": timeout,
            "discovery.exclude_namespaces": config.exclude_namespaces() + excluded if excluded else None,
            "retry.max_retries": retries,
            "kubectl.context": context,
            "kubectl.kubeconfig": str(kubeconfig) if kubeconfig else None,
        })
        setup_logging_from_config(config.config, debug=debug)
        log_command_execution("map", {
            "namespace": namespace,
            "exclude_ns": config.exclude_namespaces(),
            "output": output_format,
            "context": context,
            "strict": strict,
        })

        command = MapCommand(config)
        result = asyncio.run(command.execute(namespace, output_format))
    except (ConfigurationError, ConnectivityError) as e:
        typer.echo(f"❌ Error: {e}", err=True)
        raise typer.Exit(2)

    typer.echo(result.output, nl=not result.output.endswith("\n"))
    if result.warnings_output:
        typer.echo(result.warnings_output, err=True, nl=False)
    raise typer.Exit(result.exit_code)


if __name__ == "__main__":
    app()
