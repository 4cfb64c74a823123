"""
Admin CLI for Stellar Playground Services.

Runs the same orchestrators as the HTTP API against the local toolchain,
which is handy for checking a host before putting it behind the frontend.

Utilities:
  - compile : write a contract source file into a project and build it
  - deploy  : deploy a project's last build
  - invoke  : call a contract method ("view" simulates, "call" submits)
  - doctor  : verify template, projects dir, stellar CLI and rustup targets

Results are printed to stdout as JSON; logs go to stderr.

Usage:
  playground-services <command> [options]
  python -m playground_services.cli <command> [options]
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer

from .adapters.process import ProcessRunner
from .config import Settings, load_settings
from .errors import ApiError
from .logging import setup_logging
from .models.compile import CompileResponse
from .models.deploy import DeployResponse
from .models.invoke import InvokeResponse
from .services.compile import BuildOrchestrator
from .services.deploy import DeployOrchestrator
from .services.environment import check_environment
from .services.invoke import InvokeOrchestrator, marshal_args
from .storage.workspace import WorkspaceManager

app = typer.Typer(add_completion=False, help="Stellar Playground Services: admin CLI")


@dataclass
class AppCtx:
    settings: Settings
    runner: ProcessRunner


def _make_runner(settings: Settings) -> ProcessRunner:
    return ProcessRunner(settings.toolchain_timeout_seconds)


def _context() -> AppCtx:
    settings = load_settings()
    return AppCtx(settings=settings, runner=_make_runner(settings))


def _emit(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _fail(err: ApiError) -> NoReturn:
    typer.echo(json.dumps({"error": err.to_body()}, indent=2, default=str), err=True)
    raise typer.Exit(code=1)


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", "-l", help="Log level for stderr output"),
    log_format: str = typer.Option("console", "--log-format", help='"console" or "json"'),
):
    """
    Shared options for all subcommands.
    """
    setup_logging(service_name="playground-services-cli", level=log_level, log_format=log_format)


@app.command("compile")
def compile_cmd(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Contract lib.rs to build"),
    user: str = typer.Option(..., "--user", "-u", help="User id"),
    project: str = typer.Option(..., "--project", "-p", help="Project id"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Omit compiler stdout/stderr from the output"),
):
    """
    Build SOURCE as the contract of USER/PROJECT.
    """
    ctx = _context()
    orchestrator = BuildOrchestrator(ctx.settings, ctx.runner, WorkspaceManager.from_settings(ctx.settings))
    try:
        res = orchestrator.build(source.read_text(encoding="utf-8"), user, project)
    except ApiError as e:
        _fail(e)
    payload = CompileResponse.from_result(res).model_dump(mode="json")
    if quiet:
        payload.pop("stdout", None)
        payload.pop("stderr", None)
    _emit(payload)
    if not res.success:
        raise typer.Exit(code=2)


@app.command("deploy")
def deploy_cmd(
    user: str = typer.Option(..., "--user", "-u", help="User id"),
    project: str = typer.Option(..., "--project", "-p", help="Project id"),
    secret: Optional[str] = typer.Option(
        None, "--secret", envvar="DEPLOY_ACCOUNT_SECRET", help="Signer override (default: STELLAR_SECRET_KEY)"
    ),
):
    """
    Deploy the last build of USER/PROJECT.
    """
    ctx = _context()
    orchestrator = DeployOrchestrator(ctx.settings, ctx.runner, WorkspaceManager.from_settings(ctx.settings))
    try:
        res = orchestrator.deploy(user, project, secret)
    except ApiError as e:
        _fail(e)
    _emit(DeployResponse.from_result(res).model_dump(mode="json"))


@app.command("invoke")
def invoke_cmd(
    contract_id: str = typer.Argument(..., help="Contract id (C…)"),
    method: str = typer.Argument(..., help="Method name"),
    args: str = typer.Option("{}", "--args", "-a", help="JSON object (named) or array (positional)"),
    method_type: str = typer.Option("view", "--type", "-t", help='"view" simulates, "call" submits'),
    source: Optional[str] = typer.Option(
        None, "--source", envvar="INVOKE_SOURCE_ACCOUNT", help="Signer override (default: STELLAR_SECRET_KEY)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the marshaled CLI arguments and exit"),
):
    """
    Call METHOD on CONTRACT_ID.
    """
    try:
        parsed = json.loads(args)
    except ValueError as e:
        typer.echo(f"--args is not valid JSON: {e}", err=True)
        raise typer.Exit(code=2)

    if dry_run:
        _emit({"method": method, "args": marshal_args(parsed)})
        return

    ctx = _context()
    try:
        res = InvokeOrchestrator(ctx.settings, ctx.runner).invoke(contract_id, method, parsed, method_type, source)
    except ApiError as e:
        _fail(e)
    _emit(InvokeResponse.from_result(res).model_dump(mode="json"))
    if not res.success:
        raise typer.Exit(code=2)


@app.command("doctor")
def doctor(
    skip_targets: bool = typer.Option(False, "--skip-targets", help="Do not run rustup target add"),
):
    """
    Verify template, projects directory, stellar CLI and rustup targets.
    """
    ctx = _context()
    try:
        report = check_environment(ctx.settings, ctx.runner, install_targets=not skip_targets)
    except ApiError as e:
        _fail(e)
    _emit(
        {
            "template_dir": str(report.template_dir),
            "projects_dir": str(report.projects_dir),
            "stellar_version": report.stellar_version,
            "installed_targets": report.installed_targets,
            "configured_targets": list(ctx.settings.wasm_targets),
            "network": ctx.settings.stellar_network,
            "rpc_configured": bool(ctx.settings.stellar_rpc_url and ctx.settings.stellar_network_passphrase),
            "signer_configured": bool(ctx.settings.stellar_secret_key),
        }
    )


def run() -> None:  # pragma: no cover - console_script entry
    try:
        app()
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":  # pragma: no cover
    run()
