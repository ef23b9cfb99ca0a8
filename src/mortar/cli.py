"""
Mortar - Kubernetes manifest shooter.

Renders the manifests in SRC, merges the given overlays on top and applies the result to the cluster as the stack
NAME.
"""

import sys
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from kubernetes.dynamic import DynamicClient
from loguru import logger
from rich.console import Console
from typer import Argument, Option, Typer

from mortar import __version__
from mortar.errors import MortarError, UsageError
from mortar.kubeconfig import ClusterCredentials, decode_token
from mortar.output import print_resources
from mortar.shot import CHECKSUM_ANNOTATION, LABEL, Shot
from mortar.stack import Stack
from mortar.variables import parse_variables

app = Typer(help=__doc__, pretty_exceptions_enable=False, add_completion=False)


class LogLevel(str, Enum):
    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _version_callback(value: bool) -> None:
    if value:
        print(f"mortar {__version__}")
        raise typer.Exit()


def _kube_token_callback(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        return decode_token(value)
    except UsageError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command(no_args_is_help=True)
def shoot(
    name: str = Argument(..., help="The deployment name."),
    src: Path = Argument(..., help="The source folder or file."),
    var: list[str] = Option([], "--var", help="Set a template variable, e.g. `--var env.name=prod`."),
    overlay: list[Path] = Option([], "--overlay", help="An overlay folder. Can be specified multiple times."),
    output: bool = Option(False, "--output", help="Only output the generated YAML."),
    prune: bool = Option(False, "--prune", help="Automatically delete removed resources."),
    debug: bool = Option(False, "--debug", "-d", help="Enable debug logging. Overrides `--log-level`."),
    log_level: LogLevel = Option(LogLevel.INFO, "--log-level", "-l", help="The log level to use."),
    kube_config: Optional[Path] = Option(None, "--kube-config", envvar="KUBECONFIG", help="Kubernetes config path."),
    kube_server: Optional[str] = Option(None, "--kube-server", envvar="KUBE_SERVER", help="Kubernetes API server."),
    kube_ca: Optional[str] = Option(None, "--kube-ca", envvar="KUBE_CA", help="Kubernetes certificate authority data."),
    kube_token: Optional[str] = Option(
        None,
        "--kube-token",
        envvar="KUBE_TOKEN",
        callback=_kube_token_callback,
        help="Kubernetes access token (Base64 encoded).",
    ),
    version: bool = Option(
        False, "--version", "-v", callback=_version_callback, is_eager=True, help="Print the mortar version."
    ),
) -> None:
    """
    Shoot the manifests in SRC to the cluster as the stack NAME.
    """

    logger.remove()
    logger.add(sys.stderr, level=LogLevel.DEBUG.name if debug else log_level.name)

    try:
        shot = Shot(name=name, src=src, overlays=overlay, variables=parse_variables(var))
        resources = shot.resources()

        if output:
            print_resources(resources)
            return

        if not resources:
            logger.warning("nothing to do!")
            return

        credentials = ClusterCredentials(
            kube_config=kube_config,
            kube_server=kube_server,
            kube_ca=kube_ca,
            kube_token=kube_token,
        )
        client = DynamicClient(credentials.new_api_client())
    except MortarError as exc:
        logger.error("{}", exc)
        raise typer.Exit(1)

    logger.info("Shooting {} resource(s) as '{}'", len(resources), name)
    Stack(name, resources, label=LABEL, checksum_annotation=CHECKSUM_ANNOTATION).apply(client, prune=prune)

    if Console().is_terminal:
        print(f"shot {name} successfully!")


def main() -> None:
    app()
