"""
Resolution of the Kubernetes API client from command-line credentials, a kubeconfig file or the in-cluster
environment.
"""

import base64
import binascii
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any

from databind.core.settings import Alias
from databind.json import dump as ser
from kubernetes.client import Configuration
from kubernetes.client.api_client import ApiClient
from kubernetes.config.incluster_config import load_incluster_config
from kubernetes.config.kube_config import new_client_from_config, new_client_from_config_dict
from loguru import logger

from mortar.errors import UsageError


@dataclass
class Cluster:
    server: str
    certificate_authority_data: Annotated[str, Alias("certificate-authority-data")]


@dataclass
class NamedCluster:
    name: str
    cluster: Cluster


@dataclass
class User:
    token: str


@dataclass
class NamedUser:
    name: str
    user: User


@dataclass
class Context:
    cluster: str
    user: str


@dataclass
class NamedContext:
    name: str
    context: Context


@dataclass(kw_only=True)
class Kubeconfig:
    """
    The subset of the kubeconfig file format that is needed to connect to a cluster with a bearer token.
    """

    api_version: Annotated[str, Alias("apiVersion")] = "v1"
    kind: str = "Config"
    clusters: list[NamedCluster] = field(default_factory=list)
    users: list[NamedUser] = field(default_factory=list)
    contexts: list[NamedContext] = field(default_factory=list)
    current_context: Annotated[str, Alias("current-context")]

    @staticmethod
    def from_token(*, server: str, ca: str, token: str) -> "Kubeconfig":
        return Kubeconfig(
            clusters=[NamedCluster("kubernetes", Cluster(server=server, certificate_authority_data=ca))],
            users=[NamedUser("mortar", User(token=token))],
            contexts=[NamedContext("mortar", Context(cluster="kubernetes", user="mortar"))],
            current_context="mortar",
        )

    def dump(self) -> dict[str, Any]:
        return ser(self, Kubeconfig)  # type: ignore[no-any-return]


def decode_token(token: str) -> str:
    """
    Decode a base64 encoded Kubernetes access token.

    Raises:
        UsageError: If the token is not valid base64.
    """

    try:
        return base64.b64decode(token, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise UsageError("kube token doesn't seem to be base64 encoded") from exc


def default_kubeconfig() -> Path:
    return Path.home() / ".kube" / "config"


@dataclass(frozen=True, kw_only=True)
class ClusterCredentials:
    """
    The ways to connect to a Kubernetes cluster, in order of priority:

    1. An API server address, CA certificate data and (decoded) access token, which must be given together.
    2. A kubeconfig file.
    3. The default kubeconfig file at `~/.kube/config`, if it exists.
    4. The in-cluster service account configuration.
    """

    kube_config: Path | None = None
    kube_server: str | None = None
    kube_ca: str | None = None
    kube_token: str | None = None

    def new_api_client(self) -> ApiClient:
        """
        Create an API client from the first available configuration.

        Raises:
            UsageError: If only some of the server, CA and token are given.
        """

        if self.kube_server or self.kube_ca or self.kube_token:
            if not (self.kube_server and self.kube_ca and self.kube_token):
                raise UsageError("kube token, server and ca are required to be used together")
            logger.debug("Using token authentication against '{}'", self.kube_server)
            kubeconfig = Kubeconfig.from_token(server=self.kube_server, ca=self.kube_ca, token=self.kube_token)
            return new_client_from_config_dict(kubeconfig.dump())

        kube_config = self.kube_config
        if kube_config is None and default_kubeconfig().exists():
            kube_config = default_kubeconfig()

        if kube_config is not None:
            logger.debug("Using kubeconfig '{}'", kube_config)
            return new_client_from_config(config_file=str(kube_config))

        logger.debug("Using in-cluster configuration")
        configuration = Configuration()
        load_incluster_config(client_configuration=configuration)
        return ApiClient(configuration)
