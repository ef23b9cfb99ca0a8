from copy import deepcopy
from dataclasses import dataclass
from typing import Any

from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import ForbiddenError, NotFoundError
from kubernetes.dynamic.resource import Resource
from loguru import logger
from stablehash import stablehash

from mortar.shot import CHECKSUM_ANNOTATION, LABEL
from mortar.tools.types import Manifest, Manifests

PRUNE_IGNORE = frozenset({("v1", "ComponentStatus"), ("v1", "Endpoints")})
""" Resource types that are never pruned, as the cluster manages them on its own. """

DEFAULT_NAMESPACE = "default"


def resource_checksum(manifest: Manifest) -> str:
    """
    Calculate a stable checksum of a manifest's content.
    """

    return stablehash(manifest).hexdigest()


@dataclass
class Stack:
    """
    A named set of resources that is applied to a cluster as a unit.

    Every resource is labeled with `<label>=<name>` and annotated with the checksum of its content. A resource is only
    updated if the checksum in the cluster differs from the checksum of the desired resource. Pruning deletes all
    resources with the stack's label that are no longer part of the stack (or have been changed outside of it).
    """

    name: str
    resources: Manifests
    label: str = LABEL
    checksum_annotation: str = CHECKSUM_ANNOTATION

    def prepare(self, resource: Manifest) -> Manifest:
        """
        Return a copy of *resource* with the stack label and checksum annotation set.
        """

        checksum = resource_checksum(resource)
        manifest = Manifest(deepcopy(resource))
        metadata = manifest.setdefault("metadata", {})
        metadata["labels"] = {**(metadata.get("labels") or {}), self.label: self.name}
        metadata["annotations"] = {**(metadata.get("annotations") or {}), self.checksum_annotation: checksum}
        return manifest

    def _locate(self, client: DynamicClient, resource: Manifest) -> tuple[Resource, str | None]:
        api = client.resources.get(api_version=resource["apiVersion"], kind=resource["kind"])
        namespace = None
        if api.namespaced:
            namespace = (resource.get("metadata") or {}).get("namespace") or DEFAULT_NAMESPACE
        return api, namespace

    def apply(self, client: DynamicClient, prune: bool = False) -> None:
        """
        Create or update all resources of the stack in the cluster, then optionally prune resources that are no longer
        part of it. Errors from the Kubernetes API are propagated.
        """

        for resource in self.resources:
            api, namespace = self._locate(client, resource)
            manifest = self.prepare(resource)
            metadata = manifest["metadata"]
            checksum = metadata["annotations"][self.checksum_annotation]
            description = f"{resource['kind']} '{metadata['name']}'"

            if namespace is not None:
                if "namespace" not in metadata:
                    logger.warning("{} has no namespace, applying it to '{}'", description, namespace)
                    metadata["namespace"] = namespace
                description += f" in namespace '{namespace}'"

            try:
                current: dict[str, Any] | None = client.get(api, name=metadata["name"], namespace=namespace).to_dict()
            except NotFoundError:
                current = None

            if current is None:
                logger.info("Creating {}", description)
                client.create(api, body=manifest, namespace=namespace)
            elif (current["metadata"].get("annotations") or {}).get(self.checksum_annotation) != checksum:
                logger.info("Updating {}", description)
                metadata["resourceVersion"] = current["metadata"]["resourceVersion"]
                client.replace(api, body=manifest, namespace=namespace)
            else:
                logger.debug("{} is up to date", description)

        if prune:
            self.prune(client)

    def prune(self, client: DynamicClient) -> None:
        """
        Delete all resources in the cluster that carry the stack's label but are not part of the stack with the same
        checksum. API resources that we are not allowed to list are skipped.
        """

        keep: dict[tuple[str, str, str | None, str], str] = {}
        for resource in self.resources:
            api, namespace = self._locate(client, resource)
            keep[(api.group_version, api.kind, namespace, resource["metadata"]["name"])] = resource_checksum(resource)

        selector = f"{self.label}={self.name}"
        logger.debug("Looking for resources to prune with label selector '{}'", selector)

        for api in client.resources.search():
            verbs = getattr(api, "verbs", None) or ()
            if "list" not in verbs or "delete" not in verbs or not getattr(api, "preferred", False):
                continue
            if (api.group_version, api.kind) in PRUNE_IGNORE:
                continue

            try:
                items = client.get(api, label_selector=selector).to_dict().get("items") or []
            except ForbiddenError:
                logger.debug("Not allowed to list {}/{}, skipping", api.group_version, api.kind)
                continue

            for item in items:
                metadata = item.get("metadata") or {}
                if (metadata.get("labels") or {}).get(self.label) != self.name:
                    continue

                name, namespace = metadata["name"], metadata.get("namespace")
                checksum = (metadata.get("annotations") or {}).get(self.checksum_annotation)
                if checksum is not None and keep.get((api.group_version, api.kind, namespace, name)) == checksum:
                    continue

                logger.info("Pruning {} '{}'", api.kind, f"{namespace}/{name}" if namespace else name)
                try:
                    client.delete(api, name=name, namespace=namespace, body={"propagationPolicy": "Background"})
                except NotFoundError:
                    logger.debug("{} '{}' is already gone", api.kind, name)
