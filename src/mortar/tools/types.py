from typing import Any, NamedTuple, NewType


Manifest = NewType("Manifest", dict[str, Any])
""" Represents a Kubernetes manifest. """

Manifests = NewType("Manifests", list[Manifest])
""" Represents a list of Kubernetes manifests. """


class ResourceIdentity(NamedTuple):
    """
    The fields that identify a Kubernetes resource. Two manifests refer to the same resource only if all of them match.
    """

    namespace: str | None
    api_version: str | None
    kind: str | None
    name: str | None

    def __str__(self) -> str:
        name = f"{self.namespace}/{self.name}" if self.namespace else str(self.name)
        return f"{self.api_version}/{self.kind} {name}"
