"""
Merging of overlay manifests onto a base set of manifests.

An overlay resource that refers to the same Kubernetes resource as one that was loaded before replaces the top-level
keys of that resource (e.g. the whole `spec`). Any other overlay resource is appended to the set.
"""

from collections.abc import Iterable

from loguru import logger

from mortar.tools.types import Manifest, Manifests, ResourceIdentity


def resource_identity(manifest: Manifest) -> ResourceIdentity:
    """
    Return the identity of a manifest, which consists of its namespace, apiVersion, kind and name.
    """

    metadata = manifest.get("metadata") or {}
    return ResourceIdentity(
        namespace=metadata.get("namespace"),
        api_version=manifest.get("apiVersion"),
        kind=manifest.get("kind"),
        name=metadata.get("name"),
    )


def merge_resource(base: Manifest, overlay: Manifest) -> Manifest:
    """
    Shallow merge of *overlay* into *base*. Every top-level key of the overlay replaces the same key in the base as a
    whole; nested keys are not merged. Returns a new manifest.
    """

    return Manifest({**base, **overlay})


class ResourceSet:
    """
    An ordered set of manifests that overlays can be merged into.

    Manifests are indexed by their identity. If the same identity occurs more than once in the initial manifests, the
    first occurrence is the one that overlays are merged into.
    """

    def __init__(self, manifests: Iterable[Manifest] = ()) -> None:
        self._manifests: list[Manifest] = []
        self._index: dict[ResourceIdentity, int] = {}
        for manifest in manifests:
            self._append(manifest)

    def __len__(self) -> int:
        return len(self._manifests)

    def _append(self, manifest: Manifest) -> None:
        self._index.setdefault(resource_identity(manifest), len(self._manifests))
        self._manifests.append(manifest)

    def overlay(self, manifests: Iterable[Manifest]) -> None:
        """
        Merge a set of overlay manifests. Overlay manifests are only matched against the manifests that were in this
        set before the call; those without a match are appended in order once all manifests have been processed.
        """

        unmatched: list[Manifest] = []
        for manifest in manifests:
            identity = resource_identity(manifest)
            position = self._index.get(identity)
            if position is None:
                logger.debug("Adding resource {} from overlay", identity)
                unmatched.append(manifest)
            else:
                logger.debug("Merging overlay into resource {}", identity)
                self._manifests[position] = merge_resource(self._manifests[position], manifest)

        for manifest in unmatched:
            self._append(manifest)

    def to_list(self) -> Manifests:
        return Manifests(list(self._manifests))


def merge_overlays(base: Manifests, overlays: Iterable[Manifests]) -> Manifests:
    """
    Merge each set of overlay manifests onto *base*, in order. The input lists are not modified.
    """

    resources = ResourceSet(base)
    for manifests in overlays:
        resources.overlay(manifests)
    return resources.to_list()
