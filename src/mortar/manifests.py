from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from mortar.errors import TemplateError, UsageError
from mortar.templating import TemplateRenderer
from mortar.tools.types import Manifest, Manifests

MANIFEST_PATTERNS = ("*.yml", "*.yaml", "*.yml.j2", "*.yaml.j2")
""" Glob patterns of the files that are picked up from a manifest directory. """

SCALAR_TYPES = (str, int, float, bool)


class ManifestLoader:
    """
    Loads Kubernetes manifests from a file or a directory. Every file is passed through the template renderer before
    it is parsed as a (multi-document) YAML stream.
    """

    def __init__(self, renderer: TemplateRenderer) -> None:
        self._renderer = renderer

    def load(self, path: Path) -> Manifests:
        """
        Load all manifests from *path*, which may be a single file or a directory.

        Raises:
            UsageError: If the path does not exist, or a file can not be rendered or parsed.
        """

        if path.is_dir():
            return self.load_directory(path)
        if path.is_file():
            return self.load_file(path)
        raise UsageError(f"{path} does not exist")

    def load_directory(self, directory: Path) -> Manifests:
        """
        Load the manifests of all matching files directly in *directory*, in the lexicographical order of the file
        names and, within a file, in document order.
        """

        files = sorted(
            {file for pattern in MANIFEST_PATTERNS for file in directory.glob(pattern) if file.is_file()},
            key=lambda file: file.name,
        )
        logger.debug("Found {} manifest file(s) in '{}'", len(files), directory)

        manifests = Manifests([])
        for file in files:
            manifests.extend(self.load_file(file))
        return manifests

    def load_file(self, file: Path) -> Manifests:
        """
        Render and parse a single manifest file.
        """

        try:
            content = self._renderer.render_file(file)
        except TemplateError as exc:
            raise UsageError(str(exc)) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise UsageError(f"Failed to read '{file}': {exc}") from exc

        try:
            documents = list(yaml.safe_load_all(content))
        except yaml.YAMLError as exc:
            raise UsageError(f"Failed to parse '{file}': {exc}") from exc

        manifests = Manifests([])
        for index, document in enumerate(documents):
            if document is None:
                continue
            if not isinstance(document, dict):
                raise UsageError(
                    f"Document #{index + 1} in '{file}' is not a mapping (got {type(document).__name__})"
                )
            _check_identity_fields(document, f"Document #{index + 1} in '{file}'")
            manifests.append(Manifest(document))

        logger.debug("Loaded {} manifest(s) from '{}'", len(manifests), file)
        return manifests


def _check_identity_fields(document: dict[str, Any], description: str) -> None:
    """
    Ensure that the fields which identify a resource can be compared, i.e. `metadata` is a mapping and `apiVersion`,
    `kind`, `metadata.name` and `metadata.namespace` are scalars.
    """

    metadata = document.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        raise UsageError(f"{description} has an invalid 'metadata' field, expected a mapping")

    fields = {
        "apiVersion": document.get("apiVersion"),
        "kind": document.get("kind"),
        "metadata.name": (metadata or {}).get("name"),
        "metadata.namespace": (metadata or {}).get("namespace"),
    }
    for key, value in fields.items():
        if value is not None and not isinstance(value, SCALAR_TYPES):
            raise UsageError(f"{description} has an invalid '{key}' field, expected a scalar value")
