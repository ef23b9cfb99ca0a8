from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from mortar.manifests import ManifestLoader
from mortar.overlay import merge_overlays
from mortar.templating import RenderContext, TemplateRenderer
from mortar.tools.types import Manifests
from mortar.variables import VariableTree

LABEL = "mortar.kontena.io/shot"
""" Label that associates a resource with the stack (shot) it was applied with. """

CHECKSUM_ANNOTATION = "mortar.kontena.io/shot-checksum"
""" Annotation that stores the checksum of a resource as it was last applied. """


@dataclass(frozen=True)
class Shot:
    """
    Everything that describes a single deployment: its name, the manifests it is made of and the variables to render
    them with.
    """

    name: str
    """ The name of the deployment. This is also the name of the stack the resources are applied as. """

    src: Path
    """ The base manifest directory or file. """

    overlays: list[Path] = field(default_factory=list)
    """ Overlay directories, merged onto the base manifests in order. """

    variables: VariableTree = field(default_factory=VariableTree)
    """ Template variables, available to the manifests as `var`. """

    def loader(self) -> ManifestLoader:
        return ManifestLoader(TemplateRenderer(RenderContext(name=self.name, var=self.variables)))

    def resources(self) -> Manifests:
        """
        Load the base manifests and merge all overlays onto them.

        Raises:
            UsageError: If any of the sources do not exist or can not be rendered or parsed.
        """

        loader = self.loader()

        logger.debug("Loading manifests from '{}'", self.src)
        resources = loader.load(self.src)

        overlays = []
        for overlay in self.overlays:
            logger.debug("Loading overlay manifests from '{}'", overlay)
            overlays.append(loader.load(overlay))

        return merge_overlays(resources, overlays)
