from typing import TextIO

import yaml
from rich.console import Console
from rich.syntax import Syntax

from mortar.tools.types import Manifests


def dump_resources(resources: Manifests) -> str:
    """
    Serialize manifests into a YAML stream. Every document starts with `---` and keeps the key order of the manifest.
    """

    return yaml.safe_dump_all(resources, explicit_start=True, sort_keys=False)


def print_resources(resources: Manifests, file: TextIO | None = None) -> None:
    """
    Print manifests as a YAML stream. The output is syntax highlighted if it goes to a terminal.
    """

    console = Console(file=file)
    text = dump_resources(resources)
    if console.is_terminal:
        console.print(Syntax(text, "yaml", theme="github-dark", background_color="default"))
    else:
        console.file.write(text)
