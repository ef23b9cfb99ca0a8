from dataclasses import dataclass, field
from pathlib import Path

import jinja2
from loguru import logger

from mortar.errors import TemplateError
from mortar.variables import VariableTree


@dataclass(frozen=True)
class RenderContext:
    """
    The values that are available to every manifest template.
    """

    name: str
    """ The name of the deployment, available as `{{ name }}`. """

    var: VariableTree = field(default_factory=VariableTree)
    """ The variables given with `--var`, available as `{{ var.some.key }}`. """


class TemplateRenderer:
    """
    Renders manifest files with Jinja2. Undefined variables are an error rather than an empty string, and files that do
    not contain any template syntax are returned unchanged.
    """

    def __init__(self, context: RenderContext) -> None:
        self._context = context
        self._env = jinja2.Environment(undefined=jinja2.StrictUndefined, keep_trailing_newline=True)
        self._env.globals["name"] = context.name
        self._env.globals["var"] = context.var

    @property
    def context(self) -> RenderContext:
        return self._context

    def render(self, template: str, filename: Path | str = "<string>") -> str:
        """
        Renders the given template string.

        Raises:
            TemplateError: If the template is malformed or fails to render.
        """

        try:
            return self._env.from_string(template).render()
        except jinja2.TemplateSyntaxError as exc:
            raise TemplateError(filename, f"{exc.message} (line {exc.lineno})") from exc
        except jinja2.TemplateError as exc:
            raise TemplateError(filename, str(exc)) from exc
        except Exception as exc:
            # Errors raised by expressions while rendering, e.g. `var.lookup()` on a missing path.
            raise TemplateError(filename, f"{type(exc).__name__}: {exc}") from exc

    def render_file(self, path: Path) -> str:
        """
        Reads and renders the template in the given file.
        """

        logger.trace("Rendering template '{}'", path)
        with path.open() as fp:
            template = fp.read()
        return self.render(template, path)
