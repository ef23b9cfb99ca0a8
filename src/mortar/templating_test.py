from pathlib import Path
from textwrap import dedent

import pytest

from mortar.errors import TemplateError
from mortar.templating import RenderContext, TemplateRenderer
from mortar.variables import parse_variables


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer(RenderContext(name="web", var=parse_variables(["env.name=prod", "replicas=3"])))


def test__TemplateRenderer__render_file__substitutes_variables(renderer: TemplateRenderer, tmp_path: Path) -> None:
    file = tmp_path / "deploy.yaml.j2"
    file.write_text(
        dedent(
            """
            metadata:
              name: {{ name }}
              labels:
                env: {{ var.env.name }}
                region: {{ var.lookup("env.region", "eu") }}
            spec:
              replicas: {{ var["replicas"] }}
            """
        )
    )

    rendered = renderer.render_file(file)
    assert "name: web\n" in rendered
    assert "env: prod\n" in rendered
    assert "region: eu\n" in rendered
    assert "replicas: 3\n" in rendered


def test__TemplateRenderer__render__plain_text_is_unchanged(renderer: TemplateRenderer) -> None:
    text = "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: plain\n\n"
    assert renderer.render(text) == text


def test__TemplateRenderer__render__control_flow(renderer: TemplateRenderer) -> None:
    template = "{% if var.env.name == 'prod' %}prod{% else %}other{% endif %}"
    assert renderer.render(template) == "prod"


def test__TemplateRenderer__render__syntax_error(renderer: TemplateRenderer) -> None:
    with pytest.raises(TemplateError) as excinfo:
        renderer.render("name: {{ name ", filename="broken.yaml")
    assert excinfo.value.filename == "broken.yaml"
    assert "broken.yaml" in str(excinfo.value)


def test__TemplateRenderer__render__undefined_variable(renderer: TemplateRenderer) -> None:
    with pytest.raises(TemplateError, match="missing"):
        renderer.render("value: {{ var.missing }}", filename="undefined.yaml")


def test__TemplateRenderer__render__lookup_of_missing_path(renderer: TemplateRenderer) -> None:
    with pytest.raises(TemplateError, match="env.missing") as excinfo:
        renderer.render('value: {{ var.lookup("env.missing") }}', filename="lookup.yaml")
    assert excinfo.value.filename == "lookup.yaml"


def test__TemplateRenderer__render__expression_error(renderer: TemplateRenderer) -> None:
    with pytest.raises(TemplateError, match="ZeroDivisionError"):
        renderer.render("value: {{ 1 / 0 }}", filename="division.yaml")
    with pytest.raises(TemplateError, match="TypeError"):
        renderer.render("value: {{ name + 1 }}", filename="concat.yaml")


def test__TemplateRenderer__render__subscript_for_method_names() -> None:
    renderer = TemplateRenderer(RenderContext(name="web", var=parse_variables(["config.items=3"])))
    assert renderer.render('{{ var.config["items"] }}') == "3"
