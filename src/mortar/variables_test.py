import pytest
from loguru import logger

from mortar.errors import ConfigError, UsageError
from mortar.variables import VariableTree, deep_merge, parse_variables


def test__parse_variables__nests_dotted_keys() -> None:
    tree = parse_variables(["a.b.c=1"])
    assert tree.to_dict() == {"a": {"b": {"c": "1"}}}


def test__parse_variables__last_assignment_wins() -> None:
    tree = parse_variables(["env.name=dev", "env.name=prod"])
    assert tree.to_dict() == {"env": {"name": "prod"}}


def test__parse_variables__merges_shared_prefix() -> None:
    tree = parse_variables(["env.name=prod", "env.region=eu", "replicas=3"])
    assert tree.to_dict() == {"env": {"name": "prod", "region": "eu"}, "replicas": "3"}


def test__parse_variables__splits_on_first_equal_sign_only() -> None:
    tree = parse_variables(["query=a=b=c"])
    assert tree.lookup("query") == "a=b=c"


def test__parse_variables__later_value_replaces_across_types() -> None:
    assert parse_variables(["a=1", "a.b=2"]).to_dict() == {"a": {"b": "2"}}
    assert parse_variables(["a.b=2", "a=1"]).to_dict() == {"a": "1"}


def test__parse_variables__empty_input() -> None:
    assert parse_variables([]).to_dict() == {}


def test__parse_variables__missing_equal_sign() -> None:
    with pytest.raises(ConfigError, match="'foo.bar'"):
        parse_variables(["ok=1", "foo.bar"])


def test__parse_variables__empty_segment() -> None:
    with pytest.raises(ConfigError):
        parse_variables(["a..b=1"])
    with pytest.raises(ConfigError):
        parse_variables(["=1"])


def test__ConfigError__is_a_usage_error() -> None:
    assert issubclass(ConfigError, UsageError)


def test__VariableTree__lookup() -> None:
    tree = VariableTree({"a": {"b": "1"}, "c": "2"})
    assert tree.lookup("a.b") == "1"
    assert tree.lookup("c") == "2"
    assert tree.lookup("a").to_dict() == {"b": "1"}
    assert tree.lookup("a.x", None) is None
    assert tree.lookup("c.d", "fallback") == "fallback"
    with pytest.raises(KeyError):
        tree.lookup("a.x")


def test__VariableTree__mapping_access() -> None:
    tree = VariableTree({"a": {"b": "1"}})
    assert tree["a"]["b"] == "1"
    assert isinstance(tree["a"], VariableTree)
    assert list(tree) == ["a"]
    assert len(tree) == 1


def test__deep_merge__does_not_modify_inputs() -> None:
    base = {"a": {"x": 1}}
    overlay = {"a": {"y": 2}}
    assert deep_merge(base, overlay) == {"a": {"x": 1, "y": 2}}
    assert base == {"a": {"x": 1}}
    assert overlay == {"a": {"y": 2}}


def test__parse_variables__hints_at_subscript_for_method_names() -> None:
    messages: list[str] = []
    handler = logger.add(messages.append, level="DEBUG", format="{message}")
    try:
        tree = parse_variables(["config.items=3", "env.name=prod"])
    finally:
        logger.remove(handler)

    assert tree["config"]["items"] == "3"
    assert len(messages) == 1
    assert "config.items" in messages[0]
    assert 'var["items"]' in messages[0]
