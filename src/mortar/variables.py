"""
Template variables given on the command-line as `--var key.subkey=value` assignments.
"""

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from loguru import logger

from mortar.errors import ConfigError

_MISSING = object()


class VariableTree(Mapping[str, Any]):
    """
    A read-only tree of template variables. Leaves are strings, branches are nested `VariableTree`s.

    Templates access the tree either like a mapping (`var.env.name` or `var["env"]["name"]`) or through an
    explicit dotted path lookup (`var.lookup("env.name")`). Note that keys which collide with a method name of the
    tree (e.g. `items` or `lookup`) can only be accessed with the subscript syntax.
    """

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = {}
        for key, value in (data or {}).items():
            self._data[key] = VariableTree(value) if isinstance(value, Mapping) else value

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"VariableTree({self.to_dict()!r})"

    def lookup(self, path: str, default: Any = _MISSING) -> Any:
        """
        Navigate the tree along a dot-separated *path*.

        Args:
            path: The path to look up, e.g. `env.name`.
            default: Returned if the path does not exist. If not specified, a `KeyError` is raised instead.
        Raises:
            KeyError: If the path does not exist and no *default* was given.
        """

        value: Any = self
        for part in path.split("."):
            if not isinstance(value, VariableTree) or part not in value:
                if default is _MISSING:
                    raise KeyError(path)
                return default
            value = value[part]
        return value

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the tree back into plain nested dictionaries.
        """

        return {
            key: value.to_dict() if isinstance(value, VariableTree) else value for key, value in self._data.items()
        }


RESERVED_NAMES = frozenset(name for name in dir(VariableTree) if not name.startswith("_"))
""" Public attribute names of `VariableTree`. Variables with these names are only reachable as `var["name"]`. """


def deep_merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """
    Recursively merge *overlay* into *base* and return the result as a new dictionary. Where both sides hold a mapping
    for the same key, the mappings are merged. In every other case the value from *overlay* wins.
    """

    result = dict(base)
    for key, value in overlay.items():
        current = result.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            result[key] = deep_merge(current, value)
        else:
            result[key] = value
    return result


def parse_variables(assignments: Iterable[str]) -> VariableTree:
    """
    Build a `VariableTree` from `key=value` assignments. Keys are split on dots into nested mappings and assignments
    are merged in order, so a later assignment to the same path wins.

    Raises:
        ConfigError: If an assignment has no `=` or its key contains an empty segment.
    """

    tree: dict[str, Any] = {}
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        if not sep:
            raise ConfigError(f"Invalid variable {assignment!r}, expected the format KEY=VALUE")

        parts = key.split(".")
        if not all(parts):
            raise ConfigError(f"Invalid variable name {key!r} in {assignment!r}")

        nested: Any = value
        for part in reversed(parts):
            nested = {part: nested}

        shadowed = [part for part in parts if part in RESERVED_NAMES]
        if shadowed:
            logger.debug(
                "Template variable '{}' shares its name with a method of `var`, access it as `var[\"{}\"]`",
                key,
                shadowed[0],
            )

        logger.trace("Setting template variable '{}'", key)
        tree = deep_merge(tree, nested)

    return VariableTree(tree)

