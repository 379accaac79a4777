"""
Canonical Elasticsearch configuration.

Elasticsearch accepts the same setting either dotted (``node.master: true``)
or nested (``node: {master: true}``). CanonicalConfig normalizes both forms into
a single nested document, so two equivalent configurations compare equal and
render to the same elasticsearch.yml.
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

import yaml

from ...errors import ConfigValidationError


def _insert(target: Dict[str, Any], parts: List[str], value: Any, key: str, override: bool) -> None:
    node = target
    for i, part in enumerate(parts[:-1]):
        child = node.get(part)
        if child is None:
            child = node[part] = {}
        elif not isinstance(child, dict):
            raise ConfigValidationError(
                f"Setting '{key}' conflicts with scalar setting '{'.'.join(parts[:i + 1])}'"
            )
        node = child

    leaf = parts[-1]
    if isinstance(value, dict):
        existing = node.get(leaf)
        if existing is None:
            existing = node[leaf] = {}
        elif not isinstance(existing, dict):
            raise ConfigValidationError(f"Setting '{key}' conflicts with scalar setting '{key}'")
        for sub_key, sub_value in value.items():
            _insert(existing, _split(sub_key), sub_value, f"{key}.{sub_key}", override)
        return

    if leaf in node:
        if isinstance(node[leaf], dict):
            raise ConfigValidationError(f"Scalar setting '{key}' conflicts with nested settings")
        if not override and node[leaf] != value:
            raise ConfigValidationError(f"Setting '{key}' is declared twice with different values")
    node[leaf] = copy.deepcopy(value)


def _split(key: Any) -> List[str]:
    if not isinstance(key, str) or not key:
        raise ConfigValidationError(f"Invalid setting name: {key!r}")
    parts = key.split(".")
    if any(not part for part in parts):
        raise ConfigValidationError(f"Invalid setting name: {key!r}")
    return parts


def _flatten(data: Dict[str, Any], prefix: str = "") -> Iterator[Tuple[str, Any]]:
    for key in sorted(data):
        value = data[key]
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict) and value:
            yield from _flatten(value, path)
        else:
            yield path, value


def _as_bool(key: str, value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ConfigValidationError(f"Setting '{key}' must be a boolean, got {value!r}")


@dataclass(frozen=True)
class ElasticsearchSettings:
    """The typed subset of the configuration the operator relies on."""
    cluster_name: Optional[str] = None
    master: bool = True
    data: bool = True
    ingest: bool = True
    ml: bool = True


class CanonicalConfig:
    """
    Normalized, nested Elasticsearch configuration.

    Raises:
        ConfigValidationError: If the document mixes a scalar and nested
            settings under the same name, or declares a setting twice
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = {}
        if data:
            if not isinstance(data, dict):
                raise ConfigValidationError(
                    f"Configuration must be a mapping, got {type(data).__name__}"
                )
            for key, value in data.items():
                _insert(self._data, _split(key), value, key, override=False)

    @classmethod
    def merge(cls, *configs: "CanonicalConfig") -> "CanonicalConfig":
        """Overlay configurations, later ones winning on conflicting leaves."""
        merged = cls()
        for config in configs:
            for key, value in config.flat_items():
                _insert(merged._data, _split(key), value, key, override=True)
        return merged

    def flat_items(self) -> List[Tuple[str, Any]]:
        """Dotted settings, sorted by name."""
        return list(_flatten(self._data))

    def flat_keys(self) -> List[str]:
        return [key for key, _ in self.flat_items()]

    def get(self, key: str, default: Any = None) -> Any:
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def as_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)

    def render(self) -> bytes:
        """elasticsearch.yml content, with sorted keys."""
        return yaml.safe_dump(self._data, default_flow_style=False, sort_keys=True).encode("utf-8")

    def unpack(self) -> ElasticsearchSettings:
        """
        Extract the settings the operator needs (node roles, cluster name).

        Raises:
            ConfigValidationError: If a node role is not a boolean
        """
        cluster_name = self.get("cluster.name")
        return ElasticsearchSettings(
            cluster_name=str(cluster_name) if cluster_name is not None else None,
            master=_as_bool("node.master", self.get("node.master"), True),
            data=_as_bool("node.data", self.get("node.data"), True),
            ingest=_as_bool("node.ingest", self.get("node.ingest"), True),
            ml=_as_bool("node.ml", self.get("node.ml"), True),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CanonicalConfig):
            return NotImplemented
        return self._data == other._data

    def __repr__(self) -> str:
        return f"CanonicalConfig({self._data!r})"
