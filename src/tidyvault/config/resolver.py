"""Layered configuration resolution."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Mapping, Optional, Sequence

from pydantic import ValidationError

from .exceptions import ConfigError
from .models import TidyVaultConfig

ENV_PREFIX = "TIDYVAULT__"


def assign_path(target: dict[str, Any], path: Sequence[str], value: Any) -> None:
    """Set ``value`` under the nested ``path`` of ``target``.

    Raises:
        ConfigError: If a segment along the path holds a scalar.
    """
    node = target
    for segment in path[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise ConfigError(f"Cannot assign {'.'.join(path)}: '{segment}' is not a section.")
        node = child
    node[path[-1]] = value


def expand_dotted(layer: Mapping[str, Any], *, label: str) -> dict[str, Any]:
    """Turn ``{"a.b": 1}`` style keys into nested sections."""
    if not isinstance(layer, Mapping):
        raise ConfigError(f"{label} overrides must be a mapping.")
    tree: dict[str, Any] = {}
    for key, value in layer.items():
        if not isinstance(key, str) or not key:
            raise ConfigError(f"{label} override keys must be non-empty strings.")
        if isinstance(value, Mapping):
            value = expand_dotted(value, label=label)
        path = key.split(".")
        existing = _lookup(tree, path)
        if isinstance(existing, dict) and isinstance(value, dict):
            value = merge_sections(existing, value)
        assign_path(tree, path, value)
    return tree


def merge_sections(base: Mapping[str, Any], top: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``base`` overlaid with ``top``; nested sections merge, other values replace."""
    result = deepcopy(dict(base))
    for key, value in top.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            result[key] = merge_sections(current, value)
        else:
            result[key] = deepcopy(value)
    return result


def resolve_with_precedence(
    *,
    defaults: TidyVaultConfig,
    file_overrides: Optional[Mapping[str, Any]] = None,
    env_overrides: Optional[Mapping[str, Any]] = None,
    cli_overrides: Optional[Mapping[str, Any]] = None,
) -> TidyVaultConfig:
    """Merge configuration sources: defaults < file < environment < CLI.

    Raises:
        ConfigError: If a layer is malformed or the merged values fail validation.
    """
    layers = (("File", file_overrides), ("Environment", env_overrides), ("CLI", cli_overrides))
    data = defaults.model_dump(mode="python")
    for label, layer in layers:
        if layer:
            data = merge_sections(data, expand_dotted(layer, label=label))
    try:
        return TidyVaultConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def _lookup(tree: Mapping[str, Any], path: Sequence[str]) -> Any:
    node: Any = tree
    for segment in path:
        if not isinstance(node, Mapping):
            return None
        node = node.get(segment)
    return node


__all__ = [
    "ENV_PREFIX",
    "assign_path",
    "expand_dotted",
    "merge_sections",
    "resolve_with_precedence",
]
