"""Tree-shape helpers.

A tree is a nested mapping describing the resource layout below ``/bookmarks``:
each node may carry ``_type`` (content type) and ``_rev`` (the node is its own
versioned resource), and ``*`` matches any key at that level.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import cast

type Tree = Mapping[str, object]

WILDCARD = "*"


def split_path(path: str) -> list[str]:
    return [segment for segment in path.strip("/").split("/") if segment]


def join_path(*segments: str) -> str:
    parts: list[str] = []
    for segment in segments:
        parts.extend(split_path(segment))
    return "/" + "/".join(parts)


def _child(node: Tree, segment: str) -> Tree | None:
    child = node.get(segment)
    if child is None:
        child = node.get(WILDCARD)
    if isinstance(child, Mapping):
        return cast(Tree, child)
    return None


def subtree_at(tree: Tree, path: str) -> Tree | None:
    """Return the tree node describing ``path``, honouring ``*`` wildcards."""

    node: Tree | None = tree
    for segment in split_path(path):
        if node is None:
            return None
        node = _child(node, segment)
    return node


def content_type_at(tree: Tree, path: str) -> str | None:
    node = subtree_at(tree, path)
    if node is None:
        return None
    content_type = node.get("_type")
    return content_type if isinstance(content_type, str) else None


def resource_boundaries(tree: Tree, path: str) -> list[tuple[str, str]]:
    """List ``(prefix, content_type)`` for every versioned resource along ``path``.

    The full path itself is included when it is a resource boundary.
    """

    boundaries: list[tuple[str, str]] = []
    node: Tree | None = tree
    prefix: list[str] = []
    for segment in split_path(path):
        if node is None:
            break
        node = _child(node, segment)
        prefix.append(segment)
        if node is None:
            break
        content_type = node.get("_type")
        if "_rev" in node and isinstance(content_type, str):
            boundaries.append(("/" + "/".join(prefix), content_type))
    return boundaries


def graft(tree: Tree, source: str, target: str) -> dict[str, object]:
    """Return a deep copy of ``tree`` with the subtree at ``source`` also placed at ``target``."""

    grafted = cast(dict[str, object], copy.deepcopy(dict(tree)))
    subtree = subtree_at(grafted, source)
    if subtree is None:
        raise KeyError(f"No subtree at {source}")

    segments = split_path(target)
    node: dict[str, object] = grafted
    for segment in segments[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise KeyError(f"Cannot graft below non-mapping node {segment!r}")
        node = cast(dict[str, object], child)
    node[segments[-1]] = copy.deepcopy(dict(subtree))
    return grafted
