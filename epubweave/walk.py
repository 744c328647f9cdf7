from __future__ import annotations

from dataclasses import fields, is_dataclass, replace
from typing import Callable, TypeVar

from .models import BLOCK_TYPES, INLINE_TYPES, Attr, Block, Inline

T = TypeVar("T")


def _rebuild(value: T, visit: Callable[[object], object]) -> T:
    if isinstance(value, list):
        return [visit(item) for item in value]  # type: ignore[return-value]
    if isinstance(value, Attr) or not is_dataclass(value) or isinstance(value, type):
        return value
    changes: dict[str, object] = {}
    for item in fields(value):
        current = getattr(value, item.name)
        updated = visit(current)
        if updated is not current:
            changes[item.name] = updated
    return replace(value, **changes) if changes else value


def _walker(node_types: tuple[type, ...], fn: Callable) -> Callable[[object], object]:
    def visit(value: object) -> object:
        rebuilt = _rebuild(value, visit)
        if isinstance(rebuilt, node_types):
            return fn(rebuilt)
        return rebuilt

    return visit


def walk_inlines(fn: Callable[[Inline], Inline], value: T) -> T:
    """Rewrite every inline node bottom-up, returning a new tree."""
    return _walker(INLINE_TYPES, fn)(value)  # type: ignore[return-value]


def walk_blocks(fn: Callable[[Block], Block], value: T) -> T:
    """Rewrite every block node bottom-up, returning a new tree."""
    return _walker(BLOCK_TYPES, fn)(value)  # type: ignore[return-value]


def query_inlines(fn: Callable[[Inline], list[T]], value: object) -> list[T]:
    results: list[T] = []

    def visit(node: object) -> None:
        if isinstance(node, list):
            for item in node:
                visit(item)
            return
        if isinstance(node, Attr) or not is_dataclass(node) or isinstance(node, type):
            return
        if isinstance(node, INLINE_TYPES):
            results.extend(fn(node))
        for item in fields(node):
            visit(getattr(node, item.name))

    visit(value)
    return results
