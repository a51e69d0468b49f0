"""Descriptions of where the leads live inside a JSON input document."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Tuple, Union


@dataclass(frozen=True, slots=True)
class ArrayShape:
    """The document itself is the list of leads."""

    kind: str = "array"

    def extract(self, document: Any) -> List[Any]:
        return list(document)


@dataclass(frozen=True, slots=True)
class NestedShape:
    """The leads sit in a list reached by following ``path`` through nested objects."""

    path: Tuple[str, ...]
    kind: str = "nested"

    def extract(self, document: Any) -> List[Any]:
        node = document
        for key in self.path:
            node = node[key]
        return list(node)

    def describe(self) -> str:
        return ".".join(self.path)


DocumentShape = Union[ArrayShape, NestedShape]

__all__ = ["ArrayShape", "DocumentShape", "NestedShape"]
