"""Outcome of looking up a query's start node."""

import dataclasses
import enum

from graph_extractor.graph.graph_types import Node


class AmbiguityPolicy(enum.StrEnum):
    """What a query does when its start node lookup matches several nodes."""

    FIRST = "first"
    RAISE = "raise"


@dataclasses.dataclass(frozen=True)
class Unique:
    node: Node


@dataclasses.dataclass(frozen=True)
class Ambiguous:
    candidates: tuple[Node, ...]

    @property
    def first(self) -> Node:
        return self.candidates[0]


@dataclasses.dataclass(frozen=True)
class NotFound:
    pass


Resolution = Unique | Ambiguous | NotFound


def resolution_from(candidates: list[Node]) -> Resolution:
    match candidates:
        case []:
            return NotFound()
        case [node]:
            return Unique(node)
        case _:
            return Ambiguous(tuple(candidates))
