"""Syntax tree nodes as produced by the parser."""

from __future__ import annotations

from dataclasses import dataclass, field

EMPTY = "EMPTY"


@dataclass(eq=False)
class Node:
    """A syntax tree node.

    ``msg`` names the grammar symbol (``"Exp"``, ``"StmtList"``) or, for
    tokens, the token kind and its text (``"ID: x"``, ``"INT: 3"``,
    ``"RELOP: <="``).
    """

    msg: str
    line: int = 0
    children: list[Node] = field(default_factory=list)

    def identifier(self) -> str:
        """Return the name of the first ``ID`` token below this node."""
        current = self
        while current.children:
            current = current.children[0]
        return current.msg[4:]

    def array_size_text(self) -> str:
        """For ``VarDec -> VarDec [ INT ]`` return the text of the ``INT``."""
        return self.children[2].msg[5:]

    def is_empty(self) -> bool:
        """True for the placeholder node of an empty production."""
        return self.msg == EMPTY


def node(msg: str, *args: Node, line: int = 0) -> Node:
    """Build a node with the given children."""
    return Node(msg, line, list(args))


def is_empty(node: Node | None) -> bool:
    """True when ``node`` is missing or stands for an empty production."""
    return node is None or node.is_empty()