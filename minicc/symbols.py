"""Sorted variable and function tables filled from a syntax tree."""

from __future__ import annotations

from bisect import bisect_left
from typing import Iterator, TypeVar

from minicc.tree import Node, is_empty
from minicc.typesys import Function, Kind, Symbol, Type

_Entry = TypeVar("_Entry", Symbol, Function)


def _insert_sorted(names: list[str], entries: list[_Entry], entry: _Entry) -> None:
    """Insert ``entry`` keeping ``names`` sorted; an existing name wins."""
    position = bisect_left(names, entry.name)
    if position < len(names) and names[position] == entry.name:
        return
    names.insert(position, entry.name)
    entries.insert(position, entry)


def _find(names: list[str], name: str) -> int | None:
    position = bisect_left(names, name)
    if position < len(names) and names[position] == name:
        return position
    return None


def _walk(root: Node) -> Iterator[Node]:
    """Yield ``root`` and all nodes below it in pre-order."""
    stack = [root]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def _builtin_functions() -> list[Function]:
    read = Function("read", defined=True, return_type=Type(Kind.INT))
    write = Function(
        "write",
        defined=True,
        return_type=Type(Kind.INT),
        params=[Symbol("", defined=True, dtype=Type(Kind.INT))],
    )
    return [read, write]


class SymbolTable:
    """Variables (including structure tags) and functions, each sorted by name.

    ``collect`` fills both tables with one entry per distinct name found in
    the tree; the semantic pass later fills in types and definitions.
    """

    def __init__(self) -> None:
        self.symbols: list[Symbol] = []
        self.functions: list[Function] = []
        self._symbol_names: list[str] = []
        self._function_names: list[str] = []

    def _add_symbol(self, name: str) -> None:
        _insert_sorted(self._symbol_names, self.symbols, Symbol(name))

    def _add_function(self, function: Function) -> None:
        _insert_sorted(self._function_names, self.functions, function)

    def collect(self, root: Node) -> None:
        """Register every declared name below ``root``, plus ``read`` and ``write``."""
        self.symbols.clear()
        self.functions.clear()
        self._symbol_names.clear()
        self._function_names.clear()
        for current in _walk(root):
            if current.msg == "VarDec":
                if current.children and current.children[0].msg != "VarDec":
                    self._add_symbol(current.identifier())
            elif current.msg == "OptTag":
                if current.children and not is_empty(current.children[0]):
                    self._add_symbol(current.identifier())
            elif current.msg == "FunDec":
                self._add_function(Function(current.identifier()))
        for builtin in _builtin_functions():
            self._add_function(builtin)

    def symbol(self, name: str) -> Symbol | None:
        """The variable entry called ``name``, or None."""
        index = self.symbol_index(name)
        return None if index is None else self.symbols[index]

    def function(self, name: str) -> Function | None:
        """The function entry called ``name``, or None."""
        index = self.function_index(name)
        return None if index is None else self.functions[index]

    def symbol_index(self, name: str) -> int | None:
        """Position of ``name`` in the variable table, or None."""
        return _find(self._symbol_names, name)

    def function_index(self, name: str) -> int | None:
        """Position of ``name`` in the function table, or None."""
        return _find(self._function_names, name)

    def dump(self) -> str:
        """A readable listing of both tables, for debugging."""
        lines: list[str] = ["---------- SymbTable: ----------"]
        for entry in self.symbols:
            _dump_symbol_chain([entry], 0, lines)
        lines.append("---------- FuncTable: ----------")
        for function in self.functions:
            _dump_function(function, 0, lines)
        lines.append("")
        return "\n".join(lines) + "\n"


def _line(lines: list[str], level: int, text: str) -> None:
    lines.append("\t" * level + text)


def _dump_type(dtype: Type | None, level: int, lines: list[str]) -> None:
    if dtype is None:
        return
    if dtype.kind is Kind.INT:
        _line(lines, level, "INT")
    elif dtype.kind is Kind.FLOAT:
        _line(lines, level, "FLOAT")
    elif dtype.kind is Kind.STRUCT:
        _line(lines, level, "STRUCT")
        if dtype.struct is not None:
            _dump_symbol_chain([dtype.struct], level + 1, lines)
    elif dtype.kind is Kind.ARRAY:
        _line(lines, level, "ARRAY")
        _line(lines, level, f"size = {dtype.size}")
        _line(lines, level, "Type:")
        _dump_type(dtype.elem, level + 1, lines)
    else:
        _line(lines, level, "STRUCT_TYPE")
        _line(lines, level, "Params:")
        _dump_symbol_chain(dtype.members, level + 1, lines)


def _dump_symbol_chain(chain: list[Symbol], level: int, lines: list[str]) -> None:
    """Print a linked chain of symbols, each successor one level deeper."""
    for depth, entry in enumerate(chain):
        current = level + depth
        _line(lines, current, "SymbNode:")
        _line(lines, current, f"name = {entry.name}")
        _line(lines, current, f"def = {int(entry.defined)}")
        _line(lines, current, "Type:")
        _dump_type(entry.dtype, current + 1, lines)
        if depth + 1 < len(chain):
            _line(lines, current, f"Next: {chain[depth + 1].name}")
        else:
            _line(lines, current, "Next: null\n")


def _dump_function(function: Function, level: int, lines: list[str]) -> None:
    _line(lines, level, f"name = {function.name}")
    _line(lines, level, f"def = {int(function.defined)}")
    _line(lines, level, "Type:")
    _dump_type(function.return_type, level + 1, lines)
    _line(lines, level, "Params:")
    _dump_symbol_chain(function.params, level + 1, lines)
    lines.append("")