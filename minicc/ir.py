"""Three-address intermediate representation and its text form."""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass, field
from typing import Iterator, Union

GT = ">"
LT = "<"
EQ = "=="
GE = ">="
LE = "<="
NE = "!="


class OperandKind(enum.Enum):
    UNDEF = 0
    VAR = 1
    TEMP = 2
    CONST_INT = 3
    CONST_FLO = 4
    FUNC = 5
    LABEL = 6


class State(enum.Enum):
    VALUE = 0
    ADDR = 1


class Prefix(enum.Enum):
    NOTHING = 0
    GET_ADDR = 1
    GET_VAL = 2


@dataclass(frozen=True)
class Operand:
    """An IR operand: variable, temporary, constant, function or label."""

    kind: OperandKind
    value: Union[int, float, str] = 0
    prefix: Prefix = Prefix.NOTHING
    state: State = State.VALUE
    offset: int = 0

    def with_prefix(self, prefix: Prefix) -> Operand:
        return dataclasses.replace(self, prefix=prefix)

    def is_undefined(self) -> bool:
        return (
            self.prefix == UNDEF.prefix
            and self.kind == UNDEF.kind
            and self.value == UNDEF.value
        )


UNDEF = Operand(OperandKind.UNDEF)


class OpCode(enum.Enum):
    ASSIGN = 0
    ADD = 1
    SUB = 2
    MUL = 3
    DIV = 4
    CALL = 5


@dataclass
class InterCode:
    """``target := left [op right]``; ``right`` is None for ASSIGN and CALL."""

    op: OpCode
    target: Operand
    left: Operand
    right: Operand | None = None


class IRKind(enum.Enum):
    NOP = 0
    LABEL = 1
    FUNC = 2
    ASSIGN = 3
    GOTO = 4
    COND_GOTO = 5
    RETURN = 6
    DEC = 7
    ARG = 8
    PARAM = 9
    READ = 10
    WRITE = 11


@dataclass
class IRNode:
    """One IR instruction.

    ``x`` is the operand of one-operand forms; ``COND_GOTO`` uses ``x``,
    ``relop``, ``y`` and the target ``z``; ``DEC`` uses ``x`` and ``size``;
    ``ASSIGN`` carries ``code``.
    """

    kind: IRKind
    x: Operand | None = None
    relop: str | None = None
    y: Operand | None = None
    z: Operand | None = None
    size: int = 0
    code: InterCode | None = None


@dataclass
class IRProgram:
    """The instruction list together with the allocation state used to build it."""

    nodes: list[IRNode] = field(default_factory=list)
    next_var: int = 1
    next_temp: int = 1
    next_label: int = 1
    frame_size: int = 4
    variables: dict[int, Operand] = field(default_factory=dict)
    params: dict[int, int] = field(default_factory=dict)

    def emit(self, node: IRNode) -> IRNode:
        self.nodes.append(node)
        return node

    def is_param(self, operand: Operand) -> bool:
        return operand.kind is OperandKind.VAR and self.params.get(operand.value, 0) > 0

    def __iter__(self) -> Iterator[IRNode]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)


def format_number(value: int | float) -> str:
    """Integers in decimal, floats with six decimals."""
    if isinstance(value, float):
        return f"{value:.6f}"
    return str(value)


_PREFIX_MARK = {Prefix.NOTHING: "", Prefix.GET_ADDR: "&", Prefix.GET_VAL: "*"}


def format_operand(operand: Operand) -> str:
    kind = operand.kind
    if kind is OperandKind.VAR:
        return f"{_PREFIX_MARK[operand.prefix]}v{operand.value}"
    if kind is OperandKind.TEMP:
        return f"{_PREFIX_MARK[operand.prefix]}t{operand.value}"
    if kind is OperandKind.LABEL:
        return f"label{operand.value}"
    if kind is OperandKind.CONST_INT:
        return "#" + format_number(int(operand.value))
    if kind is OperandKind.CONST_FLO:
        return "#" + format_number(float(operand.value))
    if kind is OperandKind.FUNC:
        return str(operand.value)
    return "`Undef`"


_BINARY_SIGN = {OpCode.ADD: "+", OpCode.SUB: "-", OpCode.MUL: "*", OpCode.DIV: "/"}


def format_code(code: InterCode) -> str:
    target = format_operand(code.target)
    left = format_operand(code.left)
    if code.op is OpCode.ASSIGN:
        return f"{target} := {left}"
    if code.op is OpCode.CALL:
        return f"{target} := CALL {left}"
    return f"{target} := {left} {_BINARY_SIGN[code.op]} {format_operand(code.right)}"


_ONE_OPERAND = {
    IRKind.GOTO: "GOTO",
    IRKind.RETURN: "RETURN",
    IRKind.ARG: "ARG",
    IRKind.PARAM: "PARAM",
    IRKind.READ: "READ",
    IRKind.WRITE: "WRITE",
}


def format_node(node: IRNode) -> str:
    kind = node.kind
    if kind is IRKind.LABEL:
        return f"LABEL {format_operand(node.x)} :"
    if kind is IRKind.FUNC:
        return f"FUNCTION {format_operand(node.x)} :"
    if kind is IRKind.ASSIGN:
        return format_code(node.code)
    if kind is IRKind.COND_GOTO:
        return (
            f"IF {format_operand(node.x)} {node.relop} {format_operand(node.y)}"
            f" GOTO {format_operand(node.z)}"
        )
    if kind is IRKind.DEC:
        return f"DEC {format_operand(node.x)} {node.size}"
    if kind in _ONE_OPERAND:
        return f"{_ONE_OPERAND[kind]} {format_operand(node.x)}"
    return "`NOP`"


def render(program: IRProgram) -> str:
    """The program as text, one instruction per line."""
    return "".join(format_node(node) + "\n" for node in program)