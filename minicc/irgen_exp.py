"""Translation of expressions and conditions into three-address code."""

from __future__ import annotations

import dataclasses
import re

from minicc.ir import (
    LT,
    NE,
    UNDEF,
    InterCode,
    IRKind,
    IRNode,
    IRProgram,
    OpCode,
    Operand,
    OperandKind,
    Prefix,
    State,
)
from minicc.semantic import Analyzer
from minicc.symbols import SymbolTable
from minicc.tree import Node
from minicc.typesys import ExpType, Kind, size_of

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

_ARITHMETIC = {
    "PLUS": OpCode.ADD,
    "MINUS": OpCode.SUB,
    "STAR": OpCode.MUL,
    "DIV": OpCode.DIV,
}

# A temporary numbered -1 marks an expression that stands on the left of "=".
LVALUE_MARKER = Operand(OperandKind.TEMP, -1)


class TranslationError(Exception):
    """A construct that the code generator cannot translate."""


def _leading_int(text: str) -> int:
    match = _INT_PREFIX.match(text)
    return int(match.group(1)) if match else 0


def _leading_float(text: str) -> float:
    match = _FLOAT_PREFIX.match(text)
    return float(match.group(1)) if match else 0.0


def _const_int(value: int) -> Operand:
    return Operand(OperandKind.CONST_INT, value)


def _is_plain_temp(operand: Operand) -> bool:
    return operand.kind is OperandKind.TEMP and operand.prefix is Prefix.NOTHING


def _is_operand_temp(operand: Operand) -> bool:
    return operand.kind is OperandKind.TEMP and operand.value > 0


def _is_lvalue_marker(operand: Operand) -> bool:
    return operand.kind is OperandKind.TEMP and operand.value < 0


def _assign(target: Operand, source: Operand) -> IRNode:
    return IRNode(IRKind.ASSIGN, code=InterCode(OpCode.ASSIGN, target, source))


def _binary(op: OpCode, target: Operand, left: Operand, right: Operand) -> IRNode:
    return IRNode(IRKind.ASSIGN, code=InterCode(op, target, left, right))


def _label(label: Operand) -> IRNode:
    return IRNode(IRKind.LABEL, x=label)


def _goto(label: Operand) -> IRNode:
    return IRNode(IRKind.GOTO, x=label)


def _cond_goto(left: Operand, relop: str, right: Operand, label: Operand) -> IRNode:
    return IRNode(IRKind.COND_GOTO, x=left, relop=relop, y=right, z=label)


class ExpressionTranslator:
    """Emits IR for expressions into ``self.program``.

    Every ``translate_exp`` call receives a ``target``: ``UNDEF`` when the
    value is not needed, a fresh temporary when the caller wants an operand
    back, a variable (or ``*t``) to store into, or ``LVALUE_MARKER`` when the
    expression is the left side of an assignment.
    """

    def __init__(self, table: SymbolTable, analyzer: Analyzer) -> None:
        self.table = table
        self.analyzer = analyzer
        self.program = IRProgram()

    # ---------- allocation ----------

    def new_temp(self) -> Operand:
        """A fresh temporary with its own four-byte frame slot."""
        self.program.frame_size += 4
        temp = Operand(
            OperandKind.TEMP, self.program.next_temp, offset=self.program.frame_size
        )
        self.program.next_temp += 1
        return temp

    def new_label(self) -> Operand:
        """A fresh jump label."""
        label = Operand(OperandKind.LABEL, self.program.next_label)
        self.program.next_label += 1
        return label

    def variable(self, name: str) -> Operand:
        """The IR variable of a named symbol, allocated on first use."""
        index = self.table.symbol_index(name)
        if index is None:
            raise TranslationError(f"[Cannot translate]: Unknown variable {name}.")
        existing = self.program.variables.get(index)
        if existing is None:
            symbol = self.table.symbols[index]
            self.program.frame_size += size_of(symbol.dtype)
            existing = Operand(
                OperandKind.VAR, self.program.next_var, offset=self.program.frame_size
            )
            self.program.variables[index] = existing
            self.program.next_var += 1
        return existing

    def _emit(self, node: IRNode) -> IRNode:
        return self.program.emit(node)

    def _type_of(self, exp: Node) -> ExpType:
        """Type of ``exp`` without recording any new semantic errors."""
        errors = self.analyzer.errors
        mark = len(errors)
        try:
            return self.analyzer.expression(exp)
        finally:
            del errors[mark:]

    # ---------- expressions ----------

    def translate_exp(self, exp: Node, target: Operand) -> Operand:
        """Emit code for ``exp`` and return the operand holding its value."""
        children = exp.children
        first = children[0].msg
        if first == "LP":
            return self.translate_exp(children[1], target)
        if len(children) == 1:
            if first.startswith("ID"):
                return self._exp_id(exp, target)
            return self._exp_basic(exp, target)
        if first == "MINUS":
            return self._exp_negative(exp, target)
        if first == "NOT":
            self._bool_value(exp, target)
            return target
        if first.startswith("ID"):
            return self._exp_call(exp, target)
        op = children[1].msg
        if op == "ASSIGNOP":
            return self._exp_assign(exp, target)
        if op in ("AND", "OR", "RELOP"):
            self._bool_value(exp, target)
            return target
        if op in _ARITHMETIC:
            return self._exp_arithmetic(exp, target)
        if op == "LB":
            return self._exp_index(exp, target)
        if op == "DOT":
            return self._exp_member(exp, target)
        return target

    def _bool_value(self, exp: Node, target: Operand) -> None:
        label_true = self.new_label()
        label_false = self.new_label()
        self.translate_cond(exp, label_true, label_false)
        self._emit(_label(label_true))
        self._emit(_assign(target, _const_int(1)))
        self._emit(_label(label_false))
        self._emit(_assign(target, _const_int(0)))

    def _array_length_of(self, target: Operand, fallback: int) -> int:
        if target.kind is OperandKind.VAR:
            for index, operand in self.program.variables.items():
                if operand.value == target.value:
                    dtype = self.table.symbols[index].dtype
                    if dtype is not None and dtype.kind is Kind.ARRAY:
                        return dtype.size
        return fallback

    def _copy_array(self, length: int, source: Operand, target: Operand) -> None:
        """Word-by-word copy of ``source`` into ``target``; length from the left side."""
        total = _const_int(length * 4)
        counter = self.new_temp()
        self._emit(_assign(counter, _const_int(0)))
        loop = self.new_label()
        body = self.new_label()
        done = self.new_label()
        dst, src = self.new_temp(), self.new_temp()
        self._emit(_label(loop))
        self._emit(_cond_goto(counter, LT, total, body))
        self._emit(_goto(done))
        self._emit(_label(body))
        self._emit(_binary(OpCode.ADD, dst, target.with_prefix(Prefix.GET_ADDR), counter))
        self._emit(_binary(OpCode.ADD, src, source.with_prefix(Prefix.GET_ADDR), counter))
        self._emit(_assign(dst.with_prefix(Prefix.GET_VAL), src.with_prefix(Prefix.GET_VAL)))
        self._emit(_binary(OpCode.ADD, counter, counter, _const_int(4)))
        self._emit(_goto(loop))
        self._emit(_label(done))

    def _exp_id(self, exp: Node, target: Operand) -> Operand:
        if target.is_undefined():
            return target
        name = exp.identifier()
        result = self.variable(name)
        if not _is_plain_temp(target):
            symbol = self.table.symbol(name)
            dtype = symbol.dtype if symbol is not None else None
            if dtype is not None and dtype.kind is Kind.ARRAY:
                self._copy_array(self._array_length_of(target, dtype.size), result, target)
            else:
                self._emit(_assign(target, result))
        return result

    def _exp_basic(self, exp: Node, target: Operand) -> Operand:
        if target.is_undefined():
            return target
        token = exp.children[0].msg
        if token.startswith("INT"):
            result = _const_int(_leading_int(token[5:]))
        else:
            result = Operand(OperandKind.CONST_FLO, _leading_float(token[7:]))
        if not _is_plain_temp(target):
            self._emit(_assign(target, result))
            return target
        return result

    def _exp_negative(self, exp: Node, target: Operand) -> Operand:
        if target.is_undefined():
            return target
        result = self.translate_exp(exp.children[1], self.new_temp())
        if result.kind in (OperandKind.CONST_INT, OperandKind.CONST_FLO):
            return dataclasses.replace(result, value=-result.value)
        self._emit(_binary(OpCode.SUB, target, _const_int(0), result))
        return target

    def _exp_assign(self, exp: Node, target: Operand) -> Operand:
        left = self.translate_exp(exp.children[0], LVALUE_MARKER)
        if left.prefix is Prefix.GET_VAL:
            used = self.translate_exp(exp.children[2], self.new_temp())
            self._emit(_assign(left, used))
        else:
            used = self.translate_exp(exp.children[2], left)
        if not target.is_undefined():
            self._emit(_assign(target, left))
        return used

    def _exp_arithmetic(self, exp: Node, target: Operand) -> Operand:
        if target.is_undefined():
            return target
        left = self.translate_exp(exp.children[0], self.new_temp())
        right = self.translate_exp(exp.children[2], self.new_temp())
        self._emit(_binary(_ARITHMETIC[exp.children[1].msg], target, left, right))
        return target

    def _exp_index(self, exp: Node, target: Operand) -> Operand:
        if target.is_undefined():
            return target
        array_exp = exp.children[0]
        array = self.translate_exp(array_exp, self.new_temp())
        index = self.translate_exp(exp.children[2], self.new_temp())
        array_type = self._type_of(array_exp).dtype
        elem = array_type.elem if array_type is not None else None
        if elem is not None and elem.kind is Kind.ARRAY:
            raise TranslationError(
                "[Cannot translate]: Variables of multi-dimensional array type."
            )
        elem_size = size_of(elem)
        base = array.with_prefix(Prefix.GET_ADDR)
        if index.kind is OperandKind.CONST_INT and index.value == 0:
            address = self.new_temp()
            self._emit(_assign(address, base))
        else:
            if index.kind is OperandKind.CONST_INT:
                displacement = _const_int(index.value * elem_size)
            else:
                displacement = self.new_temp()
                self._emit(_binary(OpCode.MUL, displacement, index, _const_int(elem_size)))
            address = self.new_temp()
            self._emit(_binary(OpCode.ADD, address, base, displacement))
        element = dataclasses.replace(address, state=State.ADDR, prefix=Prefix.GET_VAL)
        if _is_operand_temp(target):
            self._emit(_assign(target, element))
            return target
        if not _is_lvalue_marker(target):
            self._emit(_assign(target, element))
        return element

    def _exp_member(self, exp: Node, target: Operand) -> Operand:
        if target.is_undefined():
            return target
        struct_exp = exp.children[0]
        struct = self.translate_exp(struct_exp, self.new_temp())
        field_name = exp.children[2].identifier()
        struct_type = self._type_of(struct_exp).dtype
        members = []
        if struct_type is not None and struct_type.struct is not None:
            definition = struct_type.struct.dtype
            members = definition.members if definition is not None else []
        offset = 0
        for member in members:
            if member.name == field_name:
                break
            offset += size_of(member.dtype)
        address = self.new_temp()
        if struct.state is State.VALUE:
            struct = struct.with_prefix(Prefix.GET_ADDR)
        if offset:
            self._emit(_binary(OpCode.ADD, address, struct, _const_int(offset)))
        else:
            self._emit(_assign(address, struct))
        address = dataclasses.replace(address, state=State.ADDR)
        if _is_operand_temp(target):
            self._emit(_assign(target, address.with_prefix(Prefix.GET_VAL)))
            return target
        if not _is_lvalue_marker(target):
            self._emit(_assign(target, address.with_prefix(Prefix.GET_VAL)))
        return address

    def _exp_call(self, exp: Node, target: Operand) -> Operand:
        name = exp.children[0].identifier()
        args = exp.children[2]
        argument = UNDEF
        if args.msg == "Args":
            argument = self.translate_args(args, name == "write")
        if name == "read":
            self._emit(IRNode(IRKind.READ, x=target))
        elif name == "write":
            self._emit(IRNode(IRKind.WRITE, x=argument))
            if not target.is_undefined():
                self._emit(_assign(target, _const_int(0)))
        else:
            if target.is_undefined():
                target = self.new_temp()
            function = Operand(OperandKind.FUNC, name)
            self._emit(IRNode(IRKind.ASSIGN, code=InterCode(OpCode.CALL, target, function)))
        return target

    def translate_args(self, args: Node, is_write: bool) -> Operand:
        """Emit ``ARG`` for each argument, last first; return the first argument.

        With ``is_write`` no ``ARG`` is emitted: the operand is only returned.
        """
        expressions: list[Node] = []
        current: Node | None = args
        while current is not None:
            expressions.append(current.children[0])
            current = current.children[2] if len(current.children) > 2 else None
        first = UNDEF
        for exp in reversed(expressions):
            argument = self.translate_exp(exp, self.new_temp())
            dtype = self._type_of(exp).dtype
            if dtype is not None and dtype.kind is Kind.STRUCT:
                argument = argument.with_prefix(Prefix.GET_ADDR)
            if not is_write:
                self._emit(IRNode(IRKind.ARG, x=argument))
            first = argument
        return first

    # ---------- conditions ----------

    def translate_cond(self, exp: Node, label_true: Operand, label_false: Operand) -> None:
        """Emit jumps to ``label_true`` or ``label_false`` depending on ``exp``."""
        if exp.children[0].msg == "LP":
            exp = exp.children[1]
            # The inner condition is translated here and once more below.
            self.translate_cond(exp, label_true, label_false)
        if exp.children[0].msg == "NOT":
            self.translate_cond(exp.children[1], label_false, label_true)
            return
        op = exp.children[1].msg if len(exp.children) > 1 else ""
        if op.startswith("RELOP"):
            left = self.translate_exp(exp.children[0], self.new_temp())
            right = self.translate_exp(exp.children[2], self.new_temp())
            self._emit(_cond_goto(left, op[7:], right, label_true))
            self._emit(_goto(label_false))
        elif op == "AND":
            middle = self.new_label()
            self.translate_cond(exp.children[0], middle, label_false)
            self._emit(_label(middle))
            self.translate_cond(exp.children[2], label_true, label_false)
        elif op == "OR":
            middle = self.new_label()
            self.translate_cond(exp.children[0], label_true, middle)
            self._emit(_label(middle))
            self.translate_cond(exp.children[2], label_true, label_false)
        else:
            value = self.translate_exp(exp, self.new_temp())
            self._emit(_cond_goto(value, NE, _const_int(0), label_true))
            self._emit(_goto(label_false))