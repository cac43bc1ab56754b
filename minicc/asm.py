"""MIPS assembly generation from the intermediate representation."""

from __future__ import annotations

from minicc.ir import (
    EQ,
    GE,
    GT,
    LE,
    LT,
    NE,
    InterCode,
    IRKind,
    IRNode,
    IRProgram,
    OpCode,
    Operand,
    OperandKind,
    Prefix,
    format_number,
)
from minicc.irgen import generate_ir
from minicc.semantic import analyze
from minicc.tree import Node

ASM_HEADER = (
    ".data\n"
    '_prompt: .asciiz "Enter an integer:"\n'
    '_ret: .asciiz "\\n"\n'
    ".globl main\n"
    ".text\n"
    "read:\n"
    "    li $v0, 4\n"
    "    la $a0, _prompt\n"
    "    syscall\n"
    "    li $v0, 5\n"
    "    syscall\n"
    "    jr $ra\n"
    "\n"
    "write:\n"
    "    li $v0, 1\n"
    "    syscall\n"
    "    li $v0, 4\n"
    "    la $a0, _ret\n"
    "    syscall\n"
    "    move $v0, $0\n"
    "    jr $ra\n"
    "    \n"
)

_BRANCHES = {EQ: "beq", NE: "bne", GT: "bgt", LT: "blt", GE: "bge", LE: "ble"}

_ARITHMETIC = {OpCode.ADD: "add", OpCode.SUB: "sub", OpCode.MUL: "mul"}

_CONSTANTS = (OperandKind.CONST_INT, OperandKind.CONST_FLO)


class CompileError(Exception):
    """An IR instruction that cannot be turned into assembly."""


def _constant_text(operand: Operand) -> str:
    if operand.kind is OperandKind.CONST_INT:
        return format_number(int(operand.value))
    return format_number(float(operand.value))


def _is_memory(text: str) -> bool:
    """True for a register-indirect operand such as ``0($t1)``."""
    return text.startswith("0")


class Assembler:
    """Turns an ``IRProgram`` into MIPS assembly text.

    Every variable and temporary lives in the frame at a fixed offset from
    ``$fp``; parameters are found above the frame pointer.
    """

    def __init__(self, program: IRProgram) -> None:
        self.program = program
        self.frame_size = program.frame_size
        self._lines: list[str] = []

    def _emit(self, text: str) -> None:
        self._lines.append(text)

    def frame_offset(self, operand: Operand) -> int:
        """Offset of ``operand`` from ``$fp``; zero for non-memory operands."""
        if operand.kind not in (OperandKind.VAR, OperandKind.TEMP):
            return 0
        if self.program.is_param(operand):
            return self.program.params[operand.value] * 4 + 4
        return -operand.offset

    def _operand(self, operand: Operand, reg: int) -> str:
        """Load ``operand`` into ``$t<reg>`` if needed and return its text."""
        kind = operand.kind
        if kind in (OperandKind.VAR, OperandKind.TEMP):
            offset = self.frame_offset(operand)
            if operand.prefix is Prefix.GET_ADDR:
                self._emit(f"\taddi  $t{reg}, $fp, {offset}")
                return f"$t{reg}"
            self._emit(f"\tlw  $t{reg}, {offset}($fp)")
            if operand.prefix is Prefix.GET_VAL:
                return f"0($t{reg})"
            return f"$t{reg}"
        if kind in _CONSTANTS:
            self._emit(f"\tli  $t{reg}, {_constant_text(operand)}")
            return f"$t{reg}"
        if kind is OperandKind.LABEL:
            return f"label{operand.value}"
        if kind is OperandKind.FUNC:
            return str(operand.value)
        raise CompileError("Cannot compile an undefined operand.")

    # ---------- assignments and arithmetic ----------

    def _code(self, code: InterCode) -> None:
        if code.op in _ARITHMETIC or code.op is OpCode.DIV:
            self._arithmetic(code)
        elif code.op is OpCode.ASSIGN:
            self._assign(code)
        elif code.op is OpCode.CALL:
            self._call(code)

    def _arithmetic(self, code: InterCode) -> None:
        target = self._operand(code.target, 1)
        offset = self.frame_offset(code.target)
        left = self._operand(code.left, 2)
        right = self._operand(code.right, 3)
        memory = _is_memory(target)
        if code.op is OpCode.DIV:
            self._emit(f"\tdiv  {left}, {right}")
            if memory:
                self._emit("\tmflo  $t4")
                self._emit(f"\tsw  $t4, {target}")
            else:
                self._emit(f"\tmflo  {target}")
                self._emit(f"\tsw  {target}, {offset}($fp)")
            return
        opcode = _ARITHMETIC[code.op]
        if memory:
            self._emit(f"\t{opcode}  $t4, {left}, {right}")
            self._emit(f"\tsw  $t4, {target}")
        else:
            self._emit(f"\t{opcode}  {target}, {left}, {right}")
            self._emit(f"\tsw  {target}, {offset}($fp)")

    def _assign(self, code: InterCode) -> None:
        target = code.target
        offset = self.frame_offset(target)
        source = code.left
        if source.kind in _CONSTANTS:
            source_text = _constant_text(source)
            opcode = "li"
        else:
            source_text = self._operand(source, 2)
            opcode = "lw" if source.prefix is Prefix.GET_VAL else "move"
        if target.prefix is Prefix.GET_VAL:
            target_text = self._operand(target, 1)
            self._emit(f"\t{opcode}  $t4, {source_text}")
            self._emit(f"\tsw  $t4, {target_text}")
        else:
            self._emit(f"\t{opcode}  $t1, {source_text}")
            self._emit(f"\tsw  $t1, {offset}($fp)")

    def _call(self, code: InterCode) -> None:
        target = self._operand(code.target, 1)
        offset = self.frame_offset(code.target)
        function = self._operand(code.left, 0)
        self._emit("\taddi  $sp, $sp, -4")
        self._emit("\tsw  $ra, 0($sp)")
        self._emit("\taddi  $sp, $sp, -4")
        self._emit("\tsw  $fp, 0($sp)")
        self._emit(f"\tjal  {function}")
        self._emit("\tlw  $ra, 4($fp)")
        self._emit("\tlw  $fp, 0($fp)")
        self._emit(f"\taddi  $sp, $fp, -{self.frame_size}")
        self._emit(f"\tmove  {target}, $v0")
        self._emit(f"\tsw  {target}, {offset}($fp)")

    # ---------- instructions ----------

    def _node(self, node: IRNode) -> None:
        kind = node.kind
        if kind is IRKind.LABEL:
            self._emit(f"{self._operand(node.x, 0)}:")
        elif kind is IRKind.FUNC:
            self._emit(f"{self._operand(node.x, 0)}:")
            self._emit("\tmove  $fp, $sp")
            self._emit(f"\taddi  $sp, $fp, -{self.frame_size}")
        elif kind is IRKind.ASSIGN:
            self._code(node.code)
        elif kind is IRKind.GOTO:
            self._emit(f"\tj  {self._operand(node.x, 0)}")
        elif kind is IRKind.COND_GOTO:
            left = self._operand(node.x, 1)
            right = self._operand(node.y, 2)
            label = self._operand(node.z, 0)
            branch = _BRANCHES.get(node.relop)
            if branch is not None:
                self._emit(f"\t{branch}  {left}, {right}, {label}")
        elif kind is IRKind.RETURN:
            value = self._operand(node.x, 1)
            self._emit(f"\tmove  $v0, {value}")
            self._emit("\tjr  $ra")
        elif kind is IRKind.ARG:
            self._emit("\taddi  $sp, $sp, -4")
            value = self._operand(node.x, 1)
            self._emit(f"\tsw  {value}, 0($sp)")
        elif kind in (IRKind.DEC, IRKind.PARAM):
            pass
        elif kind is IRKind.READ:
            offset = self.frame_offset(node.x)
            self._emit("\taddi  $sp, $sp, -4")
            self._emit("\tsw  $ra, 0($sp)")
            self._emit("\tjal  read")
            self._emit("\tlw  $ra, 0($sp)")
            self._emit("\taddi  $sp, $sp, 4")
            self._emit("\tmove  $t1, $v0")
            self._emit(f"\tsw  $t1, {offset}($fp)")
        elif kind is IRKind.WRITE:
            self._emit("\taddi  $sp, $sp, -4")
            self._emit("\tsw  $ra, 0($sp)")
            if node.x is not None and node.x.kind in _CONSTANTS:
                self._emit(f"\tli  $a0, {_constant_text(node.x)}")
            else:
                if node.x is None:
                    raise CompileError("WRITE without an operand.")
                value = self._operand(node.x, 1)
                self._emit(f"\tmove  $a0, {value}")
            self._emit("\tjal  write")
            self._emit("\tlw  $ra, 0($sp)")
            self._emit("\taddi  $sp, $sp, 4")
        else:
            self._emit("nop")

    def assemble(self) -> str:
        """The whole program as assembly text, runtime routines first."""
        self._lines = []
        for node in self.program:
            self._node(node)
        body = "".join(line + "\n" for line in self._lines)
        self._lines = []
        return ASM_HEADER + body


def assemble(root: Node) -> str:
    """Check ``root``, translate it and return its assembly text.

    Raises the first ``SemanticError`` found, if any.
    """
    analyzer = analyze(root)
    if analyzer.errors:
        raise analyzer.errors[0]
    program = generate_ir(root, analyzer.table, analyzer)
    return Assembler(program).assemble()