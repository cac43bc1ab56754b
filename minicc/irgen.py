"""Translation of statements, declarations and whole programs into IR."""

from __future__ import annotations

from typing import Iterator

from minicc.ir import UNDEF, IRKind, IRNode, IRProgram, Operand, OperandKind, render
from minicc.irgen_exp import ExpressionTranslator, TranslationError
from minicc.semantic import Analyzer, analyze
from minicc.symbols import SymbolTable
from minicc.tree import Node, is_empty
from minicc.typesys import Kind, size_of

_BASIC = (Kind.INT, Kind.FLOAT)


def _items(node: Node | None, rest: int) -> Iterator[Node]:
    """Items of a right-nested list such as ``X -> Item [sep] X``."""
    while not is_empty(node) and node.children:
        yield node.children[0]
        node = node.children[rest] if rest < len(node.children) else None


class Translator(ExpressionTranslator):
    """Emits IR for functions, declarations and statements."""

    # ---------- helpers ----------

    def _trailing_label(self) -> Operand | None:
        """The label of the last instruction, if that instruction is a label."""
        if not self.program.nodes:
            return None
        last = self.program.nodes[-1]
        return last.x if last.kind is IRKind.LABEL else None

    def _emit_label(self, label: Operand) -> IRNode:
        return self._emit(IRNode(IRKind.LABEL, x=label))

    def _emit_goto(self, label: Operand) -> IRNode:
        return self._emit(IRNode(IRKind.GOTO, x=label))

    # ---------- statements ----------

    def translate_stmt(self, stmt: Node) -> None:
        """Emit code for one statement."""
        children = stmt.children
        head = children[0].msg
        if head == "Exp":
            self.translate_exp(children[0], UNDEF)
        elif head == "CompSt":
            self.translate_comp_st(children[0])
        elif head == "RETURN":
            value = self.translate_exp(children[1], self.new_temp())
            self._emit(IRNode(IRKind.RETURN, x=value))
        elif head == "IF":
            self._if(stmt)
        elif head == "WHILE":
            self._while(stmt)

    def _if(self, stmt: Node) -> None:
        cond, body = stmt.children[2], stmt.children[4]
        label_true = self.new_label()
        label_false = self.new_label()
        if len(stmt.children) <= 5:
            self.translate_cond(cond, label_true, label_false)
            self._emit_label(label_true)
            self.translate_stmt(body)
            self._emit_label(label_false)
            return
        label_exit = self.new_label()
        self.translate_cond(cond, label_true, label_false)
        self._emit_label(label_true)
        self.translate_stmt(body)
        goto_exit = self._emit_goto(label_exit)
        self._emit_label(label_false)
        self.translate_stmt(stmt.children[6])
        trailing = self._trailing_label()
        if trailing is not None:
            goto_exit.x = trailing
        else:
            self._emit_label(label_exit)

    def _while(self, stmt: Node) -> None:
        cond, body = stmt.children[2], stmt.children[4]
        label_loop = self._trailing_label()
        if label_loop is None:
            label_loop = self.new_label()
            self._emit_label(label_loop)
        label_true = self.new_label()
        label_false = self.new_label()
        self.translate_cond(cond, label_true, label_false)
        self._emit_label(label_true)
        self.translate_stmt(body)
        self._emit_goto(label_loop)
        self._emit_label(label_false)

    def translate_comp_st(self, comp_st: Node) -> None:
        """Emit code for ``{ DefList StmtList }``."""
        for definition in _items(comp_st.children[1], 1):
            for dec in _items(definition.children[1], 2):
                self._dec(dec)
        for stmt in _items(comp_st.children[2], 1):
            self.translate_stmt(stmt)

    # ---------- declarations ----------

    def translate_var_dec(self, var_dec: Node, param: int) -> Operand:
        """Allocate the variable of ``var_dec``.

        A positive ``param`` is the parameter's position and emits ``PARAM``;
        otherwise variables that are not of a basic type get a ``DEC``.
        """
        while var_dec.children and var_dec.children[0].msg == "VarDec":
            var_dec = var_dec.children[0]
        name = var_dec.identifier()
        operand = self.variable(name)
        symbol = self.table.symbol(name)
        dtype = symbol.dtype if symbol is not None else None
        kind = dtype.kind if dtype is not None else None
        if param > 0:
            if kind is Kind.ARRAY:
                raise TranslationError("[Cannot translate]: Parameters of array type.")
            self._emit(IRNode(IRKind.PARAM, x=operand))
            self.program.params[operand.value] = param
        elif kind not in _BASIC:
            self._emit(IRNode(IRKind.DEC, x=operand, size=size_of(dtype)))
        return operand

    def _dec(self, dec: Node) -> None:
        var_dec = dec.children[0]
        symbol = self.table.symbol(var_dec.identifier())
        dtype = symbol.dtype if symbol is not None else None
        kind = dtype.kind if dtype is not None else None
        initialised = len(dec.children) > 2
        if initialised or kind not in _BASIC:
            target = self.translate_var_dec(var_dec, 0)
            if initialised:
                self.translate_exp(dec.children[2], target)

    def _fun_dec(self, fun_dec: Node) -> None:
        name = fun_dec.identifier()
        self._emit(IRNode(IRKind.FUNC, x=Operand(OperandKind.FUNC, name)))
        if len(fun_dec.children) > 3:
            for position, param_dec in enumerate(_items(fun_dec.children[2], 2), start=1):
                self.translate_var_dec(param_dec.children[1], position)

    def translate_program(self, root: Node) -> IRProgram:
        """Translate every function definition below ``root``."""
        for ext_def in _items(root.children[0] if root.children else None, 1):
            children = ext_def.children
            if len(children) > 2 and children[1].msg == "FunDec":
                self._fun_dec(children[1])
                self.translate_comp_st(children[2])
        return self.program


def generate_ir(root: Node, table: SymbolTable, analyzer: Analyzer) -> IRProgram:
    """IR of an analysed syntax tree."""
    return Translator(table, analyzer).translate_program(root)


def ir_text(root: Node) -> str:
    """Analyse ``root`` and return its IR as text.

    Raises the first ``SemanticError`` found, if any.
    """
    analyzer = analyze(root)
    if analyzer.errors:
        raise analyzer.errors[0]
    return render(generate_ir(root, analyzer.table, analyzer))