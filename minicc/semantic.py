"""Semantic checks: declarations, types and uses of names."""

from __future__ import annotations

from typing import Iterator

from minicc.symbols import SymbolTable
from minicc.tree import Node, is_empty
from minicc.typesys import ExpType, Kind, Symbol, Type, ValueCategory, types_match

ERROR_MESSAGES = (
    "0",
    "Variable used before definition.",
    "Function called before definition.",
    "Variable redefined or conflicts with struct.",
    "Function redefined.",
    'Type mismatch on either side of "=".',
    'RValue on the left side of "=".',
    "Operand or operator type mismatch.",
    "Return type mismatch.",
    "Function arguments mismatch.",
    '"[]" used on non-array variable.',
    '"()" used on non-function variable.',
    'Non-integer used in "[]".',
    'Dot "." used on non-struct variable.',
    "Accessing an undefined field in a struct.",
    "Duplicate or initialized field name in a struct.",
    "Struct name conflicts.",
    "Using an undefined struct to define a variable.",
)

_ARITHMETIC = ("PLUS", "MINUS", "STAR", "DIV")


class SemanticError(Exception):
    """A semantic error found at a source line."""

    def __init__(self, code: int, line: int) -> None:
        self.code = code
        self.line = line
        super().__init__(self.message())

    def message(self) -> str:
        return f"Error type {self.code} at Line {self.line}:  {ERROR_MESSAGES[self.code]}"


def _child(node: Node | None, index: int) -> Node | None:
    if node is None or index >= len(node.children):
        return None
    return node.children[index]


def _chain(node: Node | None, rest: int) -> Iterator[Node]:
    """Items of a right-nested list such as ``X -> Item [sep] X``."""
    while not is_empty(node) and node.children:
        yield node.children[0]
        node = _child(node, rest)


def _kind(exp_type: ExpType) -> Kind | None:
    return exp_type.dtype.kind if exp_type.dtype is not None else None


def _atoi(text: str) -> int:
    text = text.strip()
    sign = 1
    if text[:1] in "+-" and text:
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    digits = ""
    for char in text:
        if not char.isdigit():
            break
        digits += char
    return sign * int(digits) if digits else 0


def _opt_tag_name(tag: Node | None) -> str | None:
    if is_empty(tag) or not tag.children or is_empty(tag.children[0]):
        return None
    return tag.identifier()


class Analyzer:
    """Checks a syntax tree against the symbol table and records errors."""

    def __init__(self, table: SymbolTable) -> None:
        self.table = table
        self.errors: list[SemanticError] = []

    def _report(self, code: int, line: int) -> None:
        self.errors.append(SemanticError(code, line))

    def run(self, root: Node) -> list[SemanticError]:
        """Fill the tables from ``root``, check it and return the errors found."""
        self.table.collect(root)
        self.errors = []
        for ext_def in _chain(_child(root, 0), 1):
            self._ext_def(ext_def)
        return list(self.errors)

    # ---------- expressions ----------

    def expression(self, exp: Node) -> ExpType:
        """Type and value category of the expression ``exp``."""
        first = exp.children[0]
        if first.msg == "LP":
            return self.expression(exp.children[1])
        if len(exp.children) == 1:
            if first.msg.startswith("ID"):
                return self._id(exp)
            kind = Kind.INT if first.msg.startswith("INT") else Kind.FLOAT
            return ExpType(ValueCategory.RVALUE, Type(kind))
        if first.msg == "MINUS":
            return self._unary(exp, (Kind.INT, Kind.FLOAT))
        if first.msg == "NOT":
            return self._unary(exp, (Kind.INT,))
        if first.msg.startswith("ID"):
            return self._call(exp)
        op = exp.children[1].msg
        if op == "ASSIGNOP":
            return self._assign(exp)
        if op in ("AND", "OR"):
            return self._logic(exp)
        if op.startswith("RELOP"):
            return self._binary(exp, keep_type=False)
        if op in _ARITHMETIC:
            return self._binary(exp, keep_type=True)
        if op == "LB":
            return self._index(exp)
        if op == "DOT":
            return self._member(exp)
        return ExpType(ValueCategory.ERROR)

    def _id(self, exp: Node) -> ExpType:
        symbol = self.table.symbol(exp.identifier())
        if symbol is None:
            self._report(1, exp.line)
            return ExpType(ValueCategory.ERROR)
        return ExpType(ValueCategory.LVALUE, symbol.dtype)

    def _unary(self, exp: Node, allowed: tuple[Kind, ...]) -> ExpType:
        operand = exp.children[1]
        result = self.expression(operand)
        if result.is_error():
            return ExpType(ValueCategory.ERROR, result.dtype)
        if _kind(result) not in allowed:
            self._report(7, operand.line)
            return ExpType(ValueCategory.ERROR, result.dtype)
        return ExpType(ValueCategory.RVALUE, result.dtype)

    def _call(self, exp: Node) -> ExpType:
        name = exp.identifier()
        function = self.table.function(name)
        if function is None:
            self._report(11 if self.table.symbol(name) is not None else 2, exp.line)
            return ExpType(ValueCategory.ERROR)
        args_node = exp.children[2]
        if args_node.msg == "Args":
            args = [self.expression(arg) for arg in _chain(args_node, 2)]
            matches = len(args) == len(function.params) and all(
                types_match(param.dtype, arg.dtype)
                for param, arg in zip(function.params, args)
            )
        else:
            matches = not function.params
        if not matches:
            self._report(9, exp.line)
            return ExpType(ValueCategory.ERROR)
        return ExpType(ValueCategory.RVALUE, function.return_type)

    def _operands(self, exp: Node) -> tuple[Node, ExpType, ExpType]:
        left = exp.children[0]
        return left, self.expression(left), self.expression(exp.children[2])

    def _assign(self, exp: Node) -> ExpType:
        left, one, other = self._operands(exp)
        if one.is_error() or other.is_error():
            return ExpType(ValueCategory.ERROR)
        if one.category is not ValueCategory.LVALUE:
            self._report(6, left.line)
            return ExpType(ValueCategory.ERROR)
        if not types_match(one.dtype, other.dtype):
            self._report(5, left.line)
            return ExpType(ValueCategory.ERROR)
        return ExpType(ValueCategory.RVALUE, one.dtype)

    def _logic(self, exp: Node) -> ExpType:
        left, one, other = self._operands(exp)
        if one.is_error() or other.is_error():
            return ExpType(ValueCategory.ERROR)
        if _kind(one) is not Kind.INT or _kind(other) is not Kind.INT:
            self._report(7, left.line)
            return ExpType(ValueCategory.ERROR)
        return ExpType(ValueCategory.RVALUE, Type(Kind.INT))

    def _binary(self, exp: Node, keep_type: bool) -> ExpType:
        left, one, other = self._operands(exp)
        if one.is_error() or other.is_error():
            return ExpType(ValueCategory.ERROR)
        kinds = (_kind(one), _kind(other))
        if kinds not in ((Kind.INT, Kind.INT), (Kind.FLOAT, Kind.FLOAT)):
            self._report(7, left.line)
            return ExpType(ValueCategory.ERROR)
        dtype = one.dtype if keep_type else Type(Kind.INT)
        return ExpType(ValueCategory.RVALUE, dtype)

    def _index(self, exp: Node) -> ExpType:
        left, array, index = self._operands(exp)
        if array.is_error() or index.is_error():
            return ExpType(ValueCategory.ERROR)
        if _kind(array) is not Kind.ARRAY:
            self._report(10, left.line)
            return ExpType(ValueCategory.ERROR)
        if _kind(index) is not Kind.INT:
            self._report(12, left.line)
            return ExpType(ValueCategory.ERROR)
        return ExpType(ValueCategory.LVALUE, array.dtype.elem)

    def _member(self, exp: Node) -> ExpType:
        left = exp.children[0]
        result = self.expression(left)
        if _kind(result) is not Kind.STRUCT:
            self._report(13, left.line)
            return ExpType(ValueCategory.ERROR, result.dtype)
        field_name = exp.children[2].msg[4:]
        struct = result.dtype.struct
        members = struct.dtype.members if struct is not None and struct.dtype else []
        for member in members:
            if member.name == field_name:
                return ExpType(ValueCategory.LVALUE, member.dtype)
        self._report(14, left.line)
        return ExpType(ValueCategory.ERROR, result.dtype)

    # ---------- statements ----------

    def _stmt(self, stmt: Node, rtype: Type | None) -> None:
        head = stmt.children[0].msg
        if head == "Exp":
            self.expression(stmt.children[0])
        elif head == "CompSt":
            self._comp_st(stmt.children[0], rtype)
        elif head == "RETURN":
            if rtype is None:
                return
            exp = stmt.children[1]
            result = self.expression(exp)
            if not result.is_error() and not types_match(rtype, result.dtype):
                self._report(8, exp.line)
        elif head in ("IF", "WHILE"):
            exp = stmt.children[2]
            result = self.expression(exp)
            if not result.is_error() and _kind(result) is not Kind.INT:
                self._report(7, exp.line)
            self._stmt(stmt.children[4], rtype)
            if head == "IF" and len(stmt.children) > 6:
                self._stmt(stmt.children[6], rtype)

    def _comp_st(self, comp_st: Node, rtype: Type | None) -> None:
        self._def_list(_child(comp_st, 1), in_struct=False)
        for stmt in _chain(_child(comp_st, 2), 1):
            self._stmt(stmt, rtype)

    # ---------- declarations ----------

    def _specifier(self, specifier: Node) -> Type | None:
        first = specifier.children[0]
        if first.msg.startswith("TYPE"):
            return Type(Kind.INT if first.msg[6:] == "int" else Kind.FLOAT)
        struct = self._struct_specifier(first)
        return None if struct is None else Type(Kind.STRUCT, struct=struct)

    def _struct_specifier(self, spec: Node) -> Symbol | None:
        tag = spec.children[1]
        if tag.msg == "Tag":
            struct = self.table.symbol(tag.identifier())
            if struct is None or not struct.defined:
                self._report(17, spec.line)
            return struct
        defs = _child(spec, 3)
        name = _opt_tag_name(tag)
        if name is None:
            members = self._def_list(defs, in_struct=True)
            return Symbol("", defined=True, dtype=Type(Kind.STRUCT_TYPE, members=members))
        struct = self.table.symbol(name)
        if struct.defined:
            self._report(16, spec.line)
        else:
            struct.defined = True
            struct.dtype = Type(Kind.STRUCT_TYPE, members=self._def_list(defs, in_struct=True))
        return struct

    def _var_dec(self, var_dec: Node, dtype: Type | None, in_struct: bool) -> Symbol | None:
        if dtype is None:
            return None
        if var_dec.children[0].msg == "VarDec":
            array = Type(Kind.ARRAY, elem=dtype, size=_atoi(var_dec.array_size_text()))
            return self._var_dec(var_dec.children[0], array, in_struct)
        symbol = self.table.symbol(var_dec.identifier())
        if symbol.defined:
            self._report(15 if in_struct else 3, var_dec.line)
            return None
        symbol.defined = True
        symbol.dtype = dtype
        return symbol

    def _dec(self, dec: Node, dtype: Type | None, in_struct: bool) -> Symbol | None:
        var_dec = dec.children[0]
        if len(dec.children) > 1:
            if in_struct:
                self._report(15, dec.line)
            else:
                result = self.expression(dec.children[2])
                if (
                    dtype is not None
                    and not result.is_error()
                    and not types_match(dtype, result.dtype)
                ):
                    self._report(5, dec.line)
        return self._var_dec(var_dec, dtype, in_struct)

    def _def_list(self, def_list: Node | None, in_struct: bool) -> list[Symbol]:
        declared: list[Symbol] = []
        for definition in _chain(def_list, 1):
            dtype = self._specifier(definition.children[0])
            for dec in _chain(definition.children[1], 2):
                symbol = self._dec(dec, dtype, in_struct)
                if symbol is not None:
                    declared.append(symbol)
        return declared

    def _fun_dec(self, fun_dec: Node, dtype: Type | None) -> None:
        function = self.table.function(fun_dec.identifier())
        if function.defined:
            self._report(4, fun_dec.line)
        else:
            function.defined = True
            if dtype is not None:
                function.return_type = dtype
        params_node = fun_dec.children[2]
        if params_node.msg == "RP":
            function.params = []
            return
        params: list[Symbol] = []
        for param_dec in _chain(params_node, 2):
            param_type = self._specifier(param_dec.children[0])
            symbol = self._var_dec(param_dec.children[1], param_type, False)
            if symbol is not None:
                params.append(symbol)
        function.params = params

    def _ext_def(self, ext_def: Node) -> None:
        dtype = self._specifier(ext_def.children[0])
        second = ext_def.children[1]
        if second.msg == "ExtDecList":
            for var_dec in _chain(second, 2):
                self._var_dec(var_dec, dtype, False)
        elif second.msg == "FunDec":
            self._fun_dec(second, dtype)
            self._comp_st(ext_def.children[2], dtype)


def analyze(root: Node) -> Analyzer:
    """Build the tables for ``root``, check it and return the analyzer."""
    analyzer = Analyzer(SymbolTable())
    analyzer.run(root)
    return analyzer