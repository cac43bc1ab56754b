import pytest

from minicc.symbols import SymbolTable
from minicc.tree import node
from minicc.typesys import Kind, Symbol, Type


def _var(name):
    return node("VarDec", node(f"ID: {name}"))


def _array(name, size):
    return node("VarDec", _var(name), node("LB"), node(f"INT: {size}"), node("RB"))


def _def(*var_decs):
    dec_list = node("DecList", node("Dec", var_decs[-1]))
    for var_dec in reversed(var_decs[:-1]):
        dec_list = node("DecList", node("Dec", var_dec), node("COMMA"), dec_list)
    return node("Def", node("Specifier", node("TYPE: int")), dec_list, node("SEMI"))


def _function(name, *defs):
    def_list = node("EMPTY")
    for definition in reversed(defs):
        def_list = node("DefList", definition, def_list)
    comp_st = node("CompSt", node("LC"), def_list, node("EMPTY"), node("RC"))
    fun_dec = node("FunDec", node(f"ID: {name}"), node("LP"), node("RP"))
    return node("ExtDef", node("Specifier", node("TYPE: int")), fun_dec, comp_st)


def _program(*ext_defs):
    ext_list = node("EMPTY")
    for ext_def in reversed(ext_defs):
        ext_list = node("ExtDefList", ext_def, ext_list)
    return node("Program", ext_list)


@pytest.fixture
def table():
    root = _program(
        _function("main", _def(_var("zeta"), _var("alpha")), _def(_array("arr", 3))),
        _function("helper", _def(_var("alpha"))),
    )
    result = SymbolTable()
    result.collect(root)
    return result


def test_symbols_sorted_and_unique(table):
    names = [entry.name for entry in table.symbols]
    assert names == sorted(set(names))
    assert set(names) == {"zeta", "alpha", "arr"}


def test_array_declaration_registers_inner_name_only(table):
    assert table.symbol("arr") is not None
    assert all(not name.startswith("INT") for name in (s.name for s in table.symbols))


def test_functions_include_builtins(table):
    names = [f.name for f in table.functions]
    assert names == sorted(["main", "helper", "read", "write"])


def test_builtin_signatures(table):
    read = table.function("read")
    write = table.function("write")
    assert read.defined and read.return_type.kind is Kind.INT
    assert read.params == []
    assert write.defined and len(write.params) == 1
    assert write.params[0].dtype.kind is Kind.INT


def test_index_lookup_consistent(table):
    for position, entry in enumerate(table.symbols):
        assert table.symbol_index(entry.name) == position
        assert table.symbol(entry.name) is entry
    for position, function in enumerate(table.functions):
        assert table.function_index(function.name) == position
        assert table.function(function.name) is function


def test_missing_names(table):
    assert table.symbol("nothing") is None
    assert table.symbol_index("nothing") is None
    assert table.function("nothing") is None
    assert table.function_index("nothing") is None


def test_new_entries_start_undefined(table):
    assert all(not entry.defined for entry in table.symbols)
    assert table.function("main").defined is False


def test_struct_tag_registered_but_tag_use_is_not():
    struct_def = node(
        "StructSpecifier",
        node("STRUCT"),
        node("OptTag", node("ID: point")),
        node("LC"),
        node("DefList", _def(_var("px")), node("EMPTY")),
        node("RC"),
    )
    struct_use = node("StructSpecifier", node("STRUCT"), node("Tag", node("ID: other")))
    root = _program(
        node("ExtDef", node("Specifier", struct_def), node("SEMI")),
        node("ExtDef", node("Specifier", struct_use), node("SEMI")),
    )
    table = SymbolTable()
    table.collect(root)
    assert table.symbol("point") is not None
    assert table.symbol("px") is not None
    assert table.symbol("other") is None


def test_user_function_named_like_builtin_is_kept():
    table = SymbolTable()
    table.collect(_program(_function("read")))
    names = [f.name for f in table.functions]
    assert names.count("read") == 1
    assert table.function("read").defined is False


def test_collect_resets_previous_content(table):
    table.collect(_program(_function("solo", _def(_var("q")))))
    assert [entry.name for entry in table.symbols] == ["q"]
    assert table.symbol("alpha") is None


def test_dump_lists_symbol_entry():
    table = SymbolTable()
    table.collect(_program(_function("main", _def(_var("a")))))
    entry = table.symbol("a")
    entry.defined = True
    entry.dtype = Type(Kind.INT)
    text = table.dump()
    assert text.startswith(
        "---------- SymbTable: ----------\n"
        "SymbNode:\nname = a\ndef = 1\nType:\n\tINT\nNext: null\n\n"
        "---------- FuncTable: ----------\n"
    )
    assert "name = write\ndef = 1\n" in text