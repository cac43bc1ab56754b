from minicc.typesys import (
    ExpType,
    Function,
    Kind,
    Symbol,
    Type,
    ValueCategory,
    size_of,
    types_match,
)


def _int():
    return Type(Kind.INT)


def _float():
    return Type(Kind.FLOAT)


def _struct(*member_types):
    members = [Symbol(f"m{n}", True, t) for n, t in enumerate(member_types)]
    tag = Symbol("tag", True, Type(Kind.STRUCT_TYPE, members=members))
    return Type(Kind.STRUCT, struct=tag)


def test_basic_sizes():
    assert size_of(_int()) == 4
    assert size_of(_float()) == size_of(_int())


def test_array_size_scales_with_length():
    arr = Type(Kind.ARRAY, elem=_int(), size=5)
    assert size_of(arr) == 5 * size_of(_int())


def test_nested_array_size():
    inner = Type(Kind.ARRAY, elem=_float(), size=3)
    outer = Type(Kind.ARRAY, elem=inner, size=2)
    assert size_of(outer) == 2 * size_of(inner)


def test_struct_size_is_sum_of_members():
    arr = Type(Kind.ARRAY, elem=_int(), size=4)
    st = _struct(_int(), arr, _float())
    assert size_of(st) == size_of(_int()) + size_of(arr) + size_of(_float())
    assert size_of(st.struct.dtype) == size_of(st)


def test_basic_types_match():
    assert types_match(_int(), _int()) is True
    assert types_match(_float(), _float()) is True
    assert types_match(_int(), _float()) is False


def test_arrays_match_on_element_only():
    assert types_match(Type(Kind.ARRAY, elem=_int(), size=3), Type(Kind.ARRAY, elem=_int(), size=9))
    assert not types_match(Type(Kind.ARRAY, elem=_int(), size=3), Type(Kind.ARRAY, elem=_float(), size=3))


def test_structs_match_structurally():
    assert types_match(_struct(_int(), _float()), _struct(_int(), _float()))
    assert not types_match(_struct(_int(), _float()), _struct(_float(), _int()))
    assert not types_match(_struct(_int()), _struct(_int(), _int()))


def test_struct_does_not_match_int():
    assert types_match(_struct(_int()), _int()) is False


def test_missing_type_never_matches():
    assert types_match(None, _int()) is False


def test_exptype_error_flag():
    assert ExpType(ValueCategory.ERROR).is_error() is True
    assert ExpType(ValueCategory.LVALUE, _int()).is_error() is False
    assert ExpType(ValueCategory.RVALUE, _int()).is_error() is False


def test_function_defaults():
    func = Function("f")
    assert func.defined is False
    assert func.params == []