import pytest

from minicc.asm import ASM_HEADER, Assembler, CompileError, assemble
from minicc.ir import (
    EQ,
    GE,
    GT,
    LE,
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
)
from minicc.semantic import SemanticError
from minicc.tree import node


def temp(number, offset):
    return Operand(OperandKind.TEMP, number, offset=offset)


def const(value):
    return Operand(OperandKind.CONST_INT, value)


def label(number):
    return Operand(OperandKind.LABEL, number)


def body_of(nodes, frame_size=4, params=None):
    program = IRProgram(nodes=list(nodes), frame_size=frame_size, params=params or {})
    text = Assembler(program).assemble()
    assert text.startswith(ASM_HEADER)
    return text[len(ASM_HEADER):]


def test_empty_program_is_header_only():
    text = Assembler(IRProgram()).assemble()
    assert text == ASM_HEADER
    assert text.startswith(".data\n")
    assert '_ret: .asciiz "\\n"\n' in text
    assert "read:\n" in text and "write:\n" in text


def test_label_and_goto():
    body = body_of([IRNode(IRKind.LABEL, x=label(3)), IRNode(IRKind.GOTO, x=label(3))])
    assert body == "label3:\n\tj  label3\n"


def test_function_prologue_uses_frame_size():
    func = Operand(OperandKind.FUNC, "main")
    body = body_of([IRNode(IRKind.FUNC, x=func)], frame_size=20)
    assert body == "main:\n\tmove  $fp, $sp\n\taddi  $sp, $fp, -20\n"


def test_assign_constant_to_temp():
    code = InterCode(OpCode.ASSIGN, temp(1, 8), const(7))
    body = body_of([IRNode(IRKind.ASSIGN, code=code)])
    assert body == "\tli  $t1, 7\n\tsw  $t1, -8($fp)\n"


def test_assign_through_pointer_stores_indirectly():
    target = temp(2, 12).with_prefix(Prefix.GET_VAL)
    code = InterCode(OpCode.ASSIGN, target, temp(1, 8))
    lines = body_of([IRNode(IRKind.ASSIGN, code=code)]).splitlines()
    assert lines == [
        "\tlw  $t2, -8($fp)",
        "\tlw  $t1, -12($fp)",
        "\tmove  $t4, $t2",
        "\tsw  $t4, 0($t1)",
    ]


def test_add_loads_operands_in_order():
    code = InterCode(OpCode.ADD, temp(3, 16), temp(1, 8), const(2))
    lines = body_of([IRNode(IRKind.ASSIGN, code=code)]).splitlines()
    assert lines == [
        "\tlw  $t1, -16($fp)",
        "\tlw  $t2, -8($fp)",
        "\tli  $t3, 2",
        "\tadd  $t1, $t2, $t3",
        "\tsw  $t1, -16($fp)",
    ]


def test_div_uses_mflo():
    code = InterCode(OpCode.DIV, temp(3, 16), temp(1, 8), temp(2, 12))
    lines = body_of([IRNode(IRKind.ASSIGN, code=code)]).splitlines()
    assert "\tdiv  $t2, $t3" in lines
    assert lines[-2:] == ["\tmflo  $t1", "\tsw  $t1, -16($fp)"]


@pytest.mark.parametrize(
    "relop, branch",
    [(EQ, "beq"), (NE, "bne"), (GT, "bgt"), (LT, "blt"), (GE, "bge"), (LE, "ble")],
)
def test_conditional_branches(relop, branch):
    jump = IRNode(IRKind.COND_GOTO, x=temp(1, 8), relop=relop, y=const(0), z=label(2))
    lines = body_of([jump]).splitlines()
    assert lines[-1] == f"\t{branch}  $t1, $t2, label2"


def test_call_saves_and_restores_frame():
    func = Operand(OperandKind.FUNC, "fact")
    code = InterCode(OpCode.CALL, temp(1, 8), func)
    lines = body_of([IRNode(IRKind.ASSIGN, code=code)], frame_size=24).splitlines()
    assert "\tjal  fact" in lines
    assert "\taddi  $sp, $fp, -24" in lines
    assert lines[-2:] == ["\tmove  $t1, $v0", "\tsw  $t1, -8($fp)"]


def test_write_float_constant():
    flo = Operand(OperandKind.CONST_FLO, 1.5)
    lines = body_of([IRNode(IRKind.WRITE, x=flo)]).splitlines()
    assert "\tli  $a0, 1.500000" in lines
    assert "\tjal  write" in lines


def test_read_stores_result():
    lines = body_of([IRNode(IRKind.READ, x=temp(1, 8))]).splitlines()
    assert "\tjal  read" in lines
    assert lines[-1] == "\tsw  $t1, -8($fp)"


def test_dec_and_param_emit_nothing():
    var = Operand(OperandKind.VAR, 1, offset=8)
    body = body_of([IRNode(IRKind.DEC, x=var, size=8), IRNode(IRKind.PARAM, x=var)])
    assert body == ""


def test_nop():
    assert body_of([IRNode(IRKind.NOP)]) == "nop\n"


def test_frame_offsets():
    program = IRProgram(params={2: 1})
    assembler = Assembler(program)
    assert assembler.frame_offset(temp(1, 8)) == -8
    assert assembler.frame_offset(Operand(OperandKind.VAR, 2, offset=8)) == 8
    assert assembler.frame_offset(const(5)) == 0


def test_param_operand_loaded_from_above_frame():
    var = Operand(OperandKind.VAR, 1, offset=8)
    lines = body_of([IRNode(IRKind.RETURN, x=var)], params={1: 1}).splitlines()
    assert lines == ["\tlw  $t1, 8($fp)", "\tmove  $v0, $t1", "\tjr  $ra"]


def test_undefined_operand_is_rejected():
    with pytest.raises(CompileError):
        Assembler(IRProgram(nodes=[IRNode(IRKind.ARG, x=UNDEF)])).assemble()


def _program(stmts):
    stmt_list = node("EMPTY")
    for stmt in reversed(stmts):
        stmt_list = node("StmtList", stmt, stmt_list)
    comp_st = node("CompSt", node("LC"), node("EMPTY"), stmt_list, node("RC"))
    fun_dec = node("FunDec", node("ID: main"), node("LP"), node("RP"))
    ext_def = node("ExtDef", node("Specifier", node("TYPE: int")), fun_dec, comp_st)
    return node("Program", node("ExtDefList", ext_def, node("EMPTY")))


def test_assemble_whole_program():
    write_call = node(
        "Exp",
        node("ID: write"),
        node("LP"),
        node("Args", node("Exp", node("INT: 3"))),
        node("RP"),
    )
    root = _program(
        [
            node("Stmt", write_call, node("SEMI")),
            node("Stmt", node("RETURN"), node("Exp", node("INT: 0")), node("SEMI")),
        ]
    )
    lines = assemble(root)[len(ASM_HEADER):].splitlines()
    assert lines[0] == "main:"
    assert lines[1] == "\tmove  $fp, $sp"
    assert lines[2].startswith("\taddi  $sp, $fp, -")
    assert "\tli  $a0, 3" in lines
    assert lines[-3:] == ["\tli  $t1, 0", "\tmove  $v0, $t1", "\tjr  $ra"]


def test_assemble_reports_semantic_error():
    root = _program(
        [node("Stmt", node("RETURN"), node("Exp", node("ID: x", line=2), line=2), node("SEMI"))]
    )
    with pytest.raises(SemanticError) as info:
        assemble(root)
    assert info.value.code == 1