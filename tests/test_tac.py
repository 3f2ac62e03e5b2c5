import pytest

from etapa.astree import Node, NodeType
from etapa.symbols import Nature, SymbolKind, SymbolTable
from etapa.tac import (
    Tac,
    TacGenerator,
    TacType,
    copy_code,
    fill_function_calls,
    format_code,
    generate,
)


@pytest.fixture
def table():
    return SymbolTable()


def ident(table, name, nature=Nature.VARIABLE):
    symbol = table.insert(name, SymbolKind.IDENTIFIER, 0, 0)
    symbol.nature = nature
    symbol.declared = True
    return symbol


def lit(table, text):
    return table.insert(text, SymbolKind.LIT_INTEGER, 0, 0)


def types(code):
    return [t.type for t in code]


def test_arithmetic_attribution(table):
    a = ident(table, "a")
    one, two = lit(table, "1"), lit(table, "2")
    root = Node(
        NodeType.ATTRIB,
        a,
        Node(NodeType.ADD, None, Node(NodeType.LIT_INT, one), Node(NodeType.LIT_INT, two)),
    )
    code = generate(root, table)
    assert types(code) == [TacType.SYMBOL, TacType.SYMBOL, TacType.ADD, TacType.MOVE]
    add, move = code[2], code[3]
    assert add.op1 is one and add.op2 is two
    assert add.res.nature == Nature.TEMPORARY
    assert move.res is a and move.op1 is add.res
    assert format_code(code) == (
        "TAC(TAC_ADD, __temporary_0, 1, 2)\nTAC(TAC_MOVE, a, __temporary_0, )\n"
    )


def test_comparison_builds_branch_sequence(table):
    x = ident(table, "x")
    two = lit(table, "2")
    root = Node(NodeType.LES, None, Node(NodeType.TK_ID, x), Node(NodeType.LIT_INT, two))
    code = generate(root, table)
    assert types(code) == [
        TacType.SYMBOL,
        TacType.SYMBOL,
        TacType.BLT,
        TacType.MOVE,
        TacType.JUMP,
        TacType.LABEL,
        TacType.MOVE,
        TacType.LABEL,
        TacType.SYMBOL,
    ]
    branch, mov0, jump, label1, mov1, label2, result = code[2:]
    assert branch.res is label1.res and jump.res is label2.res
    assert mov0.op1 is table.false and mov1.op1 is table.true
    assert mov0.res is mov1.res is result.res


def test_when_jumps_to_end_label(table):
    x = ident(table, "x")
    y = ident(table, "y")
    cond = Node(NodeType.GTR, None, Node(NodeType.TK_ID, x), Node(NodeType.TK_ID, y))
    body = Node(NodeType.ATTRIB, x, Node(NodeType.TK_ID, y))
    code = generate(Node(NodeType.KW_WHEN_THEN, None, cond, body), table)
    ifz = next(t for t in code if t.type == TacType.IFZ)
    assert code[-1].type == TacType.LABEL
    assert ifz.res is code[-1].res
    assert ifz.op1.nature == Nature.TEMPORARY


def test_when_else_layout(table):
    x = ident(table, "x")
    y = ident(table, "y")
    cond = Node(NodeType.EQU, None, Node(NodeType.TK_ID, x), Node(NodeType.TK_ID, y))
    then = Node(NodeType.ATTRIB, x, Node(NodeType.TK_ID, y))
    other = Node(NodeType.ATTRIB, y, Node(NodeType.TK_ID, x))
    code = generate(Node(NodeType.KW_WHEN_THEN_ELSE, None, cond, then, other), table)
    ifz = next(t for t in code if t.type == TacType.IFZ)
    jump = [t for t in code if t.type == TacType.JUMP][-1]
    labels = [t for t in code if t.type == TacType.LABEL]
    assert ifz.res is labels[-2].res
    assert jump.res is labels[-1].res
    assert code[-1] is labels[-1]


def test_while_loop(table):
    x = ident(table, "x")
    y = ident(table, "y")
    cond = Node(NodeType.NEQ, None, Node(NodeType.TK_ID, x), Node(NodeType.TK_ID, y))
    body = Node(NodeType.ATTRIB, x, Node(NodeType.TK_ID, y))
    code = generate(Node(NodeType.KW_WHILE, None, cond, body), table)
    assert code[0].type == TacType.LABEL
    assert code[-2].type == TacType.JUMP and code[-2].res is code[0].res
    ifz = next(t for t in code if t.type == TacType.IFZ)
    assert ifz.res is code[-1].res


def test_for_with_identifier_bound_loops(table):
    i = ident(table, "i")
    n = ident(table, "n")
    one = lit(table, "1")
    body = Node(NodeType.KW_READ, n)
    root = Node(NodeType.KW_FOR, i, Node(NodeType.LIT_INT, one), Node(NodeType.TK_ID, n), body)
    code = generate(root, table)
    kinds = types(code)
    assert kinds[-6:] == [
        TacType.LABEL,
        TacType.READ,
        TacType.BEQ,
        TacType.INC,
        TacType.JUMP,
        TacType.LABEL,
    ]
    beq = code[-4]
    assert beq.op1 is i and beq.op2 is n and beq.res is code[-1].res
    move = code[-7]
    assert move.type == TacType.MOVE and move.res is i and move.op1 is one


def test_for_with_literal_bounds_unrolls(table):
    i = ident(table, "i")
    x = ident(table, "x")
    one, three, two = lit(table, "1"), lit(table, "3"), lit(table, "2")
    cond = Node(NodeType.LES, None, Node(NodeType.TK_ID, i), Node(NodeType.LIT_INT, two))
    body = Node(NodeType.KW_WHEN_THEN, None, cond, Node(NodeType.KW_READ, x))
    root = Node(
        NodeType.KW_FOR,
        i,
        Node(NodeType.LIT_INT, one),
        Node(NodeType.LIT_INT, three),
        body,
    )
    code = generate(root, table)
    assert types(code).count(TacType.INC) == 3
    assert types(code).count(TacType.READ) == 3
    labels = [t.res.text for t in code if t.type == TacType.LABEL]
    assert len(labels) == 9 and len(set(labels)) == 9
    targets = [t.res.text for t in code if t.type in (TacType.IFZ, TacType.JUMP, TacType.BLT)]
    assert targets and all(target in labels for target in targets)
    assert not any(t.type == TacType.BEQ for t in code)


def test_copy_code_renames_labels(table):
    label = table.label()
    flag = ident(table, "flag")
    code = [Tac(TacType.IFZ, label, flag), Tac(TacType.READ, flag), Tac(TacType.LABEL, label)]
    copy = copy_code(code, table)
    assert [t.type for t in copy] == [t.type for t in code]
    assert all(a is not b for a, b in zip(copy, code))
    assert copy[0].res is copy[2].res
    assert copy[0].res.text != label.text
    assert code[0].res is label and code[2].res is label
    assert copy[0].op1 is flag


def test_copy_code_of_nothing(table):
    assert copy_code([], table) == []


def test_fill_function_calls_uses_returned_value(table):
    f = ident(table, "f", Nature.FUNCTION)
    x = ident(table, "x")
    y = ident(table, "y")
    code = [
        Tac(TacType.BEGINFUN, f),
        Tac(TacType.RET, x),
        Tac(TacType.ENDFUN),
        Tac(TacType.FCALL, f, f),
        Tac(TacType.MOVE, y, f),
    ]
    fill_function_calls(code)
    assert code[3].res is x and code[3].op1 is f
    assert code[4].op1 is x
    assert code[0].res is f


def test_fill_function_calls_without_definition(table):
    g = ident(table, "g", Nature.FUNCTION)
    with pytest.raises(ValueError):
        fill_function_calls([Tac(TacType.FCALL, g, g)])


def test_function_with_call(table):
    f = ident(table, "f", Nature.FUNCTION)
    p = ident(table, "p")
    y = ident(table, "y")
    decl = Node(
        NodeType.FUNC_DEC,
        f,
        Node(NodeType.KW_LONG, None),
        Node(NodeType.PARAM, p, Node(NodeType.KW_LONG, None)),
        Node(NodeType.KW_RETURN, None, Node(NodeType.TK_ID, p)),
    )
    call = Node(
        NodeType.ATTRIB,
        y,
        Node(NodeType.FUNC_CALL, f, Node(NodeType.FUNC_ARGS, None, Node(NodeType.TK_ID, y))),
    )
    code = generate(Node(NodeType.DECL_LIST, None, decl, call), table)
    assert types(code)[:5] == [
        TacType.BEGINFUN,
        TacType.PARAM,
        TacType.SYMBOL,
        TacType.RET,
        TacType.ENDFUN,
    ]
    arg = next(t for t in code if t.type == TacType.ARG)
    fcall = next(t for t in code if t.type == TacType.FCALL)
    assert arg.res is y
    assert fcall.res is p
    assert code[-1].type == TacType.MOVE and code[-1].op1 is p


def test_print_list_arguments(table):
    text = table.insert('"a"', SymbolKind.LIT_STRING, 0, 0)
    x = ident(table, "x")
    lst = Node(
        NodeType.PRINT_LST,
        None,
        Node(NodeType.LIT_STRING, text),
        Node(NodeType.TK_ID, x),
    )
    code = generate(Node(NodeType.KW_PRINT, None, lst), table)
    assert types(code) == [
        TacType.SYMBOL,
        TacType.SYMBOL,
        TacType.PRARG,
        TacType.PRARG,
        TacType.PRINT,
    ]
    assert code[2].res is x and code[3].res is text


def test_print_single_value(table):
    x = ident(table, "x")
    code = generate(Node(NodeType.KW_PRINT, None, Node(NodeType.TK_ID, x)), table)
    assert types(code) == [TacType.SYMBOL, TacType.PRARG, TacType.PRINT]
    assert code[1].res is x


def test_variable_and_array_declarations(table):
    v = ident(table, "v")
    arr = ident(table, "arr", Nature.ARRAY)
    five, size = lit(table, "5"), lit(table, "4")
    var_dec = Node(NodeType.VAR_DEC, v, Node(NodeType.INT, five, Node(NodeType.KW_LONG, None)))
    arr_dec = Node(NodeType.VAR_DEC, arr, Node(NodeType.ARR, size, Node(NodeType.KW_LONG, None)))
    code = generate(Node(NodeType.DECL_LIST, None, var_dec, arr_dec), table)
    assert types(code) == [TacType.VAR, TacType.ARR]
    assert code[0].res is v and code[0].op1 is five
    assert code[1].res is arr and code[1].op1 is size


def test_declaration_without_nature_is_rejected(table):
    v = table.insert("v", SymbolKind.IDENTIFIER, 0, 0)
    node = Node(NodeType.VAR_DEC, v, Node(NodeType.INT, lit(table, "1")))
    with pytest.raises(ValueError):
        generate(node, table)


def test_missing_operand_is_rejected(table):
    node = Node(NodeType.ADD, None, None, Node(NodeType.LIT_INT, lit(table, "1")))
    with pytest.raises(ValueError):
        TacGenerator(table).generate(node)


def test_array_access_and_assignment(table):
    arr = ident(table, "arr", Nature.ARRAY)
    i = ident(table, "i")
    x = ident(table, "x")
    read = Node(NodeType.ATTRIB, x, Node(NodeType.ARRAY_CALL, arr, Node(NodeType.TK_ID, i)))
    write = Node(NodeType.ATTRIB_ARR, arr, Node(NodeType.TK_ID, i), Node(NodeType.TK_ID, x))
    code = generate(Node(NodeType.CMD_LST, None, read, write), table)
    acall = next(t for t in code if t.type == TacType.ACALL)
    assert acall.op1 is arr and acall.op2 is i
    assert acall.res.nature == Nature.TEMPORARY
    aattrib = code[-1]
    assert aattrib.type == TacType.AATTRIB
    assert (aattrib.res, aattrib.op1, aattrib.op2) == (arr, i, x)


def test_format_code_skips_symbols(table):
    x = ident(table, "x")
    code = [Tac(TacType.SYMBOL, x), Tac(TacType.READ, x)]
    assert format_code(code) == "TAC(TAC_READ, x, , )\n"


def test_empty_tree_gives_no_code(table):
    assert generate(None, table) == []