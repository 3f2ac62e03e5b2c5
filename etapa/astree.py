"""Abstract syntax tree nodes and their textual dump."""

from __future__ import annotations

from enum import IntEnum

from etapa.symbols import Symbol

MAX_NUMBER_OF_CHILDREN = 4


class NodeType(IntEnum):
    """Kinds of syntax tree nodes."""

    DECL_LIST = 0
    VAR_DEC = 1
    CHAR = 2
    INT = 3
    REAL = 4
    ARR_INT = 5
    ARR_CHAR = 6
    ARR_FLOAT = 7
    ARR = 8
    INT_LST = 21
    CHAR_LST = 22
    FLOAT_LST = 23
    FUNC_DEC = 24
    PARAM_LST = 25
    PARAM = 26
    LIT_INT = 27
    LIT_REAL = 28
    LIT_CHAR = 29
    LIT_STRING = 30
    CMD_LST = 31
    CMD_BKTS = 32
    KW_READ = 33
    KW_PRINT = 34
    PRINT_LST = 35
    KW_RETURN = 36
    ATTRIB = 37
    ATTRIB_ARR = 38
    KW_BYTE = 39
    KW_SHORT = 40
    KW_LONG = 41
    KW_FLOAT = 42
    KW_DOUBLE = 43
    KW_WHEN_THEN = 44
    KW_WHEN_THEN_ELSE = 45
    KW_WHILE = 46
    KW_FOR = 47
    EXP_PARENTHESIS = 48
    TK_ID = 49
    ARRAY_CALL = 50
    FUNC_CALL = 51
    FUNC_ARGS = 52
    FUNC_ARGS_EXT = 53
    LEQ = 54
    GTE = 55
    EQU = 56
    NEQ = 57
    AND = 58
    OR = 59
    ADD = 60
    SUB = 61
    MUL = 62
    DIV = 63
    LES = 64
    GTR = 65


class Node:
    """A syntax tree node with a type, an optional symbol and four child slots."""

    __slots__ = ("type", "symbol", "children")

    def __init__(self, type: int, symbol: Symbol | None, *args: "Node | None") -> None:
        if len(args) > MAX_NUMBER_OF_CHILDREN:
            raise ValueError(
                f"a node has at most {MAX_NUMBER_OF_CHILDREN} children, got {len(args)}"
            )
        self.type = NodeType(type)
        self.symbol = symbol
        self.children: list[Node | None] = list(args) + [None] * (
            MAX_NUMBER_OF_CHILDREN - len(args)
        )

    def __repr__(self) -> str:
        text = self.symbol.text if self.symbol else ""
        return f"Node({self.type.name}, {text!r})"


def format_tree(node: Node | None, level: int = 0) -> str:
    """Render the tree rooted at ``node`` one node per line, indented by depth."""
    if node is None:
        return ""
    text = node.symbol.text if node.symbol else ""
    lines = ["  " * level + f"ASTREE(ASTREE_{node.type.name},{text})\n"]
    lines.extend(format_tree(child, level + 1) for child in node.children)
    return "".join(lines)