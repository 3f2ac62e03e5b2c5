"""Three-address intermediate code generated from the syntax tree."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Iterable

from etapa.astree import Node, NodeType
from etapa.symbols import Nature, Symbol, SymbolKind, SymbolTable


class TacType(IntEnum):
    """Kinds of three-address instructions."""

    SYMBOL = 0
    VAR = 1
    ARR = 2
    MOVE = 3
    INC = 4
    ADD = 5
    SUB = 6
    MUL = 7
    DIV = 8
    BLE = 9
    BGE = 10
    BEQ = 11
    BNE = 12
    AND = 13
    OR = 14
    BLT = 15
    BGT = 16
    LABEL = 17
    BEGINFUN = 18
    ENDFUN = 19
    PARAM = 20
    FCALL = 21
    ACALL = 22
    AATTRIB = 23
    IFZ = 24
    JUMP = 25
    ARG = 26
    RET = 27
    PRINT = 28
    PRARG = 29
    READ = 30


@dataclass
class Tac:
    """One instruction: a result and up to two operands."""

    type: TacType
    res: Symbol | None = None
    op1: Symbol | None = None
    op2: Symbol | None = None


_JUMPS = frozenset(
    {
        TacType.BLE,
        TacType.BGE,
        TacType.BEQ,
        TacType.BNE,
        TacType.BLT,
        TacType.BGT,
        TacType.IFZ,
        TacType.JUMP,
    }
)

_ARITHMETIC = {
    NodeType.ADD: TacType.ADD,
    NodeType.SUB: TacType.SUB,
    NodeType.MUL: TacType.MUL,
    NodeType.DIV: TacType.DIV,
}

_BRANCHES = {
    NodeType.LEQ: TacType.BLE,
    NodeType.GTE: TacType.BGE,
    NodeType.EQU: TacType.BEQ,
    NodeType.NEQ: TacType.BNE,
    NodeType.LES: TacType.BLT,
    NodeType.GTR: TacType.BGT,
}

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _res(code: list[Tac], node: Node) -> Symbol | None:
    if not code:
        raise ValueError(f"an operand of {node.type.name} yields no value")
    return code[-1].res


def _same_label(a: Symbol | None, b: Symbol | None) -> bool:
    return a is not None and b is not None and a.matches(b)


def copy_code(code: Iterable[Tac], table: SymbolTable) -> list[Tac]:
    """Copy instructions, giving every label in the copy a fresh name."""
    copy = [Tac(t.type, t.res, t.op1, t.op2) for t in code]
    for label in copy:
        if label.type != TacType.LABEL:
            continue
        fresh = table.label()
        for tac in copy:
            if tac.type not in _JUMPS:
                continue
            if tac.res is not None and _same_label(label.res, tac.res):
                tac.res = fresh
            elif tac.op1 is not None and _same_label(label.res, tac.op1):
                tac.op1 = fresh
            elif tac.op2 is not None and _same_label(label.res, tac.op2):
                tac.op2 = fresh
        label.res = fresh
    return copy


def fill_function_calls(code: list[Tac]) -> None:
    """Make each call and each use of a function's name refer to its returned value."""
    for call in reversed(code):
        if call.type != TacType.FCALL:
            continue
        name = call.op1.text
        start = next(
            (
                index
                for index in range(len(code) - 1, -1, -1)
                if code[index].type == TacType.BEGINFUN and code[index].res.text == name
            ),
            None,
        )
        if start is None:
            raise ValueError(f"function {name} is called but never defined")
        ret = next((t for t in code[start:] if t.type == TacType.RET), None)
        if ret is None:
            raise ValueError(f"function {name} has no return")
        call.res = ret.res
        for tac in reversed(code):
            if tac.type in (TacType.BEGINFUN, TacType.FCALL):
                continue
            if tac.res is not None and tac.res.text == name:
                tac.res = ret.res
            elif tac.op1 is not None and tac.op1.text == name:
                tac.op1 = ret.res
            elif tac.op2 is not None and tac.op2.text == name:
                tac.op2 = ret.res


class TacGenerator:
    """Builds intermediate code for a syntax tree, drawing names from a symbol table."""

    def __init__(self, table: SymbolTable) -> None:
        self.table = table
        handlers: dict[NodeType, Callable[..., list[Tac]]] = {
            NodeType.VAR_DEC: self._var_dec,
            NodeType.FUNC_DEC: self._function,
            NodeType.PARAM: self._param,
            NodeType.KW_RETURN: self._return,
            NodeType.FUNC_CALL: self._func_call,
            NodeType.FUNC_ARGS: self._args,
            NodeType.FUNC_ARGS_EXT: self._args,
            NodeType.ARRAY_CALL: self._array_call,
            NodeType.KW_WHEN_THEN: self._when,
            NodeType.KW_WHEN_THEN_ELSE: self._when_else,
            NodeType.KW_PRINT: self._print,
            NodeType.PRINT_LST: self._print_args,
            NodeType.KW_READ: self._read,
            NodeType.KW_FOR: self._for,
            NodeType.KW_WHILE: self._while,
            NodeType.ATTRIB: self._attrib,
            NodeType.ATTRIB_ARR: self._attrib_arr,
            NodeType.AND: self._logical,
            NodeType.OR: self._logical,
        }
        for kind in (
            NodeType.LIT_INT,
            NodeType.LIT_REAL,
            NodeType.LIT_CHAR,
            NodeType.LIT_STRING,
            NodeType.INT_LST,
            NodeType.CHAR_LST,
            NodeType.FLOAT_LST,
            NodeType.TK_ID,
        ):
            handlers[kind] = self._id
        for kind in _ARITHMETIC:
            handlers[kind] = self._arithmetic
        for kind in _BRANCHES:
            handlers[kind] = self._boolean
        self._handlers = handlers

    def generate(self, root: Node | None) -> list[Tac]:
        """Return the code for ``root`` in program order, with calls resolved."""
        code = self._parse(root)
        fill_function_calls(code)
        return code

    def _parse(self, node: Node | None) -> list[Tac]:
        if node is None:
            return []
        c0, c1, c2, c3 = (self._parse(child) for child in node.children)
        handler = self._handlers.get(node.type)
        if handler is None:
            return c0 + c1 + c2 + c3
        return handler(node, c0, c1, c2, c3)

    def _id(self, node, c0, c1, c2, c3):
        return c0 + [Tac(TacType.SYMBOL, node.symbol)]

    def _arithmetic(self, node, c0, c1, c2, c3):
        temp = self.table.temporary()
        op = Tac(_ARITHMETIC[node.type], temp, _res(c0, node), _res(c1, node))
        return c0 + c1 + [op]

    def _boolean(self, node, c0, c1, c2, c3):
        label_1 = self.table.label()
        label_2 = self.table.label()
        temp = self.table.temporary()
        sequence = [
            Tac(_BRANCHES[node.type], label_1, _res(c0, node), _res(c1, node)),
            Tac(TacType.MOVE, temp, self.table.false),
            Tac(TacType.JUMP, label_2),
            Tac(TacType.LABEL, label_1),
            Tac(TacType.MOVE, temp, self.table.true),
            Tac(TacType.LABEL, label_2),
            Tac(TacType.SYMBOL, temp),
        ]
        return c0 + c1 + sequence

    def _logical(self, node, c0, c1, c2, c3):
        temp = self.table.temporary()
        kind = TacType.AND if node.type == NodeType.AND else TacType.OR
        return c0 + c1 + [Tac(kind, temp, _res(c0, node), _res(c1, node))]

    def _function(self, node, c0, c1, c2, c3):
        return [Tac(TacType.BEGINFUN, node.symbol)] + c1 + c2 + [Tac(TacType.ENDFUN)]

    def _param(self, node, c0, c1, c2, c3):
        return [Tac(TacType.PARAM, node.symbol)]

    def _return(self, node, c0, c1, c2, c3):
        return c0 + [Tac(TacType.RET, _res(c0, node))]

    def _func_call(self, node, c0, c1, c2, c3):
        return c0 + [Tac(TacType.FCALL, node.symbol, node.symbol)]

    def _args(self, node, c0, c1, c2, c3):
        return c0 + c1 + [Tac(TacType.ARG, _res(c0, node))]

    def _array_call(self, node, c0, c1, c2, c3):
        temp = self.table.temporary()
        return c0 + [Tac(TacType.ACALL, temp, node.symbol, _res(c0, node))]

    def _when(self, node, c0, c1, c2, c3):
        end = self.table.label()
        return (
            c0
            + [Tac(TacType.IFZ, end, _res(c0, node))]
            + c1
            + [Tac(TacType.LABEL, end)]
        )

    def _when_else(self, node, c0, c1, c2, c3):
        else_label = self.table.label()
        end_label = self.table.label()
        return (
            c0
            + [Tac(TacType.IFZ, else_label, _res(c0, node))]
            + c1
            + [Tac(TacType.JUMP, end_label), Tac(TacType.LABEL, else_label)]
            + c2
            + [Tac(TacType.LABEL, end_label)]
        )

    def _print(self, node, c0, c1, c2, c3):
        listing = [Tac(TacType.PRINT)]
        first = node.children[0]
        if first is None or first.type != NodeType.PRINT_LST:
            listing.insert(0, Tac(TacType.PRARG, _res(c0, node)))
        return c0 + listing

    def _print_args(self, node, c0, c1, c2, c3):
        rest = node.children[1]
        if rest is None or rest.type != NodeType.PRINT_LST:
            args = [
                Tac(TacType.PRARG, _res(c1, node)),
                Tac(TacType.PRARG, _res(c0, node)),
            ]
        else:
            args = [Tac(TacType.PRARG, _res(c0, node))]
        return c0 + c1 + args

    def _read(self, node, c0, c1, c2, c3):
        return [Tac(TacType.READ, node.symbol)]

    def _for(self, node, c0, c1, c2, c3):
        start = _res(c0, node)
        stop = _res(c1, node)
        mov = Tac(TacType.MOVE, node.symbol, start)
        if start.kind != SymbolKind.IDENTIFIER and stop.kind != SymbolKind.IDENTIFIER:
            unrolled = [mov]
            for _ in range(_atoi(start.text), _atoi(stop.text) + 1):
                unrolled += copy_code(c2, self.table)
                unrolled.append(Tac(TacType.INC, node.symbol))
            return c0 + c1 + unrolled
        begin = self.table.label()
        end = self.table.label()
        return (
            c0
            + c1
            + [mov, Tac(TacType.LABEL, begin)]
            + c2
            + [
                Tac(TacType.BEQ, end, node.symbol, stop),
                Tac(TacType.INC, node.symbol),
                Tac(TacType.JUMP, begin),
                Tac(TacType.LABEL, end),
            ]
        )

    def _while(self, node, c0, c1, c2, c3):
        begin = self.table.label()
        end = self.table.label()
        return (
            [Tac(TacType.LABEL, begin)]
            + c0
            + [Tac(TacType.IFZ, end, _res(c0, node))]
            + c1
            + [Tac(TacType.JUMP, begin), Tac(TacType.LABEL, end)]
        )

    def _var_dec(self, node, c0, c1, c2, c3):
        value = node.children[0]
        nature = node.symbol.nature if node.symbol is not None else 0
        if nature == Nature.VARIABLE:
            dec = Tac(TacType.VAR, node.symbol, value.symbol if value is not None else None)
        elif nature == Nature.ARRAY:
            if value is None:
                raise ValueError(f"array {node.symbol.text} has no size")
            dec = Tac(TacType.ARR, node.symbol, value.symbol)
        else:
            name = node.symbol.text if node.symbol is not None else ""
            raise ValueError(f"declaration of {name} has no variable or array nature")
        return c0 + [dec]

    def _attrib(self, node, c0, c1, c2, c3):
        return c0 + [Tac(TacType.MOVE, node.symbol, _res(c0, node))]

    def _attrib_arr(self, node, c0, c1, c2, c3):
        return c0 + c1 + [Tac(TacType.AATTRIB, node.symbol, _res(c0, node), _res(c1, node))]


def generate(root: Node | None, table: SymbolTable) -> list[Tac]:
    """Return the intermediate code of ``root`` in program order."""
    return TacGenerator(table).generate(root)


def format_code(code: Iterable[Tac]) -> str:
    """Describe each instruction on its own line, leaving out bare symbols."""
    lines = []
    for tac in code:
        if tac.type == TacType.SYMBOL:
            continue
        res = tac.res.text if tac.res else ""
        op1 = tac.op1.text if tac.op1 else ""
        op2 = tac.op2.text if tac.op2 else ""
        lines.append(f"TAC(TAC_{tac.type.name}, {res}, {op1}, {op2})\n")
    return "".join(lines)