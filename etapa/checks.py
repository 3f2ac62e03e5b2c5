"""Second semantic pass: verify uses of symbols and the types of expressions."""

from __future__ import annotations

import logging
from typing import Callable

from etapa.astree import Node, NodeType
from etapa.declarations import SemanticError
from etapa.symbols import ExpressionType, Nature

_log = logging.getLogger(__name__)

_COMPARISONS = frozenset(
    {
        NodeType.LEQ,
        NodeType.GTE,
        NodeType.EQU,
        NodeType.NEQ,
        NodeType.AND,
        NodeType.OR,
        NodeType.LES,
        NodeType.GTR,
    }
)
_ARITHMETIC = frozenset({NodeType.ADD, NodeType.SUB, NodeType.MUL, NodeType.DIV})
_LITERALS = {
    NodeType.LIT_INT: ExpressionType.INTEGER,
    NodeType.LIT_CHAR: ExpressionType.CHAR,
    NodeType.LIT_REAL: ExpressionType.REAL,
    NodeType.LIT_STRING: ExpressionType.STRING,
}
_SYMBOL_TYPED = frozenset({NodeType.TK_ID, NodeType.ARRAY_CALL, NodeType.FUNC_CALL})
_ARGUMENT_LISTS = frozenset({NodeType.FUNC_ARGS, NodeType.FUNC_ARGS_EXT})

_NOT_A_VALUE = (ExpressionType.BOOLEAN, ExpressionType.STRING)
_NOT_AN_INDEX = (ExpressionType.BOOLEAN, ExpressionType.REAL)


def expression_type(node: Node | None) -> int | None:
    """Return the ExpressionType an expression node yields, or None if it has none."""
    if node is not None:
        literal = _LITERALS.get(node.type)
        if literal is not None:
            return literal
        if node.type in _SYMBOL_TYPED and node.symbol is not None:
            return node.symbol.expression_type
        if node.type in _COMPARISONS:
            return ExpressionType.BOOLEAN
        if node.type in _ARITHMETIC:
            operands = (expression_type(node.children[0]), expression_type(node.children[1]))
            if ExpressionType.REAL in operands:
                return ExpressionType.REAL
            return ExpressionType.INTEGER
        if node.type == NodeType.EXP_PARENTHESIS:
            return expression_type(node.children[0])
    _log.error("Semantic error at expression_type(): node without type.")
    return None


def check_arguments(node: Node | None) -> None:
    """Reject boolean or string arguments anywhere in an argument list."""
    while node is not None:
        kind = expression_type(node.children[0])
        if kind == ExpressionType.BOOLEAN:
            raise SemanticError("argument can't be boolean type.")
        if kind == ExpressionType.STRING:
            raise SemanticError("argument can't be string type.")
        if node.type not in _ARGUMENT_LISTS:
            _log.error("Semantic error at check_arguments().")
            return
        node = node.children[1]


def count_arguments(node: Node | None) -> int:
    """Return the number of arguments in an argument list."""
    count = 0
    while node is not None:
        if node.type not in _ARGUMENT_LISTS:
            _log.error("Semantic error: number of arguments can't be resolved.")
            return count
        count += 1
        node = node.children[1]
    return count


def check_returns(node: Node | None) -> None:
    """Reject any return statement in the subtree that yields a boolean or string."""
    if node is None:
        return
    if node.type == NodeType.KW_RETURN and expression_type(node.children[0]) in _NOT_A_VALUE:
        raise SemanticError("invalid return.")
    for child in node.children:
        check_returns(child)


def _text(node: Node) -> str:
    return node.symbol.text if node.symbol is not None else ""


def _require_declared(node: Node, verb: str = "isn't") -> None:
    if node.symbol is None or not node.symbol.declared:
        raise SemanticError(f"variable {_text(node)} {verb} declared.")


def _require_nature(node: Node, expected: Nature, allow_unset: bool = False) -> None:
    nature = node.symbol.nature if node.symbol is not None else 0
    if nature == expected or (allow_unset and nature == 0):
        return
    raise SemanticError(
        f"{_text(node)} got a wrong nature ({int(nature)}), it should be {int(expected)}."
    )


def _reject(node: Node | None, banned: tuple[ExpressionType, ...], message: str) -> None:
    if expression_type(node) in banned:
        raise SemanticError(message)


def _check_declared(node: Node) -> None:
    _require_declared(node)


def _check_function_declaration(node: Node) -> None:
    _require_declared(node)
    _require_nature(node, Nature.FUNCTION)
    check_returns(node.children[2])


def _check_print(node: Node) -> None:
    value = node.children[0]
    if value is not None and value.type not in (NodeType.LIT_STRING, NodeType.PRINT_LST):
        _reject(value, _NOT_A_VALUE, "print command with invalid types.")


def _check_print_list(node: Node) -> None:
    value = node.children[0]
    if value is not None and value.type != NodeType.LIT_STRING:
        _reject(value, _NOT_A_VALUE, "print command with invalid types.")


def _check_for(node: Node) -> None:
    _require_declared(node)
    _reject(node.children[0], _NOT_A_VALUE, "for command with invalid types.")
    _reject(node.children[1], _NOT_A_VALUE, "for command with invalid types.")


def _check_return(node: Node) -> None:
    _reject(node.children[0], _NOT_A_VALUE, "invalid return type.")


def _condition_check(command: str) -> Callable[[Node], None]:
    def run(node: Node) -> None:
        if expression_type(node.children[0]) != ExpressionType.BOOLEAN:
            raise SemanticError(f"{command} command with invalid types.")

    return run


def _check_attribution(node: Node) -> None:
    _require_declared(node)
    _require_nature(node, Nature.VARIABLE, allow_unset=True)
    _reject(node.children[0], _NOT_A_VALUE, "attribution with invalid types.")


def _check_array_attribution(node: Node) -> None:
    _require_declared(node)
    _require_nature(node, Nature.ARRAY, allow_unset=True)
    _reject(node.children[0], _NOT_AN_INDEX, f"vector {_text(node)} with invalid index.")
    _reject(node.children[1], _NOT_A_VALUE, "attribution with invalid types.")


def _check_identifier(node: Node) -> None:
    _require_declared(node)
    _require_nature(node, Nature.VARIABLE)


def _check_array_call(node: Node) -> None:
    _require_declared(node)
    _require_nature(node, Nature.ARRAY)
    _reject(node.children[0], _NOT_AN_INDEX, f"vector {_text(node)} with invalid index.")


def _check_function_call(node: Node) -> None:
    _require_declared(node, "wasn't")
    _require_nature(node, Nature.FUNCTION)
    check_arguments(node.children[0])
    expected = node.symbol.parameters_number
    if count_arguments(node.children[0]) != expected:
        raise SemanticError(
            f"wrong number of arguments: {_text(node)}() should receive {expected} arguments."
        )


def _comparison_check(tag: str) -> Callable[[Node], None]:
    def run(node: Node) -> None:
        kinds = (expression_type(node.children[0]), expression_type(node.children[1]))
        if ExpressionType.STRING in kinds:
            raise SemanticError(f"comparing strings ({tag}).")
        if ExpressionType.BOOLEAN in kinds:
            raise SemanticError(f"comparing boolean sizes ({tag}).")

    return run


def _logical_check(tag: str) -> Callable[[Node], None]:
    def run(node: Node) -> None:
        kinds = (expression_type(node.children[0]), expression_type(node.children[1]))
        if ExpressionType.STRING in kinds:
            raise SemanticError(f"using strings instead booleans ({tag}).")
        if any(kind != ExpressionType.BOOLEAN for kind in kinds):
            raise SemanticError(f"using booleans instead numbers ({tag}).")

    return run


def _arithmetic_check(verb: str) -> Callable[[Node], None]:
    def run(node: Node) -> None:
        kinds = (expression_type(node.children[0]), expression_type(node.children[1]))
        if ExpressionType.STRING in kinds:
            raise SemanticError(f"{verb} strings.")
        if ExpressionType.BOOLEAN in kinds:
            raise SemanticError(f"{verb} booleans.")

    return run


_CHECKS: dict[NodeType, Callable[[Node], None]] = {
    NodeType.VAR_DEC: _check_declared,
    NodeType.FUNC_DEC: _check_function_declaration,
    NodeType.PARAM: _check_declared,
    NodeType.KW_READ: _check_declared,
    NodeType.KW_PRINT: _check_print,
    NodeType.KW_FOR: _check_for,
    NodeType.KW_RETURN: _check_return,
    NodeType.PRINT_LST: _check_print_list,
    NodeType.KW_WHEN_THEN: _condition_check("when"),
    NodeType.KW_WHEN_THEN_ELSE: _condition_check("when"),
    NodeType.KW_WHILE: _condition_check("while"),
    NodeType.ATTRIB: _check_attribution,
    NodeType.ATTRIB_ARR: _check_array_attribution,
    NodeType.TK_ID: _check_identifier,
    NodeType.ARRAY_CALL: _check_array_call,
    NodeType.FUNC_CALL: _check_function_call,
    NodeType.LEQ: _comparison_check("LEQ"),
    NodeType.GTE: _comparison_check("GTE"),
    NodeType.EQU: _comparison_check("EQU"),
    NodeType.NEQ: _comparison_check("NEQ"),
    NodeType.LES: _comparison_check("LES"),
    NodeType.GTR: _comparison_check("GTR"),
    NodeType.AND: _logical_check("AND"),
    NodeType.OR: _logical_check("OR"),
    NodeType.ADD: _arithmetic_check("adding"),
    NodeType.SUB: _arithmetic_check("subtracting"),
    NodeType.MUL: _arithmetic_check("multiplying"),
    NodeType.DIV: _arithmetic_check("dividing"),
}


def check(node: Node | None) -> None:
    """Verify the tree children first; raise SemanticError on the first violation."""
    if node is None:
        return
    for child in node.children:
        check(child)
    handler = _CHECKS.get(node.type)
    if handler is not None:
        handler(node)