"""First semantic pass: record declarations of variables, functions and parameters."""

from __future__ import annotations

import logging

from etapa.astree import Node, NodeType
from etapa.symbols import DataType, ExpressionType, Nature, SymbolKind

_log = logging.getLogger(__name__)

_KEYWORD_TYPES: dict[NodeType, DataType] = {
    NodeType.KW_BYTE: DataType.BYTE,
    NodeType.KW_SHORT: DataType.SHORT,
    NodeType.KW_LONG: DataType.LONG,
    NodeType.KW_FLOAT: DataType.FLOAT,
    NodeType.KW_DOUBLE: DataType.DOUBLE,
}

_VARIABLE_KINDS: dict[NodeType, tuple[ExpressionType, Nature]] = {
    NodeType.CHAR: (ExpressionType.CHAR, Nature.VARIABLE),
    NodeType.INT: (ExpressionType.INTEGER, Nature.VARIABLE),
    NodeType.REAL: (ExpressionType.REAL, Nature.VARIABLE),
    NodeType.ARR_INT: (ExpressionType.INTEGER, Nature.ARRAY),
    NodeType.ARR_CHAR: (ExpressionType.CHAR, Nature.ARRAY),
    NodeType.ARR_FLOAT: (ExpressionType.REAL, Nature.ARRAY),
    NodeType.ARR: (ExpressionType.INTEGER, Nature.ARRAY),
}

_INITIALISED_ARRAYS = frozenset({NodeType.ARR_INT, NodeType.ARR_CHAR, NodeType.ARR_FLOAT})


class SemanticError(Exception):
    """A semantic rule of the language is broken; the compiler stops with code 4."""

    exit_code = 4


def _keyword_data_type(node: Node | None, where: str) -> DataType | None:
    data_type = _KEYWORD_TYPES.get(node.type) if node is not None else None
    if data_type is None:
        _log.error("Semantic error: %s can't resolve node dataType.", where)
    return data_type


def count_parameters(node: Node) -> int:
    """Return how many parameters a PARAM or PARAM_LST node holds, -1 if unresolved."""
    if node.type == NodeType.PARAM:
        return 1
    tail = node.children[1]
    if tail is not None and tail.type == NodeType.PARAM:
        return 2
    if tail is not None and tail.type == NodeType.PARAM_LST:
        return 1 + count_parameters(tail)
    _log.error("Semantic error: number of parameters can't be resolved.")
    return -1


def declare_variable(node: Node) -> None:
    """Record a VAR_DEC node's symbol as a declared variable or array."""
    symbol = node.symbol
    if symbol is None:
        _log.error("Semantic error at declare_variable(): node hasn't a symbol.")
        return
    value = node.children[0]
    if symbol.kind != SymbolKind.IDENTIFIER or value is None:
        return
    if symbol.declared:
        raise SemanticError(
            f"identifier {symbol.text} used to the variable already declared."
        )
    symbol.declared = True

    # Initial values and sizes become data, so they are marked as declared too.
    if value.symbol is not None:
        value.symbol.declared = True
    if value.type in _INITIALISED_ARRAYS:
        item = value.children[1]
        while item is not None:
            if item.symbol is not None:
                item.symbol.declared = True
            item = item.children[0]

    kind = _VARIABLE_KINDS.get(value.type)
    if kind is not None:
        symbol.expression_type, symbol.nature = kind

    data_type = _keyword_data_type(value.children[0], "declare_variable()")
    if data_type is not None:
        symbol.data_type = data_type


def declare_function(node: Node) -> None:
    """Record a FUNC_DEC node's symbol as a declared function."""
    symbol = node.symbol
    if symbol is None:
        _log.error("Semantic error at declare_function(): node hasn't a symbol.")
        return
    if symbol.declared:
        raise SemanticError(
            f"identifier {symbol.text} used to the function already declared."
        )
    symbol.declared = True

    return_type = node.children[0]
    if symbol.kind == SymbolKind.IDENTIFIER and return_type is not None:
        symbol.nature = Nature.FUNCTION

    data_type = _keyword_data_type(return_type, "declare_function()")
    if data_type is not None:
        symbol.data_type = data_type

    parameters = node.children[1]
    symbol.parameters_number = 0 if parameters is None else count_parameters(parameters)


def declare_parameter(node: Node) -> None:
    """Record a PARAM node's symbol as a declared variable."""
    symbol = node.symbol
    if symbol is None:
        _log.error("Semantic error at declare_parameter(): node hasn't a symbol.")
        return
    if symbol.declared:
        raise SemanticError(
            f"identifier {symbol.text} used to the parameter already declared."
        )
    symbol.declared = True

    type_node = node.children[0]
    if symbol.kind == SymbolKind.IDENTIFIER and type_node is not None:
        symbol.nature = Nature.VARIABLE

    data_type = _keyword_data_type(type_node, "declare_parameter()")
    if data_type is not None:
        symbol.data_type = data_type


_DECLARERS = {
    NodeType.VAR_DEC: declare_variable,
    NodeType.FUNC_DEC: declare_function,
    NodeType.PARAM: declare_parameter,
}


def set_declarations(node: Node | None) -> None:
    """Walk the tree children first and record every declaration found."""
    if node is None:
        return
    for child in node.children:
        set_declarations(child)
    declarer = _DECLARERS.get(node.type)
    if declarer is not None:
        declarer(node)