"""Turn a syntax tree back into source text."""

from __future__ import annotations

from etapa.astree import MAX_NUMBER_OF_CHILDREN, Node, NodeType

# Templates: ``{0}``..``{3}`` are the decompiled children, ``{s}`` the node's symbol text.
_TEMPLATES: dict[NodeType, str] = {
    NodeType.DECL_LIST: "{0}{1}",
    NodeType.VAR_DEC: "{s} : {0};\n",
    NodeType.CHAR: "{0} {s}",
    NodeType.INT: "{0} {s}",
    NodeType.REAL: "{0} {s}",
    NodeType.ARR_INT: "{0}[{s}] {1}",
    NodeType.ARR_CHAR: "{0}[{s}] {1}",
    NodeType.ARR_FLOAT: "{0}[{s}] {1}",
    NodeType.ARR: "{0}[{s}]",
    NodeType.INT_LST: "{s} {0}",
    NodeType.CHAR_LST: "{s} {0}",
    NodeType.FLOAT_LST: "{s} {0}",
    NodeType.FUNC_DEC: "{0} {s}({1}) {2};\n",
    NodeType.PARAM_LST: "{0},{1}",
    NodeType.PARAM: "{0} {s}",
    NodeType.LIT_INT: "{s}",
    NodeType.LIT_REAL: "{s}",
    NodeType.LIT_CHAR: "{s}",
    NodeType.LIT_STRING: "{s}",
    NodeType.CMD_LST: "{0}{1};\n",
    NodeType.CMD_BKTS: "{{\n{0}}}",
    NodeType.KW_READ: "read {s}",
    NodeType.KW_PRINT: "print {0}",
    NodeType.PRINT_LST: "{0} {1}",
    NodeType.KW_RETURN: "return {0}",
    NodeType.ATTRIB: "{s} = {0}",
    NodeType.ATTRIB_ARR: "{s} # {0} = {1}",
    NodeType.KW_BYTE: "byte",
    NodeType.KW_SHORT: "short",
    NodeType.KW_LONG: "long",
    NodeType.KW_FLOAT: "float",
    NodeType.KW_DOUBLE: "double",
    NodeType.KW_WHEN_THEN: "when({0}) then {1}",
    NodeType.KW_WHEN_THEN_ELSE: "when({0}) then {1} else {2}",
    NodeType.KW_WHILE: "while({0})\n{1}",
    NodeType.KW_FOR: "for({s} = {0} to {1})\n{2}",
    NodeType.EXP_PARENTHESIS: "({0})",
    NodeType.TK_ID: "{s}",
    NodeType.ARRAY_CALL: "{s}[{0}]",
    NodeType.FUNC_CALL: "{s}({0})",
    NodeType.FUNC_ARGS: "{0} {1}",
    NodeType.FUNC_ARGS_EXT: ", {0}{1}",
    NodeType.LEQ: "{0} <= {1}",
    NodeType.GTE: "{0} >= {1}",
    NodeType.EQU: "{0} == {1}",
    NodeType.NEQ: "{0} != {1}",
    NodeType.AND: "{0} && {1}",
    NodeType.OR: "{0} || {1}",
    NodeType.ADD: "{0} + {1}",
    NodeType.SUB: "{0} - {1}",
    NodeType.MUL: "{0} * {1}",
    NodeType.DIV: "{0} / {1}",
    NodeType.LES: "{0} < {1}",
    NodeType.GTR: "{0} > {1}",
}


def decompile(node: Node | None) -> str:
    """Return the source text of the tree rooted at ``node``; empty for None."""
    if node is None:
        return ""
    template = _TEMPLATES.get(node.type)
    if template is None:
        return ""
    if "{s}" in template:
        if node.symbol is None:
            raise ValueError(f"{node.type.name} node has no symbol")
        symbol_text = node.symbol.text
    else:
        symbol_text = ""
    texts = [decompile(child) for child in node.children[:MAX_NUMBER_OF_CHILDREN]]
    return template.format(*texts, s=symbol_text)