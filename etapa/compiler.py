"""Emit x86-64 assembly (Mach-O flavour) from three-address code."""

from __future__ import annotations

import logging
from os import PathLike
from pathlib import Path
from typing import Iterable

from etapa.symbols import Nature, Symbol, SymbolKind, SymbolTable
from etapa.tac import Tac, TacType

_log = logging.getLogger(__name__)

NUM_PARAM_REGS = 6
PARAM_REGS_64 = ("%rdi", "%rsi", "%rdx", "%rcx", "%r8", "%r9")
PARAM_REGS_32 = ("%edi", "%esi", "%edx", "%ecx", "%r8d", "%r9d")

_TEXT_HEADER = ".section\t__TEXT,__text,regular,pure_instructions\n.globl _main\n"
_DATA_HEADER = ".section\t__DATA,__data\n"
_CONST_HEADER = ".section\t__TEXT,__const\n"
_READ_FORMAT = 'L_.str.read:\t.asciz\t"%d"\n'


def _branch(name: str, jump: str) -> str:
    return (
        f"\t# TAC_{name}\n"
        "\tmovl\t_{op1}(%rip), %edx\n"
        "\tcmpl\t_{op2}(%rip), %edx\n"
        f"\t{jump}\t\t_{{res}}\n"
    )


def _arithmetic(name: str, instruction: str) -> str:
    return (
        f"\t# TAC_{name}\n"
        "\tmovl\t_{op1}(%rip), %eax\n"
        f"\t{instruction}\t_{{op2}}(%rip), %eax\n"
        "\tmovl\t%eax, _{res}(%rip)\n"
    )


_TEMPLATES: dict[int, str] = {
    TacType.MOVE: "\t# TAC_MOVE\n\tmovl\t_{op1}(%rip), %eax\n\tmovl\t%eax, _{res}(%rip)\n",
    TacType.INC: "\t# TAC_INC\n\tincl\t_{res}(%rip)\n",
    TacType.ADD: _arithmetic("ADD", "addl"),
    TacType.SUB: _arithmetic("SUB", "subl"),
    TacType.MUL: _arithmetic("MUL", "imull"),
    TacType.DIV: (
        "\t# TAC_DIV\n"
        "\tmovl\t_{op1}(%rip), %eax\n"
        "\tcltd\n"
        "\tidivl\t_{op2}(%rip)\n"
        "\tmovl\t%eax, _{res}(%rip)\n"
    ),
    TacType.BLE: _branch("BLE", "jle"),
    TacType.BGE: _branch("BGE", "jge"),
    TacType.BEQ: _branch("BEQ", "je"),
    TacType.BNE: _branch("BNE", "jne"),
    TacType.BLT: _branch("BLT", "jl"),
    TacType.BGT: _branch("BGT", "jg"),
    TacType.AND: (
        "\t# TAC_AND\n"
        "\tmovl\t_{op1}(%rip), %eax\n"
        "\tmovl\t_{op2}(%rip), %edx\n"
        "\tandl\t%edx, %eax\n"
        "\tmovl\t%eax, _{res}(%rip)"
    ),
    TacType.OR: (
        "\t# TAC_OR\n"
        "\tmovl\t_{op1}(%rip), %eax\n"
        "\tmovl\t_{op2}(%rip), %edx\n"
        "\torl\t\t %edx, %eax\n"
        "\tmovl\t%eax, _{res}(%rip)\n"
    ),
    TacType.LABEL: "\t# TAC_LABEL\n_{res}:\n",
    TacType.BEGINFUN: (
        "\t# TAC_BEGINFUN\n"
        "_{res}:\n"
        "\t.cfi_startproc\n"
        "\tpushq\t%rbp\n"
        "\tmovq\t%rsp, %rbp\n"
    ),
    TacType.ENDFUN: "\t# TAC_ENDFUN\n\t.cfi_endproc\n",
    TacType.FCALL: "\t# TAC_FCALL\n\tcallq\t_{op1}\n",
    TacType.ACALL: (
        "\t# TAC_ACALL\n"
        "\tleaq\t_{op1}(%rip), %rcx\n"
        "\tmovslq\t_{op2}(%rip), %rdx\n"
        "\tmovl\t(%rcx,%rdx,4), %esi\n"
        "\tmovl\t%esi, _{res}(%rip)\n"
    ),
    TacType.AATTRIB: (
        "\t# TAC_AATTRIB\n"
        "\tleaq\t_{res}(%rip), %rcx\n"
        "\tmovl\t_{op2}(%rip), %edx\n"
        "\tmovslq\t_{op1}(%rip), %rsi\n"
        "\tmovl\t%edx, (%rcx,%rsi,4)\n"
    ),
    TacType.IFZ: "\t# TAC_IFZ\n\tcmpl\t$0, _{op1}(%rip)\n\tje\t\t_{res}\n",
    TacType.JUMP: "\t# TAC_JUMP\n\tjmp\t\t_{res}\n",
    TacType.RET: "\t# TAC_RET\n\tmovl\t_{res}(%rip), %eax\n\tpopq\t%rbp\n\tretq\n",
    TacType.READ: (
        "\t# TAC_READ\n"
        "\tleaq\tL_.str.read(%rip), %rdi\n"
        "\tleaq\t_{res}(%rip), %rsi\n"
        "\tcallq\t_scanf\n"
    ),
}


class CompilationError(Exception):
    """The intermediate code cannot be turned into assembly; exit code 5."""

    exit_code = 5


def _text(symbol: Symbol | None, tac: Tac, role: str) -> str:
    if symbol is None:
        raise CompilationError(f"TAC_{_type_name(tac)} has no {role}")
    return symbol.text


def _type_name(tac: Tac) -> str:
    try:
        return TacType(tac.type).name
    except ValueError:
        return str(tac.type)


class _Operands:
    """Lazy operand lookup for templates: only referenced operands must exist."""

    def __init__(self, tac: Tac) -> None:
        self._tac = tac

    def __getitem__(self, key: str) -> str:
        return _text(getattr(self._tac, key), self._tac, key)


def _integer_part(text: str) -> str:
    """The first non-empty piece of ``text`` split on dots."""
    return next((piece for piece in text.split(".") if piece), "")


def _atoi(text: str) -> int:
    digits = ""
    stripped = text.lstrip()
    if stripped[:1] in ("+", "-"):
        digits, stripped = stripped[0], stripped[1:]
    for char in stripped:
        if not char.isdigit():
            break
        digits += char
    try:
        return int(digits)
    except ValueError:
        return 0


class AssemblyGenerator:
    """Turns program-ordered intermediate code into an assembly listing."""

    def __init__(self, table: SymbolTable) -> None:
        self.table = table
        self._string_count = 0
        self._format_count = 0

    def generate(self, code: Iterable[Tac]) -> str:
        """Return the assembly for ``code``; raise CompilationError on unknown codes."""
        code = list(code)
        variables = [self._variable_section()]
        immediates = [self._immediate_section()]
        literals = [_READ_FORMAT]
        text = [_TEXT_HEADER]
        unknown = 0

        for index, tac in enumerate(code):
            kind = tac.type
            if kind in (TacType.SYMBOL, TacType.PRARG):
                continue
            if kind in (TacType.VAR, TacType.PARAM):
                variables.append(self._scalar(tac))
            elif kind == TacType.ARR:
                variables.append(self._array(code, index))
            elif kind == TacType.ARG:
                parameter = self._parameter_for(code, index)
                text.append(
                    "\t# TAC_ARG\n"
                    f"\tmovl\t_{_text(tac.res, tac, 'res')}(%rip), %eax\n"
                    f"\tmovl\t%eax, _{_text(parameter, tac, 'parameter')}(%rip)\n"
                )
            elif kind == TacType.PRINT:
                text.append("\t# TAC_PRINT\n" + self._print(code, index, immediates, literals))
            else:
                template = _TEMPLATES.get(kind)
                if template is None:
                    unknown += 1
                    _log.error("Compiler error: unknown intermediary code.")
                    continue
                text.append(template.format_map(_Operands(tac)))

        if unknown:
            raise CompilationError(f"{unknown} unknown intermediary code(s) found")
        return (
            "".join(text)
            + "\n"
            + "".join(variables)
            + "\n"
            + "".join(immediates)
            + "\n"
            + "".join(literals)
            + "\n"
        )

    def _variable_section(self) -> str:
        lines = [_DATA_HEADER]
        for chain in self.table.buckets:
            if chain and chain[0].nature == Nature.TEMPORARY:
                lines.append(f"_{chain[0].text}: .long\t0\n")
        return "".join(lines)

    def _immediate_section(self) -> str:
        lines = [_CONST_HEADER]
        for chain in self.table.buckets:
            for symbol in chain:
                if (
                    not symbol.declared
                    and symbol.nature != Nature.TEMPORARY
                    and symbol.kind != SymbolKind.LIT_STRING
                ):
                    value = (
                        _integer_part(symbol.text)
                        if symbol.kind == SymbolKind.LIT_REAL
                        else symbol.text
                    )
                    lines.append(f"_{symbol.text}: .long\t{value}\n")
                    break
        return "".join(lines)

    @staticmethod
    def _scalar(tac: Tac) -> str:
        name = _text(tac.res, tac, "res")
        if tac.op1 is None:
            value = "0"
        elif tac.op1.kind == SymbolKind.LIT_REAL:
            value = _integer_part(tac.op1.text)
        else:
            value = tac.op1.text
        return f"_{name}: .long\t{value}\n"

    @staticmethod
    def _array(code: list[Tac], index: int) -> str:
        tac = code[index]
        name = _text(tac.res, tac, "res")
        size = _atoi(_text(tac.op1, tac, "size"))
        if size > index:
            raise CompilationError(f"array {name} has fewer initial values than {size}")
        lines = [f"_{name}:\n"]
        for offset in range(1, size + 1):
            item = code[index - offset]
            lines.append(f"\t.long\t{_text(item.res, item, 'res')}\n")
        return "".join(lines)

    @staticmethod
    def _parameter_for(code: list[Tac], index: int) -> Symbol | None:
        between = 0
        call = None
        for tac in code[index + 1 :]:
            if tac.type == TacType.FCALL:
                call = tac
                break
            if tac.type == TacType.ARG:
                between += 1
        if call is None:
            raise CompilationError("argument is not followed by a function call")
        name = _text(call.op1, call, "op1")

        def is_declaration(position: int) -> bool:
            tac = code[position]
            return (
                tac.type == TacType.BEGINFUN and tac.res is not None and tac.res.text == name
            )

        declaration = next(
            (p for p in range(index, -1, -1) if is_declaration(p)),
            None,
        )
        if declaration is None:
            declaration = next(
                (p for p in range(index, len(code)) if is_declaration(p)),
                None,
            )
        if declaration is None:
            raise CompilationError(f"function {name} is called but never defined")
        position = declaration + between + 1
        if position >= len(code):
            raise CompilationError(f"function {name} has too few parameters")
        return code[position].res

    def _print(
        self,
        code: list[Tac],
        index: int,
        immediates: list[str],
        literals: list[str],
    ) -> str:
        number = self._format_count
        fmt = [f'L_.str.{number}: .asciz\t"']
        asm = []
        register = 1
        position = index - 1
        while (
            position >= 0
            and code[position].type == TacType.PRARG
            and register < NUM_PARAM_REGS
        ):
            arg = code[position]
            symbol = arg.res
            text = _text(symbol, arg, "res")
            if symbol.kind == SymbolKind.LIT_STRING:
                immediates.append(f"_string_{self._string_count}: .asciz\t{text}\n")
                asm.append(
                    f"\tleaq\t_string_{self._string_count}(%rip), {PARAM_REGS_64[register]}\n"
                )
                fmt.append("%s")
                self._string_count += 1
            else:
                asm.append(f"\tmovl\t_{text}(%rip), {PARAM_REGS_32[register]}\n")
                fmt.append("%d")
            register += 1
            position -= 1

        asm.append(f"\tleaq\tL_.str.{number}(%rip), %rdi\n\tcallq\t_printf\n")
        fmt.append('\\n"\n')
        literals.append("".join(fmt))
        self._format_count += 1
        return "".join(asm)


def generate_assembly(code: Iterable[Tac], table: SymbolTable) -> str:
    """Return the assembly listing for ``code``."""
    return AssemblyGenerator(table).generate(code)


def write_assembly(code: Iterable[Tac], table: SymbolTable, path: str | PathLike) -> Path:
    """Write the assembly listing for ``code`` to ``path`` and return the path."""
    target = Path(path)
    target.write_text(generate_assembly(code, table))
    return target