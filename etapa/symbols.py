"""Symbol table: identifiers, literals, labels and temporaries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator

HASH_SIZE = 997

_log = logging.getLogger(__name__)


class SymbolKind(IntEnum):
    """Lexical kind of a symbol."""

    IDENTIFIER = 1
    LIT_INTEGER = 2
    LIT_REAL = 3
    LIT_CHAR = 4
    LIT_STRING = 5


class DataType(IntEnum):
    """Declared storage type of a variable, parameter or function."""

    BYTE = 1
    SHORT = 2
    LONG = 3
    FLOAT = 4
    DOUBLE = 5


class Nature(IntEnum):
    """What a symbol stands for."""

    VARIABLE = 1
    ARRAY = 2
    FUNCTION = 3
    BOOLEAN = 4
    TEMPORARY = 5
    LABEL = 6


class ExpressionType(IntEnum):
    """Type of the value an expression yields."""

    INTEGER = 1
    REAL = 2
    CHAR = 3
    STRING = 4
    BOOLEAN = 5


def hash_address(text: str) -> int:
    """Return the bucket index of ``text`` in a table of HASH_SIZE buckets."""
    address = 1
    for byte in text.encode("utf-8"):
        address = (address * byte) % HASH_SIZE + 1
    return address - 1


@dataclass(eq=False)
class Symbol:
    """One entry of the symbol table; compared by identity."""

    text: str
    kind: int
    data_type: int = 0
    nature: int = 0
    expression_type: int = 0
    parameters_number: int = -1
    declared: bool = False

    def matches(self, other: "Symbol") -> bool:
        """True when both are identifiers with the same text."""
        return (
            self.kind == SymbolKind.IDENTIFIER
            and other.kind == SymbolKind.IDENTIFIER
            and self.text == other.text
        )


class SymbolTable:
    """Chained hash table of symbols; new entries go to the head of a chain."""

    def __init__(self) -> None:
        self.buckets: list[list[Symbol]] = [[] for _ in range(HASH_SIZE)]
        self._label_count = 0
        self._temporary_count = 0
        self.true = self._add_boolean("1")
        self.false = self._add_boolean("0")

    def _lookup(self, probe: Symbol) -> Symbol | None:
        for candidate in self.buckets[hash_address(probe.text)]:
            if probe.matches(candidate):
                return candidate
        return None

    def _add(self, symbol: Symbol) -> Symbol:
        existing = self._lookup(symbol)
        if existing is not None:
            return existing
        self.buckets[hash_address(symbol.text)].insert(0, symbol)
        return symbol

    def _add_boolean(self, text: str) -> Symbol:
        return self._add(
            Symbol(
                text,
                SymbolKind.LIT_INTEGER,
                nature=Nature.BOOLEAN,
                expression_type=ExpressionType.BOOLEAN,
                parameters_number=0,
            )
        )

    def find(self, text: str) -> Symbol | None:
        """Return the identifier named ``text``, or None."""
        return self._lookup(Symbol(text, SymbolKind.IDENTIFIER))

    def insert(self, text: str, kind: int, data_type: int, nature: int) -> Symbol:
        """Add a symbol; an identifier already present is returned instead."""
        _log.debug("trying to insert in hash %s", text)
        symbol = Symbol(text, kind, data_type=data_type, nature=nature)
        stored = self._add(symbol)
        if stored is symbol:
            _log.debug("inserting in hash %s", text)
        return stored

    def label(self) -> Symbol:
        """Create a fresh label symbol; labels are not stored in the table."""
        symbol = Symbol(
            f"__label_{self._label_count}",
            SymbolKind.IDENTIFIER,
            nature=Nature.LABEL,
            parameters_number=0,
        )
        self._label_count += 1
        return symbol

    def temporary(self) -> Symbol:
        """Create and store a fresh temporary symbol."""
        symbol = Symbol(
            f"__temporary_{self._temporary_count}",
            SymbolKind.IDENTIFIER,
            nature=Nature.TEMPORARY,
            parameters_number=0,
        )
        self._temporary_count += 1
        return self._add(symbol)

    def symbols(self) -> Iterator[Symbol]:
        """Yield every stored symbol, bucket by bucket, chain head first."""
        for chain in self.buckets:
            yield from chain

    def dump(self) -> str:
        """Describe every stored symbol, one line each."""
        lines = []
        for index, chain in enumerate(self.buckets):
            for s in chain:
                lines.append(
                    f"Table[{index}].text\t {s.text}\t type {int(s.kind)} "
                    f"dataType {int(s.data_type)} nature {int(s.nature)} "
                    f"exprType {int(s.expression_type)} isDeclared {int(s.declared)}\n"
                )
        return "".join(lines)