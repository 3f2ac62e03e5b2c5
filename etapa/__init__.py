"""Symbol table, syntax tree, semantic checks, three-address code and assembly output for a small teaching language."""

__version__ = "0.7.0"

__all__ = ["astree", "checks", "compiler", "declarations", "decompile", "symbols", "tac"]