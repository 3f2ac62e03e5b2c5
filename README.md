# etapa

`etapa` takes the abstract syntax tree of a small statically typed teaching
language and carries it the rest of the way to x86-64 assembly (Mach-O
flavoured, AT&T syntax). It uses only the standard library.

The language has `byte`, `short`, `long`, `float` and `double` scalars and
arrays, functions with parameters, `when … then … else`, `while`, ascending
`for … to …` loops, `read`, `print` and `return`.

## Stages

| Stage | Module | Entry points |
| --- | --- | --- |
| Symbol table | `etapa.symbols` | `SymbolTable`, `Symbol`, `hash_address`, `SymbolKind`, `DataType`, `Nature`, `ExpressionType` |
| Syntax tree | `etapa.astree` | `Node`, `NodeType`, `format_tree` |
| Source reconstruction | `etapa.decompile` | `decompile` |
| Declarations | `etapa.declarations` | `set_declarations`, `SemanticError` |
| Type and usage checks | `etapa.checks` | `check`, `expression_type` |
| Three-address code | `etapa.tac` | `generate`, `TacGenerator`, `Tac`, `TacType`, `format_code` |
| Assembly | `etapa.compiler` | `generate_assembly`, `write_assembly`, `AssemblyGenerator`, `CompilationError` |

## Usage

The tree is built from `Node` objects whose symbols come from a
`SymbolTable`. A `Node` takes a `NodeType`, a symbol (or `None`) and up to four
children. From there the pipeline is:

```python
from etapa.astree import format_tree
from etapa.checks import check
from etapa.compiler import write_assembly
from etapa.declarations import SemanticError, set_declarations
from etapa.tac import format_code, generate

def compile_tree(tree, table, output_path):
    print(format_tree(tree, 0))

    try:
        set_declarations(tree)
        check(tree)
    except SemanticError as error:
        raise SystemExit(f"Semantic error: {error}")

    code = generate(tree, table)
    print(format_code(code))

    write_assembly(code, table, output_path)
```

- `set_declarations` walks the tree and records variables, arrays, functions
  and parameters on their symbols; `check` then verifies every use and every
  expression type. Both raise `SemanticError` (its `exit_code` is 4).
- `generate(tree, table)` returns the intermediate code as a list of `Tac`
  instructions in program order, with function calls resolved to the value
  the called function returns. `format_code` lists it one instruction per
  line, leaving out bare symbol entries.
- `generate_assembly(code, table)` returns the assembly text;
  `write_assembly(code, table, path)` writes it to `path` and returns the path
  as a `Path`. Both raise `CompilationError` (its `exit_code` is 5) when the
  code holds an instruction the back end does not know or is malformed.

`decompile(tree)` turns a tree back into source text, which is handy for
checking what a tree holds.

## Symbol table

`SymbolTable()` starts with the boolean constants `table.true` and
`table.false`. `insert(text, kind, data_type, nature)` returns the existing
symbol when an identifier with the same text is already present, so every
occurrence of a name shares one `Symbol`. `label()` hands out fresh label
symbols (not stored in the table) and `temporary()` fresh stored temporaries.
`find(text)` looks an identifier up, `symbols()` iterates over everything
stored, and `dump()` describes each entry on one line.

## What it does not do

There is no scanner or parser: the package starts from a syntax tree that the
caller builds. There is no command-line program either; the stages are called
from Python.

Code generation treats every value as a 32-bit integer; real literals are
truncated at the decimal point. `for` loops count upwards only, and loops with
literal bounds are unrolled.