# minicc

`minicc` is the back half of a compiler for a small C-like teaching
language. It starts from a syntax tree that a parser has already built. Then it:

1. checks the program for semantic errors,
2. translates it into three-address intermediate code, and
3. writes MIPS32 assembly for a SPIM-style simulator.

The language has these features:

* `int` and `float` variables,
* one-dimensional arrays,
* structures,
* functions,
* `if`/`else` and `while`,
* the built-in functions `read()` and `write(int)`.

## What it does not do

`minicc` has no lexer or parser, so it cannot read source text. It also has no command-line program. You build or import the syntax tree yourself and call the library functions described below.

## Syntax trees

Trees are made of `minicc.tree.Node` objects. Each node has three fields:

* `msg`
* `line`
* `children`

Build nodes with `minicc.tree.node(msg, *children, line=...)`.

Inner nodes carry the name of their grammar symbol, for example `"ExtDefList"`, `"FunDec"`, `"CompSt"`, `"Exp"`. Leaf tokens carry the token name followed by the token text:

| Token | Example |
| --- | --- |
| identifier | `"ID: main"` |
| integer literal | `"INT: 5"` |
| float literal | `"FLOAT: 1.5"` |
| type name | `"TYPE: int"` |
| relational operator | `"RELOP: <="` |

An empty production is a node whose `msg` is `"EMPTY"`. `minicc.tree.is_empty` returns true for such a node and for `None`.

## Semantic analysis

```python
from minicc.semantic import analyze

analyzer = analyze(root)
for error in analyzer.errors:
    print(error.message())
```

`analyze` does three things:

1. builds a `minicc.symbols.SymbolTable` for the tree,
2. checks every definition,
3. returns the `Analyzer`.

Each `SemanticError` records the error type in `code` and the source line in `line`. `message()` formats the error like this:

```
Error type 1 at Line 3:  Variable used before definition.
```

The error types are numbered 1 to 17. They cover, for example:

* undefined variables,
* redefined functions,
* mismatched types on either side of `=`,
* wrong argument lists.

For finer control, create `Analyzer(SymbolTable())` yourself and call `run(root)`. `SymbolTable.dump()` returns a readable listing of the variable and function tables.

## Intermediate code

```python
from minicc.irgen import ir_text

print(ir_text(root))
```

For `int main() { write(1); return 0; }` the output is:

```
FUNCTION main :
WRITE #1
RETURN #0
```

`ir_text` raises the first `SemanticError` if the program has any. `minicc.irgen.generate_ir(root, table, analyzer)` returns the `minicc.ir.IRProgram` itself. You can iterate over its `IRNode`s or turn it into text with `minicc.ir.render`.

The translator does not support multi-dimensional arrays or array-typed parameters. When it meets either one, it raises `minicc.irgen_exp.TranslationError`.

## Assembly

```python
from minicc.asm import assemble

print(assemble(root))
```

`assemble` runs the whole pipeline and returns a MIPS32 listing. The listing starts with the `read` and `write` runtime routines. Like `ir_text`, `assemble` raises the first `SemanticError` if there is one.

To assemble a program you already hold, use `minicc.asm.Assembler(program).assemble()`.

Stack frame layout:

* Every variable and temporary has a fixed slot below `$fp`.
* Function parameters are found above `$fp`.

## Running the tests

Install the `test` extra, then run `pytest` from the project root.