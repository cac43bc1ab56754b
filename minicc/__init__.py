"""Semantic analysis, three-address intermediate code and MIPS assembly for a small C-like language."""

__version__ = "0.1.0"

__all__ = ["tree", "typesys", "ir", "symbols", "semantic", "irgen_exp", "irgen", "asm"]