"""SMIL markup compiler and validator."""
from smilforge.compiler.document import compile_svg_document
from smilforge.compiler.smil_compiler import (
    CompileOptions,
    CompileResult,
    SMILCompileError,
    SMILCompiler,
    ValidationResult,
    round_number,
)

__all__ = [
    "CompileOptions",
    "CompileResult",
    "SMILCompileError",
    "SMILCompiler",
    "ValidationResult",
    "compile_svg_document",
    "round_number",
]
