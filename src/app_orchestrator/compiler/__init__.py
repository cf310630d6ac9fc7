"""
Compiler package.

This makes the compiler folder an explicit package so both Python and mypy
resolve modules consistently.
"""

from app_orchestrator.compiler.compiler import (
    ApplicationCompiler,
    CompileResult,
    CompilerConfig,
    compile_model,
)

__all__ = ["ApplicationCompiler", "CompileResult", "CompilerConfig", "compile_model"]
