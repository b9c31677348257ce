"""
  cfront: a compiler backend for the C-family fragment dialect.

Generated units (a class deriving from CodeChunk or FunctionContext) are
parsed, checked against the names visible to the unit, and translated into a
Python module that is executed in memory.
"""
