"""Network hosts for the shard console engine.

This package provides:
- A simple TCP REPL server that feeds lines to a long-lived Interpreter and
  returns what the session wrote to its console.
"""

__all__ = [
    "repl_server",
]
