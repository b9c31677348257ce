# Core type aliases shared by the shard console engine.
#
# Naming guidance:
# - Value:   anything stored in the session's variable environment or produced by a fragment.
# - Source:  fragment text, rewritten fragment text, or generated unit source.
# - InputHandler: one-shot callback handed to a console; receives the next line,
#   or None when the request is cancelled.

from typing import Any, Callable, Optional

__version__ = "0.9.0"

# Runtime value alias
Value = Any
Source = str

InputHandler = Callable[[Optional[str]], bool]
