"""
Console directives.

A line starting with `/` (but not `//` or `/*`) is a directive:

    /n <namespace>   add a namespace
    /r <module|file> add a reference
    /v               list session variables
    /dcl             toggle declared mode
    /code            toggle echoing of the code sent to the compiler

Any other name is tried as a macro: its arguments are the rest of the line,
split on whitespace when the macro takes more than one parameter.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shard.reader.scanner import split_command

if TYPE_CHECKING:
    from shard.interpreter import Interpreter

logger = logging.getLogger(__name__)

UNRECOGNIZED = "unrecognized command, or bad macro"


class CommandProcessor:
    def __init__(self, session: Interpreter):
        self.session = session

    def execute(self, line: str) -> None:
        parts = split_command(line)
        if parts is None:
            self.session.output.print(UNRECOGNIZED)
            return
        name, args = parts
        logger.debug("command %s %r", name, args)
        handler = getattr(self, "_cmd_" + name, None)
        if handler is not None:
            handler(args)
        else:
            self.macro_command(name, args)

    def _cmd_n(self, args: str) -> None:
        self.session.add_namespace(args)

    def _cmd_r(self, args: str) -> None:
        self.session.add_reference(args)

    def _cmd_v(self, args: str) -> None:
        env = self.session.env
        for name in env:
            self.session.output.print(f"{name} = {env.lookup(name)}")

    def _cmd_dcl(self, args: str) -> None:
        self.session.must_declare = not self.session.must_declare

    def _cmd_code(self, args: str) -> None:
        self.session.show_code = not self.session.show_code

    def macro_command(self, name: str, args: str) -> None:
        entry = self.session.preprocessor.lookup(name)
        if entry is None:
            self.session.output.print(UNRECOGNIZED)
            return
        if entry.is_function:
            code = f"{name}({', '.join(args.split())})"
        elif entry.params is not None:
            actuals = args.split() if len(entry.params) > 1 else [args]
            code = self.session.preprocessor.replace_params(entry, actuals)
        else:
            code = entry.template
        self.session.execute_fragment(code)
