from __future__ import annotations

import logging
import sys
from argparse import ArgumentParser

from shard import __version__
from shard.config import get_include_file
from shard.console import StreamConsole
from shard.interpreter import Interpreter


def main(argv: list[str] | None = None) -> int:
    description = "shard: an interactive console for C-family code fragments"
    parser = ArgumentParser(prog="shard", description=description)
    parser.add_argument("files", nargs="*", help="files to include before the interactive loop")
    parser.add_argument("--declare", action="store_true", default=None,
                        help="start in declared mode (session variables need 'var')")
    parser.add_argument("--show-code", action="store_true", default=None,
                        help="echo the code sent to the compiler")
    parser.add_argument("--no-include", action="store_true",
                        help="skip the startup include file ($SHARD_INCLUDE or ~/.shardrc)")
    parser.add_argument("--verbose", "-v", action="store_true", help="log debug records to stderr")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    console = StreamConsole()
    interp = Interpreter(console, must_declare=args.declare, show_code=args.show_code)

    if not args.no_include:
        startup = get_include_file()
        if startup is not None:
            interp.include_file(startup)
    for file in args.files:
        if not interp.include_file(file):
            print(f"shard: cannot read {file}", file=sys.stderr)
            return 1

    interp.start()
    console.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
