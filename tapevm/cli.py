"""
Command-line runner for tape programs.

Usage:
    python -m tapevm.cli                       # run the bundled reference program
    python -m tapevm.cli examples/hello_world.bf
    python -m tapevm.cli -e '++++++++[>++++++++<-]>.'
    python -m tapevm.cli --max-cycles 100000 --stats prog.bf
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .counter import WIDTH
from .host import REFERENCE_PROGRAM, TapeHost
from .sink import DEFAULT_CAPACITY


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Run a tape-machine program",
        prog="python -m tapevm.cli",
    )
    parser.add_argument("file", nargs="?", help="Path to a program file")
    parser.add_argument("-e", "--expr", help="Program text to run")
    parser.add_argument("--width", type=int, default=WIDTH,
                        help=f"Tape and cell width in bits (default {WIDTH})")
    parser.add_argument("--max-cycles", type=int, default=None,
                        help="Stop after this many machine cycles")
    parser.add_argument("--capacity", type=int, default=DEFAULT_CAPACITY,
                        help="Output buffer capacity in bytes")
    parser.add_argument("--stats", action="store_true",
                        help="Print run statistics to stderr")
    args = parser.parse_args(argv)

    if args.file and args.expr:
        parser.error("Provide a program file or -e, not both")

    if args.file:
        path = Path(args.file)
        if not path.exists():
            print(f"Error: File not found: {path}", file=sys.stderr)
            sys.exit(1)
        source = path.read_text(encoding="utf-8")
    elif args.expr is not None:
        source = args.expr
    else:
        source = REFERENCE_PROGRAM

    host = TapeHost(width=args.width, max_cycles=args.max_cycles,
                    capacity=args.capacity)
    try:
        result = host.run(source)
    except (SyntaxError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(result["text"], end="", flush=True)

    if args.stats:
        print(host.machine.stats_summary(), file=sys.stderr, flush=True)
    if not result["ok"]:
        print(f"Halted: cycle budget of {args.max_cycles} exhausted",
              file=sys.stderr, flush=True)
        sys.exit(2)


if __name__ == "__main__":
    main()
