"""Uses the pure lambda calculus implementation to interpret .lc files or run in command-line mode. Also uses error
handling context manager. Installed as the lambda-repl executable.
"""

import argparse
import logging
import os

from lambda_repl.lang.error import ErrorHandler
from lambda_repl.lang.log import setup_logging
from lambda_repl.lang.session import Session, Settings
from lambda_repl.lang.shell import Shell
from lambda_repl.pure.reducer import NormalOrderReducer

logger = logging.getLogger(__name__)

COMMON = os.path.join(os.path.dirname(os.path.abspath(__file__)), "common")
PRELUDE = os.path.join(COMMON, "prelude.lc")


def step_limit(arg):
    """argparse type for --max-steps: a natural number, 0 meaning no limit."""
    if not arg.isdigit():
        raise argparse.ArgumentTypeError(f"'{arg}' is not a natural number")
    return int(arg) or None


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="lambda-repl", description="Normal-order λ-calculus interpreter.")
    parser.add_argument("file", help="file to interpret and run (if empty, goes to command-line mode)", nargs="?")
    parser.add_argument("-p", "--prelude", help="extra .lc file to load first (repeatable)", action="append",
                        default=[])
    parser.add_argument("--no-prelude", help="do not load the bundled prelude", action="store_true")
    parser.add_argument("-n", "--max-steps", help="maximum reduction steps per evaluation, 0 for no limit "
                        f"(default: {NormalOrderReducer.MAX_STEPS})", type=step_limit,
                        default=NormalOrderReducer.MAX_STEPS)
    parser.add_argument("-t", "--trace", help="print every intermediate term", action="store_true")
    parser.add_argument("--no-names", help="do not show results with binding names", action="store_true")
    parser.add_argument("-v", "--verbose", help="log debug information to stderr", action="store_true")
    return parser.parse_args(argv)


def main(argv=None):
    """Runs lambda-repl. Called from the lambda-repl executable."""
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    with ErrorHandler() as error_handler:
        settings = Settings(max_steps=args.max_steps, trace=args.trace, names=not args.no_names)
        sess = Session(error_handler, settings=settings)

        preludes = ([] if args.no_prelude else [PRELUDE]) + args.prelude
        for path in preludes:
            logger.debug("loading prelude '%s'", path)
            sess.load(path)

        if args.file is not None:
            sess.load(args.file)
        else:
            Shell(sess).run()


if __name__ == "__main__":
    main()
