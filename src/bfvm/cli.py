import argparse
import logging
import sys
import time
from typing import List, Optional

from .api import ENGINES, CompileOptions, RunOptions, compile_source, make_vm
from .errors import BFVMError
from .ir import dump_program
from .optimizer import DEFAULT_PASSES
from .source import CommandSource
from .vm import MEMORY_SIZE


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bfvm",
        description="Compile a tape program to bytecode and run it on the bfvm virtual machine."
    )
    parser.add_argument("file", nargs="?", help="Source file (default: stdin)")
    parser.add_argument("--no-optimize", action="store_true", help="Use the naive expansion, skip peephole passes")
    parser.add_argument("--passes", type=int, default=DEFAULT_PASSES, help="Number of peephole passes (default 2)")
    parser.add_argument("--no-wrap", action="store_true", help="Unbounded accumulator arithmetic")
    parser.add_argument("--cell-size", type=int, default=256, help="Cell size for wrapping (default 256)")
    parser.add_argument("--memory-size", type=int, default=MEMORY_SIZE, help="Tape length (default 30000)")
    parser.add_argument("--engine", choices=ENGINES, default="interp", help="Execution engine")
    parser.add_argument("--max-steps", type=int, default=None, help="Abort after this many instructions")
    parser.add_argument("--dump", action="store_true", help="Print the resolved program to stderr")
    parser.add_argument("--stats", action="store_true", help="Print timings and a memory snapshot to stderr")
    parser.add_argument("--verbose", action="store_true", help="Verbose logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    compile_opts = CompileOptions(optimize=not args.no_optimize, passes=max(0, args.passes))
    run_opts = RunOptions(
        cell_size=None if args.no_wrap else args.cell_size,
        memory_size=args.memory_size,
        engine=args.engine,
        max_steps=args.max_steps,
    )

    try:
        if args.file:
            source = CommandSource.from_file(args.file)
        else:
            source = CommandSource(sys.stdin)
    except FileNotFoundError:
        print(f"Couldn't find file: {args.file}", file=sys.stderr)
        return 1

    try:
        start = time.time()
        result = compile_source(source, options=compile_opts)
        end = time.time()

        if args.stats:
            print(f"Compilation took {(end - start) * 1000:.2f} ms "
                  f"({result.raw_count} -> {result.optimized_count} instructions)", file=sys.stderr)
        if args.dump:
            print(dump_program(result.program), file=sys.stderr)

        start = time.time()
        vm = make_vm(result.program, options=run_opts)
        state = vm.run_jit() if run_opts.engine == "jit" else vm.run()
        end = time.time()
    except BFVMError as e:
        sys.stdout.flush()
        print(e, file=sys.stderr)
        return 1

    if args.stats:
        print(f"\nExecution took {(end - start) * 1000:.2f} ms ({state.steps} steps)", file=sys.stderr)
        print(f"a={state.a} p={state.p}", file=sys.stderr)
        print(" ".join(str(v) for v in vm.memory.snapshot(16)), file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
