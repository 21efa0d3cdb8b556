#!/usr/bin/env python3
"""
Test, match and benchmark runner for the trampoline regex engine.

Orchestrates:
1. Loading match cases from YAML and checking the engine against them
2. Matching ad-hoc inputs against an inline YAML expression
3. Benchmarking deeply nested expressions that would overflow a recursive matcher

Usage:
    python run.py test                         # Run all cases from cases.yaml
    python run.py test -n scala                # Run one named case
    python run.py match -e '{repeat: la}' lala # Match inputs against an expression
    python run.py match --trace -e ab ab       # Print every trampoline step
    python run.py bench --depth 200000         # Stack-safety benchmark
"""

import argparse
import io
import json
import sys
import time
from pathlib import Path

from regex_config import ConfigError, MatchCase, load_cases, parse_expression
from trampoline_regex import (
    Call, Evaluate, Finished, Regexp, Resume, StepLimitExceeded, describe, literal,
)

# Ensure UTF-8 output on Windows
if sys.platform == 'win32':
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8', errors='replace')

# Paths
ROOT_DIR = Path(__file__).parent
DEFAULT_CASES = ROOT_DIR / "cases.yaml"


def format_call(call: Call) -> str:
    """One-line description of a unit of work for --trace output."""
    if isinstance(call, Evaluate):
        k = type(call.continuation).__name__
        return f"Evaluate {describe(call.expression, max_depth=3)} @{call.position} -> {k}"
    if isinstance(call, Resume):
        k = type(call.continuation).__name__
        return f"Resume {call.position} -> {k}"
    if isinstance(call, Finished):
        return f"Finished {call.position}"
    return repr(call)


# =============================================================================
# Case Execution
# =============================================================================

def run_case(case: MatchCase, zero_width_guard: bool = True,
             max_steps: int | None = None, verbose: bool = False) -> list[str]:
    """Run every input of a case, returning a list of failure descriptions."""
    failures = []
    for text, expected in case.cases.items():
        try:
            actual = case.expression.matches(text, zero_width_guard=zero_width_guard,
                                             max_steps=max_steps)
        except StepLimitExceeded as e:
            failures.append(f"{text!r}: {e}")
            if verbose:
                print(f"  [FAIL] {text!r}: {e}")
            continue

        ok = actual == expected
        if not ok:
            failures.append(f"{text!r}: expected {expected}, got {actual}")
        if verbose:
            status = "OK" if ok else "FAIL"
            print(f"  [{status}] {text!r} -> {actual}")
    return failures


def list_cases(cases: list[MatchCase], config_path: Path):
    print(f"Available cases in {config_path}:")
    for case in cases:
        pattern = case.pattern[:40]
        print(f"  - {case.name}: {len(case.cases)} input(s), pattern: {pattern}")


# =============================================================================
# Benchmarks
# =============================================================================

def build_left_concat(depth: int) -> tuple[Regexp, str]:
    """((a . a) . a) ... nested `depth` levels on the left."""
    expression = literal("a")
    for _ in range(depth - 1):
        expression = expression.concat(literal("a"))
    return expression, "a" * depth


def build_right_concat(depth: int) -> tuple[Regexp, str]:
    """a . (a . (a ...)) nested `depth` levels on the right."""
    expression = literal("a")
    for _ in range(depth - 1):
        expression = literal("a").concat(expression)
    return expression, "a" * depth


def build_alternate_chain(depth: int) -> tuple[Regexp, str]:
    """b | (b | (... | a)): every branch but the last one fails."""
    expression = literal("a")
    for _ in range(depth - 1):
        expression = literal("b").alternate(expression)
    return expression, "a"


def build_long_repeat(count: int) -> tuple[Regexp, str]:
    return literal("ab").repeat(), "ab" * count


def run_benchmark(name: str, expression: Regexp, text: str, iterations: int) -> dict:
    """Time repeated matches of one workload."""
    steps = 0

    def count_step(_call):
        nonlocal steps
        steps += 1

    matched = expression.matches(text, on_step=count_step)

    timings = []
    for _ in range(iterations):
        start = time.perf_counter()
        expression.matches(text)
        timings.append((time.perf_counter() - start) * 1000)

    return {
        "name": name,
        "input_length": len(text),
        "matched": matched,
        "steps": steps,
        "iterations": iterations,
        "min_ms": min(timings),
        "mean_ms": sum(timings) / len(timings),
    }


# =============================================================================
# CLI Commands
# =============================================================================

def cmd_test(args):
    """Run match cases from a YAML case file."""
    config_path = Path(args.config)
    try:
        cases = load_cases(config_path, name=args.name)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.list:
        list_cases(cases, config_path)
        return 0

    if args.name and not cases:
        print(f"Error: No case named '{args.name}' found", file=sys.stderr)
        return 1

    all_success = True
    total_inputs = 0
    for case in cases:
        print(f"\n### {case.name}: {case.pattern} ###")
        failures = run_case(case, zero_width_guard=not args.faithful,
                            max_steps=args.max_steps, verbose=args.verbose)
        total_inputs += len(case.cases)
        if failures:
            all_success = False
            print(f"FAILED: {len(failures)} of {len(case.cases)} input(s)")
            for failure in failures:
                print(f"  {failure}", file=sys.stderr)
        else:
            print(f"OK: {len(case.cases)} input(s)")

    print(f"\n{'='*60}")
    if all_success:
        print(f"ALL {total_inputs} INPUT(S) IN {len(cases)} CASE(S) PASSED")
    else:
        print("SOME CASES FAILED")
    print(f"{'='*60}")

    return 0 if all_success else 1


def cmd_match(args):
    """Match inputs against an inline YAML expression."""
    try:
        expression = parse_expression(args.expression)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Pattern: {describe(expression)}")

    on_step = None
    if args.trace:
        def on_step(call):
            print(f"  {format_call(call)}", file=sys.stderr)

    all_matched = True
    for text in args.inputs:
        try:
            end = expression.match_end(text, zero_width_guard=not args.faithful,
                                       max_steps=args.max_steps, on_step=on_step)
        except StepLimitExceeded as e:
            print(f"Error: {text!r}: {e}", file=sys.stderr)
            return 2

        if end == len(text):
            print(f"MATCH     {text!r}")
        else:
            all_matched = False
            detail = "no match" if end is None else f"stopped at {end}"
            print(f"NO MATCH  {text!r} ({detail})")

    return 0 if all_matched else 1


def cmd_bench(args):
    """Benchmark stack-safe matching on deeply nested expressions."""
    depth = args.depth
    if depth < 1 or args.iterations < 1 or args.repetitions < 0:
        print("Error: --depth and --iterations must be at least 1, --repetitions non-negative",
              file=sys.stderr)
        return 1

    workloads = [
        ("left_concat", *build_left_concat(depth)),
        ("right_concat", *build_right_concat(depth)),
        ("alternate_chain", *build_alternate_chain(depth)),
        ("long_repeat", *build_long_repeat(args.repetitions)),
    ]

    print(f"{'='*60}")
    print(f"Depth: {depth}, Repetitions: {args.repetitions}, Iterations: {args.iterations}")
    print(f"Python recursion limit: {sys.getrecursionlimit()}")
    print(f"{'='*60}")

    results = []
    all_success = True
    for name, expression, text in workloads:
        print(f"\nRunning {name}...")
        result = run_benchmark(name, expression, text, args.iterations)
        results.append(result)
        if not result["matched"]:
            all_success = False
            print(f"  Unexpected mismatch for {name}", file=sys.stderr)
        print(f"  steps: {result['steps']:,}")
        print(f"  min:   {result['min_ms']:.3f}ms")
        print(f"  mean:  {result['mean_ms']:.3f}ms")

    if args.output:
        output_path = Path(args.output)
        if output_path.is_dir() or args.output.endswith('/') or args.output.endswith('\\'):
            output_path = output_path / "benchmark.json"
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump({"depth": depth, "repetitions": args.repetitions,
                       "results": results}, f, indent=2)
        print(f"\nResults saved to: {output_path}")

    return 0 if all_success else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Trampoline regex test, match and benchmark runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  test    Check the engine against YAML match cases
  match   Match inputs against an inline YAML expression
  bench   Time deeply nested expressions and long repetitions

Expression YAML:
  abc                          literal
  {empty: }                    never matches
  {concat: [Sca, la]}          concatenation (folded left)
  {alternate: [ab, a]}         committed alternation
  {repeat: la}                 greedy zero-or-more

Examples:
  python run.py test -v
  python run.py match -e '{concat: [Sca, la, {repeat: la}]}' Scala Scalaland
  python run.py match --faithful --max-steps 100 -e '{repeat: ""}' ''
  python run.py bench --depth 100000 -o results/
"""
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    def add_engine_args(p):
        p.add_argument("--faithful", action="store_true",
                       help="Disable the zero-width repetition guard (may not terminate)")
        p.add_argument("--max-steps", type=int,
                       help="Abort a match after this many trampoline steps")

    # Test subcommand
    test_parser = subparsers.add_parser("test", help="Run match cases")
    test_parser.add_argument("--config", "-c", default=str(DEFAULT_CASES),
                             help="YAML case file (default: cases.yaml)")
    test_parser.add_argument("--name", "-n", help="Run only the case with this name")
    test_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    test_parser.add_argument("--list", "-l", action="store_true", help="List available cases")
    add_engine_args(test_parser)
    test_parser.set_defaults(func=cmd_test)

    # Match subcommand
    match_parser = subparsers.add_parser("match", help="Match inputs against an expression")
    match_parser.add_argument("--expression", "-e", required=True,
                              help="Expression as inline YAML")
    match_parser.add_argument("--trace", "-t", action="store_true",
                              help="Print every trampoline step to stderr")
    match_parser.add_argument("inputs", nargs="+", help="Input strings to match")
    add_engine_args(match_parser)
    match_parser.set_defaults(func=cmd_match)

    # Bench subcommand
    bench_parser = subparsers.add_parser("bench", help="Run stack-safety benchmarks")
    bench_parser.add_argument("--depth", "-d", type=int, default=100_000,
                              help="Nesting depth of generated expressions (default: 100000)")
    bench_parser.add_argument("--repetitions", "-r", type=int, default=100_000,
                              help="Iterations of the repeated literal (default: 100000)")
    bench_parser.add_argument("--iterations", "-i", type=int, default=5,
                              help="Timed runs per workload (default: 5)")
    bench_parser.add_argument("--output", "-o", help="Save JSON results to file or directory")
    bench_parser.set_defaults(func=cmd_bench)

    return parser


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
