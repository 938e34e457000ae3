"""
Command line interface.

Usage:
    python -m olastark prove program.asm --output proof.json
    python -m olastark prove --example fibonacci --fast --output proof.json
    python -m olastark verify proof.json [--program program.asm] [--fast]
    python -m olastark check --example memory
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from olastark.all_stark import AllStark
from olastark.config import StarkConfig
from olastark.errors import OlaStarkError, VerificationError
from olastark.protocol.proof import AllProof, PublicValues
from olastark.protocol.prover import prove
from olastark.protocol.verifier import verify_proof
from olastark.vm import Program, assemble, execute
from olastark.vm.programs import ALL_PROGRAMS

logger = logging.getLogger(__name__)


def _load_program(path: Optional[str], example: Optional[str]) -> Program:
    if example is not None:
        return assemble(ALL_PROGRAMS[example])
    return assemble(Path(path).read_text())


def _config(args: argparse.Namespace) -> StarkConfig:
    return StarkConfig.fast_testing() if args.fast else StarkConfig.standard()


# --- Commands ---


def cmd_prove(args: argparse.Namespace) -> int:
    program = _load_program(args.program, args.example)
    all_stark = AllStark.default()
    execution = execute(program, args.max_steps)
    public_values = PublicValues.from_execution(execution)
    traces = all_stark.generate_traces(execution, public_values)
    proof = prove(all_stark, _config(args), traces, public_values)

    text = proof.to_json(indent=args.indent)
    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text)
        print(f"Wrote proof: {args.output} ({len(text)} bytes)")
    else:
        print(text)
    print(f"Outputs: {public_values.outputs}", file=sys.stderr)
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    proof = AllProof.from_json(Path(args.proof).read_text())
    expected = None
    if args.program or args.example:
        program = _load_program(args.program, args.example)
        expected = PublicValues.from_execution(execute(program, args.max_steps))
    try:
        verify_proof(AllStark.default(), proof, _config(args), expected)
    except VerificationError as e:
        print(f"REJECTED ({type(e).__name__}): {e}")
        return 1
    print("OK")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    program = _load_program(args.program, args.example)
    all_stark = AllStark.default()
    execution = execute(program, args.max_steps)
    public_values = PublicValues.from_execution(execution)
    traces = all_stark.generate_traces(execution, public_values)
    all_stark.check_traces(traces, public_values)
    for table, rows in traces.items():
        print(f"  {table.name:<18} {len(rows):>6} rows")
    print("Constraints and cross-table lookups hold.")
    return 0


# --- Entry point ---


def _add_program_args(parser: argparse.ArgumentParser, required: bool) -> None:
    group = parser.add_mutually_exclusive_group(required=required)
    group.add_argument("program", nargs="?", help="Path to an assembly file")
    group.add_argument("--example", choices=sorted(ALL_PROGRAMS), help="Use a bundled example program")
    parser.add_argument("--max-steps", type=int, default=None, help="Executor step limit")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="olastark", description="Prove and verify VM executions.")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for info, -vv for debug logs")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("prove", help="Execute a program and write a JSON proof")
    _add_program_args(p, required=True)
    p.add_argument("--output", "-o", help="Output path (stdout when omitted)")
    p.add_argument("--indent", type=int, default=None, help="JSON indentation")
    p.add_argument("--fast", action="store_true", help="Use small testing parameters")
    p.set_defaults(func=cmd_prove)

    v = sub.add_parser("verify", help="Verify a JSON proof")
    v.add_argument("proof", help="Path to the JSON proof")
    v.add_argument("--program", dest="program", help="Expect the public values of this assembly file")
    v.add_argument("--example", choices=sorted(ALL_PROGRAMS), help="Expect the public values of an example")
    v.add_argument("--max-steps", type=int, default=None, help="Executor step limit")
    v.add_argument("--fast", action="store_true", help="Proof was made with testing parameters")
    v.set_defaults(func=cmd_verify)

    c = sub.add_parser("check", help="Run the native constraint and lookup self-check")
    _add_program_args(c, required=True)
    c.set_defaults(func=cmd_check)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    try:
        return args.func(args)
    except (OlaStarkError, OSError) as e:
        logger.debug("command failed", exc_info=True)
        print(f"error: {type(e).__name__}: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
