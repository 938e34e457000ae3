"""
Pytest configuration for the olastark test suite.

Proving is slow in pure Python, so executions and proofs used by several test
modules are built once per session. Tests that mutate traces or proofs work on
copies (copy.deepcopy, or a JSON round trip for proofs).
"""

import copy
from typing import Dict, List, NamedTuple

import pytest

from olastark.all_stark import AllStark
from olastark.config import StarkConfig
from olastark.protocol.proof import AllProof, PublicValues
from olastark.protocol.prover import prove
from olastark.tables.base import Row, Table
from olastark.vm import ExecutionTrace, assemble, execute
from olastark.vm.programs import ADD_MUL, MEMORY


class Run(NamedTuple):
    execution: ExecutionTrace
    public_values: PublicValues
    traces: Dict[Table, List[Row]]


def run_program(source: str) -> Run:
    """Assemble, execute and generate the traces of every default table."""
    execution = execute(assemble(source))
    public_values = PublicValues.from_execution(execution)
    traces = AllStark.default().generate_traces(execution, public_values)
    return Run(execution, public_values, traces)


def copy_proof(proof: AllProof) -> AllProof:
    return AllProof.from_json(proof.to_json())


@pytest.fixture(scope="session")
def config() -> StarkConfig:
    return StarkConfig.fast_testing()


@pytest.fixture(scope="session")
def all_stark() -> AllStark:
    return AllStark.default()


@pytest.fixture(scope="session")
def add_mul_run() -> Run:
    return run_program(ADD_MUL)


@pytest.fixture(scope="session")
def memory_run() -> Run:
    return run_program(MEMORY)


@pytest.fixture
def memory_traces(memory_run: Run) -> Dict[Table, List[Row]]:
    """Private copy of the memory program traces, safe to mutate."""
    return copy.deepcopy(memory_run.traces)


@pytest.fixture(scope="session")
def memory_proof(all_stark: AllStark, config: StarkConfig, memory_run: Run) -> AllProof:
    return prove(all_stark, config, memory_run.traces, memory_run.public_values)
