"""olastark - multi-table STARK with cross-table lookups for a small register VM."""

from olastark.all_stark import AllStark
from olastark.config import StarkConfig
from olastark.cross_table_lookup import Column, CrossTableLookup, TableWithColumns, check_ctls
from olastark.errors import (
    ConfigurationError,
    ConstraintViolationError,
    CtlCheckError,
    CtlVerificationError,
    DescriptorMismatchError,
    ExecutionError,
    MalformedProofError,
    OlaStarkError,
    OpeningProofError,
    PublicValuesMismatchError,
    TraceError,
    VerificationError,
)
from olastark.protocol import AllProof, PublicValues, prove, prove_program, verify, verify_proof
from olastark.tables.base import Table, TableStark

__version__ = "0.1.0"

__all__ = [
    "AllStark",
    "StarkConfig",
    "Column",
    "CrossTableLookup",
    "TableWithColumns",
    "check_ctls",
    "Table",
    "TableStark",
    "AllProof",
    "PublicValues",
    "prove",
    "prove_program",
    "verify",
    "verify_proof",
    "OlaStarkError",
    "ConfigurationError",
    "ExecutionError",
    "TraceError",
    "CtlCheckError",
    "VerificationError",
    "ConstraintViolationError",
    "CtlVerificationError",
    "OpeningProofError",
    "PublicValuesMismatchError",
    "DescriptorMismatchError",
    "MalformedProofError",
]
