"""Table identifiers and the per-table capability every trace table implements."""

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import List, Optional, Sequence

from olastark.constraints.base import ConstraintConsumer, EvaluationFrame, NativeConstraintConsumer, row_frame
from olastark.errors import TraceError

# Smallest padded height of any table
MIN_ROWS = 4

Row = List[int]


class Table(IntEnum):
    """Closed set of table identifiers, in the fixed order used by proofs."""
    CPU = 0
    MEMORY = 1
    BITWISE = 2
    CMP = 3
    RANGE_CHECK = 4
    BITWISE_FIXED = 5
    RANGE_CHECK_FIXED = 6
    PROGRAM = 7


class TableStark(ABC):
    """Capability of one trace table.

    Rows seen by constraints and lookups are the concatenation of the
    preprocessed (constant) columns followed by the witness columns; column
    index constants in each table module follow that layout.
    """

    name: str = "table"
    num_columns: int = 0
    num_constant_columns: int = 0

    @property
    def width(self) -> int:
        return self.num_constant_columns + self.num_columns

    @abstractmethod
    def generate_trace(self, execution, public_values) -> List[Row]:
        """Witness rows (constants excluded), padded to a power of two."""

    def generate_constants(self, public_values) -> Optional[List[Row]]:
        """Preprocessed rows derived from public data only, or None."""
        return None

    def validate_public_values(self, public_values) -> None:
        """Raise ValueError if public_values cannot describe this table."""

    @abstractmethod
    def eval_constraints(self, frame: EvaluationFrame, cc: ConstraintConsumer, public_values) -> None:
        """Emit every constraint of the table over (local, next) rows."""

    def permutation_batch_hint(self, config) -> int:
        """Lookup terms per helper column this table can afford."""
        return config.batch_size


# --- Helpers ---


def padded_height(n: int) -> int:
    height = MIN_ROWS
    while height < n:
        height <<= 1
    return height


def pad_rows(rows: List[Row], pad_row: Row, height: Optional[int] = None) -> List[Row]:
    """Append copies of pad_row up to the next power of two (at least MIN_ROWS)."""
    target = height if height is not None else padded_height(len(rows))
    if target < len(rows):
        raise TraceError(f"cannot pad {len(rows)} rows down to {target}")
    return rows + [list(pad_row) for _ in range(target - len(rows))]


def join_rows(constants: Optional[Sequence[Row]], witness: Sequence[Row]) -> List[Row]:
    if constants is None:
        return [list(w) for w in witness]
    if len(constants) != len(witness):
        raise TraceError(f"constant height {len(constants)} != witness height {len(witness)}")
    return [list(c) + list(w) for c, w in zip(constants, witness)]


def validate_shape(stark: TableStark, rows: Sequence[Row]) -> None:
    n = len(rows)
    if n < 2 or n & (n - 1):
        raise TraceError(f"{stark.name}: height {n} is not a power of two >= 2")
    for i, row in enumerate(rows):
        if len(row) != stark.width:
            raise TraceError(f"{stark.name}: row {i} has width {len(row)}, expected {stark.width}")


def check_constraints(stark: TableStark, rows: Sequence[Row], public_values) -> None:
    """Evaluate every constraint natively on every row; raise on the first bad row."""
    validate_shape(stark, rows)
    try:
        stark.validate_public_values(public_values)
    except ValueError as e:
        raise TraceError(f"{stark.name}: {e}") from e
    n = len(rows)
    for i in range(n):
        cc = NativeConstraintConsumer(is_first=(i == 0), is_last=(i == n - 1))
        stark.eval_constraints(row_frame(rows, i), cc, public_values)
        if cc.failures:
            raise TraceError(f"{stark.name}: constraints {cc.failures[:8]} fail on row {i}")
