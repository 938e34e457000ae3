"""Cross-table lookup declarations and the multiset self-check.

A CrossTableLookup states that the filtered tuples projected from its looking
tables, taken together and counted with multiplicity, equal the filtered
tuples of its looked table. Projections are Columns: affine combinations of
row entries.
"""

import json
import logging
from collections import Counter
from dataclasses import dataclass
from hashlib import blake2b
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from olastark.errors import ConfigurationError, CtlCheckError, TraceError
from olastark.primitives.field import GOLDILOCKS_PRIME
from olastark.tables.base import Table

logger = logging.getLogger(__name__)

P = GOLDILOCKS_PRIME


# --- Column selector ---


@dataclass(frozen=True)
class Column:
    """sum(coeff * row[index]) + constant_term."""
    terms: Tuple[Tuple[int, int], ...] = ()
    constant_term: int = 0

    @classmethod
    def single(cls, index: int) -> "Column":
        return cls(terms=((index, 1),))

    @classmethod
    def singles(cls, *indices: int) -> List["Column"]:
        return [cls.single(i) for i in indices]

    @classmethod
    def constant(cls, value: int) -> "Column":
        return cls(constant_term=value % P)

    @classmethod
    def zero(cls) -> "Column":
        return cls.constant(0)

    @classmethod
    def one(cls) -> "Column":
        return cls.constant(1)

    @classmethod
    def linear_combination(cls, terms: Sequence[Tuple[int, int]], constant: int = 0) -> "Column":
        return cls(terms=tuple((i, c % P) for i, c in terms), constant_term=constant % P)

    @classmethod
    def sum(cls, indices: Sequence[int]) -> "Column":
        return cls.linear_combination([(i, 1) for i in indices])

    def eval_row(self, row: Sequence[int]) -> int:
        acc = self.constant_term
        for i, c in self.terms:
            acc += c * int(row[i])
        return acc % P

    def eval(self, values: Sequence, constant: Callable[[int], object]):
        """Evaluate over any representation; constant lifts integers."""
        acc = constant(self.constant_term)
        for i, c in self.terms:
            acc = acc + (values[i] if c == 1 else values[i] * constant(c))
        return acc

    def max_index(self) -> int:
        return max((i for i, _ in self.terms), default=-1)

    def to_descriptor(self) -> list:
        return [[[i, c] for i, c in self.terms], self.constant_term]


@dataclass(frozen=True)
class TableWithColumns:
    """One side of a lookup: a table, its key columns, a filter and a multiplicity.

    A missing filter selects every row. A multiplicity (looked side only) makes
    a selected row stand for that many copies of its tuple.
    """
    table: Table
    columns: Tuple[Column, ...]
    filter_column: Optional[Column] = None
    multiplicity: Optional[Column] = None

    def __post_init__(self):
        object.__setattr__(self, "columns", tuple(self.columns))

    @property
    def arity(self) -> int:
        return len(self.columns)

    def filter_values(self, rows: Sequence[Sequence[int]]) -> List[int]:
        """Filter per row; anything other than 0 or 1 is a malformed trace."""
        if self.filter_column is None:
            return [1] * len(rows)
        out = []
        for i, row in enumerate(rows):
            f = self.filter_column.eval_row(row)
            if f not in (0, 1):
                raise TraceError(f"{self.table.name}: filter evaluates to {f} on row {i}")
            out.append(f)
        return out

    def selected(self, rows: Sequence[Sequence[int]]) -> Iterator[Tuple[Tuple[int, ...], int]]:
        """Yield (tuple, count) for each selected row."""
        for row, f in zip(rows, self.filter_values(rows)):
            if f == 0:
                continue
            count = 1 if self.multiplicity is None else self.multiplicity.eval_row(row)
            yield tuple(c.eval_row(row) for c in self.columns), count

    def to_descriptor(self) -> dict:
        return {
            "table": int(self.table),
            "columns": [c.to_descriptor() for c in self.columns],
            "filter": None if self.filter_column is None else self.filter_column.to_descriptor(),
            "multiplicity": None if self.multiplicity is None else self.multiplicity.to_descriptor(),
        }


# --- Cross-table lookup ---


class CrossTableLookup:
    """Multiset equality between looking sides and a single looked side."""

    def __init__(
        self,
        name: str,
        looking_tables: Sequence[TableWithColumns],
        looked_table: TableWithColumns,
        default: Optional[Sequence[int]] = None,
    ):
        if not looking_tables:
            raise ConfigurationError(f"{name}: at least one looking table is required")
        if not isinstance(looked_table, TableWithColumns):
            raise ConfigurationError(f"{name}: exactly one looked table is required")
        arity = looked_table.arity
        for side in looking_tables:
            if side.arity != arity:
                raise ConfigurationError(
                    f"{name}: looking table {side.table.name} has arity {side.arity}, looked has {arity}"
                )
            if side.multiplicity is not None:
                raise ConfigurationError(f"{name}: multiplicities are only allowed on the looked side")
        if default is not None:
            if len(default) != arity:
                raise ConfigurationError(f"{name}: default row has arity {len(default)}, expected {arity}")
            if all(s.filter_column is not None for s in looking_tables) and looked_table.filter_column is not None:
                raise ConfigurationError(f"{name}: a default row needs at least one unfiltered side")
            if looked_table.multiplicity is not None:
                raise ConfigurationError(f"{name}: default rows cannot be combined with multiplicities")

        self.name = name
        self.looking_tables = list(looking_tables)
        self.looked_table = looked_table
        self.default = None if default is None else [v % P for v in default]

    @property
    def arity(self) -> int:
        return self.looked_table.arity

    def tables(self) -> set:
        return {s.table for s in self.looking_tables} | {self.looked_table.table}

    def sides(self) -> List[Tuple[TableWithColumns, bool]]:
        """(side, is_looked) pairs in canonical order: looking sides first."""
        return [(s, False) for s in self.looking_tables] + [(self.looked_table, True)]

    def default_excess(self, heights: Mapping[Table, int]) -> int:
        """How many default tuples the looking multiset holds beyond the looked one."""
        if self.default is None:
            return 0
        excess = sum(heights[s.table] for s in self.looking_tables if s.filter_column is None)
        if self.looked_table.filter_column is None:
            excess -= heights[self.looked_table.table]
        return excess

    def descriptor(self) -> dict:
        return {
            "name": self.name,
            "looking": [s.to_descriptor() for s in self.looking_tables],
            "looked": self.looked_table.to_descriptor(),
            "default": self.default,
        }

    def __repr__(self) -> str:
        looking = ", ".join(s.table.name for s in self.looking_tables)
        return f"CrossTableLookup({self.name}: [{looking}] -> {self.looked_table.table.name})"


def check_ctls(cross_table_lookups: Sequence[CrossTableLookup], traces: Mapping[Table, Sequence[Sequence[int]]]) -> None:
    """Check every lookup's multiset equality directly on integer traces.

    Raises CtlCheckError naming the lookup and the side that disagrees, or
    TraceError when a filter is not boolean.
    """
    for ctl in cross_table_lookups:
        looking: Counter = Counter()
        for side in ctl.looking_tables:
            for tup, count in side.selected(traces[side.table]):
                looking[tup] += count

        looked: Counter = Counter()
        for tup, count in ctl.looked_table.selected(traces[ctl.looked_table.table]):
            looked[tup] += count

        excess = ctl.default_excess({t: len(traces[t]) for t in ctl.tables()})
        if excess > 0:
            looked[tuple(ctl.default)] += excess
        elif excess < 0:
            looking[tuple(ctl.default)] += -excess

        if looking != looked:
            missing = list((looking - looked).elements())
            extra = list((looked - looking).elements())
            side = "looking" if missing else "looked"
            raise CtlCheckError(ctl.name, side, missing=missing, extra=extra)
        logger.debug("%s: %d tuples match", ctl.name, sum(looked.values()))


def descriptors(cross_table_lookups: Sequence[CrossTableLookup]) -> List[Dict]:
    return [ctl.descriptor() for ctl in cross_table_lookups]


def descriptor_digest(descriptor_list: Sequence[Dict]) -> bytes:
    """Canonical hash of a descriptor list, absorbed by the transcript."""
    encoded = json.dumps(list(descriptor_list), sort_keys=True, separators=(",", ":")).encode()
    return blake2b(encoded, digest_size=32, person=b"olastark-ctl").digest()
