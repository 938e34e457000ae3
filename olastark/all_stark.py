"""Table registry: the active tables, their lookups and per-table metadata.

AllStark is the single declarative list of what a proof covers. Construction
checks that every lookup only references active tables and only reads
columns those tables have, so an inconsistent registry never reaches the
prover. Per-table metadata is a mapping keyed by Table and validated to
cover exactly the active tables.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from olastark.config import StarkConfig
from olastark.cross_table_lookup import CrossTableLookup, TableWithColumns, check_ctls, descriptors
from olastark.errors import ConfigurationError
from olastark.lookup import CtlGroup, ctl_groups, num_ctl_columns
from olastark.tables import bitwise, cmp, cpu, fixed, memory, program, rangecheck
from olastark.tables.base import Row, Table, TableStark, check_constraints, join_rows, validate_shape

logger = logging.getLogger(__name__)


# --- Default lookups ---


def ctl_cpu_memory() -> CrossTableLookup:
    looking = [
        TableWithColumns(Table.CPU, cpu.ctl_data_cpu_mem_store(), cpu.ctl_filter_cpu_mem_store()),
        TableWithColumns(Table.CPU, cpu.ctl_data_cpu_mem_load(), cpu.ctl_filter_cpu_mem_load()),
        TableWithColumns(Table.CPU, cpu.ctl_data_cpu_mem_call_ret_pc(), cpu.ctl_filter_cpu_mem_call_ret()),
        TableWithColumns(Table.CPU, cpu.ctl_data_cpu_mem_call_ret_fp(), cpu.ctl_filter_cpu_mem_call_ret()),
    ]
    looked = TableWithColumns(Table.MEMORY, memory.ctl_data(), memory.ctl_filter())
    return CrossTableLookup("cpu_memory", looking, looked)


def ctl_cpu_bitwise() -> CrossTableLookup:
    looking = [TableWithColumns(Table.CPU, cpu.ctl_data_with_bitwise(), cpu.ctl_filter_with_bitwise())]
    looked = TableWithColumns(Table.BITWISE, bitwise.ctl_data(), bitwise.ctl_filter())
    return CrossTableLookup("cpu_bitwise", looking, looked)


def ctl_cpu_cmp() -> CrossTableLookup:
    looking = [TableWithColumns(Table.CPU, cpu.ctl_data_with_cmp(), cpu.ctl_filter_with_cmp())]
    looked = TableWithColumns(Table.CMP, cmp.ctl_data(), cmp.ctl_filter())
    return CrossTableLookup("cpu_cmp", looking, looked)


def ctl_rangecheck() -> CrossTableLookup:
    looking = [
        TableWithColumns(Table.CPU, cpu.ctl_data_with_rangecheck(), cpu.ctl_filter_with_rangecheck()),
        *[
            TableWithColumns(Table.CMP, cmp.ctl_data_with_rangecheck(col), cmp.ctl_filter_with_rangecheck())
            for col in cmp.RANGE_CHECKED_COLUMNS
        ],
        TableWithColumns(Table.MEMORY, memory.ctl_data_with_rangecheck(), memory.ctl_filter_with_rangecheck()),
    ]
    looked = TableWithColumns(Table.RANGE_CHECK, rangecheck.ctl_data(), rangecheck.ctl_filter())
    return CrossTableLookup("rangecheck", looking, looked)


def ctl_cpu_program() -> CrossTableLookup:
    looking = [TableWithColumns(Table.CPU, cpu.ctl_data_with_program(), cpu.ctl_filter_with_program())]
    looked = TableWithColumns(
        Table.PROGRAM, program.ctl_data(), program.ctl_filter(), multiplicity=program.ctl_multiplicity()
    )
    return CrossTableLookup("cpu_program", looking, looked)


def ctl_bitwise_fixed() -> CrossTableLookup:
    looking = [
        TableWithColumns(Table.BITWISE, bitwise.ctl_data_limb(i), bitwise.ctl_filter())
        for i in range(bitwise.NUM_LIMBS)
    ]
    looked = TableWithColumns(
        Table.BITWISE_FIXED,
        fixed.ctl_data_bitwise_fixed(),
        multiplicity=fixed.ctl_multiplicity_bitwise_fixed(),
    )
    return CrossTableLookup("bitwise_fixed", looking, looked)


def ctl_rangecheck_fixed() -> CrossTableLookup:
    looking = [
        TableWithColumns(Table.RANGE_CHECK, rangecheck.ctl_data_limb(i), rangecheck.ctl_filter())
        for i in range(rangecheck.NUM_LIMBS)
    ]
    looked = TableWithColumns(
        Table.RANGE_CHECK_FIXED,
        fixed.ctl_data_rangecheck_fixed(),
        multiplicity=fixed.ctl_multiplicity_rangecheck_fixed(),
    )
    return CrossTableLookup("rangecheck_fixed", looking, looked)


def default_cross_table_lookups() -> List[CrossTableLookup]:
    return [
        ctl_cpu_memory(),
        ctl_cpu_bitwise(),
        ctl_cpu_cmp(),
        ctl_rangecheck(),
        ctl_cpu_program(),
        ctl_bitwise_fixed(),
        ctl_rangecheck_fixed(),
    ]


def default_starks() -> Dict[Table, TableStark]:
    return {
        Table.CPU: cpu.CpuStark(),
        Table.MEMORY: memory.MemoryStark(),
        Table.BITWISE: bitwise.BitwiseStark(),
        Table.CMP: cmp.CmpStark(),
        Table.RANGE_CHECK: rangecheck.RangeCheckStark(),
        Table.BITWISE_FIXED: fixed.BitwiseFixedStark(),
        Table.RANGE_CHECK_FIXED: fixed.RangecheckFixedStark(),
        Table.PROGRAM: program.ProgramStark(),
    }


# --- Registry ---


class AllStark:
    """Active tables plus the lookups connecting them.

    Args:
        starks: Mapping from Table to its TableStark.
        cross_table_lookups: Every lookup the proof enforces.
        batch_sizes: Optional per-table override of the lookup batch size.
            Must name exactly the active tables.

    Raises:
        ConfigurationError: A lookup references an inactive table or a column
            outside its table, or batch_sizes does not match the active tables.
    """

    def __init__(
        self,
        starks: Mapping[Table, TableStark],
        cross_table_lookups: Sequence[CrossTableLookup],
        batch_sizes: Optional[Mapping[Table, int]] = None,
    ):
        if not starks:
            raise ConfigurationError("at least one table is required")
        self.starks: Dict[Table, TableStark] = {Table(t): s for t, s in sorted(starks.items())}
        self.cross_table_lookups = list(cross_table_lookups)
        self._batch_sizes = None if batch_sizes is None else self._checked(batch_sizes, "batch_sizes")

        names = [ctl.name for ctl in self.cross_table_lookups]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"duplicate lookup names in {names}")
        for ctl in self.cross_table_lookups:
            for side, _ in ctl.sides():
                if side.table not in self.starks:
                    raise ConfigurationError(f"{ctl.name}: table {side.table.name} is not active")
                width = self.starks[side.table].width
                used = [c.max_index() for c in side.columns]
                for extra in (side.filter_column, side.multiplicity):
                    if extra is not None:
                        used.append(extra.max_index())
                if max(used, default=-1) >= width:
                    raise ConfigurationError(
                        f"{ctl.name}: column {max(used)} outside {side.table.name} (width {width})"
                    )
        logger.debug(
            "registry: %d tables, %d lookups", len(self.starks), len(self.cross_table_lookups)
        )

    @classmethod
    def default(cls) -> "AllStark":
        return cls(default_starks(), default_cross_table_lookups())

    @property
    def tables(self) -> List[Table]:
        return list(self.starks)

    def _checked(self, mapping: Mapping[Table, int], what: str) -> Dict[Table, int]:
        keys = {Table(t) for t in mapping}
        active = set(self.starks)
        if keys != active:
            missing = sorted(t.name for t in active - keys)
            unknown = sorted(t.name for t in keys - active)
            raise ConfigurationError(f"{what}: missing entries {missing}, entries for inactive tables {unknown}")
        return {t: mapping[t] for t in self.tables}

    # --- Per-table metadata ---

    def permutation_batch_sizes(self, config: StarkConfig) -> Dict[Table, int]:
        """Lookup terms per helper column, per table, bounded by the degree bound."""
        if self._batch_sizes is not None:
            sizes = dict(self._batch_sizes)
        else:
            sizes = {t: s.permutation_batch_hint(config) for t, s in self.starks.items()}
        limit = config.max_constraint_degree - 1
        for table, size in sizes.items():
            if not 1 <= size <= limit:
                raise ConfigurationError(f"{table.name}: batch size {size} outside [1, {limit}]")
        return self._checked(sizes, "permutation_batch_sizes")

    def ctl_groups(self, config: StarkConfig) -> Dict[Table, List[CtlGroup]]:
        sizes = self.permutation_batch_sizes(config)
        return {
            t: ctl_groups(self.cross_table_lookups, t, config.num_challenges, sizes[t])
            for t in self.tables
        }

    def nums_permutation_zs(self, config: StarkConfig) -> Dict[Table, int]:
        """Running-sum columns per table."""
        return self._checked({t: len(g) for t, g in self.ctl_groups(config).items()}, "nums_permutation_zs")

    def nums_ctl_columns(self, config: StarkConfig) -> Dict[Table, int]:
        """Helper plus running-sum columns per table."""
        return self._checked(
            {t: num_ctl_columns(g) for t, g in self.ctl_groups(config).items()}, "nums_ctl_columns"
        )

    def ctl_descriptors(self) -> List[dict]:
        return descriptors(self.cross_table_lookups)

    # --- Traces ---

    def generate_traces(self, execution, public_values) -> Dict[Table, List[Row]]:
        """Full rows (constants then witness) of every active table."""
        traces = {}
        for table, stark in self.starks.items():
            witness = stark.generate_trace(execution, public_values)
            rows = join_rows(stark.generate_constants(public_values), witness)
            validate_shape(stark, rows)
            traces[table] = rows
            logger.debug("%s: %d rows", stark.name, len(rows))
        return traces

    def check_traces(self, traces: Mapping[Table, Sequence[Row]], public_values) -> None:
        """Native constraint and lookup self-check; raises TraceError on the first problem."""
        for table, stark in self.starks.items():
            check_constraints(stark, traces[table], public_values)
        check_ctls(self.cross_table_lookups, traces)
