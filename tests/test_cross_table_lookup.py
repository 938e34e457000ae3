"""Tests for lookup declarations and the native multiset check."""

import pytest

from olastark.all_stark import ctl_cpu_memory, default_cross_table_lookups
from olastark.cross_table_lookup import (
    Column,
    CrossTableLookup,
    TableWithColumns,
    check_ctls,
    descriptor_digest,
    descriptors,
)
from olastark.errors import ConfigurationError, CtlCheckError, TraceError
from olastark.primitives.field import FF, GOLDILOCKS_PRIME
from olastark.tables import cpu, memory
from olastark.tables.base import Table

P = GOLDILOCKS_PRIME


def side(table: Table, *cols: int, filter_col=None, multiplicity=None) -> TableWithColumns:
    return TableWithColumns(
        table,
        Column.singles(*cols),
        None if filter_col is None else Column.single(filter_col),
        None if multiplicity is None else Column.single(multiplicity),
    )


class TestColumn:

    def test_eval_row(self) -> None:
        assert Column.single(1).eval_row([4, 9]) == 9
        assert Column.constant(-1).eval_row([]) == P - 1
        assert Column.linear_combination([(0, 2), (1, 3)], 1).eval_row([4, 5]) == 24
        assert Column.linear_combination([(0, 1)], -2).eval_row([1]) == P - 1
        assert Column.sum([0, 1, 2]).eval_row([1, 1, 1]) == 3

    def test_eval_over_field(self) -> None:
        """eval agrees with eval_row when values are field elements."""
        column = Column.linear_combination([(0, 7), (2, 1)], 5)
        row = [3, 100, 11]
        values = [FF(v) for v in row]
        assert column.eval(values, FF) == FF(column.eval_row(row))

    def test_max_index(self) -> None:
        assert Column.one().max_index() == -1
        assert Column.sum([3, 8, 1]).max_index() == 8


class TestTableWithColumns:

    def test_filter_must_be_boolean(self) -> None:
        s = side(Table.CPU, 0, filter_col=1)
        assert s.filter_values([[7, 0], [8, 1]]) == [0, 1]
        with pytest.raises(TraceError):
            s.filter_values([[7, 2]])

    def test_selected_applies_filter_and_multiplicity(self) -> None:
        s = side(Table.PROGRAM, 0, filter_col=1, multiplicity=2)
        rows = [[10, 1, 3], [11, 0, 5], [12, 1, 0]]
        assert list(s.selected(rows)) == [((10,), 3), ((12,), 0)]

    def test_unfiltered_selects_every_row(self) -> None:
        s = side(Table.CPU, 0)
        assert [t for t, _ in s.selected([[1], [2]])] == [(1,), (2,)]


class TestCrossTableLookupConfiguration:

    def test_needs_a_looking_table(self) -> None:
        with pytest.raises(ConfigurationError):
            CrossTableLookup("x", [], side(Table.MEMORY, 0))

    def test_needs_exactly_one_looked_table(self) -> None:
        with pytest.raises(ConfigurationError):
            CrossTableLookup("x", [side(Table.CPU, 0)], [side(Table.MEMORY, 0), side(Table.CMP, 0)])

    def test_arity_mismatch(self) -> None:
        with pytest.raises(ConfigurationError):
            CrossTableLookup("x", [side(Table.CPU, 0, 1)], side(Table.MEMORY, 0))

    def test_multiplicity_only_on_looked_side(self) -> None:
        with pytest.raises(ConfigurationError):
            CrossTableLookup("x", [side(Table.CPU, 0, multiplicity=1)], side(Table.MEMORY, 0))

    def test_default_row_arity(self) -> None:
        with pytest.raises(ConfigurationError):
            CrossTableLookup("x", [side(Table.CPU, 0)], side(Table.MEMORY, 0), default=[1, 2])

    def test_default_row_needs_unfiltered_side(self) -> None:
        with pytest.raises(ConfigurationError):
            CrossTableLookup(
                "x", [side(Table.CPU, 0, filter_col=1)], side(Table.MEMORY, 0, filter_col=1), default=[0]
            )

    def test_default_row_excludes_multiplicity(self) -> None:
        with pytest.raises(ConfigurationError):
            CrossTableLookup("x", [side(Table.CPU, 0)], side(Table.MEMORY, 0, multiplicity=1), default=[0])

    def test_default_excess(self) -> None:
        """Unfiltered sides count every row; filtered sides contribute nothing."""
        ctl = CrossTableLookup(
            "x",
            [side(Table.CPU, 0), side(Table.CMP, 0), side(Table.BITWISE, 0, filter_col=1)],
            side(Table.MEMORY, 0),
            default=[0],
        )
        heights = {Table.CPU: 8, Table.CMP: 4, Table.BITWISE: 16, Table.MEMORY: 4}
        assert ctl.default_excess(heights) == 8
        no_default = CrossTableLookup("y", [side(Table.CPU, 0)], side(Table.MEMORY, 0))
        assert no_default.default_excess(heights) == 0

    def test_descriptor_digest_tracks_changes(self) -> None:
        ctls = default_cross_table_lookups()
        digest = descriptor_digest(descriptors(ctls))
        assert descriptor_digest(descriptors(default_cross_table_lookups())) == digest
        assert descriptor_digest(descriptors(ctls[:-1])) != digest
        assert [d["name"] for d in descriptors(ctls)] == [c.name for c in ctls]


class TestCheckCtls:

    def test_padding_rows_are_filtered_out(self, add_mul_run) -> None:
        """A program without memory traffic still satisfies the memory lookup."""
        traces = add_mul_run.traces
        assert len(traces[Table.CPU]) == 8
        assert all(row[memory.COL_IS_REAL] == 0 for row in traces[Table.MEMORY])
        check_ctls([ctl_cpu_memory()], traces)

    def test_all_default_lookups_hold(self, memory_run) -> None:
        check_ctls(default_cross_table_lookups(), memory_run.traces)

    @pytest.mark.parametrize("row", [0, 1])
    def test_dropped_memory_row(self, memory_traces, row: int) -> None:
        memory_traces[Table.MEMORY][row][memory.COL_IS_REAL] = 0
        with pytest.raises(CtlCheckError) as info:
            check_ctls([ctl_cpu_memory()], memory_traces)
        assert info.value.ctl_name == "cpu_memory"
        assert info.value.side == "looking"
        assert len(info.value.missing) == 1

    def test_altered_store_value(self, memory_traces) -> None:
        store_row = next(r for r in memory_traces[Table.CPU] if r[cpu.COL_S_MSTORE] == 1)
        store_row[cpu.COL_OP0] += 1
        with pytest.raises(CtlCheckError) as info:
            check_ctls([ctl_cpu_memory()], memory_traces)
        assert info.value.missing and info.value.extra

    def test_extra_looked_tuple(self, memory_traces) -> None:
        """A selected memory row no CPU row asks for is reported on the looked side."""
        pad = memory_traces[Table.MEMORY][-1]
        assert pad[memory.COL_IS_REAL] == 0
        pad[memory.COL_IS_REAL] = 1
        with pytest.raises(CtlCheckError) as info:
            check_ctls([ctl_cpu_memory()], memory_traces)
        assert info.value.side == "looked"
        assert info.value.missing == []


class TestDefaultRows:
    """Lookups whose looked side is empty balance through the default tuple."""

    @staticmethod
    def _ctl(default):
        return CrossTableLookup(
            "constant_lookup", [side(Table.CPU, 0)], side(Table.MEMORY, 0, filter_col=1), default=default
        )

    def test_empty_looked_side_balances(self) -> None:
        traces = {Table.CPU: [[5]] * 4, Table.MEMORY: [[0, 0]] * 4}
        check_ctls([self._ctl([5])], traces)

    def test_without_default_the_lookup_fails(self) -> None:
        traces = {Table.CPU: [[5]] * 4, Table.MEMORY: [[0, 0]] * 4}
        with pytest.raises(CtlCheckError):
            check_ctls([self._ctl(None)], traces)

    def test_wrong_default_fails(self) -> None:
        traces = {Table.CPU: [[5]] * 4, Table.MEMORY: [[0, 0]] * 4}
        with pytest.raises(CtlCheckError):
            check_ctls([self._ctl([6])], traces)

    def test_selected_rows_on_a_filtered_looked_side_are_not_offset(self) -> None:
        """With a filtered looked side every looking row is taken as a default row."""
        traces = {Table.CPU: [[9], [5], [5], [5]], Table.MEMORY: [[9, 1], [0, 0], [0, 0], [0, 0]]}
        with pytest.raises(CtlCheckError):
            check_ctls([self._ctl([5])], traces)

    def test_padding_rows_carry_the_default(self) -> None:
        """Two unfiltered looking tables against one unfiltered looked table."""
        ctl = CrossTableLookup(
            "padded", [side(Table.CPU, 0), side(Table.CMP, 0)], side(Table.MEMORY, 0), default=[5]
        )
        traces = {
            Table.CPU: [[9], [5], [5], [5]],
            Table.CMP: [[7], [5], [5], [5]],
            Table.MEMORY: [[9], [7], [5], [5]],
        }
        check_ctls([ctl], traces)
        traces[Table.MEMORY][3] = [8]
        with pytest.raises(CtlCheckError):
            check_ctls([ctl], traces)
