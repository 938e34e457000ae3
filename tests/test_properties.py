"""Property tests over generated straight-line programs."""

from hypothesis import HealthCheck, given, settings

from olastark.all_stark import AllStark
from olastark.cross_table_lookup import check_ctls
from olastark.protocol.proof import PublicValues
from olastark.tables import cpu
from olastark.tables.base import Table
from olastark.vm import assemble, execute

from tests.strategies import programs

ALL_STARK = AllStark.default()

PROPERTY_SETTINGS = settings(max_examples=25, deadline=None, suppress_health_check=[HealthCheck.too_slow])


def traces_of(program):
    execution = execute(program)
    public_values = PublicValues.from_execution(execution)
    return execution, public_values, ALL_STARK.generate_traces(execution, public_values)


@PROPERTY_SETTINGS
@given(programs())
def test_generated_programs_satisfy_every_table(program) -> None:
    _, public_values, traces = traces_of(program)
    ALL_STARK.check_traces(traces, public_values)


@PROPERTY_SETTINGS
@given(programs())
def test_last_cpu_row_holds_the_outputs(program) -> None:
    execution, _, traces = traces_of(program)
    last = traces[Table.CPU][-1]
    assert [last[c] for c in cpu.COL_REGS] == execution.outputs


@PROPERTY_SETTINGS
@given(programs())
def test_extra_padding_keeps_lookups_balanced(program) -> None:
    _, public_values, traces = traces_of(program)
    width = ALL_STARK.starks[Table.RANGE_CHECK].width
    height = len(traces[Table.RANGE_CHECK])
    traces[Table.RANGE_CHECK] = traces[Table.RANGE_CHECK] + [[0] * width for _ in range(height)]
    check_ctls(ALL_STARK.cross_table_lookups, traces)
    ALL_STARK.check_traces(traces, public_values)


@PROPERTY_SETTINGS
@given(programs(max_instructions=12))
def test_listing_survives_reassembly(program) -> None:
    assert assemble(str(program)).listing() == program.listing()
