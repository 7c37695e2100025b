from __future__ import annotations

import pytest

from batchimport.domain.importing.scheduler import StepScheduler
from batchimport.domain.importing.state import ImportState, offset_for_step
from batchimport.domain.transform.source_record import SourceRecord


def _rows(count: int) -> list[SourceRecord]:
    return [
        SourceRecord(line_no=idx + 2, record_id=f"line:{idx + 2}", values={"n": str(idx)})
        for idx in range(count)
    ]


def _indexes(records: list[SourceRecord]) -> list[int]:
    return [int(r.values["n"]) for r in records]


def test_per_step_five_imports_four_rows_per_call():
    rows = _rows(20)
    scheduler = StepScheduler(ImportState(per_step=5), rows)
    seen: list[SourceRecord] = []

    assert scheduler.process_step(seen.append) is True
    assert _indexes(seen) == [0, 1, 2, 3]
    assert scheduler.state.current_step == 2


def test_batches_keep_historical_gaps():
    rows = _rows(20)
    scheduler = StepScheduler(ImportState(per_step=5), rows)

    assert _indexes(scheduler.select_batch(1)) == [0, 1, 2, 3]
    assert _indexes(scheduler.select_batch(2)) == [4, 5, 6, 7]
    assert _indexes(scheduler.select_batch(3)) == [9, 10, 11, 12]
    assert _indexes(scheduler.select_batch(4)) == [14, 15, 16, 17]


def test_select_batch_is_pure():
    rows = _rows(12)
    scheduler = StepScheduler(ImportState(per_step=5), rows)

    first = scheduler.select_batch(2)
    second = scheduler.select_batch(2)

    assert first == second
    assert scheduler.state.current_step == 1
    assert scheduler.state.rows_processed == 0


def test_done_when_offset_exceeds_total_rows():
    rows = _rows(12)
    state = ImportState(per_step=5)
    scheduler = StepScheduler(state, rows)
    handled: list[SourceRecord] = []

    results = []
    while True:
        more = scheduler.process_step(handled.append)
        results.append(more)
        if not more:
            break

    # offset(step=3) = 10 <= 12, offset(step=4) = 15 > 12
    assert results == [True, True, True, False]
    assert state.done is True
    assert _indexes(handled) == [0, 1, 2, 3, 4, 5, 6, 7, 9, 10, 11]
    assert state.rows_processed == 11
    assert scheduler.process_step(handled.append) is False
    assert state.current_step == 4


def test_offset_equal_to_total_is_not_done():
    rows = _rows(10)
    state = ImportState(per_step=5, current_step=3)
    scheduler = StepScheduler(state, rows)

    assert scheduler.process_step(lambda _r: None) is True
    assert state.done is False


def test_empty_input_never_progresses():
    state = ImportState(per_step=5)
    scheduler = StepScheduler(state, [])

    assert scheduler.process_step(lambda _r: None) is False
    assert state.current_step == 1
    assert scheduler.get_percentage_complete() == 0.0


def test_percentage_uses_last_processed_step_over_row_count():
    rows = _rows(20)
    scheduler = StepScheduler(ImportState(per_step=5), rows)
    assert scheduler.get_percentage_complete() == 0.0

    scheduler.process_step(lambda _r: None)
    assert scheduler.last_processed_step == 1
    assert scheduler.get_percentage_complete() == pytest.approx(5.0)

    scheduler.process_step(lambda _r: None)
    assert scheduler.get_percentage_complete() == pytest.approx(10.0)

    small = StepScheduler(ImportState(per_step=5, current_step=5), _rows(3))
    assert small.get_percentage_complete() == 100.0


def test_percentage_does_not_move_on_finishing_call():
    rows = _rows(12)
    scheduler = StepScheduler(ImportState(per_step=5), rows)
    while scheduler.process_step(lambda _r: None):
        pass

    # three steps imported rows, the fourth call only marked the import done
    assert scheduler.get_percentage_complete() == pytest.approx(25.0)


def test_offset_for_step():
    assert offset_for_step(5, 1) == 0
    assert offset_for_step(5, 2) == 5
    assert offset_for_step(5, 3) == 10


@pytest.mark.parametrize("per_step", [0, 1])
def test_per_step_below_two_rejected(per_step):
    with pytest.raises(ValueError):
        ImportState(per_step=per_step)


def test_state_status():
    assert ImportState(per_step=5).status == "not-started"
    assert ImportState(per_step=5, current_step=2).status == "in-progress"
    assert ImportState(per_step=5, current_step=2, done=True).status == "done"
