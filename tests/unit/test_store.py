"""Tests for the in-memory execution store."""

import logging
import threading

from flowframe.execution import (
    ExecutionStatus,
    ExecutionStore,
    FlowExecution,
    StepExecution,
    StepStatus,
)


def _execution(flow_id, status=ExecutionStatus.RUNNING, **steps):
    return FlowExecution(
        flow_id=flow_id,
        status=status,
        steps={sid: StepExecution(step_id=sid, status=st) for sid, st in steps.items()},
    )


def test_flows_do_not_leak_into_each_other():
    store = ExecutionStore()
    store.set_execution("alpha", _execution("alpha", a=StepStatus.SUCCESS))
    store.set_execution("beta", _execution("beta", b=StepStatus.RUNNING))

    assert set(store.get_execution("alpha").steps) == {"a"}
    assert set(store.get_execution("beta").steps) == {"b"}


def test_reads_return_copies():
    store = ExecutionStore()
    original = _execution("alpha", a=StepStatus.SUCCESS)
    store.set_execution("alpha", original)

    original.steps["intruder"] = StepExecution(step_id="intruder")
    read = store.get_execution("alpha")
    read.steps.clear()

    assert set(store.get_execution("alpha").steps) == {"a"}


def test_step_payloads_are_kept_by_reference():
    store = ExecutionStore()
    lock = threading.Lock()
    execution = FlowExecution(
        flow_id="alpha",
        status=ExecutionStatus.COMPLETED,
        steps={"a": StepExecution(step_id="a", input={"lock": lock}, output=lock)},
    )

    store.set_execution("alpha", execution)
    store.archive_execution("alpha", execution)

    assert store.get_execution("alpha").steps["a"].output is lock
    archived = store.get_historical_execution("alpha", execution.id)
    assert archived.steps["a"].input["lock"] is lock


def test_last_write_wins():
    store = ExecutionStore()
    first = _execution("alpha")
    second = _execution("alpha")
    store.set_execution("alpha", first)
    store.set_execution("alpha", second)

    assert store.get_execution("alpha").id == second.id
    assert len(store.get_all_executions()) == 1


def test_terminal_executions_are_archived_newest_first():
    store = ExecutionStore()
    runs = [_execution("alpha", ExecutionStatus.COMPLETED) for _ in range(3)]
    for run in runs:
        store.set_execution("alpha", run)
    # republishing the same run replaces its history entry
    store.set_execution("alpha", runs[-1])

    history = store.get_execution_history("alpha")
    assert [e.id for e in history] == [r.id for r in reversed(runs)]
    assert store.get_historical_execution("alpha", runs[0].id).id == runs[0].id
    assert store.get_historical_execution("alpha", "exec-unknown") is None


def test_running_executions_are_not_archived():
    store = ExecutionStore()
    store.set_execution("alpha", _execution("alpha"))
    assert store.get_execution_history("alpha") == []


def test_history_limit_drops_oldest():
    store = ExecutionStore(history_limit=2)
    runs = [_execution("alpha", ExecutionStatus.FAILED) for _ in range(3)]
    for run in runs:
        store.archive_execution("alpha", run)

    assert [e.id for e in store.get_execution_history("alpha")] == [runs[2].id, runs[1].id]


def test_get_execution_falls_back_to_history():
    store = ExecutionStore()
    done = _execution("alpha", ExecutionStatus.COMPLETED)
    store.set_execution("alpha", done)
    store.clear_live_execution("alpha")

    assert store.get_all_executions() == []
    assert store.get_execution("alpha").id == done.id


def test_clear_history():
    store = ExecutionStore()
    store.archive_execution("alpha", _execution("alpha", ExecutionStatus.COMPLETED))
    store.archive_execution("beta", _execution("beta", ExecutionStatus.COMPLETED))

    store.clear_history("alpha")
    assert store.get_execution_history("alpha") == []
    assert len(store.get_execution_history("beta")) == 1

    store.clear_history()
    assert store.get_execution_history("beta") == []


def test_subscribe_and_unsubscribe():
    store = ExecutionStore()
    calls = []
    unsubscribe = store.subscribe(lambda: calls.append("first"))
    store.subscribe(lambda: calls.append("second"))

    store.set_execution("alpha", _execution("alpha"))
    unsubscribe()
    store.set_execution("alpha", _execution("alpha"))
    unsubscribe()

    assert calls == ["first", "second", "second"]


def test_failing_listener_does_not_block_others(caplog):
    store = ExecutionStore()
    calls = []

    def broken():
        raise RuntimeError("listener bug")

    store.subscribe(broken)
    store.subscribe(lambda: calls.append(1))

    with caplog.at_level(logging.ERROR, logger="flowframe.execution.store"):
        store.set_execution("alpha", _execution("alpha"))

    assert calls == [1]
    assert "Execution store listener failed" in caplog.text


def test_clearing_missing_live_entry_does_not_notify():
    store = ExecutionStore()
    calls = []
    store.subscribe(lambda: calls.append(1))
    store.clear_live_execution("nothing")
    assert calls == []
