import json
from datetime import date

import pytest

from conftest import RecordingNotifier, SequentialIds, FakeClock, titles
from core.errors import StorageError, ValidationError
from models.undo import UndoActionType
from services.tasks import TaskEngine
from storage.config import load_config
from storage.task_store import TaskStore


def _seed(engine, *names):
    return [engine.create(name, "medium") for name in names]


def _state(engine):
    return list(engine.tasks), engine.store.get_all_tasks()


class FailingStore(TaskStore):
    """Store whose writes can be switched off."""

    def __init__(self, session_factory):
        super().__init__(session_factory)
        self.fail = False

    def _check(self):
        if self.fail:
            raise StorageError("disk on fire")

    def add_task(self, task):
        self._check()
        super().add_task(task)

    def update_task(self, task_id, changes):
        self._check()
        super().update_task(task_id, changes)

    def put_task(self, task):
        self._check()
        super().put_task(task)

    def update_many(self, changes):
        self._check()
        super().update_many(changes)

    def delete_task(self, task_id):
        self._check()
        return super().delete_task(task_id)

    def clear_completed_tasks(self):
        self._check()
        return super().clear_completed_tasks()

    def replace_all(self, tasks):
        self._check()
        super().replace_all(tasks)


@pytest.fixture()
def failing_engine(session_factory, notifier, clock):
    eng = TaskEngine(FailingStore(session_factory), notifier=notifier, clock=clock, id_factory=SequentialIds())
    eng.load()
    return eng


# ---------- create ----------
def test_create_appends_with_next_order_index(engine):
    a, b, c = _seed(engine, "A", "B", "C")
    assert [t.order_index for t in engine.tasks] == [1, 2, 3]
    assert titles(engine.store.get_all_tasks()) == ["A", "B", "C"]
    assert engine.can_undo
    assert engine.undo_history[-1].type is UndoActionType.ADD
    assert a.created_at == a.updated_at
    assert not a.is_completed and a.completed_at is None


def test_create_normalizes_fields(engine):
    task = engine.create(
        "  Write report  ",
        None,
        description="  ",
        tags=["work", " work ", "", "q3"],
        due_date="2024-03-05",
        notes=[{"id": "n1", "content": "draft", "created_at": "2024-01-01T00:00:00Z"}],
    )
    assert task.title == "Write report"
    assert task.priority == "medium"
    assert task.description is None
    assert task.tags == ("work", "q3")
    assert task.due_date == date(2024, 3, 5)
    assert task.notes[0].content == "draft"
    assert engine.store.get_task(task.id) == task


def test_create_blank_title_reports_error(engine, notifier):
    assert engine.create("   ", "high") is None
    assert engine.error and "title" in engine.error
    assert engine.tasks == ()
    assert not engine.can_undo
    assert not engine.is_loading
    assert "error" in notifier.kinds()


def test_create_unknown_priority_reports_error(engine):
    assert engine.create("A", "urgent") is None
    assert "urgent" in engine.error
    assert engine.store.get_all_tasks() == []


def test_new_operation_clears_previous_error(engine):
    engine.create("", None)
    assert engine.error
    engine.create("A", None)
    assert engine.error is None


def test_create_after_delete_keeps_indices_distinct(engine):
    a, b, c = _seed(engine, "A", "B", "C")
    engine.delete(c.id)
    d = engine.create("D", None)
    indices = [t.order_index for t in engine.tasks]
    assert len(set(indices)) == len(indices)
    assert d.order_index > b.order_index


# ---------- P1 ----------
def test_order_indices_stay_distinct_across_mixed_operations(engine):
    ids = [t.id for t in _seed(engine, "A", "B", "C", "D", "E")]
    engine.reorder(4, 0)
    engine.delete(ids[2])
    engine.create("F", "low")
    engine.reorder(1, 3)
    engine.toggle_complete(ids[0])
    engine.create("G", "high")

    indices = [t.order_index for t in engine.tasks]
    assert len(set(indices)) == len(indices)
    assert indices == sorted(indices)
    assert [t.id for t in engine.store.get_all_tasks()] == [t.id for t in engine.tasks]


# ---------- P2 ----------
def test_toggle_keeps_completion_pair_consistent(engine):
    (task,) = _seed(engine, "Buy milk")
    engine.toggle_complete(task.id)
    done = engine.get_task(task.id)
    assert done.is_completed and done.completed_at is not None
    engine.toggle_complete(task.id)
    reopened = engine.get_task(task.id)
    assert not reopened.is_completed and reopened.completed_at is None
    stored = engine.store.get_task(task.id)
    assert stored.is_completed is False and stored.completed_at is None


def test_update_is_completed_sets_and_clears_completed_at(engine):
    (task,) = _seed(engine, "A")
    assert engine.update(task.id, is_completed=True)
    first = engine.get_task(task.id)
    assert first.completed_at is not None
    # already completed: timestamp is kept
    assert engine.update(task.id, {"is_completed": True, "title": "A2"})
    assert engine.get_task(task.id).completed_at == first.completed_at
    assert engine.update(task.id, is_completed=False)
    assert engine.get_task(task.id).completed_at is None


# ---------- update ----------
def test_update_merges_partial_changes(engine):
    (task,) = _seed(engine, "A")
    assert engine.update(task.id, {"title": "Renamed", "tags": ["x"], "priority": "high"})
    updated = engine.get_task(task.id)
    assert updated.title == "Renamed"
    assert updated.tags == ("x",)
    assert updated.priority == "high"
    assert updated.created_at == task.created_at
    assert updated.updated_at > task.updated_at
    assert engine.store.get_task(task.id) == updated


def test_update_rejects_unknown_fields(engine):
    (task,) = _seed(engine, "A")
    assert engine.update(task.id, order_index=99) is False
    assert "order_index" in engine.error
    assert engine.get_task(task.id) == task


def test_update_missing_task_reports_not_found(engine):
    assert engine.update("nope", title="x") is False
    assert "nope" in engine.error


def test_update_invalid_due_date(engine):
    (task,) = _seed(engine, "A")
    assert engine.update(task.id, due_date="someday") is False
    assert engine.get_task(task.id).due_date is None


# ---------- delete ----------
def test_delete_removes_from_memory_and_store(engine, notifier):
    a, b = _seed(engine, "A", "B")
    engine.set_selected_task(a.id)
    assert engine.delete(a.id)
    assert titles(engine.tasks) == ["B"]
    assert engine.store.get_task(a.id) is None
    assert engine.selected_task_id is None
    assert notifier.shown[-1][0] == "Task deleted"


def test_delete_unknown_task(engine):
    assert engine.delete("ghost") is False
    assert engine.error


# ---------- P3 ----------
@pytest.mark.parametrize(
    "operation",
    [
        lambda eng, ids: eng.create("D", "low"),
        lambda eng, ids: eng.update(ids[1], title="B2", tags=["t"]),
        lambda eng, ids: eng.delete(ids[1]),
        lambda eng, ids: eng.toggle_complete(ids[2]),
        lambda eng, ids: eng.reorder(0, 2),
        lambda eng, ids: eng.clear_completed(),
    ],
    ids=["create", "update", "delete", "toggle", "reorder", "clear-completed"],
)
def test_undo_restores_previous_state(engine, operation):
    ids = [t.id for t in _seed(engine, "A", "B", "C")]
    engine.toggle_complete(ids[0])
    before_memory, before_store = _state(engine)

    operation(engine, ids)
    assert engine.undo()

    after_memory, after_store = _state(engine)
    assert after_memory == before_memory
    assert after_store == before_store


# ---------- P4 ----------
def test_n_operations_then_n_undos_restore_start(engine):
    a, b = _seed(engine, "A", "B")
    start_memory, start_store = _state(engine)
    depth = len(engine.undo_history)

    engine.toggle_complete(a.id)
    engine.reorder(1, 0)
    engine.update(b.id, description="later")
    engine.create("C", "high")
    engine.delete(a.id)
    engine.clear_completed()
    performed = len(engine.undo_history) - depth

    for _ in range(performed):
        assert engine.undo()
    assert _state(engine) == (start_memory, start_store)


def test_undo_on_empty_log_is_a_noop(engine, notifier):
    assert engine.undo() is False
    assert engine.error is None
    assert engine.tasks == ()
    assert notifier.shown == []


def test_undo_log_is_bounded(store, notifier, clock):
    eng = TaskEngine(store, notifier=notifier, clock=clock, undo_capacity=3, id_factory=SequentialIds())
    for name in "ABCDE":
        eng.create(name, None)
    assert len(eng.undo_history) == 3
    assert eng.undo() and eng.undo() and eng.undo()
    assert eng.undo() is False
    assert titles(eng.tasks) == ["A", "B"]


def test_undo_never_records_itself(engine):
    _seed(engine, "A")
    engine.undo()
    assert engine.undo_history == []
    assert not engine.can_undo


def test_clear_undo_history(engine):
    _seed(engine, "A", "B")
    engine.clear_undo_history()
    assert not engine.can_undo
    assert titles(engine.tasks) == ["A", "B"]


# ---------- P5 ----------
def test_filter_active_with_search(engine):
    milk = engine.create("Buy milk", None)
    engine.create("Walk dog", None, description="the FOOd bowl too")
    engine.create("Call mom", None, tags=["foobar"])
    done = engine.create("foo done", None)
    engine.create("Unrelated", None)
    engine.toggle_complete(done.id)

    result = TaskEngine.filter_tasks(engine.tasks, "active", "foo")
    assert titles(result) == ["Walk dog", "Call mom"]
    assert all(not t.is_completed for t in result)
    assert TaskEngine.filter_tasks(engine.tasks, "all", "") == list(engine.tasks)
    assert TaskEngine.filter_tasks(engine.tasks, "completed", "") == [engine.get_task(done.id)]
    assert milk in engine.tasks


def test_visible_tasks_follow_view_state(engine, tmp_path):
    a, b = _seed(engine, "Alpha", "Beta")
    engine.toggle_complete(a.id)
    engine.set_filter("active")
    assert titles(engine.visible_tasks()) == ["Beta"]
    engine.set_filter("all")
    engine.set_search_query("alp")
    assert titles(engine.visible_tasks()) == ["Alpha"]

    saved = load_config(tmp_path / "config.json")
    assert saved.filter == "all"
    assert saved.search_query == "alp"


def test_view_state_is_restored_on_load(store, notifier, clock, tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"filter": "completed", "search_query": "x"}), encoding="utf-8")
    eng = TaskEngine(store, notifier=notifier, clock=clock, config_path=config_path)
    eng.load()
    assert eng.filter == "completed"
    assert eng.search_query == "x"


def test_set_filter_rejects_unknown_kind(engine):
    with pytest.raises(ValidationError):
        engine.set_filter("someday")
    assert engine.filter == "all"


# ---------- P6 ----------
def test_clear_completed_with_nothing_completed_changes_nothing(engine):
    _seed(engine, "A", "B")
    before = _state(engine)
    history = engine.undo_history
    assert engine.clear_completed() == 0
    assert _state(engine) == before
    assert engine.undo_history == history


def test_clear_completed_removes_only_completed(engine, notifier):
    a, b, c = _seed(engine, "A", "B", "C")
    engine.toggle_complete(a.id)
    engine.toggle_complete(c.id)
    assert engine.clear_completed() == 2
    assert titles(engine.tasks) == ["B"]
    assert titles(engine.store.get_all_tasks()) == ["B"]
    assert engine.undo_history[-1].type is UndoActionType.CLEAR_COMPLETED
    assert notifier.shown[-1][1] == "Cleared 2 tasks"


def test_undo_clear_completed_restores_original_positions(engine):
    a, b, c = _seed(engine, "A", "B", "C")
    engine.toggle_complete(a.id)
    engine.toggle_complete(c.id)
    engine.clear_completed()
    engine.undo()
    assert titles(engine.tasks) == ["A", "B", "C"]


# ---------- scenarios ----------
def test_toggle_then_undo_buy_milk(engine):
    task = engine.create("Buy milk", "medium")
    assert engine.toggle_complete(task.id)
    assert engine.get_task(task.id).is_completed

    assert engine.undo()
    restored = engine.get_task(task.id)
    assert restored.is_completed is False
    assert restored.completed_at is None
    assert restored == task
    assert len(engine.undo_history) == 1
    assert engine.undo_history[0].type is UndoActionType.ADD


def test_reorder_moves_and_renumbers(engine):
    _seed(engine, "A", "B", "C")
    originals = list(engine.tasks)
    assert engine.reorder(0, 2)
    assert titles(engine.tasks) == ["B", "C", "A"]
    assert [t.order_index for t in engine.tasks] == [0, 1, 2]
    assert titles(engine.store.get_all_tasks()) == ["B", "C", "A"]

    assert engine.undo()
    assert list(engine.tasks) == originals
    assert [t.order_index for t in engine.store.get_all_tasks()] == [1, 2, 3]


def test_reorder_same_position_is_a_noop(engine):
    _seed(engine, "A", "B")
    history = len(engine.undo_history)
    assert engine.reorder(1, 1)
    assert len(engine.undo_history) == history


def test_reorder_out_of_range(engine):
    _seed(engine, "A", "B")
    assert engine.reorder(5, 0) is False
    assert engine.error
    assert titles(engine.tasks) == ["A", "B"]


def test_reorder_within_filtered_view_keeps_hidden_slots(engine):
    a, b, c = _seed(engine, "A", "B", "C")
    engine.toggle_complete(b.id)
    engine.set_filter("active")
    assert titles(engine.visible_tasks()) == ["A", "C"]

    assert engine.reorder(0, 1)
    assert titles(engine.tasks) == ["C", "B", "A"]
    assert titles(engine.visible_tasks()) == ["C", "A"]


def test_import_empty_task_list_empties_everything(engine):
    _seed(engine, "A", "B")
    document = engine.import_document(json.dumps({"version": "1.0.0", "tasks": []}))
    assert document.tasks == ()
    assert engine.tasks == ()
    assert engine.store.get_all_tasks() == []
    assert not engine.can_undo


def test_import_without_tasks_raises_and_keeps_state(engine):
    _seed(engine, "A", "B")
    before = _state(engine)
    history = engine.undo_history
    with pytest.raises(ValidationError):
        engine.import_document('{"version": "1.0.0"}')
    assert _state(engine) == before
    assert engine.undo_history == history


def test_export_then_import_replaces_tasks(engine, store, notifier, clock):
    _seed(engine, "A", "B")
    engine.toggle_complete(engine.tasks[0].id)
    document = engine.export_document()
    assert document["metadata"]["total_tasks"] == 2
    assert document["metadata"]["completed_tasks"] == 1

    other = TaskEngine(store, notifier=RecordingNotifier(), clock=FakeClock())
    other.create("Z", None)
    other.import_document(document)
    assert titles(other.tasks) == ["A", "B"]
    assert titles(store.get_all_tasks()) == ["A", "B"]
    assert other.tasks[0].is_completed


# ---------- failures ----------
def test_storage_failure_leaves_memory_and_undo_untouched(failing_engine, notifier):
    (task,) = _seed(failing_engine, "A")
    history = failing_engine.undo_history
    failing_engine.store.fail = True

    assert failing_engine.toggle_complete(task.id) is False
    assert "disk on fire" in failing_engine.error
    assert failing_engine.get_task(task.id) == task
    assert failing_engine.undo_history == history
    assert not failing_engine.is_loading
    assert notifier.shown[-1][2] == "error"


def test_failed_create_does_not_touch_memory(failing_engine):
    failing_engine.store.fail = True
    assert failing_engine.create("A", None) is None
    assert failing_engine.tasks == ()
    assert not failing_engine.can_undo


def test_failed_reorder_leaves_order_untouched(failing_engine):
    _seed(failing_engine, "A", "B", "C")
    before = _state(failing_engine)
    history = failing_engine.undo_history
    failing_engine.store.fail = True

    assert failing_engine.reorder(0, 2) is False
    assert failing_engine.error
    assert _state(failing_engine) == before
    assert titles(failing_engine.tasks) == ["A", "B", "C"]
    assert failing_engine.undo_history == history


def test_failed_delete_keeps_the_task(failing_engine):
    a, b = _seed(failing_engine, "A", "B")
    history = failing_engine.undo_history
    failing_engine.store.fail = True

    assert failing_engine.delete(a.id) is False
    assert "disk on fire" in failing_engine.error
    assert titles(failing_engine.tasks) == ["A", "B"]
    assert failing_engine.undo_history == history


def test_failed_clear_completed_keeps_tasks(failing_engine):
    a, b = _seed(failing_engine, "A", "B")
    failing_engine.toggle_complete(a.id)
    history = failing_engine.undo_history
    failing_engine.store.fail = True

    assert failing_engine.clear_completed() == 0
    assert failing_engine.error
    assert titles(failing_engine.tasks) == ["A", "B"]
    assert failing_engine.get_task(a.id).is_completed
    assert failing_engine.undo_history == history


def test_malformed_import_raises_validation_error(engine):
    _seed(engine, "A")
    with pytest.raises(ValidationError):
        engine.import_document(
            {"tasks": [{"id": "x", "title": "X", "created_at": "2024-01-01T00:00:00Z", "due_date": 20240101}]}
        )
    assert titles(engine.tasks) == ["A"]
    assert engine.can_undo


def test_failed_undo_keeps_the_entry(failing_engine):
    (task,) = _seed(failing_engine, "A")
    failing_engine.toggle_complete(task.id)
    failing_engine.store.fail = True

    assert failing_engine.undo() is False
    assert failing_engine.error
    assert failing_engine.undo_history[-1].type is UndoActionType.TOGGLE_COMPLETE
    assert failing_engine.get_task(task.id).is_completed

    failing_engine.store.fail = False
    assert failing_engine.undo()
    assert not failing_engine.get_task(task.id).is_completed


def test_failed_import_raises_storage_error(failing_engine):
    _seed(failing_engine, "A")
    failing_engine.store.fail = True
    with pytest.raises(StorageError):
        failing_engine.import_document({"tasks": []})
    assert titles(failing_engine.tasks) == ["A"]
    assert failing_engine.error


# ---------- misc ----------
def test_move_to_column(engine):
    (task,) = _seed(engine, "A")
    assert engine.move_to_column(task.id, "done")
    assert engine.get_task(task.id).is_completed
    history = len(engine.undo_history)
    assert engine.move_to_column(task.id, "done")
    assert len(engine.undo_history) == history
    assert engine.move_to_column(task.id, "sideways") is False


def test_listeners_are_notified(engine):
    seen = []
    engine.subscribe(lambda eng: seen.append(len(eng.tasks)))
    _seed(engine, "A")
    engine.undo()
    assert seen == [1, 0]


def test_failing_listener_does_not_break_the_engine(engine):
    def boom(eng):
        raise RuntimeError("listener bug")

    engine.subscribe(boom)
    assert engine.create("A", None) is not None
    engine.unsubscribe(boom)


def test_stats(engine):
    a, _ = _seed(engine, "A", "B")
    engine.toggle_complete(a.id)
    assert engine.stats() == {"total": 2, "completed": 1, "active": 1}


def test_load_reads_store_in_order(store, clock, notifier):
    first = TaskEngine(store, notifier=notifier, clock=clock, id_factory=SequentialIds())
    _seed(first, "A", "B", "C")
    first.reorder(2, 0)

    second = TaskEngine(store, notifier=notifier, clock=clock)
    assert second.load()
    assert titles(second.tasks) == ["C", "A", "B"]
    assert not second.can_undo
