"""Tests for the Celery hook tasks, run in-process."""
from app.models.hook_execution import HookExecution
from app.services.execution_store import ExecutionStore, utcnow
from app.tasks import hook_tasks


def test_dispatch_event_task_records_executions(make_hook, test_db, db, monkeypatch):
    monkeypatch.setattr(hook_tasks, "SessionLocal", test_db)
    hook = make_hook(endpoint_url=None)

    hook_tasks.dispatch_event("content.published", {"id": 1})

    [record] = db.query(HookExecution).all()
    assert record.hook_id == hook.id
    assert record.status == "success"


def test_retry_task_runs_due_retry(make_hook, test_db, db, monkeypatch):
    monkeypatch.setattr(hook_tasks, "SessionLocal", test_db)
    hook = make_hook(endpoint_url=None, retry_count=1)
    store = ExecutionStore(db)
    record = store.create_pending(hook.id, "content.published", {"id": 1})
    store.mark_retrying(record.id, 1, utcnow())

    hook_tasks.retry_hook_execution(record.id)

    db.expire_all()
    statuses = [r.status for r in db.query(HookExecution).order_by(HookExecution.id)]
    assert statuses == ["failed", "success"]


def test_sweep_task_counts_due_retries(make_hook, test_db, db, monkeypatch):
    monkeypatch.setattr(hook_tasks, "SessionLocal", test_db)
    hook = make_hook(endpoint_url=None, retry_count=1)
    store = ExecutionStore(db)
    record = store.create_pending(hook.id, "content.published", {})
    store.mark_retrying(record.id, 1, utcnow())

    assert hook_tasks.sweep_due_retries() == 1
    assert hook_tasks.sweep_due_retries() == 0
