import pytest

from warehouse_erp.models import Warehouse
from warehouse_erp.services.exceptions import SagaStepFailed
from warehouse_erp.services.saga import Saga


def add_warehouse(code):
    def action(db, ctx):
        obj = Warehouse(code=code, name=code)
        db.add(obj)
        db.flush()
        return obj.id
    return action


def delete_warehouse(step):
    def compensation(db, ctx):
        db.query(Warehouse).filter(Warehouse.id == ctx[step]).delete(synchronize_session=False)
    return compensation


def fail(db, ctx):
    raise RuntimeError("boom")


def test_results_are_collected_by_step_name(db):
    ctx = (
        Saga("two_warehouses", db)
        .step("first", add_warehouse("WH001"))
        .step("second", lambda db, ctx: ctx["first"] + 100)
        .run()
    )

    assert ctx["second"] == ctx["first"] + 100
    assert db.query(Warehouse).count() == 1


def test_completed_steps_are_compensated_in_reverse(db):
    calls = []

    def tracked(step):
        inner = delete_warehouse(step)

        def compensation(db, ctx):
            calls.append(step)
            inner(db, ctx)
        return compensation

    saga = (
        Saga("three_steps", db)
        .step("first", add_warehouse("WH001"), tracked("first"))
        .step("second", add_warehouse("WH002"), tracked("second"))
        .step("third", fail)
    )

    with pytest.raises(SagaStepFailed) as exc:
        saga.run()

    assert exc.value.step == "third"
    assert exc.value.compensated is True
    assert isinstance(exc.value.original, RuntimeError)
    assert calls == ["second", "first"]
    assert db.query(Warehouse).count() == 0


def test_failed_step_own_writes_are_rolled_back(db):
    def add_then_fail(db, ctx):
        db.add(Warehouse(code="WH009", name="half"))
        db.flush()
        raise RuntimeError("boom")

    with pytest.raises(SagaStepFailed):
        Saga("partial", db).step("only", add_then_fail).run()

    assert db.query(Warehouse).count() == 0


def test_broken_compensation_is_reported(db):
    def broken(db, ctx):
        raise RuntimeError("cannot delete")

    saga = (
        Saga("broken_rollback", db)
        .step("first", add_warehouse("WH001"), broken)
        .step("second", fail)
    )

    with pytest.raises(SagaStepFailed) as exc:
        saga.run()

    assert exc.value.compensated is False
    # шапка осталась — об этом и сообщает compensated=False
    assert db.query(Warehouse).count() == 1
