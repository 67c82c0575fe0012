"""Tests for the fire-and-forget deduction dispatcher."""

import asyncio
import logging
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from inventory_engine.services.deduction_dispatcher import DeductionDispatcher, TaskStatus, TaskType


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


class TestDeductionDispatcher:
    @pytest.mark.asyncio
    async def test_submit_does_not_run_the_task(self, kitchen, make_order, session_factory, stock_of):
        order = make_order([(kitchen["burger"], 1)])
        dispatcher = DeductionDispatcher(session_factory=session_factory, max_workers=1)

        task_id = dispatcher.submit_order_deduction(order.id)

        task = dispatcher.get_task_status(task_id)
        assert task.status == TaskStatus.PENDING
        assert task.task_type == TaskType.ORDER_DEDUCTION
        assert dispatcher.get_stats()["queue_size"] == 1
        assert stock_of(kitchen["patty"]) == Decimal("50")

    @pytest.mark.asyncio
    async def test_order_deduction(self, kitchen, make_order, session_factory, stock_of, caplog):
        order = make_order([(kitchen["burger"], 2)])
        dispatcher = DeductionDispatcher(session_factory=session_factory, max_workers=1)
        await dispatcher.start()
        try:
            with caplog.at_level(logging.INFO):
                task_id = dispatcher.submit_order_deduction(order.id, employee_id=4)
                await dispatcher.drain()
        finally:
            await dispatcher.stop()

        task = dispatcher.get_task_status(task_id)
        assert task.status == TaskStatus.COMPLETED
        assert task.result["success"] is True
        assert task.result["items_deducted"] == 5
        assert task.started_at is not None
        assert task.completed_at is not None
        assert stock_of(kitchen["patty"]) == Decimal("48")
        assert "order_deduction completed" in caplog.text

    @pytest.mark.asyncio
    async def test_void_deduction(self, kitchen, make_order, session_factory, stock_of):
        order = make_order([(kitchen["burger"], 1)])
        dispatcher = DeductionDispatcher(session_factory=session_factory, max_workers=2)
        await dispatcher.start()
        try:
            waste_id = dispatcher.submit_void_deduction(order.items[0].id, "kitchen_error")
            await dispatcher.drain()
            noop_id = dispatcher.submit_void_deduction(order.items[0].id, "customer_changed_mind")
            await dispatcher.drain()
        finally:
            await dispatcher.stop()

        assert dispatcher.get_task_status(waste_id).status == TaskStatus.COMPLETED
        assert dispatcher.get_task_status(noop_id).result["items_deducted"] == 0
        assert stock_of(kitchen["patty"]) == Decimal("49")

    @pytest.mark.asyncio
    async def test_prep_deduction(self, kitchen, make_order, session_factory):
        order = make_order([(kitchen["burger"], 1)], status="sent")
        dispatcher = DeductionDispatcher(session_factory=session_factory, max_workers=1)
        await dispatcher.start()
        try:
            task_id = dispatcher.submit_prep_deduction(order.id, item_ids=[order.items[0].id])
            await dispatcher.drain()
        finally:
            await dispatcher.stop()

        task = dispatcher.get_task_status(task_id)
        assert task.status == TaskStatus.COMPLETED
        assert task.payload["item_ids"] == [order.items[0].id]

    @pytest.mark.asyncio
    async def test_unsuccessful_result_is_logged_not_raised(self, kitchen, session_factory, caplog):
        dispatcher = DeductionDispatcher(session_factory=session_factory, max_workers=1)
        await dispatcher.start()
        try:
            with caplog.at_level(logging.WARNING):
                task_id = dispatcher.submit_order_deduction(9999)
                await dispatcher.drain()
        finally:
            await dispatcher.stop()

        task = dispatcher.get_task_status(task_id)
        assert task.status == TaskStatus.FAILED
        assert task.error_message == "Order not found"
        assert "Order not found" in caplog.text
        assert dispatcher.get_stats()["tasks_failed"] == 1

    @pytest.mark.asyncio
    async def test_crash_is_logged_and_worker_keeps_running(self, kitchen, make_order, session_factory,
                                                            stock_of, caplog):
        order = make_order([(kitchen["burger"], 1)])
        calls = {"n": 0}

        def unreliable_factory():
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("database unavailable")
            return session_factory()

        dispatcher = DeductionDispatcher(session_factory=unreliable_factory, max_workers=1)
        await dispatcher.start()
        try:
            with caplog.at_level(logging.ERROR):
                crashed_id = dispatcher.submit_order_deduction(order.id)
                ok_id = dispatcher.submit_order_deduction(order.id)
                await dispatcher.drain()
        finally:
            await dispatcher.stop()

        crashed = dispatcher.get_task_status(crashed_id)
        assert crashed.status == TaskStatus.FAILED
        assert crashed.error_message == "database unavailable"
        assert "crashed" in caplog.text
        assert dispatcher.get_task_status(ok_id).status == TaskStatus.COMPLETED
        # No retry of the crashed task
        assert stock_of(kitchen["patty"]) == Decimal("49")

    @pytest.mark.asyncio
    async def test_start_and_stop(self, session_factory):
        dispatcher = DeductionDispatcher(session_factory=session_factory, max_workers=3)
        await dispatcher.start()
        await dispatcher.start()
        assert dispatcher.get_stats()["active_workers"] == 3

        await dispatcher.stop()
        assert dispatcher.running is False
        assert dispatcher.get_stats()["active_workers"] == 0

    @pytest.mark.asyncio
    async def test_history_keeps_only_newest_finished_tasks(self, session_factory):
        dispatcher = DeductionDispatcher(session_factory=session_factory, max_workers=1, max_history=3)
        await dispatcher.start()
        try:
            task_ids = [dispatcher.submit_order_deduction(9999) for _ in range(10)]
            await dispatcher.drain()
        finally:
            await dispatcher.stop()

        assert len(dispatcher.task_history) == 3
        assert list(dispatcher.task_history) == task_ids[-3:]
        assert dispatcher.get_task_status(task_ids[0]) is None
        assert dispatcher.get_stats()["tasks_failed"] == 10

    def test_pending_tasks_are_never_pruned(self, session_factory):
        dispatcher = DeductionDispatcher(session_factory=session_factory, max_workers=1, max_history=2)

        task_ids = [dispatcher.submit_order_deduction(9999) for _ in range(5)]

        assert list(dispatcher.task_history) == task_ids

    @pytest.mark.asyncio
    async def test_stop_fails_queued_tasks(self, session_factory, caplog):
        dispatcher = DeductionDispatcher(session_factory=session_factory, max_workers=1)
        task_ids = [dispatcher.submit_order_deduction(9999) for _ in range(2)]

        with caplog.at_level(logging.WARNING):
            await dispatcher.stop()

        for task_id in task_ids:
            task = dispatcher.get_task_status(task_id)
            assert task.status == TaskStatus.FAILED
            assert task.error_message == "Dispatcher stopped before the task ran"
        assert "2 queued tasks not run" in caplog.text
        assert dispatcher.get_stats()["tasks_dropped"] == 2
        await asyncio.wait_for(dispatcher.drain(), timeout=1)

    def test_unknown_task_id(self, session_factory):
        dispatcher = DeductionDispatcher(session_factory=session_factory, max_workers=1)
        assert dispatcher.get_task_status("missing") is None
