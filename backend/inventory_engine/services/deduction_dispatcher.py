"""
Deduction Dispatcher
Runs inventory deductions off the order-processing path.

Submitting never blocks and never fails the order flow; every outcome is
logged and kept in a bounded task history.
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from inventory_engine.core.cache import BoundedCache
from inventory_engine.core.config import settings
from inventory_engine.db.session import SessionLocal, session_scope
from inventory_engine.services.inventory_deduction_service import InventoryDeductionService
from inventory_engine.services.prep_stock_service import PrepStockService

logger = logging.getLogger(__name__)


class TaskStatus(str, Enum):
    """Deduction task status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskType(str, Enum):
    ORDER_DEDUCTION = "order_deduction"
    VOID_DEDUCTION = "void_deduction"
    PREP_DEDUCTION = "prep_deduction"


@dataclass
class DeductionTask:
    """Queued deduction request"""
    id: str
    task_type: TaskType
    payload: Dict[str, Any] = field(default_factory=dict)
    status: TaskStatus = TaskStatus.PENDING
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    result: Optional[Dict[str, Any]] = None


class DeductionDispatcher:
    """
    Queue of deduction requests drained by a small pool of asyncio workers.
    Each task gets its own session; the blocking service call runs in a thread.
    """

    def __init__(
        self,
        session_factory: Callable = SessionLocal,
        max_workers: Optional[int] = None,
        max_history: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.max_workers = max_workers or settings.deduction_workers
        self.max_history = max_history or settings.dispatcher_max_history
        self.task_queue: asyncio.Queue = asyncio.Queue()
        self.workers: List[asyncio.Task] = []
        self.running = False
        # Insertion ordered, so the oldest finished tasks are pruned first
        self.task_history: Dict[str, DeductionTask] = {}
        self.stats = defaultdict(int)

    async def start(self):
        """Start the worker pool."""
        if self.running:
            return

        self.running = True
        for i in range(self.max_workers):
            worker = asyncio.create_task(self._worker(f"worker-{i}"))
            self.workers.append(worker)

        logger.info(f"Deduction dispatcher started with {self.max_workers} workers")

    async def stop(self):
        """Stop the worker pool. Queued tasks that have not started are marked failed."""
        self.running = False

        for worker in self.workers:
            worker.cancel()

        await asyncio.gather(*self.workers, return_exceptions=True)
        self.workers = []

        dropped = 0
        while not self.task_queue.empty():
            task = self.task_queue.get_nowait()
            task.status = TaskStatus.FAILED
            task.error_message = "Dispatcher stopped before the task ran"
            task.completed_at = datetime.now(timezone.utc)
            self.stats["tasks_dropped"] += 1
            self.task_queue.task_done()
            dropped += 1
        if dropped:
            logger.warning(f"Deduction dispatcher stopped with {dropped} queued tasks not run")
        self._prune_history()

        logger.info("Deduction dispatcher stopped")

    async def drain(self):
        """Wait until every submitted task has been processed."""
        await self.task_queue.join()

    # ===== SUBMISSION =====

    def submit_order_deduction(
        self,
        order_id: int,
        employee_id: Optional[int] = None,
    ) -> str:
        return self._submit(TaskType.ORDER_DEDUCTION, {
            "order_id": order_id,
            "employee_id": employee_id,
        })

    def submit_void_deduction(
        self,
        order_item_id: int,
        void_reason: str,
        employee_id: Optional[int] = None,
    ) -> str:
        return self._submit(TaskType.VOID_DEDUCTION, {
            "order_item_id": order_item_id,
            "void_reason": void_reason,
            "employee_id": employee_id,
        })

    def submit_prep_deduction(
        self,
        order_id: int,
        item_ids: Optional[Sequence[int]] = None,
    ) -> str:
        return self._submit(TaskType.PREP_DEDUCTION, {
            "order_id": order_id,
            "item_ids": list(item_ids) if item_ids else None,
        })

    def _submit(self, task_type: TaskType, payload: Dict[str, Any]) -> str:
        task = DeductionTask(id=str(uuid.uuid4()), task_type=task_type, payload=payload)
        self.task_history[task.id] = task
        self._prune_history()
        # Unbounded queue, never raises QueueFull
        self.task_queue.put_nowait(task)
        self.stats["tasks_submitted"] += 1
        logger.debug(f"Deduction task submitted: {task_type.value} ({task.id})")
        return task.id

    def get_task_status(self, task_id: str) -> Optional[DeductionTask]:
        """Get task by ID."""
        return self.task_history.get(task_id)

    def get_stats(self) -> Dict[str, Any]:
        """Get dispatcher statistics."""
        return {
            **dict(self.stats),
            "queue_size": self.task_queue.qsize(),
            "active_workers": sum(1 for w in self.workers if not w.done()),
            "pending_tasks": sum(1 for t in self.task_history.values()
                                 if t.status == TaskStatus.PENDING),
        }

    def _prune_history(self):
        """Drop the oldest finished tasks once history is over its bound."""
        excess = len(self.task_history) - self.max_history
        if excess <= 0:
            return
        finished = [
            task_id for task_id, task in self.task_history.items()
            if task.status in (TaskStatus.COMPLETED, TaskStatus.FAILED)
        ]
        for task_id in finished[:excess]:
            del self.task_history[task_id]

    # ===== WORKERS =====

    async def _worker(self, worker_name: str):
        """Worker coroutine that processes tasks from the queue."""
        logger.debug(f"Worker {worker_name} started")

        while self.running:
            try:
                task = await self.task_queue.get()
            except asyncio.CancelledError:
                break

            try:
                await self._process_task(task, worker_name)
            except asyncio.CancelledError:
                self.task_queue.task_done()
                break
            except Exception as e:
                logger.error(f"Worker {worker_name} error: {e}", exc_info=True)
                self.stats["worker_errors"] += 1
            self.task_queue.task_done()

        logger.debug(f"Worker {worker_name} stopped")

    async def _process_task(self, task: DeductionTask, worker_name: str):
        """Run one task. Failures are recorded, never retried."""
        task.status = TaskStatus.RUNNING
        task.started_at = datetime.now(timezone.utc)

        try:
            result = await asyncio.to_thread(self._run, task)
        except Exception as e:
            task.status = TaskStatus.FAILED
            task.error_message = str(e)
            task.completed_at = datetime.now(timezone.utc)
            self.stats["tasks_failed"] += 1
            logger.error(
                f"[{worker_name}] Deduction task {task.task_type.value} crashed "
                f"({task.payload}): {e}",
                exc_info=True,
            )
            self._prune_history()
            return

        task.result = result
        task.completed_at = datetime.now(timezone.utc)

        if result.get("success"):
            task.status = TaskStatus.COMPLETED
            self.stats["tasks_completed"] += 1
            logger.info(f"[{worker_name}] Deduction task {task.task_type.value} completed ({task.payload})")
        else:
            task.status = TaskStatus.FAILED
            task.error_message = "; ".join(result.get("errors") or [])
            self.stats["tasks_failed"] += 1
            logger.warning(
                f"[{worker_name}] Deduction task {task.task_type.value} failed "
                f"({task.payload}): {task.error_message}"
            )
        self._prune_history()

    def _run(self, task: DeductionTask) -> Dict[str, Any]:
        """Blocking part, runs in a worker thread with its own session."""
        payload = task.payload
        # Cached leaves hold rows of one session, so never share across tasks
        cache = BoundedCache(settings.explosion_cache_max_entries)
        with session_scope(self.session_factory) as db:
            if task.task_type == TaskType.ORDER_DEDUCTION:
                result = InventoryDeductionService(db, cache=cache).deduct_inventory_for_order(
                    payload["order_id"], employee_id=payload.get("employee_id")
                )
            elif task.task_type == TaskType.VOID_DEDUCTION:
                result = InventoryDeductionService(db, cache=cache).deduct_inventory_for_voided_item(
                    payload["order_item_id"],
                    payload["void_reason"],
                    employee_id=payload.get("employee_id"),
                )
            elif task.task_type == TaskType.PREP_DEDUCTION:
                result = PrepStockService(db).deduct_prep_stock_for_order(
                    payload["order_id"], item_ids=payload.get("item_ids")
                )
            else:
                raise ValueError(f"Unknown task type: {task.task_type}")
            return result.model_dump()
