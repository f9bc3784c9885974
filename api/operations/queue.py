"""
Operation queue for grid mutations.

Every change the grid asks for (cell edits, new rows and columns, variable
edits, context-menu commands) becomes a PendingOperation. Operations are
consumed in FIFO order by a single worker task, one at a time, so the
variable store and the data store never observe two operations interleaved.
A failing operation is logged and recorded; the worker moves on to the next
one without retrying or rolling back.
"""

import asyncio
import traceback
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional

from ..shared.logger import get_logger

logger = get_logger(__name__)


class OperationStatus(str, Enum):
    """Status of a queued operation."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class OperationKind(str, Enum):
    """Kind of store mutation."""

    # Data view cell edits
    ADD_ROW_AND_UPDATE = "add_row_and_update"
    ADD_COL_AND_UPDATE = "add_col_and_update"
    ADD_ROW_COL_AND_UPDATE = "add_row_col_and_update"
    ADD_COLS_IMPLICIT = "add_cols_implicit"
    UPDATE_CELLS = "update_cells"

    # Variable view edits
    CREATE_VARIABLE = "create_variable"
    UPDATE_VARIABLE = "update_variable"
    INSERT_VARIABLE = "insert_variable"
    DELETE_VARIABLE = "delete_variable"

    # Data view context menu
    INSERT_ROWS = "insert_rows"
    DELETE_ROWS = "delete_rows"
    INSERT_COLUMNS = "insert_columns"
    DELETE_COLUMNS = "delete_columns"
    SET_ALIGNMENT = "set_alignment"
    RESIZE_COLUMN = "resize_column"


@dataclass
class PendingOperation:
    """An instruction to mutate the variable and/or data store."""

    kind: OperationKind
    payload: Dict[str, Any] = field(default_factory=dict)
    id: str = ""
    status: OperationStatus = OperationStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    sequence: Optional[int] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_traceback: Optional[str] = None

    def __post_init__(self):
        if not self.id:
            self.id = f"{self.kind.value}_{uuid.uuid4().hex[:8]}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert operation to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "status": self.status.value,
            "payload": self.payload,
            "sequence": self.sequence,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "result": self.result,
            "error": self.error,
            "duration_seconds": self._get_duration(),
        }

    def _get_duration(self) -> Optional[float]:
        if not self.started_at:
            return None

        end_time = self.completed_at or datetime.now()
        return (end_time - self.started_at).total_seconds()


OperationHandler = Callable[[PendingOperation], Awaitable[Any]]


class OperationQueue:
    """
    FIFO of pending store mutations drained by a single worker task.

    ``enqueue`` starts the worker when none is alive on the running loop;
    ``drain`` waits until every queued operation has run. Both are safe to
    call from any number of places: there is never more than one worker.
    """

    def __init__(self, history_limit: int = 200):
        """Initialize the queue.

        Args:
            history_limit: Number of finished operations kept for inspection
        """
        self._pending: Deque[PendingOperation] = deque()
        self._handlers: Dict[OperationKind, OperationHandler] = {}
        self._history: Deque[PendingOperation] = deque(maxlen=history_limit)
        self._callbacks: List[Callable[[PendingOperation], None]] = []
        self._worker: Optional[asyncio.Task] = None
        self._sequence = 0

    def register_handler(self, kind: OperationKind, handler: OperationHandler) -> None:
        """Set the coroutine that applies operations of ``kind``."""
        self._handlers[kind] = handler

    def enqueue(self, operation: PendingOperation) -> PendingOperation:
        """Append an operation and make sure a worker will pick it up.

        Raises:
            ValueError: If no handler is registered for the operation kind.
        """
        if operation.kind not in self._handlers:
            raise ValueError(f"No handler registered for {operation.kind.value}")

        self._pending.append(operation)
        logger.debug("Queued %s (%d pending)", operation.id, len(self._pending))
        self._ensure_worker()
        return operation

    async def drain(self) -> None:
        """Wait until the queue is empty and the worker has finished."""
        while self._pending or self._worker_alive():
            self._ensure_worker()
            worker = self._worker
            if worker is None:
                return
            await asyncio.shield(worker)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def is_idle(self) -> bool:
        return not self._pending and not self._worker_alive()

    def list_operations(
        self,
        status: Optional[OperationStatus] = None,
        limit: int = 50,
    ) -> List[PendingOperation]:
        """List finished and pending operations, newest first.

        Args:
            status: Filter by status
            limit: Maximum number of operations to return
        """
        operations = list(self._history) + list(self._pending)
        if status:
            operations = [op for op in operations if op.status == status]
        operations.reverse()
        return operations[:limit]

    def register_callback(self, callback: Callable[[PendingOperation], None]) -> None:
        """Register a listener called after every finished operation."""
        self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable[[PendingOperation], None]) -> None:
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass

    async def shutdown(self) -> None:
        """Finish every queued operation."""
        await self.drain()

    # ============= Worker =============

    def _worker_alive(self) -> bool:
        if self._worker is None or self._worker.done():
            return False
        try:
            return self._worker.get_loop() is asyncio.get_running_loop()
        except RuntimeError:
            return True

    def _ensure_worker(self) -> None:
        if self._worker_alive():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; the next drain() starts the worker
            return
        if self._pending:
            self._worker = loop.create_task(self._run())

    async def _run(self) -> None:
        while self._pending:
            operation = self._pending.popleft()
            await self._execute(operation)
            # Yield so the event loop stays responsive during long batches
            await asyncio.sleep(0)

    async def _execute(self, operation: PendingOperation) -> None:
        handler = self._handlers[operation.kind]
        self._sequence += 1
        operation.sequence = self._sequence
        operation.status = OperationStatus.RUNNING
        operation.started_at = datetime.now()

        try:
            result = await handler(operation)
            operation.status = OperationStatus.COMPLETED
            if result is not None:
                operation.result = result if isinstance(result, dict) else {"result": result}

        except Exception as e:
            operation.status = OperationStatus.FAILED
            operation.error = str(e)
            operation.error_traceback = traceback.format_exc()
            logger.error("Operation %s failed: %s", operation.id, e)

        finally:
            operation.completed_at = datetime.now()
            self._history.append(operation)
            await self._notify_callbacks(operation)

    async def _notify_callbacks(self, operation: PendingOperation) -> None:
        for callback in list(self._callbacks):
            try:
                callback(operation)
            except Exception as e:
                logger.error("Error in operation callback: %s", e)

        await self._dispatch_websocket_notification(operation)

    async def _dispatch_websocket_notification(self, operation: PendingOperation) -> None:
        """Tell subscribed grid views that the stores changed (or did not)."""
        try:
            # Import here to avoid circular imports
            from websocket import notify_operation_completed, notify_operation_failed

            if operation.status == OperationStatus.FAILED:
                await notify_operation_failed(operation.id, operation.error or "Unknown error")
            else:
                await notify_operation_completed(operation.id, operation.to_dict())

        except ImportError:
            pass
        except Exception as e:
            logger.error("Error dispatching WebSocket notification: %s", e)
