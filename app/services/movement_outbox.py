"""
Movement Outbox

Stock movement rows are an audit trail: failing to write one must never block
or roll back the stock mutation it describes. A movement whose inline insert
fails is staged against its connection, promoted to the retry queue once that
transaction commits, and dropped if it rolls back. flush() drains the queue.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List

from app.models.stock_movement import StockMovementCreate
from app.repositories.stock_movement_repository import StockMovementRepository

logger = logging.getLogger(__name__)

@dataclass
class PendingMovement:
    movement: StockMovementCreate
    attempts: int = 1

class MovementOutbox:

    def __init__(self, movements: StockMovementRepository, max_attempts: int = 5, max_pending: int = 10000):
        self._movements = movements
        self.max_attempts = max_attempts
        self._staged: Dict[int, List[StockMovementCreate]] = {}
        self._pending: Deque[PendingMovement] = deque(maxlen=max_pending)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def staged_count(self, conn) -> int:
        return len(self._staged.get(id(conn), []))

    async def record(self, conn, movement: StockMovementCreate) -> bool:
        """Write the movement in a savepoint. Returns False if it was staged for retry instead."""
        try:
            async with conn.transaction():
                await self._movements.insert(conn, movement)
            return True
        except Exception as e:
            logger.warning(
                f"⚠️ Stock movement for ingredient {movement.ingredient_id} not written, "
                f"queued for retry: {e}"
            )
            self._staged.setdefault(id(conn), []).append(movement)
            return False

    def promote(self, conn) -> int:
        """The owning transaction committed: staged movements become retryable"""
        staged = self._staged.pop(id(conn), [])
        if len(self._pending) + len(staged) > (self._pending.maxlen or 0):
            logger.error("❌ Movement outbox full, oldest pending movements are being dropped")
        for movement in staged:
            self._pending.append(PendingMovement(movement))
        return len(staged)

    def discard(self, conn) -> int:
        """The owning transaction rolled back: staged movements describe nothing"""
        return len(self._staged.pop(id(conn), []))

    def discard_since(self, conn, mark: int) -> int:
        """A savepoint rolled back: drop what was staged after staged_count() returned mark"""
        staged = self._staged.get(id(conn), [])
        dropped = len(staged) - mark
        del staged[mark:]
        return max(dropped, 0)

    async def flush(self, conn) -> int:
        """Retry pending movements once each. Returns how many were written."""
        written = 0
        for _ in range(len(self._pending)):
            pending = self._pending.popleft()
            try:
                async with conn.transaction():
                    await self._movements.insert(conn, pending.movement)
                written += 1
            except Exception as e:
                pending.attempts += 1
                if pending.attempts >= self.max_attempts:
                    logger.error(
                        f"❌ Dropping stock movement for ingredient {pending.movement.ingredient_id} "
                        f"after {self.max_attempts} attempts: {e}"
                    )
                else:
                    self._pending.append(pending)

        if written:
            logger.info(f"✅ Movement outbox flushed {written} movement(s), {self.pending_count} pending")
        return written

    async def run(self, connection_factory, interval: float) -> None:
        """Background loop started from the application lifespan"""
        while True:
            await asyncio.sleep(interval)
            if not self._pending:
                continue
            try:
                async with connection_factory() as conn:
                    await self.flush(conn)
            except Exception as e:
                logger.error(f"❌ Movement outbox flush failed: {e}")
