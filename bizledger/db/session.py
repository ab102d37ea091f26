"""
Transaction boundary for ledger cascades.

Every operation that writes more than one document runs through
``run_ledger_operation``:

- With ``MONGODB_TRANSACTIONS`` enabled (replica set) all writes share one
  Motor session and commit or abort together. Transient write conflicts are
  retried.
- Without it (standalone server) each repository write registers the action
  that undoes it on the ``LedgerTransaction``; a failure replays them
  newest-first. A compensation that fails itself is reported through
  ``PartialCascadeError`` instead of being dropped.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Tuple, TypeVar

from motor.motor_asyncio import AsyncIOMotorClientSession, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from bizledger.core.config import settings
from bizledger.core.exceptions import PartialCascadeError

logger = logging.getLogger(__name__)

T = TypeVar("T")
Compensation = Callable[[], Awaitable[Any]]


class LedgerTransaction:
    """Groups the writes of one ledger operation."""

    def __init__(self, name: str, session: Optional[AsyncIOMotorClientSession] = None):
        self.name = name
        self.session = session
        self._steps: List[Tuple[str, Compensation]] = []

    @property
    def in_transaction(self) -> bool:
        return self.session is not None

    @property
    def steps(self) -> List[str]:
        return [step for step, _ in self._steps]

    def record(self, step: str, undo: Compensation) -> None:
        """Register the action that undoes ``step``.

        Inside a real transaction the server aborts for us, so nothing is kept.
        """
        if self.session is None:
            self._steps.append((step, undo))

    async def compensate(self, cause: BaseException) -> None:
        """Undo recorded steps newest-first."""
        failed: List[str] = []
        for step, undo in reversed(self._steps):
            try:
                await undo()
            except Exception:
                logger.exception(
                    "Compensation failed",
                    extra={"operation": self.name, "step": step},
                )
                failed.append(step)
        self._steps.clear()
        if failed:
            raise PartialCascadeError(self.name, cause, failed) from cause


def session_of(tx: Optional[LedgerTransaction]) -> Optional[AsyncIOMotorClientSession]:
    """Motor session to pass along with a write, if any."""
    return tx.session if tx is not None else None


@asynccontextmanager
async def ledger_transaction(db: AsyncIOMotorDatabase, name: str) -> AsyncIterator[LedgerTransaction]:
    """Open a transaction (or compensation scope) for one ledger operation."""
    if settings.MONGODB_TRANSACTIONS:
        async with await db.client.start_session() as session:
            async with session.start_transaction():
                yield LedgerTransaction(name, session=session)
    else:
        tx = LedgerTransaction(name)
        try:
            yield tx
        except Exception as exc:
            if tx.steps:
                logger.warning(
                    "Rolling back ledger operation",
                    extra={"operation": name, "steps": tx.steps, "error": str(exc)},
                )
            await tx.compensate(exc)
            raise


async def run_ledger_operation(
    db: AsyncIOMotorDatabase,
    name: str,
    operation: Callable[[LedgerTransaction], Awaitable[T]],
) -> T:
    """Run ``operation`` atomically, retrying transient transaction conflicts."""
    attempts = max(1, settings.TRANSACTION_MAX_RETRIES)
    attempt = 1
    while True:
        try:
            async with ledger_transaction(db, name) as tx:
                result = await operation(tx)
            logger.debug("Ledger operation committed", extra={"operation": name, "attempt": attempt})
            return result
        except PyMongoError as exc:
            if attempt < attempts and exc.has_error_label("TransientTransactionError"):
                logger.warning(
                    "Retrying ledger operation after transient error",
                    extra={"operation": name, "attempt": attempt, "error": str(exc)},
                )
                attempt += 1
                continue
            raise
