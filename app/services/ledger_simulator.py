"""
Ledger Simulator

Stands in for a real settlement layer. Some time after registration a
document's pending ledger entry is "mined": it gets a random transaction
hash, a block number and a block timestamp, and the document is marked
confirmed.

The delay is owned by ConfirmationScheduler, an explicit task registry
keyed by document id. Registration hands a document id to the scheduler and
returns immediately; on startup, recover_pending() reschedules every entry
left pending by a previous process.
"""

import asyncio
import logging
import math
import secrets
import time
from typing import Optional

from app.core.config import get_settings
from app.services.fingerprint_store import (
    FingerprintStore,
    LedgerConfirmation,
    get_fingerprint_store,
)

logger = logging.getLogger(__name__)

TRANSACTION_HASH_BYTES = 32


def generate_confirmation() -> LedgerConfirmation:
    """
    Synthetic confirmation for the current moment.

    The transaction hash is 256 bits from the OS CSPRNG, hex encoded with a
    0x prefix. Block number and block timestamp are unix seconds, rounded up
    so they never precede a registration made earlier in the same second.
    """
    now = math.ceil(time.time())
    return LedgerConfirmation(
        transaction_hash="0x" + secrets.token_hex(TRANSACTION_HASH_BYTES),
        block_number=now,
        block_timestamp=now,
    )


async def confirm_document(
    store: FingerprintStore, document_id: str
) -> Optional[LedgerConfirmation]:
    """
    Confirm one document's ledger entry.

    Returns the applied confirmation, or None when there was nothing to do
    (entry already confirmed, or no such document). Running it twice never
    changes the first transaction hash.
    """
    confirmation = generate_confirmation()
    applied = await store.confirm_ledger_entry(document_id, confirmation)
    if not applied:
        logger.info(
            "Confirmation skipped for %s: ledger entry not pending",
            document_id,
            extra={"document_id": document_id},
        )
        return None

    logger.info(
        "Document %s confirmed in block %d (tx %s)",
        document_id,
        confirmation.block_number,
        confirmation.transaction_hash,
        extra={"document_id": document_id, "transaction_hash": confirmation.transaction_hash},
    )
    return confirmation


class ConfirmationScheduler:
    """
    Deferred confirmation jobs, one per document id.

    Usage:
        scheduler = ConfirmationScheduler(store)
        scheduler.schedule(document_id, delay=2.0)

        # On startup
        await scheduler.recover_pending()

        # On shutdown, outstanding timers are cancelled
        await scheduler.shutdown()
    """

    def __init__(self, store: FingerprintStore, default_delay: Optional[float] = None):
        self._store = store
        self._default_delay = default_delay
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def default_delay(self) -> float:
        if self._default_delay is not None:
            return self._default_delay
        return get_settings().confirmation_delay_seconds

    @property
    def scheduled_ids(self) -> list[str]:
        return list(self._tasks)

    def is_scheduled(self, document_id: str) -> bool:
        return document_id in self._tasks

    def schedule(self, document_id: str, delay: Optional[float] = None) -> asyncio.Task:
        """
        Confirm the document after `delay` seconds.
        Scheduling an id that already has a live job returns that job.
        """
        existing = self._tasks.get(document_id)
        if existing is not None and not existing.done():
            return existing

        wait = self.default_delay if delay is None else delay
        task = asyncio.create_task(
            self._run(document_id, wait),
            name=f"confirm-{document_id}",
        )
        self._tasks[document_id] = task
        task.add_done_callback(lambda done, key=document_id: self._forget(key, done))
        logger.debug(
            "Scheduled confirmation for %s in %.2fs",
            document_id,
            wait,
            extra={"document_id": document_id},
        )
        return task

    def _forget(self, document_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(document_id) is task:
            del self._tasks[document_id]

    async def _run(self, document_id: str, delay: float) -> Optional[LedgerConfirmation]:
        await asyncio.sleep(delay)
        try:
            return await confirm_document(self._store, document_id)
        except Exception as e:
            # Nobody is waiting on this job; the entry stays pending until the
            # next recovery sweep.
            logger.error(
                "Confirmation failed for %s: %s",
                document_id,
                e,
                exc_info=True,
                extra={"document_id": document_id},
            )
            return None

    def cancel(self, document_id: str) -> bool:
        task = self._tasks.pop(document_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def recover_pending(self, delay: Optional[float] = None) -> list[str]:
        """Reschedule every document whose ledger entry is still pending."""
        document_ids = await self._store.pending_document_ids()
        for document_id in document_ids:
            self.schedule(document_id, delay)
        if document_ids:
            logger.info("Recovered %d pending confirmations", len(document_ids))
        return document_ids

    async def wait_for_completion(self, timeout: Optional[float] = None) -> None:
        """Wait for all currently scheduled jobs to finish."""
        tasks = list(self._tasks.values())
        if not tasks:
            return
        await asyncio.wait(tasks, timeout=timeout)

    async def shutdown(self) -> None:
        """Cancel all outstanding jobs."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        if not tasks:
            return

        logger.info("Cancelling %d scheduled confirmations...", len(tasks))
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


# =============================================================================
# SINGLETON ACCESS
# =============================================================================

_scheduler_instance: Optional[ConfirmationScheduler] = None


def get_confirmation_scheduler() -> ConfirmationScheduler:
    """Get the confirmation scheduler singleton."""
    global _scheduler_instance
    if _scheduler_instance is None:
        _scheduler_instance = ConfirmationScheduler(get_fingerprint_store())
    return _scheduler_instance
