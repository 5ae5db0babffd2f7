"""Batch transfer orchestrator.

Drives every QueuedItem of a batch through storage and record creation:

    PENDING -> TRANSFERRING -> sink.put -> registry.create -> PERSISTED
                                     \\-> FAILED (batch continues)

Workers only perform the network calls (``process_item``) and report
events; the orchestrator task is the single writer of item state and of
aggregate progress. With ``concurrency=1`` there is one worker and items are
transferred strictly in insertion order. Larger values give a bounded pool
that still starts items in insertion order.
"""

import asyncio
import math
from typing import Callable, Iterator, Optional

import structlog

from deckflow.cancellation import CancellationSignal, guarded
from deckflow.collaborators import FileRecord, RecordRegistry, StorageSink
from deckflow.errors import OperationCancelled, TransferError
from deckflow.models.documents import AuthContext
from deckflow.models.enums import ItemStatus, TransferErrorKind
from deckflow.models.queue import Batch, BatchOutcome, ItemOutcome, QueuedItem

logger = structlog.get_logger(__name__)

ItemObserver = Callable[[QueuedItem], None]
ProgressObserver = Callable[[int], None]

OWNER_PROCESSING_STATUS = "processing"

_STARTED = "started"
_PERSISTED = "persisted"
_FAILED = "failed"


def build_storage_path(caller_id: str, batch_id: str, file_name: str) -> str:
    """Storage path for a file: ``{caller}/{batch}/{file name}``."""
    return f"{caller_id}/{batch_id}/{file_name}"


def progress_percent(resolved: int, total: int) -> int:
    """Aggregate progress after ``resolved`` of ``total`` items, rounded half up."""
    if total == 0:
        return 100
    return math.floor(resolved * 100 / total + 0.5)


class TransferOrchestrator:
    """Transfers batches to a storage sink and a record registry.

    Args:
        sink: Durable storage for file bytes.
        registry: Metadata records for stored files and owning batches.
        concurrency: Number of items transferred at once (1 = sequential).
        on_item: Receives a copy of an item after every state change.
        on_progress: Receives aggregate progress after every resolved item.
    """

    def __init__(
        self,
        sink: StorageSink,
        registry: RecordRegistry,
        concurrency: int = 1,
        on_item: Optional[ItemObserver] = None,
        on_progress: Optional[ProgressObserver] = None,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.sink = sink
        self.registry = registry
        self.concurrency = concurrency
        self.on_item = on_item
        self.on_progress = on_progress

    # -------------------------------------------------------------------------
    # Per-item step
    # -------------------------------------------------------------------------

    async def process_item(
        self,
        item: QueuedItem,
        batch_id: str,
        context: AuthContext,
        signal: Optional[CancellationSignal] = None,
    ) -> tuple[str, str]:
        """Store one file and create its record.

        Reads the item, never mutates it.

        Returns:
            Tuple of (storage_path, record_id).

        Raises:
            TransferError: Classified failure of either call.
        """
        document = item.document
        path = build_storage_path(context.caller_id, batch_id, document.name)

        try:
            await guarded(self.sink.put(path, document.content), signal)
        except TransferError:
            raise
        except OperationCancelled as e:
            raise TransferError(TransferErrorKind.CANCELLED, str(e)) from e
        except Exception as e:
            raise TransferError(TransferErrorKind.NETWORK_FAILURE, str(e) or type(e).__name__) from e

        record = FileRecord(
            batch_id=batch_id,
            file_name=document.name,
            media_type=document.media_type,
            size_bytes=document.size_bytes,
            storage_path=path,
            caller_id=context.caller_id,
            referral_code=context.referral_code,
        )
        try:
            record_id = await guarded(self.registry.create(record), signal)
        except TransferError:
            raise
        except OperationCancelled as e:
            raise TransferError(TransferErrorKind.CANCELLED, str(e)) from e
        except Exception as e:
            raise TransferError(TransferErrorKind.REGISTRY_REJECTED, str(e) or type(e).__name__) from e

        return path, record_id

    # -------------------------------------------------------------------------
    # Batch
    # -------------------------------------------------------------------------

    async def transfer(
        self,
        batch: Batch,
        context: AuthContext,
        signal: Optional[CancellationSignal] = None,
    ) -> BatchOutcome:
        """Transfer every item of ``batch``; item failures never abort the batch.

        Returns:
            BatchOutcome with exactly one terminal outcome per item.
        """
        batch.freeze()
        total = len(batch.items)
        logger.info(
            "transfer_start",
            batch_id=batch.batch_id,
            items=total,
            concurrency=self.concurrency,
        )

        events: asyncio.Queue = asyncio.Queue()
        pending = iter(batch.items)
        workers = [
            asyncio.create_task(self._worker(pending, events, batch.batch_id, context, signal))
            for _ in range(min(self.concurrency, total))
        ]

        resolved = 0
        last_progress = 0
        try:
            while resolved < total:
                item, event, payload = await events.get()
                self._apply(item, event, payload, batch.batch_id)
                if event != _STARTED:
                    resolved += 1
                    last_progress = max(last_progress, progress_percent(resolved, total))
                    self._report_progress(last_progress)
            await asyncio.gather(*workers)
        finally:
            for worker in workers:
                worker.cancel()

        outcome = BatchOutcome(
            batch_id=batch.batch_id,
            items=[ItemOutcome.from_item(item) for item in batch.items],
            completed_count=sum(1 for i in batch.items if i.status == ItemStatus.PERSISTED),
            failed_count=sum(1 for i in batch.items if i.status == ItemStatus.FAILED),
            total_count=total,
            progress_percent=progress_percent(resolved, total),
        )

        try:
            await self.registry.mark_batch(batch.batch_id, OWNER_PROCESSING_STATUS)
            outcome.owner_status = OWNER_PROCESSING_STATUS
        except Exception as e:
            outcome.owner_error = str(e) or type(e).__name__
            logger.error("transfer_mark_batch_failed", batch_id=batch.batch_id, error=outcome.owner_error)

        logger.info(
            "transfer_complete",
            batch_id=batch.batch_id,
            completed=outcome.completed_count,
            failed=outcome.failed_count,
            total=total,
        )
        return outcome

    async def _worker(
        self,
        pending: Iterator[QueuedItem],
        events: asyncio.Queue,
        batch_id: str,
        context: AuthContext,
        signal: Optional[CancellationSignal],
    ) -> None:
        # The shared iterator hands out items in insertion order.
        for item in pending:
            if signal is not None and signal.cancelled:
                await events.put(
                    (item, _FAILED, TransferError(TransferErrorKind.CANCELLED, signal.reason))
                )
                continue

            await events.put((item, _STARTED, None))
            try:
                result = await self.process_item(item, batch_id, context, signal)
            except TransferError as e:
                await events.put((item, _FAILED, e))
            else:
                await events.put((item, _PERSISTED, result))

    def _apply(self, item: QueuedItem, event: str, payload, batch_id: str) -> None:
        if event == _STARTED:
            item.start()
            logger.debug("transfer_item_started", batch_id=batch_id, item_id=item.id, name=item.name)
        elif event == _PERSISTED:
            storage_path, record_id = payload
            item.mark_persisted(storage_path, record_id)
            logger.info("transfer_item_persisted", batch_id=batch_id, item_id=item.id, path=storage_path)
        else:
            item.mark_failed(payload.kind, payload.message)
            logger.warning(
                "transfer_item_failed",
                batch_id=batch_id,
                item_id=item.id,
                name=item.name,
                kind=payload.kind.value,
                error=payload.message,
            )

        if self.on_item is not None:
            self.on_item(item.model_copy())

    def _report_progress(self, percent: int) -> None:
        if self.on_progress is not None:
            self.on_progress(percent)


async def transfer_batch(
    batch: Batch,
    context: AuthContext,
    sink: StorageSink,
    registry: RecordRegistry,
    signal: Optional[CancellationSignal] = None,
    concurrency: int = 1,
) -> BatchOutcome:
    """Transfer a batch with a one-off orchestrator."""
    orchestrator = TransferOrchestrator(sink, registry, concurrency=concurrency)
    return await orchestrator.transfer(batch, context, signal)
