"""Queued files, batches and transfer outcomes.

State machine for a queued file:

    PENDING -> TRANSFERRING -> PERSISTED
                            -> FAILED

No state is skipped and terminal states are final. A failed file is
re-submitted by the caller as a new QueuedItem.
"""

import uuid
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from deckflow.models.documents import SourceDocument
from deckflow.models.enums import ItemStatus, TransferErrorKind
from deckflow.models.policy import Accepted, IntakePolicy, Rejection


class InvalidTransitionError(Exception):
    """A state machine was asked to make a transition it does not allow."""

    pass


class BatchFrozenError(Exception):
    """A batch was modified after transfer began."""

    pass


def generate_id() -> str:
    """Generate an opaque unique id for items and batches."""
    return uuid.uuid4().hex


class QueuedItem(BaseModel):
    """Transfer lifecycle of one file in a batch."""

    id: str = Field(default_factory=generate_id)
    document: SourceDocument
    status: ItemStatus = ItemStatus.PENDING
    progress_percent: int = Field(default=0, ge=0, le=100)
    error_kind: Optional[TransferErrorKind] = None
    error_message: Optional[str] = None
    storage_path: Optional[str] = None
    record_id: Optional[str] = None

    @property
    def name(self) -> str:
        return self.document.name

    def _require(self, expected: ItemStatus, target: ItemStatus) -> None:
        if self.status != expected:
            raise InvalidTransitionError(
                f"Item {self.id} cannot move from {self.status.value} to {target.value}"
            )

    def start(self) -> None:
        self._require(ItemStatus.PENDING, ItemStatus.TRANSFERRING)
        self.status = ItemStatus.TRANSFERRING
        self.progress_percent = 0

    def mark_persisted(self, storage_path: str, record_id: str) -> None:
        self._require(ItemStatus.TRANSFERRING, ItemStatus.PERSISTED)
        self.status = ItemStatus.PERSISTED
        self.progress_percent = 100
        self.storage_path = storage_path
        self.record_id = record_id

    def mark_failed(self, kind: TransferErrorKind, message: str) -> None:
        """Move to FAILED.

        A pending item may only fail as cancelled: it never started, so the
        transferring step is not skipped for any other reason.
        """
        if self.status == ItemStatus.PENDING and kind == TransferErrorKind.CANCELLED:
            self.status = ItemStatus.TRANSFERRING
        self._require(ItemStatus.TRANSFERRING, ItemStatus.FAILED)
        self.status = ItemStatus.FAILED
        self.error_kind = kind
        self.error_message = message


class SubmissionReport(BaseModel):
    """Result of offering files to a batch."""

    accepted: list[QueuedItem] = Field(default_factory=list)
    rejections: list[Rejection] = Field(default_factory=list)


class Batch(BaseModel):
    """Ordered set of queued files transferred together.

    Insertion order is transfer order. The batch is frozen once transfer
    begins.
    """

    batch_id: str = Field(default_factory=generate_id)
    policy: IntakePolicy
    items: list[QueuedItem] = Field(default_factory=list)
    frozen: bool = False

    @property
    def documents(self) -> list[SourceDocument]:
        return [item.document for item in self.items]

    def __len__(self) -> int:
        return len(self.items)

    def submit(self, documents: Iterable[SourceDocument]) -> SubmissionReport:
        """Validate and enqueue candidates in order.

        Each candidate is checked against the batch as it stands after the
        previous candidates, so a duplicate within one submission is caught.
        """
        from deckflow.intake.validator import validate

        if self.frozen:
            raise BatchFrozenError(f"Batch {self.batch_id} is already transferring")

        report = SubmissionReport()
        for document in documents:
            result = validate(document, self.documents, self.policy)
            if isinstance(result, Accepted):
                item = QueuedItem(document=document)
                self.items.append(item)
                report.accepted.append(item)
            else:
                report.rejections.append(result)
        return report

    def freeze(self) -> None:
        self.frozen = True


class ItemOutcome(BaseModel):
    """Terminal accounting for one file."""

    item_id: str
    name: str
    status: ItemStatus
    storage_path: Optional[str] = None
    record_id: Optional[str] = None
    error_kind: Optional[TransferErrorKind] = None
    error_message: Optional[str] = None

    @classmethod
    def from_item(cls, item: QueuedItem) -> "ItemOutcome":
        return cls(
            item_id=item.id,
            name=item.name,
            status=item.status,
            storage_path=item.storage_path,
            record_id=item.record_id,
            error_kind=item.error_kind,
            error_message=item.error_message,
        )


class BatchOutcome(BaseModel):
    """Result of transferring a batch."""

    batch_id: str
    items: list[ItemOutcome] = Field(default_factory=list)
    completed_count: int = 0
    failed_count: int = 0
    total_count: int = 0
    progress_percent: int = 0
    owner_status: Optional[str] = Field(
        None, description="Status written to the owning record, None if the update failed"
    )
    owner_error: Optional[str] = None

    @property
    def failed(self) -> list[ItemOutcome]:
        return [i for i in self.items if i.status == ItemStatus.FAILED]
