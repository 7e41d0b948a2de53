"""ArtworkIndex entity - staged provider observation with promotion state tracking."""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from artindex.core.timezone import utc_now
from artindex.models.enums import ImportStatus


class InvalidStateTransition(Exception):
    """Raised when attempting an invalid staged record state transition."""

    pass


class ArtworkIndex(SQLModel, table=True):
    """One observation of a token for a wallet, awaiting or past promotion.

    Rows are keyed by (contract_address, token_id, observation_type). The same
    token may therefore be staged twice (owned and created); promotion resolves
    both to a single Artwork by (contract_address, token_id).
    """

    __tablename__ = "artwork_index"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint(
            "contract_address",
            "token_id",
            "observation_type",
            name="uq_artwork_index_contract_token_type",
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    contract_address: str = Field(max_length=64, index=True)
    token_id: str = Field(max_length=128)
    observation_type: str = Field(max_length=16)
    data_source: str = Field(max_length=32)
    blockchain: str = Field(default="unknown", max_length=32)
    wallet_address: Optional[str] = Field(default=None, max_length=64, index=True)
    normalized_data: dict = Field(sa_column=Column(JSON, nullable=False))
    import_status: ImportStatus = Field(default=ImportStatus.PENDING, index=True)
    artwork_id: Optional[UUID] = Field(
        default=None, foreign_key="artworks.id", index=True, ondelete="SET NULL"
    )
    error_message: Optional[str] = Field(default=None, max_length=1000)
    attempt_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    last_seen_at: datetime = Field(default_factory=utc_now)
    last_attempt_at: Optional[datetime] = Field(default=None)

    @property
    def uid(self) -> str:
        return f"{self.contract_address}:{self.token_id}"

    def mark_processing(self) -> None:
        """Transition from pending (or imported, for re-promotion) to processing.

        Raises:
            InvalidStateTransition: If the record is failed or already processing
        """
        if self.import_status not in (ImportStatus.PENDING, ImportStatus.IMPORTED):
            raise InvalidStateTransition(
                f"Cannot mark processing from {self.import_status.value}. "
                "Failed records must be reset to pending first."
            )
        self.import_status = ImportStatus.PROCESSING
        self.attempt_count += 1
        self.last_attempt_at = utc_now()
        self.updated_at = self.last_attempt_at

    def mark_imported(self, artwork_id: UUID) -> None:
        """Transition from processing to imported and record the promoted artwork.

        Args:
            artwork_id: ID of the Artwork this record was promoted into

        Raises:
            InvalidStateTransition: If current status is not processing
            ValueError: If artwork_id is empty
        """
        if self.import_status != ImportStatus.PROCESSING:
            raise InvalidStateTransition(
                f"Cannot mark imported from {self.import_status.value}. "
                "Record must be in processing state."
            )
        if not artwork_id:
            raise ValueError("artwork_id is required")
        self.artwork_id = artwork_id
        self.error_message = None
        self.import_status = ImportStatus.IMPORTED
        self.updated_at = utc_now()

    def mark_failed(self, error_message: str) -> None:
        """Transition from pending or processing to failed.

        Args:
            error_message: Human-readable reason, truncated to the column size

        Raises:
            InvalidStateTransition: If the record is already imported or failed
        """
        if self.import_status in (ImportStatus.IMPORTED, ImportStatus.FAILED):
            raise InvalidStateTransition(
                f"Cannot mark failed from {self.import_status.value}."
            )
        self.error_message = error_message[:1000]
        self.import_status = ImportStatus.FAILED
        self.updated_at = utc_now()

    def reset_to_pending(self) -> None:
        """Manual retry: failed (or stale processing) back to pending.

        Raises:
            InvalidStateTransition: If the record is pending or imported
        """
        if self.import_status not in (ImportStatus.FAILED, ImportStatus.PROCESSING):
            raise InvalidStateTransition(
                f"Cannot reset to pending from {self.import_status.value}."
            )
        self.import_status = ImportStatus.PENDING
        self.updated_at = utc_now()

    def decouple(self) -> None:
        """Sever the artwork back-reference after the artwork was deleted.

        The record returns to pending so a later run can relink it.
        """
        self.artwork_id = None
        self.import_status = ImportStatus.PENDING
        self.updated_at = utc_now()
