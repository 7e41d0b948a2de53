"""Enumerations shared by catalog, staging and provider layers."""

from enum import Enum


class Blockchain(str, Enum):
    """Chains the catalog knows about."""

    ETHEREUM = "ethereum"
    BASE = "base"
    SHAPE = "shape"
    POLYGON = "polygon"
    TEZOS = "tezos"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> "Blockchain":
        """Map a free-form chain name onto the enum, defaulting to UNKNOWN."""
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class DataSource(str, Enum):
    """Upstream that produced a staged record. Acts as the normalizer's union tag."""

    OPENSEA = "opensea"
    OBJKT = "objkt"
    MANUAL = "manual"


class ObservationType(str, Enum):
    """Why a token was discovered for a wallet."""

    OWNED = "owned"
    CREATED = "created"


class ImportStatus(str, Enum):
    """Promotion state of a staged record."""

    PENDING = "pending"
    PROCESSING = "processing"
    IMPORTED = "imported"
    FAILED = "failed"
