"""SQLModel database entities.

All models are imported here to ensure they're registered with SQLModel metadata
for Alembic autogenerate support.
"""

from artindex.models.artist import Artist, ArtistWallet
from artindex.models.artwork import ArtistArtworkLink, Artwork
from artindex.models.artwork_index import ArtworkIndex, InvalidStateTransition
from artindex.models.collection import ArtistCollectionLink, Collection
from artindex.models.enums import Blockchain, DataSource, ImportStatus, ObservationType
from artindex.models.system_state import SystemState

__all__ = [
    "Artist",
    "ArtistWallet",
    "ArtistArtworkLink",
    "ArtistCollectionLink",
    "Artwork",
    "ArtworkIndex",
    "Blockchain",
    "Collection",
    "DataSource",
    "ImportStatus",
    "InvalidStateTransition",
    "ObservationType",
    "SystemState",
]
