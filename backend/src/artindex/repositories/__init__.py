"""Repository layer for the artindex catalog.

Provides data access abstractions for catalog and staging entities.
Each repository is self-contained and works on the session it is given.
"""

from artindex.repositories.artist import ArtistRepository
from artindex.repositories.artwork import ArtworkRepository
from artindex.repositories.artwork_index import ArtworkIndexRepository, CollapsedIndexEntry
from artindex.repositories.collection import CollectionRepository
from artindex.repositories.system_state import SystemStateRepository

__all__ = [
    "ArtistRepository",
    "ArtworkRepository",
    "ArtworkIndexRepository",
    "CollapsedIndexEntry",
    "CollectionRepository",
    "SystemStateRepository",
]
