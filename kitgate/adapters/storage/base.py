"""Blob store interface for kit documents."""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractBlobStore(ABC):
    """Read-only access to stored kit documents."""

    @abstractmethod
    async def download(self, path: str) -> bytes:
        """Return the object stored at ``path``.

        Raises:
            StoreAppError: If the object is missing or the store fails.
        """
        raise NotImplementedError
