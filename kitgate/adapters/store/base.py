"""Record store interface for access codes, customer types and usage logs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from kitgate.schemas.records import (
    AccessCodeRecord,
    CustomerTypeRecord,
    NewAccessCode,
    NewUsageLog,
    UsageLogRecord,
)


@dataclass(frozen=True)
class UsageLogPage:
    """A slice of usage logs plus the total matching the filters."""

    items: list[UsageLogRecord]
    total: int


class AbstractCodeRepository(ABC):
    """Interface over the remote relational store.

    Implementations must make ``compare_and_increment_use`` a single atomic
    conditional update: it only succeeds while the stored ``use_count`` still
    equals ``expected_use_count``.
    """

    @abstractmethod
    async def list_active_candidates(
        self, customer_type: str | None = None, *, plaintext: str | None = None
    ) -> list[AccessCodeRecord]:
        """Return active codes, optionally only those of one kit slug.

        With ``plaintext`` set, legacy rows holding a plaintext code may be
        narrowed to those containing it (case-insensitively); hashed rows are
        always returned since they can only be compared locally.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_code(self, code_id: str) -> AccessCodeRecord | None:
        raise NotImplementedError

    @abstractmethod
    async def compare_and_increment_use(
        self, code_id: str, expected_use_count: int
    ) -> AccessCodeRecord | None:
        """Set ``use_count = expected_use_count + 1`` if unchanged since read.

        Returns:
            The updated row, or None when another writer got there first.
        """
        raise NotImplementedError

    @abstractmethod
    async def insert_usage_log(self, entry: NewUsageLog) -> None:
        raise NotImplementedError

    @abstractmethod
    async def list_customer_types(self) -> list[CustomerTypeRecord]:
        raise NotImplementedError

    @abstractmethod
    async def list_codes(
        self, *, customer_type: str | None = None, search: str | None = None
    ) -> list[AccessCodeRecord]:
        """Return codes newest first, optionally filtered by kit and code substring."""
        raise NotImplementedError

    @abstractmethod
    async def insert_codes(self, codes: list[NewAccessCode]) -> list[AccessCodeRecord]:
        raise NotImplementedError

    @abstractmethod
    async def set_code_active(self, code_id: str, is_active: bool) -> AccessCodeRecord | None:
        raise NotImplementedError

    @abstractmethod
    async def delete_code(self, code_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def list_usage_logs(
        self,
        *,
        offset: int = 0,
        limit: int = 25,
        customer_type: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> UsageLogPage:
        """Return usage logs newest first within the optional time range."""
        raise NotImplementedError
