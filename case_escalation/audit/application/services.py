"""
Audit Application Services
==========================

Interfaces for recording decisions and the read-side service serving
classification history and statistics.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

from case_escalation.audit.domain import (
    ClassificationStats,
    DecisionRecord,
    DEFAULT_TIMEFRAME,
    TIMEFRAMES,
    summarize_classifications,
    timeframe_cutoff,
)
from case_escalation.config import DecisionKind
from case_escalation.core import ValidationException


# ========== Repository Interfaces ==========

class IAuditRecorder(ABC):
    """Interface for appending decision records."""

    @abstractmethod
    async def record(self, record: DecisionRecord) -> None:
        """
        Persist one decision record.

        Raises:
            AuditWriteFailedException: if the store rejects the write
        """


class IDecisionHistoryRepository(ABC):
    """Interface for reading recorded decisions."""

    @abstractmethod
    async def list_decisions(
        self,
        kind: DecisionKind,
        owner_id: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[DecisionRecord], int]:
        """Newest-first page of decisions plus the total count."""

    @abstractmethod
    async def list_since(
        self,
        kind: DecisionKind,
        since: datetime,
        owner_id: Optional[str] = None
    ) -> List[DecisionRecord]:
        """All decisions of a kind recorded after a point in time."""


# ========== Application Services ==========

class DecisionHistoryService:
    """Classification history and statistics."""

    def __init__(self, repository: IDecisionHistoryRepository):
        self._repository = repository

    async def get_history(
        self,
        owner_id: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[DecisionRecord], int]:
        if page < 1 or limit < 1:
            raise ValidationException(
                "Page and limit must be positive",
                {"page": page, "limit": limit}
            )
        return await self._repository.list_decisions(
            DecisionKind.CLASSIFICATION,
            owner_id=owner_id,
            limit=limit,
            offset=(page - 1) * limit,
        )

    async def get_stats(
        self,
        owner_id: Optional[str] = None,
        timeframe: str = DEFAULT_TIMEFRAME,
        now: Optional[datetime] = None
    ) -> ClassificationStats:
        if timeframe not in TIMEFRAMES:
            timeframe = DEFAULT_TIMEFRAME
        records = await self._repository.list_since(
            DecisionKind.CLASSIFICATION,
            since=timeframe_cutoff(timeframe, now),
            owner_id=owner_id,
        )
        return summarize_classifications(records, timeframe)
