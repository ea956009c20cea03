"""
PeopleDesk HRM - Activity Log Service

Records administrative actions. Entries are added to the caller's session
and committed with the business change they describe.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit import ActivityLog, ActivityAction

logger = logging.getLogger(__name__)


class AuditService:
    """Service for the tenant activity log."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def log_action(
        self,
        tenant_id: uuid.UUID,
        action: ActivityAction,
        description: str,
        performed_by_id: Optional[uuid.UUID] = None,
        target_user_id: Optional[uuid.UUID] = None,
        reference: Optional[str] = None,
    ) -> ActivityLog:
        """
        Stage an activity log entry.

        Nothing is flushed here; the entry is written in the same
        transaction as the change it records.
        """
        entry = ActivityLog(
            tenant_id=tenant_id,
            action=action,
            description=description,
            performed_by_id=performed_by_id,
            target_user_id=target_user_id,
            reference=reference,
        )
        self.db.add(entry)
        logger.info(f"Activity {action.value} in tenant {tenant_id}: {description}")
        return entry

    async def list_actions(
        self,
        tenant_id: uuid.UUID,
        action: Optional[ActivityAction] = None,
        limit: int = 50,
    ) -> List[ActivityLog]:
        query = select(ActivityLog).where(ActivityLog.tenant_id == tenant_id)
        if action is not None:
            query = query.where(ActivityLog.action == action)
        query = query.order_by(ActivityLog.created_at.desc()).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
