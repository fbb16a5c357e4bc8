from typing import List, Optional
import logging

import database
from models.admin import ActivityLogDto, RecentActivity
from models.common import PagedResponse
from services.valuation import time_ago

logger = logging.getLogger(__name__)


class ActivityLogService:
    """Audit trail of user actions"""

    def log_activity(self, user_id: str, action: str, entity_type: str,
                     entity_id: Optional[object] = None, details: Optional[str] = None) -> None:
        """
        Record an action. Failures are logged and never propagate, so an
        audit problem cannot fail the operation being audited.
        """
        try:
            database.insert_activity_log(
                user_id,
                getattr(action, "value", action),
                getattr(entity_type, "value", entity_type),
                str(entity_id) if entity_id is not None else None,
                details
            )
        except Exception as e:
            logger.error(f"Error logging activity {action} for user {user_id}: {e}")

    def get_recent(self, count: int = 20) -> List[RecentActivity]:
        now = database.utcnow()
        return [self._to_recent(row, now) for row in database.list_activity_logs(limit=count)]

    def get_for_user(self, user_id: str, page: int = 1, page_size: int = 20) -> PagedResponse:
        rows = database.list_activity_logs(user_id=user_id, limit=page_size, offset=(page - 1) * page_size)
        total = database.count_activity_logs(user_id=user_id)
        return PagedResponse.create([self._to_dto(row) for row in rows], page, page_size, total)

    def get_recent_for_user(self, user_id: str, count: int = 10) -> List[RecentActivity]:
        now = database.utcnow()
        return [self._to_recent(row, now) for row in database.list_activity_logs(user_id=user_id, limit=count)]

    @staticmethod
    def _user_name(row) -> str:
        if row.get("user_first_name") is None:
            return "Unknown"
        return f"{row['user_first_name']} {row['user_last_name']}"

    def _to_dto(self, row) -> ActivityLogDto:
        return ActivityLogDto(
            id=row["id"],
            user_id=row["user_id"],
            user_name=self._user_name(row),
            user_email=row.get("user_email") or "Unknown",
            action=row["action"],
            entity_type=row["entity_type"],
            entity_id=row.get("entity_id"),
            details=row.get("details"),
            created_at=row["created_at"]
        )

    def _to_recent(self, row, now) -> RecentActivity:
        dto = self._to_dto(row)
        return RecentActivity(**dto.model_dump(), time_ago=time_ago(row["created_at"], now))


activity_log_service = ActivityLogService()
