"""Best-effort audit trail. A failed write is logged and never breaks the caller."""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from models.activity import ACTIONS, Activity
from models.db_storage import DBStorage

logger = logging.getLogger(__name__)


class ActivityLog:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    def record(
        self,
        user_id: Optional[str],
        company_id: Optional[str],
        action: str,
        entity_type: str,
        entity_id: str,
        description: str,
        details: Optional[dict] = None,
    ) -> Optional[Activity]:
        if action not in ACTIONS:
            raise ValueError(f"unknown activity action {action!r}")
        if not company_id:
            return None
        activity = Activity(
            user_id=user_id,
            company_id=company_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details,
        )
        try:
            self.storage.new(activity)
            self.storage.save()
        except SQLAlchemyError:
            logger.warning("Failed to log %s activity for %s %s", action, entity_type, entity_id, exc_info=True)
            return None
        return activity

    def recent(
        self, company_id: str, page: int = 1, limit: int = 20, entity_type: Optional[str] = None
    ) -> Tuple[List[Activity], int]:
        query = self.storage.get_session().query(Activity).filter(Activity.company_id == company_id)
        if entity_type:
            query = query.filter(Activity.entity_type == entity_type)
        total = query.count()
        rows = (
            query.order_by(Activity.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return rows, total

    def get(self, company_id: str, activity_id: str) -> Optional[Activity]:
        return (
            self.storage.get_session()
            .query(Activity)
            .filter(Activity.id == activity_id, Activity.company_id == company_id)
            .first()
        )

    def user_summary(self, user_id: str, company_id: str, recent: int = 5) -> Tuple[int, List[Activity]]:
        """How many entries the user produced in this company, and the latest few."""
        query = self.storage.get_session().query(Activity).filter(
            Activity.user_id == user_id, Activity.company_id == company_id
        )
        return query.count(), query.order_by(Activity.created_at.desc()).limit(recent).all()
