"""
Erasure Audit Log

Persists one record per erasure invocation. The record carries the
principal id, never the contact address.
"""
from uuid import uuid4
from typing import List, Optional, Tuple
import logging

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models.db_models import ErasureAuditLogDB
from ...models.erasure import ErasureResult

logger = logging.getLogger(__name__)


class ErasureAuditService:
    """Write and page through erasure audit records."""

    def __init__(self, db: Session):
        self.db = db

    def record(self, result: ErasureResult, performed_by: Optional[str]) -> Optional[ErasureAuditLogDB]:
        """
        Append an audit record for a finished erasure.

        A write failure is logged and returns None; the erasure outcome
        already happened and is reported regardless.
        """
        # An admin erasing themselves leaves no row to reference
        if performed_by and performed_by == result.principal_id:
            performed_by = None

        entry = ErasureAuditLogDB(
            id=str(uuid4()),
            principal_id=result.principal_id,
            kind=result.kind.value if result.kind else None,
            overall_status=result.overall_status.value,
            identity_removed=result.identity_removed,
            failed_steps=result.failed_steps(),
            rows_affected=result.rows_affected,
            performed_by=performed_by,
        )
        try:
            self.db.add(entry)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to record erasure audit for {result.principal_id}: {e}")
            return None
        return entry

    def list_entries(self, page: int = 1, page_size: int = 20) -> Tuple[List[ErasureAuditLogDB], int]:
        query = self.db.query(ErasureAuditLogDB)
        total = query.count()
        offset = (page - 1) * page_size
        entries = query.order_by(desc(ErasureAuditLogDB.created_at)).offset(offset).limit(page_size).all()
        return entries, total
