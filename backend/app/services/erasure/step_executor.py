"""
Step Executor

Runs one erasure step against the relational store.

Each step commits on its own: the engine is non-transactional across the
plan. A failing step is rolled back, logged and reported as an error
result. It is never re-raised to the orchestrator and never retried.
"""
from typing import List, Optional
import logging

from sqlalchemy import MetaData, Table, and_, delete, func, or_, select, update
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from ...database import Base
from ...models.erasure import (
    ErasureStep,
    ResolvedOwner,
    StepOperation,
    StepOutcome,
    StepPreview,
    StepResult,
)
from .errors import ErasureError

logger = logging.getLogger(__name__)


class StepExecutor:
    """
    Executes plan steps with SQLAlchemy Core against the shared metadata.

    Usage:
        executor = StepExecutor(db)
        result = executor.execute(step, owner, step_index=3)
    """

    def __init__(self, db: Session, metadata: Optional[MetaData] = None):
        self.db = db
        self.metadata = metadata if metadata is not None else Base.metadata

    def execute(self, step: ErasureStep, owner: ResolvedOwner, step_index: int) -> StepResult:
        """
        Run a step once. Zero matching rows is a success.

        Returns:
            StepResult with outcome OK and rows affected, or ERROR with detail
        """
        try:
            rows = self._run(step, owner)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Erasure step {step_index} ({step.name}) on {step.table} failed: {e}")
            return StepResult(
                step_index=step_index,
                name=step.name,
                table=step.table,
                outcome=StepOutcome.ERROR,
                error_detail=str(e),
            )

        if rows:
            logger.debug(f"Erasure step {step_index} ({step.name}): {rows} rows")
        return StepResult(
            step_index=step_index,
            name=step.name,
            table=step.table,
            outcome=StepOutcome.OK,
            rows_affected=rows,
        )

    def preview(self, step: ErasureStep, owner: ResolvedOwner, step_index: int) -> StepPreview:
        """Count the rows a step would touch without changing anything."""
        preview = StepPreview(
            step_index=step_index,
            name=step.name,
            table=step.table,
            operation=step.operation,
            reference=step.reference,
        )
        try:
            preview.rows = self._count(step, owner)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Erasure preview {step_index} ({step.name}) on {step.table} failed: {e}")
            preview.error_detail = str(e)
        return preview

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _table(self, name: str) -> Table:
        table = self.metadata.tables.get(name)
        if table is None:
            raise ErasureError(f"Unknown table '{name}'")
        return table

    def _predicate(self, table: Table, step: ErasureStep, owner: ResolvedOwner) -> Optional[ColumnElement]:
        """
        OR of every id column against the principal id and every contact
        column against the contact address. None when nothing can match.

        Contact addresses are reused over time, so a contact match only
        counts on rows whose id columns are all NULL.
        """
        clauses: List[ColumnElement] = [
            table.c[column] == owner.principal_id for column in step.id_columns
        ]
        if owner.contact_address and step.contact_columns:
            unowned = [table.c[column].is_(None) for column in step.id_columns]
            clauses.extend(
                and_(table.c[column] == owner.contact_address, *unowned)
                for column in step.contact_columns
            )
        if not clauses:
            return None
        return or_(*clauses)

    def _run(self, step: ErasureStep, owner: ResolvedOwner) -> int:
        table = self._table(step.table)
        predicate = self._predicate(table, step, owner)
        if predicate is None:
            return 0

        if step.operation == StepOperation.NULLIFY_COLUMN:
            column = step.nullified_column
            result = self.db.execute(update(table).where(predicate).values({column: None}))
            return result.rowcount or 0

        rows = 0
        if step.children:
            # Intermediate ids first, then grandchildren, then the rows themselves
            key = table.c[step.key_column]
            parent_ids = [row[0] for row in self.db.execute(select(key).where(predicate)).all()]
            if parent_ids:
                for child in step.children:
                    child_table = self._table(child.table)
                    result = self.db.execute(
                        delete(child_table).where(child_table.c[child.column].in_(parent_ids))
                    )
                    rows += result.rowcount or 0

        result = self.db.execute(delete(table).where(predicate))
        return rows + (result.rowcount or 0)

    def _count(self, step: ErasureStep, owner: ResolvedOwner) -> int:
        table = self._table(step.table)
        predicate = self._predicate(table, step, owner)
        if predicate is None:
            return 0

        total = self.db.execute(
            select(func.count()).select_from(table).where(predicate)
        ).scalar() or 0

        if step.operation == StepOperation.DELETE_MATCHING:
            key = table.c[step.key_column]
            for child in step.children:
                child_table = self._table(child.table)
                total += self.db.execute(
                    select(func.count()).select_from(child_table).where(
                        child_table.c[child.column].in_(select(key).where(predicate))
                    )
                ).scalar() or 0
        return total
