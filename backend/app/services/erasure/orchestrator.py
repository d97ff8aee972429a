"""
Erasure Orchestrator

Resolves the owner, runs the full erasure plan through the step executor,
then removes the principal's identity as a separate, final phase.

Runs:
1. OwnerResolver.resolve() - not_found ends the run, no steps executed
2. StepExecutor.execute() for every plan step, in order, never aborting
3. IdentityProvider.remove_identity() exactly once, after every step

Identity removal is the one irrevocable operation. Its outcome is reported
on its own: a failure yields PARTIAL, never COMPLETE.
"""
from typing import List, Optional, Tuple
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...identity import IdentityProvider
from ...models.erasure import (
    ErasureResult,
    ErasureStatus,
    ErasureStep,
    ResolvedOwner,
    StepPreview,
)
from .errors import ErasureError, OwnerNotFoundError
from .owner_resolver import OwnerResolver
from .plan import ERASURE_PLAN
from .step_executor import StepExecutor

logger = logging.getLogger(__name__)


class ErasureOrchestrator:
    """
    Sequential, non-transactional erasure of one principal.

    Usage:
        orchestrator = ErasureOrchestrator(db, identity_provider)
        result = orchestrator.erase(principal_id="...")
    """

    def __init__(
        self,
        db: Session,
        identity_provider: IdentityProvider,
        plan: Tuple[ErasureStep, ...] = ERASURE_PLAN,
    ):
        self.db = db
        self.identity_provider = identity_provider
        self.plan = plan
        self.resolver = OwnerResolver(db)
        self.executor = StepExecutor(db)

    def resolve(
        self,
        principal_id: Optional[str] = None,
        contact_address: Optional[str] = None,
    ) -> Optional[ResolvedOwner]:
        """
        Resolve the owner, or None when no principal can be located.

        Raises:
            ValueError: neither identifier supplied
            ErasureError: the store could not be queried
        """
        try:
            return self.resolver.resolve(principal_id, contact_address)
        except OwnerNotFoundError as e:
            logger.info(f"Erasure target not found: {e}")
            return None
        except SQLAlchemyError as e:
            raise ErasureError(f"Owner resolution failed: {e}") from e

    def erase(
        self,
        principal_id: Optional[str] = None,
        contact_address: Optional[str] = None,
    ) -> ErasureResult:
        """Resolve and erase. NOT_FOUND when resolution yields no id."""
        owner = self.resolve(principal_id, contact_address)
        if owner is None:
            return ErasureResult.not_found(principal_id, contact_address)
        return self.erase_owner(owner)

    def erase_owner(self, owner: ResolvedOwner) -> ErasureResult:
        """
        Run every plan step for an already-resolved owner, then remove the
        identity.

        Step failures are collected, not raised. Identity removal is
        attempted once, after every step, whatever the step outcomes.
        """
        logger.info(
            f"Starting erasure of {owner.kind.value} {owner.principal_id} "
            f"({len(self.plan)} steps)"
        )

        step_results = [
            self.executor.execute(step, owner, index)
            for index, step in enumerate(self.plan)
        ]

        identity_removed, identity_error = self.remove_identity(owner.principal_id)

        result = ErasureResult(
            principal_id=owner.principal_id,
            contact_address=owner.contact_address,
            kind=owner.kind,
            overall_status=ErasureStatus.COMPLETE if identity_removed else ErasureStatus.PARTIAL,
            identity_removed=identity_removed,
            identity_error=identity_error,
            steps=step_results,
        )

        if result.errors:
            logger.warning(
                f"Erasure of {owner.principal_id}: {len(result.errors)} step(s) failed: "
                f"{[s.name for s in result.errors]}"
            )
        if identity_removed:
            logger.info(
                f"Erasure of {owner.principal_id} complete: {result.rows_affected} rows affected"
            )
        else:
            logger.warning(
                f"Erasure of {owner.principal_id} partial: dependent data removed, "
                f"identity retained ({identity_error})"
            )
        return result

    def remove_identity(self, principal_id: str) -> Tuple[bool, Optional[str]]:
        """
        Final phase on its own. Also used to retry only this phase after a
        PARTIAL erasure.

        Returns:
            Tuple of (identity_removed, error_detail)
        """
        try:
            self.identity_provider.remove_identity(principal_id)
        except Exception as e:
            logger.error(f"Identity removal failed for {principal_id}: {e}")
            return False, str(e)
        return True, None

    def preview(self, owner: ResolvedOwner) -> List[StepPreview]:
        """Dry run: rows each step would touch. Changes nothing."""
        return [
            self.executor.preview(step, owner, index)
            for index, step in enumerate(self.plan)
        ]
