"""
Owner Data-Erasure Services

Permanent removal of every record attached to a principal:
- ERASURE_PLAN / validate_plan: static ordered steps and their offline check
- OwnerResolver: canonical (principal_id, contact_address, kind)
- StepExecutor: one step, failure isolated
- ErasureOrchestrator: plan run + final identity removal
- OutcomeReporter: result -> status code and body
- ErasureAuditService: one audit record per invocation
"""

from .errors import ErasureError, OwnerNotFoundError
from .plan import ERASURE_PLAN, validate_plan
from .owner_resolver import OwnerResolver
from .step_executor import StepExecutor
from .orchestrator import ErasureOrchestrator
from .outcome_reporter import OutcomeReporter, ErasureResponse
from .audit_log import ErasureAuditService

__all__ = [
    'ErasureError',
    'OwnerNotFoundError',
    'ERASURE_PLAN',
    'validate_plan',
    'OwnerResolver',
    'StepExecutor',
    'ErasureOrchestrator',
    'OutcomeReporter',
    'ErasureResponse',
    'ErasureAuditService',
]
