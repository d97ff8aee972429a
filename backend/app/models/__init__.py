"""Oakline Admin - Data Models"""
from .erasure import (
    # Enums
    PrincipalKind, ReferenceKind, ReferenceMatch, StepOperation, PlanGroup,
    StepOutcome, ErasureStatus,
    # Plan
    ChildLink, ErasureStep,
    # Owner and results
    ResolvedOwner, StepResult, StepPreview, ErasureResult,
)

__all__ = [
    "PrincipalKind", "ReferenceKind", "ReferenceMatch", "StepOperation", "PlanGroup",
    "StepOutcome", "ErasureStatus",
    "ChildLink", "ErasureStep",
    "ResolvedOwner", "StepResult", "StepPreview", "ErasureResult",
]
