"""
Oakline Admin - Admin Router
Principal lookup, erasure preview, erasure, identity retry and erasure audit.
Every route requires an active admin profile.

Routes that run the erasure plan or call the identity provider are plain
def so FastAPI runs them in its thread pool.
"""
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, model_validator
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import require_admin, SUPER_ADMIN_ROLE
from ..identity import IdentityProvider, get_identity_provider
from ..models.db_models import AdminProfileDB, ProfileDB
from ..models.erasure import ErasureResult, PrincipalKind
from ..services.erasure import (
    ErasureAuditService,
    ErasureOrchestrator,
    OutcomeReporter,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class PrincipalRequest(BaseModel):
    """Identifies a principal by id, contact address, or both."""
    principal_id: Optional[str] = None
    contact_address: Optional[str] = None

    @model_validator(mode="after")
    def require_identifier(self):
        self.principal_id = (self.principal_id or "").strip() or None
        self.contact_address = (self.contact_address or "").strip() or None
        if not self.principal_id and not self.contact_address:
            raise ValueError("principal_id or contact_address is required")
        return self


class IdentityRemovalRequest(BaseModel):
    principal_id: str


class PrincipalLookupResponse(BaseModel):
    """Resolved principal with mirror profile details."""
    principal_id: str
    contact_address: Optional[str] = None
    kind: str
    profile_found: bool
    ambiguous: bool
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    created_at: Optional[str] = None


class StepPreviewItem(BaseModel):
    step_index: int
    name: str
    table: str
    operation: str
    reference: str
    rows: int
    error: Optional[str] = None


class ErasurePreviewResponse(BaseModel):
    """Rows each erasure step would touch."""
    principal_id: str
    contact_address: Optional[str] = None
    kind: str
    total_rows: int
    steps: List[StepPreviewItem]


class ErasureAuditItem(BaseModel):
    id: str
    principal_id: Optional[str] = None
    kind: Optional[str] = None
    overall_status: str
    identity_removed: bool
    rows_affected: int
    failed_steps: list
    performed_by: Optional[str] = None
    created_at: str


class ErasureAuditResponse(BaseModel):
    """Paginated erasure audit log."""
    entries: List[ErasureAuditItem]
    total: int
    page: int
    page_size: int


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.post("/principals/lookup", response_model=PrincipalLookupResponse)
async def lookup_principal(
    request: PrincipalRequest,
    db: Session = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    admin: AdminProfileDB = Depends(require_admin)
):
    """
    Find a principal by id first, then by contact address.
    """
    orchestrator = ErasureOrchestrator(db, identity_provider)
    owner = orchestrator.resolve(request.principal_id, request.contact_address)
    if owner is None or not owner.profile_found:
        raise HTTPException(status_code=404, detail="Principal not found")

    profile = db.query(ProfileDB).filter(ProfileDB.id == owner.principal_id).first()
    admin_profile = db.query(AdminProfileDB).filter(AdminProfileDB.id == owner.principal_id).first()
    mirror = profile or admin_profile

    return PrincipalLookupResponse(
        principal_id=owner.principal_id,
        contact_address=owner.contact_address,
        kind=owner.kind.value,
        profile_found=owner.profile_found,
        ambiguous=owner.ambiguous,
        first_name=profile.first_name if profile else None,
        last_name=profile.last_name if profile else None,
        role=admin_profile.role if admin_profile else None,
        created_at=mirror.created_at.isoformat() if mirror and mirror.created_at else None,
    )


@router.post("/principals/erasure/preview", response_model=ErasurePreviewResponse)
def preview_erasure(
    request: PrincipalRequest,
    db: Session = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    admin: AdminProfileDB = Depends(require_admin)
):
    """
    Dry run: count the rows every erasure step would delete or nullify.
    Nothing is changed.
    """
    orchestrator = ErasureOrchestrator(db, identity_provider)
    owner = orchestrator.resolve(request.principal_id, request.contact_address)
    if owner is None:
        raise HTTPException(status_code=404, detail="Principal not found")

    previews = orchestrator.preview(owner)

    return ErasurePreviewResponse(
        principal_id=owner.principal_id,
        contact_address=owner.contact_address,
        kind=owner.kind.value,
        total_rows=sum(p.rows for p in previews),
        steps=[
            StepPreviewItem(
                step_index=p.step_index,
                name=p.name,
                table=p.table,
                operation=p.operation.value,
                reference=p.reference.value,
                rows=p.rows,
                error=p.error_detail,
            )
            for p in previews
        ],
    )


@router.delete("/principals")
def erase_principal(
    request: PrincipalRequest,
    db: Session = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    admin: AdminProfileDB = Depends(require_admin)
):
    """
    Permanently erase a principal and every dependent record.

    200 complete, 207 partial (identity retained), 404 not found,
    500 orchestrator failure. Only super admins may erase an admin.
    """
    orchestrator = ErasureOrchestrator(db, identity_provider)
    reporter = OutcomeReporter()
    # Read before the run: the acting admin's own rows may be erased
    admin_id, admin_role = admin.id, admin.role

    try:
        owner = orchestrator.resolve(request.principal_id, request.contact_address)
        if owner is None:
            result = ErasureResult.not_found(request.principal_id, request.contact_address)
        else:
            if owner.kind == PrincipalKind.ADMIN and admin_role != SUPER_ADMIN_ROLE:
                raise HTTPException(
                    status_code=403,
                    detail="Only super admins can erase admin principals"
                )
            logger.info(f"Admin {admin_id} erasing {owner.kind.value} {owner.principal_id}")
            result = orchestrator.erase_owner(owner)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Erasure failed for {request.principal_id or request.contact_address}")
        response = reporter.report_failure(e)
        return JSONResponse(status_code=response.status_code, content=response.body)

    ErasureAuditService(db).record(result, performed_by=admin_id)

    response = reporter.report(result)
    return JSONResponse(status_code=response.status_code, content=response.body)


@router.post("/principals/identity/remove")
def remove_identity(
    request: IdentityRemovalRequest,
    db: Session = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    admin: AdminProfileDB = Depends(require_admin)
):
    """
    Retry only the final identity-removal phase after a partial erasure.
    """
    orchestrator = ErasureOrchestrator(db, identity_provider)
    removed, error = orchestrator.remove_identity(request.principal_id)
    if not removed:
        return JSONResponse(
            status_code=502,
            content={"error": "identity removal failed", "details": error},
        )

    logger.info(f"Admin {admin.id} removed identity {request.principal_id}")
    return {"success": True, "principal_id": request.principal_id}


@router.get("/erasure/audit", response_model=ErasureAuditResponse)
async def get_erasure_audit(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: AdminProfileDB = Depends(require_admin)
):
    """
    Paginated erasure audit log, most recent first.
    """
    entries, total = ErasureAuditService(db).list_entries(page=page, page_size=page_size)

    return ErasureAuditResponse(
        entries=[
            ErasureAuditItem(
                id=e.id,
                principal_id=e.principal_id,
                kind=e.kind,
                overall_status=e.overall_status,
                identity_removed=bool(e.identity_removed),
                rows_affected=e.rows_affected or 0,
                failed_steps=e.failed_steps or [],
                performed_by=e.performed_by,
                created_at=e.created_at.isoformat() if e.created_at else "",
            )
            for e in entries
        ],
        total=total,
        page=page,
        page_size=page_size
    )
