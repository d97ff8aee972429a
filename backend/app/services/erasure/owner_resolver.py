"""
Owner Resolver

Resolves a principal id and/or contact address to the canonical owner an
erasure runs against. Read-only.
"""
from datetime import datetime
from typing import Dict, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from ...models.db_models import ProfileDB, AdminProfileDB
from ...models.erasure import PrincipalKind, ResolvedOwner
from .errors import OwnerNotFoundError

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class OwnerResolver:
    """
    Looks up whichever of (principal_id, contact_address) is missing.

    - principal_id only, no mirror row: proceeds with contact_address=None
      (the principal may still own rows elsewhere)
    - contact_address only, no mirror row: OwnerNotFoundError
    - contact_address matching several principals across profiles and
      admin_profiles: most recent wins, flagged
    """

    def __init__(self, db: Session):
        self.db = db

    def resolve(
        self,
        principal_id: Optional[str] = None,
        contact_address: Optional[str] = None,
    ) -> ResolvedOwner:
        principal_id = _clean(principal_id)
        contact_address = _clean(contact_address)

        if not principal_id and not contact_address:
            raise ValueError("principal_id or contact_address is required")

        if principal_id:
            return self._resolve_by_id(principal_id, contact_address)
        return self._resolve_by_contact(contact_address)

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def _resolve_by_id(self, principal_id: str, contact_address: Optional[str]) -> ResolvedOwner:
        admin = self.db.query(AdminProfileDB).filter(AdminProfileDB.id == principal_id).first()
        profile = self.db.query(ProfileDB).filter(ProfileDB.id == principal_id).first()

        kind = PrincipalKind.ADMIN if admin else PrincipalKind.USER
        if contact_address is None:
            mirror = profile or admin
            contact_address = mirror.email if mirror else None

        if not profile and not admin:
            logger.info(f"No profile row for principal {principal_id}, resolving by id alone")

        return ResolvedOwner(
            principal_id=principal_id,
            contact_address=contact_address,
            kind=kind,
            profile_found=bool(profile or admin),
        )

    def _resolve_by_contact(self, contact_address: str) -> ResolvedOwner:
        profiles = self.db.query(ProfileDB).filter(ProfileDB.email == contact_address).all()
        admins = self.db.query(AdminProfileDB).filter(AdminProfileDB.email == contact_address).all()

        # Newest row per principal; an admin with a customer profile shares one id
        candidates: Dict[str, datetime] = {}
        for row in profiles + admins:
            created_at = row.created_at or datetime.min
            if row.id not in candidates or created_at > candidates[row.id]:
                candidates[row.id] = created_at

        if not candidates:
            raise OwnerNotFoundError(f"No principal found for contact address '{contact_address}'")

        ids = sorted(candidates, key=candidates.get, reverse=True)
        principal_id, ambiguous = self._most_recent(contact_address, ids)

        is_admin = any(a.id == principal_id for a in admins) or self.db.query(AdminProfileDB).filter(
            AdminProfileDB.id == principal_id
        ).first() is not None

        return ResolvedOwner(
            principal_id=principal_id,
            contact_address=contact_address,
            kind=PrincipalKind.ADMIN if is_admin else PrincipalKind.USER,
            profile_found=True,
            ambiguous=ambiguous,
        )

    @staticmethod
    def _most_recent(contact_address: str, ids: list) -> Tuple[str, bool]:
        if len(ids) > 1:
            logger.warning(
                f"Contact address '{contact_address}' matches {len(ids)} profiles, "
                f"using most recent {ids[0]}"
            )
        return ids[0], len(ids) > 1
