"""
Shared fixtures for erasure tests.

The store is an in-memory SQLite database with foreign keys enforced, so a
mis-ordered plan fails the same way it would against the hosted store.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from typing import Dict, Optional
from uuid import uuid4

import pytest
from sqlalchemy import create_engine, event, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.identity import IdentityProvider, IdentityProviderError
from app.models.db_models import (
    ProfileDB, AdminProfileDB,
    UserSessionDB, LoginHistoryDB, PasswordHistoryDB, UserSecuritySettingsDB,
    NotificationDB, AuditLogDB, SystemLogDB, EmailLogDB, EnrollmentDB,
    SelfieVerificationDB, UserIdDocumentDB, CreditScoreDB,
    UserCryptoWalletDB, AdminAssignedWalletDB,
    ApplicationDB, AccountRequestDB, AccountDB, TransactionDB,
    CryptoDepositDB, WithdrawalDB, WireTransferDB,
    CardDB, CardTransactionDB, CardApplicationDB,
    LoanDB, LoanPaymentDB, LoanCollateralDB,
    ChatThreadDB, ChatMessageDB,
)


# =============================================================================
# STORE
# =============================================================================

@pytest.fixture
def engine():
    """In-memory store shared across threads (TestClient runs the app elsewhere)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    """Database session bound to the in-memory store."""
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


# =============================================================================
# IDENTITY PROVIDER
# =============================================================================

class FakeIdentityProvider(IdentityProvider):
    """Records every removal call; optionally fails them all."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []
        self.removed = set()

    def remove_identity(self, principal_id: str) -> None:
        self.calls.append(principal_id)
        if self.fail:
            raise IdentityProviderError("Identity provider returned 503: unavailable")
        self.removed.add(principal_id)


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def failing_identity_provider():
    return FakeIdentityProvider(fail=True)


# =============================================================================
# DATA BUILDERS
# =============================================================================

def new_id() -> str:
    return str(uuid4())


def save(db, *rows):
    db.add_all(rows)
    db.flush()


def add_admin(db, role: str = "admin", email: Optional[str] = None, with_profile: bool = False) -> str:
    """Admin principal; optionally also a customer profile under the same id."""
    admin_id = new_id()
    email = email or f"admin-{admin_id[:8]}@oakline.com"
    save(db, AdminProfileDB(id=admin_id, email=email, role=role, is_active=True))
    if with_profile:
        save(db, ProfileDB(id=admin_id, email=email, first_name="Sam", last_name="Okafor"))
    db.commit()
    return admin_id


def add_customer(db, email: Optional[str] = None, admin_id: Optional[str] = None) -> Dict[str, str]:
    """
    Customer with rows in every owning table. admin_id, when given, is
    written into every non-owning column of those rows.
    """
    user_id = new_id()
    email = email or f"user-{user_id[:8]}@example.com"
    ids = {"user_id": user_id, "email": email}

    save(db, ProfileDB(id=user_id, email=email, first_name="Dana", last_name="Reyes", phone="5550100"))

    save(
        db,
        UserSessionDB(id=new_id(), user_id=user_id, ip_address="10.0.0.1"),
        LoginHistoryDB(id=new_id(), user_id=user_id, ip_address="10.0.0.1"),
        PasswordHistoryDB(id=new_id(), user_id=user_id, password_hash="x"),
        UserSecuritySettingsDB(id=new_id(), user_id=user_id, two_factor_enabled=True),
        NotificationDB(id=new_id(), user_id=user_id, title="Welcome"),
        AuditLogDB(id=new_id(), user_id=user_id, action="login", table_name="profiles"),
        SystemLogDB(id=new_id(), user_id=user_id, message="session started"),
        EmailLogDB(id=new_id(), recipient_user_id=user_id, recipient_email=email, subject="Welcome"),
        EmailLogDB(id=new_id(), recipient_user_id=None, recipient_email=email, subject="Application received"),
        EnrollmentDB(id=new_id(), email=email, token="tok", is_used=True),
        SelfieVerificationDB(id=new_id(), user_id=user_id),
        UserIdDocumentDB(id=new_id(), user_id=user_id, document_type="passport", reviewed_by=admin_id),
        CreditScoreDB(id=new_id(), user_id=user_id, score=712, updated_by=admin_id),
        UserCryptoWalletDB(id=new_id(), user_id=user_id, crypto_type="BTC"),
        AdminAssignedWalletDB(id=new_id(), user_id=user_id, crypto_type="USDT", assigned_by=admin_id),
    )

    application_id = new_id()
    save(db, ApplicationDB(id=application_id, user_id=user_id, email=email, reviewed_by=admin_id))
    account_id = new_id()
    save(
        db,
        AccountRequestDB(id=new_id(), user_id=user_id, application_id=application_id, reviewed_by=admin_id),
        AccountDB(id=account_id, user_id=user_id, application_id=application_id,
                  account_number="100200300", balance=2500.0, approved_by=admin_id),
    )

    card_id, loan_id, thread_id = new_id(), new_id(), new_id()
    save(
        db,
        TransactionDB(id=new_id(), user_id=user_id, account_id=account_id, type="deposit", amount=2500.0),
        CryptoDepositDB(id=new_id(), user_id=user_id, account_id=account_id, amount=0.1, approved_by=admin_id),
        WithdrawalDB(id=new_id(), user_id=user_id, account_id=account_id, amount=100.0, processed_by=admin_id),
        WireTransferDB(id=new_id(), user_id=user_id, from_account_id=account_id, amount=900.0, processed_by=admin_id),
        CardDB(id=card_id, user_id=user_id, account_id=account_id, card_number_last4="4242"),
        CardApplicationDB(id=new_id(), user_id=user_id, account_id=account_id, reviewed_by=admin_id),
        LoanDB(id=loan_id, user_id=user_id, account_id=account_id, principal=10000.0, approved_by=admin_id),
        ChatThreadDB(id=thread_id, user_id=user_id, subject="Card declined", assigned_admin_id=admin_id),
    )
    save(
        db,
        CardTransactionDB(id=new_id(), user_id=user_id, card_id=card_id, amount=42.0),
        LoanPaymentDB(id=new_id(), user_id=user_id, loan_id=loan_id, amount=300.0, processed_by=admin_id),
        LoanCollateralDB(id=new_id(), loan_id=loan_id, collateral_type="vehicle"),
        ChatMessageDB(id=new_id(), thread_id=thread_id, sender_type="user", content="Help"),
        ChatMessageDB(id=new_id(), thread_id=thread_id, sender_type="admin", content="On it"),
    )
    db.commit()

    ids.update(account_id=account_id, card_id=card_id, loan_id=loan_id, thread_id=thread_id)
    return ids


# =============================================================================
# ASSERTION HELPERS
# =============================================================================

def owned_rows(db, principal_id: str, contact_address: Optional[str]) -> Dict[str, int]:
    """Count rows in every owning-tagged column that still point at the principal."""
    counts = {}
    for table in Base.metadata.sorted_tables:
        for column in table.columns:
            if column.info.get("principal_ref") != "owning":
                continue
            value = contact_address if column.info.get("match") == "contact" else principal_id
            if value is None:
                continue
            n = db.execute(select(func.count()).select_from(table).where(column == value)).scalar()
            if n:
                counts[f"{table.name}.{column.name}"] = n
    return counts


def non_owning_rows(db, principal_id: str) -> Dict[str, int]:
    """Count rows whose non-owning columns still point at the principal."""
    counts = {}
    for table in Base.metadata.sorted_tables:
        for column in table.columns:
            if column.info.get("principal_ref") != "non_owning":
                continue
            n = db.execute(select(func.count()).select_from(table).where(column == principal_id)).scalar()
            if n:
                counts[f"{table.name}.{column.name}"] = n
    return counts
