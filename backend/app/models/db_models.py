"""
Oakline Admin - SQLAlchemy ORM Models
Relational store tables that hold principal data.

Foreign keys carry no ON DELETE action: the hosted store does not cascade,
so erasure order is owned by the erasure plan.
Every column that points at a principal is tagged with principal_ref().
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Float, DateTime, Text, JSON, ForeignKey, Boolean
from ..database import Base
from .erasure import principal_ref, ReferenceKind, ReferenceMatch


OWNING = principal_ref(ReferenceKind.OWNING)
OWNING_CONTACT = principal_ref(ReferenceKind.OWNING, ReferenceMatch.CONTACT)
NON_OWNING = principal_ref(ReferenceKind.NON_OWNING)


def _user_fk(nullable: bool = False) -> Column:
    return Column(String(36), ForeignKey("profiles.id"), nullable=nullable, index=True, info=OWNING)


def _admin_ref() -> Column:
    return Column(String(36), ForeignKey("admin_profiles.id"), nullable=True, info=NON_OWNING)


# =============================================================================
# PRINCIPAL MIRRORS
# =============================================================================

class ProfileDB(Base):
    """Customer profile mirroring an identity-provider user."""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, info=OWNING)  # Identity provider UUID
    email = Column(String(255), nullable=False, index=True)  # Not unique over time
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True)
    enrollment_completed = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AdminProfileDB(Base):
    """Admin profile mirroring an identity-provider user with console access."""
    __tablename__ = "admin_profiles"

    id = Column(String(36), primary_key=True, info=OWNING)
    email = Column(String(255), nullable=False, index=True)
    role = Column(String(50), nullable=False, default="admin")  # admin, manager, super_admin
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


# =============================================================================
# SESSIONS, SECURITY AND ACTIVITY
# =============================================================================

class UserSessionDB(Base):
    __tablename__ = "user_sessions"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    ip_address = Column(String(45))
    user_agent = Column(String(500))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    last_activity = Column(DateTime, default=datetime.utcnow)


class LoginHistoryDB(Base):
    __tablename__ = "login_history"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    ip_address = Column(String(45))
    success = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class PasswordHistoryDB(Base):
    __tablename__ = "password_history"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class UserSecuritySettingsDB(Base):
    __tablename__ = "user_security_settings"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    two_factor_enabled = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class NotificationDB(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    type = Column(String(50))
    title = Column(String(255))
    message = Column(Text)
    read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class AuditLogDB(Base):
    """Generic admin/user action log."""
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    action = Column(String(255), nullable=False)
    table_name = Column(String(100))
    old_data = Column(JSON)
    new_data = Column(JSON)
    created_at = Column(DateTime, default=datetime.utcnow)


class SystemLogDB(Base):
    __tablename__ = "system_logs"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk(nullable=True)
    level = Column(String(20), default="info")
    type = Column(String(50))
    message = Column(Text)
    details = Column(JSON)
    created_at = Column(DateTime, default=datetime.utcnow)


class EmailLogDB(Base):
    """Outbound email record, matched by recipient id or address."""
    __tablename__ = "email_logs"

    id = Column(String(36), primary_key=True)
    recipient_user_id = _user_fk(nullable=True)
    recipient_email = Column(String(255), nullable=False, index=True, info=OWNING_CONTACT)
    subject = Column(String(500))
    email_type = Column(String(100))
    status = Column(String(50), default="sent")
    created_at = Column(DateTime, default=datetime.utcnow)


class EnrollmentDB(Base):
    """Enrollment invitation, keyed by email before a profile exists."""
    __tablename__ = "enrollments"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), nullable=False, index=True, info=OWNING_CONTACT)
    token = Column(String(255))
    is_used = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)


# =============================================================================
# VERIFICATION AND CREDIT
# =============================================================================

class SelfieVerificationDB(Base):
    __tablename__ = "selfie_verifications"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    status = Column(String(50), default="pending")
    created_at = Column(DateTime, default=datetime.utcnow)


class UserIdDocumentDB(Base):
    __tablename__ = "user_id_documents"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    document_type = Column(String(50))
    front_url = Column(String(1000))
    back_url = Column(String(1000))
    status = Column(String(50), default="pending")
    reviewed_by = _admin_ref()
    reviewed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class CreditScoreDB(Base):
    __tablename__ = "credit_scores"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    score = Column(Integer)
    score_source = Column(String(100))
    updated_by = _admin_ref()
    created_at = Column(DateTime, default=datetime.utcnow)


# =============================================================================
# CRYPTO WALLETS
# =============================================================================

class UserCryptoWalletDB(Base):
    __tablename__ = "user_crypto_wallets"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    crypto_type = Column(String(20))
    network_type = Column(String(50))
    wallet_address = Column(String(255))
    created_at = Column(DateTime, default=datetime.utcnow)


class AdminAssignedWalletDB(Base):
    """Deposit wallet an admin assigned to a user."""
    __tablename__ = "admin_assigned_wallets"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    crypto_type = Column(String(20))
    network_type = Column(String(50))
    wallet_address = Column(String(255))
    assigned_by = _admin_ref()
    created_at = Column(DateTime, default=datetime.utcnow)


# =============================================================================
# APPLICATIONS AND ACCOUNTS
# =============================================================================

class ApplicationDB(Base):
    """Account-opening application, matched by applicant id or email."""
    __tablename__ = "applications"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk(nullable=True)
    email = Column(String(255), nullable=False, index=True, info=OWNING_CONTACT)
    first_name = Column(String(100))
    last_name = Column(String(100))
    application_status = Column(String(50), default="pending")
    reviewed_by = _admin_ref()
    created_at = Column(DateTime, default=datetime.utcnow)


class AccountRequestDB(Base):
    __tablename__ = "account_requests"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    application_id = Column(String(36), ForeignKey("applications.id"), nullable=True)
    account_type = Column(String(50))
    status = Column(String(50), default="pending")
    reviewed_by = _admin_ref()
    created_at = Column(DateTime, default=datetime.utcnow)


class AccountDB(Base):
    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    application_id = Column(String(36), ForeignKey("applications.id"), nullable=True)
    account_number = Column(String(20), nullable=False)
    account_type = Column(String(50), default="checking")
    balance = Column(Float, default=0.0)
    status = Column(String(50), default="pending")
    approved_by = _admin_ref()
    created_at = Column(DateTime, default=datetime.utcnow)


class TransactionDB(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    type = Column(String(50))
    amount = Column(Float, nullable=False)
    description = Column(String(500))
    status = Column(String(50), default="completed")
    created_at = Column(DateTime, default=datetime.utcnow)


class CryptoDepositDB(Base):
    __tablename__ = "crypto_deposits"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=True)
    crypto_type = Column(String(20))
    amount = Column(Float)
    status = Column(String(50), default="pending")
    approved_by = _admin_ref()
    created_at = Column(DateTime, default=datetime.utcnow)


class WithdrawalDB(Base):
    __tablename__ = "withdrawals"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    amount = Column(Float, nullable=False)
    status = Column(String(50), default="pending")
    processed_by = _admin_ref()
    created_at = Column(DateTime, default=datetime.utcnow)


class WireTransferDB(Base):
    __tablename__ = "wire_transfers"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    from_account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    amount = Column(Float, nullable=False)
    recipient_name = Column(String(255))
    status = Column(String(50), default="pending")
    processed_by = _admin_ref()
    created_at = Column(DateTime, default=datetime.utcnow)


# =============================================================================
# CARDS
# =============================================================================

class CardDB(Base):
    __tablename__ = "cards"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    card_number_last4 = Column(String(4))
    status = Column(String(50), default="active")
    created_at = Column(DateTime, default=datetime.utcnow)


class CardTransactionDB(Base):
    __tablename__ = "card_transactions"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    card_id = Column(String(36), ForeignKey("cards.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    merchant = Column(String(255))
    created_at = Column(DateTime, default=datetime.utcnow)


class CardApplicationDB(Base):
    __tablename__ = "card_applications"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=True)
    card_type = Column(String(50))
    status = Column(String(50), default="pending")
    reviewed_by = _admin_ref()
    created_at = Column(DateTime, default=datetime.utcnow)


# =============================================================================
# LOANS
# =============================================================================

class LoanDB(Base):
    __tablename__ = "loans"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=True)
    loan_type = Column(String(50))
    principal = Column(Float, nullable=False)
    status = Column(String(50), default="pending")
    approved_by = _admin_ref()
    created_at = Column(DateTime, default=datetime.utcnow)


class LoanPaymentDB(Base):
    __tablename__ = "loan_payments"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    loan_id = Column(String(36), ForeignKey("loans.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    status = Column(String(50), default="pending")
    processed_by = _admin_ref()
    created_at = Column(DateTime, default=datetime.utcnow)


class LoanCollateralDB(Base):
    """Collateral pledged against a loan. Reached only through the loan."""
    __tablename__ = "loan_collaterals"

    id = Column(String(36), primary_key=True)
    loan_id = Column(String(36), ForeignKey("loans.id"), nullable=False, index=True)
    collateral_type = Column(String(50))
    estimated_value = Column(Float)
    created_at = Column(DateTime, default=datetime.utcnow)


# =============================================================================
# SUPPORT CHAT
# =============================================================================

class ChatThreadDB(Base):
    __tablename__ = "chat_threads"

    id = Column(String(36), primary_key=True)
    user_id = _user_fk()
    subject = Column(String(255))
    status = Column(String(50), default="open")
    assigned_admin_id = _admin_ref()
    created_at = Column(DateTime, default=datetime.utcnow)


class ChatMessageDB(Base):
    """Message in a support thread. Reached only through the thread."""
    __tablename__ = "chat_messages"

    id = Column(String(36), primary_key=True)
    thread_id = Column(String(36), ForeignKey("chat_threads.id"), nullable=False, index=True)
    sender_type = Column(String(20))  # user, admin
    content = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)


# =============================================================================
# ERASURE AUDIT
# =============================================================================

class ErasureAuditLogDB(Base):
    """
    One record per erasure invocation.

    principal_id is kept as a plain string with no foreign key so the record
    survives the erasure it describes. The contact address is never stored.
    """
    __tablename__ = "erasure_audit_logs"

    id = Column(String(36), primary_key=True)
    principal_id = Column(String(36), nullable=True, index=True)
    kind = Column(String(20), nullable=True)
    overall_status = Column(String(20), nullable=False)
    identity_removed = Column(Boolean, default=False)
    failed_steps = Column(JSON, default=list)
    rows_affected = Column(Integer, default=0)
    performed_by = _admin_ref()
    created_at = Column(DateTime, default=datetime.utcnow)
