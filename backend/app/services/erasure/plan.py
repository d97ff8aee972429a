"""
Erasure Plan

Static, ordered catalogue of the steps that remove or neutralize every
reference to a principal. The store does not cascade, so the order below is
the integrity mechanism:

1. Leaf owning entities
2. Owning parents, their owning children stepped first
3. Multi-hop entities (intermediate ids -> grandchildren -> intermediate rows)
4. Non-owning columns nulled, after every owning deletion
5. The principal's mirror rows

Identity-provider removal is not a step. The orchestrator runs it as its
own phase after the last step here.

validate_plan() checks the order against the ORM metadata; it runs in
tests, not on the request path.
"""

from typing import Dict, Iterable, List, Set, Tuple

from sqlalchemy import MetaData

from ...models.erasure import (
    ChildLink,
    ErasureStep,
    PlanGroup,
    ReferenceKind,
    ReferenceMatch,
    StepOperation,
)


def _delete(name: str, table: str, group: PlanGroup, *id_columns: str,
            contact_columns: Tuple[str, ...] = (),
            children: Tuple[ChildLink, ...] = ()) -> ErasureStep:
    return ErasureStep(
        name=name,
        table=table,
        group=group,
        operation=StepOperation.DELETE_MATCHING,
        reference=ReferenceKind.OWNING,
        id_columns=tuple(id_columns),
        contact_columns=contact_columns,
        children=children,
    )


def _nullify(table: str, column: str) -> ErasureStep:
    return ErasureStep(
        name=f"nullify_{table}_{column}",
        table=table,
        group=PlanGroup.NON_OWNING,
        operation=StepOperation.NULLIFY_COLUMN,
        reference=ReferenceKind.NON_OWNING,
        id_columns=(column,),
    )


LEAF = PlanGroup.LEAF
PARENT = PlanGroup.PARENT
MULTI_HOP = PlanGroup.MULTI_HOP


ERASURE_PLAN: Tuple[ErasureStep, ...] = (
    # -------------------------------------------------------------------------
    # 1. Leaf owning entities
    # -------------------------------------------------------------------------
    _delete("user_sessions", "user_sessions", LEAF, "user_id"),
    _delete("login_history", "login_history", LEAF, "user_id"),
    _delete("password_history", "password_history", LEAF, "user_id"),
    _delete("user_security_settings", "user_security_settings", LEAF, "user_id"),
    _delete("notifications", "notifications", LEAF, "user_id"),
    _delete("audit_logs", "audit_logs", LEAF, "user_id"),
    _delete("system_logs", "system_logs", LEAF, "user_id"),
    _delete("email_logs", "email_logs", LEAF, "recipient_user_id",
            contact_columns=("recipient_email",)),
    _delete("enrollments", "enrollments", LEAF, contact_columns=("email",)),
    _delete("selfie_verifications", "selfie_verifications", LEAF, "user_id"),
    _delete("user_id_documents", "user_id_documents", LEAF, "user_id"),
    _delete("credit_scores", "credit_scores", LEAF, "user_id"),
    _delete("user_crypto_wallets", "user_crypto_wallets", LEAF, "user_id"),
    _delete("admin_assigned_wallets", "admin_assigned_wallets", LEAF, "user_id"),

    # -------------------------------------------------------------------------
    # 2. Children of cards, accounts and loans
    # -------------------------------------------------------------------------
    _delete("card_transactions", "card_transactions", PARENT, "user_id"),
    _delete("cards", "cards", PARENT, "user_id"),
    _delete("card_applications", "card_applications", PARENT, "user_id"),
    _delete("transactions", "transactions", PARENT, "user_id"),
    _delete("crypto_deposits", "crypto_deposits", PARENT, "user_id"),
    _delete("withdrawals", "withdrawals", PARENT, "user_id"),
    _delete("wire_transfers", "wire_transfers", PARENT, "user_id"),
    _delete("loan_payments", "loan_payments", PARENT, "user_id"),

    # -------------------------------------------------------------------------
    # 3. Multi-hop: grandchildren reachable only through the owner's rows
    # -------------------------------------------------------------------------
    _delete("chat_threads", "chat_threads", MULTI_HOP, "user_id",
            children=(ChildLink("chat_messages", "thread_id"),)),
    _delete("loans", "loans", MULTI_HOP, "user_id",
            children=(ChildLink("loan_collaterals", "loan_id"),)),

    # Parents of the entities above; loans reference accounts
    _delete("accounts", "accounts", PARENT, "user_id"),
    _delete("account_requests", "account_requests", PARENT, "user_id"),
    _delete("applications", "applications", PARENT, "user_id",
            contact_columns=("email",)),

    # -------------------------------------------------------------------------
    # 4. Non-owning references: the row stays, the column is nulled
    # -------------------------------------------------------------------------
    _nullify("user_id_documents", "reviewed_by"),
    _nullify("credit_scores", "updated_by"),
    _nullify("admin_assigned_wallets", "assigned_by"),
    _nullify("applications", "reviewed_by"),
    _nullify("account_requests", "reviewed_by"),
    _nullify("accounts", "approved_by"),
    _nullify("card_applications", "reviewed_by"),
    _nullify("crypto_deposits", "approved_by"),
    _nullify("withdrawals", "processed_by"),
    _nullify("wire_transfers", "processed_by"),
    _nullify("loans", "approved_by"),
    _nullify("loan_payments", "processed_by"),
    _nullify("chat_threads", "assigned_admin_id"),
    _nullify("erasure_audit_logs", "performed_by"),

    # -------------------------------------------------------------------------
    # 5. Mirror rows
    # -------------------------------------------------------------------------
    _delete("admin_profiles", "admin_profiles", PlanGroup.MIRROR, "id"),
    _delete("profiles", "profiles", PlanGroup.MIRROR, "id"),
)


# =============================================================================
# VALIDATION
# =============================================================================

def _steps_touching(plan: Tuple[ErasureStep, ...], table: str, column: str) -> List[int]:
    """Indexes of steps that clear rows or the column of `table` referencing a parent."""
    indexes = []
    for index, step in enumerate(plan):
        if step.table == table and step.operation == StepOperation.DELETE_MATCHING:
            indexes.append(index)
        elif step.table == table and step.nullified_column == column:
            indexes.append(index)
    return indexes


def _hop_owner(plan: Tuple[ErasureStep, ...], child_table: str, parent_table: str) -> bool:
    return any(
        step.table == parent_table and any(c.table == child_table for c in step.children)
        for step in plan
    )


def _tagged_columns(metadata: MetaData) -> Iterable[Tuple[str, str, Dict[str, str]]]:
    for table in metadata.sorted_tables:
        for column in table.columns:
            if "principal_ref" in column.info:
                yield table.name, column.name, column.info


def validate_plan(plan: Tuple[ErasureStep, ...], metadata: MetaData) -> List[str]:
    """
    Check a plan against the table metadata.

    Verifies:
    - every step names a known table and known columns
    - edge kind matches the operation (owning deletes, non-owning nullifies)
    - totality: each tagged principal column is covered by exactly one step
      of the matching edge kind and match type
    - integrity order: for each foreign key C.col -> P, every step clearing
      C runs before the step deleting from P (children handled inside the
      P step are exempt)
    - nullifications follow all owning deletions; mirror rows come last

    Returns:
        List of human-readable violations; empty when the plan is valid.
    """
    violations: List[str] = []
    tables = metadata.tables

    # Structure and edge kind
    for index, step in enumerate(plan):
        table = tables.get(step.table)
        if table is None:
            violations.append(f"step {index} ({step.name}): unknown table '{step.table}'")
            continue
        for column in step.columns:
            if column not in table.c:
                violations.append(f"step {index} ({step.name}): unknown column '{step.table}.{column}'")
        for child in step.children:
            child_table = tables.get(child.table)
            if child_table is None or child.column not in child_table.c:
                violations.append(f"step {index} ({step.name}): unknown child '{child.table}.{child.column}'")
        if step.operation == StepOperation.NULLIFY_COLUMN:
            if step.reference != ReferenceKind.NON_OWNING:
                violations.append(f"step {index} ({step.name}): nullify step must be non-owning")
            if len(step.id_columns) != 1 or step.contact_columns or step.children:
                violations.append(f"step {index} ({step.name}): nullify step must name exactly one column")
        elif step.reference != ReferenceKind.OWNING:
            violations.append(f"step {index} ({step.name}): delete step must be owning")
        if not step.columns:
            violations.append(f"step {index} ({step.name}): no predicate columns")

    # Totality
    for table_name, column_name, info in _tagged_columns(metadata):
        covering = []
        for index, step in enumerate(plan):
            if step.table != table_name:
                continue
            if column_name in step.id_columns:
                covering.append((index, step, ReferenceMatch.ID.value))
            elif column_name in step.contact_columns:
                covering.append((index, step, ReferenceMatch.CONTACT.value))
        if len(covering) != 1:
            violations.append(
                f"{table_name}.{column_name}: covered by {len(covering)} steps, expected exactly 1"
            )
            continue
        index, step, match = covering[0]
        if step.reference.value != info["principal_ref"]:
            violations.append(
                f"{table_name}.{column_name}: tagged {info['principal_ref']} "
                f"but step {index} ({step.name}) is {step.reference.value}"
            )
        if match != info.get("match", ReferenceMatch.ID.value):
            violations.append(
                f"{table_name}.{column_name}: tagged match '{info.get('match')}' "
                f"but step {index} ({step.name}) matches by '{match}'"
            )

    # Integrity order
    deleting: Dict[str, List[int]] = {}
    for index, step in enumerate(plan):
        if step.operation == StepOperation.DELETE_MATCHING:
            deleting.setdefault(step.table, []).append(index)

    for table in metadata.sorted_tables:
        for fk in table.foreign_keys:
            parent = fk.column.table.name
            child, column = table.name, fk.parent.name
            if parent == child or parent not in deleting:
                continue
            if _hop_owner(plan, child, parent):
                continue
            touching = _steps_touching(plan, child, column)
            if not touching:
                violations.append(
                    f"{child}.{column} -> {parent}: no step clears the reference"
                )
                continue
            parent_index = min(deleting[parent])
            for index in touching:
                if index >= parent_index:
                    violations.append(
                        f"{child}.{column} -> {parent}: step {index} ({plan[index].name}) "
                        f"runs after step {parent_index} ({plan[parent_index].name})"
                    )

    # Phase order
    seen_groups: Set[PlanGroup] = set()
    for index, step in enumerate(plan):
        if step.group <= PlanGroup.MULTI_HOP and (
            PlanGroup.NON_OWNING in seen_groups or PlanGroup.MIRROR in seen_groups
        ):
            violations.append(f"step {index} ({step.name}): owning deletion after nullification phase")
        if step.group == PlanGroup.NON_OWNING and PlanGroup.MIRROR in seen_groups:
            violations.append(f"step {index} ({step.name}): nullification after mirror rows")
        seen_groups.add(step.group)

    return violations
