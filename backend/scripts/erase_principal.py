#!/usr/bin/env python3
"""
Principal Erasure Script
Erases a principal from a shell, or previews what an erasure would touch.

Usage:
    python -m scripts.erase_principal [--id PRINCIPAL_ID] [--email ADDRESS] [--dry-run]
    python -m scripts.erase_principal --id PRINCIPAL_ID --identity-only

Exit codes:
    0 complete (or dry run / identity removed)
    1 principal not found or bad arguments
    2 partial: dependent data removed, identity retained
"""
import argparse
import logging
import sys
import os

# Add the parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import SessionLocal
from app.identity import get_identity_provider
from app.models.erasure import ErasureStatus
from app.services.erasure import ErasureOrchestrator, ErasureAuditService

EXIT_CODES = {
    ErasureStatus.COMPLETE: 0,
    ErasureStatus.NOT_FOUND: 1,
    ErasureStatus.PARTIAL: 2,
}


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Permanently erase a principal.")
    parser.add_argument("--id", dest="principal_id", help="Principal id (identity provider UUID)")
    parser.add_argument("--email", dest="contact_address", help="Contact address")
    parser.add_argument("--dry-run", action="store_true", help="Count rows per step, change nothing")
    parser.add_argument("--identity-only", action="store_true", help="Retry only the identity removal")
    args = parser.parse_args(argv)
    if not args.principal_id and not args.contact_address:
        parser.error("--id or --email is required")
    if args.identity_only and not args.principal_id:
        parser.error("--identity-only requires --id")
    return args


def run(args) -> int:
    db = SessionLocal()
    try:
        orchestrator = ErasureOrchestrator(db, get_identity_provider())

        if args.identity_only:
            removed, error = orchestrator.remove_identity(args.principal_id)
            print("Identity removed." if removed else f"Identity removal failed: {error}")
            return 0 if removed else 2

        owner = orchestrator.resolve(args.principal_id, args.contact_address)
        if owner is None:
            print("Principal not found.")
            return 1

        if args.dry_run:
            previews = orchestrator.preview(owner)
            print(f"Erasure preview for {owner.kind.value} {owner.principal_id} ({owner.contact_address})")
            for p in previews:
                status = f"ERROR {p.error_detail}" if p.error_detail else p.rows
                print(f"  [{p.step_index:2d}] {p.name:<40} {status}")
            print(f"  Total rows: {sum(p.rows for p in previews)}")
            return 0

        result = orchestrator.erase_owner(owner)
        ErasureAuditService(db).record(result, performed_by=None)

        print(f"Erasure {result.overall_status.value}: {result.rows_affected} rows affected")
        for failed in result.failed_steps():
            print(f"  step {failed['step_index']} ({failed['name']}) failed: {failed['error']}")
        if not result.identity_removed:
            print(f"  Identity retained: {result.identity_error}")
            print(f"  Retry with: --id {result.principal_id} --identity-only")
        return EXIT_CODES[result.overall_status]
    finally:
        db.close()


def main():
    logging.basicConfig(level=logging.INFO)
    sys.exit(run(parse_args()))


if __name__ == "__main__":
    main()
