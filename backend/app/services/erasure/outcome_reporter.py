"""
Outcome Reporter

Maps an ErasureResult to the caller-visible status code and body.
Never reports full erasure while the identity record still exists.
"""
from dataclasses import dataclass
from typing import Any, Dict

from ...models.erasure import ErasureResult, ErasureStatus


@dataclass
class ErasureResponse:
    """Status code and JSON body returned to the caller."""
    status_code: int
    body: Dict[str, Any]


class OutcomeReporter:
    """
    complete  -> 200
    partial   -> 207, enough detail to retry identity removal alone
    not_found -> 404
    failure   -> 500
    """

    PARTIAL_MESSAGE = (
        "Dependent data was removed but the identity record persists. "
        "Retry identity removal for this principal id."
    )

    def report(self, result: ErasureResult) -> ErasureResponse:
        if result.overall_status == ErasureStatus.NOT_FOUND:
            return ErasureResponse(404, {"error": "principal not found"})

        if result.overall_status == ErasureStatus.COMPLETE:
            return ErasureResponse(200, {
                "success": True,
                "principal_id": result.principal_id,
                "contact_address": result.contact_address,
                "failed_steps": result.failed_steps(),
            })

        return ErasureResponse(207, {
            "success": False,
            "partial": True,
            "principal_id": result.principal_id,
            "contact_address": result.contact_address,
            "message": self.PARTIAL_MESSAGE,
            "identity_error": result.identity_error,
            "failed_steps": result.failed_steps(),
        })

    def report_failure(self, error: Exception) -> ErasureResponse:
        return ErasureResponse(500, {
            "error": "Internal server error",
            "details": str(error),
        })
