"""
Domain errors raised by the settlement engine and subtrip lifecycle.

Every error carries an HTTP status code so the API layer can map it
without knowing the individual classes.
"""
from typing import Any, Dict, List, Optional


class FleetLedgerError(Exception):
    """Base class for all domain errors."""
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(FleetLedgerError):
    """Missing or malformed input, including missing tax inputs."""
    status_code = 400


class NotFoundError(FleetLedgerError):
    """Counterparty, route, vehicle or document does not exist for the tenant."""
    status_code = 404


class PartialEligibilityError(FleetLedgerError):
    """Requested subtrip batch is not fully eligible for the claim."""
    status_code = 400

    def __init__(self, message: str, failed_subtrips: List[int]):
        super().__init__(message, {"failed_subtrips": list(failed_subtrips)})
        self.failed_subtrips = list(failed_subtrips)


class ConflictError(FleetLedgerError):
    """Claim field already set, or the record is in a state that forbids the action."""
    status_code = 409


class LockedError(FleetLedgerError):
    """Mutation attempted on a billed subtrip outside the reversal path."""
    status_code = 423


class OverpaymentError(FleetLedgerError):
    """Payment exceeds the outstanding balance."""
    status_code = 400


class BatchItemError(FleetLedgerError):
    """One payload of a bulk request failed; the whole batch was rolled back."""

    def __init__(self, index: int, error: FleetLedgerError):
        details = {"index": index, "error": type(error).__name__}
        details.update(error.details)
        super().__init__(f"Payload #{index + 1}: {error.message}", details)
        self.index = index
        self.error = error
        self.status_code = error.status_code
