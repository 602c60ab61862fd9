"""
Error taxonomy for the invoice pipeline.

Each error carries the HTTP status the API layer answers with. Classification
problems are deliberately absent: the classifier resolves them to a default
result instead of raising.
"""


class InvoiceAutomationError(Exception):
    """Base class for errors surfaced to callers"""

    status_code: int = 500

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ValidationError(InvoiceAutomationError):
    """Bad or missing input, rejected before any external call"""

    status_code = 400


class NotFoundError(InvoiceAutomationError):
    """Missing record or blob"""

    status_code = 404


class UpstreamServiceError(InvoiceAutomationError):
    """Document analysis, text generation, or storage call failed"""

    status_code = 500

    def __init__(self, message: str, details: str | None = None, service: str | None = None):
        super().__init__(message, details)
        self.service = service
