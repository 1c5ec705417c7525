"""
Error taxonomy shared by the stores, the lifecycle service and the handshake.

Routes translate these into HTTP status codes; nothing here is fatal to the
process.
"""


class EditDeskError(Exception):
    """Base class for every domain error."""


class ValidationError(EditDeskError):
    """Bad input: empty message, missing project id, unknown status."""


class NotFoundError(EditDeskError):
    """The targeted edit request does not exist."""

    def __init__(self, request_id: str):
        super().__init__(f"Edit request {request_id} not found")
        self.request_id = request_id


class PersistenceError(EditDeskError):
    """The underlying store rejected or failed the call."""


class ConfigurationError(EditDeskError):
    """No project context could be resolved for the frame."""

    def __init__(self, message: str, reason: str = "missing_project_id"):
        super().__init__(message)
        self.reason = reason
