from typing import Optional, Any, List

class MediathequeError(Exception):
    """
    Base exception for the Médiathèque application.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class ResourceNotFoundError(MediathequeError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)

class AuthenticationError(MediathequeError):
    """
    Raised when authentication fails or no session is present.
    """
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)

class AuthorizationError(MediathequeError):
    """
    Raised when an authenticated user lacks the required role.
    """
    def __init__(self, message: str = "Administrator access required", details: Optional[Any] = None):
        super().__init__(message, code="FORBIDDEN", status_code=403, details=details)

class ValidationError(MediathequeError):
    """
    Raised when input validation fails.
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=400, details=details)

class ConflictError(MediathequeError):
    """
    Raised when a resource already exists (e.g. duplicate email).
    """
    def __init__(self, message: str = "Resource already exists", details: Optional[Any] = None):
        super().__init__(message, code="CONFLICT", status_code=400, details=details)

class StoreUnavailableError(MediathequeError):
    """
    Raised when the persistent store fails during an operation.

    ``state`` is "failed" when nothing was written and "unknown" when some
    writes of a multi-step operation were already applied.
    """
    def __init__(
        self,
        message: str = "Store unavailable",
        state: str = "failed",
        applied_steps: Optional[List[str]] = None,
    ):
        self.state = state
        self.applied_steps = list(applied_steps or [])
        super().__init__(
            message,
            code="STORE_UNAVAILABLE",
            status_code=503,
            details={"state": state, "applied_steps": self.applied_steps},
        )

class LedgerInvariantError(MediathequeError):
    """
    Raised when loan bookkeeping is found in a state that should be impossible.
    """
    def __init__(self, message: str = "Loan ledger invariant violated", details: Optional[Any] = None):
        super().__init__(message, code="INVARIANT_VIOLATION", status_code=500, details=details)
