from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for errors surfaced to API clients as {"message", "details"}."""
    def __init__(self, message: str, status_code: int = 500, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        return {"message": self.message, "details": self.details}

class SchedulerError(AppError):
    """Raised when scheduling input cannot be turned into a solvable problem."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=400, details=details)

class ConfigurationError(AppError):
    """Raised when a setting holds a value the engine cannot use."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=500, details=details)
