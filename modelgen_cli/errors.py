"""Error types for modelgen-cli."""

from typing import Optional, Dict, Any


class ModelgenError(Exception):
    """Base exception for modelgen errors."""

    def __init__(self, message: str, code: str = "MODELGEN_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for structured output."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class CatalogAccessError(ModelgenError):
    """Error reading the database catalog.

    Raised by catalog readers and propagated unmodified by the inference
    engine; a run that hits one is aborted.
    """

    def __init__(self, message: str, code: str = "CATALOG_ACCESS_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details)


class CatalogConnectionError(CatalogAccessError):
    """Error connecting to the database."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CATALOG_CONNECTION_ERROR", details=details)


class CatalogQueryError(CatalogAccessError):
    """A catalog query failed or timed out."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CATALOG_QUERY_ERROR", details=details)


class ConfigurationError(ModelgenError):
    """Invalid or missing configuration."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIGURATION_ERROR", details=details)


class GenerationError(ModelgenError):
    """Error while rendering or writing generated source code."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="GENERATION_ERROR", details=details)
