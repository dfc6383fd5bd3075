"""
Custom Exceptions for TradeGenie

Hierarchical exception classes for the trial gate and its API layer.
"""

from typing import Optional, Dict, Any


class TradeGenieError(Exception):
    """Base exception for all TradeGenie errors."""
    
    def __init__(
        self, 
        message: str, 
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ValidationError(TradeGenieError):
    """Raised when input validation fails."""
    
    def __init__(
        self,
        message: str,
        fields: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if fields:
            details["fields"] = fields
        super().__init__(message, details, original_error)


class ConfigurationError(TradeGenieError):
    """Raised when configuration is missing or invalid."""
    
    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)
