"""Core infrastructure components."""
from .circuit_breaker import CircuitBreaker, CircuitState
from .exceptions import (
    AppException,
    AuthenticationError,
    CandidateSourceError,
    CircuitBreakerOpenError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    "AppException",
    "AuthenticationError",
    "CandidateSourceError",
    "CircuitBreaker",
    "CircuitBreakerOpenError",
    "CircuitState",
    "InsufficientBalanceError",
    "NotFoundError",
    "ValidationError",
]
