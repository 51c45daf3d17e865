"""
Validation layer

Validator request/response attestations with latest-wins status.
"""

from .models import ValidationRequest, ValidationStatus, ValidationSummary
from .registry import ValidationRegistry

__all__ = [
    "ValidationRequest",
    "ValidationStatus",
    "ValidationSummary",
    "ValidationRegistry",
]
