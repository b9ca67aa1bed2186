from __future__ import annotations

from typing import Dict, Optional


class ShopError(Exception):
    status_code = 500

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors: Dict[str, str] = dict(errors or {})


class ValidationError(ShopError, ValueError):
    """Missing or malformed input, reported per field."""

    status_code = 400


class AuthorizationError(ShopError):
    status_code = 401

    def __init__(self, message: str = "Not authenticated", *, forbidden: bool = False) -> None:
        super().__init__(message)
        if forbidden:
            self.status_code = 403


class NotFoundError(ShopError):
    status_code = 404


class ConflictError(ShopError):
    status_code = 400


class EmptyOrderError(ShopError):
    status_code = 400


class PaymentIncompleteError(ShopError):
    status_code = 400


class InternalError(ShopError):
    status_code = 500


class PaymentGatewayError(InternalError):
    pass
