"""
Domain errors raised by the service layer.

Each one is an HTTPException so FastAPI renders it as {"detail": ...} with the
right status code, while services and tests can still tell the categories apart.
"""

from fastapi import HTTPException
from starlette import status


class ValidationError(HTTPException):
    """Malformed input or a reference to a missing/inactive/foreign entity."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ForbiddenError(HTTPException):
    def __init__(self, detail: str = "Not allowed"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class StateConflictError(HTTPException):
    """Well-formed request that the entity's current state does not allow."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class InsufficientStockError(StateConflictError):
    def __init__(self, product_id: int, requested: int | None = None, available: int | None = None):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        detail = f"Insufficient stock for product {product_id}"
        if requested is not None and available is not None:
            detail = f"Product {product_id} has only {available} units in stock, cannot take {requested}"
        super().__init__(detail)
