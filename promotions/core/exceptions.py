from fastapi import HTTPException, status
from typing import Any, Dict, List, Optional, Union


class DiscountNotFound(HTTPException):
    def __init__(self, discount_id: Optional[int] = None):
        detail = "Discount not found"
        if discount_id is not None:
            detail = f"No discount exists with the ID “{discount_id}”"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail
        )


class OrderNotFound(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )


class APIError(Exception):
    def __init__(self, status_code: int, message: str, errors: Optional[Union[List[Any], Dict[str, Any]]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


class DiscountValidationError(APIError):
    """Raised when a discount fails validation before save; ``errors`` maps field -> messages."""

    def __init__(self, errors: Dict[str, List[str]]):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            message="Discount not saved due to validation error.",
            errors=errors,
        )


class CurrencyException(APIError):
    def __init__(self, message: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, message=message)
