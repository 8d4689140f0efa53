"""
Error taxonomy shared by every service.

Each error carries the HTTP status the API layer renders it with and a short
machine-readable code. None of them is retried by the service itself.
"""

from collections.abc import Iterable


class RestaurantError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    code: str = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class ValidationError(RestaurantError):
    """Malformed input. The caller corrects the listed fields and retries."""

    status_code = 422
    code = "validation_error"

    def __init__(self, fields: Iterable[str], message: str | None = None) -> None:
        self.fields = sorted(set(fields))
        super().__init__(message or f"Invalid value for: {', '.join(self.fields)}")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "fields": self.fields}


class ItemUnavailable(RestaurantError):
    status_code = 409
    code = "item_unavailable"

    def __init__(self, item_name: str) -> None:
        super().__init__(f"{item_name} is not available right now")
        self.item_name = item_name


class EmptyCart(RestaurantError):
    status_code = 400
    code = "empty_cart"

    def __init__(self) -> None:
        super().__init__("Cannot submit an empty cart")


class InvalidTransition(RestaurantError):
    """The order's current status does not allow the requested action."""

    status_code = 409
    code = "invalid_transition"

    def __init__(self, current_status: str, action: str) -> None:
        super().__init__(f"Cannot {action} an order in status '{current_status}'")
        self.current_status = current_status
        self.action = action

    def to_dict(self) -> dict:
        return {**super().to_dict(), "current_status": self.current_status}


class Forbidden(RestaurantError):
    """Authorization failure. The message never says which check failed."""

    status_code = 403
    code = "forbidden"

    def __init__(self) -> None:
        super().__init__("Operation not permitted")


class NotFound(RestaurantError):
    status_code = 404
    code = "not_found"

    def __init__(self, entity: str) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity
