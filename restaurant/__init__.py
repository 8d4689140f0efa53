"""Restaurant ordering service: menu catalog, carts, order lifecycle and role-gated access."""

__version__ = "1.0.0"
