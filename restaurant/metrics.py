from prometheus_client import Counter, Histogram

ORDERS_SUBMITTED = Counter(
    "restaurant_orders_submitted_total",
    "Orders created from a cart",
)

ORDER_VALUE = Histogram(
    "restaurant_order_value",
    "Total amount of submitted orders",
    buckets=[5, 10, 20, 30, 50, 75, 100, 150, 250],
)

ORDER_TRANSITIONS = Counter(
    "restaurant_order_transitions_total",
    "Order status transitions",
    ["from_status", "to_status"],
)

REJECTED_TRANSITIONS = Counter(
    "restaurant_order_transitions_rejected_total",
    "Advance/cancel requests refused by the state machine",
    ["action", "status"],
)
