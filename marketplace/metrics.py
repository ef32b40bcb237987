"""
Prometheus metrics: orders placed, lifecycle transitions applied/rejected, delivery claim races.
"""
from prometheus_client import Counter, generate_latest

orders_placed_total = Counter(
    "orders_placed_total",
    "Total orders placed",
    ["payment_method"],
)

order_status_transitions_total = Counter(
    "order_status_transitions_total",
    "Total order status changes applied",
    ["from_status", "to_status"],
)
order_transitions_rejected_total = Counter(
    "order_transitions_rejected_total",
    "Total status changes rejected by the order lifecycle",
    ["current_status", "requested_status"],
)

# Riders that lost the race for an order another rider claimed first
delivery_claim_conflicts_total = Counter(
    "delivery_claim_conflicts_total",
    "Total delivery claims rejected because the order was already assigned",
)


def get_metrics_content_type():
    return "text/plain; charset=utf-8; version=0.0.4"


def get_metrics_bytes():
    return generate_latest()
