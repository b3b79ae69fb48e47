"""Post-commit order notifications."""

from __future__ import annotations

from typing import Any

from settlement_kernel.logging_config import get_logger

logger = get_logger("services.notifications")


class LoggingNotificationDispatcher:
    """Default dispatcher: records the created order as a structured log line."""

    def send_order_created(self, order: dict[str, Any]) -> None:
        logger.info(
            "order_created_notification",
            extra={
                "order_number": order.get("orderNumber"),
                "total": order.get("total"),
                "payment_method": order.get("paymentMethod"),
            },
        )


class RecordingNotificationDispatcher:
    """Keeps every notification in memory."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    def send_order_created(self, order: dict[str, Any]) -> None:
        self.sent.append(order)
