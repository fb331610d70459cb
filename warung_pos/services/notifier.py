"""
Side-channel capabilities injected into the services.

`Notifier` receives refresh signals after a server-confirmed mutation so
views re-read from the backend. `Exporter` receives finished artefacts
(receipts, kitchen tickets). Both default to doing nothing.
"""
from __future__ import annotations

import logging

from warung_pos.models.billing import Billing
from warung_pos.models.order import Order

logger = logging.getLogger(__name__)

TOPIC_ORDERS = "orders"
TOPIC_BILLING = "billing"
TOPIC_RECONCILIATION = "reconciliation"


class Notifier:
    """Base notifier; `refresh` must be idempotent (it may fire twice)."""

    def refresh(self, topic: str, key: str) -> None:
        pass


class Exporter:
    def export_receipt(self, order: Order, billing: Billing) -> None:
        pass

    def export_kitchen_ticket(self, order: Order) -> None:
        pass


class LoggingNotifier(Notifier):
    def refresh(self, topic: str, key: str) -> None:
        logger.info(f"refresh {topic}:{key}")


class RecordingNotifier(Notifier):
    """Collects distinct refresh signals; used by the CLI and the tests."""

    def __init__(self) -> None:
        self.signals: list[tuple[str, str]] = []

    def refresh(self, topic: str, key: str) -> None:
        if (topic, key) not in self.signals:
            self.signals.append((topic, key))
