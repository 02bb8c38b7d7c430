"""Entity and route classification for activity counterparties.

Resolves the human-readable source and destination of every activity,
classifies each end as an exchange, hardware wallet, software wallet or
unknown entity, and derives the directional route key used by every
aggregation downstream.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from activity_intel.config import DEFAULT_EXCHANGE_TYPES, DEFAULT_SOFTWARE_WALLET_TYPES, ClassifierSettings
from activity_intel.enrichment.models import EntityKind, RouteResolution
from activity_intel.ingestor.models import Activity, Connection, InternalActivity, TransferActivity

logger = logging.getLogger(__name__)

EXTERNAL_WALLET_LABEL = "External wallet"
DESTINATION_LABEL = "Destination"
DEFAULT_SOURCE_LABEL = "Wallet"

HARDWARE_LABEL_HINTS = ("ledger", "trezor", "tangem")
EXCHANGE_LABEL_HINTS = ("binance", "bybit", "hyperliquid", "okx", "exchange")
SOFTWARE_WALLET_LABEL_HINTS = ("wallet",)


class ConnectionDirectory:
    """Lookup of configured connections by id."""

    def __init__(self, connections: Iterable[Connection]) -> None:
        self._by_id: dict[str, Connection] = {}
        for conn in connections:
            if conn.connection_id:
                self._by_id[conn.connection_id] = conn

    def __len__(self) -> int:
        return len(self._by_id)

    def get(self, connection_id: str | None) -> Connection | None:
        if not connection_id:
            return None
        return self._by_id.get(connection_id)

    def label(self, connection_id: str | None) -> str:
        """Return the connection's label, or an empty string if unknown."""
        conn = self.get(connection_id)
        return conn.label if conn is not None else ""


class EntityClassifier:
    """Classifier for activity counterparties and routes.

    Entity kinds are resolved from structured connection metadata first
    (hardware flag, then known exchange / software-wallet integration
    types) and only fall back to case-insensitive label hints when the
    connection is unknown.

    Example:
        ```python
        directory = ConnectionDirectory(connections)
        classifier = EntityClassifier(directory)

        route = classifier.resolve_route(activity)
        kind = classifier.classify(route.to_label, route.destination_connection_id)
        ```
    """

    def __init__(
        self,
        directory: ConnectionDirectory,
        *,
        settings: ClassifierSettings | None = None,
    ) -> None:
        self._directory = directory
        if settings is not None:
            self._exchange_types = frozenset(settings.exchange_types)
            self._software_wallet_types = frozenset(settings.software_wallet_types)
        else:
            self._exchange_types = frozenset(DEFAULT_EXCHANGE_TYPES)
            self._software_wallet_types = frozenset(DEFAULT_SOFTWARE_WALLET_TYPES)

    def classify(self, label: str, connection_id: str | None = None) -> EntityKind:
        """Classify one end of a route.

        Args:
            label: Human-readable label of the entity.
            connection_id: Linked connection id, if any.

        Returns:
            The entity kind; ``unknown`` when nothing matches.
        """
        conn = self._directory.get(connection_id)
        if conn is not None:
            if conn.is_hardware:
                return "hardware_wallet"
            conn_type = conn.type.lower()
            if conn_type in self._exchange_types:
                return "exchange"
            if conn_type in self._software_wallet_types:
                return "software_wallet"

        lower = label.lower()
        if any(hint in lower for hint in HARDWARE_LABEL_HINTS):
            return "hardware_wallet"
        if any(hint in lower for hint in EXCHANGE_LABEL_HINTS):
            return "exchange"
        if any(hint in lower for hint in SOFTWARE_WALLET_LABEL_HINTS):
            return "software_wallet"
        return "unknown"

    def source_label(self, activity: Activity) -> str:
        """Return the label of the connection that reported the activity."""
        if activity.exchange:
            return activity.exchange
        label = self._directory.label(activity.connection_id)
        if label:
            return label
        return DEFAULT_SOURCE_LABEL

    def resolve_route(self, activity: Activity, source_label: str | None = None) -> RouteResolution:
        """Resolve the directional from/to labels for an activity.

        Explicit labels carried on the record win, then linked connection
        labels, then the reporting connection's own label. The external end
        of a deposit or withdrawal without a label becomes a placeholder.
        """
        src = source_label if source_label is not None else self.source_label(activity)
        label = self._directory.label
        conn_id = activity.connection_id
        from_conn = activity.from_connection_id
        to_conn = activity.to_connection_id
        external = EXTERNAL_WALLET_LABEL if activity.address else DESTINATION_LABEL

        if isinstance(activity, InternalActivity):
            return RouteResolution(
                from_label=activity.from_label or label(from_conn) or label(conn_id) or src,
                to_label=activity.to_label or label(to_conn) or external,
                source_connection_id=from_conn or conn_id or None,
                destination_connection_id=to_conn or None,
            )

        if isinstance(activity, TransferActivity):
            if activity.is_deposit:
                return RouteResolution(
                    from_label=activity.from_label or EXTERNAL_WALLET_LABEL,
                    to_label=activity.to_label or label(conn_id) or src,
                    source_connection_id=from_conn or None,
                    destination_connection_id=to_conn or conn_id or None,
                )
            if activity.is_withdrawal:
                return RouteResolution(
                    from_label=activity.from_label or label(conn_id) or src,
                    to_label=activity.to_label or external,
                    source_connection_id=from_conn or conn_id or None,
                    destination_connection_id=to_conn or None,
                )
            logger.debug(
                "Transfer %s has direction-less type %r, routing through source",
                activity.activity_id,
                activity.raw_type,
            )

        # Trades (and direction-less transfers) stay on the reporting connection.
        return RouteResolution(
            from_label=activity.from_label or src,
            to_label=activity.to_label or src,
            source_connection_id=from_conn or conn_id or None,
            destination_connection_id=to_conn or conn_id or None,
        )
