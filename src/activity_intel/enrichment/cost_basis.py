"""Per-asset average-cost basis state machine.

Average-cost accounting is path-dependent, so transitions must be applied
in strictly ascending timestamp order. The transition itself is a pure
function of (activity, market price, previous state); the tracker only
threads the per-asset state map through a batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from activity_intel.ingestor.models import Activity, TradeActivity

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class BasisState:
    """Running position for one asset."""

    quantity: Decimal = ZERO
    total_cost_usd: Decimal = ZERO

    @property
    def average_cost(self) -> Decimal:
        """Return cost per unit, or 0 when there is no position."""
        if self.quantity <= 0:
            return ZERO
        return self.total_cost_usd / self.quantity

    @property
    def has_position(self) -> bool:
        return self.quantity > 0

    def acquire(self, quantity: Decimal, cost_usd: Decimal) -> BasisState:
        return BasisState(
            quantity=self.quantity + quantity,
            total_cost_usd=self.total_cost_usd + cost_usd,
        )

    def consume(self, quantity: Decimal) -> BasisState:
        """Remove up to ``quantity`` units at the current average cost.

        Consumption clamps to the held quantity; neither field goes negative.
        """
        if self.quantity <= 0:
            return self
        taken = min(self.quantity, quantity)
        avg = self.average_cost
        return BasisState(
            quantity=self.quantity - taken,
            total_cost_usd=max(ZERO, self.total_cost_usd - taken * avg),
        )


def _positive(value: Decimal | None) -> Decimal:
    if value is None or value <= 0:
        return ZERO
    return value


def apply_transition(activity: Activity, market_price: Decimal | None, state: BasisState) -> BasisState:
    """Apply one activity to an asset's basis state.

    Args:
        activity: The activity being processed.
        market_price: Resolved USD price at the activity's time, if any.
        state: State before this activity.

    Returns:
        State after this activity. Unsupported shapes return ``state``.
    """
    quantity = abs(activity.amount)
    if quantity <= 0:
        return state

    if isinstance(activity, TradeActivity):
        if activity.is_buy:
            price = _positive(activity.price) or _positive(market_price)
            if price <= 0:
                return state
            fee_usd = _positive(activity.fee_usd)
            return state.acquire(quantity, quantity * price + fee_usd)
        if activity.is_sell:
            return state.consume(quantity)
        return state

    # Transfers and internal moves
    if activity.is_outbound:
        return state.consume(quantity)

    # Inbound keeps basis continuity; a fresh lot is valued at market.
    avg = state.average_cost
    basis_price = avg if avg > 0 else _positive(market_price)
    if basis_price <= 0:
        return state
    return state.acquire(quantity, quantity * basis_price)


class CostBasisTracker:
    """Threads per-asset BasisState through an ascending stream of activities.

    Example:
        ```python
        tracker = CostBasisTracker()
        for activity in sorted(activities, key=lambda a: a.timestamp_ms):
            basis_before = tracker.cost_basis_at(asset)
            tracker.advance(asset, activity, market_price)
        ```
    """

    def __init__(self) -> None:
        self._states: dict[str, BasisState] = {}
        self._last_ts: dict[str, int] = {}

    def state(self, asset: str) -> BasisState:
        return self._states.get(asset, BasisState())

    def cost_basis_at(self, asset: str) -> Decimal | None:
        """Return the current average cost for ``asset``, or None without a position."""
        state = self.state(asset)
        if state.quantity > 0 and state.total_cost_usd > 0:
            return state.average_cost
        return None

    def advance(self, asset: str, activity: Activity, market_price: Decimal | None) -> BasisState:
        """Apply ``activity`` to ``asset`` and return the new state."""
        last_ts = self._last_ts.get(asset)
        if last_ts is not None and activity.timestamp_ms < last_ts:
            logger.warning(
                "Out-of-order basis transition for %s: %d < %d (activity %s)",
                asset,
                activity.timestamp_ms,
                last_ts,
                activity.activity_id,
            )
        self._last_ts[asset] = activity.timestamp_ms

        next_state = apply_transition(activity, market_price, self.state(asset))
        self._states[asset] = next_state
        return next_state

    def snapshot(self) -> dict[str, BasisState]:
        """Return a copy of every asset's current state."""
        return dict(self._states)
