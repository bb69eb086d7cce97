"""Chargeback outcomes — dispute aggregation and forward-only transitions.

Lifecycle:  initiated → under_review → won | lost

won / lost are terminal.  A transition never mutates the record it was
given; it returns a new Chargeback or raises a typed error.
"""

import logging
from collections.abc import Iterable

from settlement_engine.middleware.exceptions import ChargebackTransitionError, TerminalStateError
from settlement_engine.schemas.chargeback import Chargeback, ChargebackSummary
from settlement_engine.schemas.common import ChargebackStatus

logger = logging.getLogger("settlement_engine.chargeback")

ALLOWED_TRANSITIONS: dict[ChargebackStatus, frozenset[ChargebackStatus]] = {
    ChargebackStatus.INITIATED: frozenset({ChargebackStatus.UNDER_REVIEW}),
    ChargebackStatus.UNDER_REVIEW: frozenset({ChargebackStatus.WON, ChargebackStatus.LOST}),
    ChargebackStatus.WON: frozenset(),
    ChargebackStatus.LOST: frozenset(),
}
TERMINAL = frozenset({ChargebackStatus.WON, ChargebackStatus.LOST})
OPEN = frozenset({ChargebackStatus.INITIATED, ChargebackStatus.UNDER_REVIEW})


def transition_chargeback(chargeback: Chargeback, new_status: ChargebackStatus | str) -> Chargeback:
    """Return a copy of `chargeback` moved to `new_status`."""
    target = ChargebackStatus(new_status)
    current = chargeback.status

    if current in TERMINAL:
        logger.warning(
            "Rejected transition on terminal chargeback %s: %s -> %s",
            chargeback.id, current.value, target.value,
        )
        raise TerminalStateError(chargeback.id, current.value, target.value)

    if target not in ALLOWED_TRANSITIONS[current]:
        raise ChargebackTransitionError(chargeback.id, current.value, target.value)

    return chargeback.model_copy(update={"status": target})


def _totals(chargebacks: list[Chargeback]) -> tuple[int, int, int]:
    lost = sum(c.amount for c in chargebacks if c.status == ChargebackStatus.LOST)
    open_disputes = sum(1 for c in chargebacks if c.status in OPEN)
    return len(chargebacks), lost, open_disputes


def summarize_chargebacks(
    chargebacks: Iterable[Chargeback],
    status_filter: ChargebackStatus | None = None,
    filtered_totals: bool = False,
) -> ChargebackSummary:
    """Aggregate disputes.

    The status filter narrows `records` (what a table would show).  Totals
    are always over the full set unless `filtered_totals` is requested.
    """
    everything = list(chargebacks)
    shown = [c for c in everything if status_filter is None or c.status == status_filter]

    basis = shown if filtered_totals else everything
    total_count, lost_amount, open_disputes = _totals(basis)

    by_status = {s: 0 for s in ChargebackStatus}
    for c in basis:
        by_status[c.status] += 1

    return ChargebackSummary(
        records=tuple(shown),
        total_count=total_count,
        total_lost_amount=lost_amount,
        open_disputes=open_disputes,
        by_status=by_status,
        status_filter=status_filter,
        filtered_totals=filtered_totals,
    )
