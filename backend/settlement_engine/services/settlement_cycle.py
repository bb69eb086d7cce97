"""Settlement cycle tracker — classify payout delays against expected dates.

    delay_days = max(0, today - expected)     unpaid (actual_date is None)
    delay_days = max(0, actual - expected)    paid; frozen once actual is set

    delay < delayed_after_days            -> on_time
    delay < critical_delay_after_days     -> delayed
    otherwise                             -> critical_delay

`today` is always an explicit argument; nothing here reads the clock.
"""

from collections.abc import Iterable
from datetime import date

from settlement_engine.config import EngineConfig
from settlement_engine.schemas.common import DelayStatus
from settlement_engine.schemas.cycle import CycleSummary, SettlementCycle, TrackedCycle
from settlement_engine.utils.numbers import mean


def delay_days(cycle: SettlementCycle, today: date) -> int:
    settled_on = cycle.actual_date if cycle.actual_date is not None else today
    return max(0, (settled_on - cycle.expected_date).days)


def classify_delay(days: int, config: EngineConfig) -> DelayStatus:
    if days < config.delayed_after_days:
        return DelayStatus.ON_TIME
    if days < config.critical_delay_after_days:
        return DelayStatus.DELAYED
    return DelayStatus.CRITICAL_DELAY


def track_cycle(cycle: SettlementCycle, config: EngineConfig, today: date) -> TrackedCycle:
    days = delay_days(cycle, today)
    return TrackedCycle(cycle=cycle, delay_days=days, status=classify_delay(days, config))


def _highest_delay_portal(late: list[TrackedCycle]) -> str | None:
    cumulative: dict[str, int] = {}
    for t in late:
        cumulative[t.cycle.portal] = cumulative.get(t.cycle.portal, 0) + t.delay_days
    if not cumulative:
        return None
    # max() keeps the first maximum, and dicts keep insertion order
    return max(cumulative, key=cumulative.__getitem__)


def track_settlement_cycles(
    cycles: Iterable[SettlementCycle],
    config: EngineConfig,
    today: date,
) -> CycleSummary:
    tracked = tuple(track_cycle(c, config, today) for c in cycles)
    late = [t for t in tracked if t.status != DelayStatus.ON_TIME]

    return CycleSummary(
        items=tracked,
        total_cycles=len(tracked),
        delayed_count=len(late),
        critical_count=sum(1 for t in late if t.status == DelayStatus.CRITICAL_DELAY),
        average_delay_days=mean([t.delay_days for t in late], places=1),
        highest_delay_portal=_highest_delay_portal(late),
        amount_at_risk=sum(t.cycle.amount for t in late if not t.is_paid),
    )
