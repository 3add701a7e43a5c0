from __future__ import annotations

from dataclasses import dataclass
from math import floor

from carehours.models import BalanceStatus

PERFECT_TOLERANCE_HOURS = 0.1


@dataclass(frozen=True)
class BalanceComputation:
    monthly_hours: float
    used_hours: float
    remaining_hours: float
    excess_hours: float
    status: BalanceStatus
    percentage: float


def round_hours(value: float) -> float:
    # Half rounds up, like the dashboards that display these figures.
    return floor(value * 10 + 0.5) / 10


def balance_status(monthly_hours: float, used_hours: float) -> BalanceStatus:
    if abs(monthly_hours - used_hours) < PERFECT_TOLERANCE_HOURS:
        return BalanceStatus.PERFECT
    if used_hours < monthly_hours:
        return BalanceStatus.DEFICIT
    return BalanceStatus.EXCESS


def calculate_balance(monthly_hours: float, used_hours: float) -> BalanceComputation:
    safe_monthly = max(0.0, float(monthly_hours or 0))
    safe_used = max(0.0, float(used_hours or 0))

    percentage = 0.0
    if safe_monthly > 0:
        percentage = round_hours((safe_used / safe_monthly) * 100)

    return BalanceComputation(
        monthly_hours=safe_monthly,
        used_hours=safe_used,
        remaining_hours=max(0.0, safe_monthly - safe_used),
        excess_hours=max(0.0, safe_used - safe_monthly),
        status=balance_status(safe_monthly, safe_used),
        percentage=percentage,
    )


def balance_message(status: BalanceStatus, difference_hours: float) -> str:
    hours_text = f"{abs(difference_hours):.1f}h"
    if status == BalanceStatus.PERFECT:
        return "Scheduled hours match the contracted hours for this month."
    if status == BalanceStatus.DEFICIT:
        return f"{hours_text} below the contracted hours; {hours_text} still have to be scheduled."
    return f"{hours_text} above the contracted hours; {hours_text} will not be covered by the contract."
