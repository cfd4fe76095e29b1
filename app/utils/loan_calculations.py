import math
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from app.core.errors import InvalidArgumentError

AVG_DAYS_PER_MONTH = Decimal("30.44")


def money(x) -> Decimal:
    """Always return 2-decimal Decimal with HALF_UP rounding."""
    if x is None:
        x = 0
    if not isinstance(x, Decimal):
        x = Decimal(str(x))
    return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def monthly_payment(principal, months: int) -> Decimal:
    """
    Interest-free instalment:
      monthly_payment = principal / months

    Example:
      principal=1200, months=12 => 100.00
    """
    if months is None or int(months) <= 0:
        raise InvalidArgumentError("Duration must be greater than 0")
    return money(money(principal) / Decimal(int(months)))


def apply_payment(balance, amount) -> Decimal:
    """New balance after a payment, floored at zero. Never raises."""
    new_balance = money(balance) - money(amount)
    return max(money(0), new_balance)


def total_paid(principal, balance) -> Decimal:
    return money(money(principal) - money(balance))


def progress(principal, balance) -> float:
    """Repaid share of the principal as a percentage clamped to [0, 100]."""
    principal = money(principal)
    if principal <= 0:
        return 0.0
    pct = (principal - money(balance)) / principal * 100
    return float(min(Decimal(100), max(Decimal(0), pct)))


def expected_end_date(start: date, months: int) -> date:
    """
    Calendar-month addition keeping the day of month.

    Days that do not exist in the target month roll over into the next one,
    e.g. 2023-01-31 + 1 month => 2023-03-03, 2024-01-31 + 1 month => 2024-03-02.
    """
    if isinstance(start, datetime):
        start = start.date()
    month_index = start.month - 1 + int(months)
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, 1) + timedelta(days=start.day - 1)


def months_remaining(balance, monthly) -> int:
    monthly = money(monthly)
    if monthly <= 0:
        return 0
    return max(0, math.ceil(money(balance) / monthly))


def months_elapsed(start, now: datetime = None) -> int:
    """Whole months since ``start`` using an average 30.44-day month."""
    now = now or datetime.now()
    if not isinstance(start, datetime):
        start = datetime(start.year, start.month, start.day)
    if start.tzinfo is not None and now.tzinfo is None:
        start = start.replace(tzinfo=None)
    elapsed_days = Decimal(str((now - start).total_seconds())) / Decimal(86400)
    return math.floor(elapsed_days / AVG_DAYS_PER_MONTH)


def is_overdue(start, monthly, paid, now: datetime = None) -> bool:
    months = months_elapsed(start, now)
    if months <= 0:
        return False
    expected_paid = money(monthly) * months
    return money(paid) < expected_paid
