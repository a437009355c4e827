from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from order.models import Order, OrderItem
from .periods import localize, month_bounds, previous_month_bounds

ZERO = Decimal("0.00")
FULL_GROWTH = Decimal("100.00")


@dataclass(frozen=True)
class RevenueComparison:
    vendor_id: str
    current_month_revenue: Decimal
    previous_month_revenue: Decimal
    growth_percentage: Decimal


def vendor_revenue_between(vendor, start: datetime, end: datetime) -> Decimal:
    """Sum of the vendor's line totals on delivered orders placed within [start, end]."""
    items = OrderItem.objects.filter(
        vendor=vendor,
        order__status=Order.Status.DELIVERED,
        order__created_at__gte=start,
        order__created_at__lte=end,
    )
    return sum((item.line_total() for item in items), ZERO)


def growth_percentage(current: Decimal, previous: Decimal) -> Decimal:
    # a month with no prior baseline counts as full growth, even at zero
    if previous == 0:
        return FULL_GROWTH
    growth = (current - previous) / previous * 100
    return growth.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def compare_vendor_revenue(vendor, now: Optional[datetime] = None) -> RevenueComparison:
    moment = localize(now)
    current_start, current_end = month_bounds(moment)
    previous_start, previous_end = previous_month_bounds(moment)

    current = vendor_revenue_between(vendor, current_start, current_end)
    previous = vendor_revenue_between(vendor, previous_start, previous_end)

    return RevenueComparison(
        vendor_id=str(vendor.id),
        current_month_revenue=current,
        previous_month_revenue=previous,
        growth_percentage=growth_percentage(current, previous),
    )
