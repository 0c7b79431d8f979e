"""Investment routing and compounding pool (運用資産)."""

from lifeplan_sim_jp.models import AssetItem, IncomeItem
from lifeplan_sim_jp.params import round1


def contribution(amount: float, ratio: float, cap: float) -> float:
    """min(amount × ratio%, cap); a cap of 0 or less means no cap."""
    if amount <= 0 or ratio <= 0:
        return 0.0
    routed = amount * ratio / 100
    if cap and cap > 0:
        return min(routed, cap)
    return routed


def yearly_contribution(
    items: list[IncomeItem], year: int, amount_overrides: dict[str, float] | None = None
) -> float:
    """Sum of contributions of one book's income items.

    `amount_overrides` maps item id to the amount to use instead of the stored
    one (computed pension rows).
    """
    overrides = amount_overrides or {}
    total = 0.0
    for item in items:
        amount = overrides.get(item.id, item.amount(year))
        total += contribution(amount, item.investment_ratio, item.max_investment_amount)
    return total


def seed_pool(assets: list[AssetItem], start_year: int) -> float:
    """Opening pool: absolute start-year amounts of assets flagged as investment."""
    return sum(abs(asset.amount(start_year)) for asset in assets if asset.is_investment)


def pool_income(previous: float, investment_return: float) -> float:
    return round1(previous * investment_return / 100)


def next_pool(previous: float, contributed: float, income: float, event_net: float) -> float:
    """Pool after one year, floored at 0."""
    return max(0.0, round1(previous + contributed + income + event_net))
