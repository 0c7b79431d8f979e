"""Global rate parameters and shared arithmetic helpers."""

import math
from dataclasses import dataclass

# 支出カテゴリ → 上昇率の種類（None = 上昇なし）
_ESCALATION_BY_CATEGORY: dict[str, str | None] = {
    "living": "inflation",
    "housing": "inflation",
    "business": "inflation",
    "office": "inflation",
    "education": "education",
    "other": None,
}


def round1(value: float) -> float:
    """Round half up to one decimal (万円の小数第1位)."""
    return math.floor(value * 10 + 0.5) / 10


@dataclass
class Parameters:

    inflation_rate: float = 1.0               # 物価上昇率（%/年）
    education_cost_increase_rate: float = 1.0  # 教育費上昇率（%/年）
    investment_return: float = 1.0            # 運用利回り（%/年）
    investment_ratio: float = 10.0            # 収入から投資に回す既定割合（%）
    max_investment_amount: float = 100.0      # 投資上限の既定値（万円/年）

    def escalation_rate(self, category: str) -> float:
        """Return the annual escalation rate (%) applied to an expense category."""
        kind = _ESCALATION_BY_CATEGORY.get(category)
        if kind == "inflation":
            return self.inflation_rate
        if kind == "education":
            return self.education_cost_increase_rate
        return 0.0


def inflate_amount(raw: float, category: str, years: int, params: Parameters) -> float:
    """Escalate a raw expense by its category rate over `years` years.

    "other" and unknown categories are returned unchanged.
    """
    rate = params.escalation_rate(category)
    if rate == 0:
        return raw
    return round1(raw * (1 + rate / 100) ** years)


def _calc_equal_payment(principal: float, monthly_rate: float, months: int) -> float:
    """Calculate monthly loan payment (元利均等返済)"""
    if monthly_rate == 0:
        return principal / months
    r = monthly_rate
    n = months
    return principal * r * (1 + r) ** n / ((1 + r) ** n - 1)
