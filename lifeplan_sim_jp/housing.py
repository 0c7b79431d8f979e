"""Housing cost plans (賃貸 / 購入)."""

import math
from dataclasses import dataclass
from datetime import date

from lifeplan_sim_jp.params import _calc_equal_payment, round1


@dataclass
class RentPlan:
    """賃貸: 家賃は毎年上昇、更新料は更新間隔ごとに発生"""

    monthly_rent: float = 0.0          # 万円/月
    annual_increase_rate: float = 0.0  # %/年
    renewal_fee: float = 0.0           # 万円/回
    renewal_interval: int = 2          # 年

    def annual_cost(self, year: int, current_year: int | None = None) -> float:
        """Annual rent for `year`.

        Years elapsed are counted from the real current year, not the plan's
        start year; pass `current_year` to pin it.
        """
        if current_year is None:
            current_year = date.today().year
        elapsed = year - current_year
        annual_rent = self.monthly_rent * 12 * (1 + self.annual_increase_rate / 100) ** elapsed
        renewal_cost = 0.0
        if self.renewal_interval > 0:
            renewal_cost = self.renewal_fee * math.floor(elapsed / self.renewal_interval)
        return round1(annual_rent + renewal_cost)


@dataclass
class OwnPlan:
    """購入: 購入年からローン返済＋維持費、完済後は維持費のみ"""

    purchase_year: int
    purchase_price: float = 0.0       # 万円
    loan_amount: float = 0.0          # 万円
    interest_rate: float = 0.0        # %/年
    loan_term_years: int = 35
    maintenance_cost_rate: float = 1.0  # 購入価格に対する%/年

    def monthly_mortgage(self) -> float:
        """Monthly payment (元利均等), rounded to 0.1万円."""
        months = self.loan_term_years * 12
        if months <= 0 or self.loan_amount <= 0:
            return 0.0
        return round1(_calc_equal_payment(self.loan_amount, self.interest_rate / 100 / 12, months))

    def annual_cost(self, year: int, current_year: int | None = None) -> float:
        if year < self.purchase_year:
            return 0.0
        maintenance = self.purchase_price * self.maintenance_cost_rate / 100
        if year >= self.purchase_year + self.loan_term_years:
            return round1(maintenance)
        return round1(self.monthly_mortgage() * 12 + maintenance)


def housing_expense(housing, year: int, current_year: int | None = None) -> float:
    """Annual housing expense for the selected plan of a HousingInfo (0 if none)."""
    plan = housing.plan if housing is not None else None
    if plan is None:
        return 0.0
    return plan.annual_cost(year, current_year)
