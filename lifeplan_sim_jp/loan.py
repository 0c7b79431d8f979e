"""Loan amortization (元利均等 / 元金均等) and liability auto-calculation."""

import logging
from dataclasses import dataclass

from lifeplan_sim_jp.models import LiabilityItem, LifeEvent
from lifeplan_sim_jp.params import _calc_equal_payment, round1

logger = logging.getLogger(__name__)

EQUAL_PAYMENT = "equal_payment"      # 元利均等
EQUAL_PRINCIPAL = "equal_principal"  # 元金均等
REPAYMENT_TYPES = (EQUAL_PAYMENT, EQUAL_PRINCIPAL)

LOAN_FUNDING_CATEGORY = "loan_funding"


@dataclass
class ScheduleEntry:
    year: int  # 借入後の経過年（1始まり）
    payment: float
    principal: float
    interest: float
    remaining_balance: float


@dataclass
class LoanPreview:
    monthly_payment: float = 0.0
    total_payment: float = 0.0
    total_interest: float = 0.0


@dataclass
class LoanSettings:
    principal: float
    start_year: int
    interest_rate: float
    term_years: int
    repayment_type: str = EQUAL_PAYMENT


def amortize(
    principal: float, annual_rate: float, term_years: int, method: str = EQUAL_PAYMENT
) -> list[ScheduleEntry]:
    """Yearly repayment schedule; every money value is rounded to 0.1万円 each year.

    The final year repays whatever balance remains, so the principal column
    always sums to `principal`. For 元利均等 this makes the last payment differ
    from the level yearly payment: interest is charged yearly on a payment
    derived from the monthly annuity, which leaves a residual otherwise.
    """
    if term_years <= 0 or principal <= 0:
        return []

    if annual_rate == 0:
        method = EQUAL_PRINCIPAL
    yearly_principal = round1(principal / term_years)
    yearly_payment = 0.0
    if method == EQUAL_PAYMENT:
        monthly = _calc_equal_payment(principal, annual_rate / 100 / 12, term_years * 12)
        yearly_payment = round1(monthly * 12)

    schedule = []
    remaining = principal
    for year in range(1, term_years + 1):
        interest = round1(remaining * annual_rate / 100)
        if year == term_years:
            principal_paid = remaining
        elif method == EQUAL_PAYMENT:
            principal_paid = min(yearly_payment - interest, remaining)
        else:
            principal_paid = min(yearly_principal, remaining)
        principal_paid = round1(principal_paid)
        if method == EQUAL_PAYMENT and year < term_years:
            payment = yearly_payment
        else:
            payment = round1(principal_paid + interest)
        remaining = max(0.0, round1(remaining - principal_paid))
        schedule.append(ScheduleEntry(year, payment, principal_paid, interest, remaining))
    return schedule


def loan_preview(
    principal: float, annual_rate: float, term_years: int, method: str = EQUAL_PAYMENT
) -> LoanPreview:
    """Monthly payment, total repayment and total interest on a monthly basis.

    For 元金均等 the monthly payment is the first (largest) month's payment.
    """
    if principal <= 0 or term_years <= 0:
        return LoanPreview()

    if annual_rate == 0:
        return LoanPreview(
            monthly_payment=round1(principal / term_years / 12),
            total_payment=principal,
            total_interest=0.0,
        )

    monthly_rate = annual_rate / 100 / 12
    months = term_years * 12
    if method == EQUAL_PAYMENT:
        monthly = _calc_equal_payment(principal, monthly_rate, months)
        total = monthly * months
        return LoanPreview(
            monthly_payment=round1(monthly),
            total_payment=round1(total),
            total_interest=round1(total - principal),
        )

    monthly_principal = principal / months
    total_interest = 0.0
    remaining = principal
    for _ in range(months):
        total_interest += remaining * monthly_rate
        remaining -= monthly_principal
    return LoanPreview(
        monthly_payment=round1(monthly_principal + principal * monthly_rate),
        total_payment=round1(principal + total_interest),
        total_interest=round1(total_interest),
    )


def _fmt(value) -> str:
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def fingerprint(start_year, term_years, interest_rate, repayment_type, principal) -> str:
    """Identity of the settings a stored schedule was generated from."""
    return "_".join(_fmt(v) for v in (start_year, term_years, interest_rate, repayment_type, principal))


def settings_of(item: LiabilityItem) -> LoanSettings | None:
    """Auto-calculation settings stored on a liability, or None when incomplete."""
    if not item.auto_calculate or not item.start_year or not item.term_years:
        return None
    principal = item.original_amount
    if principal is None:
        principal = abs(item.amount(item.start_year))
    return LoanSettings(
        principal=principal,
        start_year=item.start_year,
        interest_rate=item.interest_rate or 0.0,
        term_years=item.term_years,
        repayment_type=item.repayment_type or EQUAL_PAYMENT,
    )


def settings_fingerprint(settings: LoanSettings) -> str:
    return fingerprint(
        settings.start_year, settings.term_years, settings.interest_rate,
        settings.repayment_type, settings.principal,
    )


def is_stale(item: LiabilityItem) -> bool:
    """True when an auto-calculated schedule no longer matches its settings."""
    settings = settings_of(item)
    if settings is None:
        return False
    return item.calculation_hash != settings_fingerprint(settings)


def schedule_balances(settings: LoanSettings) -> dict[int, float]:
    """Balance per calendar year: principal at the start year, then remaining balances."""
    balances = {settings.start_year: settings.principal}
    for entry in amortize(
        settings.principal, settings.interest_rate, settings.term_years, settings.repayment_type
    ):
        balances[settings.start_year + entry.year] = entry.remaining_balance
    return balances


def resolved_balances(item: LiabilityItem) -> dict[int, float]:
    """Per-year balances to use for totals, regenerating a stale schedule without mutating it."""
    if is_stale(item):
        logger.info("負債「%s」の返済スケジュールが設定と一致しないため再計算します", item.name)
        return schedule_balances(settings_of(item))
    return item.amounts


def apply_settings(item: LiabilityItem, settings: LoanSettings) -> None:
    """Write the schedule and its settings onto `item`."""
    item.amounts = schedule_balances(settings)
    item.start_year = settings.start_year
    item.interest_rate = settings.interest_rate
    item.term_years = settings.term_years
    item.repayment_type = settings.repayment_type
    item.auto_calculate = True
    item.original_amount = settings.principal
    item.calculation_hash = settings_fingerprint(settings)


def regenerate_if_stale(item: LiabilityItem) -> bool:
    """Regenerate a stale schedule in place; return whether it was regenerated."""
    if not is_stale(item):
        return False
    logger.info("負債「%s」の返済スケジュールを再生成しました", item.name)
    apply_settings(item, settings_of(item))
    return True


def clear_settings(item: LiabilityItem) -> None:
    item.amounts = {}
    item.auto_calculate = False
    item.start_year = None
    item.original_amount = None
    item.calculation_hash = None


def funding_event(item: LiabilityItem, book: str) -> LifeEvent:
    """The 借入 cash inflow recorded when a loan is configured."""
    return LifeEvent(
        year=item.start_year,
        description=f"{item.name}（借入）",
        type="income",
        category=LOAN_FUNDING_CATEGORY,
        amount=item.original_amount or 0.0,
        source=book,
    )


def is_funding_event_of(event: LifeEvent, item: LiabilityItem, book: str) -> bool:
    return (
        event.category == LOAN_FUNDING_CATEGORY
        and event.source == book
        and event.year == item.start_year
        and event.description == f"{item.name}（借入）"
    )


def loan_repayments(liabilities: list[LiabilityItem], last_year: int) -> dict[int, float]:
    """Total repayment per year for every auto-calculated liability of one book.

    Repayment starts the year after borrowing; schedules are always regenerated
    from the current settings.
    """
    repayments: dict[int, float] = {}
    for item in liabilities:
        settings = settings_of(item)
        if settings is None or settings.principal <= 0:
            continue
        for entry in amortize(
            settings.principal, settings.interest_rate, settings.term_years, settings.repayment_type
        ):
            year = settings.start_year + entry.year
            if year <= last_year:
                repayments[year] = repayments.get(year, 0.0) + entry.payment
    return repayments
