"""Year-by-year ledger builder for the personal and corporate books."""

import logging
import math

from lifeplan_sim_jp.education import EDUCATION_COSTS
from lifeplan_sim_jp.events import events_for_year
from lifeplan_sim_jp.housing import OwnPlan, RentPlan
from lifeplan_sim_jp.investment import next_pool, pool_income, seed_pool, yearly_contribution
from lifeplan_sim_jp.loan import loan_repayments, resolved_balances
from lifeplan_sim_jp.models import (
    MARITAL_STATUSES,
    OCCUPATIONS,
    PENSION_ITEM,
    SALARY_ITEM,
    SIDE_ITEM,
    SPOUSE_INCOME_ITEM,
    SPOUSE_PENSION_ITEM,
    BasicInfo,
    CashFlowData,
    CashFlowYear,
    IncomeItem,
    PlanState,
)
from lifeplan_sim_jp.params import round1
from lifeplan_sim_jp.pension import pension_for_year, spouse_pension_for_year

logger = logging.getLogger(__name__)

# Input limits
MIN_AGE = 0
MAX_AGE = 120
MIN_START_YEAR = 1900
MAX_START_YEAR = 2150
MIN_WORK_START_AGE = 15
MIN_PENSION_START_AGE = 60  # 繰上げ受給の下限
MAX_PENSION_START_AGE = 75  # 繰下げ受給の上限
MAX_YEARS_UNTIL_BIRTH = 30
MAX_LOAN_TERM_YEARS = 50

# 個人支出カテゴリ → CashFlowYear のフィールド（それ以外は other_expense）
_PERSONAL_EXPENSE_FIELDS = {
    "living": "living_expense",
    "housing": "housing_expense",
    "education": "education_expense",
}


def validate_basic_info(info: BasicInfo) -> list[str]:
    """Validate the household profile. Returns list of error messages."""
    errors = []

    if not MIN_AGE <= info.current_age <= MAX_AGE:
        errors.append(f"現在の年齢{info.current_age}歳は対象外です（{MIN_AGE}-{MAX_AGE}歳）")
    if not MIN_AGE <= info.death_age <= MAX_AGE:
        errors.append(f"想定寿命{info.death_age}歳は対象外です（{MIN_AGE}-{MAX_AGE}歳）")
    elif info.death_age <= info.current_age:
        errors.append(f"想定寿命{info.death_age}歳が現在の年齢{info.current_age}歳以下です")
    if not MIN_START_YEAR <= info.start_year <= MAX_START_YEAR:
        errors.append(f"開始年{info.start_year}年は対象外です（{MIN_START_YEAR}-{MAX_START_YEAR}年）")
    if info.monthly_living_expense < 0:
        errors.append("月額生活費は0以上で入力してください")
    if info.occupation not in OCCUPATIONS:
        errors.append(f"不明な職業: {info.occupation}")
    if info.marital_status not in MARITAL_STATUSES:
        errors.append(f"不明な婚姻状況: {info.marital_status}")
    if not MIN_WORK_START_AGE <= info.work_start_age <= MAX_AGE:
        errors.append(f"就職年齢{info.work_start_age}歳は対象外です（{MIN_WORK_START_AGE}-{MAX_AGE}歳）")
    if not MIN_PENSION_START_AGE <= info.pension_start_age <= MAX_PENSION_START_AGE:
        errors.append(
            f"年金受給開始年齢{info.pension_start_age}歳は対象外です"
            f"（{MIN_PENSION_START_AGE}-{MAX_PENSION_START_AGE}歳）"
        )

    housing = info.housing
    if housing.type == "rent":
        if not isinstance(housing.rent, RentPlan):
            errors.append("賃貸の場合は家賃情報を入力してください")
        elif min(housing.rent.monthly_rent, housing.rent.annual_increase_rate,
                 housing.rent.renewal_fee, housing.rent.renewal_interval) < 0:
            errors.append("家賃・上昇率・更新料・更新間隔は0以上で入力してください")
    elif housing.type == "own":
        if not isinstance(housing.own, OwnPlan):
            errors.append("購入の場合は購入情報を入力してください")
        else:
            own = housing.own
            if not 1 <= own.loan_term_years <= MAX_LOAN_TERM_YEARS:
                errors.append(f"ローン期間{own.loan_term_years}年は対象外です（1-{MAX_LOAN_TERM_YEARS}年）")
            if min(own.purchase_price, own.loan_amount, own.interest_rate) < 0:
                errors.append("購入価格・借入額・金利は0以上で入力してください")
            if not 0 <= own.maintenance_cost_rate <= 100:
                errors.append("維持費率は0-100%で入力してください")
    else:
        errors.append(f"不明な住居タイプ: {housing.type}")

    for i, child in enumerate(info.children, 1):
        if not MIN_AGE <= child.current_age <= MAX_AGE:
            errors.append(f"子供{i}の年齢{child.current_age}歳は対象外です")
        errors.extend(_validate_education_plan(f"子供{i}", child.education_plan))
    for i, child in enumerate(info.planned_children, 1):
        if not 0 <= child.years_from_now <= MAX_YEARS_UNTIL_BIRTH:
            errors.append(
                f"予定の子供{i}の誕生までの年数{child.years_from_now}年は対象外です"
                f"（0-{MAX_YEARS_UNTIL_BIRTH}年）"
            )
        errors.extend(_validate_education_plan(f"予定の子供{i}", child.education_plan))

    return errors


def _validate_education_plan(label: str, plan) -> list[str]:
    errors = []
    for stage, costs in EDUCATION_COSTS.items():
        choice = getattr(plan, stage, None)
        if choice not in costs:
            errors.append(f"{label}の教育プラン（{stage}）が不正です: {choice}")
    return errors


def _safe(label: str, year: int, func, *args) -> float:
    """Run one sub-computation; exceptions and non-finite results become 0."""
    try:
        value = float(func(*args))
    except Exception:
        logger.exception("%d年の%sの計算に失敗したため0として扱います", year, label)
        return 0.0
    if not math.isfinite(value):
        logger.warning("%d年の%sが有限値ではないため0として扱います: %r", year, label, value)
        return 0.0
    return value


def _find(items: list[IncomeItem], name: str) -> IncomeItem | None:
    for item in items:
        if item.name == name:
            return item
    return None


def _pension_lines(
    info: BasicInfo, personal_income: list[IncomeItem], year: int
) -> tuple[float, float, dict[str, float]]:
    """Own and spouse pension for the year plus the item-id overrides for routing."""
    overrides: dict[str, float] = {}

    pension = 0.0
    pension_item = _find(personal_income, PENSION_ITEM)
    if pension_item is not None:
        if pension_item.auto_calculated:
            pension = _safe("年金", year, pension_for_year, info, personal_income, year)
            overrides[pension_item.id] = pension
        else:
            pension = pension_item.amount(year)

    spouse_pension = 0.0
    spouse_item = _find(personal_income, SPOUSE_PENSION_ITEM)
    if spouse_item is not None:
        if spouse_item.auto_calculated:
            spouse_pension = _safe("配偶者年金", year, spouse_pension_for_year, info, personal_income, year)
            overrides[spouse_item.id] = spouse_pension
        else:
            spouse_pension = spouse_item.amount(year)

    return pension, spouse_pension, overrides


def _resolve_liabilities(liabilities: list) -> list[dict[int, float]]:
    resolved = []
    for item in liabilities:
        try:
            resolved.append(resolved_balances(item))
        except Exception:
            logger.exception("負債「%s」の残高を解決できないため入力値を使います", item.name)
            resolved.append(item.amounts)
    return resolved


def _liability_total(resolved: list[dict[int, float]], year: int) -> float:
    total = 0.0
    for amounts in resolved:
        value = amounts.get(year) or 0.0
        if math.isfinite(value):
            total += abs(value)
    return round1(total)


def _repayments(liabilities: list, last_year: int, book: str) -> dict[int, float]:
    try:
        return loan_repayments(liabilities, last_year)
    except Exception:
        logger.exception("%s帳簿のローン返済額を計算できないため0として扱います", book)
        return {}


def rebuild_ledger(state: PlanState) -> CashFlowData:
    """Recompute the full ledger from the current inputs.

    Never raises: sub-computations that fail are logged and counted as 0, so
    the result always covers every year from start year to the death-age year.
    """
    info = state.basic_info
    params = state.parameters
    years = info.years()
    if not years:
        return {}
    last_year = years[-1]

    personal_income = state.income.personal
    corporate_income = state.income.corporate

    personal_repayments = _repayments(state.liabilities.personal, last_year, "個人")
    corporate_repayments = _repayments(state.liabilities.corporate, last_year, "法人")
    personal_liabilities = _resolve_liabilities(state.liabilities.personal)
    corporate_liabilities = _resolve_liabilities(state.liabilities.corporate)

    personal_assets = round1(sum(abs(a.amount(info.start_year)) for a in state.assets.personal))
    corporate_assets = round1(sum(abs(a.amount(info.start_year)) for a in state.assets.corporate))
    personal_pool = round1(seed_pool(state.assets.personal, info.start_year))
    corporate_pool = round1(seed_pool(state.assets.corporate, info.start_year))
    logger.debug(
        "台帳: %d-%d年 個人資産%.1f 法人資産%.1f 個人運用%.1f 法人運用%.1f",
        years[0], last_year, personal_assets, corporate_assets, personal_pool, corporate_pool,
    )

    cash_flow: CashFlowData = {}
    for year in years:
        row = CashFlowYear(year=year)

        # 個人収入
        for name, attr in (
            (SALARY_ITEM, "main_income"),
            (SIDE_ITEM, "side_income"),
            (SPOUSE_INCOME_ITEM, "spouse_income"),
        ):
            item = _find(personal_income, name)
            if item is not None:
                setattr(row, attr, round1(item.amount(year)))
        pension, spouse_pension, overrides = _pension_lines(info, personal_income, year)
        row.pension_income = round1(pension)
        row.spouse_pension_income = round1(spouse_pension)

        # 法人収入
        corp_income = corp_other_income = 0.0
        for item in corporate_income:
            if item.category == "income":
                corp_income += item.amount(year)
            else:
                corp_other_income += item.amount(year)
        row.corporate_income = round1(corp_income)
        row.corporate_other_income = round1(corp_other_income)

        # 個人支出
        personal_expense = {"living_expense": 0.0, "housing_expense": 0.0,
                            "education_expense": 0.0, "other_expense": 0.0}
        for item in state.expenses.personal:
            field_name = _PERSONAL_EXPENSE_FIELDS.get(item.category, "other_expense")
            personal_expense[field_name] += item.amount(year)
        for field_name, value in personal_expense.items():
            setattr(row, field_name, round1(value))

        # 法人支出
        corp_expense = corp_other_expense = 0.0
        for item in state.expenses.corporate:
            if item.category == "business":
                corp_expense += item.amount(year)
            else:
                corp_other_expense += item.amount(year)
        row.corporate_expense = round1(corp_expense)
        row.corporate_other_expense = round1(corp_other_expense)

        row.loan_repayment = round1(personal_repayments.get(year, 0.0))
        row.corporate_loan_repayment = round1(corporate_repayments.get(year, 0.0))

        # ライフイベント
        buckets = events_for_year(state.life_events, year)
        personal_events = buckets["personal"]
        corporate_events = buckets["corporate"]
        row.event_income = round1(personal_events.income)
        row.event_expense = round1(personal_events.expense)
        row.corporate_event_income = round1(corporate_events.income)
        row.corporate_event_expense = round1(corporate_events.expense)

        # 運用資産
        row.investment_amount = round1(
            _safe("個人投資額", year, yearly_contribution, personal_income, year, overrides)
        )
        row.investment_income = _safe(
            "個人運用益", year, pool_income, personal_pool, params.investment_return
        )
        personal_pool = next_pool(
            personal_pool, row.investment_amount, row.investment_income,
            buckets["personal_investment"].net,
        )
        row.total_investment_assets = personal_pool

        row.corporate_investment_amount = round1(
            _safe("法人投資額", year, yearly_contribution, corporate_income, year)
        )
        row.corporate_investment_income = _safe(
            "法人運用益", year, pool_income, corporate_pool, params.investment_return
        )
        corporate_pool = next_pool(
            corporate_pool, row.corporate_investment_amount, row.corporate_investment_income,
            buckets["corporate_investment"].net,
        )
        row.corporate_total_investment_assets = corporate_pool

        # 収支・資産
        row.personal_balance = round1(row.personal_total_income - row.personal_total_expense)
        personal_assets = round1(personal_assets + row.personal_balance)
        row.personal_total_assets = personal_assets
        row.personal_liability_total = _liability_total(personal_liabilities, year)
        row.personal_net_assets = round1(personal_assets - row.personal_liability_total)

        row.corporate_balance = round1(row.corporate_total_income - row.corporate_total_expense)
        corporate_assets = round1(corporate_assets + row.corporate_balance)
        row.corporate_total_assets = corporate_assets
        row.corporate_liability_total = _liability_total(corporate_liabilities, year)
        row.corporate_net_assets = round1(corporate_assets - row.corporate_liability_total)

        cash_flow[year] = row

    return cash_flow
