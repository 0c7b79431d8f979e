"""Application state owner: mutating commands, derived rows and the change signal."""

import dataclasses
import logging
import math
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from lifeplan_sim_jp.education import education_expense
from lifeplan_sim_jp.events import move_event
from lifeplan_sim_jp.housing import OwnPlan, housing_expense
from lifeplan_sim_jp.loan import (
    LoanSettings,
    apply_settings,
    clear_settings,
    funding_event,
    is_funding_event_of,
    regenerate_if_stale,
)
from lifeplan_sim_jp.models import (
    EDUCATION_ITEM,
    EMPLOYEE_OCCUPATIONS,
    HOUSING_ITEM,
    LIVING_ITEM,
    LOAN_ITEM,
    PENSION_ITEM,
    REAL_ESTATE_ITEM,
    SALARY_ITEM,
    SPOUSE_INCOME_ITEM,
    SPOUSE_PENSION_ITEM,
    AssetItem,
    CashFlowData,
    ExpenseItem,
    IncomeItem,
    LiabilityItem,
    LifeEvent,
    PlanState,
    Section,
)
from lifeplan_sim_jp.params import inflate_amount
from lifeplan_sim_jp.simulation import rebuild_ledger
from lifeplan_sim_jp.tax import net_income

logger = logging.getLogger(__name__)

Listener = Callable[[CashFlowData], None]

# 既定の行: (名前, カテゴリ/種類)
_PERSONAL_INCOME_ROWS = (
    ("給与収入", "income"),
    ("事業収入", "income"),
    ("副業収入", "income"),
)
_CORPORATE_INCOME_ROWS = (
    ("売上", "income"),
    ("その他収入", "other"),
)
_PENSION_INVESTMENT_RATIO = 5.0   # 年金収入の投資割合（%）
_PENSION_MAX_INVESTMENT = 50.0    # 年金収入の投資上限（万円/年）

_PERSONAL_EXPENSE_ROWS = (
    (LIVING_ITEM, "living"),
    (HOUSING_ITEM, "housing"),
    (EDUCATION_ITEM, "education"),
    ("その他", "other"),
)
_CORPORATE_EXPENSE_ROWS = (
    ("人件費", "business"),
    ("外注費", "business"),
    ("家賃", "office"),
    ("設備費", "office"),
    ("その他", "other"),
)

# (名前, 種類, 運用対象)
_PERSONAL_ASSET_ROWS = (
    ("現金・預金", "cash", False),
    ("株式", "investment", True),
    ("投資信託", "investment", True),
    (REAL_ESTATE_ITEM, "property", False),
)
_CORPORATE_ASSET_ROWS = (
    ("現金預金", "cash", False),
    ("設備", "property", False),
    ("在庫", "other", False),
)

# (名前, 種類, 金利, 期間)
_PERSONAL_LIABILITY_ROWS = (
    (LOAN_ITEM, "loan", 1.0, 35),
    ("クレジット残高", "credit", None, None),
)
_CORPORATE_LIABILITY_ROWS = (
    ("借入金", "loan", 2.0, 10),
    ("未払金", "other", None, None),
)

RAISE_PERCENTAGE = "percentage"
RAISE_AMOUNT = "amount"


def _next_id(items: list) -> str:
    numbers = [int(item.id) for item in items if str(item.id).isdigit()]
    return str(max(numbers, default=0) + 1)


def _find_by_name(items: list, name: str):
    for item in items:
        if item.name == name:
            return item
    return None


class Simulator:
    """Owns a PlanState and the ledger derived from it.

    Every command mutates the state and ends with one change signal: the
    ledger is rebuilt and each subscribed listener receives the new cash flow.
    Inside `batch()` the signal is deferred until the outermost block exits.
    """

    def __init__(self, state: PlanState | None = None, current_year: int | None = None):
        # 家賃上昇の基準年（None = 実行時の年）
        self.current_year = current_year
        self.cash_flow: CashFlowData = {}
        self._listeners: list[Listener] = []
        self._batch_depth = 0
        self._pending = False
        if state is None:
            self.state = PlanState()
            self.initialize_form_data()
        else:
            self.state = state
        self.rebuild()

    # -- change signal -------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @contextmanager
    def batch(self) -> Iterator["Simulator"]:
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._pending:
                self._pending = False
                self._changed()

    def _changed(self) -> None:
        if self._batch_depth > 0:
            self._pending = True
            return
        self.rebuild()
        for listener in list(self._listeners):
            listener(self.cash_flow)

    def rebuild(self) -> CashFlowData:
        self.cash_flow = rebuild_ledger(self.state)
        logger.debug("台帳を再計算しました（%d年分）", len(self.cash_flow))
        return self.cash_flow

    # -- basic info / parameters ---------------------------------------

    def set_basic_info(self, **changes) -> None:
        """Update the profile; amounts written for a previous purchase plan are removed."""
        previous = self.state.basic_info.housing
        self.state.basic_info = dataclasses.replace(self.state.basic_info, **changes)
        if previous is not None and previous.type == "own" and isinstance(previous.own, OwnPlan):
            self._clear_purchase(previous.own)
        self.initialize_form_data()
        self._changed()

    def _clear_purchase(self, own: OwnPlan) -> None:
        # 手入力で上書きされた金額は残す
        real_estate = _find_by_name(self.state.assets.personal, REAL_ESTATE_ITEM)
        if real_estate is not None and real_estate.amounts.get(own.purchase_year) == own.purchase_price:
            del real_estate.amounts[own.purchase_year]
        loan = _find_by_name(self.state.liabilities.personal, LOAN_ITEM)
        if (
            loan is not None
            and not loan.auto_calculate
            and loan.amounts.get(own.purchase_year) == own.loan_amount
        ):
            del loan.amounts[own.purchase_year]

    def set_parameters(self, **changes) -> None:
        """Update rates; every expense is re-escalated from its raw amounts."""
        self.state.parameters = dataclasses.replace(self.state.parameters, **changes)
        for book in ("personal", "corporate"):
            for item in self.state.expenses.book(book):
                self._escalate(item)
        self._refresh_derived_expenses()
        self._changed()

    # -- table replacement ---------------------------------------------

    def set_income_data(self, income: Section) -> None:
        self.state.income = income
        self._changed()

    def set_expense_data(self, expenses: Section) -> None:
        self.state.expenses = expenses
        self._changed()

    def set_asset_data(self, assets: Section) -> None:
        self.state.assets = assets
        self._changed()

    def set_liability_data(self, liabilities: Section) -> None:
        """Replace liabilities, regenerating auto-calculated schedules whose settings changed."""
        self.state.liabilities = liabilities
        for book in ("personal", "corporate"):
            for item in liabilities.book(book):
                regenerate_if_stale(item)
        self._changed()

    # -- life events ---------------------------------------------------

    def add_life_event(self, event: LifeEvent) -> None:
        self.state.life_events.append(event)
        self._changed()

    def remove_life_event(self, index: int) -> None:
        if not 0 <= index < len(self.state.life_events):
            raise IndexError(f"ライフイベントの番号が範囲外です: {index}")
        del self.state.life_events[index]
        self._changed()

    def move_life_event(self, index: int, offset: int) -> None:
        self.state.life_events = move_event(self.state.life_events, index, offset)
        self._changed()

    # -- default rows --------------------------------------------------

    def initialize_form_data(self) -> None:
        """Create missing default rows and refill the rows derived from basic info.

        Rows the user already has are kept; living, housing and education
        expenses, the purchased home and its mortgage are regenerated.
        """
        info = self.state.basic_info
        params = self.state.parameters
        income = self.state.income

        for name, category in _PERSONAL_INCOME_ROWS:
            self._ensure_income(income.personal, name, category, params.investment_ratio,
                                params.max_investment_amount)
        self._ensure_income(income.personal, PENSION_ITEM, "income", _PENSION_INVESTMENT_RATIO,
                            _PENSION_MAX_INVESTMENT, auto_calculated=True)
        for name, category in _CORPORATE_INCOME_ROWS:
            self._ensure_income(income.corporate, name, category, params.investment_ratio,
                                params.max_investment_amount)

        if info.marital_status != "single":
            self._ensure_income(income.personal, SPOUSE_PENSION_ITEM, "income",
                                _PENSION_INVESTMENT_RATIO, _PENSION_MAX_INVESTMENT,
                                auto_calculated=True)
        else:
            income.personal[:] = [i for i in income.personal if i.name != SPOUSE_PENSION_ITEM]

        spouse_works = (
            info.marital_status != "single"
            and info.spouse is not None
            and info.spouse.occupation != "homemaker"
        )
        if spouse_works:
            self._ensure_income(income.personal, SPOUSE_INCOME_ITEM, "income",
                                params.investment_ratio, params.max_investment_amount)
        elif info.marital_status == "single":
            income.personal[:] = [i for i in income.personal if i.name != SPOUSE_INCOME_ITEM]

        expenses = self.state.expenses
        for name, category in _PERSONAL_EXPENSE_ROWS:
            if _find_by_name(expenses.personal, name) is None:
                expenses.personal.append(ExpenseItem(_next_id(expenses.personal), name, category))
        for name, category in _CORPORATE_EXPENSE_ROWS:
            if _find_by_name(expenses.corporate, name) is None:
                expenses.corporate.append(ExpenseItem(_next_id(expenses.corporate), name, category))

        assets = self.state.assets
        for rows, items in ((_PERSONAL_ASSET_ROWS, assets.personal),
                            (_CORPORATE_ASSET_ROWS, assets.corporate)):
            for name, asset_type, is_investment in rows:
                if _find_by_name(items, name) is None:
                    items.append(AssetItem(_next_id(items), name, asset_type,
                                           is_investment=is_investment))

        liabilities = self.state.liabilities
        for rows, items in ((_PERSONAL_LIABILITY_ROWS, liabilities.personal),
                            (_CORPORATE_LIABILITY_ROWS, liabilities.corporate)):
            for name, liability_type, rate, term in rows:
                if _find_by_name(items, name) is None:
                    items.append(LiabilityItem(_next_id(items), name, liability_type,
                                               interest_rate=rate, term_years=term))

        living = _find_by_name(expenses.personal, LIVING_ITEM)
        if living is not None:
            base = info.monthly_living_expense * 12
            living.raw_amounts = {year: base for year in info.years()}
            self._escalate(living)
        self._refresh_derived_expenses()

        own = info.housing.own if info.housing.type == "own" else None
        if isinstance(own, OwnPlan):
            real_estate = _find_by_name(assets.personal, REAL_ESTATE_ITEM)
            if real_estate is not None:
                real_estate.amounts[own.purchase_year] = own.purchase_price
            loan = _find_by_name(liabilities.personal, LOAN_ITEM)
            if loan is not None and not loan.auto_calculate:
                loan.amounts[own.purchase_year] = own.loan_amount

    def _ensure_income(
        self,
        items: list[IncomeItem],
        name: str,
        category: str,
        ratio: float,
        cap: float,
        auto_calculated: bool = False,
    ) -> None:
        if _find_by_name(items, name) is None:
            items.append(IncomeItem(
                _next_id(items), name, category,
                investment_ratio=ratio, max_investment_amount=cap,
                auto_calculated=auto_calculated,
            ))

    def _refresh_derived_expenses(self) -> None:
        """Recompute the housing and education rows from basic info."""
        info = self.state.basic_info
        params = self.state.parameters
        housing_item = _find_by_name(self.state.expenses.personal, HOUSING_ITEM)
        if housing_item is not None:
            housing_item.raw_amounts = None
            housing_item.amounts = {
                year: housing_expense(info.housing, year, self.current_year)
                for year in info.years()
            }
        education_item = _find_by_name(self.state.expenses.personal, EDUCATION_ITEM)
        if education_item is not None:
            education_item.category = "education"
            education_item.raw_amounts = None
            education_item.amounts = {
                year: education_expense(
                    info.children, info.planned_children, year, info.start_year,
                    params.education_cost_increase_rate,
                )
                for year in info.years()
            }

    def _escalate(self, item: ExpenseItem) -> None:
        if not item.raw_amounts:
            return
        start_year = self.state.basic_info.start_year
        for year, raw in item.raw_amounts.items():
            if raw is None:
                continue
            item.amounts[year] = inflate_amount(raw, item.category, year - start_year,
                                                self.state.parameters)

    # -- income / expense entry ----------------------------------------

    def _income_item(self, book: str, item_id: str) -> IncomeItem:
        item = self.state.income.find(book, item_id)
        if item is None:
            raise ValueError(f"収入項目が見つかりません: {book}/{item_id}")
        return item

    def _expense_item(self, book: str, item_id: str) -> ExpenseItem:
        item = self.state.expenses.find(book, item_id)
        if item is None:
            raise ValueError(f"支出項目が見つかりません: {book}/{item_id}")
        return item

    def _net_income_occupation(self, book: str, item: IncomeItem) -> str | None:
        """Occupation whose take-home pay `item` holds, or None when it stays gross."""
        if book != "personal":
            return None
        info = self.state.basic_info
        if item.name == SALARY_ITEM and info.occupation in EMPLOYEE_OCCUPATIONS:
            return info.occupation
        if (item.name == SPOUSE_INCOME_ITEM and info.spouse is not None
                and info.spouse.occupation in EMPLOYEE_OCCUPATIONS):
            return info.spouse.occupation
        return None

    def _store_income(self, book: str, item: IncomeItem, year: int, gross: float) -> None:
        occupation = self._net_income_occupation(book, item)
        if occupation is None:
            item.amounts[year] = gross
            return
        if item.original_amounts is None:
            item.original_amounts = {}
        item.original_amounts[year] = gross
        item.amounts[year] = net_income(gross, occupation).net

    def autofill_income(
        self,
        book: str,
        item_id: str,
        initial_amount: float,
        end_age: int = 60,
        raise_type: str = RAISE_PERCENTAGE,
        raise_percentage: float = 1.0,
        raise_amount: float = 10.0,
    ) -> None:
        """Fill an income row from the start year through `end_age` with yearly raises.

        Gross amounts are floored to whole 万円; employee salary rows store the
        take-home figure with the gross kept in `original_amounts`.
        """
        if raise_type not in (RAISE_PERCENTAGE, RAISE_AMOUNT):
            raise ValueError(f"不明な昇給タイプ: {raise_type}")
        item = self._income_item(book, item_id)
        info = self.state.basic_info
        end_year = info.start_year + (end_age - info.current_age)
        for index, year in enumerate(y for y in info.years() if y <= end_year):
            if raise_type == RAISE_PERCENTAGE:
                gross = initial_amount * (1 + raise_percentage / 100) ** index
            else:
                gross = initial_amount + raise_amount * index
            self._store_income(book, item, year, float(math.floor(gross)))
        self._changed()

    def set_income_amount(self, book: str, item_id: str, year: int, value: float) -> None:
        """Edit one year of an income row (gross for net-converted rows)."""
        item = self._income_item(book, item_id)
        self._store_income(book, item, year, value)
        self._changed()

    def autofill_expense(self, book: str, item_id: str, initial_amount: float, end_age: int = 60) -> None:
        """Fill an expense row with a constant raw amount through `end_age`, escalated per category."""
        item = self._expense_item(book, item_id)
        info = self.state.basic_info
        end_year = info.start_year + (end_age - info.current_age)
        if item.raw_amounts is None:
            item.raw_amounts = {}
        for year in info.years():
            if year <= end_year:
                item.raw_amounts[year] = initial_amount
        self._escalate(item)
        self._changed()

    def set_expense_amount(self, book: str, item_id: str, year: int, raw: float) -> None:
        """Edit one year of an expense row by its pre-escalation amount."""
        item = self._expense_item(book, item_id)
        if item.raw_amounts is None:
            item.raw_amounts = {}
        item.raw_amounts[year] = raw
        item.amounts[year] = inflate_amount(
            raw, item.category, year - self.state.basic_info.start_year, self.state.parameters
        )
        self._changed()

    # -- loans ---------------------------------------------------------

    def _liability_item(self, book: str, item_id: str) -> LiabilityItem:
        item = self.state.liabilities.find(book, item_id)
        if item is None:
            raise ValueError(f"負債項目が見つかりません: {book}/{item_id}")
        return item

    def _remove_funding_events(self, item: LiabilityItem, book: str) -> None:
        self.state.life_events = [
            e for e in self.state.life_events if not is_funding_event_of(e, item, book)
        ]

    def apply_loan_calculation(self, book: str, item_id: str, settings: LoanSettings) -> None:
        """Generate the repayment schedule and record the borrowing as a life event."""
        item = self._liability_item(book, item_id)
        if item.auto_calculate:
            self._remove_funding_events(item, book)
        apply_settings(item, settings)
        self.state.life_events.append(funding_event(item, book))
        logger.info(
            "負債「%s」: %d年から%d年 %.1f万円 金利%.2f%% (%s)",
            item.name, settings.start_year, settings.term_years, settings.principal,
            settings.interest_rate, settings.repayment_type,
        )
        self._changed()

    def cancel_loan_calculation(self, book: str, item_id: str) -> None:
        """Clear an auto-calculated schedule and its borrowing event."""
        item = self._liability_item(book, item_id)
        if not item.auto_calculate:
            return
        self._remove_funding_events(item, book)
        clear_settings(item)
        self._changed()
