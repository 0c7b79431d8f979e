"""Plan input tables and the yearly cash-flow record."""

import math
from dataclasses import dataclass, field
from datetime import date

from lifeplan_sim_jp.housing import OwnPlan, RentPlan
from lifeplan_sim_jp.params import Parameters

OCCUPATIONS = (
    "company_employee",
    "part_time_with_pension",
    "part_time_without_pension",
    "self_employed",
    "homemaker",
)
# 厚生年金・社会保険の加入者
EMPLOYEE_OCCUPATIONS = ("company_employee", "part_time_with_pension")
MARITAL_STATUSES = ("single", "married", "planning")
BOOKS = ("personal", "corporate")

INCOME_CATEGORIES = ("income", "other")
EXPENSE_CATEGORIES = ("living", "housing", "education", "business", "office", "other")
ASSET_TYPES = ("cash", "investment", "property", "other")
LIABILITY_TYPES = ("loan", "credit", "other")
EVENT_TYPES = ("income", "expense")
EVENT_SOURCES = ("personal", "corporate", "personal_investment", "corporate_investment")

# 既定の項目名（台帳はこれらの名前で個人収入・派生行を識別する）
SALARY_ITEM = "給与収入"
BUSINESS_ITEM = "事業収入"
SIDE_ITEM = "副業収入"
PENSION_ITEM = "年金収入"
SPOUSE_PENSION_ITEM = "配偶者年金収入"
SPOUSE_INCOME_ITEM = "配偶者収入"
LIVING_ITEM = "生活費"
HOUSING_ITEM = "住居費"
EDUCATION_ITEM = "教育費"
CASH_ITEM = "現金・預金"
REAL_ESTATE_ITEM = "不動産"
LOAN_ITEM = "ローン"


def amount_at(amounts: dict[int, float] | None, year: int) -> float:
    """Return amounts[year], treating missing, None and non-finite values as 0."""
    if not amounts:
        return 0.0
    value = amounts.get(year)
    if value is None:
        return 0.0
    value = float(value)
    if not math.isfinite(value):
        return 0.0
    return value


@dataclass
class HousingInfo:
    """Rent plan XOR purchase plan, selected by `type`."""

    type: str = "rent"
    rent: RentPlan | None = field(default_factory=RentPlan)
    own: OwnPlan | None = None

    @property
    def plan(self) -> RentPlan | OwnPlan | None:
        if self.type == "rent":
            return self.rent
        if self.type == "own":
            return self.own
        return None


@dataclass
class EducationPlan:
    """Per-stage schooling choice (公立/私立/行かない, 大学は国立・私立×文系・理系)."""

    nursery: str = "公立"
    preschool: str = "公立"
    elementary: str = "公立"
    junior_high: str = "公立"
    high_school: str = "公立"
    university: str = "国立大学（文系）"


@dataclass
class Child:
    current_age: int
    education_plan: EducationPlan = field(default_factory=EducationPlan)


@dataclass
class PlannedChild:
    years_from_now: int
    education_plan: EducationPlan = field(default_factory=EducationPlan)


@dataclass
class SpouseInfo:

    current_age: int | None = None   # 既婚: 現在の年齢
    age: int | None = None           # 結婚予定: 結婚時の配偶者の年齢
    marriage_age: int | None = None  # 結婚予定: 結婚時の本人の年齢
    occupation: str = "homemaker"
    additional_expense: float = 0.0
    work_start_age: int = 22
    pension_start_age: int = 65
    will_work_after_pension: bool = False


@dataclass
class BasicInfo:

    current_age: int = 30
    start_year: int = field(default_factory=lambda: date.today().year)
    death_age: int = 80
    gender: str = "male"
    monthly_living_expense: float = 0.0  # 万円/月
    occupation: str = "company_employee"
    marital_status: str = "single"
    housing: HousingInfo = field(default_factory=HousingInfo)
    spouse: SpouseInfo | None = None
    children: list[Child] = field(default_factory=list)
    planned_children: list[PlannedChild] = field(default_factory=list)
    # 年金関連
    work_start_age: int = 22
    work_end_age: int | None = None  # 未設定なら60歳退職とみなす
    pension_start_age: int = 65
    will_work_after_pension: bool = False

    @property
    def end_year(self) -> int:
        return self.start_year + (self.death_age - self.current_age)

    def years(self) -> list[int]:
        """Simulated years, start_year through the death-age year inclusive."""
        return list(range(self.start_year, self.end_year + 1))

    def age_in(self, year: int) -> int:
        return self.current_age + (year - self.start_year)


@dataclass
class IncomeItem:
    """One income stream. For net-converted salary rows `amounts` is net, `original_amounts` gross."""

    id: str
    name: str
    category: str = "income"
    amounts: dict[int, float] = field(default_factory=dict)
    original_amounts: dict[int, float] | None = None
    investment_ratio: float = 10.0      # %
    max_investment_amount: float = 100.0  # 万円/年 (0 = 上限なし)
    auto_calculated: bool = False

    def amount(self, year: int) -> float:
        return amount_at(self.amounts, year)


@dataclass
class ExpenseItem:
    """One expense stream. `amounts[y]` is `raw_amounts[y]` escalated by the category rate."""

    id: str
    name: str
    category: str = "other"
    amounts: dict[int, float] = field(default_factory=dict)
    raw_amounts: dict[int, float] | None = None

    def amount(self, year: int) -> float:
        return amount_at(self.amounts, year)


@dataclass
class AssetItem:
    id: str
    name: str
    type: str = "cash"
    category: str = "asset"
    amounts: dict[int, float] = field(default_factory=dict)
    is_investment: bool = False

    def amount(self, year: int) -> float:
        return amount_at(self.amounts, year)


@dataclass
class LiabilityItem:
    """A liability balance per year (non-negative), optionally auto-amortized."""

    id: str
    name: str
    type: str = "loan"
    category: str = "liability"
    amounts: dict[int, float] = field(default_factory=dict)
    interest_rate: float | None = None
    term_years: int | None = None
    start_year: int | None = None
    repayment_type: str | None = None  # equal_principal | equal_payment
    auto_calculate: bool = False
    original_amount: float | None = None
    calculation_hash: str | None = None

    def amount(self, year: int) -> float:
        return amount_at(self.amounts, year)


@dataclass
class LifeEvent:
    year: int
    description: str
    type: str        # income | expense
    category: str
    amount: float    # >= 0
    source: str = "personal"


@dataclass
class Section:
    """Personal and corporate books of one table."""

    personal: list = field(default_factory=list)
    corporate: list = field(default_factory=list)

    def book(self, name: str) -> list:
        if name == "personal":
            return self.personal
        if name == "corporate":
            return self.corporate
        raise ValueError(f"不明な帳簿: {name}")

    def find(self, book: str, item_id: str):
        for item in self.book(book):
            if item.id == item_id:
                return item
        return None


@dataclass
class PlanState:
    """All inputs the ledger is built from."""

    basic_info: BasicInfo = field(default_factory=BasicInfo)
    parameters: Parameters = field(default_factory=Parameters)
    income: Section = field(default_factory=Section)
    expenses: Section = field(default_factory=Section)
    assets: Section = field(default_factory=Section)
    liabilities: Section = field(default_factory=Section)
    life_events: list[LifeEvent] = field(default_factory=list)


@dataclass
class CashFlowYear:
    """One simulated year of the personal and corporate ledgers."""

    year: int
    # 個人収入
    main_income: float = 0.0
    side_income: float = 0.0
    spouse_income: float = 0.0
    pension_income: float = 0.0
    spouse_pension_income: float = 0.0
    investment_income: float = 0.0
    # 個人支出
    living_expense: float = 0.0
    housing_expense: float = 0.0
    education_expense: float = 0.0
    other_expense: float = 0.0
    loan_repayment: float = 0.0
    # ライフイベント（個人）
    event_income: float = 0.0
    event_expense: float = 0.0
    # 個人収支・資産
    investment_amount: float = 0.0
    total_investment_assets: float = 0.0
    personal_balance: float = 0.0
    personal_total_assets: float = 0.0
    personal_liability_total: float = 0.0
    personal_net_assets: float = 0.0
    # 法人
    corporate_income: float = 0.0
    corporate_other_income: float = 0.0
    corporate_expense: float = 0.0
    corporate_other_expense: float = 0.0
    corporate_loan_repayment: float = 0.0
    corporate_event_income: float = 0.0
    corporate_event_expense: float = 0.0
    corporate_balance: float = 0.0
    corporate_total_assets: float = 0.0
    corporate_liability_total: float = 0.0
    corporate_net_assets: float = 0.0
    corporate_investment_amount: float = 0.0
    corporate_investment_income: float = 0.0
    corporate_total_investment_assets: float = 0.0

    @property
    def personal_assets(self) -> float:
        return self.personal_total_assets

    @property
    def personal_total_income(self) -> float:
        return (
            self.main_income + self.side_income + self.spouse_income
            + self.pension_income + self.spouse_pension_income
            + self.investment_income + self.event_income
        )

    @property
    def personal_total_expense(self) -> float:
        return (
            self.living_expense + self.housing_expense + self.education_expense
            + self.other_expense + self.loan_repayment + self.event_expense
        )

    @property
    def corporate_total_income(self) -> float:
        return (
            self.corporate_income + self.corporate_other_income
            + self.corporate_investment_income + self.corporate_event_income
        )

    @property
    def corporate_total_expense(self) -> float:
        return (
            self.corporate_expense + self.corporate_other_expense
            + self.corporate_loan_repayment + self.corporate_event_expense
        )


CashFlowData = dict[int, CashFlowYear]
