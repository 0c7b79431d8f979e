"""Take-home pay from gross salary (給与所得控除・社会保険料・所得税・住民税)."""

from dataclasses import dataclass, field

# 所得税累進税率テーブル（国税庁 令和7年分）
# (上限課税所得・万円, 税率, 控除額・万円)
_INCOME_TAX_BRACKETS: tuple[tuple[float, float, float], ...] = (
    (195, 0.05, 0),
    (330, 0.10, 9.75),
    (695, 0.20, 42.75),
    (900, 0.23, 63.60),
    (1800, 0.33, 153.60),
    (4000, 0.40, 279.60),
    (float("inf"), 0.45, 479.60),
)

RESIDENT_TAX_RATE = 0.10  # 住民税率（一律10%）

# 給与所得控除（円）: 年収850万円以下は 収入×30%+8万円 を 55万〜195万円でクランプ
_SALARY_DEDUCTION_INCOME_LIMIT = 8_500_000
_SALARY_DEDUCTION_MIN = 550_000
_SALARY_DEDUCTION_MAX = 1_950_000

# 社会保険料率: 年収850万円未満は15%、以上は標準報酬上限により7.7%
_SOCIAL_INSURANCE_INCOME_LIMIT = 850  # 万円
_SOCIAL_INSURANCE_RATE_LOW = 0.15
_SOCIAL_INSURANCE_RATE_HIGH = 0.077

# 控除なし（手取り＝額面）の職業
PASS_THROUGH_OCCUPATIONS = ("self_employed", "homemaker")
# 社会保険加入の職業
SOCIAL_INSURANCE_OCCUPATIONS = ("company_employee", "part_time_with_pension")

_YEN_PER_MAN = 10_000
_ROUNDING_UNIT = 1_000  # 各段階で0.1万円単位に四捨五入


@dataclass
class Deductions:
    salary_deduction: float = 0.0
    social_insurance: float = 0.0
    income_tax: float = 0.0
    resident_tax: float = 0.0
    total: float = 0.0


@dataclass
class NetIncomeResult:
    net: float
    deductions: Deductions = field(default_factory=Deductions)


def _round_unit(yen: int) -> int:
    return (yen + _ROUNDING_UNIT // 2) // _ROUNDING_UNIT * _ROUNDING_UNIT


def _to_man(yen: int) -> float:
    return yen / _YEN_PER_MAN


def calc_salary_deduction(gross_yen: int) -> int:
    """Salary income deduction (円), rounded half up to 1,000円."""
    if gross_yen <= _SALARY_DEDUCTION_INCOME_LIMIT:
        deduction = gross_yen * 3 // 10 + 80_000
        return _round_unit(min(max(deduction, _SALARY_DEDUCTION_MIN), _SALARY_DEDUCTION_MAX))
    return _SALARY_DEDUCTION_MAX


def social_insurance_rate(gross: float) -> float:
    """Social insurance rate for gross annual income (万円)."""
    if gross < _SOCIAL_INSURANCE_INCOME_LIMIT:
        return _SOCIAL_INSURANCE_RATE_LOW
    return _SOCIAL_INSURANCE_RATE_HIGH


def calc_income_tax(taxable_yen: int) -> int:
    """Progressive income tax (円) on taxable income (円), rounded half up to 1,000円."""
    for upper, rate, deduction in _INCOME_TAX_BRACKETS:
        if taxable_yen <= upper * _YEN_PER_MAN:
            percent = round(rate * 100)
            tax = taxable_yen * percent // 100 - round(deduction * _YEN_PER_MAN)
            return _round_unit(max(0, tax))
    return 0


def net_income(gross: float, occupation: str) -> NetIncomeResult:
    """Convert gross annual salary (万円) into take-home pay.

    Self-employed and homemaker incomes pass through untouched. Every stage is
    rounded half up to 0.1万円 before feeding the next one.
    """
    if occupation in PASS_THROUGH_OCCUPATIONS or gross <= 0:
        return NetIncomeResult(net=gross)

    gross_yen = round(gross * _YEN_PER_MAN)
    salary_deduction = calc_salary_deduction(gross_yen)

    social_insurance = 0
    if occupation in SOCIAL_INSURANCE_OCCUPATIONS:
        percent_x1000 = round(social_insurance_rate(gross) * 1000)
        social_insurance = _round_unit(gross_yen * percent_x1000 // 1000)

    taxable = max(0, gross_yen - salary_deduction - social_insurance)
    income_tax = calc_income_tax(taxable)
    resident_tax = _round_unit(taxable * round(RESIDENT_TAX_RATE * 100) // 100)

    total = social_insurance + income_tax + resident_tax
    return NetIncomeResult(
        net=_to_man(gross_yen - total),
        deductions=Deductions(
            salary_deduction=_to_man(salary_deduction),
            social_insurance=_to_man(social_insurance),
            income_tax=_to_man(income_tax),
            resident_tax=_to_man(resident_tax),
            total=_to_man(total),
        ),
    )
