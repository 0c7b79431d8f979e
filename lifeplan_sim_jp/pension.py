"""Public pension (老齢基礎年金 + 老齢厚生年金) per simulated year.

Amounts are computed in 円 and returned in 万円 rounded to one decimal.
The model is simplified: enrollment months come from work start/end ages,
the earnings-related part uses the average of entered salary years mapped
to a standard remuneration grade, and 在職老齢年金 reduces only the
earnings-related part.
"""

import logging
import math
from dataclasses import dataclass

from lifeplan_sim_jp.models import (
    EMPLOYEE_OCCUPATIONS,
    SALARY_ITEM,
    SPOUSE_INCOME_ITEM,
    BasicInfo,
    IncomeItem,
)
from lifeplan_sim_jp.params import round1

logger = logging.getLogger(__name__)

BASIC_PENSION_FULL_AMOUNT = 780_900  # 円/年（令和7年度 満額）
FULL_PENSION_MONTHS = 480            # 40年
MAX_MONTHS_BEFORE_2003 = 240
WELFARE_RATE_BEFORE_2003 = 0.007125  # 7.125/1000
WELFARE_RATE_AFTER_2003 = 0.005481   # 5.481/1000

STANDARD_PENSION_START_AGE = 65
EARLY_RATE_PER_MONTH = 0.004    # 繰上げ: 1か月 -0.4%
DELAYED_RATE_PER_MONTH = 0.007  # 繰下げ: 1か月 +0.7%
MIN_ADJUSTMENT_RATE = 0.5
MAX_DELAYED_MONTHS = 120

# 在職老齢年金の支給停止基準額（円/月）
EARNINGS_TEST_THRESHOLD_UNDER_65 = 470_000
EARNINGS_TEST_THRESHOLD_65_AND_OVER = 510_000

DEFAULT_WORK_START_AGE = 22
DEFAULT_WORK_END_AGE = 60
DEFAULT_MONTHLY_SALARY = 300_000         # 給与入力なしの会社員（年収360万円）
DEFAULT_SPOUSE_MONTHLY_SALARY = 250_000  # 配偶者収入入力なし（年収300万円）

# 標準報酬月額表: (この額未満, 標準報酬月額) 円
_STANDARD_REMUNERATION_GRADES: tuple[tuple[float, int], ...] = (
    (93_000, 88_000),
    (101_000, 98_000),
    (107_000, 104_000),
    (114_000, 110_000),
    (122_000, 118_000),
    (130_000, 126_000),
    (138_000, 134_000),
    (146_000, 142_000),
    (155_000, 150_000),
    (165_000, 160_000),
    (175_000, 170_000),
    (185_000, 180_000),
    (195_000, 190_000),
    (210_000, 200_000),
    (230_000, 220_000),
    (250_000, 240_000),
    (270_000, 260_000),
    (290_000, 280_000),
    (310_000, 300_000),
    (330_000, 320_000),
    (350_000, 340_000),
    (370_000, 360_000),
    (395_000, 380_000),
    (425_000, 410_000),
    (455_000, 440_000),
    (485_000, 470_000),
    (515_000, 500_000),
    (545_000, 530_000),
    (575_000, 560_000),
    (605_000, 590_000),
    (635_000, 620_000),
    (float("inf"), 650_000),
)


@dataclass
class PensionMonths:
    welfare: int = 0
    welfare_before_2003: int = 0
    welfare_after_2003: int = 0
    national: int = 0
    category3: int = 0

    @property
    def total(self) -> int:
        return self.welfare + self.national + self.category3


@dataclass
class PensionProfile:
    """The person whose pension is computed (本人 or 配偶者)."""

    occupation: str
    birth_year: int
    work_start_age: int = DEFAULT_WORK_START_AGE
    work_end_age: int = DEFAULT_WORK_END_AGE
    pension_start_age: int = STANDARD_PENSION_START_AGE
    will_work_after_pension: bool = False


def standard_remuneration(monthly_income: float) -> int:
    """Map a monthly income (円) to its standard remuneration grade (円)."""
    if monthly_income <= 0:
        return 0
    for upper, amount in _STANDARD_REMUNERATION_GRADES:
        if monthly_income < upper:
            return amount
    return _STANDARD_REMUNERATION_GRADES[-1][1]


def enrollment_months(profile: PensionProfile) -> PensionMonths:
    """Enrollment months by pension category, capped at 480 and split at 2003-04."""
    working_years = max(0, profile.work_end_age - profile.work_start_age)
    capped = min(round(working_years * 12), FULL_PENSION_MONTHS)

    age_in_200304 = 2003 - profile.birth_year + 4 / 12
    before = 0
    if age_in_200304 >= profile.work_start_age:
        before = min(round((age_in_200304 - profile.work_start_age) * 12), MAX_MONTHS_BEFORE_2003)
    before = min(before, capped)
    after = capped - before

    logger.debug(
        "加入月数: 開始%d歳 終了%d歳 月数%d (2003年4月前%d / 後%d)",
        profile.work_start_age, profile.work_end_age, capped, before, after,
    )

    if profile.occupation in EMPLOYEE_OCCUPATIONS:
        return PensionMonths(welfare=capped, welfare_before_2003=before, welfare_after_2003=after)
    if profile.occupation in ("part_time_without_pension", "self_employed"):
        return PensionMonths(national=capped)
    if profile.occupation == "homemaker":
        return PensionMonths(category3=capped)
    return PensionMonths()


def basic_pension_amount(total_months: int) -> int:
    """老齢基礎年金 (円/年) = 満額 × min(月数/480, 1), floored."""
    ratio = min(total_months / FULL_PENSION_MONTHS, 1)
    return math.floor(BASIC_PENSION_FULL_AMOUNT * ratio)


def welfare_pension_amount(std_remuneration: int, months_before: int, months_after: int) -> int:
    """老齢厚生年金・報酬比例部分 (円/年), floored."""
    return math.floor(
        std_remuneration * WELFARE_RATE_BEFORE_2003 * months_before
        + std_remuneration * WELFARE_RATE_AFTER_2003 * months_after
    )


def adjustment_rate(pension_start_age: int) -> float:
    """繰上げ・繰下げ調整率: 60歳で0.76、75歳で1.84."""
    month_diff = (pension_start_age - STANDARD_PENSION_START_AGE) * 12
    if month_diff < 0:
        return max(1.0 - abs(month_diff) * EARLY_RATE_PER_MONTH, MIN_ADJUSTMENT_RATE)
    if month_diff > 0:
        return 1.0 + min(month_diff, MAX_DELAYED_MONTHS) * DELAYED_RATE_PER_MONTH
    return 1.0


def earnings_test_threshold(age: int) -> int:
    if age < STANDARD_PENSION_START_AGE:
        return EARNINGS_TEST_THRESHOLD_UNDER_65
    return EARNINGS_TEST_THRESHOLD_65_AND_OVER


def apply_earnings_test(
    basic: int, welfare: int, monthly_income: float, age: int
) -> tuple[int, int]:
    """在職老齢年金: suspend up to the whole earnings-related part.

    suspension = min(monthly welfare, (income + basic/12 + welfare/12 - threshold) / 2).
    Basic pension is never reduced.
    """
    if monthly_income <= 0:
        return basic, welfare
    monthly_basic = basic / 12
    monthly_welfare = welfare / 12
    threshold = earnings_test_threshold(age)
    excess = max(0.0, monthly_income + monthly_basic + monthly_welfare - threshold)
    suspension = min(monthly_welfare, excess / 2)
    if suspension > 0:
        logger.debug(
            "在職老齢年金: 月収%.0f円 基準%d円 超過%.0f円 停止%.0f円/月",
            monthly_income, threshold, excess, suspension,
        )
    return basic, math.floor((monthly_welfare - suspension) * 12)


def average_monthly_salary(item: IncomeItem | None) -> float | None:
    """Average monthly salary (円) over positive gross entries, or None without data."""
    if item is None:
        return None
    history = item.original_amounts or item.amounts
    positives = [float(v) for v in history.values() if v and v > 0]
    if not positives:
        return None
    average = sum(positives) / len(positives)
    logger.debug("平均年収: %.1f万円 (%d年分)", average, len(positives))
    return round(average * 10_000 / 12)


def pension_amount(
    profile: PensionProfile,
    age: int,
    average_salary: float,
    salary_this_year: float = 0.0,
) -> float:
    """Annual pension (万円) for a person aged `age` who has started claiming."""
    months = enrollment_months(profile)
    basic = basic_pension_amount(months.total)

    welfare = 0
    if profile.occupation in EMPLOYEE_OCCUPATIONS:
        std = standard_remuneration(average_salary)
        welfare = welfare_pension_amount(std, months.welfare_before_2003, months.welfare_after_2003)
        logger.debug("厚生年金: 標準報酬月額%d円 → %d円/年", std, welfare)

    rate = adjustment_rate(profile.pension_start_age)
    adjusted_basic = math.floor(basic * rate)
    adjusted_welfare = math.floor(welfare * rate)

    if profile.will_work_after_pension and salary_this_year > 0:
        adjusted_basic, adjusted_welfare = apply_earnings_test(
            adjusted_basic, adjusted_welfare, salary_this_year * 10_000 / 12, age
        )

    total_yen = adjusted_basic + adjusted_welfare
    logger.debug(
        "年金: %d歳 調整率%.3f 基礎%d円 厚生%d円 合計%d円",
        age, rate, adjusted_basic, adjusted_welfare, total_yen,
    )
    return round1(total_yen / 10_000)


def _find_item(personal_income: list[IncomeItem], name: str) -> IncomeItem | None:
    for item in personal_income:
        if item.name == name:
            return item
    return None


def pension_for_year(info: BasicInfo, personal_income: list[IncomeItem], year: int) -> float:
    """本人の年金 (万円/年); 0 before the claim age."""
    age = info.age_in(year)
    start_age = info.pension_start_age or STANDARD_PENSION_START_AGE
    if age < start_age:
        return 0.0

    profile = PensionProfile(
        occupation=info.occupation,
        birth_year=info.start_year - info.current_age,
        work_start_age=info.work_start_age or DEFAULT_WORK_START_AGE,
        work_end_age=info.work_end_age or DEFAULT_WORK_END_AGE,
        pension_start_age=start_age,
        will_work_after_pension=info.will_work_after_pension,
    )
    salary_item = _find_item(personal_income, SALARY_ITEM)
    average = average_monthly_salary(salary_item)
    if average is None:
        average = DEFAULT_MONTHLY_SALARY if info.occupation in EMPLOYEE_OCCUPATIONS else 0
    salary_this_year = salary_item.amount(year) if salary_item else 0.0
    return pension_amount(profile, age, average, salary_this_year)


def spouse_age_in(info: BasicInfo, year: int) -> int | None:
    """Spouse's age in `year`, or None when there is no spouse that year."""
    spouse = info.spouse
    if info.marital_status == "single" or spouse is None:
        return None
    if info.marital_status == "married" and spouse.current_age:
        return spouse.current_age + (year - info.start_year)
    if info.marital_status == "planning" and spouse.marriage_age and spouse.age:
        marriage_year = info.start_year + (spouse.marriage_age - info.current_age)
        if year < marriage_year:
            return None
        return spouse.age + (year - marriage_year)
    return None


def spouse_pension_for_year(info: BasicInfo, personal_income: list[IncomeItem], year: int) -> float:
    """配偶者の年金 (万円/年); 0 when single, before marriage or before the claim age."""
    spouse_age = spouse_age_in(info, year)
    if spouse_age is None:
        logger.debug("配偶者年金: %d年 配偶者なし", year)
        return 0.0
    spouse = info.spouse
    start_age = spouse.pension_start_age or STANDARD_PENSION_START_AGE
    if spouse_age < start_age:
        return 0.0

    occupation = spouse.occupation or "homemaker"
    profile = PensionProfile(
        occupation=occupation,
        birth_year=info.start_year - (spouse_age - (year - info.start_year)),
        work_start_age=spouse.work_start_age or DEFAULT_WORK_START_AGE,
        work_end_age=DEFAULT_WORK_END_AGE,
        pension_start_age=start_age,
        will_work_after_pension=spouse.will_work_after_pension,
    )
    income_item = _find_item(personal_income, SPOUSE_INCOME_ITEM)
    average = average_monthly_salary(income_item)
    if average is None:
        average = DEFAULT_SPOUSE_MONTHLY_SALARY
    salary_this_year = income_item.amount(year) if income_item else 0.0
    return pension_amount(profile, spouse_age, average, salary_this_year)
