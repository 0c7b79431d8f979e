"""Education cost per child-year (文部科学省「子供の学習費調査」ベースの年額)."""

from lifeplan_sim_jp.params import round1

# (下限年齢, 上限年齢, 教育計画のフィールド名)
_STAGES: tuple[tuple[int, int, str], ...] = (
    (0, 2, "nursery"),
    (3, 5, "preschool"),
    (6, 11, "elementary"),
    (12, 14, "junior_high"),
    (15, 17, "high_school"),
    (18, 21, "university"),
)

# 段階 → 選択肢 → 年額（万円）
EDUCATION_COSTS: dict[str, dict[str, float]] = {
    "nursery": {"公立": 29.9, "私立": 35.3, "行かない": 0.0},
    "preschool": {"公立": 18.4, "私立": 34.7, "行かない": 0.0},
    "elementary": {"公立": 33.6, "私立": 182.8, "行かない": 0.0},
    "junior_high": {"公立": 54.2, "私立": 156.0, "行かない": 0.0},
    "high_school": {"公立": 59.7, "私立": 103.0, "行かない": 0.0},
    "university": {
        "国立大学（文系）": 60.6,
        "国立大学（理系）": 60.6,
        "私立大学（文系）": 102.6,
        "私立大学（理系）": 135.4,
        "行かない": 0.0,
    },
}


def stage_for_age(age: int) -> str | None:
    """Return the schooling stage for a child's age, or None outside 0-21."""
    for low, high, stage in _STAGES:
        if low <= age <= high:
            return stage
    return None


def child_cost(age: int, education_plan) -> float:
    """Un-inflated annual cost for one child at `age` (unknown choices cost 0)."""
    stage = stage_for_age(age)
    if stage is None:
        return 0.0
    choice = getattr(education_plan, stage, None)
    return EDUCATION_COSTS[stage].get(choice, 0.0)


def education_expense(
    children,
    planned_children,
    year: int,
    start_year: int,
    education_cost_increase_rate: float,
) -> float:
    """Total education expense for `year`, escalated from `start_year`."""
    elapsed = year - start_year
    factor = (1 + education_cost_increase_rate / 100) ** elapsed

    total = 0.0
    for child in children:
        total += child_cost(child.current_age + elapsed, child.education_plan) * factor
    for child in planned_children:
        if elapsed >= child.years_from_now:
            total += child_cost(elapsed - child.years_from_now, child.education_plan) * factor
    return round1(total)
