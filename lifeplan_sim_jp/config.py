"""TOML scenario loader with CLI > config > default resolution."""

import argparse
import dataclasses
import logging
import sys
import tomllib
from collections.abc import Callable
from datetime import date
from pathlib import Path

from lifeplan_sim_jp.housing import OwnPlan, RentPlan
from lifeplan_sim_jp.loan import EQUAL_PAYMENT, LoanSettings
from lifeplan_sim_jp.models import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    AssetItem,
    BasicInfo,
    Child,
    EducationPlan,
    ExpenseItem,
    HousingInfo,
    IncomeItem,
    LiabilityItem,
    LifeEvent,
    PlannedChild,
    PlanState,
    SpouseInfo,
)
from lifeplan_sim_jp.params import Parameters
from lifeplan_sim_jp.store import RAISE_PERCENTAGE, Simulator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.toml")

DEFAULTS = {
    "current_age": 30,
    "start_year": None,  # None = 実行時の年
    "death_age": 80,
    "inflation_rate": 1.0,
    "education_cost_increase_rate": 1.0,
    "investment_return": 1.0,
}

# DEFAULTS のキーが config.toml のどのテーブルにあるか
_SCALAR_TABLES = {
    "current_age": "basic",
    "start_year": "basic",
    "death_age": "basic",
    "inflation_rate": "parameters",
    "education_cost_increase_rate": "parameters",
    "investment_return": "parameters",
}

# トップレベルに書かれた旧形式のキー → [basic] へ移動
_LEGACY_BASIC_KEYS = (
    "current_age",
    "start_year",
    "death_age",
    "occupation",
    "work_start_age",
    "work_end_age",
    "pension_start_age",
    "will_work_after_pension",
)


def _migrate_category(row: dict, categories: tuple[str, ...], fallback: str) -> None:
    """Fold the legacy `type` key into `category`."""
    if "type" not in row:
        return
    legacy = row.pop("type")
    if "category" not in row:
        row["category"] = legacy if legacy in categories else fallback


def load_config(path: Path | None = None) -> dict:
    """Load TOML config file. Returns empty dict if file doesn't exist."""
    if path is None:
        path = DEFAULT_CONFIG_PATH
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        print(f"設定ファイルの読み込みに失敗: {path}: {e}", file=sys.stderr)
        raise SystemExit(1)
    # Migrate legacy top-level basic keys → [basic]
    basic = raw.setdefault("basic", {})
    for key in _LEGACY_BASIC_KEYS:
        if key in raw:
            v = raw.pop(key)
            basic.setdefault(key, v)
    # Migrate legacy type → category (single classification field)
    for row in raw.get("income", []):
        _migrate_category(row, INCOME_CATEGORIES, "income")
    for row in raw.get("expenses", []):
        _migrate_category(row, EXPENSE_CATEGORIES, "other")
    return raw


def create_parser(description: str) -> argparse.ArgumentParser:
    """Create argparse parser with shared simulation flags."""
    d = DEFAULTS
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--config", type=Path, default=None, help="設定ファイルパス (default: config.toml)")
    parser.add_argument("--current-age", type=int, default=None, help=f"現在の年齢 (default: {d['current_age']})")
    parser.add_argument("--start-year", type=int, default=None, help="シミュレーション開始年 (default: 今年)")
    parser.add_argument("--death-age", type=int, default=None, help=f"想定寿命 (default: {d['death_age']})")
    parser.add_argument("--inflation-rate", type=float, default=None, help=f"物価上昇率・%%/年 (default: {d['inflation_rate']})")
    parser.add_argument("--education-cost-increase-rate", type=float, default=None, help=f"教育費上昇率・%%/年 (default: {d['education_cost_increase_rate']})")
    parser.add_argument("--investment-return", type=float, default=None, help=f"運用利回り・%%/年 (default: {d['investment_return']})")
    parser.add_argument("--verbose", action="store_true", help="計算過程をデバッグログとして標準エラーに出力")
    return parser


def resolve(args: argparse.Namespace, config: dict) -> dict:
    """Resolve values with priority: CLI flag > config.toml > hardcoded default."""
    resolved = {}
    for key, default in DEFAULTS.items():
        cli_val = getattr(args, key, None)
        config_val = config.get(_SCALAR_TABLES[key], {}).get(key)
        if cli_val is not None:
            resolved[key] = cli_val
        elif config_val is not None:
            resolved[key] = config_val
        else:
            resolved[key] = default
    if resolved["start_year"] is None:
        resolved["start_year"] = date.today().year
    return resolved


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def parse_args(
    description: str,
    add_args_fn: Callable[[argparse.ArgumentParser], None] | None = None,
) -> tuple[dict, dict, argparse.Namespace]:
    """Parse CLI args, load config, resolve values.

    Returns (resolved_dict, config, namespace).
    """
    parser = create_parser(description)
    if add_args_fn:
        add_args_fn(parser)
    args = parser.parse_args()
    setup_logging(args.verbose)
    config = load_config(args.config)
    return resolve(args, config), config, args


def _pick(cls, table: dict, label: str) -> dict:
    """Keep only the keys `cls` accepts; unknown keys are logged and dropped."""
    names = {f.name for f in dataclasses.fields(cls)}
    unknown = sorted(set(table) - names)
    if unknown:
        logger.warning("%s の不明なキーを無視します: %s", label, ", ".join(unknown))
    return {k: v for k, v in table.items() if k in names}


def _year_map(table: dict | None) -> dict[int, float]:
    """TOML amount table {"2030" = 600} → {2030: 600.0}."""
    if not table:
        return {}
    return {int(year): float(value) for year, value in table.items()}


def _education_plan(table: dict) -> EducationPlan:
    return EducationPlan(**_pick(EducationPlan, table.get("education", {}), "education"))


def build_basic_info(config: dict, r: dict) -> BasicInfo:
    """Build BasicInfo from [basic] with the resolved scalar flags applied."""
    basic = dict(config.get("basic", {}))
    housing_table = dict(basic.pop("housing", {}))
    spouse_table = basic.pop("spouse", None)
    children = basic.pop("children", [])
    planned = basic.pop("planned_children", [])

    housing_type = housing_table.pop("type", "rent")
    if housing_type == "own":
        housing = HousingInfo(type="own", rent=None, own=OwnPlan(**_pick(OwnPlan, housing_table, "basic.housing")))
    else:
        housing = HousingInfo(type=housing_type, rent=RentPlan(**_pick(RentPlan, housing_table, "basic.housing")))

    fields = _pick(BasicInfo, basic, "basic")
    for key in ("current_age", "start_year", "death_age"):
        fields[key] = r[key]
    return BasicInfo(
        **fields,
        housing=housing,
        spouse=SpouseInfo(**_pick(SpouseInfo, spouse_table, "basic.spouse")) if spouse_table else None,
        children=[Child(current_age=c["current_age"], education_plan=_education_plan(c)) for c in children],
        planned_children=[
            PlannedChild(years_from_now=c["years_from_now"], education_plan=_education_plan(c))
            for c in planned
        ],
    )


def build_parameters(config: dict, r: dict) -> Parameters:
    fields = _pick(Parameters, config.get("parameters", {}), "parameters")
    for key in ("inflation_rate", "education_cost_increase_rate", "investment_return"):
        fields[key] = r[key]
    return Parameters(**fields)


def _row_item(section, book: str, row: dict, factory):
    """Existing row with the same name in `book`, or a newly appended one."""
    items = section.book(book)
    for item in items:
        if item.name == row["name"]:
            return item
    numbers = [int(i.id) for i in items if str(i.id).isdigit()]
    item = factory(str(max(numbers, default=0) + 1), row["name"])
    items.append(item)
    return item


def apply_config_rows(sim: Simulator, config: dict) -> None:
    """Feed [[income]], [[expenses]], [[assets]], [[liabilities]] and [[life_events]] through the store."""
    state = sim.state
    params = state.parameters
    with sim.batch():
        for row in config.get("income", []):
            book = row.get("book", "personal")
            item = _row_item(state.income, book, row, lambda i, n: IncomeItem(
                i, n, investment_ratio=params.investment_ratio,
                max_investment_amount=params.max_investment_amount,
            ))
            for key in ("category", "investment_ratio", "max_investment_amount", "auto_calculated"):
                if key in row:
                    setattr(item, key, row[key])
            if "initial_amount" in row:
                sim.autofill_income(
                    book, item.id, row["initial_amount"],
                    end_age=row.get("end_age", 60),
                    raise_type=row.get("raise_type", RAISE_PERCENTAGE),
                    raise_percentage=row.get("raise_percentage", 1.0),
                    raise_amount=row.get("raise_amount", 10.0),
                )
            for year, value in _year_map(row.get("amounts")).items():
                sim.set_income_amount(book, item.id, year, value)

        for row in config.get("expenses", []):
            book = row.get("book", "personal")
            item = _row_item(state.expenses, book, row, lambda i, n: ExpenseItem(i, n))
            if "category" in row:
                item.category = row["category"]
            if "initial_amount" in row:
                sim.autofill_expense(book, item.id, row["initial_amount"], end_age=row.get("end_age", 60))
            for year, value in _year_map(row.get("amounts")).items():
                sim.set_expense_amount(book, item.id, year, value)

        for row in config.get("assets", []):
            book = row.get("book", "personal")
            item = _row_item(state.assets, book, row, lambda i, n: AssetItem(i, n))
            for key in ("type", "is_investment"):
                if key in row:
                    setattr(item, key, row[key])
            item.amounts.update(_year_map(row.get("amounts")))

        for row in config.get("liabilities", []):
            book = row.get("book", "personal")
            item = _row_item(state.liabilities, book, row, lambda i, n: LiabilityItem(i, n))
            if "type" in row:
                item.type = row["type"]
            item.amounts.update({y: abs(v) for y, v in _year_map(row.get("amounts")).items()})
            if "principal" in row and "term_years" in row:
                sim.apply_loan_calculation(book, item.id, LoanSettings(
                    principal=row["principal"],
                    start_year=row.get("start_year", state.basic_info.start_year),
                    interest_rate=row.get("interest_rate", 0.0),
                    term_years=row["term_years"],
                    repayment_type=row.get("repayment_type", EQUAL_PAYMENT),
                ))

        for row in config.get("life_events", []):
            sim.add_life_event(LifeEvent(**_pick(LifeEvent, row, "life_events")))


def build_simulator(config: dict, r: dict, current_year: int | None = None) -> Simulator:
    """Build a Simulator with default rows, then apply the scenario rows."""
    state = PlanState(basic_info=build_basic_info(config, r), parameters=build_parameters(config, r))
    sim = Simulator(state, current_year=current_year)
    with sim.batch():
        sim.initialize_form_data()
        apply_config_rows(sim, config)
    sim.rebuild()
    return sim
