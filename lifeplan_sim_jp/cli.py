"""CLI entry point: prints the yearly personal/corporate ledger."""

import argparse
import sys

from lifeplan_sim_jp.config import build_simulator, parse_args
from lifeplan_sim_jp.models import BasicInfo, CashFlowData
from lifeplan_sim_jp.simulation import validate_basic_info

OCCUPATION_LABELS = {
    "company_employee": "会社員・公務員",
    "part_time_with_pension": "パート（厚生年金あり）",
    "part_time_without_pension": "パート（厚生年金なし）",
    "self_employed": "自営業・フリーランス",
    "homemaker": "専業主婦・夫",
}
MARITAL_LABELS = {"single": "独身", "married": "既婚", "planning": "結婚予定"}


def _add_args(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--every", type=int, default=5,
        help="年次表の表示間隔・年 (default: 5、最終年は常に表示)",
    )


def _print_header(info: BasicInfo, r: dict):
    print("=" * 100)
    print(f"ライフプランシミュレーション（{info.current_age}歳-{info.death_age}歳、"
          f"{info.start_year}年-{info.end_year}年）")
    print(f"  職業: {OCCUPATION_LABELS.get(info.occupation, info.occupation)}"
          f" / {MARITAL_LABELS.get(info.marital_status, info.marital_status)}"
          f" / 生活費: {info.monthly_living_expense:.1f}万円/月")
    print(f"  物価上昇率: {r['inflation_rate']:.1f}% / 教育費上昇率: {r['education_cost_increase_rate']:.1f}%"
          f" / 運用利回り: {r['investment_return']:.1f}%")
    housing = "持ち家" if info.housing.type == "own" else "賃貸"
    print(f"  住居: {housing} / 子ども: {len(info.children)}人（予定{len(info.planned_children)}人）")
    print("=" * 100)
    print()


def _print_yearly_table(info: BasicInfo, cash_flow: CashFlowData, every: int):
    print("【年次キャッシュフロー（個人）】")
    print("-" * 100)
    print(
        f"{'年':<6} {'年齢':<5} {'収入(万)':>10} {'支出(万)':>10} {'収支(万)':>10}"
        f" {'運用資産(万)':>12} {'総資産(万)':>12} {'負債(万)':>10} {'純資産(万)':>12}"
    )
    print("-" * 100)
    years = sorted(cash_flow)
    for i, year in enumerate(years):
        if every > 1 and i % every != 0 and i != len(years) - 1:
            continue
        cf = cash_flow[year]
        print(
            f"{year:<6} {info.age_in(year):<5} "
            f"{cf.personal_total_income:>10.1f} "
            f"{cf.personal_total_expense:>10.1f} "
            f"{cf.personal_balance:>10.1f} "
            f"{cf.total_investment_assets:>12.1f} "
            f"{cf.personal_total_assets:>12.1f} "
            f"{cf.personal_liability_total:>10.1f} "
            f"{cf.personal_net_assets:>12.1f}"
        )
    print("-" * 100)


def _print_summary(info: BasicInfo, cash_flow: CashFlowData):
    last = cash_flow[max(cash_flow)]
    print("\n" + "=" * 100)
    print(f"【{info.death_age}歳時点（{last.year}年）のサマリー】")
    print("=" * 100)
    print(f"  個人純資産: {last.personal_net_assets:>10.1f}万円 ({last.personal_net_assets/10000:.2f}億円)")
    print(f"    総資産: {last.personal_total_assets:>10.1f}万 / 負債: {last.personal_liability_total:.1f}万"
          f" / 運用資産: {last.total_investment_assets:.1f}万")
    print(f"  法人純資産: {last.corporate_net_assets:>10.1f}万円")
    negative = [y for y in sorted(cash_flow) if cash_flow[y].personal_total_assets < 0]
    if negative:
        first = negative[0]
        print(f"    ⚠ {first}年（{info.age_in(first)}歳）に個人資産がマイナス")


def main():
    """Execute the life-plan simulation for the configured scenario."""
    r, config, args = parse_args("ライフプランシミュレーション", _add_args)
    sim = build_simulator(config, r)
    info = sim.state.basic_info

    errors = validate_basic_info(info)
    if errors:
        for e in errors:
            print(f"入力エラー: {e}", file=sys.stderr)
        raise SystemExit(1)

    _print_header(info, r)
    _print_yearly_table(info, sim.cash_flow, args.every)
    _print_summary(info, sim.cash_flow)


if __name__ == "__main__":
    main()
