"""CLI entry point for chart generation."""

import sys
from pathlib import Path

from lifeplan_sim_jp.charts import plot_net_assets
from lifeplan_sim_jp.config import build_simulator, create_parser, load_config, resolve, setup_logging
from lifeplan_sim_jp.simulation import validate_basic_info


def _build_parser():
    parser = create_parser("ライフプランシミュレーション チャート生成")
    parser.add_argument(
        "--output", type=Path, default=Path("reports/charts"),
        help="出力ディレクトリ (default: reports/charts)",
    )
    parser.add_argument(
        "--name", type=str, default="",
        help="出力ファイル名のサフィックス（例: 30 → net-assets-30.png）",
    )
    return parser


def main():
    parser = _build_parser()
    args = parser.parse_args()
    setup_logging(args.verbose)
    config_file = load_config(args.config)
    r = resolve(args, config_file)

    sim = build_simulator(config_file, r)
    errors = validate_basic_info(sim.state.basic_info)
    if errors:
        for e in errors:
            print(f"入力エラー: {e}", file=sys.stderr)
        raise SystemExit(1)

    info = sim.state.basic_info
    print(f"シミュレーション（{info.start_year}年→{info.end_year}年）...", file=sys.stderr)
    path = plot_net_assets(sim.cash_flow, args.output, name=args.name, life_events=sim.state.life_events)
    print(f"  → {path}", file=sys.stderr)
    print("完了", file=sys.stderr)


if __name__ == "__main__":
    main()
