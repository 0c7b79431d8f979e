"""Chart generation for life-plan ledger results."""

import platform
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import matplotlib.ticker as ticker

from lifeplan_sim_jp.models import CashFlowData, LifeEvent

# 系列ごとの色
SERIES_COLORS = {
    "personal_total_assets": "#1f77b4",    # blue
    "personal_net_assets": "#2ca02c",      # green
    "total_investment_assets": "#ff7f0e",  # orange
    "corporate_total_assets": "#9467bd",   # purple
    "corporate_net_assets": "#8c564b",     # brown
    "corporate_total_investment_assets": "#e377c2",  # pink
}

SERIES_LABELS = {
    "personal_total_assets": "個人 総資産",
    "personal_net_assets": "個人 純資産",
    "total_investment_assets": "個人 運用資産",
    "corporate_total_assets": "法人 総資産",
    "corporate_net_assets": "法人 純資産",
    "corporate_total_investment_assets": "法人 運用資産",
}

COLOR_EXPENSE = "#c0392b"
COLOR_INCOME = "#27ae60"


def _setup_japanese_font():
    """Configure matplotlib to use a Japanese font."""
    system = platform.system()
    if system == "Darwin":
        font_family = "Hiragino Sans"
    elif system == "Linux":
        font_family = "Noto Sans CJK JP"
    else:
        font_family = "sans-serif"
    plt.rcParams["font.family"] = font_family
    plt.rcParams["axes.unicode_minus"] = False


def _format_oku_axis(ax: plt.Axes):
    """Add 億円 labels on Y axis (secondary tick labels)."""
    ax.yaxis.set_major_formatter(
        ticker.FuncFormatter(lambda x, _: f"{x:,.0f}")
    )
    ax_right = ax.secondary_yaxis("right")
    ax_right.yaxis.set_major_formatter(
        ticker.FuncFormatter(lambda x, _: f"{x / 10000:.1f}億" if x != 0 else "0")
    )
    ax_right.set_ylabel("")


def _has_corporate(cash_flow: CashFlowData) -> bool:
    return any(
        cf.corporate_total_assets or cf.corporate_liability_total or cf.corporate_total_investment_assets
        for cf in cash_flow.values()
    )


def plot_net_assets(
    cash_flow: CashFlowData, output_path: Path, name: str = "",
    life_events: list[LifeEvent] | None = None,
) -> Path:
    """Generate a line chart of total assets, net assets and the investment pool per book.

    Args:
        cash_flow: rebuild_ledger() output.
        output_path: directory to save the PNG.
        name: optional suffix for the output filename (e.g. "30" → "net-assets-30.png").
        life_events: events drawn as markers at their year.

    Returns:
        Path to the generated PNG file.
    """
    _setup_japanese_font()

    if not cash_flow:
        raise ValueError("No cash flow years to plot")

    years = sorted(cash_flow)
    keys = ["personal_total_assets", "personal_net_assets", "total_investment_assets"]
    if _has_corporate(cash_flow):
        keys += ["corporate_total_assets", "corporate_net_assets", "corporate_total_investment_assets"]

    fig, ax = plt.subplots(figsize=(14, 8))
    for key in keys:
        values = [getattr(cash_flow[y], key) for y in years]
        linestyle = "--" if key.startswith("corporate") else "-"
        ax.plot(years, values, label=SERIES_LABELS[key], color=SERIES_COLORS[key],
                linewidth=2, linestyle=linestyle)

    ax.set_xlabel("年")
    ax.set_ylabel("金額（万円）")
    ax.set_title("資産・純資産の推移")
    ax.axhline(0, color="black", linewidth=1.0, zorder=5)
    ax.legend(loc="upper left")
    ax.grid(True, alpha=0.3)
    _format_oku_axis(ax)

    if life_events:
        y_lo, y_hi = ax.get_ylim()
        drawn_years = set()
        shown = [e for e in life_events if years[0] <= e.year <= years[-1]]
        for i, event in enumerate(sorted(shown, key=lambda e: e.year)):
            color = COLOR_INCOME if event.type == "income" else COLOR_EXPENSE
            if event.year not in drawn_years:
                ax.axvline(event.year, color="#888888", linewidth=0.7, linestyle=":", alpha=0.4, zorder=3)
                drawn_years.add(event.year)
            sign = "+" if event.type == "income" else "▲"
            y_pos = y_lo + (y_hi - y_lo) * (0.05 + 0.07 * (i % 4))
            ax.annotate(
                f"{sign}{event.description} {event.amount:,.0f}万",
                xy=(event.year, y_pos),
                fontsize=11, color=color,
                ha="center", va="bottom",
                bbox=dict(boxstyle="round,pad=0.5", fc="white", ec=color, alpha=0.9, linewidth=0.8),
                zorder=10,
            )

    output_path.mkdir(parents=True, exist_ok=True)
    suffix = f"-{name}" if name else ""
    filepath = output_path / f"net-assets{suffix}.png"
    fig.tight_layout()
    fig.savefig(filepath, dpi=150)
    plt.close(fig)
    return filepath
