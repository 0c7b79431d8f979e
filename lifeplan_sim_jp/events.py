"""Life event bucketing by funding source."""

import math
from dataclasses import dataclass

from lifeplan_sim_jp.models import EVENT_SOURCES, LifeEvent


@dataclass
class EventTotals:
    """Summed one-off income and expense of one source in one year."""

    income: float = 0.0
    expense: float = 0.0

    @property
    def net(self) -> float:
        return self.income - self.expense


def events_for_year(events: list[LifeEvent], year: int) -> dict[str, EventTotals]:
    """Sum a year's events into personal/corporate/personal_investment/corporate_investment buckets.

    Events with an unknown source or type, or a non-finite amount, are ignored.
    """
    buckets = {source: EventTotals() for source in EVENT_SOURCES}
    for event in events:
        if event.year != year or event.source not in buckets:
            continue
        amount = float(event.amount or 0.0)
        if not math.isfinite(amount):
            continue
        if event.type == "income":
            buckets[event.source].income += amount
        elif event.type == "expense":
            buckets[event.source].expense += amount
    return buckets


def move_event(events: list[LifeEvent], index: int, offset: int) -> list[LifeEvent]:
    """Return a copy of `events` with the event at `index` moved by `offset` places (clamped)."""
    if not 0 <= index < len(events):
        raise IndexError(f"ライフイベントの番号が範囲外です: {index}")
    moved = list(events)
    event = moved.pop(index)
    target = min(max(index + offset, 0), len(moved))
    moved.insert(target, event)
    return moved
