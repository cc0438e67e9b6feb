"""
tiers.py - Cosmetic press tiers.

A press is labelled by how much of the countdown was left when it landed.
Display only: acceptance never looks at the tier.

    remaining (60 s budget)   flair        color
    > 50                      Early Bird   #9c59d1
    (40, 50]                  Cautious     #4287f5
    (30, 40]                  Moderate     #42f5a7
    (20, 30]                  Risk Taker   #f5e642
    (10, 20]                  Daredevil    #f5a442
    <= 10                     Madlad       #f54242
"""

from typing import List, NamedTuple, Optional

from button.config import DEFAULT_BUDGET_SEC


class Tier(NamedTuple):
    flair: str
    color: str
    floor: float  # exclusive lower bound as a fraction of the budget

    def to_dict(self) -> dict:
        return {"flair": self.flair, "color": self.color}


# Ordered top to bottom. The last tier's floor is never compared.
TIERS: List[Tier] = [
    Tier("Early Bird", "#9c59d1", 5 / 6),
    Tier("Cautious", "#4287f5", 4 / 6),
    Tier("Moderate", "#42f5a7", 3 / 6),
    Tier("Risk Taker", "#f5e642", 2 / 6),
    Tier("Daredevil", "#f5a442", 1 / 6),
    Tier("Madlad", "#f54242", 0.0),
]


def _threshold(tier: Tier, budget_sec: float) -> float:
    # 60 * 5/6 is 50.00000000000001 in floats; keep whole-second boundaries exact.
    return round(tier.floor * budget_sec, 9)


def tier_for(remaining: float, budget_sec: Optional[float] = None) -> Tier:
    """Map remaining seconds to exactly one tier."""
    budget = DEFAULT_BUDGET_SEC if budget_sec is None else budget_sec
    for tier in TIERS[:-1]:
        if remaining > _threshold(tier, budget):
            return tier
    return TIERS[-1]


def describe_tiers(budget_sec: Optional[float] = None) -> dict:
    """Human-readable tier table for the agent summary."""
    budget = DEFAULT_BUDGET_SEC if budget_sec is None else budget_sec
    table = {}
    upper = None
    for tier in TIERS:
        label = f"{tier.flair} ({tier.color})"
        low = _threshold(tier, budget)
        if upper is None:
            table[label] = f"> {low:g}s remaining"
        elif tier is TIERS[-1]:
            table[label] = f"<= {upper:g}s remaining"
        else:
            table[label] = f"{low:g}-{upper:g}s remaining"
        upper = low
    return table
