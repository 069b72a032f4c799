"""Boost definitions — the three levelable upgrades sold in the shop."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BoostKind(Enum):
    """Which boost is being bought. Values are the persisted keys."""

    CLICK_MULTIPLIER = "clickMultiplier"
    AUTO_CLICKER = "autoClicker"
    PASSIVE_INCOME = "passiveIncome"


class Funding(Enum):
    """How a boost is paid for."""

    COINS = "coins"
    REWARDED_AD = "rewarded_ad"


@dataclass(frozen=True)
class BoostDef:
    """Definition of a single boost."""

    kind: BoostKind
    name: str
    description: str
    base_cost: int
    funding: Funding = Funding.COINS
    hotkey: str = ""


CLICK_MULTIPLIER = BoostDef(
    kind=BoostKind.CLICK_MULTIPLIER,
    name="Click Multiplier",
    description="Each click is worth 1 + level coins.",
    base_cost=50,
    hotkey="1",
)

AUTO_CLICKER = BoostDef(
    kind=BoostKind.AUTO_CLICKER,
    name="Auto Clicker",
    description="Sets passive income to 2 coins/s per level.",
    base_cost=100,
    hotkey="2",
)

PASSIVE_INCOME = BoostDef(
    kind=BoostKind.PASSIVE_INCOME,
    name="Passive Income",
    description="Each purchase adds 5 coins/s times its new level. Buying an Auto Clicker resets it.",
    base_cost=200,
    funding=Funding.REWARDED_AD,
    hotkey="3",
)


ALL_BOOSTS: dict[BoostKind, BoostDef] = {
    b.kind: b for b in (CLICK_MULTIPLIER, AUTO_CLICKER, PASSIVE_INCOME)
}


def boost_kind_from_key(key: str) -> BoostKind | None:
    """Look up a boost kind by its persisted/API key (e.g. ``"autoClicker"``)."""
    for kind in BoostKind:
        if kind.value == key:
            return kind
    return None
