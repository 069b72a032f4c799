"""Economy engine — coin generation, boost purchases, and number formatting."""

from __future__ import annotations

import logging
import math

from megaclicker.data.balance import BALANCE
from megaclicker.data.boosts import ALL_BOOSTS, BoostKind, Funding
from megaclicker.engine.events import EventKind, Rejection, Transition, reject
from megaclicker.engine.game_state import GameState
from megaclicker.engine.progression import apply_level

logger = logging.getLogger(__name__)


def effective_click_power(state: GameState, boost_active: bool = False) -> int:
    """Coins granted by one manual click, after any active power-up boost."""
    if boost_active:
        return math.floor(state.click_power * BALANCE.powerup.boost_multiplier)
    return state.click_power


def handle_click(state: GameState, boost_active: bool = False) -> Transition:
    """Handle a single manual click."""
    nxt = state.copy()
    earned = effective_click_power(state, boost_active)
    nxt.earn(earned)
    nxt.stats.total_clicks += 1

    t = Transition(state=nxt)
    t.emit(EventKind.COINS_CHANGED, delta=earned, source="click")
    t.events.extend(apply_level(nxt))
    return t


def tick_passive(state: GameState) -> Transition:
    """Credit one period of passive income."""
    if state.auto_click_power <= 0:
        return Transition(state=state)
    nxt = state.copy()
    earned = nxt.auto_click_power
    nxt.earn(earned)

    t = Transition(state=nxt)
    t.emit(EventKind.COINS_CHANGED, delta=earned, source="passive")
    t.events.extend(apply_level(nxt))
    return t


def funding_for(kind: BoostKind) -> Funding:
    """How this boost is paid for under the current ad-gating config."""
    bdef = ALL_BOOSTS[kind]
    if bdef.funding == Funding.REWARDED_AD and not BALANCE.ads.passive_income_ad_gated:
        return Funding.COINS
    return bdef.funding


def next_cost(cost: int) -> int:
    """Cost after one more purchase (floored every step)."""
    return math.floor(cost * BALANCE.economy.cost_growth)


def can_afford(state: GameState, kind: BoostKind) -> bool:
    """Check if the player can buy a boost right now."""
    if funding_for(kind) != Funding.COINS:
        return True
    return state.coins >= state.boost(kind).cost


def boost_effect_value(kind: BoostKind, level: int) -> int:
    """Display value for a level. For Passive Income, what that level's purchase adds."""
    if kind == BoostKind.CLICK_MULTIPLIER:
        return BALANCE.economy.base_click_power + level
    if kind == BoostKind.AUTO_CLICKER:
        return level * 2
    return level * 5


def boost_preview(state: GameState, kind: BoostKind) -> int:
    """Effect value the boost will have after the next purchase."""
    return boost_effect_value(kind, state.boost(kind).level + 1)


def _apply_effect(state: GameState, kind: BoostKind, new_level: int) -> None:
    if kind == BoostKind.CLICK_MULTIPLIER:
        state.click_power = BALANCE.economy.base_click_power + new_level
    elif kind == BoostKind.AUTO_CLICKER:
        # Replaces the current rate, including anything Passive Income added
        state.auto_click_power = new_level * 2
    elif kind == BoostKind.PASSIVE_INCOME:
        state.auto_click_power += new_level * 5


def purchase_boost(state: GameState, kind: BoostKind, ad_funded: bool = False) -> Transition:
    """Attempt to buy one level of a boost.

    Coin-funded purchases spend ``cost`` and are refused when the player is
    short. ``ad_funded`` marks a purchase already paid for by a rewarded ad;
    no coins change hands.
    """
    boost = state.boost(kind)
    pay_with_coins = not ad_funded

    if pay_with_coins and state.coins < boost.cost:
        shortfall = boost.cost - state.coins
        logger.debug("Cannot afford %s: short %d", kind.value, shortfall)
        t = reject(state, Rejection.INSUFFICIENT_FUNDS)
        t.emit(EventKind.INSUFFICIENT_FUNDS, boost=kind.value, cost=boost.cost, shortfall=shortfall)
        return t

    nxt = state.copy()
    t = Transition(state=nxt)

    if pay_with_coins:
        nxt.coins -= boost.cost
        t.emit(EventKind.COINS_CHANGED, delta=-boost.cost, source="purchase")

    new_level = boost.level + 1
    nxt.boosts[kind].level = new_level
    nxt.boosts[kind].cost = next_cost(boost.cost)

    old_rate = nxt.auto_click_power
    _apply_effect(nxt, kind, new_level)

    t.emit(
        EventKind.BOOST_PURCHASED,
        boost=kind.value,
        level=new_level,
        cost=nxt.boosts[kind].cost,
        ad_funded=ad_funded,
    )
    if nxt.auto_click_power != old_rate:
        t.emit(EventKind.PASSIVE_RATE_CHANGED, old=old_rate, new=nxt.auto_click_power)

    logger.info("Bought %s level %d (next cost %d)", kind.value, new_level, nxt.boosts[kind].cost)
    return t


def format_number(n: float) -> str:
    """Format a number with suffixes for readability."""
    if n < 0:
        return f"-{format_number(-n)}"

    for threshold, suffix in reversed(BALANCE.economy.suffixes):
        if n >= threshold:
            value = n / threshold
            if value >= 100:
                return f"{value:.0f}{suffix}"
            elif value >= 10:
                return f"{value:.1f}{suffix}"
            else:
                return f"{value:.2f}{suffix}"

    if n == int(n):
        return str(int(n))
    return f"{n:.1f}"
