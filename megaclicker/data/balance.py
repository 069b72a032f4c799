"""Balance constants — all tuning knobs in one place.

Tweak these to adjust game feel and pacing.
Boost costs follow: cost_next = floor(cost_now * cost_growth), applied per purchase.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProgressionBalance:
    """Level thresholds (cumulative coins needed for each level)."""

    # Level 1 starts at 0, level 6 (MAX) at 50K
    level_thresholds: tuple[int, ...] = (0, 100, 500, 2_000, 10_000, 50_000)
    max_label: str = "MAX"


@dataclass(frozen=True)
class EconomyBalance:
    """Tuning for coin generation and boost pricing."""

    base_click_power: int = 1
    # Geometric cost growth, floored to an integer at every step
    cost_growth: float = 1.5

    # Passive income cadence
    passive_interval_s: float = 1.0

    # Large number formatting thresholds
    suffixes: tuple[tuple[float, str], ...] = (
        (1e3, "K"),
        (1e6, "M"),
        (1e9, "B"),
        (1e12, "T"),
        (1e15, "Qa"),
    )


@dataclass(frozen=True)
class PowerUpBalance:
    """Tuning for the floating power-up and the click boost it grants."""

    # Spawn delay window (uniform)
    min_spawn_delay_s: float = 30.0
    max_spawn_delay_s: float = 600.0

    # Flight across the screen; positions are percentages of the play area
    flight_duration_s: float = 8.0
    start_x_min: float = 10.0
    start_x_max: float = 90.0
    start_y: float = 110.0      # just below the bottom edge
    end_y: float = -10.0        # just above the top edge
    wobble_amplitude: float = 6.0
    wobble_period_s: float = 2.0

    # Boost granted on catch
    boost_duration_s: int = 15
    boost_multiplier: float = 1.5
    countdown_interval_s: float = 1.0


@dataclass(frozen=True)
class DailyBalance:
    """Daily login reward: base + (streak - 1) * per_day."""

    base_reward: int = 50
    streak_bonus_per_day: int = 20


@dataclass(frozen=True)
class ReferralBalance:
    referral_reward: int = 1_000
    query_param: str = "ref"


@dataclass(frozen=True)
class AdBalance:
    """Rewarded advertisement gating."""

    # When True, Passive Income is bought by watching an ad instead of coins
    passive_income_ad_gated: bool = True
    # When True, catching a power-up plays an ad before the boost starts
    powerup_ad_gated: bool = True


@dataclass(frozen=True)
class StorageBalance:
    """Persisted snapshot keys."""

    state_key: str = "clickerGame"
    referrals_key: str = "redeemedReferrals"


@dataclass(frozen=True)
class GameBalance:
    """Top-level container for all balance constants."""

    progression: ProgressionBalance = field(default_factory=ProgressionBalance)
    economy: EconomyBalance = field(default_factory=EconomyBalance)
    powerup: PowerUpBalance = field(default_factory=PowerUpBalance)
    daily: DailyBalance = field(default_factory=DailyBalance)
    referral: ReferralBalance = field(default_factory=ReferralBalance)
    ads: AdBalance = field(default_factory=AdBalance)
    storage: StorageBalance = field(default_factory=StorageBalance)

    # UI refresh / scheduler polling rate
    tick_rate_hz: float = 20.0

    # Web: cap lazy catch-up so a long-idle tab does not replay hours of ticks
    max_catch_up_s: float = 60.0


# Singleton — import this everywhere
BALANCE = GameBalance()
