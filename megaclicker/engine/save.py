"""Save/load — persists the game snapshot between sessions.

Storage is a tiny key/value store: one ``<key>.json`` file per key in a
save directory. The game snapshot lives under a single fixed key and is
overwritten after every change.
"""

from __future__ import annotations

import json
import math
import logging
from pathlib import Path
from typing import Any

from megaclicker.data.balance import BALANCE
from megaclicker.data.boosts import boost_kind_from_key
from megaclicker.engine.game_state import BoostState, GameState, GameStats, default_boosts

logger = logging.getLogger(__name__)

SAVE_DIR = Path.home() / ".megaclicker"


class Storage:
    """JSON key/value files in one directory."""

    def __init__(self, root: Path = SAVE_DIR) -> None:
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def get(self, key: str) -> Any | None:
        """Read a value. Missing or unreadable entries come back as None."""
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text())
        except (OSError, ValueError) as exc:
            logger.warning("Could not read %s: %s", path, exc)
            return None

    def set(self, key: str, value: Any) -> bool:
        """Write a value. Failures are logged, never raised."""
        path = self.path_for(key)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(json.dumps(value, indent=2))
            tmp.replace(path)
        except OSError as exc:
            logger.warning("Could not save %s: %s", path, exc)
            return False
        return True


# ── Serialisation helpers ────────────────────────────────────────


def state_to_dict(state: GameState) -> dict:
    s = state
    return {
        "coins": s.coins,
        "clickPower": s.click_power,
        "autoClickPower": s.auto_click_power,
        "level": s.level,
        "lastDailyReward": s.last_daily_reward,
        "dailyStreak": s.daily_streak,
        "referralsCount": s.referrals_count,
        "userId": s.user_id,
        "boosts": {
            kind.value: {"level": b.level, "cost": b.cost}
            for kind, b in s.boosts.items()
        },
        "stats": {
            "totalClicks": s.stats.total_clicks,
            "totalCoinsEarned": s.stats.total_coins_earned,
            "powerupsCaught": s.stats.powerups_caught,
            "powerupsMissed": s.stats.powerups_missed,
            "adsWatched": s.stats.ads_watched,
        },
    }


def _int(d: dict, key: str, default: int, minimum: int = 0) -> int:
    """Read an int field, falling back to the default on junk values."""
    value = d.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return max(minimum, int(value))


def dict_to_state(d: dict) -> GameState:
    """Build a GameState from a snapshot, merged over defaults."""
    defaults = GameState()

    boosts = default_boosts()
    raw_boosts = d.get("boosts")
    if isinstance(raw_boosts, dict):
        for key, raw in raw_boosts.items():
            kind = boost_kind_from_key(key)
            if kind is None or not isinstance(raw, dict):
                continue
            base = boosts[kind]
            boosts[kind] = BoostState(
                level=_int(raw, "level", base.level),
                cost=_int(raw, "cost", base.cost, minimum=1),
            )

    stats_d = d.get("stats")
    if not isinstance(stats_d, dict):
        stats_d = {}
    stats = GameStats(
        total_clicks=_int(stats_d, "totalClicks", 0),
        total_coins_earned=_int(stats_d, "totalCoinsEarned", 0),
        powerups_caught=_int(stats_d, "powerupsCaught", 0),
        powerups_missed=_int(stats_d, "powerupsMissed", 0),
        ads_watched=_int(stats_d, "adsWatched", 0),
    )

    user_id = d.get("userId")
    last_daily = d.get("lastDailyReward")

    return GameState(
        coins=_int(d, "coins", defaults.coins),
        click_power=_int(d, "clickPower", defaults.click_power, minimum=1),
        auto_click_power=_int(d, "autoClickPower", defaults.auto_click_power),
        level=_int(d, "level", defaults.level, minimum=1),
        last_daily_reward=last_daily if isinstance(last_daily, str) else None,
        daily_streak=_int(d, "dailyStreak", defaults.daily_streak),
        referrals_count=_int(d, "referralsCount", defaults.referrals_count),
        user_id=user_id if isinstance(user_id, str) and user_id else defaults.user_id,
        boosts=boosts,
        stats=stats,
    )


# ── Public API ───────────────────────────────────────────────────


def save_game(storage: Storage, state: GameState) -> bool:
    """Persist the snapshot (best effort)."""
    return storage.set(BALANCE.storage.state_key, state_to_dict(state))


def load_game(storage: Storage) -> GameState | None:
    """Load the snapshot. Returns None if there is no usable save."""
    data = storage.get(BALANCE.storage.state_key)
    if data is None:
        return None
    if not isinstance(data, dict):
        logger.warning("Save is not an object, starting fresh")
        return None
    return dict_to_state(data)


def load_redeemed_referrals(storage: Storage) -> set[str]:
    data = storage.get(BALANCE.storage.referrals_key)
    if not isinstance(data, list):
        return set()
    return {str(token) for token in data}


def save_redeemed_referrals(storage: Storage, tokens: set[str] | frozenset[str]) -> bool:
    return storage.set(BALANCE.storage.referrals_key, sorted(tokens))
