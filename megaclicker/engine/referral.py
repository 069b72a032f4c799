"""Referral ledger — one-time bonus for arriving through someone's link.

Redemptions are remembered per device only. The same link opened on
another device will credit again.
"""

from __future__ import annotations

import logging
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from megaclicker.data.balance import BALANCE
from megaclicker.engine.events import EventKind, Rejection, Transition, reject
from megaclicker.engine.game_state import GameState
from megaclicker.engine.progression import apply_level

logger = logging.getLogger(__name__)


class ReferralLedger:
    """Owns the set of referral tokens already redeemed on this device."""

    def __init__(self, redeemed: set[str] | None = None) -> None:
        self._redeemed: set[str] = set(redeemed or ())

    @property
    def redeemed(self) -> frozenset[str]:
        return frozenset(self._redeemed)

    def is_redeemed(self, token: str) -> bool:
        return token in self._redeemed

    def redeem(self, state: GameState, token: str | None) -> Transition:
        """Credit the referral bonus for ``token`` at most once."""
        token = (token or "").strip()
        if not token:
            return reject(state, Rejection.NO_TOKEN)
        if token == state.user_id:
            return reject(state, Rejection.OWN_LINK)
        if token in self._redeemed:
            logger.debug("Referral %s already redeemed", token)
            return reject(state, Rejection.ALREADY_REDEEMED)

        reward = BALANCE.referral.referral_reward
        nxt = state.copy()
        nxt.earn(reward)
        nxt.referrals_count += 1
        self._redeemed.add(token)

        t = Transition(state=nxt)
        t.emit(EventKind.COINS_CHANGED, delta=reward, source="referral")
        t.emit(EventKind.REFERRAL_CREDITED, token=token, amount=reward)
        t.events.extend(apply_level(nxt))
        logger.info("Referral %s credited: +%d", token, reward)
        return t


def share_link(base_url: str, user_id: str) -> str:
    """Outbound invite link carrying the local player's id."""
    parts = urlsplit(base_url)
    query = parse_qs(parts.query)
    query[BALANCE.referral.query_param] = [user_id]
    return urlunsplit(parts._replace(query=urlencode(query, doseq=True)))


def token_from_url(url: str) -> str | None:
    """Pull the referral token out of an inbound link, if there is one."""
    values = parse_qs(urlsplit(url).query).get(BALANCE.referral.query_param)
    if not values:
        return None
    return values[0] or None
