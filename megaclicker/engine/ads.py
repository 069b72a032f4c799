"""Rewarded-ad gate — optional external capability.

The engine never checks whether an ad SDK exists. It is handed one of the
gates below at startup and always calls ``show``; the gate resolves with an
``AdResult`` through the callback, now or later.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class AdResult(Enum):
    REWARDED = "rewarded"   # watched to the end
    SKIPPED = "skipped"     # closed early, no reward
    FAILED = "failed"       # ad could not be shown; callers fail open

    @property
    def grants_reward(self) -> bool:
        return self != AdResult.SKIPPED


AdCallback = Callable[[AdResult], None]


class AdGate:
    """Interface for showing a rewarded ad."""

    def show(self, on_result: AdCallback) -> None:
        raise NotImplementedError


class PassThroughAdGate(AdGate):
    """No ad network available: every request resolves as rewarded at once."""

    def show(self, on_result: AdCallback) -> None:
        on_result(AdResult.REWARDED)


class CallbackAdGate(AdGate):
    """Delegates to a host-provided launcher.

    ``launcher(done)`` must start the ad and eventually call ``done`` with an
    ``AdResult`` (or a string value such as ``"rewarded"``). If the launcher
    raises, the request resolves as ``FAILED``. Only the first resolution of
    a request counts.
    """

    def __init__(self, launcher: Callable[[Callable[[AdResult | str], None]], None]) -> None:
        self._launcher = launcher

    def show(self, on_result: AdCallback) -> None:
        resolved = False

        def done(result: AdResult | str) -> None:
            nonlocal resolved
            if resolved:
                logger.debug("Ignoring duplicate ad resolution %r", result)
                return
            resolved = True
            on_result(_coerce(result))

        try:
            self._launcher(done)
        except Exception as exc:
            logger.warning("Rewarded ad failed to start: %s", exc)
            done(AdResult.FAILED)


def _coerce(result: AdResult | str) -> AdResult:
    if isinstance(result, AdResult):
        return result
    try:
        return AdResult(str(result).lower())
    except ValueError:
        logger.warning("Unknown ad result %r, treating as failed", result)
        return AdResult.FAILED
