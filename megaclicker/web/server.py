"""Mega Clicker Web — Flask server that wraps the game session.

Exposes a JSON API for game actions. Timers are driven lazily: each API
request catches up on elapsed time before answering.

A browser-side ad SDK plugs in through ``/api/ad/<result>``: when the
server is started with ads enabled, a purchase or catch that needs an ad
leaves the session paused until the page reports how the ad went.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable

from flask import Flask, jsonify, request

from megaclicker.data.balance import BALANCE
from megaclicker.data.boosts import boost_kind_from_key
from megaclicker.engine.ads import AdGate, AdResult, CallbackAdGate, PassThroughAdGate
from megaclicker.engine.events import Transition
from megaclicker.engine.referral import share_link
from megaclicker.engine.save import SAVE_DIR, Storage
from megaclicker.engine.session import GameSession

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Flask app
# ---------------------------------------------------------------------------

app = Flask(__name__)
app.json.sort_keys = False

# ---------------------------------------------------------------------------
# In-memory game session (single-player)
# ---------------------------------------------------------------------------

_lock = threading.Lock()
_session: GameSession | None = None
_save_dir: Path = SAVE_DIR
_ads_enabled: bool = False
_pending_ad_done: Callable[[AdResult | str], None] | None = None


def configure(save_dir: Path = SAVE_DIR, ads_enabled: bool = False) -> None:
    """Set where saves go and whether a browser ad SDK is present. Resets the session."""
    global _session, _save_dir, _ads_enabled, _pending_ad_done
    if _session is not None:
        _session.close()
    _session = None
    _pending_ad_done = None
    _save_dir = Path(save_dir)
    _ads_enabled = ads_enabled


def _launch_browser_ad(done: Callable[[AdResult | str], None]) -> None:
    """Park the callback until the page posts the ad outcome."""
    global _pending_ad_done
    _pending_ad_done = done


def _make_ad_gate() -> AdGate:
    if _ads_enabled:
        return CallbackAdGate(_launch_browser_ad)
    return PassThroughAdGate()


def _ensure_game() -> GameSession:
    """Start the session if not yet started, then catch up on timers."""
    global _session
    if _session is None:
        _session = GameSession(Storage(_save_dir), ad_gate=_make_ad_gate())
        _session.start()
    _session.update(time.time(), max_catch_up=BALANCE.max_catch_up_s)
    return _session


def _state_json(session: GameSession, result: Transition | None = None) -> dict:
    """Build the JSON blob sent to the frontend."""
    data = session.snapshot(time.time())
    if result is not None:
        data["ok"] = result.ok
        data["rejected"] = result.rejected
        data["events"] = [e.to_dict() for e in result.events]
    return data


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.route("/")
@app.route("/api/state")
def api_state():
    with _lock:
        session = _ensure_game()
        token = request.args.get(BALANCE.referral.query_param)
        result = session.redeem_referral(token, time.time()) if token else None
        return jsonify(_state_json(session, result))


@app.route("/api/share")
def api_share():
    with _lock:
        session = _ensure_game()
        base = request.args.get("base") or request.host_url
        return jsonify({"link": share_link(base, session.state.user_id)})


@app.route("/api/action/click", methods=["POST"])
def action_click():
    with _lock:
        session = _ensure_game()
        return jsonify(_state_json(session, session.click(time.time())))


@app.route("/api/action/buy/<key>", methods=["POST"])
def action_buy(key: str):
    with _lock:
        session = _ensure_game()
        kind = boost_kind_from_key(key)
        if kind is None:
            return jsonify({"error": f"Unknown boost {key!r}"}), 404
        return jsonify(_state_json(session, session.buy_boost(kind, time.time())))


@app.route("/api/action/catch", methods=["POST"])
def action_catch():
    with _lock:
        session = _ensure_game()
        return jsonify(_state_json(session, session.catch_powerup(time.time())))


@app.route("/api/action/claim_daily", methods=["POST"])
def action_claim_daily():
    with _lock:
        session = _ensure_game()
        return jsonify(_state_json(session, session.claim_daily(time.time())))


@app.route("/api/ad/<outcome>", methods=["POST"])
def ad_resolve(outcome: str):
    """The page reports how the rewarded ad went: rewarded / skipped / failed."""
    global _pending_ad_done
    with _lock:
        session = _ensure_game()
        done, _pending_ad_done = _pending_ad_done, None
        if done is None:
            return jsonify({"error": "No ad in progress"}), 409
        done(outcome)
        return jsonify(_state_json(session))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def run_server(
    host: str = "127.0.0.1",
    port: int = 5000,
    debug: bool = False,
    save_dir: Path = SAVE_DIR,
    ads_enabled: bool = False,
) -> None:
    """Start the Flask development server."""
    configure(save_dir=save_dir, ads_enabled=ads_enabled)
    logger.info("Serving on http://%s:%d (ads %s)", host, port, "on" if ads_enabled else "off")
    app.run(host=host, port=port, debug=debug, use_reloader=False)
