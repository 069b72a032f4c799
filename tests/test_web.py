"""Tests for the Flask JSON API."""

import pytest

from megaclicker.web import server


@pytest.fixture
def client(tmp_path):
    server.configure(save_dir=tmp_path)
    server.app.config["TESTING"] = True
    with server.app.test_client() as c:
        yield c
    server.configure(save_dir=tmp_path)


@pytest.fixture
def ad_client(tmp_path):
    server.configure(save_dir=tmp_path, ads_enabled=True)
    server.app.config["TESTING"] = True
    with server.app.test_client() as c:
        yield c
    server.configure(save_dir=tmp_path)


def test_state(client):
    data = client.get("/api/state").get_json()
    assert data["coins"] == 0
    assert data["level"] == 1
    assert data["user_id"].startswith("user_")
    assert len(data["boosts"]) == 3


def test_click(client):
    data = client.post("/api/action/click").get_json()
    assert data["ok"]
    assert data["coins"] == 1
    assert data["stats"]["total_clicks"] == 1


def test_buy_without_coins(client):
    data = client.post("/api/action/buy/clickMultiplier").get_json()
    assert not data["ok"]
    assert data["rejected"] == "insufficient_funds"
    assert data["events"][0]["kind"] == "insufficient_funds"


def test_buy_unknown_boost(client):
    resp = client.post("/api/action/buy/megaBoost")
    assert resp.status_code == 404


def test_catch_with_nothing_flying(client):
    data = client.post("/api/action/catch").get_json()
    assert data["rejected"] == "not_visible"


def test_daily_claim(client):
    first = client.post("/api/action/claim_daily").get_json()
    assert first["ok"]
    assert first["coins"] == 50
    second = client.post("/api/action/claim_daily").get_json()
    assert second["rejected"] == "already_claimed"
    assert second["coins"] == 50


def test_referral_link_credits_once(client):
    first = client.get("/api/state?ref=user_friend").get_json()
    assert first["ok"]
    assert first["coins"] == 1000
    again = client.get("/api/state?ref=user_friend").get_json()
    assert again["rejected"] == "already_redeemed"
    assert again["coins"] == 1000


def test_share_link(client):
    user_id = client.get("/api/state").get_json()["user_id"]
    link = client.get("/api/share?base=https://example.com/play").get_json()["link"]
    assert link == f"https://example.com/play?ref={user_id}"


def test_passive_income_waits_for_browser_ad(ad_client):
    data = ad_client.post("/api/action/buy/passiveIncome").get_json()
    assert data["ok"]
    assert data["paused"]
    assert data["pending_ad"] == "passiveIncome"

    blocked = ad_client.post("/api/action/click").get_json()
    assert blocked["rejected"] == "paused"

    data = ad_client.post("/api/ad/rewarded").get_json()
    assert not data["paused"]
    assert data["auto_click_power"] == 5
    assert data["stats"]["ads_watched"] == 1


def test_skipped_browser_ad(ad_client):
    ad_client.post("/api/action/buy/passiveIncome")
    data = ad_client.post("/api/ad/skipped").get_json()
    assert not data["paused"]
    assert data["auto_click_power"] == 0


def test_ad_result_without_ad(ad_client):
    resp = ad_client.post("/api/ad/rewarded")
    assert resp.status_code == 409
