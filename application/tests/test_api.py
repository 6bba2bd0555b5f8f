"""API tests: render, previews, deploy and undeploy through the FastAPI app."""

from __future__ import annotations

import os
from unittest.mock import patch

from fastapi.testclient import TestClient

from src.booking_form.generator import content_hash
from src.booking_form.main import app

client = TestClient(app)

CONFIG = {
    "basic_info": {"form_name": "カット予約", "store_name": "サロンA"},
    "gender_selection": {"enabled": True, "required": True},
    "menu_structure": {"categories": [{"id": "hair", "name": "ヘア", "menus": [
        {"id": "cut", "name": "カット", "price": 5000, "duration": 60, "options": [
            {"id": "shampoo", "name": "シャンプー", "price": 1000, "duration": 15},
        ]},
    ]}]},
}


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_render_returns_html_with_hash_header():
    resp = client.post("/api/forms/render", json={"config": CONFIG, "form_id": "f1", "store_id": "s1"})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert resp.text.startswith("<!DOCTYPE html>")
    assert resp.headers["x-content-sha256"] == content_hash(resp.text)


def test_render_rejects_non_object_config():
    resp = client.post("/api/forms/render", json={"config": ["nope"]})
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_preview_submission_reports_errors_in_order():
    resp = client.post("/api/forms/preview/submission", json={"config": CONFIG, "selection": {"name": "山田太郎"}})
    assert resp.status_code == 200
    data = resp.json()
    assert data["ok"] is False
    assert data["errors"][0] == "お名前と電話番号を入力してください"
    assert data["errors"][1] == "性別を選択してください"
    assert data["text"] is None
    assert data["phase"] == "none"


def test_preview_submission_returns_message_and_totals():
    selection = {
        "name": "山田太郎", "phone": "090-1234-5678", "gender": "male",
        "menu_id": "cut", "option_ids": ["shampoo"], "date": "2025-01-10", "time": "14:00",
    }
    resp = client.post("/api/forms/preview/submission", json={"config": CONFIG, "selection": selection})
    data = resp.json()
    assert data["ok"] is True
    assert data["errors"] == []
    assert data["phase"] == "leaf"
    assert data["total_price"] == 6000
    assert data["total_duration"] == 75
    assert "メニュー：ヘア > カット, シャンプー" in data["text"]
    assert data["text"].endswith("性別：男性")


def test_preview_submission_with_several_menus():
    config = dict(CONFIG, menu_structure=dict(CONFIG["menu_structure"], allow_cross_category_selection=True))
    config["menu_structure"]["categories"] = CONFIG["menu_structure"]["categories"] + [
        {"id": "nail", "name": "ネイル", "menus": [{"id": "gel", "name": "ジェル", "price": 4000, "duration": 45}]},
    ]
    selection = {
        "name": "山田太郎", "phone": "090-1234-5678", "gender": "female",
        "menus": [{"menu_id": "cut", "option_ids": ["shampoo"]}, {"menu_id": "gel"}],
        "date": "2025-01-10", "time": "14:00",
    }
    data = client.post("/api/forms/preview/submission", json={"config": config, "selection": selection}).json()
    assert data["ok"] is True
    assert data["total_price"] == 10000
    assert data["total_duration"] == 120
    assert "メニュー：ヘア > カット, シャンプー / ネイル > ジェル" in data["text"]


def test_preview_availability_calendar_week():
    resp = client.post("/api/forms/preview/availability", json={
        "config": CONFIG,
        "start": "2025-01-08",
        "now": "2025-01-06T10:00:00",
        "unavailable": [{"date": "2025-01-07", "time": "09:00"}],
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["mode"] == "calendar"
    assert data["week_start"] == "2025-01-06"
    assert data["days"][0] == "2025-01-06" and data["days"][6] == "2025-01-12"
    first_row = data["rows"][0]
    assert first_row[1] == {"date": "2025-01-07", "time": "09:00", "offered": False}
    assert first_row[2] == {"date": "2025-01-08", "time": "09:00", "offered": True}
    assert first_row[6]["offered"] is False  # Sunday


def test_preview_availability_multiple_dates():
    config = dict(CONFIG, calendar_settings={
        "booking_mode": "multiple_dates",
        "multiple_dates_settings": {"start_time": "09:00", "end_time": "10:00", "time_interval": 30, "date_range_days": 7},
    })
    resp = client.post("/api/forms/preview/availability", json={"config": config, "now": "2025-01-06T10:00:00"})
    data = resp.json()
    assert data["mode"] == "multiple_dates"
    assert data["times"] == ["09:00", "09:30"]
    assert data["dates"] == ["2025-01-06", "2025-01-07", "2025-01-08", "2025-01-09", "2025-01-10", "2025-01-11"]


def test_deploy_and_undeploy_local(tmp_path):
    env = {"DEPLOY_TARGET": "local", "STATIC_FORMS_DIR": str(tmp_path), "PUBLIC_BASE_URL": "http://localhost:8000/forms"}
    with patch.dict(os.environ, env):
        resp = client.post("/api/forms/form-1/deploy", json={"store_id": "store-1", "config": CONFIG})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["unchanged"] is False
        assert data["url"] == "http://localhost:8000/forms/store-1/form-1.html"
        assert (tmp_path / "store-1" / "form-1.html").exists()

        again = client.post("/api/forms/form-1/deploy", json={"store_id": "store-1", "config": CONFIG}).json()
        assert again["unchanged"] is True
        assert again["content_hash"] == data["content_hash"]

        resp = client.delete("/api/forms/form-1/deploy", params={"store_id": "store-1"})
        assert resp.json() == {"success": True, "deleted": True}
        assert not (tmp_path / "store-1" / "form-1.html").exists()


def test_deploy_without_bucket_returns_500():
    with patch.dict(os.environ, {"DEPLOY_TARGET": "s3", "FORMS_BUCKET_NAME": ""}):
        resp = client.post("/api/forms/form-1/deploy", json={"store_id": "store-1", "config": CONFIG})
    assert resp.status_code == 500
    assert "FORMS_BUCKET_NAME" in resp.json()["error"]
