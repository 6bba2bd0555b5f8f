"""
Behavior tests for the in-page controller. The generated <script> is run under node with
a stub DOM and a stub LINE SDK (tests/js/controller_harness.js); each test drives the
controller through its handlers and inspects the JSON outcome.
"""

from __future__ import annotations

import json
import re
import shutil
import subprocess
import time
from pathlib import Path

import pytest

from src.booking_form.booking_state import BookingSelection, validate_selection
from src.booking_form.generator import generate
from src.booking_form.normalizer import normalize_config
from src.booking_form.submission import build_submission_text

HARNESS = Path(__file__).parent / "js" / "controller_harness.js"
NODE = shutil.which("node")

pytestmark = pytest.mark.skipif(NODE is None, reason="node is not installed")

LIFF_ID = "1234567890-abcdefgh"
LOGIN_REQUIRED = "LINEにログインしてください。"

MENUS = {"categories": [
    {"id": "hair", "name": "ヘア", "menus": [
        {"id": "cut", "name": "カット", "price": 5000, "duration": 60, "options": [
            {"id": "shampoo", "name": "シャンプー", "price": 1000, "duration": 15},
            {"id": "treatment", "name": "トリートメント", "price": 1500, "duration": 20},
        ]},
        {"id": "facial", "name": "フェイシャル", "has_submenu": True, "sub_menu_items": [
            {"id": "basic", "name": "ベーシックフェイシャル", "price": 8000, "duration": 120},
        ]},
    ]},
    {"id": "nail", "name": "ネイル", "menus": [
        {"id": "gel", "name": "ジェル", "price": 4000, "duration": 45},
    ]},
]}

# Fills every required field and picks a leaf menu; used before submitting.
FILL_VALID = """
form.onTextInput(target({field: 'name'}, {value: '山田太郎'}));
form.onTextInput(target({field: 'phone'}, {value: '090-1234-5678'}));
form.onSelectMenu(target({menuId: 'cut'}));
form.state.selectedDate = '2025-01-10';
form.state.selectedTime = '14:00';
"""


def _config(**overrides) -> dict:
    cfg = {
        "basic_info": {"form_name": "カット予約", "store_name": "サロンA", "liff_id": LIFF_ID},
        "menu_structure": MENUS,
    }
    cfg.update(overrides)
    return cfg


def _inline_script(html: str) -> str:
    return re.findall(r"<script>(.*?)</script>", html, flags=re.S)[-1]


def run_controller(config: dict, steps: str, liff: dict | None = None, storage: dict | None = None) -> dict:
    payload = {
        "script": _inline_script(generate(config, "form-1", "store-1")),
        "steps": steps,
        "liff": liff,
        "storage": storage or {},
    }
    proc = subprocess.run(
        [NODE, str(HARNESS)],
        input=json.dumps(payload),
        capture_output=True,
        text=True,
        encoding="utf-8",
        timeout=30,
    )
    assert proc.returncode == 0, proc.stderr
    return json.loads(proc.stdout)


def test_slot_window_rules():
    config = _config(calendar_settings={"advance_booking_days": 7})
    out = run_controller(config, """
        const now = new Date(2025, 0, 6, 10, 0);  // Monday
        const offered = (y, m, d, t) => form.isSlotOffered(new Date(y, m, d), t, now);
        const result = {
            sunday: offered(2025, 0, 12, '10:00'),
            last_day: offered(2025, 0, 13, '10:00'),
            beyond_window: offered(2025, 0, 14, '10:00'),
            already_past: offered(2025, 0, 6, '09:30'),
            at_close: offered(2025, 0, 7, '18:00'),
            before_close: offered(2025, 0, 7, '17:30'),
        };
        window.bookingFormAvailability = () => false;
        result.booked = offered(2025, 0, 7, '10:00');
        result.closed_day_with_check = offered(2025, 0, 12, '10:00');
        window.bookingFormAvailability = () => { throw new Error('down'); };
        result.check_failed = offered(2025, 0, 7, '10:00');
        return result;
    """)
    assert out["result"] == {
        "sunday": False,
        "last_day": True,
        "beyond_window": False,
        "already_past": False,
        "at_close": False,
        "before_close": True,
        "booked": False,
        "closed_day_with_check": False,
        "check_failed": True,
    }


def test_leaf_totals_and_option_toggle():
    out = run_controller(_config(), """
        form.onSelectMenu(target({menuId: 'cut'}));
        form.onToggleOption(target({menuId: 'cut', optionId: 'shampoo'}));
        form.onToggleOption(target({menuId: 'cut', optionId: 'treatment'}));
        const full = form.computeTotals();
        form.onToggleOption(target({menuId: 'cut', optionId: 'shampoo'}));
        return {full, after_toggle: form.computeTotals(), phase: form.phase()};
    """)
    assert out["result"]["full"] == {"price": 7500, "duration": 95}
    assert out["result"]["after_toggle"] == {"price": 6500, "duration": 80}
    assert out["result"]["phase"] == "leaf"


def test_switching_menu_resets_and_reclick_deselects():
    out = run_controller(_config(), """
        form.onSelectMenu(target({menuId: 'cut'}));
        form.onToggleOption(target({menuId: 'cut', optionId: 'shampoo'}));
        form.state.selectedDate = '2025-01-10';
        form.state.selectedTime = '14:00';
        form.onSelectMenu(target({menuId: 'facial'}));
        const switched = {
            ids: form.state.selectedMenuIds,
            options: form.state.selectedOptions,
            date: form.state.selectedDate,
            phase: form.phase(),
            totals: form.computeTotals(),
        };
        form.onSelectSubmenu(target({menuId: 'facial', submenuId: 'basic'}));
        const submenu = {phase: form.phase(), totals: form.computeTotals()};
        form.onSelectMenu(target({menuId: 'facial'}));
        return {switched, submenu, reclicked: {ids: form.state.selectedMenuIds, submenus: form.state.selectedSubmenus, phase: form.phase()}};
    """)
    result = out["result"]
    assert result["switched"] == {
        "ids": ["facial"], "options": {}, "date": "", "phase": "awaiting-submenu", "totals": {"price": 0, "duration": 0},
    }
    assert result["submenu"] == {"phase": "submenu", "totals": {"price": 8000, "duration": 120}}
    assert result["reclicked"] == {"ids": [], "submenus": {}, "phase": "none"}


def test_options_of_unselected_menu_are_ignored():
    out = run_controller(_config(), """
        form.onSelectMenu(target({menuId: 'gel'}));
        form.onToggleOption(target({menuId: 'cut', optionId: 'shampoo'}));
        form.onToggleOption(target({menuId: 'cut', optionId: 'ghost'}));
        return form.state.selectedOptions;
    """)
    assert out["result"] == {}


def test_additive_selection_within_and_across_categories():
    menus = json.loads(json.dumps(MENUS))
    menus["categories"][0]["selection_mode"] = "multiple"
    steps = """
        form.onSelectMenu(target({menuId: 'cut'}));
        form.onToggleOption(target({menuId: 'cut', optionId: 'shampoo'}));
        form.onSelectMenu(target({menuId: 'facial'}));
        form.onSelectSubmenu(target({menuId: 'facial', submenuId: 'basic'}));
        const both = {ids: form.state.selectedMenuIds.slice(), totals: form.computeTotals(), line: form.buildMenuLine()};
        form.onSelectMenu(target({menuId: 'gel'}));
        return {both, after_gel: form.state.selectedMenuIds, totals: form.computeTotals()};
    """
    within = run_controller(_config(menu_structure=menus), steps)["result"]
    assert within["both"] == {
        "ids": ["cut", "facial"],
        "totals": {"price": 14000, "duration": 195},
        "line": "ヘア > カット, シャンプー / ヘア > フェイシャル > ベーシックフェイシャル",
    }
    # nail is single-select: picking gel replaces everything
    assert within["after_gel"] == ["gel"]
    assert within["totals"] == {"price": 4000, "duration": 45}

    across = run_controller(_config(menu_structure=dict(menus, allow_cross_category_selection=True)), steps)["result"]
    assert across["after_gel"] == ["cut", "facial", "gel"]
    assert across["totals"] == {"price": 18000, "duration": 240}


def test_validation_order_matches_python():
    config = _config(
        gender_selection={"enabled": True, "required": True},
        custom_fields=[{"id": "allergy", "title": "アレルギー", "type": "text", "required": True}],
    )
    out = run_controller(config, """
        const seen = [form.validate()];
        form.onTextInput(target({field: 'name'}, {value: '山田太郎'}));
        form.onTextInput(target({field: 'phone'}, {value: '090-1234-5678'}));
        seen.push(form.validate());
        form.onSelectChoice(target({group: 'gender', value: 'female'}));
        seen.push(form.validate());
        form.onSelectMenu(target({menuId: 'facial'}));
        seen.push(form.validate());
        form.onSelectSubmenu(target({menuId: 'facial', submenuId: 'basic'}));
        seen.push(form.validate());
        form.state.selectedDate = '2025-01-10';
        form.state.selectedTime = '14:00';
        seen.push(form.validate());
        form.onCustomFieldInput(target({fieldId: 'allergy'}, {value: 'なし'}));
        seen.push(form.validate());
        return seen;
    """)
    normalized = normalize_config(config)
    stages = [
        {},
        {"name": "山田太郎", "phone": "090-1234-5678"},
        {"gender": "female"},
        {"menu_id": "facial"},
        {"submenu_id": "basic"},
        {"date": "2025-01-10", "time": "14:00"},
        {"custom_fields": {"allergy": "なし"}},
    ]
    expected = []
    data: dict = {}
    for stage in stages:
        data.update(stage)
        errors = validate_selection(normalized, BookingSelection.from_dict(data))
        expected.append(errors[0] if errors else None)
    assert out["result"] == expected
    assert expected[-1] is None


def test_submission_text_matches_python_byte_for_byte():
    menus = dict(MENUS, allow_cross_category_selection=True)
    config = _config(
        menu_structure=menus,
        gender_selection={"enabled": True},
        visit_count_selection={"enabled": True},
        coupon_selection={"enabled": True},
        calendar_settings={"booking_mode": "multiple_dates"},
        custom_fields=[
            {"id": "area", "title": "気になる部位", "type": "checkbox",
             "options": [{"value": "face", "label": "顔"}, {"value": "neck", "label": "首"}]},
            {"id": "note", "title": "備考", "type": "text"},
        ],
    )
    out = run_controller(config, """
        form.onTextInput(target({field: 'name'}, {value: '山田 太郎'}));
        form.onTextInput(target({field: 'phone'}, {value: '090-1234-5678'}));
        form.onTextInput(target({field: 'message'}, {value: '初めてです\\nよろしくお願いします'}));
        form.onSelectChoice(target({group: 'gender', value: 'female'}));
        form.onSelectChoice(target({group: 'visitCount', value: 'repeat'}));
        form.onSelectChoice(target({group: 'coupon', value: 'use'}));
        form.onCustomCheckbox(target({fieldId: 'area', value: 'face'}, {checked: true}));
        form.onCustomCheckbox(target({fieldId: 'area', value: 'neck'}, {checked: true}));
        form.onCustomFieldInput(target({fieldId: 'note'}, {value: '午後希望'}));
        form.onSelectMenu(target({menuId: 'cut'}));
        form.onToggleOption(target({menuId: 'cut', optionId: 'treatment'}));
        form.onToggleOption(target({menuId: 'cut', optionId: 'shampoo'}));
        form.onSelectMenu(target({menuId: 'gel'}));
        form.state.selectedDate = '2025-01-10';
        form.state.selectedTime = '14:00';
        form.state.alternates[2] = {date: '2025-01-11', time: '10:30'};
        form.state.alternates[3] = {date: '2025-01-12', time: ''};
        return form.buildSubmissionText();
    """)
    selection = BookingSelection.from_dict({
        "name": "山田 太郎",
        "phone": "090-1234-5678",
        "message": "初めてです\nよろしくお願いします",
        "gender": "female",
        "visit_count": "repeat",
        "coupon": "use",
        "custom_fields": {"area": ["face", "neck"], "note": "午後希望"},
        "menus": [{"menu_id": "cut", "option_ids": ["treatment", "shampoo"]}, {"menu_id": "gel"}],
        "date": "2025-01-10",
        "time": "14:00",
        "alternates": [{"date": "2025-01-11", "time": "10:30"}, {"date": "2025-01-12", "time": ""}],
    })
    expected = build_submission_text(normalize_config(config), selection)
    assert out["result"] == expected
    assert "メニュー：ヘア > カット, トリートメント, シャンプー / ネイル > ジェル" in expected


def test_submit_waits_for_pending_transport_init():
    out = run_controller(_config(), FILL_VALID + """
        const pending = form.onSubmit();
        await flush();
        const before = {sent: liff.sent.length, closed: liff.closed};
        liff.release();
        const outcome = await pending;
        return {before, outcome};
    """, liff={"init": "pending"})
    assert out["result"]["before"] == {"sent": 0, "closed": False}
    assert out["result"]["outcome"] == "sent"
    assert len(out["sent"]) == 1
    assert out["sent"][0].startswith("【予約フォーム】\nお名前：山田太郎\n")
    assert out["closed"] is True
    assert out["success"] is True
    assert out["error"] is None


def test_double_submit_sends_once():
    out = run_controller(_config(), FILL_VALID + """
        const first = form.onSubmit();
        const second = await form.onSubmit();
        liff.release();
        return [await first, second];
    """, liff={"init": "pending"})
    assert out["result"] == ["sent", "busy"]
    assert len(out["sent"]) == 1


@pytest.mark.parametrize(
    "liff,config",
    [
        (None, _config()),
        ({"init": "resolve", "loggedIn": False}, _config()),
        ({"init": "reject"}, _config()),
        ({"init": "resolve"}, _config(basic_info={"form_name": "カット予約", "liff_id": "short"})),
    ],
    ids=["sdk-missing", "logged-out", "init-failed", "no-liff-id"],
)
def test_missing_transport_shows_login_error_instead_of_success(liff, config):
    out = run_controller(config, FILL_VALID + "return await form.onSubmit();", liff=liff)
    assert out["result"] == "unavailable"
    assert out["error"] == LOGIN_REQUIRED
    assert out["success"] is False
    assert out["sent"] == []


def test_send_failure_is_logged_without_success():
    out = run_controller(_config(), FILL_VALID + "return await form.onSubmit();", liff={"init": "resolve", "sendFails": True})
    assert out["result"] == "failed"
    assert out["success"] is False
    assert out["error"] is None
    assert any("message send failed" in line for line in out["logs"]["error"])


def test_invalid_form_is_never_sent():
    out = run_controller(_config(), "return await form.onSubmit();", liff={"init": "resolve"})
    assert out["result"] == "invalid"
    assert out["error"] == "お名前と電話番号を入力してください"
    assert out["sent"] == []


def test_repeat_booking_round_trip():
    config = _config(ui_settings={"show_repeat_booking": True})
    saved = run_controller(config, FILL_VALID + """
        form.onToggleOption(target({menuId: 'cut', optionId: 'shampoo'}));
        form.state.selectedDate = '2025-01-10';
        form.state.selectedTime = '14:00';
        return await form.onSubmit();
    """, liff={"init": "resolve"})
    assert saved["result"] == "sent"
    stored = json.loads(saved["storage"]["booking_カット予約"])
    assert stored["menus"] == [{"categoryId": "hair", "menuId": "cut", "submenuId": "", "options": ["shampoo"]}]

    restored = run_controller(config, """
        form.onRepeatBooking();
        return {ids: form.state.selectedMenuIds, options: form.state.selectedOptions, totals: form.computeTotals()};
    """, storage=saved["storage"])
    assert restored["result"] == {"ids": ["cut"], "options": {"cut": ["shampoo"]}, "totals": {"price": 6000, "duration": 75}}
    assert restored["alerts"] == ["前回のメニューを復元しました！"]

    stored["timestamp"] = int(time.time() * 1000) - 8 * 24 * 60 * 60 * 1000
    stale = run_controller(config, "form.onRepeatBooking(); return form.state.selectedMenuIds;",
                           storage={"booking_カット予約": json.dumps(stored)})
    assert stale["result"] == []
    assert stale["alerts"] == ["前回のメニューデータが古いため復元できません"]
