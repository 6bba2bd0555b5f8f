"""Unit tests for booking_state: phases, totals, reset rules and validation order."""

from __future__ import annotations

import pytest

from src.booking_form.booking_state import (
    MSG_DATETIME,
    MSG_GENDER,
    MSG_MENU,
    MSG_NAME_PHONE,
    MSG_VISIT_COUNT,
    PHASE_AWAITING_SUBMENU,
    PHASE_LEAF,
    PHASE_NONE,
    PHASE_SUBMENU,
    BookingSelection,
    BookingState,
    compute_totals,
    validate_selection,
)
from src.booking_form.normalizer import normalize_config


@pytest.fixture
def config():
    return normalize_config({
        "gender_selection": {"enabled": True, "required": True},
        "visit_count_selection": {"enabled": True, "required": False},
        "menu_structure": {"categories": [{"id": "c1", "name": "ヘア", "menus": [
            {"id": "cut", "name": "カット", "price": 5000, "duration": 60, "options": [
                {"id": "shampoo", "name": "シャンプー", "price": 1000, "duration": 15},
                {"id": "treatment", "name": "トリートメント", "price": 1500, "duration": 20},
            ]},
            {"id": "facial", "name": "フェイシャル", "has_submenu": True, "sub_menu_items": [
                {"id": "basic", "name": "ベーシックフェイシャル", "price": 8000, "duration": 120},
                {"id": "premium", "name": "プレミアムフェイシャル", "price": 12000, "duration": 150},
            ]},
        ]}]},
        "custom_fields": [{"id": "allergy", "title": "アレルギー", "type": "text", "required": True}],
    })


def test_leaf_menu_totals_include_selected_options(config):
    state = BookingState(config)
    assert state.select_menu("cut") == PHASE_LEAF
    assert state.toggle_option("shampoo") is True
    assert state.toggle_option("treatment") is True
    totals = state.totals()
    assert (totals.price, totals.duration) == (7500, 95)
    assert totals.to_dict() == {"total_price": 7500, "total_duration": 95}


def test_toggling_an_option_twice_removes_it(config):
    state = BookingState(config)
    state.select_menu("cut")
    state.toggle_option("shampoo")
    assert state.toggle_option("shampoo") is False
    assert state.is_option_selected("shampoo") is False
    assert state.totals().price == 5000


def test_submenu_phases_and_totals(config):
    state = BookingState(config)
    assert state.select_menu("facial") == PHASE_AWAITING_SUBMENU
    assert state.is_terminal is False
    assert state.totals().price == 0
    assert state.select_datetime("2025-01-10", "14:00") is False

    assert state.select_submenu("basic") == PHASE_SUBMENU
    assert (state.totals().price, state.totals().duration) == (8000, 120)
    assert state.select_datetime("2025-01-10", "14:00") is True


def test_options_cannot_attach_to_submenu_menu(config):
    state = BookingState(config)
    state.select_menu("facial")
    assert state.toggle_option("shampoo") is False
    assert state.selection.selected_options == {}


def test_switching_menu_discards_previous_choices(config):
    state = BookingState(config)
    state.select_menu("cut")
    state.toggle_option("shampoo")
    state.select_datetime("2025-01-10", "14:00")

    assert state.select_menu("facial") == PHASE_AWAITING_SUBMENU
    assert state.selection.selected_options == {}
    assert state.selection.desired.complete is False

    state.select_submenu("premium")
    state.select_datetime("2025-01-11", "10:00")
    state.select_menu("cut")
    assert state.selection.submenu_ids == {}
    assert state.selection.desired.complete is False
    assert state.is_option_selected("shampoo") is False


def test_clicking_the_selected_menu_deselects_it(config):
    state = BookingState(config)
    state.select_menu("cut")
    assert state.select_menu("cut") == PHASE_NONE
    assert state.selection.menu_ids == []


def test_unknown_ids_leave_state_untouched(config):
    state = BookingState(config)
    state.select_menu("cut")
    assert state.select_menu("missing") == PHASE_LEAF
    assert state.select_submenu("basic") == PHASE_LEAF
    assert state.toggle_option("nope") is False


def test_validation_order(config):
    errors = validate_selection(config, BookingSelection())
    assert errors == [MSG_NAME_PHONE, MSG_GENDER, MSG_MENU, MSG_DATETIME, "アレルギーを入力してください"]
    assert MSG_VISIT_COUNT not in errors  # enabled but optional


def test_awaiting_submenu_fails_menu_validation(config):
    selection = BookingSelection.from_dict({
        "name": "山田太郎", "phone": "090-1234-5678", "gender": "female",
        "menu_id": "facial", "date": "2025-01-10", "time": "14:00",
        "custom_fields": {"allergy": "なし"},
    })
    assert validate_selection(config, selection) == [MSG_MENU]
    selection.submenu_ids["facial"] = "basic"
    assert validate_selection(config, selection) == []


def test_from_dict_ignores_malformed_values(config):
    selection = BookingSelection.from_dict({
        "name": 123, "menu_id": "cut", "option_ids": ["shampoo", 7, "ghost"],
        "alternates": [{"date": "2025-01-11", "time": "10:00"}, "bad", {}, {"date": "x"}],
    })
    assert selection.name == ""
    assert selection.selected_options == {"cut": ["shampoo", "ghost"]}
    # only the second and third choices are kept; non-objects among them are dropped
    assert [a.to_dict() for a in selection.alternates] == [{"date": "2025-01-11", "time": "10:00"}]
    assert compute_totals(config, selection).price == 6000


@pytest.fixture
def multi_config():
    return normalize_config({
        "menu_structure": {"categories": [
            {"id": "hair", "name": "ヘア", "selection_mode": "multiple", "menus": [
                {"id": "cut", "name": "カット", "price": 5000, "duration": 60, "options": [
                    {"id": "shampoo", "name": "シャンプー", "price": 1000, "duration": 15},
                ]},
                {"id": "color", "name": "カラー", "has_submenu": True, "sub_menu_items": [
                    {"id": "full", "name": "フルカラー", "price": 9000, "duration": 90},
                ]},
            ]},
            {"id": "nail", "name": "ネイル", "menus": [
                {"id": "gel", "name": "ジェル", "price": 4000, "duration": 45},
                {"id": "care", "name": "ケア", "price": 2000, "duration": 30},
            ]},
        ]},
    })


def test_multiple_category_adds_and_removes_menus(multi_config):
    state = BookingState(multi_config)
    state.select_menu("cut")
    state.toggle_option("shampoo", menu_id="cut")
    assert state.select_menu("color") == PHASE_AWAITING_SUBMENU
    assert state.selection.menu_ids == ["cut", "color"]
    assert state.totals().price == 6000

    assert state.select_submenu("full", menu_id="color") == PHASE_SUBMENU
    assert (state.totals().price, state.totals().duration) == (15000, 165)

    # re-click drops just that menu and keeps the other one's options
    assert state.select_menu("color") == PHASE_LEAF
    assert state.selection.menu_ids == ["cut"]
    assert state.selection.submenu_ids == {}
    assert state.is_option_selected("shampoo", menu_id="cut") is True


def test_single_category_click_replaces_multiple_selection(multi_config):
    state = BookingState(multi_config)
    state.select_menu("cut")
    state.select_menu("color")
    assert state.select_menu("gel") == PHASE_LEAF
    assert state.selection.menu_ids == ["gel"]
    assert state.selection.selected_options == {}
    assert state.select_menu("care") == PHASE_LEAF
    assert state.selection.menu_ids == ["care"]


def test_additive_click_drops_menus_from_other_categories(multi_config):
    state = BookingState(multi_config)
    state.select_menu("gel")
    state.select_menu("cut")
    assert state.selection.menu_ids == ["cut"]


def test_cross_category_selection_keeps_everything(multi_config):
    config = normalize_config({
        "menu_structure": dict(multi_config.menu_structure.to_dict(), allow_cross_category_selection=True),
    })
    state = BookingState(config)
    state.select_menu("gel")
    state.select_menu("cut")
    state.select_menu("care")
    assert state.selection.menu_ids == ["gel", "cut", "care"]
    assert (state.totals().price, state.totals().duration) == (11000, 135)
    state.select_datetime("2025-01-10", "14:00")
    state.select_menu("gel")
    assert state.selection.menu_ids == ["cut", "care"]
    assert state.selection.desired.complete is False


def test_from_dict_accepts_menu_list(multi_config):
    selection = BookingSelection.from_dict({"menus": [
        {"menu_id": "cut", "option_ids": ["shampoo"]},
        {"menu_id": "color", "submenu_id": "full"},
        {"menu_id": "cut"},
        "junk",
    ]})
    assert selection.menu_ids == ["cut", "color"]
    assert selection.submenu_ids == {"color": "full"}
    assert selection.selected_options == {"cut": ["shampoo"]}
    assert compute_totals(multi_config, selection).price == 15000
