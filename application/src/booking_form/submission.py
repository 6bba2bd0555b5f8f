"""Fixed-format booking message read by the store's downstream parser.

Line order and labels are a wire contract. Gender, coupon and custom-field lines are
informational trailers the parser ignores.
"""

from __future__ import annotations

from datetime import date

from .booking_state import (
    BookingSelection,
    DesiredDateTime,
    MenuPick,
    choice_label,
    custom_field_text,
    selected_menus,
)
from .models import FormConfig

HEADER = "【予約フォーム】"


def format_desired_datetime(value: DesiredDateTime) -> str:
    """'2025-01-10', '14:00' -> '2025年01月10日 14:00'. Unparsable dates are passed through."""
    try:
        d = date.fromisoformat(value.date_str)
    except (ValueError, TypeError):
        return f"{value.date_str} {value.time}".strip()
    return f"{d.year}年{d.month:02d}月{d.day:02d}日 {value.time}"


def _pick_line(pick: MenuPick) -> str:
    segments = [pick.category.name, pick.menu.name, pick.submenu.name if pick.submenu else ""]
    line = " > ".join(s for s in segments if s)
    option_names = [o.name for o in pick.options if o.name]
    if option_names:
        line += (", " if line else "") + ", ".join(option_names)
    return line


def build_menu_line(config: FormConfig, selection: BookingSelection) -> str:
    """Per menu 'category > menu[ > submenu]' plus ', '-joined option names; menus joined by ' / '."""
    return " / ".join(line for line in (_pick_line(p) for p in selected_menus(config, selection)) if line)


def build_submission_text(config: FormConfig, selection: BookingSelection) -> str:
    visit = ""
    if config.visit_count_selection.enabled and selection.visit_count:
        visit = choice_label(config.visit_count_selection, selection.visit_count) or selection.visit_count

    lines = [
        HEADER,
        f"お名前：{selection.name}",
        f"電話番号：{selection.phone}",
        f"ご来店回数：{visit}",
        f"メニュー：{build_menu_line(config, selection)}",
        "希望日時：",
        f" {format_desired_datetime(selection.desired)}",
    ]
    if config.is_multiple_dates:
        lines.extend(f" {format_desired_datetime(alt)}" for alt in selection.alternates if alt.complete)
    lines.append(f"メッセージ：{selection.message}")

    for custom in config.custom_fields:
        text = custom_field_text(custom, selection.custom_fields.get(custom.id))
        if text.strip():
            lines.append(f"{custom.title}：{text}")

    gender = choice_label(config.gender_selection, selection.gender)
    if gender:
        lines.append(f"性別：{gender}")
    coupon = choice_label(config.coupon_selection, selection.coupon)
    if coupon:
        lines.append(f"クーポン：{coupon}")
    return "\n".join(lines)
