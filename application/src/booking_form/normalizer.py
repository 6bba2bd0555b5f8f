"""Fill structurally required defaults on a partial form configuration.

Fail-soft: missing or malformed optional values are defaulted, never rejected, so that
publishing never blocks on a half-finished edit. Only input that is not a mapping at all
raises (TypeError), since there is nothing sensible to generate from it.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping

from .models import (
    BOOKING_MODE_CALENDAR,
    BOOKING_MODE_MULTIPLE_DATES,
    CUSTOM_FIELD_TYPES,
    MAX_DATE_RANGE_DAYS,
    SELECTION_MULTIPLE,
    SELECTION_SINGLE,
    TIME_INTERVALS,
    WEEKDAY_KEYS,
    BasicInfo,
    CalendarSettings,
    Category,
    ChoiceOption,
    ChoiceSelection,
    CustomField,
    DayHours,
    DisplayOptions,
    FormConfig,
    LeafMenu,
    MenuItem,
    MenuOption,
    MenuStructure,
    MultipleDatesSettings,
    SubMenuItem,
    SubmenuMenu,
    UISettings,
)

DEFAULT_FORM_NAME = "フォーム"
DEFAULT_THEME_COLOR = "#3B82F6"
DEFAULT_ADVANCE_BOOKING_DAYS = 30

DEFAULT_GENDER_OPTIONS = (ChoiceOption("male", "男性"), ChoiceOption("female", "女性"))
DEFAULT_VISIT_COUNT_OPTIONS = (ChoiceOption("first", "初回"), ChoiceOption("repeat", "2回目以降"))
DEFAULT_COUPON_OPTIONS = (ChoiceOption("use", "利用する"), ChoiceOption("not_use", "利用しない"))

# Mon-Sat 09:00-18:00, Sunday closed
DEFAULT_BUSINESS_HOURS: dict[str, DayHours] = {
    key: DayHours(open="09:00", close="18:00", closed=(key == "sunday")) for key in WEEKDAY_KEYS
}

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_MISSING = object()


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _first(*values: Any, default: Any = None) -> Any:
    """First value that is not None/missing (the `??` chain of the legacy editor)."""
    for v in values:
        if v is not None and v is not _MISSING:
            return v
    return default


def _as_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def _as_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off", ""):
            return False
        return default
    if isinstance(value, (int, float)):
        return bool(value)
    return default


def _as_int(value: Any, default: int = 0, minimum: int | None = 0) -> int:
    """Coerce to int; unparsable values give default, values below minimum clamp to it."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    if minimum is not None and number < minimum:
        return minimum
    return number


def _list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _theme_color(*candidates: Any) -> str:
    for c in candidates:
        if isinstance(c, str) and _HEX_COLOR.match(c.strip()):
            return c.strip()
    return DEFAULT_THEME_COLOR


def _choice_options(raw: Any, default: tuple[ChoiceOption, ...]) -> tuple[ChoiceOption, ...]:
    items = [o for o in _list(raw) if isinstance(o, Mapping)]
    if not items:
        return default
    out: list[ChoiceOption] = []
    for o in items:
        value = _as_str(o.get("value"))
        label = _as_str(o.get("label"), value)
        if value or label:
            out.append(ChoiceOption(value=value or label, label=label or value))
    return tuple(out) or default


def _choice_selection(
    raw: Any,
    default_options: tuple[ChoiceOption, ...],
    legacy_enabled: Any = None,
) -> ChoiceSelection:
    section = _mapping(raw)
    return ChoiceSelection(
        enabled=_as_bool(_first(section.get("enabled"), legacy_enabled), False),
        required=_as_bool(section.get("required"), False),
        options=_choice_options(section.get("options"), default_options),
        coupon_name=_as_str(section.get("coupon_name")),
    )


def _menu_option(raw: Mapping[str, Any], index: int) -> MenuOption:
    return MenuOption(
        id=_as_str(raw.get("id")) or f"option-{index}",
        name=_as_str(raw.get("name")),
        price=_as_int(raw.get("price")),
        duration=_as_int(raw.get("duration")),
        is_default=_as_bool(raw.get("is_default")),
        description=_as_str(raw.get("description")),
    )


def _sub_menu_item(raw: Mapping[str, Any], index: int) -> SubMenuItem:
    return SubMenuItem(
        id=_as_str(raw.get("id")) or f"submenu-{index}",
        name=_as_str(raw.get("name")),
        price=_as_int(raw.get("price")),
        duration=_as_int(raw.get("duration")),
        description=_as_str(raw.get("description")),
        image=_as_str(raw.get("image")),
    )


def _menu_item(raw: Mapping[str, Any], fallback_id: str) -> MenuItem:
    """Decide the menu's shape once: submenu-bearing or leaf, never both."""
    menu_id = _as_str(raw.get("id")) or fallback_id
    name = _as_str(raw.get("name"))
    description = _as_str(raw.get("description"))
    image = _as_str(raw.get("image"))

    subs = [s for s in _list(raw.get("sub_menu_items")) if isinstance(s, Mapping)]
    if _as_bool(raw.get("has_submenu")) and subs:
        return SubmenuMenu(
            id=menu_id,
            name=name,
            sub_menu_items=tuple(_sub_menu_item(s, i) for i, s in enumerate(subs)),
            description=description,
            image=image,
        )

    options = [o for o in _list(raw.get("options")) if isinstance(o, Mapping)]
    return LeafMenu(
        id=menu_id,
        name=name,
        price=_as_int(raw.get("price")),
        duration=_as_int(raw.get("duration")),
        options=tuple(_menu_option(o, i) for i, o in enumerate(options)),
        description=description,
        image=image,
    )


def _menu_structure(raw: Any, legacy: Any) -> MenuStructure:
    section = _mapping(raw)
    legacy_section = _mapping(legacy)
    raw_categories = _list(section.get("categories")) or _list(legacy_section.get("categories"))

    categories: list[Category] = []
    for ci, cat in enumerate(raw_categories):
        if not isinstance(cat, Mapping):
            continue
        cat_id = _as_str(cat.get("id")) or f"category-{ci}"
        menus = tuple(
            _menu_item(m, f"{cat_id}-menu-{mi}")
            for mi, m in enumerate(_list(cat.get("menus")))
            if isinstance(m, Mapping)
        )
        mode = SELECTION_MULTIPLE if _as_str(cat.get("selection_mode")) == SELECTION_MULTIPLE else SELECTION_SINGLE
        categories.append(Category(id=cat_id, name=_as_str(cat.get("name")), menus=menus, selection_mode=mode))

    display = _mapping(section.get("display_options"))
    return MenuStructure(
        categories=tuple(categories),
        display_options=DisplayOptions(
            show_price=_as_bool(display.get("show_price"), True),
            show_duration=_as_bool(display.get("show_duration"), True),
            show_description=_as_bool(display.get("show_description"), True),
            show_treatment_info=_as_bool(display.get("show_treatment_info"), False),
        ),
        structure_type=_as_str(section.get("structure_type"), "category_based") or "category_based",
        allow_cross_category_selection=_as_bool(
            _first(section.get("allow_cross_category_selection"), legacy_section.get("allow_cross_category_selection")), False,
        ),
    )


def _business_hours(raw: Any) -> dict[str, DayHours]:
    section = _mapping(raw)
    hours: dict[str, DayHours] = {}
    for key in WEEKDAY_KEYS:
        entry = section.get(key)
        default = DEFAULT_BUSINESS_HOURS[key]
        if not isinstance(entry, Mapping):
            hours[key] = default
            continue
        # Malformed time strings are kept as-is; availability treats them as "no times"
        hours[key] = DayHours(
            open=_as_str(entry.get("open"), default.open),
            close=_as_str(entry.get("close"), default.close),
            closed=_as_bool(entry.get("closed"), False),
        )
    return hours


def _multiple_dates_settings(raw: Any) -> MultipleDatesSettings:
    section = _mapping(raw)
    default = MultipleDatesSettings()

    interval = _as_int(section.get("time_interval"), default.time_interval)
    if interval not in TIME_INTERVALS:
        interval = default.time_interval

    range_days = _as_int(section.get("date_range_days"), default.date_range_days)
    if range_days <= 0:
        range_days = default.date_range_days
    range_days = min(range_days, MAX_DATE_RANGE_DAYS)

    if "exclude_weekdays" in section:
        weekdays = set()
        for w in _list(section.get("exclude_weekdays")):
            n = _as_int(w, -1, minimum=None)
            if 0 <= n <= 6:
                weekdays.add(n)
        exclude = tuple(sorted(weekdays))
    else:
        exclude = default.exclude_weekdays

    return MultipleDatesSettings(
        time_interval=interval,
        date_range_days=range_days,
        exclude_weekdays=exclude,
        start_time=_as_str(section.get("start_time"), default.start_time) or default.start_time,
        end_time=_as_str(section.get("end_time"), default.end_time) or default.end_time,
    )


def _calendar_settings(raw: Any, legacy_rules: Any) -> CalendarSettings:
    section = _mapping(raw)
    rules = _mapping(legacy_rules)

    advance = _as_int(
        _first(section.get("advance_booking_days"), rules.get("advance_booking_days")),
        DEFAULT_ADVANCE_BOOKING_DAYS,
    )
    if advance <= 0:
        advance = DEFAULT_ADVANCE_BOOKING_DAYS

    mode = _as_str(section.get("booking_mode"), BOOKING_MODE_CALENDAR)
    if mode not in (BOOKING_MODE_CALENDAR, BOOKING_MODE_MULTIPLE_DATES):
        mode = BOOKING_MODE_CALENDAR

    return CalendarSettings(
        business_hours=_business_hours(section.get("business_hours") or rules.get("business_hours")),
        advance_booking_days=advance,
        booking_mode=mode,
        multiple_dates_settings=_multiple_dates_settings(section.get("multiple_dates_settings")),
    )


def _custom_fields(raw: Any) -> tuple[CustomField, ...]:
    fields: list[CustomField] = []
    for i, f in enumerate(_list(raw)):
        if not isinstance(f, Mapping):
            continue
        field_type = _as_str(f.get("type"))
        if field_type not in CUSTOM_FIELD_TYPES:
            continue
        options = _choice_options(f.get("options"), ())
        if field_type in ("radio", "checkbox") and not options:
            continue
        field_id = _as_str(f.get("id")) or f"field-{i}"
        fields.append(CustomField(
            id=field_id,
            title=_as_str(f.get("title")) or field_id,
            type=field_type,
            required=_as_bool(f.get("required")),
            placeholder=_as_str(f.get("placeholder")),
            options=options,
        ))
    return tuple(fields)


def _unwrap(raw: Any) -> tuple[Mapping[str, Any], Mapping[str, Any]]:
    """
    Return (config, legacy_record).

    Accepts a bare config, a stored form record with a nested `config` (possibly a JSON
    string), or a JSON string of either. Raises TypeError for anything not object-shaped.
    """
    if isinstance(raw, FormConfig):
        return raw.to_dict(), {}
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (ValueError, TypeError) as exc:
            raise TypeError(f"form config is not valid JSON: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise TypeError(f"form config must be an object, got {type(raw).__name__}")

    nested = raw.get("config")
    if isinstance(nested, (str, bytes)):
        try:
            nested = json.loads(nested)
        except (ValueError, TypeError):
            nested = None
    if isinstance(nested, Mapping) and "basic_info" not in raw:
        return nested, raw
    return raw, raw


def normalize_config(raw: Any) -> FormConfig:
    """Build a fully populated FormConfig. The caller's object is never mutated."""
    cfg, legacy = _unwrap(raw)

    basic = _mapping(cfg.get("basic_info"))
    legacy_basic = _mapping(legacy.get("basic_info")) if legacy is not cfg else {}
    ui = _mapping(cfg.get("ui_settings"))
    legacy_ui = _mapping(legacy.get("ui_settings")) if legacy is not cfg else {}

    basic_info = BasicInfo(
        form_name=_as_str(legacy.get("form_name")) or _as_str(basic.get("form_name")) or DEFAULT_FORM_NAME,
        store_name=_as_str(basic.get("store_name")) or _as_str(legacy_basic.get("store_name")),
        theme_color=_theme_color(basic.get("theme_color"), legacy_basic.get("theme_color")),
        liff_id=(
            _as_str(basic.get("liff_id"))
            or _as_str(legacy_basic.get("liff_id"))
            or _as_str(_mapping(legacy.get("line_settings")).get("liff_id"))
        ),
        logo_url=_as_str(basic.get("logo_url")) or _as_str(legacy_basic.get("logo_url")),
    )

    gender = _choice_selection(
        cfg.get("gender_selection"),
        DEFAULT_GENDER_OPTIONS,
        _first(basic.get("show_gender_selection"), legacy_basic.get("show_gender_selection")),
    )
    visit_count = _choice_selection(
        cfg.get("visit_count_selection"),
        DEFAULT_VISIT_COUNT_OPTIONS,
        _first(ui.get("show_visit_count"), legacy_ui.get("show_visit_count")),
    )
    coupon = _choice_selection(
        cfg.get("coupon_selection"),
        DEFAULT_COUPON_OPTIONS,
        _first(ui.get("show_coupon_selection"), legacy_ui.get("show_coupon_selection")),
    )

    ui_settings = UISettings(
        theme_color=_theme_color(ui.get("theme_color"), basic.get("theme_color"), legacy_ui.get("theme_color")),
        button_style="square" if _as_str(ui.get("button_style")) == "square" else "rounded",
        show_repeat_booking=_as_bool(_first(ui.get("show_repeat_booking"), legacy_ui.get("show_repeat_booking")), False),
        show_side_nav=_as_bool(_first(ui.get("show_side_nav"), legacy_ui.get("show_side_nav")), True),
    )

    return FormConfig(
        basic_info=basic_info,
        gender_selection=gender,
        visit_count_selection=visit_count,
        coupon_selection=coupon,
        menu_structure=_menu_structure(cfg.get("menu_structure"), legacy.get("menu_structure")),
        calendar_settings=_calendar_settings(cfg.get("calendar_settings"), legacy.get("business_rules")),
        ui_settings=ui_settings,
        custom_fields=_custom_fields(cfg.get("custom_fields")),
    )
