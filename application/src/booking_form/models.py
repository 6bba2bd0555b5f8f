"""Typed form configuration: the normalized shape every generator stage consumes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

WEEKDAY_KEYS = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]

BOOKING_MODE_CALENDAR = "calendar"
BOOKING_MODE_MULTIPLE_DATES = "multiple_dates"
TIME_INTERVALS = (15, 30, 60)
MAX_DATE_RANGE_DAYS = 365

SELECTION_SINGLE = "single"
SELECTION_MULTIPLE = "multiple"

CUSTOM_FIELD_TYPES = ("text", "textarea", "radio", "checkbox")


@dataclass(frozen=True)
class ChoiceOption:
    """One {value, label} choice (gender, visit count, coupon, custom radio/checkbox)."""
    value: str
    label: str

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "label": self.label}


@dataclass(frozen=True)
class ChoiceSelection:
    """An optional single-choice field block."""
    enabled: bool
    options: tuple[ChoiceOption, ...]
    required: bool = False
    coupon_name: str = ""  # only meaningful for the coupon block

    def label_for(self, value: str) -> str | None:
        for opt in self.options:
            if opt.value == value:
                return opt.label
        return None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "enabled": self.enabled,
            "required": self.required,
            "options": [o.to_dict() for o in self.options],
        }
        if self.coupon_name:
            out["coupon_name"] = self.coupon_name
        return out


@dataclass(frozen=True)
class BasicInfo:
    form_name: str
    store_name: str
    theme_color: str
    liff_id: str = ""  # messaging-app id; empty means the transport is not used
    logo_url: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "form_name": self.form_name,
            "store_name": self.store_name,
            "theme_color": self.theme_color,
            "liff_id": self.liff_id,
            "logo_url": self.logo_url,
        }


@dataclass(frozen=True)
class MenuOption:
    """Add-on for a leaf menu (price/duration added on top of the menu)."""
    id: str
    name: str
    price: int = 0
    duration: int = 0
    is_default: bool = False
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "duration": self.duration,
            "is_default": self.is_default,
            "description": self.description,
        }


@dataclass(frozen=True)
class SubMenuItem:
    """Child of a submenu-bearing menu; its price/duration replace the parent's."""
    id: str
    name: str
    price: int = 0
    duration: int = 0
    description: str = ""
    image: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "duration": self.duration,
            "description": self.description,
            "image": self.image,
        }


@dataclass(frozen=True)
class LeafMenu:
    id: str
    name: str
    price: int = 0
    duration: int = 0
    options: tuple[MenuOption, ...] = ()
    description: str = ""
    image: str = ""
    kind: Literal["leaf"] = "leaf"

    @property
    def has_submenu(self) -> bool:
        return False

    def find_option(self, option_id: str) -> MenuOption | None:
        for opt in self.options:
            if opt.id == option_id:
                return opt
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "name": self.name,
            "description": self.description,
            "image": self.image,
            "has_submenu": False,
            "price": self.price,
            "duration": self.duration,
            "options": [o.to_dict() for o in self.options],
        }


@dataclass(frozen=True)
class SubmenuMenu:
    id: str
    name: str
    sub_menu_items: tuple[SubMenuItem, ...]
    description: str = ""
    image: str = ""
    kind: Literal["submenu"] = "submenu"

    @property
    def has_submenu(self) -> bool:
        return True

    def find_submenu(self, submenu_id: str) -> SubMenuItem | None:
        for sub in self.sub_menu_items:
            if sub.id == submenu_id:
                return sub
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "name": self.name,
            "description": self.description,
            "image": self.image,
            "has_submenu": True,
            "sub_menu_items": [s.to_dict() for s in self.sub_menu_items],
        }


MenuItem = Union[LeafMenu, SubmenuMenu]


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    menus: tuple[MenuItem, ...] = ()
    selection_mode: str = SELECTION_SINGLE  # "multiple" lets several menus of this category be booked together

    @property
    def allows_multiple(self) -> bool:
        return self.selection_mode == SELECTION_MULTIPLE

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "selection_mode": self.selection_mode,
            "menus": [m.to_dict() for m in self.menus],
        }


@dataclass(frozen=True)
class DisplayOptions:
    show_price: bool = True
    show_duration: bool = True
    show_description: bool = True
    show_treatment_info: bool = False  # editor preview only; carried through, not rendered

    def to_dict(self) -> dict[str, Any]:
        return {
            "show_price": self.show_price,
            "show_duration": self.show_duration,
            "show_description": self.show_description,
            "show_treatment_info": self.show_treatment_info,
        }


@dataclass(frozen=True)
class MenuStructure:
    categories: tuple[Category, ...] = ()
    display_options: DisplayOptions = field(default_factory=DisplayOptions)
    structure_type: str = "category_based"
    allow_cross_category_selection: bool = False

    def is_additive(self, category: Category) -> bool:
        """Whether clicking a menu of category adds to the selection instead of replacing it."""
        return self.allow_cross_category_selection or category.allows_multiple

    def find_menu(self, menu_id: str) -> tuple[Category, MenuItem] | None:
        """Return (category, menu) for menu_id, searching every category in order."""
        for category in self.categories:
            for menu in category.menus:
                if menu.id == menu_id:
                    return category, menu
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "structure_type": self.structure_type,
            "allow_cross_category_selection": self.allow_cross_category_selection,
            "categories": [c.to_dict() for c in self.categories],
            "display_options": self.display_options.to_dict(),
        }


@dataclass(frozen=True)
class DayHours:
    open: str = "09:00"
    close: str = "18:00"
    closed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"open": self.open, "close": self.close, "closed": self.closed}


@dataclass(frozen=True)
class MultipleDatesSettings:
    time_interval: int = 30
    date_range_days: int = 30
    exclude_weekdays: tuple[int, ...] = (0,)
    start_time: str = "09:00"
    end_time: str = "18:00"

    def to_dict(self) -> dict[str, Any]:
        return {
            "time_interval": self.time_interval,
            "date_range_days": self.date_range_days,
            "exclude_weekdays": list(self.exclude_weekdays),
            "start_time": self.start_time,
            "end_time": self.end_time,
        }


@dataclass(frozen=True)
class CalendarSettings:
    business_hours: dict[str, DayHours]  # keyed by WEEKDAY_KEYS, always all seven
    advance_booking_days: int = 30
    booking_mode: str = BOOKING_MODE_CALENDAR
    multiple_dates_settings: MultipleDatesSettings = field(default_factory=MultipleDatesSettings)

    def hours_for_weekday(self, js_weekday: int) -> DayHours:
        """Business hours for a 0=Sunday weekday index."""
        return self.business_hours[WEEKDAY_KEYS[js_weekday % 7]]

    def to_dict(self) -> dict[str, Any]:
        return {
            # Monday-first, matching the admin editor's table order
            "business_hours": {
                key: self.business_hours[key].to_dict() for key in WEEKDAY_KEYS[1:] + WEEKDAY_KEYS[:1]
            },
            "advance_booking_days": self.advance_booking_days,
            "booking_mode": self.booking_mode,
            "multiple_dates_settings": self.multiple_dates_settings.to_dict(),
        }


@dataclass(frozen=True)
class UISettings:
    theme_color: str = "#3B82F6"
    button_style: str = "rounded"
    show_repeat_booking: bool = False
    show_side_nav: bool = True  # editor preview only; carried through, not rendered

    def to_dict(self) -> dict[str, Any]:
        return {
            "theme_color": self.theme_color,
            "button_style": self.button_style,
            "show_repeat_booking": self.show_repeat_booking,
            "show_side_nav": self.show_side_nav,
        }


@dataclass(frozen=True)
class CustomField:
    id: str
    title: str
    type: str  # one of CUSTOM_FIELD_TYPES
    required: bool = False
    placeholder: str = ""
    options: tuple[ChoiceOption, ...] = ()

    def label_for(self, value: str) -> str:
        for opt in self.options:
            if opt.value == value:
                return opt.label
        return value

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "required": self.required,
            "placeholder": self.placeholder,
            "options": [o.to_dict() for o in self.options],
        }


@dataclass(frozen=True)
class FormConfig:
    """Fully populated configuration. Built only by normalizer.normalize_config."""
    basic_info: BasicInfo
    gender_selection: ChoiceSelection
    visit_count_selection: ChoiceSelection
    coupon_selection: ChoiceSelection
    menu_structure: MenuStructure
    calendar_settings: CalendarSettings
    ui_settings: UISettings
    custom_fields: tuple[CustomField, ...] = ()

    @property
    def is_multiple_dates(self) -> bool:
        return self.calendar_settings.booking_mode == BOOKING_MODE_MULTIPLE_DATES

    def to_dict(self) -> dict[str, Any]:
        """JSON-shaped form, embedded verbatim in the generated document."""
        return {
            "basic_info": self.basic_info.to_dict(),
            "gender_selection": self.gender_selection.to_dict(),
            "visit_count_selection": self.visit_count_selection.to_dict(),
            "coupon_selection": self.coupon_selection.to_dict(),
            "menu_structure": self.menu_structure.to_dict(),
            "calendar_settings": self.calendar_settings.to_dict(),
            "ui_settings": self.ui_settings.to_dict(),
            "custom_fields": [f.to_dict() for f in self.custom_fields],
        }
