"""Selection state machine and price/duration aggregation, mirroring the in-page controller."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .models import (
    Category,
    ChoiceSelection,
    CustomField,
    FormConfig,
    LeafMenu,
    MenuItem,
    MenuOption,
    SubMenuItem,
    SubmenuMenu,
)

PHASE_NONE = "none"
PHASE_LEAF = "leaf"
PHASE_AWAITING_SUBMENU = "awaiting-submenu"
PHASE_SUBMENU = "submenu"
TERMINAL_PHASES = (PHASE_LEAF, PHASE_SUBMENU)

MSG_NAME_PHONE = "お名前と電話番号を入力してください"
MSG_GENDER = "性別を選択してください"
MSG_VISIT_COUNT = "ご来店回数を選択してください"
MSG_MENU = "メニューを選択してください"
MSG_DATETIME = "予約日時を選択してください"


def _str_list(value: Any) -> list[str]:
    return [v for v in value if isinstance(v, str)] if isinstance(value, (list, tuple)) else []


@dataclass
class DesiredDateTime:
    date_str: str = ""  # YYYY-MM-DD
    time: str = ""  # HH:MM

    @property
    def complete(self) -> bool:
        return bool(self.date_str and self.time)

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date_str, "time": self.time}


@dataclass
class BookingSelection:
    """What the customer has entered so far."""
    name: str = ""
    phone: str = ""
    gender: str = ""
    visit_count: str = ""
    coupon: str = ""
    custom_fields: dict[str, Any] = field(default_factory=dict)
    menu_ids: list[str] = field(default_factory=list)  # selection order; at most one unless the category is additive
    submenu_ids: dict[str, str] = field(default_factory=dict)  # menu id -> chosen submenu item id
    selected_options: dict[str, list[str]] = field(default_factory=dict)  # menu id -> option ids, click order
    desired: DesiredDateTime = field(default_factory=DesiredDateTime)
    alternates: list[DesiredDateTime] = field(default_factory=list)  # second and third choice
    message: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BookingSelection":
        """
        Accepts either a single menu (menu_id, submenu_id, option_ids) or a `menus` list of
        such objects for additive categories.
        """
        def s(key: str) -> str:
            value = data.get(key)
            return value if isinstance(value, str) else ""

        menus = data.get("menus")
        if isinstance(menus, list):
            entries = [m for m in menus if isinstance(m, dict)]
        else:
            entries = [{"menu_id": data.get("menu_id"), "submenu_id": data.get("submenu_id"), "option_ids": data.get("option_ids")}]

        menu_ids: list[str] = []
        submenu_ids: dict[str, str] = {}
        options: dict[str, list[str]] = {}
        for entry in entries:
            menu_id = entry.get("menu_id")
            if not isinstance(menu_id, str) or not menu_id or menu_id in menu_ids:
                continue
            menu_ids.append(menu_id)
            submenu_id = entry.get("submenu_id")
            if isinstance(submenu_id, str) and submenu_id:
                submenu_ids[menu_id] = submenu_id
            option_ids = _str_list(entry.get("option_ids"))
            if option_ids:
                options[menu_id] = option_ids

        alternates = [
            DesiredDateTime(str(a.get("date") or ""), str(a.get("time") or ""))
            for a in (data.get("alternates") or [])[:2]
            if isinstance(a, dict)
        ]
        custom = data.get("custom_fields")
        return cls(
            name=s("name"),
            phone=s("phone"),
            gender=s("gender"),
            visit_count=s("visit_count"),
            coupon=s("coupon"),
            custom_fields=dict(custom) if isinstance(custom, dict) else {},
            menu_ids=menu_ids,
            submenu_ids=submenu_ids,
            selected_options=options,
            desired=DesiredDateTime(s("date"), s("time")),
            alternates=alternates,
            message=s("message"),
        )


@dataclass
class Totals:
    price: int = 0
    duration: int = 0  # minutes

    def to_dict(self) -> dict[str, Any]:
        return {"total_price": self.price, "total_duration": self.duration}


@dataclass
class MenuPick:
    """One selected menu with whatever has been chosen under it."""
    category: Category
    menu: MenuItem
    submenu: SubMenuItem | None = None
    options: list[MenuOption] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return isinstance(self.menu, LeafMenu) or self.submenu is not None

    def totals(self) -> Totals:
        """Leaf: menu plus options. Submenu: the chosen item only; the parent has no price."""
        if isinstance(self.menu, LeafMenu):
            return Totals(
                price=self.menu.price + sum(o.price for o in self.options),
                duration=self.menu.duration + sum(o.duration for o in self.options),
            )
        if self.submenu is None:
            return Totals()
        return Totals(price=self.submenu.price, duration=self.submenu.duration)


def selected_menus(config: FormConfig, selection: BookingSelection) -> list[MenuPick]:
    """Selected menus in selection order. Unknown ids are ignored."""
    picks = []
    for menu_id in selection.menu_ids:
        found = config.menu_structure.find_menu(menu_id)
        if found is None:
            continue
        category, menu = found
        if isinstance(menu, SubmenuMenu):
            sub_id = selection.submenu_ids.get(menu.id)
            picks.append(MenuPick(category, menu, submenu=menu.find_submenu(sub_id) if sub_id else None))
            continue
        options = [menu.find_option(o) for o in selection.selected_options.get(menu.id, [])]
        picks.append(MenuPick(category, menu, options=[o for o in options if o is not None]))
    return picks


def phase_of(config: FormConfig, selection: BookingSelection) -> str:
    picks = selected_menus(config, selection)
    if not picks:
        return PHASE_NONE
    if not all(p.resolved for p in picks):
        return PHASE_AWAITING_SUBMENU
    if any(p.submenu is not None for p in picks):
        return PHASE_SUBMENU
    return PHASE_LEAF


def compute_totals(config: FormConfig, selection: BookingSelection) -> Totals:
    """Sum over every selected menu; a submenu-bearing menu without a chosen item adds nothing."""
    totals = Totals()
    for pick in selected_menus(config, selection):
        t = pick.totals()
        totals.price += t.price
        totals.duration += t.duration
    return totals


def choice_label(selection_cfg: ChoiceSelection, value: str) -> str:
    if not selection_cfg.enabled or not value:
        return ""
    return selection_cfg.label_for(value) or ""


def custom_field_text(custom: CustomField, value: Any) -> str:
    """Display text for a custom field answer; lists are joined with ', '."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(label for label in (custom.label_for(str(v)) for v in value) if label)
    if custom.type == "radio":
        return custom.label_for(str(value))
    return str(value)


def validate_selection(config: FormConfig, selection: BookingSelection) -> list[str]:
    """Blocking validation messages, in the order the page reports them (first one is shown)."""
    errors: list[str] = []
    if not selection.name.strip() or not selection.phone.strip():
        errors.append(MSG_NAME_PHONE)
    gender = config.gender_selection
    if gender.enabled and gender.required and not selection.gender:
        errors.append(MSG_GENDER)
    visit = config.visit_count_selection
    if visit.enabled and visit.required and not selection.visit_count:
        errors.append(MSG_VISIT_COUNT)
    if phase_of(config, selection) not in TERMINAL_PHASES:
        errors.append(MSG_MENU)
    if not selection.desired.complete:
        errors.append(MSG_DATETIME)
    for custom in config.custom_fields:
        if custom.required and not custom_field_text(custom, selection.custom_fields.get(custom.id)).strip():
            errors.append(f"{custom.title}を入力してください")
    return errors


class BookingState:
    """
    Menu/submenu/option transitions as driven by clicks.

    In a single-select category, picking a menu replaces the whole selection and clicking
    the selected menu again deselects it. In an additive category (selection_mode
    "multiple", or allow_cross_category_selection on the structure) clicks add or remove
    one menu; without cross-category selection, menus of other categories are dropped.
    Any menu change clears the chosen date/time. Date/time can only be set in a terminal phase.
    """

    def __init__(self, config: FormConfig, selection: BookingSelection | None = None):
        self.config = config
        self.selection = selection or BookingSelection()

    @property
    def phase(self) -> str:
        return phase_of(self.config, self.selection)

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    def _clear_datetime(self) -> None:
        self.selection.desired = DesiredDateTime()
        self.selection.alternates = []

    def _drop_menu(self, menu_id: str) -> None:
        self.selection.menu_ids = [m for m in self.selection.menu_ids if m != menu_id]
        self.selection.submenu_ids.pop(menu_id, None)
        self.selection.selected_options.pop(menu_id, None)

    def select_menu(self, menu_id: str) -> str:
        structure = self.config.menu_structure
        found = structure.find_menu(menu_id)
        if found is None:
            return self.phase
        category = found[0]
        sel = self.selection
        self._clear_datetime()

        if not structure.is_additive(category):
            was_selected = sel.menu_ids == [menu_id]
            sel.menu_ids, sel.submenu_ids, sel.selected_options = [], {}, {}
            if not was_selected:
                sel.menu_ids = [menu_id]
            return self.phase

        if menu_id in sel.menu_ids:
            self._drop_menu(menu_id)
            return self.phase
        if not structure.allow_cross_category_selection:
            for other in list(sel.menu_ids):
                other_found = structure.find_menu(other)
                if other_found is None or other_found[0].id != category.id:
                    self._drop_menu(other)
        sel.menu_ids.append(menu_id)
        return self.phase

    def _candidates(self, menu_id: str | None) -> list[str]:
        if menu_id is not None:
            return [menu_id] if menu_id in self.selection.menu_ids else []
        return list(reversed(self.selection.menu_ids))

    def select_submenu(self, submenu_id: str, menu_id: str | None = None) -> str:
        """Choose a submenu item under menu_id, or under the latest selected menu that has it."""
        for candidate in self._candidates(menu_id):
            found = self.config.menu_structure.find_menu(candidate)
            if found is not None and isinstance(found[1], SubmenuMenu) and found[1].find_submenu(submenu_id):
                self.selection.submenu_ids[candidate] = submenu_id
                break
        return self.phase

    def toggle_option(self, option_id: str, menu_id: str | None = None) -> bool:
        """Flip an option of a selected leaf menu. Returns whether it is now selected."""
        for candidate in self._candidates(menu_id):
            found = self.config.menu_structure.find_menu(candidate)
            if found is None or not isinstance(found[1], LeafMenu) or found[1].find_option(option_id) is None:
                continue
            current = self.selection.selected_options.get(candidate, [])
            if option_id in current:
                self.selection.selected_options[candidate] = [o for o in current if o != option_id]
                return False
            self.selection.selected_options[candidate] = current + [option_id]
            return True
        return False

    def is_option_selected(self, option_id: str, menu_id: str | None = None) -> bool:
        return any(option_id in self.selection.selected_options.get(m, []) for m in self._candidates(menu_id))

    def select_datetime(self, date_str: str, time: str) -> bool:
        if not self.is_terminal:
            return False
        self.selection.desired = DesiredDateTime(date_str, time)
        return True

    def totals(self) -> Totals:
        return compute_totals(self.config, self.selection)

    def validate(self) -> list[str]:
        return validate_selection(self.config, self.selection)
