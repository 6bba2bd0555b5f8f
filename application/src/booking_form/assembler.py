"""Assemble the static booking document from a normalized FormConfig."""

from __future__ import annotations

from typing import Any

from .availability import calendar_time_rows, multiple_dates_time_options
from .client_script import ACTIONS, CLIENT_SCRIPT, LIFF_SDK_URL
from .document import Element, RawText, collect_actions, h, render_document, script_json
from .models import (
    ChoiceSelection,
    CustomField,
    FormConfig,
    LeafMenu,
    MenuItem,
    MenuStructure,
    SubmenuMenu,
)
from .styles import build_css

DEFAULT_STORE_HEADING = "ご予約フォーム"
PICKER_TITLES = {1: "第一希望日時", 2: "第二希望日時", 3: "第三希望日時"}
PICKER_PLACEHOLDER = "⇩タップして日時を入力⇩"


def _required_mark(required: bool = True) -> Element | None:
    return h("span", {"class": "required"}, "*") if required else None


def _label(text: str, required: bool = False, for_id: str | None = None) -> Element:
    children: list[Any] = [text]
    mark = _required_mark(required)
    if mark is not None:
        children.extend([" ", mark])
    return h("label", {"class": "field-label", "for": for_id}, *children)


def _yen(value: int) -> str:
    return f"¥{value:,}"


def _choice_field(field_id: str, label: str, group: str, selection: ChoiceSelection) -> Element:
    buttons = [
        h(
            "button",
            {"type": "button", "class": "choice-button", "data-action": "select-choice",
             "data-group": group, "data-value": opt.value},
            opt.label,
        )
        for opt in selection.options
    ]
    return h(
        "div", {"class": "field", "id": field_id},
        _label(label, selection.required),
        h("div", {"class": "button-group"}, buttons),
    )


def _custom_field(field: CustomField) -> Element:
    dom_id = f"custom-field-{field.id}"
    if field.type in ("text", "textarea"):
        attrs = {
            "id": dom_id,
            "class": "input",
            "data-action": "input-custom-field",
            "data-field-id": field.id,
            "placeholder": field.placeholder or None,
        }
        control = (
            h("input", {"type": "text", **attrs})
            if field.type == "text"
            else h("textarea", {**attrs, "rows": 4})
        )
        return h("div", {"class": "field", "id": f"{dom_id}-block"}, _label(field.title, field.required, dom_id), control)

    if field.type == "radio":
        buttons = [
            h(
                "button",
                {"type": "button", "class": "choice-button", "data-action": "select-custom-radio",
                 "data-field-id": field.id, "data-value": opt.value},
                opt.label,
            )
            for opt in field.options
        ]
        return h("div", {"class": "field", "id": dom_id}, _label(field.title, field.required), h("div", {"class": "button-group"}, buttons))

    boxes = [
        h(
            "label", {"class": "checkbox-label"},
            h("input", {"type": "checkbox", "data-action": "toggle-custom-checkbox",
                        "data-field-id": field.id, "data-value": opt.value}),
            h("span", None, opt.label),
        )
        for opt in field.options
    ]
    return h("div", {"class": "field", "id": dom_id}, _label(field.title, field.required), h("div", {"class": "checkbox-group"}, boxes))


def _menu_button(menu: MenuItem, category_id: str, structure: MenuStructure) -> Element:
    display = structure.display_options
    image = (
        h("div", {"class": "menu-item-image"},
          h("img", {"src": menu.image, "alt": menu.name, "class": "menu-image", "loading": "lazy"}))
        if menu.image else None
    )
    content = h(
        "div", {"class": "menu-item-content"},
        h("div", {"class": "menu-item-name"}, menu.name + (" ▶" if menu.has_submenu else "")),
        h("div", {"class": "menu-item-desc"}, menu.description) if display.show_description and menu.description else None,
    )
    if isinstance(menu, LeafMenu):
        info = h(
            "div", {"class": "menu-item-info"},
            h("div", {"class": "menu-item-price"}, _yen(menu.price)) if display.show_price else None,
            h("div", {"class": "menu-item-duration"}, f"{menu.duration}分") if display.show_duration and menu.duration else None,
        )
    else:
        info = h("div", {"class": "menu-item-info"}, h("div", {"class": "menu-item-desc"}, "サブメニューを選択"))
    return h(
        "button",
        {"type": "button", "class": "menu-item", "data-action": "select-menu",
         "data-menu-id": menu.id, "data-category-id": category_id, "data-kind": menu.kind},
        image, content, info,
    )


def _options_panel(menu: LeafMenu, structure: MenuStructure) -> Element | None:
    if not menu.options:
        return None
    display = structure.display_options
    buttons = []
    for opt in menu.options:
        price = (f"+{_yen(opt.price)}" if opt.price > 0 else "無料") if display.show_price else None
        duration = f"+{opt.duration}分" if display.show_duration and opt.duration > 0 else None
        buttons.append(h(
            "button",
            {"type": "button", "class": "option-item", "data-action": "toggle-option",
             "data-menu-id": menu.id, "data-option-id": opt.id},
            h(
                "div", None,
                h("div", {"class": "option-name"}, opt.name,
                  h("span", {"class": "option-badge"}, "おすすめ") if opt.is_default else None),
                h("div", {"class": "menu-item-desc"}, opt.description) if opt.description else None,
            ),
            h("div", {"class": "option-price"},
              h("div", None, price) if price else None,
              h("div", {"class": "menu-item-duration"}, duration) if duration else None),
        ))
    return h(
        "div", {"class": "options-container", "id": f"options-{menu.id}", "data-options-for": menu.id, "hidden": True},
        h("div", {"class": "options-title"}, "オプション"),
        buttons,
    )


def _submenu_panel(menu: SubmenuMenu, structure: MenuStructure) -> Element:
    display = structure.display_options
    buttons = [
        h(
            "button",
            {"type": "button", "class": "submenu-item", "data-action": "select-submenu",
             "data-menu-id": menu.id, "data-submenu-id": sub.id},
            h(
                "div", {"class": "menu-item-content"},
                h("div", {"class": "menu-item-name"}, sub.name),
                h("div", {"class": "menu-item-desc"}, sub.description) if display.show_description and sub.description else None,
            ),
            h(
                "div", {"class": "menu-item-info"},
                h("div", {"class": "menu-item-price"}, _yen(sub.price)) if display.show_price else None,
                h("div", {"class": "menu-item-duration"}, f"{sub.duration}分") if display.show_duration else None,
            ),
        )
        for sub in menu.sub_menu_items
    ]
    return h(
        "div", {"class": "submenu-container", "id": f"submenu-{menu.id}", "data-submenus-for": menu.id, "hidden": True},
        h("div", {"class": "submenu-title"}, "サブメニューを選択してください"),
        buttons,
    )


def _menu_field(config: FormConfig) -> Element | None:
    structure = config.menu_structure
    if not structure.categories:
        return None
    categories = []
    for category in structure.categories:
        entries = []
        for menu in category.menus:
            panel = _submenu_panel(menu, structure) if isinstance(menu, SubmenuMenu) else _options_panel(menu, structure)
            entries.append(h("div", None, _menu_button(menu, category.id, structure), panel))
        categories.append(h(
            "div", {"class": "category", "data-category-id": category.id},
            h("div", {"class": "category-name"}, category.name) if category.name else None,
            h("div", {"class": "menu-list"}, entries),
        ))
    return h("div", {"class": "field", "id": "menu-field"}, _label("メニューをお選びください", True), categories)


def _nav_row(action: str, prev_label: str, next_label: str) -> Element:
    return h(
        "div", {"class": "nav-row"},
        h("button", {"type": "button", "class": "nav-button", "data-action": action, "data-direction": "prev"}, prev_label),
        h("button", {"type": "button", "class": "nav-button", "data-action": action, "data-direction": "next"}, next_label),
    )


def _calendar_field() -> Element:
    return h(
        "div", {"class": "field", "id": "datetime-field", "data-block": "datetime", "hidden": True},
        _label("希望日時", True),
        h("div", {"class": "field-hint"}, "※メニューを選択すると空き状況のカレンダーが表示されます"),
        h(
            "div", {"class": "calendar-container"},
            h("span", {"id": "current-month", "class": "current-month"}),
            _nav_row("navigate-month", "前月", "翌月"),
            _nav_row("navigate-week", "前週", "翌週"),
            h("div", {"class": "calendar-table-wrapper"},
              h("table", {"id": "calendar-table", "data-action": "select-slot"})),
        ),
    )


def _multiple_dates_fields(time_options: list[str]) -> list[Element]:
    fields = []
    for i, title in PICKER_TITLES.items():
        times = [h("option", {"value": ""}, "時間を選択")] + [h("option", {"value": t}, t) for t in time_options]
        fields.append(h(
            "div", {"class": "field", "id": f"datetime-field-{i}", "data-block": "datetime", "hidden": True},
            _label(title, i == 1),
            h(
                "div", {"class": "datetime-wrapper"},
                h("span", {"class": "datetime-placeholder", "id": f"placeholder{i}"}, PICKER_PLACEHOLDER),
                h(
                    "div", {"class": "dt-grid"},
                    h("select", {"id": f"date{i}_day", "class": "datetime-input", "aria-label": "日付を選択",
                                 "data-action": "pick-datetime", "data-picker": i},
                      h("option", {"value": ""}, "日付を選択")),
                    h("select", {"id": f"date{i}_time", "class": "datetime-input", "aria-label": "時間を選択",
                                 "data-action": "pick-datetime", "data-picker": i},
                      times),
                ),
            ),
        ))
    return fields


def _repeat_booking_field() -> Element:
    return h(
        "div", {"class": "field"},
        h("button", {"type": "button", "id": "repeat-booking-button", "class": "repeat-booking-button",
                     "data-action": "repeat-booking"},
          "前回と同じメニューで予約する"),
    )


def _text_field(field_id: str, label: str, required: bool, control: Element) -> Element:
    return h("div", {"class": "field", "id": field_id}, _label(label, required, str(control.attrs.get("id"))), control)


def build_tree(config: FormConfig, slot_tables: dict[str, list[str]]) -> tuple[Element, Element]:
    """(html, body) of the document, without the trailing controller script."""
    info = config.basic_info
    fields: list[Any] = []
    if config.ui_settings.show_repeat_booking:
        fields.append(_repeat_booking_field())
    fields.append(_text_field("name-field", "お名前", True, h(
        "input", {"type": "text", "id": "customer-name", "class": "input", "placeholder": "山田太郎",
                  "data-action": "input-text", "data-field": "name"})))
    fields.append(_text_field("phone-field", "電話番号", True, h(
        "input", {"type": "tel", "id": "customer-phone", "class": "input", "placeholder": "090-1234-5678",
                  "data-action": "input-text", "data-field": "phone"})))
    if config.gender_selection.enabled:
        fields.append(_choice_field("gender-field", "性別", "gender", config.gender_selection))
    if config.visit_count_selection.enabled:
        fields.append(_choice_field("visit-count-field", "ご来店回数", "visitCount", config.visit_count_selection))
    if config.coupon_selection.enabled:
        coupon_name = config.coupon_selection.coupon_name
        label = f"{coupon_name}クーポン利用有無" if coupon_name else "クーポン利用有無"
        fields.append(_choice_field("coupon-field", label, "coupon", config.coupon_selection))
    fields.extend(_custom_field(f) for f in config.custom_fields)
    fields.append(_menu_field(config))
    if config.is_multiple_dates:
        fields.extend(_multiple_dates_fields(slot_tables["multiple_dates_times"]))
    else:
        fields.append(_calendar_field())
    fields.append(_text_field("message-field", "メッセージ（任意）", False, h(
        "textarea", {"id": "customer-message", "class": "input", "rows": 3,
                     "placeholder": "ご質問やご要望がございましたらこちらにご記入ください",
                     "data-action": "input-text", "data-field": "message"})))
    fields.append(h(
        "div", {"class": "summary-box"},
        h("h3", {"class": "summary-title"}, "ご予約内容"),
        h("div", {"id": "summary-content", "data-action": "edit-field"},
          h("div", {"class": "summary-empty"}, "入力内容がここに表示されます")),
    ))
    fields.append(h("div", {"id": "form-error", "class": "form-error", "role": "alert", "hidden": True}))
    fields.append(h("button", {"type": "button", "id": "submit-button", "class": "submit-button", "data-action": "submit"}, "予約する"))

    header = h(
        "div", {"class": "form-header"},
        h("img", {"src": info.logo_url, "alt": info.store_name or info.form_name, "class": "form-logo"}) if info.logo_url else None,
        h("h1", None, info.form_name),
        h("p", None, info.store_name or DEFAULT_STORE_HEADING),
    )
    body = h(
        "body", None,
        h(
            "div", {"class": "form-container"},
            header,
            h("div", {"class": "form-content"}, h("h2", {"class": "section-title"}, "ご予約内容"), fields),
        ),
    )
    head = h(
        "head", None,
        h("meta", {"charset": "UTF-8"}),
        h("meta", {"name": "viewport", "content": "width=device-width, initial-scale=1.0"}),
        h("title", None, info.form_name),
        h("script", {"src": LIFF_SDK_URL}),
        h("style", None, RawText(build_css(config))),
    )
    return h("html", {"lang": "ja"}, head, body), body


def action_index(root: Element) -> list[dict[str, str]]:
    """Ordered {action, event} bindings for every data-action in the tree."""
    index = []
    for action in collect_actions(root):
        if action not in ACTIONS:
            raise ValueError(f"no client handler for data-action {action!r}")
        index.append({"action": action, "event": ACTIONS[action]})
    return index


def controller_script(config: FormConfig, form_id: str, store_id: str,
                      actions: list[dict[str, str]], slot_tables: dict[str, list[str]]) -> str:
    return (
        "\n(function () {\n'use strict';\n"
        f"const FORM_CONFIG = {script_json(config.to_dict())};\n"
        f"const FORM_ID = {script_json(form_id)};\n"
        f"const STORE_ID = {script_json(store_id)};\n"
        f"const ACTION_INDEX = {script_json(actions)};\n"
        f"const SLOT_TABLES = {script_json(slot_tables)};\n"
        f"{CLIENT_SCRIPT}"
        "})();\n"
    )


def assemble_document(config: FormConfig, form_id: str = "", store_id: str = "") -> str:
    """Render the full HTML artifact. Same config and ids always give the same bytes."""
    slot_tables = {
        "calendar_rows": calendar_time_rows(config.calendar_settings),
        "multiple_dates_times": multiple_dates_time_options(config.calendar_settings),
    }
    root, body = build_tree(config, slot_tables)
    actions = action_index(root)
    body.children.append(h("script", None, RawText(controller_script(config, form_id, store_id, actions, slot_tables))))
    return render_document(root)
