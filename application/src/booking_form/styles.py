"""Inline stylesheet for the generated form. One accent color; everything else fixed."""

from __future__ import annotations

from .models import FormConfig

BASE_CSS = """
* { margin: 0; padding: 0; box-sizing: border-box; }
body {
    font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, "Hiragino Sans", "Noto Sans JP", sans-serif;
    background-color: #f9fafb;
    color: #111827;
    line-height: 1.5;
    min-height: 100vh;
}
.form-container { max-width: 42rem; margin: 0 auto; padding: 2rem 1rem; }
.form-header {
    background-color: var(--theme-color);
    color: #fff;
    padding: 1.5rem;
    border-radius: 0.5rem;
    box-shadow: 0 1px 3px 0 rgba(0, 0, 0, 0.1);
    margin-bottom: 1.5rem;
}
.form-header h1 { font-size: 1.5rem; font-weight: bold; margin-bottom: 0.5rem; }
.form-header p { opacity: 0.9; }
.form-logo { max-height: 3rem; margin-bottom: 0.75rem; }
.form-content {
    background: #fff;
    border-radius: 0.5rem;
    box-shadow: 0 1px 3px 0 rgba(0, 0, 0, 0.1);
    padding: 1.5rem;
}
.section-title { font-size: 1.125rem; font-weight: 600; margin-bottom: 1.5rem; }
.field { margin-bottom: 1.5rem; }
.field[hidden] { display: none; }
.field-label { display: block; font-size: 0.875rem; font-weight: 500; color: #374151; margin-bottom: 0.5rem; }
.field-hint { font-size: 0.875rem; color: #6b7280; margin-bottom: 1rem; }
.required { color: #ef4444; }
.input {
    width: 100%;
    padding: 0.75rem;
    border: 1px solid #d1d5db;
    border-radius: var(--radius);
    font-size: 1rem;
}
.input:focus { outline: none; border-color: var(--theme-color); }
textarea.input { resize: vertical; }
.button-group { display: flex; gap: 1rem; flex-wrap: wrap; }
.checkbox-group > * + * { margin-top: 0.5rem; }
.checkbox-label {
    display: flex;
    align-items: center;
    gap: 0.5rem;
    padding: 0.5rem;
    border: 1px solid #d1d5db;
    border-radius: var(--radius);
    cursor: pointer;
    font-size: 0.875rem;
}
.choice-button, .menu-item, .submenu-item, .option-item {
    border: 2px solid #d1d5db;
    border-radius: var(--radius);
    background: #fff;
    color: #374151;
    cursor: pointer;
    text-align: left;
    font: inherit;
}
.choice-button { flex: 1; padding: 0.75rem 1rem; font-weight: 500; text-align: center; }
.choice-button:hover, .menu-item:hover, .submenu-item:hover, .option-item:hover { border-color: #9ca3af; }
.choice-button.selected, .option-item.selected { border-color: var(--theme-color); background-color: #eff6ff; color: #1e40af; }
.category { margin-bottom: 1rem; }
.category-name { font-size: 0.95rem; font-weight: 600; margin-bottom: 0.5rem; }
.menu-list { border: 1px solid #e5e7eb; border-radius: 0.5rem; padding: 1rem; }
.menu-item { width: 100%; display: flex; flex-direction: column; overflow: hidden; margin-bottom: 0.5rem; padding: 0; }
.menu-item.selected, .submenu-item.selected { border-color: #10b981; background-color: #f0fdf4; }
.menu-item-image { width: 100%; aspect-ratio: 16 / 9; overflow: hidden; }
.menu-image { width: 100%; height: 100%; object-fit: cover; }
.menu-item-content { padding: 0.75rem 0.75rem 0 0.75rem; }
.menu-item-name { font-weight: 600; color: #111827; font-size: 0.95rem; }
.menu-item-desc { font-size: 0.8rem; opacity: 0.7; margin-top: 0.25rem; }
.menu-item-info { display: flex; justify-content: flex-end; gap: 1rem; padding: 0 0.75rem 0.75rem 0; }
.menu-item-price { font-weight: 700; font-size: 0.95rem; color: #111827; }
.menu-item-duration { font-size: 0.8rem; opacity: 0.7; }
.submenu-container, .options-container {
    margin: 0.75rem 0 0.75rem 1.5rem;
    padding-left: 1rem;
    border-left: 2px solid #bfdbfe;
}
.submenu-container[hidden], .options-container[hidden] { display: none; }
.submenu-title, .options-title { font-size: 0.875rem; font-weight: 500; color: #374151; margin-bottom: 0.75rem; }
.submenu-item, .option-item {
    width: 100%;
    display: flex;
    justify-content: space-between;
    align-items: center;
    padding: 0.75rem;
    margin-bottom: 0.5rem;
}
.option-name { font-size: 0.875rem; font-weight: 500; }
.option-badge { margin-left: 0.5rem; padding: 0.125rem 0.5rem; font-size: 0.75rem; background: #fed7aa; color: #9a3412; border-radius: 0.25rem; }
.option-price { font-weight: 500; font-size: 0.875rem; text-align: right; margin-left: 0.5rem; }
.calendar-container { width: 100%; margin-bottom: 1.5rem; }
.current-month { display: block; text-align: center; font-size: 1.125rem; font-weight: bold; color: #374151; margin-bottom: 1rem; }
.nav-row { display: flex; justify-content: space-between; gap: 0.5rem; margin-bottom: 0.75rem; }
.nav-button {
    flex: 1;
    padding: 0.5rem 1.25rem;
    background: #374151;
    color: #fff;
    border: none;
    border-radius: 0.25rem;
    cursor: pointer;
    font-weight: 500;
}
.nav-button:hover { background-color: #1f2937; }
.calendar-table-wrapper { overflow-x: auto; background: #fff; border: 1px solid #d1d5db; border-radius: 0.25rem; }
#calendar-table { table-layout: fixed; width: 100%; border-collapse: collapse; }
#calendar-table th, #calendar-table td {
    font-size: 0.75rem;
    text-align: center;
    padding: 0.25rem;
    border: 1px solid #9ca3af;
    word-break: keep-all;
}
#calendar-table th { background: #f3f4f6; font-weight: 500; padding: 0.5rem 0.3rem; }
#calendar-table th:first-child, #calendar-table td:first-child { width: 17%; min-width: 60px; background: #f9fafb; }
#calendar-table td.calendar-cell { background: #f3f4f6; color: #9ca3af; cursor: not-allowed; }
#calendar-table td.calendar-cell.offered { background: #fff; color: #111827; cursor: pointer; }
#calendar-table td.calendar-cell.offered:hover { background: #e5e7eb; }
#calendar-table td.calendar-cell.selected { background-color: #10b981; color: #fff; }
.datetime-wrapper { text-align: center; }
.datetime-placeholder { display: block; color: #6b7280; font-size: 0.875rem; margin-bottom: 0.5rem; }
.datetime-placeholder.filled { color: #374151; font-weight: bold; }
.dt-grid { display: grid; grid-template-columns: 1fr 1fr; gap: 0.5rem; }
.datetime-input { padding: 0.75rem; border: 1px solid #d1d5db; border-radius: var(--radius); font-size: 1rem; }
.repeat-booking-button {
    width: 100%;
    padding: 0.75rem 1.25rem;
    border: 2px dashed var(--theme-color);
    border-radius: 0.5rem;
    background-color: transparent;
    color: var(--theme-color);
    font-size: 0.875rem;
    font-weight: 500;
    cursor: pointer;
}
.summary-box { margin-bottom: 1.5rem; padding: 1rem; border: 2px solid #e5e7eb; border-radius: 0.5rem; background-color: #f9fafb; }
.summary-title { font-size: 1.125rem; font-weight: 600; margin-bottom: 1rem; }
.summary-empty { color: #6b7280; font-size: 0.875rem; }
.summary-item { display: flex; justify-content: space-between; align-items: flex-start; padding: 0.5rem 0; }
.summary-sub { font-size: 0.875rem; color: #6b7280; }
.summary-total { margin-top: 0.5rem; padding-top: 0.5rem; border-top: 1px solid #e5e7eb; font-weight: bold; }
.form-error {
    margin-bottom: 1rem;
    padding: 0.75rem 1rem;
    border: 1px solid #fecaca;
    background: #fef2f2;
    color: #b91c1c;
    border-radius: var(--radius);
    font-size: 0.875rem;
}
.form-error[hidden] { display: none; }
.submit-button {
    width: 100%;
    padding: 0.75rem;
    background-color: var(--theme-color);
    color: #fff;
    border: none;
    border-radius: var(--radius);
    font-size: 1rem;
    font-weight: 500;
    cursor: pointer;
    margin-top: 1.5rem;
}
.submit-button:hover { opacity: 0.9; }
.success {
    background-color: #f0fdf4;
    border: 1px solid #bbf7d0;
    color: #166534;
    padding: 2rem;
    border-radius: 0.5rem;
    text-align: center;
}
.success h3 { font-size: 1.25rem; font-weight: bold; margin-bottom: 0.5rem; }
@media (max-width: 375px) {
    #calendar-table th, #calendar-table td { font-size: 0.5rem; padding: 0.2rem 0.1rem; }
    .nav-button { padding: 0.3rem 0.75rem; font-size: 0.75rem; }
}
"""


def build_css(config: FormConfig) -> str:
    """Stylesheet with the form's accent color and button corner style applied."""
    radius = "0" if config.ui_settings.button_style == "square" else "0.375rem"
    root = f":root {{ --theme-color: {config.basic_info.theme_color}; --radius: {radius}; }}"
    return root + BASE_CSS
