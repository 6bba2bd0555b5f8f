"""
Browser-side booking controller embedded into every generated form.

The script body expects FORM_CONFIG, FORM_ID, STORE_ID, ACTION_INDEX and SLOT_TABLES to be
defined by the assembler in the same closure. Elements opt into behavior through
`data-action`; ACTIONS lists every action the controller handles and the DOM event that
triggers it.
"""

from __future__ import annotations

# action name -> DOM event type the delegated dispatcher listens for
ACTIONS: dict[str, str] = {
    "input-text": "input",
    "select-choice": "click",
    "input-custom-field": "input",
    "select-custom-radio": "click",
    "toggle-custom-checkbox": "change",
    "select-menu": "click",
    "toggle-option": "click",
    "select-submenu": "click",
    "navigate-month": "click",
    "navigate-week": "click",
    "select-slot": "click",
    "pick-datetime": "change",
    "edit-field": "click",
    "repeat-booking": "click",
    "submit": "click",
}

LIFF_SDK_URL = "https://static.line-scdn.net/liff/edge/2.1/sdk.js"

CLIENT_SCRIPT = r"""
const DAY_NAMES = ['日', '月', '火', '水', '木', '金', '土'];
const WEEKDAY_KEYS = ['sunday', 'monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday'];
const REPEAT_BOOKING_TTL_MS = 7 * 24 * 60 * 60 * 1000;
const PICKER_PLACEHOLDER = '⇩タップして日時を入力⇩';
const PICKER_LABELS = { 2: '第二希望日時', 3: '第三希望日時' };
const MIN_LIFF_ID_LENGTH = 10;
const TRANSPORT_UNAVAILABLE_MESSAGE = 'LINEにログインしてください。';

function log(...args) { console.log('[BookingForm]', ...args); }
function warn(...args) { console.warn('[BookingForm]', ...args); }

function pad2(n) { return String(n).padStart(2, '0'); }

function parseHHMM(value) {
    if (typeof value !== 'string') return null;
    const m = /^(\d{1,2}):(\d{2})$/.exec(value.trim());
    if (!m) return null;
    const hours = Number(m[1]);
    const minutes = Number(m[2]);
    if (hours > 23 || minutes > 59) return null;
    return hours * 60 + minutes;
}

function startOfDay(d) { return new Date(d.getFullYear(), d.getMonth(), d.getDate()); }

function addDays(d, n) { return new Date(d.getFullYear(), d.getMonth(), d.getDate() + n); }

function toISODate(d) { return d.getFullYear() + '-' + pad2(d.getMonth() + 1) + '-' + pad2(d.getDate()); }

function parseISODate(value) {
    const m = /^(\d{4})-(\d{2})-(\d{2})$/.exec(value || '');
    return m ? new Date(Number(m[1]), Number(m[2]) - 1, Number(m[3])) : null;
}

function weekStart(d) {
    const day = d.getDay();
    return addDays(startOfDay(d), day === 0 ? -6 : 1 - day);
}

function formatDesiredDateTime(dateStr, time) {
    const d = parseISODate(dateStr);
    if (!d) return (dateStr + ' ' + time).trim();
    return d.getFullYear() + '年' + pad2(d.getMonth() + 1) + '月' + pad2(d.getDate()) + '日 ' + time;
}

function formatYen(value) { return '¥' + Number(value || 0).toLocaleString('ja-JP'); }

function el(tag, className, text) {
    const node = document.createElement(tag);
    if (className) node.className = className;
    if (text !== undefined && text !== null) node.textContent = text;
    return node;
}

class BookingController {
    constructor(config, meta) {
        this.config = config;
        this.formId = meta.formId;
        this.storeId = meta.storeId;
        this.actions = meta.actions;
        this.slots = meta.slots;
        this.state = {
            name: '',
            phone: '',
            gender: '',
            visitCount: '',
            coupon: '',
            customFields: {},
            selectedMenuIds: [],
            selectedSubmenus: {},
            selectedOptions: {},
            selectedDate: '',
            selectedTime: '',
            alternates: { 2: { date: '', time: '' }, 3: { date: '', time: '' } },
            message: ''
        };
        this.viewWeekStart = weekStart(new Date());
        this.menuIndex = {};
        (config.menu_structure.categories || []).forEach(category => {
            (category.menus || []).forEach(menu => {
                this.menuIndex[menu.id] = { category, menu };
            });
        });
        this.handlers = {
            'input-text': this.onTextInput,
            'select-choice': this.onSelectChoice,
            'input-custom-field': this.onCustomFieldInput,
            'select-custom-radio': this.onCustomRadio,
            'toggle-custom-checkbox': this.onCustomCheckbox,
            'select-menu': this.onSelectMenu,
            'toggle-option': this.onToggleOption,
            'select-submenu': this.onSelectSubmenu,
            'navigate-month': this.onNavigateMonth,
            'navigate-week': this.onNavigateWeek,
            'select-slot': this.onSelectSlot,
            'pick-datetime': this.onPickDateTime,
            'edit-field': this.onEditField,
            'repeat-booking': this.onRepeatBooking,
            'submit': this.onSubmit
        };
        this.bindActions();
        if (this.isMultipleDates()) this.populateDatePickers();
        this.updateSummary();
        // Transport init may still be pending while the customer fills in the form; submit waits for it.
        this.submitting = false;
        this.transportInit = this.initTransport();
    }

    // ---------------------------
    // Event wiring
    // ---------------------------
    bindActions() {
        const byEvent = {};
        this.actions.forEach(entry => {
            if (!byEvent[entry.event]) byEvent[entry.event] = {};
            byEvent[entry.event][entry.action] = true;
        });
        Object.keys(byEvent).forEach(eventType => {
            document.addEventListener(eventType, event => {
                const target = event.target && event.target.closest ? event.target.closest('[data-action]') : null;
                if (!target) return;
                const action = target.dataset.action;
                if (!byEvent[eventType][action]) return;
                const handler = this.handlers[action];
                if (!handler) {
                    warn('no handler for action', action);
                    return;
                }
                try {
                    handler.call(this, target, event);
                } catch (err) {
                    console.error('[BookingForm] action failed:', action, err);
                }
            });
        });
    }

    initTransport() {
        const liffId = (this.config.basic_info && this.config.basic_info.liff_id) || '';
        if (!liffId || liffId.length < MIN_LIFF_ID_LENGTH) return Promise.resolve(false);
        if (typeof window.liff === 'undefined') {
            warn('messaging SDK is not loaded');
            return Promise.resolve(false);
        }
        return window.liff.init({ liffId }).then(() => {
            if (!window.liff.isLoggedIn()) return true;
            return window.liff.getProfile().then(profile => {
                const input = document.getElementById('customer-name');
                if (!this.state.name && profile && profile.displayName) {
                    this.state.name = profile.displayName;
                    if (input) input.value = profile.displayName;
                    this.updateSummary();
                }
                return true;
            }).catch(err => {
                warn('could not read profile:', err);
                return true;
            });
        }).catch(err => {
            warn('messaging SDK init failed:', err);
            return false;
        });
    }

    // ---------------------------
    // Customer fields
    // ---------------------------
    onTextInput(target) {
        const field = target.dataset.field;
        if (field === 'name' || field === 'phone' || field === 'message') {
            this.state[field] = target.value;
            this.updateSummary();
        }
    }

    onSelectChoice(target) {
        const group = target.dataset.group;
        if (group !== 'gender' && group !== 'visitCount' && group !== 'coupon') return;
        this.state[group] = target.dataset.value || '';
        this.renderChoiceGroup(group);
        this.updateSummary();
    }

    renderChoiceGroup(group) {
        document.querySelectorAll('[data-action="select-choice"][data-group="' + group + '"]').forEach(btn => {
            btn.classList.toggle('selected', btn.dataset.value === this.state[group]);
        });
    }

    onCustomFieldInput(target) {
        this.state.customFields[target.dataset.fieldId] = target.value;
        this.updateSummary();
    }

    onCustomRadio(target) {
        const fieldId = target.dataset.fieldId;
        this.state.customFields[fieldId] = target.dataset.value || '';
        document.querySelectorAll('[data-action="select-custom-radio"]').forEach(btn => {
            if (btn.dataset.fieldId === fieldId) {
                btn.classList.toggle('selected', btn.dataset.value === this.state.customFields[fieldId]);
            }
        });
        this.updateSummary();
    }

    onCustomCheckbox(target) {
        const fieldId = target.dataset.fieldId;
        const value = target.dataset.value;
        const current = Array.isArray(this.state.customFields[fieldId]) ? this.state.customFields[fieldId] : [];
        const next = current.filter(v => v !== value);
        if (target.checked) next.push(value);
        this.state.customFields[fieldId] = next;
        this.updateSummary();
    }

    // ---------------------------
    // Menu / submenu / options
    // ---------------------------
    selectedEntries() {
        return this.state.selectedMenuIds.map(id => this.menuIndex[id]).filter(Boolean);
    }

    isAdditive(category) {
        const structure = this.config.menu_structure;
        return Boolean(structure.allow_cross_category_selection) || category.selection_mode === 'multiple';
    }

    isResolved(entry) {
        return entry.menu.kind !== 'submenu' || Boolean(this.selectedSubmenu(entry.menu.id));
    }

    phase() {
        const entries = this.selectedEntries();
        if (entries.length === 0) return 'none';
        if (!entries.every(entry => this.isResolved(entry))) return 'awaiting-submenu';
        if (entries.some(entry => entry.menu.kind === 'submenu')) return 'submenu';
        return 'leaf';
    }

    isTerminal() {
        const phase = this.phase();
        return phase === 'leaf' || phase === 'submenu';
    }

    resetMenuSelection() {
        this.state.selectedMenuIds = [];
        this.state.selectedSubmenus = {};
        this.state.selectedOptions = {};
    }

    dropMenu(menuId) {
        this.state.selectedMenuIds = this.state.selectedMenuIds.filter(id => id !== menuId);
        delete this.state.selectedSubmenus[menuId];
        delete this.state.selectedOptions[menuId];
    }

    onSelectMenu(target) {
        const menuId = target.dataset.menuId;
        const entry = this.menuIndex[menuId];
        if (!entry) {
            warn('unknown menu', menuId);
            return;
        }
        this.clearDateTime();
        if (!this.isAdditive(entry.category)) {
            const ids = this.state.selectedMenuIds;
            const wasSelected = ids.length === 1 && ids[0] === menuId;
            this.resetMenuSelection();
            if (!wasSelected) this.state.selectedMenuIds = [menuId];
        } else if (this.state.selectedMenuIds.includes(menuId)) {
            this.dropMenu(menuId);
        } else {
            if (!this.config.menu_structure.allow_cross_category_selection) {
                this.state.selectedMenuIds.slice().forEach(id => {
                    const other = this.menuIndex[id];
                    if (!other || other.category.id !== entry.category.id) this.dropMenu(id);
                });
            }
            this.state.selectedMenuIds.push(menuId);
        }
        this.renderMenuSelection();
        this.syncDateTimeBlock();
        this.updateSummary();
    }

    onToggleOption(target) {
        const menuId = target.dataset.menuId;
        const optionId = target.dataset.optionId;
        const entry = this.menuIndex[menuId];
        if (!entry || entry.menu.kind !== 'leaf' || !this.state.selectedMenuIds.includes(menuId)) return;
        if (!(entry.menu.options || []).some(o => o.id === optionId)) return;
        const current = this.state.selectedOptions[menuId] || [];
        this.state.selectedOptions[menuId] = current.includes(optionId)
            ? current.filter(id => id !== optionId)
            : current.concat([optionId]);
        this.renderMenuSelection();
        this.updateSummary();
    }

    onSelectSubmenu(target) {
        const menuId = target.dataset.menuId;
        const entry = this.menuIndex[menuId];
        if (!entry || entry.menu.kind !== 'submenu' || !this.state.selectedMenuIds.includes(menuId)) return;
        const submenuId = target.dataset.submenuId;
        if (!entry.menu.sub_menu_items.some(sub => sub.id === submenuId)) return;
        this.state.selectedSubmenus[menuId] = submenuId;
        this.renderMenuSelection();
        this.syncDateTimeBlock();
        this.updateSummary();
    }

    renderMenuSelection() {
        const ids = this.state.selectedMenuIds;
        document.querySelectorAll('[data-action="select-menu"]').forEach(btn => {
            btn.classList.toggle('selected', ids.includes(btn.dataset.menuId));
        });
        document.querySelectorAll('[data-options-for]').forEach(container => {
            container.hidden = !ids.includes(container.dataset.optionsFor);
        });
        document.querySelectorAll('[data-submenus-for]').forEach(container => {
            container.hidden = !ids.includes(container.dataset.submenusFor);
        });
        document.querySelectorAll('[data-action="toggle-option"]').forEach(btn => {
            const chosen = this.state.selectedOptions[btn.dataset.menuId] || [];
            btn.classList.toggle('selected', ids.includes(btn.dataset.menuId) && chosen.includes(btn.dataset.optionId));
        });
        document.querySelectorAll('[data-action="select-submenu"]').forEach(btn => {
            btn.classList.toggle('selected',
                ids.includes(btn.dataset.menuId) && this.state.selectedSubmenus[btn.dataset.menuId] === btn.dataset.submenuId);
        });
    }

    selectedOptionObjects(menuId) {
        const entry = this.menuIndex[menuId];
        if (!entry || entry.menu.kind !== 'leaf') return [];
        const ids = this.state.selectedOptions[menuId] || [];
        return ids.map(id => entry.menu.options.find(o => o.id === id)).filter(Boolean);
    }

    selectedSubmenu(menuId) {
        const entry = this.menuIndex[menuId];
        if (!entry || entry.menu.kind !== 'submenu') return null;
        return entry.menu.sub_menu_items.find(sub => sub.id === this.state.selectedSubmenus[menuId]) || null;
    }

    entryTotals(entry) {
        if (entry.menu.kind === 'submenu') {
            const sub = this.selectedSubmenu(entry.menu.id);
            return sub ? { price: sub.price || 0, duration: sub.duration || 0 } : { price: 0, duration: 0 };
        }
        return this.selectedOptionObjects(entry.menu.id).reduce((acc, opt) => ({
            price: acc.price + (opt.price || 0),
            duration: acc.duration + (opt.duration || 0)
        }), { price: entry.menu.price || 0, duration: entry.menu.duration || 0 });
    }

    computeTotals() {
        return this.selectedEntries().reduce((acc, entry) => {
            const t = this.entryTotals(entry);
            return { price: acc.price + t.price, duration: acc.duration + t.duration };
        }, { price: 0, duration: 0 });
    }

    // ---------------------------
    // Date / time
    // ---------------------------
    isMultipleDates() {
        return this.config.calendar_settings.booking_mode === 'multiple_dates';
    }

    clearDateTime() {
        this.state.selectedDate = '';
        this.state.selectedTime = '';
        this.state.alternates = { 2: { date: '', time: '' }, 3: { date: '', time: '' } };
        for (let i = 1; i <= 3; i++) {
            const day = document.getElementById('date' + i + '_day');
            const time = document.getElementById('date' + i + '_time');
            if (day) day.value = '';
            if (time) time.value = '';
            this.renderPickerPlaceholder(i, '');
        }
    }

    syncDateTimeBlock() {
        const terminal = this.isTerminal();
        document.querySelectorAll('[data-block="datetime"]').forEach(block => {
            block.hidden = !terminal;
        });
        const table = document.getElementById('calendar-table');
        if (!terminal) {
            this.clearDateTime();
            if (table) table.replaceChildren();
            return;
        }
        if (!this.isMultipleDates()) this.renderCalendar();
    }

    isSlotOffered(day, time, now) {
        const settings = this.config.calendar_settings;
        const lastDay = addDays(startOfDay(now), settings.advance_booking_days);
        if (startOfDay(day) > lastDay) return false;
        const hours = settings.business_hours[WEEKDAY_KEYS[day.getDay()]];
        if (!hours || hours.closed) return false;
        const minutes = parseHHMM(time);
        const openAt = parseHHMM(hours.open);
        const closeAt = parseHHMM(hours.close);
        if (minutes === null || openAt === null || closeAt === null) return false;
        if (minutes < openAt || minutes >= closeAt) return false;
        const slotStart = new Date(day.getFullYear(), day.getMonth(), day.getDate(), Math.floor(minutes / 60), minutes % 60);
        if (slotStart.getTime() <= now.getTime()) return false;
        const overlay = window.bookingFormAvailability;
        if (typeof overlay === 'function') {
            try {
                return Boolean(overlay(toISODate(day), time));
            } catch (err) {
                warn('availability check failed, using business hours only:', err);
            }
        }
        return true;
    }

    renderCalendar() {
        const table = document.getElementById('calendar-table');
        if (!table) return;
        const now = new Date();
        const days = [];
        for (let i = 0; i < 7; i++) days.push(addDays(this.viewWeekStart, i));

        const monthLabel = document.getElementById('current-month');
        if (monthLabel) {
            monthLabel.textContent = this.viewWeekStart.getFullYear() + '年' + (this.viewWeekStart.getMonth() + 1) + '月';
        }

        const thead = el('thead');
        const headRow = el('tr');
        headRow.appendChild(el('th', null, '時間'));
        days.forEach(d => {
            headRow.appendChild(el('th', null, (d.getMonth() + 1) + '/' + d.getDate() + '(' + DAY_NAMES[d.getDay()] + ')'));
        });
        thead.appendChild(headRow);

        const tbody = el('tbody');
        (this.slots.calendar_rows || []).forEach(time => {
            const row = el('tr');
            row.appendChild(el('td', null, time));
            days.forEach(d => {
                const dateStr = toISODate(d);
                const offered = this.isSlotOffered(d, time, now);
                const selected = offered && this.state.selectedDate === dateStr && this.state.selectedTime === time;
                const cell = el('td', 'calendar-cell' + (offered ? ' offered' : '') + (selected ? ' selected' : ''), offered ? '○' : '×');
                cell.dataset.date = dateStr;
                cell.dataset.time = time;
                cell.dataset.offered = offered ? '1' : '0';
                row.appendChild(cell);
            });
            tbody.appendChild(row);
        });
        table.replaceChildren(thead, tbody);
    }

    onSelectSlot(target, event) {
        const cell = event.target.closest('td.calendar-cell');
        if (!cell || cell.dataset.offered !== '1' || !this.isTerminal()) return;
        this.state.selectedDate = cell.dataset.date;
        this.state.selectedTime = cell.dataset.time;
        this.renderCalendar();
        this.updateSummary();
    }

    onNavigateWeek(target) {
        this.viewWeekStart = addDays(this.viewWeekStart, target.dataset.direction === 'prev' ? -7 : 7);
        this.renderCalendar();
    }

    onNavigateMonth(target) {
        const base = this.viewWeekStart;
        const shifted = new Date(base.getFullYear(), base.getMonth() + (target.dataset.direction === 'prev' ? -1 : 1), base.getDate());
        this.viewWeekStart = weekStart(shifted);
        this.renderCalendar();
    }

    populateDatePickers() {
        const settings = this.config.calendar_settings.multiple_dates_settings;
        const today = startOfDay(new Date());
        const excluded = settings.exclude_weekdays || [];
        const dates = [];
        for (let i = 0; i < settings.date_range_days; i++) {
            const d = addDays(today, i);
            if (!excluded.includes(d.getDay())) dates.push(d);
        }
        for (let i = 1; i <= 3; i++) {
            const select = document.getElementById('date' + i + '_day');
            if (!select) continue;
            dates.forEach(d => {
                const option = el('option', null, (d.getMonth() + 1) + '/' + d.getDate() + '(' + DAY_NAMES[d.getDay()] + ')');
                option.value = toISODate(d);
                select.appendChild(option);
            });
        }
    }

    renderPickerPlaceholder(index, text) {
        const placeholder = document.getElementById('placeholder' + index);
        if (!placeholder) return;
        placeholder.textContent = text || PICKER_PLACEHOLDER;
        placeholder.classList.toggle('filled', Boolean(text));
    }

    onPickDateTime(target) {
        const index = Number(target.dataset.picker);
        const day = document.getElementById('date' + index + '_day');
        const time = document.getElementById('date' + index + '_time');
        if (!day || !time || !this.isTerminal()) return;
        const complete = Boolean(day.value && time.value);
        const dateValue = complete ? day.value : '';
        const timeValue = complete ? time.value : '';
        if (index === 1) {
            this.state.selectedDate = dateValue;
            this.state.selectedTime = timeValue;
        } else if (this.state.alternates[index]) {
            this.state.alternates[index] = { date: dateValue, time: timeValue };
        }
        const label = complete ? day.options[day.selectedIndex].textContent + ' ' + time.value : '';
        this.renderPickerPlaceholder(index, label);
        this.updateSummary();
    }

    // ---------------------------
    // Summary
    // ---------------------------
    choiceLabel(selection, value) {
        if (!selection || !selection.enabled || !value) return '';
        const match = (selection.options || []).find(o => o.value === value);
        return match ? match.label : '';
    }

    customFieldText(field) {
        const value = this.state.customFields[field.id];
        if (value === undefined || value === null) return '';
        const labelFor = v => {
            const match = (field.options || []).find(o => o.value === v);
            return match ? match.label : String(v);
        };
        if (Array.isArray(value)) return value.map(labelFor).filter(Boolean).join(', ');
        return field.type === 'radio' ? labelFor(value) : String(value);
    }

    onEditField(target, event) {
        const button = event.target.closest('[data-target]');
        if (!button) return;
        const field = document.getElementById(button.dataset.target);
        if (field) field.scrollIntoView({ behavior: 'smooth', block: 'center' });
    }

    updateSummary() {
        const container = document.getElementById('summary-content');
        if (!container) return;
        const items = [];
        const addItem = (label, lines, targetId) => {
            const item = el('div', 'summary-item');
            const body = el('div');
            body.appendChild(el('strong', null, label + ':'));
            lines.forEach((line, i) => body.appendChild(el('div', i === 0 ? null : 'summary-sub', line)));
            item.appendChild(body);
            if (targetId) {
                const edit = el('button', 'summary-edit-button', '修正');
                edit.type = 'button';
                edit.dataset.target = targetId;
                item.appendChild(edit);
            }
            items.push(item);
        };

        if (this.state.name) addItem('お名前', [this.state.name], 'name-field');
        if (this.state.phone) addItem('電話番号', [this.state.phone], 'phone-field');
        const gender = this.choiceLabel(this.config.gender_selection, this.state.gender);
        if (gender) addItem('性別', [gender], 'gender-field');
        const visit = this.choiceLabel(this.config.visit_count_selection, this.state.visitCount);
        if (visit) addItem('ご来店回数', [visit], 'visit-count-field');
        const coupon = this.choiceLabel(this.config.coupon_selection, this.state.coupon);
        if (coupon) addItem('クーポン', [coupon], 'coupon-field');
        (this.config.custom_fields || []).forEach(field => {
            const text = this.customFieldText(field);
            if (text.trim()) addItem(field.title, [text], 'custom-field-' + field.id);
        });

        const entries = this.selectedEntries();
        if (entries.length > 0) {
            const lines = [];
            entries.forEach(entry => {
                const sub = this.selectedSubmenu(entry.menu.id);
                if (entry.menu.kind === 'submenu') {
                    lines.push(entry.menu.name + (sub ? ' > ' + sub.name : ''));
                    if (sub) lines.push(formatYen(sub.price) + ' / ' + sub.duration + '分');
                    return;
                }
                lines.push(entry.menu.name);
                lines.push(formatYen(entry.menu.price) + ' / ' + entry.menu.duration + '分');
                this.selectedOptionObjects(entry.menu.id).forEach(opt => {
                    lines.push('+ ' + opt.name
                        + (opt.price > 0 ? ' (+' + formatYen(opt.price) + ')' : '')
                        + (opt.duration > 0 ? ' (+' + opt.duration + '分)' : ''));
                });
            });
            addItem('メニュー', lines, 'menu-field');
            if (this.isTerminal()) {
                const totals = this.computeTotals();
                const total = el('div', 'summary-item summary-total');
                total.appendChild(el('div', null, '合計金額: ' + formatYen(totals.price) + ' / 合計時間: ' + totals.duration + '分'));
                items.push(total);
            }
        }

        const datetimeTarget = this.isMultipleDates() ? 'datetime-field-1' : 'datetime-field';
        if (this.state.selectedDate && this.state.selectedTime) {
            addItem('希望日時', [formatDesiredDateTime(this.state.selectedDate, this.state.selectedTime)], datetimeTarget);
        }
        [2, 3].forEach(i => {
            const alt = this.state.alternates[i];
            if (alt.date && alt.time) {
                addItem(PICKER_LABELS[i], [formatDesiredDateTime(alt.date, alt.time)], 'datetime-field-' + i);
            }
        });
        if (this.state.message) addItem('メッセージ', [this.state.message], 'message-field');

        if (items.length === 0) {
            container.replaceChildren(el('div', 'summary-empty', '入力内容がここに表示されます'));
        } else {
            container.replaceChildren(...items);
        }
    }

    // ---------------------------
    // Validation / submission
    // ---------------------------
    validate() {
        const cfg = this.config;
        if (!this.state.name.trim() || !this.state.phone.trim()) return 'お名前と電話番号を入力してください';
        if (cfg.gender_selection.enabled && cfg.gender_selection.required && !this.state.gender) {
            return '性別を選択してください';
        }
        if (cfg.visit_count_selection.enabled && cfg.visit_count_selection.required && !this.state.visitCount) {
            return 'ご来店回数を選択してください';
        }
        if (!this.isTerminal()) return 'メニューを選択してください';
        if (!this.state.selectedDate || !this.state.selectedTime) return '予約日時を選択してください';
        for (const field of (cfg.custom_fields || [])) {
            if (field.required && !this.customFieldText(field).trim()) return field.title + 'を入力してください';
        }
        return null;
    }

    buildMenuLine() {
        return this.selectedEntries().map(entry => {
            const sub = entry.menu.kind === 'submenu' ? this.selectedSubmenu(entry.menu.id) : null;
            let line = [entry.category.name, entry.menu.name, sub ? sub.name : ''].filter(Boolean).join(' > ');
            const optionNames = entry.menu.kind === 'submenu'
                ? []
                : this.selectedOptionObjects(entry.menu.id).map(o => o.name).filter(Boolean);
            if (optionNames.length > 0) line += (line ? ', ' : '') + optionNames.join(', ');
            return line;
        }).filter(Boolean).join(' / ');
    }

    buildSubmissionText() {
        const cfg = this.config;
        const visit = cfg.visit_count_selection.enabled && this.state.visitCount
            ? (this.choiceLabel(cfg.visit_count_selection, this.state.visitCount) || this.state.visitCount)
            : '';
        const lines = [
            '【予約フォーム】',
            'お名前：' + this.state.name,
            '電話番号：' + this.state.phone,
            'ご来店回数：' + visit,
            'メニュー：' + this.buildMenuLine(),
            '希望日時：',
            ' ' + formatDesiredDateTime(this.state.selectedDate, this.state.selectedTime)
        ];
        if (this.isMultipleDates()) {
            [2, 3].forEach(i => {
                const alt = this.state.alternates[i];
                if (alt.date && alt.time) lines.push(' ' + formatDesiredDateTime(alt.date, alt.time));
            });
        }
        lines.push('メッセージ：' + this.state.message);
        (cfg.custom_fields || []).forEach(field => {
            const text = this.customFieldText(field);
            if (text.trim()) lines.push(field.title + '：' + text);
        });
        const gender = this.choiceLabel(cfg.gender_selection, this.state.gender);
        if (gender) lines.push('性別：' + gender);
        const coupon = this.choiceLabel(cfg.coupon_selection, this.state.coupon);
        if (coupon) lines.push('クーポン：' + coupon);
        return lines.join('\n');
    }

    showError(message) {
        const box = document.getElementById('form-error');
        if (!box) return;
        box.textContent = message;
        box.hidden = false;
        box.scrollIntoView({ behavior: 'smooth', block: 'center' });
    }

    hideError() {
        const box = document.getElementById('form-error');
        if (box) box.hidden = true;
    }

    showSuccess() {
        const content = document.querySelector('.form-content');
        if (!content) return;
        const box = el('div', 'success');
        box.appendChild(el('h3', null, '予約が完了しました！'));
        box.appendChild(el('p', null, 'ご予約ありがとうございます。'));
        content.replaceChildren(box);
    }
    sendMessage(text) {
        // Waits for a transport init that may still be pending. Resolves to 'sent', 'unavailable' or 'failed'.
        return this.transportInit.then(ready => {
            const liff = window.liff;
            if (!ready || !liff || !liff.isLoggedIn || !liff.isLoggedIn()) return 'unavailable';
            return liff.sendMessages([{ type: 'text', text }]).then(() => {
                liff.closeWindow();
                return 'sent';
            }).catch(err => {
                // Best effort: logged only, never retried.
                console.error('[BookingForm] message send failed:', err);
                return 'failed';
            });
        });
    }

    onSubmit() {
        if (this.submitting) return Promise.resolve('busy');
        this.hideError();
        const error = this.validate();
        if (error) {
            this.showError(error);
            return Promise.resolve('invalid');
        }
        const text = this.buildSubmissionText();
        const button = document.getElementById('submit-button');
        this.submitting = true;
        if (button) button.disabled = true;
        return this.sendMessage(text).then(outcome => {
            this.submitting = false;
            if (button) button.disabled = false;
            if (outcome === 'sent') {
                this.saveLastBooking();
                this.showSuccess();
            } else if (outcome === 'unavailable') {
                log('messaging transport unavailable, submission not delivered');
                this.showError(TRANSPORT_UNAVAILABLE_MESSAGE);
            }
            return outcome;
        });
    }

    // ---------------------------
    // Repeat booking
    // ---------------------------
    storageKey() {
        return 'booking_' + (this.config.basic_info.form_name || this.formId || 'default');
    }

    saveLastBooking() {
        if (!this.config.ui_settings.show_repeat_booking) return;
        const entries = this.selectedEntries();
        if (entries.length === 0) return;
        try {
            window.localStorage.setItem(this.storageKey(), JSON.stringify({
                timestamp: Date.now(),
                menus: entries.map(entry => ({
                    categoryId: entry.category.id,
                    menuId: entry.menu.id,
                    submenuId: this.state.selectedSubmenus[entry.menu.id] || '',
                    options: this.state.selectedOptions[entry.menu.id] || []
                })),
                gender: this.state.gender,
                visitCount: this.state.visitCount,
                coupon: this.state.coupon
            }));
        } catch (err) {
            warn('could not save last booking:', err);
        }
    }

    onRepeatBooking() {
        let saved = null;
        try {
            saved = JSON.parse(window.localStorage.getItem(this.storageKey()) || 'null');
        } catch (err) {
            warn('could not read last booking:', err);
        }
        const menus = saved && Array.isArray(saved.menus)
            ? saved.menus.filter(m => m && this.menuIndex[m.menuId])
            : [];
        if (menus.length === 0) {
            alert('前回のメニューが見つかりません💦');
            return;
        }
        if (!saved.timestamp || saved.timestamp < Date.now() - REPEAT_BOOKING_TTL_MS) {
            alert('前回のメニューデータが古いため復元できません');
            return;
        }
        this.resetMenuSelection();
        this.clearDateTime();
        menus.forEach(m => {
            const menu = this.menuIndex[m.menuId].menu;
            if (this.state.selectedMenuIds.includes(menu.id)) return;
            this.state.selectedMenuIds.push(menu.id);
            if (menu.kind === 'submenu') {
                if (menu.sub_menu_items.some(sub => sub.id === m.submenuId)) this.state.selectedSubmenus[menu.id] = m.submenuId;
            } else {
                const known = (menu.options || []).map(o => o.id);
                this.state.selectedOptions[menu.id] = (m.options || []).filter(id => known.includes(id));
            }
        });
        [['gender', 'gender_selection'], ['visitCount', 'visit_count_selection'], ['coupon', 'coupon_selection']].forEach(pair => {
            if (this.choiceLabel(this.config[pair[1]], saved[pair[0]])) {
                this.state[pair[0]] = saved[pair[0]];
                this.renderChoiceGroup(pair[0]);
            }
        });
        this.renderMenuSelection();
        this.syncDateTimeBlock();
        this.updateSummary();
        alert('前回のメニューを復元しました！');
        const block = document.querySelector('[data-block="datetime"]:not([hidden])');
        if (block) block.scrollIntoView({ behavior: 'smooth', block: 'center' });
    }
}

function boot() {
    window.bookingForm = new BookingController(FORM_CONFIG, {
        formId: FORM_ID,
        storeId: STORE_ID,
        actions: ACTION_INDEX,
        slots: SLOT_TABLES
    });
}

if (document.readyState === 'loading') {
    document.addEventListener('DOMContentLoaded', boot);
} else {
    boot();
}
"""
