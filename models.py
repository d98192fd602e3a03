# models.py
from __future__ import annotations

import json
import math
import re
import secrets
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional


# -----------------------------
# Lenient parsing / formatting
# -----------------------------
_NON_NUMERIC = re.compile(r"[^0-9.]")


def to_number(value) -> float:
    """
    Lenient numeric parse shared by the editor and the renderer.
    Everything except digits and "." is stripped; an empty result is 0 and
    anything still unparseable ("." or "1.2.3") is 0 as well, and so is a
    digit run too long to be finite.
    """
    cleaned = _NON_NUMERIC.sub("", str(value if value is not None else ""))
    if not cleaned:
        return 0.0
    try:
        n = float(cleaned)
    except ValueError:
        return 0.0
    return n if math.isfinite(n) else 0.0


def money(n: float) -> str:
    return f"{float(n):,.2f}"


def safe_json(raw: Optional[str], fallback):
    if not raw:
        return fallback
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return fallback


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def new_item_id() -> str:
    return secrets.token_hex(4)


# -----------------------------
# Records
# -----------------------------
@dataclass(frozen=True)
class LineItem:
    id: str = ""
    title: str = ""
    qty: str = ""
    rate: str = ""

    # Convenience values (computed, not stored)
    def quantity(self) -> float:
        return to_number(self.qty)

    def unit_rate(self) -> float:
        return to_number(self.rate)

    def amount(self) -> float:
        return self.quantity() * self.unit_rate()


PLACEHOLDER_ITEM = LineItem(id="x", title="—", qty="0", rate="0")


@dataclass(frozen=True)
class DocumentDefaults:
    """
    Every default the renderer relies on, applied once when a record is built.
    Empty strings count as absent.
    """
    company_name: str = "Your Company"
    company_email: str = ""
    company_phone: str = ""
    company_address: str = ""
    customer_name: str = ""
    project_title: str = "Estimate"
    tax_rate: str = "0"
    notes: str = ""
    terms: str = ""
    payment_info: str = ""
    placeholder_item: LineItem = PLACEHOLDER_ITEM


RENDER_DEFAULTS = DocumentDefaults()

# What a brand-new document starts with in the editor.
EDITOR_DEFAULTS = DocumentDefaults(
    company_email="you@email.com",
    company_phone="(555) 123-4567",
    company_address="123 Main St, City, ST",
    terms="Valid for 14 days. Price includes labor and materials unless stated otherwise.",
    payment_info="Payment due upon completion. Accepted: cash, check, Zelle, card.",
    placeholder_item=LineItem(id="", title="Labor", qty="1", rate="0"),
)


@dataclass(frozen=True)
class Totals:
    subtotal: float
    tax_rate: float
    tax: float
    total: float


@dataclass(frozen=True)
class DocumentRecord:
    company_name: str = RENDER_DEFAULTS.company_name
    company_email: str = ""
    company_phone: str = ""
    company_address: str = ""
    logo_data_url: Optional[str] = None
    customer_name: str = ""
    project_title: str = RENDER_DEFAULTS.project_title
    items: tuple[LineItem, ...] = (PLACEHOLDER_ITEM,)
    tax_rate: str = "0"
    notes: str = ""
    terms: str = ""
    payment_info: str = ""
    updated_at: Optional[int] = None

    def totals(self) -> Totals:
        return compute_totals(self)

    def with_updates(self, **changes) -> "DocumentRecord":
        return replace(self, **changes)


def compute_totals(record: DocumentRecord) -> Totals:
    subtotal = sum(it.amount() for it in record.items)
    rate = to_number(record.tax_rate)
    tax = subtotal * (rate / 100)
    return Totals(subtotal=subtotal, tax_rate=rate, tax=tax, total=subtotal + tax)


# -----------------------------
# Construction from request parameters
# -----------------------------
PARAM_FIELDS = {
    "companyName": "company_name",
    "companyEmail": "company_email",
    "companyPhone": "company_phone",
    "companyAddress": "company_address",
    "customerName": "customer_name",
    "projectTitle": "project_title",
    "taxRate": "tax_rate",
    "notes": "notes",
    "terms": "terms",
    "paymentInfo": "payment_info",
}


def _item_from_obj(obj: Any, index: int) -> LineItem:
    if not isinstance(obj, Mapping):
        return LineItem(id=str(index))
    return LineItem(
        id=_text(obj.get("id")) or str(index),
        title=_text(obj.get("title")),
        qty=_text(obj.get("qty")),
        rate=_text(obj.get("rate")),
    )


def parse_items(raw, defaults: DocumentDefaults = RENDER_DEFAULTS) -> tuple[LineItem, ...]:
    """
    Accepts a JSON string or an already-decoded list. Malformed JSON, a
    non-list value or an empty list all collapse to the single placeholder row.
    """
    data = safe_json(raw, []) if isinstance(raw, (str, bytes, type(None))) else raw
    if not isinstance(data, list) or not data:
        return (defaults.placeholder_item,)
    return tuple(_item_from_obj(obj, i) for i, obj in enumerate(data))


def record_from_params(
    params: Mapping[str, Any],
    defaults: DocumentDefaults = RENDER_DEFAULTS,
) -> DocumentRecord:
    values = {}
    for param, attr in PARAM_FIELDS.items():
        raw = _text(params.get(param))
        values[attr] = raw or getattr(defaults, attr)

    logo = _text(params.get("logoDataUrl")) or None

    return DocumentRecord(
        logo_data_url=logo,
        items=parse_items(params.get("items"), defaults),
        **values,
    )


def _items_to_list(items) -> list[dict]:
    return [{"id": it.id, "title": it.title, "qty": it.qty, "rate": it.rate} for it in items]


def record_to_params(record: DocumentRecord) -> dict[str, str]:
    """Query parameters the PDF route understands (inverse of record_from_params)."""
    params = {param: getattr(record, attr) for param, attr in PARAM_FIELDS.items()}
    params["items"] = json.dumps(_items_to_list(record.items), ensure_ascii=False)
    if record.logo_data_url:
        params["logoDataUrl"] = record.logo_data_url
    return params


# -----------------------------
# Persisted blob (editor key-value store)
# -----------------------------
def record_to_dict(record: DocumentRecord) -> dict:
    data: dict[str, Any] = {param: getattr(record, attr) for param, attr in PARAM_FIELDS.items()}
    data["logoDataUrl"] = record.logo_data_url
    data["items"] = _items_to_list(record.items)
    data["updatedAt"] = record.updated_at
    return data


def _stored_items(raw, defaults: DocumentDefaults) -> tuple[LineItem, ...]:
    items = parse_items(raw, defaults)
    if items == (defaults.placeholder_item,) and not defaults.placeholder_item.id:
        # the starter row needs its own id so it can be removed later
        return (replace(defaults.placeholder_item, id=new_item_id()),)
    return items


def record_from_dict(data: Mapping[str, Any], defaults: DocumentDefaults = EDITOR_DEFAULTS) -> DocumentRecord:
    """
    Loading keeps whatever the user saved, including empty strings; only the
    company name, title, tax rate and item list fall back to defaults.
    """
    updated_at = data.get("updatedAt")
    return DocumentRecord(
        company_name=_text(data.get("companyName")) or defaults.company_name,
        company_email=_text(data.get("companyEmail")),
        company_phone=_text(data.get("companyPhone")),
        company_address=_text(data.get("companyAddress")),
        logo_data_url=_text(data.get("logoDataUrl")) or None,
        customer_name=_text(data.get("customerName")),
        project_title=_text(data.get("projectTitle")) or defaults.project_title,
        items=_stored_items(data.get("items"), defaults),
        tax_rate=_text(data.get("taxRate")) if data.get("taxRate") is not None else defaults.tax_rate,
        notes=_text(data.get("notes")),
        terms=_text(data.get("terms")),
        payment_info=_text(data.get("paymentInfo")),
        updated_at=int(updated_at) if isinstance(updated_at, (int, float)) else None,
    )


def blank_record(defaults: DocumentDefaults = EDITOR_DEFAULTS) -> DocumentRecord:
    return DocumentRecord(
        company_name=defaults.company_name,
        company_email=defaults.company_email,
        company_phone=defaults.company_phone,
        company_address=defaults.company_address,
        customer_name=defaults.customer_name,
        project_title=defaults.project_title,
        items=(defaults.placeholder_item,),
        tax_rate=defaults.tax_rate,
        notes=defaults.notes,
        terms=defaults.terms,
        payment_info=defaults.payment_info,
    )
