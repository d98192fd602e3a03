# pdf_layout.py
"""
Page layout for estimate PDFs.

Layout is computed without touching a canvas: every step takes the current
Cursor plus the content to place and returns the next Cursor together with the
draw commands it produced. pdf_service replays the commands onto reportlab.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from reportlab.lib.pagesizes import LETTER
from reportlab.pdfbase.pdfmetrics import stringWidth

from models import PLACEHOLDER_ITEM, DocumentRecord, LineItem, Totals, compute_totals, money, to_number

REGULAR = "Helvetica"
BOLD = "Helvetica-Bold"

Color = tuple[float, float, float]
Measure = Callable[[str, str, float], float]


def _grey(v: float) -> Color:
    return (v, v, v)


HEADER_FILL: Color = (0.96, 0.97, 0.98)
PANEL_FILL: Color = (0.98, 0.98, 0.99)
PANEL_BORDER = _grey(0.88)
INK = _grey(0.05)
MUTED = _grey(0.45)
SECTION_INK = _grey(0.10)
COLUMN_INK = _grey(0.35)
FOOTER_INK = _grey(0.50)
ROW_RULE = _grey(0.92)
DIVIDER = _grey(0.90)

EM_DASH = "—"


# -----------------------------
# Draw commands
# -----------------------------
@dataclass(frozen=True)
class DrawText:
    x: float
    y: float
    text: str
    font: str
    size: float
    color: Color


@dataclass(frozen=True)
class DrawRect:
    x: float
    y: float
    width: float
    height: float
    fill: Color
    stroke: Optional[Color] = None
    line_width: float = 0


@dataclass(frozen=True)
class DrawLine:
    x1: float
    y1: float
    x2: float
    y2: float
    thickness: float
    color: Color


@dataclass(frozen=True)
class DrawImage:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class NewPage:
    pass


# -----------------------------
# Geometry / state
# -----------------------------
@dataclass(frozen=True)
class Geometry:
    page_w: float = LETTER[0]
    page_h: float = LETTER[1]
    margin: float = 50
    header_h: float = 120
    body_top_offset: float = 155
    bottom_safe_y: float = 110
    totals_reserve: float = 120
    row_height: float = 22
    footer_y: float = 60
    totals_box_h: float = 86
    logo_box: float = 48
    wrap_chars: int = 95
    title_max_chars: int = 60

    @property
    def top_body_y(self) -> float:
        return self.page_h - self.body_top_offset

    @property
    def table_floor(self) -> float:
        # rows stop here so the totals box still fits under the last one
        return self.bottom_safe_y + self.totals_reserve

    @property
    def col_desc(self) -> float:
        return self.margin

    @property
    def col_qty(self) -> float:
        return self.margin + 320

    @property
    def col_rate(self) -> float:
        return self.margin + 385

    @property
    def col_amount(self) -> float:
        return self.margin + 470


GEOMETRY = Geometry()

# (title, record attribute, max visible lines)
TEXT_BLOCKS = (
    ("Notes", "notes", 6),
    ("Terms", "terms", 8),
    ("Payment", "payment_info", 8),
)


@dataclass(frozen=True)
class LogoSize:
    width: float
    height: float


@dataclass(frozen=True)
class Cursor:
    page: int
    y: float

    def down(self, dy: float) -> "Cursor":
        return Cursor(self.page, self.y - dy)

    def to(self, y: float) -> "Cursor":
        return Cursor(self.page, y)


@dataclass(frozen=True)
class LayoutContext:
    record: DocumentRecord
    doc_id: str
    brand_text: str = "Generated with QuickDocs"
    logo: Optional[LogoSize] = None
    geometry: Geometry = GEOMETRY
    measure: Measure = stringWidth

    def right_text(self, right_x: float, y: float, text: str, font: str, size: float, color: Color) -> DrawText:
        return DrawText(right_x - self.measure(text, font, size), y, text, font, size, color)


@dataclass
class PageLayout:
    number: int
    commands: list = field(default_factory=list)

    def texts(self) -> list[str]:
        return [c.text for c in self.commands if isinstance(c, DrawText)]


@dataclass
class DocumentLayout:
    pages: list[PageLayout]
    totals: Totals

    @property
    def page_count(self) -> int:
        return len(self.pages)


# -----------------------------
# Text helpers
# -----------------------------
def wrap_text(text: str, max_len: int = GEOMETRY.wrap_chars) -> list[str]:
    """Greedy fill by character count. Words longer than max_len stay whole."""
    lines: list[str] = []
    line = ""
    for w in (text or "").split():
        candidate = f"{line} {w}" if line else w
        if len(candidate) > max_len:
            if line:
                lines.append(line)
            line = w
        else:
            line = candidate
    if line:
        lines.append(line)
    return lines or [EM_DASH]


def block_lines(text: str, max_lines: int, max_len: int = GEOMETRY.wrap_chars) -> list[str]:
    # Overflow past max_lines is dropped without an indicator.
    return wrap_text(text, max_len)[:max_lines]


def item_description(item: LineItem, max_chars: int = GEOMETRY.title_max_chars) -> str:
    return (item.title or EM_DASH)[:max_chars]


def tax_label(totals: Totals) -> str:
    return f"${money(totals.tax)} ({totals.tax_rate:.2f}%)"


# -----------------------------
# Page chrome
# -----------------------------
def header_commands(ctx: LayoutContext) -> list:
    g = ctx.geometry
    rec = ctx.record
    W, H = g.page_w, g.page_h
    out: list = [DrawRect(0, H - g.header_h, W, g.header_h, HEADER_FILL)]

    left_x = g.margin
    if ctx.logo and ctx.logo.width > 0 and ctx.logo.height > 0:
        scale = min(g.logo_box / ctx.logo.width, g.logo_box / ctx.logo.height)
        w = ctx.logo.width * scale
        h = ctx.logo.height * scale
        out.append(DrawImage(g.margin, H - 78 - h / 2, w, h))
        left_x = g.margin + 62

    out.append(DrawText(left_x, H - 56, rec.company_name, BOLD, 16, INK))

    contact_line = " • ".join(p for p in (rec.company_email, rec.company_phone) if p)
    if contact_line:
        out.append(DrawText(left_x, H - 74, contact_line, REGULAR, 10, MUTED))
    if rec.company_address:
        out.append(DrawText(left_x, H - 88, rec.company_address, REGULAR, 10, MUTED))

    right_x = W - g.margin
    out.append(ctx.right_text(right_x, H - 58, rec.project_title, BOLD, 18, INK))
    prepared_for = f"Prepared for: {rec.customer_name or EM_DASH}"
    out.append(ctx.right_text(right_x, H - 78, prepared_for, REGULAR, 10, MUTED))
    return out


def footer_commands(ctx: LayoutContext) -> list:
    g = ctx.geometry
    return [
        DrawText(g.margin, g.footer_y, f"Document ID: {ctx.doc_id}", REGULAR, 8.5, FOOTER_INK),
        ctx.right_text(g.page_w - g.margin, g.footer_y, ctx.brand_text, REGULAR, 8.5, FOOTER_INK),
    ]


def section_title(ctx: LayoutContext, cursor: Cursor, title: str, gap: float) -> tuple[Cursor, list]:
    cmd = DrawText(ctx.geometry.margin, cursor.y, title, BOLD, 12, SECTION_INK)
    return cursor.down(gap), [cmd]


def table_header(ctx: LayoutContext, cursor: Cursor) -> tuple[Cursor, list]:
    g = ctx.geometry
    y = cursor.y
    out: list = [
        DrawRect(g.margin, y - 18, g.page_w - g.margin * 2, 24, PANEL_FILL, PANEL_BORDER, 1),
    ]
    for label, x in (
        ("Description", g.col_desc + 10),
        ("Qty", g.col_qty),
        ("Rate", g.col_rate),
        ("Amount", g.col_amount),
    ):
        out.append(DrawText(x, y - 12, label, BOLD, 10, COLUMN_INK))
    return cursor.down(30), out


def page_break(
    ctx: LayoutContext,
    cursor: Cursor,
    title: str,
    *,
    gap: float,
    with_table_header: bool,
) -> tuple[Cursor, list]:
    """Footer on the outgoing page, then a fresh page with header and section title."""
    out = footer_commands(ctx)
    out.append(NewPage())
    out.extend(header_commands(ctx))

    nxt = Cursor(cursor.page + 1, ctx.geometry.top_body_y)
    nxt, cmds = section_title(ctx, nxt, title, gap)
    out.extend(cmds)
    if with_table_header:
        nxt, cmds = table_header(ctx, nxt)
        out.extend(cmds)
    return nxt, out


# -----------------------------
# Line item table
# -----------------------------
def start_document(ctx: LayoutContext) -> tuple[Cursor, list]:
    out = header_commands(ctx)
    cursor = Cursor(1, ctx.geometry.top_body_y)
    cursor, cmds = section_title(ctx, cursor, "Line Items", 14)
    out.extend(cmds)
    cursor, cmds = table_header(ctx, cursor)
    out.extend(cmds)
    return cursor, out


def place_row(ctx: LayoutContext, cursor: Cursor, item: LineItem) -> tuple[Cursor, list]:
    g = ctx.geometry
    out: list = []
    if cursor.y - g.row_height < g.table_floor:
        cursor, out = page_break(ctx, cursor, "Line Items (cont.)", gap=14, with_table_header=True)

    y = cursor.y
    rate = to_number(item.rate)
    amount = to_number(item.qty) * rate

    out.append(DrawLine(g.margin, y - 6, g.page_w - g.margin, y - 6, 1, ROW_RULE))
    out.append(DrawText(g.col_desc + 10, y, item_description(item, g.title_max_chars), REGULAR, 10.5, _grey(0.15)))
    out.append(DrawText(g.col_qty, y, item.qty or EM_DASH, REGULAR, 10.5, _grey(0.2)))
    out.append(DrawText(g.col_rate, y, f"${money(rate)}", REGULAR, 10.5, _grey(0.2)))
    out.append(ctx.right_text(g.page_w - g.margin - 10, y, f"${money(amount)}", REGULAR, 10.5, _grey(0.15)))
    return cursor.down(g.row_height), out


# -----------------------------
# Totals
# -----------------------------
def block_space(text: str, max_lines: int, max_len: int = GEOMETRY.wrap_chars) -> float:
    if not (text or "").strip():
        return 0
    return 11 + 14 + 12 * len(block_lines(text, max_lines, max_len)) + 10


def summary_space(record: DocumentRecord, geometry: Geometry = GEOMETRY) -> float:
    """Totals box plus the worst case of every non-empty text block, plus footer buffer."""
    blocks = sum(
        block_space(getattr(record, attr), cap, geometry.wrap_chars)
        for _title, attr, cap in TEXT_BLOCKS
    )
    return geometry.totals_box_h + 12 + blocks + 60


def place_totals(ctx: LayoutContext, cursor: Cursor, totals: Totals) -> tuple[Cursor, list]:
    g = ctx.geometry
    out: list = []

    if cursor.y - summary_space(ctx.record, g) < g.bottom_safe_y:
        cursor, out = page_break(ctx, cursor, "Summary", gap=18, with_table_header=False)
    else:
        out.append(DrawLine(g.margin, cursor.y - 8, g.page_w - g.margin, cursor.y - 8, 1, DIVIDER))
        cursor = cursor.down(26)

    box_h = g.totals_box_h
    totals_y = max(cursor.y - box_h + 12, g.table_floor)
    out.append(DrawRect(g.margin, totals_y, g.page_w - g.margin * 2, box_h, PANEL_FILL, PANEL_BORDER, 1))

    left = g.margin + 16
    right_x = g.page_w - g.margin - 16
    out.append(DrawText(left, totals_y + 58, "Subtotal", REGULAR, 10, _grey(0.4)))
    out.append(DrawText(left, totals_y + 38, "Tax", REGULAR, 10, _grey(0.4)))
    out.append(DrawText(left, totals_y + 14, "Total", BOLD, 11, _grey(0.2)))

    out.append(ctx.right_text(right_x, totals_y + 58, f"${money(totals.subtotal)}", REGULAR, 10, _grey(0.15)))
    out.append(ctx.right_text(right_x, totals_y + 38, tax_label(totals), REGULAR, 10, _grey(0.15)))
    out.append(ctx.right_text(right_x, totals_y + 12, f"${money(totals.total)}", BOLD, 14, INK))

    return cursor.to(totals_y - 18), out


# -----------------------------
# Notes / terms / payment
# -----------------------------
def place_block(ctx: LayoutContext, cursor: Cursor, title: str, text: str, max_lines: int) -> tuple[Cursor, list]:
    g = ctx.geometry
    lines = block_lines(text, max_lines, g.wrap_chars)
    out: list = []

    needed = 14 + 12 * len(lines) + 10
    if cursor.y - needed < g.bottom_safe_y:
        cursor, out = page_break(ctx, cursor, "Summary (cont.)", gap=18, with_table_header=False)

    out.append(DrawText(g.margin, cursor.y, title, BOLD, 11, _grey(0.2)))
    cursor = cursor.down(14)
    for line in lines:
        out.append(DrawText(g.margin, cursor.y, line, REGULAR, 9.5, _grey(0.25)))
        cursor = cursor.down(12)
    return cursor.down(10), out


# -----------------------------
# Whole document
# -----------------------------
def split_pages(commands: list) -> list[PageLayout]:
    pages = [PageLayout(1)]
    for cmd in commands:
        if isinstance(cmd, NewPage):
            pages.append(PageLayout(len(pages) + 1))
        else:
            pages[-1].commands.append(cmd)
    return pages


def layout_document(
    record: DocumentRecord,
    doc_id: str,
    *,
    logo: Optional[LogoSize] = None,
    brand_text: str = "Generated with QuickDocs",
    geometry: Geometry = GEOMETRY,
    measure: Measure = stringWidth,
) -> DocumentLayout:
    ctx = LayoutContext(
        record=record,
        doc_id=doc_id,
        brand_text=brand_text,
        logo=logo,
        geometry=geometry,
        measure=measure,
    )
    totals = compute_totals(record)

    cursor, commands = start_document(ctx)
    for item in record.items or (PLACEHOLDER_ITEM,):
        cursor, cmds = place_row(ctx, cursor, item)
        commands.extend(cmds)

    cursor, cmds = place_totals(ctx, cursor, totals)
    commands.extend(cmds)

    for title, attr, cap in TEXT_BLOCKS:
        text = getattr(record, attr)
        if not (text or "").strip():
            continue
        cursor, cmds = place_block(ctx, cursor, title, text, cap)
        commands.extend(cmds)

    commands.extend(footer_commands(ctx))
    return DocumentLayout(pages=split_pages(commands), totals=totals)
