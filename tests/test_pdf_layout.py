from __future__ import annotations

from models import DocumentRecord, LineItem, compute_totals
from pdf_layout import (
    BOLD,
    EM_DASH,
    GEOMETRY,
    REGULAR,
    ROW_RULE,
    Cursor,
    DrawImage,
    DrawLine,
    DrawRect,
    DrawText,
    LayoutContext,
    LogoSize,
    NewPage,
    block_lines,
    layout_document,
    place_block,
    place_totals,
    wrap_text,
)


def _items(n: int) -> tuple[LineItem, ...]:
    return tuple(LineItem(id=str(i), title=f"Item {i}", qty="1", rate="10") for i in range(n))


def _body_lines(page) -> list[str]:
    return [c.text for c in page.commands if isinstance(c, DrawText) and c.size == 9.5]


def _row_rules(page) -> list[DrawLine]:
    return [c for c in page.commands if isinstance(c, DrawLine) and c.color == ROW_RULE]


def test_wrap_text_fills_greedily() -> None:
    assert wrap_text("aaa bbb ccc", 7) == ["aaa bbb", "ccc"]
    assert wrap_text("aaa bbb ccc", 3) == ["aaa", "bbb", "ccc"]


def test_wrap_text_empty_is_a_dash() -> None:
    assert wrap_text("") == [EM_DASH]
    assert wrap_text("   \n ") == [EM_DASH]


def test_wrap_text_keeps_overlong_words_whole() -> None:
    word = "x" * 120
    assert wrap_text(f"hi {word} there") == ["hi", word, "there"]


def test_single_item_fits_on_one_page() -> None:
    record = DocumentRecord(
        company_name="Acme",
        items=(LineItem(id="1", title="Labor", qty="2", rate="50"),),
        tax_rate="10",
    )
    layout = layout_document(record, "doc-1")
    assert layout.page_count == 1

    texts = layout.pages[0].texts()
    for expected in (
        "Acme",
        "Line Items",
        "Description",
        "Labor",
        "2",
        "$50.00",
        "$100.00",
        "Subtotal",
        "$10.00 (10.00%)",
        "$110.00",
        "Document ID: doc-1",
        "Generated with QuickDocs",
    ):
        assert expected in texts
    assert "Line Items (cont.)" not in texts


def test_empty_items_render_one_placeholder_row() -> None:
    layout = layout_document(DocumentRecord(items=()), "doc-1")
    page = layout.pages[0]
    assert len(_row_rules(page)) == 1
    texts = page.texts()
    assert EM_DASH in texts
    assert "$0.00" in texts


def test_long_titles_are_cut_at_sixty_characters() -> None:
    title = "A" * 50 + "B" * 25
    layout = layout_document(DocumentRecord(items=(LineItem(title=title, qty="1", rate="1"),)), "d")
    texts = layout.pages[0].texts()
    assert "A" * 50 + "B" * 10 in texts
    assert title not in texts


def test_empty_quantity_prints_a_dash() -> None:
    layout = layout_document(DocumentRecord(items=(LineItem(title="Fee", qty="", rate="5"),)), "d")
    row_texts = [c for c in layout.pages[0].commands if isinstance(c, DrawText) and c.x == GEOMETRY.col_qty]
    assert [c.text for c in row_texts] == ["Qty", EM_DASH]


def test_table_continues_on_a_second_page() -> None:
    layout = layout_document(DocumentRecord(items=_items(17)), "doc-1")
    assert layout.page_count == 2

    first, second = layout.pages
    assert len(_row_rules(first)) == 16
    assert len(_row_rules(second)) == 1
    assert "Line Items (cont.)" in second.texts()
    assert "Description" in second.texts()
    assert "Subtotal" in second.texts()


def test_totals_move_to_a_summary_page_when_rows_fill_the_first() -> None:
    layout = layout_document(DocumentRecord(items=_items(16)), "doc-1")
    assert layout.page_count == 2

    second = layout.pages[1]
    texts = second.texts()
    assert "Summary" in texts
    assert "Subtotal" in texts
    assert "Description" not in texts
    assert "Line Items (cont.)" not in texts
    assert not _row_rules(second)


def test_every_page_gets_header_and_footer() -> None:
    layout = layout_document(DocumentRecord(company_name="Acme", items=_items(40)), "doc-9")
    assert layout.page_count == 3
    for page in layout.pages:
        texts = page.texts()
        assert "Acme" in texts
        assert "Document ID: doc-9" in texts
        assert texts.count("Generated with QuickDocs") == 1


def test_text_blocks_are_capped() -> None:
    long_text = " ".join(["lorem"] * 400)
    record = DocumentRecord(items=_items(1), notes=long_text, terms=long_text, payment_info=long_text)
    layout = layout_document(record, "doc-1")

    body = [line for page in layout.pages for line in _body_lines(page)]
    assert len(body) == 6 + 8 + 8
    titles = [t for page in layout.pages for t in page.texts() if t in ("Notes", "Terms", "Payment")]
    assert titles == ["Notes", "Terms", "Payment"]


def test_blank_blocks_are_skipped() -> None:
    record = DocumentRecord(items=_items(1), notes="  ", terms="", payment_info="Cash only")
    texts = layout_document(record, "d").pages[0].texts()
    assert "Notes" not in texts
    assert "Terms" not in texts
    assert "Payment" in texts
    assert "Cash only" in texts


def test_block_breaks_to_a_continuation_page() -> None:
    ctx = LayoutContext(record=DocumentRecord(), doc_id="doc-1")
    text = " ".join(["lorem"] * 400)
    cursor, cmds = place_block(ctx, Cursor(1, 150), "Terms", text, 8)

    assert cursor.page == 2
    first_break = next(i for i, c in enumerate(cmds) if isinstance(c, NewPage))
    before = [c.text for c in cmds[:first_break] if isinstance(c, DrawText)]
    after = [c.text for c in cmds[first_break:] if isinstance(c, DrawText)]
    assert "Document ID: doc-1" in before
    assert "Summary (cont.)" in after
    assert "Terms" in after
    assert sum(1 for c in cmds if isinstance(c, DrawText) and c.size == 9.5) == 8
    assert cursor.y == GEOMETRY.top_body_y - 18 - 14 - 12 * 8 - 10


def test_block_stays_on_page_when_it_fits() -> None:
    ctx = LayoutContext(record=DocumentRecord(), doc_id="doc-1")
    cursor, cmds = place_block(ctx, Cursor(1, 400), "Notes", "short note", 6)
    assert cursor == Cursor(1, 400 - 14 - 12 - 10)
    assert not any(isinstance(c, NewPage) for c in cmds)
    assert block_lines("short note", 6) == ["short note"]


def test_totals_box_never_sinks_into_the_footer_reserve() -> None:
    record = DocumentRecord(items=_items(1))
    ctx = LayoutContext(record=record, doc_id="d")
    cursor, cmds = place_totals(ctx, Cursor(1, 290), compute_totals(record))

    box = next(c for c in cmds if isinstance(c, DrawRect))
    assert box.height == GEOMETRY.totals_box_h
    assert box.y == GEOMETRY.bottom_safe_y + 120
    assert cursor == Cursor(1, box.y - 18)


def test_totals_values_are_right_aligned() -> None:
    record = DocumentRecord(items=(LineItem(title="x", qty="3", rate="1000"),), tax_rate="5")
    measure = lambda text, font, size: float(len(text))  # noqa: E731 - test helper
    layout = layout_document(record, "d", measure=measure)
    right_x = GEOMETRY.page_w - GEOMETRY.margin - 16
    total = next(c for c in layout.pages[0].commands if isinstance(c, DrawText) and c.text == "$3,150.00")
    assert total.font == BOLD
    assert total.size == 14
    assert total.x == right_x - len("$3,150.00")


def test_header_with_logo_and_missing_contact_details() -> None:
    record = DocumentRecord(company_name="Acme", items=_items(1))
    layout = layout_document(record, "d", logo=LogoSize(200, 100))
    cmds = layout.pages[0].commands

    image = next(c for c in cmds if isinstance(c, DrawImage))
    assert (image.width, image.height) == (48, 24)
    assert image.x == GEOMETRY.margin
    assert image.y == GEOMETRY.page_h - 78 - 12

    name = next(c for c in cmds if isinstance(c, DrawText) and c.text == "Acme")
    assert name.x == GEOMETRY.margin + 62

    texts = layout.pages[0].texts()
    assert "Prepared for: —" in texts
    assert not any("•" in t for t in texts)


def test_contact_line_joins_email_and_phone() -> None:
    record = DocumentRecord(company_email="a@b.co", company_phone="555", company_address="1 Main", items=_items(1))
    texts = layout_document(record, "d").pages[0].texts()
    assert "a@b.co • 555" in texts
    assert "1 Main" in texts
    header = [c for c in layout_document(record, "d").pages[0].commands if isinstance(c, DrawText) and c.text == "1 Main"]
    assert header[0].font == REGULAR


def test_layout_is_deterministic() -> None:
    record = DocumentRecord(items=_items(30), notes="hello there", tax_rate="3")
    assert layout_document(record, "d").pages == layout_document(record, "d").pages
