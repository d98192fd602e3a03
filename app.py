# app.py
import base64
import io
import time
from urllib.parse import urlencode

from flask import (
    Flask, render_template, request, redirect, url_for,
    flash, send_file
)

from config import Config
from editor import (
    EditorSession, EditorStatus, JsonFileStore, export_url, new_doc_id, status_text
)
from models import (
    EDITOR_DEFAULTS, DocumentDefaults, LineItem, compute_totals, money,
    new_item_id, record_from_params, record_to_params
)
from pdf_service import render_pdf

# Defaults for an editor opened from a saved URL: keep what the user typed,
# but start a missing item list with the editor's own starter row.
EDITOR_URL_DEFAULTS = DocumentDefaults(placeholder_item=EDITOR_DEFAULTS.placeholder_item)

ALLOWED_LOGO_TYPES = {"image/png", "image/jpeg", "image/jpg"}


# -----------------------------
# Helpers
# -----------------------------
def _parse_repeating_fields(titles, qtys, rates):
    out = []
    n = max(len(titles), len(qtys), len(rates))
    for i in range(n):
        title = (titles[i] if i < len(titles) else "").strip()
        qty = (qtys[i] if i < len(qtys) else "").strip()
        rate = (rates[i] if i < len(rates) else "").strip()
        if not title and not qty and not rate:
            continue
        out.append(LineItem(id=new_item_id(), title=title, qty=qty, rate=rate))
    return out


def _logo_from_upload(upload, current: str) -> str:
    """
    Returns the logo data URL to keep: a fresh upload when one was sent and is
    acceptable, otherwise whatever the form already carried.
    """
    if upload is None or not upload.filename:
        return current

    mimetype = (upload.mimetype or "").lower()
    if mimetype not in ALLOWED_LOGO_TYPES:
        flash("Logo must be a PNG or JPG image.", "error")
        return current

    data = upload.read()
    if len(data) > Config.MAX_LOGO_BYTES:
        flash(f"Logo is too large (max {Config.MAX_LOGO_BYTES // 1024} KB).", "error")
        return current

    return f"data:{mimetype};base64,{base64.b64encode(data).decode('ascii')}"


def _record_from_form(form, files):
    params = {key: form.get(key, "") for key in (
        "companyName", "companyEmail", "companyPhone", "companyAddress",
        "customerName", "projectTitle", "taxRate", "notes", "terms", "paymentInfo",
    )}
    logo = "" if form.get("remove_logo") == "1" else (form.get("logoDataUrl") or "")
    params["logoDataUrl"] = _logo_from_upload(files.get("logo"), logo)

    record = record_from_params(params, EDITOR_URL_DEFAULTS)
    items = _parse_repeating_fields(
        form.getlist("item_title"),
        form.getlist("item_qty"),
        form.getlist("item_rate"),
    )
    return record.with_updates(items=tuple(items))


# -----------------------------
# App factory
# -----------------------------
def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    def _session(doc_id):
        return EditorSession(doc_id, JsonFileStore(app.config["DOCUMENT_STORE_PATH"]))

    def _editor_redirect(doc_id, record, **extra):
        query = dict(record_to_params(record), **extra)
        return redirect(f"{url_for('document_edit', doc_id=doc_id)}?{urlencode(query)}")

    # -----------------------------
    # Index
    # -----------------------------
    @app.route("/")
    def index():
        return render_template("index.html", new_id=new_doc_id())

    # -----------------------------
    # Editor
    # -----------------------------
    @app.route("/documents/<doc_id>", methods=["GET", "POST"])
    def document_edit(doc_id):
        if request.method == "POST":
            action = (request.form.get("action") or "export").strip()

            if action == "clear":
                session = _session(doc_id)
                session.clear()
                if session.status is EditorStatus.ERROR:
                    app.logger.warning("Clear failed for %s", doc_id)
                    flash("Could not clear the saved copy.", "error")
                return redirect(url_for("document_edit", doc_id=doc_id))

            record = _record_from_form(request.form, request.files)

            if action == "add_item":
                record = record.with_updates(
                    items=record.items + (LineItem(id=new_item_id(), title="New item", qty="1", rate="0"),)
                )
                return _editor_redirect(doc_id, record)

            if action == "save":
                session = _session(doc_id)
                session.record = record
                if session.save_now():
                    app.logger.info("Saved document %s (%d items)", doc_id, len(record.items))
                else:
                    app.logger.warning("Save failed for %s", doc_id)
                return _editor_redirect(doc_id, session.record, status=session.status.value)

            return redirect(export_url(doc_id, record))

        status = EditorStatus.IDLE
        last_saved = None
        if request.args.get("items") is not None or request.args.get("companyName") is not None:
            record = record_from_params(request.args, EDITOR_URL_DEFAULTS)
            try:
                status = EditorStatus(request.args.get("status") or "idle")
            except ValueError:
                status = EditorStatus.IDLE
        else:
            session = _session(doc_id)
            session.load()
            record = session.record
            status = session.status
            last_saved = session.last_saved

        now_ms = int(time.time() * 1000)
        return render_template(
            "document_form.html",
            doc_id=doc_id,
            record=record,
            totals=compute_totals(record),
            money=money,
            status=status,
            status_label=status_text(status, last_saved, now_ms),
            export_href=export_url(doc_id, record),
        )

    # -----------------------------
    # PDF route
    # -----------------------------
    @app.route("/api/documents/<doc_id>/pdf")
    def document_pdf(doc_id):
        record = record_from_params(request.args)
        try:
            rendered = render_pdf(record, doc_id)
        except Exception:
            app.logger.exception("PDF render failed for %s", doc_id)
            raise

        app.logger.info(
            "Rendered %s: %d page(s), %d item(s), logo=%s",
            doc_id, rendered.page_count, len(record.items), rendered.has_logo,
        )
        return send_file(
            io.BytesIO(rendered.data),
            mimetype="application/pdf",
            as_attachment=False,
            download_name=f"{doc_id}.pdf",
        )

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=True)
