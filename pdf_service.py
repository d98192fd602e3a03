# pdf_service.py
import base64
import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from PIL import Image
from reportlab.pdfgen import canvas
from reportlab.lib.utils import ImageReader

from config import Config
from models import DocumentRecord
from pdf_layout import (
    GEOMETRY,
    DrawImage,
    DrawLine,
    DrawRect,
    DrawText,
    LogoSize,
    layout_document,
)

logger = logging.getLogger(__name__)

# Inline logo prefixes we accept, mapped to the format Pillow must detect.
_LOGO_PREFIXES = (
    ("data:image/png;base64,", "PNG"),
    ("data:image/jpeg;base64,", "JPEG"),
    ("data:image/jpg;base64,", "JPEG"),
)


def _safe_filename(name: str) -> str:
    # strip characters not allowed on Windows/mac paths
    return re.sub(r'[\\/*?:"<>|]', "", (name or "")).strip() or "document"


@dataclass(frozen=True)
class EmbeddedLogo:
    image: ImageReader
    width: int
    height: int

    def size(self) -> LogoSize:
        return LogoSize(self.width, self.height)


def decode_logo(logo_data_url: str | None) -> EmbeddedLogo | None:
    """
    Decode an inline base64 PNG/JPEG. Unknown prefixes, bad base64 and corrupt
    or mislabelled image bytes all mean "no logo"; this never raises.
    """
    if not logo_data_url or not logo_data_url.startswith("data:image/"):
        return None

    expected = next((fmt for prefix, fmt in _LOGO_PREFIXES if logo_data_url.startswith(prefix)), None)
    if expected is None:
        return None

    try:
        raw = base64.b64decode(logo_data_url.split(",", 1)[1])
        with Image.open(io.BytesIO(raw)) as probe:
            if probe.format != expected:
                raise ValueError(f"declared {expected}, got {probe.format}")
            probe.verify()

        # verify() leaves the image unusable; decode it again for drawing
        img = Image.open(io.BytesIO(raw))
        img.load()
        iw, ih = img.size
        if not iw or not ih:
            return None
        return EmbeddedLogo(ImageReader(img), iw, ih)
    except Exception as e:
        logger.debug("Ignoring unusable logo: %r", e)
        return None


def _draw(pdf: canvas.Canvas, cmd, logo: EmbeddedLogo | None) -> None:
    if isinstance(cmd, DrawText):
        pdf.setFont(cmd.font, cmd.size)
        pdf.setFillColorRGB(*cmd.color)
        pdf.drawString(cmd.x, cmd.y, cmd.text)
    elif isinstance(cmd, DrawRect):
        pdf.setFillColorRGB(*cmd.fill)
        if cmd.stroke is not None:
            pdf.setStrokeColorRGB(*cmd.stroke)
            pdf.setLineWidth(cmd.line_width)
        pdf.rect(cmd.x, cmd.y, cmd.width, cmd.height, stroke=1 if cmd.stroke is not None else 0, fill=1)
    elif isinstance(cmd, DrawLine):
        pdf.setStrokeColorRGB(*cmd.color)
        pdf.setLineWidth(cmd.thickness)
        pdf.line(cmd.x1, cmd.y1, cmd.x2, cmd.y2)
    elif isinstance(cmd, DrawImage):
        if logo is not None:
            pdf.drawImage(logo.image, cmd.x, cmd.y, width=cmd.width, height=cmd.height, mask="auto")
    else:
        raise TypeError(f"Unknown draw command: {cmd!r}")


@dataclass(frozen=True)
class RenderedPdf:
    data: bytes
    page_count: int
    has_logo: bool


def render_pdf(
    record: DocumentRecord,
    doc_id: str,
    *,
    brand_text: str | None = None,
    invariant: bool | None = None,
) -> RenderedPdf:
    """
    Lays out the record and replays the layout onto a reportlab canvas.
    Errors other than a bad logo propagate to the caller.
    """
    logo = decode_logo(record.logo_data_url)
    layout = layout_document(
        record,
        doc_id,
        logo=logo.size() if logo else None,
        brand_text=brand_text if brand_text is not None else Config.PDF_BRAND_TEXT,
    )

    buf = io.BytesIO()
    pdf = canvas.Canvas(
        buf,
        pagesize=(GEOMETRY.page_w, GEOMETRY.page_h),
        invariant=int(Config.PDF_INVARIANT if invariant is None else invariant),
    )
    pdf.setTitle(f"{record.project_title} - {doc_id}")
    pdf.setAuthor(record.company_name)

    for page in layout.pages:
        for cmd in page.commands:
            _draw(pdf, cmd, logo)
        pdf.showPage()
    pdf.save()

    return RenderedPdf(data=buf.getvalue(), page_count=layout.page_count, has_logo=logo is not None)


def render_pdf_bytes(record: DocumentRecord, doc_id: str, **kwargs) -> bytes:
    return render_pdf(record, doc_id, **kwargs).data


def write_pdf(record: DocumentRecord, doc_id: str, out_dir: str | Path | None = None) -> Path:
    """
    Renders and saves <doc_id>.pdf under out_dir (default Config.EXPORTS_DIR).
    Returns the path on disk.
    """
    target_dir = Path(out_dir or Config.EXPORTS_DIR)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / f"{_safe_filename(doc_id)}.pdf"
    path.write_bytes(render_pdf_bytes(record, doc_id))
    return path
