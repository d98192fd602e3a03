# config.py
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent

class Config:
    # Flask
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-change-me")

    # PDF rendering
    # Right-hand footer text stamped on every page.
    PDF_BRAND_TEXT = os.getenv("PDF_BRAND_TEXT", "Generated with QuickDocs")
    # Invariant mode pins the creation date and document ID so identical
    # input renders byte-identical output.
    PDF_INVARIANT = os.getenv("PDF_INVARIANT", "1") == "1"

    # PDF export storage (CLI exports)
    EXPORTS_DIR = os.getenv("EXPORTS_DIR", (BASE_DIR / "exports").as_posix())

    # Editor persistence (a localStorage-shaped JSON file)
    DOCUMENT_STORE_PATH = os.getenv(
        "DOCUMENT_STORE_PATH",
        (BASE_DIR / "instance" / "documents.json").as_posix()
    )
    RECENT_LIMIT = int(os.getenv("RECENT_LIMIT", "12"))

    # Editor UI
    STATUS_FLASH_SECONDS = float(os.getenv("STATUS_FLASH_SECONDS", "1.2"))
    # Logos travel inside the export URL, keep them small.
    MAX_LOGO_BYTES = int(os.getenv("MAX_LOGO_BYTES", str(200 * 1024)))
