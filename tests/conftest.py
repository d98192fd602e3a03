from __future__ import annotations

import base64
import io

import pytest
from PIL import Image

from app import create_app


@pytest.fixture()
def app(tmp_path):
    app = create_app()
    app.config.update(TESTING=True, DOCUMENT_STORE_PATH=str(tmp_path / "documents.json"))
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def logo_data_url():
    def make(fmt: str = "PNG", size=(40, 20), prefix: str | None = None) -> str:
        buf = io.BytesIO()
        Image.new("RGB", size, (200, 30, 30)).save(buf, format=fmt)
        mime = {"PNG": "image/png", "JPEG": "image/jpeg", "GIF": "image/gif"}[fmt]
        head = prefix or f"data:{mime};base64,"
        return head + base64.b64encode(buf.getvalue()).decode("ascii")

    return make
