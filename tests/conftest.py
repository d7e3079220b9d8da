"""
Shared fixtures: a scripted model client, an httpx client factory backed by
MockTransport, and small documents built at test time.
"""
import io
from typing import Any, Callable, List, Optional, Tuple

import docx
import fitz
import httpx
import pytest

from cardforge.core.gemini import ModelReply, SamplingConfig


class FakeModelClient:
    """Records every prompt and answers with a canned reply (or raises)."""

    def __init__(
        self,
        text: Optional[str] = None,
        *,
        reply: Optional[ModelReply] = None,
        exc: Optional[Exception] = None,
    ) -> None:
        self.reply = reply if reply is not None else ModelReply(text=text)
        self.exc = exc
        self.calls: List[Tuple[str, SamplingConfig]] = []

    async def generate_content(self, prompt: str, config: SamplingConfig) -> ModelReply:
        self.calls.append((prompt, config))
        if self.exc is not None:
            raise self.exc
        return self.reply

    @property
    def last_prompt(self) -> str:
        return self.calls[-1][0]


@pytest.fixture
def fake_model():
    return FakeModelClient


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], Any]], httpx.AsyncClient]:
    """Build an AsyncClient whose requests are answered by `handler`."""

    def _make(handler: Callable[[httpx.Request], Any]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def pdf_bytes() -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Photosynthesis converts light into chemical energy.")
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def encrypted_pdf_bytes() -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Top secret lecture notes.")
    data = doc.tobytes(
        encryption=fitz.PDF_ENCRYPT_AES_256,
        owner_pw="owner-pass",
        user_pw="user-pass",
    )
    doc.close()
    return data


@pytest.fixture
def docx_bytes() -> bytes:
    document = docx.Document()
    document.add_paragraph("The mitochondria is the powerhouse of the cell.")
    document.add_paragraph("   ")
    document.add_paragraph("Ribosomes build proteins.")
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "ATP"
    table.rows[0].cells[1].text = "energy currency"
    buf = io.BytesIO()
    document.save(buf)
    return buf.getvalue()
