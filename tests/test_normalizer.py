"""
Unit tests for input specs and the content normalizer.
"""
import httpx
import pytest

from cardforge.core.errors import ErrorKind, InputError, UnsupportedTypeError
from cardforge.ingestion.inputs import (
    InlineText,
    RemoteDocument,
    UploadedFile,
    build_input_spec,
)
from cardforge.ingestion.normalizer import normalize
from cardforge.ingestion.parser import MEDIA_DOCX, MEDIA_PDF, MEDIA_TXT


class TestInputSpec:
    """Tests for InputSpec construction and form mapping."""

    @pytest.mark.parametrize("content", ["", "   ", "\n\t"])
    def test_blank_inline_text_rejected(self, content):
        with pytest.raises(InputError):
            InlineText(content=content)

    def test_blank_url_rejected(self):
        with pytest.raises(InputError):
            RemoteDocument(url="  ")

    def test_empty_file_rejected(self):
        with pytest.raises(InputError):
            UploadedFile(data=b"", media_type=MEDIA_TXT, filename="empty.txt")

    def test_build_text(self):
        spec = build_input_spec("text", text="Some text", url="http://ignored.example.com")
        assert spec == InlineText(content="Some text")

    def test_build_url_trims(self):
        assert build_input_spec("url", url="  https://example.com/a  ") == RemoteDocument(url="https://example.com/a")

    def test_build_file_requires_upload(self):
        with pytest.raises(InputError) as exc:
            build_input_spec("file")
        assert "Datei" in exc.value.message

    def test_build_file(self):
        upload = UploadedFile(data=b"abc", media_type=MEDIA_TXT, filename="a.txt")
        assert build_input_spec("file", upload=upload) is upload

    @pytest.mark.parametrize("input_type", [None, "", "image", "texts"])
    def test_unknown_input_type(self, input_type):
        with pytest.raises(InputError) as exc:
            build_input_spec(input_type, text="hello")
        assert exc.value.kind is ErrorKind.INVALID_INPUT


class TestNormalize:
    """Tests for normalize() dispatch."""

    @pytest.mark.asyncio
    async def test_inline_text_is_trimmed(self):
        result = await normalize(InlineText(content="  The mitochondria is the powerhouse of the cell.\n"))
        assert result.text == "The mitochondria is the powerhouse of the cell."
        assert not result.is_skipped

    @pytest.mark.asyncio
    async def test_inline_text_is_idempotent(self):
        spec = InlineText(content="  same input twice ")
        first = await normalize(spec)
        second = await normalize(spec)
        assert first == second

    @pytest.mark.parametrize("text", ["plain", "  keep the whitespace  \n", "Grüße aus Köln"])
    @pytest.mark.asyncio
    async def test_plain_text_upload_is_exact_decoding(self, text):
        data = text.encode("utf-8")
        result = await normalize(UploadedFile(data=data, media_type=MEDIA_TXT, filename="n.txt"))
        assert result.text == data.decode("utf-8")
        assert result.source == "n.txt"

    @pytest.mark.asyncio
    async def test_pdf_upload(self, pdf_bytes):
        result = await normalize(UploadedFile(data=pdf_bytes, media_type=MEDIA_PDF, filename="bio.pdf"))
        assert "Photosynthesis" in result.text

    @pytest.mark.asyncio
    async def test_docx_upload(self, docx_bytes):
        result = await normalize(UploadedFile(data=docx_bytes, media_type=MEDIA_DOCX, filename="cell.docx"))
        assert "powerhouse" in result.text

    @pytest.mark.asyncio
    async def test_unsupported_media_type_is_rechecked(self):
        with pytest.raises(UnsupportedTypeError) as exc:
            await normalize(UploadedFile(data=b"{}", media_type="application/json", filename="x.json"))
        assert "application/json" in exc.value.message

    @pytest.mark.asyncio
    async def test_binary_url_without_network(self, mock_http):
        def handler(request):
            raise AssertionError("network must not be touched")

        async with mock_http(handler) as client:
            result = await normalize(RemoteDocument(url="http://example.com/movie.mp4"), http_client=client)
        assert "movie.mp4" in result.text
        assert result.is_skipped

    @pytest.mark.asyncio
    async def test_url_uses_injected_client(self, mock_http):
        def handler(request):
            return httpx.Response(
                200,
                headers={"content-type": "text/html"},
                text="<html><body><article>Remote article body</article></body></html>",
            )

        async with mock_http(handler) as client:
            result = await normalize(RemoteDocument(url="https://example.com/a"), http_client=client)
        assert result.text == "Remote article body"
        assert result.source == "https://example.com/a"
