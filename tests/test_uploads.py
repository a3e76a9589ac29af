"""Tests for the HTTP file uploader."""

import httpx
import pytest

from formflow.errors import UploadRejected
from formflow.uploads import HttpFileUploader, check_extension


class TestExtensionCheck:

    @pytest.mark.parametrize("name", ["cv.pdf", "photo.JPG", "notes.txt", "a.b.docx"])
    def test_allowed(self, name):
        check_extension(name)

    @pytest.mark.parametrize("name", ["virus.exe", "archive.zip", "noext", ".pdf"])
    def test_rejected(self, name):
        with pytest.raises(UploadRejected, match="Invalid file type"):
            check_extension(name)

    def test_custom_allow_list(self):
        assert check_extension("data.csv", frozenset({"csv"})) == "csv"


class TestHttpFileUploader:

    def _uploader(self, handler):
        client = httpx.AsyncClient(
            base_url="https://files.example.com",
            transport=httpx.MockTransport(handler),
        )
        return HttpFileUploader("https://files.example.com", client=client)

    @pytest.mark.asyncio
    async def test_upload_returns_reference(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={
                "success": True,
                "publicUrl": "https://cdn.example.com/f1/cv.pdf",
                "fileName": "cv.pdf",
                "fileSize": 1234,
            })

        uploader = self._uploader(handler)
        ref = await uploader.upload(b"%PDF-1.4", "cv.pdf", form_id="f1", session_id="s1", question_id="cv")
        await uploader.aclose()

        assert ref.url == "https://cdn.example.com/f1/cv.pdf"
        assert ref.name == "cv.pdf"
        assert ref.size == 1234
        assert seen[0].url.path == "/api/upload"
        body = seen[0].content
        assert b'name="formId"' in body
        assert b"%PDF-1.4" in body

    @pytest.mark.asyncio
    async def test_disallowed_extension_never_sent(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        uploader = self._uploader(handler)
        with pytest.raises(UploadRejected):
            await uploader.upload(b"MZ", "tool.exe", form_id="f1", session_id="s1", question_id="cv")
        assert seen == []

    @pytest.mark.asyncio
    async def test_server_error_raises(self):
        uploader = self._uploader(lambda request: httpx.Response(500))
        with pytest.raises(httpx.HTTPStatusError):
            await uploader.upload(b"x", "a.txt", form_id="f1", session_id="s1", question_id="q")
