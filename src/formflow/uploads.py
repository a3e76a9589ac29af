"""File upload client for file-upload questions.

``HttpFileUploader`` posts the raw bytes as multipart form data together with
``formId``, ``sessionId`` and ``questionId``; the endpoint answers with the
stored file's public URL, name and size, which becomes the answer value.
"""

from __future__ import annotations

import logging
from pathlib import PurePath

import httpx

from formflow.constants import ALLOWED_UPLOAD_EXTENSIONS, HTTP_TIMEOUT
from formflow.errors import UploadRejected
from formflow.interfaces import FileUploader
from formflow.models.session import FileReference

logger = logging.getLogger(__name__)


def check_extension(filename: str, allowed: frozenset[str] = ALLOWED_UPLOAD_EXTENSIONS) -> str:
    """Return the lower-cased extension of ``filename`` or raise ``UploadRejected``."""
    ext = PurePath(filename).suffix.lstrip(".").lower()
    if not ext or ext not in allowed:
        raise UploadRejected(
            f"Invalid file type for {filename!r}. Allowed types: {', '.join(sorted(allowed))}"
        )
    return ext


class HttpFileUploader(FileUploader):
    """Uploads files to ``{base_url}/api/upload``.

    Args:
        base_url: root URL of the upload service
        timeout: request timeout in seconds
        client: optional pre-built client
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = HTTP_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def upload(
        self,
        content: bytes,
        filename: str,
        *,
        form_id: str,
        session_id: str,
        question_id: str,
    ) -> FileReference:
        check_extension(filename)

        response = await self._client.post(
            "/api/upload",
            files={"file": (filename, content)},
            data={
                "formId": form_id,
                "sessionId": session_id,
                "questionId": question_id,
            },
        )
        response.raise_for_status()
        body = response.json()

        reference = FileReference(
            url=body.get("publicUrl") or body["url"],
            name=body.get("fileName") or filename,
            size=int(body.get("fileSize") or len(content)),
        )
        logger.info("Uploaded %s for question %s (%d bytes)", reference.name, question_id, reference.size)
        return reference

    async def aclose(self) -> None:
        await self._client.aclose()
