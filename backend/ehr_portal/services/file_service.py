import os
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from html import escape
from typing import Optional
import aiofiles
from fastapi import UploadFile
from ehr_portal.exceptions import InvalidArgument, NotFound
from ehr_portal.schemas.file import StoredFile

ALLOWED_MIME_TYPES = {
    "image/jpeg", "image/png", "image/gif", "image/bmp", "image/webp",
    "application/pdf",
    "text/plain",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp"}

# Hashes handed out by the old IPFS mock; the bytes were never kept.
LEGACY_HASH_PREFIX = "QmMockHash"

LEGACY_SVG = """<?xml version="1.0" encoding="UTF-8"?>
<svg width="400" height="300" xmlns="http://www.w3.org/2000/svg">
  <rect width="100%" height="100%" fill="#1e40af" />
  <text x="200" y="130" text-anchor="middle" fill="white" font-family="Arial" font-size="20">Medical Document</text>
  <text x="200" y="160" text-anchor="middle" fill="white" font-family="Arial" font-size="16">{file_name}</text>
  <text x="200" y="190" text-anchor="middle" fill="white" font-family="Arial" font-size="12">Legacy File</text>
  <text x="200" y="210" text-anchor="middle" fill="white" font-family="Arial" font-size="10">Please re-upload for full functionality</text>
</svg>"""

LEGACY_TEXT = """Legacy Medical Document

File: {file_name}
Original Hash: {file_hash}

This file was uploaded using the previous system.
Please re-upload this file to view the original content."""


@dataclass
class ResolvedFile:
    media_type: str
    path: Optional[str] = None
    content: Optional[str] = None


class FileService:
    async def store(self, file: UploadFile, upload_dir: str, max_bytes: int) -> StoredFile:
        if file.content_type not in ALLOWED_MIME_TYPES:
            raise InvalidArgument("Invalid file type. Only images, PDFs, and documents are allowed.")
        content = await file.read(max_bytes + 1)
        if len(content) > max_bytes:
            raise InvalidArgument(f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB")

        original_name = self._clean_name(file.filename)
        file_hash = f"{int(time.time() * 1000)}_{secrets.token_hex(6)}_{original_name}"
        os.makedirs(upload_dir, exist_ok=True)
        async with aiofiles.open(os.path.join(upload_dir, file_hash), "wb") as f:
            await f.write(content)

        return StoredFile(
            file_name=original_name,
            file_hash=file_hash,
            upload_date=datetime.now(timezone.utc),
        )

    def resolve(self, file_hash: str, upload_dir: str) -> ResolvedFile:
        if file_hash.startswith(LEGACY_HASH_PREFIX):
            return self._legacy_placeholder(file_hash)

        if not file_hash or os.path.basename(file_hash) != file_hash or file_hash in (".", ".."):
            raise NotFound("File not found")
        path = os.path.join(upload_dir, file_hash)
        if not os.path.isfile(path):
            raise NotFound("File not found")
        return ResolvedFile(media_type=self._guess_type(file_hash), path=path)

    def _legacy_placeholder(self, file_hash: str) -> ResolvedFile:
        file_name = file_hash.split("_")[-1] or "unknown.png"
        ext = os.path.splitext(file_name)[1].lower()
        if ext in IMAGE_EXTENSIONS:
            return ResolvedFile(media_type="image/svg+xml", content=LEGACY_SVG.format(file_name=escape(file_name)))
        return ResolvedFile(
            media_type="text/plain",
            content=LEGACY_TEXT.format(file_name=file_name, file_hash=file_hash),
        )

    def _clean_name(self, filename: Optional[str]) -> str:
        name = os.path.basename((filename or "").replace("\\", "/")).strip()
        return name or "upload"

    def _guess_type(self, filename: str) -> str:
        ext = os.path.splitext(filename)[1].lower()
        return MIME_TYPES.get(ext, "application/octet-stream")


file_service = FileService()
