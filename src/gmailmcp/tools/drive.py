"""Drive tools: download a file, read a document."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ..handlers import endpoint, safe_invoke, to_json
from ..proxy import RequestProxy
from ..registry import ToolRegistry

DOWNLOAD_HINT = (
    "For PowerPoint files, try using the read_document tool with fileType='slides' "
    "or visit the file's web link directly."
)


class DownloadFileParams(BaseModel):
    model_config = ConfigDict(extra="forbid")

    fileId: str = Field(..., description="The Drive file ID to download")
    format: Literal["text", "html", "raw"] = Field(
        default="text", description='Optional format for conversion (e.g., "text", "html")'
    )


class ReadDocumentParams(BaseModel):
    model_config = ConfigDict(extra="forbid")

    fileId: str = Field(..., description="The Drive file ID to read")
    fileType: Literal["doc", "pdf", "slides", "sheet", "auto"] = Field(
        default="auto", description='The type of file (e.g., "doc", "pdf", "slides")'
    )


def register(registry: ToolRegistry, proxy: RequestProxy) -> None:
    async def download_file(params: DownloadFileParams) -> str:
        downloaded = await proxy.request(endpoint("/drive/files/download", fileId=params.fileId, format=params.format))
        if downloaded and downloaded.get("content"):
            return downloaded["content"]
        # No content: fall back to metadata so the caller still gets the web link
        metadata = await proxy.request(endpoint("/drive/files", fileId=params.fileId))
        return (
            f"File metadata retrieved:\n{to_json(metadata)}\n\n"
            "To view this file, use the web link above or try the read_document tool with different fileType options."
        )

    registry.register(
        "download_file",
        "Download a document, presentation, or other file",
        DownloadFileParams,
        safe_invoke(download_file, hint=DOWNLOAD_HINT),
    )

    async def read_document(params: ReadDocumentParams) -> str:
        document = await proxy.request(endpoint("/drive/files/read", fileId=params.fileId, fileType=params.fileType))
        if not document or not document.get("content"):
            return "Could not extract readable content from this document."
        return f"Document Title: {document.get('title') or 'Unknown'}\n\n{document['content']}"

    registry.register(
        "read_document",
        "Process and read content from a document file",
        ReadDocumentParams,
        safe_invoke(read_document),
    )
