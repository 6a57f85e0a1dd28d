"""
Routes/endpoints for the Files API

HTTP   URI                 Action
----   ---                 ------
POST   /upload             Upload a file, returns its download URL
GET    /[identifier]       Download a live file
"""

from collections.abc import Iterator
from typing import BinaryIO
from urllib.parse import quote
from fastapi import APIRouter, File, Form, Request, UploadFile, status
from fastapi.responses import StreamingResponse

from api.content.services import ResolvedFile
from api.files.models import FileUploadPublic
from core.blobs import CHUNK_SIZE
from core.deps import ContentServiceDep
from core.utils import public_url

router = APIRouter(tags=["File Endpoints"])


def _iter_blob(stream: BinaryIO) -> Iterator[bytes]:
    with stream:
        while chunk := stream.read(CHUNK_SIZE):
            yield chunk


def _content_disposition(resolved: ResolvedFile) -> str:
    disposition = "inline" if resolved.inline else "attachment"
    return f"{disposition}; filename*=UTF-8''{quote(resolved.display_name)}"


@router.post(
    "/upload",
    response_model=FileUploadPublic,
    status_code=status.HTTP_201_CREATED,
)
def upload_file(
    request: Request,
    service: ContentServiceDep,
    file: UploadFile = File(..., description="File to store"),
    long: bool = Form(False, description="Keep the file for the long expiry period"),
) -> FileUploadPublic:
    """
    Store a file and return the URL it can be downloaded from until it expires.
    """
    issued = service.upload(
        filename=file.filename,
        content=file.file,
        wants_long_expiry=long,
    )
    base_url = service.settings.PUBLIC_BASE_URL or str(request.base_url)
    return FileUploadPublic(
        identifier=issued.identifier,
        url=public_url(base_url, issued.path),
        expires_at=issued.expires_at,
    )


@router.get("/{identifier}")
def download_file(identifier: str, service: ContentServiceDep) -> StreamingResponse:
    """
    Stream a live file. Unknown and expired identifiers both return 404.
    """
    resolved = service.resolve_file(identifier)
    return StreamingResponse(
        _iter_blob(resolved.stream),
        media_type=resolved.content_type,
        headers={"Content-Disposition": _content_disposition(resolved)},
    )
