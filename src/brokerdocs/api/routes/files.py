"""File routes for one document category.

One router per category, mounted at the category's route prefix
(``/api/v1/licenses/files`` for licenses, ``/api/v1/files`` for policies):

- POST   {prefix}/{owner_id}                         (upload)
- GET    {prefix}/{owner_id}                         (list file names)
- GET    {prefix}/{owner_id}/{file_name}             (inline view)
- GET    {prefix}/{owner_id}/{file_name}/url         (signed URL)
- GET    {prefix}/{owner_id}/{file_name}/download    (attachment download)
- DELETE {prefix}/{owner_id}/{file_name}             (delete one file)
"""

from __future__ import annotations

from fastapi import APIRouter, File, Form, Response, UploadFile
from pydantic import BaseModel

from brokerdocs.api.dependencies import RequireStorageServices
from brokerdocs.api.errors import ApiHttpError
from brokerdocs.services.documents import DocumentStorageService, content_disposition
from brokerdocs.services.registry import DocumentCategory

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB
ALLOWED_MIME_TYPES = frozenset({"application/pdf", "image/jpeg", "image/jpg", "image/png"})


class StoredDocumentResponse(BaseModel):
    """Descriptor returned after an upload."""

    file_id: str
    key: str
    file_name: str
    mime_type: str
    display_url: str
    size_bytes: int | None = None
    uploaded_at: str | None = None


class FileListResponse(BaseModel):
    owner_id: str
    files: list[str]


class SignedUrlData(BaseModel):
    url: str
    expires_in: int


class SignedUrlResponse(BaseModel):
    status: str = "success"
    data: SignedUrlData


def _too_large() -> ApiHttpError:
    return ApiHttpError(
        status_code=413,
        code="PAYLOAD_TOO_LARGE",
        message=f"File exceeds the {MAX_FILE_SIZE // (1024 * 1024)} MB limit",
    )


def build_files_router(category: DocumentCategory) -> APIRouter:
    """Create the file router of one document category."""
    router = APIRouter(prefix=category.route_prefix, tags=[f"Files: {category.name}"])

    def _documents(services: RequireStorageServices) -> DocumentStorageService:
        return services.documents(category.name)

    @router.post("/{owner_id}", status_code=201, response_model=StoredDocumentResponse)
    async def upload_file(
        owner_id: str,
        services: RequireStorageServices,
        file: UploadFile = File(...),
        file_name: str | None = Form(default=None),
    ) -> StoredDocumentResponse:
        """Upload one file into the owner's folder.

        Only PDF, JPEG and PNG up to 10 MiB are accepted. An existing file
        with the same name is overwritten.
        """
        mime_type = file.content_type or "application/octet-stream"
        if mime_type not in ALLOWED_MIME_TYPES:
            raise ApiHttpError(
                status_code=415,
                code="UNSUPPORTED_MEDIA_TYPE",
                message=f"Invalid file type: {mime_type}. Allowed types: PDF, JPG, JPEG, PNG",
            )

        if file.size is not None and file.size > MAX_FILE_SIZE:
            raise _too_large()
        content = await file.read(MAX_FILE_SIZE + 1)
        if len(content) > MAX_FILE_SIZE:
            raise _too_large()

        name = file_name or file.filename
        if not name:
            raise ApiHttpError(status_code=400, code="BAD_REQUEST", message="File name is required")

        stored = await _documents(services).upload(content, name, mime_type, owner_id)
        return StoredDocumentResponse.model_validate(stored.to_dict())

    @router.get("/{owner_id}", response_model=FileListResponse)
    async def list_files(owner_id: str, services: RequireStorageServices) -> FileListResponse:
        """List the names of every file in the owner's folder."""
        files = await _documents(services).list_files(owner_id)
        return FileListResponse(owner_id=owner_id, files=files)

    @router.get("/{owner_id}/{file_name}")
    async def view_file(owner_id: str, file_name: str, services: RequireStorageServices) -> Response:
        """Stream a file for inline viewing."""
        documents = _documents(services)
        key = documents.key_for(owner_id, file_name)
        info = await documents.get_metadata(key)
        content = await documents.download(key)
        return Response(
            content=content,
            media_type=info.content_type,
            headers={
                "Content-Disposition": content_disposition("inline", file_name),
                "Cache-Control": "private, max-age=3600",
            },
        )

    @router.get("/{owner_id}/{file_name}/url", response_model=SignedUrlResponse)
    async def get_file_url(
        owner_id: str,
        file_name: str,
        services: RequireStorageServices,
        download: bool = False,
    ) -> SignedUrlResponse:
        """Return a temporary signed URL for the file."""
        documents = _documents(services)
        key = documents.key_for(owner_id, file_name)
        if not await documents.exists(key):
            raise ApiHttpError(status_code=404, code="NOT_FOUND", message="File not found")

        if download:
            url = await documents.download_url(key, file_name)
        else:
            url = await documents.presign(key)
        return SignedUrlResponse(
            data=SignedUrlData(url=url, expires_in=documents.default_ttl_seconds)
        )

    @router.get("/{owner_id}/{file_name}/download")
    async def download_file(
        owner_id: str,
        file_name: str,
        services: RequireStorageServices,
        name: str | None = None,
    ) -> Response:
        """Stream a file as an attachment, optionally under another name."""
        documents = _documents(services)
        key = documents.key_for(owner_id, file_name)
        info = await documents.get_metadata(key)
        content = await documents.download(key)
        return Response(
            content=content,
            media_type=info.content_type,
            headers={
                "Content-Disposition": content_disposition("attachment", name or file_name),
                "Cache-Control": "private, no-cache",
            },
        )

    @router.delete("/{owner_id}/{file_name}", status_code=204)
    async def delete_file(owner_id: str, file_name: str, services: RequireStorageServices) -> Response:
        """Delete one file. Deleting a missing file succeeds."""
        documents = _documents(services)
        await documents.delete(documents.key_for(owner_id, file_name))
        return Response(status_code=204)

    return router
