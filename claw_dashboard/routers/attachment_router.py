from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from ..dependencies import get_attachment_service
from ..schemas.attachment import AttachmentInfo, DeleteAttachmentResponse, UploadAttachmentRequest
from ..security import require_token
from ..services.attachment_service import AttachmentService

router = APIRouter(
    prefix="/tasks/{task_id}/attachments",
    tags=["Attachments"],
    dependencies=[Depends(require_token)],
)

AttachmentServiceDep = Annotated[AttachmentService, Depends(get_attachment_service)]


@router.get("", response_model=List[AttachmentInfo])
async def list_attachments(task_id: str, svc: AttachmentServiceDep):
    """List a task's attachments, newest first."""
    return await svc.list_attachments(task_id)


@router.post("", response_model=AttachmentInfo, status_code=201)
async def upload_attachment(task_id: str, req: UploadAttachmentRequest, svc: AttachmentServiceDep):
    """Attach a file from base64 ``data`` or copy a server-local ``filePath``."""
    return await svc.upload(task_id, req)


@router.get("/{filename}")
async def get_attachment(
    task_id: str,
    filename: str,
    svc: AttachmentServiceDep,
    download: Optional[str] = None,
):
    """Serve the raw file; ``?download=1`` asks the browser to save it."""
    info, path = await svc.open_attachment(task_id, filename)
    headers = {"Cache-Control": "public, max-age=3600"}
    if download == "1":
        headers["Content-Disposition"] = f'attachment; filename="{info.name}"'
    return FileResponse(path, media_type=info.mime, headers=headers)


@router.delete("/{filename}", response_model=DeleteAttachmentResponse)
async def delete_attachment(task_id: str, filename: str, svc: AttachmentServiceDep):
    return DeleteAttachmentResponse(deleted=await svc.delete(task_id, filename))
