from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from models.chat import AttachmentType
from routes.auth import require_user
from utils import FOLDER_CHAT, save_upload_file

router = APIRouter(tags=["uploads"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    folder: str = Form(FOLDER_CHAT),
    user: dict = Depends(require_user),
):
    """
    Generic upload proxy. Returns an opaque URL to reference from a chat
    message or profile; the file itself is served under /uploads.
    """
    url = await save_upload_file(file, folder, user["id"])
    is_image = (file.content_type or "").startswith("image/")
    return {
        "file_url": url,
        "content_type": file.content_type,
        "attachment_type": (AttachmentType.IMAGE if is_image else AttachmentType.DOCUMENT).value,
    }
