import logging
import os
import re
from datetime import datetime

import aiofiles  # async file IO, large uploads do not block the event loop
from fastapi import UploadFile

import config
from errors import ValidationError

logger = logging.getLogger(__name__)

# --- 1. Upload sub-folders ---
# Everything lives under config.UPLOAD_ROOT and is served at /uploads
FOLDER_AVATARS = "avatars"
FOLDER_PORTFOLIO = "portfolio"
FOLDER_DOCUMENTS = "documents"
FOLDER_CHAT = "chat"

UPLOAD_FOLDERS = (FOLDER_AVATARS, FOLDER_PORTFOLIO, FOLDER_DOCUMENTS, FOLDER_CHAT)

CHUNK_SIZE = 64 * 1024

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def setup_upload_directories():
    """Create the upload root and its sub-folders (safe to call repeatedly)."""
    for folder in UPLOAD_FOLDERS:
        os.makedirs(os.path.join(config.UPLOAD_ROOT, folder), exist_ok=True)


def safe_filename(filename: str | None) -> str:
    """
    Reduce a client filename to something safe to put on disk.
    Path parts are dropped and anything outside [A-Za-z0-9._-] becomes "_".
    """
    name = os.path.basename((filename or "").replace("\\", "/"))
    name = _UNSAFE.sub("_", name).strip("._")
    return name or "file"


async def save_upload_file(file: UploadFile, sub_folder: str, owner_id: str) -> str:
    """
    Stream an upload to disk and return its public URL.

    1. The sub-folder must be one of UPLOAD_FOLDERS.
    2. The stored name is <timestamp>_<owner>_<sanitised name>, so two users
       uploading "photo.jpg" never overwrite each other.
    3. Written in chunks with aiofiles; anything over MAX_UPLOAD_BYTES is
       removed and rejected.
    """
    if sub_folder not in UPLOAD_FOLDERS:
        raise ValidationError(f"Unknown upload folder: {sub_folder}")

    # --- 1. Target path ---
    target_dir = os.path.join(config.UPLOAD_ROOT, sub_folder)
    os.makedirs(target_dir, exist_ok=True)

    # --- 2. File name ---
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    new_filename = f"{timestamp}_{safe_filename(owner_id)}_{safe_filename(file.filename)}"
    file_path = os.path.join(target_dir, new_filename)

    # --- 3. Streamed write ---
    written = 0
    async with aiofiles.open(file_path, "wb") as out_file:
        while content := await file.read(CHUNK_SIZE):
            written += len(content)
            if written > config.MAX_UPLOAD_BYTES:
                break
            await out_file.write(content)

    if written > config.MAX_UPLOAD_BYTES:
        os.remove(file_path)
        logger.warning("Upload %s from %s rejected: over %d bytes", file.filename, owner_id, config.MAX_UPLOAD_BYTES)
        raise ValidationError("File is too large")

    logger.info("Stored upload %s/%s (%d bytes)", sub_folder, new_filename, written)
    # URL always uses "/" whatever the OS separator is
    return f"/uploads/{sub_folder}/{new_filename}"
