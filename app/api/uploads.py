"""Staging of multipart uploads on local disk."""

import logging
import uuid
from pathlib import Path

from fastapi import UploadFile

from app.envelope import ApiError

logger = logging.getLogger(__name__)

UPLOAD_CHUNK_SIZE = 1024 * 1024  # 1 MB


async def stage_upload(file: UploadFile, upload_dir: str | Path, max_size: int) -> Path:
    """
    Stream an upload to a uniquely named file under upload_dir.

    Returns the path of the staged file. The caller is responsible for
    removing it.

    Raises:
        ApiError: 413 if the upload exceeds max_size, 500 on storage errors
    """
    directory = Path(upload_dir)
    directory.mkdir(parents=True, exist_ok=True)
    suffix = Path(file.filename or "").suffix.lower()
    upload_path = directory / f"{uuid.uuid4().hex}{suffix}"

    total_size = 0
    try:
        with open(upload_path, "wb") as f:
            while True:
                chunk = await file.read(UPLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                total_size += len(chunk)
                if total_size > max_size:
                    f.close()
                    upload_path.unlink(missing_ok=True)
                    raise ApiError(
                        status=413,
                        message=f"File too large. Maximum upload size is {max_size} bytes",
                    )
                f.write(chunk)
    except OSError as e:
        upload_path.unlink(missing_ok=True)
        logger.warning(f"Storage error while staging upload to {upload_path}: {e}")
        raise ApiError(status=500, message="Unable to store uploaded file")

    return upload_path
