import logging
import os
from pathlib import Path

import boto3
from botocore.config import Config
from fastapi import UploadFile, HTTPException
from starlette.concurrency import run_in_threadpool

from config import Settings
from services.s3 import S3AssetStorage

logger = logging.getLogger(__name__)


class LocalAssetStorage:
    """Keep uploaded pictures on local disk, served back under /assets"""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    async def upload_file(self, file: UploadFile, max_size_mb: int = 5) -> str:
        # the submitted name is kept as is, so a second upload with the same name overwrites the first
        filename = os.path.basename(file.filename or "")
        if not filename:
            raise HTTPException(status_code=400, detail="Uploaded file has no name")

        file_content = await file.read()
        if len(file_content) > max_size_mb * 1024 * 1024:
            raise HTTPException(
                status_code=400,
                detail=f"File size exceeds {max_size_mb}MB limit"
            )

        target = self.directory / filename
        await run_in_threadpool(self._write, target, file_content)
        logger.info("Stored upload %s (%d bytes)", target, len(file_content))
        return filename

    def _write(self, target: Path, content: bytes):
        self.directory.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)


def create_storage(settings: Settings):
    """Build the asset storage selected by ASSET_STORAGE"""
    if settings.asset_storage == "s3":
        if not settings.s3_bucket_name:
            raise ValueError("S3_BUCKET_NAME must be set when ASSET_STORAGE=s3")
        client = boto3.client(
            's3',
            aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY"),
            region_name=settings.aws_region,
            config=Config(signature_version="s3v4")
        )
        return S3AssetStorage(settings.s3_bucket_name, client)
    if settings.asset_storage != "local":
        raise ValueError(f"Unknown ASSET_STORAGE '{settings.asset_storage}'")
    return LocalAssetStorage(settings.assets_dir)
