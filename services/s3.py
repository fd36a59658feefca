import logging
import os

import boto3
from botocore.exceptions import ClientError
from fastapi import UploadFile, HTTPException

logger = logging.getLogger(__name__)


class S3AssetStorage:
    def __init__(self, bucket_name: str, client: boto3.client, prefix: str = "assets"):
        """
        Store uploaded pictures in an S3 bucket under ``prefix``
        """
        self.bucket_name = bucket_name
        self.s3 = client
        self.prefix = prefix

    async def upload_file(self, file: UploadFile, max_size_mb: int = 5) -> str:
        """
        Upload a picture to S3, keeping the submitted file name

        Args:
            file: The uploaded file
            max_size_mb: Maximum file size in MB

        Returns:
            The stored file name, usable as a picturePath

        Raises:
            HTTPException: If the upload fails or the file is too large
        """
        filename = os.path.basename(file.filename or "")
        if not filename:
            raise HTTPException(status_code=400, detail="Uploaded file has no name")

        file_content = await file.read()
        if len(file_content) > max_size_mb * 1024 * 1024:
            raise HTTPException(
                status_code=400,
                detail=f"File size exceeds {max_size_mb}MB limit"
            )

        try:
            self.s3.put_object(
                Bucket=self.bucket_name,
                Key=f"{self.prefix}/{filename}",
                Body=file_content,
                ContentType=file.content_type or "application/octet-stream",
            )
        except ClientError as e:
            logger.error("S3 upload error: %s", e)
            raise HTTPException(status_code=500, detail="Failed to upload file")

        return filename
