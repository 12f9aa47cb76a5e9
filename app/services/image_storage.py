import os
import uuid
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import boto3
from botocore.exceptions import ClientError, NoCredentialsError
from dotenv import load_dotenv
from fastapi import HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

load_dotenv()

logger = logging.getLogger(__name__)

MIME_TYPE_MAP = {
    "image/png": "png",
    "image/jpeg": "jpeg",
    "image/jpg": "jpg",
}
MAX_IMAGE_SIZE = int(os.getenv("MAX_IMAGE_SIZE", "500000"))
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads/images")


async def read_image(upload: UploadFile) -> bytes:
    """
    Read an uploaded image, rejecting unsupported types and oversized files with 422.
    """
    if upload.content_type not in MIME_TYPE_MAP:
        raise HTTPException(status_code=422, detail="Invalid image. Supported types: png, jpg, jpeg")
    content = await upload.read()
    if not content or len(content) > MAX_IMAGE_SIZE:
        raise HTTPException(
            status_code=422,
            detail=f"Invalid image. Maximum size: {MAX_IMAGE_SIZE // 1000}KB",
        )
    return content


class LocalImageStorage:
    def __init__(self, upload_dir: Optional[str] = None):
        self.upload_dir = Path(upload_dir or UPLOAD_DIR)

    async def save(self, content: bytes, content_type: str) -> str:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        path = self.upload_dir / f"{uuid.uuid4()}.{MIME_TYPE_MAP[content_type]}"
        try:
            await run_in_threadpool(path.write_bytes, content)
        except OSError as e:
            logger.error(f"[STORAGE] Could not write {path}: {e}")
            raise HTTPException(status_code=500, detail="Failed to store image")
        return path.as_posix()

    async def delete(self, ref: str) -> None:
        await run_in_threadpool(Path(ref).unlink)


class S3ImageStorage:
    def __init__(self):
        self.bucket_name = os.getenv("AWS_S3_BUCKET_NAME")
        self.region = os.getenv("AWS_REGION", "us-east-1")

        if not self.bucket_name:
            raise ValueError("AWS_S3_BUCKET_NAME environment variable is required")

        try:
            self.s3_client = boto3.client(
                "s3",
                aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
                aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
                region_name=self.region,
            )
        except NoCredentialsError:
            raise ValueError("AWS credentials not found. Please set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY")

    async def save(self, content: bytes, content_type: str) -> str:
        s3_key = f"images/{uuid.uuid4()}.{MIME_TYPE_MAP[content_type]}"
        try:
            await run_in_threadpool(
                self.s3_client.put_object,
                Bucket=self.bucket_name,
                Key=s3_key,
                Body=content,
                ContentType=content_type,
            )
        except ClientError as e:
            logger.error(f"[STORAGE] S3 upload error: {e}")
            raise HTTPException(status_code=500, detail="Failed to store image")
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{s3_key}"

    async def delete(self, ref: str) -> None:
        s3_key = urlparse(ref).path.lstrip("/")
        await run_in_threadpool(self.s3_client.delete_object, Bucket=self.bucket_name, Key=s3_key)


async def discard_image(storage, ref: Optional[str]) -> None:
    """
    Best-effort removal of a stored image once the response has been
    decided; failures are logged and never reach the caller.
    """
    if not ref:
        return
    try:
        await storage.delete(ref)
        logger.info(f"[STORAGE] Deleted image {ref}")
    except Exception as e:
        logger.warning(f"[STORAGE] Could not delete image {ref}: {e}")


# Provider (singleton) for dependency injection
_image_storage_instance = None

def get_image_storage():
    global _image_storage_instance
    if _image_storage_instance is None:
        backend = os.getenv("IMAGE_STORAGE", "local").lower()
        if backend == "s3":
            _image_storage_instance = S3ImageStorage()
        else:
            _image_storage_instance = LocalImageStorage()
    return _image_storage_instance
