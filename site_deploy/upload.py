"""
Mirrored upload of the build output to the website bucket.

Every local file is uploaded, and every object in the bucket that no longer
has a local file is deleted, so the bucket ends up as an exact copy of the
build directory.
"""

import logging
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Set, Tuple

from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from site_deploy.exceptions import UploadError
from site_deploy.log import log_success

logger = logging.getLogger(__name__)

# --- Constants ---

DELETE_BATCH_SIZE: int = 1000
# Assets browsers should re-validate often, since their names don't change between builds.
SHORT_CACHE_TYPES: List[str] = ["text/html", "text/css", "application/javascript", "text/javascript"]
SHORT_CACHE_CONTROL: str = "max-age=3600"


@dataclass
class SyncSummary:
    uploaded: int = 0
    deleted: int = 0


def collect_files(build_dir: Path) -> List[Tuple[str, str]]:
    """
    Walks the build directory and pairs each file with its S3 key.

    Keys are the paths relative to ``build_dir`` with forward slashes.
    """
    build_dir_abs = os.path.abspath(build_dir)
    files: List[Tuple[str, str]] = []
    for root, _dirs, filenames in os.walk(build_dir_abs):
        for filename in filenames:
            local_path = os.path.join(root, filename)
            s3_key = os.path.relpath(local_path, build_dir_abs).replace("\\", "/")
            files.append((local_path, s3_key))
    files.sort(key=lambda item: item[1])
    return files


def upload_args(file_path: str) -> Dict[str, str]:
    """Content-Type (and Cache-Control for HTML/CSS/JS) for one file."""
    content_type, _ = mimetypes.guess_type(file_path)
    if content_type is None:
        content_type = "application/octet-stream"

    extra_args = {"ContentType": content_type}
    if content_type in SHORT_CACHE_TYPES:
        extra_args["CacheControl"] = SHORT_CACHE_CONTROL
    return extra_args


def list_remote_keys(s3_client: Any, bucket_name: str) -> Set[str]:
    keys: Set[str] = set()
    paginator = s3_client.get_paginator("list_objects_v2")
    for page in paginator.paginate(Bucket=bucket_name):
        for obj in page.get("Contents", []):
            keys.add(obj["Key"])
    return keys


def delete_keys(s3_client: Any, bucket_name: str, keys: List[str]) -> int:
    """Deletes ``keys`` in batches of 1000. Returns how many were deleted."""
    deleted = 0
    for start in range(0, len(keys), DELETE_BATCH_SIZE):
        batch = [{"Key": key} for key in keys[start:start + DELETE_BATCH_SIZE]]
        logger.info(f"Deleting batch of {len(batch)} stale objects...")
        response = s3_client.delete_objects(
            Bucket=bucket_name, Delete={"Objects": batch, "Quiet": True}
        )
        if response.get("Errors"):
            logger.error(f"Errors encountered deleting objects: {response['Errors']}")
            raise UploadError("Failed to delete stale objects", f"{len(response['Errors'])} errors")
        deleted += len(batch)
    return deleted


def sync_directory(s3_client: Any, bucket_name: str, build_dir: Path) -> SyncSummary:
    """
    Makes the bucket an exact mirror of ``build_dir``.

    Simple Explanation:
    First we make sure the build actually produced something; if the folder
    is missing we stop before touching S3. Then every file in the folder is
    uploaded with the right Content-Type, and anything left in the bucket from
    an older build that isn't in the folder any more is deleted.

    Args:
        s3_client: An initialized S3 client.
        bucket_name (str): The target bucket.
        build_dir (Path): The build output directory.

    Returns:
        SyncSummary: How many objects were uploaded and deleted.

    Raises:
        UploadError: If the directory is missing or any S3 call fails.
    """
    build_dir = Path(build_dir)
    if not build_dir.is_dir():
        logger.error(f"Build output directory '{build_dir}' does not exist. Did the build succeed?")
        raise UploadError(f"Build output directory not found: {build_dir}")

    logger.info(f"--- Syncing '{build_dir}' to s3://{bucket_name}/ ---")
    files = collect_files(build_dir)
    total_files = len(files)
    logger.info(f"Found {total_files} files to upload.")

    summary = SyncSummary()
    try:
        for i, (local_path, s3_key) in enumerate(files):
            logger.info(f"Uploading [{i + 1}/{total_files}]: {s3_key}")
            s3_client.upload_file(local_path, bucket_name, s3_key, ExtraArgs=upload_args(local_path))
            summary.uploaded += 1

        local_keys = {s3_key for _, s3_key in files}
        stale_keys = sorted(list_remote_keys(s3_client, bucket_name) - local_keys)
        if stale_keys:
            logger.info(f"Removing {len(stale_keys)} objects not present in the build.")
            summary.deleted = delete_keys(s3_client, bucket_name, stale_keys)
    except (BotoCoreError, ClientError, S3UploadFailedError) as e:
        logger.error(f"Sync to bucket '{bucket_name}' failed. Error: {e}")
        raise UploadError(f"Sync to bucket '{bucket_name}' failed", str(e)) from e

    log_success(f"Uploaded {summary.uploaded} files, deleted {summary.deleted} stale objects.")
    return summary
