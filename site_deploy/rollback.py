"""
Rollback for a failed deployment.

If this run created the bucket, the bucket is emptied (every object version
and delete marker) and then deleted. A bucket that already existed before the
run is never touched, and neither are settings applied to it.
"""

import logging
from typing import Any, Dict, List

from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from site_deploy.log import log_success
from site_deploy.provision import ProvisioningState

logger = logging.getLogger(__name__)

DELETE_BATCH_SIZE: int = 1000


def _delete_batch(s3_client: Any, bucket_name: str, batch: List[Dict[str, str]]) -> bool:
    logger.info(f"Deleting batch of {len(batch)} items...")
    response = s3_client.delete_objects(Bucket=bucket_name, Delete={"Objects": batch, "Quiet": True})
    if response.get("Errors"):
        logger.error(f"Errors encountered deleting objects: {response['Errors']}")
        return False
    return True


def empty_bucket(s3_client: Any, bucket_name: str) -> bool:
    """
    Deletes all objects (including all versions and delete markers) from a bucket.

    A bucket has to be empty before S3 lets us delete it.

    Returns:
        bool: True if the bucket was emptied, False otherwise.
    """
    objects_to_delete: List[Dict[str, str]] = []
    total = 0
    try:
        paginator = s3_client.get_paginator("list_object_versions")
        for page in paginator.paginate(Bucket=bucket_name):
            for item in page.get("Versions", []) + page.get("DeleteMarkers", []):
                objects_to_delete.append({"Key": item["Key"], "VersionId": item["VersionId"]})
                total += 1

            while len(objects_to_delete) >= DELETE_BATCH_SIZE:
                batch = objects_to_delete[:DELETE_BATCH_SIZE]
                objects_to_delete = objects_to_delete[DELETE_BATCH_SIZE:]
                if not _delete_batch(s3_client, bucket_name, batch):
                    return False

        if objects_to_delete and not _delete_batch(s3_client, bucket_name, objects_to_delete):
            return False
    except ClientError as e:
        if e.response["Error"]["Code"] == "NoSuchBucket":
            logger.warning(f"Bucket {bucket_name} not found while trying to empty it.")
            return True
        logger.error(f"Error emptying bucket {bucket_name}: {e}")
        return False
    except BotoCoreError as e:
        logger.error(f"Could not reach S3 while emptying bucket {bucket_name}: {e}")
        return False

    logger.info(f"Deleted {total} items from bucket {bucket_name}.")
    return True


def delete_bucket(s3_client: Any, bucket_name: str) -> bool:
    """Deletes an (empty) bucket and waits until S3 confirms it is gone."""
    try:
        s3_client.delete_bucket(Bucket=bucket_name)
        waiter = s3_client.get_waiter("bucket_not_exists")
        waiter.wait(Bucket=bucket_name, WaiterConfig={"Delay": 5, "MaxAttempts": 12})
    except WaiterError as e:
        logger.error(f"Timed out waiting for bucket {bucket_name} to be deleted: {e}")
        return False
    except ClientError as e:
        if e.response["Error"]["Code"] == "NoSuchBucket":
            logger.warning(f"Bucket {bucket_name} seems to be already deleted.")
            return True
        logger.error(f"Error deleting bucket {bucket_name}: {e}")
        return False
    except BotoCoreError as e:
        logger.error(f"Could not reach S3 while deleting bucket {bucket_name}: {e}")
        return False
    return True


def rollback(s3_client: Any, bucket_name: str, state: ProvisioningState) -> bool:
    """
    Undoes a failed run, as far as that is safe.

    Simple Explanation:
    If we made the bucket in this run, we throw it away again together with
    anything we already uploaded into it. If the bucket was there before we
    started, we leave it exactly as it is.

    Problems during rollback are logged, not raised, so the original failure
    stays the one that is reported.

    Returns:
        bool: True if nothing needed undoing or the bucket was removed.
    """
    if not state.bucket_created:
        logger.info(f"Bucket '{bucket_name}' existed before this run; leaving it in place.")
        return True

    logger.warning(f"--- Rolling back: deleting bucket '{bucket_name}' created by this run ---")
    if not empty_bucket(s3_client, bucket_name):
        logger.error(f"Rollback failed: could not empty bucket '{bucket_name}'. Delete it manually.")
        return False
    if not delete_bucket(s3_client, bucket_name):
        logger.error(f"Rollback failed: could not delete bucket '{bucket_name}'. Delete it manually.")
        return False

    log_success(f"Rollback complete: bucket '{bucket_name}' deleted.")
    return True
