"""
Bucket provisioning for S3 static website hosting.

How does S3 host a website?
---------------------------
We tell S3 that a bucket isn't just storage, it's a website:
1. The bucket is created in the chosen region (if it isn't there already).
2. Website hosting is switched on with an index document and an error document.
   Both point at ``index.html`` so the single-page app handles every path itself.
3. The "Block Public Access" guard rails are switched off for this bucket.
4. A bucket policy lets anyone *read* (but never write) the objects.

Every configuration call overwrites the previous setting, so running the whole
sequence again on an existing bucket is safe.
"""

import json
import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator

from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from site_deploy.config import DeploymentContext
from site_deploy.exceptions import ProvisioningError
from site_deploy.log import log_success

logger = logging.getLogger(__name__)

# --- Constants ---

# us-east-1 is the one region that rejects an explicit LocationConstraint.
HOME_REGION: str = "us-east-1"
INDEX_DOCUMENT: str = "index.html"
ERROR_DOCUMENT: str = "index.html"
NOT_FOUND_CODES = ("404", "NoSuchBucket", "NotFound")


@dataclass
class ProvisioningState:
    """Tracks whether this run created the bucket. Set once, never reset."""

    bucket_created: bool = False

    def mark_created(self) -> None:
        self.bucket_created = True


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", "Unknown"))


def bucket_exists(s3_client: Any, bucket_name: str) -> bool:
    """
    Checks whether the bucket is already there.

    A missing bucket is a normal answer, not an error. Any other failure
    (no permission, network trouble) is logged as a warning and also answered
    with False, so the caller goes on to try creating the bucket.

    Args:
        s3_client: An initialized S3 client.
        bucket_name (str): The bucket to look for.

    Returns:
        bool: True if the bucket exists and we can see it.
    """
    try:
        s3_client.head_bucket(Bucket=bucket_name)
        logger.info(f"Bucket '{bucket_name}' already exists.")
        return True
    except ClientError as e:
        code = _error_code(e)
        if code in NOT_FOUND_CODES:
            logger.info(f"Bucket '{bucket_name}' does not exist yet.")
        else:
            logger.warning(
                f"Could not check bucket '{bucket_name}' (error code {code}). "
                "Treating it as missing and attempting to create it."
            )
        return False
    except BotoCoreError as e:
        logger.warning(
            f"Could not check bucket '{bucket_name}' ({e}). "
            "Treating it as missing and attempting to create it."
        )
        return False


def create_bucket(s3_client: Any, bucket_name: str, region: str, state: ProvisioningState) -> None:
    """
    Creates a new S3 bucket in the specified AWS region.

    Outside us-east-1 the region has to be passed again as a location
    constraint. If AWS says we already own the bucket, it is left alone and
    not marked as created by this run.

    Raises:
        ProvisioningError: If the bucket could not be created.
    """
    try:
        if region == HOME_REGION:
            s3_client.create_bucket(Bucket=bucket_name)
        else:
            s3_client.create_bucket(
                Bucket=bucket_name,
                CreateBucketConfiguration={"LocationConstraint": region},
            )
    except ClientError as e:
        code = _error_code(e)
        if code == "BucketAlreadyOwnedByYou":
            logger.info(f"Bucket '{bucket_name}' already exists and is owned by you. Proceeding.")
            return
        logger.error(f"Failed to create bucket '{bucket_name}'. Error: {e}")
        raise ProvisioningError(f"Failed to create bucket '{bucket_name}'", code) from e

    state.mark_created()
    log_success(f"Created S3 bucket: {bucket_name} in region {region}")

    try:
        waiter = s3_client.get_waiter("bucket_exists")
        waiter.wait(Bucket=bucket_name, WaiterConfig={"Delay": 5, "MaxAttempts": 12})
    except WaiterError as e:
        logger.error(f"Timed out waiting for bucket '{bucket_name}' to appear: {e}")
        raise ProvisioningError(f"Bucket '{bucket_name}' did not become available") from e


def configure_website(s3_client: Any, bucket_name: str) -> None:
    """Switches on static website hosting with the SPA entry point for both documents."""
    try:
        s3_client.put_bucket_website(
            Bucket=bucket_name,
            WebsiteConfiguration={
                "IndexDocument": {"Suffix": INDEX_DOCUMENT},
                "ErrorDocument": {"Key": ERROR_DOCUMENT},
            },
        )
    except ClientError as e:
        logger.error(f"Failed to configure website hosting for bucket '{bucket_name}'. Error: {e}")
        raise ProvisioningError("Failed to configure website hosting", _error_code(e)) from e
    logger.info(f"Configured bucket '{bucket_name}' for static website hosting.")


def disable_block_public_access(s3_client: Any, bucket_name: str) -> None:
    """
    Disables the S3 Block Public Access settings for the bucket.

    This doesn't make anything public on its own. It only allows the bucket
    policy applied next to grant public reads.
    """
    try:
        s3_client.put_public_access_block(
            Bucket=bucket_name,
            PublicAccessBlockConfiguration={
                "BlockPublicAcls": False,
                "IgnorePublicAcls": False,
                "BlockPublicPolicy": False,
                "RestrictPublicBuckets": False,
            },
        )
    except ClientError as e:
        logger.error(f"Failed to disable Block Public Access for bucket '{bucket_name}'. Error: {e}")
        raise ProvisioningError("Failed to disable Block Public Access", _error_code(e)) from e
    logger.info(f"Disabled Block Public Access settings for bucket: {bucket_name}")


def public_read_policy(bucket_name: str) -> Dict[str, Any]:
    """The bucket policy that lets anyone read (GetObject) every object in the bucket."""
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Sid": "PublicReadGetObject",
                "Effect": "Allow",
                "Principal": "*",
                "Action": "s3:GetObject",
                "Resource": f"arn:aws:s3:::{bucket_name}/*",
            }
        ],
    }


@contextmanager
def policy_file(policy: Dict[str, Any]) -> Iterator[str]:
    """
    Writes the policy to a temporary JSON file and yields its path.

    The file is plain UTF-8 without a byte-order mark and is removed when the
    block exits, on success and on error alike.
    """
    fd, path = tempfile.mkstemp(prefix="bucket-policy-", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(policy, handle, indent=2)
        logger.debug(f"Wrote bucket policy to {path}")
        yield path
    finally:
        if os.path.exists(path):
            os.remove(path)


def apply_bucket_policy(s3_client: Any, bucket_name: str) -> None:
    """Attaches the public-read policy, going through a temporary policy file."""
    with policy_file(public_read_policy(bucket_name)) as path:
        with open(path, encoding="utf-8") as handle:
            policy_string = handle.read()
        try:
            s3_client.put_bucket_policy(Bucket=bucket_name, Policy=policy_string)
        except ClientError as e:
            logger.error(f"Failed to set bucket policy for '{bucket_name}'. Error: {e}")
            raise ProvisioningError("Failed to set bucket policy", _error_code(e)) from e
    logger.info(f"Applied public read policy to bucket: {bucket_name}")


def provision_bucket(s3_client: Any, context: DeploymentContext, state: ProvisioningState) -> None:
    """
    Brings the bucket into the website-hosting state.

    Simple Explanation:
    First we check whether the bucket is already there and create it if not.
    Then, every time, we switch on website hosting, lift the public-access
    block and attach the public-read policy. If any of these fail we stop;
    ``state`` tells the caller whether there is a new bucket to clean up.

    Raises:
        ProvisioningError: If creation or any configuration step fails.
    """
    bucket_name = context.bucket_name
    logger.info(f"--- Provisioning bucket: {bucket_name} ---")

    if not bucket_exists(s3_client, bucket_name):
        create_bucket(s3_client, bucket_name, context.region, state)

    configure_website(s3_client, bucket_name)
    disable_block_public_access(s3_client, bucket_name)
    apply_bucket_policy(s3_client, bucket_name)
    log_success(f"Bucket '{bucket_name}' is configured for public website hosting.")
