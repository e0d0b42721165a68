"""
==============================================================
 AWS S3 Static Website Deployment
==============================================================

Publishes a front-end build to an S3 bucket that serves it as a website.
A DNS/CDN layer in front of the bucket is managed elsewhere.

What this script does:
----------------------
1. Loads settings from a ``.env`` style file (AWS_REGION, DOMAIN_NAME, AWS_CLI_PROFILE).
2. Checks the required settings and works out the bucket name (the domain name).
3. Checks the bucket name against the S3 naming rules.
4. Creates the bucket if needed and configures website hosting and public read access.
5. Builds the front-end application with npm.
6. Mirrors the build output into the bucket.
7. Prints the website URL.

If anything fails after step 4 started and this run created the bucket, the
bucket is deleted again. A bucket that existed before is never deleted.

Requirements:
-------------
- ``boto3`` and ``python-dotenv`` installed.
- AWS credentials: a named profile locally, or environment credentials in CI.
- Node.js / npm for the build step.

Usage:
    site-deploy --env-file .env --app-dir frontend
    python -m site_deploy --skip-build
"""

import argparse
import logging
import subprocess
import sys
from typing import Any, Callable, List, Optional

import boto3
from botocore.exceptions import BotoCoreError

from site_deploy.build import build_app, check_build_tool
from site_deploy.config import (
    DeploymentContext,
    load_config,
    validate_bucket_name,
    validate_environment,
)
from site_deploy.exceptions import DeployError, ValidationError
from site_deploy.log import configure_logging, log_success, transcript
from site_deploy.provision import ProvisioningState, provision_bucket
from site_deploy.rollback import rollback
from site_deploy.upload import SyncSummary, sync_directory

logger = logging.getLogger(__name__)

DEFAULT_ENV_FILE: str = ".env"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Deploy a static front-end build to an S3 website bucket")
    parser.add_argument(
        "--env-file",
        "-e",
        default=DEFAULT_ENV_FILE,
        help=f"Config file with AWS_REGION, DOMAIN_NAME and AWS_CLI_PROFILE (default: {DEFAULT_ENV_FILE})",
    )
    parser.add_argument(
        "--app-dir",
        "-a",
        default=None,
        help="Front-end project directory (default: APP_DIR from the config file, or '.')",
    )
    parser.add_argument("--log-file", default=None, help="Also write a transcript of the run to this file")
    parser.add_argument(
        "--skip-build",
        action="store_true",
        help="Upload the existing build output without running npm",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug output")
    return parser.parse_args(argv)


def prepare(env_file: str, app_dir: Optional[str] = None) -> DeploymentContext:
    """
    Loads and validates everything before any AWS call is made.

    Raises:
        ConfigurationError: If the config file or a required variable is missing.
        ValidationError: If the derived bucket name is not a valid S3 name.
    """
    config = load_config(env_file)
    context = validate_environment(config, app_dir=app_dir)

    result = validate_bucket_name(context.bucket_name)
    if not result.is_valid:
        for error in result.errors:
            logger.error(error)
        raise ValidationError(f"Invalid bucket name '{context.bucket_name}'")
    logger.info(f"Target bucket: {context.bucket_name} ({context.region})")
    return context


def create_s3_client(context: DeploymentContext) -> Any:
    """Builds the one S3 client every step of this run uses, with the selected credentials."""
    session = boto3.Session(region_name=context.region, **context.credentials.session_kwargs())
    return session.client("s3")


def deploy(
    context: DeploymentContext,
    s3_client: Any,
    build: bool = True,
    runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> SyncSummary:
    """
    Runs provisioning, build and upload, rolling back on any failure.

    The rollback only removes the bucket if this run created it; see
    ``rollback.rollback``. The original error is re-raised afterwards.
    """
    state = ProvisioningState()
    succeeded = False
    try:
        provision_bucket(s3_client, context, state)
        if build:
            build_app(context.app_dir, runner=runner)
        else:
            logger.info("Skipping build, uploading existing output.")
        summary = sync_directory(s3_client, context.bucket_name, context.build_dir)
        succeeded = True
        return summary
    finally:
        if not succeeded:
            logger.error("Deployment failed.")
            rollback(s3_client, context.bucket_name, state)


def print_summary(
    context: DeploymentContext,
    summary: SyncSummary,
    log_handler: Optional[logging.FileHandler] = None,
) -> None:
    """Prints the summary banner, and copies it into the transcript when one is open."""
    lines = [
        "\n" + "=" * 60,
        "          DEPLOYMENT SUMMARY",
        "=" * 60,
        f" S3 Bucket Name:        {context.bucket_name}",
        f" AWS Region:            {context.region}",
        f" Credentials:           {context.credentials.describe()}",
        f" Files Uploaded:        {summary.uploaded}",
        f" Stale Objects Removed: {summary.deleted}",
        f" S3 Website Endpoint:   {context.website_url}",
        "=" * 60 + "\n",
    ]
    for line in lines:
        print(line)
    if log_handler is not None and log_handler.stream is not None:
        for line in lines:
            print(line, file=log_handler.stream)
        log_handler.flush()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function to orchestrate the deployment process.

    Every failure ends up here as an exception and is turned into exit code 1.
    Returns the process exit code.
    """
    args = parse_args(argv)
    configure_logging(args.verbose)

    with transcript(args.log_file) as log_handler:
        logger.info("=================================================")
        logger.info(" Starting AWS S3 Static Website Deployment ")
        logger.info("=================================================")
        try:
            context = prepare(args.env_file, args.app_dir)
            if not args.skip_build:
                check_build_tool()
            s3_client = create_s3_client(context)
            summary = deploy(context, s3_client, build=not args.skip_build)
        except DeployError as e:
            logger.error(f"Deployment aborted: {e}")
            return 1
        except BotoCoreError as e:
            logger.error(f"Deployment aborted, AWS client error: {e}")
            return 1

        print_summary(context, summary, log_handler)
        log_success(f"Deployment complete: {context.website_url}")
        return 0


def run() -> None:
    """Console entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("Aborted by user. Exiting.")
        sys.exit(130)


if __name__ == "__main__":
    run()
