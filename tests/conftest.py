import os
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from site_deploy.config import CredentialMode, DeploymentContext


def client_error(code, operation="HeadBucket"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture(autouse=True)
def clean_environ(monkeypatch):
    """Start each test outside CI and undo whatever load_config exports."""
    for name in ("CI", "GITHUB_ACTIONS", "AWS_REGION", "DOMAIN_NAME", "AWS_CLI_PROFILE", "APP_DIR", "BUILD_DIR"):
        monkeypatch.delenv(name, raising=False)
    saved = dict(os.environ)
    yield
    os.environ.clear()
    os.environ.update(saved)


@pytest.fixture
def s3_client():
    client = MagicMock()
    client.get_paginator.return_value.paginate.return_value = [{}]
    client.delete_objects.return_value = {}
    return client


@pytest.fixture
def make_context(tmp_path):
    def _make(region="us-west-2", bucket="example-site.com", profile="default"):
        app_dir = tmp_path / "app"
        return DeploymentContext(
            domain_name=bucket,
            bucket_name=bucket,
            region=region,
            credentials=CredentialMode(profile=profile),
            app_dir=app_dir,
            build_dir=app_dir / "dist",
        )

    return _make
