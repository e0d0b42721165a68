import os

import pytest

from site_deploy.config import (
    CredentialMode,
    is_ci,
    load_config,
    validate_bucket_name,
    validate_environment,
)
from site_deploy.exceptions import ConfigurationError


def write_env(tmp_path, text):
    path = tmp_path / ".env"
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestLoadConfig:
    def test_parses_comments_blanks_and_quotes(self, tmp_path):
        path = write_env(
            tmp_path,
            "# deployment settings\n"
            "\n"
            'AWS_REGION="us-west-2"\n'
            "DOMAIN_NAME = example-site.com  \n"
            "EXTRA_SETTING=whatever\n",
        )
        config = load_config(path)
        assert config == {
            "AWS_REGION": "us-west-2",
            "DOMAIN_NAME": "example-site.com",
            "EXTRA_SETTING": "whatever",
        }

    def test_exports_values_to_environment(self, tmp_path):
        path = write_env(tmp_path, "VITE_API_URL=https://api.example.com\n")
        load_config(path)
        assert os.environ["VITE_API_URL"] == "https://api.example.com"

    def test_export_can_be_disabled(self, tmp_path):
        path = write_env(tmp_path, "SITE_DEPLOY_TEST_ONLY=1\n")
        load_config(path, export=False)
        assert "SITE_DEPLOY_TEST_ONLY" not in os.environ

    def test_missing_file_is_fatal(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(str(tmp_path / "missing.env"))


class TestCiDetection:
    def test_ci_true(self):
        assert is_ci({}, {"CI": "true"})

    def test_github_actions_true(self):
        assert is_ci({}, {"GITHUB_ACTIONS": "true"})

    def test_other_values_are_not_ci(self):
        assert not is_ci({}, {"CI": "1", "GITHUB_ACTIONS": "TRUE"})

    def test_config_value_is_used_when_environment_is_silent(self):
        assert is_ci({"CI": "true"}, {})


class TestCredentialMode:
    def test_ci_ignores_profile(self):
        mode = CredentialMode.select(True, "default")
        assert mode.profile is None
        assert mode.session_kwargs() == {}

    def test_local_uses_profile(self):
        mode = CredentialMode.select(False, "default")
        assert mode.uses_profile
        assert mode.session_kwargs() == {"profile_name": "default"}


class TestValidateEnvironment:
    def test_local_run_requires_profile(self):
        with pytest.raises(ConfigurationError) as excinfo:
            validate_environment({"AWS_REGION": "us-west-2", "DOMAIN_NAME": "example-site.com"}, environ={})
        assert "AWS_CLI_PROFILE" in str(excinfo.value)

    def test_reports_every_missing_variable(self):
        with pytest.raises(ConfigurationError) as excinfo:
            validate_environment({}, environ={})
        message = str(excinfo.value)
        assert "AWS_REGION" in message
        assert "DOMAIN_NAME" in message
        assert "AWS_CLI_PROFILE" in message

    def test_ci_run_needs_no_profile(self):
        context = validate_environment(
            {"AWS_REGION": "eu-west-1", "DOMAIN_NAME": "example-site.com", "AWS_CLI_PROFILE": "dev"},
            environ={"GITHUB_ACTIONS": "true"},
        )
        assert context.credentials.session_kwargs() == {}

    def test_bucket_name_is_the_domain_name(self):
        context = validate_environment(
            {"AWS_REGION": "us-west-2", "DOMAIN_NAME": "Example-Site.com", "AWS_CLI_PROFILE": "default"},
            environ={},
        )
        assert context.bucket_name == "Example-Site.com"
        assert context.credentials.profile == "default"

    def test_build_dir_defaults_under_app_dir(self, tmp_path):
        context = validate_environment(
            {"AWS_REGION": "us-west-2", "DOMAIN_NAME": "example-site.com", "AWS_CLI_PROFILE": "default"},
            environ={},
            app_dir=str(tmp_path),
        )
        assert context.app_dir == tmp_path
        assert context.build_dir == tmp_path / "dist"

    def test_website_url(self):
        context = validate_environment(
            {"AWS_REGION": "us-west-2", "DOMAIN_NAME": "example-site.com", "AWS_CLI_PROFILE": "default"},
            environ={},
        )
        assert context.website_url == "http://example-site.com.s3-website-us-west-2.amazonaws.com"


class TestValidateBucketName:
    @pytest.mark.parametrize(
        "name",
        ["example-site.com", "abc", "a" * 63, "my.site-1", "123"],
    )
    def test_valid_names(self, name):
        assert validate_bucket_name(name).is_valid

    @pytest.mark.parametrize(
        "name",
        [
            "",
            "ab",
            "a" * 64,
            "Example-Site.com",
            "-example.com",
            "example.com-",
            ".example.com",
            "example_site.com",
            "exa mple.com",
        ],
    )
    def test_invalid_names(self, name):
        result = validate_bucket_name(name)
        assert not result.is_valid
        assert result.errors


class TestEnvironmentOverrides:
    def test_required_values_can_come_from_environment(self):
        context = validate_environment(
            {"DOMAIN_NAME": "example-site.com", "AWS_CLI_PROFILE": "default"},
            environ={"AWS_REGION": "us-west-2"},
        )
        assert context.region == "us-west-2"

    def test_environment_wins_over_config_file(self):
        context = validate_environment(
            {"AWS_REGION": "us-east-1", "DOMAIN_NAME": "example-site.com", "AWS_CLI_PROFILE": "default"},
            environ={"AWS_CLI_PROFILE": "ci-deployer", "AWS_REGION": "eu-west-1"},
        )
        assert context.region == "eu-west-1"
        assert context.credentials.profile == "ci-deployer"


def test_values_are_not_interpolated(tmp_path):
    path = write_env(tmp_path, "API_KEY=ab${cd}\nGREETING=\"hello $USER\"\n")
    config = load_config(path, export=False)
    assert config["API_KEY"] == "ab${cd}"
    assert config["GREETING"] == "hello $USER"


def test_credential_description_follows_profile_choice():
    assert CredentialMode.select(False, "default").describe() == "profile 'default'"
    assert CredentialMode.select(True, "default").describe() == "ambient CI credentials"
