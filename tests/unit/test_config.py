"""Tests for configuration parsing and resolution."""

import pytest

from sls_splunk.config import (
    AMAZON_LINUX_BUILD_IMAGE,
    STANDARD_BUILD_IMAGE,
    CicdSettings,
    Packaging,
    SplunkSettings,
    default_build_image,
    resolve_cicd_settings,
    resolve_stage,
)
from sls_splunk.exceptions import ConfigurationError

LAMBDA_ARN = "arn:aws:lambda:eu-west-1:123456789012:function:shared-splunk"


class TestSplunkSettingsParsing:
    """Tests for SplunkSettings.from_dict."""

    def test_parse_url_and_token(self):
        """URL and token are enough to inject a forwarder."""
        settings = SplunkSettings.from_dict({"url": "https://hec", "token": "t"})
        assert settings.url == "https://hec"
        assert settings.token == "t"
        assert settings.arn is None
        assert settings.exclude_stages == frozenset()
        assert settings.artifact is None
        assert settings.packaging is Packaging.STAGED

    def test_parse_arn_only(self):
        """An existing ARN makes url/token optional."""
        settings = SplunkSettings.from_dict({"arn": LAMBDA_ARN})
        assert settings.arn == LAMBDA_ARN
        assert settings.url is None
        assert settings.arn_function_name == "shared-splunk"

    def test_arn_with_qualifier(self):
        """Qualified ARNs still resolve the function name."""
        settings = SplunkSettings.from_dict({"arn": f"{LAMBDA_ARN}:live"})
        assert settings.arn_function_name == "shared-splunk"

    def test_exclude_stages_list(self):
        settings = SplunkSettings.from_dict(
            {"url": "u", "token": "t", "excludestages": ["dev", "test"]}
        )
        assert settings.exclude_stages == frozenset({"dev", "test"})
        assert settings.is_excluded("dev")
        assert not settings.is_excluded("prod")

    def test_exclude_stages_comma_string(self):
        settings = SplunkSettings.from_dict(
            {"url": "u", "token": "t", "excludestages": "dev, test,"}
        )
        assert settings.exclude_stages == frozenset({"dev", "test"})

    def test_in_place_packaging(self):
        settings = SplunkSettings.from_dict(
            {"url": "u", "token": "t", "packaging": "in-place", "artifact": "fwd/index.js"}
        )
        assert settings.packaging is Packaging.IN_PLACE
        assert settings.artifact == "fwd/index.js"

    def test_to_dict_roundtrip(self):
        raw = {"url": "u", "token": "t", "excludestages": ["dev"], "name": "fwd"}
        settings = SplunkSettings.from_dict(raw)
        assert SplunkSettings.from_dict(settings.to_dict()) == settings


class TestSplunkSettingsValidation:
    """Tests for configuration errors."""

    def test_missing_section(self):
        with pytest.raises(ConfigurationError) as exc_info:
            SplunkSettings.from_dict(None)
        assert exc_info.value.field == "custom.splunk"

    def test_section_not_mapping(self):
        with pytest.raises(ConfigurationError):
            SplunkSettings.from_dict(["url"])

    def test_missing_url_without_arn(self):
        with pytest.raises(ConfigurationError) as exc_info:
            SplunkSettings.from_dict({"token": "t"})
        assert exc_info.value.field == "custom.splunk.url"

    def test_missing_token_without_arn(self):
        with pytest.raises(ConfigurationError) as exc_info:
            SplunkSettings.from_dict({"url": "u"})
        assert exc_info.value.field == "custom.splunk.token"

    def test_empty_token_counts_as_missing(self):
        with pytest.raises(ConfigurationError):
            SplunkSettings.from_dict({"url": "u", "token": ""})

    def test_malformed_arn(self):
        with pytest.raises(ConfigurationError) as exc_info:
            SplunkSettings.from_dict({"arn": "not-an-arn"})
        assert exc_info.value.field == "custom.splunk.arn"
        assert exc_info.value.value == "not-an-arn"

    def test_non_lambda_arn(self):
        with pytest.raises(ConfigurationError) as exc_info:
            SplunkSettings.from_dict({"arn": "arn:aws:sqs:eu-west-1:123456789012:queue"})
        assert "Lambda" in exc_info.value.reason

    def test_lambda_layer_arn_rejected(self):
        with pytest.raises(ConfigurationError):
            SplunkSettings.from_dict({"arn": "arn:aws:lambda:eu-west-1:123456789012:layer:x:1"})

    def test_bad_packaging(self):
        with pytest.raises(ConfigurationError) as exc_info:
            SplunkSettings.from_dict({"url": "u", "token": "t", "packaging": "zip"})
        assert "staged" in exc_info.value.reason

    def test_in_place_requires_artifact(self):
        """The bundled forwarder cannot be referenced in place."""
        with pytest.raises(ConfigurationError) as exc_info:
            SplunkSettings.from_dict({"url": "u", "token": "t", "packaging": "in-place"})
        assert exc_info.value.field == "custom.splunk.artifact"

    def test_bad_exclude_stages_type(self):
        with pytest.raises(ConfigurationError):
            SplunkSettings.from_dict({"url": "u", "token": "t", "excludestages": 3})

    def test_non_string_url(self):
        with pytest.raises(ConfigurationError) as exc_info:
            SplunkSettings.from_dict({"url": 8088, "token": "t"})
        assert exc_info.value.field == "custom.splunk.url"


class TestResolveStage:
    """Tests for resolve_stage."""

    def test_option_wins(self):
        assert resolve_stage({"stage": "qa"}, "prod") == "qa"

    def test_empty_option_falls_back_to_provider(self):
        assert resolve_stage({"stage": ""}, "prod") == "prod"

    def test_no_options(self):
        assert resolve_stage(None, "prod") == "prod"

    def test_default(self):
        assert resolve_stage({}, None) == "dev"

    def test_explicit_default(self):
        assert resolve_stage({}, None, default="sandbox") == "sandbox"


class TestResolveCicdSettings:
    """Tests for resolve_cicd_settings precedence."""

    def test_explicit_values(self):
        settings = resolve_cicd_settings(
            {
                "image": "custom:1",
                "owner": "acme",
                "repository": "orders-repo",
                "branch": "main",
                "githubtoken": "ghp_x",
            },
            "nodejs18.x",
            "orders",
            "prod",
        )
        assert settings == CicdSettings(
            image="custom:1",
            owner="acme",
            repository="orders-repo",
            branch="main",
            token="ghp_x",
        )

    def test_derived_defaults(self):
        settings = resolve_cicd_settings({}, "python3.12", "orders", "prod")
        assert settings.image == STANDARD_BUILD_IMAGE
        assert settings.repository == "orders"
        assert settings.branch == "prod"
        assert settings.owner == ""
        assert settings.token == ""

    def test_none_section(self):
        settings = resolve_cicd_settings(None, None, "orders", "dev")
        assert settings.image == ""
        assert settings.branch == "dev"

    def test_not_a_mapping(self):
        with pytest.raises(ConfigurationError):
            resolve_cicd_settings("yes", "nodejs18.x", "orders", "dev")


class TestDefaultBuildImage:
    """Tests for the runtime → image mapping."""

    @pytest.mark.parametrize(
        "runtime,image",
        [
            ("nodejs18.x", STANDARD_BUILD_IMAGE),
            ("python3.12", STANDARD_BUILD_IMAGE),
            ("java17", AMAZON_LINUX_BUILD_IMAGE),
            ("provided.al2", AMAZON_LINUX_BUILD_IMAGE),
            ("cobol", ""),
            (None, ""),
        ],
    )
    def test_mapping(self, runtime, image):
        assert default_build_image(runtime) == image
