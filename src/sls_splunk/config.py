"""Configuration schema for the ``custom.splunk`` and ``custom.cicd`` sections.

The host hands us free-form mappings. They are parsed into frozen dataclasses
once, at entry, so the rest of the package never probes optional keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from botocore.utils import ArnParser, InvalidArnException

from .exceptions import ConfigurationError
from .naming import DEFAULT_STAGE

STANDARD_BUILD_IMAGE = "aws/codebuild/standard:7.0"
AMAZON_LINUX_BUILD_IMAGE = "aws/codebuild/amazonlinux2-x86_64-standard:5.0"

# Runtime family -> CodeBuild image
RUNTIME_BUILD_IMAGES = {
    "nodejs": STANDARD_BUILD_IMAGE,
    "python": STANDARD_BUILD_IMAGE,
    "java": AMAZON_LINUX_BUILD_IMAGE,
    "go": AMAZON_LINUX_BUILD_IMAGE,
    "provided": AMAZON_LINUX_BUILD_IMAGE,
    "dotnet": AMAZON_LINUX_BUILD_IMAGE,
    "ruby": AMAZON_LINUX_BUILD_IMAGE,
}


class Packaging(Enum):
    """How the forwarder artifact ends up in the deployment package."""

    STAGED = "staged"  # copied next to serverless.yml, removed after deploy
    IN_PLACE = "in-place"  # referenced where it already lives


def _optional_str(section: str, data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"{section}.{key}", value, "Must be a string")
    return value


def _parse_stages(value: Any) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset(s.strip() for s in value.split(",") if s.strip())
    if isinstance(value, (list, tuple, set, frozenset)):
        if not all(isinstance(s, str) for s in value):
            raise ConfigurationError(
                "custom.splunk.excludestages", value, "Stage names must be strings"
            )
        return frozenset(value)
    raise ConfigurationError(
        "custom.splunk.excludestages",
        value,
        "Must be a list of stage names or a comma-separated string",
    )


def _parse_lambda_arn(arn: str) -> str:
    """Validate a Lambda ARN and return the function name it points at."""
    try:
        parsed = ArnParser().parse_arn(arn)
    except InvalidArnException as e:
        raise ConfigurationError("custom.splunk.arn", arn, f"Not a valid ARN: {e}") from e

    if parsed["service"] != "lambda":
        raise ConfigurationError(
            "custom.splunk.arn",
            arn,
            f"Must reference a Lambda function, got service '{parsed['service']}'",
        )

    # resource is "function:<name>" optionally followed by ":<qualifier>"
    parts = parsed["resource"].split(":")
    if len(parts) < 2 or parts[0] != "function" or not parts[1]:
        raise ConfigurationError(
            "custom.splunk.arn", arn, "Resource part must be 'function:<name>'"
        )
    return parts[1]


@dataclass(frozen=True)
class SplunkSettings:
    """Parsed ``custom.splunk`` section.

    Either ``arn`` (reuse an existing forwarder) or both ``url`` and
    ``token`` (inject a new one) must be supplied.
    """

    url: str | None = None
    token: str | None = None
    arn: str | None = None
    exclude_stages: frozenset[str] = field(default_factory=frozenset)
    name: str | None = None
    artifact: str | None = None  # None selects the forwarder bundled with this package
    packaging: Packaging = Packaging.STAGED

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> SplunkSettings:
        if d is None:
            raise ConfigurationError("custom.splunk", None, "Section is required")
        if not isinstance(d, dict):
            raise ConfigurationError("custom.splunk", d, "Must be a mapping")

        section = "custom.splunk"
        arn = _optional_str(section, d, "arn")
        url = _optional_str(section, d, "url")
        token = _optional_str(section, d, "token")

        if arn is not None:
            _parse_lambda_arn(arn)
        else:
            if url is None:
                raise ConfigurationError(
                    f"{section}.url", None, "Required when no existing 'arn' is given"
                )
            if token is None:
                raise ConfigurationError(
                    f"{section}.token", None, "Required when no existing 'arn' is given"
                )

        packaging_raw = d.get("packaging", Packaging.STAGED.value)
        try:
            packaging = Packaging(packaging_raw)
        except ValueError:
            choices = ", ".join(p.value for p in Packaging)
            raise ConfigurationError(
                f"{section}.packaging", packaging_raw, f"Must be one of: {choices}"
            ) from None

        artifact = _optional_str(section, d, "artifact")
        if packaging is Packaging.IN_PLACE and artifact is None:
            # The bundled forwarder lives outside any service directory
            raise ConfigurationError(
                f"{section}.artifact", None, "Required when packaging is 'in-place'"
            )

        return cls(
            url=url,
            token=token,
            arn=arn,
            exclude_stages=_parse_stages(d.get("excludestages")),
            name=_optional_str(section, d, "name"),
            artifact=artifact,
            packaging=packaging,
        )

    @property
    def arn_function_name(self) -> str | None:
        """Function name embedded in ``arn``, if one is configured."""
        if self.arn is None:
            return None
        return _parse_lambda_arn(self.arn)

    def is_excluded(self, stage: str) -> bool:
        return stage in self.exclude_stages

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"packaging": self.packaging.value}
        for key in ("url", "token", "arn", "name", "artifact"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.exclude_stages:
            result["excludestages"] = sorted(self.exclude_stages)
        return result


@dataclass(frozen=True)
class CicdSettings:
    """Resolved ``custom.cicd`` section. Unset values are empty strings."""

    image: str = ""
    owner: str = ""
    repository: str = ""
    branch: str = ""
    token: str = ""


def resolve_stage(
    options: dict[str, Any] | None,
    provider_stage: str | None,
    default: str = DEFAULT_STAGE,
) -> str:
    """Resolve the active stage.

    Resolution order: non-empty ``options["stage"]`` (the ``--stage`` CLI
    flag) → ``provider.stage`` → ``default``.
    """
    option_stage = (options or {}).get("stage")
    if option_stage:
        return str(option_stage)
    return provider_stage or default


def default_build_image(runtime: str | None) -> str:
    """CodeBuild image matching the provider runtime family, or ``""``."""
    if not runtime:
        return ""
    for family, image in RUNTIME_BUILD_IMAGES.items():
        if runtime.startswith(family):
            return image
    return ""


def resolve_cicd_settings(
    cicd: dict[str, Any] | None,
    runtime: str | None,
    service: str,
    stage: str,
) -> CicdSettings:
    """Resolve pipeline settings from ``custom.cicd``.

    Each value follows explicit override → derived default → ``""``:

    - image: ``cicd.image`` → image for the runtime family
    - owner: ``cicd.owner``
    - repository: ``cicd.repository`` → service name
    - branch: ``cicd.branch`` → stage
    - token: ``cicd.githubtoken``

    Args:
        cicd: The raw ``custom.cicd`` mapping (``None`` is treated as empty)
        runtime: Provider runtime identifier (e.g. ``nodejs18.x``)
        service: Service name
        stage: Active stage

    Returns:
        Resolved settings
    """
    data = cicd or {}
    if not isinstance(data, dict):
        raise ConfigurationError("custom.cicd", data, "Must be a mapping")

    section = "custom.cicd"
    return CicdSettings(
        image=_optional_str(section, data, "image") or default_build_image(runtime),
        owner=_optional_str(section, data, "owner") or "",
        repository=_optional_str(section, data, "repository") or service,
        branch=_optional_str(section, data, "branch") or stage,
        token=_optional_str(section, data, "githubtoken") or "",
    )
