"""CloudFormation resource synthesis for Splunk log forwarding.

Builds one ``AWS::Lambda::Permission`` plus one
``AWS::Logs::SubscriptionFilter`` per function and merges them into the
service's ``resources.Resources``. Synthesis is deterministic: the same
service and stage always yield the same logical IDs and content, so merging
twice is the same as merging once.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Union

from .config import CicdSettings, SplunkSettings
from .exceptions import ResourceGraphError
from .naming import (
    FORWARDER_KEY,
    PERMISSION_LOGICAL_ID,
    get_function_name,
    get_lambda_logical_id,
    get_log_group_logical_id,
    get_log_group_name,
    get_subscription_logical_id,
)
from .service import ServiceConfig

logger = logging.getLogger(__name__)

LogSink = Callable[[str], None]


# ---------------------------------------------------------------------------
# Destination
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExternalArn:
    """A forwarder that already exists outside this stack."""

    arn: str

    def to_cfn(self) -> str:
        return self.arn


@dataclass(frozen=True)
class ResourceAttribute:
    """An attribute of a resource declared in the same template."""

    logical_id: str
    attribute: str = "Arn"

    def to_cfn(self) -> dict[str, list[str]]:
        return {"Fn::GetAtt": [self.logical_id, self.attribute]}


Destination = Union[ExternalArn, ResourceAttribute]


def resolve_destination(settings: SplunkSettings) -> Destination:
    """Pick the log delivery target: the configured ARN or the injected forwarder."""
    if settings.arn:
        return ExternalArn(settings.arn)
    return ResourceAttribute(get_lambda_logical_id(FORWARDER_KEY), "Arn")


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ResourceDeclaration:
    """A single node of the CloudFormation ``Resources`` mapping."""

    type: str
    properties: dict[str, Any] = field(default_factory=dict)
    depends_on: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if len(set(self.depends_on)) != len(self.depends_on):
            raise ResourceGraphError(
                self.type, f"Duplicate DependsOn entries: {list(self.depends_on)}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Render as a fresh CloudFormation mapping (safe to mutate)."""
        result: dict[str, Any] = {
            "Type": self.type,
            "Properties": _copy_value(self.properties),
        }
        if self.depends_on:
            result["DependsOn"] = list(self.depends_on)
        return result


def _copy_value(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _copy_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_copy_value(v) for v in value]
    return value


def permission_declaration(destination: Destination, region: str) -> ResourceDeclaration:
    """Allow CloudWatch Logs in ``region`` to invoke the destination."""
    return ResourceDeclaration(
        type="AWS::Lambda::Permission",
        properties={
            "FunctionName": destination.to_cfn(),
            "Action": "lambda:InvokeFunction",
            "Principal": f"logs.{region}.amazonaws.com",
        },
    )


def subscription_declaration(
    function_key: str,
    function_name: str,
    destination: Destination,
) -> ResourceDeclaration:
    """Route every entry of a function's log group to the destination."""
    return ResourceDeclaration(
        type="AWS::Logs::SubscriptionFilter",
        properties={
            "DestinationArn": destination.to_cfn(),
            "FilterPattern": "",
            "LogGroupName": get_log_group_name(function_name),
        },
        depends_on=(PERMISSION_LOGICAL_ID, get_log_group_logical_id(function_key)),
    )


# ---------------------------------------------------------------------------
# Synthesis
# ---------------------------------------------------------------------------


def forwarder_function_name(service: ServiceConfig, stage: str, settings: SplunkSettings) -> str:
    """Realized name of the function that receives the logs.

    This is the single identity used to keep the forwarder from subscribing
    to its own log group.
    """
    arn_name = settings.arn_function_name
    if arn_name is not None:
        return arn_name
    return get_function_name(service.service, stage, FORWARDER_KEY, settings.name)


def synthesize(
    service: ServiceConfig,
    stage: str,
    settings: SplunkSettings | None = None,
    log: LogSink | None = None,
) -> dict[str, ResourceDeclaration]:
    """Build the log forwarding resources for every function.

    Args:
        service: The host's service manifest (read only here)
        stage: Active stage
        settings: Parsed ``custom.splunk``; parsed from ``service`` if omitted
        log: Host log sink for progress lines

    Returns:
        Mapping of logical ID to declaration; empty when ``stage`` is excluded
    """
    if settings is None:
        settings = SplunkSettings.from_dict(service.custom.get("splunk"))
    emit = log or logger.info

    if settings.is_excluded(stage):
        emit(f"Splunk is ignored for {stage} stage")
        return {}

    destination = resolve_destination(settings)
    forwarder_name = forwarder_function_name(service, stage, settings)

    declarations: dict[str, ResourceDeclaration] = {
        PERMISSION_LOGICAL_ID: permission_declaration(destination, service.provider.region),
    }

    for function_key in service.get_all_functions():
        if function_key == FORWARDER_KEY:
            continue
        function_name = service.get_function_name(function_key, stage)
        if function_name == forwarder_name:
            logger.debug("Skipping %s: it is the forwarder", function_key)
            continue
        declarations[get_subscription_logical_id(function_key)] = subscription_declaration(
            function_key, function_name, destination
        )

    logger.debug("Synthesized %d Splunk resources for stage %s", len(declarations), stage)
    return declarations


def merge_resources(
    service: ServiceConfig,
    declarations: dict[str, ResourceDeclaration],
) -> dict[str, Any]:
    """Union declarations into ``service.resources["Resources"]``.

    Missing ``resources``/``Resources`` levels are created. Entries with the
    same logical ID are replaced; everything else is left untouched.

    Returns:
        The merged ``Resources`` mapping
    """
    if service.resources is None:
        service.resources = {}
    if service.resources.get("Resources") is None:
        service.resources["Resources"] = {}

    target: dict[str, Any] = service.resources["Resources"]
    for logical_id, declaration in declarations.items():
        target[logical_id] = declaration.to_dict()
    return target


def _check_references(
    declarations: dict[str, ResourceDeclaration],
    known: Iterable[str],
) -> None:
    # DependsOn targets are either our own resources, resources already in the
    # template, or the log groups the host compiles for each function.
    available = set(declarations) | set(known)
    for logical_id, declaration in declarations.items():
        for dependency in declaration.depends_on:
            if dependency not in available:
                raise ResourceGraphError(logical_id, f"Depends on unknown resource {dependency}")


def collect_declarations(
    service: ServiceConfig,
    stage: str,
    settings: SplunkSettings,
    cicd: CicdSettings | None = None,
    log: LogSink | None = None,
) -> dict[str, ResourceDeclaration]:
    """Every declaration ``update_resources`` would merge, without merging.

    Returns an empty mapping for an excluded stage.
    """
    from .cicd import build_cicd_resources

    declarations = synthesize(service, stage, settings, log=log)
    if cicd is not None and not settings.is_excluded(stage):
        declarations.update(build_cicd_resources(service, stage, cicd))
    return declarations


def update_resources(
    service: ServiceConfig,
    stage: str,
    settings: SplunkSettings | None = None,
    cicd: CicdSettings | None = None,
    log: LogSink | None = None,
) -> dict[str, ResourceDeclaration]:
    """Synthesize and merge all resources for ``stage``.

    The excluded-stage check runs before anything is merged, so an excluded
    stage leaves ``service.resources`` exactly as it was.

    Args:
        service: The host's service manifest (mutated)
        stage: Active stage
        settings: Parsed ``custom.splunk``; parsed from ``service`` if omitted
        cicd: Resolved pipeline settings; ``None`` disables the pipeline
        log: Host log sink for progress lines

    Returns:
        The declarations that were merged
    """
    if settings is None:
        settings = SplunkSettings.from_dict(service.custom.get("splunk"))
    emit = log or logger.info

    if settings.is_excluded(stage):
        emit(f"Splunk is ignored for {stage} stage")
        return {}

    emit("Updating Splunk Resources...")
    declarations = collect_declarations(service, stage, settings, cicd, log=emit)

    existing = (service.resources or {}).get("Resources") or {}
    log_groups = [get_log_group_logical_id(key) for key in service.get_all_functions()]
    _check_references(declarations, [*existing, *log_groups])

    merge_resources(service, declarations)
    emit("Splunk Resources Updated")
    return declarations
