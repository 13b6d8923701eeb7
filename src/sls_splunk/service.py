"""In-memory model of the host's service manifest (``serverless.yml``).

Only the fields this package reads or writes are modelled; everything else
is kept in ``extra`` so a manifest survives ``from_dict`` → ``to_dict``
unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import yaml

from .exceptions import ConfigurationError
from .naming import get_function_name

# CloudFormation short-form tags that take a scalar, sequence or mapping.
# !GetAtt also accepts the dotted "Resource.Attribute" scalar form.
CFN_TAGS = (
    "Base64",
    "Cidr",
    "Condition",
    "FindInMap",
    "GetAtt",
    "GetAZs",
    "ImportValue",
    "Join",
    "Select",
    "Split",
    "Sub",
    "Transform",
    "And",
    "Equals",
    "If",
    "Not",
    "Or",
)


class CfnLoader(yaml.SafeLoader):
    """SafeLoader that expands ``!Ref``/``!GetAtt``/... into their long form."""


def _construct_cfn_tag(loader: CfnLoader, tag_suffix: str, node: yaml.Node) -> Any:
    if isinstance(node, yaml.ScalarNode):
        value: Any = loader.construct_scalar(node)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)

    if tag_suffix == "Ref":
        return {"Ref": value}
    if tag_suffix == "Condition":
        return {"Condition": value}
    if tag_suffix == "GetAtt" and isinstance(value, str):
        value = value.split(".", 1)
    if tag_suffix not in CFN_TAGS:
        raise yaml.constructor.ConstructorError(
            None, None, f"unknown CloudFormation tag !{tag_suffix}", node.start_mark
        )
    return {f"Fn::{tag_suffix}": value}


CfnLoader.add_multi_constructor("!", _construct_cfn_tag)


def load_yaml(text: str) -> dict[str, Any]:
    """Parse a manifest, accepting CloudFormation short-form tags."""
    data = yaml.load(text, Loader=CfnLoader)  # noqa: S506 - CfnLoader is a SafeLoader
    if not isinstance(data, dict):
        raise ConfigurationError("service", data, "Manifest must contain a mapping")
    return data


def dump_yaml(data: dict[str, Any]) -> str:
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)


@dataclass
class FunctionDeclaration:
    """A single entry of ``functions``."""

    handler: str | None = None
    name: str | None = None
    events: list[Any] = field(default_factory=list)
    environment: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> FunctionDeclaration:
        d = dict(d or {})
        return cls(
            handler=d.pop("handler", None),
            name=d.pop("name", None),
            events=list(d.pop("events", None) or []),
            environment=dict(d.pop("environment", None) or {}),
            extra=d,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.name is not None:
            result["name"] = self.name
        if self.handler is not None:
            result["handler"] = self.handler
        result["events"] = list(self.events)
        if self.environment:
            result["environment"] = dict(self.environment)
        result.update(self.extra)
        return result


@dataclass
class ProviderConfig:
    """The ``provider`` block."""

    name: str = "aws"
    region: str = "us-east-1"
    runtime: str | None = None
    stage: str | None = None
    environment: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> ProviderConfig:
        d = dict(d or {})
        return cls(
            name=d.pop("name", "aws"),
            region=d.pop("region", "us-east-1"),
            runtime=d.pop("runtime", None),
            stage=d.pop("stage", None),
            environment=dict(d.pop("environment", None) or {}),
            extra=d,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name, "region": self.region}
        if self.runtime is not None:
            result["runtime"] = self.runtime
        if self.stage is not None:
            result["stage"] = self.stage
        if self.environment:
            result["environment"] = dict(self.environment)
        result.update(self.extra)
        return result


@dataclass
class ServiceConfig:
    """The service manifest the host hands to every hook.

    ``resources`` stays ``None`` until something declares resources; the
    synthesizer creates the nesting on first merge.
    """

    service: str
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    functions: dict[str, FunctionDeclaration] = field(default_factory=dict)
    resources: dict[str, Any] | None = None
    custom: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ServiceConfig:
        d = dict(d)
        service = d.pop("service", None)
        # Older manifests use "service: {name: ...}"
        if isinstance(service, dict):
            service = service.get("name")
        if not service:
            raise ConfigurationError("service", service, "Service name is required")

        functions = {
            key: FunctionDeclaration.from_dict(value)
            for key, value in (d.pop("functions", None) or {}).items()
        }
        return cls(
            service=service,
            provider=ProviderConfig.from_dict(d.pop("provider", None)),
            functions=functions,
            resources=d.pop("resources", None),
            custom=dict(d.pop("custom", None) or {}),
            extra=d,
        )

    @classmethod
    def from_yaml(cls, yaml_str: str) -> ServiceConfig:
        return cls.from_dict(load_yaml(yaml_str))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "service": self.service,
            "provider": self.provider.to_dict(),
        }
        if self.custom:
            result["custom"] = self.custom
        result["functions"] = {key: fn.to_dict() for key, fn in self.functions.items()}
        if self.resources is not None:
            result["resources"] = self.resources
        result.update(self.extra)
        return result

    def get_all_functions(self) -> list[str]:
        """Function keys, in declaration order."""
        return list(self.functions)

    def get_function_name(self, function_key: str, stage: str) -> str:
        """Realized name of a declared function for ``stage``."""
        fn = self.functions[function_key]
        return get_function_name(self.service, stage, function_key, fn.name)
