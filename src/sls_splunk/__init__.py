"""
sls-splunk: forward Serverless function logs to Splunk.

Hooks into a service deployment to:
- Inject a Splunk HEC forwarder function (unless an existing one is reused)
- Subscribe every function's CloudWatch log group to that forwarder
- Optionally add a CodePipeline that builds the service from GitHub

Example:
    from sls_splunk import ServiceConfig, SplunkPlugin

    service = ServiceConfig.from_yaml(open("serverless.yml").read())
    plugin = SplunkPlugin(service, {"stage": "prod"}, service_path=".")
    plugin.run_hook("before:package:initialize")
"""

from .config import CicdSettings, Packaging, SplunkSettings, resolve_cicd_settings, resolve_stage
from .exceptions import (
    ArtifactError,
    ConfigurationError,
    ResourceGraphError,
    SplunkPluginError,
)
from .plugin import SplunkPlugin
from .provisioner import BUNDLED_ARTIFACT, cleanup_artifact, provision, stage_artifact
from .resources import (
    Destination,
    ExternalArn,
    ResourceAttribute,
    ResourceDeclaration,
    collect_declarations,
    merge_resources,
    synthesize,
    update_resources,
)
from .service import FunctionDeclaration, ProviderConfig, ServiceConfig

__version__ = "0.1.0"

__all__ = [
    "ArtifactError",
    "BUNDLED_ARTIFACT",
    "CicdSettings",
    "ConfigurationError",
    "Destination",
    "ExternalArn",
    "FunctionDeclaration",
    "Packaging",
    "ProviderConfig",
    "ResourceAttribute",
    "ResourceDeclaration",
    "ResourceGraphError",
    "ServiceConfig",
    "SplunkPlugin",
    "SplunkPluginError",
    "SplunkSettings",
    "cleanup_artifact",
    "collect_declarations",
    "merge_resources",
    "provision",
    "resolve_cicd_settings",
    "resolve_stage",
    "stage_artifact",
    "synthesize",
    "update_resources",
    "__version__",
]
