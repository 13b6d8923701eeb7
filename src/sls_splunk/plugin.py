"""Lifecycle hooks that wire Splunk forwarding into a service deployment."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from .config import (
    CicdSettings,
    Packaging,
    SplunkSettings,
    resolve_cicd_settings,
    resolve_stage,
)
from .naming import DEFAULT_STAGE
from .provisioner import check_artifact, cleanup_artifact, provision, resolve_artifact
from .resources import LogSink, ResourceDeclaration, update_resources
from .service import ServiceConfig

logger = logging.getLogger(__name__)

BEFORE_PACKAGE_INITIALIZE = "before:package:initialize"
BEFORE_COMPILE_FUNCTIONS = "before:package:compileFunctions"
AFTER_DEPLOY = "after:deploy:deploy"


class SplunkPlugin:
    """
    Hook handlers for the host orchestrator.

    Configuration is parsed and validated once, in the constructor, so a
    bad ``custom.splunk`` section fails before any hook fires.

    Example:
        plugin = SplunkPlugin(service, {"stage": "prod"}, service_path="/srv/app")
        plugin.run_hook("before:package:initialize")
        ...
        plugin.run_hook("after:deploy:deploy")
    """

    def __init__(
        self,
        service: ServiceConfig,
        options: dict[str, Any] | None = None,
        service_path: str | Path = ".",
        log: LogSink | None = None,
        default_stage: str = DEFAULT_STAGE,
    ) -> None:
        """
        Args:
            service: The host's service manifest; mutated by the hooks
            options: Host CLI options (``stage`` is honoured)
            service_path: Deployment working directory
            log: The host's log sink (defaults to this module's logger)
            default_stage: Stage used when neither options nor provider set one
        """
        self.service = service
        self.options = options or {}
        self.service_path = Path(service_path)
        self.log: LogSink = log or logger.info
        self.stage = resolve_stage(self.options, service.provider.stage, default_stage)
        self.settings = SplunkSettings.from_dict(service.custom.get("splunk"))

        self.cicd: CicdSettings | None = None
        if service.custom.get("cicd") is not None:
            self.cicd = resolve_cicd_settings(
                service.custom["cicd"],
                service.provider.runtime,
                service.service,
                self.stage,
            )

        self.hooks: dict[str, Callable[[], Any]] = {
            BEFORE_PACKAGE_INITIALIZE: self.start,
            BEFORE_COMPILE_FUNCTIONS: self.update,
            AFTER_DEPLOY: self.cleanup,
        }

    def run_hook(self, event: str) -> Any:
        """Dispatch a lifecycle event to its handler."""
        try:
            handler = self.hooks[event]
        except KeyError:
            raise KeyError(f"No handler registered for lifecycle event '{event}'") from None
        return handler()

    def start(self) -> None:
        """Add the Splunk resources, then the forwarder function.

        The artifact is checked first so a missing forwarder never leaves
        subscriptions pointing at an unregistered function.
        """
        if self._injects_forwarder():
            check_artifact(self.settings, self.service_path)
        self.update()
        self.add_function()

    def _injects_forwarder(self) -> bool:
        return not self.settings.arn and not self.settings.is_excluded(self.stage)

    def update(self) -> dict[str, ResourceDeclaration]:
        """Merge the Splunk (and optional CI/CD) resources into the service."""
        return update_resources(
            self.service, self.stage, self.settings, cicd=self.cicd, log=self.log
        )

    def add_function(self) -> None:
        """Register the forwarder function when no existing ARN is configured."""
        provision(self.service, self.stage, self.settings, self.service_path, log=self.log)

    def cleanup(self) -> None:
        """Remove the staged forwarder artifact after deployment."""
        if self.settings.packaging is not Packaging.STAGED or self.settings.arn:
            return
        self.log("Removing temporary Splunk function file")
        suffix = resolve_artifact(self.settings.artifact, self.service_path).suffix
        if not cleanup_artifact(self.service_path, suffix):
            logger.debug("No staged artifact to remove in %s", self.service_path)
