"""Injects the Splunk forwarder function into the service.

When ``custom.splunk.arn`` is set the forwarder already exists and nothing
is declared. Otherwise the forwarder is registered under the reserved
``splunk`` key with the HEC endpoint and token exported through the
provider environment.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from .config import Packaging, SplunkSettings
from .exceptions import ArtifactError
from .naming import FORWARDER_KEY, HEC_TOKEN_ENV_VAR, HEC_URL_ENV_VAR
from .resources import LogSink
from .service import FunctionDeclaration, ServiceConfig

logger = logging.getLogger(__name__)

BUNDLED_ARTIFACT = Path(__file__).parent / "forwarder" / "index.js"
"""Forwarder shipped with this package, used when ``custom.splunk.artifact`` is unset."""

STAGED_STEM = "splunk"
"""File stem of the staged artifact copy (``splunk.js`` -> ``splunk.handler``)."""

HANDLER_EXPORT = "handler"


def staged_artifact_path(service_path: str | Path, suffix: str = ".js") -> Path:
    return Path(service_path) / f"{STAGED_STEM}{suffix}"


def resolve_artifact(artifact: str | Path | None, service_path: str | Path) -> Path:
    """Locate the forwarder artifact.

    ``None`` selects the bundled forwarder; relative paths resolve against
    ``service_path``.
    """
    if artifact is None:
        return BUNDLED_ARTIFACT
    source = Path(artifact)
    if not source.is_absolute():
        source = Path(service_path) / source
    return source


def check_artifact(settings: SplunkSettings, service_path: str | Path) -> Path:
    """Verify the forwarder artifact can be packaged, without touching disk.

    Lets callers fail before any resource is merged into the service.

    Raises:
        ArtifactError: If the artifact is missing, or would be overwritten
            and later removed by staging
    """
    source = resolve_artifact(settings.artifact, service_path)
    if not source.is_file():
        raise ArtifactError(str(source), "Forwarder artifact not found")
    if settings.packaging is Packaging.STAGED:
        _reject_staged_source(source, service_path)
    return source


def _reject_staged_source(source: Path, service_path: str | Path) -> None:
    # cleanup removes the staged copy, so it must never be the source itself
    destination = staged_artifact_path(service_path, source.suffix)
    if destination.exists() and source.resolve() == destination.resolve():
        raise ArtifactError(
            str(source),
            f"Artifact is the staging target {destination.name} and would be "
            "removed after deploy; move it or use in-place packaging",
        )


def stage_artifact(artifact: str | Path | None, service_path: str | Path) -> Path:
    """Copy the forwarder artifact next to the service manifest.

    Args:
        artifact: Artifact path; relative paths resolve against ``service_path``
            and ``None`` selects the bundled forwarder
        service_path: Deployment working directory

    Returns:
        Path of the staged copy

    Raises:
        ArtifactError: If the artifact is missing, is the staging target
            itself, or cannot be copied
    """
    source = resolve_artifact(artifact, service_path)
    destination = staged_artifact_path(service_path, source.suffix)
    _reject_staged_source(source, service_path)

    try:
        shutil.copyfile(source, destination)
    except FileNotFoundError as e:
        raise ArtifactError(str(source), "Forwarder artifact not found") from e
    except OSError as e:
        raise ArtifactError(str(destination), f"Could not stage forwarder artifact: {e}") from e

    logger.debug("Staged %s as %s", source, destination)
    return destination


def cleanup_artifact(service_path: str | Path, suffix: str = ".js") -> bool:
    """Remove the staged artifact copy.

    Returns:
        True if a file was removed, False if it was already gone

    Raises:
        ArtifactError: On any failure other than the file being absent
    """
    path = staged_artifact_path(service_path, suffix)
    if not path.exists():
        return False
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise ArtifactError(str(path), f"Could not remove staged artifact: {e}") from e
    return True


def _in_place_handler(artifact: str | Path | None, service_path: str | Path) -> str:
    absolute = resolve_artifact(artifact, service_path)
    if not absolute.is_file():
        raise ArtifactError(str(absolute), "Forwarder artifact not found")
    # The host resolves handlers relative to the service directory
    try:
        relative = absolute.relative_to(Path(service_path))
    except ValueError as e:
        raise ArtifactError(
            str(absolute), "In-place artifact must live inside the service directory"
        ) from e
    return f"{relative.with_suffix('').as_posix()}.{HANDLER_EXPORT}"


def provision(
    service: ServiceConfig,
    stage: str,
    settings: SplunkSettings | None = None,
    service_path: str | Path = ".",
    log: LogSink | None = None,
) -> FunctionDeclaration | None:
    """Register the forwarder function unless an existing one is reused.

    Args:
        service: The host's service manifest (mutated)
        stage: Active stage
        settings: Parsed ``custom.splunk``; parsed from ``service`` if omitted
        service_path: Deployment working directory
        log: Host log sink for progress lines

    Returns:
        The registered declaration, or None when nothing was registered
    """
    if settings is None:
        settings = SplunkSettings.from_dict(service.custom.get("splunk"))
    emit = log or logger.info

    if settings.arn:
        logger.debug("Reusing existing forwarder %s", settings.arn)
        return None
    if settings.is_excluded(stage):
        return None

    emit("Adding Splunk Function...")

    if settings.packaging is Packaging.STAGED:
        staged = stage_artifact(settings.artifact, service_path)
        handler = f"{staged.stem}.{HANDLER_EXPORT}"
    else:
        handler = _in_place_handler(settings.artifact, service_path)

    service.provider.environment[HEC_URL_ENV_VAR] = settings.url
    service.provider.environment[HEC_TOKEN_ENV_VAR] = settings.token

    declaration = FunctionDeclaration(handler=handler, name=settings.name, events=[])
    service.functions[FORWARDER_KEY] = declaration

    emit("Splunk Function Added...")
    return declaration
