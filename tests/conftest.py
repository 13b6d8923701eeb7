"""Pytest fixtures for sls-splunk tests."""

import copy
from pathlib import Path

import pytest

from sls_splunk import ServiceConfig

ARTIFACT_RELATIVE = "splunk/splunk-cloudwatch-logs-processor/index.js"

BASE_SERVICE = {
    "service": "orders",
    "provider": {
        "name": "aws",
        "region": "eu-west-1",
        "runtime": "nodejs18.x",
        "stage": "prod",
        "environment": {"LOG_LEVEL": "info"},
    },
    "custom": {
        "splunk": {
            "url": "https://hec.example.com:8088/services/collector",
            "token": "00000000-0000-0000-0000-000000000000",
        },
    },
    "functions": {
        "api": {"handler": "api.handler", "events": [{"http": "GET /orders"}]},
        "worker": {"handler": "worker.handler", "events": [{"sqs": "arn:aws:sqs:x"}]},
    },
}


@pytest.fixture
def service_dict():
    """A fresh copy of the two-function manifest."""
    return copy.deepcopy(BASE_SERVICE)


@pytest.fixture
def service(service_dict):
    """Parsed two-function service (api, worker) on stage prod."""
    return ServiceConfig.from_dict(service_dict)


@pytest.fixture
def service_path(tmp_path: Path) -> Path:
    """Service directory holding a vendored forwarder at ``ARTIFACT_RELATIVE``."""
    artifact = tmp_path / ARTIFACT_RELATIVE
    artifact.parent.mkdir(parents=True)
    artifact.write_text("exports.handler = async () => {};\n")
    return tmp_path
