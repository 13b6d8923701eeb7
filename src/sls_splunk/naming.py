"""Logical ID and function name derivation.

The host orchestrator names CloudFormation resources after the function key
in ``serverless.yml`` while the deployed Lambda function (and therefore its
log group) carries the *realized* name ``<service>-<stage>-<key>``. The two
may differ, so every helper here is explicit about which one it takes.
"""

FORWARDER_KEY = "splunk"
"""Reserved function key under which the forwarder is registered."""

PERMISSION_LOGICAL_ID = "SplunkLambdaPermission"
"""Logical ID of the permission that lets CloudWatch Logs invoke the forwarder."""

SUBSCRIPTION_SUFFIX = "Splunk"
"""Appended to a log group logical ID to name its subscription filter."""

HEC_URL_ENV_VAR = "SPLUNK_HEC_URL"
HEC_TOKEN_ENV_VAR = "SPLUNK_HEC_TOKEN"

DEFAULT_STAGE = "dev"
"""Stage used when neither the CLI options nor the provider name one."""

LOG_GROUP_PREFIX = "/aws/lambda/"


def normalize_name(name: str) -> str:
    """
    Turn a function key into the alphanumeric stem used for logical IDs.

    Hyphens become ``Dash`` and underscores ``Underscore``, then the first
    character is upper-cased (``my-func_1`` -> ``MyDashfuncUnderscore1``).

    Args:
        name: Function key as written in ``serverless.yml``

    Returns:
        Normalized name
    """
    normalized = name.replace("-", "Dash").replace("_", "Underscore")
    return normalized[:1].upper() + normalized[1:]


def get_lambda_logical_id(function_key: str) -> str:
    """Logical ID of the ``AWS::Lambda::Function`` for a function key."""
    return f"{normalize_name(function_key)}LambdaFunction"


def get_log_group_logical_id(function_key: str) -> str:
    """Logical ID of the ``AWS::Logs::LogGroup`` for a function key."""
    return f"{normalize_name(function_key)}LogGroup"


def get_subscription_logical_id(function_key: str) -> str:
    """Logical ID of the subscription filter attached to a function's log group."""
    return f"{get_log_group_logical_id(function_key)}{SUBSCRIPTION_SUFFIX}"


def get_function_name(
    service: str,
    stage: str,
    function_key: str,
    explicit: str | None = None,
) -> str:
    """Resolve the realized (deployed) name of a function.

    Resolution order: ``explicit`` name from the declaration →
    ``<service>-<stage>-<key>``.
    """
    if explicit:
        return explicit
    return f"{service}-{stage}-{function_key}"


def get_log_group_name(function_name: str) -> str:
    """Name of the CloudWatch log group Lambda writes to for a realized name."""
    return f"{LOG_GROUP_PREFIX}{function_name}"
