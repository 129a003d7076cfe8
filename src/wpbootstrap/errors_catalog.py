"""Actionable error catalog for wpbootstrap."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "missing_environment": {
        "what": "Missing required environment variables: {names}.",
        "next": (
            "Set them in the container environment (e.g. the compose `environment:` block) "
            "and restart."
        ),
    },
    "invalid_environment": {
        "what": "Invalid environment variables: {details}.",
        "next": "Fix the listed values and restart the container.",
    },
    "dependency_timeout": {
        "what": "{label} did not become ready after {attempts} attempt(s).",
        "next": "Check that the service is running and the credentials are valid, then restart.",
    },
    "provisioning_failed": {
        "what": "Database provisioning failed: {reason}",
        "next": (
            "Inspect the database logs. If the data volume is half-initialized, "
            "remove it and restart."
        ),
    },
    "transient_shutdown_failed": {
        "what": "Temporary database server did not stop within {seconds}s.",
        "next": "Check the data directory for stale lock files before restarting.",
    },
    "insecure_http": {
        "what": "{label} uses insecure HTTP.",
        "next": "Switch to HTTPS or set `allow_insecure_http: true` only for trusted mirrors.",
    },
    "install_failed": {
        "what": "WordPress installation failed for {url}.",
        "next": (
            "Check the WP-CLI output above and the database grants for the "
            "application account."
        ),
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
