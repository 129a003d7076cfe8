"""Environment and URL validation for wpbootstrap."""

import re
from typing import Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

from packaging.version import InvalidVersion, Version

from wpbootstrap.constants import DEFAULT_DB_PORT, DEFAULT_TABLE_PREFIX, SALT_NAMES
from wpbootstrap.errors import BootstrapError, ConfigurationError
from wpbootstrap.errors_catalog import actionable_error
from wpbootstrap.models import DatabaseSettings, WordPressSettings

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}

SCHEMA_NAME_RE = re.compile(r"^[0-9A-Za-z$_-]{1,64}$")
ACCOUNT_NAME_RE = re.compile(r"^[0-9A-Za-z$_.@-]{1,80}$")
TABLE_PREFIX_RE = re.compile(r"^[A-Za-z0-9_]+$")
SHA256_RE = re.compile(r"^[0-9a-f]{64}$")

# Older image versions used the MySQL image's variable names.
DATABASE_ALIASES = {
    "DB_NAME": ("DB_NAME", "MYSQL_DATABASE"),
    "DB_USER": ("DB_USER", "MYSQL_USER"),
    "DB_PASSWORD": ("DB_PASSWORD", "MYSQL_PASSWORD"),
    "DB_ROOT_PASSWORD": ("DB_ROOT_PASSWORD", "MYSQL_ROOT_PASSWORD"),
}

WORDPRESS_REQUIRED = (
    "DB_NAME",
    "DB_USER",
    "DB_PASSWORD",
    "DB_HOST",
    "WP_URL",
    "WP_TITLE",
    "WP_ADMIN_USER",
    "WP_ADMIN_PASSWORD",
    "WP_ADMIN_EMAIL",
)


class ValidationService:
    """Turns the process environment into validated settings records."""

    def __init__(self, allow_insecure_http: bool = False):
        self.allow_insecure_http = allow_insecure_http

    @staticmethod
    def _lookup(environ: Mapping[str, str], name: str) -> Optional[str]:
        for candidate in DATABASE_ALIASES.get(name, (name,)):
            value = environ.get(candidate)
            if value is not None and value.strip() != "":
                return value
        return None

    def _require(self, environ: Mapping[str, str], names) -> Dict[str, str]:
        values: Dict[str, str] = {}
        missing: List[str] = []
        for name in names:
            value = self._lookup(environ, name)
            if value is None:
                missing.append(name)
            else:
                values[name] = value

        if missing:
            raise ConfigurationError(
                actionable_error("missing_environment", names=", ".join(missing)),
                names=missing,
            )
        return values

    @staticmethod
    def _raise_invalid(problems: List[Tuple[str, str]]):
        if not problems:
            return
        details = "; ".join(f"{name} {reason}" for name, reason in problems)
        raise ConfigurationError(
            actionable_error("invalid_environment", details=details),
            names=[name for name, _ in problems],
        )

    @staticmethod
    def parse_bool(value: Optional[str], default: bool) -> Optional[bool]:
        """Return the boolean for ``value``, ``default`` when unset, None when unparseable."""
        if value is None or value.strip() == "":
            return default
        lowered = value.strip().lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        return None

    def _check_names(self, values: Dict[str, str], problems: List[Tuple[str, str]]):
        if "DB_NAME" in values and not SCHEMA_NAME_RE.match(values["DB_NAME"]):
            problems.append(("DB_NAME", "must be 1-64 characters of letters, digits, $, _ or -"))
        if "DB_USER" in values and not ACCOUNT_NAME_RE.match(values["DB_USER"]):
            problems.append(("DB_USER", "must be 1-80 characters without quotes or whitespace"))
        elif values.get("DB_USER", "").lower() == "root":
            problems.append(("DB_USER", "must name an application account, not root"))

    def load_database_settings(self, environ: Mapping[str, str]) -> DatabaseSettings:
        values = self._require(environ, ("DB_NAME", "DB_USER", "DB_PASSWORD"))

        problems: List[Tuple[str, str]] = []
        self._check_names(values, problems)
        self._raise_invalid(problems)

        return DatabaseSettings(
            database=values["DB_NAME"],
            user=values["DB_USER"],
            password=values["DB_PASSWORD"],
            root_password=self._lookup(environ, "DB_ROOT_PASSWORD"),
        )

    def load_wordpress_settings(self, environ: Mapping[str, str]) -> WordPressSettings:
        values = self._require(environ, WORDPRESS_REQUIRED)

        problems: List[Tuple[str, str]] = []
        self._check_names(values, problems)

        db_host = values["DB_HOST"].strip()
        explicit_port = self._lookup(environ, "DB_PORT")
        port_raw = explicit_port or str(DEFAULT_DB_PORT)
        port_name = "DB_PORT"
        if db_host.count(":") == 1:
            # host:port form, as written into wp-config.php by older images
            db_host, embedded_port = db_host.split(":")
            if explicit_port is not None and explicit_port.strip() != embedded_port:
                problems.append(("DB_HOST", f"port '{embedded_port}' conflicts with DB_PORT"))
            port_raw = embedded_port
            port_name = "DB_HOST"
        if not db_host:
            problems.append(("DB_HOST", "must name a host"))
        elif ":" in db_host:
            problems.append(("DB_HOST", "must be a host name, optionally followed by :port"))

        port = DEFAULT_DB_PORT
        try:
            port = int(port_raw)
            if not 0 < port < 65536:
                raise ValueError(port_raw)
        except ValueError:
            problems.append((port_name, f"must carry a TCP port number, got '{port_raw}'"))

        table_prefix = self._lookup(environ, "WP_TABLE_PREFIX") or DEFAULT_TABLE_PREFIX
        if not TABLE_PREFIX_RE.match(table_prefix):
            problems.append(("WP_TABLE_PREFIX", "may only contain letters, digits and underscores"))

        if urlparse(values["WP_URL"]).scheme not in {"http", "https"}:
            problems.append(("WP_URL", "must be an absolute http(s) URL"))

        if "@" not in values["WP_ADMIN_EMAIL"]:
            problems.append(("WP_ADMIN_EMAIL", "must be an email address"))

        debug = self.parse_bool(self._lookup(environ, "WP_DEBUG"), default=False)
        if debug is None:
            problems.append(("WP_DEBUG", "must be a boolean"))
            debug = False
        debug_log = self.parse_bool(self._lookup(environ, "WP_DEBUG_LOG"), default=debug)
        if debug_log is None:
            problems.append(("WP_DEBUG_LOG", "must be a boolean"))
        debug_display = self.parse_bool(self._lookup(environ, "WP_DEBUG_DISPLAY"), default=False)
        if debug_display is None:
            problems.append(("WP_DEBUG_DISPLAY", "must be a boolean"))

        wp_version = (self._lookup(environ, "WP_VERSION") or "latest").strip()
        if wp_version != "latest":
            try:
                Version(wp_version)
            except InvalidVersion:
                problems.append(
                    ("WP_VERSION", f"must be 'latest' or a release number, got '{wp_version}'")
                )

        core_sha256 = self._lookup(environ, "WP_CORE_SHA256")
        if core_sha256 is not None:
            core_sha256 = core_sha256.strip().lower()
            if not SHA256_RE.match(core_sha256):
                problems.append(("WP_CORE_SHA256", "must be 64 hexadecimal characters"))

        salts = {}
        for salt_name in SALT_NAMES:
            supplied = self._lookup(environ, f"WP_{salt_name}")
            if supplied is not None:
                salts[salt_name] = supplied

        self._raise_invalid(problems)

        return WordPressSettings(
            db_name=values["DB_NAME"],
            db_user=values["DB_USER"],
            db_password=values["DB_PASSWORD"],
            db_host=db_host,
            db_port=port,
            site_url=values["WP_URL"].rstrip("/"),
            site_title=values["WP_TITLE"],
            admin_user=values["WP_ADMIN_USER"],
            admin_password=values["WP_ADMIN_PASSWORD"],
            admin_email=values["WP_ADMIN_EMAIL"],
            table_prefix=table_prefix,
            salts=salts,
            debug=debug,
            debug_log=bool(debug_log),
            debug_display=bool(debug_display),
            version=wp_version,
            core_sha256=core_sha256,
        )

    def is_url(self, location: str) -> bool:
        scheme = urlparse(location).scheme.lower()
        return scheme in {"http", "https"}

    def enforce_https_policy(self, location: str, label: str, logger, console):
        if not self.is_url(location):
            raise BootstrapError(f"{label} is not an http(s) URL: {location}")

        scheme = urlparse(location).scheme.lower()
        if scheme == "http" and not self.allow_insecure_http:
            raise BootstrapError(actionable_error("insecure_http", label=label))

        if scheme == "http" and self.allow_insecure_http:
            logger.warning("Insecure HTTP enabled for %s: %s", label, location)
            console.print(
                f"[yellow]Warning:[/yellow] Using insecure HTTP for {label}. "
                "Prefer HTTPS whenever possible."
            )
