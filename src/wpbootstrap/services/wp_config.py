"""wp-config.php materialization."""

import os
import secrets
from typing import Dict, Optional

from wpbootstrap.constants import CONFIG_FILE_MODE, DB_CHARSET, DB_COLLATION, SALT_NAMES
from wpbootstrap.errors import BootstrapError
from wpbootstrap.models import WordPressSettings

# Same alphabet as wp_generate_password() with special characters enabled.
SALT_ALPHABET = (
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
    "!@#$%^&*()-_ []{}<>~`+=,.;:/?|"
)
SALT_LENGTH = 64


def php_quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def php_bool(value: bool) -> str:
    return "true" if value else "false"


class WordPressConfigService:
    """Renders and writes wp-config.php from validated settings."""

    def __init__(self, logger, console, token_source=secrets):
        self.logger = logger
        self.console = console
        self.token_source = token_source

    def generate_salt(self) -> str:
        return "".join(self.token_source.choice(SALT_ALPHABET) for _ in range(SALT_LENGTH))

    def resolve_salts(self, supplied: Dict[str, str]) -> Dict[str, str]:
        salts = {}
        generated = []
        for name in SALT_NAMES:
            value = supplied.get(name)
            if value is None:
                value = self.generate_salt()
                generated.append(name)
            salts[name] = value

        if generated:
            self.logger.info("Generated %s fresh key/salt value(s)", len(generated))
        return salts

    def render(self, settings: WordPressSettings, salts: Optional[Dict[str, str]] = None) -> str:
        salts = salts if salts is not None else self.resolve_salts(settings.salts)

        salt_lines = "\n".join(
            f"define( {php_quote(name)}, {php_quote(salts[name])} );" for name in SALT_NAMES
        )

        display_errors = ""
        if not settings.debug_display:
            display_errors = "@ini_set( 'display_errors', '0' );\n"

        return f"""<?php
/**
 * Generated by wpbootstrap on first container start.
 * Delete this file and restart the container to regenerate it.
 */

define( 'DB_NAME', {php_quote(settings.db_name)} );
define( 'DB_USER', {php_quote(settings.db_user)} );
define( 'DB_PASSWORD', {php_quote(settings.db_password)} );
define( 'DB_HOST', {php_quote(settings.db_address)} );
define( 'DB_CHARSET', {php_quote(DB_CHARSET)} );
define( 'DB_COLLATE', {php_quote(DB_COLLATION)} );

{salt_lines}

$table_prefix = {php_quote(settings.table_prefix)};

define( 'WP_DEBUG', {php_bool(settings.debug)} );
define( 'WP_DEBUG_LOG', {php_bool(settings.debug_log)} );
define( 'WP_DEBUG_DISPLAY', {php_bool(settings.debug_display)} );
{display_errors}
if ( ! defined( 'ABSPATH' ) ) {{
\tdefine( 'ABSPATH', __DIR__ . '/' );
}}

require_once ABSPATH . 'wp-settings.php';
"""

    def write(self, path: str, settings: WordPressSettings):
        """Write the file owner-only from the first byte; never overwrites."""
        content = self.render(settings)
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, CONFIG_FILE_MODE)
        except FileExistsError as exc:
            raise BootstrapError(f"Refusing to overwrite existing configuration: {path}") from exc
        except OSError as exc:
            raise BootstrapError(f"Could not create {path}: {exc}") from exc

        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as file_obj:
            file_obj.write(content)

        self.console.print("[green]Generated wp-config.php.[/green]")
        self.logger.info(
            "Wrote %s (debug=%s, display=%s)", path, settings.debug, settings.debug_display
        )
