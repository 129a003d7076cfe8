"""Shared constants for wpbootstrap."""

DIR_MODE = 0o755
FILE_MODE = 0o644
CONFIG_FILE_MODE = 0o600

DB_CHARSET = "utf8mb4"
DB_COLLATION = "utf8mb4_unicode_ci"
DEFAULT_DB_PORT = 3306
DEFAULT_TABLE_PREFIX = "wp_"

DEFAULT_DATA_DIR = "/var/lib/mysql"
DEFAULT_TRANSIENT_SOCKET = "/tmp/mysqld-bootstrap.sock"
DEFAULT_MYSQL_SYSTEM_USER = "mysql"
SYSTEM_SCHEMA_DIR = "mysql"
PROVISIONED_MARKER = ".wpbootstrap-provisioned"

DEFAULT_WEB_ROOT = "/var/www/html"
DEFAULT_WEB_USER = "www-data"
DEFAULT_WEB_LOG_DIR = "/var/log/apache2"
DEFAULT_WP_CLI = "wp"
DEFAULT_DOWNLOAD_URL = "https://wordpress.org"
CORE_ENTRY_FILE = "wp-load.php"
CONFIG_FILE = "wp-config.php"
UPLOADS_DIR = "wp-content/uploads"

DEFAULT_DB_SERVER_COMMAND = ["mysqld"]
DEFAULT_WEB_SERVER_COMMAND = ["apache2-foreground"]

TRANSIENT_MAX_ATTEMPTS = 30
TRANSIENT_POLL_INTERVAL = 1.0
EXTERNAL_MAX_ATTEMPTS = 60
EXTERNAL_POLL_INTERVAL = 2.0
SHUTDOWN_TIMEOUT = 60.0

SALT_NAMES = (
    "AUTH_KEY",
    "SECURE_AUTH_KEY",
    "LOGGED_IN_KEY",
    "NONCE_KEY",
    "AUTH_SALT",
    "SECURE_AUTH_SALT",
    "LOGGED_IN_SALT",
    "NONCE_SALT",
)
