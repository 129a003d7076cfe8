import pytest

from wpbootstrap.errors import BootstrapError, ConfigurationError
from wpbootstrap.services.validation import WORDPRESS_REQUIRED, ValidationService


class DummyLogger:
    def warning(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


def _wordpress_env(**overrides):
    env = {
        "DB_NAME": "wordpress_dev",
        "DB_USER": "wp_user",
        "DB_PASSWORD": "x",
        "DB_HOST": "db",
        "WP_URL": "http://localhost:8000/",
        "WP_TITLE": "My Local WP",
        "WP_ADMIN_USER": "admin",
        "WP_ADMIN_PASSWORD": "admin-secret",
        "WP_ADMIN_EMAIL": "admin@example.com",
    }
    env.update(overrides)
    return {key: value for key, value in env.items() if value is not None}


def test_database_settings_from_concrete_environment():
    settings = ValidationService().load_database_settings(
        {
            "DB_NAME": "wordpress_dev",
            "DB_USER": "wp_user",
            "DB_PASSWORD": "x",
            "DB_ROOT_PASSWORD": "y",
        }
    )

    assert settings.database == "wordpress_dev"
    assert settings.user == "wp_user"
    assert settings.password == "x"
    assert settings.root_password == "y"
    assert "x" not in repr(settings)


def test_database_settings_accept_mysql_image_aliases():
    settings = ValidationService().load_database_settings(
        {"MYSQL_DATABASE": "legacy", "MYSQL_USER": "app", "MYSQL_PASSWORD": "pw"}
    )

    assert settings.database == "legacy"
    assert settings.root_password is None


def test_missing_database_variables_are_all_reported():
    with pytest.raises(ConfigurationError) as exc_info:
        ValidationService().load_database_settings({"DB_USER": "wp_user"})

    assert exc_info.value.names == ["DB_NAME", "DB_PASSWORD"]
    assert "DB_NAME, DB_PASSWORD" in str(exc_info.value)


def test_missing_wordpress_variables_are_all_reported():
    with pytest.raises(ConfigurationError) as exc_info:
        ValidationService().load_wordpress_settings({})

    assert exc_info.value.names == list(WORDPRESS_REQUIRED)
    for name in WORDPRESS_REQUIRED:
        assert name in str(exc_info.value)


def test_empty_value_counts_as_missing():
    with pytest.raises(ConfigurationError) as exc_info:
        ValidationService().load_wordpress_settings(_wordpress_env(DB_HOST="  "))

    assert exc_info.value.names == ["DB_HOST"]


def test_display_flag_stays_off_when_debug_enabled():
    settings = ValidationService().load_wordpress_settings(_wordpress_env(WP_DEBUG="true"))

    assert settings.debug is True
    assert settings.debug_log is True
    assert settings.debug_display is False


def test_explicit_debug_flags_are_respected():
    settings = ValidationService().load_wordpress_settings(
        _wordpress_env(WP_DEBUG="1", WP_DEBUG_LOG="no", WP_DEBUG_DISPLAY="yes")
    )

    assert settings.debug_log is False
    assert settings.debug_display is True


def test_wordpress_defaults():
    settings = ValidationService().load_wordpress_settings(_wordpress_env())

    assert settings.db_port == 3306
    assert settings.db_address == "db:3306"
    assert settings.table_prefix == "wp_"
    assert settings.site_url == "http://localhost:8000"
    assert settings.version == "latest"
    assert settings.salts == {}
    assert settings.debug is False


def test_supplied_salts_are_collected_by_constant_name():
    settings = ValidationService().load_wordpress_settings(
        _wordpress_env(WP_AUTH_KEY="a" * 64, WP_NONCE_SALT="b" * 64)
    )

    assert settings.salts == {"AUTH_KEY": "a" * 64, "NONCE_SALT": "b" * 64}


def test_invalid_values_are_reported_together():
    with pytest.raises(ConfigurationError) as exc_info:
        ValidationService().load_wordpress_settings(
            _wordpress_env(
                DB_PORT="abc",
                WP_TABLE_PREFIX="wp-",
                WP_DEBUG="maybe",
                WP_VERSION="not-a-version",
            )
        )

    assert exc_info.value.names == ["DB_PORT", "WP_TABLE_PREFIX", "WP_DEBUG", "WP_VERSION"]


def test_host_with_embedded_port_is_split():
    settings = ValidationService().load_wordpress_settings(_wordpress_env(DB_HOST="db:3307"))

    assert settings.db_host == "db"
    assert settings.db_port == 3307
    assert settings.db_address == "db:3307"


def test_host_port_conflicting_with_db_port_is_rejected():
    with pytest.raises(ConfigurationError) as exc_info:
        ValidationService().load_wordpress_settings(
            _wordpress_env(DB_HOST="db:3307", DB_PORT="3306")
        )

    assert exc_info.value.names == ["DB_HOST"]


@pytest.mark.parametrize("db_host", ["db:", ":3306", "db:port", "db:1:2"])
def test_malformed_host_is_rejected(db_host):
    with pytest.raises(ConfigurationError) as exc_info:
        ValidationService().load_wordpress_settings(_wordpress_env(DB_HOST=db_host))

    assert exc_info.value.names == ["DB_HOST"]


def test_version_pin_and_checksum_are_normalized():
    settings = ValidationService().load_wordpress_settings(
        _wordpress_env(WP_VERSION="6.4.3", WP_CORE_SHA256="AB" * 32)
    )

    assert settings.version == "6.4.3"
    assert settings.core_sha256 == "ab" * 32


def test_schema_and_account_names_are_checked():
    with pytest.raises(ConfigurationError) as exc_info:
        ValidationService().load_database_settings(
            {"DB_NAME": "bad`name", "DB_USER": "root", "DB_PASSWORD": "pw"}
        )

    assert exc_info.value.names == ["DB_NAME", "DB_USER"]


def test_https_policy_blocks_plain_http_by_default():
    service = ValidationService(allow_insecure_http=False)

    with pytest.raises(BootstrapError, match="insecure HTTP"):
        service.enforce_https_policy(
            "http://mirror.local/latest.zip", "WordPress core", DummyLogger(), DummyConsole()
        )

    ValidationService(allow_insecure_http=True).enforce_https_policy(
        "http://mirror.local/latest.zip", "WordPress core", DummyLogger(), DummyConsole()
    )
