import subprocess

import pytest

from wpbootstrap.errors import ProvisioningError
from wpbootstrap.models import DatabaseSettings
from wpbootstrap.services.mysql import (
    MySQLService,
    TransientServer,
    quote_identifier,
    quote_literal,
    tcp_probe,
)


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def info(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


class RecordingRunner:
    def __init__(self, returncodes=None, stderr=""):
        self.calls = []
        self.returncodes = list(returncodes or [])
        self.stderr = stderr

    def run(self, cmd, check=True, capture_output=False, input_text=None, extra_env=None, **_):
        self.calls.append({"cmd": cmd, "input": input_text, "env": extra_env})
        code = self.returncodes.pop(0) if self.returncodes else 0
        return subprocess.CompletedProcess(cmd, code, stdout="", stderr=self.stderr if code else "")


class FakeProcess:
    pid = 4242

    def __init__(self, stop_on_terminate=True):
        self.returncode = None
        self.stop_on_terminate = stop_on_terminate
        self.terminated = False
        self.killed = False

    def poll(self):
        return self.returncode

    def wait(self, timeout=None):
        if self.returncode is None:
            raise subprocess.TimeoutExpired("mysqld", timeout)
        return self.returncode

    def terminate(self):
        self.terminated = True
        if self.stop_on_terminate:
            self.returncode = -15

    def kill(self):
        self.killed = True
        self.returncode = -9


class FakeStarter:
    def __init__(self, process):
        self.process = process
        self.started = []

    def start(self, cmd, extra_env=None):
        self.started.append(cmd)
        return self.process


def _settings(root_password="y"):
    return DatabaseSettings(
        database="wordpress_dev",
        user="wp_user",
        password="x",
        root_password=root_password,
    )


def _service(runner, tmp_path):
    return MySQLService(
        logger=DummyLogger(),
        console=DummyConsole(),
        command_runner=runner,
        data_dir=str(tmp_path),
        socket_path="/tmp/boot.sock",
        hostname="db-container",
    )


def test_quoting_escapes_quotes_and_backslashes():
    assert quote_literal("it's") == "'it''s'"
    assert quote_literal("a\\b") == "'a\\\\b'"
    assert quote_identifier("we`ird") == "`we``ird`"


def test_provisioning_sql_is_idempotent_and_schema_scoped(tmp_path):
    statements = _service(RecordingRunner(), tmp_path).build_provisioning_sql(_settings())
    sql = "\n".join(statements)

    assert statements[0] == "ALTER USER 'root'@'localhost' IDENTIFIED BY 'y';"
    assert "DROP USER IF EXISTS ''@'localhost';" in statements
    assert "DROP USER IF EXISTS ''@'db-container';" in statements
    assert "DROP USER IF EXISTS 'root'@'%';" in statements
    assert (
        "CREATE DATABASE IF NOT EXISTS `wordpress_dev` "
        "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
    ) in statements
    assert "CREATE USER IF NOT EXISTS 'wp_user'@'%' IDENTIFIED BY 'x';" in statements
    assert "GRANT ALL PRIVILEGES ON `wordpress_dev`.* TO 'wp_user'@'%';" in statements
    assert statements[-1] == "FLUSH PRIVILEGES;"
    assert "*.*" not in sql
    assert sql.count("GRANT") == 1
    for statement in statements:
        if statement.startswith("CREATE"):
            assert "IF NOT EXISTS" in statement


def test_provisioning_sql_leaves_root_only_on_localhost(tmp_path):
    statements = _service(RecordingRunner(), tmp_path).build_provisioning_sql(_settings())

    for host in ("%", "127.0.0.1", "::1", "db-container"):
        assert f"DROP USER IF EXISTS 'root'@'{host}';" in statements
    assert "DROP USER IF EXISTS 'root'@'localhost';" not in statements


def test_provisioning_sql_keeps_root_when_hostname_is_localhost(tmp_path):
    service = MySQLService(
        logger=DummyLogger(),
        console=DummyConsole(),
        command_runner=RecordingRunner(),
        data_dir=str(tmp_path),
        socket_path="/tmp/boot.sock",
        hostname="localhost",
    )

    statements = service.build_provisioning_sql(_settings())

    assert "DROP USER IF EXISTS 'root'@'localhost';" not in statements
    assert statements.count("DROP USER IF EXISTS ''@'localhost';") == 1


def test_provisioning_sql_without_root_secret_skips_rotation(tmp_path):
    statements = _service(RecordingRunner(), tmp_path).build_provisioning_sql(
        _settings(root_password=None)
    )

    assert not any(statement.startswith("ALTER USER") for statement in statements)


def test_system_schema_detection(tmp_path):
    service = _service(RecordingRunner(), tmp_path)

    assert service.system_schema_present() is False
    (tmp_path / "mysql").mkdir()
    assert service.system_schema_present() is True


def test_transient_command_has_no_network_listener(tmp_path):
    cmd = _service(RecordingRunner(), tmp_path).transient_server_command()

    assert "--skip-networking" in cmd
    assert "--socket=/tmp/boot.sock" in cmd
    assert f"--datadir={tmp_path}" in cmd


def test_socket_probe_falls_back_to_configured_root_secret(tmp_path):
    runner = RecordingRunner(returncodes=[1, 0, 0])
    service = _service(runner, tmp_path)

    assert service.socket_probe(_settings()) is True
    assert runner.calls[0]["env"] is None
    assert runner.calls[1]["env"] == {"MYSQL_PWD": "y"}

    service.apply_provisioning(_settings())
    assert runner.calls[2]["env"] == {"MYSQL_PWD": "y"}


def test_apply_provisioning_sends_sql_on_stdin_not_argv(tmp_path):
    runner = RecordingRunner()
    service = _service(runner, tmp_path)

    service.apply_provisioning(_settings())

    call = runner.calls[0]
    assert call["cmd"][:3] == ["mysql", "--socket=/tmp/boot.sock", "--user=root"]
    assert "GRANT ALL PRIVILEGES" in call["input"]
    assert not any("x" == arg or "IDENTIFIED" in arg for arg in call["cmd"])


def test_apply_provisioning_failure_is_fatal(tmp_path):
    runner = RecordingRunner(returncodes=[1], stderr="ERROR 1045 (28000): Access denied")

    with pytest.raises(ProvisioningError, match="Access denied"):
        _service(runner, tmp_path).apply_provisioning(_settings())


def test_shutdown_uses_rotated_root_secret(tmp_path):
    runner = RecordingRunner()

    _service(runner, tmp_path).shutdown(_settings())

    assert runner.calls[0]["cmd"][-1] == "shutdown"
    assert runner.calls[0]["env"] == {"MYSQL_PWD": "y"}


def test_tcp_probe_uses_application_account():
    runner = RecordingRunner(returncodes=[1, 0])
    probe = tcp_probe(runner, "db", 3306, "wp_user", "x", "wordpress_dev")

    assert probe() is False
    assert probe() is True
    cmd = runner.calls[0]["cmd"]
    assert "--user=wp_user" in cmd
    assert "--host=db" in cmd
    assert "wordpress_dev" in cmd
    assert runner.calls[0]["env"] == {"MYSQL_PWD": "x"}
    assert "x" not in cmd


def test_transient_server_is_terminated_on_failure_path():
    process = FakeProcess()
    starter = FakeStarter(process)

    with pytest.raises(RuntimeError):
        with TransientServer(starter, ["mysqld"], DummyLogger()):
            raise RuntimeError("provisioning blew up")

    assert process.terminated is True
    assert process.killed is False


def test_transient_server_is_killed_when_terminate_is_ignored():
    process = FakeProcess(stop_on_terminate=False)

    with TransientServer(FakeStarter(process), ["mysqld"], DummyLogger(), kill_grace_seconds=0):
        pass

    assert process.terminated is True
    assert process.killed is True


def test_transient_server_left_alone_after_clean_stop():
    process = FakeProcess()

    with TransientServer(FakeStarter(process), ["mysqld"], DummyLogger()) as server:
        process.returncode = 0
        server.wait_stopped(timeout=1)

    assert process.terminated is False


def test_wait_stopped_times_out_with_actionable_error():
    process = FakeProcess(stop_on_terminate=True)

    with pytest.raises(ProvisioningError, match="did not stop within 5s"):
        with TransientServer(FakeStarter(process), ["mysqld"], DummyLogger()) as server:
            server.wait_stopped(timeout=5)

    assert process.terminated is True
