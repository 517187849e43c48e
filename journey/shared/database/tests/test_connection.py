"""Tests for database connection manager."""
import json
import pytest
from unittest.mock import MagicMock, patch

from journey.shared.utils import configure_pii_salt
from journey.shared.database.connection import (
    DatabaseConfig,
    ConnectionManager,
    SCHEMA_PATH,
)


@pytest.fixture(autouse=True)
def setup_pii_salt():
    configure_pii_salt("test_salt_that_is_at_least_32_characters_long")


@pytest.fixture
def pool():
    """Mock ThreadedConnectionPool handing out one mock connection."""
    with patch("journey.shared.database.connection.pg_pool.ThreadedConnectionPool") as pool_cls:
        instance = pool_cls.return_value
        instance.getconn.return_value = MagicMock()
        yield pool_cls


class TestDatabaseConfig:
    """Tests for DatabaseConfig dataclass."""

    def test_default_values(self):
        config = DatabaseConfig(host="localhost")

        assert config.port == 5432
        assert config.database == "journey"
        assert config.min_connections == 1
        assert config.max_connections == 5
        assert config.ssl_mode == "prefer"

    def test_from_env(self):
        with patch.dict("os.environ", {
            "DB_HOST": "env-host",
            "DB_PORT": "5434",
            "DB_NAME": "env_db",
            "DB_USER": "env_user",
            "DB_PASSWORD": "env_pass",
            "DB_MAX_CONN": "8",
        }):
            config = DatabaseConfig.from_env()

        assert config.host == "env-host"
        assert config.port == 5434
        assert config.database == "env_db"
        assert config.username == "env_user"
        assert config.password == "env_pass"
        assert config.max_connections == 8

    def test_from_env_defaults(self):
        with patch.dict("os.environ", {}, clear=True):
            config = DatabaseConfig.from_env()

        assert config.host == "localhost"
        assert config.database == "journey"

    def test_from_secrets_manager(self):
        secret = {"username": "app", "password": "s3cret", "host": "db.internal", "dbname": "prod"}
        with patch("journey.shared.database.connection.boto3") as boto3, \
                patch.dict("os.environ", {}, clear=True):
            boto3.client.return_value.get_secret_value.return_value = {
                "SecretString": json.dumps(secret)
            }
            config = DatabaseConfig.from_secrets_manager("arn:secret", region="eu-west-1")

        boto3.client.assert_called_once_with("secretsmanager", region_name="eu-west-1")
        assert config.host == "db.internal"
        assert config.database == "prod"
        assert config.username == "app"
        assert config.password == "s3cret"
        assert config.port == 5432

    def test_secrets_manager_failure_propagates(self):
        with patch("journey.shared.database.connection.boto3") as boto3:
            boto3.client.return_value.get_secret_value.side_effect = RuntimeError("denied")

            with pytest.raises(RuntimeError):
                DatabaseConfig.from_secrets_manager("arn:secret")

    def test_load_prefers_secret_arn(self):
        with patch.dict("os.environ", {"DB_SECRET_ARN": "arn:secret", "AWS_REGION": "us-west-2"}), \
                patch.object(DatabaseConfig, "from_secrets_manager") as from_secret:
            DatabaseConfig.load()

        from_secret.assert_called_once_with("arn:secret", "us-west-2")

    def test_load_without_secret_uses_env(self):
        with patch.dict("os.environ", {"DB_HOST": "env-host"}, clear=True):
            config = DatabaseConfig.load()

        assert config.host == "env-host"


class TestConnectionManager:
    """Tests for ConnectionManager class."""

    def test_initialize_opens_pool_once(self, pool):
        manager = ConnectionManager(DatabaseConfig(host="localhost", username="u"))

        manager.initialize()
        manager.initialize()

        pool.assert_called_once()
        assert pool.call_args.kwargs["user"] == "u"
        assert manager.is_initialized

    def test_initialize_failure_propagates(self, pool):
        pool.side_effect = RuntimeError("connection refused")
        manager = ConnectionManager(DatabaseConfig(host="localhost"))

        with pytest.raises(RuntimeError):
            manager.initialize()
        assert not manager.is_initialized

    def test_get_connection_returns_to_pool(self, pool):
        manager = ConnectionManager(DatabaseConfig(host="localhost"))

        with manager.get_connection() as conn:
            assert conn is pool.return_value.getconn.return_value

        pool.return_value.putconn.assert_called_once_with(conn)
        conn.rollback.assert_not_called()

    def test_get_connection_rolls_back_on_error(self, pool):
        manager = ConnectionManager(DatabaseConfig(host="localhost"))
        conn = pool.return_value.getconn.return_value

        with pytest.raises(ValueError):
            with manager.get_connection():
                raise ValueError("boom")

        conn.rollback.assert_called_once()
        pool.return_value.putconn.assert_called_once_with(conn)

    def test_health_check_not_initialized(self):
        manager = ConnectionManager(DatabaseConfig(host="localhost"))

        health = manager.health_check()

        assert health["status"] == "not_initialized"
        assert health["healthy"] is False

    def test_health_check_connected(self, pool):
        manager = ConnectionManager(DatabaseConfig(host="localhost"))
        manager.initialize()

        health = manager.health_check()

        assert health["healthy"] is True
        assert health["status"] == "connected"

    def test_health_check_error(self, pool):
        manager = ConnectionManager(DatabaseConfig(host="localhost"))
        manager.initialize()
        conn = pool.return_value.getconn.return_value
        conn.cursor.return_value.__enter__.return_value.execute.side_effect = RuntimeError("gone")

        health = manager.health_check()

        assert health["healthy"] is False
        assert health["error"] == "gone"

    def test_apply_schema(self, pool, tmp_path):
        schema = tmp_path / "schema.sql"
        schema.write_text("CREATE TABLE IF NOT EXISTS t (id SERIAL);")
        manager = ConnectionManager(DatabaseConfig(host="localhost"))
        conn = pool.return_value.getconn.return_value
        cursor = conn.cursor.return_value.__enter__.return_value

        manager.apply_schema(schema)

        cursor.execute.assert_called_once_with("CREATE TABLE IF NOT EXISTS t (id SERIAL);")
        conn.commit.assert_called_once()

    def test_bundled_schema_is_idempotent(self):
        ddl = SCHEMA_PATH.read_text()

        assert "CREATE TABLE IF NOT EXISTS entries" in ddl
        assert "CREATE TABLE " not in ddl.replace("CREATE TABLE IF NOT EXISTS", "")

    def test_close(self, pool):
        manager = ConnectionManager(DatabaseConfig(host="localhost"))
        manager.initialize()

        manager.close()

        pool.return_value.closeall.assert_called_once()
        assert not manager.is_initialized
