"""PostgreSQL connection management.

Manages a psycopg2 connection pool with:
- Environment or Secrets Manager configuration
- Rollback of the open transaction when a caller fails
- Health checks for readiness probes
"""
import json
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import boto3
from psycopg2 import pool as pg_pool

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schema.sql"


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Loaded from environment variables in development, or from AWS Secrets
    Manager when a secret ARN is provided.
    """
    host: str
    port: int = 5432
    database: str = "journey"
    username: str = ""
    password: str = ""
    min_connections: int = 1
    max_connections: int = 5
    connect_timeout: int = 10
    ssl_mode: str = "prefer"

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Create config from environment variables.

        Environment variables:
            DB_HOST: Database host (default localhost)
            DB_PORT: Database port (default 5432)
            DB_NAME: Database name (default journey)
            DB_USER / DB_PASSWORD: Credentials
            DB_MIN_CONN / DB_MAX_CONN: Pool bounds (default 1 / 5)
            DB_SSL_MODE: SSL mode (default prefer)
        """
        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            database=os.getenv("DB_NAME", "journey"),
            username=os.getenv("DB_USER", ""),
            password=os.getenv("DB_PASSWORD", ""),
            min_connections=int(os.getenv("DB_MIN_CONN", "1")),
            max_connections=int(os.getenv("DB_MAX_CONN", "5")),
            ssl_mode=os.getenv("DB_SSL_MODE", "prefer"),
        )

    @classmethod
    def from_secrets_manager(cls, secret_arn: str, region: str = "us-east-1") -> "DatabaseConfig":
        """Load credentials from AWS Secrets Manager.

        Host, port and database fall back to the environment when the secret
        does not carry them.
        """
        try:
            client = boto3.client("secretsmanager", region_name=region)
            response = client.get_secret_value(SecretId=secret_arn)
            secret = json.loads(response["SecretString"])
        except Exception as e:
            logger.error(
                "SECRETS_MANAGER_LOAD_FAILED",
                extra={"error": str(e), "secret_arn": secret_arn}
            )
            raise

        env = cls.from_env()
        return cls(
            host=secret.get("host", env.host),
            port=int(secret.get("port", env.port)),
            database=secret.get("dbname", env.database),
            username=secret.get("username", ""),
            password=secret.get("password", ""),
            min_connections=env.min_connections,
            max_connections=env.max_connections,
            ssl_mode=env.ssl_mode,
        )

    @classmethod
    def load(cls) -> "DatabaseConfig":
        """Secrets Manager when DB_SECRET_ARN is set, environment otherwise."""
        secret_arn = os.getenv("DB_SECRET_ARN")
        if secret_arn:
            return cls.from_secrets_manager(secret_arn, os.getenv("AWS_REGION", "us-east-1"))
        return cls.from_env()


class ConnectionManager:
    """Owns the connection pool shared by all repositories of a service."""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._pool: Optional[pg_pool.ThreadedConnectionPool] = None

        logger.info(
            "CONNECTION_MANAGER_CREATED",
            extra={
                "host": config.host,
                "database": config.database,
                "max_connections": config.max_connections,
            }
        )

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    def initialize(self) -> None:
        """Open the pool. Safe to call more than once."""
        if self._pool is not None:
            return

        try:
            self._pool = pg_pool.ThreadedConnectionPool(
                minconn=self.config.min_connections,
                maxconn=self.config.max_connections,
                host=self.config.host,
                port=self.config.port,
                database=self.config.database,
                user=self.config.username,
                password=self.config.password,
                connect_timeout=self.config.connect_timeout,
                sslmode=self.config.ssl_mode,
            )
        except Exception as e:
            logger.error(
                "CONNECTION_POOL_INIT_FAILED",
                extra={"host": self.config.host, "error": str(e)}
            )
            raise

        logger.info(
            "CONNECTION_POOL_INITIALIZED",
            extra={"host": self.config.host, "database": self.config.database}
        )

    @contextmanager
    def get_connection(self) -> Iterator[Any]:
        """Borrow a pooled connection.

        The open transaction is rolled back if the body raises; callers
        commit explicitly.

        Usage:
            with manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
        """
        if self._pool is None:
            self.initialize()

        conn = self._pool.getconn()
        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)

    def apply_schema(self, schema_path: Path = SCHEMA_PATH) -> None:
        """Create missing tables. Every statement is IF NOT EXISTS."""
        ddl = schema_path.read_text()
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(ddl)
            conn.commit()

        logger.info("SCHEMA_APPLIED", extra={"schema_path": str(schema_path)})

    def health_check(self) -> Dict[str, Any]:
        """Check database connectivity for /ready probes."""
        if self._pool is None:
            return {"status": "not_initialized", "healthy": False}

        try:
            with self.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
                    cur.fetchone()
        except Exception as e:
            logger.error("DATABASE_HEALTH_CHECK_FAILED", extra={"error": str(e)})
            return {"status": "error", "healthy": False, "error": str(e)}

        return {
            "status": "connected",
            "healthy": True,
            "host": self.config.host,
            "database": self.config.database,
        }

    def close(self) -> None:
        """Close every pooled connection. Call during shutdown."""
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
            logger.info("CONNECTION_POOL_CLOSED")


_connection_manager: Optional[ConnectionManager] = None


def get_connection_manager() -> ConnectionManager:
    """Get or create the process-wide connection manager."""
    global _connection_manager

    if _connection_manager is None:
        _connection_manager = ConnectionManager(DatabaseConfig.load())

    return _connection_manager
