"""Encrypted credential store backed by PostgreSQL.

Usage::

    from calbridge.credentials.store import get_credential_store

    store = get_credential_store()
    store.set("calendar_token", token_json, credential_type="oauth_token")
    token_json = store.get("calendar_token")
    store.mark_invalid("calendar_token")

Connections come from a small psycopg2 pool that the store opens on first
use, so building a store (or reading ``available``) never touches the
database.
"""

import atexit
import datetime
import logging
import os
import threading
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

import psycopg2
import psycopg2.pool
from cryptography.fernet import InvalidToken

from calbridge.credentials.crypto import seal, unseal

logger = logging.getLogger(__name__)

_ENV_KEY = "CALBRIDGE_CREDENTIAL_KEY"
INVALID_SUFFIX = ":invalid"
TABLE = "calbridge_credentials"

# Token reads, invalidation and setup are the only writers.
MIN_CONN = 1
MAX_CONN = 3

_instance: Optional["CredentialStore"] = None


def database_settings(database_config: Dict[str, Any]) -> Dict[str, Any]:
    """Connection keywords for the credential database.

    Values from the ``database`` config section win over the POSTGRES_*
    environment variables.

    Raises:
        ValueError: If the database name, user or password is missing.
    """
    settings = {
        "database": database_config.get("db_name") or os.getenv("POSTGRES_DB"),
        "user": database_config.get("user") or os.getenv("POSTGRES_USER"),
        "password": database_config.get("password") or os.getenv("POSTGRES_PASSWORD"),
        "host": database_config.get("host") or os.getenv("POSTGRES_HOST", "localhost"),
        "port": database_config.get("port") or os.getenv("POSTGRES_PORT", "5432"),
    }
    missing = [key for key in ("database", "user", "password") if not settings[key]]
    if missing:
        raise ValueError(
            f"Credential database is not configured (missing {', '.join(missing)}); "
            "set the database section in config.yaml or POSTGRES_DB, "
            "POSTGRES_USER and POSTGRES_PASSWORD"
        )
    return settings


class CredentialStore:
    """Encrypted credential CRUD against the ``calbridge_credentials`` table."""

    def __init__(
        self,
        master_key: Optional[str] = None,
        database_config: Optional[Dict[str, Any]] = None,
    ):
        from calbridge.config.config_loader import config_loader

        self._master_key = master_key or os.environ.get(_ENV_KEY, "")
        if not self._master_key:
            self._master_key = config_loader.get_config().get("credential_key") or ""
        if not self._master_key:
            logger.warning(
                f"{_ENV_KEY} not set; credential store will be unavailable"
            )
        if database_config is None:
            database_config = config_loader.get_database_config()
        self._database_config = database_config
        self._pool: Optional[psycopg2.pool.ThreadedConnectionPool] = None
        self._pool_lock = threading.Lock()

    @property
    def available(self) -> bool:
        """True when the master key is configured."""
        return bool(self._master_key)

    def _get_pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        with self._pool_lock:
            if self._pool is None:
                settings = database_settings(self._database_config)
                self._pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=MIN_CONN, maxconn=MAX_CONN, **settings
                )
                atexit.register(self.close)
                logger.info(
                    f"Credential store connected to '{settings['database']}' "
                    f"at {settings['host']}:{settings['port']}"
                )
            return self._pool

    @contextmanager
    def _cursor(self, commit: bool = False) -> Generator[Any, None, None]:
        """Yield a cursor on a pooled connection.

        With *commit* the transaction is committed when the block exits
        cleanly; any database error rolls it back and propagates.
        """
        pool = self._get_pool()
        conn = pool.getconn()
        try:
            with conn.cursor() as cur:
                yield cur
            if commit:
                conn.commit()
        except psycopg2.Error as e:
            logger.error(f"Credential store query failed, rolling back: {e}")
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)

    def close(self) -> None:
        """Close every pooled connection."""
        with self._pool_lock:
            if self._pool is not None:
                self._pool.closeall()
                self._pool = None
                logger.debug("Credential store connection pool closed")

    def init_schema(self) -> None:
        """Create the ``calbridge_credentials`` table if it does not exist."""
        with self._cursor(commit=True) as cur:
            cur.execute(f"""
                CREATE TABLE IF NOT EXISTS {TABLE} (
                    name            VARCHAR(255) PRIMARY KEY,
                    encrypted_value TEXT         NOT NULL,
                    credential_type VARCHAR(50)  NOT NULL,
                    updated_at      TIMESTAMPTZ  DEFAULT CURRENT_TIMESTAMP
                );
            """)
        logger.info(f"{TABLE} table ready")

    def set(self, name: str, value: str, credential_type: str = "api_key") -> None:
        """Store (or replace) a credential."""
        if not self.available:
            raise RuntimeError(f"Credential store unavailable; {_ENV_KEY} not set")

        sql = f"""
            INSERT INTO {TABLE}
                (name, encrypted_value, credential_type, updated_at)
            VALUES (%s, %s, %s, CURRENT_TIMESTAMP)
            ON CONFLICT (name) DO UPDATE SET
                encrypted_value = EXCLUDED.encrypted_value,
                credential_type = EXCLUDED.credential_type,
                updated_at      = CURRENT_TIMESTAMP;
        """
        with self._cursor(commit=True) as cur:
            cur.execute(sql, (name, seal(value, self._master_key), credential_type))
        logger.info(f"Stored credential '{name}' (type={credential_type})")

    def get(self, name: str) -> Optional[str]:
        """Retrieve and decrypt a credential.  Returns ``None`` if not found."""
        if not self.available:
            return None

        with self._cursor() as cur:
            cur.execute(f"SELECT encrypted_value FROM {TABLE} WHERE name = %s;", (name,))
            row = cur.fetchone()
        if not row:
            return None
        try:
            return unseal(row[0], self._master_key)
        except (InvalidToken, ValueError):
            logger.error(
                f"Failed to decrypt credential '{name}'; master key may have changed"
            )
            return None

    def delete(self, name: str) -> bool:
        """Delete a credential.  Returns ``True`` if a row was deleted."""
        with self._cursor(commit=True) as cur:
            cur.execute(f"DELETE FROM {TABLE} WHERE name = %s;", (name,))
            deleted = cur.rowcount > 0
        if deleted:
            logger.info(f"Deleted credential '{name}'")
        return deleted

    def mark_invalid(self, name: str) -> None:
        """Flag credential *name* as unusable until it is stored again."""
        now = datetime.datetime.now(datetime.timezone.utc).isoformat()
        self.set(f"{name}{INVALID_SUFFIX}", now, credential_type="marker")

    def is_invalid(self, name: str) -> bool:
        return self.get(f"{name}{INVALID_SUFFIX}") is not None

    def clear_invalid(self, name: str) -> None:
        self.delete(f"{name}{INVALID_SUFFIX}")


def get_credential_store() -> CredentialStore:
    """Return the singleton ``CredentialStore`` instance."""
    global _instance
    if _instance is None:
        _instance = CredentialStore()
    return _instance


def reset_credential_store() -> None:
    """Drop the singleton so the next call re-reads the master key."""
    global _instance
    if _instance is not None:
        _instance.close()
    _instance = None
