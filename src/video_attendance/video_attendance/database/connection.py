from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

import mysql.connector
from mysql.connector import pooling


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    pool_size: int = 5

    @classmethod
    def from_dict(cls, db_config: dict, *, pool_size: int = 5) -> "DBConfig":
        return cls(
            host=str(db_config["host"]),
            port=int(db_config.get("port", 3306)),
            user=str(db_config["user"]),
            password=str(db_config["password"]),
            database=str(db_config["database"]),
            pool_size=int(db_config.get("pool_size", pool_size)),
        )


class DatabaseConnection:
    """Singleton-like DB connection factory.

    Ingestion is a hot, concurrent path, so connections come from a pool that is
    created lazily on first use. Each repository operation borrows one
    connection and returns it when the cursor context closes.
    """

    _instance: Optional["DatabaseConnection"] = None
    _instance_lock = threading.Lock()

    def __init__(self, config: DBConfig):
        self._config = config
        self._pool: Optional[pooling.MySQLConnectionPool] = None
        self._pool_lock = threading.Lock()

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = DatabaseConnection(config)
            return cls._instance

    @property
    def config(self) -> DBConfig:
        return self._config

    def connect(self):
        if self._config.pool_size <= 1:
            return mysql.connector.connect(
                host=self._config.host,
                port=int(self._config.port),
                user=self._config.user,
                password=self._config.password,
                database=self._config.database,
            )

        return self._get_pool().get_connection()

    def _get_pool(self) -> pooling.MySQLConnectionPool:
        with self._pool_lock:
            if self._pool is None:
                self._pool = pooling.MySQLConnectionPool(
                    pool_name="video_attendance",
                    pool_size=int(self._config.pool_size),
                    pool_reset_session=True,
                    host=self._config.host,
                    port=int(self._config.port),
                    user=self._config.user,
                    password=self._config.password,
                    database=self._config.database,
                )
            return self._pool
