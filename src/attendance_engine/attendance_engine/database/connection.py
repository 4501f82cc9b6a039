from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

import mysql.connector


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any]) -> "DBConfig":
        return cls(
            host=str(cfg.get("host", "localhost")),
            port=int(cfg.get("port", 3306)),
            user=str(cfg.get("user", "root")),
            password=str(cfg.get("password", "")),
            database=str(cfg.get("database", "attendance_db")),
        )


class DatabaseConnection:
    """Process-wide connection factory.

    Connections are short-lived, one per repository call; named locks hold their own
    connection for the duration of the locked section.
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: DBConfig):
        self._config = config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if cls._instance is None or cls._instance._config != config:
            cls._instance = DatabaseConnection(config)
        return cls._instance

    @property
    def database(self) -> str:
        return self._config.database

    def connect(self, *, with_database: bool = True):
        kwargs: dict[str, Any] = {
            "host": self._config.host,
            "port": int(self._config.port),
            "user": self._config.user,
            "password": self._config.password,
            "use_pure": True,
        }
        if with_database:
            kwargs["database"] = self._config.database
        return mysql.connector.connect(**kwargs)
