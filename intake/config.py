# =============================================================================
# File: intake/config.py
# Purpose: Runtime settings. Defaults, then optional YAML file, then env vars.
# =============================================================================
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

# Env var name -> Config field
ENV_KEYS = {
    "INTAKE_SECRET_KEY": "secret_key",
    "INTAKE_DATA_DIR": "data_dir",
    "INTAKE_UPLOAD_DIR": "upload_dir",
    "INTAKE_RECORDS_FILE": "records_file",
    "INTAKE_USERS_FILE": "users_file",
    "RECORD_BACKEND": "record_backend",
    "DATABASE_URL": "database_url",
    "ADMIN_USERNAME": "admin_username",
    "ADMIN_PASSWORD": "admin_password",
    "BCRYPT_ROUNDS": "bcrypt_rounds",
    "SESSION_LIFETIME_SECONDS": "session_lifetime_seconds",
    "MAX_UPLOAD_MB": "max_upload_mb",
    "CSV_DATE_FORMAT": "csv_date_format",
    "LOG_LEVEL": "log_level",
}


@dataclass
class Config:
    secret_key: str = "change-me"
    data_dir: str = "data"
    upload_dir: str = "uploads"
    # Empty means "<data_dir>/records.json" / "<data_dir>/users.json"
    records_file: str = ""
    users_file: str = ""
    record_backend: str = "json"  # "json" | "sql"
    database_url: str = ""
    admin_username: str = "admin"
    admin_password: str = "admin123"
    bcrypt_rounds: int = 10
    session_lifetime_seconds: int = 3600
    max_upload_mb: int = 20
    csv_date_format: str = "%Y-%m-%d %H:%M:%S"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        load_dotenv()
        cfg = cls()

        yaml_path = os.getenv("INTAKE_CONFIG")
        if yaml_path:
            cfg.override(load_yaml_settings(Path(yaml_path)))

        from_env = {
            field: os.environ[key]
            for key, field in ENV_KEYS.items()
            if os.environ.get(key)
        }
        cfg.override(from_env)
        return cfg

    def override(self, values: dict[str, Any]) -> None:
        """Set known fields, coercing to the declared type.

        Unknown keys and None values (blank YAML keys) are ignored.
        """
        for f in fields(self):
            raw = values.get(f.name)
            if raw is None:
                continue
            if f.type in ("int", int):
                raw = int(raw)
            else:
                raw = str(raw)
            setattr(self, f.name, raw)

    @property
    def records_path(self) -> Path:
        return Path(self.records_file or Path(self.data_dir) / "records.json")

    @property
    def users_path(self) -> Path:
        return Path(self.users_file or Path(self.data_dir) / "users.json")

    @property
    def sql_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{Path(self.data_dir).resolve() / 'records.db'}"

    def to_flask_dict(self) -> dict[str, Any]:
        return {
            "SECRET_KEY": self.secret_key,
            "MAX_CONTENT_LENGTH": self.max_upload_mb * 1024 * 1024,
            "PERMANENT_SESSION_LIFETIME": timedelta(seconds=self.session_lifetime_seconds),
            "SESSION_REFRESH_EACH_REQUEST": True,
            "SESSION_COOKIE_HTTPONLY": True,
            "SESSION_COOKIE_SAMESITE": "Lax",
            "ADMIN_USERNAME": self.admin_username,
            "CSV_DATE_FORMAT": self.csv_date_format,
        }


def load_yaml_settings(path: Path) -> dict[str, Any]:
    """Read a flat mapping of settings from a YAML file.

    A missing file or a document that is not a mapping yields {}.
    """
    if not path.exists():
        return {}

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        return {}
    return {str(k).lower(): v for k, v in data.items()}
