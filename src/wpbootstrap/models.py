"""Configuration records passed by value to every bootstrap stage."""

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass(frozen=True)
class DatabaseSettings:
    """Credentials consumed by the database bootstrap agent."""

    database: str
    user: str
    password: str = field(repr=False)
    root_password: Optional[str] = field(default=None, repr=False)


@dataclass(frozen=True)
class WordPressSettings:
    """Validated WordPress environment for the application bootstrap agent."""

    db_name: str
    db_user: str
    db_password: str = field(repr=False)
    db_host: str
    db_port: int
    site_url: str
    site_title: str
    admin_user: str
    admin_password: str = field(repr=False)
    admin_email: str
    table_prefix: str = "wp_"
    salts: Dict[str, str] = field(default_factory=dict, repr=False)
    debug: bool = False
    debug_log: bool = False
    debug_display: bool = False
    version: str = "latest"
    core_sha256: Optional[str] = None

    @property
    def db_address(self) -> str:
        return f"{self.db_host}:{self.db_port}"
