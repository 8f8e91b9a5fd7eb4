import os
from dataclasses import dataclass

DEFAULT_DB_URL = "sqlite+aiosqlite:///recordkit.db"
DB_URL_ENV_VAR = "RECORDKIT_DB_URL"


@dataclass
class DbConfig:
    url: str
    echo: bool = False
    pool_pre_ping: bool = True

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not self.url:
            raise ValueError("url must be a non-empty SQLAlchemy database URL")

    @classmethod
    def from_env(cls, env_var: str = DB_URL_ENV_VAR) -> "DbConfig":
        """
        Build a config from the environment.

        Falls back to a local SQLite file when the variable is not set.
        """
        return cls(url=os.environ.get(env_var, DEFAULT_DB_URL))
