import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"


@dataclass(frozen=True)
class Settings:
    """Application configuration, built once at startup"""

    database_url: Optional[str] = None
    data_file: Path = Path("data/db.json")
    users_file: Path = Path("data/users.json")
    jwt_secret: str = "coffee-shop-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_expiry_hours: int = 24
    bcrypt_rounds: int = 12
    admin_password: str = "change-me-admin"
    cors_origins: Tuple[str, ...] = field(default_factory=tuple)
    log_level: str = "INFO"
    port: int = 3004

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
        return cls(
            database_url=os.getenv("DATABASE_URL") or None,
            data_file=Path(os.getenv("DATA_FILE", "data/db.json")),
            users_file=Path(os.getenv("USERS_FILE", "data/users.json")),
            jwt_secret=os.getenv("JWT_SECRET", "coffee-shop-secret-change-me"),
            jwt_expiry_hours=int(os.getenv("JWT_EXPIRY_HOURS", "24")),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
            admin_password=os.getenv("ADMIN_PASSWORD", "change-me-admin"),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            port=int(os.getenv("PORT", "3004")),
        )
