"""Pydantic models for server and converter configuration."""

from pydantic import BaseModel, Field, field_validator
from sqlalchemy.engine import URL


# ============================================================================
# Configuration Models
# ============================================================================


class ServerProfile(BaseModel):
    """SQL Server connection settings from the ``[server]`` table."""

    host: str = "mssql"
    port: int = 1433
    user: str = "sa"
    password: str = ""
    driver: str = "ODBC Driver 18 for SQL Server"
    encrypt: bool = True
    trust_server_certificate: bool = True
    pool_size: int = Field(default=10, ge=1)
    max_overflow: int = Field(default=0, ge=0)
    pool_recycle: int = 300

    def url(self, database: str = "master") -> URL:
        """Build the ``mssql+aioodbc`` SQLAlchemy URL for *database*."""
        return URL.create(
            "mssql+aioodbc",
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=database,
            query={
                "driver": self.driver,
                "Encrypt": "yes" if self.encrypt else "no",
                "TrustServerCertificate": "yes" if self.trust_server_certificate else "no",
            },
        )


class ConverterConfig(BaseModel):
    """Complete converter configuration.

    Passed explicitly into every pipeline component; nothing reads
    process-wide state after ``load_config()`` returns.
    """

    server: ServerProfile = Field(default_factory=ServerProfile)
    connect_timeout: float = 60.0
    retry_interval: float = Field(default=2.0, gt=0)
    data_dir: str = "/var/opt/mssql/data"
    upload_dir: str = "uploads"
    max_upload_bytes: int = Field(default=40 * 1024 * 1024, gt=0)
    json_max_string_length: int = Field(default=1500, ge=0)
    force_offline_before_drop: bool = True
    cors_origin_suffixes: list[str] = Field(
        default_factory=lambda: ["replit.dev", "presupuestos.red"]
    )

    @field_validator("data_dir")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/") or "/"
