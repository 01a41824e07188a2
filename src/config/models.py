from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


class ApplicationSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    base_url: str = "http://127.0.0.1:8000"

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class DatabaseSettings(BaseModel):
    path: str = "./data/newsletter.db"
    migrations_dir: str | None = None  # None = bundled migrations/
    busy_timeout_seconds: float = Field(default=5.0, gt=0)
    run_migrations_on_startup: bool = True


class EmailClientSettings(BaseModel):
    enabled: bool = False  # False = log emails instead of sending
    base_url: str = "https://api.postmarkapp.com"
    sender_email: str
    authorization_token: SecretStr = SecretStr("")
    timeout_milliseconds: int = Field(default=10_000, gt=0)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_milliseconds / 1000


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

    @field_validator("level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class NewsletterSettings(BaseModel):
    confirmation_subject: str = "Welcome!"
    token_length: int = Field(default=20, ge=16, le=64)


class Settings(BaseModel):
    application: ApplicationSettings = ApplicationSettings()
    database: DatabaseSettings = DatabaseSettings()
    email_client: EmailClientSettings
    logging: LoggingSettings = LoggingSettings()
    newsletter: NewsletterSettings = NewsletterSettings()

    model_config = ConfigDict(extra="forbid")
