from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CHATHUB_", env_file=".env", extra="ignore")

    host: str = "127.0.0.1"
    port: int = 8000
    cors_allowed_origins: str = "*"

    # Пустой путь означает хранение сообщений только в памяти
    database_path: str = "chat.sqlite3"

    room_replay_limit: int = 50
    http_default_limit: int = 50

    log_level: str = "INFO"


settings = Settings()
