import os

from pydantic_settings import BaseSettings


_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class Settings(BaseSettings):
    APP_NAME: str = "Records Pro API"
    VERSION: str = "1.0.0"
    SECRET_KEY: str = "change-me-in-production-use-strong-random-key"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    TEMPORARY_TOKEN_EXPIRE_MINUTES: int = 60  # issued while a password change is pending

    # JSON file storage
    DATA_DIR: str = os.path.join(_BACKEND_DIR, "data")
    PATIENTS_FILE: str = "patients.json"
    USERS_FILE: str = "users.json"

    # Seeded when the users file is missing or empty
    DEFAULT_ADMIN_EMAIL: str = "admin@hospital.com"
    DEFAULT_ADMIN_PASSWORD: str = "admin123"
    SEED_DEMO_USERS: bool = False

    CLIENT_URL: str = "*"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

    @property
    def patients_path(self) -> str:
        return os.path.join(self.DATA_DIR, self.PATIENTS_FILE)

    @property
    def users_path(self) -> str:
        return os.path.join(self.DATA_DIR, self.USERS_FILE)


settings = Settings()
