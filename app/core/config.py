from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    APP_TITLE: str = "Sports Club Tournaments API"
    DATABASE_URL: str = "sqlite:///./sports_club.db"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
