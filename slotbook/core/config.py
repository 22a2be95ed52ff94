from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    BUSINESS_NAME: str = "Your Business"
    BUSINESS_TIMEZONE: str = "Asia/Yekaterinburg"

    SLOT_STEP_MINUTES: int = 15
    DAILY_BOOKING_LIMIT: int = 3
    DAY_CACHE_TTL_SECONDS: int = 1200

    # Default weekday hours used to seed the memory and JSON backends.
    WORKDAY_START: str = "10:00"
    WORKDAY_END: str = "20:00"
    WORKDAY_LUNCH_START: str | None = None
    WORKDAY_LUNCH_END: str | None = None
    WORKING_DAYS: str = "0,1,2,3,4,5"  # 0 = Monday

    CALENDAR_BACKEND: str = "json"  # memory | json | remote
    DATA_DIR: str = "./data/calendar"
    SERVICES_FILE: str = "./data/services.json"

    REMOTE_CALENDAR_BASE_URL: str | None = None
    REMOTE_CALENDAR_API_KEY: str | None = None
    REMOTE_CALENDAR_TIMEOUT_SECONDS: float = 10.0

    ADMIN_API_TOKEN: str | None = None

    @property
    def working_days_list(self) -> list[int]:
        return [int(day) for day in self.WORKING_DAYS.split(",") if day.strip()]


settings = Settings()
