from pydantic_settings import BaseSettings
from pydantic import BaseModel, Field
from typing import List, Optional

class AlertThresholds(BaseModel):
    """Threshold set used by the alert service"""
    margin_low: float = 60.0            # % minimum margin
    margin_critical: float = 50.0       # % margin below which low-margin alerts are critical
    food_cost_high: float = 35.0        # % maximum food cost
    price_increase: float = 10.0        # % price increase that raises an alert
    price_increase_critical: float = 20.0

class Settings(BaseSettings):
    # Database
    database_url: Optional[str] = Field(default=None, alias='DATABASE_URL')
    db_user: str = Field(default='postgres', alias='DB_USER')
    db_host: str = Field(default='localhost', alias='DB_HOST')
    db_password: str = Field(default='', alias='DB_PASSWORD')
    db_port: int = Field(default=5432, alias='DB_PORT')
    db_name: str = Field(default='costcontrol', alias='DB_NAME')
    db_pool_min_size: int = Field(default=5, alias='DB_POOL_MIN_SIZE')
    db_pool_max_size: int = Field(default=20, alias='DB_POOL_MAX_SIZE')
    db_command_timeout: float = Field(default=60, alias='DB_COMMAND_TIMEOUT')

    # App settings
    environment: str = Field(default="development", alias='ENVIRONMENT')
    debug: bool = Field(default=False, alias='DEBUG')
    log_level: str = Field(default="INFO", alias='LOG_LEVEL')

    # CORS configuration (comma separated)
    cors_origins: str = Field(default="http://localhost:8080", alias='CORS_ORIGINS')

    # Alert thresholds
    alert_margin_low: float = Field(default=60.0, alias='ALERT_MARGIN_LOW')
    alert_margin_critical: float = Field(default=50.0, alias='ALERT_MARGIN_CRITICAL')
    alert_food_cost_high: float = Field(default=35.0, alias='ALERT_FOOD_COST_HIGH')
    alert_price_increase: float = Field(default=10.0, alias='ALERT_PRICE_INCREASE')
    alert_price_increase_critical: float = Field(default=20.0, alias='ALERT_PRICE_INCREASE_CRITICAL')

    # Stock movement outbox
    movement_outbox_flush_interval: float = Field(default=30.0, alias='MOVEMENT_OUTBOX_FLUSH_INTERVAL')
    movement_outbox_max_attempts: int = Field(default=5, alias='MOVEMENT_OUTBOX_MAX_ATTEMPTS')
    movement_outbox_max_pending: int = Field(default=10000, alias='MOVEMENT_OUTBOX_MAX_PENDING')

    class Config:
        env_file = ".env"
        extra = "ignore"  # Ignore extra environment variables
        populate_by_name = True

    # Calculated properties
    @property
    def db_connection_params(self) -> dict:
        if self.database_url:
            return {"dsn": self.database_url}
        return {
            "host": self.db_host,
            "port": self.db_port,
            "user": self.db_user,
            "password": self.db_password,
            "database": self.db_name,
        }

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def alert_thresholds(self) -> AlertThresholds:
        return AlertThresholds(
            margin_low=self.alert_margin_low,
            margin_critical=self.alert_margin_critical,
            food_cost_high=self.alert_food_cost_high,
            price_increase=self.alert_price_increase,
            price_increase_critical=self.alert_price_increase_critical,
        )

settings = Settings()
