from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    log_level: str = "INFO"

    # Trendyol seller API
    trendyol_base_url: str = "https://apigw.trendyol.com/sapigw"
    trendyol_api_key: str = ""
    trendyol_api_secret: str = ""
    trendyol_supplier_id: str = ""
    trendyol_request_timeout: float = 30.0
    trendyol_user_agent: Optional[str] = None
    trendyol_treat_556_as_transient: bool = False

    # Defaults applied when pushing storefront products
    trendyol_currency: str = "TRY"
    trendyol_vat_rate: int = 18
    trendyol_cargo_company_id: int = 10
    trendyol_dimensional_weight: float = 1
    trendyol_default_brand: Optional[str] = None

    trendyol_brand_page_size: int = 500
    trendyol_max_batch_items: int = 1000
    trendyol_batch_poll_interval: float = 5.0
    trendyol_batch_max_wait: float = 300.0
    trendyol_retry_attempts: int = 1
    trendyol_retry_base_delay: float = 1.0

    celery_broker_url: str = "redis://redis:6379/0"
    celery_result_backend: str = "redis://redis:6379/1"
    celery_task_serializer: str = "json"
    celery_result_serializer: str = "json"
    celery_accept_content: list = ["json"]
    celery_timezone: str = "UTC"
    celery_enable_utc: bool = True

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
