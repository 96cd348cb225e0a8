from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    overpass_timeout: int = 25
    overpass_http_timeout: float = 30.0
    overpass_user_agent: str = "clinicfinder/0.1 (clinic-discovery)"
    cache_ttl: int = 600
    cache_maxsize: int = 512
    default_radius_m: int = 5000
    max_radius_m: int = 50000
    default_limit: int = 10
    location_timeout: float = 10.0
    high_accuracy_timeout: float = 60.0
    high_accuracy_attempts: int = 3
    high_accuracy_target_m: float = 20.0
    location_cache_max_age: int = 600
    recent_fix_max_age: int = 300
    emergency_dial_code: str = "108"
    default_language: str = "en"
    cors_origins: str = "*"
    log_format: str = "text"
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
