from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    app_name: str = "WeCare Donations API"
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

    jwt_secret: str = "dev"
    jwt_alg: str = "HS256"
    access_ttl_days: int = 7

    use_mongo: bool = False
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "wecaredb"
    mongo_timeout_ms: int = 5000

    upload_dir: str = "uploads"
    max_upload_bytes: int = 5 * 1024 * 1024
    max_images: int = 5

    llm_base_url: str = "https://api.openai.com/v1"
    llm_api_key: str = ""
    llm_model: str = "gpt-4"
    llm_timeout_seconds: float = 30.0

    # candidates sent to the model / entries kept from its answer
    match_candidate_limit: int = 10
    match_result_limit: int = 5

    admin_email: str = "admin@wecaredonations.com"
    admin_password: str = "admin123"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
