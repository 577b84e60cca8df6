"""Application configuration using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # App Settings
    debug: bool = False
    log_level: str = "INFO"
    log_dir: str = ""  # Empty = current working directory
    app_host: str = "0.0.0.0"
    app_port: int = 3001
    cors_allow_origins: list[str] = ["*"]

    # ==========================================================================
    # Image Storage Settings
    # ==========================================================================
    download_dir: str = "downloads/images"
    images_url_prefix: str = "/api/images"
    # Prepended to local image paths in responses. Empty = derive from request.
    public_base_url: str = ""

    # ==========================================================================
    # Request Identity
    # ==========================================================================
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
    )
    accept_language: str = "en-US,en;q=0.9"
    # The target CDN validates the referer
    default_referer: str = "https://us.shein.com/"

    # ==========================================================================
    # Image Download Settings
    # ==========================================================================
    image_download_timeout: float = 20.0  # Seconds per candidate attempt
    max_redirects: int = 5  # Redirect hops followed per candidate

    # ==========================================================================
    # Headless Browser Settings
    # ==========================================================================
    browser_headless: bool = True
    navigation_timeout_seconds: int = 30
    extraction_timeout_seconds: float = 90.0  # Overall budget per extraction
    img_wait_timeout_seconds: int = 5
    scroll_settle_seconds: float = 2.0
    viewport_width: int = 1280
    viewport_height: int = 720

    # ==========================================================================
    # Extraction Limits
    # ==========================================================================
    max_fused_images: int = 8
    description_max_length: int = 500
    max_options: int = 10

    # ==========================================================================
    # Image Proxy Settings
    # ==========================================================================
    proxy_timeout_seconds: float = 10.0
    proxy_cache_max_age: int = 86400  # 1 day

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
