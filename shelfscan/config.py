"""Application configuration using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # App Settings
    debug: bool = False
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_json_console: bool = False
    app_host: str = "0.0.0.0"
    app_port: int = 8001

    # ==========================================================================
    # Navigation
    # ==========================================================================
    navigation_max_retries: int = 3
    navigation_timeout_seconds: float = 60.0
    navigation_base_delay_seconds: float = 2.0  # Linear: base * attempt
    listing_wait_timeout_seconds: float = 12.0  # Missing container is tolerated

    # ==========================================================================
    # Convergence loop
    # ==========================================================================
    max_iterations: int = 15
    stable_threshold: int = 3  # Consecutive unchanged counts to declare convergence
    iteration_delay_seconds: float = 2.0
    settle_delay_seconds: float = 2.0
    scroll_step_pixels: int = 400
    scroll_step_delay_seconds: float = 0.1
    max_scroll_steps: int = 60
    lazy_image_timeout_seconds: float = 10.0
    loading_indicator_timeout_seconds: float = 10.0
    poll_interval_seconds: float = 0.25

    # ==========================================================================
    # Render session
    # ==========================================================================
    headless: bool = True
    viewport_width: int = 1920
    viewport_height: int = 1080
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    rotate_user_agent: bool = False
    accept_language: str = "en-US,en;q=0.9"
    blocked_resource_types: list[str] = ["stylesheet", "font", "image", "media"]

    # ==========================================================================
    # Fleet
    # ==========================================================================
    max_concurrent_targets: int = 8  # 0 = no limit
    target_timeout_seconds: float = 300.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
