"""Application settings loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables.

    All settings can be overridden via environment variables prefixed with LINKPREVIEW_.
    For example, LINKPREVIEW_DEBUG=true sets debug=True.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LINKPREVIEW_",
        case_sensitive=False,
        extra="ignore",
    )

    # ─── Server Settings ─────────────────────────────────────────────
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS (comma-separated origins or "*")
    cors_origins: str = "*"

    def get_cors_origins(self) -> list[str]:
        """Get CORS origins as a list (parsed from comma-separated string)."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # ─── Rendering Service Credentials ───────────────────────────────
    cloudflare_account_id: str | None = None
    cloudflare_api_token: str | None = None
    cloudflare_api_base_url: str = "https://api.cloudflare.com/client/v4"

    # ─── Rendering Settings ──────────────────────────────────────────
    scrape_timeout_seconds: float = 25.0
    navigation_timeout_ms: int = 30_000
    screenshot_timeout_seconds: float = 30.0
    screenshot_viewport_width: int = 1280
    screenshot_viewport_height: int = 720
    screenshot_quality: int = 80

    # ─── Fetch Fallback Settings ─────────────────────────────────────
    use_fetch_fallback: bool = True
    fetch_timeout_seconds: float = 20.0
    fetch_max_bytes: int = 2_000_000
    fetch_max_redirects: int = 5
    fetch_user_agent: str = "Mozilla/5.0 (compatible; LinkPreviewBot/0.1; +https://example.invalid/bot)"

    # ─── Preview Image Cache ─────────────────────────────────────────
    # Download the resolved preview image and keep a copy in blob storage
    cache_preview_images: bool = True
    image_max_bytes: int = 5_000_000

    # ─── Asset Proxy ─────────────────────────────────────────────────
    # Origin of an image proxy; preview images and favicons are rewritten through it
    asset_proxy_origin: str | None = None

    # ─── HTTP Client Settings ────────────────────────────────────────
    max_connections: int = 100
    max_keepalive_connections: int = 20
    request_timeout: float = 30.0

    # ─── SSL/TLS Settings ───────────────────────────────────────────
    # Path to corporate CA certificate bundle (PEM format)
    # Can be a single file or directory containing certificates
    ssl_cert_dir: str | None = None
    # Path to a specific CA certificate file (alternative to ssl_cert_dir)
    ssl_ca_bundle: str | None = None
    # Disable SSL verification (NOT recommended for production)
    ssl_verify: bool = True

    # ─── Extraction Retry Budgets ────────────────────────────────────
    rate_limit_max_retries: int = 3
    rate_limit_delay_seconds: float = 15.0
    rate_limit_max_delay_seconds: float = 60.0
    session_error_max_retries: int = 3
    session_error_delay_seconds: float = 10.0
    http_error_max_retries: int = 2
    http_error_delay_seconds: float = 5.0
    scrape_error_max_retries: int = 1
    scrape_error_delay_seconds: float = 5.0
    timeout_max_retries: int = 1
    timeout_delay_seconds: float = 5.0
    network_error_max_retries: int = 1
    network_error_delay_seconds: float = 5.0

    # ─── Screenshot Retry Budgets ────────────────────────────────────
    screenshot_rate_limit_max_retries: int = 3
    screenshot_rate_limit_delay_seconds: float = 15.0
    screenshot_http_error_max_retries: int = 1
    screenshot_http_error_delay_seconds: float = 5.0

    def is_rendering_configured(self) -> bool:
        """Check if the browser rendering service is configured."""
        return bool(self.cloudflare_account_id and self.cloudflare_api_token)

    def get_ssl_context(self) -> bool | str:
        """
        Get SSL verification configuration for httpx.

        Returns:
            - False if ssl_verify is disabled
            - Path to CA bundle/cert dir if configured
            - True for default SSL verification

        Priority: ssl_verify=False > ssl_ca_bundle > ssl_cert_dir > True
        """
        if not self.ssl_verify:
            return False
        if self.ssl_ca_bundle:
            return self.ssl_ca_bundle
        if self.ssl_cert_dir:
            return self.ssl_cert_dir
        return True


# Global settings instance
settings = Settings()
