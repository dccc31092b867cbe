"""Runtime settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="COACHRELAY_", extra="ignore")

    app_name: str = "CoachRelay"
    env: str = "dev"
    log_level: str = "info"
    host: str = "127.0.0.1"
    port: int = 18090

    supabase_url: str = ""
    supabase_service_role_key: str = ""
    storage_backend: str = "supabase"  # supabase | memory
    webhooks_table: str = "webhooks"
    chats_table: str = "chats"

    fallback_webhook_url: str = "https://zaytoven.app.n8n.cloud/webhook/hd-operator"
    fallback_webhook_name: str = "Fallback Webhook"
    fallback_webhook_priority: int = 1
    default_system_prompt: str = "You are HD-Physique AI assistant."

    # 0 disables the limit; a slow candidate then blocks the whole request.
    candidate_timeout_seconds: float = Field(default=30.0, ge=0.0)
    directory_timeout_seconds: float = Field(default=5.0, gt=0.0)
    upstream_max_connections: int = 100
    upstream_max_keepalive_connections: int = 20

    # checked after authentication; 0 disables
    max_request_body_bytes: int = 1_000_000
    max_message_chars: int = 4000
    max_system_prompt_chars: int = 4000
    max_date_code_chars: int = 32
    max_raw_output_chars: int = 5000
    cors_allow_headers: str = "authorization, x-client-info, apikey, content-type"


settings = Settings()
