from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Cashew Lending API"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./cashew.db"
    cors_origins: str = "http://localhost:8080,http://127.0.0.1:8080"

    # Hosted platform (auth + object storage)
    supabase_url: str = "http://localhost:54321"
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    local_test_user_id: Optional[str] = None

    documents_bucket: str = "clients_documents"
    signed_url_ttl_seconds: int = 60

    min_loan_amount: int = 5000
    otp_resend_seconds: int = 30

    # Transactional email (Resend); confirmation emails are skipped when unset
    resend_api_key: Optional[str] = None
    email_from: str = "Cashew Philippines <noreply@cashew.ph>"

    public_site_url: str = "http://localhost:8080"
    referral_code: str = "CASHEW2024USER"
    ledger_page_size: int = 6

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def has_service_credentials(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)


settings = Settings()
