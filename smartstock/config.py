from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    sync_backend: str = 'local'
    local_state_path: str = 'smartstock_state.json'

    google_service_account_email: str | None = None
    google_private_key: str | None = None
    google_sheet_id: str | None = None
    sheets_api_base_url: str = 'https://sheets.googleapis.com'
    sheets_timeout_seconds: int = 30

    database_url: str | None = None
    database_user_id: str | None = None

    order_increments_stock: bool = False
    csv_price_markup: str = '1.3'
    log_level: str = 'INFO'

    @property
    def database_url_normalized(self) -> str | None:
        if not self.database_url:
            return None
        url = self.database_url.strip()
        if url.startswith('postgres://'):
            return 'postgresql+psycopg://' + url[len('postgres://') :]
        if url.startswith('postgresql://'):
            return 'postgresql+psycopg://' + url[len('postgresql://') :]
        return url

    @property
    def google_private_key_normalized(self) -> str | None:
        if not self.google_private_key:
            return None
        # Keys pasted into .env files keep their newlines escaped.
        return self.google_private_key.replace('\\n', '\n')


settings = Settings()
