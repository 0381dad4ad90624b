# services/api/settings.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field
import base64
from typing import List, Optional
from pathlib import Path

class Settings(BaseSettings):
    # Storage settings
    # Default to SQLite; override via .env (STORAGE_BACKEND=json)
    storage_backend: str = "sqlite"
    db_url: str = "sqlite:///data/sheet_editor.db"
    json_data_dir: str = "data"

    # ===== Source spreadsheet =====
    # Export URL is built as {spreadsheet_host}/{sheet_id}/export?format=csv
    spreadsheet_host: str = "https://docs.google.com/spreadsheets/d"
    sheet_id: str = ""

    # Outbound HTTP timeout (sheet export + webhook)
    http_timeout_seconds: float = 30.0

    # Fetched sheet is cached this long; /sheet/refresh bypasses it
    sheet_cache_ttl_seconds: int = 5

    # Idle editing sessions are dropped after this many seconds
    session_ttl_seconds: int = 3600

    # Upper bound on concurrent editing sessions; the least recently used one
    # (and its unsaved edits) is evicted once it is exceeded
    session_max_count: int = 1024

    # Number of entries returned by GET /sync/logs
    sync_log_limit: int = 20

    # ===== Write-back of saved rows =====
    # webhook | sheets | none
    mirror_backend: str = "webhook"
    webhook_url: str = ""

    # Only used when MIRROR_BACKEND=sheets
    google_sa_json: str = ""
    google_sa_json_base64: str = ""
    mirror_worksheet_title: str = "Sheet1"

    # ===== Column display =====
    # Comma-separated header names whose values are shortened in the `display` field.
    # Matching is substring-based in both directions, case-insensitive.
    truncate_columns: str = ""
    truncate_max_length: int = 30

    # CORS settings
    allowed_origins: str = "http://localhost:3000,http://localhost:5173,http://localhost:8000"

    # Email settings (sync failure alerts)
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from_email: str = ""
    smtp_from_name: str = "Sheet Editor"

    # Comma-separated recipients for sync failure alerts; empty disables alerts
    sync_alert_emails: Optional[str] = Field(
        default=None,
        description="Comma-separated emails to alert when a sheet sync fails",
    )

    model_config = ConfigDict(
        # Always load .env from the same folder as this settings.py
        env_file=str(Path(__file__).resolve().parent / ".env"),
        extra="ignore",
    )

    def resolved_google_sa_json(self) -> str:
        """
        Return the path (or inline JSON) of the service account.
        If GOOGLE_SA_JSON_BASE64 is set, decode it to a temp file.
        Otherwise return GOOGLE_SA_JSON as-is.
        """
        if self.google_sa_json_base64:
            import tempfile

            decoded = base64.b64decode(self.google_sa_json_base64)
            temp_file = tempfile.NamedTemporaryFile(mode='w', delete=False, suffix='.json')
            temp_file.write(decoded.decode('utf-8'))
            temp_file.close()
            return temp_file.name

        return self.google_sa_json

    def get_origins_list(self) -> List[str]:
        """Parse comma-separated origins into a list."""
        if not self.allowed_origins:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    def get_truncate_columns(self) -> List[str]:
        return [c.strip() for c in self.truncate_columns.split(",") if c.strip()]

    def get_alert_recipients(self) -> List[str]:
        raw = (self.sync_alert_emails or "").strip()
        return [x.strip() for x in raw.split(",") if x and x.strip()]


_settings_instance = None

def get_settings() -> Settings:
    """Singleton pattern for settings."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
