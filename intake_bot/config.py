"""Configuration management for the Renovation Intake Bot."""

import os

class Settings:
    """Simple settings class."""

    def __init__(self) -> None:
        try:
            from dotenv import load_dotenv
            load_dotenv()
        except ImportError:
            pass

        # Telegram Bot
        self.telegram_bot_token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
        self.telegram_webhook_url: str = os.getenv("TELEGRAM_WEBHOOK_URL", "")
        self.telegram_webhook_secret: str = os.getenv("TELEGRAM_WEBHOOK_SECRET", "")
        self.webhook_path: str = os.getenv("WEBHOOK_PATH", "/telegram/webhook")
        self.admin_chat_id: int = int(os.getenv("ADMIN_CHAT_ID", "0") or "0")
        self.allowed_user_ids: str = os.getenv("ALLOWED_USER_IDS", "")

        # Redis session store
        self.redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self.session_ttl_seconds: int = int(os.getenv("SESSION_TTL_SECONDS", "3600"))

        # Survey
        self.questions_path: str = os.getenv("QUESTIONS_PATH", "")

        # Google
        self.google_service_account_key: str = os.getenv("GOOGLE_SERVICE_ACCOUNT_KEY", "")
        self.google_sheet_id: str = os.getenv("GOOGLE_SHEET_ID", "")
        self.google_sheet_title: str = os.getenv("GOOGLE_SHEET_TITLE", "Renovation Projects")
        self.google_drive_parent_folder_id: str = os.getenv("GOOGLE_DRIVE_PARENT_FOLDER_ID", "")
        self.drive_link_role: str = os.getenv("DRIVE_LINK_ROLE", "writer")

        # Timeouts (seconds)
        self.telegram_timeout: float = float(os.getenv("TELEGRAM_TIMEOUT", "10"))
        self.store_timeout: float = float(os.getenv("STORE_TIMEOUT", "5"))
        self.sheets_timeout: float = float(os.getenv("SHEETS_TIMEOUT", "15"))
        self.drive_timeout: float = float(os.getenv("DRIVE_TIMEOUT", "15"))

        # Application
        self.debug: bool = os.getenv("DEBUG", "false").lower() == "true"
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def allowed_user_ids_list(self) -> list[int]:
        """Get allowed user IDs as list of integers."""
        if not self.allowed_user_ids:
            return []
        return [int(uid.strip()) for uid in self.allowed_user_ids.split(",") if uid.strip()]

    @property
    def drive_enabled(self) -> bool:
        """Return True when project folders should be created on Google Drive."""
        return bool(self.google_drive_parent_folder_id and self.google_service_account_key)

settings = Settings()
