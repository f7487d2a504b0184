"""Configuration de l'application SEIDO Interventions"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Paramètres de configuration"""

    # Application
    APP_NAME: str = "SEIDO Interventions"
    VERSION: str = "1.0.0"
    DEBUG: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # CORS - URLs autorisées
    CORS_ORIGINS: str = "http://localhost:8000,http://localhost:3000,http://127.0.0.1:3000"

    # Supabase
    SUPABASE_URL: str
    SUPABASE_KEY: str
    SUPABASE_SERVICE_KEY: Optional[str] = None

    # Liens dans les emails
    APP_URL: str = "http://localhost:3000"

    # Emails transactionnels (Resend). Sans clé, les emails sont ignorés.
    RESEND_API_KEY: Optional[str] = None
    EMAIL_FROM: str = "SEIDO <notifications@seido.app>"

    # Tâches planifiées (expiration des devis) : Authorization: Bearer <CRON_SECRET>
    CRON_SECRET: Optional[str] = None

    # Devis
    QUOTE_MAX_AMOUNT: float = 1_000_000
    QUOTE_AMOUNT_TOLERANCE: float = 0.01

    # Planification
    REQUIRE_SLOT_FINALIZATION: bool = True
    AUTO_CANCEL_SIBLING_SLOTS: bool = False

    @property
    def cors_origins_list(self) -> List[str]:
        """Transforme CORS_ORIGINS en liste"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


# Instance globale
settings = Settings()
