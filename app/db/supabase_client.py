"""
Client Supabase de l'application.

Le moteur de workflow écrit pour le compte des utilisateurs identifiés par
l'API : on privilégie donc la clé service (SUPABASE_SERVICE_KEY) quand elle
est fournie, sinon la clé publique.
"""
from supabase import create_client, Client
from functools import lru_cache
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)


class SupabaseClient:
    """
    Classe wrapper pour le client Supabase (instance unique par processus).
    """

    _instance: Client = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Retourne l'instance du client Supabase (Singleton).

        Returns:
            Client Supabase configuré
        """
        if cls._instance is None:
            try:
                key = settings.SUPABASE_SERVICE_KEY or settings.SUPABASE_KEY
                logger.info(
                    f"🔌 Initialisation du client Supabase "
                    f"({'clé service' if settings.SUPABASE_SERVICE_KEY else 'clé publique'})..."
                )

                cls._instance = create_client(
                    supabase_url=settings.SUPABASE_URL,
                    supabase_key=key
                )

                logger.info("✅ Client Supabase initialisé avec succès")

            except Exception as e:
                logger.error(f"❌ Erreur lors de l'initialisation Supabase: {str(e)}")
                raise

        return cls._instance


@lru_cache()
def get_supabase_client() -> Client:
    """
    Retourne le client Supabase partagé.

    Raises:
        Exception: Si la configuration Supabase est invalide
    """
    return SupabaseClient.get_client()


def get_supabase() -> Client:
    """
    Dependency FastAPI : client Supabase injecté dans les services.

    Usage:
        @router.get("/endpoint")
        def my_endpoint(db: Client = Depends(get_supabase)):
            ...
    """
    return get_supabase_client()


__all__ = [
    "SupabaseClient",
    "get_supabase_client",
    "get_supabase"
]
