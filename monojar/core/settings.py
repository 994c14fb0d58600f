from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

"""
Core Settings.

Rôle (fonctionnel) :
- Centralise la configuration via variables d’environnement (Pydantic Settings).
- Charge un fichier .env à la racine du dépôt pour faciliter le dev/local.
- Fournit un objet global `settings` importable dans tout le projet
  (surchargeable dans les tests via create_app(settings=...)).

Organisation :
- App : nom, env, debug, niveau de log, seuil de requête lente.
- CORS : origines autorisées (pages overlay / OBS).
- Rate limit local : trois règles (général, test-donation, endpoints Monobank).
- DB : URL async SQLAlchemy (SQLite par défaut, PostgreSQL possible).
- Monobank : token, URL de base, banque (jar) cible, timeouts.
- Polling : intervalle, fenêtre de relevé, bornes de détection des nouveaux paiements.
"""

# Pointe toujours vers <repo>/.env
ENV_PATH = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    # --- App ---
    APP_NAME: str = "Monojar Donations API"
    ENV: str = "dev"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    SLOW_REQUEST_MS: int = 800

    # --- CORS ---
    # Liste CSV des origines autorisées (overlay servi ailleurs, OBS browser source…)
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    # --- Rate limit local (fenêtres en secondes) ---
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_GENERAL_MAX: int = 100
    RATE_LIMIT_GENERAL_WINDOW: int = 15 * 60
    RATE_LIMIT_TEST_DONATION_MAX: int = 10
    RATE_LIMIT_TEST_DONATION_WINDOW: int = 5 * 60
    RATE_LIMIT_MONOBANK_MAX: int = 5
    RATE_LIMIT_MONOBANK_WINDOW: int = 60

    # --- DB ---
    DATABASE_URL: str = "sqlite+aiosqlite:///data/donations.db"

    # Nombre de donations rechargées en mémoire au démarrage (shadow state)
    SHADOW_LOAD_LIMIT: int = 1000

    # --- Monobank ---
    # Token personnel (X-Token). Vide => polling désactivé.
    MONO_TOKEN: str = ""
    MONO_API_BASE: str = "https://api.monobank.ua"
    MONO_TIMEOUT_SECONDS: float = 10.0

    # Banque cible : par id si fourni, sinon par titre
    MONO_JAR_ID: str = ""
    MONO_JAR_TITLE: str = "На фотоапарат"

    # --- Polling ---
    POLL_INTERVAL_SECONDS: float = 30.0
    # client-info : l’API refuse plus d’un appel par minute
    CLIENT_INFO_TTL_SECONDS: float = 60.0
    STATEMENT_WINDOW_DAYS: int = 30
    BOOTSTRAP_TRANSACTIONS: int = 3
    RECENT_WINDOW_HOURS: int = 24

    # Config Pydantic Settings
    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Instance globale importable
settings = Settings()
