from __future__ import annotations

import os

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

"""
DB Session.

Rôle (fonctionnel) :
- Construit l’engine SQLAlchemy async à partir d’une URL (SQLite/aiosqlite par défaut).
- Fournit la factory de sessions AsyncSession utilisée par le DonationStore.

Notes :
- SQLite fichier : création du dossier parent + journal WAL (les lectures ne sont pas
  bloquées pendant une écriture) + busy_timeout.
- expire_on_commit=False : objets réutilisables après commit sans rechargement.
- echo=False : pas de log SQL brut (on préfère les logs applicatifs en JSON).
"""


def _is_sqlite_file(url: str) -> bool:
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and parsed.database not in (None, "", ":memory:")


def create_engine(url: str) -> AsyncEngine:
    """Engine async configuré selon le backend."""
    if _is_sqlite_file(url):
        db_path = make_url(url).database
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)

    engine = create_async_engine(url, echo=False)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine.sync_engine, "connect")
        def _sqlite_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            if _is_sqlite_file(url):
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
