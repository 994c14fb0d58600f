from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

"""
DB Base.

Rôle (fonctionnel) :
- Classe Base SQLAlchemy commune aux modèles ORM (models/*).
- Convention de nommage des index/contraintes : noms stables entre
  create_all() (init au démarrage) et migrations Alembic.
"""

NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Classe racine ORM (SQLAlchemy Declarative)."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)
