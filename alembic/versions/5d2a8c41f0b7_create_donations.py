"""Création de la table donations.

Rôle (fonctionnel) :
- Crée la table des donations reçues (clé = id de transaction Monobank).
- Index sur name (classement des donateurs) et timestamp (lectures récentes / dernière donation).

Revision ID: 5d2a8c41f0b7
Revises:
Create Date: 2026-10-19 10:12:37.418220
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# Identifiants Alembic
revision: str = "5d2a8c41f0b7"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Application des changements de schéma."""
    op.create_table(
        "donations",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("comment", sa.Text(), nullable=False, server_default=""),
        sa.Column("counter_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_donations")),
    )
    op.create_index(op.f("ix_donations_name"), "donations", ["name"], unique=False)
    op.create_index(op.f("ix_donations_timestamp"), "donations", ["timestamp"], unique=False)


def downgrade() -> None:
    """Retour arrière des changements de schéma."""
    op.drop_index(op.f("ix_donations_timestamp"), table_name="donations")
    op.drop_index(op.f("ix_donations_name"), table_name="donations")
    op.drop_table("donations")
