"""
monojar.models

Modèles ORM (SQLAlchemy). Une seule table : donations.
"""

from monojar.models.donation import DonationRow

__all__ = ["DonationRow"]
