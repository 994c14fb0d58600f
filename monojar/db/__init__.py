"""
monojar.db

Base SQLAlchemy (naming convention) et construction de l’engine / des sessions async.
Les requêtes elles-mêmes vivent dans monojar.services.donation_store.
"""
