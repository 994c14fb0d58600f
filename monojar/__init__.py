"""
monojar

Package racine du backend “donations en direct” : suit une banque (jar) Monobank,
persiste les dons reçus et les pousse en temps réel vers l’overlay du stream.

Organisation (haute-level) :
- monojar.api      : routes FastAPI (donations, jars, health, WebSocket)
- monojar.core     : briques transverses (settings, errors, logs, rate-limit, realtime)
- monojar.db       : base SQLAlchemy + engine/sessions async
- monojar.models   : modèles ORM (table donations)
- monojar.schemas  : schémas Pydantic (donations, payloads Monobank)
- monojar.services : pipeline (store, cache client-info, poller, ingestion, lectures)
"""
