"""
monojar.core

Briques transverses, indépendantes du pipeline donations lui-même :

- settings   : configuration (env / .env) via Pydantic Settings
- errors     : enveloppe d’erreur API + taxonomie (ExternalApiError, StoreError)
- logging    : logs JSON + request_id (ContextVar)
- rate_limit : limitation locale des requêtes /api/* (fenêtre fixe en mémoire)
- realtime   : Broadcaster WebSocket (fan-out best-effort des nouvelles donations)
"""
