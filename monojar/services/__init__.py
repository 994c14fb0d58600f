"""
monojar.services

Pipeline donations, indépendant de la couche HTTP :

- monobank_client   : appels API Monobank (httpx) -> ExternalApiError typées
- client_info_cache : slot unique client-info (fraîcheur 60s, repli sur valeur périmée)
- poller            : détection périodique des nouveaux paiements de la banque cible
- ingestion         : mémoire + persistance + broadcast + log pour chaque donation
- shadow_state      : agrégats en mémoire (repli si le store est indisponible)
- donation_store    : persistance SQLAlchemy async + agrégats
- query_service     : lectures (store d’abord, mémoire ensuite)
"""
