"""
monojar.schemas

Schémas Pydantic :
- donations : Donation (record canonique), DonationOut, AggregateStats, TopDonor
- monobank  : sous-ensemble des payloads Monobank (client-info, statement) + JarOut

Séparés des modèles ORM (monojar.models) : contrat de données vs persistance.
"""
