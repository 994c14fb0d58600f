"""
scripts

Package utilitaire pour les scripts de maintenance / démo.

Rôle (fonctionnel) :
- Contient des scripts exécutables (CLI) liés au projet, par exemple
  la génération de donations de démonstration (seed_demo).

Note :
- Les scripts n’embarquent pas de logique métier :
  ils orchestrent les modules de `monojar/` (services, db…).
"""
