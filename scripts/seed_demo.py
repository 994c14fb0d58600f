# scripts/seed_demo.py
from __future__ import annotations

import argparse
import asyncio
import random
import sys
import time
from decimal import Decimal
from pathlib import Path

from sqlalchemy import delete

# Permet de lancer le script depuis la racine du repo sans souci d'import
ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

from monojar.core.settings import settings
from monojar.models.donation import DonationRow
from monojar.schemas.donations import Donation
from monojar.services.donation_store import DonationStore


# ---- Données réalistes (donateurs d’un stream UA) ----
DONORS = [
    "Олександр", "Марія", "Іван", "Катерина", "Андрій", "Оксана",
    "Дмитро", "Юлія", "Taras", "Sofiia", "Anonymous",
]

COMMENTS = [
    "", "", "", "Слава Україні!", "На фотоапарат 📷", "Дякую за стрім",
    "Привіт з Києва", "Так тримати!", "Від всієї родини",
]


def random_amount() -> Decimal:
    # Petits dons fréquents, quelques gros dons
    roll = random.random()
    if roll < 0.70:
        value = random.choice([20, 25, 50, 50, 100, 100, 150, 200])
    elif roll < 0.95:
        value = random.randint(200, 1000)
    else:
        value = random.randint(1000, 5000)
    return Decimal(value)


def build_donation(timestamp_ms: int) -> Donation:
    name = random.choice(DONORS)
    description = "Поповнення «На фотоапарат»" if name == "Anonymous" else f"Від: {name}"
    return Donation(
        id=f"demo_{timestamp_ms}_{random.randint(1000, 9999)}",
        name=name,
        amount=random_amount(),
        description=description,
        comment=random.choice(COMMENTS),
        counter_name="" if name == "Anonymous" else name,
        timestamp=timestamp_ms,
    )


async def seed(database_url: str, reset: bool, n: int, hours: int) -> None:
    store = DonationStore.from_url(database_url)
    await store.init()

    try:
        if reset:
            async with store.session_factory() as session:
                await session.execute(delete(DonationRow))
                await session.commit()
            print("✅ Reset done (all donations deleted).")

        now_ms = int(time.time() * 1000)
        window_ms = hours * 3600 * 1000

        for i in range(n):
            timestamp_ms = now_ms - random.randint(0, window_ms)
            await store.upsert_donation(build_donation(timestamp_ms))

            if (i + 1) % 100 == 0:
                print(f"… {i+1}/{n} donations insérées")

        stats = await store.aggregate_stats()
        top = await store.top_donors(3)
    finally:
        await store.close()

    print("✅ Seed terminé.")
    print(f"   - Donations ajoutées: {n}")
    print(f"   - Total: {stats.total_amount} UAH ({stats.total_count} donations, {stats.unique_donors} donateurs)")
    for rank, donor in enumerate(top, start=1):
        print(f"   - #{rank} {donor.name}: {donor.amount} UAH")


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--database-url", default=settings.DATABASE_URL, help="URL SQLAlchemy async de la base cible")
    parser.add_argument("--reset", action="store_true", help="Supprime les donations avant de reseed")
    parser.add_argument("--n", type=int, default=50, help="Nombre de donations à générer")
    parser.add_argument("--hours", type=int, default=48, help="Fenêtre de dates (dernières N heures)")
    parser.add_argument("--seed", type=int, default=42, help="Seed RNG pour reproductibilité")
    args = parser.parse_args()

    random.seed(args.seed)
    asyncio.run(seed(args.database_url, reset=args.reset, n=args.n, hours=args.hours))


if __name__ == "__main__":
    main()
