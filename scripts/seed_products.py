"""
Seed script: Populate the catalog with a demo paint-shop inventory.

What it creates:
- Products for every (range, colour, pack size) combination, with codes
  like ENM-RED-1L, opening stock, rate and GST.
- Existing codes are skipped, so the script can be re-run safely.

Run inside the API container to use 'postgres' host and project PYTHONPATH:
    docker compose exec api python scripts/seed_products.py --max-products 60

Note: This is intended for development environments only.
"""

# Add project root to sys.path so `billing.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import random
from decimal import Decimal

from billing.database.database import Base, SessionLocal, engine
from billing.modules.products.models import Product
import billing.modules.bills.models  # noqa: F401  (tables for --create-tables)

# (code prefix, name, base rate per litre, GST %)
RANGES = [
    ("ENM", "Enamel", Decimal("320"), Decimal("18")),
    ("EMU", "Emulsion", Decimal("280"), Decimal("18")),
    ("PRM", "Primer", Decimal("190"), Decimal("18")),
    ("DST", "Distemper", Decimal("90"), Decimal("12")),
    ("THN", "Thinner", Decimal("110"), Decimal("18")),
]
COLOURS = ["White", "Black", "Red", "Blue", "Yellow", "Green", "Grey"]
PACK_SIZES = [("1L", Decimal("1")), ("4L", Decimal("4")), ("10L", Decimal("10"))]


def generate_code(prefix: str, colour: str, pack: str) -> str:
    c = ''.join([ch for ch in colour.upper() if ch.isalpha()])[:3]
    return f"{prefix}-{c}-{pack}"


def create_products(db, max_products=None):
    created = 0
    skipped = 0
    for prefix, range_name, base_rate, gst in RANGES:
        for colour in COLOURS:
            # Thinner is sold colourless
            if prefix == "THN" and colour != "White":
                continue
            for pack, litres in PACK_SIZES:
                if max_products is not None and created >= max_products:
                    db.commit()
                    return created, skipped

                code = generate_code(prefix, "CLR" if prefix == "THN" else colour, pack)
                if db.query(Product).filter(Product.code == code).first():
                    skipped += 1
                    continue

                # Bigger packs are cheaper per litre
                factor = Decimal("1") - Decimal(random.randint(0, 12)) / Decimal(100) if litres > 1 else Decimal("1")
                rate = (base_rate * litres * factor).quantize(Decimal("0.01"))
                name = f"{range_name} {pack}" if prefix == "THN" else f"{colour} {range_name} {pack}"

                db.add(Product(
                    code=code,
                    name=name,
                    opening_stock=Decimal(random.randint(5, 120)),
                    purchases=Decimal("0"),
                    sales=Decimal("0"),
                    rate=rate,
                    gst_perc=gst
                ))
                created += 1

                if created % 50 == 0:
                    db.commit()
    db.commit()
    return created, skipped


def main():
    parser = argparse.ArgumentParser(description="Seed paint-shop demo catalog")
    parser.add_argument("--max-products", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible stock and rates")
    parser.add_argument("--create-tables", action="store_true", help="Run create_all before seeding")
    args = parser.parse_args()

    if args.seed is not None:
        random.seed(args.seed)
    if args.create_tables:
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        print("Creating products...")
        created, skipped = create_products(db, max_products=args.max_products)
        print(f"Products created: {created} (skipped existing: {skipped})")
        print("\nSeed completed.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
