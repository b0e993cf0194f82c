#!/usr/bin/env python3
"""Seed sample products with options and variants for local development."""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from catalog import create_app
from catalog.extensions import db
from catalog.models.product import Product
from catalog.services import variant_service, variant_store

app = create_app()

SAMPLE_PRODUCTS = [
    {
        "title": "Classic Cotton T-Shirt",
        "price": 4990,
        "options": [
            ("Size", ["P", "M", "G", "GG"]),
            ("Color", ["White", "Black", "Navy"]),
        ],
        "available": {"M / Black", "G / Black", "M / White"},
    },
    {
        "title": "Artisan Chocolate Box",
        "price": 8900,
        "options": [
            ("Size", ["6 pieces", "12 pieces"]),
            ("Filling", ["Hazelnut", "Passion Fruit"]),
            ("Wrapping", ["Gift Box"]),
        ],
        "available": {"12 pieces / Hazelnut / Gift Box"},
    },
    {
        "title": "Ceramic Mug",
        "price": 3500,
        "options": [
            ("Color", ["Sand", "Terracotta"]),
        ],
        "available": {"Sand", "Terracotta"},
    },
    {
        # no values yet: shows a partially configured product
        "title": "Linen Tote Bag",
        "price": 6000,
        "options": [
            ("Color", ["Natural", "Olive"]),
            ("Strap", []),
        ],
        "available": set(),
    },
]


def seed():
    with app.app_context():
        if Product.query.first():
            print("Products already exist — skipping seed.")
            return

        for item in SAMPLE_PRODUCTS:
            product = Product(title=item["title"], price_cents=item["price"])
            db.session.add(product)
            db.session.commit()

            for name, values in item["options"]:
                option = variant_store.create_option(product.id, name)
                for value in values:
                    variant_store.create_option_value(option.id, value)

            result = variant_service.generate_variants(product.id, operator_id="seed")
            for row in result.matrix.reconciled:
                if row.label in item["available"]:
                    variant_service.toggle_availability(
                        product.id, row.variant.id, operator_id="seed"
                    )

            print(f"  Created {product.id}: {item['title']} ({result.notice})")

        print(f"\nSeeded {len(SAMPLE_PRODUCTS)} products.")


if __name__ == "__main__":
    seed()
