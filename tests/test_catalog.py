from __future__ import annotations

from candleshop.data import catalog_repository
from candleshop.models.shop_models import Product


def test_product_variants_can_be_linked_and_unlinked(candle, lavender, colors):
    red, blue, _ = colors
    catalog_repository.add_product_scent(candle.id, lavender.id)
    catalog_repository.add_product_scent(candle.id, lavender.id)
    catalog_repository.add_product_color(candle.id, red.id)
    catalog_repository.add_product_color(candle.id, blue.id)

    assert [scent.name for scent in catalog_repository.list_product_scents(candle.id)] == ["Lavender"]

    catalog_repository.remove_product_color(candle.id, red.id)
    catalog_repository.remove_product_scent(candle.id, lavender.id)

    assert [color.name for color in catalog_repository.list_product_colors(candle.id)] == ["Blue"]
    assert catalog_repository.list_product_scents(candle.id) == []


def test_scents_and_colors_are_listed(lavender, colors):
    assert [scent.name for scent in catalog_repository.list_scents()] == ["Lavender"]
    assert {color.name for color in catalog_repository.list_colors()} == {"Red", "Blue", "Green"}


def test_categories_filter_products(db):
    category = catalog_repository.create_category(" Jars ", "Glass jars")
    assert [c.name for c in catalog_repository.list_categories()] == ["Jars"]

    jar = catalog_repository.create_product(Product(id=0, name="Jar", price=8.0, category_id=category.id))
    catalog_repository.create_product(Product(id=0, name="Pillar", price=6.0))

    assert [p.id for p in catalog_repository.list_products(category_id=category.id)] == [jar.id]


def test_collection_membership(candle):
    collection = catalog_repository.create_collection("Winter", "Seasonal")
    catalog_repository.add_product_to_collection(candle.id, collection.id)
    catalog_repository.add_product_to_collection(candle.id, collection.id)

    assert [c.name for c in catalog_repository.list_collections()] == ["Winter"]
    assert [p.id for p in catalog_repository.list_collection_products(collection.id)] == [candle.id]
