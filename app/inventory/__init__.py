"""Catalog data: products, categories and stock snapshots."""
