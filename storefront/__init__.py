"""Storefront REST API: catalog, cart, checkout and admin."""
