"""Catalog connectors and the retrying HTTP layer they share."""
