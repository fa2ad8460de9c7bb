"""Database package: ORM models and initialisation helpers."""
