# Hidden Gem Scanner - Database Package
"""
Models, blob storage and the stores built on it.

- models: Pydantic models for data validation
- connection: blob storage port with SQLite and in-memory backends
- dao: alert, settings and watchlist stores
"""
