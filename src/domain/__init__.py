"""Domain models and types for the asset purchase ledger.

This package contains in-memory (Pydantic) models describing the asset
catalog, the transaction ledger and the typed purchase failures. They are
independent from persistence models so that business rules and testing can
evolve without DB coupling.
"""

__all__ = [
    "base_types",
    "catalog",
    "failures",
    "ledger",
    "sequencer",
]
