"""Index factory."""

from sifter.core.index.index import Index

__all__ = ["Index"]
