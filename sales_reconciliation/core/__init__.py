"""Shared building blocks: record types, normalizers, validators and exceptions."""

from . import exceptions, models, normalizers, validators

__all__ = [
    "exceptions",
    "models",
    "normalizers",
    "validators",
]
