"""Shared utilities for Journey services."""
from .pii import hash_pii, configure_pii_salt
from .params import parse_int, parse_datetime

__all__ = [
    "hash_pii",
    "configure_pii_salt",
    "parse_int",
    "parse_datetime",
]
