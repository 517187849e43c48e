"""Shared building blocks used by every Journey service."""
