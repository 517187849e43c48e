"""Identifier hashing for logs.

Subject identifiers never appear in application logs in clear form. Every
service logs ``hash_pii(subject_id)`` instead, so log lines can still be
correlated per subject without revealing who the subject is.
"""
import hashlib
import logging
from typing import Optional, Union

logger = logging.getLogger(__name__)

MIN_SALT_LENGTH = 32

_PII_SALT: Optional[str] = None


def configure_pii_salt(salt: str) -> None:
    """Configure the salt used by hash_pii().

    Must be called during service startup, before any identifier is logged.

    Args:
        salt: Secret salt, at least 32 characters

    Raises:
        ValueError: If salt is empty or too short
    """
    global _PII_SALT
    if not salt or len(salt) < MIN_SALT_LENGTH:
        logger.critical(
            "PII_SALT_CONFIGURATION_FAILED",
            extra={"reason": "Salt too short or empty", "min_length": MIN_SALT_LENGTH}
        )
        raise ValueError(f"PII salt must be at least {MIN_SALT_LENGTH} characters")

    _PII_SALT = salt
    logger.info("PII_SALT_CONFIGURED", extra={"salt_length": len(salt)})


def hash_pii(value: Union[int, str]) -> str:
    """Hash an identifier for safe logging.

    Args:
        value: Subject id, name or other identifying value

    Returns:
        64-char hex SHA-256 digest of salt + value

    Raises:
        RuntimeError: If the salt has not been configured
    """
    if _PII_SALT is None:
        logger.critical(
            "PII_HASH_FAILED",
            extra={"reason": "Salt not configured", "action": "call configure_pii_salt()"}
        )
        raise RuntimeError("PII salt not configured. Call configure_pii_salt() first.")

    salted = f"{_PII_SALT}{value}"
    return hashlib.sha256(salted.encode()).hexdigest()
