"""One-time SMS code issuance and verification.

A phone number moves through NONE -> PENDING(code, expiry) and back to NONE
once the code is consumed or found expired. Pending codes live in an
injected cache, so a shared cache can replace the in-process one
without touching the verifier.
"""

import logging
import secrets
import threading
import time
from abc import ABC, abstractmethod
from collections import namedtuple
from typing import Dict, Any, Callable, Optional

from .errors import (
    ValidationError, CodeNotRequestedError, CodeExpiredError, InvalidCodeError
)

logger = logging.getLogger(__name__)

CODE_LENGTH = 6

CodeEntry = namedtuple('CodeEntry', ['code', 'expires_at'])

class CodeCache(ABC):
    """Keyed store; an entry put with a ttl disappears once it passes, one put
    without a ttl stays until deleted."""

    @abstractmethod
    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        pass

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

class MemoryCodeCache(CodeCache):
    """In-process cache guarded by a lock."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, tuple] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        with self._lock:
            deadline = self._clock() + ttl if ttl is not None else None
            self._entries[key] = (value, deadline)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return None
            value, deadline = item
            if deadline is not None and self._clock() >= deadline:
                del self._entries[key]
                return None
            return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

class CodeSender(ABC):
    """Delivery channel for one-time codes."""

    @abstractmethod
    async def send(self, phone: str, code: str) -> None:
        pass

class LogCodeSender(CodeSender):
    """Demo channel: writes the code to the log instead of sending an SMS."""

    async def send(self, phone: str, code: str) -> None:
        logger.info(f"[SMS DEMO] Verification code for {phone}: {code}")

def generate_code() -> str:
    """Uniform random zero-padded numeric code."""
    return f"{secrets.randbelow(10 ** CODE_LENGTH):0{CODE_LENGTH}d}"

class CodeVerifier:
    """Issues and checks one-time codes, resolving the phone on success."""

    def __init__(
        self,
        cache: CodeCache,
        sender: CodeSender,
        identity_resolver,
        ttl_seconds: int = 300,
        min_phone_length: int = 9,
        clock: Optional[Callable[[], float]] = None
    ):
        """Initialize code verifier.

        Args:
            cache: Store for pending codes
            sender: Delivery channel
            identity_resolver: Resolver used once a code is accepted
            ttl_seconds: How long an issued code stays valid
            min_phone_length: Shortest phone number accepted
            clock: Time source in seconds, defaults to time.time
        """
        self.cache = cache
        self.sender = sender
        self.identity_resolver = identity_resolver
        self.ttl_seconds = ttl_seconds
        self.min_phone_length = min_phone_length
        self._clock = clock or time.time

    async def issue(self, phone: str) -> Dict[str, Any]:
        """Issue a fresh code for a phone number, replacing any pending one.

        Raises:
            ValidationError: If the phone number is too short
        """
        if not phone or len(phone) < self.min_phone_length:
            raise ValidationError("Invalid phone number")

        code = generate_code()
        # No cache ttl: verify alone decides expiry and removes the entry
        self.cache.put(phone, CodeEntry(code, self._clock() + self.ttl_seconds))

        try:
            await self.sender.send(phone, code)
        except Exception as e:
            logger.warning(f"Failed to deliver code to {phone}: {e}")

        return {
            'message': 'Verification code sent',
            'demo': True
        }

    async def verify(self, phone: str, code: str) -> Dict[str, Any]:
        """Check a submitted code and resolve the phone's identity.

        Returns:
            Identity dict from the resolver

        Raises:
            ValidationError: If the code is not exactly six characters
            CodeNotRequestedError: If no code is pending
            CodeExpiredError: If the pending code has expired
            InvalidCodeError: If the code does not match
        """
        if not phone:
            raise ValidationError("phone is required")
        if code is None or len(code) != CODE_LENGTH:
            raise ValidationError("Invalid code format")

        entry = self.cache.get(phone)
        if entry is None:
            raise CodeNotRequestedError("No verification code found. Please request a new one.")

        if self._clock() > entry.expires_at:
            self.cache.delete(phone)
            raise CodeExpiredError("Verification code expired. Please request a new one.")

        if not secrets.compare_digest(entry.code.encode(), code.encode()):
            raise InvalidCodeError("Invalid verification code")

        self.cache.delete(phone)
        logger.info(f"Phone verified: {phone}")
        return await self.identity_resolver.resolve_phone(phone)
