"""One-time passcodes for email login.

An approved user asks for a passcode, receives it by email and exchanges it
once for an auth token. Email delivery and token minting are external; they
are reached through the Mailer and TokenIssuer interfaces.
"""

import logging
import secrets
import string
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from bizboard.errors import (
    NotApprovedError,
    PasscodeExpiredError,
    PasscodeLookupError,
    PasscodeNotFoundError,
    StoreError,
)
from bizboard.settings import IngestSettings
from bizboard.store.base import DocumentStore

logger = logging.getLogger(__name__)

PASSCODE_ALPHABET = string.ascii_lowercase + string.digits


class Mailer(ABC):
    """Outbound passcode email."""

    @abstractmethod
    def send_passcode(self, email: str, passcode: str, timestamp: str) -> None:
        pass


class TokenIssuer(ABC):
    """Mints an auth token for a verified email."""

    @abstractmethod
    def create_token(self, email: str) -> str:
        pass


class LoggingMailer(Mailer):
    """Logs instead of sending; for local runs."""

    def send_passcode(self, email: str, passcode: str, timestamp: str) -> None:
        logger.info("Passcode for %s requested %s: %s", email, timestamp, passcode)


# Process-wide mailer, configured once before first use.
_mailer: Optional[Mailer] = None
_mailer_lock = threading.Lock()


def configure_mailer(mailer: Mailer) -> None:
    """Install the process mailer. Raises RuntimeError if already configured."""
    global _mailer
    with _mailer_lock:
        if _mailer is not None:
            raise RuntimeError("Mailer is already configured")
        _mailer = mailer


def get_mailer() -> Mailer:
    """Return the configured mailer. Raises RuntimeError before configure_mailer()."""
    with _mailer_lock:
        if _mailer is None:
            raise RuntimeError("Mailer is not configured; call configure_mailer() first")
        return _mailer


def reset_mailer() -> None:
    """Forget the configured mailer (test support)."""
    global _mailer
    with _mailer_lock:
        _mailer = None


def generate_passcode(length: int = 6) -> str:
    """Random lowercase alphanumeric passcode."""
    return "".join(secrets.choice(PASSCODE_ALPHABET) for _ in range(length))


def _format_timestamp(moment: datetime) -> str:
    return f"{moment.strftime('%a %b %d %Y')} at {moment.strftime('%H:%M:%S %Z')}"


class PasscodeService:
    """
    Issues and verifies passcodes stored in the Verifications collection,
    one document per email: {passcode, issuedAt}.
    """

    def __init__(
        self,
        store: DocumentStore,
        token_issuer: TokenIssuer,
        settings: Optional[IngestSettings] = None,
        *,
        mailer: Optional[Mailer] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._store = store
        self._token_issuer = token_issuer
        self._settings = settings or IngestSettings()
        self._mailer = mailer
        self._clock = clock

    def is_approved(self, email: str) -> bool:
        """True if any Constants document lists the email in userEmails."""
        for _, document in self._store.list_collection(self._settings.constants_collection):
            if email in (document.get("userEmails") or []):
                return True
        return False

    def send_passcode(self, email: str) -> None:
        """Generate, email and store a passcode. Raises NotApprovedError for unknown users."""
        if not self.is_approved(email):
            raise NotApprovedError("This user is not approved.")

        now = self._clock()
        passcode = generate_passcode(self._settings.passcode_length)
        mailer = self._mailer or get_mailer()
        mailer.send_passcode(email, passcode, _format_timestamp(now))

        self._store.set(
            self._settings.verifications_collection,
            email,
            {"passcode": passcode, "issuedAt": now.isoformat()},
        )
        logger.info("Passcode issued for %s", email)

    def verify_passcode(self, email: str, passcode: str) -> Optional[str]:
        """
        Exchange a passcode for a token. Returns None on mismatch.
        A matching passcode is consumed; an expired one is deleted and rejected.
        """
        try:
            document = self._store.get(self._settings.verifications_collection, email)
        except StoreError as e:
            raise PasscodeLookupError("Error retrieving document") from e
        if document is None:
            raise PasscodeNotFoundError("A passcode was never generated for this user")

        if self._is_expired(document):
            self._store.delete(self._settings.verifications_collection, email)
            raise PasscodeExpiredError("The passcode has expired; request a new one")

        stored = str(document.get("passcode", ""))
        if not secrets.compare_digest(stored.encode(), passcode.encode()):
            logger.info("Passcode mismatch for %s", email)
            return None

        token = self._token_issuer.create_token(email)
        self._store.delete(self._settings.verifications_collection, email)
        return token

    def _is_expired(self, document: dict) -> bool:
        issued_raw = document.get("issuedAt")
        if not issued_raw:
            return False
        try:
            issued_at = datetime.fromisoformat(issued_raw)
        except (TypeError, ValueError):
            logger.warning("Unreadable issuedAt %r; treating passcode as expired", issued_raw)
            return True
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)
        ttl = timedelta(seconds=self._settings.passcode_ttl_seconds)
        return self._clock() - issued_at > ttl
