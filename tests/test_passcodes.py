"""Tests for passcode issuance and verification."""

from datetime import datetime, timedelta, timezone

import pytest

from bizboard.errors import NotApprovedError, PasscodeExpiredError, PasscodeLookupError, PasscodeNotFoundError
from bizboard.passcodes import (
    PASSCODE_ALPHABET,
    LoggingMailer,
    Mailer,
    PasscodeService,
    TokenIssuer,
    configure_mailer,
    generate_passcode,
    get_mailer,
)

from conftest import MemoryStore

APPROVED = "analyst@example.com"
NOW = datetime(2024, 3, 5, 9, 0, tzinfo=timezone.utc)


class RecordingMailer(Mailer):
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    def send_passcode(self, email: str, passcode: str, timestamp: str) -> None:
        self.sent.append((email, passcode, timestamp))


class FakeTokenIssuer(TokenIssuer):
    def create_token(self, email: str) -> str:
        return f"token-for-{email}"


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock(NOW)


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def approved_store(memory_store: MemoryStore) -> MemoryStore:
    memory_store.set("Constants", "bookings", {"target": 100, "userEmails": [APPROVED]})
    return memory_store


@pytest.fixture
def service(approved_store: MemoryStore, mailer: RecordingMailer, clock: Clock) -> PasscodeService:
    return PasscodeService(approved_store, FakeTokenIssuer(), mailer=mailer, clock=clock)


class TestSendPasscode:
    """Tests for PasscodeService.send_passcode."""

    def test_unapproved_user_rejected(self, service: PasscodeService, mailer: RecordingMailer) -> None:
        with pytest.raises(NotApprovedError, match="not approved"):
            service.send_passcode("stranger@example.com")
        assert mailer.sent == []

    def test_approved_in_any_constants_document(self, memory_store: MemoryStore, mailer: RecordingMailer) -> None:
        memory_store.set("Constants", "bookings", {"target": 100})
        memory_store.set("Constants", "proposals", {"userEmails": [APPROVED]})
        service = PasscodeService(memory_store, FakeTokenIssuer(), mailer=mailer)
        assert service.is_approved(APPROVED)
        assert not service.is_approved("stranger@example.com")

    def test_sends_and_stores_passcode(
        self, service: PasscodeService, approved_store: MemoryStore, mailer: RecordingMailer
    ) -> None:
        service.send_passcode(APPROVED)

        [(email, passcode, timestamp)] = mailer.sent
        assert email == APPROVED
        assert len(passcode) == 6
        assert "2024" in timestamp
        assert approved_store.get("Verifications", APPROVED) == {
            "passcode": passcode,
            "issuedAt": NOW.isoformat(),
        }

    def test_new_request_replaces_old_passcode(
        self, service: PasscodeService, approved_store: MemoryStore, mailer: RecordingMailer
    ) -> None:
        service.send_passcode(APPROVED)
        service.send_passcode(APPROVED)
        latest = mailer.sent[-1][1]
        assert approved_store.get("Verifications", APPROVED)["passcode"] == latest

    def test_uses_process_mailer(self, approved_store: MemoryStore, clock: Clock) -> None:
        process_mailer = RecordingMailer()
        configure_mailer(process_mailer)
        PasscodeService(approved_store, FakeTokenIssuer(), clock=clock).send_passcode(APPROVED)
        assert len(process_mailer.sent) == 1


class TestVerifyPasscode:
    """Tests for PasscodeService.verify_passcode."""

    def test_correct_passcode_returns_token_once(
        self, service: PasscodeService, approved_store: MemoryStore, mailer: RecordingMailer
    ) -> None:
        service.send_passcode(APPROVED)
        passcode = mailer.sent[0][1]

        assert service.verify_passcode(APPROVED, passcode) == f"token-for-{APPROVED}"
        assert approved_store.get("Verifications", APPROVED) is None
        with pytest.raises(PasscodeNotFoundError):
            service.verify_passcode(APPROVED, passcode)

    def test_wrong_passcode_returns_none(
        self, service: PasscodeService, approved_store: MemoryStore, mailer: RecordingMailer
    ) -> None:
        service.send_passcode(APPROVED)
        assert service.verify_passcode(APPROVED, "wrong!") is None
        assert approved_store.get("Verifications", APPROVED) is not None

    def test_non_ascii_guess_is_a_mismatch(self, service: PasscodeService) -> None:
        service.send_passcode(APPROVED)
        assert service.verify_passcode(APPROVED, "pässwd") is None

    def test_never_generated(self, service: PasscodeService) -> None:
        with pytest.raises(PasscodeNotFoundError):
            service.verify_passcode(APPROVED, "abc123")

    def test_expired_passcode_deleted(
        self, service: PasscodeService, approved_store: MemoryStore, mailer: RecordingMailer, clock: Clock
    ) -> None:
        service.send_passcode(APPROVED)
        passcode = mailer.sent[0][1]
        clock.now = NOW + timedelta(minutes=11)

        with pytest.raises(PasscodeExpiredError):
            service.verify_passcode(APPROVED, passcode)
        assert approved_store.get("Verifications", APPROVED) is None

    def test_passcode_valid_within_lifetime(
        self, service: PasscodeService, mailer: RecordingMailer, clock: Clock
    ) -> None:
        service.send_passcode(APPROVED)
        clock.now = NOW + timedelta(minutes=9)
        assert service.verify_passcode(APPROVED, mailer.sent[0][1]) is not None

    def test_naive_issue_time_read_as_utc(
        self, service: PasscodeService, approved_store: MemoryStore, clock: Clock
    ) -> None:
        issued = NOW.replace(tzinfo=None).isoformat()
        approved_store.set("Verifications", APPROVED, {"passcode": "abc123", "issuedAt": issued})
        clock.now = NOW + timedelta(minutes=5)
        assert service.verify_passcode(APPROVED, "abc123") == f"token-for-{APPROVED}"

        approved_store.set("Verifications", APPROVED, {"passcode": "abc123", "issuedAt": issued})
        clock.now = NOW + timedelta(minutes=11)
        with pytest.raises(PasscodeExpiredError):
            service.verify_passcode(APPROVED, "abc123")

    def test_lookup_failure(self, service: PasscodeService, approved_store: MemoryStore) -> None:
        approved_store.fail_reads.add(("Verifications", APPROVED))
        with pytest.raises(PasscodeLookupError):
            service.verify_passcode(APPROVED, "abc123")


class TestProcessMailer:
    """Tests for the process-wide mailer."""

    def test_unconfigured(self) -> None:
        with pytest.raises(RuntimeError, match="not configured"):
            get_mailer()

    def test_configure_once(self) -> None:
        mailer = LoggingMailer()
        configure_mailer(mailer)
        assert get_mailer() is mailer
        with pytest.raises(RuntimeError, match="already configured"):
            configure_mailer(LoggingMailer())


def test_generate_passcode() -> None:
    passcode = generate_passcode(8)
    assert len(passcode) == 8
    assert set(passcode) <= set(PASSCODE_ALPHABET)
