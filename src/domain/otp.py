"""
OTP verification store operations.

Issues purpose-scoped codes and redeems them with at-most-once semantics.
Older codes for the same contact and purpose are never deleted; they simply
stop being authoritative once a newer one exists, is used, or expires.
"""

from dataclasses import dataclass
from datetime import timedelta

from .credentials import generate_otp_code, hash_otp_code, verify_otp_code
from .exceptions import InvalidOrExpiredOtp, InvalidOtp
from .ports import Clock, IssuedOtp, OtpPurpose, OtpRecord, OtpRepository


@dataclass
class OtpService:
    repository: OtpRepository
    clock: Clock
    ttl_seconds: int = 600
    code_length: int = 6

    def issue(self, contact_value: str, purpose: OtpPurpose) -> IssuedOtp:
        """
        Create a new unused code for a contact.

        The plaintext is returned once for delivery; only its hash is stored.
        """
        now = self.clock.now()
        code = generate_otp_code(self.code_length)
        expires_at = now + timedelta(seconds=self.ttl_seconds)
        otp_id = self.repository.create(
            contact_value, hash_otp_code(code), purpose, expires_at, now
        )
        return IssuedOtp(id=otp_id, plaintext_code=code, expires_at=expires_at)

    def redeem(self, contact_value: str, code: str, purpose: OtpPurpose) -> OtpRecord:
        """
        Verify a candidate code and consume it.

        Raises:
            InvalidOrExpiredOtp: No active code (never requested, used, expired)
                or another request consumed it first
            InvalidOtp: An active code exists but the candidate does not match
        """
        record = self.repository.find_active(contact_value, purpose, self.clock.now())
        if record is None:
            raise InvalidOrExpiredOtp()

        if not verify_otp_code(code, record.code_hash):
            raise InvalidOtp()

        if not self.repository.consume(record.id):
            raise InvalidOrExpiredOtp()

        return record
