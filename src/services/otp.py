from __future__ import annotations

import secrets
from datetime import datetime
from typing import Callable, Optional

import db.crud as crud
from services.errors import EmailAlreadyRegistered
from utils.logger import get_logger
from utils.pure import is_otp_code, normalize_email

_logger = get_logger(__name__)


def generate_code() -> str:
    """Uniformly random 6-digit code in 100000..999999 (never a leading zero)."""
    return str(100000 + secrets.randbelow(900000))


class OtpService:
    """
    Issues and verifies one-time registration codes, one pending code per email.

    Per email: no code -> issued -> consumed (verified) or replaced (re-sent).
    There is no rate limit here; the resend cooldown is a UI timer.
    """

    def __init__(
        self, store=crud, code_factory: Callable[[], str] = generate_code
    ) -> None:
        self._store = store
        self._code_factory = code_factory

    async def send_otp(self, email: str, when: Optional[datetime] = None) -> str:
        """
        Issue a fresh code for `email` and return it for in-band delivery.
        Any previously pending code for the email stops working. The new code
        is committed before this returns.
        """
        email = normalize_email(email)
        if not await self._store.email_available(email):
            _logger.warning(f"OTP refused, {email} is already registered")
            raise EmailAlreadyRegistered()

        previous = await self._store.get_otp(email)
        if previous:
            _logger.info(f"Replacing the code issued to {email} at {previous.issued_at:%H:%M:%S}")

        code = self._code_factory()
        await self._store.put_otp(email, code, when or datetime.now())
        _logger.info(f"OTP issued for {email}")
        _logger.debug(f"OTP for {email}: {code}")
        return code

    async def verify_otp(self, email: str, code: str) -> bool:
        """
        True and consume the pending code iff it matches exactly.
        A wrong code leaves the pending one in place so the user can retry.
        """
        if not is_otp_code(code):
            return False
        ok = await self._store.consume_otp(normalize_email(email), code)
        _logger.info(
            f"OTP for {normalize_email(email)} {'verified' if ok else 'rejected'}"
        )
        return ok
