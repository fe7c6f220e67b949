from __future__ import annotations

from datetime import datetime
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

import db.crud as crud
from db.models import ArtisanProfile
from services.errors import (
    EmailAlreadyRegistered,
    InvalidCredentials,
    InvalidOtp,
    NotAuthenticated,
)
from services.otp import OtpService
from services.storage import (
    LAST_VIEW_KEY,
    REMEMBER_ME_KEY,
    SESSION_TOKEN_KEY,
    ClientStorage,
)
from utils.logger import get_logger
from utils.pure import normalize_email

_logger = get_logger(__name__)


def default_profile(name: str) -> ArtisanProfile:
    """Profile a newly registered artisan starts with."""
    first_name = name.split()[0] if name.split() else "new"
    return ArtisanProfile(
        id=None,
        name=name,
        specialty="Handcrafted Goods",
        avatar_url=f"https://picsum.photos/seed/{first_name}/100/100",
        location="Online",
        experience="New Artisan",
        availability="Accepting Commissions",
        workplace="Online Studio",
    )


class SessionManager:
    """
    Login, logout, registration and session restore for one client.

    Tokens are opaque server-side session ids. The current one always sits in
    the ephemeral storage tier; with "remember me" it is also kept in the
    durable tier, which seeds the ephemeral one on the next start.
    """

    def __init__(
        self,
        storage: ClientStorage,
        otp: Optional[OtpService] = None,
        store=crud,
    ) -> None:
        self.storage = storage
        self.otp = otp or OtpService(store)
        self._store = store

    async def login(
        self, email: str, password: str, remember_me: bool = False
    ) -> ArtisanProfile:
        email = normalize_email(email)
        cred = await self._store.get_credential(email)
        if not cred or not check_password_hash(cred.pwd_hash, password or ""):
            _logger.warning(f"Failed login for {email}")
            raise InvalidCredentials()

        profile = await self._store.get_profile(cred.profile_id)
        if profile is None:
            _logger.error(f"Credential {email} points at missing profile {cred.profile_id}")
            raise InvalidCredentials()

        now = datetime.now()
        token = await self._store.start_session(profile.id, now)
        self.storage.set_ephemeral(SESSION_TOKEN_KEY, token)
        if remember_me:
            await self.storage.set_durable(REMEMBER_ME_KEY, token)
        else:
            remembered = await self.storage.get_durable(REMEMBER_ME_KEY)
            if remembered and remembered != token:
                await self._store.end_session(remembered, now)
            await self.storage.remove_durable(REMEMBER_ME_KEY)

        _logger.info(f"{email} logged in (remember me: {remember_me})")
        return profile

    async def check_session(self) -> Optional[ArtisanProfile]:
        """
        Resolve the current token to a profile. Promotes a durable token into the
        ephemeral tier when needed. Returns None instead of raising.
        """
        try:
            token = self.storage.get_ephemeral(SESSION_TOKEN_KEY)
            if not token:
                token = await self.storage.get_durable(REMEMBER_ME_KEY)
                if token:
                    self.storage.set_ephemeral(SESSION_TOKEN_KEY, token)
            if not token:
                return None
            profile_id = await self._store.resolve_session(token)
            if not profile_id:
                return None
            return await self._store.get_profile(profile_id)
        except Exception:
            _logger.exception("Session check failed")
            return None

    async def require_session(self) -> ArtisanProfile:
        """The logged-in profile, or NotAuthenticated."""
        profile = await self.check_session()
        if profile is None:
            raise NotAuthenticated()
        return profile

    async def logout(self) -> None:
        """End the session and clear both storage tiers. Safe to call twice."""
        tokens = {
            self.storage.get_ephemeral(SESSION_TOKEN_KEY),
            await self.storage.get_durable(REMEMBER_ME_KEY),
        }
        now = datetime.now()
        for token in tokens:
            if token:
                await self._store.end_session(token, now)
        self.storage.remove_ephemeral(SESSION_TOKEN_KEY)
        await self.storage.remove_durable(REMEMBER_ME_KEY)
        await self.storage.remove_durable(LAST_VIEW_KEY)
        _logger.info("Logged out")

    async def send_registration_otp(self, email: str) -> str:
        return await self.otp.send_otp(email)

    async def register(
        self, name: str, email: str, password: str, otp_code: str
    ) -> ArtisanProfile:
        """
        Finish registration: check the emailed code, then create the credential
        and profile. Does not log the new user in.
        """
        email = normalize_email(email)
        if not await self.otp.verify_otp(email, otp_code):
            raise InvalidOtp()
        # the email may have been taken since the code was sent
        if not await self._store.email_available(email):
            raise EmailAlreadyRegistered()

        profile = await self._store.register_artisan(
            email, generate_password_hash(password), default_profile(name.strip())
        )
        _logger.info(f"Registered {email} as {profile.id}")
        return profile
