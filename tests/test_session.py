import unittest
from datetime import datetime

from support import DbTestCase

from db import crud  # noqa: E402
from services.errors import (  # noqa: E402
    EmailAlreadyRegistered,
    InvalidCredentials,
    InvalidOtp,
    NotAuthenticated,
)
from services.otp import OtpService  # noqa: E402
from services.session import SessionManager  # noqa: E402
from services.storage import (  # noqa: E402
    LAST_VIEW_KEY,
    REMEMBER_ME_KEY,
    SESSION_TOKEN_KEY,
    ClientStorage,
)


class SessionManagerTestCase(DbTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.storage = ClientStorage()
        self.sessions = SessionManager(self.storage)

    def new_client(self) -> SessionManager:
        """A second client process: fresh memory, same durable storage."""
        return SessionManager(ClientStorage())

    async def test_login_without_remember_me(self):
        profile = await self.sessions.login("elena@example.com", "password123")
        self.assertEqual(profile.id, "user1")
        self.assertIsNotNone(self.storage.get_ephemeral(SESSION_TOKEN_KEY))
        self.assertIsNone(await self.storage.get_durable(REMEMBER_ME_KEY))

        self.assertEqual((await self.sessions.check_session()).id, "user1")
        # not remembered, so a restarted client is logged out
        self.assertIsNone(await self.new_client().check_session())

    async def test_login_with_remember_me_promotes_on_restart(self):
        await self.sessions.login("ELENA@example.com ", "password123", remember_me=True)
        token = self.storage.get_ephemeral(SESSION_TOKEN_KEY)
        self.assertEqual(await self.storage.get_durable(REMEMBER_ME_KEY), token)

        restarted = self.new_client()
        profile = await restarted.check_session()
        self.assertEqual(profile.id, "user1")
        self.assertEqual(restarted.storage.get_ephemeral(SESSION_TOKEN_KEY), token)

    async def test_login_without_remember_me_ends_remembered_session(self):
        await self.sessions.login("elena@example.com", "password123", remember_me=True)
        remembered = await self.storage.get_durable(REMEMBER_ME_KEY)

        await self.sessions.login("elena@example.com", "password123")

        self.assertIsNone(await crud.resolve_session(remembered))
        self.assertIsNone(await self.storage.get_durable(REMEMBER_ME_KEY))
        self.assertEqual((await self.sessions.check_session()).id, "user1")

    async def test_token_is_not_derived_from_profile_id(self):
        await self.sessions.login("elena@example.com", "password123")
        token = self.storage.get_ephemeral(SESSION_TOKEN_KEY)
        self.assertNotIn("user1", token)

    async def test_wrong_password_or_unknown_email(self):
        with self.assertRaises(InvalidCredentials):
            await self.sessions.login("elena@example.com", "wrong")
        with self.assertRaises(InvalidCredentials):
            await self.sessions.login("ghost@example.com", "password123")
        self.assertIsNone(self.storage.get_ephemeral(SESSION_TOKEN_KEY))

    async def test_forged_token_fails_closed(self):
        self.storage.set_ephemeral(SESSION_TOKEN_KEY, "session_user1")
        self.assertIsNone(await self.sessions.check_session())
        with self.assertRaises(NotAuthenticated):
            await self.sessions.require_session()

    async def test_check_session_swallows_store_errors(self):
        class BrokenStore:
            async def resolve_session(self, token):
                raise RuntimeError("disk on fire")

        storage = ClientStorage()
        storage.set_ephemeral(SESSION_TOKEN_KEY, "tok")
        sessions = SessionManager(storage, store=BrokenStore())
        self.assertIsNone(await sessions.check_session())

    async def test_logout_clears_everything(self):
        await self.sessions.login("elena@example.com", "password123", remember_me=True)
        token = self.storage.get_ephemeral(SESSION_TOKEN_KEY)
        await self.storage.set_durable(LAST_VIEW_KEY, "cart")

        await self.sessions.logout()
        self.assertIsNone(self.storage.get_ephemeral(SESSION_TOKEN_KEY))
        self.assertIsNone(await self.storage.get_durable(REMEMBER_ME_KEY))
        self.assertIsNone(await self.storage.get_durable(LAST_VIEW_KEY))
        self.assertIsNone(await crud.resolve_session(token))
        self.assertIsNone(await self.sessions.check_session())

        # logging out twice is harmless
        await self.sessions.logout()

    async def test_register_with_otp(self):
        code = await self.sessions.send_registration_otp("nora@example.com")

        with self.assertRaises(InvalidOtp):
            await self.sessions.register("Nora Knot", "nora@example.com", "pw", "000000")

        profile = await self.sessions.register(
            "Nora Knot", "nora@example.com", "pw", code
        )
        self.assertEqual(profile.name, "Nora Knot")
        self.assertEqual(profile.specialty, "Handcrafted Goods")
        self.assertEqual(profile.portfolio, ())

        # registration does not log in
        self.assertIsNone(await self.sessions.check_session())
        logged_in = await self.sessions.login("nora@example.com", "pw")
        self.assertEqual(logged_in.id, profile.id)

    async def test_register_existing_email(self):
        with self.assertRaises(EmailAlreadyRegistered):
            await self.sessions.send_registration_otp("elena@example.com")

        # the email gets taken between sending and verifying the code
        otp = OtpService(code_factory=lambda: "123456")
        sessions = SessionManager(self.storage, otp=otp)
        await otp.send_otp("race@example.com")
        await sessions.register("First", "race@example.com", "pw", "123456")
        await crud.put_otp("race@example.com", "654321", datetime(2025, 1, 1))
        with self.assertRaises(EmailAlreadyRegistered):
            await sessions.register("Second", "race@example.com", "pw", "654321")


if __name__ == "__main__":
    unittest.main()
