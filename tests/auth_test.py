"""Tests for auth.py: ID token verification, sign-out and the navigation menu."""

import unittest
from unittest.mock import patch

from firebase_admin import auth as firebase_auth

from service.event_discovery.auth import (
    FirebaseAuthenticator,
    Session,
    navigation_menu,
    search_path,
)
from service.event_discovery.errors import AuthError


class TestSessionFromHeader(unittest.TestCase):
    def setUp(self):
        self.authenticator = FirebaseAuthenticator()

    def test_missing_header_is_anonymous(self):
        self.assertIsNone(self.authenticator.session_from_header(None))
        self.assertIsNone(self.authenticator.session_from_header(""))

    def test_malformed_header(self):
        with self.assertRaises(AuthError):
            self.authenticator.session_from_header("Token abc")
        with self.assertRaises(AuthError):
            self.authenticator.session_from_header("Bearer   ")

    @patch("service.event_discovery.auth.firebase_auth.verify_id_token")
    def test_valid_token(self, mock_verify):
        mock_verify.return_value = {"uid": "user-1", "email": "fan@example.com", "name": "Fan", "iss": "x"}

        session = self.authenticator.session_from_header("Bearer good-token")

        mock_verify.assert_called_once_with("good-token", app=None, check_revoked=False)
        self.assertEqual(session.user_id, "user-1")
        self.assertEqual(session.email, "fan@example.com")
        self.assertEqual(session.metadata, {"name": "Fan"})

    @patch("service.event_discovery.auth.firebase_auth.verify_id_token")
    def test_invalid_token(self, mock_verify):
        mock_verify.side_effect = firebase_auth.InvalidIdTokenError("bad signature")

        with self.assertRaises(AuthError):
            self.authenticator.session_from_header("Bearer bad-token")

    @patch("service.event_discovery.auth.firebase_auth.revoke_refresh_tokens")
    def test_sign_out_revokes(self, mock_revoke):
        self.authenticator.sign_out(Session(user_id="user-1"))
        mock_revoke.assert_called_once_with("user-1", app=None)


class TestNavigationMenu(unittest.TestCase):
    def test_signed_out(self):
        menu = navigation_menu(None)

        self.assertFalse(menu.signed_in)
        self.assertEqual([link.label for link in menu.links], ["Home", "Sign in", "Sign up"])
        self.assertIsNone(menu.avatar_initial)

    def test_signed_in(self):
        menu = navigation_menu(Session(user_id="u", email="sam@example.com"))

        self.assertTrue(menu.signed_in)
        self.assertEqual(menu.avatar_initial, "S")
        self.assertEqual(menu.display_name, "sam@example.com")
        self.assertIn("Sign out", [link.label for link in menu.links])

    def test_initial_without_email(self):
        self.assertEqual(Session(user_id="u").initials, "?")

    def test_search_path(self):
        self.assertEqual(search_path("rock & roll"), "/search?q=rock%20%26%20roll")
        self.assertIsNone(search_path("   "))


if __name__ == "__main__":
    unittest.main()
