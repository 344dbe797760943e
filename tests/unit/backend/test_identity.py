"""
Unit tests for caller identity resolution from bearer tokens.
"""

from datetime import datetime, timedelta

import jwt

from healthvault.services.identity import CallerIdentityService

SECRET = "unit-secret"


def _header(payload, secret=SECRET):
    return "Bearer " + jwt.encode(payload, secret, algorithm="HS256")


class TestResolveCaller:

    def setup_method(self):
        self.service = CallerIdentityService(secret=SECRET, algorithm="HS256")

    def test_valid_token(self):
        assert self.service.resolve_caller(_header({"sub": "alice"})) == "alice"

    def test_missing_header(self):
        assert self.service.resolve_caller(None) is None
        assert self.service.resolve_caller("") is None

    def test_not_bearer(self):
        assert self.service.resolve_caller("Basic abc") is None

    def test_wrong_secret(self):
        assert self.service.resolve_caller(_header({"sub": "alice"}, "other")) is None

    def test_expired_token(self):
        expired = {"sub": "alice", "exp": datetime.utcnow() - timedelta(minutes=1)}
        assert self.service.resolve_caller(_header(expired)) is None

    def test_missing_subject(self):
        assert self.service.resolve_caller(_header({"role": "x"})) is None
