import warnings

import jwt
import pytest

from achievo.config import DEFAULT_JWT_SECRET, Settings


def test_default_secret_is_long_enough_for_hs256(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)
    settings = Settings()
    assert settings.JWT_SECRET == DEFAULT_JWT_SECRET
    assert len(settings.JWT_SECRET.encode("utf-8")) >= 32
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        token = jwt.encode({"user_id": 1}, settings.JWT_SECRET, algorithm="HS256")
        assert jwt.decode(token, settings.JWT_SECRET, algorithms=["HS256"]) == {"user_id": 1}


def test_default_secret_refused_outside_dev(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)
    monkeypatch.delenv("ALLOW_INSECURE_JWT", raising=False)
    monkeypatch.setenv("ENV", "prod")
    with pytest.raises(RuntimeError):
        Settings()
    monkeypatch.setenv("JWT_SECRET", "a-real-production-secret-of-32-bytes")
    assert Settings().ENV == "prod"
