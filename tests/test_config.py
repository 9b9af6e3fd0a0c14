import pytest
from pydantic import ValidationError

from yummio_api.config import DEV_JWT_SECRET, Settings


def test_jwt_secret_required_non_dev(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)
    with pytest.raises(ValidationError):
        Settings(service_env="prod", bcrypt_cost=12, _env_file=None)


def test_dev_secret_rejected_in_prod():
    with pytest.raises(ValidationError):
        Settings(service_env="prod", jwt_secret=DEV_JWT_SECRET, bcrypt_cost=12, _env_file=None)


def test_low_bcrypt_cost_rejected_in_prod():
    with pytest.raises(ValidationError):
        Settings(service_env="prod", jwt_secret="s3cr3t", bcrypt_cost=10, _env_file=None)


def test_prod_settings_ok():
    settings = Settings(service_env="prod", jwt_secret="s3cr3t", bcrypt_cost=12, _env_file=None)
    assert settings.jwt_access_expire_minutes == 24 * 60
    assert settings.jwt_refresh_expire_minutes == 7 * 24 * 60


def test_dev_allows_default_secret_and_low_cost():
    settings = Settings(service_env="dev", bcrypt_cost=4, _env_file=None)
    assert settings.jwt_secret == DEV_JWT_SECRET


def test_rate_limit_must_allow_requests():
    with pytest.raises(ValidationError):
        Settings(service_env="dev", rate_limit_requests=0, _env_file=None)


def test_parsers():
    settings = Settings(
        allowed_image_types="JPG, .png ,webp",
        cors_allow_origins="https://a.example, https://b.example",
        _env_file=None,
    )
    assert settings.parsed_allowed_image_types() == ["jpg", "png", "webp"]
    assert settings.parsed_cors_origins() == ["https://a.example", "https://b.example"]
    assert Settings(cors_allow_methods="*", _env_file=None).parsed_cors_methods() == ["*"]
