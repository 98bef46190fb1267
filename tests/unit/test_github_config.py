"""Unit tests for broker configuration and App JWT signing."""

from __future__ import annotations

import typing as typ

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from tollgate.github import AppJWTSigner, GitHubAppConfig
from tollgate.github.errors import BrokerConfigError

if typ.TYPE_CHECKING:
    from pathlib import Path

_ENV_VARS = (
    "TOLLGATE_GITHUB_TOKEN",
    "TOLLGATE_GITHUB_APP_ID",
    "TOLLGATE_GITHUB_APP_PRIVATE_KEY",
    "TOLLGATE_GITHUB_APP_PRIVATE_KEY_PATH",
    "TOLLGATE_GITHUB_API_URL",
    "TOLLGATE_GITHUB_TIMEOUT_S",
    "TOLLGATE_GITHUB_PER_PAGE",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Clear every TOLLGATE_GITHUB_* variable."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture(scope="module")
def rsa_key_pair() -> tuple[str, rsa.RSAPublicKey]:
    """Return a PEM private key and its public key."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
    return pem, private_key.public_key()


class TestGitHubAppConfigFromEnv:
    """Tests for GitHubAppConfig.from_env."""

    def test_missing_token_raises(self, clean_env: pytest.MonkeyPatch) -> None:
        """A missing principal token is a configuration error."""
        del clean_env
        with pytest.raises(BrokerConfigError, match="TOLLGATE_GITHUB_TOKEN"):
            GitHubAppConfig.from_env()

    def test_blank_token_raises(self, clean_env: pytest.MonkeyPatch) -> None:
        """A whitespace-only token counts as missing."""
        clean_env.setenv("TOLLGATE_GITHUB_TOKEN", "   ")
        with pytest.raises(BrokerConfigError):
            GitHubAppConfig.from_env()

    def test_defaults(self, clean_env: pytest.MonkeyPatch) -> None:
        """Only the token is required; other values take defaults."""
        clean_env.setenv("TOLLGATE_GITHUB_TOKEN", " gho_abc ")
        config = GitHubAppConfig.from_env()
        assert config.token == "gho_abc"  # noqa: S105
        assert config.app_id is None
        assert config.private_key is None
        assert config.api_url == "https://api.github.com"
        assert config.timeout_s == 10.0
        assert config.per_page == 100
        assert not config.has_app_credentials

    def test_overrides(self, clean_env: pytest.MonkeyPatch) -> None:
        """Environment overrides are applied."""
        clean_env.setenv("TOLLGATE_GITHUB_TOKEN", "gho_abc")
        clean_env.setenv("TOLLGATE_GITHUB_APP_ID", "12345")
        clean_env.setenv("TOLLGATE_GITHUB_APP_PRIVATE_KEY", "-----BEGIN KEY-----")
        clean_env.setenv("TOLLGATE_GITHUB_API_URL", "https://ghe.example/api/v3")
        clean_env.setenv("TOLLGATE_GITHUB_TIMEOUT_S", "2.5")
        clean_env.setenv("TOLLGATE_GITHUB_PER_PAGE", "50")
        config = GitHubAppConfig.from_env()
        assert config.app_id == "12345"
        assert config.has_app_credentials
        assert config.api_url == "https://ghe.example/api/v3"
        assert config.timeout_s == 2.5
        assert config.per_page == 50

    def test_private_key_from_file(
        self, clean_env: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """The key is read from TOLLGATE_GITHUB_APP_PRIVATE_KEY_PATH."""
        key_file = tmp_path / "app.pem"
        key_file.write_text("-----BEGIN KEY-----\nabc\n", encoding="utf-8")
        clean_env.setenv("TOLLGATE_GITHUB_TOKEN", "gho_abc")
        clean_env.setenv("TOLLGATE_GITHUB_APP_PRIVATE_KEY_PATH", str(key_file))
        assert GitHubAppConfig.from_env().private_key == "-----BEGIN KEY-----\nabc"

    def test_unreadable_private_key_file(
        self, clean_env: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """A missing key file is a configuration error."""
        clean_env.setenv("TOLLGATE_GITHUB_TOKEN", "gho_abc")
        clean_env.setenv(
            "TOLLGATE_GITHUB_APP_PRIVATE_KEY_PATH", str(tmp_path / "missing.pem")
        )
        with pytest.raises(BrokerConfigError, match="private key"):
            GitHubAppConfig.from_env()

    @pytest.mark.parametrize(
        ("variable", "value"),
        [
            ("TOLLGATE_GITHUB_TIMEOUT_S", "soon"),
            ("TOLLGATE_GITHUB_TIMEOUT_S", "0"),
            ("TOLLGATE_GITHUB_PER_PAGE", "many"),
            ("TOLLGATE_GITHUB_PER_PAGE", "101"),
            ("TOLLGATE_GITHUB_PER_PAGE", "0"),
        ],
    )
    def test_invalid_numeric_values(
        self, clean_env: pytest.MonkeyPatch, variable: str, value: str
    ) -> None:
        """Invalid timeouts and page sizes are rejected."""
        clean_env.setenv("TOLLGATE_GITHUB_TOKEN", "gho_abc")
        clean_env.setenv(variable, value)
        with pytest.raises(BrokerConfigError, match="Invalid"):
            GitHubAppConfig.from_env()

    def test_repr_hides_private_key(self) -> None:
        """The private key never appears in the config repr."""
        config = GitHubAppConfig(token="t", app_id="1", private_key="SECRET-KEY")  # noqa: S106
        assert "SECRET-KEY" not in repr(config)


class TestAppJWTSigner:
    """Tests for App JWT signing."""

    def test_sign_produces_verifiable_app_jwt(
        self, rsa_key_pair: tuple[str, rsa.RSAPublicKey]
    ) -> None:
        """The JWT is RS256-signed with iss, iat and exp claims."""
        pem, public_key = rsa_key_pair
        signer = AppJWTSigner("12345", pem, clock=lambda: 1_700_000_000.0)

        token = signer.sign()

        claims = jwt.decode(
            token,
            public_key,
            algorithms=["RS256"],
            options={"verify_exp": False, "verify_iat": False},
        )
        assert claims == {
            "iss": "12345",
            "iat": 1_700_000_000 - 60,
            "exp": 1_700_000_000 + 540,
        }
        assert claims["exp"] - claims["iat"] <= 600

    def test_missing_credentials_rejected(self) -> None:
        """An empty App id or key is a configuration error."""
        with pytest.raises(BrokerConfigError):
            AppJWTSigner("", "key")
        with pytest.raises(BrokerConfigError):
            AppJWTSigner("1", "")

    def test_repr_hides_private_key(
        self, rsa_key_pair: tuple[str, rsa.RSAPublicKey]
    ) -> None:
        """The signer repr names the App but not the key."""
        pem, _ = rsa_key_pair
        assert repr(AppJWTSigner("12345", pem)) == "AppJWTSigner(app_id='12345')"
