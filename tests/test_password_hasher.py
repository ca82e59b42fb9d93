"""Unit tests for userhub.infra.security.password_hasher."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from userhub.foundation.domain.exceptions import ValidationError
from userhub.foundation.domain.ports import PasswordHasherPort
from userhub.infra.security import BcryptPasswordHasher, PasswordHasherSettings


@pytest.fixture
def hasher() -> BcryptPasswordHasher:
    return BcryptPasswordHasher(rounds=4)


@pytest.mark.unit
class TestBcryptPasswordHasher:
    def test_satisfies_port(self, hasher: BcryptPasswordHasher) -> None:
        assert isinstance(hasher, PasswordHasherPort)

    def test_hash_is_salted_and_verifiable(self, hasher: BcryptPasswordHasher) -> None:
        first = hasher.hash("s3cret")
        second = hasher.hash("s3cret")

        assert first != second
        assert first.startswith("$2b$04$")
        assert "s3cret" not in first
        assert hasher.verify("s3cret", first)
        assert hasher.verify("s3cret", second)

    def test_wrong_password_does_not_verify(self, hasher: BcryptPasswordHasher) -> None:
        assert not hasher.verify("wrong", hasher.hash("s3cret"))

    def test_multibyte_password(self, hasher: BcryptPasswordHasher) -> None:
        hashed = hasher.hash("pässwörd")
        assert hasher.verify("pässwörd", hashed)

    def test_password_over_72_bytes_is_refused(self, hasher: BcryptPasswordHasher) -> None:
        with pytest.raises(ValidationError) as exc_info:
            hasher.hash("x" * 73)
        assert exc_info.value.context["field"] == "password"

    def test_verify_over_72_bytes_is_false(self, hasher: BcryptPasswordHasher) -> None:
        hashed = hasher.hash("x" * 72)
        assert not hasher.verify("x" * 73, hashed)

    @pytest.mark.parametrize("rounds", [3, 32])
    def test_rounds_out_of_range(self, rounds: int) -> None:
        with pytest.raises(ValueError, match="between 4 and 31"):
            BcryptPasswordHasher(rounds=rounds)


@pytest.mark.unit
class TestPasswordHasherSettings:
    def test_default_rounds(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            assert PasswordHasherSettings(_env_file=None).bcrypt_rounds == 12

    def test_rounds_from_env(self) -> None:
        with patch.dict("os.environ", {"PASSWORD_BCRYPT_ROUNDS": "8"}, clear=True):
            assert PasswordHasherSettings(_env_file=None).bcrypt_rounds == 8
