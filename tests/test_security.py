import pytest

from exchange.admin.security import Capability, has_capability
from exchange.models.user import User
from exchange.utils.security import hash_password, verify_password, is_bcrypt_hash


def _user(**flags):
    base = {"id": 1, "is_admin": False, "is_moderator": False, "is_suspended": False}
    base.update(flags)
    return User(**base)


@pytest.mark.parametrize("capability", list(Capability))
def test_admin_has_everything(capability):
    assert has_capability(_user(is_admin=True), capability)


@pytest.mark.parametrize("capability,allowed", [
    (Capability.PIN_POSTS, True),
    (Capability.MODERATE_POSTS, True),
    (Capability.SUSPEND_USERS, True),
    (Capability.FLAG_USERS, True),
    (Capability.DELETE_POST, True),
    (Capability.MANAGE_USERS, False),
    (Capability.MANAGE_ADS, False),
])
def test_moderator_capabilities(capability, allowed):
    assert has_capability(_user(is_moderator=True), capability) is allowed


def test_regular_user_cannot_pin():
    assert not has_capability(_user(), Capability.PIN_POSTS)


def test_author_may_delete_own_post_only():
    u = _user(id=7)
    assert has_capability(u, Capability.DELETE_POST, owner_id=7)
    assert not has_capability(u, Capability.DELETE_POST, owner_id=8)


def test_suspended_staff_has_nothing():
    assert not has_capability(_user(is_admin=True, is_suspended=True), Capability.PIN_POSTS)


def test_anonymous_has_nothing():
    assert not has_capability(None, Capability.PIN_POSTS)


def test_hash_roundtrip_and_legacy_compare():
    h = hash_password("Abcdefgh1!")
    assert is_bcrypt_hash(h)
    assert verify_password("Abcdefgh1!", h)
    assert not verify_password("Abcdefgh1?", h)
    assert verify_password("plain-legacy", "plain-legacy")
    assert not verify_password("anything", None)
