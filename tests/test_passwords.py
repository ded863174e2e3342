import pytest
from sqlalchemy import select, func

from exchange.models.user import PasswordHistory
from exchange.services.passwords import (
    validate_password, change_password, migrate_legacy_passwords, password_requirements,
)
from exchange.utils.security import verify_password, is_bcrypt_hash

from conftest import DEFAULT_PASSWORD

LOWER = "Password must contain at least one lowercase letter"
UPPER = "Password must contain at least one uppercase letter"
DIGIT = "Password must contain at least one number"
SPECIAL = "Password must contain at least one special character (@$!%*?&)"


class TestValidatePassword:
    def test_strong_password_passes(self):
        check = validate_password("Abcdefgh1!")
        assert check.ok
        assert check.errors == []

    @pytest.mark.parametrize("password,expected", [
        ("ABCDEFGH1!", [LOWER]),
        ("abcdefgh1!", [UPPER]),
        ("Abcdefghi!", [DIGIT]),
        ("Abcdefghi1", [SPECIAL]),
        ("abcdefghij", [UPPER, DIGIT, SPECIAL]),
    ])
    def test_missing_classes_report_exactly_those(self, password, expected):
        check = validate_password(password)
        assert not check.ok
        assert check.errors == expected

    def test_too_short(self):
        check = validate_password("Ab1!")
        assert check.errors == ["Password must be at least 10 characters long"]

    def test_disallowed_character(self):
        check = validate_password("Abcdefgh1! ")
        assert check.errors == [
            "Password can only contain letters, numbers, and these special characters: @$!%*?&"
        ]

    def test_requirements_list_matches_rule_count(self):
        assert len(password_requirements()) == 6


class TestChangePassword:
    PASSWORDS = [f"Rotation{i}!x" for i in range(1, 6)]

    def _rotate(self, db, user):
        current = DEFAULT_PASSWORD
        for pw in self.PASSWORDS:
            change_password(db, user, current, pw, pw)
            current = pw
        return current

    def test_wrong_current_password(self, db, make_user):
        u = make_user()
        with pytest.raises(ValueError, match="Current password is incorrect"):
            change_password(db, u, "Wrong!Pass1", "Brand!New12")

    def test_confirmation_must_match(self, db, make_user):
        u = make_user()
        with pytest.raises(ValueError, match="must match"):
            change_password(db, u, DEFAULT_PASSWORD, "Brand!New12", "Brand!New13")

    def test_policy_errors_are_joined(self, db, make_user):
        u = make_user()
        with pytest.raises(ValueError) as exc:
            change_password(db, u, DEFAULT_PASSWORD, "short")
        assert "at least 10 characters" in str(exc.value)
        assert ", " in str(exc.value)

    def test_success_stores_bcrypt_hash(self, db, make_user):
        u = make_user()
        change_password(db, u, DEFAULT_PASSWORD, "Brand!New12", "Brand!New12")
        assert is_bcrypt_hash(u.hashed_password)
        assert verify_password("Brand!New12", u.hashed_password)

    def test_history_keeps_four_entries(self, db, make_user):
        u = make_user()
        self._rotate(db, u)
        count = db.execute(
            select(func.count(PasswordHistory.id)).where(PasswordHistory.user_id == u.id)
        ).scalar_one()
        assert count == 4

    @pytest.mark.parametrize("index", [1, 2, 3, 4])
    def test_last_four_cannot_be_reused(self, db, make_user, index):
        u = make_user()
        current = self._rotate(db, u)
        with pytest.raises(ValueError, match="last 4 passwords"):
            change_password(db, u, current, self.PASSWORDS[index])

    def test_password_outside_window_can_be_reused(self, db, make_user):
        u = make_user()
        current = self._rotate(db, u)
        change_password(db, u, current, self.PASSWORDS[0])
        assert verify_password(self.PASSWORDS[0], u.hashed_password)

    def test_first_password_outside_window(self, db, make_user):
        u = make_user()
        current = self._rotate(db, u)
        change_password(db, u, current, DEFAULT_PASSWORD)
        assert verify_password(DEFAULT_PASSWORD, u.hashed_password)

    def test_clears_forced_reset_flag(self, db, make_user):
        u = make_user(require_password_reset=True)
        change_password(db, u, DEFAULT_PASSWORD, "Brand!New12")
        assert u.require_password_reset is False


class TestLegacyMigration:
    def test_flags_plain_text_passwords_only(self, db, make_user):
        make_user("modern")
        legacy = make_user("legacy", hashed_password="oldpassword")

        report = migrate_legacy_passwords(db)

        db.refresh(legacy)
        assert report.checked == 2
        assert report.flagged == ["legacy"]
        assert legacy.require_password_reset is True

    def test_legacy_user_can_change_password(self, db, make_user):
        legacy = make_user("legacy", hashed_password="oldpassword", require_password_reset=True)
        assert verify_password("oldpassword", legacy.hashed_password)
        change_password(db, legacy, "oldpassword", "Brand!New12")
        assert is_bcrypt_hash(legacy.hashed_password)
        assert legacy.require_password_reset is False
