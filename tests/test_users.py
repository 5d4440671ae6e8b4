"""Tests for the user directory service."""

from datetime import timedelta

import pytest

from tenderportal.exceptions import (
    ConflictError, ForbiddenError, NotFoundError, UnauthenticatedError, ValidationError
)
from tenderportal.models import User
from tenderportal.schemas import ProfileUpdate, UserCreate, UserUpdate
from tenderportal.security import verify_password
from tenderportal.services import UserDirectoryService
from tenderportal.utils.dates import utcnow


@pytest.fixture
def service(db_session):
    return UserDirectoryService(db_session)


@pytest.fixture
def admin(make_user):
    return make_user(role='admin', email='root@example.com', name='Root Admin')


def reload(db_session, user_id):
    db_session.expire_all()
    return db_session.query(User).filter(User.id == user_id).first()


class TestAccessControl:
    """Only admins reach the directory."""

    @pytest.mark.parametrize("role", ["bidder", "government_official", "viewer"])
    def test_non_admin_forbidden(self, service, make_user, as_actor, role):
        actor = as_actor(make_user(role=role))

        with pytest.raises(ForbiddenError):
            service.list_users(actor)
        with pytest.raises(ForbiddenError):
            service.get_stats(actor)

    def test_anonymous_rejected(self, service):
        with pytest.raises(UnauthenticatedError):
            service.list_users(None)


class TestListUsers:
    """Test suite for filtering, sorting and pagination."""

    def test_pagination_math(self, service, admin, make_user, as_actor):
        """22 users plus the admin: three pages of ten, the last one with three."""
        for _ in range(22):
            make_user()

        users, pagination = service.list_users(as_actor(admin), page=1, limit=10)
        assert len(users) == 10
        assert pagination.total == 23
        assert pagination.total_pages == 3

        last_page, pagination = service.list_users(as_actor(admin), page=3, limit=10)
        assert len(last_page) == 3
        assert pagination.page == 3

    def test_pages_do_not_overlap(self, service, admin, make_user, as_actor):
        for _ in range(14):
            make_user()

        seen = []
        for page in (1, 2, 3):
            users, _ = service.list_users(as_actor(admin), page=page, limit=5)
            seen.extend(u.id for u in users)

        assert len(seen) == 15
        assert len(set(seen)) == 15

    def test_empty_result(self, service, admin, as_actor):
        users, pagination = service.list_users(as_actor(admin), search='nobody-matches-this')

        assert users == []
        assert pagination.total == 0
        assert pagination.total_pages == 0

    def test_limit_is_capped(self, service, admin, as_actor):
        _, pagination = service.list_users(as_actor(admin), limit=500)

        assert pagination.limit == 100

    def test_search_matches_name_email_or_company(self, service, admin, make_user, as_actor):
        by_name = make_user(name='Awa Ouedraogo')
        by_email = make_user(email='awa.sales@example.com')
        by_company = make_user(company_name='AWA Construction SARL')
        make_user(name='Someone Else', company_name='Other Ltd')

        users, pagination = service.list_users(as_actor(admin), search='awa')

        assert {u.id for u in users} == {by_name.id, by_email.id, by_company.id}
        assert pagination.total == 3

    def test_filters_combine(self, service, admin, make_user, as_actor):
        target = make_user(role='bidder', is_active=False, company_name='Acme Supplies')
        make_user(role='bidder', is_active=True, company_name='Acme Trading')
        make_user(role='government_official', is_active=False, company_name='Acme Ministry')

        users, _ = service.list_users(as_actor(admin), search='acme', role='bidder', is_active=False)

        assert [u.id for u in users] == [target.id]

    def test_sort_by_name(self, service, admin, make_user, as_actor):
        make_user(name='Charlie')
        make_user(name='Alice')
        make_user(name='Bob')

        users, _ = service.list_users(as_actor(admin), role='bidder', sort_by='name', sort_order='asc')
        assert [u.name for u in users] == ['Alice', 'Bob', 'Charlie']

        users, _ = service.list_users(as_actor(admin), role='bidder', sort_by='name', sort_order='desc')
        assert [u.name for u in users] == ['Charlie', 'Bob', 'Alice']

    def test_default_sort_is_newest_first(self, service, admin, make_user, as_actor):
        old = make_user(created_at=utcnow() - timedelta(days=3))
        new = make_user(created_at=utcnow() + timedelta(days=1))

        users, _ = service.list_users(as_actor(admin), sort_by='unknown-column')

        assert users[0].id == new.id
        assert users[-1].id == old.id


class TestCreateUser:
    """Test suite for admin account creation."""

    def test_create_hashes_password(self, service, admin, as_actor):
        user = service.create_user(as_actor(admin), UserCreate(
            email='New.Official@Example.com',
            name='New Official',
            password='Welcome123',
            role='government_official',
            department='Procurement',
        ))

        assert user.email == 'new.official@example.com'
        assert user.role == 'government_official'
        assert user.is_active is True
        assert user.password != 'Welcome123'
        assert verify_password('Welcome123', user.password)

    def test_missing_fields_are_named(self, service, admin, as_actor):
        with pytest.raises(ValidationError) as exc_info:
            service.create_user(as_actor(admin), UserCreate(email='x@example.com'))

        assert 'name' in exc_info.value.message
        assert 'password' in exc_info.value.message
        assert 'role' in exc_info.value.message
        assert 'email' not in exc_info.value.message

    def test_blank_values_count_as_missing(self, service, admin, as_actor):
        payload = UserCreate.model_validate({'email': '', 'name': 'Blank', 'password': 'Welcome123', 'role': ''})

        with pytest.raises(ValidationError) as exc_info:
            service.create_user(as_actor(admin), payload)

        assert exc_info.value.message == "Missing required fields: email, role"

    def test_duplicate_email_conflict(self, service, admin, as_actor, db_session):
        """Second account with the same email is refused; the first is untouched."""
        first = service.create_user(as_actor(admin), UserCreate(
            email='a@b.com', name='First', password='Welcome123', role='bidder',
        ))
        db_session.commit()

        with pytest.raises(ConflictError):
            service.create_user(as_actor(admin), UserCreate(
                email='A@B.com', name='Second', password='Other1234', role='viewer',
            ))

        stored = reload(db_session, first.id)
        assert stored.name == 'First'
        assert stored.role == 'bidder'
        assert db_session.query(User).filter(User.email == 'a@b.com').count() == 1

    def test_inactive_on_request(self, service, admin, as_actor):
        user = service.create_user(as_actor(admin), UserCreate(
            email='off@example.com', name='Off', password='Welcome123', role='viewer', is_active=False,
        ))

        assert user.is_active is False


class TestUpdateUser:
    """Test suite for partial admin updates."""

    def test_partial_update_changes_only_given_fields(self, service, admin, make_user, as_actor, db_session):
        user = make_user(
            name='Before',
            company_name='Keep Co',
            phone_number='+226 70 00 00 00',
            updated_at=utcnow() - timedelta(days=1),
        )
        before = {
            'email': user.email,
            'role': user.role,
            'password': user.password,
            'company_name': user.company_name,
            'phone_number': user.phone_number,
            'is_active': user.is_active,
        }
        old_updated_at = user.updated_at

        service.update_user(as_actor(admin), user.id, UserUpdate(name='X'))
        db_session.commit()

        stored = reload(db_session, user.id)
        assert stored.name == 'X'
        assert stored.updated_at > old_updated_at
        for field, value in before.items():
            assert getattr(stored, field) == value

    def test_password_rehashed(self, service, admin, make_user, as_actor):
        user = make_user()

        updated = service.update_user(as_actor(admin), user.id, UserUpdate(password='Changed123'))

        assert verify_password('Changed123', updated.password)

    def test_empty_password_keeps_hash(self, service, admin, make_user, as_actor):
        user = make_user()
        old_hash = user.password

        updated = service.update_user(as_actor(admin), user.id, UserUpdate(password=''))

        assert updated.password == old_hash

    def test_explicit_null_clears_optional_field(self, service, admin, make_user, as_actor):
        user = make_user(company_name='Gone Ltd')

        updated = service.update_user(as_actor(admin), user.id, UserUpdate(company_name=None, name=None))

        assert updated.company_name is None
        assert updated.name == user.name

    def test_email_taken_by_other_user(self, service, admin, make_user, as_actor):
        user = make_user()

        with pytest.raises(ConflictError):
            service.update_user(as_actor(admin), user.id, UserUpdate(email=admin.email))

    def test_unknown_user(self, service, admin, as_actor):
        with pytest.raises(NotFoundError):
            service.update_user(as_actor(admin), 'missing', UserUpdate(name='X'))


class TestDeleteUser:
    """Test suite for account deletion."""

    def test_delete_non_admin(self, service, admin, make_user, as_actor, db_session):
        user = make_user(role='bidder')

        service.delete_user(as_actor(admin), user.id)

        assert reload(db_session, user.id) is None

    def test_admin_cannot_be_deleted(self, service, admin, make_user, as_actor, db_session):
        other_admin = make_user(role='admin')

        with pytest.raises(ForbiddenError) as exc_info:
            service.delete_user(as_actor(admin), other_admin.id)

        assert exc_info.value.message == "Cannot delete admin users"
        assert reload(db_session, other_admin.id) is not None

    def test_admin_cannot_delete_self(self, service, admin, as_actor, db_session):
        with pytest.raises(ForbiddenError):
            service.delete_user(as_actor(admin), admin.id)

        assert reload(db_session, admin.id) is not None

    def test_non_admin_cannot_delete_admin(self, service, admin, make_user, as_actor, db_session):
        official = make_user(role='government_official')

        with pytest.raises(ForbiddenError):
            service.delete_user(as_actor(official), admin.id)

        assert reload(db_session, admin.id) is not None

    def test_missing_user_reported_first(self, service, admin, as_actor):
        with pytest.raises(NotFoundError):
            service.delete_user(as_actor(admin), 'missing')

    def test_delete_removes_applications(
        self, service, admin, make_user, make_tender, make_application, as_actor, db_session
    ):
        from tenderportal.models import TenderApplication

        user = make_user()
        make_application(user, make_tender())

        service.delete_user(as_actor(admin), user.id)
        db_session.commit()

        assert db_session.query(TenderApplication).filter_by(user_id=user.id).count() == 0


class TestStats:
    """Test suite for directory statistics."""

    def test_counts(self, service, admin, make_user, as_actor):
        make_user(role='bidder')
        make_user(role='bidder', is_active=False)
        make_user(role='government_official', created_at=utcnow() - timedelta(days=60))

        stats = service.get_stats(as_actor(admin))

        assert stats.total_users == 4
        assert stats.active_users == 3
        assert stats.inactive_users == 1
        assert stats.new_signups == 3
        assert {c.type: c.count for c in stats.user_types} == {
            'admin': 1,
            'bidder': 2,
            'government_official': 1,
        }


class TestSelfService:
    """Test suite for own-account operations."""

    def test_change_password(self, service, make_user, as_actor):
        user = make_user(password='Secret123')

        service.change_own_password(as_actor(user), 'Secret123', 'Brandnew456')

        assert verify_password('Brandnew456', user.password)
        assert not verify_password('Secret123', user.password)

    def test_wrong_current_password(self, service, make_user, as_actor):
        user = make_user(password='Secret123')

        with pytest.raises(ValidationError) as exc_info:
            service.change_own_password(as_actor(user), 'Wrong1234', 'Brandnew456')

        assert exc_info.value.message == "Current password is incorrect"

    def test_account_without_password(self, service, make_user, as_actor):
        user = make_user(password=None)

        with pytest.raises(ValidationError):
            service.change_own_password(as_actor(user), 'Anything1', 'Brandnew456')

    def test_update_profile(self, service, make_user, as_actor):
        user = make_user(role='bidder', company_name='Old Name')

        updated = service.update_own_profile(as_actor(user), ProfileUpdate(company_name='New Name'))

        assert updated.company_name == 'New Name'
        assert updated.role == 'bidder'

    def test_empty_profile_update(self, service, make_user, as_actor):
        with pytest.raises(ValidationError) as exc_info:
            service.update_own_profile(as_actor(make_user()), ProfileUpdate())

        assert exc_info.value.message == "No data to update"

    def test_profile_update_requires_actor(self, service):
        with pytest.raises(UnauthenticatedError):
            service.update_own_profile(None, ProfileUpdate(name='Someone'))
