"""Tests for sign-up and authentication."""

from datetime import datetime

import pytest
from pydantic import ValidationError as SchemaValidationError

from tenderportal.exceptions import ConflictError, UnauthenticatedError
from tenderportal.schemas import SignUpRequest
from tenderportal.security import verify_password
from tenderportal.services import AccountService
from tenderportal.utils.dates import utcnow


@pytest.fixture
def service(db_session):
    return AccountService(db_session)


def bidder_payload(**overrides):
    data = {
        'email': 'Bidder@Example.com',
        'password': 'Secret123',
        'confirmPassword': 'Secret123',
        'name': 'Faso Builders',
        'role': 'bidder',
        'companyName': 'Faso Builders SARL',
        'businessRegistrationNumber': 'BF-OUA-2021-B-1234',
        'taxId': '00012345X',
        'bidderCategory': 'construction',
        'phoneNumber': '+226 70 12 34 56',
    }
    data.update(overrides)
    return data


class TestSignUpValidation:
    """Test suite for sign-up payload rules."""

    def test_valid_bidder(self):
        payload = SignUpRequest.model_validate(bidder_payload())

        assert payload.email == 'bidder@example.com'
        assert payload.company_name == 'Faso Builders SARL'

    @pytest.mark.parametrize("password", ["short1A", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere"])
    def test_weak_passwords(self, password):
        with pytest.raises(SchemaValidationError):
            SignUpRequest.model_validate(bidder_payload(password=password, confirmPassword=password))

    def test_password_mismatch(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            SignUpRequest.model_validate(bidder_payload(confirmPassword='Secret124'))

        assert "Passwords don't match" in str(exc_info.value)

    def test_bidder_requires_business_fields(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            SignUpRequest.model_validate(bidder_payload(taxId=None, bidderCategory=''))

        message = str(exc_info.value)
        assert 'tax_id' in message
        assert 'bidder_category' in message

    def test_official_requires_government_id(self):
        with pytest.raises(SchemaValidationError):
            SignUpRequest.model_validate({
                'email': 'official@example.com',
                'password': 'Secret123',
                'confirmPassword': 'Secret123',
                'name': 'Official',
                'role': 'government_official',
                'department': 'Finance',
                'position': 'Director',
                'governmentId': '123',
            })

    def test_invalid_phone(self):
        with pytest.raises(SchemaValidationError):
            SignUpRequest.model_validate(bidder_payload(phoneNumber='call me maybe'))

    def test_viewer_needs_no_profile(self):
        payload = SignUpRequest.model_validate({
            'email': 'viewer@example.com',
            'password': 'Secret123',
            'confirmPassword': 'Secret123',
            'name': 'Viewer',
            'role': 'Viewer',
        })

        assert payload.role.value == 'viewer'


class TestSignUp:
    """Test suite for account registration."""

    def test_bidder_defaults_to_basic_tier(self, service):
        user = service.sign_up(SignUpRequest.model_validate(bidder_payload()))

        assert user.email == 'bidder@example.com'
        assert user.role == 'bidder'
        assert user.is_active is True
        assert user.subscription_tier == 'basic'
        assert user.subscription_expiry is None
        assert verify_password('Secret123', user.password)

    def test_paid_tier_expires_in_a_month(self, service):
        user = service.sign_up(SignUpRequest.model_validate(bidder_payload(subscriptionTier='premium')))

        assert user.subscription_tier == 'premium'
        days = (user.subscription_expiry - utcnow()).days
        assert 27 <= days <= 31

    def test_expiry_clamps_to_month_end(self, service, monkeypatch):
        from tenderportal.services import accounts

        monkeypatch.setattr(accounts, 'utcnow', lambda: datetime(2024, 1, 31, 9, 30))

        user = service.sign_up(SignUpRequest.model_validate(bidder_payload(subscriptionTier='premium')))

        assert user.subscription_expiry == datetime(2024, 2, 29, 9, 30)

    def test_fields_of_other_roles_dropped(self, service):
        user = service.sign_up(SignUpRequest.model_validate(bidder_payload(department='Should not stick')))

        assert user.department is None

    def test_official_has_no_subscription(self, service):
        user = service.sign_up(SignUpRequest.model_validate({
            'email': 'official@example.com',
            'password': 'Secret123',
            'confirmPassword': 'Secret123',
            'name': 'Official',
            'role': 'government_official',
            'department': 'Finance',
            'position': 'Director',
            'governmentId': 'GOV-12345',
            'subscriptionTier': 'enterprise',
        }))

        assert user.government_id == 'GOV-12345'
        assert user.subscription_tier is None

    def test_duplicate_email(self, service, make_user):
        make_user(email='bidder@example.com')

        with pytest.raises(ConflictError):
            service.sign_up(SignUpRequest.model_validate(bidder_payload()))


class TestAuthenticate:
    """Test suite for credential checks."""

    def test_valid_credentials(self, service, make_user):
        user = make_user(email='login@example.com', password='Secret123')

        assert service.authenticate('LOGIN@example.com', 'Secret123').id == user.id

    def test_wrong_password(self, service, make_user):
        make_user(email='login@example.com', password='Secret123')

        with pytest.raises(UnauthenticatedError) as exc_info:
            service.authenticate('login@example.com', 'Wrong123')

        assert exc_info.value.message == "Invalid credentials"

    def test_unknown_email(self, service):
        with pytest.raises(UnauthenticatedError) as exc_info:
            service.authenticate('ghost@example.com', 'Secret123')

        assert exc_info.value.message == "Invalid credentials"

    def test_no_stored_password(self, service, make_user):
        make_user(email='sso@example.com', password=None)

        with pytest.raises(UnauthenticatedError):
            service.authenticate('sso@example.com', 'Secret123')

    def test_deactivated(self, service, make_user):
        make_user(email='off@example.com', password='Secret123', is_active=False)

        with pytest.raises(UnauthenticatedError) as exc_info:
            service.authenticate('off@example.com', 'Secret123')

        assert exc_info.value.message == "Account is deactivated"
