"""
HTTP flow through the test app: availability, guest OTP, lock, commit, payment, cancel
"""

from collections.abc import AsyncGenerator, Generator
from datetime import date, timedelta

from fastapi.testclient import TestClient
import pytest

from src.platform.config.di import container
from src.service.booking.app.interface.i_otp_sender import IOtpSender
from src.service.booking.domain.enum.user_role import UserRole
from src.service.booking.domain.value_object.principal import Principal
from src.service.booking.driving_adapter.http_controller.auth.jwt_auth import JwtAuth
from test.service.booking.builders import SERVICE_ID, TENANT_ID
from test.service.booking.integration.seed import seed_catalog, seed_package, seed_slot


BASE = f'/api/tenants/{TENANT_ID}'
GUEST_PHONE = '0501234567'
SLOT_DATE = date.today() + timedelta(days=7)


class CapturingOtpSender(IOtpSender):
    def __init__(self) -> None:
        self.codes: dict[str, str] = {}

    async def send(self, *, tenant_id: int, phone: str, code: str) -> None:
        self.codes[phone] = code


@pytest.fixture
async def seeded(clean_database: None) -> AsyncGenerator[None, None]:
    await seed_catalog()
    await seed_slot(1, slot_date=SLOT_DATE)
    await seed_slot(2, slot_date=SLOT_DATE)
    await seed_package(subscription_id=9, customer_id=55, remaining=1)
    yield


@pytest.fixture
def otp_sender() -> Generator[CapturingOtpSender, None, None]:
    sender = CapturingOtpSender()
    with container.otp_sender.override(sender):
        yield sender


def auth_header(role: UserRole, *, user_id: int = 7, customer_id=None, tenant_id=TENANT_ID):
    token = JwtAuth().create_jwt_token(
        Principal(user_id=user_id, tenant_id=tenant_id, role=role, customer_id=customer_id)
    )
    return {'Authorization': f'Bearer {token}'}


def lock_payload(**overrides):
    payload = {
        'service_id': SERVICE_ID,
        'adult_count': 2,
        'slot_date': SLOT_DATE.isoformat(),
        'start_time': '09:00',
        'end_time': '10:00',
    }
    payload.update(overrides)
    return payload


@pytest.mark.integration
class TestAvailabilityApi:
    def test_availability_lists_open_slots(self, seeded: None, client: TestClient) -> None:
        response = client.get(
            f'{BASE}/services/{SERVICE_ID}/availability',
            params={'start_date': SLOT_DATE.isoformat(), 'end_date': SLOT_DATE.isoformat()},
        )

        assert response.status_code == 200
        data = response.json()
        assert [slot['id'] for slot in data['slots']] == [1, 2]
        assert data['counts_by_date'] == {SLOT_DATE.isoformat(): 2}
        assert data['time_windows'][0]['free_capacity'] == 2

    def test_unknown_service_is_404(self, seeded: None, client: TestClient) -> None:
        response = client.get(f'{BASE}/services/999/availability')

        assert response.status_code == 404

    def test_entitlement_for_signed_in_customer(self, seeded: None, client: TestClient) -> None:
        response = client.get(
            f'{BASE}/services/{SERVICE_ID}/entitlement',
            headers=auth_header(UserRole.CUSTOMER, customer_id=55),
        )

        assert response.status_code == 200
        assert response.json()['remaining'] == 1

    def test_token_of_other_tenant_rejected(self, seeded: None, client: TestClient) -> None:
        response = client.get(
            f'{BASE}/services/{SERVICE_ID}/entitlement',
            headers=auth_header(UserRole.CUSTOMER, customer_id=55, tenant_id=TENANT_ID + 1),
        )

        assert response.status_code == 403


@pytest.mark.integration
class TestCustomerBookingApi:
    def test_lock_commit_pay_cancel(self, seeded: None, client: TestClient) -> None:
        customer = auth_header(UserRole.CUSTOMER, customer_id=55)
        staff = auth_header(UserRole.STAFF, user_id=3)

        # Lock: one unit covered by the package, one at list price
        lock = client.post(f'{BASE}/bookings/lock', json=lock_payload(), headers=customer)
        assert lock.status_code == 201
        lock_data = lock.json()
        assert lock_data['quote']['covered_units'] == 1
        assert lock_data['quote']['total'] == '150.00'
        assert 0 < lock_data['seconds_remaining'] <= 120

        countdown = client.get(f'{BASE}/bookings/lock/{lock_data["lock_id"]}', headers=customer)
        assert countdown.status_code == 200
        peek = client.get(
            f'{BASE}/bookings/lock/{lock_data["lock_id"]}',
            headers=auth_header(UserRole.CUSTOMER, user_id=8),
        )
        assert peek.status_code == 404

        # Commit
        commit = client.post(
            f'{BASE}/bookings/commit',
            json={
                'lock_id': lock_data['lock_id'],
                'customer_name': 'Sara',
                'customer_phone': '+966501234567',
            },
            headers=customer,
        )
        assert commit.status_code == 201
        group = commit.json()
        assert group['ticket_count'] == 2
        group_id = group['booking_group_id']

        # Customers cannot record payments, staff can
        forbidden = client.patch(
            f'{BASE}/bookings/groups/{group_id}/payment-status',
            json={'payment_status': 'paid_manual', 'payment_method': 'onsite'},
            headers=customer,
        )
        assert forbidden.status_code == 403
        refunded = client.patch(
            f'{BASE}/bookings/groups/{group_id}/payment-status',
            json={'payment_status': 'refunded'},
            headers=staff,
        )
        assert refunded.status_code == 200
        assert {b['payment_status'] for b in refunded.json()['bookings']} == {'refunded'}

        # Cancel gives the capacity back
        cancel = client.post(f'{BASE}/bookings/groups/{group_id}/cancel', headers=customer)
        assert cancel.status_code == 200
        availability = client.get(
            f'{BASE}/services/{SERVICE_ID}/availability',
            params={'start_date': SLOT_DATE.isoformat(), 'end_date': SLOT_DATE.isoformat()},
        )
        assert availability.json()['counts_by_date'] == {SLOT_DATE.isoformat(): 2}

    def test_insufficient_capacity_reports_numbers(
        self, seeded: None, client: TestClient
    ) -> None:
        response = client.post(
            f'{BASE}/bookings/lock',
            json=lock_payload(adult_count=3),
            headers=auth_header(UserRole.CUSTOMER),
        )

        assert response.status_code == 409
        assert response.json()['available'] == 2
        assert response.json()['requested'] == 3

    def test_release_returns_capacity(self, seeded: None, client: TestClient) -> None:
        customer = auth_header(UserRole.CUSTOMER)
        lock = client.post(f'{BASE}/bookings/lock', json=lock_payload(), headers=customer)
        lock_id = lock.json()['lock_id']

        release = client.post(f'{BASE}/bookings/lock/{lock_id}/release', json={}, headers=customer)

        assert release.status_code == 200
        assert release.json()['released'] is True
        other_customer = auth_header(UserRole.CUSTOMER, user_id=8)
        again = client.post(f'{BASE}/bookings/lock', json=lock_payload(), headers=other_customer)
        assert again.status_code == 201


def verify_guest(client: TestClient, otp_sender: CapturingOtpSender) -> dict:
    client.post(f'{BASE}/guest/otp/send', json={'phone': GUEST_PHONE})
    verified = client.post(
        f'{BASE}/guest/otp/verify',
        json={'phone': GUEST_PHONE, 'code': otp_sender.codes['+966501234567']},
    )
    assert verified.status_code == 200
    return {'X-Guest-Token': verified.json()['guest_token']}


@pytest.mark.integration
class TestGuestBookingApi:
    def test_unverified_guest_cannot_lock(self, seeded: None, client: TestClient) -> None:
        response = client.post(f'{BASE}/bookings/lock', json=lock_payload())

        assert response.status_code == 403

    def test_bare_phone_of_verified_guest_is_not_enough(
        self, seeded: None, client: TestClient, otp_sender: CapturingOtpSender
    ) -> None:
        # Given: someone else verified this phone
        verify_guest(client, otp_sender)

        # When: a caller names the phone without holding its token
        response = client.post(
            f'{BASE}/bookings/lock', json=lock_payload(adult_count=1, guest_phone=GUEST_PHONE)
        )

        # Then
        assert response.status_code == 403

    def test_pending_token_cannot_lock(
        self, seeded: None, client: TestClient, otp_sender: CapturingOtpSender
    ) -> None:
        sent = client.post(f'{BASE}/guest/otp/send', json={'phone': GUEST_PHONE})

        response = client.post(
            f'{BASE}/bookings/lock',
            json=lock_payload(adult_count=1),
            headers={'X-Guest-Token': sent.json()['guest_token']},
        )

        assert response.status_code == 403

    def test_forged_guest_token_rejected(self, seeded: None, client: TestClient) -> None:
        response = client.post(
            f'{BASE}/bookings/lock',
            json=lock_payload(adult_count=1),
            headers={'X-Guest-Token': 'not-a-token'},
        )

        assert response.status_code == 401

    def test_bearer_token_is_not_a_guest_token(self, seeded: None, client: TestClient) -> None:
        bearer = auth_header(UserRole.CUSTOMER)['Authorization'].removeprefix('Bearer ')

        response = client.post(
            f'{BASE}/bookings/lock',
            json=lock_payload(adult_count=1),
            headers={'X-Guest-Token': bearer},
        )

        assert response.status_code == 401

    def test_guest_verifies_then_books(
        self, seeded: None, client: TestClient, otp_sender: CapturingOtpSender
    ) -> None:
        # Send
        sent = client.post(f'{BASE}/guest/otp/send', json={'phone': GUEST_PHONE})
        assert sent.status_code == 200
        assert sent.json()['state'] == 'otp_sent'
        assert sent.json()['resend_available_in'] > 0
        assert sent.json()['guest_token']

        # Resend inside the cooldown
        resend = client.post(f'{BASE}/guest/otp/resend', json={'phone': GUEST_PHONE})
        assert resend.status_code == 429
        assert resend.json()['retry_after_seconds'] > 0
        assert resend.headers['retry-after'] == str(resend.json()['retry_after_seconds'])

        # Verify
        code = otp_sender.codes['+966501234567']
        wrong = '111111' if code != '111111' else '222222'
        mismatch = client.post(
            f'{BASE}/guest/otp/verify', json={'phone': GUEST_PHONE, 'code': wrong}
        )
        assert mismatch.status_code == 400
        verified = client.post(
            f'{BASE}/guest/otp/verify', json={'phone': GUEST_PHONE, 'code': code}
        )
        assert verified.status_code == 200
        assert verified.json()['verified'] is True
        guest = {'X-Guest-Token': verified.json()['guest_token']}

        # A second verify on the same phone hands out nothing
        replay = client.post(
            f'{BASE}/guest/otp/verify', json={'phone': GUEST_PHONE, 'code': wrong}
        )
        assert replay.status_code == 200
        assert replay.json()['guest_token'] is None

        # Lock, watch the countdown and commit as the verified guest, at list price
        lock = client.post(
            f'{BASE}/bookings/lock', json=lock_payload(adult_count=1), headers=guest
        )
        assert lock.status_code == 201
        assert lock.json()['quote']['total'] == '150.00'
        lock_id = lock.json()['lock_id']
        assert client.get(f'{BASE}/bookings/lock/{lock_id}', headers=guest).status_code == 200
        commit = client.post(
            f'{BASE}/bookings/commit',
            json={'lock_id': lock_id, 'customer_name': 'Guest'},
            headers=guest,
        )
        assert commit.status_code == 201
        assert commit.json()['bookings'][0]['payment_status'] == 'unpaid'

    def test_too_many_wrong_codes_locks_out(
        self, seeded: None, client: TestClient, otp_sender: CapturingOtpSender
    ) -> None:
        client.post(f'{BASE}/guest/otp/send', json={'phone': GUEST_PHONE})
        code = otp_sender.codes['+966501234567']
        wrong = '111111' if code != '111111' else '222222'

        for _ in range(5):
            client.post(f'{BASE}/guest/otp/verify', json={'phone': GUEST_PHONE, 'code': wrong})
        locked_out = client.post(
            f'{BASE}/guest/otp/verify', json={'phone': GUEST_PHONE, 'code': code}
        )

        assert locked_out.status_code == 429
        assert 'retry-after' in locked_out.headers

    def test_change_number_resets_flow(
        self, seeded: None, client: TestClient, otp_sender: CapturingOtpSender
    ) -> None:
        sent = client.post(f'{BASE}/guest/otp/send', json={'phone': GUEST_PHONE})

        changed = client.post(
            f'{BASE}/guest/otp/change-number',
            headers={'X-Guest-Token': sent.json()['guest_token']},
        )

        assert changed.status_code == 200
        assert changed.json()['state'] == 'phone'
        assert changed.json()['verified'] is False

    def test_change_number_requires_guest_token(
        self, seeded: None, client: TestClient, otp_sender: CapturingOtpSender
    ) -> None:
        client.post(f'{BASE}/guest/otp/send', json={'phone': GUEST_PHONE})

        changed = client.post(f'{BASE}/guest/otp/change-number', json={'phone': GUEST_PHONE})

        assert changed.status_code == 401
