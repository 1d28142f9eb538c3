import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User, Role
from orders.models import Order, OrderStatus, OrderKind


@pytest.fixture
def customer(db):
    return User.objects.create_user(
        email='cara@example.com', password='pass12345', first_name='Cara', role=Role.CUSTOMER
    )


@pytest.fixture
def other_customer(db):
    return User.objects.create_user(
        email='omar@example.com', password='pass12345', first_name='Omar', role=Role.CUSTOMER
    )


@pytest.fixture
def rider(db):
    return User.objects.create_user(
        email='rita@example.com', password='pass12345', first_name='Rita', last_name='Rider',
        phone_number='0500000001', role=Role.RIDER
    )


@pytest.fixture
def other_rider(db):
    return User.objects.create_user(
        email='ravi@example.com', password='pass12345', first_name='Ravi', role=Role.RIDER
    )


@pytest.fixture
def admin_user(db):
    return User.objects.create_superuser(email='admin@example.com', password='pass12345', first_name='Ada')


@pytest.fixture
def order(customer, rider):
    order = Order.objects.create(
        customer=customer,
        status=OrderStatus.ASSIGNED,
        assigned_rider=rider,
        assigned_at=timezone.now(),
    )
    order.replace_items([
        {'name': 'Shirt wash', 'quantity': 2, 'price': '10.00'},
        {'name': 'Dry clean', 'quantity': 1, 'price': '25.00'},
    ])
    return order


@pytest.fixture
def quick_pickup_order(customer, rider):
    return Order.objects.create(
        customer=customer,
        kind=OrderKind.QUICK_PICKUP,
        status=OrderStatus.PICKED_UP,
        assigned_rider=rider,
        assigned_at=timezone.now(),
    )


def _client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def customer_client(customer):
    return _client_for(customer)


@pytest.fixture
def rider_client(rider):
    return _client_for(rider)


@pytest.fixture
def admin_client(admin_user):
    return _client_for(admin_user)


@pytest.fixture
def client_for():
    return _client_for
