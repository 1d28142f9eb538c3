import pytest
from rest_framework.test import APIClient

pytestmark = pytest.mark.django_db


def login(client, email, password='pass12345'):
    return client.post('/api/accounts/login/', {'email': email, 'password': password}, format='json')


def test_login_returns_working_bearer_token(customer):
    client = APIClient()
    token = login(client, customer.email).json()['token']

    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    response = client.get('/api/accounts/me/')
    assert response.status_code == 200
    assert response.json()['role'] == 'customer'


def test_new_login_invalidates_previous_token(customer):
    client = APIClient()
    old_token = login(client, customer.email).json()['token']
    login(client, customer.email)

    client.credentials(HTTP_AUTHORIZATION=f'Bearer {old_token}')
    assert client.get('/api/accounts/me/').status_code == 401


def test_logout_ends_session(customer):
    client = APIClient()
    token = login(client, customer.email).json()['token']
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

    assert client.post('/api/accounts/logout/').status_code == 200
    assert client.get('/api/accounts/me/').status_code == 401


def test_wrong_password_is_rejected(customer):
    response = login(APIClient(), customer.email, password='wrong')
    assert response.status_code == 400


def test_requests_without_token_are_rejected():
    assert APIClient().get('/api/notifications/').status_code == 401
