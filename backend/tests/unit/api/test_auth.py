"""
Unit Tests for Authentication API Endpoints
"""
import pytest
from httpx import AsyncClient

from siwes_portal.models import UserRole


class TestSignup:
    """First-admin bootstrap"""

    @pytest.mark.asyncio
    async def test_signup_creates_first_admin(self, client: AsyncClient):
        response = await client.post('/api/auth/signup', json={
            'email': 'first@siwes.edu.ng',
            'name': 'First Admin',
            'password': 'secret123',
        })

        assert response.status_code == 201
        user = response.json()['user']
        assert user['role'] == 'Admin'
        assert user['email'] == 'first@siwes.edu.ng'
        assert 'password_hash' not in user

    @pytest.mark.asyncio
    async def test_signup_disabled_once_a_user_exists(self, client: AsyncClient, admin_user):
        response = await client.post('/api/auth/signup', json={
            'email': 'second@siwes.edu.ng',
            'name': 'Second Admin',
            'password': 'secret123',
        })

        assert response.status_code == 403
        assert response.json()['code'] == 'SIGNUP_DISABLED'

    @pytest.mark.asyncio
    async def test_signup_short_password_is_400(self, client: AsyncClient):
        response = await client.post('/api/auth/signup', json={
            'email': 'first@siwes.edu.ng',
            'name': 'First Admin',
            'password': '123',
        })

        assert response.status_code == 400
        body = response.json()
        assert body['error'] == 'Validation failed'
        assert any(d['field'] == 'password' for d in body['details'])


class TestLogin:
    """Test login endpoint"""

    @pytest.mark.asyncio
    async def test_login_success(self, client: AsyncClient, admin_user):
        response = await client.post('/api/auth/login', json={
            'email': admin_user.email,
            'password': 'password123',
        })

        assert response.status_code == 200
        data = response.json()
        assert data['token_type'] == 'bearer'
        assert data['access_token']
        assert data['refresh_token']
        assert data['user']['id'] == admin_user.id
        assert data['user']['must_change_password'] is False

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_the_same(self, client: AsyncClient, admin_user):
        wrong_password = await client.post('/api/auth/login', json={
            'email': admin_user.email,
            'password': 'not-the-password',
        })
        unknown_email = await client.post('/api/auth/login', json={
            'email': 'nobody@siwes.edu.ng',
            'password': 'not-the-password',
        })

        assert wrong_password.status_code == 401
        assert unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()
        assert wrong_password.json()['error'] == 'Invalid credentials'

    @pytest.mark.asyncio
    async def test_inactive_user_cannot_login(self, client: AsyncClient, make_user):
        user = await make_user(UserRole.STUDENT, is_active=False)

        response = await client.post('/api/auth/login', json={
            'email': user.email,
            'password': 'password123',
        })

        assert response.status_code == 401


class TestTokens:
    """Bearer validation, logout and refresh"""

    @pytest.mark.asyncio
    async def test_missing_token_is_401(self, client: AsyncClient):
        response = await client.get('/api/auth/profile')

        assert response.status_code == 401
        assert response.json()['error'] == 'Access token required'

    @pytest.mark.asyncio
    async def test_garbage_token_is_401(self, client: AsyncClient):
        response = await client.get('/api/auth/profile', headers={'Authorization': 'Bearer nonsense'})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_token_is_rejected_after_logout(self, client: AsyncClient, admin_user):
        login = await client.post('/api/auth/login', json={
            'email': admin_user.email,
            'password': 'password123',
        })
        headers = {'Authorization': f"Bearer {login.json()['access_token']}"}

        assert (await client.get('/api/auth/profile', headers=headers)).status_code == 200

        logout = await client.post('/api/auth/logout', headers=headers)
        assert logout.status_code == 200

        reused = await client.get('/api/auth/profile', headers=headers)
        assert reused.status_code == 401
        assert reused.json()['error'] == 'Token has been revoked'

    @pytest.mark.asyncio
    async def test_logout_also_revokes_supplied_refresh_token(self, client: AsyncClient, admin_user):
        login = (await client.post('/api/auth/login', json={
            'email': admin_user.email,
            'password': 'password123',
        })).json()
        headers = {'Authorization': f"Bearer {login['access_token']}"}

        await client.post('/api/auth/logout', headers=headers, json={'refresh_token': login['refresh_token']})

        response = await client.post('/api/auth/refresh', json={'refresh_token': login['refresh_token']})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_refresh_rotates_the_refresh_token(self, client: AsyncClient, admin_user):
        login = (await client.post('/api/auth/login', json={
            'email': admin_user.email,
            'password': 'password123',
        })).json()

        first = await client.post('/api/auth/refresh', json={'refresh_token': login['refresh_token']})
        assert first.status_code == 200
        new_pair = first.json()
        assert new_pair['refresh_token'] != login['refresh_token']

        profile = await client.get(
            '/api/auth/profile',
            headers={'Authorization': f"Bearer {new_pair['access_token']}"},
        )
        assert profile.status_code == 200

        replay = await client.post('/api/auth/refresh', json={'refresh_token': login['refresh_token']})
        assert replay.status_code == 401

    @pytest.mark.asyncio
    async def test_access_token_cannot_be_used_to_refresh(self, client: AsyncClient, admin_user):
        login = (await client.post('/api/auth/login', json={
            'email': admin_user.email,
            'password': 'password123',
        })).json()

        response = await client.post('/api/auth/refresh', json={'refresh_token': login['access_token']})

        assert response.status_code == 401
        assert response.json()['error'] == 'Invalid token type'


class TestPasswordChange:
    """must_change_password gate and change-password"""

    @pytest.mark.asyncio
    async def test_flagged_user_is_blocked_until_password_changes(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user(UserRole.STUDENT, must_change_password=True)
        headers = auth_headers(user)

        blocked = await client.get('/api/notifications', headers=headers)
        assert blocked.status_code == 403
        assert blocked.json()['error'] == 'You must change your password before continuing.'

        profile = await client.get('/api/auth/profile', headers=headers)
        assert profile.status_code == 200
        assert profile.json()['must_change_password'] is True

        changed = await client.post('/api/auth/change-password', headers=headers, json={
            'old_password': 'password123',
            'new_password': 'brand-new-pass',
        })
        assert changed.status_code == 200

        allowed = await client.get('/api/notifications', headers=headers)
        assert allowed.status_code == 200

        login = await client.post('/api/auth/login', json={
            'email': user.email,
            'password': 'brand-new-pass',
        })
        assert login.status_code == 200
        assert login.json()['user']['must_change_password'] is False

    @pytest.mark.asyncio
    async def test_wrong_old_password_is_401(self, client: AsyncClient, admin_user, admin_headers):
        response = await client.post('/api/auth/change-password', headers=admin_headers, json={
            'old_password': 'wrong-password',
            'new_password': 'brand-new-pass',
        })

        assert response.status_code == 401
        assert response.json()['error'] == 'Old password is incorrect'

    @pytest.mark.asyncio
    async def test_profile_includes_student_record(self, client: AsyncClient, student_user, student_headers):
        response = await client.get('/api/auth/profile', headers=student_headers)

        assert response.status_code == 200
        assert response.json()['student']['matric_number'] == 'CSC/2021/001'
