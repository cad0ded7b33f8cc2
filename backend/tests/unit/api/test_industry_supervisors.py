"""
Unit Tests for Student Industry Supervisor Upload
"""
import pytest
from httpx import AsyncClient

from siwes_portal.models import UserRole

CSV_HEADER = 'name,email,company,position\n'


def csv_file(body: str, filename: str = 'supervisor.csv'):
    return {'file': (filename, (CSV_HEADER + body).encode(), 'text/csv')}


class TestUploadIndustrySupervisor:

    @pytest.mark.asyncio
    async def test_creates_and_assigns(self, client: AsyncClient, student_user, student_headers):
        response = await client.post(
            '/api/industry-supervisors/upload',
            headers=student_headers,
            files=csv_file('Grace Hopper,Grace.Hopper@Navy.Acme-Works.com.ng,US Navy,Rear Admiral\n'),
        )

        assert response.status_code == 200
        data = response.json()
        assert data['created'] is True
        assert data['supervisor']['email'] == 'grace.hopper@navy.acme-works.com.ng'
        assert data['supervisor']['company'] == 'US Navy'
        assert len(data['temporary_password']) >= 8

        status_response = await client.get('/api/industry-supervisors/status', headers=student_headers)
        assert status_response.json()['has_industry_supervisor'] is True
        assert status_response.json()['supervisor']['name'] == 'Grace Hopper'

    @pytest.mark.asyncio
    async def test_new_supervisor_must_change_password(self, client: AsyncClient, student_user, student_headers):
        data = (await client.post(
            '/api/industry-supervisors/upload',
            headers=student_headers,
            files=csv_file('Alan Turing,alan@bletchley.com.ng,GCHQ,Analyst\n'),
        )).json()

        login = await client.post(
            '/api/auth/login',
            json={'email': 'alan@bletchley.com.ng', 'password': data['temporary_password']},
        )

        assert login.status_code == 200
        assert login.json()['user']['must_change_password'] is True

    @pytest.mark.asyncio
    async def test_reuses_existing_supervisor(
        self, client: AsyncClient, student_user, industry_supervisor, student_headers
    ):
        response = await client.post(
            '/api/industry-supervisors/upload',
            headers=student_headers,
            files=csv_file(f'Someone Else,{industry_supervisor.email},Acme,Lead\n'),
        )

        data = response.json()
        assert data['created'] is False
        assert data['temporary_password'] is None
        assert data['supervisor']['id'] == industry_supervisor.id
        assert data['supervisor']['name'] == 'Ivy Industry'

    @pytest.mark.asyncio
    async def test_email_of_non_supervisor(self, client: AsyncClient, student_user, admin_user, student_headers):
        response = await client.post(
            '/api/industry-supervisors/upload',
            headers=student_headers,
            files=csv_file(f'Portal Admin,{admin_user.email},Uni,Registrar\n'),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_already_assigned(self, client: AsyncClient, assigned_student, auth_headers):
        response = await client.post(
            '/api/industry-supervisors/upload',
            headers=auth_headers(assigned_student),
            files=csv_file('Grace Hopper,grace@navy.acme-works.com.ng,US Navy,Admiral\n'),
        )

        assert response.status_code == 400
        assert response.json()['error'] == 'You already have an industry supervisor assigned'

    @pytest.mark.asyncio
    async def test_rejects_non_csv(self, client: AsyncClient, student_user, student_headers):
        response = await client.post(
            '/api/industry-supervisors/upload',
            headers=student_headers,
            files=csv_file('Grace Hopper,grace@navy.acme-works.com.ng,US Navy,Admiral\n', filename='supervisor.txt'),
        )

        assert response.status_code == 400
        assert response.json()['code'] == 'INVALID_FILE'

    @pytest.mark.asyncio
    async def test_invalid_email(self, client: AsyncClient, student_user, student_headers):
        response = await client.post(
            '/api/industry-supervisors/upload',
            headers=student_headers,
            files=csv_file('Grace Hopper,not-an-email,US Navy,Admiral\n'),
        )

        assert response.status_code == 400
        assert response.json()['error'] == 'Supervisor email is invalid'

    @pytest.mark.asyncio
    async def test_students_only(self, client: AsyncClient, industry_headers):
        response = await client.post(
            '/api/industry-supervisors/upload',
            headers=industry_headers,
            files=csv_file('Grace Hopper,grace@navy.acme-works.com.ng,US Navy,Admiral\n'),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_template(self, client: AsyncClient, student_headers):
        response = await client.get('/api/industry-supervisors/export-template', headers=student_headers)

        assert response.status_code == 200
        assert response.headers['content-type'].startswith('text/csv')
        assert response.text.strip() == 'name,email,company,position'


class TestStatus:

    @pytest.mark.asyncio
    async def test_without_supervisor(self, client: AsyncClient, student_user, student_headers):
        data = (await client.get('/api/industry-supervisors/status', headers=student_headers)).json()

        assert data == {'has_industry_supervisor': False, 'supervisor': None}

    @pytest.mark.asyncio
    async def test_after_supervisor_role_check(self, client: AsyncClient, make_user, auth_headers):
        supervisor = await make_user(UserRole.INDUSTRY_SUPERVISOR)

        response = await client.get('/api/industry-supervisors/status', headers=auth_headers(supervisor))

        assert response.status_code == 403
