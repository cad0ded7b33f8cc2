"""
Unit Tests for Attendance Endpoints
"""
import pytest
from httpx import AsyncClient

from siwes_portal.models import UserRole


async def mark(client, headers, student_id, day='2024-03-01', present=True, notes=None):
    body = {'student_id': student_id, 'date': day, 'present': present}
    if notes is not None:
        body['notes'] = notes
    return await client.post('/api/attendance', headers=headers, json=body)


class TestMarkAttendance:

    @pytest.mark.asyncio
    async def test_mark_after_admin_assignment(
        self, client: AsyncClient, student_user, industry_supervisor, admin_headers, industry_headers
    ):
        assign = await client.post(
            '/api/supervisors/assignments/industry',
            headers=admin_headers,
            json={'supervisor_id': industry_supervisor.id, 'student_ids': [student_user.id]},
        )
        assert assign.status_code == 200

        first = await mark(client, industry_headers, student_user.id)
        assert first.status_code == 201
        data = first.json()
        assert data['attendance']['present'] is True
        assert data['attendance']['supervisor_id'] == industry_supervisor.id
        assert data['statistics'] == {
            'total_days': 1, 'present_days': 1, 'absent_days': 0, 'attendance_rate': 100.0,
        }

        second = await mark(client, industry_headers, student_user.id, present=False)
        assert second.status_code == 409
        assert second.json()['error'] == 'Attendance already marked for this date'

    @pytest.mark.asyncio
    async def test_statistics_cover_all_marks(self, client: AsyncClient, assigned_student, industry_headers):
        await mark(client, industry_headers, assigned_student.id, '2024-03-01', True)
        await mark(client, industry_headers, assigned_student.id, '2024-03-02', False)

        response = await mark(client, industry_headers, assigned_student.id, '2024-03-03', True)

        assert response.json()['statistics'] == {
            'total_days': 3, 'present_days': 2, 'absent_days': 1, 'attendance_rate': 66.67,
        }

    @pytest.mark.asyncio
    async def test_unassigned_student_is_403(self, client: AsyncClient, student_user, industry_headers):
        response = await mark(client, industry_headers, student_user.id)

        assert response.status_code == 403
        assert response.json()['error'] == 'Not authorized to mark attendance for this student'

    @pytest.mark.asyncio
    async def test_school_supervisor_cannot_mark(self, client: AsyncClient, assigned_student, school_headers):
        response = await mark(client, school_headers, assigned_student.id)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_marking_notifies_student(
        self, client: AsyncClient, assigned_student, industry_headers, auth_headers
    ):
        await mark(client, industry_headers, assigned_student.id, present=False)

        inbox = (await client.get('/api/notifications', headers=auth_headers(assigned_student))).json()

        assert inbox['items'][0]['title'] == 'Attendance Marked'
        assert 'absent' in inbox['items'][0]['message']


class TestReadAttendance:

    @pytest.mark.asyncio
    async def test_month_filter(self, client: AsyncClient, assigned_student, industry_headers, auth_headers):
        for day in ('2024-02-28', '2024-03-01', '2024-03-04'):
            await mark(client, industry_headers, assigned_student.id, day)

        response = await client.get(
            f'/api/attendance/{assigned_student.id}',
            headers=auth_headers(assigned_student),
            params={'month': '2024-03'},
        )

        assert response.status_code == 200
        data = response.json()
        assert [a['date'] for a in data['attendance']] == ['2024-03-04', '2024-03-01']
        assert data['statistics']['total_days'] == 2
        assert data['matric_number'] == 'CSC/2021/002'

    @pytest.mark.asyncio
    async def test_bad_month_is_400(self, client: AsyncClient, assigned_student, industry_headers):
        response = await client.get(
            f'/api/attendance/{assigned_student.id}', headers=industry_headers, params={'month': '2024-13'}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_other_student_is_denied(self, client: AsyncClient, assigned_student, student_headers):
        response = await client.get(f'/api/attendance/{assigned_student.id}', headers=student_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_supervisor_overview(
        self, client: AsyncClient, make_user, industry_supervisor, assigned_student, industry_headers
    ):
        second = await make_user(UserRole.STUDENT, name='Aaron Able', industry_supervisor=industry_supervisor)
        await mark(client, industry_headers, assigned_student.id, '2024-03-01', True)
        await mark(client, industry_headers, assigned_student.id, '2024-03-02', False)

        response = await client.get('/api/attendance/supervisor/students', headers=industry_headers)

        data = {row['id']: row for row in response.json()}
        assert len(data) == 2
        assert data[second.id]['last_attendance'] is None
        marked = data[assigned_student.id]
        assert marked['statistics']['total_days'] == 2
        assert marked['last_attendance']['date'] == '2024-03-02'


class TestUpdateAttendance:

    @pytest.mark.asyncio
    async def test_marking_supervisor_can_correct(self, client: AsyncClient, assigned_student, industry_headers):
        attendance_id = (await mark(client, industry_headers, assigned_student.id)).json()['attendance']['id']

        response = await client.patch(
            f'/api/attendance/{attendance_id}',
            headers=industry_headers,
            json={'present': False, 'notes': 'Left at noon'},
        )

        assert response.status_code == 200
        assert response.json()['attendance']['present'] is False
        assert response.json()['attendance']['notes'] == 'Left at noon'

    @pytest.mark.asyncio
    async def test_other_supervisor_cannot_correct(
        self, client: AsyncClient, assigned_student, industry_headers, make_user, auth_headers
    ):
        attendance_id = (await mark(client, industry_headers, assigned_student.id)).json()['attendance']['id']
        stranger = await make_user(UserRole.INDUSTRY_SUPERVISOR)

        response = await client.patch(
            f'/api/attendance/{attendance_id}', headers=auth_headers(stranger), json={'present': False}
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_record(self, client: AsyncClient, industry_headers):
        response = await client.patch(
            '/api/attendance/00000000-0000-0000-0000-000000000000',
            headers=industry_headers,
            json={'present': False},
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_null_present_is_400(self, client: AsyncClient, assigned_student, industry_headers):
        attendance_id = (await mark(client, industry_headers, assigned_student.id)).json()['attendance']['id']

        response = await client.patch(
            f'/api/attendance/{attendance_id}', headers=industry_headers, json={'present': None}
        )

        assert response.status_code == 400
        assert response.json()['code'] == 'VALIDATION_ERROR'

    @pytest.mark.asyncio
    async def test_null_notes_clears_them(self, client: AsyncClient, assigned_student, industry_headers):
        created = await mark(client, industry_headers, assigned_student.id, notes='Late')
        attendance_id = created.json()['attendance']['id']

        response = await client.patch(
            f'/api/attendance/{attendance_id}', headers=industry_headers, json={'notes': None}
        )

        assert response.status_code == 200
        assert response.json()['attendance']['notes'] is None
        assert response.json()['attendance']['present'] is True
