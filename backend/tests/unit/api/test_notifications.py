"""
Unit Tests for Notification Endpoints (admin management and user inbox)
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from siwes_portal.models import Notification, UserNotification, UserRole


async def broadcast(client, headers, **overrides):
    body = {
        'title': 'Placement Week',
        'message': 'Logbooks are due every Friday.',
        'recipient_type': 'ALL',
    }
    body.update(overrides)
    return await client.post('/api/admin/notifications', headers=headers, json=body)


class TestCreateNotification:

    @pytest.mark.asyncio
    async def test_role_fan_out(self, client: AsyncClient, db_session, make_user, admin_headers):
        for _ in range(3):
            await make_user(UserRole.STUDENT)
        await make_user(UserRole.STUDENT, is_active=False)
        await make_user(UserRole.SCHOOL_SUPERVISOR)

        response = await broadcast(client, admin_headers, recipient_type='ROLE', recipient_role='Student')

        assert response.status_code == 201
        data = response.json()
        assert data['recipient_count'] == 3
        notification_id = data['notification']['id']

        detail = (await client.get(f'/api/admin/notifications/{notification_id}', headers=admin_headers)).json()
        assert detail['recipient_count'] == 3
        assert detail['read_count'] == 0

        deliveries = await db_session.scalar(
            select(func.count(UserNotification.id)).where(UserNotification.notification_id == notification_id)
        )
        assert deliveries == 3

    @pytest.mark.asyncio
    async def test_broadcast_reaches_every_active_user(
        self, client: AsyncClient, admin_user, assigned_student, admin_headers
    ):
        response = await broadcast(client, admin_headers)

        # admin, both supervisors and the student
        assert response.json()['recipient_count'] == 4

    @pytest.mark.asyncio
    async def test_individual(self, client: AsyncClient, student_user, admin_headers, student_headers):
        await broadcast(client, admin_headers, recipient_type='INDIVIDUAL', recipient_id=student_user.id)

        inbox = (await client.get('/api/notifications', headers=student_headers)).json()

        assert inbox['total'] == 1
        assert inbox['items'][0]['title'] == 'Placement Week'
        assert inbox['items'][0]['is_system_generated'] is False

    @pytest.mark.asyncio
    async def test_inactive_individual_is_rejected(self, client: AsyncClient, make_user, admin_headers):
        inactive = await make_user(UserRole.STUDENT, is_active=False)

        response = await broadcast(client, admin_headers, recipient_type='INDIVIDUAL', recipient_id=inactive.id)

        assert response.status_code == 400
        assert response.json()['error'] == 'Recipient not found or inactive'

    @pytest.mark.asyncio
    async def test_role_required_for_role_type(self, client: AsyncClient, admin_headers):
        response = await broadcast(client, admin_headers, recipient_type='ROLE')

        assert response.status_code == 400
        assert response.json()['code'] == 'VALIDATION_ERROR'

    @pytest.mark.asyncio
    async def test_admin_only(self, client: AsyncClient, student_headers):
        response = await broadcast(client, student_headers)

        assert response.status_code == 403


class TestManageNotifications:

    @pytest.mark.asyncio
    async def test_list_hides_system_notifications(
        self, client: AsyncClient, assigned_student, industry_headers, admin_headers
    ):
        await broadcast(client, admin_headers, title='Announcement')
        # marking attendance creates a system notification for the student
        await client.post(
            '/api/attendance',
            headers=industry_headers,
            json={'student_id': assigned_student.id, 'date': '2024-03-01', 'present': True},
        )

        data = (await client.get('/api/admin/notifications', headers=admin_headers)).json()

        assert data['total'] == 1
        assert data['items'][0]['title'] == 'Announcement'

    @pytest.mark.asyncio
    async def test_search_and_type_filter(self, client: AsyncClient, admin_user, admin_headers):
        await broadcast(client, admin_headers, title='Server maintenance', type='WARNING')
        await broadcast(client, admin_headers, title='Welcome back')

        by_search = (await client.get(
            '/api/admin/notifications', headers=admin_headers, params={'search': 'maint'}
        )).json()
        by_type = (await client.get(
            '/api/admin/notifications', headers=admin_headers, params={'type': 'INFO'}
        )).json()

        assert [n['title'] for n in by_search['items']] == ['Server maintenance']
        assert [n['title'] for n in by_type['items']] == ['Welcome back']

    @pytest.mark.asyncio
    async def test_update(self, client: AsyncClient, admin_user, admin_headers):
        notification_id = (await broadcast(client, admin_headers)).json()['notification']['id']

        response = await client.patch(
            f'/api/admin/notifications/{notification_id}',
            headers=admin_headers,
            json={'title': '  Updated title  ', 'type': 'SUCCESS'},
        )

        assert response.status_code == 200
        assert response.json()['title'] == 'Updated title'
        assert response.json()['type'] == 'SUCCESS'

    @pytest.mark.asyncio
    @pytest.mark.parametrize('field', ['title', 'message', 'type', 'is_active'])
    async def test_update_rejects_null(self, client: AsyncClient, admin_user, admin_headers, field):
        notification_id = (await broadcast(client, admin_headers)).json()['notification']['id']

        response = await client.patch(
            f'/api/admin/notifications/{notification_id}', headers=admin_headers, json={field: None}
        )

        assert response.status_code == 400
        assert response.json()['code'] == 'VALIDATION_ERROR'

    @pytest.mark.asyncio
    async def test_toggle_hides_from_inbox(self, client: AsyncClient, student_user, admin_headers, student_headers):
        notification_id = (await broadcast(client, admin_headers)).json()['notification']['id']

        toggled = await client.patch(f'/api/admin/notifications/{notification_id}/toggle', headers=admin_headers)
        assert toggled.json()['is_active'] is False

        inbox = (await client.get('/api/notifications', headers=student_headers)).json()
        assert inbox['total'] == 0
        assert inbox['unread_count'] == 0

    @pytest.mark.asyncio
    async def test_delete_removes_deliveries(self, client: AsyncClient, db_session, student_user, admin_headers):
        notification_id = (await broadcast(client, admin_headers)).json()['notification']['id']

        response = await client.delete(f'/api/admin/notifications/{notification_id}', headers=admin_headers)

        assert response.status_code == 200
        remaining = await db_session.scalar(
            select(func.count(UserNotification.id)).where(UserNotification.notification_id == notification_id)
        )
        assert remaining == 0

    @pytest.mark.asyncio
    async def test_system_notifications_are_read_only(
        self, client: AsyncClient, db_session, assigned_student, industry_headers, admin_headers
    ):
        await client.post(
            '/api/attendance',
            headers=industry_headers,
            json={'student_id': assigned_student.id, 'date': '2024-03-01', 'present': True},
        )
        system_id = await db_session.scalar(
            select(Notification.id).where(Notification.is_system_generated.is_(True))
        )

        deleted = await client.delete(f'/api/admin/notifications/{system_id}', headers=admin_headers)
        toggled = await client.patch(f'/api/admin/notifications/{system_id}/toggle', headers=admin_headers)

        assert deleted.status_code == 400
        assert deleted.json()['error'] == 'System-generated notifications cannot be deleted'
        assert toggled.status_code == 400

    @pytest.mark.asyncio
    async def test_stats(self, client: AsyncClient, admin_user, admin_headers):
        await broadcast(client, admin_headers, type='ERROR')
        second = (await broadcast(client, admin_headers, recipient_type='ROLE', recipient_role='Admin')).json()
        await client.patch(f"/api/admin/notifications/{second['notification']['id']}/toggle", headers=admin_headers)

        stats = (await client.get('/api/admin/notifications/stats', headers=admin_headers)).json()

        assert stats['total'] == 2
        assert stats['active'] == 1
        assert stats['by_type']['ERROR'] == 1
        assert stats['by_recipient_type'] == {'ALL': 1, 'ROLE': 1, 'INDIVIDUAL': 0}

    @pytest.mark.asyncio
    async def test_unknown_notification(self, client: AsyncClient, admin_headers):
        response = await client.get('/api/admin/notifications/not-a-uuid', headers=admin_headers)

        assert response.status_code == 404


class TestInbox:

    @pytest.mark.asyncio
    async def test_mark_read_is_idempotent(self, client: AsyncClient, student_user, admin_headers, student_headers):
        notification_id = (await broadcast(client, admin_headers)).json()['notification']['id']
        url = f'/api/notifications/{notification_id}/read'

        first = await client.patch(url, headers=student_headers)
        assert first.json()['updated'] == 1
        read_at = (await client.get('/api/notifications', headers=student_headers)).json()['items'][0]['read_at']

        second = await client.patch(url, headers=student_headers)
        assert second.status_code == 200
        assert second.json()['updated'] == 0

        inbox = (await client.get('/api/notifications', headers=student_headers)).json()
        assert inbox['items'][0]['read'] is True
        assert inbox['items'][0]['read_at'] == read_at
        assert inbox['unread_count'] == 0

        detail = (await client.get(f'/api/admin/notifications/{notification_id}', headers=admin_headers)).json()
        assert detail['read_count'] == 1

    @pytest.mark.asyncio
    async def test_cannot_read_others_notification(
        self, client: AsyncClient, student_user, make_user, admin_headers, auth_headers
    ):
        notification_id = (await broadcast(
            client, admin_headers, recipient_type='INDIVIDUAL', recipient_id=student_user.id
        )).json()['notification']['id']
        someone_else = await make_user(UserRole.STUDENT)

        response = await client.patch(
            f'/api/notifications/{notification_id}/read', headers=auth_headers(someone_else)
        )

        assert response.status_code == 404
        assert response.json()['error'] == 'Notification not found'

    @pytest.mark.asyncio
    async def test_unread_first_and_mark_all(
        self, client: AsyncClient, student_user, admin_headers, student_headers
    ):
        first_id = (await broadcast(client, admin_headers, title='First')).json()['notification']['id']
        await broadcast(client, admin_headers, title='Second')
        await broadcast(client, admin_headers, title='Third')
        await client.patch(f'/api/notifications/{first_id}/read', headers=student_headers)

        unread = (await client.get(
            '/api/notifications', headers=student_headers, params={'unread_only': True}
        )).json()
        assert unread['total'] == 2
        assert 'First' not in [n['title'] for n in unread['items']]

        response = await client.patch('/api/notifications/mark-all-read', headers=student_headers)
        assert response.json()['updated'] == 2

        inbox = (await client.get('/api/notifications', headers=student_headers)).json()
        assert inbox['unread_count'] == 0
        assert inbox['total'] == 3
