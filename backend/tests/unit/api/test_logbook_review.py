"""
Unit Tests for Logbook Review Endpoints
"""
from datetime import date, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient

from siwes_portal.models import LogbookEntry, UserRole


@pytest_asyncio.fixture
async def submitted_entries(db_session, assigned_student):
    """Three submitted entries and one draft, submitted a day apart"""
    base = datetime(2024, 3, 10, 9, 0)
    entries = []
    for day in range(1, 4):
        entry = LogbookEntry(
            student_id=assigned_student.id,
            date=date(2024, 3, day),
            description=f'Day {day} of the placement',
            submitted=True,
            submitted_at=base + timedelta(days=day),
        )
        db_session.add(entry)
        entries.append(entry)
    db_session.add(LogbookEntry(
        student_id=assigned_student.id,
        date=date(2024, 3, 4),
        description='Still drafting this one',
        submitted=False,
    ))
    await db_session.commit()
    return entries


class TestReviewEntry:

    @pytest.mark.asyncio
    async def test_approve(self, client: AsyncClient, submitted_entries, industry_headers, industry_supervisor):
        entry = submitted_entries[0]

        response = await client.post(
            f'/api/logbook/review/{entry.id}',
            headers=industry_headers,
            json={'review_status': 'APPROVED', 'comments': '  Good work  '},
        )

        assert response.status_code == 200
        data = response.json()
        assert data['message'] == 'Entry approved'
        assert data['entry']['review_status'] == 'APPROVED'
        assert data['entry']['review_comments'] == 'Good work'
        assert data['entry']['reviewed_by'] == industry_supervisor.id
        assert data['entry']['reviewed_at'] is not None

    @pytest.mark.asyncio
    async def test_review_notifies_student(
        self, client: AsyncClient, submitted_entries, industry_headers, assigned_student, auth_headers
    ):
        await client.post(
            f'/api/logbook/review/{submitted_entries[0].id}',
            headers=industry_headers,
            json={'review_status': 'REJECTED', 'comments': 'Add more detail'},
        )

        inbox = (await client.get('/api/notifications', headers=auth_headers(assigned_student))).json()

        assert inbox['items'][0]['title'] == 'Logbook Entry Rejected'
        assert 'Add more detail' in inbox['items'][0]['message']
        assert inbox['items'][0]['type'] == 'WARNING'

    @pytest.mark.asyncio
    async def test_entry_is_reviewed_once(self, client: AsyncClient, submitted_entries, industry_headers):
        url = f'/api/logbook/review/{submitted_entries[0].id}'
        await client.post(url, headers=industry_headers, json={'review_status': 'APPROVED'})

        response = await client.post(url, headers=industry_headers, json={'review_status': 'REJECTED'})

        assert response.status_code == 409
        assert response.json()['code'] == 'ENTRY_REVIEWED'

    @pytest.mark.asyncio
    async def test_draft_cannot_be_reviewed(self, client: AsyncClient, db_session, assigned_student, industry_headers):
        draft = LogbookEntry(
            student_id=assigned_student.id, date=date(2024, 4, 1),
            description='Not yet submitted', submitted=False,
        )
        db_session.add(draft)
        await db_session.commit()

        response = await client.post(
            f'/api/logbook/review/{draft.id}', headers=industry_headers, json={'review_status': 'APPROVED'}
        )

        assert response.status_code == 409
        assert response.json()['code'] == 'ENTRY_NOT_SUBMITTED'

    @pytest.mark.asyncio
    async def test_other_supervisor_cannot_review(
        self, client: AsyncClient, submitted_entries, make_user, auth_headers
    ):
        stranger = await make_user(UserRole.INDUSTRY_SUPERVISOR)

        response = await client.post(
            f'/api/logbook/review/{submitted_entries[0].id}',
            headers=auth_headers(stranger),
            json={'review_status': 'APPROVED'},
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_entry(self, client: AsyncClient, industry_headers):
        response = await client.post(
            '/api/logbook/review/not-a-uuid', headers=industry_headers, json={'review_status': 'APPROVED'}
        )

        assert response.status_code == 404
        assert response.json()['error'] == 'Logbook entry not found'

    @pytest.mark.asyncio
    async def test_invalid_status_is_400(self, client: AsyncClient, submitted_entries, industry_headers):
        response = await client.post(
            f'/api/logbook/review/{submitted_entries[0].id}',
            headers=industry_headers,
            json={'review_status': 'MAYBE'},
        )

        assert response.status_code == 400
        assert response.json()['code'] == 'VALIDATION_ERROR'

    @pytest.mark.asyncio
    async def test_school_supervisor_cannot_review(self, client: AsyncClient, submitted_entries, school_headers):
        response = await client.post(
            f'/api/logbook/review/{submitted_entries[0].id}',
            headers=school_headers,
            json={'review_status': 'APPROVED'},
        )

        assert response.status_code == 403


class TestReviewQueues:

    @pytest.mark.asyncio
    async def test_pending_oldest_submission_first(self, client: AsyncClient, submitted_entries, industry_headers):
        response = await client.get('/api/logbook/pending-reviews', headers=industry_headers)

        data = response.json()
        assert data['total'] == 3
        assert [e['date'] for e in data['entries']] == ['2024-03-01', '2024-03-02', '2024-03-03']
        assert data['entries'][0]['matric_number'] == 'CSC/2021/002'

    @pytest.mark.asyncio
    async def test_pending_pagination(self, client: AsyncClient, submitted_entries, industry_headers):
        response = await client.get(
            '/api/logbook/pending-reviews', headers=industry_headers, params={'limit': 2, 'offset': 2}
        )

        data = response.json()
        assert data['total'] == 3
        assert len(data['entries']) == 1
        assert data['offset'] == 2

    @pytest.mark.asyncio
    async def test_reviewed_filter_and_stats(self, client: AsyncClient, submitted_entries, industry_headers):
        first, second, _ = submitted_entries
        await client.post(f'/api/logbook/review/{first.id}', headers=industry_headers,
                          json={'review_status': 'APPROVED'})
        await client.post(f'/api/logbook/review/{second.id}', headers=industry_headers,
                          json={'review_status': 'REJECTED'})

        approved = (await client.get(
            '/api/logbook/reviewed', headers=industry_headers, params={'status': 'APPROVED'}
        )).json()
        assert approved['total'] == 1
        assert approved['entries'][0]['id'] == first.id

        pending = (await client.get('/api/logbook/pending-reviews', headers=industry_headers)).json()
        assert pending['total'] == 1

        stats = (await client.get('/api/logbook/review/stats', headers=industry_headers)).json()
        assert stats == {
            'total_submitted': 3,
            'pending_reviews': 1,
            'approved': 1,
            'rejected': 1,
            'total_reviewed': 2,
            'review_progress': 66.67,
        }

    @pytest.mark.asyncio
    async def test_stats_without_entries(self, client: AsyncClient, industry_headers):
        stats = (await client.get('/api/logbook/review/stats', headers=industry_headers)).json()

        assert stats['total_submitted'] == 0
        assert stats['review_progress'] == 0.0
