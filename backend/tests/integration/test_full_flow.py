"""
Full Flow Integration Tests
Hive registration through member onboarding, events and volunteering, all over HTTP
"""
import pytest
from httpx import AsyncClient

ASHA = {
    'name': 'Asha',
    'email': 'a@x.com',
    'skills': ['Python'],
    'interestedEvents': ['Hackathons'],
    'heardAbout': 'Friend/Peer',
    'mainGoal': 'learn',
    'termsAccepted': True,
}

HACK_NIGHT = {
    'eventName': 'Hack Night',
    'eventType': 'hackathon',
    'campus': 'Main Campus',
    'startDate': '2099-01-15',
    'startTime': '18:00',
    'duration': '4 hours',
    'maxParticipants': '120',
    'registrationFees': '',
}


async def login(client: AsyncClient, credentials: dict) -> dict:
    response = await client.post('/api/v1/auth/login', json={
        'email': credentials['email'],
        'password': credentials['password'],
    })
    assert response.status_code == 200, response.text
    return {'Authorization': f"Bearer {response.json()['access_token']}"}


class TestOnboardingFlow:
    """Hive approval, member application and member login"""

    @pytest.mark.asyncio
    async def test_hive_to_member_flow(self, client: AsyncClient, admin_headers, hive_payload):
        # 1. Register and approve a hive
        response = await client.post('/api/v1/hives/applications', json=hive_payload)
        assert response.status_code == 201
        application_id = response.json()['id']

        response = await client.post(
            f'/api/v1/hives/applications/{application_id}/approve',
            json={'note': 'Welcome aboard'},
            headers=admin_headers,
        )
        assert response.status_code == 200
        hive = response.json()
        assert hive['credentials']['email'].endswith('@hives.hivecommunity.com')
        hive_id = hive['approved_id']

        # 2. The hive is now selectable and the application is gone
        response = await client.get('/api/v1/hives/approved')
        assert [(h['id'], h['memberCount']) for h in response.json()] == [(hive_id, 0)]

        response = await client.get('/api/v1/hives?status=pending', headers=admin_headers)
        assert response.json() == []

        # 3. Asha applies to the hive
        response = await client.post('/api/v1/members/applications', json={
            **ASHA,
            'selectedHive': {'id': hive_id, 'hiveName': hive_payload['hiveName']},
        })
        assert response.status_code == 201
        member_application_id = response.json()['id']

        # 4. The leader sees and approves her application
        leader = await login(client, hive['credentials'])
        response = await client.get('/api/v1/members/applications', headers=leader)
        assert [a['id'] for a in response.json()['applications']] == [member_application_id]
        assert response.json()['applications'][0]['selectedHiveName'] == 'Alpha'

        response = await client.post(
            f'/api/v1/members/applications/{member_application_id}/approve', headers=leader
        )
        assert response.status_code == 200
        member = response.json()
        assert len(member['credentials']['password']) == 10
        assert member['credentials']['email'].endswith('@members.hivecommunity.com')

        # 5. A second decision loses
        response = await client.post(
            f'/api/v1/members/applications/{member_application_id}/reject', headers=leader
        )
        assert response.status_code == 404

        # 6. Asha is an approved member and can log in
        response = await client.get('/api/v1/members/approved', headers=leader)
        assert [m['name'] for m in response.json()] == ['Asha']

        response = await client.get('/api/v1/members/stats', headers=leader)
        assert response.json()['approved'] == 1
        assert response.json()['pending'] == 0

        member_headers = await login(client, member['credentials'])
        response = await client.get('/api/v1/auth/session', headers=member_headers)
        assert response.json()['user_type'] == 'member'

        response = await client.get('/api/v1/hives/approved')
        assert response.json()[0]['memberCount'] == 1

    @pytest.mark.asyncio
    async def test_leader_rejects_member(self, client: AsyncClient, approved_hive, hive_headers, member_payload_factory):
        response = await client.post(
            '/api/v1/members/applications', json=member_payload_factory(approved_hive['id'])
        )
        application_id = response.json()['id']

        response = await client.post(
            f'/api/v1/members/applications/{application_id}/reject',
            json={'note': 'Not a fit this term'},
            headers=hive_headers,
        )
        assert response.status_code == 200

        response = await client.get('/api/v1/members/rejected', headers=hive_headers)
        rejected = response.json()
        assert [r['originalApplicationId'] for r in rejected] == [application_id]
        assert rejected[0]['leaderNote'] == 'Not a fit this term'


class TestEventFlow:
    """Leader creates, admin reviews, members see"""

    @pytest.mark.asyncio
    async def test_event_lifecycle(self, client: AsyncClient, admin_headers, hive_headers, member_headers):
        response = await client.post('/api/v1/events', json=HACK_NIGHT, headers=hive_headers)
        assert response.status_code == 201
        event = response.json()
        assert event['status'] == 'draft'
        assert event['approvalStatus'] == 'pending'
        assert event['maxParticipants'] == 120
        assert event['registrationFees'] == 0
        assert event['hiveName'] == 'Alpha'

        response = await client.patch(
            f"/api/v1/events/{event['id']}/status", json={'status': 'active'}, headers=hive_headers
        )
        assert response.json()['status'] == 'active'

        response = await client.patch(
            f"/api/v1/events/{event['id']}",
            json={'venue': 'Auditorium', 'approvalStatus': 'approved'},
            headers=hive_headers,
        )
        assert response.json()['venue'] == 'Auditorium'
        assert response.json()['approvalStatus'] == 'pending'

        response = await client.get('/api/v1/events?approvalStatus=pending', headers=admin_headers)
        assert [e['id'] for e in response.json()] == [event['id']]

        response = await client.post(
            f"/api/v1/events/{event['id']}/review",
            json={'approvalStatus': 'approved', 'comments': 'Looks great'},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()['approvalStatus'] == 'approved'
        assert response.json()['status'] == 'active'

        response = await client.post('/api/v1/events/admin', json=HACK_NIGHT, headers=admin_headers)
        assert response.json()['hiveName'] == 'admin'

        response = await client.get('/api/v1/events/member?upcoming=true', headers=member_headers)
        assert [e['id'] for e in response.json()] == [event['id']]

        response = await client.get('/api/v1/events/member', headers=member_headers)
        assert len(response.json()) == 2

        response = await client.get('/api/v1/events/mine', headers=hive_headers)
        assert [e['id'] for e in response.json()] == [event['id']]

        response = await client.get('/api/v1/events/stats', headers=hive_headers)
        stats = response.json()
        assert stats['total'] == 1
        assert stats['active'] == 1
        assert stats['approved'] == 1
        assert stats['upcoming'] == 1

        response = await client.get('/api/v1/events/upcoming')
        assert len(response.json()) == 2

        response = await client.delete(f"/api/v1/events/{event['id']}", headers=hive_headers)
        assert response.status_code == 204

        response = await client.get('/api/v1/events/mine', headers=hive_headers)
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_other_hive_cannot_edit(self, client: AsyncClient, admin_headers, hive_headers, hive_payload_factory):
        response = await client.post('/api/v1/events', json=HACK_NIGHT, headers=hive_headers)
        event_id = response.json()['id']

        response = await client.post('/api/v1/hives/applications', json=hive_payload_factory(hiveName='Beta'))
        response = await client.post(
            f"/api/v1/hives/applications/{response.json()['id']}/approve", headers=admin_headers
        )
        beta = await login(client, response.json()['credentials'])

        response = await client.patch(f'/api/v1/events/{event_id}/status', json={'status': 'cancelled'}, headers=beta)
        assert response.status_code == 403


class TestVolunteerFlow:
    """Admin publishes, members are notified, apply and get reviewed"""

    @pytest.mark.asyncio
    async def test_volunteer_flow(self, client: AsyncClient, admin_headers, member_headers, approved_member):
        response = await client.post(
            '/api/v1/volunteers/opportunities',
            json={'title': 'Registration Desk', 'maxVolunteers': 1},
            headers=admin_headers,
        )
        assert response.status_code == 201
        opportunity = response.json()

        # Notified as an approved member
        response = await client.get('/api/v1/volunteers/notifications', headers=member_headers)
        notifications = response.json()
        assert len(notifications) == 1
        assert notifications[0]['opportunityId'] == opportunity['id']
        assert notifications[0]['memberEmail'] == approved_member['email'].lower()

        response = await client.post(
            f"/api/v1/volunteers/notifications/{notifications[0]['id']}/read", headers=member_headers
        )
        assert response.json() == {'success': True}
        response = await client.get('/api/v1/volunteers/notifications', headers=member_headers)
        assert response.json() == []

        # Apply once
        response = await client.post(
            f"/api/v1/volunteers/opportunities/{opportunity['id']}/apply",
            json={'skills': ['Crowd management'], 'availability': 'Weekends'},
            headers=member_headers,
        )
        assert response.status_code == 201
        application_id = response.json()['id']

        response = await client.post(
            f"/api/v1/volunteers/opportunities/{opportunity['id']}/apply", json={}, headers=member_headers
        )
        assert response.status_code == 409
        assert response.json()['code'] == 'DUPLICATE_APPLICATION'

        # Admin review
        response = await client.get(
            f"/api/v1/volunteers/applications?volunteerId={opportunity['id']}", headers=admin_headers
        )
        assert [a['id'] for a in response.json()] == [application_id]
        assert response.json()[0]['memberName'] == approved_member['name']
        assert response.json()[0]['hiveName'] == 'Alpha'

        response = await client.post(
            f'/api/v1/volunteers/applications/{application_id}/approve',
            json={'note': 'See you there'},
            headers=admin_headers,
        )
        assert response.json() == {'id': application_id, 'status': 'approved'}

        response = await client.post(
            f'/api/v1/volunteers/applications/{application_id}/reject', headers=admin_headers
        )
        assert response.status_code == 404

        response = await client.get('/api/v1/volunteers/applications/mine', headers=member_headers)
        mine = response.json()
        assert mine[0]['status'] == 'approved'
        assert mine[0]['adminNote'] == 'See you there'

        response = await client.get('/api/v1/volunteers/opportunities')
        assert response.json()[0]['spotsRemaining'] == 0

        response = await client.get('/api/v1/volunteers/stats', headers=admin_headers)
        assert response.json()['approvedApplications'] == 1

        # Closing hides the opportunity
        response = await client.patch(
            f"/api/v1/volunteers/opportunities/{opportunity['id']}", json={'isActive': False}, headers=admin_headers
        )
        assert response.json()['isActive'] is False
        response = await client.get('/api/v1/volunteers/opportunities')
        assert response.json() == []
