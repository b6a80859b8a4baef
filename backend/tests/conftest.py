"""
Hive Community - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator, Dict

import pytest
from httpx import AsyncClient, ASGITransport
from faker import Faker

# Set testing environment before any settings are loaded
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DEBUG'] = 'false'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['ADMIN_API_TOKEN'] = 'test-admin-token'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['SESSION_BACKEND'] = 'memory'

from hivecommunity.main import app
from hivecommunity.core.database import build_engine, init_db
from hivecommunity.services.application_lifecycle import ApplicationKind, ApplicationLifecycle
from hivecommunity.services.document_store import DocumentStore

fake = Faker()

ADMIN_TOKEN = 'test-admin-token'


@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite database file per test"""
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    await init_db(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def store(engine) -> AsyncGenerator[DocumentStore, None]:
    document_store = DocumentStore.from_engine(engine)
    yield document_store
    document_store.close()


@pytest.fixture
def lifecycle(store: DocumentStore) -> ApplicationLifecycle:
    return ApplicationLifecycle(store)


@pytest.fixture
async def client(store: DocumentStore) -> AsyncGenerator[AsyncClient, None]:
    """API client bound to the per-test store"""
    app.state.store = store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac
    app.state.store = None


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {'X-Admin-Token': ADMIN_TOKEN}


def make_hive_payload(**overrides) -> dict:
    payload = {
        'name': fake.name(),
        'email': fake.email(),
        'mobile': fake.msisdn()[:10],
        'course': 'B.Tech',
        'branch': 'Computer Science',
        'year': '3',
        'codingLanguages': ['Python', 'JavaScript'],
        'campusName': fake.company(),
        'campusLocation': fake.city(),
        'hiveName': 'Alpha',
        'expectedAudience': '50-100',
        'facultyAdvisorName': fake.name(),
        'facultyAdvisorContact': fake.msisdn()[:10],
        'leadershipExperience': 'Led the coding club for a year',
        'longTermVision': 'A self-sustaining student developer community',
        'termsAccepted': True,
    }
    payload.update(overrides)
    return payload


def make_member_payload(hive_id: str, hive_name: str = 'Alpha', **overrides) -> dict:
    payload = {
        'name': fake.name(),
        'email': fake.email(),
        'skills': ['Python'],
        'interestedEvents': ['Hackathons'],
        'selectedHive': {'id': hive_id, 'hiveName': hive_name},
        'heardAbout': 'Friend/Peer',
        'mainGoal': 'learn',
        'termsAccepted': True,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def hive_payload() -> dict:
    return make_hive_payload()


@pytest.fixture
def hive_payload_factory():
    return make_hive_payload


@pytest.fixture
def member_payload_factory():
    return make_member_payload


@pytest.fixture
async def approved_hive(lifecycle: ApplicationLifecycle, hive_payload: dict) -> dict:
    """An approved hive named Alpha with its issued credentials"""
    application_id = await lifecycle.submit(ApplicationKind.HIVE, hive_payload)
    result = await lifecycle.approve(ApplicationKind.HIVE, application_id, 'admin')
    return {
        'id': result.approved_id,
        'original_id': application_id,
        'hiveName': hive_payload['hiveName'],
        'creatorName': hive_payload['name'],
        'credentials': result.credentials,
    }


@pytest.fixture
async def approved_member(lifecycle: ApplicationLifecycle, approved_hive: dict) -> dict:
    """An approved member of the Alpha hive with credentials"""
    payload = make_member_payload(approved_hive['id'])
    application_id = await lifecycle.submit(ApplicationKind.MEMBER, payload)
    result = await lifecycle.approve(ApplicationKind.MEMBER, application_id, approved_hive['id'])
    return {
        'id': result.approved_id,
        'original_id': application_id,
        'name': payload['name'],
        'email': payload['email'],
        'credentials': result.credentials,
    }


async def login(client: AsyncClient, credentials) -> Dict[str, str]:
    """Bearer headers for issued credentials"""
    response = await client.post('/api/v1/auth/login', json={
        'email': credentials.email,
        'password': credentials.password,
    })
    assert response.status_code == 200, response.text
    return {'Authorization': f"Bearer {response.json()['access_token']}"}


@pytest.fixture
async def hive_headers(client: AsyncClient, approved_hive: dict) -> Dict[str, str]:
    return await login(client, approved_hive['credentials'])


@pytest.fixture
async def member_headers(client: AsyncClient, approved_member: dict) -> Dict[str, str]:
    return await login(client, approved_member['credentials'])
