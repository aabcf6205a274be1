import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from faceoff.api.dependencies import get_db
from faceoff.core.database import init_db, make_engine
from faceoff.main import app
from faceoff.models import AdminUser, Competitor, Round
from faceoff.schemas.campaign_schemas import CampaignCreate, CompetitorCreate
from faceoff.schemas.vote_schemas import VoterIdentity
from faceoff.services import auth_service, campaign_service


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def other_session(engine):
    """A second session on the same database, standing in for a concurrent request."""
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def campaign_factory(db):
    """Creates a campaign with n competitors seeded 1..n, optionally activated and bracketed."""
    def _create(n=8, slug="spring-faceoff", active=True, bracket=True):
        campaign_in = CampaignCreate(
            name=f"Faceoff {slug}",
            slug=slug,
            competitors=[CompetitorCreate(name=f"Feature {i}") for i in range(1, n + 1)],
        )
        campaign = campaign_service.create_campaign(db, campaign_in)
        if active:
            campaign_service.set_campaign_active(db, campaign.id, True)
        if bracket:
            campaign_service.initialize_bracket(db, campaign.id)
        return campaign
    return _create


@pytest.fixture
def rounds_of(db):
    def _rounds(campaign):
        return db.query(Round).filter(Round.campaign_id == campaign.id).order_by(Round.round_number).all()
    return _rounds


@pytest.fixture
def by_seed(db):
    def _by_seed(campaign):
        competitors = db.query(Competitor).filter(Competitor.campaign_id == campaign.id).all()
        return {c.seed: c for c in competitors}
    return _by_seed


@pytest.fixture
def voter():
    def _voter(n=1, email=None):
        return VoterIdentity(name=f"Voter {n}", email=email or f"voter{n}@example.com")
    return _voter


@pytest.fixture
def admin_user(db):
    return auth_service.create_admin_user(db, "admin", "s3cret-pass")


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    def override_get_current_admin():
        return AdminUser(id=1, username="admin", password_hash="x", is_active=True)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[auth_service.get_current_admin] = override_get_current_admin
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
