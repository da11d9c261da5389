"""Test configuration and fixtures."""

import os
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, List

import pytest
from sqlalchemy import event, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from assessment_platform.models import (
    Assessment,
    AssessmentResponse,
    Base,
    Organization,
    Standard,
    StandardRequirement,
    StandardSection,
)
from assessment_platform.models.organization import (
    ORGANIZATION_ADMIN_ROLE,
    ORGANIZATION_MEMBER_ROLE,
    SUPER_ADMIN_ROLE,
    User,
)
from assessment_platform.schemas.assessment import CreateAssessmentRequest
from assessment_platform.services.assessment_service import AssessmentService


@pytest.fixture
async def async_engine(tmp_path):
    """Create async test database engine."""
    # A file database so several sessions can see each other's commits
    test_database_url = os.environ.get(
        "TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    )

    engine = create_async_engine(
        test_database_url,
        poolclass=NullPool,
        echo=False,
    )

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop tables after tests
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker:
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# ============================================================================
# CATALOG AND TENANTS
# ============================================================================


@dataclass
class Catalog:
    organization_id: uuid.UUID
    other_organization_id: uuid.UUID
    standard_id: uuid.UUID
    requirement_ids: List[uuid.UUID]
    empty_standard_id: uuid.UUID


@pytest.fixture
async def catalog(db_session) -> Catalog:
    """Two organizations, a three-requirement standard and an empty one."""
    organization = Organization(code="ACME", name="Acme d.o.o.")
    other_organization = Organization(code="OTHER", name="Other Corp")

    standard = Standard(code="ISO27001", name="ISO/IEC 27001", version="2022")
    governance = StandardSection(code="A.5", title="Organizational controls", order_index=0)
    governance.requirements = [
        StandardRequirement(code="A.5.1", title="Policies for information security", order_index=0),
        StandardRequirement(code="A.5.2", title="Roles and responsibilities", order_index=1),
    ]
    technology = StandardSection(code="A.8", title="Technological controls", order_index=1)
    technology.requirements = [
        StandardRequirement(code="A.8.1", title="User endpoint devices", order_index=0),
    ]
    standard.sections = [governance, technology]

    empty_standard = Standard(code="EMPTY", name="Standard without requirements")

    db_session.add_all([organization, other_organization, standard, empty_standard])
    await db_session.commit()

    requirement_ids = [req.id for section in (governance, technology) for req in section.requirements]
    return Catalog(
        organization_id=organization.id,
        other_organization_id=other_organization.id,
        standard_id=standard.id,
        requirement_ids=requirement_ids,
        empty_standard_id=empty_standard.id,
    )


# ============================================================================
# PRINCIPALS
# ============================================================================


@pytest.fixture
def system_admin() -> User:
    return User(id="sysadmin-1", name="System Admin", roles=[SUPER_ADMIN_ROLE])


@pytest.fixture
def org_admin(catalog) -> User:
    return User(
        id="orgadmin-1",
        name="Org Admin",
        roles=[ORGANIZATION_ADMIN_ROLE],
        organization_id=str(catalog.organization_id),
    )


@pytest.fixture
def org_member(catalog) -> User:
    return User(
        id="member-1",
        name="Org Member",
        roles=[ORGANIZATION_MEMBER_ROLE],
        organization_id=str(catalog.organization_id),
    )


@pytest.fixture
def outside_admin(catalog) -> User:
    """Organization administrator of a different tenant."""
    return User(
        id="orgadmin-2",
        name="Other Admin",
        roles=[ORGANIZATION_ADMIN_ROLE],
        organization_id=str(catalog.other_organization_id),
    )


# ============================================================================
# ASSESSMENT HELPERS
# ============================================================================


@dataclass
class SeededAssessment:
    id: uuid.UUID
    response_ids: List[uuid.UUID]


@pytest.fixture
def make_assessment(db_session, catalog, system_admin):
    """Create an assessment through the service and optionally force its statuses."""

    async def _make(assessment_status=None, response_status=None, standard_id=None) -> SeededAssessment:
        assessment = await AssessmentService(db_session).create_assessment(
            CreateAssessmentRequest(
                organization_id=catalog.organization_id,
                standard_id=standard_id or catalog.standard_id,
                name="Q4 security review",
                period_value="2026-Q4",
            ),
            system_admin,
        )
        assessment_id = assessment.id

        if assessment_status is not None:
            await db_session.execute(
                update(Assessment)
                .where(Assessment.id == assessment_id)
                .values(status=assessment_status, version=Assessment.version + 1)
            )
        if response_status is not None:
            await db_session.execute(
                update(AssessmentResponse)
                .where(AssessmentResponse.assessment_id == assessment_id)
                .values(status=response_status, version=AssessmentResponse.version + 1)
            )
        await db_session.commit()

        result = await db_session.execute(
            select(AssessmentResponse.id)
            .where(AssessmentResponse.assessment_id == assessment_id)
            .order_by(AssessmentResponse.created_at, AssessmentResponse.id)
        )
        return SeededAssessment(id=assessment_id, response_ids=list(result.scalars().all()))

    return _make


async def assessment_status(db: AsyncSession, assessment_id: uuid.UUID) -> str:
    return await db.scalar(select(Assessment.status).where(Assessment.id == assessment_id))


async def response_statuses(db: AsyncSession, assessment_id: uuid.UUID) -> List[str]:
    result = await db.execute(
        select(AssessmentResponse.status)
        .where(AssessmentResponse.assessment_id == assessment_id)
        .order_by(AssessmentResponse.created_at, AssessmentResponse.id)
    )
    return list(result.scalars().all())


async def set_response_status(db: AsyncSession, response_id: uuid.UUID, status: str) -> None:
    await db.execute(
        update(AssessmentResponse)
        .where(AssessmentResponse.id == response_id)
        .values(status=status, version=AssessmentResponse.version + 1)
    )
    await db.commit()
