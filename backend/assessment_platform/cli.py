"""CLI commands for database management and workflow inspection."""
import asyncio
import sys
import uuid

import click
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from assessment_platform.core.database import async_session_maker, close_db, engine, init_db
from assessment_platform.core.exceptions import ApplicationError
from assessment_platform.core.logging import configure_logging
from assessment_platform.models.enums import LoggableKind
from assessment_platform.models.organization import SUPER_ADMIN_ROLE, User

DEMO_STANDARD = {
    "code": "DEMO-ISMS",
    "name": "Demo Information Security Standard",
    "version": "1.0",
    "sections": [
        ("A.5", "Organizational controls", [
            ("A.5.1", "Policies for information security"),
            ("A.5.2", "Information security roles and responsibilities"),
        ]),
        ("A.8", "Technological controls", [
            ("A.8.1", "User endpoint devices"),
        ]),
    ],
}

CLI_ACTOR = User(id="cli", name="Command line", roles=[SUPER_ADMIN_ROLE])


@click.group()
def cli():
    """Database management and workflow inspection commands."""
    configure_logging()


@cli.command(name="init-db")
def init_database():
    """Create all database tables."""

    async def _create():
        try:
            await init_db()
            click.echo("✓ All tables created successfully")
        except SQLAlchemyError as e:
            click.echo(f"✗ Error creating tables: {e}")
            sys.exit(1)
        finally:
            await close_db()

    asyncio.run(_create())


@cli.command(name="seed-demo")
@click.option("--reset", is_flag=True, help="Drop and recreate all tables first (destroys data)")
def seed_demo(reset: bool):
    """Create a demo organization, standard and draft assessment."""
    if reset:
        click.confirm("This will DELETE ALL DATA and reset the database. Proceed?", abort=True)

    async def _seed():
        from assessment_platform.models import (
            Base,
            Organization,
            Standard,
            StandardRequirement,
            StandardSection,
        )
        from assessment_platform.repositories.standard import StandardRepository
        from assessment_platform.schemas.assessment import CreateAssessmentRequest
        from assessment_platform.services.assessment_service import AssessmentService

        try:
            async with engine.begin() as conn:
                if reset:
                    await conn.run_sync(Base.metadata.drop_all)
                await conn.run_sync(Base.metadata.create_all)

            async with async_session_maker() as db:
                # Reuse the demo catalog when seeding again without --reset
                organization = await db.scalar(select(Organization).where(Organization.code == "DEMO"))
                if organization is None:
                    organization = Organization(code="DEMO", name="Demo Organization")
                    db.add(organization)

                standard = await StandardRepository(db).get_by_code(DEMO_STANDARD["code"])
                if standard is None:
                    standard = Standard(
                        code=DEMO_STANDARD["code"],
                        name=DEMO_STANDARD["name"],
                        version=DEMO_STANDARD["version"],
                    )
                    for section_index, (code, title, requirements) in enumerate(DEMO_STANDARD["sections"]):
                        section = StandardSection(code=code, title=title, order_index=section_index)
                        section.requirements = [
                            StandardRequirement(code=req_code, title=req_title, order_index=index)
                            for index, (req_code, req_title) in enumerate(requirements)
                        ]
                        standard.sections.append(section)
                    db.add(standard)
                await db.commit()

                assessment = await AssessmentService(db).create_assessment(
                    CreateAssessmentRequest(
                        organization_id=organization.id,
                        standard_id=standard.id,
                        name="Demo assessment",
                        period_value="2026",
                    ),
                    CLI_ACTOR,
                )

            click.echo(f"✓ Organization: {organization.id}")
            click.echo(f"✓ Standard:     {standard.id}")
            click.echo(f"✓ Assessment:   {assessment.id} ({assessment.status})")
        except (SQLAlchemyError, ApplicationError) as e:
            click.echo(f"✗ Error seeding demo data: {e}")
            sys.exit(1)
        finally:
            await close_db()

    asyncio.run(_seed())


@cli.command()
@click.argument("kind", type=click.Choice(LoggableKind.values()))
@click.argument("entity_id", type=click.UUID)
@click.option("--limit", default=20, help="Number of entries to show")
def history(kind: str, entity_id: uuid.UUID, limit: int):
    """Show the workflow history of an assessment or a response."""

    async def _show_history():
        from assessment_platform.services.assessment_service import AssessmentService

        try:
            async with async_session_maker() as db:
                entries, total = await AssessmentService(db).get_workflow_log(
                    kind, entity_id, limit=limit
                )
        finally:
            await close_db()

        if not entries:
            click.echo(f"No workflow history found for {kind} {entity_id}")
            return

        click.echo(f"📜 Workflow history of {kind} {entity_id} ({len(entries)} of {total}):\n")
        for entry in entries:
            click.echo(
                f"{entry.created_at.strftime('%Y-%m-%d %H:%M:%S')}  "
                f"{entry.from_status or '∅'} → {entry.to_status}  by {entry.user_id or 'system'}"
            )
            if entry.note:
                click.echo(f"   Note: {entry.note}")

    asyncio.run(_show_history())


if __name__ == "__main__":
    cli()
