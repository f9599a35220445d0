"""
Database Seed Script
Creates a demo project for local development
"""

import asyncio
import sys

# Add parent directory to path
sys.path.insert(0, str(__file__).rsplit("/", 2)[0])

from sqlalchemy import select

from app.models import Project, Brand, Prompt, IntentType
from app.utils import get_db_context, init_db, close_db

DEMO_PROJECT_NAME = "Acme CRM Visibility"

COMPETITORS = ["HubSpot", "Salesforce", "Pipedrive", "Zoho CRM"]

PROMPTS = [
    ("What is the best CRM for small businesses?", IntentType.RECOMMENDATION),
    ("Best CRM software for startups in 2025", IntentType.COMMERCIAL),
    ("HubSpot vs Salesforce vs Acme CRM for a 10 person sales team", IntentType.COMPARISON),
    ("What does a CRM do and do I need one?", IntentType.INFORMATIONAL),
    ("Which CRM has the easiest pipeline management?", IntentType.RECOMMENDATION),
    ("Acme CRM pricing", IntentType.NAVIGATIONAL),
]


def build_demo_project() -> Project:
    """Demo project: one user brand, four competitors, a handful of prompts"""
    project = Project(
        name=DEMO_PROJECT_NAME,
        category="CRM software",
        description="Track how AI search answers talk about Acme CRM",
    )
    project.brands = [
        Brand(name="Acme CRM", is_user_brand=True, website_url="https://acme-crm.example.com"),
    ] + [Brand(name=name) for name in COMPETITORS]
    project.prompts = [
        Prompt(text=text, intent_type=intent) for text, intent in PROMPTS
    ]
    return project


async def seed():
    print("Creating tables...")
    await init_db()

    async with get_db_context() as db:
        # Check if data already exists
        result = await db.execute(select(Project).where(Project.name == DEMO_PROJECT_NAME))
        existing = result.scalar_one_or_none()
        if existing:
            print(f"Demo project already exists ({existing.id}). Skipping seed.")
            return

        project = build_demo_project()
        db.add(project)
        await db.flush()

        print(f"  Created project: {project.name} ({project.id})")
        print(f"  Created {len(project.brands)} brands")
        print(f"  Created {len(project.prompts)} prompts")

    print("\nSeed data created successfully!")
    print(f"\n  Start a run: POST /api/v1/analysis/{project.id}/run")


def main():
    """Main entry point"""
    async def _run():
        try:
            await seed()
        finally:
            await close_db()

    asyncio.run(_run())


if __name__ == "__main__":
    main()
