"""Seed database with default workflows."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .session import async_session_factory, init_db
from .models import WorkflowModel

logger = logging.getLogger(__name__)


def generate_workflow_id(name: str) -> str:
    """Generate a unique workflow ID."""
    timestamp = int(time.time() * 1000)
    # Include name in hash to ensure uniqueness for same-millisecond calls
    hash_input = f"{timestamp}_{name}"
    hash_suffix = hashlib.sha256(hash_input.encode()).hexdigest()[:8]
    return f"wf_{timestamp}_{hash_suffix}"


DEFAULT_WORKFLOWS = [
    {
        "name": "text_to_text",
        "description": "Wrap the input as a user message, tidy it and return it as text",
        "definition": {
            "steps": {
                "start": {
                    "name": "start",
                    "node_type": "start",
                    "params": {"pipeline_kind": "user_message", "data_kind": "text"},
                    "next": ["normalize"],
                },
                "normalize": {
                    "name": "normalize",
                    "node_type": "text",
                    "params": {"operation": "strip"},
                    "next": ["end"],
                },
                "end": {
                    "name": "end",
                    "node_type": "end",
                    "params": {},
                    "next": [],
                },
            },
            "start_step_name": "start",
            "steps_order": ["start", "normalize", "end"],
        },
    },
    {
        "name": "text_router",
        "description": "Shout input that ends with '!', otherwise whisper it",
        "definition": {
            "steps": {
                "start": {
                    "name": "start",
                    "node_type": "start",
                    "params": {"pipeline_kind": "text", "data_kind": "text"},
                    "next": ["whisper", "shout"],
                    "conditions": {'endswith(text, "!")': "shout"},
                },
                "whisper": {
                    "name": "whisper",
                    "node_type": "text",
                    "params": {"operation": "lower"},
                    "next": ["end"],
                },
                "shout": {
                    "name": "shout",
                    "node_type": "text",
                    "params": {"operation": "upper"},
                    "next": ["end"],
                },
                "end": {
                    "name": "end",
                    "node_type": "end",
                    "params": {},
                    "next": [],
                },
            },
            "start_step_name": "start",
            "steps_order": ["start", "whisper", "shout", "end"],
        },
    },
]


async def seed_default_workflows(session: AsyncSession) -> int:
    """Add the default workflows missing from the store. Returns how many were added."""
    result = await session.execute(select(WorkflowModel))
    existing_names = {w.name for w in result.scalars().all()}

    added = 0
    for workflow_data in DEFAULT_WORKFLOWS:
        if workflow_data["name"] in existing_names:
            logger.debug(f"Skipping default workflow {workflow_data['name']}, already exists")
            continue

        now = datetime.now()
        session.add(
            WorkflowModel(
                id=generate_workflow_id(workflow_data["name"]),
                name=workflow_data["name"],
                description=workflow_data["description"],
                definition={"name": workflow_data["name"], **workflow_data["definition"]},
                created_at=now,
                updated_at=now,
            )
        )
        added += 1

    await session.commit()
    if added:
        logger.info(f"Seeded {added} default workflow(s)")
    return added


async def seed_workflows() -> None:
    """Create tables and seed the default workflows."""
    await init_db()
    async with async_session_factory() as session:
        await seed_default_workflows(session)


def main() -> None:
    """Run the seed script."""
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed_workflows())


if __name__ == "__main__":
    main()
