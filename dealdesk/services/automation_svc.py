"""Automation trigger service - runs internal workflows after a webhook mutation.

Runs as a fire-and-forget background task with its own session, after the
webhook transaction has committed. Outcomes are recorded only as
WORKFLOW_EXECUTED / WORKFLOW_FAILED activities; nothing is raised.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..automation.actions import execute_action
from ..automation.context import AutomationContext
from ..automation.evaluator import evaluate_conditions
from ..models.activity import WORKFLOW_EXECUTED, WORKFLOW_FAILED
from ..models.automation import AutomationWorkflow
from . import activity_svc, contact_svc

logger = logging.getLogger(__name__)


async def list_workflows_for_event(
    db: AsyncSession, user_id: uuid.UUID, event_name: str
) -> list[AutomationWorkflow]:
    """Active workflows of ``user_id`` whose trigger set includes ``event_name``."""
    stmt = (
        select(AutomationWorkflow)
        .where(AutomationWorkflow.user_id == user_id)
        .where(AutomationWorkflow.is_active.is_(True))
        .order_by(AutomationWorkflow.created_at.asc())
    )
    result = await db.execute(stmt)
    # trigger_events is a JSON list; filtered here to stay portable across backends.
    return [wf for wf in result.scalars().all() if wf.listens_to(event_name)]


async def create_workflow(
    db: AsyncSession,
    user_id: uuid.UUID,
    name: str,
    trigger_events: list[str],
    *,
    conditions: dict | list | None = None,
    actions: list[dict] | None = None,
    is_active: bool = True,
    description: str | None = None,
) -> AutomationWorkflow:
    if isinstance(conditions, list):
        conditions = {"conditions": conditions}
    workflow = AutomationWorkflow(
        user_id=user_id,
        name=name,
        description=description,
        trigger_events=list(trigger_events),
        conditions=conditions,
        actions=list(actions or []),
        is_active=is_active,
    )
    db.add(workflow)
    await db.commit()
    await db.refresh(workflow)
    return workflow


async def execute_actions(
    db: AsyncSession, actions: list[dict], ctx: AutomationContext
) -> list[dict]:
    """Run actions in order; one failing action does not stop the rest."""
    results = []
    for action in actions or []:
        action_type = action.get("type", "") if isinstance(action, dict) else ""
        try:
            async with db.begin_nested():
                results.append(await execute_action(db, action, ctx))
        except Exception as exc:
            logger.warning("Automation action %r failed: %s", action_type, exc)
            results.append({"action_type": action_type, "status": "failed", "error": str(exc)})
    return results


async def run_workflows(db: AsyncSession, event_name: str, contact_id: uuid.UUID) -> dict:
    contact = await contact_svc.get_contact(db, contact_id)
    if contact is None:
        logger.error("Automation: contact %s not found", contact_id)
        return {"success": False, "message": "Contact not found", "executed": 0}

    user_id = contact.user_id
    workflows = await list_workflows_for_event(db, user_id, event_name)
    logger.info(
        "Automation: %d active workflow(s) for event %r on contact %s",
        len(workflows), event_name, contact_id,
    )

    executed = 0
    failed = 0
    for workflow_id, workflow_name in [(wf.id, wf.name) for wf in workflows]:
        try:
            # A failed workflow's rollback expires everything loaded before it.
            workflow = await db.get(AutomationWorkflow, workflow_id, populate_existing=True)
            if workflow is None:
                continue
            ctx = AutomationContext.for_contact(event_name, contact)
            ctx.workflow = workflow
            if not evaluate_conditions(workflow.conditions, ctx.facts()):
                logger.info("Workflow %r conditions not met for contact %s", workflow_name, contact_id)
                continue

            results = await execute_actions(db, workflow.actions, ctx)
            await activity_svc.log_activity(
                db,
                user_id,
                WORKFLOW_EXECUTED,
                f"Workflow '{workflow_name}' executed successfully for event '{event_name}'",
                contact_id=contact_id,
                data={
                    "workflow_id": str(workflow_id),
                    "event_name": event_name,
                    "results": results,
                },
            )
            await db.commit()
            executed += 1
        except Exception as exc:
            logger.exception("Workflow %r failed for event %r", workflow_name, event_name)
            await db.rollback()
            await activity_svc.log_activity(
                db,
                user_id,
                WORKFLOW_FAILED,
                f"Workflow '{workflow_name}' failed to execute for event '{event_name}': {exc}",
                contact_id=contact_id,
                data={"workflow_id": str(workflow_id), "event_name": event_name, "error": str(exc)},
            )
            await db.commit()
            failed += 1

        # Rollback or stage moves leave the loaded graph stale.
        contact = await contact_svc.get_contact(db, contact_id)
        if contact is None:
            break

    return {
        "success": failed == 0,
        "message": f"Processed {len(workflows)} workflows for event '{event_name}'",
        "executed": executed,
        "failed": failed,
    }


async def trigger_workflow(
    session_factory: async_sessionmaker[AsyncSession],
    event_name: str,
    contact_id: uuid.UUID,
) -> dict:
    """Best-effort entry point; never raises."""
    logger.info("Triggering automation for event %r on contact %s", event_name, contact_id)
    try:
        async with session_factory() as db:
            return await run_workflows(db, event_name, contact_id)
    except Exception as exc:
        logger.exception("Automation trigger for event %r on contact %s failed", event_name, contact_id)
        return {"success": False, "message": str(exc), "executed": 0}
