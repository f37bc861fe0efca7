"""Action executors for internal automation workflows.

Each action is a dict with a ``type`` key plus its own settings, e.g.
``{"type": "move_deal_stage", "targetStage": "Qualified"}``.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ..services import pipeline_svc, task_svc
from .context import AutomationContext

logger = logging.getLogger(__name__)


async def execute_action(db: AsyncSession, action: dict, ctx: AutomationContext) -> dict:
    """Dispatch to the appropriate action handler."""
    action_type = action.get("type", "")
    handler = ACTION_HANDLERS.get(action_type)
    if not handler:
        logger.info("Unknown automation action type %r", action_type)
        return {"action_type": action_type, "status": "unknown"}
    return await handler(db, action, ctx)


async def action_create_task(db: AsyncSession, action: dict, ctx: AutomationContext) -> dict:
    contact = ctx.contact
    task = await task_svc.create_task(
        db,
        contact.user_id,
        title=action.get("title") or f"Task for {contact.full_name}",
        description=action.get("description") or "",
        due_date=action.get("dueDate") or action.get("due_date"),
        contact_id=contact.id,
        assigned_to=str(contact.user_id),
    )
    return {"action_type": "create_task", "status": "success", "task_id": str(task.id)}


async def action_move_deal_stage(db: AsyncSession, action: dict, ctx: AutomationContext) -> dict:
    deal = ctx.deal
    if deal is None:
        return {"action_type": "move_deal_stage", "status": "skipped", "error": "Contact has no deals"}

    target = str(action.get("targetStage") or action.get("target_stage") or "").strip().lower()
    stage = next((s for s in deal.pipeline.stages if s.name.lower() == target), None)
    if stage is None:
        return {"action_type": "move_deal_stage", "status": "failed", "error": "Target stage not found"}

    from_stage = deal.stage.name if deal.stage else None
    pipeline_svc.move_deal_stage(deal, stage)
    await db.flush()
    return {
        "action_type": "move_deal_stage",
        "status": "success",
        "from_stage": from_stage,
        "to_stage": stage.name,
    }


async def action_send_email(db: AsyncSession, action: dict, ctx: AutomationContext) -> dict:
    logger.info(
        "Simulated email to %s (template %s)", ctx.contact.email, action.get("templateId")
    )
    return {"action_type": "send_email", "status": "simulated", "to": ctx.contact.email}


async def action_add_tag(db: AsyncSession, action: dict, ctx: AutomationContext) -> dict:
    tag = action.get("tag", "")
    logger.info("Simulated tag %r on contact %s", tag, ctx.contact.id)
    return {"action_type": "add_tag", "status": "simulated", "tag": tag}


ACTION_HANDLERS = {
    "create_task": action_create_task,
    "move_deal_stage": action_move_deal_stage,
    "send_email": action_send_email,
    "add_tag": action_add_tag,
}
