"""Pipeline, stage, and deal service."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..errors import WebhookProcessingError
from ..models.deal import Deal
from ..models.pipeline import DEFAULT_PIPELINE_NAME, DEFAULT_STAGE_NAMES, Pipeline, PipelineStage

logger = logging.getLogger(__name__)


class PipelineHasNoStages(WebhookProcessingError):
    """Raised when a stage is needed from a pipeline with an empty stage set."""


class StageNotInPipeline(WebhookProcessingError):
    """Raised when a deal would point at a stage outside its own pipeline."""


@dataclass
class DealUpsert:
    deal: Deal
    created: bool
    previous_stage_id: uuid.UUID | None = None

    @property
    def stage_changed(self) -> bool:
        return not self.created and self.previous_stage_id != self.deal.stage_id


def _as_uuid(raw) -> uuid.UUID | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        return None


# ── Pipelines ──────────────────────────────────────────────────────────────

async def get_pipeline(db: AsyncSession, pipeline_id: uuid.UUID) -> Pipeline | None:
    stmt = (
        select(Pipeline)
        .where(Pipeline.id == pipeline_id)
        .options(selectinload(Pipeline.stages))
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def create_pipeline(
    db: AsyncSession,
    user_id: uuid.UUID,
    name: str,
    stage_names: tuple[str, ...] | list[str] = (),
    description: str | None = None,
) -> Pipeline:
    """Create a pipeline with stages in the given order. Flushes only."""
    pipeline = Pipeline(user_id=user_id, name=name, description=description)
    db.add(pipeline)
    await db.flush()
    for position, stage_name in enumerate(stage_names):
        db.add(PipelineStage(pipeline_id=pipeline.id, name=stage_name, position=position))
    await db.flush()
    return await get_pipeline(db, pipeline.id)


async def get_default_pipeline(db: AsyncSession, user_id: uuid.UUID) -> Pipeline | None:
    """The user's earliest-created pipeline, with stages loaded."""
    stmt = (
        select(Pipeline)
        .where(Pipeline.user_id == user_id)
        .options(selectinload(Pipeline.stages))
        .order_by(Pipeline.created_at.asc(), Pipeline.name.asc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def resolve_default_pipeline(db: AsyncSession, user_id: uuid.UUID) -> Pipeline:
    """Find the user's default pipeline, creating the standard one if none exists."""
    pipeline = await get_default_pipeline(db, user_id)
    if pipeline is not None:
        return pipeline
    logger.info("Creating default pipeline for user %s", user_id)
    return await create_pipeline(db, user_id, DEFAULT_PIPELINE_NAME, DEFAULT_STAGE_NAMES)


# ── Stages ─────────────────────────────────────────────────────────────────

def find_stage_by_name(pipeline: Pipeline, name: str | None) -> PipelineStage | None:
    """Case-insensitive match: an equal name wins over a name containing ``name``."""
    if not isinstance(name, str) or not name.strip():
        return None
    needle = name.strip().lower()
    for stage in pipeline.stages:
        if stage.name.lower() == needle:
            return stage
    for stage in pipeline.stages:
        if needle in stage.name.lower():
            return stage
    return None


def resolve_stage(
    pipeline: Pipeline,
    explicit_stage_id=None,
    status_hint: str | None = None,
) -> PipelineStage:
    """Pick a stage: status name hint, then explicit id, then the first stage.

    Never fails on a bad hint or id; only an empty pipeline raises.
    """
    if not pipeline.stages:
        raise PipelineHasNoStages(f"Pipeline {pipeline.name!r} has no stages")

    stage = find_stage_by_name(pipeline, status_hint)
    if stage is not None:
        return stage

    stage_id = _as_uuid(explicit_stage_id)
    if stage_id is not None:
        for stage in pipeline.stages:
            if stage.id == stage_id:
                return stage
        logger.info("Stage %s not in pipeline %s; using first stage", stage_id, pipeline.id)

    return min(pipeline.stages, key=lambda s: s.position)


# ── Deals ──────────────────────────────────────────────────────────────────

async def get_deal(db: AsyncSession, deal_id) -> Deal | None:
    """Get a deal with its stage and its pipeline's stages loaded."""
    deal_uuid = _as_uuid(deal_id)
    if deal_uuid is None:
        return None
    stmt = (
        select(Deal)
        .where(Deal.id == deal_uuid)
        .options(
            selectinload(Deal.stage),
            selectinload(Deal.pipeline).selectinload(Pipeline.stages),
        )
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def get_deal_by_external_ref(db: AsyncSession, user_id: uuid.UUID, external_ref: str) -> Deal | None:
    stmt = select(Deal.id).where(Deal.user_id == user_id, Deal.external_ref == external_ref)
    deal_id = (await db.execute(stmt)).scalar_one_or_none()
    if deal_id is None:
        return None
    return await get_deal(db, deal_id)


async def find_deal(
    db: AsyncSession,
    user_id: uuid.UUID,
    pipeline_id: uuid.UUID,
    title: str,
    external_ref: str | None = None,
) -> Deal | None:
    """External reference first; (title, pipeline, user) only as a fallback."""
    if external_ref:
        stmt = select(Deal).where(Deal.user_id == user_id, Deal.external_ref == external_ref)
        deal = (await db.execute(stmt)).scalar_one_or_none()
        if deal is not None:
            return deal

    stmt = (
        select(Deal)
        .where(Deal.user_id == user_id, Deal.pipeline_id == pipeline_id, Deal.title == title)
        .order_by(Deal.created_at.asc())
        .limit(1)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def upsert_deal(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    pipeline: Pipeline,
    stage: PipelineStage,
    title: str,
    source: str,
    value: float | None = None,
    contact_id: uuid.UUID | None = None,
    external_ref: str | None = None,
    extra: dict | None = None,
    update_stage: bool = True,
) -> DealUpsert:
    """Update the matching deal in place or create a new one.

    Title and pipeline never change on update; with ``update_stage`` off an
    existing deal also keeps its stage. Flushes only.
    """
    if stage.pipeline_id != pipeline.id:
        raise StageNotInPipeline(f"Stage {stage.name!r} is not part of pipeline {pipeline.name!r}")

    deal = await find_deal(db, user_id, pipeline.id, title, external_ref)
    if deal is not None:
        previous_stage_id = deal.stage_id
        if value is not None:
            deal.value = value
        if update_stage and deal.pipeline_id == stage.pipeline_id:
            deal.stage_id = stage.id
        elif update_stage:
            logger.warning(
                "Deal %s lives in pipeline %s; keeping its stage", deal.id, deal.pipeline_id
            )
        if contact_id is not None:
            deal.contact_id = contact_id
        if external_ref and not deal.external_ref:
            deal.external_ref = external_ref
        if extra:
            deal.data = {**(deal.data or {}), **extra}
        await db.flush()
        return DealUpsert(deal, False, previous_stage_id)

    deal = Deal(
        user_id=user_id,
        title=title,
        value=value if value is not None else 0.0,
        pipeline_id=pipeline.id,
        stage_id=stage.id,
        contact_id=contact_id,
        external_ref=external_ref,
        data={"source": source, **(extra or {})},
    )
    db.add(deal)
    await db.flush()
    return DealUpsert(deal, True)


def move_deal_stage(deal: Deal, stage: PipelineStage) -> uuid.UUID:
    """Point ``deal`` at ``stage``; returns the previous stage id."""
    if stage.pipeline_id != deal.pipeline_id:
        raise StageNotInPipeline(f"Stage {stage.name!r} is not part of the deal's pipeline")
    previous = deal.stage_id
    deal.stage_id = stage.id
    return previous
