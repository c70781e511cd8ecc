"""
Ingest step: document -> text -> structured work history, achievements, skills.
"""
import asyncio

import structlog

from folio.core.exceptions import StepValidationError
from folio.models.achievement import Achievement, Metric
from folio.models.career import Skill, UserProfile, WorkExperience
from folio.models.pipeline import IngestJob, IngestOutput
from folio.services.document_text import extract_text

logger = structlog.get_logger(__name__)


async def run_ingest(job: IngestJob, deps) -> IngestOutput:
    log = logger.bind(user_id=job.user_id, document_id=job.document_id)

    document = await asyncio.to_thread(deps.careers.get_document, job.user_id, job.document_id)
    if document is None:
        raise StepValidationError(
            f"Document {job.document_id} not found for user {job.user_id}", step="ingest"
        )

    content = await deps.storage.fetch_document(document.storage_url)
    text = await asyncio.to_thread(extract_text, content, document.filename, document.mime_type)
    await asyncio.to_thread(deps.careers.save_extracted_text, document.id, text)
    log.info("document_text_extracted", chars=len(text))

    structured = await deps.llm.structure_resume(text)

    await asyncio.to_thread(
        deps.careers.upsert_profile,
        UserProfile(
            user_id=job.user_id,
            first_name=structured.first_name,
            last_name=structured.last_name,
            headline=structured.headline,
        ),
    )

    achievement_count = 0
    companies = set()
    for extracted in structured.work_experiences:
        experience = WorkExperience(
            user_id=job.user_id,
            document_id=document.id,
            company=extracted.company,
            role=extracted.role,
            start_date=extracted.start_date,
            end_date=extracted.end_date,
            is_current=not extracted.end_date,
            description=extracted.description,
        )
        experience_id = await asyncio.to_thread(deps.careers.upsert_work_experience, experience)

        if extracted.company:
            await asyncio.to_thread(deps.assets.upsert_company, extracted.company)
            companies.add(extracted.company.strip().lower())

        for item in extracted.achievements:
            metric = None
            if item.metric_value is not None or item.metric_unit or item.scope:
                metric = Metric(value=item.metric_value, unit=item.metric_unit, scope=item.scope)
            achievement = Achievement(
                user_id=job.user_id,
                document_id=document.id,
                work_experience_id=experience_id,
                raw_text=item.text,
                metric=metric,
            )
            await asyncio.to_thread(deps.achievements.upsert_achievement, achievement)
            achievement_count += 1

    for extracted_skill in structured.skills:
        await asyncio.to_thread(
            deps.careers.upsert_skill,
            Skill(user_id=job.user_id, name=extracted_skill.name, category=extracted_skill.category),
        )

    output = IngestOutput(
        document_id=document.id,
        text_length=len(text),
        work_experiences=len(structured.work_experiences),
        achievements=achievement_count,
        skills=len(structured.skills),
        companies=len(companies),
    )
    log.info("ingest_completed", **output.model_dump(exclude={"document_id", "skipped_reason"}))
    return output
