"""
Logo resolution step: one logo per company the user worked at.
"""
import asyncio

import structlog

from folio.models.career import Asset
from folio.models.pipeline import LogoResolutionJob, LogoResolutionOutput

logger = structlog.get_logger(__name__)


async def run_logo_resolution(job: LogoResolutionJob, deps) -> LogoResolutionOutput:
    log = logger.bind(user_id=job.user_id)

    companies = await asyncio.to_thread(deps.assets.list_companies_for_user, job.user_id)
    if not companies:
        log.warning("logo_resolution_skipped", reason="no companies")
        return LogoResolutionOutput(skipped_reason="no companies found for user")

    output = LogoResolutionOutput(companies=len(companies))
    for company in companies:
        if company.has_logo:
            output.already_resolved += 1
            continue

        result = await deps.logo_resolver.resolve(company.normalized_name)
        if not result.found:
            output.not_found.append(company.name)
            continue

        url = await deps.storage.store_remote_asset(result.value, f"logos/{company.id}")
        await asyncio.to_thread(
            deps.assets.save_logo,
            company.id,
            Asset(kind="logo", url=url, provider=result.provider_used),
        )
        output.resolved.append(result.model_copy(update={"value": url}))

    log.info(
        "logo_resolution_completed",
        companies=output.companies,
        already_resolved=output.already_resolved,
        resolved=len(output.resolved),
        not_found=len(output.not_found),
    )
    return output
