"""Auto-fold job: record a fold for everyone who ghosted yesterday's obligation."""

import logging
from datetime import UTC, date, datetime, timedelta

from cooked.core import db_client
from cooked.core.config import Constants, settings
from cooked.core.errors import classify_job_error
from cooked.core.logging import log_with_context, span
from cooked.core.obligations import is_pact_due, resolve_outstanding
from cooked.domain.create_models import CheckInCreate, RoastThreadCreate
from cooked.models.service_models import AutoFoldSummary, JobErrorEntry, Obligation
from cooked.services import pact_service


logger = logging.getLogger(__name__)


async def auto_fold_missed_check_ins(*, today: date | None = None) -> AutoFoldSummary:
    """Fold every obligation from the day before ``today`` that has no check-in.

    Each fold is stored with the "Ghosted" excuse and ``is_late=True``, and
    opens a roast thread. Re-running for the same day creates nothing new:
    existing check-ins remove the obligation, and an insert that loses a race
    to a concurrent run is counted as ``already_folded``.

    Per-candidate failures are collected (capped) and never abort the run.

    Args:
        today: UTC calendar day the run is for (defaults to the current UTC date)

    Returns:
        AutoFoldSummary for the folded day
    """
    with span("auto_fold_service.auto_fold_missed_check_ins"):
        run_date = today or datetime.now(UTC).date()
        fold_date = run_date - timedelta(days=1)
        weekly_anchor = settings.weekly_anchor

        pacts = await pact_service.list_active_pacts(on=fold_date)
        pacts_due = [p for p in pacts if is_pact_due(p, fold_date, weekly_anchor=weekly_anchor)]

        if not pacts_due:
            logger.info("No pacts due on %s, nothing to fold", fold_date)
            return AutoFoldSummary(
                success=True,
                run_date=run_date,
                folded_for_date=fold_date,
                pacts_processed=0,
                folds_created=0,
                roast_threads_created=0,
                already_folded=0,
                errors_count=0,
                message="No pacts due yesterday",
            )

        pact_ids = [p.id for p in pacts_due]
        participants = await pact_service.list_participants(pact_ids=pact_ids)
        check_ins = await pact_service.list_check_ins(pact_ids=pact_ids, range_start=fold_date, range_end=fold_date)

        outstanding = resolve_outstanding(
            pacts_due,
            pact_service.group_participants_by_pact(participants),
            check_ins,
            fold_date,
            weekly_anchor=weekly_anchor,
        )

        folds_created = 0
        threads_created = 0
        already_folded = 0
        errors: list[JobErrorEntry] = []

        for obligation in outstanding:
            try:
                check_in_id = await _create_fold(obligation)
            except db_client.DuplicateRecordError:
                already_folded += 1
                logger.info(
                    "Check-in already exists for pact %s user %s on %s",
                    obligation.pact_id,
                    obligation.user_id,
                    fold_date,
                )
                continue
            except Exception as e:
                errors.append(_error_entry(obligation, e))
                continue

            folds_created += 1

            try:
                await _open_roast_thread(check_in_id)
            except Exception as e:
                errors.append(_error_entry(obligation, e))
                continue

            threads_created += 1

        logger.info(
            "Auto-fold for %s: %d folds, %d roast threads, %d errors",
            fold_date,
            folds_created,
            threads_created,
            len(errors),
        )
        return AutoFoldSummary(
            success=not errors,
            run_date=run_date,
            folded_for_date=fold_date,
            pacts_processed=len(pacts_due),
            folds_created=folds_created,
            roast_threads_created=threads_created,
            already_folded=already_folded,
            errors_count=len(errors),
            errors=errors[: Constants.JOB_ERRORS_CAP],
        )


async def _create_fold(obligation: Obligation) -> str:
    """Insert the ghosted fold for an obligation and return the new check-in ID."""
    fold = CheckInCreate.ghosted_fold(
        pact_id=obligation.pact_id,
        user_id=obligation.user_id,
        check_in_date=obligation.day,
    )
    record = await db_client.create_record(collection="check_ins", data=fold.model_dump(mode="json"))
    log_with_context(
        logger,
        "info",
        "Fold created",
        pact_id=obligation.pact_id,
        user_id=obligation.user_id,
        check_in_date=obligation.day.isoformat(),
    )
    return record["id"]


async def _open_roast_thread(check_in_id: str) -> None:
    thread = RoastThreadCreate(check_in_id=check_in_id)
    await db_client.create_record(collection="roast_threads", data=thread.model_dump(mode="json"))


def _error_entry(obligation: Obligation, exc: Exception) -> JobErrorEntry:
    job_error = classify_job_error(exc)
    logger.error(
        "Auto-fold failed for pact %s user %s: %s",
        obligation.pact_id,
        obligation.user_id,
        job_error.message,
    )
    return JobErrorEntry(
        pact_id=obligation.pact_id,
        user_id=obligation.user_id,
        code=job_error.code,
        severity=job_error.severity.value,
        error=job_error.message,
    )
