from __future__ import annotations

import logging

from django.db.models import F, Max, Q
from django.utils import timezone

from voting.exceptions import ConsistencyError, InvalidStateError, NotFoundError
from voting.models import AuditLogEntry, Candidate, CandidateApplication, Position
from voting.transactions import atomic_with_conflict_retry

logger = logging.getLogger(__name__)


def _lock_position(*, position_id: int) -> Position:
    # Ballot numbers are assigned and resequenced per position. Holding the
    # position row lock serializes every read-max/insert and delete/shift
    # sequence for that ballot across workers.
    try:
        return Position.objects.select_for_update().only("id", "election_id").get(pk=position_id)
    except Position.DoesNotExist as exc:
        raise NotFoundError("position not found") from exc


def _lock_candidate(*, candidate_id: int) -> Candidate:
    position_id = Candidate.objects.filter(pk=candidate_id).values_list("position_id", flat=True).first()
    if position_id is None:
        raise NotFoundError("candidate not found on ballot")

    _lock_position(position_id=position_id)

    # Re-read under the lock: a concurrent removal may have won the race.
    candidate = Candidate.objects.select_for_update().filter(pk=candidate_id).first()
    if candidate is None:
        raise NotFoundError("candidate not found on ballot")
    return candidate


def _assert_dense_ballot(*, election_id: int, position_id: int) -> None:
    numbers = list(
        Candidate.objects.on_ballot(election_id=election_id, position_id=position_id)
        .order_by("ballot_number")
        .values_list("ballot_number", flat=True)
    )
    if numbers != list(range(1, len(numbers) + 1)):
        logger.error(
            "Ballot numbering broken for election=%s position=%s: %s",
            election_id,
            position_id,
            numbers,
        )
        raise ConsistencyError("ballot numbering is inconsistent")


def _remove_from_ballot(*, candidate: Candidate) -> int:
    """Delete a candidate and close the gap it leaves. Returns how many shifted.

    Votes already cast for the candidate are left exactly as they are.
    """
    election_id = candidate.election_id
    position_id = candidate.position_id
    removed_number = candidate.ballot_number

    candidate.delete()

    shifted = (
        Candidate.objects.on_ballot(election_id=election_id, position_id=position_id)
        .filter(ballot_number__gt=removed_number)
        .update(ballot_number=F("ballot_number") - 1)
    )
    _assert_dense_ballot(election_id=election_id, position_id=position_id)
    return shifted


@atomic_with_conflict_retry(operation="promote_application")
def promote_application(*, application_id: int, actor: str | None = None) -> Candidate:
    position_id = (
        CandidateApplication.objects.filter(pk=application_id).values_list("position_id", flat=True).first()
    )
    if position_id is None:
        raise NotFoundError("application not found")

    _lock_position(position_id=position_id)

    application = CandidateApplication.objects.select_for_update().filter(pk=application_id).first()
    if application is None:
        raise NotFoundError("application not found")
    if application.status != CandidateApplication.Status.approved:
        raise InvalidStateError("Application must be approved before promotion to ballot.")

    existing = (
        Candidate.objects.filter(
            Q(application_id=application.pk)
            | Q(
                election_id=application.election_id,
                position_id=application.position_id,
                member_id=application.member_id,
            )
        )
        .order_by("id")
        .first()
    )
    if existing is not None:
        return existing

    last_number = Candidate.objects.on_ballot(
        election_id=application.election_id,
        position_id=application.position_id,
    ).aggregate(last=Max("ballot_number"))["last"]

    candidate = Candidate.objects.create(
        election_id=application.election_id,
        position_id=application.position_id,
        member_id=application.member_id,
        application=application,
        full_name=application.member_full_name,
        manifesto=application.manifesto,
        image_url=application.image_url,
        ballot_number=int(last_number or 0) + 1,
    )
    if candidate.pk is None:
        raise ConsistencyError("candidate insert returned no row")

    _assert_dense_ballot(election_id=candidate.election_id, position_id=candidate.position_id)

    payload: dict[str, object] = {
        "candidate_id": candidate.pk,
        "application_id": application.pk,
        "position_id": candidate.position_id,
        "ballot_number": candidate.ballot_number,
    }
    if actor:
        payload["actor"] = actor
    AuditLogEntry.objects.create(
        election_id=candidate.election_id,
        event_type="candidate_promoted",
        payload=payload,
        is_public=True,
    )

    logger.info(
        "Promoted application=%s to ballot position=%s as #%s",
        application.pk,
        candidate.position_id,
        candidate.ballot_number,
    )
    return candidate


@atomic_with_conflict_retry(operation="disqualify_candidate")
def disqualify_candidate(*, candidate_id: int, actor: str, reason: str) -> dict[str, object]:
    reason = str(reason or "").strip()
    if not reason:
        raise InvalidStateError("A disqualification reason is required.")

    candidate = _lock_candidate(candidate_id=candidate_id)
    election_id = candidate.election_id
    removed_number = candidate.ballot_number
    application_id = candidate.application_id

    if application_id is not None:
        CandidateApplication.objects.filter(pk=application_id).update(
            status=CandidateApplication.Status.rejected,
            admin_remarks=f"DISQUALIFIED: {reason}",
            reviewed_by=actor,
            reviewed_at=timezone.now(),
        )

    shifted = _remove_from_ballot(candidate=candidate)

    AuditLogEntry.objects.create(
        election_id=election_id,
        event_type="candidate_disqualified",
        payload={
            "candidate_id": candidate_id,
            "application_id": application_id,
            "ballot_number": removed_number,
            "reason": reason,
            "actor": actor,
        },
        is_public=False,
    )

    logger.info("Disqualified candidate=%s by %s; %d ballot entries resequenced", candidate_id, actor, shifted)
    return {
        "message": "Disqualified and ballot re-sequenced",
        "candidate_id": candidate_id,
        "resequenced": shifted,
    }


@atomic_with_conflict_retry(operation="withdraw_candidacy")
def withdraw_candidacy(
    *,
    actor: str,
    application_id: int | None = None,
    candidate_id: int | None = None,
) -> dict[str, object]:
    """Self-service withdrawal of an application or of a ballot entry.

    Only the member who owns the candidacy may withdraw it; anything else is
    reported as not found. The application row is removed either way.
    """
    if (application_id is None) == (candidate_id is None):
        raise InvalidStateError("Exactly one of application_id or candidate_id is required.")

    candidate: Candidate | None = None
    application: CandidateApplication | None = None

    if candidate_id is not None:
        candidate = _lock_candidate(candidate_id=candidate_id)
        if candidate.member_id != actor:
            raise NotFoundError("candidate not found on ballot")
        if candidate.application_id is not None:
            application = CandidateApplication.objects.select_for_update().filter(pk=candidate.application_id).first()
    else:
        position_id = (
            CandidateApplication.objects.filter(pk=application_id, member_id=actor)
            .values_list("position_id", flat=True)
            .first()
        )
        if position_id is None:
            raise NotFoundError("application not found")
        _lock_position(position_id=position_id)
        application = CandidateApplication.objects.select_for_update().filter(pk=application_id).first()
        if application is None:
            raise NotFoundError("application not found")
        candidate = Candidate.objects.select_for_update().filter(application_id=application.pk).first()

    election_id = candidate.election_id if candidate is not None else application.election_id
    removed_candidate_id = candidate.pk if candidate is not None else None
    removed_application_id = application.pk if application is not None else None

    shifted = 0
    if candidate is not None:
        shifted = _remove_from_ballot(candidate=candidate)
    if application is not None:
        application.delete()

    AuditLogEntry.objects.create(
        election_id=election_id,
        event_type="candidacy_withdrawn",
        payload={
            "candidate_id": removed_candidate_id,
            "application_id": removed_application_id,
            "actor": actor,
        },
        is_public=False,
    )

    logger.info(
        "Withdrew candidacy application=%s candidate=%s; %d ballot entries resequenced",
        removed_application_id,
        removed_candidate_id,
        shifted,
    )
    return {
        "message": "Candidacy withdrawn",
        "candidate_id": removed_candidate_id,
        "application_id": removed_application_id,
        "resequenced": shifted,
    }


def election_ballot(*, election_id: int) -> list[Candidate]:
    return list(
        Candidate.objects.filter(election_id=election_id)
        .select_related("position")
        .order_by("position_id", "ballot_number")
    )


def position_ballot(*, election_id: int, position_id: int) -> list[Candidate]:
    return list(
        Candidate.objects.on_ballot(election_id=election_id, position_id=position_id)
        .select_related("position")
        .order_by("ballot_number")
    )


def candidate_profile(*, candidate_id: int) -> Candidate:
    candidate = Candidate.objects.select_related("position", "election").filter(pk=candidate_id).first()
    if candidate is None:
        raise NotFoundError("candidate not found on ballot")
    return candidate
