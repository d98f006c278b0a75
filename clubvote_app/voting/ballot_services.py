from __future__ import annotations

import datetime
import functools
import logging
from collections.abc import Iterable
from dataclasses import dataclass

import post_office.mail
from django.conf import settings
from django.db import IntegrityError, transaction
from django.urls import reverse

from voting.exceptions import (
    ConsistencyError,
    DuplicateVoteError,
    ElectionNotOpenError,
    InvalidBallotError,
)
from voting.models import AuditLogEntry, Candidate, Election, Position, Vote, VoterParticipation, YearGroup
from voting.transactions import atomic_with_conflict_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteReceipt:
    election_id: int
    position_id: int
    receipt: str
    cast_at: datetime.datetime


@dataclass(frozen=True)
class BallotSelection:
    position_id: int
    candidate_id: int


@dataclass(frozen=True)
class BulkBallotResult:
    receipts: tuple[VoteReceipt, ...]
    skipped_position_ids: tuple[int, ...]

    @property
    def count(self) -> int:
        return len(self.receipts)


def _require_voting_election(*, election_id: int) -> Election:
    election = Election.objects.filter(pk=election_id).only("id", "title", "status").first()
    if election is None or election.status != Election.Status.voting:
        raise ElectionNotOpenError("Cannot cast ballot: this election is not currently open for voting.")
    return election


def _normalize_year_group(voter_year_group: str | None) -> str:
    value = str(voter_year_group or "").strip()
    if value and value not in YearGroup.values:
        raise InvalidBallotError("Year of study must be 1, 2, 3, or 4.")
    return value


def _ballot_candidate(*, election_id: int, position_id: int, candidate_id: int) -> Candidate:
    if not Position.objects.filter(pk=position_id, election_id=election_id).exists():
        raise InvalidBallotError("Invalid ballot: position is not part of this election.")

    # Vote.candidate has no FK constraint, so nothing else stops a concurrent
    # removal between this check and the insert. A disqualification or
    # withdrawal waits on this row lock until the vote commits, or this read
    # sees the row already gone.
    candidate = (
        Candidate.objects.on_ballot(election_id=election_id, position_id=position_id)
        .select_for_update(no_key=True)
        .filter(pk=candidate_id)
        .only("id", "full_name")
        .first()
    )
    if candidate is None:
        raise InvalidBallotError("Invalid ballot: candidate is not on the ballot for this position.")
    return candidate


def _lock_ballot_candidates(*, candidate_ids: Iterable[int]) -> None:
    # One ordered pass so two bulk ballots never take the same rows in opposite order.
    list(
        Candidate.objects.select_for_update(no_key=True)
        .filter(pk__in=sorted(set(candidate_ids)))
        .order_by("pk")
        .values_list("pk", flat=True)
    )


def _has_voted(*, voter_id: str, position_id: int) -> bool:
    return Vote.objects.filter(voter_id=voter_id, position_id=position_id).exists()


def _insert_vote(
    *,
    voter_id: str,
    election_id: int,
    position_id: int,
    candidate: Candidate,
    voter_year_group: str,
) -> Vote | None:
    """Insert a vote, or return None when the voter already holds one for the position.

    The (voter_id, position) unique constraint is the authority: the pre-check
    in the callers only rejects the common case early. A concurrent insert that
    slips between check and insert surfaces here as an IntegrityError.
    """
    try:
        with transaction.atomic():
            vote = Vote.objects.create(
                voter_id=voter_id,
                election_id=election_id,
                position_id=position_id,
                candidate=candidate,
                candidate_name=candidate.full_name,
                voter_year_group=voter_year_group,
                verification_receipt=Vote.generate_receipt(),
            )
    except IntegrityError as exc:
        if _has_voted(voter_id=voter_id, position_id=position_id):
            return None
        raise ConsistencyError("vote insert failed") from exc

    if vote.pk is None:
        raise ConsistencyError("vote insert returned no row")
    return vote


def _record_participation(
    *,
    voter_id: str,
    election_id: int,
    client_ip: str | None,
    user_agent: str | None,
) -> None:
    VoterParticipation.objects.get_or_create(
        voter_id=voter_id,
        election_id=election_id,
        defaults={
            "ip_address": str(client_ip or "unknown")[:45],
            "user_agent": str(user_agent or "unknown"),
        },
    )


def _audit_votes(*, election_id: int, receipts: Iterable[VoteReceipt]) -> None:
    # Receipts only: the audit log never links a voter to a choice.
    AuditLogEntry.objects.bulk_create(
        [
            AuditLogEntry(
                election_id=election_id,
                event_type="vote_cast",
                payload={"position_id": r.position_id, "receipt": r.receipt},
                is_public=False,
            )
            for r in receipts
        ]
    )


def _schedule_receipt_email(*, email: str | None, election: Election, receipts: tuple[VoteReceipt, ...]) -> None:
    address = str(email or "").strip()
    if not address or not receipts:
        return
    transaction.on_commit(
        functools.partial(send_vote_receipt_email, email=address, election=election, receipts=receipts),
        robust=True,
    )


def receipt_verify_url(*, receipt: str) -> str:
    return settings.PUBLIC_BASE_URL.rstrip("/") + reverse("receipt-verify") + f"?receipt={receipt}"


def send_vote_receipt_email(*, email: str, election: Election, receipts: tuple[VoteReceipt, ...]) -> None:
    context: dict[str, object] = {
        "election_id": election.pk,
        "election_title": election.title,
        "receipts": [
            {
                "receipt": r.receipt,
                "cast_at": r.cast_at.isoformat(),
                "verify_url": receipt_verify_url(receipt=r.receipt),
            }
            for r in receipts
        ],
    }

    post_office.mail.send(
        recipients=[email],
        sender=settings.DEFAULT_FROM_EMAIL,
        template=settings.VOTING_RECEIPT_EMAIL_TEMPLATE_NAME,
        context=context,
        commit=True,
    )


@atomic_with_conflict_retry(operation="cast_vote")
def _cast_vote_atomic(
    *,
    voter_id: str,
    election_id: int,
    position_id: int,
    candidate_id: int,
    voter_year_group: str | None,
    client_ip: str | None,
    user_agent: str | None,
) -> tuple[Election, VoteReceipt]:
    election = _require_voting_election(election_id=election_id)
    voter_year_group = _normalize_year_group(voter_year_group)

    if _has_voted(voter_id=voter_id, position_id=position_id):
        raise DuplicateVoteError("A ballot has already been cast for this position.")

    candidate = _ballot_candidate(election_id=election_id, position_id=position_id, candidate_id=candidate_id)

    vote = _insert_vote(
        voter_id=voter_id,
        election_id=election_id,
        position_id=position_id,
        candidate=candidate,
        voter_year_group=voter_year_group,
    )
    if vote is None:
        logger.info("Rejected concurrent duplicate vote for position=%s", position_id)
        raise DuplicateVoteError("A ballot has already been cast for this position.")

    _record_participation(voter_id=voter_id, election_id=election_id, client_ip=client_ip, user_agent=user_agent)

    receipt = VoteReceipt(
        election_id=election_id,
        position_id=position_id,
        receipt=vote.verification_receipt,
        cast_at=vote.cast_at,
    )
    _audit_votes(election_id=election_id, receipts=[receipt])
    return election, receipt


def cast_vote(
    *,
    voter_id: str,
    election_id: int,
    position_id: int,
    candidate_id: int,
    voter_year_group: str | None,
    client_ip: str | None = None,
    user_agent: str | None = None,
    notify_email: str | None = None,
) -> VoteReceipt:
    """Cast one vote for one position and return its verification receipt.

    Raises ElectionNotOpenError, DuplicateVoteError or InvalidBallotError
    before anything is written.
    """
    election, receipt = _cast_vote_atomic(
        voter_id=voter_id,
        election_id=election_id,
        position_id=position_id,
        candidate_id=candidate_id,
        voter_year_group=voter_year_group,
        client_ip=client_ip,
        user_agent=user_agent,
    )
    _schedule_receipt_email(email=notify_email, election=election, receipts=(receipt,))
    return receipt


@atomic_with_conflict_retry(operation="cast_bulk_ballot")
def _cast_bulk_ballot_atomic(
    *,
    voter_id: str,
    election_id: int,
    voter_year_group: str | None,
    selections: tuple[BallotSelection, ...],
    client_ip: str | None,
    user_agent: str | None,
) -> tuple[Election, BulkBallotResult]:
    election = _require_voting_election(election_id=election_id)
    voter_year_group = _normalize_year_group(voter_year_group)
    _lock_ballot_candidates(candidate_ids=[s.candidate_id for s in selections])

    receipts: list[VoteReceipt] = []
    skipped: list[int] = []
    for selection in selections:
        # Skip, not fail: voters may complete their ballot over several sessions.
        if _has_voted(voter_id=voter_id, position_id=selection.position_id):
            skipped.append(selection.position_id)
            continue

        candidate = _ballot_candidate(
            election_id=election_id,
            position_id=selection.position_id,
            candidate_id=selection.candidate_id,
        )
        vote = _insert_vote(
            voter_id=voter_id,
            election_id=election_id,
            position_id=selection.position_id,
            candidate=candidate,
            voter_year_group=voter_year_group,
        )
        if vote is None:
            skipped.append(selection.position_id)
            continue

        receipts.append(
            VoteReceipt(
                election_id=election_id,
                position_id=selection.position_id,
                receipt=vote.verification_receipt,
                cast_at=vote.cast_at,
            )
        )

    if receipts:
        _record_participation(voter_id=voter_id, election_id=election_id, client_ip=client_ip, user_agent=user_agent)
        _audit_votes(election_id=election_id, receipts=receipts)

    return election, BulkBallotResult(receipts=tuple(receipts), skipped_position_ids=tuple(skipped))


def cast_bulk_ballot(
    *,
    voter_id: str,
    election_id: int,
    voter_year_group: str | None,
    selections: Iterable[BallotSelection],
    client_ip: str | None = None,
    user_agent: str | None = None,
    notify_email: str | None = None,
) -> BulkBallotResult:
    """Cast votes for several positions at once.

    Positions the voter already voted for are skipped silently, so submitting
    the same ballot twice issues no new receipts the second time. Every other
    selection is inserted in one transaction: an invalid selection rolls back
    the whole submission.
    """
    election, result = _cast_bulk_ballot_atomic(
        voter_id=voter_id,
        election_id=election_id,
        voter_year_group=voter_year_group,
        selections=tuple(selections),
        client_ip=client_ip,
        user_agent=user_agent,
    )
    if result.skipped_position_ids:
        logger.info(
            "Bulk ballot for election=%s skipped %d already-voted positions",
            election_id,
            len(result.skipped_position_ids),
        )
    _schedule_receipt_email(email=notify_email, election=election, receipts=result.receipts)
    return result


def voted_position_ids(*, voter_id: str, election_id: int) -> list[int]:
    return list(
        Vote.objects.filter(voter_id=voter_id, election_id=election_id)
        .order_by("position_id")
        .values_list("position_id", flat=True)
    )


def voter_status(*, voter_id: str, election_id: int) -> dict[str, object]:
    participation = (
        VoterParticipation.objects.filter(voter_id=voter_id, election_id=election_id).only("first_voted_at").first()
    )
    return {
        "has_voted": participation is not None,
        "voted_at": participation.first_voted_at if participation is not None else None,
    }
