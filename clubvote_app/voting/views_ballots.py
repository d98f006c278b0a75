"""Vote casting, ballot listings, receipt verification and roster changes."""

import json

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from voting import ballot_services, receipt_services, roster_services
from voting.ballot_services import BallotSelection
from voting.exceptions import ElectionError
from voting.models import Candidate
from voting.rate_limit import allow_request
from voting.views_utils import (
    bad_request,
    error_response,
    forbidden,
    get_actor,
    get_client_ip,
    is_staff,
    ok_response,
    parse_int,
    parse_json_body,
)


def _candidate_payload(candidate: Candidate) -> dict[str, object]:
    return {
        "id": candidate.pk,
        "election_id": candidate.election_id,
        "position_id": candidate.position_id,
        "position": candidate.position.title,
        "ballot_number": candidate.ballot_number,
        "full_name": candidate.full_name,
        "manifesto": candidate.manifesto,
        "image_url": candidate.image_url,
    }


def _parse_selections(raw: object) -> list[BallotSelection]:
    if not isinstance(raw, list):
        raise ValueError("selections must be an array of position/candidate pairs")

    selections: list[BallotSelection] = []
    seen_positions: set[int] = set()
    for item in raw:
        if not isinstance(item, dict):
            raise ValueError("selections must be an array of position/candidate pairs")
        position_id = parse_int(item.get("position_id"), field="position_id")
        candidate_id = parse_int(item.get("candidate_id"), field="candidate_id")
        if position_id in seen_positions:
            raise ValueError("selections may contain at most one entry per position")
        seen_positions.add(position_id)
        selections.append(BallotSelection(position_id=position_id, candidate_id=candidate_id))
    return selections


def _notify_email(request) -> str:
    return str(getattr(request.user, "email", "") or "").strip()


@require_POST
def vote_cast(request, election_id: int):
    voter_id = get_actor(request)
    if not voter_id:
        return forbidden()

    try:
        data = parse_json_body(request)
        position_id = parse_int(data.get("position_id"), field="position_id")
        candidate_id = parse_int(data.get("candidate_id"), field="candidate_id")
    except (ValueError, json.JSONDecodeError) as exc:
        return bad_request(str(exc))

    try:
        receipt = ballot_services.cast_vote(
            voter_id=voter_id,
            election_id=election_id,
            position_id=position_id,
            candidate_id=candidate_id,
            voter_year_group=str(data.get("voter_year_group") or ""),
            client_ip=get_client_ip(request),
            user_agent=str(request.META.get("HTTP_USER_AGENT") or ""),
            notify_email=_notify_email(request),
        )
    except ElectionError as exc:
        return error_response(exc)

    return ok_response(
        {
            "message": "Your ballot has been securely cast.",
            "verification_receipt": receipt.receipt,
            "cast_at": receipt.cast_at,
        },
        status=201,
    )


@require_POST
def bulk_ballot_cast(request, election_id: int):
    voter_id = get_actor(request)
    if not voter_id:
        return forbidden()

    try:
        data = parse_json_body(request)
        selections = _parse_selections(data.get("selections"))
    except (ValueError, json.JSONDecodeError) as exc:
        return bad_request(str(exc))

    try:
        result = ballot_services.cast_bulk_ballot(
            voter_id=voter_id,
            election_id=election_id,
            voter_year_group=str(data.get("voter_year_group") or ""),
            selections=selections,
            client_ip=get_client_ip(request),
            user_agent=str(request.META.get("HTTP_USER_AGENT") or ""),
            notify_email=_notify_email(request),
        )
    except ElectionError as exc:
        return error_response(exc)

    return ok_response(
        {
            "receipts": [r.receipt for r in result.receipts],
            "count": result.count,
            "skipped_position_ids": list(result.skipped_position_ids),
        },
        status=201,
    )


@require_GET
def voting_progress(request, election_id: int):
    voter_id = get_actor(request)
    if not voter_id:
        return forbidden()

    status = ballot_services.voter_status(voter_id=voter_id, election_id=election_id)
    return ok_response(
        {
            "voted_position_ids": ballot_services.voted_position_ids(voter_id=voter_id, election_id=election_id),
            **status,
        }
    )


@require_http_methods(["GET", "POST"])
def election_ballot(request, election_id: int):
    if request.method == "POST":
        return bulk_ballot_cast(request, election_id)

    candidates = roster_services.election_ballot(election_id=election_id)
    return ok_response({"candidates": [_candidate_payload(c) for c in candidates]})


@require_GET
def position_ballot(request, election_id: int, position_id: int):
    candidates = roster_services.position_ballot(election_id=election_id, position_id=position_id)
    return ok_response({"candidates": [_candidate_payload(c) for c in candidates]})


@require_GET
def candidate_detail(request, candidate_id: int):
    try:
        candidate = roster_services.candidate_profile(candidate_id=candidate_id)
    except ElectionError as exc:
        return error_response(exc)
    return ok_response({"candidate": {**_candidate_payload(candidate), "election": candidate.election.title}})


@require_GET
def receipt_verify(request):
    # REMOTE_ADDR, not X-Forwarded-For: the header is client-controlled.
    client_ip = str(request.META.get("REMOTE_ADDR") or "").strip() or "unknown"
    if not allow_request(
        scope="voting.receipt_verify",
        key_parts=[client_ip],
        limit=settings.VOTING_RATE_LIMIT_RECEIPT_VERIFY_LIMIT,
        window_seconds=settings.VOTING_RATE_LIMIT_RECEIPT_VERIFY_WINDOW_SECONDS,
    ):
        return JsonResponse(
            {"ok": False, "kind": "RateLimited", "error": "Too many receipt lookups. Please try again later."},
            status=429,
        )

    try:
        verification = receipt_services.verify_receipt(receipt=request.GET.get("receipt"))
    except ElectionError as exc:
        return error_response(exc)
    return ok_response(verification)


@require_POST
def application_promote(request, application_id: int):
    actor = get_actor(request)
    if not is_staff(request):
        return forbidden("Only election administrators can promote applications.")

    try:
        candidate = roster_services.promote_application(application_id=application_id, actor=actor)
    except ElectionError as exc:
        return error_response(exc)

    return ok_response({"candidate": _candidate_payload(candidate)}, status=201)


@require_POST
def candidate_disqualify(request, candidate_id: int):
    actor = get_actor(request)
    if not is_staff(request):
        return forbidden("Only election administrators can disqualify candidates.")

    try:
        data = parse_json_body(request)
    except (ValueError, json.JSONDecodeError) as exc:
        return bad_request(str(exc))

    try:
        result = roster_services.disqualify_candidate(
            candidate_id=candidate_id,
            actor=actor,
            reason=str(data.get("reason") or ""),
        )
    except ElectionError as exc:
        return error_response(exc)

    return ok_response(result)


@require_POST
def application_withdraw(request, application_id: int):
    actor = get_actor(request)
    if not actor:
        return forbidden()

    try:
        result = roster_services.withdraw_candidacy(actor=actor, application_id=application_id)
    except ElectionError as exc:
        return error_response(exc)
    return ok_response(result)


@require_POST
def candidate_withdraw(request, candidate_id: int):
    actor = get_actor(request)
    if not actor:
        return forbidden()

    try:
        result = roster_services.withdraw_candidacy(actor=actor, candidate_id=candidate_id)
    except ElectionError as exc:
        return error_response(exc)
    return ok_response(result)
