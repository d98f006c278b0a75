"""Results and analytics endpoints."""

from django.views.decorators.http import require_GET

from voting import tally_services
from voting.exceptions import ElectionError
from voting.models import Election, Position
from voting.views_utils import error_response, forbidden, is_staff, ok_response


def _results_visible(request, *, election_id: int) -> bool:
    if is_staff(request):
        return True
    return Election.objects.filter(pk=election_id, is_results_public=True).exists()


@require_GET
def position_leaderboard(request, position_id: int):
    election_id = Position.objects.filter(pk=position_id).values_list("election_id", flat=True).first()
    if election_id is not None and not _results_visible(request, election_id=election_id):
        return forbidden("Results for this election are not public yet.")
    try:
        # Receipts map choices to candidates; only administrators may see them.
        results = tally_services.position_leaderboard(position_id=position_id, include_receipts=is_staff(request))
    except ElectionError as exc:
        return error_response(exc)
    return ok_response({"results": results})


@require_GET
def candidate_scorecard(request, candidate_id: int):
    if not is_staff(request):
        return forbidden("Only election administrators can view candidate scorecards.")
    try:
        scorecard = tally_services.candidate_scorecard(candidate_id=candidate_id)
    except ElectionError as exc:
        return error_response(exc)
    return ok_response(scorecard)


@require_GET
def election_winners(request, election_id: int):
    if not _results_visible(request, election_id=election_id):
        return forbidden("Results for this election are not public yet.")
    try:
        winners = tally_services.official_winners(election_id=election_id)
    except ElectionError as exc:
        return error_response(exc)
    return ok_response({"winners": winners})


@require_GET
def election_analytics(request, election_id: int):
    if not is_staff(request):
        return forbidden("Only election administrators can view analytics.")
    try:
        analytics = tally_services.election_analytics(election_id=election_id)
    except ElectionError as exc:
        return error_response(exc)
    return ok_response(analytics)


@require_GET
def election_turnout(request, election_id: int):
    if not is_staff(request):
        return forbidden("Only election administrators can view turnout.")
    try:
        stats = tally_services.turnout(election_id=election_id)
        participants = tally_services.election_participants(election_id=election_id)
    except ElectionError as exc:
        return error_response(exc)
    return ok_response({**stats, "participants": participants})
