"""Read-side results: leaderboards, analytics, scorecards and official winners.

Nothing here is cached or stored. Every figure is recomputed from the current
Candidate and Vote rows, so results can be re-derived at any time.
"""

from __future__ import annotations

from django.db.models import Count
from django.utils import timezone

from voting.exceptions import NotFoundError
from voting.models import Candidate, Election, Position, Vote, VoterParticipation

TIE_LABEL = "TIE (Runoff Needed)"
NO_CANDIDATES_LABEL = "No Candidates"
NOT_SPECIFIED_LABEL = "Not Specified"


def _candidates_with_tallies(*, position_id: int) -> list[Candidate]:
    # Ties keep ballot order so repeated queries return the same ranking.
    return list(
        Candidate.objects.filter(position_id=position_id)
        .annotate(tally=Count("votes"))
        .order_by("-tally", "ballot_number", "id")
    )


def _get_election(*, election_id: int) -> Election:
    election = Election.objects.filter(pk=election_id).first()
    if election is None:
        raise NotFoundError("election not found")
    return election


def position_leaderboard(*, position_id: int, include_receipts: bool = True) -> list[dict[str, object]]:
    position = Position.objects.filter(pk=position_id).only("id", "title").first()
    if position is None:
        raise NotFoundError("position not found")

    candidates = _candidates_with_tallies(position_id=position.pk)
    total = sum(c.tally for c in candidates)

    rows: list[dict[str, object]] = [
        {
            "id": c.pk,
            "full_name": c.full_name,
            "ballot_number": c.ballot_number,
            "role": position.title,
            "tally": c.tally,
            "percentage": f"{c.tally / total * 100:.1f}" if total > 0 else "0.0",
        }
        for c in candidates
    ]
    if not include_receipts:
        return rows

    receipts_by_candidate: dict[int, list[str]] = {}
    receipt_rows = (
        Vote.objects.filter(position_id=position.pk)
        .order_by("cast_at", "id")
        .values_list("candidate_id", "verification_receipt")
    )
    for candidate_id, receipt in receipt_rows:
        receipts_by_candidate.setdefault(int(candidate_id), []).append(str(receipt))
    for row in rows:
        row["receipts"] = receipts_by_candidate.get(int(row["id"]), [])
    return rows


def election_analytics(*, election_id: int) -> dict[str, object]:
    """Turnout, year-group demographics and the receipt-level audit trail.

    Votes for candidates that were later removed from the ballot still appear
    in the audit trail and are summarised under removed_candidates.
    """
    election = _get_election(election_id=election_id)

    votes = list(
        Vote.objects.filter(election=election)
        .select_related("position")
        .only(
            "verification_receipt",
            "candidate",
            "candidate_name",
            "voter_year_group",
            "cast_at",
            "position",
            "position__title",
        )
        .order_by("cast_at", "id")
    )

    demographics: dict[str, int] = {}
    for vote in votes:
        group = vote.voter_year_group or NOT_SPECIFIED_LABEL
        demographics[group] = demographics.get(group, 0) + 1

    current_ids = set(Candidate.objects.filter(election=election).values_list("id", flat=True))
    removed: dict[int, dict[str, object]] = {}
    for vote in votes:
        if vote.candidate_id in current_ids:
            continue
        entry = removed.setdefault(
            vote.candidate_id,
            {"candidate": vote.candidate_name, "position": vote.position.title, "tally": 0},
        )
        entry["tally"] = int(entry["tally"]) + 1

    return {
        "election_id": election.pk,
        "total_ballots_cast": len(votes),
        "demographics": demographics,
        "audit_trail": [
            {
                "receipt": vote.verification_receipt,
                "candidate": vote.candidate_name,
                "position": vote.position.title,
                "timestamp": vote.cast_at,
            }
            for vote in votes
        ],
        "removed_candidates": list(removed.values()),
    }


def candidate_scorecard(*, candidate_id: int) -> dict[str, object]:
    candidate = Candidate.objects.select_related("position").filter(pk=candidate_id).first()
    if candidate is None:
        raise NotFoundError("Candidate record not found.")

    personal = Vote.objects.filter(candidate_id=candidate.pk).count()
    # Every vote cast for the position, including any for removed candidates.
    position_total = Vote.objects.filter(position_id=candidate.position_id).count()

    return {
        "name": candidate.full_name,
        "position": candidate.position.title,
        "personal_tally": personal,
        "share_of_votes": f"{personal / position_total * 100:.2f}%" if position_total > 0 else "0%",
        "performance_index": personal / max(position_total, 1),
    }


def _position_result(*, position: Position) -> dict[str, object]:
    candidates = _candidates_with_tallies(position_id=position.pk)
    total = sum(c.tally for c in candidates)

    if not candidates:
        return {
            "position_id": position.pk,
            "position": position.title,
            "winner": NO_CANDIDATES_LABEL,
            "is_tie": False,
            "tied_candidates": [],
            "total_votes": 0,
            "margin": 0,
        }

    top = candidates[0].tally
    leaders = [c for c in candidates if c.tally == top]
    if len(leaders) >= 2:
        return {
            "position_id": position.pk,
            "position": position.title,
            "winner": TIE_LABEL,
            "is_tie": True,
            "tied_candidates": [c.full_name for c in leaders],
            "total_votes": total,
            "margin": 0,
        }

    runner_up = candidates[1].tally if len(candidates) > 1 else 0
    return {
        "position_id": position.pk,
        "position": position.title,
        "winner": candidates[0].full_name,
        "is_tie": False,
        "tied_candidates": [],
        "total_votes": total,
        "margin": top - runner_up,
    }


def official_winners(*, election_id: int) -> list[dict[str, object]]:
    election = _get_election(election_id=election_id)
    positions = Position.objects.filter(election=election).only("id", "title").order_by("id")
    return [_position_result(position=position) for position in positions]


def turnout(*, election_id: int) -> dict[str, object]:
    election = _get_election(election_id=election_id)
    return {
        "election_id": election.pk,
        "total_voters": VoterParticipation.objects.filter(election=election).count(),
        "total_votes_cast": Vote.objects.filter(election=election).count(),
        "timestamp": timezone.now(),
    }


def election_participants(*, election_id: int) -> list[dict[str, object]]:
    """Who took part. Never includes what anyone chose."""
    election = _get_election(election_id=election_id)
    return [
        {"voter_id": row.voter_id, "voted_at": row.first_voted_at}
        for row in VoterParticipation.objects.filter(election=election).only("voter_id", "first_voted_at")
    ]
