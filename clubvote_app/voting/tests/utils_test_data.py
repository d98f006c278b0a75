import datetime

from django.utils import timezone

from voting.models import Candidate, CandidateApplication, Election, Position, Vote


def make_election(
    *,
    title: str = "Student Council 2026",
    status: str = Election.Status.voting,
    is_results_public: bool = False,
) -> Election:
    now = timezone.now()
    return Election.objects.create(
        title=title,
        status=status,
        is_results_public=is_results_public,
        start_datetime=now - datetime.timedelta(days=1),
        end_datetime=now + datetime.timedelta(days=1),
    )


def make_position(election: Election, *, title: str = "President") -> Position:
    return Position.objects.create(election=election, title=title)


def make_application(
    position: Position,
    *,
    member_id: str,
    full_name: str = "",
    status: str = CandidateApplication.Status.approved,
) -> CandidateApplication:
    return CandidateApplication.objects.create(
        member_id=member_id,
        member_full_name=full_name or member_id.title(),
        election_id=position.election_id,
        position=position,
        statement_of_intent="I want to serve.",
        manifesto=f"{member_id} manifesto",
        status=status,
    )


def make_candidate(position: Position, *, member_id: str, ballot_number: int, full_name: str = "") -> Candidate:
    return Candidate.objects.create(
        election_id=position.election_id,
        position=position,
        member_id=member_id,
        full_name=full_name or member_id.title(),
        manifesto=f"{member_id} manifesto",
        ballot_number=ballot_number,
    )


def make_votes(candidate: Candidate, count: int, *, year_group: str = "") -> list[Vote]:
    votes = []
    for i in range(count):
        votes.append(
            Vote.objects.create(
                voter_id=f"voter-{candidate.pk}-{i}",
                election_id=candidate.election_id,
                position_id=candidate.position_id,
                candidate=candidate,
                candidate_name=candidate.full_name,
                voter_year_group=year_group,
                verification_receipt=Vote.generate_receipt(),
            )
        )
    return votes


def ballot_numbers(position: Position) -> list[int]:
    return list(
        Candidate.objects.filter(position=position).order_by("ballot_number").values_list("ballot_number", flat=True)
    )
