"""Voter-side verification of a cast vote by its receipt."""

from __future__ import annotations

import re

from voting.exceptions import NotFoundError
from voting.models import Candidate, Vote

_RECEIPT_RE = re.compile(r"^VR-[0-9A-F]{6,40}-[0-9]{10,16}$")

STATUS_COUNTED = "Verified & Counted"
STATUS_CANDIDATE_REMOVED = "Recorded (candidate removed from ballot)"


def normalize_receipt(receipt: str | None) -> str:
    return str(receipt or "").strip().upper()


def is_well_formed_receipt(receipt: str) -> bool:
    return bool(_RECEIPT_RE.fullmatch(receipt))


def verify_receipt(*, receipt: str | None) -> dict[str, object]:
    """Resolve a receipt to what it recorded.

    The receipt is the only credential: the response never includes the voter
    identity or any other vote.
    """
    token = normalize_receipt(receipt)
    if not token or not is_well_formed_receipt(token):
        raise NotFoundError("Invalid verification receipt. This vote was not found.")

    vote = (
        Vote.objects.select_related("election", "position")
        .only(
            "candidate",
            "candidate_name",
            "cast_at",
            "election",
            "election__title",
            "position",
            "position__title",
        )
        .filter(verification_receipt=token)
        .first()
    )
    if vote is None:
        raise NotFoundError("Invalid verification receipt. This vote was not found.")

    on_ballot = Candidate.objects.filter(pk=vote.candidate_id).exists()
    return {
        "election": vote.election.title,
        "position": vote.position.title,
        "candidate": vote.candidate_name,
        "timestamp": vote.cast_at,
        "status": STATUS_COUNTED if on_ballot else STATUS_CANDIDATE_REMOVED,
    }
