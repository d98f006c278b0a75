import logging
from typing import Any, override

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from voting.models import Candidate, Position

logger = logging.getLogger(__name__)


def _ballot_numbers(position: Position) -> list[int]:
    return list(
        Candidate.objects.filter(position=position).order_by("ballot_number").values_list("ballot_number", flat=True)
    )


def _is_dense(numbers: list[int]) -> bool:
    return numbers == list(range(1, len(numbers) + 1))


class Command(BaseCommand):
    help = "Check that every position's ballot numbers run 1..N without gaps or duplicates."

    @override
    def add_arguments(self, parser) -> None:
        parser.add_argument("--election", type=int, help="Only check positions of this election id.")
        parser.add_argument(
            "--repair",
            action="store_true",
            help="Renumber broken ballots in promotion order.",
        )

    def _repair(self, *, position_id: int) -> int:
        with transaction.atomic():
            Position.objects.select_for_update().filter(pk=position_id).first()
            candidates = list(
                Candidate.objects.select_for_update()
                .filter(position_id=position_id)
                .order_by("promoted_at", "id")
            )
            changed = 0
            for number, candidate in enumerate(candidates, start=1):
                if candidate.ballot_number != number:
                    candidate.ballot_number = number
                    candidate.save(update_fields=["ballot_number"])
                    changed += 1
        return changed

    @override
    def handle(self, *args: Any, **options: Any) -> None:
        positions = Position.objects.select_related("election").order_by("election_id", "id")
        election_id = options.get("election")
        if election_id is not None:
            positions = positions.filter(election_id=election_id)
            if not positions.exists():
                raise CommandError(f"No positions found for election {election_id}.")

        broken = 0
        for position in positions:
            numbers = _ballot_numbers(position)
            if _is_dense(numbers):
                continue

            broken += 1
            self.stdout.write(f"election={position.election_id} position={position.pk} ({position.title}): {numbers}")
            if options.get("repair"):
                changed = self._repair(position_id=position.pk)
                logger.warning("Repaired ballot numbering for position=%s; %d candidates renumbered", position.pk, changed)
                self.stdout.write(f"  repaired, {changed} renumbered")

        if broken == 0:
            self.stdout.write(self.style.SUCCESS("All ballots are densely numbered."))
        elif not options.get("repair"):
            raise CommandError(f"{broken} position(s) have broken ballot numbering. Re-run with --repair to fix.")
