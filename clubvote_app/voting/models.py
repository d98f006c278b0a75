from __future__ import annotations

import secrets
import time

from django.db import models
from django.db.models import Q


class YearGroup(models.TextChoices):
    first = "1", "Year 1"
    second = "2", "Year 2"
    third = "3", "Year 3"
    fourth = "4", "Year 4"


class ElectionQuerySet(models.QuerySet["Election"]):
    def voting(self) -> ElectionQuerySet:
        return self.filter(status=Election.Status.voting)


class Election(models.Model):
    """An election. Created and scheduled by election administration, read-only here."""

    class Status(models.TextChoices):
        cancelled = "cancelled", "Cancelled"
        upcoming = "upcoming", "Upcoming"
        voting = "voting", "Voting"
        completed = "completed", "Completed"

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.upcoming)
    is_results_public = models.BooleanField(default=False)
    start_datetime = models.DateTimeField()
    end_datetime = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    objects = ElectionQuerySet.as_manager()

    class Meta:
        ordering = ("-start_datetime", "id")

    def __str__(self) -> str:
        return self.title


class Position(models.Model):
    election = models.ForeignKey(Election, on_delete=models.CASCADE, related_name="positions")
    title = models.CharField(max_length=255)
    slots_available = models.PositiveSmallIntegerField(default=1)
    min_participation_points = models.PositiveIntegerField(default=0)
    # Optional restriction to specific year groups; empty means everyone.
    eligible_years = models.JSONField(blank=True, default=list)

    class Meta:
        ordering = ("election", "id")

    def __str__(self) -> str:
        return f"{self.title} ({self.election_id})"


class CandidateApplication(models.Model):
    class Status(models.TextChoices):
        pending = "pending", "Pending"
        under_review = "under_review", "Under review"
        approved = "approved", "Approved"
        rejected = "rejected", "Rejected"

    # Member identifiers come from the external identity layer.
    member_id = models.CharField(max_length=255)
    member_full_name = models.CharField(max_length=255)
    election = models.ForeignKey(Election, on_delete=models.CASCADE, related_name="applications")
    position = models.ForeignKey(Position, on_delete=models.CASCADE, related_name="applications")

    statement_of_intent = models.TextField()
    manifesto = models.TextField()
    image_url = models.URLField(blank=True, default="", max_length=2048)

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.pending)
    admin_remarks = models.TextField(blank=True, default="")
    reviewed_by = models.CharField(max_length=255, blank=True, default="")
    reviewed_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at", "id")
        constraints = [
            models.UniqueConstraint(
                fields=["member_id", "election", "position"],
                name="uniq_application_member_election_position",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.member_id}:{self.position_id}:{self.status}"


class CandidateQuerySet(models.QuerySet["Candidate"]):
    def on_ballot(self, *, election_id: int, position_id: int) -> CandidateQuerySet:
        return self.filter(election_id=election_id, position_id=position_id)


class Candidate(models.Model):
    """A ballot entry promoted from an approved application."""

    election = models.ForeignKey(Election, on_delete=models.CASCADE, related_name="candidates")
    position = models.ForeignKey(Position, on_delete=models.CASCADE, related_name="candidates")
    member_id = models.CharField(max_length=255)
    application = models.OneToOneField(
        CandidateApplication,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="candidate",
    )

    # Snapshotted from the application at promotion time.
    full_name = models.CharField(max_length=255)
    manifesto = models.TextField()
    image_url = models.URLField(blank=True, default="", max_length=2048)

    ballot_number = models.PositiveIntegerField()
    promoted_at = models.DateTimeField(auto_now_add=True)

    objects = CandidateQuerySet.as_manager()

    class Meta:
        ordering = ("position", "ballot_number", "id")
        constraints = [
            models.CheckConstraint(
                condition=Q(ballot_number__gte=1),
                name="candidate_ballot_number_positive",
            ),
            # Deferred so resequencing can shift numbers down in a single UPDATE.
            models.UniqueConstraint(
                fields=["election", "position", "ballot_number"],
                name="uniq_candidate_position_ballot_number",
                deferrable=models.Deferrable.DEFERRED,
            ),
            models.UniqueConstraint(
                fields=["election", "position", "member_id"],
                name="uniq_candidate_position_member",
            ),
        ]

    def __str__(self) -> str:
        return f"#{self.ballot_number} {self.full_name} ({self.position_id})"


class Vote(models.Model):
    """A cast ballot for one position. Never updated, never deleted."""

    # Kept for uniqueness enforcement and audit only. Not a FK to any user row.
    voter_id = models.CharField(max_length=255)
    election = models.ForeignKey(Election, on_delete=models.CASCADE, related_name="votes")
    position = models.ForeignKey(Position, on_delete=models.CASCADE, related_name="votes")

    # Not a database-level FK: removing a candidate from the ballot must leave
    # already-cast votes untouched. Use candidate_name for display.
    candidate = models.ForeignKey(
        Candidate,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="votes",
    )
    candidate_name = models.CharField(max_length=255)

    voter_year_group = models.CharField(max_length=1, choices=YearGroup.choices, blank=True, default="")
    verification_receipt = models.CharField(max_length=64, unique=True)
    cast_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["voter_id", "position"],
                name="uniq_vote_voter_position",
            ),
        ]
        indexes = [
            models.Index(fields=["election", "cast_at"], name="vote_el_cast_at"),
        ]

    def __str__(self) -> str:
        return f"vote:{self.position_id}:{self.verification_receipt}"

    @classmethod
    def generate_receipt(cls) -> str:
        millis = int(time.time() * 1000)
        return f"VR-{secrets.token_hex(10).upper()}-{millis}"


class VoterParticipation(models.Model):
    """That a member voted in an election, never what they chose."""

    voter_id = models.CharField(max_length=255)
    election = models.ForeignKey(Election, on_delete=models.CASCADE, related_name="participations")
    ip_address = models.CharField(max_length=45, blank=True, default="")
    user_agent = models.TextField(blank=True, default="")
    first_voted_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("first_voted_at", "id")
        constraints = [
            models.UniqueConstraint(
                fields=["voter_id", "election"],
                name="uniq_participation_voter_election",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.voter_id}:{self.election_id}"


class AuditLogEntry(models.Model):
    election = models.ForeignKey(Election, on_delete=models.CASCADE, related_name="audit_log")
    timestamp = models.DateTimeField(auto_now_add=True)
    event_type = models.CharField(max_length=64)
    payload = models.JSONField(blank=True, default=dict)
    is_public = models.BooleanField(default=False)

    class Meta:
        verbose_name_plural = "Audit log entries"
        ordering = ("timestamp", "id")
        indexes = [
            models.Index(fields=["election", "timestamp"], name="audit_el_ts"),
        ]

    def __str__(self) -> str:
        return f"{self.election_id}:{self.event_type}"
