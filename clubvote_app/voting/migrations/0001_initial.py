from __future__ import annotations

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Election",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("cancelled", "Cancelled"),
                            ("upcoming", "Upcoming"),
                            ("voting", "Voting"),
                            ("completed", "Completed"),
                        ],
                        default="upcoming",
                        max_length=16,
                    ),
                ),
                ("is_results_public", models.BooleanField(default=False)),
                ("start_datetime", models.DateTimeField()),
                ("end_datetime", models.DateTimeField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ("-start_datetime", "id"),
            },
        ),
        migrations.CreateModel(
            name="Position",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("slots_available", models.PositiveSmallIntegerField(default=1)),
                ("min_participation_points", models.PositiveIntegerField(default=0)),
                ("eligible_years", models.JSONField(blank=True, default=list)),
                (
                    "election",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="positions",
                        to="voting.election",
                    ),
                ),
            ],
            options={
                "ordering": ("election", "id"),
            },
        ),
        migrations.CreateModel(
            name="CandidateApplication",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("member_id", models.CharField(max_length=255)),
                ("member_full_name", models.CharField(max_length=255)),
                ("statement_of_intent", models.TextField()),
                ("manifesto", models.TextField()),
                ("image_url", models.URLField(blank=True, default="", max_length=2048)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("under_review", "Under review"),
                            ("approved", "Approved"),
                            ("rejected", "Rejected"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("admin_remarks", models.TextField(blank=True, default="")),
                ("reviewed_by", models.CharField(blank=True, default="", max_length=255)),
                ("reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "election",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="applications",
                        to="voting.election",
                    ),
                ),
                (
                    "position",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="applications",
                        to="voting.position",
                    ),
                ),
            ],
            options={
                "ordering": ("-created_at", "id"),
                "constraints": [
                    models.UniqueConstraint(
                        fields=("member_id", "election", "position"),
                        name="uniq_application_member_election_position",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Candidate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("member_id", models.CharField(max_length=255)),
                ("full_name", models.CharField(max_length=255)),
                ("manifesto", models.TextField()),
                ("image_url", models.URLField(blank=True, default="", max_length=2048)),
                ("ballot_number", models.PositiveIntegerField()),
                ("promoted_at", models.DateTimeField(auto_now_add=True)),
                (
                    "application",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="candidate",
                        to="voting.candidateapplication",
                    ),
                ),
                (
                    "election",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="candidates",
                        to="voting.election",
                    ),
                ),
                (
                    "position",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="candidates",
                        to="voting.position",
                    ),
                ),
            ],
            options={
                "ordering": ("position", "ballot_number", "id"),
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(ballot_number__gte=1),
                        name="candidate_ballot_number_positive",
                    ),
                    models.UniqueConstraint(
                        deferrable=models.Deferrable.DEFERRED,
                        fields=("election", "position", "ballot_number"),
                        name="uniq_candidate_position_ballot_number",
                    ),
                    models.UniqueConstraint(
                        fields=("election", "position", "member_id"),
                        name="uniq_candidate_position_member",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Vote",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("voter_id", models.CharField(max_length=255)),
                ("candidate_name", models.CharField(max_length=255)),
                (
                    "voter_year_group",
                    models.CharField(
                        blank=True,
                        choices=[("1", "Year 1"), ("2", "Year 2"), ("3", "Year 3"), ("4", "Year 4")],
                        default="",
                        max_length=1,
                    ),
                ),
                ("verification_receipt", models.CharField(max_length=64, unique=True)),
                ("cast_at", models.DateTimeField(auto_now_add=True)),
                (
                    "candidate",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="votes",
                        to="voting.candidate",
                    ),
                ),
                (
                    "election",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="votes",
                        to="voting.election",
                    ),
                ),
                (
                    "position",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="votes",
                        to="voting.position",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("voter_id", "position"),
                        name="uniq_vote_voter_position",
                    ),
                ],
                "indexes": [
                    models.Index(fields=["election", "cast_at"], name="vote_el_cast_at"),
                ],
            },
        ),
        migrations.CreateModel(
            name="VoterParticipation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("voter_id", models.CharField(max_length=255)),
                ("ip_address", models.CharField(blank=True, default="", max_length=45)),
                ("user_agent", models.TextField(blank=True, default="")),
                ("first_voted_at", models.DateTimeField(auto_now_add=True)),
                (
                    "election",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="participations",
                        to="voting.election",
                    ),
                ),
            ],
            options={
                "ordering": ("first_voted_at", "id"),
                "constraints": [
                    models.UniqueConstraint(
                        fields=("voter_id", "election"),
                        name="uniq_participation_voter_election",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("timestamp", models.DateTimeField(auto_now_add=True)),
                ("event_type", models.CharField(max_length=64)),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("is_public", models.BooleanField(default=False)),
                (
                    "election",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="audit_log",
                        to="voting.election",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "Audit log entries",
                "ordering": ("timestamp", "id"),
                "indexes": [
                    models.Index(fields=["election", "timestamp"], name="audit_el_ts"),
                ],
            },
        ),
    ]
