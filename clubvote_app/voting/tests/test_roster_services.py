from django.test import TestCase

from voting.exceptions import ConsistencyError, InvalidStateError, NotFoundError
from voting.models import AuditLogEntry, Candidate, CandidateApplication, Vote
from voting.roster_services import disqualify_candidate, promote_application, withdraw_candidacy
from voting.tests.utils_test_data import (
    ballot_numbers,
    make_application,
    make_candidate,
    make_election,
    make_position,
    make_votes,
)


class PromoteApplicationTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.election = make_election(status="upcoming")
        self.position = make_position(self.election)

    def test_promotions_get_consecutive_ballot_numbers(self) -> None:
        apps = [make_application(self.position, member_id=name) for name in ("alice", "bob", "carol")]

        candidates = [promote_application(application_id=app.pk, actor="admin") for app in apps]

        self.assertEqual([c.ballot_number for c in candidates], [1, 2, 3])
        self.assertEqual(candidates[0].full_name, "Alice")
        self.assertEqual(candidates[0].manifesto, "alice manifesto")
        self.assertEqual(ballot_numbers(self.position), [1, 2, 3])

    def test_promotion_is_idempotent(self) -> None:
        app = make_application(self.position, member_id="alice")

        first = promote_application(application_id=app.pk)
        second = promote_application(application_id=app.pk)

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(Candidate.objects.count(), 1)
        self.assertEqual(AuditLogEntry.objects.filter(event_type="candidate_promoted").count(), 1)

    def test_promotion_records_public_audit_entry_with_actor(self) -> None:
        app = make_application(self.position, member_id="alice")

        candidate = promote_application(application_id=app.pk, actor="admin")

        entry = AuditLogEntry.objects.get(event_type="candidate_promoted")
        self.assertTrue(entry.is_public)
        self.assertEqual(entry.payload["candidate_id"], candidate.pk)
        self.assertEqual(entry.payload["actor"], "admin")

    def test_non_approved_application_is_rejected(self) -> None:
        for status in ("pending", "under_review", "rejected"):
            app = make_application(self.position, member_id=f"m-{status}", status=status)
            with self.subTest(status=status):
                with self.assertRaises(InvalidStateError) as ctx:
                    promote_application(application_id=app.pk)
                self.assertIn("approved", str(ctx.exception))

        self.assertFalse(Candidate.objects.exists())

    def test_missing_application_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            promote_application(application_id=999999)

    def test_numbers_continue_after_removal(self) -> None:
        apps = [make_application(self.position, member_id=name) for name in ("alice", "bob", "carol")]
        candidates = [promote_application(application_id=app.pk) for app in apps]

        disqualify_candidate(candidate_id=candidates[0].pk, actor="admin", reason="Ineligible")
        late = make_application(self.position, member_id="dave")
        dave = promote_application(application_id=late.pk)

        self.assertEqual(dave.ballot_number, 3)
        self.assertEqual(ballot_numbers(self.position), [1, 2, 3])

    def test_positions_are_numbered_independently(self) -> None:
        other = make_position(self.election, title="Treasurer")

        a = promote_application(application_id=make_application(self.position, member_id="alice").pk)
        b = promote_application(application_id=make_application(other, member_id="bob").pk)

        self.assertEqual((a.ballot_number, b.ballot_number), (1, 1))


class DisqualifyCandidateTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.election = make_election()
        self.position = make_position(self.election)
        self.apps = [make_application(self.position, member_id=name) for name in ("alice", "bob", "carol", "dave")]
        self.candidates = [promote_application(application_id=app.pk) for app in self.apps]

    def test_removal_resequences_later_candidates(self) -> None:
        result = disqualify_candidate(candidate_id=self.candidates[1].pk, actor="admin", reason="Rule breach")

        self.assertEqual(result["message"], "Disqualified and ballot re-sequenced")
        self.assertEqual(result["resequenced"], 2)
        self.assertEqual(ballot_numbers(self.position), [1, 2, 3])
        remaining = dict(Candidate.objects.values_list("member_id", "ballot_number"))
        self.assertEqual(remaining, {"alice": 1, "carol": 2, "dave": 3})

    def test_removing_last_candidate_shifts_nothing(self) -> None:
        result = disqualify_candidate(candidate_id=self.candidates[3].pk, actor="admin", reason="Rule breach")

        self.assertEqual(result["resequenced"], 0)
        self.assertEqual(ballot_numbers(self.position), [1, 2, 3])

    def test_application_is_rejected_with_reason(self) -> None:
        disqualify_candidate(candidate_id=self.candidates[0].pk, actor="admin", reason="Missed deadline")

        app = CandidateApplication.objects.get(pk=self.apps[0].pk)
        self.assertEqual(app.status, CandidateApplication.Status.rejected)
        self.assertEqual(app.admin_remarks, "DISQUALIFIED: Missed deadline")
        self.assertEqual(app.reviewed_by, "admin")
        self.assertIsNotNone(app.reviewed_at)

    def test_votes_for_removed_candidate_are_untouched(self) -> None:
        target = self.candidates[0]
        votes = make_votes(target, 3)

        disqualify_candidate(candidate_id=target.pk, actor="admin", reason="Rule breach")

        self.assertEqual(Vote.objects.filter(candidate_id=target.pk).count(), 3)
        self.assertEqual(
            set(Vote.objects.values_list("verification_receipt", flat=True)),
            {v.verification_receipt for v in votes},
        )

    def test_blank_reason_is_rejected(self) -> None:
        with self.assertRaises(InvalidStateError):
            disqualify_candidate(candidate_id=self.candidates[0].pk, actor="admin", reason="  ")
        self.assertEqual(Candidate.objects.count(), 4)

    def test_unknown_candidate_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            disqualify_candidate(candidate_id=999999, actor="admin", reason="x")

    def test_repeated_removals_keep_ballot_dense(self) -> None:
        for candidate in (self.candidates[2], self.candidates[0], self.candidates[3]):
            disqualify_candidate(candidate_id=candidate.pk, actor="admin", reason="x")
            numbers = ballot_numbers(self.position)
            self.assertEqual(numbers, list(range(1, len(numbers) + 1)))

        self.assertEqual(list(Candidate.objects.values_list("member_id", "ballot_number")), [("bob", 1)])

    def test_private_audit_entry_is_recorded(self) -> None:
        disqualify_candidate(candidate_id=self.candidates[0].pk, actor="admin", reason="Rule breach")

        entry = AuditLogEntry.objects.get(event_type="candidate_disqualified")
        self.assertFalse(entry.is_public)
        self.assertEqual(entry.payload["reason"], "Rule breach")
        self.assertEqual(entry.payload["ballot_number"], 1)

    def test_broken_numbering_is_reported_as_consistency_error(self) -> None:
        # A gap that predates the removal cannot be closed by shifting.
        Candidate.objects.filter(pk=self.candidates[3].pk).update(ballot_number=9)

        with self.assertRaises(ConsistencyError):
            disqualify_candidate(candidate_id=self.candidates[0].pk, actor="admin", reason="x")

        self.assertEqual(Candidate.objects.count(), 4)


class WithdrawCandidacyTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.election = make_election(status="upcoming")
        self.position = make_position(self.election)

    def test_withdrawing_pending_application_deletes_it(self) -> None:
        app = make_application(self.position, member_id="alice", status="pending")

        result = withdraw_candidacy(actor="alice", application_id=app.pk)

        self.assertEqual(result["application_id"], app.pk)
        self.assertIsNone(result["candidate_id"])
        self.assertFalse(CandidateApplication.objects.exists())

    def test_withdrawing_ballot_entry_resequences(self) -> None:
        apps = [make_application(self.position, member_id=name) for name in ("alice", "bob", "carol")]
        candidates = [promote_application(application_id=app.pk) for app in apps]

        result = withdraw_candidacy(actor="alice", candidate_id=candidates[0].pk)

        self.assertEqual(result["resequenced"], 2)
        self.assertEqual(ballot_numbers(self.position), [1, 2])
        self.assertFalse(CandidateApplication.objects.filter(pk=apps[0].pk).exists())

    def test_withdrawing_promoted_application_removes_ballot_entry(self) -> None:
        app = make_application(self.position, member_id="alice")
        promote_application(application_id=app.pk)

        withdraw_candidacy(actor="alice", application_id=app.pk)

        self.assertFalse(Candidate.objects.exists())

    def test_other_members_cannot_withdraw(self) -> None:
        app = make_application(self.position, member_id="alice")
        candidate = promote_application(application_id=app.pk)

        with self.assertRaises(NotFoundError):
            withdraw_candidacy(actor="mallory", application_id=app.pk)
        with self.assertRaises(NotFoundError):
            withdraw_candidacy(actor="mallory", candidate_id=candidate.pk)

        self.assertTrue(Candidate.objects.filter(pk=candidate.pk).exists())

    def test_exactly_one_identifier_is_required(self) -> None:
        with self.assertRaises(InvalidStateError):
            withdraw_candidacy(actor="alice")
        with self.assertRaises(InvalidStateError):
            withdraw_candidacy(actor="alice", application_id=1, candidate_id=1)

    def test_direct_ballot_entry_without_application(self) -> None:
        make_candidate(self.position, member_id="alice", ballot_number=1)
        bob = make_candidate(self.position, member_id="bob", ballot_number=2)

        withdraw_candidacy(actor="bob", candidate_id=bob.pk)

        self.assertEqual(ballot_numbers(self.position), [1])
