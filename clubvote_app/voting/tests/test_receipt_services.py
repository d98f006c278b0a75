from django.test import TestCase

from voting.exceptions import NotFoundError
from voting.receipt_services import STATUS_CANDIDATE_REMOVED, STATUS_COUNTED, verify_receipt
from voting.roster_services import disqualify_candidate
from voting.tests.utils_test_data import make_candidate, make_election, make_position, make_votes


class VerifyReceiptTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.election = make_election()
        self.position = make_position(self.election)
        self.alice = make_candidate(self.position, member_id="alice", ballot_number=1)
        [self.vote] = make_votes(self.alice, 1)

    def test_valid_receipt_resolves_to_recorded_choice(self) -> None:
        result = verify_receipt(receipt=self.vote.verification_receipt)

        self.assertEqual(result["election"], "Student Council 2026")
        self.assertEqual(result["position"], "President")
        self.assertEqual(result["candidate"], "Alice")
        self.assertEqual(result["status"], STATUS_COUNTED)
        self.assertEqual(result["timestamp"], self.vote.cast_at)
        self.assertNotIn("voter_id", result)

    def test_receipt_lookup_ignores_case_and_whitespace(self) -> None:
        result = verify_receipt(receipt=f"  {self.vote.verification_receipt.lower()} ")
        self.assertEqual(result["candidate"], "Alice")

    def test_unknown_receipt_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            verify_receipt(receipt="VR-0123456789ABCDEF0123-1700000000000")
        self.assertIn("not found", str(ctx.exception))

    def test_malformed_or_missing_receipt_is_not_found(self) -> None:
        for receipt in (None, "", "not-a-receipt", "VR--123"):
            with self.subTest(receipt=receipt):
                with self.assertRaises(NotFoundError):
                    verify_receipt(receipt=receipt)

    def test_receipt_still_verifies_after_candidate_removal(self) -> None:
        disqualify_candidate(candidate_id=self.alice.pk, actor="admin", reason="Rule breach")

        result = verify_receipt(receipt=self.vote.verification_receipt)

        self.assertEqual(result["candidate"], "Alice")
        self.assertEqual(result["status"], STATUS_CANDIDATE_REMOVED)
