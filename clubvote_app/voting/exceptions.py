class ElectionError(Exception):
    kind = "ElectionError"


class ElectionNotOpenError(ElectionError):
    kind = "ElectionNotOpenError"


class DuplicateVoteError(ElectionError):
    kind = "DuplicateVoteError"


class InvalidStateError(ElectionError):
    kind = "InvalidStateError"


class InvalidBallotError(InvalidStateError):
    """The selected candidate is not on the ballot for the selected position."""

    kind = "InvalidBallotError"


class NotFoundError(ElectionError):
    kind = "NotFoundError"


class ConsistencyError(ElectionError):
    """An internal invariant failed or the store kept conflicting.

    Never shown verbatim to callers.
    """

    kind = "ConsistencyError"
