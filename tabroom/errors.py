from typing import Optional


class ScoringError(Exception):
    """
    Base class for rejected scoring operations.

    Every subclass is recoverable: the operation was rejected and nothing
    was written. `kind` is the stable name surfaced to callers, `detail`
    is a human readable explanation.
    """

    kind = "ScoringError"
    retryable = False

    def __init__(self, detail: str = None):
        self.detail = detail or self.kind
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {
            'error': self.kind,
            'detail': self.detail,
            'retryable': self.retryable,
        }


class InvalidRankingSetSize(ScoringError):
    kind = "InvalidRankingSetSize"

    def __init__(self, size: int, expected: int = 6):
        self.size = size
        super().__init__(f"Must rank exactly {expected} speakers, got {size}")


class RankOutOfRange(ScoringError):
    kind = "RankOutOfRange"

    def __init__(self, speaker_id: str, rank):
        self.speaker_id = speaker_id
        self.rank = rank
        super().__init__(f"Rank {rank!r} for speaker {speaker_id} is not an integer between 1 and 6")


class DuplicateOrMissingRank(ScoringError):
    kind = "DuplicateOrMissingRank"

    def __init__(self, duplicates: list, missing: list):
        self.duplicates = duplicates
        self.missing = missing
        super().__init__(f"Ranks must be 1 to 6 exactly once (duplicated: {duplicates}, missing: {missing})")


class JudgeNotAssigned(ScoringError):
    kind = "JudgeNotAssigned"

    def __init__(self, judge_id: str, debate_id: str):
        self.judge_id = judge_id
        self.debate_id = debate_id
        super().__init__(f"Judge {judge_id} is not assigned to debate {debate_id}")


class UnknownSpeakerInRanking(ScoringError):
    kind = "UnknownSpeakerInRanking"

    def __init__(self, speaker_id: str, debate_id: str, reason: Optional[str] = None):
        self.speaker_id = speaker_id
        self.debate_id = debate_id
        super().__init__(reason or f"Speaker {speaker_id} is not a speaker in debate {debate_id}")


class TransactionFailure(ScoringError):
    """Storage fault during an atomic write. All changes were rolled back."""

    kind = "TransactionFailure"
    retryable = True


class InvalidImportPayload(ScoringError):
    kind = "InvalidImportPayload"
