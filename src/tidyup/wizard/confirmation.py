"""Risk assessment and the confirmation protocol guarding deletion."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from tidyup.models.scan_result import FileEntry

log = logging.getLogger(__name__)

HIGH_RISK_COUNT = 500
MEDIUM_RISK_COUNT = 50
TYPED_PHRASE_COUNT = 1000
COUNTDOWN_SECONDS = 3
CONFIRM_PHRASE = "DELETE"

HIGH_RISK_CATEGORY = "package_managers"
MEDIUM_RISK_CATEGORY = "logs"
MAX_LOW_RISK_CATEGORIES = 2


class RiskTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Protocol(str, Enum):
    INSTANT = "instant"
    COUNTDOWN = "countdown"
    TYPED_PHRASE = "typed_phrase"


class GateState(str, Enum):
    AWAITING_DECISION = "awaiting_decision"
    COUNTDOWN_LOCKED = "countdown_locked"
    TYPED_PHRASE_REQUIRED = "typed_phrase_required"
    RESOLVED = "resolved"


class Decision(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    REVIEW_REQUESTED = "review_requested"


@dataclass(frozen=True, slots=True)
class RiskAssessment:
    tier: RiskTier
    protocol: Protocol
    file_count: int
    categories: tuple[str, ...]


def assess_risk(files: Sequence[FileEntry]) -> RiskAssessment:
    """Classify the blast radius of deleting ``files``."""
    count = len(files)
    categories = tuple(sorted({f.category for f in files}))

    if count > HIGH_RISK_COUNT or HIGH_RISK_CATEGORY in categories:
        tier = RiskTier.HIGH
    elif (
        count >= MEDIUM_RISK_COUNT
        or MEDIUM_RISK_CATEGORY in categories
        or len(categories) > MAX_LOW_RISK_CATEGORIES
    ):
        tier = RiskTier.MEDIUM
    else:
        tier = RiskTier.LOW

    if tier is not RiskTier.HIGH:
        protocol = Protocol.INSTANT
    elif count > TYPED_PHRASE_COUNT:
        protocol = Protocol.TYPED_PHRASE
    else:
        protocol = Protocol.COUNTDOWN

    return RiskAssessment(tier=tier, protocol=protocol, file_count=count, categories=categories)


class ConfirmationGate:
    """State machine enforcing the protocol chosen by the risk assessment.

    The gate never decides on its own: the countdown only unlocks the
    confirm action, and the typed phrase has to match exactly before
    ``request_confirm`` succeeds. Cancel is always available.
    """

    def __init__(self, files: Sequence[FileEntry], assessment: RiskAssessment | None = None) -> None:
        self.files: tuple[FileEntry, ...] = tuple(files)
        self.assessment = assessment or assess_risk(self.files)
        self.required_phrase = CONFIRM_PHRASE
        self.typed_buffer = ""
        self.seconds_remaining = 0
        self.decision = Decision.PENDING

        match self.assessment.protocol:
            case Protocol.INSTANT:
                self.state = GateState.AWAITING_DECISION
            case Protocol.COUNTDOWN:
                self.state = GateState.COUNTDOWN_LOCKED
                self.seconds_remaining = COUNTDOWN_SECONDS
            case Protocol.TYPED_PHRASE:
                self.state = GateState.TYPED_PHRASE_REQUIRED

    @property
    def tier(self) -> RiskTier:
        return self.assessment.tier

    @property
    def total_size(self) -> int:
        return sum(f.size_bytes for f in self.files)

    @property
    def resolved(self) -> bool:
        return self.state is GateState.RESOLVED

    @property
    def confirmed(self) -> bool:
        return self.decision is Decision.CONFIRMED

    def tick(self) -> None:
        """Advance the countdown by one elapsed second."""
        if self.state is not GateState.COUNTDOWN_LOCKED:
            return
        self.seconds_remaining = max(0, self.seconds_remaining - 1)
        if self.seconds_remaining == 0:
            self.state = GateState.AWAITING_DECISION

    def type_key(self, char: str) -> None:
        """Append one keystroke to the phrase buffer, uppercased."""
        if self.state is GateState.TYPED_PHRASE_REQUIRED and len(char) == 1 and char.isprintable():
            self.typed_buffer += char.upper()

    def paste(self, text: str) -> None:
        """Replace the phrase buffer with pasted text, kept as pasted."""
        if self.state is GateState.TYPED_PHRASE_REQUIRED:
            self.typed_buffer = text

    def backspace(self) -> None:
        if self.state is GateState.TYPED_PHRASE_REQUIRED:
            self.typed_buffer = self.typed_buffer[:-1]

    @property
    def phrase_matches(self) -> bool:
        """Case-insensitive, but otherwise exact: no surrounding whitespace."""
        return self.typed_buffer.upper() == self.required_phrase

    def request_confirm(self) -> bool:
        match self.state:
            case GateState.AWAITING_DECISION:
                pass
            case GateState.TYPED_PHRASE_REQUIRED if self.phrase_matches:
                pass
            case _:
                log.debug("Confirm rejected in state %s", self.state.value)
                return False
        self._resolve(Decision.CONFIRMED)
        return True

    def request_cancel(self) -> bool:
        self._resolve(Decision.CANCELLED)
        return True

    def request_review(self) -> bool:
        if self.state is GateState.RESOLVED:
            return False
        self._resolve(Decision.REVIEW_REQUESTED)
        return True

    def _resolve(self, decision: Decision) -> None:
        self.state = GateState.RESOLVED
        self.decision = decision
        log.info(
            "Confirmation %s for %d files (%s risk)",
            decision.value,
            len(self.files),
            self.tier.value,
        )
