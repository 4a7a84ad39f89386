"""Removal reasons and the removal value object."""

from dataclasses import dataclass
from enum import Enum

from waitlist.core.exceptions import ValidationError


class RemovalReason(str, Enum):
    """Closed set of causes for leaving a waiting list."""

    TRAINING_PLACE = "training_place"
    MEMBER_REQUEST = "member_request"
    INACTIVITY = "inactivity"
    FAILED_REQUIREMENTS = "failed_requirements"
    TRANSFERRED = "transferred"
    OTHER = "other"

    @property
    def label(self) -> str:
        return _REMOVAL_REASON_LABELS[self]

    @classmethod
    def form_options(cls) -> list[dict[str, str]]:
        """[{value, label}] pairs in declaration order."""
        return [{"value": reason.value, "label": reason.label} for reason in cls]


_REMOVAL_REASON_LABELS: dict[RemovalReason, str] = {
    RemovalReason.TRAINING_PLACE: "Training place offered",
    RemovalReason.MEMBER_REQUEST: "Requested by member",
    RemovalReason.INACTIVITY: "Inactive on the network",
    RemovalReason.FAILED_REQUIREMENTS: "Eligibility requirements not met",
    RemovalReason.TRANSFERRED: "Transferred to another division",
    RemovalReason.OTHER: "Other",
}


@dataclass(frozen=True)
class Removal:
    """Why, and by whom, an account is leaving a waiting list."""

    reason: RemovalReason
    actor_id: int
    custom_reason: str = ""

    def validate(self) -> None:
        try:
            reason = RemovalReason(self.reason)
        except ValueError:
            raise ValidationError(f"Unknown removal reason: {self.reason!r}") from None
        # Plain strings such as "other" are accepted and normalised to the enum
        object.__setattr__(self, "reason", reason)
        if reason is RemovalReason.OTHER and not (self.custom_reason or "").strip():
            raise ValidationError(
                "A custom reason is required when the removal reason is 'other'",
                details={"field": "custom_reason"},
            )

    @property
    def comment(self) -> str | None:
        """Free text stored with the removal (only kept for 'other')."""
        if self.reason == RemovalReason.OTHER:
            return self.custom_reason.strip()
        return None
