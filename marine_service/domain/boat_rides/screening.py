"""
Screening of boat ride requests.

Special requests are matched against a list of words and phrases that staff
want to see before a ride is confirmed. Large groups always get the terms
reminder even when nothing is flagged.
"""

from pydantic import BaseModel, Field

FLAGGED_KEYWORDS = (
    "party",
    "alcohol",
    "drinking",
    "drunk",
    "wild",
    "crazy",
    "damage",
    "loud",
    "noise",
    "inappropriate",
    "illegal",
    "drugs",
    "smoking",
    "bachelor",
    "bachelorette",
    "strip",
)

CONCERNING_PHRASES = (
    "bring our own alcohol",
    "party hard",
    "get wild",
    "no rules",
    "anything goes",
    "break things",
)

LARGE_GROUP_SIZE = 15


class Screening(BaseModel):
    flagged: bool = False
    reasons: list[str] = Field(default_factory=list)
    risk_level: str = "LOW"
    requires_terms_reminder: bool = False

    @property
    def terms_reason(self) -> str:
        if self.flagged:
            return "content_review"
        if self.requires_terms_reminder:
            return "large_group"
        return "standard_review"


def screen_request(special_requests: str, passengers: int) -> Screening:
    text = (special_requests or "").lower()
    result = Screening()

    for keyword in FLAGGED_KEYWORDS:
        if keyword in text:
            result.reasons.append(f'Contains keyword: "{keyword}"')

    phrase_hit = False
    for phrase in CONCERNING_PHRASES:
        if phrase in text:
            phrase_hit = True
            result.reasons.append(f'Contains concerning phrase: "{phrase}"')

    result.flagged = bool(result.reasons)

    if passengers > LARGE_GROUP_SIZE:
        result.requires_terms_reminder = True
        result.reasons.append(f"Large group ({passengers} passengers) - Terms reminder recommended")

    if result.flagged:
        result.requires_terms_reminder = True
        # A concerning phrase is always high risk
        result.risk_level = "HIGH" if phrase_hit or len(result.reasons) > 2 else "MEDIUM"

    return result
