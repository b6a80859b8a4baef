"""
Form validators run before any write.

Each validator maps required field names to the label shown to the person
filling the form and returns a ``ValidationResult``. Field rules:

- list fields (skills, interests, coding languages) need at least one entry
- terms acceptance must be exactly ``True``
- the selected hive must be an object carrying an ``id``
- everything else must be present and non-blank after trimming
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping

from hivecommunity.core.exceptions import ValidationError

TERMS_FIELD = "termsAccepted"
TERMS_MESSAGE = "You must accept the terms and conditions"

HIVE_REQUIRED_FIELDS: Dict[str, str] = {
    # Leader details
    "name": "Full Name",
    "mobile": "Mobile Number",
    "course": "Course",
    "branch": "Branch",
    "year": "Year of Study",
    "codingLanguages": "Coding Languages",
    # Campus
    "campusName": "Campus Name",
    "campusLocation": "Campus Location",
    # Hive
    "hiveName": "Hive Name",
    "expectedAudience": "Expected Audience",
    "facultyAdvisorName": "Faculty Advisor Name",
    "facultyAdvisorContact": "Faculty Advisor Contact",
    # Vision
    "leadershipExperience": "Leadership Experience",
    "longTermVision": "Long-term Vision",
    TERMS_FIELD: "Terms Acceptance",
}

MEMBER_REQUIRED_FIELDS: Dict[str, str] = {
    "name": "Full Name",
    "email": "Email Address",
    "skills": "Technical Skills",
    "interestedEvents": "Interested Events",
    "selectedHive": "Selected Hive",
    "heardAbout": "How did you hear about us",
    "mainGoal": "Main Goal",
    TERMS_FIELD: "Terms Acceptance",
}

EVENT_REQUIRED_FIELDS: Dict[str, str] = {
    "eventName": "Event Name",
    "eventType": "Event Type",
    "campus": "Campus Location",
    "startDate": "Start Date",
    "startTime": "Start Time",
    "duration": "Duration",
}

VOLUNTEER_REQUIRED_FIELDS: Dict[str, str] = {
    "volunteerId": "Volunteer Opportunity",
    "memberEmail": "Email Address",
    "memberName": "Full Name",
}

LIST_FIELDS: FrozenSet[str] = frozenset({"skills", "interestedEvents", "interests", "codingLanguages"})
OBJECT_FIELDS: FrozenSet[str] = frozenset({"selectedHive"})


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    missing_fields: List[str] = field(default_factory=list)

    def raise_for_errors(self, subject: str = "Form") -> None:
        if not self.is_valid:
            raise ValidationError(
                f"{subject} is missing required fields: {', '.join(self.errors)}",
                errors=self.errors,
                missing_fields=self.missing_fields,
            )


def _is_present(field_name: str, value: Any) -> bool:
    if field_name in LIST_FIELDS:
        return isinstance(value, (list, tuple, set)) and len(value) > 0
    if field_name in OBJECT_FIELDS:
        return isinstance(value, Mapping) and bool(value.get("id"))
    if field_name == TERMS_FIELD:
        return value is True
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) > 0
    return True


def validate_required(payload: Mapping[str, Any], required_fields: Mapping[str, str]) -> ValidationResult:
    """Check every required field of ``payload``"""
    errors: List[str] = []
    missing: List[str] = []

    for field_name, label in required_fields.items():
        if _is_present(field_name, payload.get(field_name)):
            continue
        missing.append(field_name)
        errors.append(TERMS_MESSAGE if field_name == TERMS_FIELD else f"{label} is required")

    return ValidationResult(is_valid=not errors, errors=errors, missing_fields=missing)


def validate_hive_data(payload: Mapping[str, Any]) -> ValidationResult:
    return validate_required(payload, HIVE_REQUIRED_FIELDS)


def validate_member_data(payload: Mapping[str, Any]) -> ValidationResult:
    return validate_required(payload, MEMBER_REQUIRED_FIELDS)


def validate_event_data(payload: Mapping[str, Any]) -> ValidationResult:
    return validate_required(payload, EVENT_REQUIRED_FIELDS)


def validate_volunteer_application(payload: Mapping[str, Any]) -> ValidationResult:
    return validate_required(payload, VOLUNTEER_REQUIRED_FIELDS)
