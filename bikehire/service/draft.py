"""
Booking Draft
-------------

The booking as the customer filled it in, before any bikes are assigned. It
is a plain value so it can be rebuilt from the request body, checked, and
passed through every stage of a submission unchanged.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Dict

from bikehire.models.util import SessionType
from bikehire.service.sizing import MIN_HEIGHT, MAX_HEIGHT
from bikehire.store.records import Slot

NAME_PATTERN = re.compile(r"^[\u0590-\u05FFa-zA-Z\s'-]+$")
PHONE_PATTERN = re.compile(r"^05\d{8}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

NAME_LENGTH = (2, 50)
EMAIL_MAX_LENGTH = 255


@dataclass
class RiderDraft:
    name: str
    height: float


@dataclass
class BookingDraft:
    date: date
    session: SessionType
    riders: List[RiderDraft]
    phone: str
    email: str
    coupon_code: Optional[str] = None

    @property
    def slot(self) -> Slot:
        return Slot(self.date, self.session)

    @property
    def heights(self) -> List[float]:
        return [rider.height for rider in self.riders]

    @classmethod
    def from_dict(cls, data: Dict) -> 'BookingDraft':
        return cls(
            date=data["date"],
            session=SessionType(data["session"]),
            riders=[RiderDraft(rider["name"], rider["height"]) for rider in data["riders"]],
            phone=data["phone"],
            email=data["email"],
            coupon_code=data.get("coupon_code") or None,
        )


def _rider_problems(rider: RiderDraft) -> List[str]:
    problems = []
    name = rider.name.strip()
    if not NAME_LENGTH[0] <= len(name) <= NAME_LENGTH[1]:
        problems.append(f"Name must be between {NAME_LENGTH[0]} and {NAME_LENGTH[1]} characters.")
    elif not NAME_PATTERN.match(name):
        problems.append("Name can only contain letters, spaces, hyphens and apostrophes.")
    if not MIN_HEIGHT <= rider.height <= MAX_HEIGHT:
        problems.append(f"Height must be between {MIN_HEIGHT} and {MAX_HEIGHT} cm.")
    return problems


def validate_draft(draft: BookingDraft) -> Dict[str, List[str]]:
    """
    Checks a draft for anything the customer has to fix.

    :return: The problems, keyed by field. Empty when the draft is valid.
    """
    errors: Dict[str, List[str]] = {}

    if not isinstance(draft.session, SessionType):
        errors["session"] = [f"Unknown session {draft.session!r}."]

    if not draft.riders:
        errors["riders"] = ["At least one rider is required."]

    for index, rider in enumerate(draft.riders):
        problems = _rider_problems(rider)
        if problems:
            errors[f"riders.{index}"] = problems

    if not PHONE_PATTERN.match(draft.phone.strip()):
        errors["phone"] = ["Phone must be a valid Israeli mobile number (05XXXXXXXX)."]

    email = draft.email.strip()
    if len(email) > EMAIL_MAX_LENGTH or not EMAIL_PATTERN.match(email):
        errors["email"] = ["Invalid email address."]

    return errors
