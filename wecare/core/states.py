from enum import Enum

class Role(str, Enum):
    DONOR = "donor"
    RECEIVER = "receiver"
    ADMIN = "admin"

class DonationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    COMPLETED = "completed"

# forward-only; completed is terminal
TRANSITIONS = {
    (DonationStatus.PENDING,  DonationStatus.ACCEPTED),
    (DonationStatus.ACCEPTED, DonationStatus.COMPLETED),
}

def can_transition(src: str, dst: str) -> bool:
    try:
        return (DonationStatus(src), DonationStatus(dst)) in TRANSITIONS
    except ValueError:
        return False
