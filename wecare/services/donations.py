# wecare/services/donations.py
"""Donation lifecycle: pending -> accepted -> completed, plus deletion.

Checks run in a fixed order: caller role, existence, ownership, current
status, then the write. Status changes go through ``repo.transition``,
a conditional update on the expected current status.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from wecare.core.errors import (
    AuthorizationError, InvalidStateError, NotFoundError, ValidationError,
)
from wecare.core.policy import (
    may_accept_donation, may_create_donation, may_manage_donation, may_view_user_donations,
)
from wecare.core.security import Principal
from wecare.core.states import DonationStatus, can_transition
from wecare.services.uploads import ImageStore

logger = logging.getLogger(__name__)


@dataclass
class DonationDraft:
    title: str
    description: str
    category_id: str
    latitude: Optional[float]
    longitude: Optional[float]


def _valid_coords(lat, lng) -> bool:
    if lat is None or lng is None:
        return False
    try:
        lat, lng = float(lat), float(lng)
    except (TypeError, ValueError):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0


async def _validate_draft(repo, draft: DonationDraft) -> None:
    if not (draft.title or "").strip():
        raise ValidationError("Title is required")
    if not (draft.description or "").strip():
        raise ValidationError("Description is required")
    if not _valid_coords(draft.latitude, draft.longitude):
        raise ValidationError("Valid coordinates are required")
    if not draft.category_id or not await repo.get_category(draft.category_id):
        raise ValidationError("Unknown category")


async def create_donation(repo, principal: Principal, draft: DonationDraft,
                          files: Sequence, store: ImageStore) -> str:
    if not may_create_donation(principal.role):
        raise AuthorizationError("Only donors can create donations")
    await _validate_draft(repo, draft)
    store.validate(files)

    urls = await store.save(files)
    doc = {
        "title": draft.title.strip(),
        "description": draft.description.strip(),
        "category_id": draft.category_id,
        "user_id": principal.user_id,
        "receiver_id": None,
        "status": DonationStatus.PENDING.value,
        "latitude": float(draft.latitude),
        "longitude": float(draft.longitude),
    }
    try:
        donation_id = await repo.insert_donation(doc, urls)
    except Exception:
        await store.discard(urls)
        raise
    logger.info("donation %s created by %s with %d images", donation_id, principal.user_id, len(urls))
    return donation_id


async def _advance(repo, donation_id: str, src: DonationStatus, dst: DonationStatus,
                   extra: Optional[dict] = None) -> None:
    if not can_transition(src, dst):
        raise InvalidStateError(f"Cannot move a {src.value} donation to {dst.value}")
    if await repo.transition(donation_id, src.value, dst.value, extra):
        logger.info("donation %s: %s -> %s", donation_id, src.value, dst.value)
        return
    # lost the compare-and-swap: report why
    if not await repo.get_donation(donation_id):
        raise NotFoundError("Donation not found")
    if dst is DonationStatus.ACCEPTED:
        raise InvalidStateError("Donation is not available")
    raise InvalidStateError("Donation is not accepted")


async def accept_donation(repo, principal: Principal, donation_id: str) -> None:
    if not may_accept_donation(principal.role):
        raise AuthorizationError("Only associations can accept donations")
    await _advance(repo, donation_id, DonationStatus.PENDING, DonationStatus.ACCEPTED,
                   {"receiver_id": principal.user_id})


async def _load_managed(repo, principal: Principal, donation_id: str) -> dict:
    donation = await repo.get_donation(donation_id)
    if not donation:
        raise NotFoundError("Donation not found")
    if not may_manage_donation(principal.role, principal.user_id, donation["user_id"]):
        raise AuthorizationError("Unauthorized")
    return donation


async def complete_donation(repo, principal: Principal, donation_id: str) -> None:
    donation = await _load_managed(repo, principal, donation_id)
    if donation["status"] != DonationStatus.ACCEPTED.value:
        raise InvalidStateError("Donation is not accepted")
    await _advance(repo, donation_id, DonationStatus.ACCEPTED, DonationStatus.COMPLETED)


async def delete_donation(repo, principal: Principal, donation_id: str) -> None:
    await _load_managed(repo, principal, donation_id)
    if not await repo.delete_donation(donation_id):
        raise NotFoundError("Donation not found")
    logger.info("donation %s deleted by %s", donation_id, principal.user_id)


async def list_user_donations(repo, principal: Principal, user_id: str) -> list:
    if not may_view_user_donations(principal.role, principal.user_id, user_id):
        raise AuthorizationError("Unauthorized")
    return await repo.list_donations(user_id=user_id)


async def get_donation(repo, donation_id: str) -> dict:
    donation = await repo.get_donation(donation_id)
    if not donation:
        raise NotFoundError("Donation not found")
    return donation
