# wecare/services/matching.py
import json
import logging
from typing import Dict, List, Optional, Sequence

from wecare.core.config import settings
from wecare.core.errors import AuthorizationError, MatchingError, NotFoundError
from wecare.core.policy import may_run_match
from wecare.core.states import DonationStatus
from wecare.services.llm import ChatCompletionClient
from wecare.services.proximity import MatchCandidate, rank_candidates

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a helpful assistant that matches donations to associations."

def build_prompt(profile: dict, candidates: Sequence[MatchCandidate], result_limit: int) -> str:
    lines = [
        "I need to match donations to an association based on the following information:",
        "",
        "Association profile:",
        f"- Name: {profile.get('name') or 'Unknown'}",
        f"- Bio: {profile.get('bio') or 'No bio provided'}",
        "",
        "Available donations:",
    ]
    for i, c in enumerate(candidates, start=1):
        d = c.donation
        lines += [
            f"{i}. ID: {c.id}",
            f"   Title: {d.get('title')}",
            f"   Category: {d.get('category_name') or 'Uncategorized'}",
            f"   Description: {d.get('description')}",
            f"   Distance: {round(c.distance_km)} km",
            f"   Donor: {d.get('donor_name') or 'Unknown'}",
        ]
    lines += [
        "",
        f"Please rank the top {result_limit} donations that would be most suitable for this "
        "association based on relevance and proximity.",
        "Return a JSON object with the following format:",
        '{"matches": [{"id": "donation ID", "score": relevance_score, "reason": "brief explanation"}]}',
        "Only use donation IDs listed above, a score from 0-100, and a brief reason for the match.",
    ]
    return "\n".join(lines)

def parse_ranking(content: str) -> List[dict]:
    """Accepts ``{"matches": [...]}`` or a bare list; anything else is a MatchingError."""
    try:
        data = json.loads(content)
    except (TypeError, ValueError):
        logger.warning("model reply is not valid JSON")
        raise MatchingError()
    if isinstance(data, dict):
        data = data.get("matches")
    if not isinstance(data, list):
        logger.warning("model reply has no matches list")
        raise MatchingError()
    return [e for e in data if isinstance(e, dict)]

def _score(v) -> float:
    if isinstance(v, bool):
        return 0.0
    try:
        s = float(v)
    except (TypeError, ValueError):
        return 0.0
    if s != s:  # NaN
        return 0.0
    return max(0.0, min(100.0, s))

def reconcile(entries: List[dict], candidates: Sequence[MatchCandidate], limit: int) -> List[dict]:
    """Keep only entries whose id belongs to ``candidates``, in the model's order."""
    known: Dict[str, MatchCandidate] = {c.id: c for c in candidates}
    seen = set()
    out = []
    for e in entries:
        raw = e.get("id")
        if raw is None or isinstance(raw, bool):
            continue
        key = str(raw).strip()
        cand = known.get(key)
        if cand is None:
            logger.info("discarding match for unknown donation id %r", key)
            continue
        if key in seen:
            continue
        seen.add(key)
        out.append({
            "id": key,
            "score": _score(e.get("score")),
            "reason": str(e.get("reason") or ""),
            "donation": {**cand.donation, "distance_km": round(cand.distance_km, 2)},
        })
        if len(out) >= limit:
            break
    return out

async def match_donations(profile: dict,
                          candidates: Sequence[MatchCandidate],
                          llm: ChatCompletionClient,
                          candidate_limit: Optional[int] = None,
                          result_limit: Optional[int] = None) -> List[dict]:
    """
    Rank distance-sorted candidates for one association with the language model.

    An empty candidate list returns [] without calling the model. Model
    failures raise MatchingError so callers can tell "nothing to match"
    apart from "could not evaluate".
    """
    if not candidates:
        return []
    candidate_limit = candidate_limit or settings.match_candidate_limit
    result_limit = result_limit or settings.match_result_limit

    shortlist = list(candidates[:candidate_limit])
    prompt = build_prompt(profile, shortlist, result_limit)
    logger.info("requesting model ranking for %d candidates", len(shortlist))
    content = await llm.complete_json(SYSTEM_PROMPT, prompt)
    matches = reconcile(parse_ranking(content), shortlist, result_limit)
    logger.info("model ranking kept %d matches", len(matches))
    return matches

async def match_for_user(repo, llm: ChatCompletionClient, principal, user_id: str) -> List[dict]:
    """Full pipeline behind GET /ai/match/{user_id}: authorize, rank pending donations, ask the model."""
    if not may_run_match(principal.role, principal.user_id, user_id):
        raise AuthorizationError("Unauthorized")
    user = await repo.get_user(user_id)
    if not user:
        raise NotFoundError("User not found")

    pending = await repo.list_donations(status=DonationStatus.PENDING.value)
    ranked = rank_candidates(user.get("latitude"), user.get("longitude"), pending)
    return await match_donations(user, ranked[:settings.match_candidate_limit], llm)
