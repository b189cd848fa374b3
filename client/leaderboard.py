import logging
from typing import Dict, Iterable, List, Mapping, Protocol

from .backend import BackendError
from .i18n import translate
from .schemas import MemberStanding


logger = logging.getLogger(__name__)

NAME_FIELDS = ("display_name", "name", "full_name", "user_display_name")


class LeaderboardBackend(Protocol):
    async def get_group_members(self, group_id: str) -> List[dict]: ...

    async def get_group_points(self, group_id: str) -> Dict[str, int]: ...

    async def fetch_users(self, user_ids: Iterable[str]) -> Dict[str, dict]: ...


def _display_name(member: Mapping, user: Mapping, language: str) -> str:
    for source in (user, member):
        for field in NAME_FIELDS:
            value = source.get(field)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return translate(language, "leaderboard.anonymous")


def build_leaderboard(
    members: Iterable[Mapping],
    points_by_user: Mapping[str, int],
    users_by_id: Mapping[str, Mapping],
    language: str = "he",
) -> List[MemberStanding]:
    """Rank group members by their points in this group (ties keep member order)."""
    rows = []
    for m in members:
        uid = m.get("user_id")
        if not uid:
            continue
        uid = str(uid)
        user = users_by_id.get(uid) or {}
        points = points_by_user.get(uid)
        rows.append(
            {
                "user_id": uid,
                "name": _display_name(m, user, language),
                "points": points if isinstance(points, int) else 0,
                "streak": int(m.get("streak") or 0),
                "avatar_url": user.get("avatar_url") or m.get("avatar_url"),
            }
        )
    rows.sort(key=lambda r: r["points"], reverse=True)
    return [MemberStanding(rank=idx + 1, **r) for idx, r in enumerate(rows)]


async def load_leaderboard(backend: LeaderboardBackend, group_id: str, language: str = "he") -> List[MemberStanding]:
    members = await backend.get_group_members(group_id)

    try:
        points = await backend.get_group_points(group_id)
    except BackendError as e:
        logger.warning("get_group_points failed for %s, showing zero points: %s", group_id, e)
        points = {}

    member_ids = [str(m["user_id"]) for m in members if m.get("user_id")]
    try:
        users = await backend.fetch_users(member_ids)
    except BackendError as e:
        logger.warning("user lookup failed for %s: %s", group_id, e)
        users = {}

    return build_leaderboard(members, points, users, language)
