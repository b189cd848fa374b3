import base64
import binascii
import logging
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

import httpx
from pydantic import ValidationError

from config import BACKEND_ANON_KEY, BACKEND_URL, REQUEST_TIMEOUT

from .events import SIGNED_OUT, EventSource
from .schemas import Group, JoinRequest, NewChallenge, ReportDraft


logger = logging.getLogger(__name__)

AVATAR_BUCKET = "avatars"
PROOF_BUCKETS = ("proofs", AVATAR_BUCKET)


class BackendError(RuntimeError):
    """Raised when a backend request fails or the backend is not configured."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BackendClient:
    """Async client for the hosted backend (REST tables, RPC, storage, functions)."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url or BACKEND_URL
        self.api_key = api_key or BACKEND_ANON_KEY
        self.access_token = access_token
        self.timeout = timeout
        self.transport = transport

    def _build_headers(self, extra: Optional[Mapping[str, str]] = None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
        token = self.access_token or self.api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, str]] = None,
        json: Any = None,
        content: Optional[bytes] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        if not self.base_url:
            raise BackendError("Backend URL is not configured")
        url = f"{self.base_url.rstrip('/')}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    content=content,
                    headers=self._build_headers(headers),
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text[:200]
            logger.error("Backend %s %s failed: %s %s", method, path, exc.response.status_code, detail)
            raise BackendError(detail or str(exc), status_code=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            logger.error("Backend %s %s failed: %s", method, path, exc)
            raise BackendError(str(exc)) from exc
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def _rpc(self, name: str, payload: Optional[dict] = None) -> Any:
        return await self._request("POST", f"/rest/v1/rpc/{name}", json=payload or {})

    # ----- Groups / ranks -----

    async def fetch_hidden_group_ids(self, user_id: str) -> Set[str]:
        rows = await self._request(
            "GET",
            "/rest/v1/hidden_groups",
            params={"select": "group_id", "user_id": f"eq.{user_id}"},
        )
        return {str(r["group_id"]) for r in rows or [] if r.get("group_id")}

    async def fetch_visible_groups(self, user_id: str) -> List[Group]:
        """Groups the user belongs to, newest first, without the ones the user hid."""
        rows = await self._request(
            "GET",
            "/rest/v1/groups",
            params={"select": "*,challenges(*)", "order": "created_at.desc"},
        )
        hidden = await self.fetch_hidden_group_ids(user_id)
        try:
            return [Group.model_validate(r) for r in rows or [] if str(r.get("id")) not in hidden]
        except (ValidationError, AttributeError) as exc:
            logger.error("Backend returned malformed group rows: %s", exc)
            raise BackendError(f"Malformed group data: {exc}") from exc

    async def fetch_ranks(self, group_ids: Iterable[str]) -> Dict[str, Optional[int]]:
        ids = list(group_ids)
        if not ids:
            return {}
        rows = await self._rpc("get_my_group_ranks", {"p_group_ids": ids})
        ranks: Dict[str, Optional[int]] = {gid: None for gid in ids}
        try:
            for row in rows or []:
                gid = str(row.get("group_id"))
                value = row.get("rank")
                ranks[gid] = int(value) if value is not None else None
        except (AttributeError, TypeError, ValueError) as exc:
            logger.error("Backend returned malformed rank rows: %s", exc)
            raise BackendError(f"Malformed rank data: {exc}") from exc
        return ranks

    async def mark_group_hidden(self, user_id: str, group_id: str) -> None:
        # Upsert keyed on (user_id, group_id) so hiding twice is harmless
        await self._request(
            "POST",
            "/rest/v1/hidden_groups",
            params={"on_conflict": "user_id,group_id"},
            json={"user_id": user_id, "group_id": group_id},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    # ----- Group lifecycle -----

    async def create_group_with_challenge(self, new_challenge: NewChallenge) -> str:
        group_id = await self._rpc(
            "create_group_with_challenge",
            {
                "p_group_name": new_challenge.name,
                "p_group_icon": new_challenge.icon,
                "p_challenge_name": new_challenge.name,
                "p_goal": 1,
                "p_type": new_challenge.type,
                "p_frequency": new_challenge.frequency,
            },
        )
        if not group_id:
            raise BackendError("Group was not created")
        group_id = str(group_id)

        # Extended challenge fields are optional columns; the group exists either way
        try:
            rows = await self._request(
                "GET",
                "/rest/v1/challenges",
                params={
                    "select": "id",
                    "group_id": f"eq.{group_id}",
                    "order": "created_at.desc",
                    "limit": "1",
                },
            )
            if rows:
                await self._request(
                    "PATCH",
                    "/rest/v1/challenges",
                    params={"id": f"eq.{rows[0]['id']}"},
                    json={
                        "start_date": new_challenge.start_date.isoformat(),
                        "end_date": new_challenge.end_date.isoformat(),
                        "reminder_enabled": new_challenge.reminder_enabled,
                        "description": new_challenge.description,
                    },
                )
        except BackendError as e:
            logger.warning("challenge post-update failed for group %s: %s", group_id, e)
        return group_id

    async def join_group(self, invite_code: str) -> str:
        request = JoinRequest(invite_code=invite_code)
        group_id = await self._rpc("join_group_by_invite_code", {"p_invite_code": request.invite_code})
        if not group_id:
            raise BackendError("Invalid invite code")
        return str(group_id)

    async def leave_group(self, group_id: str) -> None:
        try:
            await self._rpc("leave_group", {"p_group_id": group_id})
        except BackendError as e:
            if "could not find the function" in str(e).lower():
                raise BackendError("leave_group is not deployed on the backend", status_code=e.status_code) from e
            raise

    async def fetch_invite(self, group_id: str) -> Dict[str, str]:
        """Name and invite code of a group, for showing or sharing the invite."""
        rows = await self._request(
            "GET",
            "/rest/v1/groups",
            params={"select": "name,invite_code", "id": f"eq.{group_id}", "limit": "1"},
        )
        if not rows:
            raise BackendError(f"Group {group_id} not found", status_code=404)
        row = rows[0]
        return {"name": row.get("name") or "", "invite_code": row.get("invite_code") or ""}

    # ----- Leaderboard -----

    async def get_group_members(self, group_id: str) -> List[dict]:
        return await self._rpc("get_group_members", {"p_group_id": group_id}) or []

    async def get_group_points(self, group_id: str) -> Dict[str, int]:
        rows = await self._rpc("get_group_points", {"p_group_id": group_id}) or []
        return {str(r["user_id"]): int(r.get("points") or 0) for r in rows if r.get("user_id")}

    async def fetch_users(self, user_ids: Iterable[str]) -> Dict[str, dict]:
        ids = [u for u in user_ids if u]
        if not ids:
            return {}
        rows = await self._request(
            "GET",
            "/rest/v1/users",
            params={"select": "id,display_name,avatar_url,total_points", "id": f"in.({','.join(ids)})"},
        )
        return {str(r["id"]): r for r in rows or []}

    async def fetch_user_reports(self, challenge_id: str, user_id: str) -> List[dict]:
        """One member's reports for a challenge, newest first."""
        if not challenge_id or not user_id:
            return []
        rows = await self._request(
            "GET",
            "/rest/v1/reports",
            params={
                "select": "*",
                "challenge_id": f"eq.{challenge_id}",
                "user_id": f"eq.{user_id}",
                "order": "created_at.desc",
            },
        )
        return list(rows or [])

    # ----- Reports / proofs -----

    async def submit_report(self, user_id: str, draft: ReportDraft, proof_image_url: Optional[str] = None) -> None:
        payload = {
            "challenge_id": draft.challenge_id,
            "group_id": draft.group_id,
            "user_id": user_id,
            "is_done": draft.is_done,
            "value": draft.value,
            "points_earned": draft.points,
            "proof_text": draft.proof_text,
            "proof_image_url": proof_image_url,
        }
        await self._request(
            "POST",
            "/rest/v1/reports",
            json=[payload],
            headers={"Prefer": "return=minimal"},
        )

    async def upload_proof_image(self, challenge_id: str, user_id: str, image_b64: str) -> Optional[str]:
        """Upload a base64 JPEG proof and return its public URL."""
        if not challenge_id or not user_id or not image_b64:
            return None
        try:
            data = base64.b64decode(image_b64, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise BackendError(f"Proof image is not valid base64: {exc}") from exc

        path = f"{challenge_id}/{user_id}/{int(time.time() * 1000)}.jpg"
        last_error: Optional[BackendError] = None
        for bucket in PROOF_BUCKETS:
            try:
                await self._request(
                    "POST",
                    f"/storage/v1/object/{bucket}/{path}",
                    content=data,
                    headers={"Content-Type": "image/jpeg", "x-upsert": "false"},
                )
            except BackendError as e:
                msg = str(e).lower()
                if "bucket" in msg and "not found" in msg:
                    last_error = e
                    continue
                raise
            return f"{self.base_url.rstrip('/')}/storage/v1/object/public/{bucket}/{path}"
        raise last_error or BackendError("No proof bucket available")

    # ----- Profile / account -----

    async def fetch_profile(self, user_id: str) -> Optional[dict]:
        rows = await self._request(
            "GET",
            "/rest/v1/users",
            params={"select": "display_name,birthdate,email", "id": f"eq.{user_id}", "limit": "1"},
        )
        return rows[0] if rows else None

    async def upload_avatar(self, user_id: str, image: bytes, content_type: str = "image/jpeg") -> Optional[str]:
        """Replace the user's avatar image and point the profile at its public URL."""
        if not user_id or not image:
            return None
        path = f"{user_id}/avatar.jpg"
        await self._request(
            "POST",
            f"/storage/v1/object/{AVATAR_BUCKET}/{path}",
            content=image,
            headers={"Content-Type": content_type or "image/jpeg", "x-upsert": "true"},
        )
        public_url = f"{self.base_url.rstrip('/')}/storage/v1/object/public/{AVATAR_BUCKET}/{path}"
        await self._request(
            "PATCH",
            "/rest/v1/users",
            params={"id": f"eq.{user_id}"},
            json={"avatar_url": public_url},
        )
        return public_url

    async def delete_account(self, user_id: str, auth_events: Optional[EventSource] = None) -> None:
        """Delete the user's profile row, then sign out.

        Only the profile is removed; the login identity itself needs server-side cleanup.
        """
        await self._request("DELETE", "/rest/v1/users", params={"id": f"eq.{user_id}"})
        try:
            await self._request("POST", "/auth/v1/logout")
        except BackendError as e:
            logger.warning("logout after account deletion failed: %s", e)
        self.access_token = None
        if auth_events is not None:
            auth_events.emit(SIGNED_OUT, {"user_id": user_id})

    # ----- Push -----

    async def save_push_token(self, user_id: str, token: str) -> None:
        await self._request(
            "PATCH",
            "/rest/v1/users",
            params={"id": f"eq.{user_id}"},
            json={"expo_push_token": token},
        )

    async def notify_group_event(self, event_type: str, group_id: str, actor_user_id: Optional[str] = None) -> None:
        if not event_type or not group_id:
            return
        try:
            await self._request(
                "POST",
                "/functions/v1/notify-group",
                json={"type": event_type, "groupId": group_id, "actorUserId": actor_user_id},
            )
        except BackendError as e:
            logger.warning("notify-group %s for %s failed: %s", event_type, group_id, e)


def get_backend(access_token: Optional[str] = None) -> BackendClient:
    """Factory for the configured backend client."""

    return BackendClient(access_token=access_token)
