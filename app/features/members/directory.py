"""
Member directory: display-ready users from raw member records

Projection rules:
- members without a usable userId are left out (and logged)
- the current user is always present exactly once; when their account id
  matches no member but their email does, the member's stored userId is
  used so assignment and notification lookups keep working
- display names come from user profiles, falling back to the email
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from app.infra.repositories import RepositoryFactory, partition_members
from app.infra.repositories.members import log_invalid_members
from app.infra.store import Unsubscribe, maybe_await
from app.models.user import User
from app.models.workspace import MemberStatus, WorkspaceMember

logger = logging.getLogger(__name__)

DirectoryCallback = Callable[[List[User]], Any]


def _directory_user(member: WorkspaceMember, profile: Optional[User]) -> User:
    display_name = profile.display_name if profile and profile.display_name else member.email
    return User(
        id=member.user_id,
        email=member.email,
        display_name=display_name,
        photo_url=profile.photo_url if profile else None,
        role=member.role,
        is_active=member.status == MemberStatus.ACTIVE,
        created_at=member.joined_at,
        telegram_chat_id=member.telegram_chat_id,
    )


def project_members(
    workspace_id: str,
    members: Iterable[WorkspaceMember],
    current_user: Optional[User],
    profiles: Optional[Mapping[str, User]] = None,
) -> List[User]:
    """Build the directory for one workspace; never raises on bad records"""
    profiles = profiles or {}
    valid, invalid = partition_members(list(members))
    log_invalid_members(workspace_id, invalid, "project_members")

    users: List[User] = []
    seen = set()
    for member in valid:
        if member.user_id in seen:
            continue
        seen.add(member.user_id)
        users.append(_directory_user(member, profiles.get(member.user_id)))

    if current_user is None or current_user.id in seen:
        return users

    email = (current_user.email or "").lower()
    matched = next((u for u in users if email and u.email.lower() == email), None)
    if matched is not None:
        # Known inconsistency: member records created before account ids were
        # normalized carry a different userId.
        logger.warning(
            f"User {current_user.id} matched member {matched.id} in workspace {workspace_id} "
            f"by email only; using the stored userId"
        )
        return users

    logger.info(f"User {current_user.id} has no member record in workspace {workspace_id}; adding from profile")
    users.append(User(
        id=current_user.id,
        email=current_user.email,
        display_name=current_user.display_name or current_user.email,
        photo_url=current_user.photo_url,
        role=current_user.role,
        created_at=current_user.created_at,
        telegram_chat_id=current_user.telegram_chat_id,
    ))
    return users


class MemberDirectory:
    """Projects member records into users, enriching them from profiles"""

    def __init__(self, repositories: RepositoryFactory):
        self._repositories = repositories

    async def _load_profile(self, user_id: str) -> Optional[User]:
        try:
            return await self._repositories.users.get_user(user_id)
        except Exception as e:
            logger.warning(f"Failed to load profile {user_id}: {e}")
            return None

    async def load_profiles(self, user_ids: Iterable[str]) -> Dict[str, User]:
        """Fetch profiles in parallel; missing or failing ones are left out"""
        ids = list(dict.fromkeys(user_ids))
        results = await asyncio.gather(*(self._load_profile(user_id) for user_id in ids))
        return {user_id: profile for user_id, profile in zip(ids, results) if profile is not None}

    async def project(
        self,
        workspace_id: str,
        members: List[WorkspaceMember],
        current_user: Optional[User],
    ) -> List[User]:
        """Fully enriched projection of the given member records"""
        valid, _ = partition_members(members)
        profiles = await self.load_profiles(m.user_id for m in valid)
        return project_members(workspace_id, members, current_user, profiles)

    async def get_directory(self, workspace_id: str, current_user: Optional[User]) -> List[User]:
        members = await self._repositories.members.list_members(workspace_id)
        return await self.project(workspace_id, members, current_user)

    def watch(
        self,
        workspace_id: str,
        current_user: Optional[User],
        callback: DirectoryCallback,
    ) -> Unsubscribe:
        """
        Live directory of a workspace

        Every member change emits a projection without profile data right
        away, then the enriched projection once profiles have loaded. An
        enrichment that finishes after a newer member change is dropped.
        """
        state = {"generation": 0, "closed": False}

        async def on_members(members: List[WorkspaceMember]) -> None:
            state["generation"] += 1
            generation = state["generation"]
            await maybe_await(callback(project_members(workspace_id, members, current_user)))

            profiles = await self.load_profiles(m.user_id for m in members)
            if state["closed"] or generation != state["generation"]:
                return
            await maybe_await(callback(project_members(workspace_id, members, current_user, profiles)))

        unsubscribe = self._repositories.members.subscribe_to_members(workspace_id, on_members)

        def close() -> None:
            state["closed"] = True
            unsubscribe()

        return close
