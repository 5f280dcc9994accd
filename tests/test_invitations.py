"""Tests for the invitation lifecycle."""
from datetime import timedelta

import pytest

from app.features.invitations import (
    InvitationService,
    InviteExpiredError,
    InviteNotFoundError,
    InviteNotPendingError,
    InviteRecipientMismatchError,
    WorkspaceNotFoundError,
)
from app.features.invitations.domain import build_invite_link
from app.infra.repositories import RepositoryFactory
from app.infra.store import InMemoryDocumentStore
from app.models.invite import InviteStatus, WorkspaceInvite
from app.models.user import User
from app.models.workspace import MemberStatus, WorkspaceRole
from tests.helpers import T0, FakeClock, seed_member, seed_workspace

INVITEE = User(id="u2", email="b@x.com")


@pytest.fixture
def service(repositories: RepositoryFactory, clock: FakeClock) -> InvitationService:
    """Return an invitation service on the fake clock."""
    return InvitationService(repositories, clock)


async def save_invite(
    repositories: RepositoryFactory,
    token: str = "tok1",
    email: str = "b@x.com",
    role: WorkspaceRole = WorkspaceRole.MEMBER,
    status: InviteStatus = InviteStatus.PENDING,
) -> WorkspaceInvite:
    invite = WorkspaceInvite(
        id=token,
        token=token,
        email=email,
        role=role,
        workspace_id="W1",
        invited_by="u1",
        status=status,
        created_at=T0,
        expires_at=T0 + timedelta(days=7),
    )
    await repositories.invites.save_invite(invite)
    return invite


@pytest.fixture
async def workspace(store: InMemoryDocumentStore) -> str:
    """Seed workspace W1 owned by u1."""
    await seed_workspace(store, "W1", owner_id="u1")
    return "W1"


class TestCreateInvite:
    """Tests for InvitationService.create_invite."""

    async def test_creates_pending_invite(self, service: InvitationService, workspace: str) -> None:
        """New invites are pending, keyed by token and expire after seven days."""
        invite = await service.create_invite(workspace, "  New@X.com ", WorkspaceRole.ADMIN, "u1")

        stored = await service.get_invite(workspace, invite.token)
        assert stored is not None
        assert stored.id == invite.token
        assert stored.email == "new@x.com"
        assert stored.role == WorkspaceRole.ADMIN
        assert stored.status == InviteStatus.PENDING
        assert stored.expires_at - stored.created_at == timedelta(days=7)
        assert stored.created_at == T0

    async def test_rejects_empty_email(self, service: InvitationService, workspace: str) -> None:
        """An empty email is refused."""
        with pytest.raises(ValueError, match="email"):
            await service.create_invite(workspace, "  ", WorkspaceRole.MEMBER, "u1")

    async def test_rejects_owner_role(self, service: InvitationService, workspace: str) -> None:
        """Ownership is never handed out through an invite."""
        with pytest.raises(ValueError, match="OWNER"):
            await service.create_invite(workspace, "c@x.com", WorkspaceRole.OWNER, "u1")

    async def test_duplicate_pending_invites_coexist(self, service: InvitationService, workspace: str) -> None:
        """Inviting the same email twice yields two independent tokens."""
        first = await service.create_invite(workspace, "c@x.com", WorkspaceRole.MEMBER, "u1")
        second = await service.create_invite(workspace, "c@x.com", WorkspaceRole.MEMBER, "u1")

        assert first.token != second.token
        assert len(await service.list_invites(workspace)) == 2

    async def test_subscribe_to_invites(
        self, service: InvitationService, store: InMemoryDocumentStore, workspace: str
    ) -> None:
        """Subscribers see invites as they are created."""
        deliveries = []
        unsubscribe = service.subscribe_to_invites(workspace, deliveries.append)
        await store.drain()

        await service.create_invite(workspace, "c@x.com", WorkspaceRole.VIEWER, "u1")
        await store.drain()
        unsubscribe()

        assert deliveries[0] == []
        assert [i.email for i in deliveries[-1]] == ["c@x.com"]

    def test_invite_link(self) -> None:
        """The link carries the workspace id and token as query parameters."""
        link = build_invite_link("https://app.example.com/", "W1", "tok1")
        assert link == "https://app.example.com/?workspace=W1&invite=tok1"


class TestAcceptInvite:
    """Tests for InvitationService.accept_invite."""

    async def test_accept_creates_active_member(
        self,
        service: InvitationService,
        repositories: RepositoryFactory,
        clock: FakeClock,
        workspace: str,
    ) -> None:
        """A pending invite makes the invitee an ACTIVE member and is marked accepted."""
        await save_invite(repositories)
        clock.advance(days=1)

        member = await service.accept_invite(workspace, "tok1", INVITEE)

        stored = await repositories.members.get_member(workspace, "u2")
        assert stored is not None
        assert stored.user_id == "u2"
        assert stored.email == "b@x.com"
        assert stored.role == WorkspaceRole.MEMBER
        assert stored.status == MemberStatus.ACTIVE
        assert stored.invited_by == "u1"
        assert stored.joined_at == T0 + timedelta(days=1)
        assert member.id == "u2"

        invite = await service.get_invite(workspace, "tok1")
        assert invite.status == InviteStatus.ACCEPTED
        assert invite.accepted_at == T0 + timedelta(days=1)

    async def test_email_match_ignores_case(
        self, service: InvitationService, repositories: RepositoryFactory, workspace: str
    ) -> None:
        """The invite email and account email are compared case-insensitively."""
        await save_invite(repositories, email="B@X.com")

        await service.accept_invite(workspace, "tok1", User(id="u2", email="b@x.COM"))

        assert (await repositories.members.get_member(workspace, "u2")) is not None

    async def test_accept_at_exact_expiry(
        self,
        service: InvitationService,
        repositories: RepositoryFactory,
        clock: FakeClock,
        workspace: str,
    ) -> None:
        """An invite is still valid at its expiry instant."""
        await save_invite(repositories)
        clock.advance(days=7)

        await service.accept_invite(workspace, "tok1", INVITEE)

        assert (await service.get_invite(workspace, "tok1")).status == InviteStatus.ACCEPTED

    async def test_expired_invite(
        self,
        service: InvitationService,
        repositories: RepositoryFactory,
        clock: FakeClock,
        workspace: str,
    ) -> None:
        """Past the expiry the invite is refused and nothing is written."""
        await save_invite(repositories)
        clock.advance(days=7, seconds=1)

        with pytest.raises(InviteExpiredError) as exc_info:
            await service.accept_invite(workspace, "tok1", INVITEE)

        assert exc_info.value.message == "This invite has expired"
        assert (await repositories.members.get_member(workspace, "u2")) is None
        assert (await service.get_invite(workspace, "tok1")).status == InviteStatus.PENDING

    async def test_wrong_recipient(
        self, service: InvitationService, repositories: RepositoryFactory, workspace: str
    ) -> None:
        """Someone else's invite cannot be accepted."""
        await save_invite(repositories)

        with pytest.raises(InviteRecipientMismatchError):
            await service.accept_invite(workspace, "tok1", User(id="u3", email="c@x.com"))

        assert (await repositories.members.get_member(workspace, "u3")) is None
        assert (await service.get_invite(workspace, "tok1")).status == InviteStatus.PENDING

    async def test_unknown_token(self, service: InvitationService, workspace: str) -> None:
        """An unknown token reports not found."""
        with pytest.raises(InviteNotFoundError, match="Invite not found"):
            await service.accept_invite(workspace, "nope", INVITEE)

    async def test_second_accept_is_refused(
        self, service: InvitationService, repositories: RepositoryFactory, workspace: str
    ) -> None:
        """An invite can only be used once."""
        await save_invite(repositories)
        await service.accept_invite(workspace, "tok1", INVITEE)

        with pytest.raises(InviteNotPendingError):
            await service.accept_invite(workspace, "tok1", INVITEE)

    async def test_revoked_invite_is_refused(
        self, service: InvitationService, repositories: RepositoryFactory, workspace: str
    ) -> None:
        """Revoked invites cannot be accepted."""
        await save_invite(repositories)
        await service.revoke_invite(workspace, "tok1")

        with pytest.raises(InviteNotPendingError, match="already been used or revoked"):
            await service.accept_invite(workspace, "tok1", INVITEE)

    async def test_missing_workspace(
        self, service: InvitationService, repositories: RepositoryFactory
    ) -> None:
        """An invite into a deleted workspace is refused without writes."""
        await save_invite(repositories)

        with pytest.raises(WorkspaceNotFoundError):
            await service.accept_invite("W1", "tok1", INVITEE)

        assert (await repositories.members.get_member("W1", "u2")) is None
        assert (await service.get_invite("W1", "tok1")).status == InviteStatus.PENDING

    async def test_existing_member_is_reactivated(
        self,
        service: InvitationService,
        repositories: RepositoryFactory,
        store: InMemoryDocumentStore,
        workspace: str,
    ) -> None:
        """An existing record gets the invite's role and keeps its other fields."""
        await seed_member(store, workspace, "u2", user_id="u2", email="b@x.com", role="VIEWER", status="REMOVED")
        await store.update(f"workspaces/{workspace}/members/u2", {"invitedBy": "original-inviter"})
        await save_invite(repositories, role=WorkspaceRole.ADMIN)

        await service.accept_invite(workspace, "tok1", INVITEE)

        member = await repositories.members.get_member(workspace, "u2")
        assert member.role == WorkspaceRole.ADMIN
        assert member.status == MemberStatus.ACTIVE
        assert member.invited_by == "original-inviter"


class TestRevokeInvite:
    """Tests for InvitationService.revoke_invite."""

    async def test_revoke_pending(
        self, service: InvitationService, repositories: RepositoryFactory, workspace: str
    ) -> None:
        """A pending invite becomes REVOKED with a timestamp."""
        await save_invite(repositories)

        await service.revoke_invite(workspace, "tok1")

        invite = await service.get_invite(workspace, "tok1")
        assert invite.status == InviteStatus.REVOKED
        assert invite.revoked_at == T0

    async def test_revoke_is_idempotent(
        self, service: InvitationService, repositories: RepositoryFactory, workspace: str
    ) -> None:
        """Revoking twice, or revoking an unknown token, is harmless."""
        await save_invite(repositories)

        await service.revoke_invite(workspace, "tok1")
        await service.revoke_invite(workspace, "tok1")
        await service.revoke_invite(workspace, "missing")

        assert (await service.get_invite(workspace, "tok1")).status == InviteStatus.REVOKED
        assert (await service.get_invite(workspace, "missing")) is None

    async def test_accepted_invite_is_not_revoked(
        self, service: InvitationService, repositories: RepositoryFactory, workspace: str
    ) -> None:
        """Accepted is terminal."""
        await save_invite(repositories)
        await service.accept_invite(workspace, "tok1", INVITEE)

        await service.revoke_invite(workspace, "tok1")

        assert (await service.get_invite(workspace, "tok1")).status == InviteStatus.ACCEPTED
