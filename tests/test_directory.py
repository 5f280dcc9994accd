"""Tests for the member directory projection."""
import logging
from datetime import timedelta

from app.features.members import MemberDirectory, project_members
from app.infra.repositories import RepositoryFactory
from app.infra.store import InMemoryDocumentStore, UnavailableError
from app.models.user import User
from app.models.workspace import WorkspaceMember, WorkspaceRole
from tests.helpers import T0, seed_member


def member(member_id: str, user_id=None, email: str = "", role: str = "MEMBER", **kwargs) -> WorkspaceMember:
    return WorkspaceMember(id=member_id, user_id=user_id, email=email, role=role, **kwargs)


class TestProjectMembers:
    """Tests for project_members."""

    def test_invalid_user_ids_are_dropped(self, caplog) -> None:
        """Missing, empty and non-string userIds never reach the directory."""
        members = [
            member("a", user_id="ua", email="a@x.com"),
            member("b", user_id=None, email="b@x.com"),
            member("c", user_id="", email="c@x.com"),
            member("d", user_id="   ", email="d@x.com"),
            member("e", user_id=42, email="e@x.com"),
        ]

        with caplog.at_level(logging.WARNING):
            users = project_members("w1", members, None)

        assert [u.id for u in users] == ["ua"]
        assert "4 member(s) with invalid userId" in caplog.text
        assert "b@x.com" in caplog.text

    def test_duplicates_collapse(self) -> None:
        """Two records for the same userId give one user."""
        users = project_members("w1", [
            member("a", user_id="ua", email="a@x.com"),
            member("a2", user_id="ua", email="a@x.com"),
        ], None)

        assert len(users) == 1

    def test_current_user_added_when_absent(self) -> None:
        """The caller always appears, built from their own profile."""
        current = User(id="u9", email="me@x.com", display_name="Me")

        users = project_members("w1", [member("a", user_id="ua", email="a@x.com")], current)

        assert [u.id for u in users] == ["ua", "u9"]
        assert users[-1].display_name == "Me"

    def test_current_user_present_once(self) -> None:
        """A caller with a member record is not duplicated."""
        current = User(id="ua", email="a@x.com")

        users = project_members("w1", [member("a", user_id="ua", email="a@x.com")], current)

        assert [u.id for u in users] == ["ua"]

    def test_email_only_match_keeps_stored_user_id(self, caplog) -> None:
        """When only the email matches, the stored userId wins and a warning is logged."""
        current = User(id="new-id", email="A@X.com")

        with caplog.at_level(logging.WARNING):
            users = project_members("w1", [member("a", user_id="old-id", email="a@x.com")], current)

        assert [u.id for u in users] == ["old-id"]
        assert "by email only" in caplog.text

    def test_display_name_falls_back_to_email(self) -> None:
        """Without a profile name, the email is shown."""
        profiles = {"ub": User(id="ub", email="b@x.com", display_name="Bea")}

        users = project_members("w1", [
            member("a", user_id="ua", email="a@x.com", role="ADMIN", telegram_chat_id="111"),
            member("b", user_id="ub", email="b@x.com"),
        ], None, profiles)

        assert [u.display_name for u in users] == ["a@x.com", "Bea"]
        assert users[0].role == WorkspaceRole.ADMIN
        assert users[0].telegram_chat_id == "111"

    def test_status_and_join_date_come_from_member(self) -> None:
        """A REMOVED member is projected inactive and carries its join date."""
        profiles = {"ub": User(id="ub", email="b@x.com", created_at=T0 - timedelta(days=30))}

        users = project_members("w1", [
            member("a", user_id="ua", email="a@x.com", joined_at=T0),
            member("b", user_id="ub", email="b@x.com", status="REMOVED", joined_at=T0 - timedelta(days=3)),
        ], None, profiles)

        assert [u.is_active for u in users] == [True, False]
        assert users[0].created_at == T0
        assert users[1].created_at == T0 - timedelta(days=3)


class TestMemberDirectory:
    """Tests for MemberDirectory."""

    async def test_get_directory_enriches_profiles(
        self, repositories: RepositoryFactory, store: InMemoryDocumentStore
    ) -> None:
        """Profile display names and photos are applied."""
        await seed_member(store, "w1", "ua", user_id="ua", email="a@x.com")
        await repositories.users.save_user(
            User(id="ua", email="a@x.com", display_name="Ann", photo_url="https://img/a.png")
        )

        users = await MemberDirectory(repositories).get_directory("w1", None)

        assert users[0].display_name == "Ann"
        assert users[0].photo_url == "https://img/a.png"

    async def test_profile_failure_falls_back(
        self, repositories: RepositoryFactory, store: InMemoryDocumentStore, monkeypatch, caplog
    ) -> None:
        """A failing profile lookup leaves that user un-enriched."""
        await seed_member(store, "w1", "ua", user_id="ua", email="a@x.com")

        async def fail(user_id):
            raise UnavailableError("backend down")

        monkeypatch.setattr(repositories.users, "get_user", fail)

        with caplog.at_level(logging.WARNING):
            users = await MemberDirectory(repositories).get_directory("w1", None)

        assert users[0].display_name == "a@x.com"
        assert "Failed to load profile ua" in caplog.text

    async def test_watch_emits_raw_then_enriched(
        self, repositories: RepositoryFactory, store: InMemoryDocumentStore
    ) -> None:
        """Each change is delivered once without and once with profile data."""
        await seed_member(store, "w1", "ua", user_id="ua", email="a@x.com")
        await repositories.users.save_user(User(id="ua", email="a@x.com", display_name="Ann"))
        deliveries = []

        close = MemberDirectory(repositories).watch("w1", None, deliveries.append)
        await store.drain()

        assert [[u.display_name for u in users] for users in deliveries] == [["a@x.com"], ["Ann"]]

        close()
        await seed_member(store, "w1", "ub", user_id="ub", email="b@x.com")
        await store.drain()

        assert len(deliveries) == 2
        assert store.listener_count == 0
