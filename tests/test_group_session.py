"""Tests for GroupSessionManager."""

import asyncio

import pytest

from qwenbot.config import ContextConfig
from qwenbot.services.context_engine import MessageRole
from qwenbot.services.group_session import GroupSessionManager, group_key


class TestMembership:
    """Tests for member tracking and the user -> groups index."""

    def test_group_key_format(self):
        assert group_key("123") == "group_123"

    def test_add_member_updates_index(self, group_manager):
        assert group_manager.add_member("g1", "u1")
        assert group_manager.get_user_groups("u1") == {"g1"}
        assert group_manager.get_group_members("g1") == ["u1"]

    def test_full_group_rejects_new_member(self, group_manager):
        for user in ("u1", "u2", "u3"):
            assert group_manager.add_member("g1", user)
        assert not group_manager.add_member("g1", "u4")
        assert group_manager.get_group_member_count("g1") == 3
        assert group_manager.get_user_groups("u4") == set()

    def test_existing_member_can_rejoin_full_group(self, group_manager):
        for user in ("u1", "u2", "u3"):
            group_manager.add_member("g1", user)
        assert group_manager.add_member("g1", "u2")

    def test_remove_member_cleans_index(self, group_manager):
        group_manager.add_member("g1", "u1")
        assert group_manager.remove_member("g1", "u1")
        assert "u1" not in group_manager._user_groups
        assert not group_manager.remove_member("g1", "u1")

    def test_index_synced_when_group_expires_on_read(self, group_manager, clock):
        group_manager.add_member("g1", "u1")
        group_manager.add_member("g2", "u1")
        clock.advance(3601)
        group_manager.add_member("g2", "u2")
        assert group_manager.get_user_groups("u1") == {"g1"}
        assert group_manager.get_group_members("g2") == ["u2"]

    def test_index_synced_on_sweep(self, group_manager, clock):
        group_manager.add_member("g1", "u1")
        clock.advance(3601)
        assert group_manager.cleanup_expired_group_sessions() == 1
        assert "u1" not in group_manager._user_groups

    def test_index_follows_remove_then_delete(self, group_manager):
        group_manager.add_member("g1", "u1")
        group_manager.add_member("g2", "u1")
        assert group_manager.get_user_groups("u1") == {"g1", "g2"}

        group_manager.remove_member("g1", "u1")
        assert group_manager.get_user_groups("u1") == {"g2"}

        assert group_manager.delete_group_session("g2")
        assert group_manager.get_user_groups("u1") == set()
        assert "u1" not in group_manager._user_groups

    def test_delete_keeps_other_memberships(self, group_manager):
        group_manager.add_member("g1", "u1")
        group_manager.add_member("g2", "u1")
        group_manager.delete_group_session("g1")
        assert group_manager.get_user_groups("u1") == {"g2"}

    def test_can_add_member(self, group_manager):
        for user in ("u1", "u2", "u3"):
            assert group_manager.can_add_member("g1", user)
            group_manager.add_member("g1", user)
        assert group_manager.can_add_member("g1", "u1")
        assert not group_manager.can_add_member("g1", "u4")


class TestGroupMessages:
    """Tests for shared history and group message display."""

    def test_messages_recorded_in_both_lists(self, group_manager):
        group_manager.add_group_message("g1", MessageRole.USER, "hi", "u1", "Alice")
        group_manager.add_group_message("g1", MessageRole.ASSISTANT, "hello", "assistant")
        recent = group_manager.get_recent_group_messages("g1")
        assert [m.sender_name for m in recent] == ["Alice", "assistant"]
        assert group_manager.get_group_message_count("g1") == 2

    def test_recent_messages_limit(self, group_manager):
        for i in range(5):
            group_manager.add_group_message("g1", MessageRole.USER, f"m{i}", "u1")
        recent = group_manager.get_recent_group_messages("g1", limit=2)
        assert [m.content for m in recent] == ["m3", "m4"]
        assert group_manager.get_recent_group_messages("g1", limit=0) == []

    def test_group_messages_trimmed_with_history(self, clock):
        manager = GroupSessionManager(ContextConfig(max_history_length=1), clock=clock)
        for i in range(4):
            manager.add_group_message("g1", MessageRole.USER, f"m{i}", "u1")
        context = manager.get_group_session("g1")
        assert [m.content for m in context.messages] == ["m2", "m3"]
        assert [m.content for m in context.group_messages] == ["m2", "m3"]

    def test_clear_group_history(self, group_manager):
        group_manager.add_group_message("g1", MessageRole.USER, "hi", "u1")
        assert group_manager.clear_group_history("g1")
        assert group_manager.get_recent_group_messages("g1") == []
        assert not group_manager.clear_group_history("missing")

    def test_shared_context_off_builds_without_history(self, group_manager):
        group_manager.add_group_message("g1", MessageRole.USER, "earlier", "u1")
        group_manager.set_group_shared_context("g1", False)
        messages = group_manager.build_group_context_messages("g1", "sys", "now")
        assert [m.content for m in messages] == ["sys", "now"]
        assert not group_manager.is_group_shared_context_enabled("g1")

    def test_shared_context_on_includes_history(self, group_manager):
        group_manager.add_group_message("g1", MessageRole.USER, "earlier", "u1")
        messages = group_manager.build_group_context_messages("g1", "sys", "now")
        assert [m.content for m in messages] == ["sys", "earlier", "now"]


class TestGroupState:
    """Tests for persona, naming and statistics."""

    def test_group_name_from_first_access(self, group_manager):
        context = group_manager.get_group_session("g1", "Guild One")
        assert context.group_name == "Guild One"
        assert context.group_id == "g1"

    def test_group_persona(self, group_manager):
        assert group_manager.get_group_persona("g1") == "default"
        group_manager.set_group_persona("g1", "maid")
        assert group_manager.get_group_persona("g1") == "maid"

    def test_stats(self, group_manager):
        group_manager.add_member("g1", "u1")
        group_manager.add_group_message("g1", MessageRole.USER, "hi", "u1")
        stats = group_manager.get_group_stats("g1")
        assert stats.member_count == 1
        assert stats.message_count == 1
        assert stats.total_tokens == 2
        assert stats.enable_shared_context

    def test_delete_and_clear_all(self, group_manager):
        group_manager.add_member("g1", "u1")
        group_manager.add_member("g2", "u2")
        assert group_manager.delete_group_session("g1")
        assert group_manager.get_group_count() == 1
        group_manager.clear_all_group_sessions()
        assert group_manager.get_group_count() == 0
        assert group_manager.get_user_groups("u2") == set()


class TestPeriodicCleanup:
    """Tests for the background group sweep."""

    @pytest.mark.asyncio
    async def test_sweep_removes_idle_groups_and_index(self, group_manager, clock):
        group_manager.add_member("g1", "u1")
        clock.advance(3601)
        group_manager.start_periodic_cleanup(interval=0.01)
        await asyncio.sleep(0.05)
        await group_manager.stop_periodic_cleanup()
        assert group_manager.get_group_count() == 0
        assert group_manager.get_user_groups("u1") == set()
        assert group_manager._cleanup_task is None

    @pytest.mark.asyncio
    async def test_stop_without_start(self, group_manager):
        await group_manager.stop_periodic_cleanup()
        assert group_manager._cleanup_task is None
