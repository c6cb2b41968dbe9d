"""Tests for the knowledge base and the bounded activity logs."""

import pytest

from bizchat.models.core import KnowledgeEntry
from bizchat.services import activity_log, knowledge_base
from bizchat.services.knowledge_base import SEED_IDS, SEED_KNOWLEDGE, KnowledgeError


class TestKnowledgeBase:
    def test_merge_without_persisted_entries_is_seed(self):
        assert knowledge_base.merge_with_seed(()) == SEED_KNOWLEDGE

    def test_add_entry_prepends_trimmed_user_entry(self):
        entries = knowledge_base.add_entry(SEED_KNOWLEDGE, "  New travel policy  ", timestamp=42)
        assert entries[0].content == "New travel policy"
        assert entries[0].is_user_entry
        assert entries[0].timestamp == 42
        assert entries[1:] == SEED_KNOWLEDGE

    def test_add_blank_entry_rejected(self):
        with pytest.raises(KnowledgeError):
            knowledge_base.add_entry(SEED_KNOWLEDGE, "   ")

    def test_seeded_entries_cannot_be_deleted(self):
        with pytest.raises(KnowledgeError):
            knowledge_base.delete_entry(SEED_KNOWLEDGE, "hans_approval_common")

    def test_delete_unknown_entry(self):
        with pytest.raises(KnowledgeError):
            knowledge_base.delete_entry(SEED_KNOWLEDGE, "user_missing")

    def test_delete_user_entry(self):
        entries = knowledge_base.add_entry(SEED_KNOWLEDGE, "temp")
        entries = knowledge_base.delete_entry(entries, entries[0].id)
        assert entries == SEED_KNOWLEDGE

    def test_merge_drops_foreign_and_duplicate_entries(self):
        user = KnowledgeEntry(id="user_1", content="u", timestamp=1)
        tampered_seed = KnowledgeEntry(id="hans_approval_common", content="changed", timestamp=1)
        merged = knowledge_base.merge_with_seed([user, tampered_seed, user])
        assert [e.id for e in merged] == [e.id for e in SEED_KNOWLEDGE] + ["user_1"]
        assert merged[0].content == SEED_KNOWLEDGE[0].content

    def test_user_entries_filter(self):
        entries = knowledge_base.add_entry(SEED_KNOWLEDGE, "mine")
        assert [e.content for e in knowledge_base.user_entries(entries)] == ["mine"]

    def test_context_is_numbered_in_list_order(self):
        entries = (KnowledgeEntry(id="user_b", content="second", timestamp=2),
                   KnowledgeEntry(id="user_a", content="first", timestamp=1))
        context = knowledge_base.build_knowledge_context(entries)
        assert "1. second\n\n2. first" in context
        assert knowledge_base.KNOWLEDGE_HEADING in context

    def test_context_empty_without_entries(self):
        assert knowledge_base.build_knowledge_context(()) == ""

    def test_seed_ids_are_not_user_entries(self):
        assert all(not e.is_user_entry for e in SEED_KNOWLEDGE)
        assert len(SEED_IDS) == len(SEED_KNOWLEDGE)


class TestActivityLog:
    def test_activity_log_evicts_oldest(self):
        activities = ()
        for i in range(1001):
            activities = activity_log.record_activity(activities, "Lee", "HB7", f"q{i}", "a", False, timestamp=i)
        assert len(activities) == 1000
        assert activities[0].user_query == "q1000"
        assert activities[-1].user_query == "q1"
        assert all(a.user_query != "q0" for a in activities)

    def test_user_log_evicts_oldest(self):
        logs = ()
        for i in range(101):
            logs = activity_log.record_login(logs, f"user{i}", f"id{i}", timestamp=i)
        assert len(logs) == 100
        assert logs[0].name == "user100"
        assert logs[-1].name == "user1"

    def test_search_single_match(self):
        activities = ()
        activities = activity_log.record_activity(activities, "Park", "HB1", "card receipt rules", "x", True)
        activities = activity_log.record_activity(activities, "Choi", "HB2", "vacation days", "y", False)
        result = activity_log.search_activities(activities, "receipt")
        assert [a.user_query for a in result] == ["card receipt rules"]

    def test_search_matches_name_and_id(self):
        activities = activity_log.record_activity((), "Park", "HB1", "q", "x", False)
        assert len(activity_log.search_activities(activities, "Par")) == 1
        assert len(activity_log.search_activities(activities, "HB1")) == 1

    def test_search_no_match(self):
        activities = activity_log.record_activity((), "Park", "HB1", "q", "x", False)
        assert activity_log.search_activities(activities, "zzz") == ()

    def test_search_is_case_sensitive(self):
        activities = activity_log.record_activity((), "Park", "HB1", "Receipt", "x", False)
        assert activity_log.search_activities(activities, "receipt") == ()

    def test_empty_search_matches_everything(self):
        activities = activity_log.record_activity((), "Park", "HB1", "q", "x", False)
        assert activity_log.search_activities(activities, "") == activities
