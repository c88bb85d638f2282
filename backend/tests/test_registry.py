"""
Participant Registry Tests

This module tests the ParticipantRegistry including:
- Register / unregister lifecycle
- Name claim validation and uniqueness
- Location and notification updates
- Snapshots and concurrent access
"""

import math
import pytest
import threading
from concurrent.futures import ThreadPoolExecutor

from tracker.registry import (
    AlreadyRegistered,
    EmptyMessage,
    InvalidLocation,
    MessageTooLong,
    ParticipantRegistry,
    UnknownConnection,
)


@pytest.fixture
def registry():
    return ParticipantRegistry()


# ============================================
# Lifecycle Tests
# ============================================

class TestRegistryLifecycle:
    """Test register/unregister"""

    def test_register_creates_empty_participant(self, registry):
        participant = registry.register("sid-1")

        assert participant.connection_id == "sid-1"
        assert participant.display_name is None
        assert participant.last_location is None
        assert participant.last_notification_text is None
        assert "sid-1" in registry
        assert len(registry) == 1

    def test_double_register_raises(self, registry):
        registry.register("sid-1")

        with pytest.raises(AlreadyRegistered):
            registry.register("sid-1")
        assert len(registry) == 1

    def test_unregister_removes_participant(self, registry):
        registry.register("sid-1")

        removed = registry.unregister("sid-1")

        assert removed.connection_id == "sid-1"
        assert "sid-1" not in registry

    def test_unregister_is_idempotent(self, registry):
        registry.register("sid-1")

        assert registry.unregister("sid-1") is not None
        assert registry.unregister("sid-1") is None
        assert registry.unregister("never-seen") is None

    def test_unregister_frees_name(self, registry):
        registry.register("sid-1")
        registry.register("sid-2")
        assert registry.claim_name("sid-1", "dan").accepted

        registry.unregister("sid-1")
        result = registry.claim_name("sid-2", "DAN")

        assert result.accepted
        assert result.name == "DAN"

    def test_returned_records_are_copies(self, registry):
        participant = registry.register("sid-1")
        participant.display_name = "mallory"

        assert registry.get("sid-1").display_name is None
        assert registry.is_name_available("mallory")


# ============================================
# Name Claim Tests
# ============================================

class TestClaimName:
    """Test name validation and uniqueness"""

    def test_claim_accepted(self, registry):
        registry.register("sid-1")

        result = registry.claim_name("sid-1", "alice", {"gender": "female"})

        assert result.accepted
        assert result.name == "alice"
        assert result.participant.attrs == {"gender": "female"}
        assert registry.get("sid-1").display_name == "alice"

    def test_claim_trims_whitespace(self, registry):
        registry.register("sid-1")

        result = registry.claim_name("sid-1", "  bob  ")

        assert result.accepted
        assert result.name == "bob"

    @pytest.mark.parametrize("name", ["", " ", "a", "  a  "])
    def test_too_short(self, registry, name):
        registry.register("sid-1")

        result = registry.claim_name("sid-1", name)

        assert not result.accepted
        assert result.reason == "too_short"

    @pytest.mark.parametrize("name", ["bad name", "semi;colon", "dot.name", "emoji😀", "a" * 33])
    def test_invalid_format(self, registry, name):
        registry.register("sid-1")

        result = registry.claim_name("sid-1", name)

        assert not result.accepted
        assert result.reason == "invalid_format"

    def test_non_string_name_is_invalid_format(self, registry):
        registry.register("sid-1")

        assert registry.claim_name("sid-1", 42).reason == "invalid_format"

    @pytest.mark.parametrize("name", ["ab", "under_score", "hy-phen", "Mixed123"])
    def test_allowed_characters(self, registry, name):
        registry.register("sid-1")

        assert registry.claim_name("sid-1", name).accepted

    def test_case_insensitive_collision(self, registry):
        registry.register("x")
        registry.register("y")

        assert registry.claim_name("x", "alice").accepted
        result = registry.claim_name("y", "Alice")

        assert not result.accepted
        assert result.reason == "name_taken"
        assert registry.get("y").display_name is None

    def test_rename_not_supported(self, registry):
        registry.register("sid-1")
        registry.claim_name("sid-1", "alice")

        result = registry.claim_name("sid-1", "alicia")

        assert not result.accepted
        assert result.reason == "name_taken"
        assert registry.get("sid-1").display_name == "alice"
        assert registry.is_name_available("alicia")

    def test_rejected_claim_does_not_mutate(self, registry):
        registry.register("x")
        registry.register("y")
        registry.claim_name("x", "alice")
        names_before = registry.claimed_names()

        registry.claim_name("y", "ALICE")
        registry.claim_name("y", "!")

        assert registry.claimed_names() == names_before
        assert len(registry) == 2

    def test_claim_from_unknown_connection(self, registry):
        with pytest.raises(UnknownConnection):
            registry.claim_name("ghost", "casper")
        with pytest.raises(UnknownConnection):
            registry.claim_name("ghost", "!")

    def test_claim_backfill_excludes_claimer(self, registry):
        registry.register("x")
        registry.register("y")
        registry.register("z")
        registry.claim_name("x", "bob")
        registry.update_location("x", 1.0, 2.0)
        registry.update_location("y", 3.0, 4.0)

        result = registry.claim_name("y", "carol")

        assert [p.connection_id for p in result.backfill] == ["x"]
        assert result.backfill[0].display_name == "bob"
        assert set(result.peers) == {"x", "z"}

    def test_is_name_available(self, registry):
        registry.register("x")
        registry.claim_name("x", "alice")

        assert not registry.is_name_available("ALICE")
        assert not registry.is_name_available("a")
        assert registry.is_name_available("bob")


# ============================================
# State Update Tests
# ============================================

class TestStateUpdates:
    """Test location and notification updates"""

    def test_update_location(self, registry):
        registry.register("sid-1")

        participant = registry.update_location("sid-1", 28.6, 77.2)

        assert participant.last_location.latitude == 28.6
        assert participant.last_location.longitude == 77.2

    def test_latest_location_wins(self, registry):
        registry.register("sid-1")
        registry.update_location("sid-1", 1.0, 1.0)
        registry.update_location("sid-1", 2.0, 2.0)

        assert registry.get("sid-1").last_location.latitude == 2.0

    def test_integer_coordinates_accepted(self, registry):
        registry.register("sid-1")

        participant = registry.update_location("sid-1", 10, -20)

        assert participant.last_location.latitude == 10.0

    @pytest.mark.parametrize("lat,lng", [
        (math.nan, 1.0),
        (1.0, math.inf),
        (-math.inf, 0.0),
        ("1.0", 2.0),
        (None, 2.0),
        (True, 2.0),
    ])
    def test_invalid_location(self, registry, lat, lng):
        registry.register("sid-1")

        with pytest.raises(InvalidLocation):
            registry.update_location("sid-1", lat, lng)
        assert registry.get("sid-1").last_location is None

    def test_out_of_range_coordinates_accepted(self, registry):
        registry.register("sid-1")

        assert registry.update_location("sid-1", 123.0, 456.0).last_location is not None

    def test_update_location_unknown_connection(self, registry):
        with pytest.raises(UnknownConnection):
            registry.update_location("ghost", 1.0, 2.0)

    def test_record_notification(self, registry):
        registry.register("sid-1")

        participant = registry.record_notification("sid-1", "  hello  ")

        assert participant.last_notification_text == "hello"

    @pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
    def test_empty_notification(self, registry, text):
        registry.register("sid-1")

        with pytest.raises(EmptyMessage):
            registry.record_notification("sid-1", text)

    def test_notification_too_long(self):
        registry = ParticipantRegistry({"maxMessageLength": 5})
        registry.register("sid-1")

        with pytest.raises(MessageTooLong):
            registry.record_notification("sid-1", "too long")

    def test_notification_unknown_connection(self, registry):
        with pytest.raises(UnknownConnection):
            registry.record_notification("ghost", "boo")


# ============================================
# Snapshot Tests
# ============================================

class TestSnapshot:
    """Test snapshot ordering and filtering"""

    def test_snapshot_only_located(self, registry):
        registry.register("a")
        registry.register("b")
        registry.update_location("b", 1.0, 1.0)

        snapshot = registry.snapshot()

        assert [p.connection_id for p in snapshot] == ["b"]

    def test_snapshot_insertion_order(self, registry):
        for sid in ["c", "a", "b"]:
            registry.register(sid)
            registry.update_location(sid, 0.0, 0.0)

        assert [p.connection_id for p in registry.snapshot()] == ["c", "a", "b"]

    def test_snapshot_exclude(self, registry):
        registry.register("a")
        registry.register("b")
        registry.update_location("a", 0.0, 0.0)
        registry.update_location("b", 0.0, 0.0)

        assert [p.connection_id for p in registry.snapshot(exclude="a")] == ["b"]

    def test_get_stats(self, registry):
        registry.register("a")
        registry.claim_name("a", "alice")
        registry.update_location("a", 0.0, 0.0)

        stats = registry.get_stats()

        assert stats["connected"] == 1
        assert stats["named"] == 1
        assert stats["located"] == 1
        assert stats["totalClaims"] == 1


# ============================================
# Concurrency Tests
# ============================================

class TestConcurrentClaims:
    """Test uniqueness under concurrent claims"""

    def test_only_one_thread_wins_a_name(self, registry):
        sids = [f"sid-{i}" for i in range(50)]
        for sid in sids:
            registry.register(sid)

        barrier = threading.Barrier(len(sids))
        variants = ["eve", "Eve", "EVE", "eVe"]

        def claim(i):
            barrier.wait()
            return registry.claim_name(sids[i], variants[i % len(variants)])

        with ThreadPoolExecutor(max_workers=len(sids)) as pool:
            results = list(pool.map(claim, range(len(sids))))

        accepted = [r for r in results if r.accepted]
        assert len(accepted) == 1
        assert all(r.reason == "name_taken" for r in results if not r.accepted)
        assert len(registry.claimed_names()) == 1

    def test_claim_and_unregister_race(self, registry):
        registry.register("holder")
        registry.claim_name("holder", "frank")
        registry.register("waiting")

        with ThreadPoolExecutor(max_workers=2) as pool:
            pool.submit(registry.unregister, "holder").result()
            result = pool.submit(registry.claim_name, "waiting", "frank").result()

        assert result.accepted
        assert registry.claimed_names() == ["frank"]
