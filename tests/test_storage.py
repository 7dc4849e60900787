"""
Tests for CandidateStore.
"""

import threading

import pytest

from talentintake.errors import IdentityConflictError, PersistenceError, WeightsValidationError
from talentintake.models import CandidateRecord, ScoringWeights


def _record(tenant="t1", **kwargs):
    kwargs.setdefault("name", "Jane Doe")
    return CandidateRecord(tenant_id=tenant, **kwargs)


class TestUpsert:
    def test_insert_assigns_id_and_timestamps(self, store):
        """New records get an id and created/updated timestamps."""
        stored = store.upsert("t1", _record(email="jane@example.com", skills=["Python"]))

        assert stored.id
        assert stored.created_at is not None
        assert stored.skills == ["Python"]
        assert store.count("t1") == 1

    def test_identity_columns_normalized(self, store):
        """Email and handle are stored in comparison form."""
        stored = store.upsert("t1", _record(
            email=" Jane@Example.COM ",
            profile_handle="linkedin.com/in/JaneDoe",
        ))

        assert stored.email == "jane@example.com"
        assert stored.profile_handle == "https://www.linkedin.com/in/janedoe/"

    def test_update_in_place(self, store):
        """Upserting a record with an id updates that row."""
        stored = store.upsert("t1", _record(email="jane@example.com"))
        stored.title = "Staff Engineer"

        updated = store.upsert("t1", stored)

        assert updated.id == stored.id
        assert updated.title == "Staff Engineer"
        assert store.count("t1") == 1

    def test_insert_with_known_identity_is_refused(self, store):
        """A new record that reuses a stored email is not written over it."""
        first = store.upsert("t1", _record(email="jane@example.com", title="Engineer"))

        with pytest.raises(IdentityConflictError) as exc_info:
            store.upsert("t1", _record(name="Impostor", email="JANE@example.com"))

        assert exc_info.value.existing.id == first.id
        assert store.get("t1", first.id).name == "Jane Doe"
        assert store.count("t1") == 1

    def test_insert_with_known_handle_is_refused(self, store):
        """The handle alone is enough to collide."""
        store.upsert("t1", _record(name="Bob", email="bob@x.com", profile_handle="linkedin.com/in/bob"))

        with pytest.raises(IdentityConflictError):
            store.upsert("t1", _record(name="Robert", email="robert@y.com", profile_handle="linkedin.com/in/bob"))

    def test_tenant_mismatch_rejected(self, store):
        """A record cannot be written into another tenant."""
        with pytest.raises(PersistenceError):
            store.upsert("t2", _record(tenant="t1"))

    def test_unknown_id_rejected(self, store):
        """Updating a record that does not exist fails."""
        with pytest.raises(PersistenceError):
            store.upsert("t1", _record(id="missing"))

    def test_constraint_violation_becomes_persistence_error(self, store):
        """Moving a record onto another record's email surfaces as PersistenceError."""
        store.upsert("t1", _record(email="a@x.com"))
        other = store.upsert("t1", _record(name="Bob", email="b@x.com"))
        other.email = "a@x.com"

        with pytest.raises(PersistenceError):
            store.upsert("t1", other)

    def test_concurrent_inserts_create_one_record(self, store):
        """Parallel writers for the same identity: one inserts, the rest are told who won."""
        barrier = threading.Barrier(4)
        ids = []

        def writer():
            barrier.wait()
            try:
                ids.append(store.upsert("t1", _record(email="race@example.com")).id)
            except IdentityConflictError as e:
                ids.append(e.existing.id)

        threads = [threading.Thread(target=writer) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(set(ids)) == 1
        assert store.count("t1") == 1


class TestFind:
    def test_find_by_email_and_handle(self, store):
        """Both values must match the same record."""
        store.upsert("t1", _record(email="jane@example.com", profile_handle="https://linkedin.com/in/jane"))

        assert store.find_by_identity("t1", email="jane@example.com",
                                      profile_handle="https://www.linkedin.com/in/jane/") is not None
        assert store.find_by_identity("t1", email="jane@example.com",
                                      profile_handle="https://linkedin.com/in/other") is None

    def test_find_is_tenant_scoped(self, store):
        """Another tenant's candidate is never returned."""
        store.upsert("t1", _record(email="jane@example.com"))

        assert store.find_by_identity("t2", email="jane@example.com") is None

    def test_find_without_identity(self, store):
        """No identity values means no match."""
        store.upsert("t1", _record())
        assert store.find_by_identity("t1") is None

    def test_get(self, store):
        """get is tenant scoped too."""
        stored = store.upsert("t1", _record(email="jane@example.com"))
        assert store.get("t1", stored.id).email == "jane@example.com"
        assert store.get("t2", stored.id) is None

    def test_list_orders_by_score(self, store):
        """Best score first, unscored last, optional tier filter."""
        store.upsert("t1", _record(name="Low", email="l@x.com", score=20.0, priority_tier="Low"))
        store.upsert("t1", _record(name="High", email="h@x.com", score=80.0, priority_tier="High"))
        store.upsert("t1", _record(name="None", email="n@x.com"))

        names = [c.name for c in store.list_candidates("t1")]
        assert names == ["High", "Low", "None"]
        assert [c.name for c in store.list_candidates("t1", priority="High")] == ["High"]
        assert [c.name for c in store.list_candidates("t1", limit=1, offset=1)] == ["Low"]


class TestWeights:
    def test_no_weights_configured(self, store):
        """Tenants without weights get None."""
        assert store.get_weights("t1") is None

    def test_set_and_get(self, store):
        """Stored weights round-trip per tenant."""
        weights = ScoringWeights(20, 40, 20, 10, 10)
        store.set_weights("t1", weights)

        assert store.get_weights("t1") == weights
        assert store.get_weights("t2") is None

    def test_invalid_weights_not_stored(self, store):
        """Weights not summing to 100 are rejected before writing."""
        with pytest.raises(WeightsValidationError):
            store.set_weights("t1", ScoringWeights(50, 50, 50, 0, 0))
        assert store.get_weights("t1") is None
