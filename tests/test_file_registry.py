"""
Tests for the File Registry service.

Tests cover:
- Upload workflow (commit, duplicate rejection, overwrite)
- Owner catalog isolation
- Global registry first-writer-wins attribution
- Verification by hash
- Similarity search and similarity alerts
- Alert outbox
- Input validation
- Snapshot persistence
- Concurrent uploads
"""

import json
import threading
from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

import pytest

from vaultstamp.core.errors import InvalidInputError, StorageError
from vaultstamp.services import file_registry
from vaultstamp.services.alerts import DUMMY_NOTIFICATION
from vaultstamp.services.file_registry import (
    FileRecord,
    FileRegistryService,
    GlobalRegistry,
    OwnerCatalog,
    UploadStatus,
)
from vaultstamp.services.hasher import ContentHasher

ALICE = "alice"
BOB = "bob"
ALL_ONES = 0xFFFFFFFFFFFFFFFF


# =============================================================================
# Owner Catalog / Global Registry
# =============================================================================

class TestOwnerCatalog:

    def _record(self, name="a.txt", owner=ALICE):
        return FileRecord.create(name, b"data", "text/plain", 0, owner, datetime.now(timezone.utc))

    def test_ensure_is_idempotent(self):
        catalogs = OwnerCatalog()
        first = catalogs.ensure(ALICE)
        assert catalogs.ensure(ALICE) is first
        assert first == {}

    def test_get_is_case_sensitive_and_untrimmed(self):
        catalogs = OwnerCatalog()
        catalogs.put(ALICE, "Logo.png", self._record("Logo.png"))
        assert catalogs.get(ALICE, "Logo.png") is not None
        assert catalogs.get(ALICE, "logo.png") is None
        assert catalogs.get(ALICE, " Logo.png") is None

    def test_remove_reports_result(self):
        catalogs = OwnerCatalog()
        catalogs.put(ALICE, "a.txt", self._record())
        assert catalogs.remove(ALICE, "a.txt") is True
        assert catalogs.remove(ALICE, "a.txt") is False
        assert catalogs.remove(BOB, "a.txt") is False

    def test_list_isolated_per_owner(self):
        catalogs = OwnerCatalog()
        catalogs.put(ALICE, "a.txt", self._record())
        catalogs.put(BOB, "b.txt", self._record("b.txt", BOB))
        assert [r.name for r in catalogs.list(ALICE)] == ["a.txt"]
        assert [r.name for r in catalogs.list(BOB)] == ["b.txt"]
        assert catalogs.list("nobody") == []

    def test_global_registry_lookup_and_entries(self):
        registry = GlobalRegistry()
        record = self._record()
        assert registry.lookup(record.content_hash) is None
        registry.register(record.content_hash, record)
        assert registry.lookup(record.content_hash) is record
        assert registry.entries() == [record]
        assert record.content_hash in registry
        assert len(registry) == 1


class TestFileRecord:

    def test_size_is_derived(self):
        record = FileRecord.create("a", b"12345", "text/plain", 0, ALICE, datetime.now(timezone.utc))
        assert record.size == 5
        assert record.content_hash == ContentHasher.content_hash(b"12345")

    def test_record_is_immutable(self):
        record = FileRecord.create("a", b"x", "text/plain", 0, ALICE, datetime.now(timezone.utc))
        with pytest.raises(FrozenInstanceError):
            record.owner = BOB

    def test_verification_omits_content(self):
        record = FileRecord.create("a", b"secret", "text/plain", 7, ALICE, datetime.now(timezone.utc))
        proof = record.to_verification()
        assert "content" not in proof
        assert proof["owner"] == ALICE
        assert proof["fingerprint"] == 7


# =============================================================================
# Upload workflow
# =============================================================================

class TestUpload:

    def test_commit_writes_catalog_and_registry(self, registry):
        result = registry.upload_file(ALICE, "logo.png", bytes([1, 2, 3]), "image/png", ALL_ONES)

        assert result.status == UploadStatus.COMMITTED
        assert result.committed
        assert result.content_hash == ContentHasher.content_hash(bytes([1, 2, 3]))
        assert registry.check_file_exists(ALICE, "logo.png")
        assert registry.verify_by_hash(result.content_hash).owner == ALICE

    def test_duplicate_content_from_other_owner_is_rejected(self, registry):
        registry.upload_file(ALICE, "x", b"shared content", "text/plain", 0)
        result = registry.upload_file(BOB, "copy", b"shared content", "text/plain", 0)

        assert result.status == UploadStatus.REJECTED
        assert "another owner" in result.message
        assert result.record is None
        assert registry.verify_by_hash(result.content_hash).owner == ALICE
        assert registry.get_files(BOB) == []
        assert registry.get_alerts(BOB) == []

    def test_rejected_upload_does_not_overwrite_same_name(self, registry):
        registry.upload_file(ALICE, "x", b"alice content", "text/plain", 0)
        registry.upload_file(BOB, "x", b"bob original", "text/plain", 0)
        result = registry.upload_file(BOB, "x", b"alice content", "text/plain", 0)

        assert result.status == UploadStatus.REJECTED
        assert registry.get_file(BOB, "x").content == b"bob original"

    def test_same_name_new_content_overwrites(self, registry):
        registry.upload_file(ALICE, "x", b"C1", "text/plain", 0)
        registry.upload_file(ALICE, "x", b"C2", "text/plain", 0)

        files = registry.get_files(ALICE)
        assert len(files) == 1
        assert files[0].name == "x"
        assert files[0].content == b"C2"

    def test_same_content_same_name_is_idempotent(self, registry):
        first = registry.upload_file(ALICE, "x", b"C", "text/plain", 0)
        second = registry.upload_file(ALICE, "x", b"C", "text/plain", 0)

        assert second.status == UploadStatus.COMMITTED
        assert len(registry.get_files(ALICE)) == 1
        assert len(registry.registry) == 1
        # first registration keeps its metadata
        assert registry.verify_by_hash(first.content_hash).created_at == first.record.created_at

    def test_same_content_different_name_keeps_first_registration(self, registry):
        first = registry.upload_file(ALICE, "original.png", b"C", "image/png", 0)
        registry.upload_file(ALICE, "renamed.png", b"C", "image/png", 0)

        names = sorted(r.name for r in registry.get_files(ALICE))
        assert names == ["original.png", "renamed.png"]
        assert len(registry.registry) == 1
        registered = registry.verify_by_hash(first.content_hash)
        assert registered.name == "original.png"
        assert registered.created_at == first.record.created_at

    def test_timestamps_strictly_increase(self, registry):
        a = registry.upload_file(ALICE, "a", b"1", "text/plain", 0).record
        b = registry.upload_file(ALICE, "b", b"2", "text/plain", 0).record
        c = registry.upload_file(ALICE, "c", b"3", "text/plain", 0).record
        assert a.created_at < b.created_at < c.created_at

    def test_empty_media_type_defaults(self, registry):
        record = registry.upload_file(ALICE, "a", b"1", "", 0).record
        assert record.media_type == "application/octet-stream"

    def test_media_type_is_not_validated(self, registry):
        record = registry.upload_file(ALICE, "a.txt", b"plain text", "image/png", 0).record
        assert record.media_type == "image/png"


class TestUploadValidation:

    @pytest.mark.parametrize("name", ["", "   "])
    def test_empty_name(self, registry, name):
        with pytest.raises(InvalidInputError) as exc_info:
            registry.upload_file(ALICE, name, b"data", "text/plain", 0)
        assert exc_info.value.status_code == 422

    def test_empty_content(self, registry):
        with pytest.raises(InvalidInputError):
            registry.upload_file(ALICE, "a", b"", "text/plain", 0)

    @pytest.mark.parametrize("fingerprint", [-1, 1 << 64])
    def test_fingerprint_out_of_range(self, registry, fingerprint):
        with pytest.raises(InvalidInputError):
            registry.upload_file(ALICE, "a", b"data", "text/plain", fingerprint)

    def test_too_large(self):
        service = FileRegistryService(max_upload_size=4)
        with pytest.raises(InvalidInputError):
            service.upload_file(ALICE, "a", b"12345", "text/plain", 0)

    def test_invalid_upload_leaves_no_trace(self, registry):
        with pytest.raises(InvalidInputError):
            registry.upload_file(ALICE, "", b"data", "text/plain", 0)
        assert registry.get_files(ALICE) == []
        assert registry.get_alerts(ALICE) == []
        assert len(registry.registry) == 0


# =============================================================================
# Delete / download
# =============================================================================

class TestDelete:

    def test_delete_removes_catalog_entry_only(self, registry):
        result = registry.upload_file(ALICE, "x", b"C", "text/plain", 0)

        assert registry.delete_file(ALICE, "x") is True
        assert not registry.check_file_exists(ALICE, "x")
        assert registry.verify_by_hash(result.content_hash).owner == ALICE

    def test_deleted_content_stays_claimed(self, registry):
        registry.upload_file(ALICE, "x", b"C", "text/plain", 0)
        registry.delete_file(ALICE, "x")

        assert registry.upload_file(BOB, "y", b"C", "text/plain", 0).status == UploadStatus.REJECTED
        assert registry.upload_file(ALICE, "x", b"C", "text/plain", 0).status == UploadStatus.COMMITTED

    def test_delete_missing(self, registry):
        assert registry.delete_file(ALICE, "missing") is False

    def test_get_file_returns_content(self, registry):
        registry.upload_file(ALICE, "x", b"payload", "text/plain", 0)
        assert registry.get_file(ALICE, "x").content == b"payload"
        assert registry.get_file(BOB, "x") is None


# =============================================================================
# Verification / similarity
# =============================================================================

class TestVerifyAndSimilar:

    def test_verify_unknown_hash(self, registry):
        assert registry.verify_by_hash(ContentHasher.content_hash(b"never uploaded")) is None

    @pytest.mark.parametrize("value", ["", "abc", "g" * 64, "0" * 63])
    def test_verify_malformed_hash(self, registry, value):
        assert registry.verify_by_hash(value) is None

    def test_verify_accepts_uppercase_hash(self, registry):
        result = registry.upload_file(ALICE, "x", b"C", "text/plain", 0)
        assert registry.verify_by_hash(result.content_hash.upper()).name == "x"

    def test_example_scenario(self, registry):
        assert registry.upload_file(ALICE, "logo.png", bytes([1, 2, 3]), "image/png", ALL_ONES).committed
        rejected = registry.upload_file(BOB, "copy.png", bytes([1, 2, 3]), "image/png", ALL_ONES)
        assert rejected.status == UploadStatus.REJECTED

        matches = registry.find_similar(0xFFFFFFFFFFFFFFFE)
        assert len(matches) == 1
        assert matches[0].name == "logo.png"
        assert matches[0].owner == ALICE
        assert matches[0].similarity == 98

    def test_threshold_boundary_over_registry(self, registry):
        registry.upload_file(ALICE, "six", b"6", "text/plain", 0b111111)
        registry.upload_file(ALICE, "seven", b"7", "text/plain", 0b1111111)
        assert [m.name for m in registry.find_similar(0)] == ["six"]

    def test_similar_scans_registry_not_catalogs(self, registry):
        registry.upload_file(ALICE, "first", b"C", "text/plain", 0)
        registry.upload_file(ALICE, "second", b"C", "text/plain", 0)
        assert [m.name for m in registry.find_similar(0)] == ["first"]

    def test_invalid_query(self, registry):
        with pytest.raises(InvalidInputError):
            registry.find_similar(-5)
        with pytest.raises(InvalidInputError):
            registry.find_similar(0, threshold=101)


# =============================================================================
# Alerts
# =============================================================================

class TestAlerts:

    def test_upload_appends_two_alerts_in_order(self, registry):
        registry.upload_file(ALICE, "logo.png", b"C", "image/png", 0)
        alerts = registry.get_alerts(ALICE)
        assert len(alerts) == 2
        assert "uploaded successfully" in alerts[0]
        assert "catalog" in alerts[1]

    def test_reading_does_not_clear(self, registry):
        registry.upload_file(ALICE, "a", b"C", "text/plain", 0)
        assert registry.get_alerts(ALICE) == registry.get_alerts(ALICE)

    def test_dummy_notification(self, registry):
        assert registry.send_dummy_notification(ALICE) == "Dummy notification sent."
        assert registry.get_alerts(ALICE) == [DUMMY_NOTIFICATION]

    def test_similar_upload_alerts_other_owner(self, registry):
        registry.upload_file(ALICE, "logo.png", b"alice", "image/png", ALL_ONES)
        registry.upload_file(BOB, "knockoff.png", b"bob", "image/png", 0xFFFFFFFFFFFFFFFE)

        alice_alerts = registry.get_alerts(ALICE)
        assert len(alice_alerts) == 3
        assert "98%" in alice_alerts[2]
        assert "logo.png" in alice_alerts[2]
        assert len(registry.get_alerts(BOB)) == 2

    def test_similarity_alerts_can_be_disabled(self):
        service = FileRegistryService(similarity_alerts_enabled=False)
        service.upload_file(ALICE, "logo.png", b"alice", "image/png", ALL_ONES)
        service.upload_file(BOB, "knockoff.png", b"bob", "image/png", ALL_ONES)
        assert len(service.get_alerts(ALICE)) == 2

    def test_dissimilar_upload_does_not_alert(self, registry):
        registry.upload_file(ALICE, "logo.png", b"alice", "image/png", ALL_ONES)
        registry.upload_file(BOB, "other.png", b"bob", "image/png", 0)
        assert len(registry.get_alerts(ALICE)) == 2


# =============================================================================
# Persistence
# =============================================================================

class TestSnapshot:

    def test_state_survives_restart(self, tmp_path):
        service = FileRegistryService(data_dir=tmp_path)
        result = service.upload_file(ALICE, "logo.png", bytes([1, 2, 3]), "image/png", ALL_ONES)
        service.send_dummy_notification(BOB)

        reloaded = FileRegistryService(data_dir=tmp_path)
        record = reloaded.get_file(ALICE, "logo.png")
        assert record.content == bytes([1, 2, 3])
        assert record.fingerprint == ALL_ONES
        assert record.created_at == result.record.created_at
        assert reloaded.verify_by_hash(result.content_hash).owner == ALICE
        assert reloaded.get_alerts(BOB) == [DUMMY_NOTIFICATION]
        assert reloaded.upload_file(BOB, "copy", bytes([1, 2, 3]), "image/png", 0).status == UploadStatus.REJECTED

    def test_snapshot_is_json(self, tmp_path):
        FileRegistryService(data_dir=tmp_path).upload_file(ALICE, "a", b"C", "text/plain", 3)
        data = json.loads((tmp_path / "registry.json").read_text())
        assert set(data) >= {"registry", "catalogs", "outbox"}
        assert "a" in data["catalogs"][ALICE]

    def test_timestamps_stay_monotonic_after_reload(self, tmp_path):
        first = FileRegistryService(data_dir=tmp_path).upload_file(ALICE, "a", b"1", "text/plain", 0)
        second = FileRegistryService(data_dir=tmp_path).upload_file(ALICE, "b", b"2", "text/plain", 0)
        assert second.record.created_at > first.record.created_at

    def test_corrupt_snapshot(self, tmp_path):
        (tmp_path / "registry.json").write_text("{not json")
        with pytest.raises(StorageError):
            FileRegistryService(data_dir=tmp_path)

    def test_tampered_snapshot_content(self, tmp_path):
        FileRegistryService(data_dir=tmp_path).upload_file(ALICE, "a", b"C", "text/plain", 0)
        path = tmp_path / "registry.json"
        data = json.loads(path.read_text())
        content_hash = next(iter(data["registry"]))
        data["registry"][content_hash]["content"] = "dGFtcGVyZWQ="  # "tampered"
        path.write_text(json.dumps(data))
        with pytest.raises(StorageError):
            FileRegistryService(data_dir=tmp_path)

    @pytest.mark.parametrize("payload", ["[]", "42", "\"text\""])
    def test_snapshot_not_an_object(self, tmp_path, payload):
        (tmp_path / "registry.json").write_text(payload)
        with pytest.raises(StorageError):
            FileRegistryService(data_dir=tmp_path)

    def test_failed_write_leaves_state_unchanged(self, tmp_path, monkeypatch):
        service = FileRegistryService(data_dir=tmp_path)
        service.upload_file(ALICE, "kept", b"kept", "text/plain", ALL_ONES)
        before = (
            service.get_statistics(),
            service.get_alerts(ALICE),
            service.get_alerts(BOB),
        )

        def fail_dump(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(file_registry.json, "dump", fail_dump)

        with pytest.raises(StorageError):
            service.upload_file(BOB, "x", b"new content", "text/plain", ALL_ONES)
        with pytest.raises(StorageError):
            service.delete_file(ALICE, "kept")
        with pytest.raises(StorageError):
            service.send_dummy_notification(ALICE)

        assert service.get_files(BOB) == []
        assert service.verify_by_hash(ContentHasher.content_hash(b"new content")) is None
        assert service.check_file_exists(ALICE, "kept")
        assert (service.get_statistics(), service.get_alerts(ALICE), service.get_alerts(BOB)) == before

        monkeypatch.undo()
        reloaded = FileRegistryService(data_dir=tmp_path)
        assert reloaded.get_files(BOB) == []
        assert reloaded.get_alerts(ALICE) == before[1]

        # the content was never claimed, so it is still free to upload
        assert service.upload_file(BOB, "x", b"new content", "text/plain", 0).committed

    def test_in_memory_service_is_not_persistent(self, registry):
        registry.upload_file(ALICE, "a", b"C", "text/plain", 0)
        assert registry.get_statistics()["persistent"] is False


# =============================================================================
# Concurrency
# =============================================================================

class TestConcurrency:

    def test_only_one_owner_wins_the_same_content(self, registry):
        results = {}
        barrier = threading.Barrier(8)

        def upload(owner):
            barrier.wait()
            results[owner] = registry.upload_file(owner, "race.bin", b"contested", "application/octet-stream", 0)

        threads = [threading.Thread(target=upload, args=(f"owner-{i}",)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        winners = [owner for owner, r in results.items() if r.committed]
        assert len(winners) == 1
        assert registry.verify_by_hash(ContentHasher.content_hash(b"contested")).owner == winners[0]
        assert registry.get_statistics()["catalog_entries"] == 1


def test_statistics(registry):
    registry.upload_file(ALICE, "a", b"1", "text/plain", 0)
    registry.upload_file(ALICE, "b", b"1", "text/plain", 0)
    registry.upload_file(BOB, "c", b"2", "text/plain", ALL_ONES)

    stats = registry.get_statistics()
    assert stats["registered_contents"] == 2
    assert stats["catalog_entries"] == 3
    assert stats["owners"] == 2
    assert stats["alerts"] == 6
