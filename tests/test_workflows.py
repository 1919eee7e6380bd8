"""Tests for the shared workflow layer."""

from unittest.mock import MagicMock, patch

import pytest

from lockdiary.adapters.attachments import FileGrantRegistry
from lockdiary.adapters.json_entry_store import JsonEntryStore
from lockdiary.config import CONFIG_DIR, DATA_DIR, Config
from lockdiary.errors import CorruptionError, EmptyEntryError, NotFoundError
from lockdiary.workflows import (
    add_entry,
    edit_entry,
    get_attachments,
    get_gate,
    get_store,
    list_entries,
    remove_entry,
    resolve_image,
)


@pytest.fixture
def config(tmp_path):
    return Config(
        entries_file=str(tmp_path / "data" / "entries.json"),
        grants_file=str(tmp_path / "config" / "grants.json"),
        pin_file=str(tmp_path / "config" / ".pin.json"),
    )


@pytest.fixture
def store(config):
    return get_store(config)


@pytest.fixture
def attachments(config):
    session = MagicMock()
    session.head.return_value = MagicMock(status_code=200)
    return FileGrantRegistry(config.grants_path, session=session)


@pytest.fixture
def photo(tmp_path):
    path = tmp_path / "photo.jpg"
    path.write_bytes(b"jpg")
    return path


class TestGetters:
    def test_store_uses_configured_file(self, config, tmp_path):
        store = get_store(config)
        assert isinstance(store, JsonEntryStore)
        assert store.path == tmp_path / "data" / "entries.json"

    def test_store_uses_timestamp_format(self, tmp_path):
        store = get_store(Config(entries_file=str(tmp_path / "e.json"), timestamp_format="%Y"))
        assert store.timestamp_format == "%Y"

    def test_store_falls_back_to_default(self):
        assert get_store(Config()).path == DATA_DIR / "diary_entries.json"

    def test_attachments_use_configured_file(self, config, tmp_path):
        registry = get_attachments(config)
        assert registry.grants_file == tmp_path / "config" / "grants.json"
        assert registry.timeout == config.http_timeout

    def test_attachments_fall_back_to_default(self):
        assert get_attachments(Config()).grants_file == CONFIG_DIR / "grants.json"

    def test_gate_uses_pin_length(self, config):
        config.pin_length = 6
        assert get_gate(config).length == 6


class TestAddEntry:
    def test_text_only(self, store, attachments):
        saved = add_entry(store, attachments, "Day one")
        assert saved.entry.text == "Day one"
        assert saved.attachment is None
        assert not saved.grant_failed

    def test_with_image_grants_before_saving(self, store, attachments, photo):
        saved = add_entry(store, attachments, "", str(photo))
        assert saved.attachment.granted
        assert saved.entry.image_ref == photo.as_uri()
        assert attachments.resolve(saved.entry.image_ref).location == photo

    def test_grant_failure_still_saves(self, store, attachments):
        saved = add_entry(store, attachments, "", "res://photo1")
        assert saved.grant_failed
        assert store.get(saved.entry.id).image_ref == "res://photo1"

    def test_empty_rejected_before_attach(self, store):
        attachments = MagicMock()
        with pytest.raises(EmptyEntryError):
            add_entry(store, attachments, "  ", None)
        attachments.attach.assert_not_called()
        assert not store.path.exists()

    def test_failed_save_releases_new_grant(self, store, attachments, photo):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json")
        with pytest.raises(CorruptionError):
            add_entry(store, attachments, "x", str(photo))
        assert attachments.grants() == []


class TestListEntries:
    def test_newest_first(self, store, attachments):
        for text in ["a", "b", "c"]:
            add_entry(store, attachments, text)
        assert [e.text for e in list_entries(store)] == ["c", "b", "a"]

    def test_corrupt_document_lists_nothing(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json")
        assert list_entries(store) == []


class TestEditEntry:
    def test_text_none_keeps_text(self, store, attachments, photo):
        entry = add_entry(store, attachments, "caption").entry
        saved = edit_entry(store, attachments, entry.id, image_locator=str(photo))
        assert saved.entry.text == "caption"
        assert saved.entry.image_ref == photo.as_uri()

    def test_text_none_keeps_text_changed_after_read(self, config, store, attachments, photo):
        entry = add_entry(store, attachments, "first draft").entry
        real_get = store.get

        def get_then_concurrent_edit(entry_id):
            current = real_get(entry_id)
            get_store(config).update(entry_id, "second draft")
            return current

        with patch.object(store, "get", side_effect=get_then_concurrent_edit):
            saved = edit_entry(store, attachments, entry.id, image_locator=str(photo))
        assert saved.entry.text == "second draft"
        assert store.get(entry.id).text == "second draft"
        assert saved.entry.image_ref == photo.as_uri()

    def test_keeps_image_by_default(self, store, attachments, photo):
        entry = add_entry(store, attachments, "a", str(photo)).entry
        saved = edit_entry(store, attachments, entry.id, text="b")
        assert saved.entry.image_ref == photo.as_uri()
        assert saved.attachment is None

    def test_remove_image_releases_grant(self, store, attachments, photo):
        entry = add_entry(store, attachments, "a", str(photo)).entry
        saved = edit_entry(store, attachments, entry.id, remove_image=True)
        assert saved.entry.image_ref is None
        assert attachments.grants() == []

    def test_replace_image_releases_old_grant(self, store, attachments, photo, tmp_path):
        other = tmp_path / "other.jpg"
        other.write_bytes(b"jpg")
        entry = add_entry(store, attachments, "a", str(photo)).entry
        edit_entry(store, attachments, entry.id, image_locator=str(other))
        assert [g.ref for g in attachments.grants()] == [other.as_uri()]

    def test_shared_image_grant_kept(self, store, attachments, photo):
        first = add_entry(store, attachments, "a", str(photo)).entry
        add_entry(store, attachments, "b", str(photo))
        edit_entry(store, attachments, first.id, remove_image=True)
        assert [g.ref for g in attachments.grants()] == [photo.as_uri()]

    def test_both_image_options_rejected(self, store, attachments, photo):
        entry = add_entry(store, attachments, "a").entry
        with pytest.raises(ValueError):
            edit_entry(store, attachments, entry.id, image_locator=str(photo), remove_image=True)

    def test_unknown_id(self, store, attachments):
        with pytest.raises(NotFoundError):
            edit_entry(store, attachments, 42, text="x")


class TestRemoveEntry:
    def test_removes_and_releases(self, store, attachments, photo):
        entry = add_entry(store, attachments, "a", str(photo)).entry
        removed = remove_entry(store, attachments, entry.id)
        assert removed.id == entry.id
        assert store.load() == []
        assert attachments.grants() == []

    def test_unknown_id(self, store, attachments):
        with pytest.raises(NotFoundError):
            remove_entry(store, attachments, 42)


class TestResolveImage:
    def test_no_image(self, store, attachments):
        entry = add_entry(store, attachments, "a").entry
        assert resolve_image(attachments, entry) is None

    def test_resolves(self, store, attachments, photo):
        entry = add_entry(store, attachments, "a", str(photo)).entry
        assert resolve_image(attachments, entry).location == photo

    def test_missing_file_degrades_to_none(self, store, attachments, photo):
        entry = add_entry(store, attachments, "a", str(photo)).entry
        photo.unlink()
        assert resolve_image(attachments, entry) is None

    def test_ungranted_degrades_to_none(self, store, attachments):
        entry = add_entry(store, attachments, "", "res://photo1").entry
        assert resolve_image(attachments, entry) is None
