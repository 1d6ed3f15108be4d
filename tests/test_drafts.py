"""Tests for draft persistence."""

from grammy.drafts import DraftStore


def test_missing_draft_is_empty(tmp_path):
    assert DraftStore(tmp_path / "draft.json").load() == ""


def test_save_then_load(tmp_path):
    store = DraftStore(tmp_path / "nested" / "draft.json")
    store.save("Café \U0001F600 text")
    assert store.load() == "Café \U0001F600 text"


def test_corrupt_draft_loads_empty(tmp_path, caplog):
    path = tmp_path / "draft.json"
    path.write_text('{"text": 5}')
    assert DraftStore(path).load() == ""
    assert "Ignoring unreadable draft" in caplog.text
