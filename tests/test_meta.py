"""Tests for document metadata."""

import pytest

from folio.adapters.idgen import HexId
from folio.adapters.memory_storage import MemoryStorage
from folio.adapters.yaml_codec import YamlDocumentCodec
from folio.core.meta import TITLE_SYNC, MetaBag
from folio.core.store import BlockStore
from folio.core.workspace import Workspace


def test_get_bool_falls_back_on_type_mismatch():
    meta = MetaBag({TITLE_SYNC: "no"})

    assert meta.get_bool(TITLE_SYNC, True) is True
    assert meta.get_bool("core/missing") is False


@pytest.mark.parametrize("key", ["title", "/title", "core/", 3])
def test_keys_need_a_namespace(key):
    with pytest.raises(ValueError):
        MetaBag({key: "x"})


def test_namespace_view():
    """Keys of one namespace come back with the prefix stripped."""
    meta = MetaBag({"core/icon": "book", "user/status": "draft", "user/tags": ["a"]})

    assert meta.namespace("user") == {"status": "draft", "tags": ["a"]}
    assert meta.namespace("plugin") == {}


def test_meta_is_mutable_mapping():
    meta = MetaBag()
    meta["user/tags"] = ["a"]
    assert dict(meta) == {"user/tags": ["a"]}
    del meta["user/tags"]
    assert len(meta) == 0


def test_bad_meta_key_makes_document_unreadable():
    codec = YamlDocumentCodec()
    with pytest.raises(ValueError):
        codec.decode("id: d1\nmeta:\n  icon: book\nblocks: []\n")


def test_title_sync_flag_persists():
    """Turning title sync off is stored in the document's meta."""
    storage = MemoryStorage()
    store = BlockStore(Workspace(storage), HexId())
    doc = store.create_document("Plans")

    store.set_title_sync(doc.id, False)

    saved = next(d for d in storage.snapshot if d.id == doc.id)
    assert saved.meta.get_bool(TITLE_SYNC, True) is False
    assert saved.meta.to_dict() == {TITLE_SYNC: False}
