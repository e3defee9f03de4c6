"""Tests for the YAML codec and storage adapters."""

import tempfile
from pathlib import Path

import pytest

from folio.adapters.debounce import DebouncedStorage
from folio.adapters.fs_storage import FsStorage
from folio.adapters.idgen import HexId
from folio.adapters.memory_storage import MemoryStorage
from folio.adapters.yaml_codec import YamlDocumentCodec
from folio.core.meta import MetaBag
from folio.core.model import Block, BlockType, Document
from folio.core.store import BlockStore
from folio.core.workspace import Workspace
from folio.runtime import build_runtime


@pytest.fixture
def sample():
    return Document(
        id="abc123",
        title="Sample: yes",
        parent_id="root1",
        meta=MetaBag({"core/title_sync": False, "user/tags": ["a", "b"]}),
        blocks=[
            Block(id="h", type=BlockType.HEADING1, content="Sample", collapsed=True),
            Block(id="n", type=BlockType.NUMBERED_LIST, content="see [[x1|X]]", list_number=4, indent=1),
            Block(id="k", type=BlockType.CODE, content="print('hi')\n", language="python"),
            Block(id="e", type=BlockType.BLOCK_EMBED, target_block_id="b9", source_document_id="d9"),
            Block(id="t", content="yes", metadata={"color": "red"}),
        ],
    )


def test_codec_is_lossless(sample):
    """Test encode/decode gives back an equal document."""
    codec = YamlDocumentCodec()
    decoded = codec.decode(codec.encode(sample))
    assert decoded == sample
    assert decoded.blocks[4].content == "yes"
    assert decoded.meta.get_bool("core/title_sync", True) is False


def test_codec_rejects_garbage():
    codec = YamlDocumentCodec()
    with pytest.raises(ValueError):
        codec.decode("- just\n- a list\n")
    with pytest.raises(ValueError):
        codec.decode("id: [unclosed")


def test_fs_storage_round_trip(sample):
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir) / "ws"
        storage = FsStorage(root)
        storage.persist([sample])
        assert (root / "abc123.yaml").exists()

        loaded = FsStorage(root).load()
        assert loaded == [sample]


def test_fs_storage_only_rewrites_changed_documents(sample):
    """Test unchanged documents are not written again."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        storage = FsStorage(root)
        other = Document(id="zzz", title="Other")
        storage.persist([sample, other])

        path = root / "zzz.yaml"
        path.write_text("sentinel", encoding="utf-8")
        sample.title = "Changed"
        storage.persist([sample, other])

        # zzz's hash did not change, so the sentinel survives
        assert path.read_text(encoding="utf-8") == "sentinel"
        assert "Changed" in (root / "abc123.yaml").read_text(encoding="utf-8")


def test_fs_storage_removes_stale_files(sample):
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        storage = FsStorage(root)
        storage.persist([sample, Document(id="gone", title="Gone")])
        storage.persist([sample])
        assert not (root / "gone.yaml").exists()
        assert storage.list_all_ids() == ["abc123"]


def test_fs_storage_skips_unreadable_files():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "bad.yaml").write_text("id: [unclosed", encoding="utf-8")
        (root / "ok.yaml").write_text("id: ok\ntitle: Fine\nblocks: []\n", encoding="utf-8")
        docs = FsStorage(root).load()
        assert [d.id for d in docs] == ["ok"]


def test_store_persists_through_fs_storage():
    """Test a mutation is visible to a freshly loaded workspace."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        store = BlockStore(Workspace(FsStorage(root)), HexId())
        doc = store.create_document("Persisted")
        block = store.insert(doc.id, "bulletList", anchor=doc.blocks[0].id, position="before", content="kept")

        again = BlockStore(Workspace(FsStorage(root)), HexId())
        loaded = again.get_document(doc.id)
        assert loaded.title == "Persisted"
        assert loaded.find(block.id).content == "kept"
        assert loaded.blocks[-1].is_trailing_placeholder


def test_memory_storage_snapshots():
    storage = MemoryStorage()
    doc = Document(id="d", title="T")
    storage.persist([doc])
    doc.title = "changed later"
    assert storage.load()[0].title == "T"
    assert storage.writes == 1


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_debounced_storage_batches_writes():
    """Test writes are held until the debounce window has passed."""
    inner = MemoryStorage()
    clock = FakeClock()
    storage = DebouncedStorage(inner, debounce_ms=200, clock=clock)
    doc = Document(id="d", title="one")

    storage.persist([doc])
    doc.title = "two"
    storage.persist([doc])
    assert inner.writes == 0

    clock.now += 0.1
    assert not storage.check_and_flush()
    clock.now += 0.2
    assert storage.check_and_flush()
    assert inner.writes == 1
    assert inner.load()[0].title == "two"
    assert not storage.check_and_flush()


def test_debounced_storage_flush_and_passthrough():
    inner = MemoryStorage()
    storage = DebouncedStorage(inner, debounce_ms=500, clock=FakeClock())
    storage.persist([Document(id="d")])
    storage.flush()
    assert inner.writes == 1

    immediate = DebouncedStorage(inner, debounce_ms=0)
    immediate.persist([Document(id="e")])
    assert inner.writes == 2
    assert [d.id for d in immediate.load()] == ["e"]


def test_hex_id_length():
    assert len(HexId(nbytes=6).new_id()) == 12
    with pytest.raises(ValueError):
        HexId(nbytes=0)


def test_deleted_ids_survive_a_new_runtime():
    """Test the deleted-document set is saved beside the documents and reloaded."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        rt = build_runtime(workspace_path=root)
        gone = rt.store.create_document("Gone")
        rt.store.delete_document(gone.id)

        assert (root / "_workspace.yaml").exists()
        assert FsStorage(root).list_all_ids() == []

        again = build_runtime(workspace_path=root)
        assert again.store.references.is_broken(gone.id)
        assert again.store.session.broken_links.version == 1
        assert len(again.workspace) == 0


def test_fs_storage_state_round_trip():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = FsStorage(Path(tmpdir))
        assert storage.load_state() == {}

        storage.persist_state({"deleted": ["a1", "b2"], "version": 2})
        assert storage.load_state() == {"deleted": ["a1", "b2"], "version": 2}
        assert storage.load() == []

        (Path(tmpdir) / "_workspace.yaml").write_text("deleted: [unclosed\n")
        assert storage.load_state() == {}


def test_debounced_storage_writes_state_through():
    inner = MemoryStorage()
    storage = DebouncedStorage(inner, debounce_ms=500, clock=FakeClock())
    storage.persist_state({"deleted": ["x"], "version": 1})
    assert inner.state == {"deleted": ["x"], "version": 1}
    assert storage.load_state() == {"deleted": ["x"], "version": 1}
