"""Unit tests for VectorStore class."""
import sys
import json
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from models.chunk import ChunkMetadata, VectorRecord
from models.index_metadata import IndexMetadata
from services.vector_store import VectorStore, NotIndexedError, IndexLockError


def make_record(index, embedding, path="src/a.ts", file_type="typescript"):
    return VectorRecord(
        id=f"chunk_{index}",
        embedding=embedding,
        metadata=ChunkMetadata(file_path=path, file_type=file_type, chunk_index=index, lines=3),
        content=f"content {index}",
    )


class TestVectorStore:
    """Test suite for VectorStore."""

    def test_paths(self, tmp_path):
        """Test store file locations."""
        store = VectorStore(data_dir=tmp_path)

        assert store.vectors_path == tmp_path / "vectors" / "embeddings.json"
        assert store.metadata_path == tmp_path / "metadata.json"
        assert not store.exists()

    def test_load_without_store_raises(self, tmp_path):
        """Test that loading a missing store raises NotIndexedError."""
        store = VectorStore(data_dir=tmp_path)

        with pytest.raises(NotIndexedError, match="Run the indexer"):
            store.load()

    def test_save_and_load(self, tmp_path):
        """Test saving and loading records."""
        store = VectorStore(data_dir=tmp_path)
        records = [make_record(0, [0.1, 0.2]), make_record(1, [0.3, 0.4], path="README.md", file_type="markdown")]

        store.save(records)

        assert store.exists()
        assert store.load() == records

    def test_file_uses_camel_case_keys(self, tmp_path):
        """Test the on-disk key names."""
        store = VectorStore(data_dir=tmp_path)
        store.save([make_record(0, [1.0, 0.0])])

        data = json.loads(store.vectors_path.read_text(encoding="utf-8"))

        assert data == [{
            "id": "chunk_0",
            "embedding": [1.0, 0.0],
            "metadata": {"filePath": "src/a.ts", "type": "typescript", "chunkIndex": 0, "lines": 3},
            "content": "content 0",
        }]

    def test_save_replaces_previous_store(self, tmp_path):
        """Test that save replaces the previous store."""
        store = VectorStore(data_dir=tmp_path)
        store.save([make_record(0, [0.1]), make_record(1, [0.2])])

        store.save([make_record(0, [0.9])])

        loaded = store.load()
        assert len(loaded) == 1
        assert loaded[0].embedding == [0.9]

    def test_save_empty_store(self, tmp_path):
        """Test saving an empty store."""
        store = VectorStore(data_dir=tmp_path)
        store.save([])

        assert store.exists()
        assert store.load() == []

    def test_save_rejects_mixed_dimensions(self, tmp_path):
        """Test that save rejects mixed dimensions."""
        store = VectorStore(data_dir=tmp_path)

        with pytest.raises(ValueError, match="Inconsistent embedding dimensions"):
            store.save([make_record(0, [0.1, 0.2]), make_record(1, [0.1])])
        assert not store.exists()

    def test_save_leaves_no_temp_files(self, tmp_path):
        """Test that save leaves no temp files."""
        store = VectorStore(data_dir=tmp_path)
        store.save([make_record(0, [0.1])])
        store.save_metadata(IndexMetadata(indexed_at="2024-01-01T00:00:00Z", total_files=1, total_chunks=1))

        leftovers = [p.name for p in tmp_path.rglob("*.tmp")]
        assert leftovers == []

    def test_metadata_round_trip(self, tmp_path):
        """Test saving and loading metadata."""
        store = VectorStore(data_dir=tmp_path)
        metadata = IndexMetadata(
            indexed_at="2024-01-01T12:00:00Z",
            total_files=3,
            total_chunks=2,
            file_types={"typescript": 1, "markdown": 1, "text": 1},
            config={"embedding": {"model": "text-embedding-3-small"}},
        )

        store.save_metadata(metadata)

        assert store.load_metadata() == metadata
        on_disk = json.loads(store.metadata_path.read_text(encoding="utf-8"))
        assert on_disk["totalFiles"] == 3
        assert on_disk["fileTypes"]["markdown"] == 1

    def test_load_metadata_missing(self, tmp_path):
        """Test loading metadata that does not exist."""
        assert VectorStore(data_dir=tmp_path).load_metadata() is None

    def test_index_lock_is_exclusive(self, tmp_path):
        """Test that the index lock is exclusive."""
        store = VectorStore(data_dir=tmp_path)
        other = VectorStore(data_dir=tmp_path)

        with store.index_lock():
            assert store.lock_path.exists()
            with pytest.raises(IndexLockError, match="already in progress"):
                with other.index_lock():
                    pass

        assert not store.lock_path.exists()

    def test_index_lock_released_on_error(self, tmp_path):
        """Test that the lock is released on error."""
        store = VectorStore(data_dir=tmp_path)

        with pytest.raises(RuntimeError):
            with store.index_lock():
                raise RuntimeError("boom")

        assert not store.lock_path.exists()
        with store.index_lock():
            pass
