"""Unit tests for the in-memory document store."""

import pytest

from orphan_finder.search.models import Document
from orphan_finder.search.storage import DocumentStore, StorageError


class TestDocumentStore:
    def test_ids_are_dense_and_sequential(self):
        store = DocumentStore()

        ids = [store.add_document(f"doc-{idx}.md", "text") for idx in range(3)]

        assert ids == [0, 1, 2]
        assert len(store) == 3

    def test_content_is_tokenized_on_ingestion(self):
        store = DocumentStore()
        doc_id = store.add_document("readme.md", "See img/Cat.png")

        (document,) = store

        assert doc_id == 0
        assert document == Document(id=0, source_path="readme.md", terms=("see", "img", "cat", "png"))

    def test_empty_document_is_stored_without_terms(self):
        store = DocumentStore()

        store.add_document("empty.md", "")

        assert [document.terms for document in store] == [()]

    def test_duplicate_source_path_rejected(self):
        store = DocumentStore()
        store.add_document("a.md", "one")

        with pytest.raises(StorageError, match="Duplicate document"):
            store.add_document("a.md", "two")
        assert len(store) == 1

    def test_iterates_in_id_order(self):
        store = DocumentStore()
        for name in ("z.md", "a.md", "m.md"):
            store.add_document(name, name)

        assert [document.source_path for document in store] == ["z.md", "a.md", "m.md"]
