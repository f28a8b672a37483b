"""
Tests for collection/document references.
"""

import pytest

from docbridge.compat import (
    CollectionReference,
    DocumentReference,
    InvalidReferenceError,
    collection_ref,
    doc_ref,
    parent_collection_path,
)


class TestCollectionRef:

    def test_root_collection(self):
        ref = collection_ref(None, "tenants")
        assert isinstance(ref, CollectionReference)
        assert ref.path == "tenants"
        assert ref.id == "tenants"
        assert ref.parent is None

    def test_nested_collection_from_segments(self):
        ref = collection_ref(None, "tenants", "acme", "cities")
        assert ref.path == "tenants/acme/cities"
        assert ref.root == "tenants"
        assert ref.parent == doc_ref(None, "tenants", "acme")

    def test_slash_delimited_segments_are_expanded(self):
        assert collection_ref(None, "tenants/acme/cities") == collection_ref(
            None, "tenants", "acme", "cities"
        )

    def test_collection_under_document(self):
        tenant = doc_ref(None, "tenants", "acme")
        assert collection_ref(tenant, "cities").path == "tenants/acme/cities"
        assert tenant.collection("cities").path == "tenants/acme/cities"

    def test_even_segment_count_rejected(self):
        with pytest.raises(InvalidReferenceError):
            collection_ref(None, "tenants", "acme")

    def test_collection_base_rejected(self):
        with pytest.raises(InvalidReferenceError):
            collection_ref(collection_ref(None, "tenants"), "cities")

    @pytest.mark.parametrize("segments", [("",), ("tenants//cities",), ("tenants/",), ("/tenants",)])
    def test_empty_segments_rejected(self, segments):
        with pytest.raises(InvalidReferenceError):
            collection_ref(None, *segments)

    def test_no_segments_rejected(self):
        with pytest.raises(InvalidReferenceError):
            collection_ref(None)

    def test_non_string_segment_rejected(self):
        with pytest.raises(InvalidReferenceError):
            collection_ref(None, "tenants", 5, "cities")


class TestDocRef:

    def test_document_from_full_path(self):
        ref = doc_ref(None, "tenants/acme/cities/mumbai")
        assert isinstance(ref, DocumentReference)
        assert ref.id == "mumbai"
        assert ref.collection_path == "tenants/acme/cities"
        assert ref.parent == collection_ref(None, "tenants", "acme", "cities")

    def test_document_from_collection(self):
        cities = collection_ref(None, "tenants", "acme", "cities")
        assert doc_ref(cities, "mumbai") == doc_ref(None, "tenants", "acme", "cities", "mumbai")
        assert cities.document("mumbai").path == "tenants/acme/cities/mumbai"

    def test_collection_base_takes_a_single_id(self):
        with pytest.raises(InvalidReferenceError):
            doc_ref(collection_ref(None, "tenants"), "acme/cities")

    def test_odd_segment_count_rejected(self):
        with pytest.raises(InvalidReferenceError):
            doc_ref(None, "tenants")
        with pytest.raises(InvalidReferenceError):
            doc_ref(None, "tenants", "acme", "cities")

    def test_error_is_also_a_value_error(self):
        with pytest.raises(ValueError):
            doc_ref(None, "tenants//acme")


class TestEquality:

    def test_same_path_is_equal_and_hashes_alike(self):
        a = doc_ref(None, "tenants", "acme")
        b = doc_ref(collection_ref(None, "tenants"), "acme")
        assert a == b
        assert len({a, b}) == 1

    def test_collection_and_document_never_equal(self):
        tenants = collection_ref(None, "tenants")
        assert tenants != doc_ref(None, "tenants", "acme")

    def test_segments_are_opaque(self):
        assert doc_ref(None, "tenants", "Acme") != doc_ref(None, "tenants", "acme")
        assert doc_ref(None, "tenants", " acme").id == " acme"

    def test_parent_collection_path(self):
        assert parent_collection_path(doc_ref(None, "tenants/acme/cities/x")) == "tenants/acme/cities"
        assert parent_collection_path(collection_ref(None, "tenants")) == "tenants"
