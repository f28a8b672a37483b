"""
Collection and document references.

A reference is a typed, immutable pointer into the hierarchical namespace:

    tenants                      -> collection (1 segment)
    tenants/acme                 -> document   (2 segments)
    tenants/acme/cities          -> collection (3 segments)
    tenants/acme/cities/mumbai   -> document   (4 segments)

Collections always end on a collection name, documents on a document id.
Segments are opaque: no case folding or whitespace trimming happens here,
so callers must canonicalize (e.g. lower-case tenant slugs) themselves.
"""

from typing import Iterable, Optional, Tuple, Union

from docbridge.compat.errors import InvalidReferenceError


def _split_segments(raw_segments: Iterable[str]) -> Tuple[str, ...]:
    """Expand slash-delimited arguments into a flat tuple of segments."""
    segments = []
    for raw in raw_segments:
        if not isinstance(raw, str):
            raise InvalidReferenceError(
                f"Path segments must be strings, got {type(raw).__name__}"
            )
        for segment in raw.split("/"):
            if segment == "":
                raise InvalidReferenceError(
                    f"Empty path segment in {raw!r}"
                )
            segments.append(segment)
    return tuple(segments)


class _Reference:
    """Shared behaviour for collection and document references."""

    kind = ""

    __slots__ = ("_segments",)

    def __init__(self, segments: Iterable[str]):
        self._segments = _split_segments(segments)
        self._check_parity()

    def _check_parity(self) -> None:
        raise NotImplementedError

    @property
    def segments(self) -> Tuple[str, ...]:
        return self._segments

    @property
    def path(self) -> str:
        """Slash-joined path, e.g. 'tenants/acme/cities'."""
        return "/".join(self._segments)

    @property
    def id(self) -> str:
        """Last segment: the collection name or the document id."""
        return self._segments[-1]

    @property
    def root(self) -> str:
        """Root collection name."""
        return self._segments[0]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _Reference):
            return NotImplemented
        return self.kind == other.kind and self.path == other.path

    def __hash__(self) -> int:
        return hash((self.kind, self.path))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r})"


class CollectionReference(_Reference):
    """Reference to a (possibly nested) collection."""

    kind = "collection"

    __slots__ = ()

    def _check_parity(self) -> None:
        if len(self._segments) % 2 != 1:
            raise InvalidReferenceError(
                f"Collection path must have an odd number of segments: {self.path!r}"
            )

    @property
    def parent(self) -> Optional["DocumentReference"]:
        """Document owning this subcollection, or None for a root collection."""
        if len(self._segments) == 1:
            return None
        return DocumentReference(self._segments[:-1])

    def document(self, document_id: str) -> "DocumentReference":
        """Reference to a document inside this collection."""
        return doc_ref(self, document_id)


class DocumentReference(_Reference):
    """Reference to a single document."""

    kind = "document"

    __slots__ = ()

    def _check_parity(self) -> None:
        if len(self._segments) < 2 or len(self._segments) % 2 != 0:
            raise InvalidReferenceError(
                f"Document path must have an even number of segments: {self.path!r}"
            )

    @property
    def parent(self) -> CollectionReference:
        """Collection containing this document."""
        return CollectionReference(self._segments[:-1])

    @property
    def collection_path(self) -> str:
        """Slash-joined path of the containing collection."""
        return "/".join(self._segments[:-1])

    def collection(self, name: str) -> CollectionReference:
        """Reference to a subcollection of this document."""
        return collection_ref(self, name)


Reference = Union[CollectionReference, DocumentReference]


def collection_ref(base: Optional[DocumentReference], *segments: str) -> CollectionReference:
    """
    Build a collection reference.

    Args:
        base: None for a root-level path, or the document owning the
              subcollection.
        *segments: Path segments; each may itself contain slashes.

    Raises:
        InvalidReferenceError: On empty segments or a path that does not
            end on a collection name.

    Example:
        >>> collection_ref(None, "tenants", "acme", "cities").path
        'tenants/acme/cities'
    """
    if not segments:
        raise InvalidReferenceError("collection_ref() requires at least one segment")
    if base is None:
        return CollectionReference(segments)
    if not isinstance(base, DocumentReference):
        raise InvalidReferenceError(
            "A collection can only be nested under a document reference"
        )
    return CollectionReference(base.segments + _split_segments(segments))


def doc_ref(base: Optional[CollectionReference], *segments: str) -> DocumentReference:
    """
    Build a document reference.

    With a collection as base, exactly one segment (the document id) is
    appended. Without a base, the final segment is the document id and
    everything before it is the collection path.

    Raises:
        InvalidReferenceError: On empty segments or wrong segment parity.
    """
    if not segments:
        raise InvalidReferenceError("doc_ref() requires at least one segment")
    if base is None:
        return DocumentReference(segments)
    if not isinstance(base, CollectionReference):
        raise InvalidReferenceError(
            "A document can only be built from a collection reference"
        )
    document_id = _split_segments(segments)
    if len(document_id) != 1:
        raise InvalidReferenceError(
            f"Expected a single document id under {base.path!r}, got {'/'.join(document_id)!r}"
        )
    return DocumentReference(base.segments + document_id)


def parent_collection_path(ref: Reference) -> str:
    """Path of the collection a reference addresses or lives in."""
    if isinstance(ref, DocumentReference):
        return ref.collection_path
    return ref.path
