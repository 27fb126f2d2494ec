from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence

from .prismic import Document


class DocumentCollection(Sequence[Document]):
    """Lightweight helper for working with lists of Documents in templates and code."""

    def __init__(self, documents: Iterable[Document]):
        self._documents = list(documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    def __getitem__(self, item):
        return self._documents[item]

    def of_type(self, doc_type: str) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if d.type == doc_type)

    def with_tag(self, tag: str) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if tag in d.tags)

    def sorted(self, reverse: bool = True) -> DocumentCollection:
        """Sort documents by first publication date, then by uid.

        Documents that were never published (no date) always come last.

        Args:
            reverse: If True (default), newest first.

        Returns:
            A new DocumentCollection with sorted documents.
        """
        dated = [d for d in self._documents if d.first_publication_date]
        undated = [d for d in self._documents if not d.first_publication_date]
        dated.sort(key=lambda d: (d.first_publication_date, d.uid or ""), reverse=reverse)
        undated.sort(key=lambda d: d.uid or "")
        return DocumentCollection(dated + undated)

    def latest(self, count: int = 5) -> DocumentCollection:
        return DocumentCollection(self.sorted()[:count])

    def uids(self) -> list[str]:
        return [d.uid for d in self._documents if d.uid]

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"DocumentCollection({len(self._documents)} documents)"
