from pydantic import BaseModel

from shared.clients.cad.models.Listing import DocumentFilter, DocumentListQuery, MAX_PAGE_SIZE, SortColumn


class BatchCriteria(BaseModel):
    """
    Selects the documents of a batch. Any combination of label, filter and query may be given.
    A label always triggers an exhaustive listing, since labels are matched client-side.
    """
    label: str | None = None
    filter: DocumentFilter = DocumentFilter.CREATED
    query: str | None = None
    all_pages: bool = False
    limit: int = MAX_PAGE_SIZE
    sort: SortColumn | None = None
    order: str | None = None

    def to_list_query(self) -> DocumentListQuery:
        return DocumentListQuery(
            filter=self.filter,
            query=self.query or None,
            limit=self.limit,
            sort_column=self.sort,
            sort_order=self.order,
        )

    def describe(self) -> str:
        parts = []
        if self.label:
            parts.append(f'label: "{self.label}"')
        if self.query:
            parts.append(f'query: "{self.query}"')
        parts.append(f"filter: {self.filter.value}")
        return ", ".join(parts)
