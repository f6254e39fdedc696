from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from shared.clients.cad.models.Listing import DocumentFilter
from shared.helper.document_url import resolve_document_id


class SyncDocumentRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # a bare id or a full document URL
    document_id: str

    @field_validator("document_id")
    @classmethod
    def _resolve(cls, value: str) -> str:
        document_id = resolve_document_id(value)
        if not document_id:
            raise ValueError("documentId must not be empty")
        return document_id


class SyncBatchRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    label: str | None = None
    filter: DocumentFilter = DocumentFilter.CREATED
    query: str | None = None
    all_pages: bool = False
    generate_pdf: bool = False
    upload: bool = False
    template: str | None = None

    @field_validator("filter", mode="before")
    @classmethod
    def _parse_filter(cls, value):
        return DocumentFilter.parse(value)
