from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from shared.models.record import DocumentRecord


class RecordSummary(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    document_id: str
    title: str
    file: str
    labels: list[str]
    created_at: datetime | None = None
    onshape_url: str | None = None
    pdf_element_id: str | None = None

    @classmethod
    def from_record(cls, file: str, record: DocumentRecord) -> "RecordSummary":
        return cls(
            document_id=record.document_id,
            title=record.title,
            file=file,
            labels=record.labels,
            created_at=record.created_at,
            onshape_url=record.onshape_url,
            pdf_element_id=record.user_data.pdf_element_id,
        )


class RecordsResponse(BaseModel):
    records: list[RecordSummary]
    total: int


class HealthResponse(BaseModel):
    status: str
    version: str
