import base64
from urllib.parse import urlparse, parse_qs

from shared.clients.cad.CADClientInterface import CADClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.clients.cad.models.Document import DocumentBase, DocumentDetails, DocumentLabel, DocumentsListResponse
from shared.clients.cad.models.Workspace import WorkspaceDetails
from shared.clients.cad.models.Version import VersionDetails
from shared.clients.cad.models.Thumbnail import ThumbnailDetails
from shared.clients.cad.models.BlobElement import BlobElementDetails
from shared.clients.cad.models.Listing import DocumentFilter, DocumentListQuery

# numeric filter ids of the /documents endpoint
ONSHAPE_FILTERS: dict[DocumentFilter, int] = {
    DocumentFilter.MY_DOCUMENTS: 0,
    DocumentFilter.CREATED: 1,
    DocumentFilter.SHARED: 2,
    DocumentFilter.TRASH: 3,
    DocumentFilter.PUBLIC: 4,
    DocumentFilter.RECENT: 5,
}


class CADClientOnshape(CADClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._web_url = self.get_config_val("BASE_URL", default="https://cad.onshape.com", val_type="string").rstrip("/")
        self._api_version = self.get_config_val("API_VERSION", default="v12", val_type="string")
        self._access_key = self.get_config_val("ACCESS_KEY", default=None, val_type="string")
        self._secret_key = self.get_config_val("SECRET_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Onshape"

    def get_document_web_url(self, document_id: str) -> str:
        return f"{self._web_url}/documents/{document_id}"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://cad.onshape.com"),
            EnvConfig(env_key="API_VERSION", val_type="string", default="v12"),
            EnvConfig(env_key="ACCESS_KEY", val_type="string", default=None),
            EnvConfig(env_key="SECRET_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        token = base64.b64encode(f"{self._access_key}:{self._secret_key}".encode("utf-8")).decode("ascii")
        return {
            "Authorization": f"Basic {token}",
            "Accept": "application/json;charset=UTF-8; qs=0.09",
        }

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return f"{self._web_url}/api/{self._api_version}"

    def _get_endpoint_healthcheck(self) -> str:
        return "/users/sessioninfo"

    def _get_endpoint_documents(self) -> str:
        return "/documents"

    def _get_endpoint_document_details(self, document_id: str) -> str:
        return f"/documents/{document_id}"

    def _get_endpoint_workspaces(self, document_id: str) -> str:
        return f"/documents/d/{document_id}/workspaces"

    def _get_endpoint_versions(self, document_id: str) -> str:
        return f"/documents/d/{document_id}/versions"

    def _get_endpoint_thumbnails(self, document_id: str, workspace_id: str | None = None) -> str:
        if workspace_id:
            return f"/thumbnails/d/{document_id}/w/{workspace_id}"
        return f"/thumbnails/d/{document_id}"

    def _get_endpoint_blob_upload(self, document_id: str, workspace_id: str, element_id: str | None = None) -> str:
        plain_url = f"/blobelements/d/{document_id}/w/{workspace_id}"
        if element_id:
            plain_url += f"/e/{element_id}"
        return plain_url

    def _get_listing_params(self, query: DocumentListQuery) -> dict:
        params: dict = {
            "filter": ONSHAPE_FILTERS[query.filter],
            "offset": query.offset,
            "limit": query.limit,
        }
        if query.query:
            params["q"] = query.query
        if query.label:
            params["label"] = query.label
        if query.sort_column:
            params["sortColumn"] = query.sort_column.value
        if query.sort_order:
            params["sortOrder"] = query.sort_order
        return params

    def _get_thumbnail_download_endpoint(self, url: str) -> str:
        # hrefs are absolute and point at the unversioned /api root, which the service accepts as is
        return url

    def _get_blob_form(self, pdf_bytes: bytes, filename: str, display_name: str | None, update: bool) -> tuple[dict, dict]:
        data = {"storeInDocument": "true", "translate": "false"}
        upload_name = filename
        if display_name:
            encoded = f"{_strip_pdf_suffix(display_name)}.pdf"
            data["encodedFilename"] = encoded
            if update:
                upload_name = encoded
        files = {"file": (upload_name, pdf_bytes, "application/pdf")}
        return data, files

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_endpoint_documents(self, response: dict) -> DocumentsListResponse:
        docs: list[DocumentBase] = [self._parse_listing_item(item) for item in response.get("items") or []]
        next_url = response.get("next")
        next_offset: int | None = None
        next_limit: int | None = None
        if next_url:
            params = parse_qs(urlparse(next_url).query)
            offset_values = params.get("offset", [])
            limit_values = params.get("limit", [])
            if offset_values and offset_values[0].isdigit():
                next_offset = int(offset_values[0])
            if limit_values and limit_values[0].isdigit():
                next_limit = int(limit_values[0])
        return DocumentsListResponse(
            engine=self._get_engine_name(),
            documents=docs,
            next_offset=next_offset,
            next_limit=next_limit,
        )

    def _parse_labels(self, raw_labels) -> list[DocumentLabel]:
        labels = []
        for raw in raw_labels or []:
            if isinstance(raw, dict) and raw.get("name"):
                labels.append(DocumentLabel(id=raw.get("id"), name=raw["name"]))
            elif isinstance(raw, str) and raw:
                labels.append(DocumentLabel(name=raw))
        return labels

    def _parse_listing_item(self, item: dict) -> DocumentBase:
        return DocumentBase(
            engine=self._get_engine_name(),
            id=item.get("id"),
            name=item.get("name") or "",
            labels=self._parse_labels(item.get("documentLabels")),
            modified_at=item.get("modifiedAt"),
        )

    def _parse_endpoint_document(self, response: dict) -> DocumentDetails:
        return DocumentDetails(
            #base
            engine=self._get_engine_name(),
            id=response.get("id"),
            name=response.get("name") or "",
            labels=self._parse_labels(response.get("documentLabels")),
            modified_at=response.get("modifiedAt"),

            #details
            description=response.get("description") or "",
            created_at=response.get("createdAt"),
        )

    def _parse_endpoint_workspace(self, response: dict) -> WorkspaceDetails:
        return WorkspaceDetails(
            engine=self._get_engine_name(),
            id=response.get("id"),
            name=response.get("name"),
            is_main=bool(response.get("isMain", False)),
            type=response.get("type"),
        )

    def _parse_endpoint_version(self, response: dict) -> VersionDetails:
        version_id = response.get("id")
        return VersionDetails(
            engine=self._get_engine_name(),
            id=version_id,
            name=response.get("name") or f"Version {version_id}",
            description=response.get("description") or "",
            created_at=response.get("createdAt") or response.get("created_at"),
            microversion=response.get("microversion") or "",
        )

    def _parse_endpoint_thumbnails(self, response: dict) -> list[ThumbnailDetails]:
        if not response or not response.get("sizes"):
            return []
        thumbnails = []
        for size_info in response["sizes"]:
            size = size_info.get("size") or ""
            width, height = _parse_size(size)
            thumbnails.append(ThumbnailDetails(
                size=size,
                url=size_info.get("href") or "",
                width=width,
                height=height,
                media_type=size_info.get("mediaType"),
            ))
        return thumbnails

    def _parse_endpoint_blob_element(self, response: dict) -> BlobElementDetails:
        return BlobElementDetails(
            engine=self._get_engine_name(),
            id=response.get("id"),
            name=response.get("name"),
            href=response.get("href"),
        )


def _parse_size(size: str) -> tuple[int | None, int | None]:
    """Split a "600x340" size string into (width, height). Non-numeric parts become None."""
    parts = size.lower().split("x")
    if len(parts) != 2:
        return None, None
    width = int(parts[0]) if parts[0].isdigit() and int(parts[0]) > 0 else None
    height = int(parts[1]) if parts[1].isdigit() and int(parts[1]) > 0 else None
    return width, height


def _strip_pdf_suffix(name: str) -> str:
    return name[:-4] if name.lower().endswith(".pdf") else name
