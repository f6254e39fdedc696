from abc import abstractmethod
from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface
from shared.clients.cad.models.Document import DocumentBase, DocumentDetails, DocumentsListResponse
from shared.clients.cad.models.Workspace import WorkspaceDetails
from shared.clients.cad.models.Version import VersionDetails
from shared.clients.cad.models.Thumbnail import ThumbnailDetails
from shared.clients.cad.models.BlobElement import BlobElementDetails
from shared.clients.cad.models.Listing import DocumentListQuery

MAIN_WORKSPACE_NAME = "Main"


class CADClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "cad"

    @abstractmethod
    def get_document_web_url(self, document_id: str) -> str:
        """
        Returns the browser URL of a document (e.g. "https://cad.onshape.com/documents/{id}")
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_documents(self) -> str:
        """
        Returns the endpoint path for document listing requests (e.g. "/documents")
        """
        pass

    @abstractmethod
    def _get_endpoint_document_details(self, document_id: str) -> str:
        pass

    @abstractmethod
    def _get_endpoint_workspaces(self, document_id: str) -> str:
        pass

    @abstractmethod
    def _get_endpoint_versions(self, document_id: str) -> str:
        pass

    @abstractmethod
    def _get_endpoint_thumbnails(self, document_id: str, workspace_id: str | None = None) -> str:
        pass

    @abstractmethod
    def _get_endpoint_blob_upload(self, document_id: str, workspace_id: str, element_id: str | None = None) -> str:
        """
        Returns the endpoint path for creating (element_id None) or updating a blob element.
        """
        pass

    @abstractmethod
    def _get_listing_params(self, query: DocumentListQuery) -> dict:
        """
        Translates a backend-independent listing query into request parameters.
        """
        pass

    @abstractmethod
    def _get_thumbnail_download_endpoint(self, url: str) -> str:
        """
        Returns the endpoint (relative path or absolute URL) to request thumbnail bytes from.
        """
        pass

    @abstractmethod
    def _get_blob_form(self, pdf_bytes: bytes, filename: str, display_name: str | None, update: bool) -> tuple[dict, dict]:
        """
        Returns the (data, files) multipart payload for blob uploads.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    ############# LISTING REQUESTS ##############
    async def do_fetch_documents_page(self, query: DocumentListQuery) -> DocumentsListResponse:
        """
        Fetches one page of documents.

        Args:
            query (DocumentListQuery): Filter, search text, paging and sort options.

        Returns:
            DocumentsListResponse: The documents of this page plus the continuation pointer.
        """
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_documents(), params=self._get_listing_params(query))
        return self._parse_endpoint_documents(resp.json())

    async def do_fetch_all_documents(self, query: DocumentListQuery) -> list[DocumentBase]:
        """
        Fetches all documents matching the query by following continuation pointers until exhausted.

        Returns:
            list[DocumentBase]: All documents across all pages, in listing order.
        """
        documents: list[DocumentBase] = []
        page_query = query.model_copy()
        page = 1
        while True:
            listing = await self.do_fetch_documents_page(page_query)
            documents.extend(listing.documents)
            self.logging.debug("Fetched documents page %d from %s, total documents so far: %d", page, self._get_engine_name(), len(documents))
            if not listing.documents or not listing.has_next():
                break
            if listing.next_offset <= page_query.offset:
                self.logging.warning("Listing pointer did not advance past offset %d, stopping pagination", page_query.offset)
                break
            page_query = page_query.model_copy(update={
                "offset": listing.next_offset,
                "limit": listing.next_limit or page_query.limit,
            })
            page += 1
        return documents

    async def do_fetch_documents_by_label(self, label: str, query: DocumentListQuery | None = None) -> list[DocumentBase]:
        """
        Fetches all documents carrying the given label.

        Server-side label filtering is unreliable, so the full unfiltered listing is fetched
        and filtered on the label names embedded in each listed document.

        Args:
            label (str): The exact label name to match.
            query (DocumentListQuery | None): Base listing options. Its label field is ignored.

        Returns:
            list[DocumentBase]: Matching documents in listing order.
        """
        base_query = (query or DocumentListQuery()).model_copy(update={"label": None, "offset": 0})
        all_documents = await self.do_fetch_all_documents(base_query)
        self.logging.info("Checking %d documents for label '%s'", len(all_documents), label)
        matches = [doc for doc in all_documents if label in doc.get_label_names()]
        self.logging.info("Found %d documents with label '%s'", len(matches), label)
        return matches

    ############# GET REQUESTS ##############
    async def do_fetch_document(self, document_id: str) -> DocumentDetails:
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_document_details(document_id))
        return self._parse_endpoint_document(resp.json())

    async def do_fetch_workspaces(self, document_id: str) -> list[WorkspaceDetails]:
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_workspaces(document_id))
        return [self._parse_endpoint_workspace(item) for item in resp.json() or []]

    async def do_fetch_versions(self, document_id: str) -> list[VersionDetails]:
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_versions(document_id))
        return [self._parse_endpoint_version(item) for item in resp.json() or []]

    async def do_fetch_thumbnails(self, document_id: str, workspace_id: str | None = None) -> list[ThumbnailDetails]:
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_thumbnails(document_id, workspace_id))
        return self._parse_endpoint_thumbnails(resp.json())

    async def do_download_thumbnail(self, url: str) -> bytes:
        """
        Downloads the image bytes a thumbnail descriptor points to, using the client's authentication.
        """
        resp = await self.do_request(
            method="GET",
            endpoint=self._get_thumbnail_download_endpoint(url),
            additional_headers={"Accept": "image/png, image/jpeg, image/*"},
        )
        return resp.content

    async def find_main_workspace(self, document_id: str) -> WorkspaceDetails | None:
        """
        Returns the workspace designated as main, or None if the document has none.
        """
        workspaces = await self.do_fetch_workspaces(document_id)
        return select_main_workspace(workspaces)

    ############# UPLOAD REQUESTS ##############
    async def do_upload_blob(self, document_id: str, workspace_id: str, pdf_bytes: bytes, filename: str, display_name: str | None = None) -> BlobElementDetails:
        """
        Stores a file as a new blob element in the given workspace.

        Returns:
            BlobElementDetails: The created element (its id is needed for later updates).
        """
        data, files = self._get_blob_form(pdf_bytes, filename, display_name, update=False)
        resp = await self.do_request(method="POST", endpoint=self._get_endpoint_blob_upload(document_id, workspace_id), data=data, files=files)
        return self._parse_endpoint_blob_element(resp.json())

    async def do_update_blob(self, document_id: str, workspace_id: str, element_id: str, pdf_bytes: bytes, filename: str, display_name: str | None = None) -> BlobElementDetails:
        """
        Replaces the contents of an existing blob element.
        """
        data, files = self._get_blob_form(pdf_bytes, filename, display_name, update=True)
        resp = await self.do_request(method="POST", endpoint=self._get_endpoint_blob_upload(document_id, workspace_id, element_id), data=data, files=files)
        return self._parse_endpoint_blob_element(resp.json())

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def _parse_endpoint_documents(self, response: dict) -> DocumentsListResponse:
        pass

    @abstractmethod
    def _parse_endpoint_document(self, response: dict) -> DocumentDetails:
        pass

    @abstractmethod
    def _parse_endpoint_workspace(self, response: dict) -> WorkspaceDetails:
        pass

    @abstractmethod
    def _parse_endpoint_version(self, response: dict) -> VersionDetails:
        pass

    @abstractmethod
    def _parse_endpoint_thumbnails(self, response: dict) -> list[ThumbnailDetails]:
        pass

    @abstractmethod
    def _parse_endpoint_blob_element(self, response: dict) -> BlobElementDetails:
        pass


def select_main_workspace(workspaces: list[WorkspaceDetails]) -> WorkspaceDetails | None:
    """
    Picks the main workspace: named "Main" or flagged as main, and of type workspace
    (a missing type is treated as workspace).
    """
    for workspace in workspaces:
        is_main = workspace.name == MAIN_WORKSPACE_NAME or workspace.is_main
        is_workspace = workspace.type in (None, "workspace")
        if is_main and is_workspace:
            return workspace
    return None
