"""Platform document store client.

`PlatformClient` is the contract the rest of the package relies on: predicate
queries, document/collection transactions, an atomic ``$inc`` on
``update_doc`` and a rich-text round trip. `RestPlatformClient` implements it
over the platform's REST transactor API.
"""

import json
import logging
import time
from typing import Any, Optional, Protocol
from urllib.parse import quote

import httpx

from ..config import HulyConfig
from ..errors import PlatformConnectionError, PlatformError
from . import refs
from .markup import markdown_to_markup, markup_to_markdown

logger = logging.getLogger(__name__)

Doc = dict[str, Any]


class PlatformClient(Protocol):
    """Operations the tools need from the backend document store."""

    async def find_all(
        self,
        _class: str,
        query: Optional[dict] = None,
        *,
        sort: Optional[dict[str, int]] = None,
        limit: Optional[int] = None,
    ) -> list[Doc]: ...

    async def find_one(
        self,
        _class: str,
        query: Optional[dict] = None,
        *,
        sort: Optional[dict[str, int]] = None,
    ) -> Optional[Doc]: ...

    async def create_doc(
        self, _class: str, space: str, attributes: dict, object_id: Optional[str] = None
    ) -> str: ...

    async def update_doc(
        self,
        _class: str,
        space: str,
        object_id: str,
        operations: dict,
        retrieve: bool = False,
    ) -> dict: ...

    async def remove_doc(self, _class: str, space: str, object_id: str) -> None: ...

    async def add_collection(
        self,
        _class: str,
        space: str,
        attached_to: str,
        attached_to_class: str,
        collection: str,
        attributes: dict,
        object_id: Optional[str] = None,
    ) -> str: ...

    async def update_collection(
        self,
        _class: str,
        space: str,
        object_id: str,
        attached_to: str,
        attached_to_class: str,
        collection: str,
        operations: dict,
    ) -> None: ...

    async def upload_markup(
        self, object_class: str, object_id: str, attribute: str, markdown: str
    ) -> str: ...

    async def fetch_markup(
        self, object_class: str, object_id: str, attribute: str, ref: str
    ) -> str: ...

    async def close(self) -> None: ...


def _transactor_http_url(endpoint: str) -> str:
    """Map the ws(s):// transactor endpoint returned by the account service to http(s)://."""
    if endpoint.startswith("wss://"):
        return "https://" + endpoint[len("wss://"):]
    if endpoint.startswith("ws://"):
        return "http://" + endpoint[len("ws://"):]
    return endpoint


def _check_response(response: httpx.Response, what: str) -> Any:
    if response.status_code >= 400:
        raise PlatformError(
            f"{what} failed ({response.status_code}): {response.text}",
            status_code=response.status_code,
        )
    try:
        return response.json()
    except ValueError:
        raise PlatformError(f"{what} returned a non-JSON response")


class RestPlatformClient:
    """PlatformClient implementation over the transactor REST API."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        endpoint: str,
        workspace_id: str,
        token: str,
        account: str,
        collaborator_url: Optional[str] = None,
    ):
        self._http = http
        self.endpoint = endpoint.rstrip("/")
        self.workspace_id = workspace_id
        self.account = account
        self.collaborator_url = collaborator_url.rstrip("/") if collaborator_url else None
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def find_all(
        self,
        _class: str,
        query: Optional[dict] = None,
        *,
        sort: Optional[dict[str, int]] = None,
        limit: Optional[int] = None,
    ) -> list[Doc]:
        params = {"class": _class}
        if query:
            params["query"] = json.dumps(query)
        options: dict[str, Any] = {}
        if sort:
            options["sort"] = sort
        if limit is not None:
            options["limit"] = limit
        if options:
            params["options"] = json.dumps(options)

        response = await self._request(
            "GET", f"/api/v1/find-all/{self.workspace_id}", params=params
        )
        data = _check_response(response, f"find-all {_class}")
        if isinstance(data, dict):
            return list(data.get("value", []))
        return list(data)

    async def find_one(
        self,
        _class: str,
        query: Optional[dict] = None,
        *,
        sort: Optional[dict[str, int]] = None,
    ) -> Optional[Doc]:
        docs = await self.find_all(_class, query, sort=sort, limit=1)
        return docs[0] if docs else None

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def _tx(self, _class: str, object_id: str, object_class: str, object_space: str, **fields) -> dict:
        now = int(time.time() * 1000)
        tx = {
            "_id": refs.generate_id(),
            "_class": _class,
            "space": refs.SPACE_TX,
            "objectId": object_id,
            "objectClass": object_class,
            "objectSpace": object_space,
            "modifiedOn": now,
            "modifiedBy": self.account,
            "createdBy": self.account,
        }
        tx.update(fields)
        return tx

    async def _send_tx(self, tx: dict) -> dict:
        response = await self._request(
            "POST", f"/api/v1/tx/{self.workspace_id}", content=json.dumps(tx)
        )
        result = _check_response(response, f"tx {tx['_class']}")
        return result if isinstance(result, dict) else {}

    async def create_doc(
        self, _class: str, space: str, attributes: dict, object_id: Optional[str] = None
    ) -> str:
        object_id = object_id or refs.generate_id()
        await self._send_tx(
            self._tx(refs.TX_CREATE_DOC, object_id, _class, space, attributes=attributes)
        )
        return object_id

    async def update_doc(
        self,
        _class: str,
        space: str,
        object_id: str,
        operations: dict,
        retrieve: bool = False,
    ) -> dict:
        return await self._send_tx(
            self._tx(
                refs.TX_UPDATE_DOC,
                object_id,
                _class,
                space,
                operations=operations,
                retrieve=retrieve,
            )
        )

    async def remove_doc(self, _class: str, space: str, object_id: str) -> None:
        await self._send_tx(self._tx(refs.TX_REMOVE_DOC, object_id, _class, space))

    async def add_collection(
        self,
        _class: str,
        space: str,
        attached_to: str,
        attached_to_class: str,
        collection: str,
        attributes: dict,
        object_id: Optional[str] = None,
    ) -> str:
        # Collection counters on the owner are maintained by server-side triggers
        attributes = {
            **attributes,
            "attachedTo": attached_to,
            "attachedToClass": attached_to_class,
            "collection": collection,
        }
        return await self.create_doc(_class, space, attributes, object_id)

    async def update_collection(
        self,
        _class: str,
        space: str,
        object_id: str,
        attached_to: str,
        attached_to_class: str,
        collection: str,
        operations: dict,
    ) -> None:
        operations = {
            **operations,
            "attachedTo": attached_to,
            "attachedToClass": attached_to_class,
            "collection": collection,
        }
        await self.update_doc(_class, space, object_id, operations)

    # ------------------------------------------------------------------
    # Markup
    # ------------------------------------------------------------------

    def _collab_document_url(self, object_class: str, object_id: str, attribute: str) -> str:
        if not self.collaborator_url:
            raise PlatformConnectionError("Collaborator service URL is not configured")
        document_id = f"{self.workspace_id}|{object_class}|{object_id}|{attribute}"
        return f"{self.collaborator_url}/rpc/{quote(document_id, safe='')}"

    async def upload_markup(
        self, object_class: str, object_id: str, attribute: str, markdown: str
    ) -> str:
        url = self._collab_document_url(object_class, object_id, attribute)
        payload = {
            "method": "createContent",
            "payload": {"content": {attribute: markdown_to_markup(markdown)}},
        }
        response = await self._request("POST", url, content=json.dumps(payload))
        data = _check_response(response, "createContent")
        if "error" in data:
            raise PlatformError(f"createContent failed: {data['error']}")
        return data["content"][attribute]

    async def fetch_markup(
        self, object_class: str, object_id: str, attribute: str, ref: str
    ) -> str:
        url = self._collab_document_url(object_class, object_id, attribute)
        payload = {"method": "getContent", "payload": {"source": ref}}
        response = await self._request("POST", url, content=json.dumps(payload))
        data = _check_response(response, "getContent")
        if "error" in data:
            raise PlatformError(f"getContent failed: {data['error']}")
        markup = data.get("content", {}).get(attribute)
        return markup_to_markdown(markup) if markup else ""

    # ------------------------------------------------------------------

    async def _request(self, method: str, path_or_url: str, **kwargs) -> httpx.Response:
        url = path_or_url if path_or_url.startswith("http") else self.endpoint + path_or_url
        try:
            return await self._http.request(method, url, headers=self._headers, **kwargs)
        except httpx.HTTPError as e:
            raise PlatformConnectionError(f"Request to {url} failed: {e}") from e

    async def close(self) -> None:
        await self._http.aclose()


async def _account_rpc(
    http: httpx.AsyncClient,
    accounts_url: str,
    method: str,
    params: dict,
    token: Optional[str] = None,
) -> Any:
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    response = await http.post(
        accounts_url, content=json.dumps({"method": method, "params": params}), headers=headers
    )
    data = _check_response(response, f"account {method}")
    if data.get("error"):
        raise PlatformConnectionError(f"Account service {method} failed: {data['error']}")
    return data.get("result")


async def connect(config: HulyConfig, http: Optional[httpx.AsyncClient] = None) -> RestPlatformClient:
    """Authenticate against the account service and open a workspace session."""
    http = http or httpx.AsyncClient(timeout=config.connect_timeout)
    try:
        response = await http.get(f"{config.url}/config.json")
        server_config = _check_response(response, "server config")
        accounts_url = server_config.get("ACCOUNTS_URL")
        if not accounts_url:
            raise PlatformConnectionError(f"{config.url}/config.json has no ACCOUNTS_URL")

        token = config.token
        if not token:
            login = await _account_rpc(
                http, accounts_url, "login", {"email": config.email, "password": config.password}
            )
            if not login or not login.get("token"):
                raise PlatformConnectionError("Login failed: no token returned")
            token = login["token"]

        workspace = await _account_rpc(
            http,
            accounts_url,
            "selectWorkspace",
            {"workspaceUrl": config.workspace, "kind": "external"},
            token,
        )
        if not workspace or not workspace.get("endpoint"):
            raise PlatformConnectionError(f"Workspace {config.workspace!r} is not available")

        client = RestPlatformClient(
            http,
            endpoint=_transactor_http_url(workspace["endpoint"]),
            workspace_id=workspace.get("workspace") or workspace.get("workspaceId") or config.workspace,
            token=workspace.get("token", token),
            account="",
            collaborator_url=server_config.get("COLLABORATOR_URL"),
        )
        response = await client._request("GET", f"/api/v1/account/{client.workspace_id}")
        account = _check_response(response, "account")
        client.account = (
            account.get("primarySocialId") or account.get("_id") or account.get("uuid") or ""
        )
    except httpx.HTTPError as e:
        await http.aclose()
        raise PlatformConnectionError(f"Could not connect to {config.url}: {e}") from e
    except BaseException:
        await http.aclose()
        raise

    logger.info("Connected to workspace %s at %s", config.workspace, client.endpoint)
    return client
