"""Async client that keeps an optimistic copy of a project's WBS tree.

Each mutation is applied locally first, sent to the API, and then the whole
tree is refetched and replaces the prediction. Only one mutation may be in
flight at a time; while it is, the tree is read-only.
"""
import httpx

from wbs_app.core.logging import get_logger
from wbs_app.schemas.nodes import NodeOut
from wbs_app.services.tree.builder import TreeNode, build_tree
from wbs_app.services.tree.optimistic import TreeSnapshot, add_local, move_local
from wbs_app.services.tree.planner import Relation

log = get_logger(__name__)


class TreeBusy(RuntimeError):
    """Raised when a mutation is attempted while another one is in flight."""


class TreeClientError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None, detail=None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class TreeRejected(TreeClientError):
    """The API refused the edit (validation, illegal move, unknown node)."""


class PersistenceError(TreeClientError):
    """The store could not be reached or failed while applying the edit."""


class TreeClient:
    def __init__(self, http: httpx.AsyncClient, project_id: int):
        self.http = http
        self.project_id = project_id
        self.snapshot = TreeSnapshot(version=0, roots=())
        self._busy = False
        self._temp_ids = 0

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def roots(self) -> list[TreeNode]:
        return list(self.snapshot.roots)

    async def fetch_nodes(self) -> list[NodeOut]:
        resp = await self.http.get(f"/tree/{self.project_id}/nodes")
        resp.raise_for_status()
        return [NodeOut.model_validate(item) for item in resp.json()]

    async def refresh(self) -> TreeSnapshot:
        roots = build_tree(await self.fetch_nodes())
        self.snapshot = self.snapshot.next(roots, optimistic=False)
        return self.snapshot

    async def add(self, parent_id: int | None, name: str, type: str = "task", description: str | None = None) -> NodeOut:
        self._temp_ids -= 1
        placeholder = TreeNode(
            id=self._temp_ids,
            project_id=self.project_id,
            parent_id=parent_id,
            name=name,
            description=description,
            type=type,
        )
        body = {"project_id": self.project_id, "parent_id": parent_id, "name": name, "type": type, "description": description}
        resp = await self._mutate(
            lambda roots: add_local(roots, parent_id, placeholder),
            "POST",
            "/nodes",
            body,
        )
        return NodeOut.model_validate(resp.json())

    async def move(self, node_id: int, target_id: int, relation: Relation | str) -> NodeOut:
        relation = Relation(relation)
        resp = await self._mutate(
            lambda roots: move_local(roots, node_id, target_id, relation),
            "POST",
            "/nodes/move",
            {"node_id": node_id, "target_id": target_id, "relation": relation.value},
        )
        return NodeOut.model_validate(resp.json()["moved_node"])

    async def delete(self, node_id: int) -> int:
        resp = await self._mutate(None, "DELETE", f"/nodes/{node_id}", None)
        return resp.json()["deleted"]

    async def _mutate(self, predict, method: str, url: str, body) -> httpx.Response:
        if self._busy:
            raise TreeBusy("another tree operation is still in flight")
        self._busy = True
        confirmed = self.snapshot
        try:
            if predict is not None:
                self.snapshot = confirmed.next(predict(list(confirmed.roots)), optimistic=True)
            try:
                resp = await self.http.request(method, url, json=body)
                resp.raise_for_status()
            except httpx.HTTPError as e:
                await self._revert(confirmed)
                raise self._request_error(e) from e
            try:
                await self.refresh()
            except httpx.HTTPError as e:
                # the edit is committed; keep the prediction until the next refresh
                log.warning("tree_refetch_failed", project_id=self.project_id, committed=True, error=str(e))
            return resp
        finally:
            self._busy = False

    async def _revert(self, confirmed: TreeSnapshot) -> None:
        try:
            await self.refresh()
        except httpx.HTTPError as e:
            log.warning("tree_refetch_failed", project_id=self.project_id, error=str(e))
            self.snapshot = confirmed.next(confirmed.roots, optimistic=False)

    @staticmethod
    def _request_error(e: httpx.HTTPError) -> TreeClientError:
        if isinstance(e, httpx.HTTPStatusError):
            status = e.response.status_code
            try:
                detail = e.response.json().get("detail")
            except ValueError:
                detail = e.response.text
            if 400 <= status < 500:
                return TreeRejected(f"tree update rejected: {detail}", status, detail)
            return PersistenceError(f"tree update failed: {detail}", status, detail)
        return PersistenceError(f"tree update failed: {e}")
