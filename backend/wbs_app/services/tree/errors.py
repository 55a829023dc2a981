class TreeError(Exception):
    """Base class for rejected tree operations."""

    def __init__(self, code: str, message: str | None = None):
        super().__init__(message or code)
        self.code = code
        self.message = message or code


class NodeNotFound(TreeError, LookupError):
    def __init__(self, node_id: int | None, what: str = "node"):
        super().__init__(f"{what}_not_found", f"{what.capitalize()} {node_id} not found")
        self.node_id = node_id


class IllegalMove(TreeError, ValueError):
    pass
