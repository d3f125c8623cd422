"""Workbench error taxonomy."""


class WorkbenchError(Exception):
    """Base class for failures reported by workbench operations."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class EngineBootError(WorkbenchError):
    """Engine worker/module instantiation failed or timed out.

    Fatal until the process restarts: the shared boot attempt is not retried.
    """


class DatasetLoadError(WorkbenchError):
    """Dataset pack load failed (timeout or any failing step)."""


class ManifestFetchError(DatasetLoadError):
    """Manifest could not be fetched or parsed."""

    def __init__(self, url: str, status: int | None = None, detail: str | None = None):
        self.url = url
        self.status = status
        if status is not None:
            message = f"Failed to load demo manifest: {url} ({status})"
        else:
            message = f"Failed to load demo manifest: {url}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ViewRegistrationError(DatasetLoadError):
    """Registering a pack file or creating its view failed."""

    def __init__(self, directory: str, view_name: str, detail: str):
        self.directory = directory
        self.view_name = view_name
        super().__init__(f"Failed to register '{directory}' as view '{view_name}': {detail}")


class QueryExecutionError(WorkbenchError):
    """The engine rejected or failed a query."""

    def __init__(self, sql: str, detail: str):
        self.sql = sql
        super().__init__(detail)
