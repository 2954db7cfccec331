# Error kinds raised along the fetch chain. Every kind maps to the same generic
# 500 at the HTTP boundary; `kind` is what ends up in the logs.


class CityExplorerError(Exception):
    kind = "city_explorer_error"

    def __init__(self, message: str = "", **context):
        super().__init__(message or self.kind)
        self.context = context


class NoGeocodeResult(CityExplorerError):
    kind = "no_geocode_result"

    def __init__(self, query: str):
        super().__init__(f"No geocoding results for '{query}'.", query=query)
        self.query = query


class UpstreamFetchError(CityExplorerError):
    kind = "upstream_fetch_error"

    def __init__(self, source: str, reason):
        super().__init__(f"{source} request failed: {reason}", source=source)
        self.source = source


class MalformedUpstreamPayload(CityExplorerError):
    kind = "malformed_upstream_payload"

    def __init__(self, resource: str, field: str):
        super().__init__(f"{resource} payload is missing '{field}'", resource=resource, field=field)
        self.resource = resource
        self.field = field


class PersistenceError(CityExplorerError):
    kind = "persistence_error"


class StoreConnectionError(CityExplorerError):
    kind = "store_connection_error"


class InvalidRequest(CityExplorerError):
    kind = "invalid_request"
