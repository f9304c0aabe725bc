"""Exceptions raised while building a Weave Net manifest."""


class WeaveError(Exception):
    """Base exception for manifest processing errors."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


class FetchError(WeaveError):
    """Upstream manifest could not be retrieved."""

    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__("E501", f"Cannot fetch {url}: {reason}")


class ParseError(WeaveError):
    """Upstream manifest is not valid YAML."""

    def __init__(self):
        super().__init__("E400", "could not read structured data from source")


class StructuralError(WeaveError):
    """Upstream manifest does not have the expected List/DaemonSet shape."""

    def __init__(self, message: str):
        super().__init__("E404", message)


class ListNotFoundError(StructuralError):
    """First document is not a List with an items array."""

    def __init__(self):
        super().__init__("list not found")


class DaemonSetNotFoundError(StructuralError):
    """No DaemonSet among the List items."""

    def __init__(self):
        super().__init__("daemonset not found")
