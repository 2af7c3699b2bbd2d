from .config import ProxyErrorMessage


class HLSProxyError(Exception):
    """Base class for HLS proxy errors"""


class InvalidStreamURL(HLSProxyError):
    """Target URL is missing, malformed or uses a scheme other than http/https"""

    def __init__(self, message=ProxyErrorMessage.INVALID_URL, url=None):
        super().__init__(message)
        self.message = message
        self.url = url
