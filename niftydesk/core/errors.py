"""Error taxonomy shared by the market-data and news pipelines."""

from typing import Optional


class DashboardError(Exception):
    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ConfigError(DashboardError):
    def __init__(self, message: str):
        super().__init__(message, code="CONFIG_ERROR")


class ProviderUnavailableError(DashboardError):
    """Liveness probe said no. The provider is skipped, never fatal."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"{provider} is not available", code="PROVIDER_UNAVAILABLE")


class FetchError(DashboardError):
    """Non-2xx status, timeout, network failure or malformed upstream payload."""

    def __init__(self, provider: str, message: str, status: Optional[int] = None):
        self.provider = provider
        self.status = status
        detail = f" (HTTP {status})" if status is not None else ""
        super().__init__(f"{provider}: {message}{detail}", code="FETCH_ERROR")


class ParseError(DashboardError):
    """AI response carried no usable JSON analysis."""

    def __init__(self, message: str):
        super().__init__(message, code="PARSE_ERROR")


class AllProvidersFailedError(DashboardError):
    def __init__(self, last_error: Optional[str] = None):
        self.last_error = last_error or "Unknown"
        super().__init__(
            f"All market data providers failed. Last error: {self.last_error}",
            code="ALL_PROVIDERS_FAILED",
        )
