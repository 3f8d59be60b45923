class AdvisorError(Exception):
    """Base class for every error raised by the advisor pipeline."""


class ConfigurationError(AdvisorError):
    """The server is missing configuration it needs (e.g. the provider API key)."""


class UpstreamUnavailable(AdvisorError):
    """The streaming request to the text generation provider could not be opened."""


class UpstreamStreamError(AdvisorError):
    """The provider stream terminated abnormally after it was opened."""


class ClientReadError(AdvisorError):
    """The relay response could not be read, decoded, or reported an error."""


class ConversationStateError(AdvisorError):
    """An operation was attempted on a conversation in the wrong state."""


class InvalidFinancialData(AdvisorError, ValueError):
    """The financial inputs cannot produce a profit/loss calculation."""
