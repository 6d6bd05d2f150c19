class RelayError(Exception):
    """Base threadbridge error"""


class ConfigurationMissing(RelayError):
    """Required environment variables are not set"""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required environment variables: {', '.join(missing)}")


class DurableStateCorrupt(RelayError):
    """Session state on disk could not be decoded"""


class AssistantServiceError(RelayError):
    """Assistant API returned an error response"""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class UpstreamSessionCreateFailure(RelayError):
    """Assistant thread could not be created"""


class AssistantRunFailure(RelayError):
    """Assistant run ended in a status other than completed"""

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Assistant run failed: {status}")


class ReplyDeliveryFailure(RelayError):
    """Telegram rejected or never received the outgoing reply"""
