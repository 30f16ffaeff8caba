from abc import ABC, abstractmethod


class WebhookVerificationError(Exception):
    """Signature header missing, malformed, outside tolerance or not matching"""


class WebhookConfigurationError(Exception):
    """The endpoint cannot verify anything, e.g. its signing secret is not set"""


class WebhookVerifier(ABC):
    @abstractmethod
    def verify(self, payload: bytes, signature: str) -> None:
        """
        Check the signature of a raw webhook body

        Raises:
            WebhookVerificationError: If the payload is not authentic
            WebhookConfigurationError: If the verifier is not set up to check it
        """
        pass
