from abc import ABC, abstractmethod


class BaseGenerativeClientAdapter(ABC):
    """Contract for provider-specific generative AI clients."""

    @abstractmethod
    def generate(
        self,
        *,
        model: str,
        prompt: str,
        temperature: float,
        json_response: bool = False,
    ) -> str:
        """Return the provider response as plain text.

        Raises:
            ServiceCallError: with the provider's status code when the call fails.
        """
