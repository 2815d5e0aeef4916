import json
import math
import re
from abc import abstractmethod

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.errors import LengthExceeded, ProviderError
from shared.helper.HelperConfig import HelperConfig

CHARS_PER_TOKEN = 4.0
TOKEN_BUFFER = 10          # fixed allowance for special tokens
SAFE_CHAR_RATIO = 0.8      # share of the ceiling actually used after truncation
WORD_BOUNDARY_RATIO = 0.8  # a word boundary is only used this close to the cut
ELLIPSIS = "..."


class EmbedClientInterface(ClientInterface):
    """Text-to-vector backend with length guarding.

    Inputs are checked against ``EMBED_MODEL_MAX_TOKENS`` with a character
    based token estimate and truncated before submission. If the backend still
    rejects an input as oversized, one emergency retry against half the
    ceiling is made.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model config
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default=self._get_default_model())
        self.embed_model_max_tokens = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_MODEL_MAX_TOKENS", default=8000))

    ##########################################
    ############### CHECKER ##################
    ##########################################

    @staticmethod
    def estimate_token_count(text: str) -> int:
        """Approximate the token count as ceil(chars / 4) + 10 over whitespace-collapsed text."""
        clean_text = re.sub(r"\s+", " ", text).strip()
        return math.ceil(len(clean_text) / CHARS_PER_TOKEN) + TOKEN_BUFFER

    def is_within_token_limit(self, text: str) -> bool:
        return self.estimate_token_count(text) <= self.embed_model_max_tokens

    @abstractmethod
    def is_length_exceeded_response(self, response: httpx.Response) -> bool:
        """Return True if a failed response means the input was too long for the model."""
        pass

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "embed"

    @abstractmethod
    def _get_default_model(self) -> str:
        """Returns the embedding model used when EMBED_MODEL is not set."""
        pass

    def get_recommended_chunk_size(self) -> int:
        """Characters per chunk that safely stay below the token ceiling."""
        return int(self.embed_model_max_tokens * SAFE_CHAR_RATIO * CHARS_PER_TOKEN)

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """Returns the endpoint path for embedding requests (e.g. "/embeddings")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request."""
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response, in input order.

        Raises:
            ValueError: If the response format is invalid or embeddings are empty.
        """
        pass

    @staticmethod
    def truncate_to_token_limit(text: str, max_tokens: int) -> str:
        """Cut text to ``max_tokens * 4 * 0.8`` characters and append "...".

        The cut moves back to the last space inside the limit when that space
        lies at or beyond 80% of it. Text already within the limit is returned
        unchanged.
        """
        if not text:
            return text
        safe_char_limit = int(max_tokens * CHARS_PER_TOKEN * SAFE_CHAR_RATIO)
        if len(text) <= safe_char_limit:
            return text

        truncated = text[:safe_char_limit]
        last_space = truncated.rfind(" ")
        if last_space >= safe_char_limit * WORD_BOUNDARY_RATIO:
            truncated = truncated[:last_space]
        return truncated + ELLIPSIS

    def prepare_text(self, text: str) -> str:
        """Return text unchanged if within the token ceiling, else its truncated form."""
        estimated = self.estimate_token_count(text)
        if estimated <= self.embed_model_max_tokens:
            return text
        self.logging.warning(
            "Text too long for embedding model. Estimated tokens: %d, Max: %d. Truncating...",
            estimated,
            self.embed_model_max_tokens,
        )
        return self.truncate_to_token_limit(text, self.embed_model_max_tokens)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _request_embeddings(self, texts: list[str]) -> list[list[float]]:
        """Send one embedding request.

        Raises:
            LengthExceeded: If the backend rejected the input as oversized.
            ProviderError: On any other failure.
        """
        response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=self.get_embed_payload(texts))
        if not response.is_success:
            if self.is_length_exceeded_response(response):
                raise LengthExceeded(response.text[:200])
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise ProviderError("Embedding request failed with status %d." % response.status_code, status_code=response.status_code)

        try:
            return self.extract_embeddings_from_response(response.json())
        except (json.JSONDecodeError, ValueError, KeyError, TypeError) as e:
            raise ProviderError(f"Unusable embedding response from {self.get_engine_name()}: {e}") from e

    async def do_embed_text(self, text: str | None) -> list[float]:
        """Embed a single text.

        Empty, whitespace-only or None input returns [] without a request.

        Raises:
            ProviderError: If the backend fails, or still rejects the input after the emergency retry.
        """
        if text is None or not text.strip():
            return []

        try:
            return (await self._request_embeddings([self.prepare_text(text)]))[0]
        except LengthExceeded:
            self.logging.warning("Hit token limit even after processing. Applying emergency truncation.")

        emergency_text = self.truncate_to_token_limit(text, self.embed_model_max_tokens // 2)
        try:
            return (await self._request_embeddings([emergency_text]))[0]
        except LengthExceeded as e:
            raise ProviderError("Failed to generate embedding even with truncation") from e

    async def do_embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts one after another, preserving order."""
        return [await self.do_embed_text(text) for text in texts]
