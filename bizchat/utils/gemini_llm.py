"""
Google Gemini client wrapper with error handling.
"""

from typing import Any, Dict, List, Optional, Tuple

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..models.core import GroundingLink
from .config import GeminiConfig
from .logging_config import get_logger

logger = get_logger(__name__)


class GeminiLLMError(Exception):
    """Custom exception for Gemini LLM errors."""
    pass


def extract_grounding_links(response: Any) -> List[GroundingLink]:
    """Web sources from the first candidate's grounding metadata.

    Args:
        response: GenerateContentResponse

    Returns:
        List of GroundingLink; chunks without a web source are skipped
    """
    candidates = getattr(response, 'candidates', None) or []
    if not candidates:
        return []

    metadata = getattr(candidates[0], 'grounding_metadata', None)
    chunks = getattr(metadata, 'grounding_chunks', None) or []

    links = []
    for chunk in chunks:
        web = getattr(chunk, 'web', None)
        uri = getattr(web, 'uri', None)
        if not uri:
            continue
        links.append(GroundingLink(uri=uri, title=getattr(web, 'title', None) or uri))
    return links


class GeminiLLM:
    """Gemini client making a single generate_content call per request."""

    def __init__(self, config: GeminiConfig, api_key: Optional[str] = None):
        """
        Initialize Gemini client.

        Args:
            config: GeminiConfig instance with model names and temperature
            api_key: Overrides the configured key

        Raises:
            GeminiLLMError: If no API key is available
        """
        self.config = config
        api_key = api_key or config.api_key
        if not api_key:
            raise GeminiLLMError('No Gemini API key configured')

        self.client = genai.Client(api_key=api_key)

        logger.info(f'Initialized Gemini client (flash={config.flash_model}, pro={config.pro_model})')

    def generate_response(self,
                          model: str,
                          contents: List[Dict[str, Any]],
                          system_instruction: str,
                          temperature: Optional[float] = None,
                          use_search: bool = False) -> Tuple[str, List[GroundingLink]]:
        """
        Generate a response. No retries; the first failure is reported.

        Args:
            model: Gemini model identifier
            contents: Turns in Gemini format ({'role': ..., 'parts': [...]})
            system_instruction: System instruction text
            temperature: Sampling temperature (uses config default if None)
            use_search: Enable the Google Search grounding tool

        Returns:
            Tuple of (response_text, grounding_links); text may be empty

        Raises:
            GeminiLLMError: If the call fails
        """
        temperature = self.config.temperature if temperature is None else temperature

        generate_config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=temperature,
            tools=[types.Tool(google_search=types.GoogleSearch())] if use_search else None,
        )

        try:
            logger.debug(f'Gemini request: model={model}, turns={len(contents)}, search={use_search}')

            response = self.client.models.generate_content(model=model, contents=contents, config=generate_config)

            text = response.text or ''
            links = extract_grounding_links(response)

            logger.debug(f'Gemini response generated successfully (length: {len(text)}, links: {len(links)})')
            return text, links

        except genai_errors.APIError as e:
            logger.error(f'Gemini API error ({e.code}): {e}')
            raise GeminiLLMError(str(e))

        except Exception as e:
            logger.error(f'Unexpected error in Gemini LLM: {e}')
            raise GeminiLLMError(f'Unexpected Gemini LLM error: {e}')

    def health_check(self) -> bool:
        """
        Perform a health check on the Gemini API.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            test_contents = [{'role': 'user', 'parts': [{'text': 'Hi'}]}]
            response, _ = self.generate_response(model=self.config.flash_model,
                                                 contents=test_contents,
                                                 system_instruction="You are a helpful assistant. Respond with just 'OK'.",
                                                 temperature=0.0)
            return len(response.strip()) > 0

        except Exception as e:
            logger.error(f'Gemini LLM health check failed: {e}')
            return False
