"""
Request/response client for the assistant.

Builds the Gemini request from session history and the knowledge base, calls
the model once and maps the reply back. Provider failures never escape this
module: every outcome is returned as a ``BizResponse``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..models.core import GroundingLink, KnowledgeEntry, Message, ModelTier, Role
from ..utils.config import GeminiConfig
from ..utils.gemini_llm import GeminiLLM, GeminiLLMError
from ..utils.logging_config import get_logger
from .knowledge_base import build_knowledge_context

logger = get_logger(__name__)

MISSING_KEY_TEXT = """⚠️ **The assistant's API key has not been configured.**

**How to fix:**
1. Set `GEMINI_API_KEY` (or `API_KEY`) in the environment or the `.env` file of the deployment.
2. Restart the service so the new value is picked up.

AI answers are available once both steps are done. Contact the administrator if the problem persists."""

INVALID_KEY_TEXT = """⚠️ **The configured API key was rejected by the provider.**

Ask the administrator to issue a new key, update `GEMINI_API_KEY` and restart the service."""

APOLOGY_TEXT = 'Sorry, an error occurred while generating the answer. Please try again in a moment.'

EMPTY_RESPONSE_TEXT = 'Unable to generate a response.'

INVALID_KEY_MARKERS = ('API key not valid', 'API_KEY_INVALID', 'Requested entity was not found')

UNSET_KEY_VALUES = ('', 'undefined')

SYSTEM_PERSONA = """You are the work-support AI of HansBiomed.
Give employees accurate answers based on internal regulations and guides.
Always answer in a kind, professional and formal register, and organize complex content into tables.
[Reference data]"""


class ResponseOutcome(str, Enum):
    OK = 'ok'
    MISSING_CREDENTIAL = 'missing_credential'
    INVALID_CREDENTIAL = 'invalid_credential'
    FAILED = 'failed'


@dataclass(frozen=True)
class BizResponse:
    text: str
    grounding_links: Tuple[GroundingLink, ...] = field(default=())
    outcome: ResponseOutcome = ResponseOutcome.OK

    @property
    def ok(self) -> bool:
        return self.outcome is ResponseOutcome.OK


def build_system_instruction(knowledge: Iterable[KnowledgeEntry]) -> str:
    return f'{SYSTEM_PERSONA}{build_knowledge_context(knowledge)}'


def build_contents(history: Sequence[Message]) -> List[Dict[str, Any]]:
    """Map session history to Gemini turns.

    Attachment payloads go first as inline binary parts, followed by the text
    part. System messages are not sent as turns.
    """
    contents = []
    for message in history:
        if message.role is Role.SYSTEM:
            continue

        parts: List[Dict[str, Any]] = [{
            'inline_data': {
                'mime_type': attachment.mime_type,
                'data': attachment.decoded()
            }
        } for attachment in message.attachments]
        parts.append({'text': message.content})

        contents.append({'role': 'user' if message.role is Role.USER else 'model', 'parts': parts})
    return contents


def is_invalid_key_error(error: Exception) -> bool:
    message = str(error)
    return any(marker in message for marker in INVALID_KEY_MARKERS)


class ResponseClient:
    """Turns one user prompt into one model call."""

    def __init__(self, config: Optional[GeminiConfig] = None, llm_factory: Optional[Callable[[str], Any]] = None):
        """
        Initialize the response client.

        Args:
            config: GeminiConfig, uses the global configuration if None
            llm_factory: Builds the LLM from an API key; defaults to GeminiLLM
        """
        if config is None:
            from ..utils.config import config as app_config
            config = app_config.gemini
        self.config = config
        self.llm_factory = llm_factory or (lambda api_key: GeminiLLM(self.config, api_key=api_key))

        logger.info('Initialized ResponseClient')

    def has_credential(self) -> bool:
        return (self.config.api_key or '').strip() not in UNSET_KEY_VALUES

    def resolve_model(self, model: ModelTier) -> str:
        return self.config.pro_model if model is ModelTier.PRO else self.config.flash_model

    def generate(self,
                 prompt: str,
                 history: Sequence[Message],
                 knowledge: Iterable[KnowledgeEntry] = (),
                 model: ModelTier = ModelTier.FLASH,
                 use_search: bool = False) -> BizResponse:
        """Ask the model once for the reply to the last turn of ``history``.

        Args:
            prompt: The user's text (already the last entry of history)
            history: Full session history including the new user message
            knowledge: Knowledge entries, serialized in order into the system instruction
            model: Model tier
            use_search: Request Google Search augmentation

        Returns:
            BizResponse; never raises for provider failures
        """
        if not self.has_credential():
            logger.warning('Gemini API key is missing; returning setup instructions')
            return BizResponse(text=MISSING_KEY_TEXT, outcome=ResponseOutcome.MISSING_CREDENTIAL)

        model_id = self.resolve_model(model)
        system_instruction = build_system_instruction(knowledge)
        contents = build_contents(history)
        logger.debug(f'Generating answer for prompt of {len(prompt)} chars with {model_id}')

        try:
            llm = self.llm_factory(self.config.api_key)
            text, links = llm.generate_response(model=model_id,
                                                contents=contents,
                                                system_instruction=system_instruction,
                                                temperature=self.config.temperature,
                                                use_search=use_search)
        except GeminiLLMError as e:
            if is_invalid_key_error(e):
                logger.error(f'Gemini rejected the API key: {e}')
                return BizResponse(text=INVALID_KEY_TEXT, outcome=ResponseOutcome.INVALID_CREDENTIAL)
            logger.error(f'Gemini request failed: {e}')
            return BizResponse(text=APOLOGY_TEXT, outcome=ResponseOutcome.FAILED)
        except Exception as e:
            logger.error(f'Unexpected error during response generation: {e}')
            return BizResponse(text=APOLOGY_TEXT, outcome=ResponseOutcome.FAILED)

        return BizResponse(text=text or EMPTY_RESPONSE_TEXT, grounding_links=tuple(links))
