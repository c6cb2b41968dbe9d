"""
Internal knowledge base injected into every request.

Seeded entries ship with the application and cannot be removed. Entries added
by admins carry the ``user_`` id prefix and are the only ones persisted.
"""

from typing import Iterable, Optional, Tuple

from ..errors import BizChatError
from ..models.core import USER_ENTRY_PREFIX, KnowledgeEntry
from ..utils.logging_config import get_logger
from ..utils.timestamp_utils import new_id, now_millis

logger = get_logger(__name__)

KNOWLEDGE_HEADING = '### HansBiomed internal knowledge base:'


class KnowledgeError(BizChatError):
    """Raised for invalid knowledge base edits."""
    pass


SEED_KNOWLEDGE: Tuple[KnowledgeEntry, ...] = (
    KnowledgeEntry(id='hans_approval_common',
                   content="""[Company-wide approval and settlement principles]
- Supplementary approval: required when the amount rises 20% or more over the original draft, or differs by KRW 3,000,000 or more.
- Expense settlement procedure: GW pre-approval draft -> spend -> ERP voucher entry -> GW approval submission.
- Scheduled payout: Wednesday two weeks after the expense submission date (moved to the next or previous business day on holidays).""",  # noqa: E501
                   timestamp=0),
    KnowledgeEntry(id='hans_expense_rule_2025_update',
                   content="""[Stricter receipts for corporate card settlement (effective 2025-12-23)]
1. Effective: applies immediately to payments made on or after 23 December 2025.
2. Main change: corporate card settlements must attach a receipt showing item-level detail (items, quantities), not the card sales slip.
3. Details:
   - Online purchases: invoice, statement of transaction or a screenshot of the payment confirmation showing the details is required.
   - Overseas use: attach the receipt even when exchange-rate differences exist, so the actual items can be verified.
   - Lost receipt: the card sales slip may be used only when unavoidable, and the expense report body must state the reason for the loss and the detailed usage.
4. Note: missing evidence may lead to a request for explanation or rejection during approval. (Contact: Finance/Planning team)""",  # noqa: E501
                   timestamp=0),
)

SEED_IDS = frozenset(entry.id for entry in SEED_KNOWLEDGE)


def merge_with_seed(persisted: Iterable[KnowledgeEntry]) -> Tuple[KnowledgeEntry, ...]:
    """Seed entries followed by persisted user entries.

    Anything without the user prefix and repeated ids are dropped, so repeated
    save/load cycles never lose or duplicate entries.
    """
    seen = set(SEED_IDS)
    merged = list(SEED_KNOWLEDGE)
    for entry in persisted:
        if not entry.is_user_entry:
            logger.debug(f'Ignoring non-user knowledge entry from storage: {entry.id}')
            continue
        if entry.id in seen:
            continue
        seen.add(entry.id)
        merged.append(entry)
    return tuple(merged)


def user_entries(entries: Iterable[KnowledgeEntry]) -> Tuple[KnowledgeEntry, ...]:
    return tuple(entry for entry in entries if entry.is_user_entry)


def add_entry(entries: Tuple[KnowledgeEntry, ...],
              text: str,
              timestamp: Optional[int] = None) -> Tuple[KnowledgeEntry, ...]:
    """Prepend a user entry with the trimmed text.

    Raises:
        KnowledgeError: If the text is blank
    """
    content = text.strip()
    if not content:
        raise KnowledgeError('Knowledge entry is empty')

    timestamp = timestamp if timestamp is not None else now_millis()
    entry = KnowledgeEntry(id=new_id(USER_ENTRY_PREFIX, timestamp), content=content, timestamp=timestamp)
    logger.info(f'Added knowledge entry {entry.id} ({len(content)} chars)')
    return (entry, ) + entries


def delete_entry(entries: Tuple[KnowledgeEntry, ...], entry_id: str) -> Tuple[KnowledgeEntry, ...]:
    """Remove a user entry by id.

    Raises:
        KnowledgeError: For seeded or unknown ids
    """
    if entry_id in SEED_IDS:
        raise KnowledgeError(f'Seeded knowledge entry cannot be deleted: {entry_id}')
    if not any(entry.id == entry_id for entry in entries):
        raise KnowledgeError(f'Knowledge entry not found: {entry_id}')

    logger.info(f'Deleted knowledge entry {entry_id}')
    return tuple(entry for entry in entries if entry.id != entry_id)


def build_knowledge_context(entries: Iterable[KnowledgeEntry]) -> str:
    """Numbered knowledge list for the system instruction, in list order."""
    entries = list(entries)
    if not entries:
        return ''
    body = '\n\n'.join(f'{i}. {entry.content}' for i, entry in enumerate(entries, start=1))
    return f'\n\n{KNOWLEDGE_HEADING}\n{body}'
