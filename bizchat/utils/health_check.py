"""
Health check utilities for the application.
"""

from typing import Any, Dict, Optional

from .config import GeminiConfig, config
from .gemini_llm import GeminiLLM
from .logging_config import get_logger

logger = get_logger(__name__)


def get_health_status(store=None, gemini_config: Optional[GeminiConfig] = None) -> Dict[str, Any]:
    """Get detailed health status of all components.

    Args:
        store: PersistedStore to check, defaults to the configured file store
        gemini_config: GeminiConfig, uses the global configuration if None

    Returns:
        Dictionary with health status of each component and an overall 'healthy' flag
    """
    gemini_config = gemini_config or config.gemini
    health_status = {}

    # Check Gemini
    if not gemini_config.api_key:
        health_status['gemini'] = {'healthy': False, 'service': 'Google Gemini', 'error': 'API key not configured'}
    else:
        try:
            llm = GeminiLLM(gemini_config)
            health_status['gemini'] = {
                'healthy': llm.health_check(),
                'service': 'Google Gemini',
                'model': gemini_config.flash_model
            }
        except Exception as e:
            health_status['gemini'] = {'healthy': False, 'service': 'Google Gemini', 'error': str(e)}

    # Check local store
    try:
        if store is None:
            from ..services.persisted_store import PersistedStore
            store = PersistedStore()
        snapshot = store.load()
        health_status['store'] = {
            'healthy': True,
            'service': 'Local store',
            'sessions': len(snapshot.sessions),
            'activities': len(snapshot.activities)
        }
    except Exception as e:
        health_status['store'] = {'healthy': False, 'service': 'Local store', 'error': str(e)}

    all_healthy = all(status['healthy'] for status in health_status.values())
    if not all_healthy:
        logger.warning('Some system components are unhealthy')

    return {'healthy': all_healthy, 'components': health_status}
