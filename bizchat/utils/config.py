"""
Configuration management for the Gemini client, local storage and application settings.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass
class GeminiConfig:
    """Configuration for the Google Gemini API."""
    api_key: Optional[str]
    flash_model: str
    pro_model: str
    temperature: float


@dataclass
class StorageConfig:
    """Configuration for the local key-value store."""
    directory: str


@dataclass
class AdminConfig:
    """Configuration for admin elevation. No passphrase disables elevation."""
    passphrase: Optional[str]


@dataclass
class LimitsConfig:
    """Bounds for the persisted logs and derived values."""
    user_log_limit: int
    activity_log_limit: int
    title_length: int


@dataclass
class MCPConfig:
    """Configuration for MCP interface."""
    transport: str
    host: str
    port: int


@dataclass
class AppConfig:
    """Main application configuration."""
    environment: str
    log_level: str
    gemini: GeminiConfig
    storage: StorageConfig
    admin: AdminConfig
    limits: LimitsConfig
    mcp: MCPConfig


def load_config() -> AppConfig:
    """Load configuration from environment variables with defaults."""
    environment = os.getenv('ENVIRONMENT', 'development')

    gemini_config = GeminiConfig(api_key=os.getenv('GEMINI_API_KEY') or os.getenv('API_KEY'),
                                 flash_model=os.getenv('GEMINI_FLASH_MODEL', 'gemini-3-flash-preview'),
                                 pro_model=os.getenv('GEMINI_PRO_MODEL', 'gemini-3-pro-preview'),
                                 temperature=float(os.getenv('GEMINI_TEMPERATURE', '0.1')))

    storage_config = StorageConfig(directory=os.getenv('BIZCHAT_STORAGE_DIR', '.bizchat'))

    admin_config = AdminConfig(passphrase=os.getenv('ADMIN_PASSPHRASE') or None)

    limits_config = LimitsConfig(user_log_limit=int(os.getenv('BIZCHAT_USER_LOG_LIMIT', '100')),
                                 activity_log_limit=int(os.getenv('BIZCHAT_ACTIVITY_LOG_LIMIT', '1000')),
                                 title_length=int(os.getenv('BIZCHAT_TITLE_LENGTH', '20')))

    mcp_config = MCPConfig(transport=os.getenv('MCP_TRANSPORT', 'sse'),
                           host=os.getenv('MCP_HOST', '127.0.0.1'),
                           port=int(os.getenv('MCP_PORT', '8000')))

    return AppConfig(environment=environment,
                     log_level=os.getenv('LOG_LEVEL', 'INFO'),
                     gemini=gemini_config,
                     storage=storage_config,
                     admin=admin_config,
                     limits=limits_config,
                     mcp=mcp_config)


# Global configuration instance
config = load_config()
