"""Configuration utilities for loading environment variables."""

from dataclasses import dataclass
import os
from typing import Optional

from dotenv import load_dotenv


DEFAULT_MODEL = "openai/gpt-4o-mini"
DEFAULT_OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_SERPER_BASE_URL = "https://google.serper.dev"
DEFAULT_SEARCH_SITE = "www.btselem.org"


def load_env(env_file: Optional[str] = None) -> None:
    """Load environment variables from .env file.

    Args:
        env_file: Optional path to .env file. If not specified, searches
                 for .env in current and parent directories.

    Example:
        >>> from taskgraph.utils.config import load_env
        >>> load_env()  # Loads from .env
        >>> import os
        >>> api_key = os.getenv("OPENROUTER_API_KEY")
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()


def get_config(key: str, default: Optional[str] = None) -> Optional[str]:
    """Get configuration value from environment.

    Args:
        key: Configuration key
        default: Default value if not found

    Returns:
        Configuration value or default
    """
    return os.getenv(key, default)


def ensure_api_key(name: str = "OPENROUTER_API_KEY") -> str:
    """Ensure an API key is available.

    Returns:
        API key

    Raises:
        ValueError: If API key not found
    """
    api_key = get_config(name)
    if not api_key:
        raise ValueError(
            f"{name} not found in environment. "
            "Please set it in .env file or environment variables."
        )
    return api_key


@dataclass
class ServiceConfig:
    """Settings for the query-answering service.

    Attributes:
        host: Interface to bind
        port: Port to bind
        log_level: Root log level name
        openrouter_api_key: API key for the LLM provider
        openrouter_model: Model used for query enhancement and answers
        openrouter_base_url: Base URL of the OpenRouter API
        serper_api_key: API key for web search (retrieval disabled if unset)
        serper_base_url: Base URL of the Serper API
        search_site: Site that searches are restricted to (None searches the whole web)
        scrape_pages: Fetch result pages and use their text instead of snippets
    """

    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    openrouter_api_key: Optional[str] = None
    openrouter_model: str = DEFAULT_MODEL
    openrouter_base_url: str = DEFAULT_OPENROUTER_BASE_URL
    serper_api_key: Optional[str] = None
    serper_base_url: str = DEFAULT_SERPER_BASE_URL
    search_site: Optional[str] = DEFAULT_SEARCH_SITE
    scrape_pages: bool = True

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Build configuration from environment variables.

        Raises:
            ValueError: If PORT is not a valid integer
        """
        raw_port = get_config("PORT", "8080")
        try:
            port = int(raw_port)
        except ValueError:
            raise ValueError(f"PORT must be a valid number, got {raw_port!r}") from None

        return cls(
            host=get_config("HOST", "0.0.0.0"),
            port=port,
            log_level=get_config("LOG_LEVEL", "INFO").upper(),
            openrouter_api_key=get_config("OPENROUTER_API_KEY"),
            openrouter_model=get_config("OPENROUTER_MODEL", DEFAULT_MODEL),
            openrouter_base_url=get_config("OPENROUTER_BASE_URL", DEFAULT_OPENROUTER_BASE_URL),
            serper_api_key=get_config("SERPER_API_KEY"),
            serper_base_url=get_config("SERPER_BASE_URL", DEFAULT_SERPER_BASE_URL),
            search_site=get_config("SEARCH_SITE", DEFAULT_SEARCH_SITE) or None,
            scrape_pages=get_config("SCRAPE_PAGES", "true").lower() not in ("0", "false", "no"),
        )

    @property
    def bind_address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def server_url(self) -> str:
        return f"http://{self.host}:{self.port}"
