"""
structstream: incremental structured-value reconstruction for streamed LLM JSON.
"""

from structstream.types import (
    Backend,
    ChatMessage,
    FirstItemLatency,
    JSONValue,
    KnownBackend,
    Role,
    SchemaHint,
    StreamJsonOptions,
)
from structstream.errors import (
    BackendError,
    ConfigurationError,
    StructStreamError,
)
from structstream.utils.json_parse import (
    PartialJSONProcessor,
    parse_streaming_json,
    repair_json,
)
from structstream.backend_registry import (
    BackendProvider,
    FragmentSource,
    clear_backends,
    create_backend,
    get_backend_provider,
    get_backend_providers,
    register_backend,
    unregister_backends,
)
from structstream.backends import (
    GeminiBackend,
    register_builtin_backends,
    reset_backends,
)
from structstream.config import DEFAULT_MODEL, ClientConfig
from structstream.env_api_keys import get_env_api_key
from structstream.mocks import DictMockStore, FileMockStore, MockStore
from structstream.client import LLMClient

__version__ = "0.1.0"

__all__ = [
    # Types
    "Backend",
    "ChatMessage",
    "FirstItemLatency",
    "JSONValue",
    "KnownBackend",
    "Role",
    "SchemaHint",
    "StreamJsonOptions",
    # Errors
    "BackendError",
    "ConfigurationError",
    "StructStreamError",
    # Repair parser
    "PartialJSONProcessor",
    "parse_streaming_json",
    "repair_json",
    # Backend registry
    "BackendProvider",
    "FragmentSource",
    "clear_backends",
    "create_backend",
    "get_backend_provider",
    "get_backend_providers",
    "register_backend",
    "unregister_backends",
    # Backends
    "GeminiBackend",
    "register_builtin_backends",
    "reset_backends",
    # Config
    "DEFAULT_MODEL",
    "ClientConfig",
    "get_env_api_key",
    # Mocks
    "DictMockStore",
    "FileMockStore",
    "MockStore",
    # Client
    "LLMClient",
]
