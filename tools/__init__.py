"""Tools module."""
from .enum_normalizer import (
    STATUS_OPTIONS,
    DEFAULT_INDUSTRY,
    normalize,
    title_case,
    guess_industry,
)
from .record_store import (
    RecordStoreError,
    RecordNotFoundError,
    AirtableClient,
    RecordStoreGateway,
    get_gateway,
)
from .field_extractor import extract
from .function_declarations import (
    get_tool_declarations,
    get_account_tools,
    to_account_action,
)

__all__ = [
    "STATUS_OPTIONS", "DEFAULT_INDUSTRY",
    "normalize", "title_case", "guess_industry",
    "RecordStoreError", "RecordNotFoundError",
    "AirtableClient", "RecordStoreGateway", "get_gateway",
    "extract",
    "get_tool_declarations", "get_account_tools", "to_account_action",
]
