# Core module exports
from apiforge.core.config import settings, get_settings
from apiforge.core.logging import (
    configure_logging,
    get_logger,
    bind_context,
    clear_context,
    generate_correlation_id,
    api_logger,
    validation_logger,
    openapi_logger,
    cli_logger,
)
