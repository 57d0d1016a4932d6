"""apiforge: schema-first request validation and OpenAPI 3.1 generation."""
__version__ = "0.1.0"

from apiforge.core.validation import (
    Held,
    OpenAPISchema,
    Schema,
    ValidationError,
    ValidationInfo,
    all_of,
    any_of,
    array,
    boolean,
    email,
    for_struct,
    integer,
    not_,
    number,
    object_,
    one_of,
    string,
    url,
)
from apiforge.core.security import (
    SecurityRequirements,
    api_key_header,
    api_key_query,
    basic_auth,
    bearer_auth,
    oauth2_authorization_code,
    oauth2_client_credentials,
)
from apiforge.operations import (
    CompiledOperation,
    OpenAPIDocumentGenerator,
    OperationRequest,
    Router,
    operation,
)

__all__ = [
    "__version__",
    "Held",
    "OpenAPISchema",
    "Schema",
    "ValidationError",
    "ValidationInfo",
    "all_of",
    "any_of",
    "array",
    "boolean",
    "email",
    "for_struct",
    "integer",
    "not_",
    "number",
    "object_",
    "one_of",
    "string",
    "url",
    "SecurityRequirements",
    "api_key_header",
    "api_key_query",
    "basic_auth",
    "bearer_auth",
    "oauth2_authorization_code",
    "oauth2_client_credentials",
    "CompiledOperation",
    "OpenAPIDocumentGenerator",
    "OperationRequest",
    "Router",
    "operation",
]
