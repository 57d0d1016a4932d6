"""HTTP Operations

Operation definitions, the FastAPI router, the OpenAPI document generator
and the multi-service combiner.
"""
from .types import (
    CompiledOperation,
    Generator,
    HTTPMethod,
    OperationInfo,
    OperationRequest,
    ResponseDefinition,
)
from .builder import OperationBuilder, operation
from .router import Router, validated_handler
from .openapi import OpenAPIDocumentGenerator, extract_parameters
from .combiner import (
    CombinationStats,
    Combiner,
    CombinerConfig,
    ServicesConfig,
    load_services_config,
    service_name,
)

__all__ = [
    "CompiledOperation",
    "Generator",
    "HTTPMethod",
    "OperationInfo",
    "OperationRequest",
    "ResponseDefinition",
    "OperationBuilder",
    "operation",
    "Router",
    "validated_handler",
    "OpenAPIDocumentGenerator",
    "extract_parameters",
    "Combiner",
    "CombinerConfig",
    "CombinationStats",
    "ServicesConfig",
    "load_services_config",
    "service_name",
]
