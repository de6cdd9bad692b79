from .checker import Decision, PermissionChecker
from .config import LogLevel, RebacConfig, load_config_from_env
from .exceptions import (
    ConfigurationError,
    InvalidRequestError,
    PermissionDeniedError,
    RebacError,
    ResolutionTimeoutError,
    SchemaIssue,
    SchemaValidationError,
    TupleStoreError,
    UnknownNamespaceError,
    UnknownPermissionError,
    get_http_status_code,
)
from .logging import (
    RebacFormatter,
    RebacLoggerAdapter,
    get_rebac_logger,
    redact_secrets,
    safe_log_value,
    safe_preview,
    setup_logging,
)
from .resolver import PermissionResolver, RelationPath, RelationStep, Resolution
from .schema import (
    BUILTIN_SCHEMAS,
    ComputedUserset,
    InheritsRewrite,
    IntersectionRewrite,
    NamespaceSchema,
    Namespaces,
    OrganizationRole,
    PermissionDefinition,
    RelationDefinition,
    SchemaRegistry,
    UnionRewrite,
    default_registry,
    dump_schemas,
    load_schemas_from_file,
    load_schemas_from_json,
    validate_schemas,
)
from .tuples import InMemoryTupleStore, ObjectRef, RelationTuple, RelationTupleStore

__all__ = [
    'BUILTIN_SCHEMAS',
    'ComputedUserset',
    'ConfigurationError',
    'Decision',
    'InMemoryTupleStore',
    'InheritsRewrite',
    'IntersectionRewrite',
    'InvalidRequestError',
    'LogLevel',
    'NamespaceSchema',
    'Namespaces',
    'ObjectRef',
    'OrganizationRole',
    'PermissionChecker',
    'PermissionDefinition',
    'PermissionDeniedError',
    'PermissionResolver',
    'RebacConfig',
    'RebacError',
    'RebacFormatter',
    'RebacLoggerAdapter',
    'RelationDefinition',
    'RelationPath',
    'RelationStep',
    'RelationTuple',
    'RelationTupleStore',
    'Resolution',
    'ResolutionTimeoutError',
    'SchemaIssue',
    'SchemaRegistry',
    'SchemaValidationError',
    'TupleStoreError',
    'UnionRewrite',
    'UnknownNamespaceError',
    'UnknownPermissionError',
    'default_registry',
    'dump_schemas',
    'get_http_status_code',
    'get_rebac_logger',
    'load_config_from_env',
    'load_schemas_from_file',
    'load_schemas_from_json',
    'redact_secrets',
    'safe_log_value',
    'safe_preview',
    'setup_logging',
    'validate_schemas',
]
