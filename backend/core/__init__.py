from core.catalog_reader import list_base_tables, list_columns, get_primary_key, get_comments  # noqa: F401
from core.relationships import detect_forward, detect_reverse  # noqa: F401
from core.query_compiler import compile_count, compile_select, compile_fallback_select, compute_pagination  # noqa: F401
from core.policy_analyzer import analyze_gaps, compute_gap_analysis, extract_policy_permissions  # noqa: F401
from core.migration_export import generate_migration_sql, generate_migration_filename  # noqa: F401
from core.table_sync import TableSyncService  # noqa: F401
from core.data_query import QueryService  # noqa: F401
from core.cache import MetadataCache  # noqa: F401
