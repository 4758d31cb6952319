from models.tenant import TenantContext  # noqa: F401
from models.table import ColumnInfo, FieldMetadata, RelationshipConfig, TableConfig, TableRecord, PageRecord  # noqa: F401
from models.table import TableSyncResult, SyncResponse  # noqa: F401
from models.query import FilterDescriptor, QueryRequest, QueryResult, Pagination, RecordResult  # noqa: F401
from models.policy import PolicyRecord, PolicyPermissionRef, TableRlsStatus, SeededPermission, GapAnalysis  # noqa: F401
from models.policy import PermissionChange, MigrationRequest, MigrationExport  # noqa: F401
