"""Pydantic schemas for introspected table metadata and sync results."""
from datetime import datetime
from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class ColumnInfo(BaseModel):
    """One catalog column, in physical column order."""
    name: str
    data_type: str
    is_nullable: bool = True
    default: Optional[str] = None
    is_unique: bool = False


class FieldMetadata(BaseModel):
    field_name: str
    display_name: str
    data_type: str
    is_required: bool = False
    is_unique: bool = False


class RelationshipConfig(BaseModel):
    """
    A foreign-key edge. ``source_*`` is always the referencing side and
    ``target_*`` the referenced side, whichever table owns the edge.
    """
    id: str
    constraint_name: Optional[str] = None
    direction: Literal["forward", "reverse"]
    relationship_type: Literal["many_to_one", "one_to_many"]
    source_table: str
    source_column: str
    target_table: str
    target_column: str
    label_field: Optional[str] = None   # forward edges only


class TableConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    table_type: Literal["base_table"] = "base_table"
    primary_key_column: Optional[str] = None
    field_metadata: list[FieldMetadata] = Field(default_factory=list)
    relationships: list[RelationshipConfig] = Field(default_factory=list)
    # Reserved for policy-driven UI generation; never populated by sync
    label_fields: list[Any] = Field(default_factory=list)
    rls_policy_templates: list[Any] = Field(default_factory=list)
    rls_policy_groups: list[Any] = Field(default_factory=list)
    indexes: list[Any] = Field(default_factory=list)

    @property
    def forward_relationships(self) -> list[RelationshipConfig]:
        return [r for r in self.relationships if r.direction == "forward"]


PLACEHOLDER_FIELDS = ("label_fields", "rls_policy_templates", "rls_policy_groups", "indexes")


class TableRecord(BaseModel):
    id: str
    workspace_id: str
    name: str
    description: Optional[str] = None
    config: TableConfig
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PageRecord(BaseModel):
    id: str
    workspace_id: str
    name: str
    description: Optional[str] = None
    blocks: list[dict] = Field(default_factory=list)
    settings: dict = Field(default_factory=dict)
    layout: dict = Field(default_factory=dict)
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class TableSyncResult(BaseModel):
    name: str
    success: bool
    error: Optional[str] = None


class SyncResponse(BaseModel):
    success: bool
    synced: int
    total: int
    results: list[TableSyncResult] = Field(default_factory=list)
    message: Optional[str] = None


class TableListing(BaseModel):
    name: str
    type: Literal["data", "config"]
    schema_name: Optional[str] = None


class TableSchema(BaseModel):
    table_name: str
    columns: list[ColumnInfo] = Field(default_factory=list)
