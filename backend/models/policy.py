"""Pydantic schemas for RLS policy introspection, gap analysis and migration export."""
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PolicyRecord(BaseModel):
    schemaname: str
    tablename: str
    policyname: str
    permissive: str = "PERMISSIVE"
    roles: list[str] = Field(default_factory=list)
    cmd: str = "ALL"                   # SELECT INSERT UPDATE DELETE ALL
    qual: Optional[str] = None         # USING
    with_check: Optional[str] = None   # WITH CHECK


class PolicyPermissionRef(BaseModel):
    tablename: str
    policyname: str
    permission: str
    source: Literal["qual", "with_check"]


class TableRlsStatus(BaseModel):
    table_name: str
    rls_enabled: bool
    rls_forced: bool = False
    has_policies: bool = False
    policy_count: int = 0


class SeededPermission(BaseModel):
    role_id: str
    permission: str
    description: Optional[str] = None


class RoleCatalog(BaseModel):
    """Known roles and the permissions seeded for them."""
    roles: list[str]
    permissions: list[SeededPermission] = Field(default_factory=list)


class MissingPermission(BaseModel):
    permission: str
    tablename: str
    policyname: str


class IncompleteCrud(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    resource: str
    missing_actions: list[str]


class GapAnalysis(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    missing_permissions: list[MissingPermission] = Field(default_factory=list)
    tables_without_policies: list[str] = Field(default_factory=list)
    tables_without_rls: list[str] = Field(default_factory=list)
    incomplete_crud: list[IncompleteCrud] = Field(default_factory=list)


class PermissionChange(BaseModel):
    role_id: str = Field(..., pattern=r"^[a-zA-Z0-9_-]+$")
    permission: str = Field(..., pattern=r"^(\*|[a-zA-Z0-9_]+\.(\*|[a-zA-Z0-9_]+))$")
    action: Literal["add", "remove"]
    description: Optional[str] = None


class MigrationRequest(BaseModel):
    changes: list[PermissionChange]


class MigrationExport(BaseModel):
    filename: str
    content: str
