"""Pydantic schemas for the declarative filter language and query results."""
from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

FILTER_OPERATORS = (
    "equals",
    "not_equals",
    "contains",
    "greater_than",
    "less_than",
    "greater_than_or_equal",
    "less_than_or_equal",
    "is_null",
    "is_not_null",
)
NULL_OPERATORS = ("is_null", "is_not_null")


class FilterDescriptor(BaseModel):
    column: str
    operator: str = "equals"   # checked against FILTER_OPERATORS by the compiler
    value: Optional[str] = None


class QueryRequest(BaseModel):
    table_name: str
    filters: list[FilterDescriptor] = Field(default_factory=list)
    page: int = 1
    limit: int = 100
    order_by: Optional[str] = None
    order_direction: Literal["asc", "desc"] = "asc"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Pagination(_CamelModel):
    page: int
    limit: int
    total_rows: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class QueryResult(_CamelModel):
    table_name: str
    columns: list[str]
    rows: list[dict[str, Any]]
    pagination: Pagination


class RecordResult(_CamelModel):
    table_name: str
    record: Optional[dict[str, Any]] = None
    columns: list[str] = Field(default_factory=list)
