"""GET /api/data/{table}, /api/data/{table}/schema and /api/data/record: reads of user tables."""
import logging
import re
from typing import Literal, Optional
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.deps import get_services, get_tenant
from config import settings
from core.errors import RecordNotFoundError
from core.factory import Services
from models.query import FilterDescriptor, QueryRequest, QueryResult, RecordResult
from models.table import TableSchema
from models.tenant import TenantContext

router = APIRouter()
logger = logging.getLogger(__name__)

_FILTER_OP_PARAM = re.compile(r"^filter_op\[(.+)\]$")
_FILTER_VALUE_PARAM = re.compile(r"^filter\[(.+)\]$")


def parse_filters(request: Request) -> list[FilterDescriptor]:
    """
    filter[col]=v&filter_op[col]=op  ->  [{column: col, operator: op, value: v}]
    A column with only a value defaults to ``equals``; one with only an operator
    has a null value.
    """
    operators: dict[str, str] = {}
    values: dict[str, str] = {}
    order: list[str] = []
    for key, value in request.query_params.multi_items():
        op_match = _FILTER_OP_PARAM.match(key)
        value_match = _FILTER_VALUE_PARAM.match(key)
        if op_match:
            column = op_match.group(1)
            operators[column] = value
        elif value_match:
            column = value_match.group(1)
            values[column] = value
        else:
            continue
        if column not in order:
            order.append(column)
    return [
        FilterDescriptor(column=c, operator=operators.get(c, "equals"), value=values.get(c))
        for c in order
    ]


@router.get("/data/record", response_model=RecordResult, responses={404: {"model": RecordResult}})
def get_record(
    table: str,
    id: str,
    idColumn: Optional[str] = None,
    tenant: TenantContext = Depends(get_tenant),
    services: Services = Depends(get_services),
):
    try:
        return services.queries.get_record(tenant, table, id, id_column=idColumn)
    except RecordNotFoundError:
        empty = RecordResult(table_name=table, record=None, columns=[])
        return JSONResponse(status_code=404, content=empty.model_dump(by_alias=True))


@router.get("/data/{table}/schema", response_model=TableSchema)
def get_table_schema(
    table: str,
    tenant: TenantContext = Depends(get_tenant),
    services: Services = Depends(get_services),
):
    return services.queries.describe_table(tenant, table)


@router.get("/data/{table}", response_model=QueryResult)
def query_table(
    table: str,
    request: Request,
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_LIMIT,
    order_by: Optional[str] = None,
    order_direction: Literal["asc", "desc"] = "asc",
    tenant: TenantContext = Depends(get_tenant),
    services: Services = Depends(get_services),
):
    req = QueryRequest(
        table_name=table,
        filters=parse_filters(request),
        page=page,
        limit=limit,
        order_by=order_by,
        order_direction=order_direction,
    )
    return services.queries.query_table(tenant, req)
