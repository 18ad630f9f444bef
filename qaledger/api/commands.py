from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, constr
from typing import Any, Dict, List
from qaledger.core.errors import HTTP_STATUS
from qaledger.models.records import decode_payload
from qaledger.services.registry import StoreRegistry, get_registry

router = APIRouter()

class CommandRequest(BaseModel):
    function: constr(min_length=1)
    args: List[str] = []

class CommandResult(BaseModel):
    status: int
    payload: Any = None

class CommandInfo(BaseModel):
    function: str
    params: List[str]

@router.get("", response_model=Dict[str, List[CommandInfo]])
def list_stores(registry: StoreRegistry = Depends(get_registry)):
    return registry.describe()

@router.post("/{store_name}/invoke", response_model=CommandResult)
def invoke(store_name: str, payload: CommandRequest, registry: StoreRegistry = Depends(get_registry)):
    if not registry.has_store(store_name):
        raise HTTPException(404, f"Unknown store {store_name!r}")
    response = registry.invoke(store_name, payload.function, payload.args)
    if not response.ok:
        raise HTTPException(
            status_code=HTTP_STATUS.get(response.kind, 500),
            detail={"kind": response.kind, "message": response.message},
        )
    return CommandResult(status=response.status, payload=decode_payload(response.payload))
