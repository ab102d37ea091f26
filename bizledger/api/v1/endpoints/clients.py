from typing import List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, Query, status

from bizledger.api.deps import get_owner_id
from bizledger.db.mongo import get_db
from bizledger.models.client import ClientStatus, ClientType
from bizledger.schemas.client import ClientCreate, ClientResponse, ClientUpdate
from bizledger.services.client_service import ClientService

router = APIRouter()


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    client_in: ClientCreate,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    client = await ClientService(db).create_client(owner_id, client_in)
    return ClientResponse.model_validate(client)


@router.get("", response_model=List[ClientResponse])
async def list_clients(
    status: Optional[ClientStatus] = None,
    type: Optional[ClientType] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    clients = await ClientService(db).list_clients(
        owner_id,
        status=status.value if status else None,
        type=type.value if type else None,
        skip=skip,
        limit=limit,
    )
    return [ClientResponse.model_validate(client) for client in clients]


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(client_id: str, owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    client = await ClientService(db).get_client(client_id, owner_id)
    return ClientResponse.model_validate(client)


@router.put("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: str,
    client_in: ClientUpdate,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    client = await ClientService(db).update_client(client_id, owner_id, client_in)
    return ClientResponse.model_validate(client)


@router.post("/{client_id}/reconcile", response_model=ClientResponse)
async def reconcile_client_totals(client_id: str, owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    """Recompute the client's debt aggregates from its debts."""
    client = await ClientService(db).reconcile_totals(client_id, owner_id)
    return ClientResponse.model_validate(client)
