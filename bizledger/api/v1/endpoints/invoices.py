from typing import List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, Query, status

from bizledger.api.deps import get_owner_id
from bizledger.db.mongo import get_db
from bizledger.models.invoice import InvoiceStatus, InvoiceType
from bizledger.schemas.invoice import InvoiceCreate, InvoiceResponse, InvoiceStatusUpdate, InvoiceUpdate
from bizledger.services.invoice_service import InvoiceService

router = APIRouter()


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    invoice_in: InvoiceCreate,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    invoice = await InvoiceService(db).create_invoice(owner_id, invoice_in)
    return InvoiceResponse.model_validate(invoice)


@router.get("", response_model=List[InvoiceResponse])
async def list_invoices(
    type: Optional[InvoiceType] = None,
    status: Optional[InvoiceStatus] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    invoices = await InvoiceService(db).list_invoices(
        owner_id,
        type=type.value if type else None,
        status=status.value if status else None,
        skip=skip,
        limit=limit,
    )
    return [InvoiceResponse.model_validate(invoice) for invoice in invoices]


@router.get("/overdue", response_model=List[InvoiceResponse])
async def list_overdue_invoices(owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    invoices = await InvoiceService(db).list_overdue(owner_id)
    return [InvoiceResponse.model_validate(invoice) for invoice in invoices]


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(invoice_id: str, owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    invoice = await InvoiceService(db).get_invoice(invoice_id, owner_id)
    return InvoiceResponse.model_validate(invoice)


@router.put("/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    invoice_id: str,
    invoice_in: InvoiceUpdate,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    invoice = await InvoiceService(db).update_invoice(invoice_id, owner_id, invoice_in)
    return InvoiceResponse.model_validate(invoice)


@router.patch("/{invoice_id}/status", response_model=InvoiceResponse)
async def update_invoice_status(
    invoice_id: str,
    status_in: InvoiceStatusUpdate,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    invoice = await InvoiceService(db).update_status(invoice_id, owner_id, status_in.status)
    return InvoiceResponse.model_validate(invoice)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(invoice_id: str, owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    await InvoiceService(db).delete_invoice(invoice_id, owner_id)
