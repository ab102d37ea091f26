from fastapi import APIRouter

from bizledger.api.v1.endpoints import accounts, clients, debt_payments, debts, invoices, payments, periods

api_router = APIRouter()

api_router.include_router(accounts.router, prefix="/accounts", tags=["accounts"])
api_router.include_router(clients.router, prefix="/clients", tags=["clients"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["invoices"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(debts.router, prefix="/debts", tags=["debts"])
api_router.include_router(debt_payments.router, prefix="/debt-payments", tags=["debt-payments"])
api_router.include_router(periods.router, prefix="/periods", tags=["periods"])
