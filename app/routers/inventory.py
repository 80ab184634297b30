from fastapi import APIRouter, Depends
from uuid import UUID
from app.core.dependencies import get_current_tenant_id, get_inventory_service
from app.models.inventory import PurchaseReceiptRequest, SaleRequest, StockOperationResult
from app.services.inventory_service import InventoryService

router = APIRouter()

@router.post("/sales", response_model=StockOperationResult)
async def deduct_sale_endpoint(
    payload: SaleRequest,
    tenant_id: UUID = Depends(get_current_tenant_id),
    service: InventoryService = Depends(get_inventory_service)
):
    """
    Deduct the ingredients consumed by a sale
    """
    return await service.deduct_stock_from_sale(tenant_id, payload.sale_id, payload.items)

@router.post("/purchases", response_model=StockOperationResult)
async def receive_purchase_endpoint(
    payload: PurchaseReceiptRequest,
    tenant_id: UUID = Depends(get_current_tenant_id),
    service: InventoryService = Depends(get_inventory_service)
):
    """
    Add received purchase quantities to stock
    """
    return await service.add_stock_from_purchase(tenant_id, payload.purchase_id, payload.items)
