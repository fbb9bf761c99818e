"""商品库存查询路由"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Path

from aurapay.core.dependencies import get_stock_service
from aurapay.schemas.payment_api import StockResponse
from aurapay.services.stock_service import StockService

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/products",
    tags=["库存"],
)


@router.get(
    "/{product_id}/stock",
    response_model=StockResponse,
    summary="查询商品库存",
    description="""查询指定商品的可用库存数量。

    **缓存策略：**
    - 首先查询Redis缓存
    - 缓存未命中则查询数据库
    - 查询结果缓存5分钟，支付回调扣减后立即失效
    """,
)
def get_stock(
    product_id: int = Path(
        ...,
        gt=0,
        description="商品ID",
        examples=[1]
    ),
    service: StockService = Depends(get_stock_service)
):
    try:
        stock = service.get_product_stock(product_id)
    except HTTPException:
        # 透传 HTTPException
        raise
    except Exception as e:
        logger.error(f"查询库存失败: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

    if stock is None:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    return {
        "success": True,
        "product_id": product_id,
        "available_stock": stock
    }
