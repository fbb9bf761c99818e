"""超时待支付订单清理本地执行脚本"""

import argparse
import logging
from aurapay.core.config import settings
from aurapay.db.session import SessionLocal
from aurapay.services.order_store import OrderStore
from aurapay.services.order_maintenance import OrderMaintenanceService

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

def run_expire(max_age_minutes: int, batch_size: int = 500, dry_run: bool = False):
    """执行超时订单清理

    Args:
        max_age_minutes: 超时分钟数
        batch_size: 批处理大小
        dry_run: 是否为试运行模式（只统计不修改）
    """
    db = SessionLocal()
    try:
        service = OrderMaintenanceService(OrderStore(db))
        count = service.expire_stale_pending_orders(max_age_minutes, batch_size, dry_run=dry_run)
        if dry_run:
            logger.info(f"试运行模式：发现 {count} 条超时待支付订单")
        else:
            logger.info(f"清理完成：取消 {count} 条超时待支付订单")
        return count
    except Exception as e:
        logger.error(f"清理执行失败: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()

def main(argv=None):
    """主函数"""
    parser = argparse.ArgumentParser(description='超时待支付订单清理工具')
    parser.add_argument(
        '--max-age-minutes',
        type=int,
        default=settings.PENDING_ORDER_MAX_AGE_MINUTES,
        help=f'超时分钟数 (默认: {settings.PENDING_ORDER_MAX_AGE_MINUTES})'
    )
    parser.add_argument(
        '--batch-size',
        type=int,
        default=500,
        help='批处理大小 (默认: 500)'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='试运行模式，只统计不执行清理'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='详细输出模式'
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        result = run_expire(args.max_age_minutes, args.batch_size, args.dry_run)
        if args.dry_run:
            print(f"📊 试运行结果：发现 {result} 条超时订单")
        else:
            print(f"✅ 清理完成：取消了 {result} 条订单")
    except Exception as e:
        print(f"❌ 执行失败: {str(e)}")
        return 1

    return 0

if __name__ == "__main__":
    exit(main())
