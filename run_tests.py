#!/usr/bin/env python3
"""
单元测试运行脚本
提供多种测试运行选项
"""

import subprocess
import sys
import argparse


SUITES = {
    "gateway": "tests/test_payment_gateway.py",
    "intent": "tests/test_order_intent.py",
    "verifier": "tests/test_payment_verifier.py",
    "stock": "tests/test_stock_service.py",
    "router": "tests/test_payment_router.py tests/test_order_router.py",
    "models": "tests/test_models.py",
    "deps": "tests/test_dependencies.py",
    "tasks": "tests/test_celery_tasks.py tests/test_order_maintenance.py",
    "e2e": "tests/test_end_to_end.py",
}


def run_tests(test_pattern=None, verbose=False, coverage=False):
    """运行单元测试

    Args:
        test_pattern: 测试文件或函数模式 (如 tests/test_models.py 或 -k 表达式)
        verbose: 是否显示详细输出
        coverage: 是否生成覆盖率报告
    """
    cmd = [sys.executable, "-m", "pytest"]

    # 如果指定了测试模式
    if test_pattern:
        cmd.extend(test_pattern.split())
    else:
        cmd.append("tests/")

    cmd.extend([
        "-v" if verbose else "-q",
        "--tb=short",  # 简洁的 traceback
        "--disable-warnings",  # 禁用警告
    ])

    # 覆盖率选项
    if coverage:
        cmd.extend([
            "--cov=aurapay",
            "--cov=tasks",
            "--cov-report=html:htmlcov",
            "--cov-report=term-missing"
        ])

    print(f"🚀 运行命令: {' '.join(cmd)}")
    print("=" * 50)

    try:
        result = subprocess.run(cmd, check=True)
        print("\n✅ 测试运行完成")
        return result.returncode == 0
    except subprocess.CalledProcessError as e:
        print(f"\n❌ 测试失败，退出码: {e.returncode}")
        return False


def main():
    parser = argparse.ArgumentParser(description="订单支付对账服务单元测试运行器")
    parser.add_argument(
        "--suite",
        choices=sorted(SUITES),
        help="只运行指定测试集"
    )
    parser.add_argument(
        "--coverage",
        action="store_true",
        help="生成覆盖率报告"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="详细输出模式"
    )
    parser.add_argument(
        "test_name",
        nargs="?",
        help="特定测试函数名 (如 test_redelivered_success_is_idempotent)"
    )

    args = parser.parse_args()

    # 如果提供了特定测试名
    if args.test_name:
        if "::" in args.test_name:
            pattern = f"tests/{args.test_name}"
        else:
            pattern = f"tests/ -k {args.test_name}"
        print(f"🔍 运行测试: {args.test_name}")
        return 0 if run_tests(pattern, verbose=True) else 1

    pattern = SUITES[args.suite] if args.suite else None
    success = run_tests(pattern, args.verbose, args.coverage)

    if args.coverage and success:
        print("\n📊 覆盖率报告已生成到 htmlcov/ 目录")
        print("📁 查看报告: open htmlcov/index.html")

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
