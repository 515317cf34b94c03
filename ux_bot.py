"""命令行入口：对指定网址运行一个或多个 UX 探索场景"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from ux_agent.api_client import run_api_checks
from ux_agent.config import AgentConfig
from ux_agent.core import run_in_browser
from ux_agent.reporter import print_api_results
from ux_agent.scenarios import ALL_SCENARIOS, DEFAULT_SCENARIO, get_scenarios


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ux-bot",
        description="AI 驱动的探索式 UX 测试",
    )
    parser.add_argument("--scenario", action="append", default=[], help="自然语言场景，可重复")
    parser.add_argument("--category", choices=sorted(ALL_SCENARIOS), help="运行场景库中的一个类别")
    parser.add_argument("--edge", action="store_true", help="与 --category 一起使用，运行边界场景")
    parser.add_argument("--url", help="被测应用地址（默认读取 UX_BASE_URL）")
    parser.add_argument("--max-steps", type=int)
    parser.add_argument("--timeout", type=int, help="整次运行上限（毫秒）")
    parser.add_argument("--headed", action="store_true", help="显示浏览器窗口")
    parser.add_argument("--no-screenshots", action="store_true", help="每步不截图")
    parser.add_argument("--stop-on-critical", action="store_true", help="发现 critical 问题立即停止")
    parser.add_argument("--out", help="报告输出目录")
    parser.add_argument("--api-checks", action="store_true", help="UI 场景之后再检查后端 API 契约")
    parser.add_argument("--api-url", help="后端 API 地址（默认读取 UX_API_URL）")
    parser.add_argument("--log-level", default="INFO")
    return parser


def resolve_scenarios(args: argparse.Namespace) -> List[str]:
    scenarios = list(args.scenario)
    if args.category:
        scenarios.extend(get_scenarios(args.category, edge=args.edge))
    if not scenarios and os.getenv("UX_SCENARIO"):
        scenarios.append(os.getenv("UX_SCENARIO"))
    return scenarios or [DEFAULT_SCENARIO]


def config_from_args(args: argparse.Namespace) -> AgentConfig:
    return AgentConfig.from_env(
        base_url=args.url,
        max_steps=args.max_steps,
        timeout=args.timeout,
        headless=False if args.headed else None,
        screenshot_on_each_step=False if args.no_screenshots else None,
        stop_on_critical_issue=True if args.stop_on_critical else None,
        output_dir=args.out,
        api_url=args.api_url,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = config_from_args(args)
    scenarios = resolve_scenarios(args)

    reports = asyncio.run(run_in_browser(scenarios, config))
    failed = any(r.status == "failed" for r in reports)

    if args.api_checks:
        suites = asyncio.run(run_api_checks(config))
        print_api_results(suites)
        failed = failed or any(s.failed > 0 for s in suites)

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
