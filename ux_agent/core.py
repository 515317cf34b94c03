"""UX 测试智能体核心类：感知 → 分析 → 执行 的闭环"""

import asyncio
import base64
import logging
import time
from datetime import datetime, timezone
from typing import List, Optional

from playwright.async_api import Page, async_playwright
from rich.console import Console

from .config import AgentConfig
from .controller import Controller
from .memory import AgentState
from .models import RunPhase, TestStep, UXReport, WaitAction
from .perception import Perception
from .planner import Planner
from .reporter import ReportGenerator, build_recommendations, build_summary, print_report_summary

logger = logging.getLogger(__name__)


STUCK_AFTER_STEPS = 5
STUCK_PROGRESS = 10


class UXTestAgent:
    """
    AI 驱动的探索式 UX 测试智能体。

    每一步：采集页面状态 → 调用推理服务（或兜底分析）→ 合并问题 → 执行建议动作。
    单步内的任何异常都会记录为失败步骤，不会中断整次运行；
    只有步数用尽、超时或遇到 critical 问题（可配置）才会停止。
    """

    def __init__(
        self,
        page: Page,
        config: Optional[AgentConfig] = None,
        planner: Optional[Planner] = None,
        reporter: Optional[ReportGenerator] = None,
        perception: Optional[Perception] = None,
        controller: Optional[Controller] = None,
        console: Optional[Console] = None,
    ):
        self.page = page
        self.config = config or AgentConfig()
        self.perception = perception or Perception(page)
        self.controller = controller or Controller(
            page,
            base_url=self.config.base_url,
            action_timeout=self.config.action_timeout,
            navigation_timeout=self.config.navigation_timeout,
        )
        self.planner = planner or Planner.from_config(self.config)
        self.reporter = reporter or ReportGenerator(self.config.output_dir)
        self.console = console

    async def run_scenario(self, scenario: str) -> UXReport:
        """执行一个场景，返回（并写出）报告"""
        started_at = datetime.now(timezone.utc)
        started = time.monotonic()
        state = AgentState(scenario=scenario, goal=scenario, max_steps=self.config.max_steps)
        steps: List[TestStep] = []

        logger.info(f"开始场景: \"{scenario}\"（最多 {self.config.max_steps} 步）")

        try:
            await self._open_start_page()
            state.start()
        except Exception as e:
            logger.error(f"❌ 无法打开 {self.config.base_url}: {e}")
            state.fail(f"Failed to open {self.config.base_url}: {e}")

        while state.running:
            if (time.monotonic() - started) * 1000 >= self.config.timeout:
                logger.warning(f"⚠ 超过运行时间上限 {self.config.timeout}ms，停止探索")
                state.exhaust("exceeded run timeout")
                break

            step_number = state.next_step()
            step_started = time.monotonic()
            logger.info(f"{'─' * 40}")
            logger.info(f"第 {step_number}/{self.config.max_steps} 步")

            try:
                step = await self._run_step(state, step_number, step_started)
            except Exception as e:
                logger.error(f"❌ 第 {step_number} 步出错: {e}")
                step = TestStep(
                    step_number=step_number,
                    action=WaitAction(timeout=0, description="Error occurred"),
                    result="failure",
                    duration=_elapsed_ms(step_started),
                    notes=str(e) or type(e).__name__,
                )
            steps.append(step)

            if state.running and state.current_step >= self.config.max_steps:
                logger.info("已达到最大步数")
                state.exhaust("reached maximum step limit")

        report = self._build_report(state, steps, started_at, started)

        report_path = self.reporter.generate_report(report)
        logger.info(f"报告已保存: {report_path}")
        print_report_summary(report, self.console)

        return report

    async def run_scenarios(self, scenarios: List[str]) -> List[UXReport]:
        """依次执行多个场景，场景之间重置页面"""
        reports = []
        for scenario in scenarios:
            try:
                reports.append(await self.run_scenario(scenario))
            except OSError:
                raise
            except Exception as e:
                logger.error(f"❌ 场景 \"{scenario}\" 执行失败: {e}")
                reports.append(_failed_report(scenario, str(e) or type(e).__name__))

            try:
                await self.page.goto("about:blank")
            except Exception as e:
                logger.warning(f"⚠ 重置页面失败: {e}")
            await asyncio.sleep(self.config.settle_delay / 1000)
        return reports

    async def _open_start_page(self):
        await self.page.goto(
            self.config.base_url,
            wait_until="domcontentloaded",
            timeout=self.config.navigation_timeout,
        )
        await asyncio.sleep(self.config.initial_delay / 1000)

    async def _run_step(self, state: AgentState, step_number: int, step_started: float) -> TestStep:
        # 1. 感知
        state.page_state = await self.perception.capture()

        screenshot_base64 = None
        if self.config.screenshot_on_each_step:
            screenshot = await self.perception.take_screenshot()
            screenshot_base64 = _to_base64(screenshot)
            state.page_state.screenshot_base64 = screenshot_base64
        screenshot_uri = f"data:image/png;base64,{screenshot_base64}" if screenshot_base64 else None

        # 2. 分析
        analysis = await self.planner.analyze(
            state.page_state,
            state.goal,
            list(state.previous_actions),
            screenshot_base64,
        )
        action = analysis.suggested_next_action
        logger.info(f"当前页面: {analysis.current_page}")
        logger.info(f"进度: {analysis.progress:g}%")
        state.record_exchange(
            f"[{state.page_state.url}] {state.goal}",
            f"{analysis.current_page} | progress={analysis.progress:g} | "
            f"next={action.describe() if action else 'none'}",
        )

        # 3. 合并问题（先出现的保留）
        for issue in state.merge_issues(analysis.ux_issues):
            logger.info(f"发现问题: [{issue.severity}] {issue.title}")

        # 4. critical 问题立即停止，本步不执行动作
        if self.config.stop_on_critical_issue:
            critical = next((i for i in analysis.ux_issues if i.severity == "critical"), None)
            if critical:
                logger.warning(f"⚠ 遇到 critical 问题，停止: {critical.title}")
                state.fail(f"Critical issue: {critical.title}")
                return TestStep(
                    step_number=step_number,
                    action=action or WaitAction(timeout=0, description="No action suggested"),
                    result="warning",
                    duration=_elapsed_ms(step_started),
                    screenshot=screenshot_uri,
                    notes=f"Not executed: stopped on critical issue \"{critical.title}\"",
                )

        # 5. 执行
        if action is None:
            logger.warning("⚠ 没有建议的动作")
            step = TestStep(
                step_number=step_number,
                action=WaitAction(timeout=0, description="No action suggested"),
                result="warning",
                duration=_elapsed_ms(step_started),
                screenshot=screenshot_uri,
                notes="No action suggested",
            )
        else:
            logger.info(f"动作: {action.describe()}")
            outcome = await self.controller.execute(action)
            if outcome.success:
                logger.info("✓ 动作执行成功")
            else:
                logger.warning(f"❌ 动作执行失败: {outcome.error}")
            step = TestStep(
                step_number=step_number,
                action=action,
                result="success" if outcome.success else "failure",
                duration=_elapsed_ms(step_started),
                screenshot=screenshot_uri,
                notes=outcome.error,
            )
            state.record_action(action)
            await asyncio.sleep(self.config.settle_delay / 1000)

        # 6. 判断是否完成
        if analysis.progress >= 100:
            logger.info("✓✓✓ 目标似乎已达成")
            state.complete()
        elif step_number >= STUCK_AFTER_STEPS and analysis.progress < STUCK_PROGRESS:
            logger.warning(f"⚠ 进度停滞（{analysis.progress:g}%），继续探索。最近动作:\n{state.format_history()}")

        return step

    def _build_report(
        self, state: AgentState, steps: List[TestStep], started_at: datetime, started: float
    ) -> UXReport:
        return UXReport(
            scenario=state.scenario,
            start_time=started_at,
            end_time=datetime.now(timezone.utc),
            duration=_elapsed_ms(started),
            status=determine_status(state, steps),
            steps=steps,
            issues=list(state.issues),
            summary=build_summary(
                steps_taken=state.current_step,
                completed=state.phase is RunPhase.COMPLETED,
                exhausted=state.phase is RunPhase.EXHAUSTED,
                issues=state.issues,
                steps=steps,
                stop_reason=state.stop_reason,
            ),
            recommendations=build_recommendations(state.issues),
        )


def determine_status(state: AgentState, steps: List[TestStep]) -> str:
    if state.error or any(s.result == "failure" for s in steps):
        return "failed"
    if state.phase is RunPhase.COMPLETED and not state.has_blocking_issue():
        return "passed"
    return "partial"


def create_ux_agent(page: Page, config: Optional[AgentConfig] = None, **kwargs) -> UXTestAgent:
    """使用给定（或默认）配置创建 Agent"""
    return UXTestAgent(page, config=config, **kwargs)


async def run_in_browser(scenarios: List[str], config: Optional[AgentConfig] = None) -> List[UXReport]:
    """启动 Chromium，依次运行场景后关闭浏览器"""
    config = config or AgentConfig.from_env()
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=config.headless)
        try:
            page = await browser.new_page()
            agent = create_ux_agent(page, config)
            return await agent.run_scenarios(scenarios)
        finally:
            await browser.close()


def _failed_report(scenario: str, error: str) -> UXReport:
    now = datetime.now(timezone.utc)
    return UXReport(
        scenario=scenario,
        start_time=now,
        end_time=now,
        duration=0,
        status="failed",
        steps=[],
        issues=[],
        summary=f"Scenario aborted: {error}",
        recommendations=[],
    )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")
