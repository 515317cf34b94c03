import io
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from rich.console import Console

from ux_agent.config import AgentConfig
from ux_agent.models import AnalysisResult, UXIssue, WaitAction


class FakeLocator:
    def __init__(self, page: "FakePage", target: str):
        self.page = page
        self.target = target

    @property
    def first(self):
        return self

    async def click(self, timeout=None):
        self.page.record("click", self.target)

    async def fill(self, text, timeout=None):
        self.page.record("fill", self.target, text)

    async def hover(self, timeout=None):
        self.page.record("hover", self.target)

    async def select_option(self, value, timeout=None):
        self.page.record("select_option", self.target, value)

    async def clear(self, timeout=None):
        self.page.record("clear", self.target)


class FakeMouse:
    def __init__(self, page: "FakePage"):
        self.page = page

    async def click(self, x, y):
        self.page.record("mouse.click", x, y)

    async def wheel(self, dx, dy):
        self.page.record("mouse.wheel", dx, dy)


class FakeKeyboard:
    def __init__(self, page: "FakePage"):
        self.page = page

    async def type(self, text):
        self.page.record("keyboard.type", text)

    async def press(self, key):
        self.page.record("keyboard.press", key)


class FakePage:
    """只实现 Agent 用到的 Playwright Page 接口，记录每一次调用"""

    def __init__(self, url: str = "http://localhost:3000/", title: str = "Home"):
        self.url = url
        self._title = title
        self.dom: List[Dict[str, Any]] = [{"tag": "button", "text": "Dashboard", "visible": True}]
        self.text_lines: List[str] = ["button: Dashboard"]
        self.calls: List[tuple] = []
        self.handlers: Dict[str, list] = {}
        self.fail_on: Dict[str, Exception] = {}
        self.evaluate_error: Optional[Exception] = None
        self.mouse = FakeMouse(self)
        self.keyboard = FakeKeyboard(self)

    def record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail_on:
            raise self.fail_on[name]

    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls]

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event, payload):
        for handler in self.handlers.get(event, []):
            handler(payload)

    def locator(self, selector):
        return FakeLocator(self, selector)

    def get_by_text(self, text):
        return FakeLocator(self, f"text={text}")

    async def goto(self, url, **kwargs):
        self.record("goto", url)
        self.url = url

    async def title(self):
        return self._title

    async def evaluate(self, script, arg=None):
        if self.evaluate_error is not None:
            raise self.evaluate_error
        return self.dom if arg is not None else self.text_lines

    async def screenshot(self, **kwargs):
        self.record("screenshot")
        return b"\x89PNG-fake"

    async def wait_for_selector(self, selector, timeout=None):
        self.record("wait_for_selector", selector, timeout)

    async def wait_for_load_state(self, state, timeout=None):
        self.record("wait_for_load_state", state)

    async def wait_for_timeout(self, timeout):
        self.record("wait_for_timeout", timeout)


def console_message(kind: str, text: str):
    return SimpleNamespace(type=kind, text=text)


def failed_request(method: str, url: str, failure: str):
    return SimpleNamespace(method=method, url=url, failure=failure)


def page_error(message: str):
    return SimpleNamespace(message=message)


def make_analysis(action=None, progress=0, issues=None, page="Home") -> AnalysisResult:
    return AnalysisResult(
        current_page=page,
        current_state="Page loaded",
        available_actions=[],
        suggested_next_action=action,
        ux_issues=list(issues or []),
        progress=progress,
    )


def make_issue(issue_id: str, severity: str = "minor", category: str = "usability", **kwargs) -> UXIssue:
    return UXIssue(
        id=issue_id,
        severity=severity,
        category=category,
        title=kwargs.pop("title", f"Issue {issue_id}"),
        description=kwargs.pop("description", "something is off"),
        **kwargs,
    )


class ScriptedPlanner:
    """按顺序返回预设的分析结果；元素为异常时抛出"""

    def __init__(self, results):
        self.results = list(results)
        self.calls = []

    async def analyze(self, page_state, goal, previous_actions, screenshot_base64=None):
        self.calls.append(
            {
                "page_state": page_state,
                "goal": goal,
                "previous_actions": list(previous_actions),
                "screenshot": screenshot_base64,
            }
        )
        result = self.results.pop(0) if self.results else make_analysis(WaitAction(timeout=0))
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def page():
    return FakePage()


@pytest.fixture
def quiet_console():
    return Console(file=io.StringIO(), width=120)


@pytest.fixture
def config(tmp_path):
    return AgentConfig(
        max_steps=5,
        timeout=60000,
        screenshot_on_each_step=False,
        settle_delay=0,
        initial_delay=0,
        output_dir=str(tmp_path / "reports"),
    )
