"""执行模块：把一个抽象 Action 翻译成具体的浏览器操作"""

import logging
from typing import Optional
from urllib.parse import urljoin, urlparse

from playwright.async_api import Page

from .models import (
    Action,
    ActionOutcome,
    ClearAction,
    ClickAction,
    HoverAction,
    NavigateAction,
    PressKeyAction,
    ScrollAction,
    SelectAction,
    TypeAction,
    WaitAction,
)

logger = logging.getLogger(__name__)


DEFAULT_SCROLL_AMOUNT = 300
DEFAULT_WAIT_MS = 5000


class ActionValidationError(ValueError):
    """动作缺少必填字段"""


class Controller:
    """
    执行模块：每次执行一个动作，返回 ActionOutcome。

    缺少必填字段、未知动作类型和 Playwright 抛出的异常都转成失败结果，
    不向上抛出；这里也不做重试。
    """

    def __init__(
        self,
        page: Page,
        base_url: Optional[str] = None,
        action_timeout: int = 5000,
        navigation_timeout: int = 30000,
    ):
        self.page = page
        self.base_url = base_url
        self.action_timeout = action_timeout
        self.navigation_timeout = navigation_timeout

        self._handlers = {
            "click": self._click,
            "type": self._type,
            "scroll": self._scroll,
            "wait": self._wait,
            "navigate": self._navigate,
            "hover": self._hover,
            "press_key": self._press_key,
            "select": self._select,
            "clear": self._clear,
            "screenshot": self._screenshot,
        }

    async def execute(self, action: Action) -> ActionOutcome:
        """执行动作，返回是否成功以及错误信息"""
        kind = getattr(action, "type", None)
        handler = self._handlers.get(kind)
        if handler is None:
            logger.warning(f"❌ 未知 action: {kind}")
            return ActionOutcome(success=False, error=f"Unknown action type: {kind}")

        try:
            await handler(action)
        except ActionValidationError as e:
            logger.warning(f"❌ {kind} 参数不完整: {e}")
            return ActionOutcome(success=False, error=str(e))
        except Exception as e:
            logger.warning(f"❌ {kind} 执行失败: {e}")
            return ActionOutcome(success=False, error=str(e) or type(e).__name__)

        logger.debug(f"✓ {action.describe()}")
        return ActionOutcome(success=True)

    async def _click(self, action: ClickAction):
        if action.selector:
            await self.page.locator(action.selector).first.click(timeout=self.action_timeout)
        elif action.text:
            await self.page.get_by_text(action.text).first.click(timeout=self.action_timeout)
        elif action.position:
            await self.page.mouse.click(action.position["x"], action.position["y"])
        else:
            raise ActionValidationError("Click action requires selector, text, or position")

    async def _type(self, action: TypeAction):
        if not action.text:
            raise ActionValidationError("Type action requires text")
        if action.selector:
            await self.page.locator(action.selector).first.fill(action.text, timeout=self.action_timeout)
        else:
            # 没有选择器时输入到当前焦点元素
            await self.page.keyboard.type(action.text)

    async def _scroll(self, action: ScrollAction):
        amount = action.amount or DEFAULT_SCROLL_AMOUNT
        deltas = {
            "up": (0, -amount),
            "down": (0, amount),
            "left": (-amount, 0),
            "right": (amount, 0),
        }
        if action.direction not in deltas:
            raise ActionValidationError(f"Scroll direction must be one of {', '.join(deltas)}")
        dx, dy = deltas[action.direction]
        await self.page.mouse.wheel(dx, dy)

    async def _wait(self, action: WaitAction):
        timeout = action.timeout if action.timeout is not None else DEFAULT_WAIT_MS
        if action.selector:
            await self.page.wait_for_selector(action.selector, timeout=timeout)
        elif action.condition in ("networkidle", "domcontentloaded", "load"):
            await self.page.wait_for_load_state(action.condition, timeout=timeout)
        else:
            await self.page.wait_for_timeout(timeout)

    async def _navigate(self, action: NavigateAction):
        if not action.url:
            raise ActionValidationError("Navigate action requires a URL")
        url = self._resolve_url(action.url)
        await self.page.goto(url, timeout=self.navigation_timeout)
        await self.page.wait_for_load_state("networkidle", timeout=self.navigation_timeout)

    async def _hover(self, action: HoverAction):
        if not action.selector:
            raise ActionValidationError("Hover action requires a selector")
        await self.page.locator(action.selector).first.hover(timeout=self.action_timeout)

    async def _press_key(self, action: PressKeyAction):
        if not action.key:
            raise ActionValidationError("Press key action requires a key")
        await self.page.keyboard.press(action.key)

    async def _select(self, action: SelectAction):
        if not action.selector:
            raise ActionValidationError("Select action requires a selector")
        if action.value is None or action.value == "":
            raise ActionValidationError("Select action requires a value")
        await self.page.locator(action.selector).first.select_option(action.value, timeout=self.action_timeout)

    async def _clear(self, action: ClearAction):
        if not action.selector:
            raise ActionValidationError("Clear action requires a selector")
        await self.page.locator(action.selector).first.clear(timeout=self.action_timeout)

    async def _screenshot(self, action):
        # 截图由 Agent 在每一步统一采集，这里无需操作
        return None

    def _resolve_url(self, url: str) -> str:
        if urlparse(url).scheme or not self.base_url:
            return url
        return urljoin(self.base_url.rstrip("/") + "/", url.lstrip("/"))
