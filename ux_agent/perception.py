"""感知模块：采集页面状态（DOM 快照 + 错误缓冲区）"""

import logging
from typing import List

from playwright.async_api import Page

from .models import DOMElement, PageState

logger = logging.getLogger(__name__)


# 仅对这些容器标签向下展开子节点
CONTAINER_TAGS = ["div", "main", "section", "article", "form", "nav", "ul", "ol"]

SERIALIZE_DOM_JS = """
({ maxDepth, maxChildren, containerTags }) => {
    const serialize = (el, depth) => {
        if (depth > maxDepth) return null;

        const rect = el.getBoundingClientRect();
        const style = window.getComputedStyle(el);
        const visible =
            style.display !== 'none' &&
            style.visibility !== 'hidden' &&
            rect.width > 0 &&
            rect.height > 0;

        // 根节点之外的不可见元素直接剪掉
        if (!visible && depth > 0) return null;

        const node = { tag: el.tagName.toLowerCase(), visible };
        if (el.id) node.id = el.id;
        if (el.className && typeof el.className === 'string') {
            node.classes = el.className.split(' ').filter(Boolean).slice(0, 5);
        }

        const text = (el.textContent || '').trim().slice(0, 100);
        if (text && el.children.length === 0) node.text = text;

        if (el instanceof HTMLAnchorElement) {
            node.href = el.href;
        }
        if (el instanceof HTMLInputElement) {
            node.type = el.type;
            node.placeholder = el.placeholder;
            node.value = el.value;
            node.disabled = el.disabled;
        }
        if (el instanceof HTMLButtonElement) {
            node.disabled = el.disabled;
        }
        if (el instanceof HTMLTextAreaElement) {
            node.placeholder = el.placeholder;
            node.value = (el.value || '').slice(0, 100);
        }

        if (visible) {
            node.rect = {
                x: Math.round(rect.x),
                y: Math.round(rect.y),
                width: Math.round(rect.width),
                height: Math.round(rect.height),
            };
        }

        if (containerTags.includes(node.tag) && el.children.length > 0) {
            const children = [];
            for (const child of el.children) {
                const serialized = serialize(child, depth + 1);
                if (serialized) children.push(serialized);
            }
            if (children.length > 0) node.children = children.slice(0, maxChildren);
        }

        return node;
    };

    const root = document.querySelector('main') || document.body;
    return [serialize(root, 0)];
}
"""

INTERACTIVE_TEXT_JS = """
() => {
    const lines = [];
    const shown = (el) => el.offsetParent !== null;

    document.querySelectorAll('button').forEach((el) => {
        if (!shown(el)) return;
        const text = (el.textContent || '').trim().slice(0, 50);
        lines.push(`- Button: "${text}"${el.disabled ? ' (disabled)' : ''}`);
    });
    document.querySelectorAll('a').forEach((el) => {
        if (!shown(el)) return;
        const text = (el.textContent || '').trim().slice(0, 50);
        lines.push(`- Link: "${text}" -> ${(el.href || '').slice(0, 50)}`);
    });
    document.querySelectorAll('input, textarea').forEach((el) => {
        if (!shown(el)) return;
        const value = (el.value || '').slice(0, 30);
        lines.push(`- Input (${el.type || 'text'}): placeholder="${el.placeholder || ''}" value="${value}"`);
    });

    return lines.slice(0, 30);
}
"""


class Perception:
    """
    感知模块：绑定到一个 Page，拥有该页面的三个错误缓冲区。

    - JS 未捕获异常（pageerror）
    - console 中的 error / warning
    - 失败的网络请求（requestfailed）

    capture() 读取后清空缓冲区，保证每个事件只出现在一个 PageState 中。
    """

    def __init__(self, page: Page, max_depth: int = 3, max_children: int = 10):
        self.page = page
        self.max_depth = max_depth
        self.max_children = max_children
        self.js_errors: List[str] = []
        self.console_messages: List[str] = []
        self.network_errors: List[str] = []
        self._setup_listeners()

    def _setup_listeners(self):
        self.page.on("console", self._on_console)
        self.page.on("pageerror", self._on_page_error)
        self.page.on("requestfailed", self._on_request_failed)

    def _on_console(self, msg):
        if msg.type == "error":
            self.console_messages.append(f"[ERROR] {msg.text}")
        elif msg.type == "warning":
            self.console_messages.append(f"[WARN] {msg.text}")

    def _on_page_error(self, error):
        self.js_errors.append(getattr(error, "message", None) or str(error))

    def _on_request_failed(self, request):
        self.network_errors.append(f"{request.method} {request.url} - {request.failure}")

    def drain(self):
        """取出并清空三个缓冲区"""
        errors, console, network = self.js_errors, self.console_messages, self.network_errors
        self.js_errors, self.console_messages, self.network_errors = [], [], []
        return errors, console, network

    async def capture(self) -> PageState:
        """
        采集当前页面状态。

        DOM 序列化失败时异常直接向上抛出，此时缓冲区保持不变，
        不会返回残缺的 PageState。
        """
        url = self.page.url
        title = await self.page.title()
        raw_dom = await self.page.evaluate(
            SERIALIZE_DOM_JS,
            {
                "maxDepth": self.max_depth,
                "maxChildren": self.max_children,
                "containerTags": CONTAINER_TAGS,
            },
        )
        dom = [DOMElement.from_dict(node) for node in raw_dom or [] if node]

        errors, console, network = self.drain()
        if errors or console or network:
            logger.debug(
                f"采集到 {len(errors)} 个 JS 错误, {len(console)} 条 console, {len(network)} 个网络错误"
            )

        return PageState(
            url=url,
            title=title,
            dom=dom,
            errors=errors,
            console_messages=console,
            network_errors=network,
        )

    async def take_screenshot(self) -> bytes:
        """截取当前视口（PNG）"""
        return await self.page.screenshot(type="png", full_page=False)

    async def get_page_text(self) -> str:
        """生成精简的页面文本摘要（会消费错误缓冲区）"""
        state = await self.capture()
        lines = await self.page.evaluate(INTERACTIVE_TEXT_JS)

        parts = [f"URL: {state.url}", f"Title: {state.title}", "", "Interactive Elements:"]
        parts.extend(lines or [])

        if state.errors:
            parts.extend(["", "Errors:"])
            parts.extend(f"- {e}" for e in state.errors)

        return "\n".join(parts)
