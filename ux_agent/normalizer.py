"""
响应归一化：把推理服务返回的不可信文本变成强类型的 AnalysisResult。

- extract_json_object: 从回复中取出第一个顶层 JSON 对象，容忍前后的说明文字
- normalize_result / normalize_action / normalize_issues: 逐字段校验并给默认值
- fallback_analysis: 服务不可用或输出无法使用时的确定性兜底决策

本模块中的函数都不会抛出异常。
"""

import json
import math
from typing import Any, Dict, List, Optional

from .models import (
    CATEGORIES,
    SCROLL_DIRECTIONS,
    SEVERITIES,
    Action,
    AnalysisResult,
    ClearAction,
    ClickAction,
    DOMElement,
    HoverAction,
    NavigateAction,
    PageState,
    PressKeyAction,
    ScreenshotAction,
    ScrollAction,
    SelectAction,
    TypeAction,
    UXIssue,
    WaitAction,
)


DEFAULT_SEVERITY = "minor"
DEFAULT_CATEGORY = "usability"
DEFAULT_WAIT_TIMEOUT = 1000
MAX_WAIT_TIMEOUT = 30000

FALLBACK_PROJECT_TEXT = "create a project called TestStore"

_decoder = json.JSONDecoder()


# ──────────────────────────────────────────────
# 解析
# ──────────────────────────────────────────────

def extract_json_object(text: Any) -> Optional[Dict[str, Any]]:
    """返回回复中第一个顶层 JSON 对象；找不到或解析失败时返回 None"""
    if not isinstance(text, str):
        return None
    start = text.find("{")
    if start == -1:
        return None
    try:
        parsed, _ = _decoder.raw_decode(text, start)
    except (ValueError, RecursionError):
        return None
    return parsed if isinstance(parsed, dict) else None


# ──────────────────────────────────────────────
# 基础类型转换
# ──────────────────────────────────────────────

def _as_str(value: Any, default: Optional[str] = None) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return default
    if isinstance(value, bool):
        return str(value).lower()
    text = str(value)
    return text if text.strip() else default


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        # 超出 float 范围的整数会抛 OverflowError
        number = float(value.strip().rstrip("%")) if isinstance(value, str) else float(value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _as_position(value: Any) -> Optional[Dict[str, float]]:
    if not isinstance(value, dict):
        return None
    x, y = _as_number(value.get("x")), _as_number(value.get("y"))
    if x is None or y is None:
        return None
    return {"x": x, "y": y}


# ──────────────────────────────────────────────
# 字段归一化
# ──────────────────────────────────────────────

def normalize_severity(value: Any) -> str:
    text = _as_str(value, "")
    return text if text in SEVERITIES else DEFAULT_SEVERITY


def normalize_category(value: Any) -> str:
    text = _as_str(value, "")
    return text if text in CATEGORIES else DEFAULT_CATEGORY


def normalize_action(value: Any) -> Optional[Action]:
    """按声明的类型重新校验动作；未知类型退化为短暂的 wait"""
    if not isinstance(value, dict):
        return None

    kind = _as_str(value.get("type"), "wait").strip().lower()
    description = _as_str(value.get("description"))
    selector = _as_str(value.get("selector"))

    if kind == "click":
        return ClickAction(
            selector=selector,
            text=_as_str(value.get("text")),
            position=_as_position(value.get("position")),
            description=description,
        )
    if kind == "type":
        return TypeAction(text=_as_str(value.get("text"), ""), selector=selector, description=description)
    if kind == "scroll":
        direction = _as_str(value.get("direction"), "down")
        amount = _as_number(value.get("amount"))
        return ScrollAction(
            direction=direction if direction in SCROLL_DIRECTIONS else "down",
            amount=int(amount) if amount is not None and amount > 0 else None,
            description=description,
        )
    if kind == "wait":
        timeout = _as_number(value.get("timeout"))
        return WaitAction(
            timeout=int(_clamp(timeout, 0, MAX_WAIT_TIMEOUT)) if timeout is not None else DEFAULT_WAIT_TIMEOUT,
            condition=_as_str(value.get("condition")),
            selector=selector,
            description=description,
        )
    if kind == "navigate":
        return NavigateAction(url=_as_str(value.get("url"), "/"), description=description)
    if kind == "hover":
        return HoverAction(selector=selector or "", description=description)
    if kind == "press_key":
        return PressKeyAction(key=_as_str(value.get("key"), ""), description=description)
    if kind == "select":
        return SelectAction(
            selector=selector or "",
            value=_as_str(value.get("value"), ""),
            description=description,
        )
    if kind == "clear":
        return ClearAction(selector=selector or "", description=description)
    if kind == "screenshot":
        return ScreenshotAction(description=description)

    return WaitAction(timeout=DEFAULT_WAIT_TIMEOUT, description="Default wait action")


def normalize_issues(value: Any) -> List[UXIssue]:
    if not isinstance(value, list):
        return []

    issues = []
    for raw in (i for i in value if isinstance(i, dict)):
        steps = raw.get("reproductionSteps")
        issues.append(
            UXIssue(
                id=_as_str(raw.get("id"), f"issue-{len(issues)}"),
                severity=normalize_severity(raw.get("severity")),
                category=normalize_category(raw.get("category")),
                title=_as_str(raw.get("title"), "Unknown Issue"),
                description=_as_str(raw.get("description"), ""),
                location=_as_str(raw.get("location")),
                suggestion=_as_str(raw.get("suggestion")),
                reproduction_steps=(
                    [s for s in (_as_str(x) for x in steps) if s] if isinstance(steps, list) else None
                ),
            )
        )
    return issues


def normalize_result(parsed: Dict[str, Any]) -> AnalysisResult:
    """把解析出的字典转成 AnalysisResult，每个字段独立容错"""
    actions = parsed.get("availableActions")
    progress = _as_number(parsed.get("progress"))
    return AnalysisResult(
        current_page=_as_str(parsed.get("currentPage"), "Unknown"),
        current_state=_as_str(parsed.get("currentState"), "Unknown"),
        available_actions=(
            [a for a in (_as_str(x) for x in actions) if a] if isinstance(actions, list) else []
        ),
        suggested_next_action=normalize_action(parsed.get("suggestedNextAction")),
        ux_issues=normalize_issues(parsed.get("uxIssues")),
        progress=_clamp(progress, 0, 100) if progress is not None else 0,
    )


# ──────────────────────────────────────────────
# 兜底分析
# ──────────────────────────────────────────────

def fallback_analysis(page_state: PageState, goal: str) -> AnalysisResult:
    """
    不依赖推理服务的确定性决策：
    只根据本地错误缓冲区产出 functionality 问题，再按目标关键词挑选一个固定动作。
    """
    issues = []

    if page_state.errors:
        issues.append(
            UXIssue(
                id="js-errors",
                severity="major",
                category="functionality",
                title="JavaScript Errors Detected",
                description=(
                    f"Found {len(page_state.errors)} JavaScript errors: "
                    f"{', '.join(page_state.errors[:3])}"
                ),
                location=page_state.url,
                suggestion="Fix JavaScript errors to improve reliability",
            )
        )

    if page_state.network_errors:
        issues.append(
            UXIssue(
                id="network-errors",
                severity="major",
                category="functionality",
                title="Network Errors Detected",
                description=f"Found {len(page_state.network_errors)} failed network requests",
                location=page_state.url,
                suggestion="Ensure API endpoints are working correctly",
            )
        )

    console_errors = [m for m in page_state.console_messages if m.startswith("[ERROR]")]
    if console_errors:
        issues.append(
            UXIssue(
                id="console-errors",
                severity="minor",
                category="functionality",
                title="Console Errors Logged",
                description=f"Found {len(console_errors)} console errors: {', '.join(console_errors[:3])}",
                location=page_state.url,
                suggestion="Investigate errors logged to the browser console",
            )
        )

    goal_lower = (goal or "").lower()
    if "create" in goal_lower and "project" in goal_lower:
        action = TypeAction(
            selector="textarea",
            text=FALLBACK_PROJECT_TEXT,
            description="Type project creation request in chat",
        )
    elif "navigate" in goal_lower or "go to" in goal_lower:
        action = ClickAction(text="Dashboard", description="Navigate to dashboard")
    else:
        action = WaitAction(timeout=2000, description="Wait for page to stabilize")

    return AnalysisResult(
        current_page=page_state.title or page_state.url,
        current_state="Page loaded",
        available_actions=["click buttons", "type in inputs", "scroll page", "navigate"],
        suggested_next_action=action,
        ux_issues=issues,
        progress=0,
    )


# ──────────────────────────────────────────────
# 请求构造
# ──────────────────────────────────────────────

def dom_to_text(dom: List[DOMElement], indent: int = 0) -> str:
    """把 DOM 树渲染成缩进文本"""
    lines = []
    prefix = "  " * indent

    for el in dom:
        if not el.visible:
            continue

        line = f"{prefix}<{el.tag}"
        if el.id:
            line += f' id="{el.id}"'
        if el.classes:
            line += f' class="{" ".join(el.classes)}"'
        if el.type:
            line += f' type="{el.type}"'
        if el.placeholder:
            line += f' placeholder="{el.placeholder}"'
        if el.href:
            line += f' href="{el.href}"'
        if el.disabled:
            line += " disabled"
        line += ">"
        if el.text:
            line += f" {el.text}"
        lines.append(line)

        if el.children:
            child_text = dom_to_text(el.children, indent + 1)
            if child_text:
                lines.append(child_text)

    return "\n".join(lines)


def build_user_message(page_state: PageState, goal: str, previous_actions: List[str]) -> str:
    parts = [
        f"GOAL: {goal}",
        "",
        f"CURRENT URL: {page_state.url}",
        f"PAGE TITLE: {page_state.title}",
        "",
    ]

    if previous_actions:
        parts.append("PREVIOUS ACTIONS:")
        parts.extend(f"{i}. {a}" for i, a in enumerate(previous_actions, 1))
        parts.append("")

    parts.append("PAGE CONTENT:")
    parts.append(dom_to_text(page_state.dom) or "(empty)")

    for heading, entries in (
        ("JAVASCRIPT ERRORS:", page_state.errors),
        ("CONSOLE MESSAGES:", page_state.console_messages),
        ("NETWORK ERRORS:", page_state.network_errors),
    ):
        if entries:
            parts.extend(["", heading])
            parts.extend(entries)

    parts.append("")
    parts.append("Analyze this page and suggest the next action to achieve the goal.")
    return "\n".join(parts)
