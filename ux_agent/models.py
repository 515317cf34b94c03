"""数据模型定义"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union


SEVERITIES = ("critical", "major", "minor", "suggestion")

CATEGORIES = (
    "usability",
    "accessibility",
    "performance",
    "visual",
    "functionality",
    "error_handling",
    "feedback",
    "navigation",
)

STEP_RESULTS = ("success", "failure", "warning")

REPORT_STATUSES = ("passed", "failed", "partial")

SCROLL_DIRECTIONS = ("up", "down", "left", "right")


class RunPhase(str, Enum):
    """一次场景运行的状态机"""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    EXHAUSTED = "exhausted"


# ──────────────────────────────────────────────
# 页面状态
# ──────────────────────────────────────────────

@dataclass
class DOMElement:
    """DOM 树中的一个可见节点"""
    tag: str
    id: Optional[str] = None
    classes: List[str] = field(default_factory=list)
    text: Optional[str] = None
    href: Optional[str] = None
    type: Optional[str] = None
    placeholder: Optional[str] = None
    value: Optional[str] = None
    disabled: bool = False
    visible: bool = True
    rect: Optional[Dict[str, int]] = None  # {x, y, width, height}
    children: List["DOMElement"] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DOMElement":
        return cls(
            tag=data.get("tag", "unknown"),
            id=data.get("id"),
            classes=list(data.get("classes") or []),
            text=data.get("text"),
            href=data.get("href"),
            type=data.get("type"),
            placeholder=data.get("placeholder"),
            value=data.get("value"),
            disabled=bool(data.get("disabled", False)),
            visible=bool(data.get("visible", True)),
            rect=data.get("rect"),
            children=[cls.from_dict(c) for c in data.get("children") or [] if c],
        )


@dataclass
class PageState:
    """单步的页面快照，每一步重新生成"""
    url: str
    title: str
    dom: List[DOMElement]
    errors: List[str] = field(default_factory=list)  # 未捕获的 JS 异常
    console_messages: List[str] = field(default_factory=list)
    network_errors: List[str] = field(default_factory=list)
    screenshot_base64: Optional[str] = None


# ──────────────────────────────────────────────
# 动作：封闭的 tagged union，每个变体只带自己需要的字段
# ──────────────────────────────────────────────

class _ActionMixin:
    def to_dict(self) -> Dict[str, Any]:
        data = {k: v for k, v in asdict(self).items() if v is not None}
        data.pop("type", None)
        return {"type": self.type, **data}

    def describe(self) -> str:
        """历史记录里使用的简短描述"""
        if self.description:
            return f"{self.type}: {self.description}"
        details = ", ".join(f"{k}={v}" for k, v in self.to_dict().items() if k != "type")
        return f"{self.type}: {details}" if details else self.type


@dataclass
class ClickAction(_ActionMixin):
    selector: Optional[str] = None
    text: Optional[str] = None
    position: Optional[Dict[str, float]] = None  # {x, y}
    description: Optional[str] = None
    type: str = field(default="click", init=False)


@dataclass
class TypeAction(_ActionMixin):
    text: str
    selector: Optional[str] = None
    description: Optional[str] = None
    type: str = field(default="type", init=False)


@dataclass
class ScrollAction(_ActionMixin):
    direction: str = "down"  # up|down|left|right
    amount: Optional[int] = None
    description: Optional[str] = None
    type: str = field(default="scroll", init=False)


@dataclass
class WaitAction(_ActionMixin):
    timeout: Optional[int] = None  # 毫秒
    condition: Optional[str] = None  # networkidle|domcontentloaded
    selector: Optional[str] = None
    description: Optional[str] = None
    type: str = field(default="wait", init=False)


@dataclass
class NavigateAction(_ActionMixin):
    url: str
    description: Optional[str] = None
    type: str = field(default="navigate", init=False)


@dataclass
class HoverAction(_ActionMixin):
    selector: str
    description: Optional[str] = None
    type: str = field(default="hover", init=False)


@dataclass
class PressKeyAction(_ActionMixin):
    key: str
    description: Optional[str] = None
    type: str = field(default="press_key", init=False)


@dataclass
class SelectAction(_ActionMixin):
    selector: str
    value: str
    description: Optional[str] = None
    type: str = field(default="select", init=False)


@dataclass
class ClearAction(_ActionMixin):
    selector: str
    description: Optional[str] = None
    type: str = field(default="clear", init=False)


@dataclass
class ScreenshotAction(_ActionMixin):
    description: Optional[str] = None
    type: str = field(default="screenshot", init=False)


Action = Union[
    ClickAction,
    TypeAction,
    ScrollAction,
    WaitAction,
    NavigateAction,
    HoverAction,
    PressKeyAction,
    SelectAction,
    ClearAction,
    ScreenshotAction,
]

ACTION_CLASSES = {
    "click": ClickAction,
    "type": TypeAction,
    "scroll": ScrollAction,
    "wait": WaitAction,
    "navigate": NavigateAction,
    "hover": HoverAction,
    "press_key": PressKeyAction,
    "select": SelectAction,
    "clear": ClearAction,
    "screenshot": ScreenshotAction,
}

ACTION_TYPES = tuple(ACTION_CLASSES)


def action_from_dict(data: Dict[str, Any]) -> Action:
    """
    从序列化后的字典还原动作（用于读取报告）。
    这里不做容错：来自模型的不可信输出请走 normalizer.normalize_action。
    """
    kind = data.get("type")
    if kind not in ACTION_CLASSES:
        raise ValueError(f"Unknown action type: {kind}")
    fields = {k: v for k, v in data.items() if k != "type"}
    return ACTION_CLASSES[kind](**fields)


# ──────────────────────────────────────────────
# 分析结果与问题
# ──────────────────────────────────────────────

@dataclass
class UXIssue:
    """结构化的 UX 缺陷，以 id 作为身份"""
    id: str
    severity: str  # critical|major|minor|suggestion
    category: str  # 见 CATEGORIES
    title: str
    description: str
    location: Optional[str] = None
    suggestion: Optional[str] = None
    screenshot: Optional[str] = None
    reproduction_steps: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "severity": self.severity,
            "category": self.category,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "suggestion": self.suggestion,
            "screenshot": self.screenshot,
            "reproductionSteps": self.reproduction_steps,
        }
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UXIssue":
        return cls(
            id=data["id"],
            severity=data["severity"],
            category=data["category"],
            title=data["title"],
            description=data["description"],
            location=data.get("location"),
            suggestion=data.get("suggestion"),
            screenshot=data.get("screenshot"),
            reproduction_steps=data.get("reproductionSteps"),
        )


@dataclass
class AnalysisResult:
    """推理服务（或兜底逻辑）给出的结构化决策"""
    current_page: str
    current_state: str
    available_actions: List[str]
    suggested_next_action: Optional[Action]
    ux_issues: List[UXIssue]
    progress: float  # 0-100，目标完成度估计


@dataclass
class ActionOutcome:
    """执行器返回值"""
    success: bool
    error: Optional[str] = None


# ──────────────────────────────────────────────
# 运行记录与报告
# ──────────────────────────────────────────────

@dataclass
class TestStep:
    """单步执行记录（只追加）"""
    __test__ = False  # 避免被 pytest 当作测试类收集

    step_number: int
    action: Action
    result: str  # success|failure|warning
    duration: int  # 毫秒
    screenshot: Optional[str] = None  # data URI
    notes: Optional[str] = None

    def __post_init__(self):
        if self.result not in STEP_RESULTS:
            raise ValueError(f"未知的步骤结果: {self.result}")

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "stepNumber": self.step_number,
            "action": self.action.to_dict(),
            "result": self.result,
            "screenshot": self.screenshot,
            "duration": self.duration,
            "notes": self.notes,
        }
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestStep":
        return cls(
            step_number=data["stepNumber"],
            action=action_from_dict(data["action"]),
            result=data["result"],
            duration=data["duration"],
            screenshot=data.get("screenshot"),
            notes=data.get("notes"),
        )


@dataclass
class AgentMessage:
    role: str  # user|assistant
    content: str


@dataclass(frozen=True)
class UXReport:
    """一次场景运行的最终报告，也是唯一持久化的产物"""
    scenario: str
    start_time: datetime
    end_time: datetime
    duration: int  # 毫秒
    status: str  # passed|failed|partial
    steps: List[TestStep]
    issues: List[UXIssue]
    summary: str
    recommendations: List[str]

    def __post_init__(self):
        if self.status not in REPORT_STATUSES:
            raise ValueError(f"未知的报告状态: {self.status}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat(),
            "duration": self.duration,
            "status": self.status,
            "steps": [s.to_dict() for s in self.steps],
            "issues": [i.to_dict() for i in self.issues],
            "summary": self.summary,
            "recommendations": list(self.recommendations),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UXReport":
        return cls(
            scenario=data["scenario"],
            start_time=datetime.fromisoformat(data["startTime"]),
            end_time=datetime.fromisoformat(data["endTime"]),
            duration=data["duration"],
            status=data["status"],
            steps=[TestStep.from_dict(s) for s in data.get("steps", [])],
            issues=[UXIssue.from_dict(i) for i in data.get("issues", [])],
            summary=data.get("summary", ""),
            recommendations=list(data.get("recommendations", [])),
        )


# ──────────────────────────────────────────────
# API 契约检查
# ──────────────────────────────────────────────

@dataclass
class ApiTestResult:
    """一次 API 请求的检查结果"""
    endpoint: str
    method: str
    status: int  # 网络错误时为 0
    response_time: int  # 毫秒
    success: bool
    error: Optional[str] = None
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "endpoint": self.endpoint,
            "method": self.method,
            "status": self.status,
            "responseTime": self.response_time,
            "success": self.success,
            "error": self.error,
            "data": self.data,
        }
        return {k: v for k, v in data.items() if v is not None}


@dataclass
class ApiTestSuite:
    name: str
    results: List[ApiTestResult]
    passed: int
    failed: int
    duration: int  # 毫秒

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "results": [r.to_dict() for r in self.results],
            "passed": self.passed,
            "failed": self.failed,
            "duration": self.duration,
        }
