"""记忆模块：单次运行的可变状态、问题汇总与历史记录"""

from dataclasses import dataclass, field
from typing import List, Optional

from .models import Action, AgentMessage, PageState, RunPhase, UXIssue


@dataclass
class AgentState:
    """一次场景运行的状态，运行开始时创建，生成报告后丢弃"""
    scenario: str
    goal: str
    max_steps: int
    current_step: int = 0
    history: List[AgentMessage] = field(default_factory=list)
    previous_actions: List[str] = field(default_factory=list)
    page_state: Optional[PageState] = None
    issues: List[UXIssue] = field(default_factory=list)
    is_complete: bool = False
    phase: RunPhase = RunPhase.IDLE
    stop_reason: Optional[str] = None
    error: Optional[str] = None

    @property
    def running(self) -> bool:
        return self.phase is RunPhase.RUNNING

    def start(self):
        self.phase = RunPhase.RUNNING

    def next_step(self) -> int:
        if self.current_step >= self.max_steps:
            raise RuntimeError(f"步数已达上限 {self.max_steps}")
        self.current_step += 1
        return self.current_step

    def merge_issues(self, issues: List[UXIssue]) -> List[UXIssue]:
        """按 id 合并问题，先出现的保留，返回本次新增的问题"""
        known = {i.id for i in self.issues}
        added = []
        for issue in issues:
            if issue.id in known:
                continue
            known.add(issue.id)
            self.issues.append(issue)
            added.append(issue)
        return added

    def record_action(self, action: Action):
        """记录动作的简短描述（而不是完整页面状态），用于下一次请求"""
        self.previous_actions.append(action.describe())

    def record_exchange(self, prompt: str, response: str):
        self.history.append(AgentMessage(role="user", content=prompt))
        self.history.append(AgentMessage(role="assistant", content=response))

    def complete(self):
        self.is_complete = True
        self.phase = RunPhase.COMPLETED
        self.stop_reason = "goal reached"

    def fail(self, error: str):
        self.is_complete = True
        self.phase = RunPhase.FAILED
        self.error = error
        self.stop_reason = error

    def exhaust(self, reason: str):
        self.phase = RunPhase.EXHAUSTED
        self.stop_reason = reason

    def has_blocking_issue(self) -> bool:
        return any(i.severity in ("critical", "major") for i in self.issues)

    def format_history(self, last_n: int = 5) -> str:
        """格式化最近的动作历史"""
        if not self.previous_actions:
            return "(无历史)"
        start = max(len(self.previous_actions) - last_n, 0)
        return "\n".join(
            f"Step {i}: {desc}" for i, desc in enumerate(self.previous_actions[start:], start + 1)
        )
