"""UX Agent 包：AI 驱动的探索式 UX 测试

包含各个模块：
- models: 数据模型
- config: 运行配置
- perception: 感知模块（页面状态采集）
- controller: 执行模块
- normalizer: 推理回复归一化与兜底分析
- planner: 规划模块（推理服务客户端）
- memory: 记忆模块（单次运行状态）
- core: 核心 Agent 类
- reporter: 报告生成
- scenarios: 场景库
- api_client: 后端 API 契约检查
"""

from .models import (
    Action,
    ActionOutcome,
    AnalysisResult,
    ApiTestResult,
    ApiTestSuite,
    DOMElement,
    PageState,
    RunPhase,
    TestStep,
    UXIssue,
    UXReport,
    action_from_dict,
)
from .config import AgentConfig
from .perception import Perception
from .controller import Controller
from .planner import Planner
from .memory import AgentState
from .reporter import ReportGenerator, print_api_results, print_report_summary
from .core import UXTestAgent, create_ux_agent, run_in_browser
from .scenarios import DEFAULT_SCENARIO
from .api_client import ApiTestClient, run_api_checks

__all__ = [
    "Action",
    "ActionOutcome",
    "AnalysisResult",
    "ApiTestResult",
    "ApiTestSuite",
    "DOMElement",
    "PageState",
    "RunPhase",
    "TestStep",
    "UXIssue",
    "UXReport",
    "action_from_dict",
    "AgentConfig",
    "Perception",
    "Controller",
    "Planner",
    "AgentState",
    "ReportGenerator",
    "print_api_results",
    "print_report_summary",
    "UXTestAgent",
    "create_ux_agent",
    "run_in_browser",
    "DEFAULT_SCENARIO",
    "ApiTestClient",
    "run_api_checks",
]
